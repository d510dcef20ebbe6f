# lvmdata/core/__init__.py
"""
Core domain objects for lvmdata.

This module defines the format-agnostic data model:
- Value: tagged union node (null, bool, integer, float, timestamp, string, map, seq)
- Metadata: ordered key/value header data (duplicate keys preserved)
- Channel: named column of typed values + per-channel metadata
- Group: one segment of channels sharing a row axis
- Document: file header + ordered groups
- TimeSeries: numeric x/y view of a channel
- deserialize: bridge letting caller types pull data out of a Value tree

The core layer is independent from the LVM text format.
"""

from .value import Kind, Value
from .metadata import Metadata
from .channel import Channel
from .group import Group
from .document import Document, GroupFailure, CoercionFallback
from .timeseries import TimeSeries
from .deserialize import Node, MapNode, SeqNode, SupportsValue, deserialize, to_node
from .exceptions import (
    CoreError,
    InvalidValue,
    InvalidTimeSeries,
    InvalidChannel,
    InvalidGroup,
    InvalidDocument,
    ChannelNotFound,
    GroupNotFound,
    ParseError,
    MalformedEscape,
    RowArityMismatch,
    MissingRequiredHeaderKey,
    UnterminatedSection,
    InvalidHeaderValue,
    DeserializeError,
    TypeMismatch,
    MissingField,
)


__all__ = [
    # values
    "Kind",
    "Value",
    "Metadata",

    # domain objects
    "Channel",
    "Group",
    "Document",
    "GroupFailure",
    "CoercionFallback",
    "TimeSeries",

    # deserialization bridge
    "Node",
    "MapNode",
    "SeqNode",
    "SupportsValue",
    "deserialize",
    "to_node",

    # exceptions
    "CoreError",
    "InvalidValue",
    "InvalidTimeSeries",
    "InvalidChannel",
    "InvalidGroup",
    "InvalidDocument",
    "ChannelNotFound",
    "GroupNotFound",
    "ParseError",
    "MalformedEscape",
    "RowArityMismatch",
    "MissingRequiredHeaderKey",
    "UnterminatedSection",
    "InvalidHeaderValue",
    "DeserializeError",
    "TypeMismatch",
    "MissingField",
]
