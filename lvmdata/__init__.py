# lvmdata/__init__.py
"""
lvmdata: read LabVIEW Measurement (LVM) files into an immutable, typed
Document and map it onto caller-defined structures.

    from lvmdata import load_lvm, deserialize

    with open("run.lvm", "rb") as f:
        doc = load_lvm(f)
    volts = doc[0]["Voltage"].to_numpy()
"""

from .core import (
    Kind,
    Value,
    Metadata,
    Channel,
    Group,
    Document,
    GroupFailure,
    CoercionFallback,
    TimeSeries,
    Node,
    deserialize,
    CoreError,
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
from .io import LvmReader, LvmReaderConfig, TypeHint, load_lvm, loads_lvm


__version__ = "0.1.0"

__all__ = [
    "Kind",
    "Value",
    "Metadata",
    "Channel",
    "Group",
    "Document",
    "GroupFailure",
    "CoercionFallback",
    "TimeSeries",
    "Node",
    "deserialize",
    "CoreError",
    "ParseError",
    "MalformedEscape",
    "RowArityMismatch",
    "MissingRequiredHeaderKey",
    "UnterminatedSection",
    "InvalidHeaderValue",
    "DeserializeError",
    "TypeMismatch",
    "MissingField",
    "LvmReader",
    "LvmReaderConfig",
    "TypeHint",
    "load_lvm",
    "loads_lvm",
]
