# lvmdata/io/load.py
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from lvmdata.core import Document
from lvmdata.io.config import LvmReaderConfig
from lvmdata.io.lvm_reader import LvmReader, Source


def load_lvm(stream: Source, config: Optional[LvmReaderConfig] = None, **overrides) -> Document:
    """
    Parse an already-open LVM source into a Document.

    `overrides` replace individual LvmReaderConfig fields, e.g.
    load_lvm(f, decimal_separator=",", recover_groups=False).
    """
    cfg = config or LvmReaderConfig()
    if overrides:
        cfg = replace(cfg, **overrides)
    return LvmReader(cfg).read(stream)


def loads_lvm(data: str | bytes, config: Optional[LvmReaderConfig] = None, **overrides) -> Document:
    """Parse LVM text (or bytes) held in memory."""
    return load_lvm(data, config, **overrides)
