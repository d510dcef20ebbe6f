# lvmdata/io/__init__.py
"""
LVM text parsing: lexer, value coercion, header/group/table parsers and
the document reader.
"""

from .config import ParseConfig, ConfigStack, LvmReaderConfig, KNOWN_KEYS
from .coerce import Coercer, Coercion, HintKind, TypeHint
from .lexer import Lexer, Line, LineKind, split_fields
from .lvm_reader import DocumentAssembler, LvmReader
from .load import load_lvm, loads_lvm


__all__ = [
    "ParseConfig",
    "ConfigStack",
    "LvmReaderConfig",
    "KNOWN_KEYS",
    "Coercer",
    "Coercion",
    "HintKind",
    "TypeHint",
    "Lexer",
    "Line",
    "LineKind",
    "split_fields",
    "DocumentAssembler",
    "LvmReader",
    "load_lvm",
    "loads_lvm",
]
