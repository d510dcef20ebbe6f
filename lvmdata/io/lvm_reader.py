from __future__ import annotations

import logging
from typing import IO, Optional, Union

from lvmdata.core.document import Document, GroupFailure
from lvmdata.core.group import Group
from lvmdata.core.metadata import Metadata
from lvmdata.io.coerce import Coercer
from lvmdata.io.config import ConfigStack, LvmReaderConfig
from lvmdata.io.groups import GroupParser
from lvmdata.io.header import HeaderParser
from lvmdata.io.lexer import Lexer


logger = logging.getLogger(__name__)


Source = Union[str, bytes, bytearray, IO[str], IO[bytes]]


class DocumentAssembler:
    """
    Collects the pieces of one parse into an immutable Document.

    Completed groups are appended as they arrive; a failing group is only
    recorded in `dropped`, never appended, so earlier groups are kept.
    """

    def __init__(self) -> None:
        self.header = Metadata()
        self.groups: list[Group] = []
        self.dropped: list[GroupFailure] = []

    def set_header(self, header: Metadata) -> None:
        self.header = header

    # GroupSink
    def add_group(self, group: Group) -> None:
        self.groups.append(group)

    def drop_group(self, failure: GroupFailure) -> None:
        self.dropped.append(failure)

    def build(self, coercer: Optional[Coercer] = None) -> Document:
        return Document(
            header=self.header,
            groups=tuple(self.groups),
            dropped=tuple(self.dropped),
            fallbacks=tuple(coercer.fallbacks) if coercer is not None else (),
        )


def read_text(source: Source, encoding: str = "utf-8") -> str:
    """Text of an already-open source (str, bytes, or readable)."""
    if isinstance(source, str):
        text = source
    elif isinstance(source, (bytes, bytearray)):
        text = bytes(source).decode(encoding)
    elif callable(getattr(source, "read", None)):
        data = source.read()
        text = data.decode(encoding) if isinstance(data, (bytes, bytearray)) else data
    else:
        raise TypeError(f"cannot read LVM data from {type(source).__name__}")
    return text.lstrip("\ufeff")


class LvmReader:
    """
    Single-pass LVM parser.

    Wires lexer -> header parser (configures the coercer) -> group parser
    (with its table builder) -> document assembler. Each read() call owns its
    own lexer, configuration stack and coercer, so one reader may be used
    for several sources.
    """

    def __init__(self, config: Optional[LvmReaderConfig] = None):
        self.config = config or LvmReaderConfig()

    def read(self, source: Source) -> Document:
        cfg = self.config
        text = read_text(source, cfg.encoding)

        stack = ConfigStack(cfg.parse_config())
        lexer = Lexer(text, stack)
        coercer = Coercer(stack)
        headers = HeaderParser(lexer, coercer, stack)
        assembler = DocumentAssembler()

        header, _ = headers.parse_document_header(cfg.required_keys)
        assembler.set_header(header)

        groups = GroupParser(
            lexer,
            coercer,
            headers,
            stack,
            column_hints=cfg.column_hints,
            recover=cfg.recover_groups,
        )
        groups.parse(assembler)

        doc = assembler.build(coercer)
        logger.debug(
            "parsed %d groups (%d dropped, %d coercion fallbacks)",
            len(doc.groups), len(doc.dropped), len(doc.fallbacks),
        )
        return doc
