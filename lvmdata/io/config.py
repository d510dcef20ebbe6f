# lvmdata/io/config.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping, Optional

from lvmdata.core.exceptions import InvalidHeaderValue
from lvmdata.io.timestamps import parse_timestamp


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseConfig:
    """
    Active parsing configuration, threaded from the document header down
    to each group.

    delimiter:
      Field separator character (tab unless the header says otherwise).
    decimal_separator:
      "." or ","; None means "not declared", and the coercer locks onto
      the first separator it observes.
    escapes:
      Resolve backslash escapes and quoted fields in the lexer.
    x_columns:
      "No", "One" or "Multi" (LVM X_Columns).
    date / time:
      Acquisition start declared by the Date / Time keys. A group header
      repeats them per channel; the first column is used.
    """
    delimiter: str = "\t"
    decimal_separator: Optional[str] = None
    escapes: bool = True
    x_columns: str = "One"
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None

    @property
    def start(self) -> Optional[dt.datetime]:
        if self.date is None:
            return None
        return dt.datetime.combine(self.date, self.time or dt.time())


# ---- known header keys ----
_SEPARATOR_NAMES = {
    "tab": "\t",
    "comma": ",",
    "semicolon": ";",
    "space": " ",
}


def _set_separator(config: ParseConfig, raw: str, line: int | None) -> ParseConfig:
    sep = _SEPARATOR_NAMES.get(raw.strip().lower())
    if sep is None:
        if len(raw) != 1 or raw in "\r\n\\\"":
            raise InvalidHeaderValue("Separator", raw, line=line)
        sep = raw
    return replace(config, delimiter=sep)


def _set_decimal_separator(config: ParseConfig, raw: str, line: int | None) -> ParseConfig:
    sep = raw.strip()
    if sep not in (".", ","):
        raise InvalidHeaderValue("Decimal_Separator", raw, line=line)
    return replace(config, decimal_separator=sep)


def _set_x_columns(config: ParseConfig, raw: str, line: int | None) -> ParseConfig:
    for option in ("No", "One", "Multi"):
        if raw.strip().lower() == option.lower():
            return replace(config, x_columns=option)
    raise InvalidHeaderValue("X_Columns", raw, line=line)


def _first_column(config: ParseConfig, raw: str) -> str:
    return raw.split(config.delimiter)[0].strip()


# Date and Time are informational: an unreadable value leaves the config as is
# (the header keeps it as a String and the coercer records the fallback).
def _set_date(config: ParseConfig, raw: str, line: int | None) -> ParseConfig:
    parsed = parse_timestamp(_first_column(config, raw))
    if isinstance(parsed, dt.datetime):
        return replace(config, date=parsed.date(), time=parsed.time())
    if isinstance(parsed, dt.date):
        return replace(config, date=parsed)
    logger.debug("line %s: Date=%r is not a date; ignored", line, raw)
    return config


def _set_time(config: ParseConfig, raw: str, line: int | None) -> ParseConfig:
    parsed = parse_timestamp(_first_column(config, raw))
    if isinstance(parsed, dt.time):
        return replace(config, time=parsed)
    logger.debug("line %s: Time=%r is not a time of day; ignored", line, raw)
    return config


# Header keys that reconfigure parsing for the rest of the document (or group)
KNOWN_KEYS: Mapping[str, Callable[[ParseConfig, str, Optional[int]], ParseConfig]] = {
    "Separator": _set_separator,
    "Decimal_Separator": _set_decimal_separator,
    "X_Columns": _set_x_columns,
    "Date": _set_date,
    "Time": _set_time,
}


def apply_known_key(config: ParseConfig, key: str, raw: str, *, line: int | None = None) -> ParseConfig:
    """Return `config` updated for header entry key/raw (unchanged for unknown keys)."""
    update = KNOWN_KEYS.get(key)
    if update is None:
        return config
    new = update(config, raw, line)
    if new != config:
        logger.debug("line %s: %s=%r reconfigures parsing: %s", line, key, raw, new)
    return new


class ConfigStack:
    """
    Stack of ParseConfig overrides.

    The bottom entry is the document configuration; a group pushes a copy
    on entry, may update it from its own header, and pops it on exit.
    """

    def __init__(self, base: ParseConfig | None = None) -> None:
        self._stack: list[ParseConfig] = [base or ParseConfig()]

    @property
    def current(self) -> ParseConfig:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        return len(self._stack)

    def push(self) -> ParseConfig:
        self._stack.append(self.current)
        return self.current

    def pop(self) -> ParseConfig:
        if len(self._stack) == 1:
            raise RuntimeError("cannot pop the document configuration")
        return self._stack.pop()

    def apply(self, key: str, raw: str, *, line: int | None = None) -> ParseConfig:
        self._stack[-1] = apply_known_key(self.current, key, raw, line=line)
        return self.current


@dataclass
class LvmReaderConfig:
    """
    Reader configuration.

    delimiter / decimal_separator / escapes:
      Initial ParseConfig values; header keys override them.
    encoding:
      Used to decode bytes / binary streams.
    required_keys:
      Document header keys that must be present (MissingRequiredHeaderKey).
    column_hints:
      Channel name -> TypeHint; channels without a hint use Auto.
    recover_groups:
      - True: a RowArityMismatch drops the group and parsing continues
      - False: a RowArityMismatch aborts the parse
    """
    delimiter: str = "\t"
    decimal_separator: Optional[str] = None
    escapes: bool = True
    encoding: str = "utf-8"
    required_keys: tuple[str, ...] = ()
    column_hints: dict = field(default_factory=dict)
    recover_groups: bool = True

    def parse_config(self) -> ParseConfig:
        if self.decimal_separator not in (None, ".", ","):
            raise ValueError("decimal_separator must be '.', ',' or None")
        if len(self.delimiter) != 1:
            raise ValueError("delimiter must be a single character")
        return ParseConfig(
            delimiter=self.delimiter,
            decimal_separator=self.decimal_separator,
            escapes=self.escapes,
        )
