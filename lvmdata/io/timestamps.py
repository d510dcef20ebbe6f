# lvmdata/io/timestamps.py
from __future__ import annotations

import datetime as dt
import re


_DATE = r"(?P<y>\d{4})[/-](?P<mo>\d{1,2})[/-](?P<d>\d{1,2})"
_TIME = r"(?P<h>\d{1,2}):(?P<mi>\d{2}):(?P<s>\d{2})(?:[.,](?P<frac>\d+))?"
_DATE_RE = re.compile(_DATE)
_TIME_RE = re.compile(_TIME)
_DATETIME_RE = re.compile(_DATE + r"[ T]" + _TIME)
_LONG_FRACTION_RE = re.compile(r"([.,]\d{6})\d+")

_DATE_DIRECTIVES = ("%Y", "%y", "%m", "%d", "%b", "%B", "%j", "%x", "%c")
_TIME_DIRECTIVES = ("%H", "%I", "%M", "%S", "%f", "%p", "%X", "%c")


def _time_from(m: re.Match) -> dt.time:
    frac = m.group("frac") or ""
    micro = int((frac + "000000")[:6])
    return dt.time(int(m.group("h")), int(m.group("mi")), int(m.group("s")), micro)


def parse_timestamp(s: str) -> dt.datetime | dt.date | dt.time | None:
    """Built-in date/time grammar; None when `s` is not a valid date/time."""
    try:
        m = _DATETIME_RE.fullmatch(s)
        if m:
            d = dt.date(int(m.group("y")), int(m.group("mo")), int(m.group("d")))
            return dt.datetime.combine(d, _time_from(m))
        m = _DATE_RE.fullmatch(s)
        if m:
            return dt.date(int(m.group("y")), int(m.group("mo")), int(m.group("d")))
        m = _TIME_RE.fullmatch(s)
        if m:
            return _time_from(m)
    except ValueError:
        # matched the shape but not the calendar (e.g. month 13)
        return None
    return None


def parse_timestamp_format(s: str, fmt: str) -> dt.datetime | dt.date | dt.time | None:
    if "%f" in fmt:
        # LabVIEW writes up to 19 fraction digits, strptime takes 6
        s = _LONG_FRACTION_RE.sub(r"\1", s)
    try:
        parsed = dt.datetime.strptime(s, fmt)
    except ValueError:
        return None
    has_date = any(d in fmt for d in _DATE_DIRECTIVES)
    has_time = any(t in fmt for t in _TIME_DIRECTIVES)
    if has_date and not has_time:
        return parsed.date()
    if has_time and not has_date:
        return parsed.time()
    return parsed
