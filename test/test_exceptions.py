# test/test_exceptions.py
import pytest

from lvmdata.core import (
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


def test_exception_inheritance_validation():
    assert issubclass(InvalidValue, CoreError)
    assert issubclass(InvalidTimeSeries, CoreError)
    assert issubclass(InvalidChannel, CoreError)
    assert issubclass(InvalidGroup, CoreError)
    assert issubclass(InvalidDocument, CoreError)


def test_exception_inheritance_lookup():
    assert issubclass(ChannelNotFound, KeyError)
    assert issubclass(ChannelNotFound, CoreError)
    assert issubclass(GroupNotFound, IndexError)
    assert issubclass(GroupNotFound, CoreError)


def test_parse_errors_share_a_base():
    for cls in (MalformedEscape, RowArityMismatch, MissingRequiredHeaderKey,
                UnterminatedSection, InvalidHeaderValue):
        assert issubclass(cls, ParseError)
    assert issubclass(ParseError, CoreError)


def test_deserialize_errors_share_a_base():
    assert issubclass(TypeMismatch, DeserializeError)
    assert issubclass(MissingField, DeserializeError)
    assert issubclass(MissingField, KeyError)
    assert issubclass(DeserializeError, CoreError)


def test_lookup_errors_can_be_raised_and_caught_as_builtin():
    with pytest.raises(KeyError):
        raise ChannelNotFound("Voltage")

    with pytest.raises(IndexError):
        raise GroupNotFound(3)


def test_parse_error_carries_line():
    e = RowArityMismatch(line=12, expected=2, actual=3)
    assert e.line == 12
    assert e.expected == 2
    assert e.actual == 3
    assert str(e) == "line 12: expected 2 fields, got 3"


def test_parse_error_without_line():
    e = UnterminatedSection("document header")
    assert e.line is None
    assert e.section == "document header"
    assert str(e) == "unterminated document header"


def test_header_errors_keep_key():
    assert MissingRequiredHeaderKey("Date", line=4).key == "Date"
    e = InvalidHeaderValue("Decimal_Separator", ";", line=7)
    assert e.key == "Decimal_Separator"
    assert e.raw == ";"
    assert "line 7" in str(e)


def test_deserialize_errors_carry_path():
    e = TypeMismatch("float", "integer", path="$.groups[0]")
    assert e.path == "$.groups[0]"
    assert str(e) == "$.groups[0]: expected float, found integer"

    m = MissingField("Operator", path="$.header")
    assert m.key == "Operator"
    assert str(m) == "$.header: missing field 'Operator'"
