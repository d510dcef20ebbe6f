# test/test_lvm_reader.py
import datetime as dt
import io
import logging

import numpy as np
import pytest

from lvmdata import loads_lvm
from lvmdata.core import (
    Document,
    Kind,
    Value,
    RowArityMismatch,
    UnterminatedSection,
    deserialize,
)
from lvmdata.io.coerce import TypeHint
from lvmdata.io.config import LvmReaderConfig
from lvmdata.io.lvm_reader import DocumentAssembler, LvmReader, read_text


SAMPLE = (
    "LabVIEW Measurement\t\n"
    "Writer_Version\t2\n"
    "Reader_Version\t2\n"
    "Separator\tTab\n"
    "Decimal_Separator\t.\n"
    "Multi_Headings\tNo\n"
    "X_Columns\tOne\n"
    "Time_Pref\tAbsolute\n"
    "Operator\tlab\n"
    "Date\t2019/04/29\n"
    "Time\t09:51:48.5490010000000001\n"
    "***End_of_Header***\t\n"
    "\t\n"
    "Channels\t2\t\n"
    "Samples\t3\t3\t\n"
    "Date\t2019/04/29\t2019/04/29\t\n"
    "Time\t09:51:48.5490010000000001\t09:51:48.5490010000000001\t\n"
    "Y_Unit_Label\tVolts\tAmps\t\n"
    "X_Dimension\tTime\tTime\t\n"
    "X0\t0.0000000000000000E+0\t0.0000000000000000E+0\t\n"
    "Delta_X\t0.001000\t0.001000\t\n"
    "***End_of_Header***\t\n"
    "X_Value\tVoltage\tCurrent\tComment\n"
    "0.000000\t1.250000\t0.100000\n"
    "0.001000\t1.260000\t0.110000\tspike\n"
    "0.002000\t1.270000\t0.120000\n"
    "\n"
    "Channels\t1\t\n"
    "Samples\t2\t\n"
    "Y_Unit_Label\tVolts\t\n"
    "***End_of_Header***\t\n"
    "X_Value\tVoltage\tComment\n"
    "0.003000\t1.280000\n"
    "0.004000\t1.290000\n"
)


# ---- framing and recovery ----
def test_comma_decimal_headerless_group():
    text = (
        "Separator\t\t\n"
        "Decimal_Separator\t,\n"
        "***End_of_Header***\n"
        "Voltage\tTime\n"
        "1,5\t0,0\n"
        "1,6\t0,1\n"
        "1,7\t0,2\n"
    )
    doc = loads_lvm(text)

    assert len(doc) == 1
    group = doc[0]
    assert group.keys() == ["Voltage", "Time"]
    assert group["Voltage"].n == 3 and group["Time"].n == 3
    assert group["Voltage"].values == (Value.real(1.5), Value.real(1.6), Value.real(1.7))
    assert group["Time"].payloads() == [0.0, 0.1, 0.2]
    assert group.x_channel is None


def test_row_arity_mismatch_drops_only_that_group():
    text = (
        "***End_of_Header***\n"
        "a\tb\n"
        "1\t2\n"
        "\n"
        "a\tb\n"
        "1\t2\t3\n"
        "4\t5\n"
        "\n"
        "c\td\n"
        "7\t8\n"
    )
    doc = loads_lvm(text)

    assert [g.index for g in doc] == [0, 2]
    assert doc[0]["a"].payloads() == [1]
    assert doc[1]["d"].payloads() == [8]
    assert doc.is_partial

    (failure,) = doc.dropped
    assert failure.index == 1
    assert failure.line == 5
    assert isinstance(failure.error, RowArityMismatch)
    assert failure.error.line == 6
    assert (failure.error.expected, failure.error.actual) == (2, 3)


def test_row_arity_mismatch_is_fatal_without_recovery():
    text = "***End_of_Header***\na\tb\n1\t2\t3\n"
    with pytest.raises(RowArityMismatch):
        loads_lvm(text, recover_groups=False)


@pytest.mark.parametrize(
    "boundary",
    ["\n", "***Start_of_Header***\n***End_of_Header***\n"],
    ids=["blank-line", "start-marker"],
)
def test_document_header_without_end_marker(boundary):
    text = (
        "Separator\tTab\n"
        "Decimal_Separator\t,\n"
        + boundary
        + "Voltage\tTime\n"
        "1,5\t0,0\n"
        "1,6\t0,1\n"
    )
    doc = loads_lvm(text)

    assert doc.header.keys() == ["Separator", "Decimal_Separator"]
    assert len(doc) == 1
    assert doc[0]["Voltage"].payloads() == [1.5, 1.6]
    assert doc[0]["Time"].payloads() == [0.0, 0.1]


def test_dropped_group_leaves_no_fallbacks():
    text = (
        "***End_of_Header***\n"
        "a\n"
        "y\n"
        "\n"
        "a\tb\n"
        "x\t2\n"
        "1\t2\t3\n"
    )
    doc = loads_lvm(text, column_hints={"a": TypeHint.integer()})

    assert [f.index for f in doc.dropped] == [1]
    (fb,) = doc.fallbacks
    assert (fb.line, fb.column, fb.raw) == (3, "a", "y")


def test_dropped_group_does_not_lock_the_decimal_separator():
    text = (
        "***End_of_Header***\n"
        "v\tw\n"
        "2,5\t1\n"
        "1\t2\t3\n"
        "\n"
        "v\n"
        "1.5\n"
    )
    doc = loads_lvm(text)

    assert len(doc.dropped) == 1
    assert doc[0]["v"].values == (Value.real(1.5),)


@pytest.mark.parametrize("data", ["", b""])
def test_empty_input_is_unterminated(data):
    with pytest.raises(UnterminatedSection):
        loads_lvm(data)


def test_escaped_delimiter_stays_in_one_field():
    text = (
        "***End_of_Header***\n"
        "Name\tValue\n"
        "a\\\tb\t1\n"
        '"c\td"\t2\n'
    )
    doc = loads_lvm(text)

    assert doc[0]["Name"].payloads() == ["a\tb", "c\td"]
    assert doc[0]["Value"].payloads() == [1, 2]


# ---- realistic file ----
def test_sample_document_header():
    doc = loads_lvm(SAMPLE)

    assert doc.header["Writer_Version"] == Value.integer(2)
    assert doc.header["Date"] == Value.timestamp(dt.date(2019, 4, 29))
    assert doc.header["Operator"].payload == "lab"
    assert doc.fallbacks == ()
    assert not doc.is_partial


def test_sample_groups_and_channels():
    doc = loads_lvm(SAMPLE)
    assert len(doc) == 2

    first = doc[0]
    assert first.header["Channels"] == Value.integer(2)
    assert first.keys() == ["X_Value", "Voltage", "Current", "Comment"]
    assert first.x_channel == "X_Value"
    assert first.n_rows == 3
    assert first["Voltage"].payloads() == [1.25, 1.26, 1.27]
    assert first["Comment"].values == (Value.null(), Value.text("spike"), Value.null())

    second = doc[1]
    assert second.index == 1
    assert second.keys() == ["X_Value", "Voltage", "Comment"]
    assert second["Comment"].kinds() == {Kind.NULL}
    assert doc.channel_names() == ["X_Value", "Voltage", "Current", "Comment"]


def test_sample_per_channel_properties():
    first = loads_lvm(SAMPLE)[0]

    voltage = first["Voltage"]
    current = first["Current"]
    assert voltage.unit == "Volts"
    assert current.unit == "Amps"
    assert voltage.properties["Samples"] == Value.integer(3)
    assert voltage.properties["Delta_X"] == Value.real(0.001)
    assert voltage.properties["Date"] == Value.timestamp(dt.date(2019, 4, 29))
    # the x column and Comment get no per-channel entries
    assert len(first["X_Value"].properties) == 0
    assert len(first["Comment"].properties) == 0


def test_sample_series_uses_x_column():
    ts = loads_lvm(SAMPLE)[0].series("Current")

    assert ts.unit == "Amps"
    assert np.allclose(ts.time, [0.0, 0.001, 0.002])
    assert np.allclose(ts.values, [0.1, 0.11, 0.12])
    assert ts.mean() == pytest.approx(0.11)


def test_sample_group_start_times():
    doc = loads_lvm(SAMPLE)
    start = dt.datetime(2019, 4, 29, 9, 51, 48, 549001)

    # the second segment has no Date/Time of its own
    assert [g.start for g in doc] == [start, start]


def test_group_date_overrides_the_document_date():
    text = (
        "Date\t2019/04/29\n"
        "***End_of_Header***\n"
        "***Start_of_Header***\n"
        "Date\t2021/05/06\t2021/05/06\t\n"
        "Time\t12:00:00\t12:00:00\t\n"
        "***End_of_Header***\n"
        "a\tb\n"
        "1\t2\n"
        "\n"
        "***Start_of_Header***\n"
        "***End_of_Header***\n"
        "c\n"
        "3\n"
    )
    doc = loads_lvm(text)

    assert doc[0].start == dt.datetime(2021, 5, 6, 12)
    assert doc[1].start == dt.datetime(2019, 4, 29)


def test_every_group_has_equal_channel_lengths():
    for group in loads_lvm(SAMPLE):
        assert len({ch.n for ch in group.channels}) == 1
        assert all(ch.n == group.n_rows for ch in group.channels)


def test_parsing_is_deterministic():
    assert loads_lvm(SAMPLE) == loads_lvm(SAMPLE)
    assert loads_lvm(SAMPLE).to_value() == loads_lvm(SAMPLE.encode()).to_value()

    # LabVIEW writes NaN for missing samples
    text = "***End_of_Header***\nv\tw\n1.0\tNaN\nNaN\t2.0\n"
    assert loads_lvm(text) == loads_lvm(text)


# ---- group layouts ----
def test_x_columns_no_uses_x0_and_delta_x():
    text = (
        "LabVIEW Measurement\t\n"
        "X_Columns\tNo\n"
        "***End_of_Header***\t\n"
        "\t\n"
        "Channels\t1\t\n"
        "Samples\t3\t\n"
        "X0\t1.0\t\n"
        "Delta_X\t0.5\t\n"
        "***End_of_Header***\t\n"
        "\tVoltage\tComment\n"
        "\t1.0\n"
        "\t2.0\tok\n"
        "\t3.0\n"
    )
    group = loads_lvm(text)[0]

    assert group.keys() == ["Voltage", "Comment"]
    assert group.x_channel is None
    assert group["Voltage"].payloads() == [1.0, 2.0, 3.0]
    assert np.allclose(group.x_values("Voltage"), [1.0, 1.5, 2.0])


def test_explicit_start_marker_and_unit_row():
    text = (
        "***End_of_Header***\n"
        "***Start_of_Header***\n"
        "X_Dimension\tTime\t\n"
        "X_Unit_Label\ts\t\n"
        "Y_Unit_Label\tV\t\n"
        "***End_of_Header***\n"
        "X_Value\tVoltage\n"
        "s\tV\n"
        "0.0\t1.0\n"
    )
    group = loads_lvm(text)[0]

    assert group.n_rows == 1
    assert group["X_Value"].unit == "s"
    assert group["Voltage"].unit == "V"
    assert group["Voltage"].properties["X_Dimension"] == Value.text("Time")


def test_text_row_is_data_unless_it_repeats_the_declared_units():
    text = (
        "***End_of_Header***\n"
        "***Start_of_Header***\n"
        "Y_Unit_Label\tV\tV\t\n"
        "***End_of_Header***\n"
        "State\tMode\n"
        "ON\tAUTO\n"
        "OFF\tMANUAL\n"
    )
    group = loads_lvm(text)[0]

    assert group.n_rows == 2
    assert group["State"].payloads() == ["ON", "OFF"]
    assert group["State"].unit == "V"
    assert "Unit" not in group["Mode"].properties


def test_start_marker_ends_previous_group():
    text = (
        "***End_of_Header***\n"
        "a\n"
        "1\n"
        "***Start_of_Header***\n"
        "***End_of_Header***\n"
        "b\n"
        "2\n"
    )
    doc = loads_lvm(text)
    assert [g.keys() for g in doc] == [["a"], ["b"]]


def test_group_separator_override_is_scoped_to_the_group():
    text = (
        "***End_of_Header***\n"
        "***Start_of_Header***\n"
        "Separator\tComma\n"
        "***End_of_Header***\n"
        "a,b\n"
        "1,2\n"
        "\n"
        "***Start_of_Header***\n"
        "***End_of_Header***\n"
        "c\td\n"
        "3\t4\n"
    )
    doc = loads_lvm(text)

    assert doc[0].keys() == ["a", "b"]
    assert doc[1].keys() == ["c", "d"]
    assert doc[1]["d"].payloads() == [4]


def test_header_without_labels_gives_empty_group():
    text = "***End_of_Header***\n***Start_of_Header***\nChannels\t0\n***End_of_Header***\n"
    doc = loads_lvm(text)

    assert len(doc) == 1
    assert len(doc[0]) == 0
    assert doc[0].header["Channels"] == Value.integer(0)


def test_unterminated_group_header():
    with pytest.raises(UnterminatedSection):
        loads_lvm("***End_of_Header***\n***Start_of_Header***\nChannels\t1\n")


def test_stray_end_marker_between_groups():
    with pytest.raises(UnterminatedSection):
        loads_lvm("***End_of_Header***\n\n***End_of_Header***\n")


# ---- reader options ----
def test_column_hints_and_fallbacks():
    text = "***End_of_Header***\nVoltage\tCode\n1.5\t007\nn/a\t008\n"
    doc = loads_lvm(text, column_hints={"Voltage": TypeHint.real(), "Code": TypeHint.text()})

    assert doc[0]["Code"].payloads() == ["007", "008"]
    assert doc[0]["Voltage"].values[1] == Value.text("n/a")
    (fb,) = doc.fallbacks
    assert (fb.line, fb.column, fb.raw) == (4, "Voltage", "n/a")


def test_reader_decimal_separator_option():
    text = "***End_of_Header***\nv\n2,5\n"
    doc = LvmReader(LvmReaderConfig(decimal_separator=",")).read(text)
    assert doc[0]["v"].payloads() == [2.5]


def test_reader_is_reusable():
    reader = LvmReader()
    assert reader.read(SAMPLE) == reader.read(SAMPLE)


def test_streams_and_encodings():
    text = SAMPLE.replace("Amps", "µA")

    doc = loads_lvm(io.BytesIO(text.encode("latin-1")), encoding="latin-1")
    assert doc[0]["Current"].unit == "µA"

    doc = loads_lvm(io.StringIO(text))
    assert doc[0]["Current"].unit == "µA"


def test_byte_order_mark_is_ignored():
    doc = loads_lvm(b"\xef\xbb\xbf" + SAMPLE.encode("utf-8"))
    assert doc.header["LabVIEW Measurement"].is_null


def test_read_text_rejects_unreadable_sources():
    with pytest.raises(TypeError):
        read_text(42)


def test_dropped_group_is_logged(caplog):
    text = "***End_of_Header***\na\tb\n1\t2\t3\n"
    with caplog.at_level(logging.WARNING, logger="lvmdata"):
        loads_lvm(text)
    assert "dropped" in caplog.text


def test_assembler_builds_document():
    assembler = DocumentAssembler()
    doc = assembler.build()
    assert isinstance(doc, Document)
    assert len(doc) == 0


# ---- bridge on parsed documents ----
def _voltages(node):
    group = node.expect_map().required("groups").expect_seq()[0].expect_map()
    for ch in group.required("channels").expect_seq():
        ch = ch.expect_map()
        if ch.required("name").as_str() == "Voltage":
            return ch.required("values").expect_seq().map(lambda n: n.as_float())
    return None


def test_deserialize_parsed_document():
    doc = loads_lvm(SAMPLE)

    first = deserialize(doc, _voltages)
    second = deserialize(doc, _voltages)
    assert first == second == [1.25, 1.26, 1.27]
