from __future__ import annotations

import io
import logging

import pytest

from eztags import IoFailure, RecordChain, UnexpectedRecordKind, UnknownTag, open_session
from eztags.kinds import CIRCLE, LINE, POINT
from tests._dxf_helpers import iter_dxf_records, tag_stream, written_tags


def _line(x: float):
    return LINE.new_record(start=(0.0, 0.0, 0.0), end=(x, 0.0, 0.0))


def _line_tags(x: float) -> tuple[tuple[int, str], ...]:
    return ((0, "LINE"), (10, "0.0"), (11, str(x)))


def test_open_session_parses_version_and_flags() -> None:
    session = open_session(io.StringIO(), "AC1009", flatland=True)

    assert session.version.name == "R12"
    assert session.context.flatland
    assert not session.diagnostics.strict


def test_open_session_rejects_unknown_version() -> None:
    with pytest.raises(ValueError, match="unsupported DXF version"):
        open_session(io.StringIO(), "R99")


def test_decode_next_returns_none_at_end_of_stream() -> None:
    session = open_session(io.StringIO(""), "R12")

    assert session.peek_kind() is None
    assert session.decode_next(LINE) is None


def test_decode_sequence_of_kinds() -> None:
    stream = tag_stream(*_line_tags(1.0), (0, "CIRCLE"), (40, "2.0"), (0, "POINT"), (10, "5.0"), (0, "EOF"))
    session = open_session(stream, "R12")

    decoded = []
    while (kind := session.peek_kind()) != "EOF":
        schema = {"LINE": LINE, "CIRCLE": CIRCLE, "POINT": POINT}[kind]
        decoded.append(session.decode_next(schema))

    assert [record.dxftype for record in decoded] == ["LINE", "CIRCLE", "POINT"]
    assert decoded[1]["radius"] == 2.0
    assert decoded[2]["location"] == (5.0, 0.0, 0.0)


def test_decode_next_rejects_other_kind_without_consuming() -> None:
    session = open_session(tag_stream((0, "CIRCLE"), (40, "2.0")), "R12")

    with pytest.raises(UnexpectedRecordKind) as excinfo:
        session.decode_next(LINE)

    assert excinfo.value.line_number == 1
    assert session.decode_next(CIRCLE)["radius"] == 2.0


def test_alias_boundary_decodes_with_line_schema() -> None:
    session = open_session(tag_stream((0, "3DLINE"), (10, "1.0"), (11, "2.0")), "R12")

    record = session.decode_next(LINE)

    assert record.dxftype == "LINE"
    assert record["end"] == (2.0, 0.0, 0.0)


def test_decode_chain_collects_consecutive_records() -> None:
    stream = tag_stream(*_line_tags(1.0), *_line_tags(2.0), *_line_tags(3.0), (0, "CIRCLE"), (40, "1.5"))
    session = open_session(stream, "R12")

    chain = session.decode_chain(LINE)

    assert isinstance(chain, RecordChain)
    assert [record["end"][0] for record in chain] == [1.0, 2.0, 3.0]
    assert session.peek_kind() == "CIRCLE"
    assert len(chain.free_all()) == 3


def test_skip_record_consumes_unknown_kinds() -> None:
    stream = tag_stream((0, "SECTION"), (2, "ENTITIES"), (0, "LINE"), (10, "1.0"), (11, "2.0"), (0, "ENDSEC"))
    session = open_session(stream, "R12")

    assert session.skip_record() == "SECTION"
    assert session.decode_next(LINE)["start"] == (1.0, 0.0, 0.0)
    assert session.skip_record() == "ENDSEC"
    assert session.skip_record() is None


def test_stray_tags_before_a_record_are_reported() -> None:
    session = open_session(tag_stream((8, "LOST"), (62, "1"), *_line_tags(1.0)), "R12")

    assert session.peek_kind() == "LINE"

    unknown = session.diagnostics.of_kind(UnknownTag)
    assert [(entry.code, entry.line_number) for entry in unknown] == [(8, 1), (62, 3)]


def test_encode_chain_writes_every_record_in_order() -> None:
    stream = io.StringIO()
    chain = RecordChain("LINE", [_line(1.0), _line(2.0)])

    with open_session(stream, "R12") as session:
        written = session.encode_chain(chain, LINE)

    records = list(iter_dxf_records(stream.getvalue()))
    assert written == 2 * 8
    assert [record["type"] for record in records] == ["LINE", "LINE"]
    assert records[1]["groups"][4] == (11, "2.0")


def test_written_stream_decodes_back() -> None:
    stream = io.StringIO()
    session = open_session(stream, "R2000")
    session.write_comment("generated")
    session.encode(_line(4.0), LINE)
    session.encode(CIRCLE.new_record(radius=2.5), CIRCLE)
    session.close()

    comments: list[tuple[str, int]] = []
    reader = open_session(io.StringIO(stream.getvalue()), "R2000", comment_sink=lambda text, line: comments.append((text, line)))

    assert reader.peek_kind() == "LINE"
    assert reader.decode_next(LINE)["end"] == (4.0, 0.0, 0.0)
    assert reader.decode_next(CIRCLE)["radius"] == 2.5
    assert reader.decode_next(CIRCLE) is None
    assert comments == [("generated", 1)]
    assert len(reader.diagnostics) == 0


def test_session_is_unusable_after_close() -> None:
    session = open_session(io.StringIO(), "R12")
    session.close()
    session.close()

    with pytest.raises(IoFailure, match="closed"):
        session.encode(_line(1.0), LINE)
    with pytest.raises(IoFailure):
        session.peek_kind()


def test_close_logs_summary(caplog: pytest.LogCaptureFixture) -> None:
    stream = io.StringIO()

    with caplog.at_level(logging.DEBUG, logger="eztags.session"):
        with open_session(stream, "R12") as session:
            session.encode(_line(1.0), LINE)

    assert "8 tags written" in caplog.text
    assert written_tags(stream.getvalue())[0] == (0, "LINE")


def test_encoding_option_applies_to_binary_streams() -> None:
    stream = io.BytesIO()

    with open_session(stream, "R12", encoding="utf-8") as session:
        session.encode(LINE.new_record(start=(0.0, 0.0, 0.0), end=(1.0, 0.0, 0.0), layer="K\xf6ln"), LINE)

    assert "K\xf6ln".encode("utf-8") in stream.getvalue()
    decoded = open_session(io.BytesIO(stream.getvalue()), "R12", encoding="utf-8").decode_next(LINE)
    assert decoded["layer"] == "K\xf6ln"
