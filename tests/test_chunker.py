import base64
import json
import re

import pytest

from streaming_qr.chunker import (
    ChunkEncodingError,
    Envelope,
    PayloadError,
    chunk_text,
    describe_text,
    make_stream_id,
    parse_payload,
)


def test_example_split():
    result = chunk_text("ABCDEFGHIJ", 4)

    assert [(e.seq, e.total, e.data) for e in result.envelopes] == [
        (0, 3, "QUJDRA=="),
        (1, 3, "RUZHSA=="),
        (2, 3, "SUo="),
    ]
    assert result.ok
    assert result.chunk_size == 4


@pytest.mark.parametrize("text,chunk_size", [
    ("ABCDEFGHIJ", 4),
    ("exactly eight", 13),
    ("x", 1),
    ("Grüße aus Köln, 日本語のテキスト 🎉🎉", 3),
    ("line one\nline two\n\ttabbed  ", 7),
])
def test_partition_and_round_trip(text, chunk_size):
    result = chunk_text(text, chunk_size)

    expected_total = -(-len(text) // chunk_size)
    assert result.total == expected_total
    assert [e.seq for e in result.envelopes] == list(range(expected_total))
    assert {e.total for e in result.envelopes} == {expected_total}
    assert {e.stream_id for e in result.envelopes} == {result.stream_id}
    assert result.reassemble() == text


def test_only_last_chunk_is_short():
    result = chunk_text("a" * 23, 5)

    lengths = [len(e.decode()) for e in result.envelopes]
    assert lengths == [5, 5, 5, 5, 3]


@pytest.mark.parametrize("text", ["", "   ", "\n\t \r\n"])
def test_blank_text_means_no_stream(text):
    result = chunk_text(text, 10)

    assert result.stream_id == ""
    assert result.envelopes == ()
    assert result.total == 0
    assert result.ok


@pytest.mark.parametrize("chunk_size", [0, -5, 2.5, "10", True])
def test_invalid_chunk_size(chunk_size):
    with pytest.raises(ValueError):
        chunk_text("hello", chunk_size)


def test_fresh_stream_id_per_run():
    first = chunk_text("same input", 3)
    second = chunk_text("same input", 3)

    assert first.stream_id != second.stream_id
    strip = lambda r: [(e.seq, e.total, e.data) for e in r.envelopes]
    assert strip(first) == strip(second)


def test_stream_id_format():
    assert re.fullmatch(r"stream_\d+_[0-9a-z]{9}", make_stream_id())


def test_unencodable_slice_is_reported(caplog):
    text = "ab\ud800cdef"
    with caplog.at_level("WARNING", logger="streaming_qr.chunker"):
        result = chunk_text(text, 2)

    assert not result.ok
    assert result.total == 4
    [failure] = result.failures
    assert (failure.seq, failure.start, failure.end) == (1, 2, 4)
    assert result.envelopes[1].data == ""
    assert result.envelopes[0].decode() == "ab"
    assert result.envelopes[2].decode() == "de"
    assert result.envelopes[3].decode() == "f"
    assert "left empty" in caplog.text


def test_unencodable_slice_strict():
    with pytest.raises(ChunkEncodingError) as excinfo:
        chunk_text("ab\ud800cdef", 2, strict=True)

    assert excinfo.value.failure.seq == 1
    assert isinstance(excinfo.value, ValueError)


def test_latin1_charset():
    ok = chunk_text("café", 10, charset="latin-1")
    assert ok.ok
    assert base64.b64decode(ok.envelopes[0].data) == "café".encode("latin-1")

    bad = chunk_text("price: 5€", 4, charset="latin-1")
    assert [f.seq for f in bad.failures] == [2]


def test_payload_is_compact_json():
    envelope = Envelope(stream_id="stream_1_abc", seq=0, total=1, data="QQ==")

    assert envelope.to_payload() == '{"id":"stream_1_abc","seq":0,"total":1,"data":"QQ=="}'


def test_parse_payload_returns_envelope():
    result = chunk_text("hello world", 4)
    payload = result.payloads()[1]

    assert parse_payload(payload) == result.envelopes[1]
    assert json.loads(payload)["id"] == result.stream_id


@pytest.mark.parametrize("payload", [
    "not json",
    None,
    "[1, 2, 3]",
    '{"id": "s", "seq": 0, "total": 1}',
    '{"id": "s", "seq": "0", "total": 1, "data": ""}',
    '{"id": "s", "seq": true, "total": 1, "data": ""}',
    '{"id": "s", "seq": 3, "total": 3, "data": ""}',
    '{"id": "s", "seq": -1, "total": 3, "data": ""}',
    '{"id": 7, "seq": 0, "total": 1, "data": ""}',
])
def test_parse_payload_rejects(payload):
    with pytest.raises(PayloadError):
        parse_payload(payload)


def test_describe_text():
    info = describe_text("ABCDEFGHIJ", 4)

    assert info.length == 10
    assert info.expected_chunks == 3
    assert describe_text("", 4).expected_chunks == 0
