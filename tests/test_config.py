import pytest

from streaming_qr.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_FRAME_RATE,
    clamp_chunk_size,
    clamp_frame_rate,
)


@pytest.mark.parametrize("value,expected", [
    (100, 100),
    ("250", 250),
    (5, 10),
    (9000, 500),
    ("abc", DEFAULT_CHUNK_SIZE),
    (0, DEFAULT_CHUNK_SIZE),
    (None, DEFAULT_CHUNK_SIZE),
])
def test_clamp_chunk_size(value, expected):
    assert clamp_chunk_size(value) == expected


@pytest.mark.parametrize("value,expected", [
    (10, 10),
    ("1", 1),
    (-4, 1),
    (60, 30),
    ("", DEFAULT_FRAME_RATE),
])
def test_clamp_frame_rate(value, expected):
    assert clamp_frame_rate(value) == expected
