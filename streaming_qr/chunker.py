"""
Splits source text into envelopes and serializes them for display.

Every envelope carries the stream id, its position and the total count,
so a reader can put frames back together in any capture order:

    {"id": "stream_1700000000000_k3j9x0a1b", "seq": 0, "total": 3, "data": "QUJDRA=="}
"""
import base64
import json
import logging
import math
import secrets
import string
import time
from dataclasses import dataclass

from .config import DEFAULT_CHARSET

logger = logging.getLogger(__name__)

STREAM_ID_PREFIX = "stream_"
_ID_ALPHABET = string.digits + string.ascii_lowercase  # base36
_ID_RANDOM_LENGTH = 9


class StreamingQRError(Exception):
    """Base class for errors raised by this package."""


class ChunkEncodingError(StreamingQRError, ValueError):
    """A slice of text could not be encoded in the requested charset."""

    def __init__(self, failure):
        super().__init__(
            f"Chunk {failure.seq} (characters {failure.start}-{failure.end}) "
            f"could not be encoded: {failure.reason}"
        )
        self.failure = failure


class PayloadError(StreamingQRError, ValueError):
    """A serialized envelope could not be parsed."""


@dataclass(frozen=True)
class Envelope:
    stream_id: str
    seq: int
    total: int
    data: str

    def to_payload(self):
        """The exact string handed to the symbol encoder."""
        return json.dumps(
            {"id": self.stream_id, "seq": self.seq, "total": self.total, "data": self.data},
            separators=(",", ":"),
        )

    def decode(self, charset=DEFAULT_CHARSET):
        return base64.b64decode(self.data).decode(charset)


@dataclass(frozen=True)
class EncodingFailure:
    seq: int
    start: int
    end: int
    reason: str


@dataclass(frozen=True)
class ChunkResult:
    """
    Output of one chunking run.

    An empty stream_id together with no envelopes means there is nothing
    to stream. `failures` lists the envelopes whose data had to be left
    empty because their slice could not be encoded.
    """
    stream_id: str
    envelopes: tuple = ()
    failures: tuple = ()
    chunk_size: int = 0
    charset: str = DEFAULT_CHARSET

    @property
    def total(self):
        return len(self.envelopes)

    @property
    def ok(self):
        return not self.failures

    def payloads(self):
        return [envelope.to_payload() for envelope in self.envelopes]

    def reassemble(self):
        """Join the decoded slices back together, in seq order."""
        ordered = sorted(self.envelopes, key=lambda e: e.seq)
        return "".join(envelope.decode(self.charset) for envelope in ordered)


@dataclass(frozen=True)
class TextInfo:
    length: int
    expected_chunks: int


def make_stream_id():
    """Return a fresh stream id: stream_<epoch ms>_<9 random base36 chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_RANDOM_LENGTH))
    return f"{STREAM_ID_PREFIX}{int(time.time() * 1000)}_{suffix}"


def _check_chunk_size(chunk_size):
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise ValueError(f"chunk_size must be an integer, got {chunk_size!r}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")


def describe_text(text, chunk_size):
    """Length of the text and how many frames it will take."""
    _check_chunk_size(chunk_size)
    return TextInfo(length=len(text), expected_chunks=math.ceil(len(text) / chunk_size))


def _encode_slice(raw, charset):
    return base64.b64encode(raw.encode(charset)).decode("ascii")


def chunk_text(text, chunk_size, charset=DEFAULT_CHARSET, strict=False):
    """
    Cut `text` into envelopes of `chunk_size` characters.

    Slicing is fixed-width from offset 0, so only the last slice can be
    shorter. Each call gets a new stream id, even for identical input.

    A slice that cannot be encoded in `charset` gets empty data and is
    reported in `ChunkResult.failures` (and logged). With strict=True the
    first such slice raises ChunkEncodingError instead.
    """
    _check_chunk_size(chunk_size)

    if not text or not text.strip():
        return ChunkResult(stream_id="", chunk_size=chunk_size, charset=charset)

    stream_id = make_stream_id()
    total = math.ceil(len(text) / chunk_size)
    envelopes = []
    failures = []

    for start in range(0, len(text), chunk_size):
        end = min(start + chunk_size, len(text))
        seq = start // chunk_size
        try:
            data = _encode_slice(text[start:end], charset)
        except UnicodeEncodeError as e:
            failure = EncodingFailure(seq=seq, start=start, end=end, reason=str(e))
            if strict:
                raise ChunkEncodingError(failure) from e
            logger.warning("Chunk %d/%d of %s left empty: %s", seq + 1, total, stream_id, e)
            failures.append(failure)
            data = ""
        envelopes.append(Envelope(stream_id=stream_id, seq=seq, total=total, data=data))

    logger.debug("Chunked %d characters into %d envelopes (%s)", len(text), total, stream_id)
    return ChunkResult(
        stream_id=stream_id,
        envelopes=tuple(envelopes),
        failures=tuple(failures),
        chunk_size=chunk_size,
        charset=charset,
    )


def parse_payload(payload):
    """
    Parse a serialized envelope back into an Envelope.

    Raises PayloadError if the string is not a well-formed envelope.
    """
    try:
        obj = json.loads(payload)
    except (TypeError, json.JSONDecodeError) as e:
        raise PayloadError(f"Invalid envelope JSON: {e}") from e

    if not isinstance(obj, dict):
        raise PayloadError("Envelope must be a JSON object")

    try:
        stream_id, seq, total, data = obj["id"], obj["seq"], obj["total"], obj["data"]
    except KeyError as e:
        raise PayloadError(f"Envelope is missing field {e}") from e

    if not isinstance(stream_id, str) or not isinstance(data, str):
        raise PayloadError("Envelope id and data must be strings")
    for name, value in (("seq", seq), ("total", total)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise PayloadError(f"Envelope {name} must be an integer")
    if not 0 <= seq < total:
        raise PayloadError(f"Envelope seq {seq} out of range for total {total}")

    return Envelope(stream_id=stream_id, seq=seq, total=total, data=data)
