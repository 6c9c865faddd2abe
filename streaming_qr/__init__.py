"""
Streaming QR: send text through a camera as an animated series of
QR / Aztec / Data Matrix symbols.
"""

from .chunker import (
    ChunkEncodingError,
    ChunkResult,
    EncodingFailure,
    Envelope,
    PayloadError,
    StreamingQRError,
    chunk_text,
    describe_text,
    make_stream_id,
    parse_payload,
)
from .renderer import CodeFamily, render_symbol
from .scheduler import Scheduler, State
from .session import StreamSession

__version__ = "0.1.0"

__all__ = [
    "ChunkEncodingError",
    "ChunkResult",
    "CodeFamily",
    "EncodingFailure",
    "Envelope",
    "PayloadError",
    "Scheduler",
    "State",
    "StreamSession",
    "StreamingQRError",
    "chunk_text",
    "describe_text",
    "make_stream_id",
    "parse_payload",
    "render_symbol",
]
