"""
StreamSession ties the chunker, scheduler and renderer to one set of inputs.

Changing the text or chunk size rechunks and restarts from frame 0 with a
new stream id. Changing frame rate, loop or enabled only re-arms the
timer. Changing the code family only affects how the next frame is drawn.
"""
import enum
import logging
from dataclasses import dataclass

from .chunker import ChunkResult, Envelope, PayloadError, chunk_text, parse_payload
from .config import (
    DEFAULT_CHARSET,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_ENABLED,
    DEFAULT_FRAME_RATE,
    DEFAULT_LOOP,
    SYMBOL_SIZE,
)
from .renderer import CodeFamily, render_symbol
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class Status(enum.Enum):
    NO_STREAM = "Enter some text to start streaming"
    MISSING = "Chunk data not found"
    PARSE_ERROR = "Cannot parse chunk data"
    STREAMING = "Streaming"


@dataclass(frozen=True)
class Frame:
    """Snapshot of the frame on screen: the exact payload and its parsed envelope."""
    payload: str
    envelope: Envelope

    @property
    def caption(self):
        return f"Chunk {self.envelope.seq + 1}/{self.envelope.total}"


class StreamSession:

    def __init__(self, timer, text="", chunk_size=DEFAULT_CHUNK_SIZE,
                 frame_rate=DEFAULT_FRAME_RATE, loop=DEFAULT_LOOP, enabled=DEFAULT_ENABLED,
                 family=CodeFamily.QR, charset=DEFAULT_CHARSET, strict=False, on_frame=None):
        self._text = ""
        self._chunk_size = chunk_size
        self._charset = charset
        self._strict = strict
        self.family = CodeFamily.parse(family)
        self.on_frame = on_frame

        self._result = ChunkResult(stream_id="", chunk_size=chunk_size, charset=charset)
        self._payloads = []
        self.scheduler = Scheduler(
            timer,
            frame_rate=frame_rate,
            loop=loop,
            enabled=enabled,
            on_change=self._scheduler_changed,
        )
        self._rechunk(text, chunk_size)

    # --- inputs ---

    @property
    def text(self):
        return self._text

    @property
    def chunk_size(self):
        return self._chunk_size

    @property
    def result(self):
        return self._result

    @property
    def stream_id(self):
        return self._result.stream_id

    def set_text(self, text):
        if text == self._text:
            return
        self._rechunk(text, self._chunk_size)

    def set_chunk_size(self, chunk_size):
        if chunk_size == self._chunk_size:
            return
        self._rechunk(self._text, chunk_size)

    def set_frame_rate(self, frame_rate):
        self.scheduler.set_frame_rate(frame_rate)

    def set_loop(self, loop):
        self.scheduler.set_loop(loop)

    def set_enabled(self, enabled):
        self.scheduler.set_enabled(enabled)

    def toggle(self):
        self.scheduler.set_enabled(not self.scheduler.enabled)
        return self.scheduler.enabled

    def set_family(self, family):
        self.family = CodeFamily.parse(family)
        self._emit()

    def _rechunk(self, text, chunk_size):
        result = chunk_text(text, chunk_size, charset=self._charset, strict=self._strict)
        # Swap the whole list at once; nothing from the previous run survives.
        self._text = text
        self._chunk_size = chunk_size
        self._result = result
        self._payloads = result.payloads()
        logger.info("New stream %s: %d frames of %d characters",
                    result.stream_id or "(none)", result.total, self._chunk_size)
        self.scheduler.load(result.total)

    # --- output ---

    def current_payload(self):
        if not self._payloads:
            return None
        return self._payloads[self.scheduler.safe_index]

    def current_frame(self):
        """
        The frame to show now, or None when there is nothing to stream.

        Raises PayloadError if the stored payload does not parse.
        """
        payload = self.current_payload()
        if payload is None:
            return None
        return Frame(payload=payload, envelope=parse_payload(payload))

    def status(self):
        if not self._payloads:
            return Status.NO_STREAM, Status.NO_STREAM.value
        try:
            frame = self.current_frame()
        except PayloadError as e:
            logger.error("Failed to parse chunk data: %s", e)
            return Status.PARSE_ERROR, Status.PARSE_ERROR.value
        if frame is None:
            return Status.MISSING, Status.MISSING.value
        return Status.STREAMING, f"{frame.caption} ({self.scheduler.frame_rate} FPS)"

    def render(self, size=SYMBOL_SIZE):
        """Symbol image for the current frame, or None if there is nothing to draw."""
        try:
            frame = self.current_frame()
        except PayloadError as e:
            logger.error("Skipping frame: %s", e)
            return None
        if frame is None:
            return None
        return render_symbol(frame.payload, self.family, size)

    def close(self):
        self.scheduler.close()

    def _scheduler_changed(self, scheduler):
        self._emit()

    def _emit(self):
        if self.on_frame is not None:
            self.on_frame(self)
