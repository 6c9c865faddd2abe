"""
Playback scheduler: walks the envelope list at a fixed frame rate.

The scheduler does not own a thread. It arms one-shot callbacks on a
timer object with Tk's `after(ms, func)` / `after_cancel(id)` API, so a
Tk root can drive it directly and tests can drive it with a fake clock.
"""
import enum
import logging

from .config import DEFAULT_ENABLED, DEFAULT_FRAME_RATE, DEFAULT_LOOP

logger = logging.getLogger(__name__)


class State(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


def frame_interval_ms(frame_rate):
    """Milliseconds between frames for a given frame rate."""
    return max(1, int(1000 / frame_rate))


def _check_frame_rate(frame_rate):
    if isinstance(frame_rate, bool) or not isinstance(frame_rate, (int, float)):
        raise ValueError(f"frame_rate must be a number, got {frame_rate!r}")
    if frame_rate <= 0:
        raise ValueError(f"frame_rate must be positive, got {frame_rate}")


class Scheduler:
    """
    Owns the current frame index over a list of `total` envelopes.

    IDLE: nothing to play, or disabled. RUNNING: a timer is armed and each
    tick advances the index. COMPLETED: single-pass playback reached the
    last frame and stopped.

    Only one timer is ever live. Every change to the inputs cancels it
    before a new one is armed, and each armed callback carries the
    generation it was armed for, so a callback that fires after being
    cancelled does nothing.
    """

    def __init__(self, timer, frame_rate=DEFAULT_FRAME_RATE, loop=DEFAULT_LOOP,
                 enabled=DEFAULT_ENABLED, on_change=None):
        _check_frame_rate(frame_rate)
        self._timer = timer
        self._frame_rate = frame_rate
        self._loop = bool(loop)
        self._enabled = bool(enabled)
        self._on_change = on_change

        self._total = 0
        self._index = 0
        self._completed = False
        self._state = State.IDLE
        self._handle = None
        self._generation = 0

    # --- read side ---

    @property
    def total(self):
        return self._total

    @property
    def current_index(self):
        return self._index

    @property
    def safe_index(self):
        """current_index clamped to [0, total - 1]; 0 when there is nothing loaded."""
        if self._total == 0:
            return 0
        return max(0, min(self._index, self._total - 1))

    @property
    def completed(self):
        return self._completed

    @property
    def state(self):
        return self._state

    @property
    def frame_rate(self):
        return self._frame_rate

    @property
    def loop(self):
        return self._loop

    @property
    def enabled(self):
        return self._enabled

    @property
    def interval_ms(self):
        return frame_interval_ms(self._frame_rate)

    @property
    def has_live_timer(self):
        return self._handle is not None

    # --- inputs ---

    def load(self, total):
        """A new envelope list of `total` items replaced the old one."""
        if total < 0:
            raise ValueError(f"total must not be negative, got {total}")
        self._cancel()
        self._total = total
        self._index = 0
        self._completed = False
        self._refresh()

    def set_enabled(self, enabled):
        enabled = bool(enabled)
        if enabled == self._enabled:
            return
        self._enabled = enabled
        self._refresh()

    def set_frame_rate(self, frame_rate):
        _check_frame_rate(frame_rate)
        if frame_rate == self._frame_rate:
            return
        self._frame_rate = frame_rate
        self._refresh()

    def set_loop(self, loop):
        loop = bool(loop)
        if loop == self._loop:
            return
        self._loop = loop
        self._refresh()

    def start(self):
        self.set_enabled(True)

    def stop(self):
        self.set_enabled(False)

    def reset(self):
        """Go back to the first frame, restarting the interval if playing."""
        self._cancel()
        self._index = 0
        self._completed = False
        self._refresh()

    def close(self):
        """Tear down: cancel the timer for good and stop responding to it."""
        self._enabled = False
        self._cancel()
        self._state = State.IDLE

    # --- internals ---

    def _refresh(self):
        """Re-derive the timer from the current inputs."""
        if not self._enabled or self._total == 0:
            self._cancel()
            self._state = State.IDLE
            self._notify()
            return

        if self._completed:
            # Re-arming after a finished single pass starts over.
            self._index = 0
            self._completed = False

        self._cancel()
        self._arm()
        self._state = State.RUNNING
        self._notify()

    def _arm(self):
        generation = self._generation
        self._handle = self._timer.after(self.interval_ms, lambda: self._on_timer(generation))
        logger.debug("Armed frame timer every %d ms (generation %d)", self.interval_ms, generation)

    def _cancel(self):
        self._generation += 1
        if self._handle is not None:
            self._timer.after_cancel(self._handle)
            self._handle = None

    def _on_timer(self, generation):
        if generation != self._generation or self._state is not State.RUNNING:
            return
        self._handle = None
        self._tick()
        if self._state is State.RUNNING:
            self._arm()
        # Listeners may change inputs; the next timer must already be in place.
        self._notify()

    def _tick(self):
        total = self._total
        if not 0 <= self._index < total:
            logger.warning("Frame index %d outside 0..%d, restarting at 0", self._index, total - 1)
            self._index = 0

        next_index = self._index + 1
        if self._loop:
            self._index = next_index % total
        elif next_index < total - 1:
            self._index = next_index
        else:
            # Landing on the last frame ends a single pass.
            self._index = total - 1
            self._cancel()
            self._completed = True
            self._state = State.COMPLETED
            logger.info("Single pass finished after %d frames", total)

    def _notify(self):
        if self._on_change is not None:
            self._on_change(self)
