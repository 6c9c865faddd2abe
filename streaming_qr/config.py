"""Default configuration values."""

# --- Configuration ---
# Characters of source text per envelope. Base64 grows this by ~4/3,
# plus ~60 characters of JSON framing, before it reaches the symbol.
DEFAULT_CHUNK_SIZE = 100
MIN_CHUNK_SIZE = 10
MAX_CHUNK_SIZE = 500

# Frames shown per second.
DEFAULT_FRAME_RATE = 10
MIN_FRAME_RATE = 1
MAX_FRAME_RATE = 30

DEFAULT_LOOP = True
DEFAULT_ENABLED = True

# Charset used to turn each text slice into bytes before base64.
DEFAULT_CHARSET = "utf-8"

# Side of the square viewport the symbol is drawn into, in pixels.
SYMBOL_SIZE = 256
QR_BORDER = 4  # quiet zone in modules

# Window geometry for the presenter (a 256px symbol, the text box and controls).
WINDOW_GEOMETRY = "460x760+0+0"

EXPORT_PREFIX = "stream"
# ---------------------


def _clamp(value, low, high, default):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    if not value:
        return default
    return max(low, min(high, value))


def clamp_chunk_size(value):
    """Bound a user-supplied chunk size to 10-500, falling back to the default."""
    return _clamp(value, MIN_CHUNK_SIZE, MAX_CHUNK_SIZE, DEFAULT_CHUNK_SIZE)


def clamp_frame_rate(value):
    """Bound a user-supplied frame rate to 1-30 FPS, falling back to the default."""
    return _clamp(value, MIN_FRAME_RATE, MAX_FRAME_RATE, DEFAULT_FRAME_RATE)
