"""
Turns one serialized envelope into a displayable symbol image.

QR symbols are drawn by `qrcode`. Aztec and Data Matrix come back from
their encoders as bit matrices and are painted here with whole-pixel
modules so the edges stay sharp for the camera.
"""
import enum
import logging

import qrcode
from PIL import Image, ImageDraw
from aztec_code_generator import AztecCode
from ppf.datamatrix import DataMatrix

from .config import QR_BORDER, SYMBOL_SIZE

logger = logging.getLogger(__name__)

WHITE = 255
BLACK = 0


class CodeFamily(str, enum.Enum):
    QR = "qr"
    AZTEC = "aztec"
    DATA_MATRIX = "datamatrix"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower().replace("-", "").replace("_", ""))
        except ValueError:
            choices = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown code family {value!r} (choose from {choices})") from None


def render_qr(payload, size=SYMBOL_SIZE):
    """
    QR symbol (medium error correction) centered on a white size x size canvas.

    A symbol that does not fit even at one pixel per module is returned at
    that scale, larger than the viewport, rather than stretched.
    """
    qr = qrcode.QRCode(
        version=None,  # Auto-detect version
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=1,
        border=QR_BORDER,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    # Largest whole-pixel module that still fits the viewport.
    modules = qr.modules_count + 2 * QR_BORDER
    qr.box_size = max(1, size // modules)

    img = qr.make_image(fill_color="black", back_color="white").convert("L")
    if img.width > size:
        # Even 1px modules overflow; a fractional shrink would drop modules.
        logger.warning("QR symbol is %dpx, larger than the %dpx viewport", img.width, size)
        return img

    canvas = Image.new("L", (size, size), WHITE)
    offset = (size - img.width) // 2
    canvas.paste(img, (offset, offset))
    return canvas


def _is_dark(cell):
    # Encoders disagree on cell values: bools, 0/1 ints or "#"/" " strings.
    return cell not in (None, False, 0, " ", "")


def _aztec_matrix(payload):
    code = AztecCode(payload)
    return [[_is_dark(cell) for cell in row] for row in code.matrix]


def _datamatrix_matrix(payload):
    code = DataMatrix(payload)
    return [[_is_dark(cell) for cell in row] for row in code.matrix]


_MATRIX_ENCODERS = {
    CodeFamily.AZTEC: _aztec_matrix,
    CodeFamily.DATA_MATRIX: _datamatrix_matrix,
}


def encode_matrix(payload, family):
    """Bit matrix (rows of booleans, True = dark) for a matrix-style family."""
    family = CodeFamily.parse(family)
    try:
        encoder = _MATRIX_ENCODERS[family]
    except KeyError:
        raise ValueError(f"{family.value} is not drawn from a bit matrix") from None
    return encoder(payload)


def rasterize(matrix, target_size=SYMBOL_SIZE):
    """
    Paint a bit matrix at the largest integer scale that fits target_size.

    The result is width*scale x height*scale pixels, so it can fall short
    of target_size; it is never stretched by a fractional factor.
    """
    height = len(matrix)
    width = max((len(row) for row in matrix), default=0)
    if not width or not height:
        raise ValueError("Cannot rasterize an empty bit matrix")

    scale = max(1, target_size // max(width, height))
    img = Image.new("L", (width * scale, height * scale), WHITE)
    draw = ImageDraw.Draw(img)
    for y, row in enumerate(matrix):
        for x, dark in enumerate(row):
            if dark:
                draw.rectangle(
                    (x * scale, y * scale, (x + 1) * scale - 1, (y + 1) * scale - 1),
                    fill=BLACK,
                )
    return img


def render_symbol(payload, family=CodeFamily.QR, size=SYMBOL_SIZE):
    """
    Render one frame. Returns a Pillow image, or None if the encoder
    rejected the payload (for example, too large for the symbol).
    """
    family = CodeFamily.parse(family)
    try:
        if family is CodeFamily.QR:
            return render_qr(payload, size)
        return rasterize(encode_matrix(payload, family), size)
    except Exception as e:
        logger.error("Could not draw %s symbol for %d-character payload: %s",
                     family.value, len(payload), e)
        return None
