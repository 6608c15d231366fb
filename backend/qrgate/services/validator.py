"""
QRGate: Request Validator
==========================

What:  Checks a QRRequest against domain constraints before any encoding.
Why:   Cheap rejection of malformed requests; encoders may assume valid input.
How:   Ordered checks, first failure wins:
           1. content is non-empty           → EMPTY_CONTENT
           2. ECL is one of L, M, Q, H       → INVALID_ECL
           3. size is an int in [50, 1000]   → SIZE_OUT_OF_RANGE
           4. colours parse as colours       → INVALID_COLOR

Validation is total and pure: no network, no clock, no shared counters.
Colour parsing uses Pillow's ImageColor, which accepts hex (#rgb, #rrggbb,
#rrggbbaa), rgb()/hsl() functions and CSS colour names.
"""

from PIL import ImageColor

from qrgate.exceptions import InvalidInputError
from qrgate.schemas.qr import QRRequest

ERROR_CORRECTION_LEVELS = ("L", "M", "Q", "H")
MIN_SIZE = 50
MAX_SIZE = 1000


def is_color(value: str) -> bool:
    """True if Pillow can parse `value` as a colour."""
    try:
        ImageColor.getrgb(value)
    except ValueError:
        return False
    return True


class RequestValidator:
    """Stateless; one shared instance serves every request."""

    def validate(self, qr: QRRequest) -> QRRequest:
        """
        Returns the request unchanged when every check passes.

        Raises:
            InvalidInputError with the reason of the first failing check
        """
        self._validate_content(qr)
        self._validate_error_correction_level(qr)
        self._validate_size(qr)
        self._validate_colors(qr)
        return qr

    def _validate_content(self, qr: QRRequest) -> None:
        if not qr.content:
            raise InvalidInputError(
                reason=InvalidInputError.EMPTY_CONTENT,
                message='Missing required "data" parameter',
                field="data",
            )

    def _validate_error_correction_level(self, qr: QRRequest) -> None:
        if qr.error_correction_level not in ERROR_CORRECTION_LEVELS:
            raise InvalidInputError(
                reason=InvalidInputError.INVALID_ECL,
                message="Invalid error correction level. Use L, M, Q, or H.",
                field="error_correction_level",
                context={"value": qr.error_correction_level},
            )

    def _validate_size(self, qr: QRRequest) -> None:
        if qr.size is None or not MIN_SIZE <= qr.size <= MAX_SIZE:
            raise InvalidInputError(
                reason=InvalidInputError.SIZE_OUT_OF_RANGE,
                message=f"Invalid size. Must be between {MIN_SIZE} and {MAX_SIZE} pixels.",
                field="size",
                context={"value": qr.size},
            )

    def _validate_colors(self, qr: QRRequest) -> None:
        for field, value in (("dark_color", qr.dark_color), ("light_color", qr.light_color)):
            if not is_color(value):
                raise InvalidInputError(
                    reason=InvalidInputError.INVALID_COLOR,
                    message="Invalid color. Use a hex value such as #000000 or a CSS color name.",
                    field=field,
                    context={"value": value},
                )
