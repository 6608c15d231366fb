"""
QRGate: QR Encoders
====================

What:  Turn a validated QRRequest into image bytes (PNG or SVG).
Why:   The pipeline only needs "request in, bytes + media type out"; which
       format a deployment serves is a construction-time choice.
How:   The `qrcode` library computes the module matrix (version fitting,
       Reed-Solomon error correction, masking). We only paint it:
       - PngEncoder lets qrcode draw a PilImage at one pixel per module and
         scales it to the requested width with nearest-neighbour sampling
       - SvgEncoder emits a background rect and one path of module runs

Contract:
    - encode() is synchronous and CPU-bound; the pipeline runs it in the
      threadpool so it does not block the event loop
    - Input is trusted (already validated); encoders never re-validate
    - Any exception propagates; the pipeline maps it to EncodingFailure
      (e.g. qrcode.exceptions.DataOverflowError for oversized content)
"""

import io
from abc import ABC, abstractmethod
from typing import List, Tuple

import qrcode
from PIL import Image, ImageColor
from qrcode.constants import (
    ERROR_CORRECT_H,
    ERROR_CORRECT_L,
    ERROR_CORRECT_M,
    ERROR_CORRECT_Q,
)
from qrcode.image.pil import PilImage

from qrgate.schemas.qr import QRRequest

ERROR_CORRECTION = {
    "L": ERROR_CORRECT_L,  # ~7% recovery
    "M": ERROR_CORRECT_M,  # ~15% recovery
    "Q": ERROR_CORRECT_Q,  # ~25% recovery
    "H": ERROR_CORRECT_H,  # ~30% recovery
}

RGBA = Tuple[int, int, int, int]


def build_code(qr_request: QRRequest, border: int) -> qrcode.QRCode:
    """
    Fitted QR code for the request, one pixel per module.

    version=None lets qrcode pick the smallest version that fits the data
    at the requested error correction level.
    """
    code = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECTION[qr_request.error_correction_level],
        box_size=1,
        border=border,
    )
    code.add_data(qr_request.content)
    code.make(fit=True)
    return code


def build_matrix(qr_request: QRRequest, border: int) -> List[List[bool]]:
    """Module matrix for the request, quiet zone included."""
    return build_code(qr_request, border).get_matrix()


def _rgba(color: str) -> RGBA:
    return ImageColor.getcolor(color, "RGBA")


class Encoder(ABC):
    """Strategy interface for output formats."""

    media_type: str = "application/octet-stream"

    def __init__(self, border: int = 1):
        self.border = border

    @abstractmethod
    def encode(self, qr_request: QRRequest) -> bytes:
        """Render the request as image bytes of `media_type`."""
        ...


class PngEncoder(Encoder):
    """Raster output, exactly `size` x `size` pixels."""

    media_type = "image/png"

    def encode(self, qr_request: QRRequest) -> bytes:
        # Opaque output: the alpha channel of a colour is ignored here
        image = build_code(qr_request, self.border).make_image(
            image_factory=PilImage,
            fill_color=_rgba(qr_request.dark_color)[:3],
            back_color=_rgba(qr_request.light_color)[:3],
        ).get_image()

        # NEAREST keeps module edges sharp; any smoothing would blur the code
        image = image.resize(
            (qr_request.size, qr_request.size), Image.Resampling.NEAREST
        )

        buf = io.BytesIO()
        image.save(buf, format="PNG")
        return buf.getvalue()


class SvgEncoder(Encoder):
    """Vector output, `size` wide, one user unit per module."""

    media_type = "image/svg+xml"

    @staticmethod
    def _paint(color: str) -> str:
        """Normalised fill attributes; never echoes caller text into markup."""
        r, g, b, a = _rgba(color)
        attrs = f'fill="#{r:02x}{g:02x}{b:02x}"'
        if a < 255:
            attrs += f' fill-opacity="{a / 255:.3f}"'
        return attrs

    def encode(self, qr_request: QRRequest) -> bytes:
        matrix = build_matrix(qr_request, self.border)
        modules = len(matrix)

        # One subpath per horizontal run of dark modules
        segments = []
        for y, row in enumerate(matrix):
            x = 0
            while x < modules:
                if not row[x]:
                    x += 1
                    continue
                start = x
                while x < modules and row[x]:
                    x += 1
                run = x - start
                segments.append(f"M{start} {y}h{run}v1h-{run}z")

        path = "".join(segments)
        size = qr_request.size
        svg = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<svg xmlns="http://www.w3.org/2000/svg" version="1.1" '
            f'width="{size}" height="{size}" viewBox="0 0 {modules} {modules}" '
            f'shape-rendering="crispEdges">'
            f'<rect x="0" y="0" width="{modules}" height="{modules}" '
            f'{self._paint(qr_request.light_color)}/>'
            f'<path {self._paint(qr_request.dark_color)} d="{path}"/>'
            "</svg>"
        )
        return svg.encode("utf-8")
