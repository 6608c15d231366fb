"""
QRGate: Encoder Tests
======================

What:  Tests for PNG and SVG rendering of validated requests.
How:   Real qrcode + Pillow; PNG output is decoded with Pillow to check
       dimensions and colours.

What we test:
    ✅ PNG has the requested width and the requested colours
    ✅ SVG declares its media type, size and normalised colours
    ✅ Higher error correction produces a larger matrix
    ✅ Oversized content raises (mapped to 500 by the pipeline)
"""

import io

import pytest
from PIL import Image

from qrgate.schemas.qr import QRRequest
from qrgate.services.encoders import PngEncoder, SvgEncoder, build_matrix


class TestBuildMatrix:

    def test_matrix_is_square_with_border(self):
        matrix = build_matrix(QRRequest(content="hello"), border=1)
        # Version 1 is 21 modules wide, plus one module of quiet zone per side
        assert len(matrix) == 23
        assert all(len(row) == 23 for row in matrix)
        assert not any(matrix[0])

    def test_error_correction_level_affects_version(self):
        content = "https://example.com/" + "a" * 40
        low = build_matrix(QRRequest(content=content, error_correction_level="L"), border=0)
        high = build_matrix(QRRequest(content=content, error_correction_level="H"), border=0)
        assert len(high) > len(low)


class TestPngEncoder:

    def setup_method(self):
        self.encoder = PngEncoder(border=1)

    def test_media_type(self):
        assert self.encoder.media_type == "image/png"

    def test_output_is_png_of_requested_size(self):
        data = self.encoder.encode(QRRequest(content="https://example.com", size=300))
        assert data.startswith(b"\x89PNG\r\n\x1a\n")

        image = Image.open(io.BytesIO(data))
        assert image.size == (300, 300)

    def test_colors_applied(self):
        data = self.encoder.encode(
            QRRequest(content="hello", size=230, dark_color="#ff0000", light_color="#00ff00")
        )
        image = Image.open(io.BytesIO(data)).convert("RGB")
        colors = {color for _, color in image.getcolors()}
        assert colors == {(255, 0, 0), (0, 255, 0)}
        # Top-left corner is quiet zone
        assert image.getpixel((0, 0)) == (0, 255, 0)

    def test_default_colors_black_on_white(self):
        data = self.encoder.encode(QRRequest(content="hello", size=230))
        image = Image.open(io.BytesIO(data)).convert("RGB")
        assert {color for _, color in image.getcolors()} == {(0, 0, 0), (255, 255, 255)}

    def test_identical_requests_encode_identically(self):
        qr = QRRequest(content="same", size=100)
        assert self.encoder.encode(qr) == self.encoder.encode(qr)

    def test_oversized_content_raises(self):
        with pytest.raises(Exception):
            self.encoder.encode(QRRequest(content="x" * 5000, error_correction_level="H"))


class TestSvgEncoder:

    def setup_method(self):
        self.encoder = SvgEncoder(border=1)

    def test_media_type(self):
        assert self.encoder.media_type == "image/svg+xml"

    def test_output_is_svg_of_requested_size(self):
        svg = self.encoder.encode(QRRequest(content="https://example.com", size=250)).decode()
        assert "<svg" in svg
        assert 'width="250"' in svg
        assert 'height="250"' in svg
        assert 'viewBox="0 0 ' in svg

    def test_colors_normalised(self):
        svg = self.encoder.encode(
            QRRequest(content="hi", dark_color="navy", light_color="#FFF")
        ).decode()
        assert 'fill="#000080"' in svg
        assert 'fill="#ffffff"' in svg

    def test_translucent_color_gets_opacity(self):
        svg = self.encoder.encode(QRRequest(content="hi", light_color="#ffffff00")).decode()
        assert 'fill-opacity="0.000"' in svg

    def test_path_contains_one_run_per_dark_segment(self):
        qr = QRRequest(content="hi")
        matrix = build_matrix(qr, border=1)
        runs = 0
        for row in matrix:
            previous = False
            for cell in row:
                if cell and not previous:
                    runs += 1
                previous = cell

        svg = self.encoder.encode(qr).decode()
        assert svg.count("z") == runs
