"""
QRGate: Parameter Extractor Unit Tests
=======================================

What:  Tests for turning a JSON body or a query string into a QRRequest.

What we test:
    ✅ Defaults applied by extractors (ECL M, size 300, black on white)
    ✅ Missing or falsy content → MISSING_FIELD
    ✅ Truthy scalars stringified
    ✅ Body width parsed strictly, query size by its integer prefix
    ❌ Value judgement (that is the Validator's job)
"""

import pytest

from qrgate.exceptions import InvalidInputError
from qrgate.schemas.qr import QRRequest
from qrgate.services.extractors import BodyParameterExtractor, QueryParameterExtractor


class TestBodyParameterExtractor:

    def setup_method(self):
        self.extractor = BodyParameterExtractor()

    def test_defaults_applied(self):
        qr = self.extractor.extract({"data": "https://example.com", "token": "t"})
        assert qr == QRRequest(
            content="https://example.com",
            error_correction_level="M",
            size=300,
            dark_color="#000000",
            light_color="#ffffff",
            credential="t",
        )

    def test_all_fields_mapped(self):
        qr = self.extractor.extract({
            "data": "hello",
            "errorCorrectionLevel": "H",
            "darkColor": "#112233",
            "lightColor": "#ffeedd",
            "width": 512,
        })
        assert qr.error_correction_level == "H"
        assert qr.dark_color == "#112233"
        assert qr.light_color == "#ffeedd"
        assert qr.size == 512
        assert qr.credential is None

    @pytest.mark.parametrize("payload", [{}, {"data": None}, {"data": {"nested": 1}}])
    def test_missing_data(self, payload):
        with pytest.raises(InvalidInputError) as exc_info:
            self.extractor.extract(payload)
        assert exc_info.value.reason == InvalidInputError.MISSING_FIELD

    def test_empty_data_passed_to_validator(self):
        """Extraction only checks presence; emptiness is a validation failure."""
        assert self.extractor.extract({"data": ""}).content == ""

    def test_numeric_data_stringified(self):
        assert self.extractor.extract({"data": 12345}).content == "12345"

    def test_true_data_stringified(self):
        assert self.extractor.extract({"data": True}).content == "true"

    @pytest.mark.parametrize("data", [False, 0, 0.0, float("nan")])
    def test_falsy_data_is_missing(self, data):
        """false and 0 carry no content; they are rejected like an absent field."""
        with pytest.raises(InvalidInputError) as exc_info:
            self.extractor.extract({"data": data})
        assert exc_info.value.reason == InvalidInputError.MISSING_FIELD

    def test_falsy_colors_fall_back_to_defaults(self):
        qr = self.extractor.extract({"data": "x", "darkColor": False, "lightColor": 0})
        assert (qr.dark_color, qr.light_color) == ("#000000", "#ffffff")

    @pytest.mark.parametrize("width,expected", [(400, 400), (400.0, 400), ("250", 250), (12.5, None), ("wide", None), (True, None)])
    def test_width_parsing(self, width, expected):
        assert self.extractor.extract({"data": "x", "width": width}).size == expected

    def test_empty_colors_fall_back_to_defaults(self):
        qr = self.extractor.extract({"data": "x", "darkColor": "", "lightColor": ""})
        assert qr.dark_color == "#000000"
        assert qr.light_color == "#ffffff"


class TestQueryParameterExtractor:

    def setup_method(self):
        self.extractor = QueryParameterExtractor()

    def test_defaults_applied(self):
        qr = self.extractor.extract({"data": "https://example.com"})
        assert qr.error_correction_level == "M"
        assert qr.size == 300
        assert qr.dark_color == "#000000"
        assert qr.light_color == "#ffffff"
        assert qr.credential is None

    def test_all_fields_mapped(self):
        qr = self.extractor.extract({"data": "hi", "size": "120", "ecl": "Q", "dark": "red", "light": "#eee"})
        assert (qr.size, qr.error_correction_level, qr.dark_color, qr.light_color) == (120, "Q", "red", "#eee")

    def test_non_numeric_size_becomes_none(self):
        assert self.extractor.extract({"data": "hi", "size": "big"}).size is None

    @pytest.mark.parametrize("size,expected", [("300px", 300), ("300.0", 300), ("300.5", 300), (" 120", 120), ("+80", 80), ("-5", -5)])
    def test_size_uses_integer_prefix(self, size, expected):
        """Existing dashboard URLs such as size=300px keep working."""
        assert self.extractor.extract({"data": "hi", "size": size}).size == expected

    def test_empty_size_uses_default(self):
        assert self.extractor.extract({"data": "hi", "size": ""}).size == 300

    def test_missing_data(self):
        with pytest.raises(InvalidInputError) as exc_info:
            self.extractor.extract({"size": "100"})
        assert exc_info.value.reason == InvalidInputError.MISSING_FIELD
        assert exc_info.value.message == 'Missing required "data" parameter'

