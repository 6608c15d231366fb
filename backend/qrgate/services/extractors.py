"""
QRGate: Parameter Extractors
=============================

What:  Turn raw transport input into the canonical QRRequest.
Why:   Validator and Encoder must not care whether parameters arrived in a
       JSON body or a query string.
How:   One extractor per transport, both producing the same QRRequest and
       applying the same defaults (ECL M, size 300, black on white).

Field names by transport:
    QRRequest field          JSON body              query string
    content                  data                   data
    error_correction_level   errorCorrectionLevel   ecl
    size                     width                  size
    dark_color               darkColor              dark
    light_color              lightColor             light
    credential               token                  (none)

Extraction never judges values beyond "present or not": an unknown ECL or
an out-of-range size is passed through for the Validator to reject.
"""

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from starlette.requests import Request

from qrgate.exceptions import InvalidInputError
from qrgate.schemas.qr import (
    DEFAULT_DARK_COLOR,
    DEFAULT_ERROR_CORRECTION_LEVEL,
    DEFAULT_LIGHT_COLOR,
    DEFAULT_SIZE,
    QRRequest,
)

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _is_blank_scalar(value: Any) -> bool:
    """false, 0 and NaN carry no value, exactly like an absent field."""
    if isinstance(value, bool):
        return not value
    if isinstance(value, (int, float)):
        return value == 0 or math.isnan(value)
    return False


def _as_text(value: Any) -> Optional[str]:
    """Stringify scalars; None and containers count as absent."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def _as_size(value: Any) -> Optional[int]:
    """
    Parse a pixel size. Returns None when the value is not an integer, which
    the Validator reports as SIZE_OUT_OF_RANGE.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _leading_int(value: str) -> Optional[int]:
    """
    Integer prefix of a query value: "300px" and "300.5" give 300.
    Returns None when the value does not start with digits.
    """
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


class ParameterExtractor(ABC):
    """Contract: raw input → QRRequest, or InvalidInputError(MISSING_FIELD)."""

    @abstractmethod
    async def read(self, request: Request) -> Dict[str, Any]:
        """Load the raw parameter mapping from the transport."""
        ...

    @abstractmethod
    def extract(self, raw: Mapping[str, Any]) -> QRRequest:
        """Build a QRRequest from the raw mapping, applying defaults."""
        ...

    @staticmethod
    def _content(raw: Mapping[str, Any]) -> str:
        value = raw.get("data")
        content = None if _is_blank_scalar(value) else _as_text(value)
        if content is None:
            raise InvalidInputError(
                reason=InvalidInputError.MISSING_FIELD,
                message='Missing required "data" parameter',
                field="data",
            )
        return content

    @staticmethod
    def _text_or_default(raw: Mapping[str, Any], name: str, default: str) -> str:
        # Empty strings, false and 0 fall back to the default, like an absent field
        value = raw.get(name)
        if _is_blank_scalar(value):
            return default
        return _as_text(value) or default


class BodyParameterExtractor(ParameterExtractor):
    """JSON body transport (POST /generate-qr)."""

    async def read(self, request: Request) -> Dict[str, Any]:
        body = await request.body()
        if not body.strip():
            return {}
        try:
            payload = json.loads(body)
        except ValueError:
            raise InvalidInputError(
                reason=InvalidInputError.MALFORMED_BODY,
                message="Request body must be a JSON object.",
            )
        if not isinstance(payload, dict):
            raise InvalidInputError(
                reason=InvalidInputError.MALFORMED_BODY,
                message="Request body must be a JSON object.",
            )
        return payload

    def extract(self, raw: Mapping[str, Any]) -> QRRequest:
        width = raw.get("width")
        token = raw.get("token")
        return QRRequest(
            content=self._content(raw),
            error_correction_level=self._text_or_default(
                raw, "errorCorrectionLevel", DEFAULT_ERROR_CORRECTION_LEVEL
            ),
            size=DEFAULT_SIZE if width is None else _as_size(width),
            dark_color=self._text_or_default(raw, "darkColor", DEFAULT_DARK_COLOR),
            light_color=self._text_or_default(raw, "lightColor", DEFAULT_LIGHT_COLOR),
            credential=token if isinstance(token, str) and token else None,
        )


class QueryParameterExtractor(ParameterExtractor):
    """Query string transport (GET /qr)."""

    async def read(self, request: Request) -> Dict[str, Any]:
        # Repeated keys: the last value wins
        return dict(request.query_params)

    def extract(self, raw: Mapping[str, Any]) -> QRRequest:
        size = raw.get("size")
        return QRRequest(
            content=self._content(raw),
            error_correction_level=self._text_or_default(
                raw, "ecl", DEFAULT_ERROR_CORRECTION_LEVEL
            ),
            size=DEFAULT_SIZE if size in (None, "") else _leading_int(size),
            dark_color=self._text_or_default(raw, "dark", DEFAULT_DARK_COLOR),
            light_color=self._text_or_default(raw, "light", DEFAULT_LIGHT_COLOR),
        )
