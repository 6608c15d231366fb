"""
QRGate: Authentication Strategies
==================================

What:  Decides whether a request may use the generation endpoint.
Why:   The API is meant for a known set of callers, without user accounts.
How:   Two interchangeable strategies behind one interface; the app factory
       picks exactly one per deployment (AUTH_MODE).

Strategies:
    TokenAuthenticator   shared secret from the `token` body field
                         (or an `Authorization: Bearer` header)
    OriginAuthenticator  Referer header must contain an allow-listed domain

Both are pure decision functions over (headers, payload): they never touch
shared state and never see the transport object itself.
"""

import hmac
import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

from qrgate.exceptions import OriginNotAllowedError, UnauthenticatedError

logger = logging.getLogger(__name__)


class Authenticator(ABC):
    """Contract: return normally to admit, raise an UnauthenticatedError to reject."""

    @abstractmethod
    def authenticate(self, headers: Mapping[str, str], payload: Mapping[str, Any]) -> None:
        """
        Args:
            headers: Request headers (case-insensitive mapping)
            payload: Parsed body or query parameters

        Raises:
            UnauthenticatedError (or a subclass) when the request is rejected
        """
        ...


class TokenAuthenticator(Authenticator):
    """
    Shared-secret authentication.

    Fail-closed: an empty or missing token is rejected even when the
    configured secret is itself empty. Missing and wrong tokens produce the
    same error so the response does not reveal which one happened.
    """

    def __init__(self, secret: str):
        self._secret = secret.encode("utf-8")

    @staticmethod
    def presented_token(headers: Mapping[str, str], payload: Mapping[str, Any]) -> Optional[str]:
        """Token from the body field, falling back to a Bearer header."""
        token = payload.get("token")
        if isinstance(token, str) and token:
            return token

        authorization = headers.get("authorization", "")
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
        return None

    def authenticate(self, headers: Mapping[str, str], payload: Mapping[str, Any]) -> None:
        token = self.presented_token(headers, payload)
        if not token or not self._secret:
            raise UnauthenticatedError(context={"token_present": bool(token)})

        # Constant-time comparison; returns False for any length mismatch
        if not hmac.compare_digest(token.encode("utf-8"), self._secret):
            raise UnauthenticatedError(context={"token_present": True})


class OriginAuthenticator(Authenticator):
    """
    Referer allow-list.

    Matching is by substring, not by parsed host: "example.com" also admits
    "https://evil.test/?example.com". The Referer header is client-controlled
    anyway, so this is a usage restriction, not a security boundary.

    With no domains configured every request is admitted and a warning is
    logged for each one (development fallback).
    """

    def __init__(self, allowed_domains: Sequence[str]):
        self.allowed_domains = [d.strip() for d in allowed_domains if d.strip()]

    def authenticate(self, headers: Mapping[str, str], payload: Mapping[str, Any]) -> None:
        if not self.allowed_domains:
            logger.warning("No allowed domains configured, allowing all requests")
            return

        referrer = headers.get("referer", "")
        if not any(domain in referrer for domain in self.allowed_domains):
            logger.info("Blocked request from referrer: %s", referrer)
            raise OriginNotAllowedError(context={"referrer": referrer})
