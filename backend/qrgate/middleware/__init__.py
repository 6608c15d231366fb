# Middleware package init
"""
QRGate: Middleware Package
===========================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [Security Headers] → [Rate Limit] → [CORS] → Route

    Why this order:
    1. Request ID: Generate correlation ID for logging
    2. Logging: Log request details with the generated request ID
    3. Security headers: Added to every response, 429s included
    4. Rate Limit: Reject abusive requests before any parsing or encoding
       (token mode only; origin mode has no rate limiting)
    5. CORS: origin mode only (images are fetched cross-origin)

    The order is reversed for responses.
"""
