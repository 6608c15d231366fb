# Services package init
"""
QRGate: Services Layer
=======================

What:  The request-admission pipeline and its stages, free of route code.

Service Inventory:
    - RateLimiter / InMemoryRateLimitStore: fixed-window per-client budgets
    - TokenAuthenticator / OriginAuthenticator: one per deployment mode
    - BodyParameterExtractor / QueryParameterExtractor: transport → QRRequest
    - RequestValidator: domain checks on QRRequest
    - PngEncoder / SvgEncoder: QRRequest → image bytes (qrcode + Pillow)
    - JsonErrorRenderer / TextErrorRenderer: QRGateError → response
    - RequestPipeline: composes the stages for one route

Why stages are separate classes:
    Each one is unit-tested without HTTP, and the app factory assembles a
    different chain per deployment mode without touching route code.
"""
