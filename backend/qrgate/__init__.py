"""
QRGate: Application Package Initializer
========================================

What: Marks the `qrgate` directory as a Python package.
Who:  Used by uvicorn (`qrgate.main:app`), the console script, and pytest.

Architecture Note:
    The service is a thin HTTP shell around a request-admission pipeline:

    ┌─────────────────────────────────────┐
    │        Routes (API Layer)           │  ← HTTP binding per deployment mode
    ├─────────────────────────────────────┤
    │        Middleware                   │  ← request ID, logging, global rate limit
    ├─────────────────────────────────────┤
    │        Services (Pipeline)          │  ← auth → extract → validate → encode
    ├─────────────────────────────────────┤
    │        Schemas (Data)               │  ← QRRequest, response models
    └─────────────────────────────────────┘

    Nothing is persisted. The only shared mutable state is the in-memory
    rate limit store, which lives on `app.state` and dies with the process.
"""

__version__ = "1.0.0"
