# Routes package init
"""
QRGate: API Routes Package
===========================

Route Inventory:
    - health.py:    GET  /health        (service health check, both modes)
                    GET  /              (plain-text banner, both modes)
    - generate.py:  POST /generate-qr   (AUTH_MODE=token, PNG)
    - qr.py:        GET  /qr            (AUTH_MODE=origin, SVG)

Design Principle:
    Routes are THIN: they fetch the route's RequestPipeline from app.state
    and return whatever it produces. Stage logic lives in services/.
"""
