"""
FastAPI/ASGI application entrypoint.

Run with: uvicorn pantry_alerts.api_server.app:app --host 0.0.0.0 --port 8000
"""

from pantry_alerts.api_server.server import app

__all__ = ["app"]
