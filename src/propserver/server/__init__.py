"""HTTP server for propserver (FastAPI)."""

from propserver.server.app import create_app

__all__ = ["create_app"]
