"""API endpoints."""

from scout_app.api.routes import router

__all__ = ["router"]
