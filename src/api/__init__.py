"""API package for the lineage core."""

from src.api.main import app
from src.api.routes import router

__all__ = ["app", "router"]
