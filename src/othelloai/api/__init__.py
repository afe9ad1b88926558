"""HTTP match API (FastAPI)."""

from .app import create_app  # noqa: F401
