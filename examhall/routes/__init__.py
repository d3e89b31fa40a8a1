"""API route modules."""
from examhall.routes import admin, sessions, window

__all__ = ["admin", "sessions", "window"]
