"""FastAPI dependencies."""
from examhall.dependencies.auth import get_current_principal, require_admin

__all__ = ["get_current_principal", "require_admin"]
