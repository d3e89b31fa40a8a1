"""Public testing window status."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from examhall.database import get_db
from examhall.services import window_service

router = APIRouter(prefix="/api/window", tags=["window"])


@router.get("/status")
def get_window_status(
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Whether testing is open, and for how long."""
    window = window_service.get_window(db)
    return window_service.client_config(window)
