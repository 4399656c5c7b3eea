from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from stock_movements.deps import session_dep

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(session_dep)) -> dict:
    db.execute(text("SELECT 1"))
    return {"status": "ok"}
