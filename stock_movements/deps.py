from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from stock_movements.db import get_session
from stock_movements.engine.executor import RoutineExecutor
from stock_movements.services.stock_movement_service import StockMovementService


def session_dep() -> Generator[Session, None, None]:
    db = get_session()
    try:
        yield db
    finally:
        db.close()


def stock_movement_service_dep(db: Session = Depends(session_dep)) -> StockMovementService:
    return StockMovementService(RoutineExecutor(db))
