from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Error numbers raised by routines. Anything else is an engine failure.
BUSINESS_RULE_ERROR = 51000
NOT_FOUND_ERROR = 51001
UNKNOWN_ROUTINE_ERROR = 52000

Row = dict[str, Any]
ResultSets = list[list[Row]]
Routine = Callable[[Session, dict[str, Any]], ResultSets]

_ROUTINES: dict[str, Routine] = {}


class ExpectedReturn(str, Enum):
    SINGLE = "single"
    MULTI = "multi"
    NONE = "none"


class RoutineError(Exception):
    def __init__(self, number: int, message: str):
        super().__init__(message)
        self.number = number
        self.message = message


def routine(name: str) -> Callable[[Routine], Routine]:
    def decorator(fn: Routine) -> Routine:
        _ROUTINES[name] = fn
        return fn

    return decorator


def registered_routines() -> list[str]:
    _load_procedures()
    return sorted(_ROUTINES)


def _load_procedures() -> None:
    import stock_movements.engine.procedures  # noqa: F401


class RoutineExecutor:
    """Ejecuta una rutina registrada dentro de una única transacción."""

    def __init__(self, db: Session):
        self._db = db
        _load_procedures()

    def execute(
        self,
        name: str,
        params: dict[str, Any],
        expected: ExpectedReturn,
    ) -> Optional[Any]:
        fn = _ROUTINES.get(name)
        if fn is None:
            raise RoutineError(UNKNOWN_ROUTINE_ERROR, f"Unknown routine {name}")

        logger.debug("executing routine %s params=%s", name, sorted(params))
        try:
            result_sets = fn(self._db, dict(params))
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        if expected is ExpectedReturn.NONE:
            return None
        if expected is ExpectedReturn.SINGLE:
            first = result_sets[0] if result_sets else []
            return first[0] if first else None
        return result_sets
