from __future__ import annotations

import logging
from typing import Any, Optional

from stock_movements.engine.executor import (
    BUSINESS_RULE_ERROR,
    NOT_FOUND_ERROR,
    ExpectedReturn,
    RoutineError,
    RoutineExecutor,
)
from stock_movements.engine.procedures import SP_CREATE, SP_GET, SP_LIST, SP_REVERSE
from stock_movements.errors import (
    BusinessRuleError,
    GeneralError,
    NotFoundError,
    StockMovementError,
)
from stock_movements.schemas import (
    MovementCreated,
    ReversalCreated,
    StockMovementCreate,
    StockMovementDetail,
    StockMovementListQuery,
    StockMovementPage,
)
from stock_movements.security import RequestContext

logger = logging.getLogger(__name__)


class StockMovementService:
    def __init__(self, executor: RoutineExecutor):
        self._executor = executor

    def _call(self, routine: str, params: dict[str, Any], expected: ExpectedReturn) -> Optional[Any]:
        try:
            return self._executor.execute(routine, params, expected)
        except RoutineError as e:
            if e.number == BUSINESS_RULE_ERROR:
                logger.warning("%s rejected: %s", routine, e.message)
                raise BusinessRuleError(e.message) from e
            if e.number == NOT_FOUND_ERROR:
                raise NotFoundError() from e
            logger.exception("%s failed with engine error %s", routine, e.number)
            raise GeneralError() from e
        except StockMovementError:
            raise
        except Exception as e:
            logger.exception("%s failed", routine)
            raise GeneralError() from e

    def create(self, context: RequestContext, payload: StockMovementCreate) -> MovementCreated:
        params: dict[str, Any] = {
            "idAccount": context.account_id,
            "idUser": context.user_id,
        }
        # exclude_unset keeps an explicit null apart from an absent key
        params.update(payload.model_dump(by_alias=True, exclude_unset=True))

        row = self._call(SP_CREATE, params, ExpectedReturn.SINGLE)
        if row is None:
            raise GeneralError()
        created = MovementCreated.model_validate(row)
        logger.info(
            "stock movement %s created account=%s product=%s type=%s",
            created.id_stock_movement,
            context.account_id,
            payload.id_product,
            payload.movement_type,
        )
        return created

    def list(self, context: RequestContext, query: StockMovementListQuery) -> StockMovementPage:
        params: dict[str, Any] = {"idAccount": context.account_id}
        params.update(query.model_dump(by_alias=True, exclude_none=True))

        result_sets = self._call(SP_LIST, params, ExpectedReturn.MULTI) or [[], []]
        movements = result_sets[0] if result_sets else []
        pagination = result_sets[1][0] if len(result_sets) > 1 and result_sets[1] else None
        if pagination is None:
            pagination = {
                "totalRecords": 0,
                "pageSize": query.page_size,
                "pageNumber": query.page_number,
                "totalPages": 0,
            }
        return StockMovementPage.model_validate({"movements": movements, "pagination": pagination})

    def get(self, context: RequestContext, movement_id: int) -> StockMovementDetail:
        row = self._call(
            SP_GET,
            {"idAccount": context.account_id, "idStockMovement": movement_id},
            ExpectedReturn.SINGLE,
        )
        if row is None:
            raise NotFoundError()
        return StockMovementDetail.model_validate(row)

    def reverse(self, context: RequestContext, movement_id: int, reason: str) -> ReversalCreated:
        row = self._call(
            SP_REVERSE,
            {
                "idAccount": context.account_id,
                "idUser": context.user_id,
                "idStockMovement": movement_id,
                "reason": reason,
            },
            ExpectedReturn.SINGLE,
        )
        if row is None:
            raise GeneralError()
        reversal = ReversalCreated.model_validate(row)
        logger.info(
            "stock movement %s reversed by %s account=%s",
            movement_id,
            reversal.id_reversal_movement,
            context.account_id,
        )
        return reversal
