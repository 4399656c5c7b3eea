from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stock_movements.audit import log_event
from stock_movements.deps import session_dep, stock_movement_service_dep
from stock_movements.responses import success_response
from stock_movements.schemas import (
    ApiResponse,
    MovementCreated,
    ReversalCreated,
    StockMovementCreate,
    StockMovementDetail,
    StockMovementGetQuery,
    StockMovementListQuery,
    StockMovementPage,
    StockMovementReverseCreate,
)
from stock_movements.security import RequestContext, require_permission
from stock_movements.services.stock_movement_service import StockMovementService
from stock_movements.validation import validated

router = APIRouter(tags=["stock-movement"])

SECURABLE = "STOCK_MOVEMENT"


@router.get("/stock-movement", response_model=ApiResponse[StockMovementPage])
def list_stock_movements(
    context: RequestContext = Depends(require_permission(SECURABLE, "READ")),
    query: StockMovementListQuery = Depends(validated(StockMovementListQuery)),
    service: StockMovementService = Depends(stock_movement_service_dep),
) -> ApiResponse:
    page = service.list(context, query)
    return success_response(page)


@router.post("/stock-movement", response_model=ApiResponse[MovementCreated])
def create_stock_movement(
    context: RequestContext = Depends(require_permission(SECURABLE, "CREATE")),
    payload: StockMovementCreate = Depends(validated(StockMovementCreate)),
    service: StockMovementService = Depends(stock_movement_service_dep),
    db: Session = Depends(session_dep),
) -> ApiResponse:
    created = service.create(context, payload)
    log_event(
        db,
        context,
        action="stock_movement_create",
        entity_type="stock_movement",
        entity_id=str(created.id_stock_movement),
        detail={
            "idProduct": payload.id_product,
            "movementType": payload.movement_type,
            "quantity": payload.quantity,
        },
    )
    return success_response(created)


@router.get("/stock-movement/{id}", response_model=ApiResponse[StockMovementDetail])
def get_stock_movement(
    context: RequestContext = Depends(require_permission(SECURABLE, "READ")),
    params: StockMovementGetQuery = Depends(validated(StockMovementGetQuery)),
    service: StockMovementService = Depends(stock_movement_service_dep),
) -> ApiResponse:
    detail = service.get(context, params.id)
    return success_response(detail)


@router.post("/stock-movement/{id}/reverse", response_model=ApiResponse[ReversalCreated])
def reverse_stock_movement(
    context: RequestContext = Depends(require_permission(SECURABLE, "UPDATE")),
    params: StockMovementReverseCreate = Depends(validated(StockMovementReverseCreate)),
    service: StockMovementService = Depends(stock_movement_service_dep),
    db: Session = Depends(session_dep),
) -> ApiResponse:
    reversal = service.reverse(context, params.id, params.reason)
    log_event(
        db,
        context,
        action="stock_movement_reverse",
        entity_type="stock_movement",
        entity_id=str(params.id),
        detail={
            "idReversalMovement": reversal.id_reversal_movement,
            "reason": params.reason,
        },
    )
    return success_response(reversal)
