"""Rutinas de movimientos de stock.

Cada rutina recibe la sesión de la petición y un dict de parámetros con las
claves del contrato (``idAccount``, ``idUser``, ``idProduct``, ...) y devuelve
una lista de result sets. Las reglas de negocio se rechazan con
``RoutineError(BUSINESS_RULE_ERROR, mensaje)``; la transacción la controla el
executor.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_movements.engine.executor import (
    BUSINESS_RULE_ERROR,
    NOT_FOUND_ERROR,
    ResultSets,
    Row,
    RoutineError,
    routine,
)
from stock_movements.models import QUANTITY_LIMIT, QUANTITY_SCALE, MovementType, StockMovement
from stock_movements.repositories.product_repository import ProductRepository
from stock_movements.repositories.stock_movement_repository import (
    StockMovementRepository,
    signed_quantity,
)

logger = logging.getLogger(__name__)

SP_CREATE = "functional.spStockMovementCreate"
SP_LIST = "functional.spStockMovementList"
SP_GET = "functional.spStockMovementGet"
SP_REVERSE = "functional.spStockMovementReverse"

DEFAULT_PAGE_SIZE = 100


def _business_error(message: str) -> RoutineError:
    return RoutineError(BUSINESS_RULE_ERROR, message)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _type_name(movement_type: int) -> str:
    try:
        return MovementType(movement_type).label
    except ValueError:
        return str(movement_type)


def _movement_row(
    mv: Any,
    product_name: str,
    product_sku: str,
) -> Row:
    return {
        "idStockMovement": mv.id,
        "productId": mv.product_id,
        "productName": product_name,
        "productSku": product_sku,
        "movementType": mv.movement_type,
        "movementTypeName": _type_name(mv.movement_type),
        "quantity": float(mv.quantity),
        "reason": mv.reason,
        "referenceDocument": mv.reference_document,
        "lot": mv.lot,
        "expirationDate": mv.expiration_date,
        "isReversal": bool(mv.is_reversal),
        "originalMovementId": mv.original_movement_id,
        "userId": mv.user_id,
        "dateCreated": mv.date_created,
    }


def _check_balance(movements: StockMovementRepository, account_id: int, product_id: int, delta: float) -> None:
    if delta >= 0:
        return
    balance = movements.balance_for_product(account_id, product_id)
    if balance + delta < 0:
        raise _business_error("Insufficient stock for this movement")


@routine(SP_CREATE)
def stock_movement_create(db: Session, params: dict[str, Any]) -> ResultSets:
    account_id = int(params["idAccount"])
    user_id = int(params["idUser"])
    product_id = int(params["idProduct"])
    movement_type = int(params["movementType"])
    quantity = float(params["quantity"])
    reason: Optional[str] = params.get("reason")

    if movement_type not in {int(t) for t in MovementType}:
        raise _business_error("Invalid movement type")
    if round(quantity, QUANTITY_SCALE) == 0:
        raise _business_error("Quantity must not be zero")
    if abs(quantity) >= QUANTITY_LIMIT or round(quantity, QUANTITY_SCALE) != quantity:
        raise _business_error("Quantity is out of range")
    if movement_type != MovementType.ADJUSTMENT and quantity < 0:
        raise _business_error("Quantity must be greater than zero")
    if movement_type == MovementType.ADJUSTMENT and not (reason or "").strip():
        raise _business_error("Reason is required for adjustment movements")

    product = ProductRepository(db).get_for_account(account_id, product_id, lock=True)
    if product is None:
        raise _business_error("Product not found")

    movements = StockMovementRepository(db)
    _check_balance(movements, account_id, product_id, signed_quantity(movement_type, quantity))

    expiration: Optional[date] = params.get("expirationDate")
    movement = StockMovement(
        account_id=account_id,
        product_id=product_id,
        user_id=user_id,
        movement_type=movement_type,
        quantity=quantity,
        reason=reason,
        reference_document=params.get("referenceDocument"),
        lot=params.get("lot"),
        expiration_date=expiration,
        is_reversal=False,
        original_movement_id=None,
        date_created=_now(),
    )
    movements.add(movement)
    return [[{"idStockMovement": movement.id}]]


@routine(SP_LIST)
def stock_movement_list(db: Session, params: dict[str, Any]) -> ResultSets:
    page_size = int(params.get("pageSize") or DEFAULT_PAGE_SIZE)
    page_number = int(params.get("pageNumber") or 1)

    rows, total = StockMovementRepository(db).page(
        account_id=int(params["idAccount"]),
        product_id=params.get("idProduct"),
        start_date=params.get("startDate"),
        end_date=params.get("endDate"),
        movement_type=params.get("movementType"),
        user_id=params.get("idUser"),
        sort_order=params.get("sortOrder") or "date_desc",
        limit=page_size,
        offset=(page_number - 1) * page_size,
    )

    movements: list[Row] = []
    for r in rows:
        item = _movement_row(r, r.product_name, r.product_sku)
        item["runningBalance"] = float(r.running_balance or 0)
        movements.append(item)

    pagination = {
        "totalRecords": total,
        "pageSize": page_size,
        "pageNumber": page_number,
        "totalPages": math.ceil(total / page_size) if total else 0,
    }
    return [movements, [pagination]]


@routine(SP_GET)
def stock_movement_get(db: Session, params: dict[str, Any]) -> ResultSets:
    found = StockMovementRepository(db).detail(int(params["idAccount"]), int(params["idStockMovement"]))
    if found is None:
        return [[]]
    mv, product_name, product_sku, has_been_reversed = found
    row = _movement_row(mv, product_name, product_sku)
    row["accountId"] = mv.account_id
    row["hasBeenReversed"] = bool(has_been_reversed)
    return [[row]]


@routine(SP_REVERSE)
def stock_movement_reverse(db: Session, params: dict[str, Any]) -> ResultSets:
    account_id = int(params["idAccount"])
    user_id = int(params["idUser"])
    reason = (params.get("reason") or "").strip()
    if not reason:
        raise _business_error("Reason is required to reverse a movement")

    movements = StockMovementRepository(db)
    original = movements.get_for_account(account_id, int(params["idStockMovement"]))
    if original is None:
        raise RoutineError(NOT_FOUND_ERROR, "Stock movement not found")

    # Serialize against other writes on the same product before checking.
    ProductRepository(db).get_for_account(account_id, original.product_id, lock=True)

    if original.is_reversal:
        raise _business_error("A reversal movement cannot be reversed")
    if movements.reversal_of(original.id) is not None:
        raise _business_error("Stock movement has already been reversed")

    compensation = -signed_quantity(original.movement_type, float(original.quantity))
    _check_balance(movements, account_id, original.product_id, compensation)

    reversal = StockMovement(
        account_id=account_id,
        product_id=original.product_id,
        user_id=user_id,
        movement_type=int(MovementType.ADJUSTMENT),
        quantity=compensation,
        reason=reason,
        reference_document=original.reference_document,
        lot=original.lot,
        expiration_date=original.expiration_date,
        is_reversal=True,
        original_movement_id=original.id,
        date_created=_now(),
    )
    try:
        movements.add(reversal)
    except IntegrityError as e:
        raise _business_error("Stock movement has already been reversed") from e

    logger.debug("movement %s reversed by %s", original.id, reversal.id)
    return [[{"idReversalMovement": reversal.id}]]
