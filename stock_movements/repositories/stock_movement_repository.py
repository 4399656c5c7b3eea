from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import ColumnElement, case, func, select
from sqlalchemy.orm import Session, aliased

from stock_movements.models import MovementType, Product, StockMovement

_INCREASING = (int(MovementType.CREATION), int(MovementType.ENTRY))
_DECREASING = (int(MovementType.EXIT), int(MovementType.DELETION))


def signed_quantity(movement_type: int, quantity: float) -> float:
    """Efecto del movimiento sobre el saldo del producto."""
    if movement_type in _INCREASING:
        return abs(quantity)
    if movement_type in _DECREASING:
        return -abs(quantity)
    return quantity


def signed_quantity_expr() -> ColumnElement[Any]:
    return case(
        (StockMovement.movement_type.in_(_INCREASING), func.abs(StockMovement.quantity)),
        (StockMovement.movement_type.in_(_DECREASING), -func.abs(StockMovement.quantity)),
        else_=StockMovement.quantity,
    )


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


class StockMovementRepository:
    def __init__(self, db: Session):
        self._db = db

    def add(self, movement: StockMovement) -> None:
        self._db.add(movement)
        self._db.flush()

    def get_for_account(self, account_id: int, movement_id: int) -> Optional[StockMovement]:
        return self._db.scalar(
            select(StockMovement).where(
                StockMovement.id == movement_id,
                StockMovement.account_id == account_id,
            )
        )

    def reversal_of(self, movement_id: int) -> Optional[StockMovement]:
        return self._db.scalar(
            select(StockMovement).where(StockMovement.original_movement_id == movement_id)
        )

    def balance_for_product(self, account_id: int, product_id: int) -> float:
        total = self._db.scalar(
            select(func.coalesce(func.sum(signed_quantity_expr()), 0)).where(
                StockMovement.account_id == account_id,
                StockMovement.product_id == product_id,
            )
        )
        return float(total or 0)

    def detail(self, account_id: int, movement_id: int) -> Optional[tuple]:
        reversal = aliased(StockMovement)
        has_been_reversed = (
            select(reversal.id)
            .where(reversal.original_movement_id == StockMovement.id)
            .exists()
        )
        stmt = (
            select(
                StockMovement,
                Product.name,
                Product.sku,
                has_been_reversed.label("has_been_reversed"),
            )
            .join(Product, Product.id == StockMovement.product_id)
            .where(
                StockMovement.id == movement_id,
                StockMovement.account_id == account_id,
            )
        )
        return self._db.execute(stmt).first()

    def page(
        self,
        account_id: int,
        product_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        movement_type: Optional[int] = None,
        user_id: Optional[int] = None,
        sort_order: str = "date_desc",
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Any], int]:
        # Balances are computed over the whole account ledger before filtering,
        # so a filtered page still shows the real balance at each movement.
        ledger = (
            select(
                StockMovement.id,
                StockMovement.product_id,
                StockMovement.user_id,
                StockMovement.movement_type,
                StockMovement.quantity,
                StockMovement.reason,
                StockMovement.reference_document,
                StockMovement.lot,
                StockMovement.expiration_date,
                StockMovement.is_reversal,
                StockMovement.original_movement_id,
                StockMovement.date_created,
                func.sum(signed_quantity_expr())
                .over(
                    partition_by=StockMovement.product_id,
                    order_by=(StockMovement.date_created, StockMovement.id),
                )
                .label("running_balance"),
            )
            .where(StockMovement.account_id == account_id)
            .subquery("ledger")
        )

        stmt = select(ledger, Product.name.label("product_name"), Product.sku.label("product_sku")).join(
            Product, Product.id == ledger.c.product_id
        )

        if product_id is not None:
            stmt = stmt.where(ledger.c.product_id == product_id)
        if movement_type is not None:
            stmt = stmt.where(ledger.c.movement_type == movement_type)
        if user_id is not None:
            stmt = stmt.where(ledger.c.user_id == user_id)
        if start_date is not None:
            stmt = stmt.where(ledger.c.date_created >= _day_start(start_date))
        if end_date is not None:
            stmt = stmt.where(ledger.c.date_created < _day_start(end_date + timedelta(days=1)))

        total = self._db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        if offset >= total:
            return [], int(total)

        if sort_order == "date_asc":
            order = (ledger.c.date_created.asc(), ledger.c.id.asc())
        elif sort_order == "product_asc":
            order = (Product.name.asc(), ledger.c.date_created.asc(), ledger.c.id.asc())
        elif sort_order == "product_desc":
            order = (Product.name.desc(), ledger.c.date_created.desc(), ledger.c.id.desc())
        else:
            order = (ledger.c.date_created.desc(), ledger.c.id.desc())

        rows = self._db.execute(stmt.order_by(*order).limit(limit).offset(offset)).all()
        return list(rows), int(total)
