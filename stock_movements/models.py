from __future__ import annotations

from datetime import date, datetime
from enum import IntEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from stock_movements.db import Base


# Numeric(14, 4): quantities stay below 10**10 with at most four decimals
QUANTITY_SCALE = 4
QUANTITY_LIMIT = 10**10


class MovementType(IntEnum):
    CREATION = 0
    ENTRY = 1
    EXIT = 2
    ADJUSTMENT = 3
    DELETION = 4

    @property
    def label(self) -> str:
        return MOVEMENT_TYPE_LABELS[self]


MOVEMENT_TYPE_LABELS: dict[MovementType, str] = {
    MovementType.CREATION: "Creation",
    MovementType.ENTRY: "Entry",
    MovementType.EXIT: "Exit",
    MovementType.ADJUSTMENT: "Adjustment",
    MovementType.DELETION: "Deletion",
}


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("account_id", "sku", name="ux_products_account_sku"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, index=True)
    sku: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )


class StockMovement(Base):
    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(Integer, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    movement_type: Mapped[int] = mapped_column(SmallInteger, index=True)
    quantity: Mapped[float] = mapped_column(Numeric(14, QUANTITY_SCALE, asdecimal=False))
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reference_document: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    lot: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    expiration_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_reversal: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    # unique: a movement can be reversed at most once
    original_movement_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stock_movements.id"), nullable=True, unique=True
    )
    date_created: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    account_id: Mapped[int] = mapped_column(Integer, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(64), index=True)
    entity_type: Mapped[str] = mapped_column(String(64), index=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    detail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
