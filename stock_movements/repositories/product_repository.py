from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_movements.models import Product


class ProductRepository:
    def __init__(self, db: Session):
        self._db = db

    def get_for_account(self, account_id: int, product_id: int, lock: bool = False) -> Optional[Product]:
        stmt = select(Product).where(Product.id == product_id, Product.account_id == account_id)
        if lock:
            stmt = stmt.with_for_update()
        return self._db.scalar(stmt)

    def add(self, product: Product) -> None:
        self._db.add(product)
