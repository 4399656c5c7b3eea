import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DEFAULT_ACCOUNT_ID", "1")
os.environ.setdefault("DEFAULT_USER_ID", "1")
os.environ.setdefault("API_PREFIX", "/api/v1/internal")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from stock_movements.db import create_tables, dispose_engine, get_session, init_engine  # noqa: E402
from stock_movements.main import app  # noqa: E402
from stock_movements.models import Product  # noqa: E402
from stock_movements.repositories.product_repository import ProductRepository  # noqa: E402

# (id, account_id, sku, name)
PRODUCTS = [
    (10, 1, "SKU000010", "Widget"),
    (11, 1, "SKU000011", "Bolt"),
    (20, 2, "SKU000020", "Other account widget"),
]


@pytest.fixture(autouse=True)
def database() -> Generator[None, None, None]:
    init_engine("sqlite+pysqlite:///:memory:")
    create_tables()
    db = get_session()
    try:
        products = ProductRepository(db)
        for product_id, account_id, sku, name in PRODUCTS:
            products.add(Product(id=product_id, account_id=account_id, sku=sku, name=name))
        db.commit()
    finally:
        db.close()
    yield
    dispose_engine()


@pytest.fixture()
def session() -> Generator[Session, None, None]:
    db = get_session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
