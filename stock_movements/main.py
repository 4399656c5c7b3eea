from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

if __name__ == "__main__" and __package__ is None:
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from stock_movements.config import load_config
from stock_movements.db import create_tables, dispose_engine
from stock_movements.errors import StockMovementError
from stock_movements.logging_config import configure_logging
from stock_movements.responses import (
    request_validation_error_handler,
    stock_movement_error_handler,
    unhandled_error_handler,
)
from stock_movements.routers.health import router as health_router
from stock_movements.routers.stock_movements import router as stock_movements_router

logger = logging.getLogger(__name__)


def _run_startup_tasks() -> None:
    """Crea las tablas si no existen."""
    create_tables()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifecycle manager para FastAPI."""
    _run_startup_tasks()
    logger.info("stock movements api started")
    yield
    dispose_engine()


def create_app() -> FastAPI:
    cfg = load_config()
    configure_logging(cfg.log_level)

    app = FastAPI(title="Stock Movements", lifespan=lifespan)

    app.add_exception_handler(StockMovementError, stock_movement_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(stock_movements_router, prefix=cfg.api_prefix)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "stock_movements.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("APP_PORT", "10000")),
        reload=os.getenv("RELOAD", "0") == "1",
    )


if __name__ == "__main__":
    run()
