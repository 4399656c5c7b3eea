from __future__ import annotations

from typing import Any, Optional


class StockMovementError(Exception):
    """Base de los errores que la API traduce a una respuesta HTTP."""

    code: str = "STOCK_MOVEMENT_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class RequestValidationFailed(StockMovementError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, details: list[dict[str, str]]):
        super().__init__("Validation failed", details)


class BusinessRuleError(StockMovementError):
    code = "BUSINESS_RULE_ERROR"
    status_code = 400


class NotFoundError(StockMovementError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "Stock movement not found"):
        super().__init__(message)


class GeneralError(StockMovementError):
    code = "GENERAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)
