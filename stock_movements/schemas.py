from __future__ import annotations

from datetime import date, datetime
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from stock_movements.models import QUANTITY_LIMIT, QUANTITY_SCALE, MovementType

T = TypeVar("T")

SortOrder = Literal["date_asc", "date_desc", "product_asc", "product_desc"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _clean_text(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class StockMovementCreate(CamelModel):
    id_product: int = Field(gt=0)
    movement_type: int = Field(ge=0, le=4)
    quantity: float = Field(allow_inf_nan=False, gt=-QUANTITY_LIMIT, lt=QUANTITY_LIMIT)
    reason: Optional[str] = Field(default=None, max_length=255, validate_default=True)
    reference_document: Optional[str] = Field(default=None, max_length=50)
    lot: Optional[str] = Field(default=None, max_length=50)
    expiration_date: Optional[date] = None

    @field_validator("quantity")
    @classmethod
    def quantity_fits_scale(cls, v: float) -> float:
        if round(v, QUANTITY_SCALE) != v:
            raise ValueError(f"quantity supports at most {QUANTITY_SCALE} decimal places")
        return v

    @field_validator("reference_document", "lot")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _clean_text(v)

    @field_validator("reason")
    @classmethod
    def reason_required_for_adjustment(
        cls, v: Optional[str], info: ValidationInfo
    ) -> Optional[str]:
        v = _clean_text(v)
        if info.data.get("movement_type") == MovementType.ADJUSTMENT and v is None:
            raise ValueError("reason is required for adjustment movements")
        return v


class StockMovementListQuery(CamelModel):
    id_product: Optional[int] = Field(default=None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    movement_type: Optional[int] = Field(default=None, ge=0, le=4)
    id_user: Optional[int] = Field(default=None, gt=0)
    sort_order: Optional[SortOrder] = None
    page_size: int = Field(default=100, ge=1, le=1000)
    page_number: int = Field(default=1, ge=1)

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(cls, v: Optional[date], info: ValidationInfo) -> Optional[date]:
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("endDate must not be before startDate")
        return v


class StockMovementGetQuery(CamelModel):
    id: int = Field(gt=0)


class StockMovementReverseCreate(CamelModel):
    id: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=255)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason must not be empty")
        return v


class StockMovementBase(CamelModel):
    id_stock_movement: int
    product_id: int
    product_name: str
    product_sku: str
    movement_type: int
    movement_type_name: str
    quantity: float
    reason: Optional[str]
    reference_document: Optional[str]
    lot: Optional[str]
    expiration_date: Optional[date]
    is_reversal: bool
    original_movement_id: Optional[int]
    user_id: int
    date_created: datetime


class StockMovementListItem(StockMovementBase):
    running_balance: float


class StockMovementDetail(StockMovementBase):
    account_id: int
    has_been_reversed: bool


class Pagination(CamelModel):
    total_records: int
    page_size: int
    page_number: int
    total_pages: int


class StockMovementPage(CamelModel):
    movements: list[StockMovementListItem]
    pagination: Pagination


class MovementCreated(CamelModel):
    id_stock_movement: int


class ReversalCreated(CamelModel):
    id_reversal_movement: int


class ResponseMetadata(BaseModel):
    timestamp: datetime


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T
    metadata: ResponseMetadata


class ErrorBody(BaseModel):
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody
    timestamp: datetime
