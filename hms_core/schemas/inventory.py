# hms_core/schemas/inventory.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from hms_core.models.inventory import ReferenceType, TransactionType

NameStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=255),
]

OptStr255 = (
    Annotated[
        str,
        StringConstraints(strip_whitespace=True, max_length=255),
    ]
    | None
)


class ProductCreate(BaseModel):
    """
    Used when registering a new product.

    - Optional strings accept None; empty strings from UI are normalized to None.
    """

    sku: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    name: NameStr
    generic_name: OptStr255 = None
    category: OptStr255 = None
    manufacturer: OptStr255 = None
    reorder_level: int = Field(default=10, ge=0)
    unit_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)

    model_config = ConfigDict(extra="forbid")

    @field_validator("generic_name", "category", "manufacturer", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sku: str
    name: str
    generic_name: str | None = None
    category: str | None = None
    manufacturer: str | None = None
    total_quantity: int
    reorder_level: int
    unit_price: Decimal
    is_active: bool
    created_at: datetime


class StockReceive(BaseModel):
    product_id: UUID
    batch_number: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
    quantity: int = Field(ge=1)
    expiry_date: date
    manufacturing_date: date | None = None
    supplier: OptStr255 = None
    unit_price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_dates(self) -> "StockReceive":
        if self.manufacturing_date and self.manufacturing_date >= self.expiry_date:
            raise ValueError("Manufacturing date must be before expiry date")
        return self


class BatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    batch_number: str
    quantity: int
    expiry_date: date
    manufacturing_date: date | None = None
    supplier: str | None = None
    is_active: bool


class InventoryTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    batch_id: UUID | None = None
    type: TransactionType
    quantity: int
    reference_type: ReferenceType | None = None
    reference_id: UUID | None = None
    performed_by: UUID | None = None
    notes: str | None = None
    created_at: datetime
