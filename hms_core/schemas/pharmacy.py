# hms_core/schemas/pharmacy.py
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

from hms_core.models.prescription import PrescriptionPriority, PrescriptionStatus

OptStr100 = (
    Annotated[
        str,
        StringConstraints(strip_whitespace=True, max_length=100),
    ]
    | None
)


class PrescriptionItemCreate(BaseModel):
    product_id: UUID | None = None  # None for medicines not tracked in inventory
    medicine_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    dosage: OptStr100 = None
    frequency: OptStr100 = None
    duration: OptStr100 = None
    quantity: int = Field(ge=1)

    @field_validator("dosage", "frequency", "duration", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PrescriptionCreate(BaseModel):
    patient_id: UUID
    appointment_id: UUID | None = None
    items: list[PrescriptionItemCreate] = Field(min_length=1)
    priority: PrescriptionPriority = PrescriptionPriority.ROUTINE
    notes: str | None = Field(default=None, max_length=1000)

    model_config = ConfigDict(extra="forbid")


class PrescriptionItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID | None = None
    medicine_name: str
    dosage: str | None
    frequency: str | None
    duration: str | None
    quantity: int


class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    doctor_id: UUID
    patient_id: UUID
    appointment_id: UUID | None
    status: PrescriptionStatus
    priority: PrescriptionPriority
    notes: str | None = None
    created_at: datetime
    items: list[PrescriptionItemResponse]
