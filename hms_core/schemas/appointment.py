# hms_core/schemas/appointment.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from hms_core.models.appointment import AppointmentMode, AppointmentStatus, PaymentStatus
from hms_core.utils.datetime_utils import WEEKDAYS, parse_hhmm

OptStr1000 = (
    Annotated[
        str,
        StringConstraints(strip_whitespace=True, max_length=1000),
    ]
    | None
)


class SlotSchema(BaseModel):
    """One weekly availability window, e.g. Monday 09:00-10:00."""

    model_config = ConfigDict(from_attributes=True)

    day: str
    start: str
    end: str

    @field_validator("day")
    @classmethod
    def validate_day(cls, v: str) -> str:
        day = v.strip().capitalize()
        if day not in WEEKDAYS:
            raise ValueError(f"Invalid day '{v}'. Use one of: {', '.join(WEEKDAYS)}")
        return day

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, v: str) -> str:
        parse_hhmm(v)
        return v

    @model_validator(mode="after")
    def validate_order(self) -> "SlotSchema":
        if parse_hhmm(self.start) >= parse_hhmm(self.end):
            raise ValueError("Slot start must be before slot end")
        return self


class DoctorCreate(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    specialization: str | None = None
    consultation_fee: Decimal | None = Field(default=None, ge=0)
    available_slots: list[SlotSchema] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    specialization: str | None = None
    consultation_fee: Decimal | None = None
    available_slots: list[SlotSchema] = Field(validation_alias=AliasChoices("available_slots", "slots"))
    created_at: datetime


class AppointmentCreate(BaseModel):
    """
    Booking request. Every field is checked here so the booking transaction
    never starts on a malformed request.
    """

    doctor_id: UUID
    date_time: datetime  # naive values are clinic wall-clock time
    mode: AppointmentMode
    symptoms: OptStr1000 = None
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)

    model_config = ConfigDict(extra="forbid")


class AppointmentUpdate(BaseModel):
    date_time: datetime | None = None
    mode: AppointmentMode | None = None
    symptoms: OptStr1000 = None

    model_config = ConfigDict(extra="forbid")


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    doctor_id: UUID
    date_time: datetime
    duration_minutes: int
    mode: AppointmentMode
    symptoms: str | None = None
    status: AppointmentStatus
    payment_status: PaymentStatus
    order_id: str | None = None
    payment_id: str | None = None
    refund_id: str | None = None
    amount_minor: int | None = None
    currency: str | None = None
    created_at: datetime


class PaymentReceiptResponse(BaseModel):
    order_id: str
    payment_id: str
    amount_minor: int
    currency: str
    status: str


class RefundReceiptResponse(BaseModel):
    refund_id: str
    status: str


class BookingResponse(BaseModel):
    appointment: AppointmentResponse
    payment: PaymentReceiptResponse


class CancellationResponse(BaseModel):
    appointment: AppointmentResponse
    refund: RefundReceiptResponse


class PaymentVerifyRequest(BaseModel):
    """Checkout callback values returned to the client by the gateway."""

    model_config = ConfigDict(extra="forbid")

    order_id: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
    payment_id: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
    signature: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128)]


class PaymentVerifyResponse(BaseModel):
    verified: bool
    order_id: str
    payment_id: str
