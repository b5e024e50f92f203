# hms_core/api/v1/endpoints/appointments.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hms_core.core.database import get_db
from hms_core.core.locks import DoctorLock
from hms_core.dependencies.authz import CurrentActor, get_current_actor
from hms_core.dependencies.providers import get_doctor_lock, get_payment_gateway
from hms_core.models.appointment import AppointmentStatus
from hms_core.schemas.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    BookingResponse,
    CancellationResponse,
    PaymentReceiptResponse,
    RefundReceiptResponse,
)
from hms_core.services.appointment_service import (
    book_appointment,
    cancel_appointment,
    get_appointment,
    list_appointments,
    update_appointment,
)
from hms_core.services.payment_gateway import PaymentGateway

router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(get_current_actor),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    doctor_lock: DoctorLock = Depends(get_doctor_lock),
) -> BookingResponse:
    """
    Book a paid appointment with a doctor.

    Rules:
    - The requested time (clinic wall clock) must fit inside one of the doctor's
      slots for that weekday, appointment length included.
    - No overlap with another scheduled/completed appointment of the doctor.
    - The payment order is created before the appointment is stored.
    """
    result = book_appointment(
        db,
        gateway=gateway,
        doctor_lock=doctor_lock,
        payload=payload,
        user_id=actor.id,
    )
    receipt = result.receipt
    return BookingResponse(
        appointment=AppointmentResponse.model_validate(result.appointment),
        payment=PaymentReceiptResponse(
            order_id=receipt.order_id,
            payment_id=receipt.payment_id,
            amount_minor=receipt.amount_minor,
            currency=receipt.currency,
            status=receipt.status,
        ),
    )


@router.get("", response_model=list[AppointmentResponse])
def list_my_appointments(
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(get_current_actor),
) -> list[AppointmentResponse]:
    appointments = list_appointments(
        db,
        user_id=actor.id,
        status=status_filter,
        from_date=from_date,
        to_date=to_date,
    )
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def read_appointment(
    appointment_id: UUID,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(get_current_actor),
) -> AppointmentResponse:
    appointment = get_appointment(db, appointment_id=appointment_id, user_id=actor.id)
    return AppointmentResponse.model_validate(appointment)


@router.put("/{appointment_id}", response_model=AppointmentResponse)
def modify_appointment(
    appointment_id: UUID,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(get_current_actor),
    doctor_lock: DoctorLock = Depends(get_doctor_lock),
) -> AppointmentResponse:
    appointment = update_appointment(
        db,
        doctor_lock=doctor_lock,
        appointment_id=appointment_id,
        payload=payload,
        user_id=actor.id,
    )
    return AppointmentResponse.model_validate(appointment)


@router.delete("/{appointment_id}", response_model=CancellationResponse)
def delete_appointment(
    appointment_id: UUID,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(get_current_actor),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CancellationResponse:
    """
    Cancel an appointment and refund its payment.
    """
    result = cancel_appointment(db, gateway=gateway, appointment_id=appointment_id, user_id=actor.id)
    return CancellationResponse(
        appointment=AppointmentResponse.model_validate(result.appointment),
        refund=RefundReceiptResponse(refund_id=result.refund.refund_id, status=result.refund.status),
    )
