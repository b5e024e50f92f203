# hms_core/services/appointment_service.py
from __future__ import annotations

import logging
import uuid
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from hms_core.core.config import Settings, get_settings
from hms_core.core.database import unit_of_work
from hms_core.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
)
from hms_core.core.locks import DoctorLock
from hms_core.models.appointment import (
    BLOCKING_STATUSES,
    Appointment,
    AppointmentStatus,
    PaymentStatus,
)
from hms_core.models.doctor import Doctor, DoctorSlot
from hms_core.schemas.appointment import AppointmentCreate, AppointmentUpdate, DoctorCreate
from hms_core.services.payment_gateway import (
    OrderReceipt,
    PaymentGateway,
    RefundReceipt,
    to_minor_units,
)
from hms_core.utils.datetime_utils import (
    as_utc,
    minute_of_day,
    parse_hhmm,
    to_clinic_time,
    utc_now,
    weekday_name,
)

logger = logging.getLogger(__name__)

# Appointments starting earlier than this before a requested start cannot reach it
_OVERLAP_LOOKBACK = timedelta(hours=24)


@dataclass
class BookingResult:
    appointment: Appointment
    receipt: OrderReceipt


@dataclass
class CancellationResult:
    appointment: Appointment
    refund: RefundReceipt


# -------------------------
# Doctors
# -------------------------
def create_doctor(db: Session, *, payload: DoctorCreate) -> Doctor:
    doctor = Doctor(
        name=payload.name,
        specialization=payload.specialization,
        consultation_fee=payload.consultation_fee,
        slots=[
            DoctorSlot(position=i, day=slot.day, start=slot.start, end=slot.end)
            for i, slot in enumerate(payload.available_slots)
        ],
    )
    with unit_of_work(db):
        db.add(doctor)
    return doctor


def get_doctor(db: Session, *, doctor_id: UUID) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
    if not doctor:
        raise NotFoundError("Doctor not found")
    return doctor


# -------------------------
# Slot and overlap rules
# -------------------------
def _lock_doctor(db: Session, doctor_id: UUID) -> Doctor:
    """
    Load the doctor row FOR UPDATE and stamp it, making the doctor row the
    write-serialization point for concurrent bookings.
    """
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).with_for_update().populate_existing().first()
    if not doctor:
        raise NotFoundError("Doctor not found")
    doctor.last_booking_attempt = utc_now()
    db.flush()
    return doctor


def _resolve_start(requested: datetime, settings: Settings) -> datetime:
    """Clinic wall-clock start, truncated to the minute."""
    return to_clinic_time(requested, settings.clinic_timezone).replace(second=0, microsecond=0)


def ensure_within_slot(doctor: Doctor, start_local: datetime, duration_minutes: int) -> None:
    """
    The appointment must start and end inside one of the doctor's slots for
    that weekday: slot.start <= start and start + duration <= slot.end.
    """
    if not doctor.slots:
        raise InvalidRequestError("Doctor has no slots available")

    day = weekday_name(start_local)
    day_slots = [s for s in doctor.slots if s.day == day]
    if not day_slots:
        raise InvalidRequestError("Doctor has no slots on this day")

    start_minute = minute_of_day(start_local)
    for slot in day_slots:
        if parse_hhmm(slot.start) <= start_minute and start_minute + duration_minutes <= parse_hhmm(slot.end):
            return

    raise InvalidRequestError(
        f"Requested time is not within doctor's available slot or exceeds {duration_minutes} minutes"
    )


def find_overlapping_appointment(
    db: Session,
    *,
    doctor_id: UUID,
    start_utc: datetime,
    end_utc: datetime,
    exclude_id: UUID | None = None,
) -> Appointment | None:
    """
    First scheduled/completed appointment of the doctor whose half-open
    interval [date_time, date_time + duration) intersects [start_utc, end_utc).
    """
    query = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.date_time < end_utc,
        Appointment.date_time > start_utc - _OVERLAP_LOOKBACK,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)

    for existing in query.order_by(Appointment.date_time.asc()).all():
        existing_start = as_utc(existing.date_time)
        existing_end = existing_start + timedelta(minutes=existing.duration_minutes)
        if existing_start < end_utc and existing_end > start_utc:
            return existing
    return None


# -------------------------
# Booking
# -------------------------
def book_appointment(
    db: Session,
    *,
    gateway: PaymentGateway,
    doctor_lock: DoctorLock,
    payload: AppointmentCreate,
    user_id: UUID | None,
    settings: Settings | None = None,
) -> BookingResult:
    """
    Book a paid appointment.

    Runs under the doctor's lock and inside one unit of work:
    lock doctor -> slot check -> overlap check -> create payment order -> insert.
    Any failure rolls back every write. The payment order is created on the
    gateway before commit and is not undone if the commit then fails.
    """
    if user_id is None:
        raise UnauthorizedError("User not authenticated")

    settings = settings or get_settings()
    duration = settings.appointment_duration_minutes
    start_local = _resolve_start(payload.date_time, settings)
    start_utc = as_utc(start_local)
    end_utc = start_utc + timedelta(minutes=duration)

    with doctor_lock.hold(payload.doctor_id):
        with unit_of_work(db):
            doctor = _lock_doctor(db, payload.doctor_id)
            ensure_within_slot(doctor, start_local, duration)

            if find_overlapping_appointment(db, doctor_id=doctor.id, start_utc=start_utc, end_utc=end_utc):
                raise ConflictError("Slot already booked for another patient")

            appointment_id = uuid.uuid4()
            receipt = gateway.create_order(
                to_minor_units(payload.amount),
                settings.payment_currency,
                f"receipt_{appointment_id.hex}",
            )

            appointment = Appointment(
                id=appointment_id,
                user_id=user_id,
                doctor_id=doctor.id,
                date_time=start_utc,
                duration_minutes=duration,
                mode=payload.mode,
                symptoms=payload.symptoms,
                status=AppointmentStatus.COMPLETED,
                payment_status=PaymentStatus.PAID,
                order_id=receipt.order_id,
                payment_id=receipt.payment_id,
                amount_minor=receipt.amount_minor,
                currency=receipt.currency,
            )
            db.add(appointment)

    logger.info(
        "Appointment booked id=%s doctor=%s start=%s order=%s",
        appointment_id,
        payload.doctor_id,
        start_utc.isoformat(),
        receipt.order_id,
    )
    return BookingResult(appointment=appointment, receipt=receipt)


def _get_owned_appointment(db: Session, appointment_id: UUID, user_id: UUID | None, action: str) -> Appointment:
    if user_id is None:
        raise UnauthorizedError("User not authenticated")

    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise NotFoundError("Appointment not found")
    if appointment.user_id != user_id:
        raise ForbiddenError(f"You are not allowed to {action} this appointment")
    return appointment


def _ensure_updatable(appointment: Appointment) -> None:
    if appointment.status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
        raise InvalidRequestError("Cannot update a cancelled or completed appointment")


def get_appointment(db: Session, *, appointment_id: UUID, user_id: UUID | None) -> Appointment:
    return _get_owned_appointment(db, appointment_id, user_id, "view")


def list_appointments(
    db: Session,
    *,
    user_id: UUID | None = None,
    doctor_id: UUID | None = None,
    status: AppointmentStatus | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
) -> list[Appointment]:
    """
    Basic appointment listing helper with optional filters.
    """
    query = db.query(Appointment)

    if user_id is not None:
        query = query.filter(Appointment.user_id == user_id)
    if doctor_id is not None:
        query = query.filter(Appointment.doctor_id == doctor_id)
    if status is not None:
        query = query.filter(Appointment.status == status)
    if from_date is not None:
        query = query.filter(Appointment.date_time >= as_utc(from_date))
    if to_date is not None:
        query = query.filter(Appointment.date_time <= as_utc(to_date))

    return query.order_by(Appointment.date_time.desc()).all()


def update_appointment(
    db: Session,
    *,
    doctor_lock: DoctorLock,
    appointment_id: UUID,
    payload: AppointmentUpdate,
    user_id: UUID | None,
    settings: Settings | None = None,
) -> Appointment:
    """
    Patch date_time / mode / symptoms of an open appointment (booker only).

    A new date_time goes through the same slot and overlap rules as a fresh
    booking, under the doctor's lock, so a reschedule cannot double-book.
    """
    settings = settings or get_settings()
    appointment = _get_owned_appointment(db, appointment_id, user_id, "update")
    _ensure_updatable(appointment)

    changes = payload.model_dump(exclude_none=True)
    rescheduling = "date_time" in changes
    doctor_id = appointment.doctor_id
    if rescheduling:
        # Never wait on the doctor lock while holding a database transaction
        db.rollback()
    guard = doctor_lock.hold(doctor_id) if rescheduling else nullcontext()

    with guard:
        with unit_of_work(db):
            if rescheduling:
                # Status may have moved while waiting for the lock
                db.refresh(appointment, with_for_update=True)
                _ensure_updatable(appointment)

                doctor = _lock_doctor(db, appointment.doctor_id)
                duration = appointment.duration_minutes
                start_local = _resolve_start(payload.date_time, settings)
                start_utc = as_utc(start_local)
                ensure_within_slot(doctor, start_local, duration)

                conflict = find_overlapping_appointment(
                    db,
                    doctor_id=doctor.id,
                    start_utc=start_utc,
                    end_utc=start_utc + timedelta(minutes=duration),
                    exclude_id=appointment.id,
                )
                if conflict:
                    raise ConflictError("Slot already booked for another patient")
                appointment.date_time = start_utc

            if "mode" in changes:
                appointment.mode = payload.mode
            if "symptoms" in changes:
                appointment.symptoms = payload.symptoms

    logger.info("Appointment updated id=%s fields=%s", appointment_id, sorted(changes))
    return appointment


def cancel_appointment(
    db: Session,
    *,
    gateway: PaymentGateway,
    appointment_id: UUID,
    user_id: UUID | None,
) -> CancellationResult:
    """
    Cancel a paid appointment and refund it.

    The refund is requested while the appointment row is locked; if the
    gateway fails the appointment keeps its prior state and the error
    propagates for manual follow-up.
    """
    _get_owned_appointment(db, appointment_id, user_id, "cancel")

    with unit_of_work(db):
        # Re-read under the row lock: a concurrent cancel may have committed since the check above
        appointment = (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id)
            .with_for_update()
            .populate_existing()
            .one()
        )

        if appointment.status == AppointmentStatus.CANCELLED:
            raise InvalidRequestError("Appointment already cancelled")
        if appointment.payment_status != PaymentStatus.PAID or not appointment.payment_id:
            raise InvalidRequestError("Cannot refund as payment was not completed")

        try:
            refund = gateway.refund(appointment.payment_id, appointment.amount_minor)
        except Exception:
            logger.exception("Refund failed appointment=%s payment=%s", appointment_id, appointment.payment_id)
            raise

        appointment.status = AppointmentStatus.CANCELLED
        appointment.payment_status = PaymentStatus.REFUNDED
        appointment.refund_id = refund.refund_id

    logger.info("Appointment cancelled id=%s refund=%s", appointment_id, refund.refund_id)
    return CancellationResult(appointment=appointment, refund=refund)
