import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from hms_core.core.errors import (
    ConflictError,
    GatewayError,
    GatewayTimeoutError,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
)
from hms_core.models.appointment import (
    Appointment,
    AppointmentMode,
    AppointmentStatus,
    PaymentStatus,
)
from hms_core.models.doctor import Doctor
from hms_core.schemas.appointment import AppointmentCreate
from hms_core.services.appointment_service import book_appointment
from hms_core.utils.datetime_utils import as_utc

# 2026-10-19 is a Monday
MONDAY = (2026, 10, 19)


def monday_at(hour, minute):
    return datetime(*MONDAY, hour, minute)


def request(doctor_id, when, amount="500.00"):
    return AppointmentCreate(
        doctor_id=doctor_id,
        date_time=when,
        mode=AppointmentMode.OFFLINE,
        symptoms="Fever since two days",
        amount=Decimal(amount),
    )


def book(db, gateway, doctor_lock, settings, doctor_id, when, user_id=None):
    return book_appointment(
        db,
        gateway=gateway,
        doctor_lock=doctor_lock,
        payload=request(doctor_id, when),
        user_id=user_id or uuid.uuid4(),
        settings=settings,
    )


def count_appointments(db):
    db.expire_all()
    return db.query(Appointment).count()


def test_booking_inside_slot_is_paid_and_stored_in_utc(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    user_id = uuid.uuid4()

    result = book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 15), user_id=user_id)

    appointment = result.appointment
    assert appointment.status == AppointmentStatus.COMPLETED
    assert appointment.payment_status == PaymentStatus.PAID
    assert appointment.user_id == user_id
    assert appointment.order_id == "order_1"
    assert appointment.payment_id == "pay_1"
    assert appointment.amount_minor == 50000
    assert appointment.duration_minutes == 30
    # 09:15 IST == 03:45 UTC
    assert as_utc(appointment.date_time) == datetime(*MONDAY, 3, 45, tzinfo=timezone.utc)

    amount, currency, receipt = gateway.orders[0]
    assert (amount, currency) == (50000, "INR")
    assert receipt == f"receipt_{appointment.id.hex}"


def test_booking_stamps_last_booking_attempt(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    assert doctor.last_booking_attempt is None

    book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 0))

    db.expire_all()
    assert db.get(Doctor, doctor.id).last_booking_attempt is not None


def test_booking_ending_exactly_at_slot_end_is_allowed(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    result = book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 30))
    assert result.appointment.status == AppointmentStatus.COMPLETED


@pytest.mark.parametrize("when", [monday_at(9, 45), monday_at(8, 45), monday_at(10, 0)])
def test_booking_outside_slot_is_rejected_before_payment(db, gateway, doctor_lock, settings, make_doctor, when):
    doctor = make_doctor()

    with pytest.raises(InvalidRequestError) as exc:
        book(db, gateway, doctor_lock, settings, doctor.id, when)

    assert "not within doctor's available slot" in exc.value.detail
    assert gateway.orders == []
    assert count_appointments(db) == 0


def test_booking_on_day_without_slots(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    # 2026-10-20 is a Tuesday
    with pytest.raises(InvalidRequestError, match="no slots on this day"):
        book(db, gateway, doctor_lock, settings, doctor.id, datetime(2026, 10, 20, 9, 15))


def test_booking_doctor_without_any_slots(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor(slots=())
    with pytest.raises(InvalidRequestError, match="no slots available"):
        book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 15))


def test_booking_unknown_doctor(db, gateway, doctor_lock, settings):
    with pytest.raises(NotFoundError, match="Doctor not found"):
        book(db, gateway, doctor_lock, settings, uuid.uuid4(), monday_at(9, 15))
    assert gateway.orders == []


def test_booking_requires_a_user(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    with pytest.raises(UnauthorizedError):
        book_appointment(
            db,
            gateway=gateway,
            doctor_lock=doctor_lock,
            payload=request(doctor.id, monday_at(9, 15)),
            user_id=None,
            settings=settings,
        )


def test_aware_datetime_is_resolved_to_clinic_time(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    # 03:45 UTC is 09:15 on the clinic's wall clock
    result = book(
        db, gateway, doctor_lock, settings, doctor.id, datetime(*MONDAY, 3, 45, tzinfo=timezone.utc)
    )
    assert as_utc(result.appointment.date_time) == datetime(*MONDAY, 3, 45, tzinfo=timezone.utc)


def test_seconds_are_truncated(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    result = book(db, gateway, doctor_lock, settings, doctor.id, datetime(*MONDAY, 9, 29, 59))
    assert as_utc(result.appointment.date_time) == datetime(*MONDAY, 3, 59, tzinfo=timezone.utc)


def test_overlapping_booking_is_a_conflict(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 0))

    with pytest.raises(ConflictError, match="Slot already booked"):
        book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 15))

    assert len(gateway.orders) == 1
    assert count_appointments(db) == 1


def test_back_to_back_bookings_do_not_overlap(db, gateway, doctor_lock, settings, make_doctor):
    doctor = make_doctor()
    book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 0))
    book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 30))
    assert count_appointments(db) == 2


def test_same_time_with_another_doctor_is_fine(db, gateway, doctor_lock, settings, make_doctor):
    first = make_doctor(name="Dr. One")
    second = make_doctor(name="Dr. Two")
    book(db, gateway, doctor_lock, settings, first.id, monday_at(9, 0))
    book(db, gateway, doctor_lock, settings, second.id, monday_at(9, 0))
    assert count_appointments(db) == 2


@pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.PENDING])
def test_non_blocking_appointments_do_not_occupy_the_slot(
    db, gateway, doctor_lock, settings, make_doctor, status
):
    doctor = make_doctor()
    db.add(
        Appointment(
            user_id=uuid.uuid4(),
            doctor_id=doctor.id,
            date_time=datetime(*MONDAY, 3, 30, tzinfo=timezone.utc),
            duration_minutes=30,
            mode=AppointmentMode.ONLINE,
            status=status,
            payment_status=PaymentStatus.PENDING,
        )
    )
    db.commit()

    result = book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 0))
    assert result.appointment.payment_status == PaymentStatus.PAID


@pytest.mark.parametrize("error", [GatewayError("declined"), GatewayTimeoutError("timed out")])
def test_gateway_failure_rolls_back_everything(db, gateway, doctor_lock, settings, make_doctor, error):
    doctor = make_doctor()
    gateway.order_error = error

    with pytest.raises(type(error)):
        book(db, gateway, doctor_lock, settings, doctor.id, monday_at(9, 15))

    assert count_appointments(db) == 0
    assert db.get(Doctor, doctor.id).last_booking_attempt is None


def test_concurrent_bookings_for_one_slot_admit_exactly_one(
    db, session_factory, gateway, doctor_lock, settings, make_doctor
):
    doctor_id = make_doctor().id
    # Worker threads use their own sessions; end the fixture session's transaction first
    db.rollback()

    attempts = 8
    barrier = threading.Barrier(attempts)
    outcomes = []
    outcomes_lock = threading.Lock()

    def attempt():
        session = session_factory()
        try:
            barrier.wait()
            book(session, gateway, doctor_lock, settings, doctor_id, monday_at(9, 15))
            outcome = "booked"
        except ConflictError:
            outcome = "conflict"
        except Exception as exc:
            outcome = repr(exc)
        finally:
            session.close()
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=attempt) for _ in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["booked"] + ["conflict"] * (attempts - 1)
    assert len(gateway.orders) == 1

    session = session_factory()
    try:
        assert session.query(Appointment).filter(Appointment.doctor_id == doctor_id).count() == 1
    finally:
        session.close()
