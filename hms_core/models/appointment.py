# hms_core/models/appointment.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hms_core.models.base import Base, utc_now
from hms_core.models.doctor import Doctor


class AppointmentStatus(str, PyEnum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class AppointmentMode(str, PyEnum):
    ONLINE = "online"
    OFFLINE = "offline"


# Statuses that occupy a doctor's time window
BLOCKING_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED)


class Appointment(Base):
    __tablename__ = "appointments"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Booker (patient account); accounts live outside this service
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("doctors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Appointment Details
    date_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        doc="Start of the appointment, stored in UTC",
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    mode: Mapped[AppointmentMode] = mapped_column(
        Enum(AppointmentMode, name="appointment_mode_enum"),
        nullable=False,
    )
    symptoms: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status_enum"),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )

    # Payment
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status_enum"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    order_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    refund_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount_minor: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        doc="Charged amount in minor currency units (paise)",
    )
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    doctor: Mapped["Doctor"] = relationship("Doctor")
