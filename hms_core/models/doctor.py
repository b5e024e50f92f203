# hms_core/models/doctor.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hms_core.models.base import Base, utc_now


class Doctor(Base):
    """
    A bookable doctor and their weekly availability.

    Profile management lives outside this service; the booking flow only
    reads ``slots`` and stamps ``last_booking_attempt``.
    """

    __tablename__ = "doctors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    specialization: Mapped[str | None] = mapped_column(String(255), nullable=True)
    consultation_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    last_booking_attempt: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Written at the start of every booking to serialize concurrent attempts",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    slots: Mapped[list["DoctorSlot"]] = relationship(
        "DoctorSlot",
        back_populates="doctor",
        cascade="all, delete-orphan",
        order_by="DoctorSlot.position",
    )


class DoctorSlot(Base):
    __tablename__ = "doctor_slots"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    day: Mapped[str] = mapped_column(String(9), nullable=False)  # e.g. "Monday"
    start: Mapped[str] = mapped_column(String(5), nullable=False)  # "HH:MM"
    end: Mapped[str] = mapped_column(String(5), nullable=False)  # "HH:MM"

    doctor: Mapped["Doctor"] = relationship("Doctor", back_populates="slots")
