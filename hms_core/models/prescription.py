# hms_core/models/prescription.py
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
from hms_core.models.inventory import Product


class PrescriptionStatus(str, PyEnum):
    PENDING = "PENDING"
    RECEIVED = "RECEIVED"
    DISPENSED = "DISPENSED"
    CANCELLED = "CANCELLED"


class PrescriptionPriority(str, PyEnum):
    ROUTINE = "ROUTINE"
    URGENT = "URGENT"
    EMERGENCY = "EMERGENCY"


# Queue ordering: higher rank is served first
PRIORITY_RANK = {
    PrescriptionPriority.ROUTINE: 0,
    PrescriptionPriority.URGENT: 1,
    PrescriptionPriority.EMERGENCY: 2,
}


class Prescription(Base):
    __tablename__ = "prescriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    doctor_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    patient_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False, index=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[PrescriptionStatus] = mapped_column(
        Enum(PrescriptionStatus, name="prescription_status_enum"),
        nullable=False,
        default=PrescriptionStatus.PENDING,
    )
    priority: Mapped[PrescriptionPriority] = mapped_column(
        Enum(PrescriptionPriority, name="prescription_priority_enum"),
        nullable=False,
        default=PrescriptionPriority.ROUTINE,
    )
    priority_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

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

    items: Mapped[list["PrescriptionItem"]] = relationship(
        "PrescriptionItem",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionItem.position",
    )


class PrescriptionItem(Base):
    __tablename__ = "prescription_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    prescription_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("prescriptions.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Null for free-text medicines that are not tracked in inventory
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )

    medicine_name: Mapped[str] = mapped_column(String(255), nullable=False)
    dosage: Mapped[str | None] = mapped_column(String(100), nullable=True)  # e.g. "500mg"
    frequency: Mapped[str | None] = mapped_column(String(100), nullable=True)  # e.g. "every 8 hours"
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)  # e.g. "5 days"
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    prescription: Mapped["Prescription"] = relationship("Prescription", back_populates="items")
    product: Mapped["Product"] = relationship("Product")
