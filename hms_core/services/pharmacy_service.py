# hms_core/services/pharmacy_service.py
from __future__ import annotations

import logging
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from hms_core.core.config import get_settings
from hms_core.core.database import unit_of_work
from hms_core.core.errors import InsufficientStockError, InvalidRequestError, NotFoundError
from hms_core.models.inventory import (
    Batch,
    InventoryTransaction,
    Product,
    ReferenceType,
    TransactionType,
)
from hms_core.models.prescription import (
    PRIORITY_RANK,
    Prescription,
    PrescriptionItem,
    PrescriptionStatus,
)
from hms_core.schemas.pharmacy import PrescriptionCreate
from hms_core.utils.datetime_utils import clinic_today

logger = logging.getLogger(__name__)

QUEUE_STATUSES = (PrescriptionStatus.RECEIVED, PrescriptionStatus.PENDING)


def send_to_pharmacy(db: Session, *, doctor_id: UUID, payload: PrescriptionCreate) -> Prescription:
    """
    Doctor hands a prescription to the pharmacy; it lands in the queue as RECEIVED.
    Items linked to a product must reference an existing product.
    """
    product_ids = {item.product_id for item in payload.items if item.product_id}
    if product_ids:
        found = {pid for (pid,) in db.query(Product.id).filter(Product.id.in_(product_ids)).all()}
        missing = product_ids - found
        if missing:
            raise NotFoundError(f"Product not found: {', '.join(sorted(str(m) for m in missing))}")

    prescription = Prescription(
        doctor_id=doctor_id,
        patient_id=payload.patient_id,
        appointment_id=payload.appointment_id,
        priority=payload.priority,
        priority_rank=PRIORITY_RANK[payload.priority],
        notes=payload.notes,
        status=PrescriptionStatus.RECEIVED,
        items=[
            PrescriptionItem(
                position=i,
                product_id=item.product_id,
                medicine_name=item.medicine_name,
                dosage=item.dosage,
                frequency=item.frequency,
                duration=item.duration,
                quantity=item.quantity,
            )
            for i, item in enumerate(payload.items)
        ],
    )

    with unit_of_work(db):
        db.add(prescription)

    logger.info("Prescription sent to pharmacy id=%s priority=%s", prescription.id, prescription.priority.value)
    return prescription


def get_pharmacy_queue(db: Session, *, status: PrescriptionStatus | None = None) -> list[Prescription]:
    """
    Pharmacy work queue: most urgent first, then first come first served.
    Without a status filter only RECEIVED and PENDING prescriptions are listed.
    """
    query = db.query(Prescription).options(selectinload(Prescription.items))
    if status is not None:
        query = query.filter(Prescription.status == status)
    else:
        query = query.filter(Prescription.status.in_(QUEUE_STATUSES))

    return query.order_by(Prescription.priority_rank.desc(), Prescription.created_at.asc()).all()


def _allocatable_batches(db: Session, product_id: UUID, today: date) -> list[Batch]:
    """Active, unexpired batches with stock, soonest expiry first (FEFO), row-locked."""
    return (
        db.query(Batch)
        .filter(
            Batch.product_id == product_id,
            Batch.is_active.is_(True),
            Batch.quantity > 0,
            Batch.expiry_date > today,
        )
        .order_by(Batch.expiry_date.asc(), Batch.created_at.asc(), Batch.batch_number.asc())
        .with_for_update()
        .populate_existing()
        .all()
    )


def _allocate_item(
    db: Session,
    *,
    prescription: Prescription,
    item: PrescriptionItem,
    performed_by: UUID,
    today: date,
) -> None:
    batches = _allocatable_batches(db, item.product_id, today)
    available = sum(b.quantity for b in batches)
    if available < item.quantity:
        logger.warning(
            "Insufficient stock prescription=%s medicine=%s available=%s required=%s",
            prescription.id,
            item.medicine_name,
            available,
            item.quantity,
        )
        raise InsufficientStockError(item.medicine_name, available, item.quantity)

    remaining = item.quantity
    for batch in batches:
        if remaining <= 0:
            break

        deduct = min(batch.quantity, remaining)
        batch.quantity -= deduct
        if batch.quantity == 0:
            batch.is_active = False

        db.add(
            InventoryTransaction(
                product_id=item.product_id,
                batch_id=batch.id,
                type=TransactionType.ISSUE,
                quantity=deduct,
                reference_type=ReferenceType.PRESCRIPTION,
                reference_id=prescription.id,
                performed_by=performed_by,
            )
        )
        remaining -= deduct

    product = db.query(Product).filter(Product.id == item.product_id).with_for_update().populate_existing().one()
    product.total_quantity -= item.quantity
    # Later items of the same product must see these deductions
    db.flush()


def dispense_prescription(
    db: Session,
    *,
    prescription_id: UUID,
    performed_by: UUID,
    now: datetime | None = None,
) -> Prescription:
    """
    Dispense every inventory-linked item of a prescription, all or nothing.

    Each item is drawn from the product's batches in expiry order (FEFO).
    If any single item cannot be covered the whole call fails and no batch,
    product, transaction or prescription change is kept.
    """
    today = clinic_today(get_settings().clinic_timezone, now)

    with unit_of_work(db):
        prescription = (
            db.query(Prescription)
            .options(selectinload(Prescription.items))
            .filter(Prescription.id == prescription_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not prescription:
            raise NotFoundError("Prescription not found")
        if prescription.status == PrescriptionStatus.DISPENSED:
            raise InvalidRequestError("Prescription already dispensed")
        if prescription.status == PrescriptionStatus.CANCELLED:
            raise InvalidRequestError("Cannot dispense a cancelled prescription")

        for item in prescription.items:
            # Free-text medicines are not tracked in inventory
            if item.product_id is None:
                continue
            _allocate_item(db, prescription=prescription, item=item, performed_by=performed_by, today=today)

        prescription.status = PrescriptionStatus.DISPENSED

    logger.info("Prescription dispensed id=%s by=%s", prescription_id, performed_by)
    return prescription
