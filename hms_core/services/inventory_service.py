# hms_core/services/inventory_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from hms_core.core.config import get_settings
from hms_core.core.database import unit_of_work
from hms_core.core.errors import ConflictError, NotFoundError
from hms_core.models.inventory import (
    Batch,
    InventoryTransaction,
    Product,
    ReferenceType,
    TransactionType,
)
from hms_core.schemas.inventory import ProductCreate, StockReceive
from hms_core.utils.datetime_utils import clinic_today

logger = logging.getLogger(__name__)


def create_product(db: Session, *, payload: ProductCreate) -> Product:
    existing = db.query(Product).filter(Product.sku == payload.sku).first()
    if existing:
        raise ConflictError(f"A product with SKU '{payload.sku}' already exists.")

    product = Product(
        sku=payload.sku,
        name=payload.name,
        generic_name=payload.generic_name,
        category=payload.category,
        manufacturer=payload.manufacturer,
        reorder_level=payload.reorder_level,
        unit_price=payload.unit_price,
        total_quantity=0,
    )
    with unit_of_work(db):
        db.add(product)
    return product


def receive_stock(db: Session, *, payload: StockReceive, performed_by: UUID) -> Batch:
    """
    Add stock to a product's batch, creating the batch on first receipt.

    Batch quantity, the RECEIVE transaction and the product total are
    written in one unit of work.
    """
    with unit_of_work(db):
        product = (
            db.query(Product).filter(Product.id == payload.product_id).with_for_update().populate_existing().first()
        )
        if not product:
            raise NotFoundError("Product not found")

        batch = (
            db.query(Batch)
            .filter(Batch.product_id == product.id, Batch.batch_number == payload.batch_number)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if batch:
            batch.quantity += payload.quantity
            batch.is_active = True
        else:
            batch = Batch(
                product_id=product.id,
                batch_number=payload.batch_number,
                quantity=payload.quantity,
                expiry_date=payload.expiry_date,
                manufacturing_date=payload.manufacturing_date,
                supplier=payload.supplier,
                is_active=True,
            )
            db.add(batch)
            db.flush()  # assigns batch.id

        db.add(
            InventoryTransaction(
                product_id=product.id,
                batch_id=batch.id,
                type=TransactionType.RECEIVE,
                quantity=payload.quantity,
                reference_type=ReferenceType.MANUAL,
                performed_by=performed_by,
                notes=f"Received stock from {payload.supplier}" if payload.supplier else "Received stock",
            )
        )

        product.total_quantity += payload.quantity
        if payload.unit_price is not None:
            product.unit_price = payload.unit_price

    logger.info(
        "Stock received product=%s batch=%s quantity=%s",
        payload.product_id,
        payload.batch_number,
        payload.quantity,
    )
    return batch


def list_reorder_products(db: Session) -> list[Product]:
    """Products at or below their reorder level."""
    return (
        db.query(Product)
        .filter(Product.total_quantity <= Product.reorder_level)
        .order_by(Product.name.asc())
        .all()
    )


def list_expiring_batches(db: Session, *, days: int | None = None, now: datetime | None = None) -> list[Batch]:
    """Active batches with stock that expire within the next `days` days."""
    settings = get_settings()
    today = clinic_today(settings.clinic_timezone, now)
    threshold = today + timedelta(days=settings.expiry_alert_days if days is None else days)

    return (
        db.query(Batch)
        .filter(
            Batch.expiry_date >= today,
            Batch.expiry_date <= threshold,
            Batch.quantity > 0,
            Batch.is_active.is_(True),
        )
        .order_by(Batch.expiry_date.asc())
        .all()
    )


def list_transactions(
    db: Session,
    *,
    product_id: UUID | None = None,
    reference_id: UUID | None = None,
) -> list[InventoryTransaction]:
    query = db.query(InventoryTransaction)
    if product_id is not None:
        query = query.filter(InventoryTransaction.product_id == product_id)
    if reference_id is not None:
        query = query.filter(InventoryTransaction.reference_id == reference_id)
    return query.order_by(InventoryTransaction.created_at.asc()).all()
