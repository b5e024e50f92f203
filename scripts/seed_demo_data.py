#!/usr/bin/env python3
# scripts/seed_demo_data.py
"""
Booking & pharmacy demo data seeder.

Creates, through the regular services (so every invariant holds):
- 3 doctors with weekly slots (Mon-Sat mornings, some afternoons)
- a small medicine catalog
- 2-3 batches per product with staggered expiry dates, received via
  receive_stock so RECEIVE transactions and product totals line up

Run:
  python -m scripts.seed_demo_data --seed
  python -m scripts.seed_demo_data --seed --batches-per-product 3
"""
from __future__ import annotations

import argparse
import logging
import random
import uuid
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from hms_core.core.database import SessionLocal, engine
from hms_core.models.base import Base
import hms_core.models  # noqa: F401
from hms_core.models.doctor import Doctor
from hms_core.models.inventory import Product
from hms_core.schemas.appointment import DoctorCreate, SlotSchema
from hms_core.schemas.inventory import ProductCreate, StockReceive
from hms_core.services.appointment_service import create_doctor
from hms_core.services.inventory_service import create_product, receive_stock
from hms_core.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

# Fixed actor id recorded as performed_by on seeded stock movements
SEED_ACTOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

DEMO_DOCTORS = [
    ("Dr. Asha Menon", "General Medicine", Decimal("500.00"), [("09:00", "13:00")], True),
    ("Dr. Rohan Iyer", "Pediatrics", Decimal("650.00"), [("10:00", "12:00"), ("16:00", "18:00")], False),
    ("Dr. Kavya Rao", "Dermatology", Decimal("800.00"), [("14:00", "17:30")], False),
]

DEMO_PRODUCTS = [
    ("PARA-500", "Paracetamol 500mg", "Paracetamol", "Tablet", Decimal("2.50")),
    ("AMOX-250", "Amoxicillin 250mg", "Amoxicillin", "Capsule", Decimal("6.00")),
    ("CETI-10", "Cetirizine 10mg", "Cetirizine", "Tablet", Decimal("1.80")),
    ("ORS-200", "ORS Sachet", "Oral rehydration salts", "Powder", Decimal("15.00")),
    ("IBU-400", "Ibuprofen 400mg", "Ibuprofen", "Tablet", Decimal("3.20")),
]

WORKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def seed_doctors(db: Session) -> int:
    created = 0
    for name, specialization, fee, windows, saturday in DEMO_DOCTORS:
        if db.query(Doctor).filter(Doctor.name == name).first():
            continue
        days = WORKDAYS if saturday else WORKDAYS[:-1]
        slots = [SlotSchema(day=d, start=s, end=e) for d in days for (s, e) in windows]
        create_doctor(
            db,
            payload=DoctorCreate(
                name=name,
                specialization=specialization,
                consultation_fee=fee,
                available_slots=slots,
            ),
        )
        created += 1
    return created


def seed_inventory(db: Session, batches_per_product: int) -> int:
    today = utc_now().date()
    received = 0
    for sku, name, generic, category, price in DEMO_PRODUCTS:
        product = db.query(Product).filter(Product.sku == sku).first()
        if not product:
            product = create_product(
                db,
                payload=ProductCreate(
                    sku=sku,
                    name=name,
                    generic_name=generic,
                    category=category,
                    unit_price=price,
                    reorder_level=50,
                ),
            )

        for n in range(batches_per_product):
            receive_stock(
                db,
                payload=StockReceive(
                    product_id=product.id,
                    batch_number=f"{sku}-B{n + 1:02d}",
                    quantity=random.randint(20, 120),
                    expiry_date=today + timedelta(days=random.randint(20, 540)),
                    supplier="Demo Pharma Distributors",
                ),
                performed_by=SEED_ACTOR_ID,
            )
            received += 1
    return received


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed booking & pharmacy demo data")
    parser.add_argument("--seed", action="store_true", help="Create demo doctors, products and batches")
    parser.add_argument("--batches-per-product", type=int, default=2, help="Batches received per product (default: 2)")
    args = parser.parse_args()

    if not args.seed:
        parser.print_help()
        raise SystemExit(1)

    logging.basicConfig(level=logging.INFO)
    Base.metadata.create_all(bind=engine)

    db: Session = SessionLocal()
    try:
        doctors = seed_doctors(db)
        batches = seed_inventory(db, args.batches_per_product)
        logger.info("Seeded doctors=%s batches=%s", doctors, batches)
    finally:
        db.close()


if __name__ == "__main__":
    main()
