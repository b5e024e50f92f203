import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from conftest import FAR_EXPIRY, batches_by_number
from hms_core.core.errors import ConflictError, NotFoundError
from hms_core.models.inventory import Batch, InventoryTransaction, Product, ReferenceType, TransactionType
from hms_core.schemas.inventory import ProductCreate, StockReceive
from hms_core.services.inventory_service import (
    create_product,
    list_expiring_batches,
    list_reorder_products,
    list_transactions,
    receive_stock,
)

PHARMACIST_ID = uuid.uuid4()


def receive(db, product_id, batch_number, quantity, expiry=FAR_EXPIRY, **extra):
    return receive_stock(
        db,
        payload=StockReceive(
            product_id=product_id,
            batch_number=batch_number,
            quantity=quantity,
            expiry_date=expiry,
            **extra,
        ),
        performed_by=PHARMACIST_ID,
    )


@pytest.fixture
def product(db):
    return create_product(
        db,
        payload=ProductCreate(sku="PARA-500", name="Paracetamol 500mg", unit_price=Decimal("2.50"), reorder_level=20),
    )


def test_duplicate_sku_is_a_conflict(db, product):
    with pytest.raises(ConflictError, match="PARA-500"):
        create_product(db, payload=ProductCreate(sku="PARA-500", name="Other", unit_price=Decimal("1")))


def test_receive_creates_batch_and_records_transaction(db, product):
    batch = receive(db, product.id, "B1", 40, supplier="Acme Pharma", unit_price=Decimal("2.75"))

    db.expire_all()
    assert batch.quantity == 40
    assert batch.is_active is True
    stored = db.get(Product, product.id)
    assert stored.total_quantity == 40
    assert stored.unit_price == Decimal("2.75")

    (txn,) = list_transactions(db, product_id=product.id)
    assert txn.type == TransactionType.RECEIVE
    assert txn.reference_type == ReferenceType.MANUAL
    assert txn.batch_id == batch.id
    assert txn.quantity == 40
    assert txn.performed_by == PHARMACIST_ID
    assert txn.notes == "Received stock from Acme Pharma"


def test_receive_into_existing_batch_tops_it_up(db, product):
    first = receive(db, product.id, "B1", 10)
    first.quantity = 0
    first.is_active = False
    db.commit()

    second = receive(db, product.id, "B1", 5)

    assert second.id == first.id
    batches = batches_by_number(db, product.id)
    assert list(batches) == ["B1"]
    assert (batches["B1"].quantity, batches["B1"].is_active) == (5, True)
    assert len(list_transactions(db, product_id=product.id)) == 2


def test_receive_for_unknown_product_writes_nothing(db):
    with pytest.raises(NotFoundError):
        receive(db, uuid.uuid4(), "B1", 10)
    assert db.query(Batch).count() == 0
    assert db.query(InventoryTransaction).count() == 0


def test_manufacturing_date_must_precede_expiry():
    with pytest.raises(ValidationError):
        StockReceive(
            product_id=uuid.uuid4(),
            batch_number="B1",
            quantity=1,
            expiry_date=date(2027, 1, 1),
            manufacturing_date=date(2027, 1, 1),
        )


def test_reorder_report_lists_products_at_or_below_level(db, product, make_product):
    receive(db, product.id, "B1", 20)
    plenty = make_product(name="Cetirizine 10mg", batches=[("C1", 500, FAR_EXPIRY)])
    empty = make_product(name="Amoxicillin 250mg")

    names = [p.name for p in list_reorder_products(db)]

    assert names == ["Amoxicillin 250mg", "Paracetamol 500mg"]
    assert plenty.name not in names
    assert empty.total_quantity == 0


def test_expiry_report_window(db, product):
    now = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)
    receive(db, product.id, "EXPIRED", 5, expiry=date(2026, 10, 18))
    receive(db, product.id, "SOON", 5, expiry=date(2026, 11, 1))
    receive(db, product.id, "LATER", 5, expiry=date(2027, 3, 1))

    assert [b.batch_number for b in list_expiring_batches(db, days=30, now=now)] == ["SOON"]
    assert [b.batch_number for b in list_expiring_batches(db, days=365, now=now)] == ["SOON", "LATER"]


def test_transactions_can_be_filtered_by_reference(db, product):
    receive(db, product.id, "B1", 5)
    assert list_transactions(db, reference_id=uuid.uuid4()) == []
    assert len(list_transactions(db)) == 1
