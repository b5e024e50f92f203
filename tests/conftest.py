import os

os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("CLINIC_TIMEZONE", "Asia/Kolkata")
os.environ.setdefault("APPOINTMENT_DURATION_MINUTES", "30")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test-razorpay-secret")

import threading
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from hms_core.core.config import Settings
from hms_core.core.database import build_engine
from hms_core.core.locks import InProcessDoctorLock
from hms_core.models.base import Base
import hms_core.models  # noqa: F401
from hms_core.models.doctor import Doctor, DoctorSlot
from hms_core.models.inventory import Batch, Product
from hms_core.services.payment_gateway import OrderReceipt, RefundReceipt


class FakeGateway:
    """Records calls; set ``order_error`` / ``refund_error`` to make them fail."""

    def __init__(self):
        self.orders = []
        self.refunds = []
        self.order_error = None
        self.refund_error = None
        self._lock = threading.Lock()

    def create_order(self, amount_minor, currency, receipt):
        if self.order_error is not None:
            raise self.order_error
        with self._lock:
            self.orders.append((amount_minor, currency, receipt))
            n = len(self.orders)
        return OrderReceipt(
            order_id=f"order_{n}",
            payment_id=f"pay_{n}",
            amount_minor=amount_minor,
            currency=currency,
            status="paid",
        )

    def refund(self, payment_id, amount_minor):
        if self.refund_error is not None:
            raise self.refund_error
        with self._lock:
            self.refunds.append((payment_id, amount_minor))
            n = len(self.refunds)
        return RefundReceipt(refund_id=f"rfnd_{n}", status="processed")


@pytest.fixture
def settings():
    return Settings(
        clinic_timezone="Asia/Kolkata",
        appointment_duration_minutes=30,
        payment_currency="INR",
    )


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'hms_core_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def doctor_lock():
    return InProcessDoctorLock(timeout=5.0)


@pytest.fixture
def make_doctor(db):
    def _make(slots=(("Monday", "09:00", "10:00"),), name="Dr. Asha Menon"):
        doctor = Doctor(
            name=name,
            specialization="General Medicine",
            consultation_fee=Decimal("500.00"),
            slots=[
                DoctorSlot(position=i, day=day, start=start, end=end)
                for i, (day, start, end) in enumerate(slots)
            ],
        )
        db.add(doctor)
        db.commit()
        return doctor

    return _make


@pytest.fixture
def make_product(db):
    def _make(sku=None, name="Paracetamol 500mg", batches=(), reorder_level=10):
        product = Product(
            sku=sku or f"SKU-{uuid.uuid4().hex[:8]}",
            name=name,
            unit_price=Decimal("2.50"),
            reorder_level=reorder_level,
            total_quantity=sum(qty for _, qty, _ in batches),
        )
        db.add(product)
        db.flush()
        for batch_number, qty, expiry in batches:
            db.add(
                Batch(
                    product_id=product.id,
                    batch_number=batch_number,
                    quantity=qty,
                    expiry_date=expiry,
                    is_active=True,
                )
            )
        db.commit()
        return product

    return _make


def batches_by_number(db, product_id):
    db.expire_all()
    return {b.batch_number: b for b in db.query(Batch).filter(Batch.product_id == product_id).all()}


FAR_EXPIRY = date(2027, 1, 1)
LATER_EXPIRY = date(2027, 6, 1)
