# hms_core/api/v1/endpoints/inventory.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hms_core.core.database import get_db
from hms_core.dependencies.authz import CurrentActor, RoleName, require_roles
from hms_core.schemas.inventory import (
    BatchResponse,
    InventoryTransactionResponse,
    ProductCreate,
    ProductResponse,
    StockReceive,
)
from hms_core.services.inventory_service import (
    create_product,
    list_expiring_batches,
    list_reorder_products,
    list_transactions,
    receive_stock,
)

router = APIRouter()

PHARMACY_STAFF = [RoleName.PHARMACIST, RoleName.HOSPITAL_ADMIN]


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def add_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles(PHARMACY_STAFF)),
) -> ProductResponse:
    return ProductResponse.model_validate(create_product(db, payload=payload))


@router.post("/receive", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
def receive(
    payload: StockReceive,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles(PHARMACY_STAFF)),
) -> BatchResponse:
    batch = receive_stock(db, payload=payload, performed_by=actor.id)
    return BatchResponse.model_validate(batch)


@router.get("/reorder", response_model=list[ProductResponse])
def reorder_report(
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles(PHARMACY_STAFF)),
) -> list[ProductResponse]:
    return [ProductResponse.model_validate(p) for p in list_reorder_products(db)]


@router.get("/expiry", response_model=list[BatchResponse])
def expiry_report(
    days: Optional[int] = Query(None, ge=0, le=3650, description="Look-ahead window in days"),
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles(PHARMACY_STAFF)),
) -> list[BatchResponse]:
    return [BatchResponse.model_validate(b) for b in list_expiring_batches(db, days=days)]


@router.get("/transactions", response_model=list[InventoryTransactionResponse])
def transactions(
    product_id: Optional[UUID] = Query(None),
    reference_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles(PHARMACY_STAFF)),
) -> list[InventoryTransactionResponse]:
    rows = list_transactions(db, product_id=product_id, reference_id=reference_id)
    return [InventoryTransactionResponse.model_validate(t) for t in rows]
