# hms_core/api/v1/endpoints/pharmacy.py
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from hms_core.core.database import get_db
from hms_core.dependencies.authz import CurrentActor, RoleName, require_roles
from hms_core.models.prescription import PrescriptionStatus
from hms_core.schemas.pharmacy import PrescriptionCreate, PrescriptionResponse
from hms_core.services.pharmacy_service import (
    dispense_prescription,
    get_pharmacy_queue,
    send_to_pharmacy,
)

router = APIRouter()

PHARMACY_STAFF = [RoleName.PHARMACIST, RoleName.HOSPITAL_ADMIN]


@router.post("/send", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
def send_prescription(
    payload: PrescriptionCreate,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles([RoleName.DOCTOR])),
) -> PrescriptionResponse:
    prescription = send_to_pharmacy(db, doctor_id=actor.id, payload=payload)
    return PrescriptionResponse.model_validate(prescription)


@router.get("/queue", response_model=list[PrescriptionResponse])
def pharmacy_queue(
    status_filter: PrescriptionStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles(PHARMACY_STAFF)),
) -> list[PrescriptionResponse]:
    """
    Prescriptions waiting at the pharmacy, urgent first, then oldest first.
    """
    return [PrescriptionResponse.model_validate(p) for p in get_pharmacy_queue(db, status=status_filter)]


@router.post("/dispense/{prescription_id}", response_model=PrescriptionResponse)
def dispense(
    prescription_id: UUID,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles(PHARMACY_STAFF)),
) -> PrescriptionResponse:
    prescription = dispense_prescription(db, prescription_id=prescription_id, performed_by=actor.id)
    return PrescriptionResponse.model_validate(prescription)
