# hms_core/api/v1/endpoints/doctors.py
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hms_core.core.database import get_db
from hms_core.dependencies.authz import CurrentActor, RoleName, get_current_actor, require_roles
from hms_core.schemas.appointment import DoctorCreate, DoctorResponse
from hms_core.services.appointment_service import create_doctor, get_doctor

router = APIRouter()


@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
def register_doctor(
    payload: DoctorCreate,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(require_roles([RoleName.HOSPITAL_ADMIN])),
) -> DoctorResponse:
    """
    Register a bookable doctor with weekly availability slots.
    """
    doctor = create_doctor(db, payload=payload)
    return DoctorResponse.model_validate(doctor)


@router.get("/{doctor_id}", response_model=DoctorResponse)
def read_doctor(
    doctor_id: UUID,
    db: Session = Depends(get_db),
    actor: CurrentActor = Depends(get_current_actor),
) -> DoctorResponse:
    return DoctorResponse.model_validate(get_doctor(db, doctor_id=doctor_id))
