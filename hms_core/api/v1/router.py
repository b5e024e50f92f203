# hms_core/api/v1/router.py
from fastapi import APIRouter

from hms_core.api.v1.endpoints import (
    appointments,
    doctors,
    inventory,
    payments,
    pharmacy,
)

api_router = APIRouter()

api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(pharmacy.router, prefix="/pharmacy", tags=["pharmacy"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
