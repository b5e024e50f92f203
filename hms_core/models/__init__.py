# hms_core/models/__init__.py
from hms_core.models.doctor import Doctor, DoctorSlot
from hms_core.models.appointment import Appointment
from hms_core.models.inventory import Batch, InventoryTransaction, Product
from hms_core.models.prescription import Prescription, PrescriptionItem

__all__ = [
    "Appointment",
    "Batch",
    "Doctor",
    "DoctorSlot",
    "InventoryTransaction",
    "Prescription",
    "PrescriptionItem",
    "Product",
]
