# dental_clinic/models/__init__.py
from .user import User
from .patient import Patient, Service
from .inventory import InventoryItem, InventoryBatch, InventoryMovement
from .visit import PatientVisit
from .payment import Payment
from .appointment import Appointment
from .notification import Notification
from .system_log import SystemLog

__all__ = [
    "User",
    "Patient",
    "Service",
    "InventoryItem",
    "InventoryBatch",
    "InventoryMovement",
    "PatientVisit",
    "Payment",
    "Appointment",
    "Notification",
    "SystemLog",
]
