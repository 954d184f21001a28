"""ORM models package export."""

from medreminder.models.intake_event import IntakeEvent
from medreminder.models.local_user import LocalUser
from medreminder.models.medication import Medication, MedicationForm

__all__ = [
    "IntakeEvent",
    "LocalUser",
    "Medication",
    "MedicationForm",
]
