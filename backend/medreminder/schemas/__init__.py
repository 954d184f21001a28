"""Schema exports."""

from medreminder.schemas.caregiver import (
    FriendCodeRequest,
    LocalUserRead,
    LocalUserUpdate,
    PatientDayEntryRead,
    PatientDayRead,
)
from medreminder.schemas.intake import (
    IntakeOutcomeRead,
    IntakeRead,
    IntakeRecordRequest,
    IntakeRescheduleRead,
    IntakeRescheduleRequest,
    IntakeStatusRead,
)
from medreminder.schemas.medication import (
    MedicationCreate,
    MedicationDeleteResult,
    MedicationRead,
    MedicationServerIdUpdate,
    MedicationUpdate,
)
from medreminder.schemas.schedule import (
    DayEntryRead,
    DayScheduleRead,
    PendingSyncResult,
    ResyncResult,
    ScheduledTriggerRead,
)

__all__ = [
    "DayEntryRead",
    "DayScheduleRead",
    "FriendCodeRequest",
    "IntakeOutcomeRead",
    "IntakeRead",
    "IntakeRecordRequest",
    "IntakeRescheduleRead",
    "IntakeRescheduleRequest",
    "IntakeStatusRead",
    "LocalUserRead",
    "LocalUserUpdate",
    "MedicationCreate",
    "MedicationDeleteResult",
    "MedicationRead",
    "MedicationServerIdUpdate",
    "MedicationUpdate",
    "PatientDayEntryRead",
    "PatientDayRead",
    "PendingSyncResult",
    "ResyncResult",
    "ScheduledTriggerRead",
]
