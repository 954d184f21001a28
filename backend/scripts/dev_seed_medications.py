from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from sqlalchemy import select

from medreminder.core.config import get_settings
from medreminder.db.session import get_sessionmaker, init_models
from medreminder.models import Medication
from medreminder.schemas.medication import MedicationCreate
from medreminder.services import medication_service
from medreminder.services.trigger_service import local_today, resolve_timezone

SAMPLES = [
    {"name": "Aspirin", "form": "tablet", "times_list": ["09:00", "21:00"]},
    {
        "name": "Vitamin D",
        "form": "drop",
        "schedule_type": "weekly_days",
        "weekly_days": ["ПН", "СР", "ПТ"],
        "times_list": ["08:30"],
    },
    {
        "name": "Nasal spray",
        "form": "spray",
        "schedule_type": "every_x_days",
        "interval_days": 3,
        "times_list": ["20:00"],
    },
]


async def main() -> None:
    settings = get_settings()
    await init_models(settings.database_url)
    today = local_today(datetime.now(UTC), resolve_timezone(settings.local_timezone))
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await session.execute(select(Medication.id).limit(1))
        if existing.first():
            print("Medications already present; nothing to seed")
            return
        for sample in SAMPLES:
            medication = await medication_service.create_medication(
                session, MedicationCreate(start_date=today, **sample)
            )
            print(f"Seeded {medication.name} ({medication.schedule_type})")


if __name__ == "__main__":
    asyncio.run(main())
