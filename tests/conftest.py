# tests/conftest.py
from datetime import datetime
from typing import Dict, List, Optional
import itertools

import pytest
from fastapi.testclient import TestClient

from medremind.main import app, get_clock
from medremind.models import Duration, Frequency, ScheduleSlot, Unit
from medremind.schemas import MedicationRead
from medremind.services.repository import get_medication_repository, get_user_repository

# A Tuesday
FIXED_NOW = datetime(2024, 3, 12, 7, 30)

_ids = itertools.count(1)


def make_medication(**overrides) -> MedicationRead:
    """Plain medication record with the same attributes as the Beanie document."""
    data = {
        "id": f"{next(_ids):024x}",
        "user_id": "user-1",
        "name": "Rivastigmine",
        "amount": 2,
        "unit": Unit.PILL,
        "duration": Duration.ONE_MONTH,
        "cap_size": "150mg 1 Capsule",
        "cause": "Alzheimer's",
        "frequency": Frequency.DAILY,
        "schedule": ScheduleSlot.BEFORE_BREAKFAST,
        "is_active": True,
        "photo_url": None,
        "created_at": datetime(2024, 3, 11, 8, 0),
    }
    data.update(overrides)
    return MedicationRead(**data)


class FakeUser:
    def __init__(self, user_id: str, name: str) -> None:
        self.user_id = user_id
        self.name = name
        self.created_at = datetime(2024, 1, 1)


class FakeUserRepository:
    def __init__(self) -> None:
        self.users: Dict[str, FakeUser] = {"user-1": FakeUser("user-1", "Ada")}

    async def create_user(self, user_data) -> FakeUser:
        user = FakeUser(f"user-{len(self.users) + 1}", user_data.name)
        self.users[user.user_id] = user
        return user

    async def get_user(self, user_id: str) -> Optional[FakeUser]:
        return self.users.get(user_id)


class FakeMedicationRepository:
    """In-memory stand-in for MedicationRepository, insertion ordered."""

    def __init__(self) -> None:
        self.medications: Dict[str, MedicationRead] = {}

    def add(self, medication: MedicationRead) -> MedicationRead:
        self.medications[medication.id] = medication
        return medication

    async def create_medication(self, user_id: str, medication) -> MedicationRead:
        return self.add(
            make_medication(user_id=user_id, created_at=FIXED_NOW, **medication.model_dump())
        )

    async def list_medications(self, user_id: str) -> List[MedicationRead]:
        return [m for m in self.medications.values() if m.user_id == user_id]

    async def fetch_active_medications_for_user(self, user_id: str) -> List[MedicationRead]:
        return [m for m in self.medications.values() if m.user_id == user_id and m.is_active]

    async def get_medication(self, medication_id: str) -> Optional[MedicationRead]:
        return self.medications.get(medication_id)

    async def update_medication(self, medication, update_data) -> MedicationRead:
        changes = update_data.changes()
        return self.add(medication.model_copy(update=changes))

    async def delete_medication(self, medication) -> None:
        self.medications.pop(medication.id, None)


@pytest.fixture()
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture()
def medication_repo() -> FakeMedicationRepository:
    return FakeMedicationRepository()


@pytest.fixture()
def clock():
    """Mutable holder for the instant the API evaluates at."""
    return {"now": FIXED_NOW}


@pytest.fixture()
def client(user_repo, medication_repo, clock):
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_medication_repository] = lambda: medication_repo
    app.dependency_overrides[get_clock] = lambda: clock["now"]
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
