import logging
from typing import List, Optional
from datetime import datetime
from beanie import PydanticObjectId
from bson.errors import InvalidId
from medremind.models import User, Medication
from medremind.schemas import UserCreate, MedicationCreate, MedicationUpdate

logger = logging.getLogger(__name__)

class UserRepository:
    async def create_user(self, user_data: UserCreate) -> User:
        user = User(name=user_data.name)
        await user.save()
        logger.info(f"Created user {user.user_id}")
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        return await User.find_one(User.user_id == user_id)

class MedicationRepository:
    """Beanie-backed storage for medications. All reads return documents in storage order."""

    async def create_medication(self, user_id: str, medication: MedicationCreate) -> Medication:
        med = Medication(user_id=user_id, created_at=datetime.now(), **medication.model_dump())
        await med.save()
        logger.info(f"Created medication {med.id} for user {user_id}")
        return med

    async def list_medications(self, user_id: str) -> List[Medication]:
        return await Medication.find(Medication.user_id == user_id).to_list()

    async def fetch_active_medications_for_user(self, user_id: str) -> List[Medication]:
        return await Medication.find(
            Medication.user_id == user_id,
            Medication.is_active == True,
        ).to_list()

    async def get_medication(self, medication_id: str) -> Optional[Medication]:
        try:
            object_id = PydanticObjectId(medication_id)
        except (InvalidId, TypeError):
            return None
        return await Medication.get(object_id)

    async def update_medication(self, medication: Medication, update_data: MedicationUpdate) -> Medication:
        update_dict = update_data.changes()
        if update_dict:
            await medication.set(update_dict)
        return medication

    async def delete_medication(self, medication: Medication) -> None:
        await medication.delete()
        logger.info(f"Deleted medication {medication.id}")

def get_user_repository() -> UserRepository:
    return UserRepository()

def get_medication_repository() -> MedicationRepository:
    return MedicationRepository()
