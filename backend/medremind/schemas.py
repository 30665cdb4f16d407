from pydantic import BaseModel, Field
from typing import ClassVar, Optional, Tuple
from datetime import datetime
from medremind.models import Unit, Duration, Frequency, ScheduleSlot

class UserCreate(BaseModel):
    name: str

class MedicationCreate(BaseModel):
    name: str = Field(min_length=1)
    amount: float = Field(ge=0)
    unit: Unit = Unit.PILL
    duration: Duration = Duration.ONE_MONTH
    cap_size: str
    cause: str
    frequency: Frequency = Frequency.DAILY
    schedule: ScheduleSlot = ScheduleSlot.BEFORE_BREAKFAST
    is_active: bool = True
    photo_url: Optional[str] = None

class MedicationUpdate(BaseModel):
    """Every field except created_at and user_id may change."""
    name: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, ge=0)
    unit: Optional[Unit] = None
    duration: Optional[Duration] = None
    cap_size: Optional[str] = None
    cause: Optional[str] = None
    frequency: Optional[Frequency] = None
    schedule: Optional[ScheduleSlot] = None
    is_active: Optional[bool] = None
    photo_url: Optional[str] = None

    # Fields an explicit null clears; for the rest null means "leave unchanged"
    NULLABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("photo_url",)

    def changes(self) -> dict:
        return {
            k: v for k, v in self.model_dump(exclude_unset=True).items()
            if v is not None or k in self.NULLABLE_FIELDS
        }

class MedicationRead(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str
    amount: float
    unit: Unit
    duration: Duration
    cap_size: str
    cause: str
    frequency: Frequency
    schedule: ScheduleSlot
    is_active: bool
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_medication(cls, medication) -> "MedicationRead":
        data = {
            name: getattr(medication, name)
            for name in cls.model_fields
            if name != "id"
        }
        return cls(id=str(medication.id), **data)

class DoseStatus(BaseModel):
    medication_id: str
    is_active: bool
    within_treatment_window: bool
    due_now: bool
    evaluated_at: datetime
