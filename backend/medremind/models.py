from beanie import Document, Indexed
from pydantic import Field
from typing import Optional
from datetime import datetime
from enum import Enum
import uuid

class Unit(str, Enum):
    PILL = "Pill"
    MG = "mg"
    ML = "mL"

class Duration(str, Enum):
    ONE_MONTH = "1 Month"
    TWO_MONTHS = "2 Months"
    THREE_MONTHS = "3 Months"
    ONGOING = "Ongoing"

class Frequency(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    AS_NEEDED = "As Needed"

    @classmethod
    def _missing_(cls, value):
        # Accept "AsNeeded" as written by older clients
        if value == "AsNeeded":
            return cls.AS_NEEDED
        return None

class ScheduleSlot(str, Enum):
    BEFORE_BREAKFAST = "Before Breakfast"
    AFTER_BREAKFAST = "After Breakfast"
    BEFORE_LUNCH = "Before Lunch"
    AFTER_LUNCH = "After Lunch"
    BEFORE_DINNER = "Before Dinner"
    AFTER_DINNER = "After Dinner"
    BEFORE_MEALS = "Before Meals"
    AFTER_MEALS = "After Meals"

class User(Document):
    user_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    created_at: datetime = Field(default_factory=datetime.now)

    class Settings:
        name = "users"

class Medication(Document):
    user_id: Optional[Indexed(str)] = None
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
    # Set once by the repository on the server local wall clock. Records stored
    # without it load as None and are skipped by due queries.
    created_at: Optional[datetime] = None

    class Settings:
        name = "medications"
        indexes = [
            [("schedule", 1), ("frequency", 1), ("created_at", 1)],
        ]
