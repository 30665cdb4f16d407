"""
Due-date evaluation for medications.

A medication is returned by a due query when it was created within its
treatment window, its recurrence rule and time-of-day slot both hold at
``now``, and ``now`` lies inside the requested report range. Evaluation is
read-only and runs against the server's local wall clock; callers pass
``now`` explicitly.
"""
import re
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, List, Optional, Tuple
from dateutil.relativedelta import relativedelta
from medremind.models import Duration, Frequency, ScheduleSlot
from medremind.schemas import DoseStatus

logger = logging.getLogger(__name__)

class ReportScope(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"

class InvalidReportScope(ValueError):
    pass

def parse_report_scope(scope) -> ReportScope:
    try:
        return ReportScope(scope)
    except ValueError:
        raise InvalidReportScope(
            f"Invalid filter option '{scope}'. Use \"today\", \"week\", or \"month\""
        ) from None

def _raw(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value

def _local(instant: datetime) -> datetime:
    """Drop tzinfo after converting to the server's local zone; naive values pass through."""
    if instant.tzinfo is not None:
        return instant.astimezone().replace(tzinfo=None)
    return instant

# Half-open [start, end) hour intervals. The two "Meals" slots overlap the others.
SLOT_HOURS = {
    ScheduleSlot.BEFORE_BREAKFAST: (6, 9),
    ScheduleSlot.AFTER_BREAKFAST: (9, 12),
    ScheduleSlot.BEFORE_LUNCH: (11, 13),
    ScheduleSlot.AFTER_LUNCH: (13, 15),
    ScheduleSlot.BEFORE_DINNER: (17, 19),
    ScheduleSlot.AFTER_DINNER: (19, 22),
    ScheduleSlot.BEFORE_MEALS: (6, 19),
    ScheduleSlot.AFTER_MEALS: (9, 22),
}

SUNDAY = 6  # datetime.weekday()
MONTHLY_DOSE_DAY = 15

_DURATION_PATTERN = re.compile(r"(\d+)\s*(Month|Months)")

class ScheduleSlotMatcher:
    @staticmethod
    def matches(slot, instant: datetime) -> bool:
        try:
            start, end = SLOT_HOURS[ScheduleSlot(_raw(slot))]
        except (ValueError, KeyError):
            return False
        return start <= _local(instant).hour < end

class RecurrenceEvaluator:
    @staticmethod
    def is_due_now(frequency, slot, instant: datetime) -> bool:
        try:
            frequency = Frequency(_raw(frequency))
        except ValueError:
            return False

        instant = _local(instant)
        if frequency == Frequency.DAILY:
            return ScheduleSlotMatcher.matches(slot, instant)
        if frequency == Frequency.WEEKLY:
            # Fixed to Sundays until per-medication weekdays exist
            return ScheduleSlotMatcher.matches(slot, instant) and instant.weekday() == SUNDAY
        if frequency == Frequency.MONTHLY:
            return ScheduleSlotMatcher.matches(slot, instant) and instant.day == MONTHLY_DOSE_DAY
        # As Needed medications are inventory only
        return False

class ActiveWindowFilter:
    @staticmethod
    def is_within_treatment_window(duration, created_at: Optional[datetime], now: datetime) -> bool:
        if created_at is None:
            logger.warning(f"created_at is missing for medication with duration {_raw(duration)!r}")
            return False

        duration = _raw(duration)
        if duration == Duration.ONGOING.value:
            return True

        match = _DURATION_PATTERN.match(duration) if isinstance(duration, str) else None
        if not match:
            return False
        end_date = _local(created_at) + relativedelta(months=int(match.group(1)))
        return _local(now) <= end_date

class ReportRangeFilter:
    """
    Calendar range check for a report scope.

    Weeks run Sunday 00:00 through Saturday 23:59:59.999999. Bounds are
    derived from ``now``, so with the default ``instant=now`` the check
    always passes; it only narrows results when a different instant is
    evaluated.
    """

    @staticmethod
    def report_range(scope, now: datetime) -> Tuple[datetime, datetime]:
        scope = parse_report_scope(_raw(scope))
        now = _local(now)
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        if scope == ReportScope.TODAY:
            start = day_start
            end = start + timedelta(days=1)
        elif scope == ReportScope.WEEK:
            # weekday() is Monday=0; shift so Sunday opens the week
            start = day_start - timedelta(days=(now.weekday() + 1) % 7)
            end = start + timedelta(days=7)
        else:
            start = day_start.replace(day=1)
            end = start + relativedelta(months=1)
        return start, end - timedelta(microseconds=1)

    @classmethod
    def in_report_range(cls, scope, now: datetime, instant: Optional[datetime] = None) -> bool:
        if parse_report_scope(_raw(scope)) == ReportScope.TODAY:
            return True
        start, end = cls.report_range(scope, now)
        instant = _local(instant if instant is not None else now)
        return start <= instant <= end

def evaluate(medication, now: datetime) -> DoseStatus:
    """Status of a single medication at ``now``, ignoring report scope."""
    within = ActiveWindowFilter.is_within_treatment_window(
        medication.duration, medication.created_at, now
    )
    due = (
        medication.is_active
        and within
        and RecurrenceEvaluator.is_due_now(medication.frequency, medication.schedule, now)
    )
    return DoseStatus(
        medication_id=str(medication.id),
        is_active=medication.is_active,
        within_treatment_window=within,
        due_now=due,
        evaluated_at=now,
    )

class MedicationDueQuery:
    def __init__(self, repository):
        self.repository = repository

    async def run(self, user_id: str, scope, now: Optional[datetime] = None) -> List[Any]:
        # Reject a bad scope before touching storage
        scope = parse_report_scope(_raw(scope))
        if now is None:
            now = datetime.now()

        medications = await self.repository.fetch_active_medications_for_user(user_id)

        due = []
        for medication in medications:
            if medication.created_at is None:
                logger.warning(f"Skipping medication {medication.id} due to missing created_at")
                continue
            if not ActiveWindowFilter.is_within_treatment_window(medication.duration, medication.created_at, now):
                continue
            if not RecurrenceEvaluator.is_due_now(medication.frequency, medication.schedule, now):
                continue
            if not ReportRangeFilter.in_report_range(scope, now):
                continue
            due.append(medication)

        logger.info(
            f"{len(due)} of {len(medications)} active medications due for user {user_id} "
            f"(scope={scope.value})"
        )
        return due
