"""Data models for clinic tasks and their generated occurrences - ClinicBot Lite version."""

from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional, Union

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import TaskValidationError


class TaskStatus(str, Enum):
    """Lifecycle states of a task record."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class RecurrencePattern(str, Enum):
    """Supported recurrence rules for a task definition."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    EOW = "eow"
    MIDM = "midm"
    EOM = "eom"


class DueType(str, Enum):
    """Deadline category for non-recurring tasks."""

    BEFORE_OPENING = "before-opening"
    BEFORE_1PM = "before-1pm"
    END_OF_DAY = "end-of-day"
    END_OF_WEEK = "end-of-week"
    END_OF_MONTH = "end-of-month"
    ANYTIME = "anytime"
    CUSTOM = "custom"
    NONE = "none"


class CyclePeriod(str, Enum):
    """Window tag for split-cycle patterns (midm and eom)."""

    FIRST = "first"
    SECOND = "second"
    END = "end"
    START = "start"


STANDARD_PATTERNS = frozenset(
    {
        RecurrencePattern.DAILY,
        RecurrencePattern.WEEKLY,
        RecurrencePattern.BIWEEKLY,
        RecurrencePattern.MONTHLY,
        RecurrencePattern.QUARTERLY,
        RecurrencePattern.YEARLY,
    }
)

SPLIT_CYCLE_PATTERNS = frozenset(
    {RecurrencePattern.EOW, RecurrencePattern.MIDM, RecurrencePattern.EOM}
)


def _coerce_timestamp(value: Any) -> Any:
    """Parse store timestamps into datetimes.

    Accepts ISO-8601 strings (with 'Z' or an offset, or date-only), date
    objects (promoted to midnight) and datetimes. Empty strings become None.
    """
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return date_parser.isoparse(value.strip())
        except ValueError:
            # Let pydantic report the original value
            return value
    return value


def _coerce_choice(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        cleaned = value.strip().lower()
        return cleaned or None
    return value


class Task(BaseModel):
    """Read-only snapshot of a task record from the external store.

    Field names follow the store, including the hyphenated `due-type` and
    `due-date` columns which are accepted as aliases.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    status: TaskStatus = TaskStatus.PENDING
    recurrence: RecurrencePattern = RecurrencePattern.NONE
    due_type: DueType = Field(default=DueType.NONE, alias="due-type")

    custom_due_date: Optional[datetime] = None
    due_date: Optional[datetime] = Field(default=None, alias="due-date")
    generated_date: Optional[datetime] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    assigned_to: Optional[str] = None
    claimed_by: Optional[str] = None
    completed_by: Optional[str] = None

    # Descriptive fields, copied through untouched
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    clinic_id: Optional[str] = None
    created_by: Optional[str] = None
    template_id: Optional[str] = None
    target_role: Optional[str] = None
    owner_notes: Optional[str] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return _coerce_choice(value) or TaskStatus.PENDING

    @field_validator("recurrence", "due_type", mode="before")
    @classmethod
    def _default_none(cls, value: Any) -> Any:
        return _coerce_choice(value) or "none"

    @field_validator(
        "custom_due_date",
        "due_date",
        "generated_date",
        "created_at",
        "completed_at",
        "updated_at",
        mode="before",
    )
    @classmethod
    def _parse_timestamp(cls, value: Any) -> Any:
        return _coerce_timestamp(value)

    @property
    def is_instance(self) -> bool:
        return False

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != RecurrencePattern.NONE

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def anchor_date(self) -> datetime:
        """Reference date standard recurrence steps forward from."""
        return self.custom_due_date or self.generated_date or self.created_at

    @property
    def explicit_due_date(self) -> Optional[datetime]:
        """Due date a user set explicitly, if any."""
        return self.custom_due_date or self.due_date

    @property
    def completion_reference(self) -> datetime:
        """Timestamp that places a completed task on the calendar."""
        return self.completed_at or self.generated_date or self.created_at


class RecurringInstance(BaseModel):
    """One ephemeral, date-scoped occurrence of a recurring task.

    Instances are never persisted. The mutable task fields are value copies
    taken at generation time, so changes to the source Task do not leak into
    instances that were already produced.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Synthetic id derived from parent id and date")
    parent_task_id: str
    instance_date: date
    original_due_date: datetime
    recurrence: RecurrencePattern
    period: Optional[CyclePeriod] = None

    is_overdue: bool = False
    overdue_reason: Optional[str] = None

    # Snapshot of the parent's mutable fields
    status: TaskStatus = TaskStatus.PENDING
    assigned_to: Optional[str] = None
    claimed_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None

    due_type: DueType = DueType.NONE
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    category: Optional[str] = None
    clinic_id: Optional[str] = None
    template_id: Optional[str] = None
    target_role: Optional[str] = None

    @property
    def is_instance(self) -> bool:
        return True

    @property
    def is_recurring(self) -> bool:
        return True

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


TaskOrInstance = Union[Task, RecurringInstance]


def is_recurring_instance(item: TaskOrInstance) -> bool:
    """Return True when item is a generated occurrence rather than a stored task."""
    return isinstance(item, RecurringInstance)


def item_key(item: TaskOrInstance) -> str:
    """Id of the stored task an item represents (parent id for instances)."""
    if isinstance(item, RecurringInstance):
        return item.parent_task_id
    return item.id


def parse_task(record: Union[Mapping[str, Any], Task]) -> Task:
    """Validate one raw store record into a Task.

    Raises:
        TaskValidationError: If the record is not a mapping or fails validation
    """
    if isinstance(record, Task):
        return record
    if not isinstance(record, Mapping):
        raise TaskValidationError(
            f"Task record must be a mapping, got {type(record).__name__}"
        )
    try:
        return Task.model_validate(dict(record))
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in e.errors()
        )
        raise TaskValidationError(
            f"Invalid task record {record.get('id')!r}: bad field(s) {fields}"
        ) from e


def parse_tasks(records: Iterable[Union[Mapping[str, Any], Task]]) -> list[Task]:
    """Validate a collection of raw store records.

    Raises:
        TaskValidationError: For the first invalid record, with its index set
    """
    tasks: list[Task] = []
    for index, record in enumerate(records):
        try:
            tasks.append(parse_task(record))
        except TaskValidationError as e:
            raise TaskValidationError(f"Record {index}: {e}", index=index) from e
    return tasks
