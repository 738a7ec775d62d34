"""Status transitions and display labels for tasks and instances."""

from __future__ import annotations

from .task_models import DueType, RecurrencePattern, TaskOrInstance, TaskStatus

STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "To-Do",
    TaskStatus.IN_PROGRESS: "In-Progress",
    TaskStatus.COMPLETED: "Completed",
}

_NEXT_STATUS: dict[TaskStatus, TaskStatus] = {
    TaskStatus.PENDING: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.COMPLETED,
    TaskStatus.COMPLETED: TaskStatus.PENDING,
}

RECURRENCE_LABELS: dict[RecurrencePattern, str] = {
    RecurrencePattern.NONE: "One-time",
    RecurrencePattern.DAILY: "Daily",
    RecurrencePattern.WEEKLY: "Weekly",
    RecurrencePattern.BIWEEKLY: "Every 2 weeks",
    RecurrencePattern.MONTHLY: "Monthly",
    RecurrencePattern.QUARTERLY: "Quarterly",
    RecurrencePattern.YEARLY: "Yearly",
    RecurrencePattern.EOW: "End of week",
    RecurrencePattern.MIDM: "Mid-month",
    RecurrencePattern.EOM: "End of month",
}

DUE_TYPE_LABELS: dict[DueType, str] = {
    DueType.BEFORE_OPENING: "Due Before Opening",
    DueType.BEFORE_1PM: "Due Before 1 PM",
    DueType.END_OF_DAY: "Due End of Day",
    DueType.END_OF_WEEK: "Due End of Week",
    DueType.END_OF_MONTH: "Due End of Month",
    DueType.ANYTIME: "Due Anytime",
    DueType.CUSTOM: "Custom Due Date",
    DueType.NONE: "No due date",
}


def status_display(status: TaskStatus) -> str:
    return STATUS_LABELS.get(status, STATUS_LABELS[TaskStatus.PENDING])


def next_status(status: TaskStatus) -> TaskStatus:
    """Cycle pending -> in-progress -> completed -> pending."""
    return _NEXT_STATUS.get(status, TaskStatus.PENDING)


def toggle_completion(status: TaskStatus) -> TaskStatus:
    return TaskStatus.PENDING if status == TaskStatus.COMPLETED else TaskStatus.COMPLETED


def is_completed(status: TaskStatus) -> bool:
    return status == TaskStatus.COMPLETED


def is_pending(status: TaskStatus) -> bool:
    return status == TaskStatus.PENDING


def is_in_progress(status: TaskStatus) -> bool:
    return status == TaskStatus.IN_PROGRESS


def recurrence_label(pattern: RecurrencePattern) -> str:
    return RECURRENCE_LABELS.get(pattern, pattern.value)


def due_text(item: TaskOrInstance) -> str:
    """Short due description for a task card.

    Custom due dates render as "Due YYYY-MM-DD"; everything else uses the
    due-type label.
    """
    custom_due = getattr(item, "custom_due_date", None)
    if item.due_type == DueType.CUSTOM and custom_due is not None:
        return f"Due {custom_due.date().isoformat()}"
    return DUE_TYPE_LABELS.get(item.due_type, DUE_TYPE_LABELS[DueType.NONE])
