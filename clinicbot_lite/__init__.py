"""clinicbot_lite - recurrence expansion and scheduling engine for clinic tasks.

Turns stored task definitions into the calendar occurrences shown for a day
or date range, flags overdue split-cycle occurrences, and optionally drops
occurrences that fall on a clinic's non-working days.
"""

__version__ = "0.1.0"

from typing import Optional

from .core.clock import Clock, FixedClock, SystemClock
from .core.config_manager import EngineConfig
from .domain.date_bucket import for_date
from .domain.expansion import expand, for_range
from .domain.instance_generator import generate
from .domain.overdue_classifier import is_overdue, overdue_deadline, overdue_reason
from .domain.task_models import (
    DueType,
    RecurrencePattern,
    RecurringInstance,
    Task,
    TaskOrInstance,
    TaskStatus,
    is_recurring_instance,
    parse_task,
    parse_tasks,
)
from .domain.task_stats import TaskStats, calculate_task_stats
from .domain.task_status import (
    due_text,
    next_status,
    recurrence_label,
    status_display,
    toggle_completion,
)
from .exceptions import (
    ConfigurationError,
    SchedulingEngineError,
    TaskValidationError,
    WorkingCalendarError,
)
from .working_calendar.service import (
    HttpWorkingCalendarService,
    StaticWorkingCalendarService,
    WorkingCalendarService,
    WorkingCalendarSettings,
)
from .working_calendar.working_day_filter import (
    expand_working_day,
    for_working_day,
    generate_working_day_instances,
)

__all__ = [
    "Clock",
    "ConfigurationError",
    "DueType",
    "EngineConfig",
    "FixedClock",
    "HttpWorkingCalendarService",
    "RecurrencePattern",
    "RecurringInstance",
    "SchedulingEngineError",
    "StaticWorkingCalendarService",
    "SystemClock",
    "Task",
    "TaskOrInstance",
    "TaskStats",
    "TaskStatus",
    "TaskValidationError",
    "WorkingCalendarError",
    "WorkingCalendarService",
    "WorkingCalendarSettings",
    "calculate_task_stats",
    "due_text",
    "expand",
    "expand_working_day",
    "for_date",
    "for_range",
    "for_working_day",
    "generate",
    "generate_working_day_instances",
    "is_overdue",
    "is_recurring_instance",
    "next_status",
    "overdue_deadline",
    "overdue_reason",
    "parse_task",
    "parse_tasks",
    "recurrence_label",
    "status_display",
    "toggle_completion",
]


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors CLINICBOT_DEBUG (truthy values: "1", "true", "yes", "on"), which
    forces DEBUG verbosity without changing code.
    """
    import logging
    import os
    import sys

    debug_env = os.environ.get("CLINICBOT_DEBUG", "")
    if isinstance(debug_env, str) and debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure basic handler if no handlers are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        try:
            from colorlog import ColoredFormatter  # type: ignore[import-not-found]

            # HH:MM:SS  LEVEL   logger.name: message
            fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
            log_colors = {
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            }
            formatter = ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors)
        except ImportError:
            fmt = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
            formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")

        handler.setFormatter(formatter)
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
