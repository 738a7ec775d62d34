"""Custom exception hierarchy for the clinicbot_lite scheduling engine.

The date-math path never raises for ordinary bad input (empty lists, tasks
without due information, reversed ranges). These exceptions cover the two
boundaries where something genuinely invalid arrives: raw task records and
configuration, plus the external working-calendar service.
"""


class SchedulingEngineError(Exception):
    """Base exception for all clinicbot_lite errors.

    Callers that want a single catch-all for engine failures should catch
    this type rather than bare Exception.
    """


class TaskValidationError(SchedulingEngineError):
    """A raw task record failed validation at the model boundary.

    Raised when:
    - recurrence, status or due-type is not one of the supported values
    - created_at is missing or not a timestamp
    - a record is not a mapping at all

    The original pydantic ValidationError is chained as __cause__.
    """

    def __init__(self, message: str, index: int | None = None) -> None:
        super().__init__(message)
        self.index = index


class WorkingCalendarError(SchedulingEngineError):
    """The working-calendar service could not answer a lookup.

    Raised when:
    - the backend is unreachable or times out
    - the backend answers with a non-2xx status
    - the settings payload cannot be parsed

    The working-day filter converts this to "working day" (fail open), so
    this exception never escapes expand_working_day or for_working_day.
    """


class ConfigurationError(SchedulingEngineError):
    """Engine configuration is out of its valid range.

    Raised by EngineConfig.validate() for values such as a non-positive
    concurrency or an occurrence cap above 365.
    """
