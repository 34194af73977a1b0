"""Exception hierarchy for timemachine.

Every error raised by the package derives from :class:`TimeMachineError` so
callers can catch the whole family at once. Each subclass also inherits the
closest built-in exception type, which keeps ``except ValueError`` style
handlers in calling code working.
"""


class TimeMachineError(Exception):
    """Base exception for all timemachine errors."""


class InvalidArgumentError(TimeMachineError, ValueError):
    """An argument was rejected before any work was done.

    Raised when:
    - A zone identifier is ``None``, empty or not a string
    - A timer callback is ``None`` or not callable
    - Civil fields do not form a valid date in the zone's calendar
    - A culture or calendar name is not known
    """


class NotFoundError(TimeMachineError, LookupError):
    """A requested item does not exist."""


class UnknownZoneError(NotFoundError):
    """The time-zone database has no zone with the given identifier.

    Failed lookups are never cached; the next call asks the database again.
    """

    def __init__(self, iana_id: str, message: str | None = None) -> None:
        """Initialize UnknownZoneError.

        Args:
            iana_id: The identifier that could not be resolved
            message: Optional override for the default message
        """
        super().__init__(message or f"Unknown time zone: {iana_id!r}")
        self.iana_id = iana_id


class InvalidOperationError(TimeMachineError, RuntimeError):
    """The object is not in a state that allows the call.

    Raised when:
    - A timer is started or changed with an infinite due time or period
    - A timer is started before a callback was armed
    """


class ObjectDisposedError(InvalidOperationError):
    """The object was disposed and can no longer be used."""

    def __init__(self, object_name: str) -> None:
        super().__init__(f"Cannot access a disposed object: {object_name}")
        self.object_name = object_name


class FormatError(TimeMachineError, ValueError):
    """A format specifier is not recognized."""


class InconsistentStateError(TimeMachineError, RuntimeError):
    """Civil fields and the absolute instant disagree.

    This indicates a defect in the calendar engine adapter, not a condition
    callers are expected to recover from.
    """
