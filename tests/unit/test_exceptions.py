"""Unit tests for the timemachine exception hierarchy."""

import pytest

from timemachine.exceptions import (
    FormatError,
    InconsistentStateError,
    InvalidArgumentError,
    InvalidOperationError,
    NotFoundError,
    ObjectDisposedError,
    TimeMachineError,
    UnknownZoneError,
)

pytestmark = pytest.mark.unit


class TestHierarchy:
    """Every error is a TimeMachineError and a matching built-in type."""

    @pytest.mark.parametrize(
        ("error", "builtin"),
        [
            (InvalidArgumentError("bad"), ValueError),
            (FormatError("bad"), ValueError),
            (UnknownZoneError("Nowhere/Special"), LookupError),
            (InvalidOperationError("bad"), RuntimeError),
            (ObjectDisposedError("ControllableTimer"), RuntimeError),
            (InconsistentStateError("bad"), RuntimeError),
        ],
    )
    def test_inherits_builtin(self, error, builtin):
        assert isinstance(error, TimeMachineError)
        assert isinstance(error, builtin)

    def test_unknown_zone_is_not_found(self):
        assert issubclass(UnknownZoneError, NotFoundError)

    def test_disposed_is_invalid_operation(self):
        assert issubclass(ObjectDisposedError, InvalidOperationError)


class TestMessages:
    """Tests for the errors that carry extra data."""

    def test_unknown_zone(self):
        error = UnknownZoneError("Mars/Olympus_Mons")

        assert error.iana_id == "Mars/Olympus_Mons"
        assert "Mars/Olympus_Mons" in str(error)

    def test_unknown_zone_custom_message(self):
        error = UnknownZoneError("Mars/Olympus_Mons", "no such planet")

        assert str(error) == "no such planet"
        assert error.iana_id == "Mars/Olympus_Mons"

    def test_object_disposed(self):
        error = ObjectDisposedError("ControllableTimer")

        assert error.object_name == "ControllableTimer"
        assert str(error) == "Cannot access a disposed object: ControllableTimer"
