"""Tests for the booking error taxonomy."""

from spabook.models import (
    BookingFailure,
    ConflictError,
    ErrorType,
    InvalidTransitionError,
    NotFoundError,
    OutOfWindowError,
    SpecialtyMismatchError,
    StoreUnavailable,
    ValidationError,
)


class TestErrorHierarchy:
    def test_validation_subclasses(self):
        for cls in (OutOfWindowError, SpecialtyMismatchError, InvalidTransitionError):
            assert issubclass(cls, ValidationError)
            assert cls.error_type == ErrorType.VALIDATION_ERROR

    def test_details_are_kept(self):
        error = ConflictError("taken", staff_id="stf_1")

        assert error.message == "taken"
        assert error.details == {"staff_id": "stf_1"}
        assert str(error) == "taken"

    def test_store_unavailable_carries_operation(self):
        error = StoreUnavailable("down", operation="find_appointments", entity_id="stf_1")

        assert error.operation == "find_appointments"
        assert error.entity_id == "stf_1"


class TestBookingFailure:
    """Tests for BookingFailure.from_exception."""

    def test_from_conflict(self):
        failure = BookingFailure.from_exception(
            ConflictError("Time slot is no longer available", entity_id="stf_1"),
            operation="commit",
        )

        assert failure.type == ErrorType.CONFLICT
        assert failure.operation == "commit"
        assert failure.retryable is False
        assert failure.details["entity_id"] == "stf_1"
        assert failure.details["exception_type"] == "ConflictError"

    def test_store_unavailable_is_retryable(self):
        failure = BookingFailure.from_exception(
            StoreUnavailable("down", operation="commit"), operation="commit"
        )

        assert failure.type == ErrorType.STORE_UNAVAILABLE
        assert failure.retryable is True
        assert "entity_id" not in failure.details

    def test_not_found(self):
        failure = BookingFailure.from_exception(NotFoundError("gone"), operation="get")
        assert failure.type == ErrorType.NOT_FOUND

    def test_unknown_exception(self):
        failure = BookingFailure.from_exception(RuntimeError("boom"), operation="x")

        assert failure.type == ErrorType.UNKNOWN_ERROR
        assert failure.message == "boom"
        assert failure.details == {"exception_type": "RuntimeError"}

    def test_serializes_to_json(self):
        failure = BookingFailure.from_exception(
            OutOfWindowError("too soon"), operation="commit"
        )
        data = failure.model_dump(mode="json")

        assert data["type"] == "validation_error"
        assert isinstance(data["timestamp"], str)
