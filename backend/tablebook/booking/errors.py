from pydantic import ValidationError


class BookingError(Exception):
    error_code = "BOOKING_ERROR"
    status_code = 400

    def __init__(self, human_message: str):
        super().__init__(human_message)
        self.human_message = human_message

    def to_response(self) -> dict[str, object]:
        return {
            "ok": False,
            "error_code": self.error_code,
            "human_message": self.human_message,
        }


class BookingValidationError(BookingError):
    error_code = "INVALID_ARGS"
    status_code = 400


class DateOutOfRangeError(BookingError):
    error_code = "DATE_OUT_OF_RANGE"
    status_code = 400


class NotFoundError(BookingError):
    error_code = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(BookingError):
    error_code = "UNAUTHORIZED"
    status_code = 403


class SlotUnavailableError(BookingError):
    error_code = "SLOT_UNAVAILABLE"
    status_code = 409


class TooLateToEditError(BookingError):
    error_code = "TOO_LATE_TO_EDIT"
    status_code = 409


class AlreadyCancelledError(BookingError):
    error_code = "ALREADY_CANCELLED"
    status_code = 409


class InfrastructureError(BookingError):
    """Transient storage failure; the unit of work was rolled back and is safe to retry."""

    error_code = "SYSTEM_DOWN"
    status_code = 503


def map_validation_error(error: ValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }
