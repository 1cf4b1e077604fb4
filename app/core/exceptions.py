"""Custom application exceptions.

Every exception carries an HTTP status code and a stable error ``code`` that is
returned to clients in the ``error`` field of the failure envelope.
"""


class AppException(Exception):
    """Base application exception."""

    code = "internal-error"

    def __init__(self, message: str, status_code: int = 500, code: str | None = None):
        """Initialize exception with message, status code and error code."""
        self.message = message
        self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    code = "not-found"

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """The principal's role may not perform the requested operation."""

    code = "unauthorized"

    def __init__(self, message: str = "Not allowed to perform this operation"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    code = "forbidden"

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class ValidationException(AppException):
    """Missing or malformed input."""

    code = "validation"

    def __init__(self, message: str = "Validation error"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    code = "conflict"

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class SlotTakenException(ConflictException):
    """The doctor is already booked for the requested slot."""

    code = "slot-taken"

    def __init__(self, message: str = "Doctor is not available at the requested time slot"):
        super().__init__(message)


class PatientConflictException(ConflictException):
    """The patient already has an appointment in the requested slot."""

    code = "patient-conflict"

    def __init__(self, message: str = "Patient already has an appointment at this time"):
        super().__init__(message)


class InvalidSlotException(AppException):
    """Requested time is in the past, off-grid, outside hours or in a break."""

    code = "invalid-slot"

    def __init__(self, message: str = "Requested time slot is not bookable"):
        super().__init__(message, status_code=400)


class InvalidTransitionException(AppException):
    """Status change is not in the transition table."""

    code = "invalid-transition"

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot change status from {current} to {target}",
            status_code=400,
        )


class CancelWindowExpiredException(AppException):
    """Patient attempted to cancel inside the cancellation window."""

    code = "cancel-window-expired"

    def __init__(self, hours: int = 24):
        super().__init__(
            f"Appointments can only be cancelled at least {hours} hours in advance",
            status_code=400,
        )


class DoctorInactiveException(AppException):
    """Doctor exists but is inactive or unavailable on the requested date."""

    code = "doctor-inactive"

    def __init__(self, message: str = "Doctor is not accepting appointments"):
        super().__init__(message, status_code=400)
