class AppError(Exception):
    """Base class for all application exceptions."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None, status_code: int | None = None):
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationFailedError(AppError):
    """Malformed input or a missing required field."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ResourceNotFoundError(AppError):
    """Raised when a referenced entity id does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource_type: str, resource_id: object, details: dict | None = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            details={"resource": resource_type, "id": resource_id, **(details or {})},
        )


class ConflictError(AppError):
    """Double booking on the teacher, room or group axis, or a competing write."""

    code = "CONFLICT_ERROR"
    status_code = 409


class AvailabilityError(AppError):
    """The teacher has not declared the requested slot as available."""

    code = "AVAILABILITY_ERROR"
    status_code = 409


class PolicyError(AppError):
    """Cycle time-window or active restriction violation."""

    code = "POLICY_ERROR"
    status_code = 422


class GenerationInProgressError(ConflictError):
    def __init__(self, period_id: int):
        super().__init__(
            f"A timetable generation is already running for period {period_id}",
            details={"period_id": period_id},
        )
