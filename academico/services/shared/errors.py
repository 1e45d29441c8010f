from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for service-layer errors."""

    code = "SERVICE_ERROR"
    status_code = 500


class ValidationError(ServiceError):
    """Raised when input payload is invalid."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidCurriculum(ValidationError):
    """Raised when a curriculum id does not match any configured plan."""

    code = "INVALID_CURRICULUM"

    def __init__(self, curriculum_id: Any):
        self.curriculum_id = curriculum_id
        super().__init__(f"Malla curricular desconocida: {curriculum_id!r}")


class InvalidGrade(ValidationError):
    """Raised when a numeric grade falls outside the accepted scale."""

    code = "INVALID_GRADE"

    def __init__(self, course: str, value: Any, grade_max: float):
        self.course = course
        self.value = value
        self.grade_max = grade_max
        shown = repr(value)
        if len(shown) > 40:
            shown = shown[:37] + "..."
        super().__init__(
            f"Nota fuera de rango para '{course}': {shown} (permitido 0..{grade_max:g} o -1 para retiro)"
        )


class NotFoundError(ServiceError):
    """Raised when a resource does not exist or is not visible to the actor."""

    code = "NOT_FOUND"
    status_code = 404


class PermissionDeniedError(ServiceError):
    """Raised when actor is not allowed to access resource."""

    code = "PERMISSION_DENIED"
    status_code = 403


class ExternalDependencyError(ServiceError):
    """Raised when external dependency (LLM/DB/IO) fails."""

    code = "EXTERNAL_DEPENDENCY"
    status_code = 502


class StoreUnavailable(ExternalDependencyError):
    """Raised when a valid result could not be persisted."""

    code = "STORE_UNAVAILABLE"
    status_code = 503


class CurriculumConfigError(Exception):
    """Raised at startup when the curricula configuration is malformed."""
