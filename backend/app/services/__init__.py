"""Exam Portal - Services initialization."""
from app.services.errors import (
    AlreadyExistsError,
    AttemptClosedError,
    AttemptExpiredError,
    ExamNotAvailableError,
    ExamServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.services.roles import Actor, resolve_actor, resolve_role

__all__ = [
    "Actor",
    "resolve_actor",
    "resolve_role",
    "ExamServiceError",
    "AlreadyExistsError",
    "AttemptClosedError",
    "AttemptExpiredError",
    "ExamNotAvailableError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationError",
]
