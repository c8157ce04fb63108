# app/errors.py
"""
Typed error taxonomy for the workout flows.

Services and repositories raise ``WorkoutError`` subclasses; the FastAPI
handler in ``app.main`` renders them through ``MESSAGES`` so the client gets
a title/description/action it can show as-is, plus a ``retryable`` flag for
the primary actions.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError


class ErrorKind(str, Enum):
    validation = "validation"
    not_found = "not_found"
    ownership = "ownership"
    inactive = "inactive"
    constraint_race = "constraint_race"
    network = "network"
    unknown = "unknown"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.validation: 422,
    ErrorKind.not_found: 404,
    ErrorKind.ownership: 403,
    ErrorKind.inactive: 409,
    ErrorKind.constraint_race: 409,
    ErrorKind.network: 503,
    ErrorKind.unknown: 500,
}


@dataclass(frozen=True, slots=True)
class ErrorMessage:
    title: str
    description: str
    action: str | None = None
    severity: str = "medium"  # low | medium | high | critical


MESSAGES: dict[str, ErrorMessage] = {
    "NETWORK_ERROR": ErrorMessage(
        "Connection problem",
        "The database could not be reached. Check your connection and try again.",
        "Retry", "high"),
    "DATABASE_ERROR": ErrorMessage(
        "Database error",
        "Something went wrong while talking to the database. Try again or contact support.",
        "Contact support", "critical"),
    "INVALID_IDENTIFIER": ErrorMessage(
        "Invalid link",
        "The identifiers in the URL are not valid. Please check the link.",
        "Check the link"),
    "PROGRAM_NOT_FOUND": ErrorMessage(
        "Program not found",
        "No program exists with this id. Check that the link is correct.",
        "Refresh"),
    "PROGRAM_FORBIDDEN": ErrorMessage(
        "No access",
        "This program is assigned to another user. Ask your coach to assign it to you.",
        "Contact your coach", "high"),
    "PROGRAM_INACTIVE": ErrorMessage(
        "Program not active",
        "This program is not active. Contact your coach.",
        "Contact your coach"),
    "DAY_NOT_FOUND": ErrorMessage(
        "Training day not found",
        "No training day exists with this id. Check the link.",
        "Refresh"),
    "DAY_FORBIDDEN": ErrorMessage(
        "Wrong program",
        "This training day belongs to a different program. Check the link.",
        "Check the link"),
    "DAY_EMPTY": ErrorMessage(
        "No exercises",
        "This training day has no exercises assigned yet. Contact support if this persists.",
        "Contact support"),
    "SESSION_NOT_FOUND": ErrorMessage(
        "Workout not found",
        "This workout session does not exist.",
        "Refresh"),
    "SESSION_FORBIDDEN": ErrorMessage(
        "No access",
        "This workout session belongs to another user.",
        None, "high"),
    "SESSION_FINISHED": ErrorMessage(
        "Workout already finished",
        "This workout has already been completed.",
        None, "low"),
    "ITEM_NOT_FOUND": ErrorMessage(
        "Exercise not found",
        "This exercise is not part of the current training day.",
        "Refresh"),
    "ALTERNATIVE_NOT_FOUND": ErrorMessage(
        "Alternative not found",
        "The chosen alternative does not belong to this exercise.",
        "Refresh"),
    "TEMPLATE_NOT_FOUND": ErrorMessage(
        "Template not found",
        "The template is no longer available or has been deleted.",
        "Refresh"),
    "USER_NOT_FOUND": ErrorMessage(
        "User not found",
        "No user is registered with this e-mail address.",
        "Check the e-mail address"),
    "PROGRAM_ASSIGNMENT_FAILED": ErrorMessage(
        "Assignment failed",
        "The template produced a program without training days. Add days to the template and assign again.",
        "Retry", "high"),
    "VALIDATION_ERROR": ErrorMessage(
        "Invalid input",
        "The submitted data is not valid. Check your input.",
        "Check your input"),
    "REPS_REQUIRED": ErrorMessage(
        "Reps missing",
        "Enter how many reps you did before marking this set done.",
        "Enter reps"),
    "SET_OUT_OF_RANGE": ErrorMessage(
        "Unknown set",
        "This set number is outside the exercise's prescribed sets.",
        None),
    "NO_PENDING_PROPOSAL": ErrorMessage(
        "Nothing to confirm",
        "There is no weight change waiting for confirmation for this exercise.",
        None, "low"),
    "DUPLICATE_ROW": ErrorMessage(
        "Already saved",
        "This entry was saved concurrently. Refresh to see the latest values.",
        "Refresh", "low"),
    "UNKNOWN_ERROR": ErrorMessage(
        "Unknown error",
        "An unexpected error occurred. Try again or contact support.",
        "Contact support", "critical"),
}


class WorkoutError(Exception):
    kind: ErrorKind = ErrorKind.unknown
    default_code: str = "UNKNOWN_ERROR"

    def __init__(self, code: str | None = None, detail: str | None = None, **context: Any):
        self.code = code or self.default_code
        self.message = MESSAGES.get(self.code, MESSAGES["UNKNOWN_ERROR"])
        self.detail = detail or self.message.description
        self.context = context
        super().__init__(self.detail)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self, *, retryable: bool = False) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "title": self.message.title,
            "description": self.detail,
            "action": self.message.action,
            "severity": self.message.severity,
            "retryable": retryable,
        }


class ValidationError(WorkoutError):
    kind = ErrorKind.validation
    default_code = "VALIDATION_ERROR"

    def __init__(self, code: str | None = None, detail: str | None = None,
                 fields: dict[str, str] | None = None, **context: Any):
        super().__init__(code, detail, **context)
        self.fields = fields or {}

    def to_dict(self, *, retryable: bool = False) -> dict[str, Any]:
        body = super().to_dict(retryable=retryable)
        if self.fields:
            body["fields"] = self.fields
        return body


class NotFoundError(WorkoutError):
    kind = ErrorKind.not_found
    default_code = "PROGRAM_NOT_FOUND"


class OwnershipError(WorkoutError):
    kind = ErrorKind.ownership
    default_code = "PROGRAM_FORBIDDEN"


class InactiveError(WorkoutError):
    kind = ErrorKind.inactive
    default_code = "PROGRAM_INACTIVE"


class ConstraintRaceError(WorkoutError):
    kind = ErrorKind.constraint_race
    default_code = "DUPLICATE_ROW"


class NetworkError(WorkoutError):
    kind = ErrorKind.network
    default_code = "NETWORK_ERROR"


class UnknownError(WorkoutError):
    kind = ErrorKind.unknown
    default_code = "UNKNOWN_ERROR"


def classify_db_error(exc: BaseException) -> WorkoutError:
    """Map a SQLAlchemy exception onto the taxonomy by type."""
    if isinstance(exc, WorkoutError):
        return exc
    if isinstance(exc, IntegrityError):
        return ConstraintRaceError(detail=str(exc.orig) if exc.orig else None)
    if isinstance(exc, (OperationalError, InterfaceError)):
        return NetworkError()
    if isinstance(exc, DBAPIError):
        return UnknownError("DATABASE_ERROR")
    return UnknownError()


@contextmanager
def translate_db_errors(db=None) -> Iterator[None]:
    """Repository boundary: roll back and re-raise DB failures as WorkoutError."""
    try:
        yield
    except WorkoutError:
        raise
    except DBAPIError as exc:
        if db is not None:
            db.rollback()
        raise classify_db_error(exc) from exc
