"""Error taxonomy and result types shared by the adaptive engines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class AdaptiveEngineError(RuntimeError):
    """Base class for errors surfaced to the hosting application."""
    pass


class PreconditionViolation(AdaptiveEngineError):
    """Raised when an operation is invoked in a state that forbids it.

    This indicates a programming error in the host (for example recording a
    challenge attempt without an active session), not a data condition.
    """

    def __init__(self, kind: "ErrorKind", message: Optional[str] = None) -> None:
        self.kind = kind
        super().__init__(message or kind.describe())


class ErrorKind(str, Enum):
    NO_ACTIVE_SESSION = "no_active_session"
    SESSION_ALREADY_ACTIVE = "session_already_active"
    SESSION_ENDED = "session_ended"
    NO_ACTIVE_USER = "no_active_user"

    def describe(self) -> str:
        return {
            ErrorKind.NO_ACTIVE_SESSION: "No active learning session; call start_session first",
            ErrorKind.SESSION_ALREADY_ACTIVE: "A learning session is already active",
            ErrorKind.SESSION_ENDED: "The learning session has already ended",
            ErrorKind.NO_ACTIVE_USER: "No user loaded; call load_user first",
        }[self]


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    detail: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise PreconditionViolation(self.kind, self.detail)


Result = Union[Ok[T], Err]


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
