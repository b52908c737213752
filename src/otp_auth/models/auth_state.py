"""Authentication state variants observed by the UI layer."""

from __future__ import annotations

from dataclasses import dataclass


class AuthState:
    """Base class for the closed set of controller states."""

    __slots__ = ()


@dataclass(frozen=True)
class Idle(AuthState):
    """No identifier in flight."""


@dataclass(frozen=True)
class Loading(AuthState):
    """An operation is in progress; callers should not reissue it."""


@dataclass(frozen=True)
class OtpSent(AuthState):
    """A code was generated for ``identifier`` and awaits validation."""

    identifier: str
    expires_at: int


@dataclass(frozen=True)
class OtpError(AuthState):
    """The last operation failed.

    ``attempts_remaining`` is only meaningful after a wrong guess; it is
    0 for every other failure.
    """

    message: str
    attempts_remaining: int = 0


@dataclass(frozen=True)
class Authenticated(AuthState):
    """Validation succeeded; the session lasts until logout."""

    identifier: str
    session_started_at: int


AUTH_STATES: tuple[type[AuthState], ...] = (
    Idle,
    Loading,
    OtpSent,
    OtpError,
    Authenticated,
)
