"""OTP record and validation outcome value objects."""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class OtpRecord:
    """A live one-time passcode bound to a single identifier.

    Records are immutable; the store swaps in a new record whenever the
    attempt counter changes.
    """

    code: str
    expires_at: int
    attempts_remaining: int

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at

    def has_attempts_remaining(self) -> bool:
        return self.attempts_remaining > 0

    def with_attempt_used(self) -> OtpRecord:
        return replace(self, attempts_remaining=self.attempts_remaining - 1)


# ── Validation outcomes ──────────────────────────────────


class ValidationOutcome:
    """Base class for the closed set of results returned by ``OtpStore.validate``."""

    __slots__ = ()


@dataclass(frozen=True)
class Success(ValidationOutcome):
    """The candidate matched; the record has been consumed."""


@dataclass(frozen=True)
class NoRecordFound(ValidationOutcome):
    """No OTP is outstanding for the identifier."""


@dataclass(frozen=True)
class Expired(ValidationOutcome):
    """The OTP outlived its TTL and has been evicted."""


@dataclass(frozen=True)
class AttemptsExhausted(ValidationOutcome):
    """No attempts are left; the record has been evicted."""


@dataclass(frozen=True)
class Invalid(ValidationOutcome):
    """Wrong candidate; ``attempts_remaining`` guesses are left."""

    attempts_remaining: int


VALIDATION_OUTCOMES: tuple[type[ValidationOutcome], ...] = (
    Success,
    NoRecordFound,
    Expired,
    AttemptsExhausted,
    Invalid,
)
