"""In-memory OTP store with expiry and bounded attempts."""

from __future__ import annotations

import logging
import secrets
import threading
from collections.abc import Callable

from otp_auth.config import settings
from otp_auth.models.otp import (
    AttemptsExhausted,
    Expired,
    Invalid,
    NoRecordFound,
    OtpRecord,
    Success,
    ValidationOutcome,
)
from otp_auth.projections import now_ms, remaining_ms

logger = logging.getLogger(__name__)


class OtpStore:
    """Owns the ``identifier → OtpRecord`` mapping.

    At most one record exists per identifier.  Expired and exhausted
    records are evicted lazily on access (or explicitly via
    :meth:`purge_expired`); there is no background sweeper.

    All reads and writes go through one lock, so a store can be shared by
    several controllers without a ``generate`` racing a ``validate`` for
    the same identifier.
    """

    def __init__(
        self,
        *,
        ttl_ms: int | None = None,
        max_attempts: int | None = None,
        code_length: int | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._ttl_ms = ttl_ms if ttl_ms is not None else settings.otp_ttl_ms
        self._max_attempts = (
            max_attempts if max_attempts is not None else settings.otp_max_attempts
        )
        length = code_length if code_length is not None else settings.otp_length
        # Lowest code has no leading zero: 100000..999999 for six digits
        self._code_floor = 10 ** (length - 1)
        self._code_span = 10**length - self._code_floor
        self._clock = clock
        self._records: dict[str, OtpRecord] = {}
        self._lock = threading.Lock()

    # ── Generation ───────────────────────────────────────

    def generate(self, identifier: str) -> str:
        """Generate a fresh code for *identifier*, replacing any previous one."""
        require_str(identifier, "identifier")
        code = str(self._code_floor + secrets.randbelow(self._code_span))
        with self._lock:
            replaced = identifier in self._records
            self._records[identifier] = OtpRecord(
                code=code,
                expires_at=self._clock() + self._ttl_ms,
                attempts_remaining=self._max_attempts,
            )
        logger.info(
            "OTP generated for %s%s", identifier, " (previous code discarded)" if replaced else ""
        )
        return code

    # ── Validation ───────────────────────────────────────

    def validate(self, identifier: str, candidate: str) -> ValidationOutcome:
        """Check *candidate* against the stored code for *identifier*.

        Checks run in a fixed order (missing, expired, exhausted, match,
        mismatch) and the first that applies decides the outcome.  A
        mismatch that uses up the last attempt evicts the record and
        reports :class:`AttemptsExhausted` straight away.
        """
        require_str(identifier, "identifier")
        require_str(candidate, "candidate")

        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                return NoRecordFound()

            if record.is_expired(self._clock()):
                del self._records[identifier]
                logger.info("OTP expired for %s", identifier)
                return Expired()

            if not record.has_attempts_remaining():
                del self._records[identifier]
                logger.info("OTP attempts exhausted for %s", identifier)
                return AttemptsExhausted()

            if secrets.compare_digest(candidate.encode(), record.code.encode()):
                # Consume the OTP on successful verification
                del self._records[identifier]
                logger.info("OTP verified for %s", identifier)
                return Success()

            updated = record.with_attempt_used()
            if not updated.has_attempts_remaining():
                del self._records[identifier]
                logger.info("OTP attempts exhausted for %s", identifier)
                return AttemptsExhausted()

            self._records[identifier] = updated
            logger.info(
                "Invalid OTP for %s, %d attempts remaining",
                identifier,
                updated.attempts_remaining,
            )
            return Invalid(attempts_remaining=updated.attempts_remaining)

    # ── Projections for UI polling ───────────────────────

    def remaining_time_ms(self, identifier: str) -> int | None:
        """Milliseconds until the code expires, ``None`` if there is no code."""
        with self._lock:
            record = self._records.get(identifier)
        if record is None:
            return None
        return remaining_ms(record.expires_at, self._clock())

    def remaining_attempts(self, identifier: str) -> int:
        with self._lock:
            record = self._records.get(identifier)
        return record.attempts_remaining if record is not None else 0

    def expires_at(self, identifier: str) -> int | None:
        with self._lock:
            record = self._records.get(identifier)
        return record.expires_at if record is not None else None

    # ── Housekeeping ─────────────────────────────────────

    def discard(self, identifier: str) -> bool:
        """Evict the record for *identifier*; return ``True`` if one existed."""
        with self._lock:
            removed = self._records.pop(identifier, None) is not None
        if removed:
            logger.info("OTP discarded for %s", identifier)
        return removed

    def purge_expired(self) -> int:
        """Evict every expired or exhausted record; return how many were dropped."""
        now = self._clock()
        with self._lock:
            stale = [
                identifier
                for identifier, record in self._records.items()
                if record.is_expired(now) or not record.has_attempts_remaining()
            ]
            for identifier in stale:
                del self._records[identifier]
        if stale:
            logger.info("Purged %d stale OTP record(s)", len(stale))
        return len(stale)

    @property
    def active_count(self) -> int:
        """Number of records currently held (useful for monitoring)."""
        with self._lock:
            return len(self._records)


def require_str(value: object, name: str) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
