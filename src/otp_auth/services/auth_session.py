"""Authentication session controller — drives the email → OTP → session flow."""

from __future__ import annotations

import logging
import threading
from collections.abc import AsyncIterator, Callable

from pydantic import EmailStr, TypeAdapter, ValidationError

from otp_auth.config import settings
from otp_auth.models.auth_state import (
    Authenticated,
    AuthState,
    Idle,
    Loading,
    OtpError,
    OtpSent,
)
from otp_auth.models.otp import (
    AttemptsExhausted,
    Expired,
    Invalid,
    NoRecordFound,
    Success,
    ValidationOutcome,
)
from otp_auth.projections import elapsed_ms, now_ms, whole_seconds
from otp_auth.services.analytics import AnalyticsLogger
from otp_auth.services.delivery import OtpDelivery
from otp_auth.services.otp_store import OtpStore, require_str
from otp_auth.services.state_flow import StateFlow

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)

# ── User-facing messages ─────────────────────────────────
MSG_INVALID_EMAIL = "Invalid email address"
MSG_EXPIRED = "OTP has expired. Please request a new one."
MSG_ATTEMPTS_EXHAUSTED = "Maximum attempts exceeded. Please request a new OTP."
MSG_NO_OTP = "No OTP found. Please request a new one."

# ── Analytics failure reasons ────────────────────────────
REASON_INVALID = "Invalid OTP"
REASON_EXPIRED = "OTP Expired"
REASON_EXHAUSTED = "Attempts Exhausted"
REASON_NO_OTP = "No OTP Found"


def is_valid_email(identifier: str) -> bool:
    """Return ``True`` if *identifier* is non-blank and shaped like an email.

    The whole string must be the address: display-name forms such as
    ``Alice <a@b.com>`` and padded input are rejected, since the raw
    identifier becomes the store key.
    """
    if not identifier or not identifier.strip():
        return False
    try:
        address = _email_adapter.validate_python(identifier)
    except ValidationError:
        return False
    # The validator lower-cases the domain; any other difference is rejected
    return address.casefold() == identifier.casefold()


class AuthSessionController:
    """Single owner of the observable :class:`AuthState` for one user session.

    Flow
    ----
    1. ``send_otp`` checks the email, asks the store for a code, hands it
       to the delivery channel and moves to ``OtpSent``.
    2. ``validate_otp`` checks the candidate length, asks the store and
       maps the outcome to ``Authenticated`` or ``OtpError``.
    3. ``logout`` ends the session and reports its duration.

    Business failures never raise; they land in ``OtpError``.  Passing a
    non-``str`` identifier or code is a programming error and raises
    ``TypeError``.
    """

    def __init__(
        self,
        store: OtpStore,
        analytics: AnalyticsLogger,
        delivery: OtpDelivery,
        *,
        otp_length: int | None = None,
        include_code_in_analytics: bool | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._analytics = analytics
        self._delivery = delivery
        self._otp_length = otp_length if otp_length is not None else settings.otp_length
        self._include_code = (
            include_code_in_analytics
            if include_code_in_analytics is not None
            else settings.include_code_in_analytics
        )
        self._clock = clock
        self._state = StateFlow(Idle())
        self._lock = threading.RLock()

    # ── Observation ──────────────────────────────────────

    @property
    def current_state(self) -> AuthState:
        return self._state.value

    @property
    def is_loading(self) -> bool:
        return isinstance(self._state.value, Loading)

    def subscribe(self, subscriber: Callable[[AuthState], None]) -> Callable[[], None]:
        """Receive the current state now and every later transition."""
        return self._state.subscribe(subscriber)

    def watch(self) -> AsyncIterator[AuthState]:
        return self._state.watch()

    def remaining_time_ms(self, identifier: str) -> int | None:
        return self._store.remaining_time_ms(identifier)

    def remaining_seconds(self, identifier: str) -> int | None:
        remaining = self._store.remaining_time_ms(identifier)
        return whole_seconds(remaining) if remaining is not None else None

    def remaining_attempts(self, identifier: str) -> int:
        return self._store.remaining_attempts(identifier)

    def session_elapsed_ms(self) -> int | None:
        """Time since authentication, or ``None`` outside a session."""
        state = self._state.value
        if isinstance(state, Authenticated):
            return elapsed_ms(state.session_started_at, self._clock())
        return None

    # ── Commands ─────────────────────────────────────────

    def send_otp(self, identifier: str) -> None:
        """Issue a new code for *identifier* and move to ``OtpSent``."""
        require_str(identifier, "identifier")
        with self._lock:
            if not is_valid_email(identifier):
                logger.info("Rejected OTP request for malformed email %r", identifier)
                self._state.emit(OtpError(MSG_INVALID_EMAIL))
                return

            self._state.emit(Loading())
            try:
                code = self._store.generate(identifier)
                self._delivery.deliver(identifier, code)
            except Exception as exc:
                logger.exception("Failed to generate OTP for %s", identifier)
                # An undelivered code must not stay redeemable
                self._store.discard(identifier)
                self._state.emit(OtpError(f"Failed to generate OTP: {exc}"))
                return

            self._emit_event(
                self._analytics.otp_generated,
                identifier,
                code if self._include_code else None,
            )
            expires_at = self._store.expires_at(identifier)
            if expires_at is None:
                # Another controller sharing the store consumed the code already
                expires_at = self._clock()
            self._state.emit(OtpSent(identifier=identifier, expires_at=expires_at))
            logger.info("OTP sent for %s", identifier)

    def validate_otp(self, identifier: str, candidate: str) -> None:
        """Check *candidate* for *identifier* and move to the resulting state."""
        require_str(identifier, "identifier")
        require_str(candidate, "candidate")
        with self._lock:
            if len(candidate) != self._otp_length:
                self._state.emit(OtpError(f"OTP must be {self._otp_length} digits"))
                return

            self._state.emit(Loading())
            outcome = self._store.validate(identifier, candidate)
            self._state.emit(self._apply_outcome(identifier, outcome))

    def logout(self) -> None:
        """End the current session (if any) and return to ``Idle``."""
        with self._lock:
            state = self._state.value
            if isinstance(state, Authenticated):
                duration = elapsed_ms(state.session_started_at, self._clock())
                self._emit_event(self._analytics.logged_out, state.identifier, duration)
                logger.info("User %s logged out after %d ms", state.identifier, duration)
            self._state.emit(Idle())

    def reset_to_idle(self) -> None:
        with self._lock:
            self._state.emit(Idle())

    # ── Private helpers ──────────────────────────────────

    def _apply_outcome(self, identifier: str, outcome: ValidationOutcome) -> AuthState:
        """Map a store outcome to the next state, emitting its analytics event."""
        if isinstance(outcome, Success):
            self._emit_event(self._analytics.validation_succeeded, identifier)
            logger.info("User %s authenticated via OTP", identifier)
            return Authenticated(identifier=identifier, session_started_at=self._clock())

        if isinstance(outcome, Invalid):
            self._emit_event(self._analytics.validation_failed, identifier, REASON_INVALID)
            n = outcome.attempts_remaining
            return OtpError(f"Invalid OTP. {n} attempts remaining.", attempts_remaining=n)

        if isinstance(outcome, Expired):
            self._emit_event(self._analytics.validation_failed, identifier, REASON_EXPIRED)
            return OtpError(MSG_EXPIRED)

        if isinstance(outcome, AttemptsExhausted):
            self._emit_event(self._analytics.validation_failed, identifier, REASON_EXHAUSTED)
            return OtpError(MSG_ATTEMPTS_EXHAUSTED)

        if isinstance(outcome, NoRecordFound):
            self._emit_event(self._analytics.validation_failed, identifier, REASON_NO_OTP)
            return OtpError(MSG_NO_OTP)

        raise TypeError(f"Unhandled validation outcome: {outcome!r}")

    @staticmethod
    def _emit_event(event: Callable[..., None], *args: object) -> None:
        """Call an analytics hook; a failing sink is logged and ignored."""
        try:
            event(*args)
        except Exception:
            logger.exception("Analytics event %s failed", getattr(event, "__name__", event))

