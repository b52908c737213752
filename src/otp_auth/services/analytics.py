"""Analytics sink — abstract interface plus a logging implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from otp_auth.projections import format_duration

logger = logging.getLogger(__name__)


class AnalyticsLogger(ABC):
    """Receives authentication events from the controller.

    Calls are fire-and-forget.  The controller isolates any exception an
    implementation raises, so a broken sink never changes auth state.
    """

    @abstractmethod
    def otp_generated(self, identifier: str, code: str | None = None) -> None:
        """A code was issued for *identifier*.

        *code* is only passed when ``include_code_in_analytics`` is on.
        """

    @abstractmethod
    def validation_succeeded(self, identifier: str) -> None:
        """*identifier* proved control of its code."""

    @abstractmethod
    def validation_failed(self, identifier: str, reason: str) -> None:
        """A validation for *identifier* failed for *reason*."""

    @abstractmethod
    def logged_out(self, identifier: str, session_duration_ms: int) -> None:
        """An authenticated session for *identifier* ended."""


class LoggingAnalytics(AnalyticsLogger):
    """Writes every event to the ``otp_auth.services.analytics`` logger."""

    def otp_generated(self, identifier: str, code: str | None = None) -> None:
        if code is None:
            logger.debug("OTP generated for: %s", identifier)
        else:
            logger.debug("OTP generated for: %s | Code: %s", identifier, code)

    def validation_succeeded(self, identifier: str) -> None:
        logger.debug("OTP validation success for: %s", identifier)

    def validation_failed(self, identifier: str, reason: str) -> None:
        logger.error("OTP validation failed for: %s | Reason: %s", identifier, reason)

    def logged_out(self, identifier: str, session_duration_ms: int) -> None:
        logger.debug(
            "Logout: %s | Session duration: %s",
            identifier,
            format_duration(session_duration_ms),
        )
