"""OTP delivery — hands a freshly generated code to the user-facing channel."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from otp_auth.config import settings

logger = logging.getLogger(__name__)


class OtpDelivery(ABC):
    """Abstract delivery channel.

    Integrators substitute an email or SMS implementation; the core only
    guarantees that :meth:`deliver` is called once per generated code.
    """

    @abstractmethod
    def deliver(self, identifier: str, code: str) -> None:
        """Send *code* to the owner of *identifier*.

        Raising marks the send as failed; the controller reports it as an
        ``OtpError``.
        """


class LogDelivery(OtpDelivery):
    """Surfaces the code in the operator log instead of sending it.

    In a real system this would dispatch an email/SMS.
    """

    def deliver(self, identifier: str, code: str) -> None:
        logger.info(
            "OTP for %s: %s  (%s would send this by email)",
            identifier,
            code,
            settings.app_name,
        )
