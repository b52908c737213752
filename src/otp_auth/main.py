"""Wiring helpers — logging setup and a ready-to-use controller."""

import logging

from otp_auth.config import settings
from otp_auth.services.analytics import AnalyticsLogger, LoggingAnalytics
from otp_auth.services.auth_session import AuthSessionController
from otp_auth.services.delivery import LogDelivery, OtpDelivery
from otp_auth.services.otp_store import OtpStore

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Install the root log handler (DEBUG when ``settings.debug`` is on)."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=LOG_FORMAT,
    )


def build_controller(
    store: OtpStore | None = None,
    analytics: AnalyticsLogger | None = None,
    delivery: OtpDelivery | None = None,
) -> AuthSessionController:
    """Create a controller, filling unset collaborators with the log-based defaults.

    Pass a shared ``store`` to serve several user sessions from one process.
    """
    logger.info("Starting %s session controller", settings.app_name)
    return AuthSessionController(
        store=store or OtpStore(),
        analytics=analytics or LoggingAnalytics(),
        delivery=delivery or LogDelivery(),
    )
