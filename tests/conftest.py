"""Shared fixtures — a controllable clock, a store and mocked collaborators."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from otp_auth.services.analytics import AnalyticsLogger
from otp_auth.services.auth_session import AuthSessionController
from otp_auth.services.delivery import OtpDelivery
from otp_auth.services.otp_store import OtpStore


class FakeClock:
    """Callable epoch-ms clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return OtpStore(ttl_ms=60_000, max_attempts=3, code_length=6, clock=clock)


@pytest.fixture
def analytics():
    """Mocked analytics sink — records calls, logs nothing."""
    return MagicMock(spec=AnalyticsLogger)


@pytest.fixture
def delivery():
    """Mocked delivery channel — never actually sends anything."""
    return MagicMock(spec=OtpDelivery)


@pytest.fixture
def controller(store, analytics, delivery, clock):
    return AuthSessionController(
        store,
        analytics,
        delivery,
        otp_length=6,
        include_code_in_analytics=False,
        clock=clock,
    )


@pytest.fixture
def fixed_code(monkeypatch):
    """Force every generated code to ``123456``."""
    monkeypatch.setattr(
        "otp_auth.services.otp_store.secrets.randbelow", lambda span: 23456
    )
    return "123456"
