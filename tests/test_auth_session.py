"""Tests for AuthSessionController — verifies the full authentication flow."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from otp_auth.main import build_controller
from otp_auth.models.auth_state import (
    Authenticated,
    Idle,
    Loading,
    OtpError,
    OtpSent,
)
from otp_auth.models.otp import VALIDATION_OUTCOMES, Invalid
from otp_auth.services.auth_session import (
    MSG_ATTEMPTS_EXHAUSTED,
    MSG_EXPIRED,
    MSG_INVALID_EMAIL,
    MSG_NO_OTP,
    REASON_EXHAUSTED,
    REASON_EXPIRED,
    REASON_INVALID,
    REASON_NO_OTP,
    AuthSessionController,
    is_valid_email,
)
from otp_auth.services.otp_store import OtpStore


def _sent_code(delivery) -> str:
    """The code most recently handed to the delivery mock."""
    return delivery.deliver.call_args.args[1]


# ──────────────────────────────────────────────────────────
# Email checks
# ──────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "identifier, expected",
    [
        ("a@b.com", True),
        ("x@y.com", True),
        ("first.last@mail.co.uk", True),
        ("bad-email", False),
        ("", False),
        ("   ", False),
        ("user@", False),
        ("@mail.com", False),
        ("two@@mail.com", False),
        ("Alice <a@b.com>", False),
        (" a@b.com ", False),
        ("a@b.com\n", False),
        ("Alice@Mail.com", True),
    ],
)
def test_is_valid_email(identifier, expected):
    assert is_valid_email(identifier) is expected


def test_bad_email_sets_error_without_side_effects(controller, store, analytics, delivery):
    controller.send_otp("bad-email")

    assert controller.current_state == OtpError(MSG_INVALID_EMAIL)
    assert analytics.method_calls == []
    delivery.deliver.assert_not_called()
    assert store.active_count == 0


@pytest.mark.parametrize("identifier", ["Alice <a@b.com>", " a@b.com "])
def test_non_bare_address_is_not_used_as_key(controller, store, delivery, identifier):
    controller.send_otp(identifier)

    assert controller.current_state == OtpError(MSG_INVALID_EMAIL)
    delivery.deliver.assert_not_called()
    assert store.active_count == 0


# ──────────────────────────────────────────────────────────
# Sending
# ──────────────────────────────────────────────────────────
def test_send_otp_moves_through_loading_to_sent(controller, analytics, delivery, clock):
    seen = []
    controller.subscribe(seen.append)

    controller.send_otp("a@b.com")

    assert seen == [
        Idle(),
        Loading(),
        OtpSent(identifier="a@b.com", expires_at=clock.now + 60_000),
    ]
    delivery.deliver.assert_called_once()
    assert delivery.deliver.call_args.args[0] == "a@b.com"
    analytics.otp_generated.assert_called_once_with("a@b.com", None)
    assert controller.remaining_attempts("a@b.com") == 3
    assert controller.remaining_time_ms("a@b.com") == 60_000


def test_send_otp_can_forward_code_to_analytics(store, analytics, delivery, clock):
    controller = AuthSessionController(
        store, analytics, delivery, include_code_in_analytics=True, clock=clock
    )

    controller.send_otp("a@b.com")

    analytics.otp_generated.assert_called_once_with("a@b.com", _sent_code(delivery))


def test_delivery_failure_becomes_error_state(controller, analytics, delivery, store):
    delivery.deliver.side_effect = RuntimeError("smtp down")

    controller.send_otp("a@b.com")

    assert controller.current_state == OtpError("Failed to generate OTP: smtp down")
    analytics.otp_generated.assert_not_called()
    assert store.active_count == 0
    assert controller.remaining_attempts("a@b.com") == 0
    assert controller.remaining_time_ms("a@b.com") is None


def test_resend_replaces_code(controller, delivery, monkeypatch):
    codes = iter([11111, 22222])
    monkeypatch.setattr(
        "otp_auth.services.otp_store.secrets.randbelow", lambda span: next(codes)
    )

    controller.send_otp("a@b.com")
    controller.send_otp("a@b.com")

    controller.validate_otp("a@b.com", "111111")
    assert controller.current_state == OtpError(
        "Invalid OTP. 2 attempts remaining.", attempts_remaining=2
    )
    controller.validate_otp("a@b.com", "122222")
    assert isinstance(controller.current_state, Authenticated)


# ──────────────────────────────────────────────────────────
# Validation outcomes
# ──────────────────────────────────────────────────────────
def test_wrong_length_is_rejected_before_store(controller, store, analytics):
    controller.send_otp("a@b.com")
    analytics.reset_mock()

    controller.validate_otp("a@b.com", "123")

    assert controller.current_state == OtpError("OTP must be 6 digits")
    assert store.remaining_attempts("a@b.com") == 3
    assert analytics.method_calls == []


def test_successful_validation_authenticates(controller, analytics, delivery, clock):
    controller.send_otp("a@b.com")
    clock.advance(5_000)

    controller.validate_otp("a@b.com", _sent_code(delivery))

    assert controller.current_state == Authenticated(
        identifier="a@b.com", session_started_at=clock.now
    )
    analytics.validation_succeeded.assert_called_once_with("a@b.com")
    assert controller.remaining_time_ms("a@b.com") is None


def test_invalid_guesses_then_exhaustion(controller, analytics, fixed_code):
    controller.send_otp("x@y.com")

    controller.validate_otp("x@y.com", "000000")
    assert controller.current_state == OtpError(
        "Invalid OTP. 2 attempts remaining.", attempts_remaining=2
    )
    controller.validate_otp("x@y.com", "111111")
    assert controller.current_state == OtpError(
        "Invalid OTP. 1 attempts remaining.", attempts_remaining=1
    )
    controller.validate_otp("x@y.com", "222222")
    assert controller.current_state == OtpError(MSG_ATTEMPTS_EXHAUSTED)

    controller.validate_otp("x@y.com", fixed_code)
    assert controller.current_state == OtpError(MSG_NO_OTP)

    reasons = [c.args[1] for c in analytics.validation_failed.call_args_list]
    assert reasons == [REASON_INVALID, REASON_INVALID, REASON_EXHAUSTED, REASON_NO_OTP]


def test_expired_code(controller, analytics, delivery, clock):
    controller.send_otp("a@b.com")
    clock.advance(61_000)

    controller.validate_otp("a@b.com", _sent_code(delivery))

    assert controller.current_state == OtpError(MSG_EXPIRED)
    analytics.validation_failed.assert_called_once_with("a@b.com", REASON_EXPIRED)


def test_validate_without_send(controller, analytics):
    controller.validate_otp("a@b.com", "123456")

    assert controller.current_state == OtpError(MSG_NO_OTP)
    analytics.validation_failed.assert_called_once_with("a@b.com", REASON_NO_OTP)


@pytest.mark.parametrize("outcome_cls", VALIDATION_OUTCOMES)
def test_every_outcome_has_a_next_state(outcome_cls, analytics, delivery, clock):
    fake_store = MagicMock(spec=OtpStore)
    outcome = outcome_cls(attempts_remaining=1) if outcome_cls is Invalid else outcome_cls()
    fake_store.validate.return_value = outcome
    controller = AuthSessionController(fake_store, analytics, delivery, clock=clock)

    controller.validate_otp("a@b.com", "123456")

    assert isinstance(controller.current_state, (Authenticated, OtpError))
    assert len(analytics.method_calls) == 1


def test_unknown_outcome_fails_loudly(analytics, delivery, clock):
    fake_store = MagicMock(spec=OtpStore)
    fake_store.validate.return_value = object()
    controller = AuthSessionController(fake_store, analytics, delivery, clock=clock)

    with pytest.raises(TypeError):
        controller.validate_otp("a@b.com", "123456")


def test_non_string_input_is_a_programming_error(controller):
    with pytest.raises(TypeError):
        controller.send_otp(None)
    with pytest.raises(TypeError):
        controller.validate_otp("a@b.com", 123456)


def test_analytics_failure_does_not_change_state(controller, analytics, delivery):
    analytics.otp_generated.side_effect = RuntimeError("sink offline")
    analytics.validation_succeeded.side_effect = RuntimeError("sink offline")

    controller.send_otp("a@b.com")
    assert isinstance(controller.current_state, OtpSent)

    controller.validate_otp("a@b.com", _sent_code(delivery))
    assert isinstance(controller.current_state, Authenticated)


# ──────────────────────────────────────────────────────────
# Session lifecycle
# ──────────────────────────────────────────────────────────
def test_logout_reports_session_duration(controller, analytics, delivery, clock):
    controller.send_otp("a@b.com")
    controller.validate_otp("a@b.com", _sent_code(delivery))
    clock.advance(125_000)

    assert controller.session_elapsed_ms() == 125_000
    controller.logout()

    analytics.logged_out.assert_called_once_with("a@b.com", 125_000)
    assert controller.current_state == Idle()
    assert controller.session_elapsed_ms() is None


def test_logout_outside_session_is_silent(controller, analytics):
    controller.send_otp("a@b.com")
    analytics.reset_mock()

    controller.logout()

    assert controller.current_state == Idle()
    analytics.logged_out.assert_not_called()


def test_reset_to_idle(controller, analytics):
    controller.send_otp("a@b.com")
    analytics.reset_mock()

    controller.reset_to_idle()

    assert controller.current_state == Idle()
    assert analytics.method_calls == []


def test_remaining_seconds_rounds_down(controller, clock):
    assert controller.remaining_seconds("a@b.com") is None
    controller.send_otp("a@b.com")
    clock.advance(15_500)

    assert controller.remaining_seconds("a@b.com") == 44


def test_is_loading_only_during_operations(controller):
    during = []
    controller.subscribe(lambda state: during.append(controller.is_loading))

    controller.send_otp("a@b.com")

    assert during == [False, True, False]
    assert controller.is_loading is False


# ──────────────────────────────────────────────────────────
# Wiring
# ──────────────────────────────────────────────────────────
def test_build_controller_uses_shared_store(store):
    first = build_controller(store=store)
    second = build_controller(store=store)

    first.send_otp("a@b.com")

    assert isinstance(first.current_state, OtpSent)
    assert second.current_state == Idle()
    assert second.remaining_attempts("a@b.com") == 3


def test_build_controller_defaults_log_code_and_events(caplog):
    caplog.set_level(logging.DEBUG, logger="otp_auth")
    controller = build_controller()
    assert controller.current_state == Idle()

    controller.send_otp("a@b.com")

    delivered = [r for r in caplog.records if r.name == "otp_auth.services.delivery"]
    events = [r for r in caplog.records if r.name == "otp_auth.services.analytics"]
    assert len(delivered) == 1
    assert delivered[0].args[0] == "a@b.com"
    assert delivered[0].args[1].isdigit()
    assert [r.getMessage() for r in events] == ["OTP generated for: a@b.com"]
    assert isinstance(controller.current_state, OtpSent)
