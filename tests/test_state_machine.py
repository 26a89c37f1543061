"""Tests for the salary payment state machine."""

import pytest

from disbursement_engine.exceptions import ValidationError
from disbursement_engine.services.state_machine import (
    InvalidTransitionError,
    PaymentStateMachine,
)
from disbursement_engine.types import PaymentStatus


class TestPaymentStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        # pending → success
        assert PaymentStateMachine.can_transition("pending", "success") is True

        # pending → failed
        assert PaymentStateMachine.can_transition("pending", "failed") is True

        # success → reversed
        assert PaymentStateMachine.can_transition("success", "reversed") is True

    def test_invalid_transitions(self):
        """Test that invalid transitions are blocked."""
        # Nothing returns to pending
        assert PaymentStateMachine.can_transition("success", "pending") is False
        assert PaymentStateMachine.can_transition("failed", "pending") is False

        # A failed transfer never becomes a success
        assert PaymentStateMachine.can_transition("failed", "success") is False

        # Only successful payments can be reversed
        assert PaymentStateMachine.can_transition("pending", "reversed") is False

        # Reversed is terminal
        assert PaymentStateMachine.can_transition("reversed", "success") is False

    def test_enum_and_string_forms_agree(self):
        assert PaymentStateMachine.can_transition(
            PaymentStatus.PENDING, PaymentStatus.SUCCESS
        ) is True
        assert PaymentStateMachine.can_transition(PaymentStatus.FAILED, "success") is False

    def test_validate_transition_raises(self):
        """Test that validate_transition raises for invalid transitions."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            PaymentStateMachine.validate_transition("failed", "success")

        assert exc_info.value.from_status == "failed"
        assert exc_info.value.to_status == "success"

    def test_validate_transition_passes(self):
        PaymentStateMachine.validate_transition("pending", "success")

    def test_terminal_states(self):
        """Test terminal state detection."""
        assert PaymentStateMachine.is_terminal("failed") is True
        assert PaymentStateMachine.is_terminal("reversed") is True
        assert PaymentStateMachine.is_terminal("pending") is False
        assert PaymentStateMachine.is_terminal("success") is False

    def test_get_next_statuses(self):
        """Test getting valid next statuses."""
        assert set(PaymentStateMachine.get_next_statuses("pending")) == {
            PaymentStatus.SUCCESS,
            PaymentStatus.FAILED,
        }
        assert PaymentStateMachine.get_next_statuses("success") == [PaymentStatus.REVERSED]
        assert PaymentStateMachine.get_next_statuses("reversed") == []

    def test_initial_statuses(self):
        """Records start as pending, success or failed, never reversed."""
        for status in ("pending", "success", "failed"):
            PaymentStateMachine.validate_initial(status)

        with pytest.raises(InvalidTransitionError):
            PaymentStateMachine.validate_initial("reversed")


class TestPaymentStatus:
    """Test status parsing and provider mapping."""

    def test_parse_is_case_insensitive(self):
        assert PaymentStatus.parse("SUCCESS") is PaymentStatus.SUCCESS
        assert PaymentStatus.parse(" Failed ") is PaymentStatus.FAILED

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValidationError):
            PaymentStatus.parse("otp")

    @pytest.mark.parametrize(
        "provider_status,expected",
        [
            ("success", PaymentStatus.SUCCESS),
            ("pending", PaymentStatus.PENDING),
            ("otp", PaymentStatus.PENDING),
            ("processing", PaymentStatus.PENDING),
            ("", PaymentStatus.PENDING),
            (None, PaymentStatus.PENDING),
            ("failed", PaymentStatus.FAILED),
            ("abandoned", PaymentStatus.FAILED),
            ("rejected", PaymentStatus.FAILED),
            ("reversed", PaymentStatus.PENDING),
        ],
    )
    def test_from_provider(self, provider_status, expected):
        assert PaymentStatus.from_provider(provider_status) is expected
