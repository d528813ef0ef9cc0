"""
Unit tests for OTP validation and the verification state machine
"""
import asyncio

import pytest

from kwikpass.core.exceptions import ErrorCode, StateError, ValidationError
from kwikpass.core.verification_code import (
    VerificationPhase,
    VerificationStateMachine,
    check_otp_format,
    extract_otp_from_sms,
)


class TestOtpFormat:
    """Test local OTP format checks"""

    def test_valid_codes(self):
        for code in ("1234", "0000", "9876"):
            assert check_otp_format(code) == code

    def test_invalid_codes(self):
        """Test codes of the wrong length or with non-digits"""
        invalid_codes = [
            "123",  # Too short
            "12345",  # Too long
            "12a4",  # Letter
            "12 4",  # Space
            "١٢٣٤",  # Non-ASCII digits
        ]

        for code in invalid_codes:
            with pytest.raises(ValidationError) as exc_info:
                check_otp_format(code)
            assert exc_info.value.reason == "format", f"{code!r} should be a format error"
            assert exc_info.value.error_code == ErrorCode.VERIFICATION_CODE_FORMAT

    def test_empty_code_is_required_error(self):
        with pytest.raises(ValidationError) as exc_info:
            check_otp_format("")

        assert exc_info.value.reason == "required"
        assert exc_info.value.user_message == "OTP is required"

    def test_extract_otp_from_sms(self):
        assert extract_otp_from_sms("Your OTP is 4821. Do not share.") == "4821"
        assert extract_otp_from_sms("no digits") == ""


class TestValidateOtp:
    """Test validate_otp state transitions"""

    def test_valid_code_moves_to_validating(self):
        machine = VerificationStateMachine()

        assert machine.validate_otp("1234") is True
        assert machine.state.phase == VerificationPhase.VALIDATING
        assert machine.state.errors == {}

    def test_invalid_code_records_error(self):
        machine = VerificationStateMachine()

        assert machine.validate_otp("12") is False
        assert machine.state.phase == VerificationPhase.INVALID
        assert machine.state.errors == {"otp": "Enter a valid OTP"}

    def test_empty_code_records_required(self):
        machine = VerificationStateMachine()

        assert machine.validate_otp(None) is False
        assert machine.state.errors == {"otp": "OTP is required"}

    def test_complete_verification(self):
        machine = VerificationStateMachine()
        machine.mark_code_requested()
        assert machine.state.phase == VerificationPhase.CODE_REQUESTED

        machine.complete_verification(False, "Invalid OTP")
        assert machine.state.phase == VerificationPhase.INVALID
        assert machine.state.errors == {"otp": "Invalid OTP"}

        machine.complete_verification(True)
        assert machine.state.phase == VerificationPhase.VERIFIED
        assert machine.state.is_success is True

    def test_listeners_receive_snapshots(self):
        """Test that subscribers see every new state and can unsubscribe"""
        machine = VerificationStateMachine()
        seen = []
        unsubscribe = machine.subscribe(seen.append)

        machine.set_loading(True)
        machine.set_reset_otp_flag()
        unsubscribe()
        machine.set_loading(False)

        assert [s.is_loading for s in seen] == [True, True]
        assert seen[-1].should_reset_otp is True
        assert machine.state.is_loading is False

    def test_failing_listener_does_not_break_updates(self):
        machine = VerificationStateMachine()

        def broken(state):
            raise RuntimeError("listener bug")

        machine.subscribe(broken)
        machine.set_loading(True)

        assert machine.state.is_loading is True


class TestResendTimer:
    """Test the resend countdown"""

    def test_initial_state(self):
        state = VerificationStateMachine().state

        assert state.resend_seconds == 30
        assert state.is_resend_disabled is True
        assert state.attempts == 0
        assert state.max_attempts == 5

    def test_countdown_ticks_every_second_value(self):
        """Test that a countdown yields 29..0 over 30 ticks and re-enables resend"""
        async def run():
            machine = VerificationStateMachine(resend_seconds=30, tick_interval=0)
            seen = []
            machine.subscribe(lambda s: seen.append(s.resend_seconds))
            await machine.start_resend_timer()
            return machine, seen

        machine, seen = asyncio.run(run())

        assert seen[0] == 30
        assert seen[1:31] == list(range(29, -1, -1))
        assert machine.state.resend_seconds == 0
        assert machine.state.is_resend_disabled is False
        assert machine.state.attempts == 1

    def test_second_timer_cancels_first(self):
        async def run():
            machine = VerificationStateMachine(resend_seconds=5, tick_interval=0)
            first = machine.start_resend_timer()
            second = machine.start_resend_timer()
            await second
            await asyncio.sleep(0)
            return machine, first

        machine, first = asyncio.run(run())

        assert first.cancelled()
        assert machine.state.attempts == 2
        assert machine.state.resend_seconds == 0
        assert machine.state.is_resend_disabled is False

    def test_exhausted_attempts_leave_state_unchanged(self):
        """Test that resend is ignored once attempts reach the maximum"""
        async def run():
            machine = VerificationStateMachine(max_attempts=1, resend_seconds=2, tick_interval=0)
            await machine.start_resend_timer()
            before = machine.state
            task = machine.start_resend_timer()
            return machine, before, task

        machine, before, task = asyncio.run(run())

        assert task is None
        assert machine.state == before
        assert machine.state.attempts_exhausted

    def test_cancel_is_idempotent(self):
        async def run():
            machine = VerificationStateMachine(tick_interval=10)
            machine.start_resend_timer()
            await asyncio.sleep(0)
            machine.cancel_resend_timer()
            machine.cancel_resend_timer()
            return machine

        machine = asyncio.run(run())

        assert machine.state.is_resend_disabled is False
        assert machine.state.resend_seconds == 30

    def test_cancel_without_timer(self):
        machine = VerificationStateMachine()
        machine.cancel_resend_timer()

        assert machine.state.is_resend_disabled is True

    def test_reset_starts_new_session(self):
        async def run():
            machine = VerificationStateMachine(resend_seconds=3, tick_interval=0)
            await machine.start_resend_timer()
            machine.validate_otp("x")
            machine.reset()
            return machine

        machine = asyncio.run(run())

        assert machine.state.attempts == 0
        assert machine.state.errors == {}
        assert machine.state.phase == VerificationPhase.IDLE

    def test_cancelled_task_reenables_resend(self):
        """Test that cancelling the countdown task directly still re-enables resend"""
        async def run():
            machine = VerificationStateMachine(resend_seconds=30, tick_interval=10)
            task = machine.start_resend_timer()
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return machine

        machine = asyncio.run(run())

        assert machine.state.is_resend_disabled is False
        assert machine.state.attempts == 1
        assert machine._timer is None

    def test_start_without_event_loop(self):
        """Test that a missing event loop is reported before any state change"""
        machine = VerificationStateMachine()
        before = machine.state

        with pytest.raises(StateError) as exc_info:
            machine.start_resend_timer()

        assert exc_info.value.error_code == ErrorCode.INVALID_STATE
        assert machine.state == before
        assert machine.state.attempts == 0

    def test_explicit_zero_limits_are_kept(self):
        machine = VerificationStateMachine(max_attempts=0, resend_seconds=0)

        assert machine.state.max_attempts == 0
        assert machine.state.resend_seconds == 0
        assert machine.state.attempts_exhausted
