"""
OTP verification state machine
Local OTP format checks, verification phases, and the resend countdown
with attempt limiting
"""
import asyncio
import logging
import re
from enum import Enum
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from kwikpass.core.config import settings
from kwikpass.core.exceptions import ErrorCode, StateError, ValidationError

logger = logging.getLogger(__name__)

OTP_LENGTH = 4
OTP_PATTERN = re.compile(r"[0-9]{4}")
OTP_FIELD = "otp"


class VerificationPhase(str, Enum):
    IDLE = "idle"
    CODE_REQUESTED = "code_requested"
    VALIDATING = "validating"
    VERIFIED = "verified"
    INVALID = "invalid"


class VerifyUiState(BaseModel):
    """Immutable snapshot of one verification session"""

    model_config = ConfigDict(frozen=True)

    is_loading: bool = False
    errors: Dict[str, str] = Field(default_factory=dict)
    resend_seconds: int = 30
    is_resend_disabled: bool = True
    attempts: int = 0
    max_attempts: int = 5
    phase: VerificationPhase = VerificationPhase.IDLE
    is_success: bool = False
    should_reset_otp: bool = False

    @property
    def attempts_exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


def check_otp_format(code: Optional[str]) -> str:
    """
    Validate an OTP locally

    Raises:
        ValidationError: reason "required" when empty, "format" when the
            code is not exactly four ASCII digits
    """
    if not code:
        raise ValidationError(
            reason="required",
            field=OTP_FIELD,
            user_message="OTP is required",
            error_code=ErrorCode.VERIFICATION_CODE_REQUIRED
        )
    if not OTP_PATTERN.fullmatch(code):
        raise ValidationError(
            reason="format",
            field=OTP_FIELD,
            user_message="Enter a valid OTP",
            error_code=ErrorCode.VERIFICATION_CODE_FORMAT
        )
    return code


def extract_otp_from_sms(message: str) -> str:
    """Keep the first four digits of an SMS body"""
    return re.sub(r"[^0-9]", "", message or "")[:OTP_LENGTH]


StateListener = Callable[[VerifyUiState], None]


class VerificationStateMachine:
    """
    Owns the UI-facing state of one OTP verification

    The machine only gates local validity of the code; the remote
    verification is reported back through complete_verification().
    The resend countdown runs as an asyncio task on the caller's loop.
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        resend_seconds: Optional[int] = None,
        tick_interval: float = 1.0
    ):
        self.max_attempts = settings.OTP_MAX_ATTEMPTS if max_attempts is None else max_attempts
        if resend_seconds is None:
            resend_seconds = settings.RESEND_COOLDOWN_SECONDS
        self.resend_seconds = resend_seconds
        self.tick_interval = tick_interval

        self._state = self._initial_state()
        self._listeners: List[StateListener] = []
        self._timer: Optional[asyncio.Task] = None
        self._generation = 0

    def _initial_state(self) -> VerifyUiState:
        return VerifyUiState(
            resend_seconds=self.resend_seconds,
            max_attempts=self.max_attempts
        )

    @property
    def state(self) -> VerifyUiState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener for state snapshots; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Verification state listener failed")

    # OTP validation

    def validate_otp(self, code: Optional[str]) -> bool:
        """Check the code locally; errors are recorded under errors["otp"]"""
        try:
            check_otp_format(code)
        except ValidationError as e:
            self._update(
                errors={e.field: e.user_message},
                phase=VerificationPhase.INVALID
            )
            return False

        self._update(errors={}, phase=VerificationPhase.VALIDATING)
        return True

    def mark_code_requested(self) -> None:
        self._update(
            phase=VerificationPhase.CODE_REQUESTED,
            is_success=False,
            errors={}
        )

    def complete_verification(self, success: bool, message: Optional[str] = None) -> None:
        """Record the outcome of the remote verification"""
        if success:
            self._update(
                phase=VerificationPhase.VERIFIED,
                is_success=True,
                errors={}
            )
        else:
            self._update(
                phase=VerificationPhase.INVALID,
                is_success=False,
                errors={OTP_FIELD: message or "Invalid OTP"}
            )

    # Resend countdown

    def start_resend_timer(self) -> Optional[asyncio.Task]:
        """
        Start the resend countdown on the running event loop

        Returns:
            The countdown task, or None when attempts are exhausted

        Raises:
            StateError: no event loop is running; the state is left untouched
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise StateError(
                user_message="Resend timer could not be started",
                internal_message="start_resend_timer called without a running event loop"
            ) from e

        if self._state.attempts_exhausted:
            error = StateError(
                user_message="No resend attempts left",
                error_code=ErrorCode.VERIFICATION_CODE_MAX_ATTEMPTS,
                internal_message=f"Resend ignored after {self._state.attempts} attempts"
            )
            logger.debug(error.internal_message)
            return None

        self._generation += 1
        generation = self._generation
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()

        self._update(
            is_resend_disabled=True,
            resend_seconds=self.resend_seconds,
            attempts=self._state.attempts + 1,
            errors={}
        )

        self._timer = loop.create_task(self._countdown(generation))
        return self._timer

    async def _countdown(self, generation: int) -> None:
        try:
            for _ in range(self.resend_seconds):
                await asyncio.sleep(self.tick_interval)
                if generation != self._generation:
                    return
                self._update(resend_seconds=max(self._state.resend_seconds - 1, 0))
        except Exception:
            logger.exception("Resend countdown failed")
        finally:
            # a replacement timer owns the state from here on
            if generation == self._generation:
                self._timer = None
                self._update(is_resend_disabled=False)

    def cancel_resend_timer(self) -> None:
        """Stop the countdown and re-enable resend; safe to call repeatedly"""
        timer = self._timer
        self._timer = None
        if timer is None:
            return
        self._generation += 1
        if not timer.done():
            timer.cancel()
        self._update(is_resend_disabled=False)

    # Orthogonal flags

    def set_loading(self, loading: bool) -> None:
        self._update(is_loading=loading)

    def set_reset_otp_flag(self) -> None:
        self._update(should_reset_otp=True)

    def reset_otp_flag(self) -> None:
        self._update(should_reset_otp=False)

    # Lifecycle

    def reset(self) -> None:
        """Start a new verification session"""
        self.cancel_resend_timer()
        self._state = self._initial_state()
        self._update()

    def close(self) -> None:
        self.cancel_resend_timer()
        self._listeners.clear()
