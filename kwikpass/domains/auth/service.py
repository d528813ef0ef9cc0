"""
Authentication domain service
Orchestrates the login, OTP and account-linking calls and keeps tokens and
the verified user in the key-value store
"""
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from kwikpass.core import keys
from kwikpass.core.audit import AuditEventType, AuditService
from kwikpass.core.exceptions import AppException, ErrorCode, ValidationError
from kwikpass.core.verification_code import check_otp_format

from .cache import KeyValueStore
from .client import KwikPassApiClient
from .repository import TokenRepository, VerifiedUserRepository
from .schemas import (
    AuthResult,
    CreateUserRequest,
    EmailVerifyRequest,
    Failure,
    MerchantType,
    MultipassRequest,
    Success,
    UserState,
    VerifiedUser,
)

logger = logging.getLogger(__name__)


class AuthSessionManager:
    """
    Authentication service implementing the login flow

    Every public operation returns Success or Failure and never raises;
    network and decoding errors become a Failure carrying a readable reason.
    Retrying is left to the caller.
    """

    def __init__(
        self,
        store: KeyValueStore,
        api_client: KwikPassApiClient,
        tracker=None
    ):
        """
        Initialize the manager with its collaborators

        Args:
            store: Key-value store holding tokens and the verified user
            api_client: API collaborator
            tracker: Optional AnalyticsTracker notified after logins
        """
        self.store = store
        self.api = api_client
        self.tracker = tracker
        self.users = VerifiedUserRepository(store)
        self.tokens = TokenRepository(store)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _failure(self, operation: str, error: Exception) -> Failure:
        if isinstance(error, AppException):
            logger.warning("%s failed: %s", operation, error.internal_message)
            return Failure(
                reason=error.user_message,
                error_code=error.error_code,
                status_code=getattr(error, "status_code", None)
            )
        if isinstance(error, PydanticValidationError):
            logger.warning("%s could not read response data: %s", operation, error)
            return Failure(
                reason="Unexpected response from server",
                error_code=ErrorCode.UNEXPECTED_RESPONSE
            )
        logger.exception("%s failed unexpectedly", operation)
        return Failure(
            reason=str(error) or "An unknown error occurred",
            error_code=ErrorCode.INTERNAL_ERROR
        )

    async def _refresh_browser_auth(self) -> None:
        """Obtain a fresh browser token; failures leave the previous one in place"""
        try:
            data = await self.api.get_browser_auth()
        except Exception as e:
            logger.warning("Browser auth failed: %s", getattr(e, "internal_message", e))
            return
        self.tokens.store_browser_auth(data.request_id, data.token)

    def _notify_login(self, label: str, phone: Optional[str]) -> None:
        if self.tracker is None:
            return
        self.tracker.dispatch_custom_event({
            "category": "login_screen",
            "action": "logged_in",
            "label": label,
            "property": "kwik_pass",
            "value": phone or 0,
        })

    # =========================================================================
    # Session
    # =========================================================================

    async def initialize(
        self,
        merchant_id: str,
        environment: str,
        snowplow_enabled: bool = True
    ) -> AuthResult:
        """
        Record the session identity, then fetch browser auth and merchant config

        The merchant configuration is required; a failure to load it fails
        initialization.
        """
        self.store.set(keys.GK_MERCHANT_ID, merchant_id)
        self.store.set(keys.GK_ENVIRONMENT, environment)
        self.store.set_bool(keys.IS_SNOWPLOW_TRACKING_ENABLED, snowplow_enabled)

        await self._refresh_browser_auth()
        try:
            config = await self.api.get_merchant_config(merchant_id)
        except Exception as e:
            return self._failure("initialize", e)

        self.tokens.store_merchant_config(config)
        AuditService.log_event(
            AuditEventType.SESSION_INITIALIZED,
            merchant_id=merchant_id,
            details={"environment": environment, "platform": config.platform}
        )
        return Success(data=config, message="Initialization Successful")

    def get_verified_user(self) -> Optional[VerifiedUser]:
        return self.users.get()

    async def logout(self) -> AuthResult:
        """Forget the verified user and session tokens"""
        self.tokens.clear_session()
        self.store.clear_volatile_cache()
        AuditService.log_event(
            AuditEventType.SESSION_CLEARED,
            merchant_id=self.store.get(keys.GK_MERCHANT_ID)
        )
        return Success(data=True, message="Logged out")

    # =========================================================================
    # Phone OTP
    # =========================================================================

    async def send_otp(self, phone: str, notifications: bool = False) -> AuthResult:
        """Request an OTP for phone"""
        try:
            await self._refresh_browser_auth()
            self.store.set_bool(keys.GK_NOTIFICATION_ENABLED, notifications)
            self.store.set(keys.GK_USER_PHONE, phone)
            data = await self.api.send_otp(phone)
        except Exception as e:
            failure = self._failure("send_otp", e)
            AuditService.log_code_sent(phone, success=False, reason=failure.reason)
            return failure

        AuditService.log_code_sent(phone)
        return Success(data=data, message="OTP sent")

    async def verify_otp(self, phone: str, code: str) -> AuthResult:
        """
        Verify the phone OTP and complete the login

        Shopify merchants exchange a multipass token when the account is
        disabled or already has an email; other merchants validate the new
        token and log the KwikPass user in.
        """
        try:
            check_otp_format(code)
        except ValidationError as e:
            return Failure(reason=e.user_message, error_code=e.error_code)

        try:
            await self._refresh_browser_auth()
            data = await self.api.verify_otp(phone, int(code))
        except Exception as e:
            failure = self._failure("verify_otp", e)
            AuditService.log_code_failed(phone, failure.reason)
            return failure

        self.tokens.store_tokens(
            access_token=data.token,
            checkout_access_token=data.core_token,
            kp_token=data.kp_token
        )
        merchant_type = self.tokens.merchant_type()
        AuditService.log_code_verified(phone, merchant_type.value)

        if merchant_type == MerchantType.SHOPIFY:
            disabled = UserState.from_name(data.state) == UserState.DISABLED
            if disabled or data.email:
                return await self.exchange_multipass_token(
                    phone,
                    data.email or "",
                    data.shopify_customer_id,
                    state=data.state
                )
            try:
                user = self.users.merge({
                    "phone": phone,
                    "state": data.state,
                    "shopify_customer_id": data.shopify_customer_id,
                })
            except Exception as e:
                return self._failure("verify_otp", e)
            self._notify_login("otp_verified", phone)
            return Success(data=user)

        try:
            user = self.users.merge({"phone": phone, "email": data.email, "state": data.state})
            await self.validate_user_token()
            login = await self.login_kp_user()
            if login.ok and login.data.merchant_response and login.data.merchant_response.email:
                user = self.users.merge({"email": login.data.merchant_response.email})
        except Exception as e:
            return self._failure("verify_otp", e)
        self._notify_login("otp_verified", phone)
        return Success(data=user)

    # =========================================================================
    # Accounts
    # =========================================================================

    async def create_user(self, profile: Union[CreateUserRequest, Dict[str, Any]]) -> AuthResult:
        """Create a merchant account for the verified phone"""
        try:
            if not isinstance(profile, CreateUserRequest):
                profile = CreateUserRequest.model_validate(profile)
        except PydanticValidationError as e:
            logger.warning("create_user rejected profile: %s", e)
            return Failure(reason="Invalid user details", error_code=ErrorCode.INVALID_INPUT)

        try:
            data = await self.api.create_user(profile)
        except Exception as e:
            return self._failure("create_user", e)

        account = data.merchant_response.account_create
        if account.user is not None:
            user = self.users.merge({"email": profile.email, **account.user.to_wire()})
            AuditService.log_event(AuditEventType.USER_CREATED, email=profile.email)
            return Success(data=user)
        if account.account_errors:
            return Failure(reason=account.account_errors[0], error_code=ErrorCode.INVALID_INPUT)
        return Failure(reason="Failed to create user", error_code=ErrorCode.UNEXPECTED_RESPONSE)

    async def exchange_multipass_token(
        self,
        phone: str,
        email: str,
        id: Optional[str] = None,
        state: Optional[str] = None
    ) -> AuthResult:
        """
        Exchange the session for a storefront multipass token

        Repeated calls overwrite the stored token.
        """
        request = MultipassRequest(
            id=id or "",
            email=email,
            is_marketing_event_subscribed=self.tokens.notifications_enabled(),
            state=state or ""
        )
        try:
            data = await self.api.get_multipass_token(request)
        except Exception as e:
            return self._failure("exchange_multipass_token", e)

        identity = data.model_dump(exclude_none=True, exclude={"password", "account_activation_url"})
        identity["phone"] = phone
        if email and not identity.get("email"):
            identity["email"] = email
        user = self.users.merge(identity)

        AuditService.log_event(AuditEventType.MULTIPASS_EXCHANGED, phone=phone, email=email)
        self._notify_login("multipass_logged_in", phone)
        return Success(data=user)

    async def validate_user_token(self) -> AuthResult:
        try:
            data = await self.api.validate_user_token()
            user = self.users.get()
            if data.merchant_response and data.merchant_response.email:
                user = self.users.merge({"email": data.merchant_response.email})
        except Exception as e:
            return self._failure("validate_user_token", e)

        AuditService.log_event(AuditEventType.TOKEN_VALIDATED)
        return Success(data=user)

    async def login_kp_user(self) -> AuthResult:
        try:
            data = await self.api.login_kp_user()
        except Exception as e:
            return self._failure("login_kp_user", e)
        AuditService.log_event(AuditEventType.LOGIN)
        return Success(data=data)

    # =========================================================================
    # Email OTP
    # =========================================================================

    async def send_email_otp(self, email: str) -> AuthResult:
        try:
            await self._refresh_browser_auth()
            data = await self.api.send_email_otp(email)
        except Exception as e:
            return self._failure("send_email_otp", e)
        AuditService.log_event(AuditEventType.EMAIL_CODE_SENT, email=email)
        return Success(data=data, message="OTP sent")

    async def verify_email(self, email: str, otp: str) -> AuthResult:
        """Verify the email OTP and merge the email into the verified user"""
        if not otp:
            return Failure(reason="OTP is required", error_code=ErrorCode.VERIFICATION_CODE_REQUIRED)

        request = EmailVerifyRequest(
            email=email,
            otp=otp,
            is_marketing_event_subscribed=self.tokens.notifications_enabled()
        )
        try:
            await self._refresh_browser_auth()
            data = await self.api.verify_email(request)
            identity = data if isinstance(data, VerifiedUser) else VerifiedUser.model_validate(data or {})
            user = self.users.merge(identity.model_copy(update={"email": email}))
        except Exception as e:
            return self._failure("verify_email", e)

        AuditService.log_event(AuditEventType.EMAIL_VERIFIED, email=email, phone=user.phone)
        self._notify_login("email_verified", user.phone)
        return Success(data=user)
