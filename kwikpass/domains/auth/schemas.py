"""
Authentication domain schemas
Session records and the data contracts exchanged with the KwikPass API
"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kwikpass.core.config import Environment
from kwikpass.core.exceptions import ErrorCode


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# Enumerations
# =============================================================================

class MerchantType(str, Enum):
    SHOPIFY = "shopify"
    OTHER = "other"

    @classmethod
    def from_name(cls, value: Optional[str]) -> "MerchantType":
        if (value or "").strip().lower() == cls.SHOPIFY.value:
            return cls.SHOPIFY
        return cls.OTHER


class UserState(str, Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"

    @classmethod
    def from_name(cls, value: Optional[str]) -> "UserState":
        if (value or "").strip().upper() == cls.DISABLED.value:
            return cls.DISABLED
        return cls.ENABLED


# =============================================================================
# Session Schemas
# =============================================================================

class SessionRecord(BaseModel):
    """Snapshot of the session as held in the key-value store"""
    merchant_id: str
    environment: Environment
    snowplow_enabled: bool = True
    access_token: Optional[str] = None
    checkout_access_token: Optional[str] = None
    request_id: Optional[str] = None
    device_info: Dict[str, str] = Field(default_factory=dict)


class VerifiedUser(ApiModel):
    """
    Identity of the verified user

    Unknown fields returned by the API are kept so that a later merge does
    not lose them.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    phone: Optional[str] = None
    email: Optional[str] = None
    shopify_customer_id: Optional[str] = None
    multipass_token: Optional[str] = None
    state: Optional[str] = None

    def merge(self, update: Union["VerifiedUser", Dict[str, Any], None]) -> "VerifiedUser":
        """
        Merge newer identity fields into this record

        Fields present (non-null) in update overwrite, everything else is kept.
        """
        if update is None:
            return self
        if isinstance(update, VerifiedUser):
            incoming = update.model_dump(exclude_none=True)
        else:
            incoming = VerifiedUser.model_validate(update).model_dump(exclude_none=True)

        merged = self.model_dump(exclude_none=True)
        merged.update(incoming)
        return VerifiedUser.model_validate(merged)

    @property
    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


# =============================================================================
# Request Schemas
# =============================================================================

class SendOtpRequest(ApiModel):
    phone: str


class VerifyOtpRequest(ApiModel):
    phone: str
    otp: int


class CreateUserRequest(ApiModel):
    """Profile submitted when creating an account"""
    email: str
    name: str
    dob: Optional[str] = None
    gender: Optional[str] = None


class MultipassRequest(ApiModel):
    id: str = ""
    email: str
    is_marketing_event_subscribed: bool = False
    state: str = ""
    skip_email_otp: Optional[bool] = None


class EmailOtpRequest(ApiModel):
    email: str


class EmailVerifyRequest(ApiModel):
    email: str
    otp: str
    redirect_url: str = "/"
    is_marketing_event_subscribed: bool = False


# =============================================================================
# Response Schemas
# =============================================================================

class BrowserAuthData(ApiModel):
    request_id: str
    token: str


class MerchantConfig(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    platform: Optional[str] = None
    host: Optional[str] = None
    name: Optional[str] = None
    logo: Optional[str] = None
    customer_intelligence_enabled: Optional[bool] = False
    customer_intelligence_metrics: Optional[Dict[str, Any]] = None


class VerifyCodeData(ApiModel):
    token: Optional[str] = None
    core_token: Optional[str] = None
    kp_token: Optional[str] = None
    state: Optional[str] = None
    email: Optional[str] = None
    shopify_customer_id: Optional[str] = None


class ShopifyData(ApiModel):
    """Multipass exchange result"""
    multipass_token: Optional[str] = None
    shopify_customer_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    state: Optional[str] = None
    account_activation_url: Optional[str] = None
    password: Optional[str] = None


class MerchantResponse(ApiModel):
    email: Optional[str] = None
    csrf_token: Optional[str] = None
    id: Optional[str] = None
    token: Optional[str] = None
    refresh_token: Optional[str] = None


class LoginData(ApiModel):
    merchant_response: Optional[MerchantResponse] = None


class AccountCreate(ApiModel):
    user: Optional[MerchantResponse] = None
    account_errors: Optional[List[str]] = None


class CreateUserMerchantResponse(ApiModel):
    account_create: AccountCreate


class CreateUserData(ApiModel):
    merchant_response: CreateUserMerchantResponse


class ValidateUserTokenData(ApiModel):
    merchant_response: Optional[MerchantResponse] = None


# =============================================================================
# Results
# =============================================================================

class Success(BaseModel):
    """Operation succeeded"""
    status: Literal["success"] = "success"
    data: Any = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return True


class Failure(BaseModel):
    """Operation failed; reason is safe to show to the user"""
    status: Literal["failure"] = "failure"
    reason: str
    error_code: ErrorCode = ErrorCode.NETWORK_UNAVAILABLE
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False


AuthResult = Union[Success, Failure]
