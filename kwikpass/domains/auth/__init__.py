"""
Authentication domain
Handles OTP login, account linking, tokens and the verified user record
"""
from .cache import DurableStore, KeyValueStore, MemoryDurableStore, RedisDurableStore
from .client import HttpApiClient, KwikPassApiClient
from .repository import TokenRepository, VerifiedUserRepository
from .schemas import (
    AuthResult,
    BrowserAuthData,
    CreateUserRequest,
    EmailVerifyRequest,
    Failure,
    MerchantConfig,
    MerchantType,
    MultipassRequest,
    SessionRecord,
    ShopifyData,
    Success,
    UserState,
    VerifiedUser,
    VerifyCodeData,
)
from .service import AuthSessionManager

__all__ = [
    # Schemas
    "VerifiedUser",
    "SessionRecord",
    "MerchantType",
    "UserState",
    "MerchantConfig",
    "BrowserAuthData",
    "VerifyCodeData",
    "ShopifyData",
    "CreateUserRequest",
    "MultipassRequest",
    "EmailVerifyRequest",
    "Success",
    "Failure",
    "AuthResult",
    # Service
    "AuthSessionManager",
    # Repositories
    "VerifiedUserRepository",
    "TokenRepository",
    # Client
    "KwikPassApiClient",
    "HttpApiClient",
    # Cache
    "KeyValueStore",
    "DurableStore",
    "MemoryDurableStore",
    "RedisDurableStore",
]
