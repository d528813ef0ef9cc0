"""
KwikPass API client
Default implementation of the API collaborator over httpx
"""
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from kwikpass.core import keys
from kwikpass.core.exceptions import ErrorCode, NetworkError, describe_api_error

from .schemas import (
    BrowserAuthData,
    CreateUserData,
    CreateUserRequest,
    EmailOtpRequest,
    EmailVerifyRequest,
    LoginData,
    MerchantConfig,
    MultipassRequest,
    SendOtpRequest,
    ShopifyData,
    ValidateUserTokenData,
    VerifyCodeData,
    VerifiedUser,
    VerifyOtpRequest,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class KwikPassApiClient(Protocol):
    """Contract of the API collaborator; every method raises NetworkError on failure"""

    async def get_browser_auth(self) -> BrowserAuthData: ...

    async def get_merchant_config(self, merchant_id: str) -> MerchantConfig: ...

    async def send_otp(self, phone: str) -> Any: ...

    async def verify_otp(self, phone: str, otp: int) -> VerifyCodeData: ...

    async def login_kp_user(self) -> LoginData: ...

    async def create_user(self, profile: CreateUserRequest) -> CreateUserData: ...

    async def validate_user_token(self) -> ValidateUserTokenData: ...

    async def get_multipass_token(self, request: MultipassRequest) -> ShopifyData: ...

    async def send_email_otp(self, email: str) -> Any: ...

    async def verify_email(self, request: EmailVerifyRequest) -> VerifiedUser: ...

    async def close(self) -> None: ...


class HttpApiClient:
    """
    httpx-based API client

    Static headers identify the host app and merchant; session headers
    (tokens, request ids) are pulled from headers_provider on every call so
    they always reflect the key-value store.
    """

    def __init__(
        self,
        base_url: str,
        merchant_id: str,
        headers_provider: Optional[Callable[[], Dict[str, str]]] = None,
        timeout: float = 30.0,
        app_platform: str = "android",
        app_version: str = "Unknown",
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.merchant_id = merchant_id
        self.headers_provider = headers_provider or dict
        self.static_headers = {
            "accept": "*/*",
            "appplatform": app_platform,
            "appversion": app_version,
            "source": f"{app_platform}-app",
            keys.GK_MERCHANT_ID: merchant_id,
        }
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport
        )

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        headers = {**self.static_headers, **self.headers_provider()}
        try:
            response = await self._client.request(method, path, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(
                internal_message=f"{method} {path} failed: {type(e).__name__}: {e}"
            ) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            raise NetworkError(
                user_message=describe_api_error(response.status_code, payload),
                error_code=ErrorCode.UNEXPECTED_RESPONSE,
                internal_message=f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                request_id=response.headers.get("request-id")
            )

        if not isinstance(payload, dict):
            raise NetworkError(
                user_message="Empty response body",
                error_code=ErrorCode.EMPTY_RESPONSE,
                internal_message=f"{method} {path} returned a non-object body",
                status_code=response.status_code
            )

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return payload.get("data")

    @staticmethod
    def _parse(model: Type[ModelT], data: Any) -> ModelT:
        if data is None:
            raise NetworkError(
                user_message="Empty response data",
                error_code=ErrorCode.EMPTY_RESPONSE
            )
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise NetworkError(
                error_code=ErrorCode.UNEXPECTED_RESPONSE,
                internal_message=f"Cannot read {model.__name__}: {e}"
            ) from e

    async def get_browser_auth(self) -> BrowserAuthData:
        return self._parse(BrowserAuthData, await self._request("GET", "auth/browser"))

    async def get_merchant_config(self, merchant_id: str) -> MerchantConfig:
        data = await self._request("GET", f"configurations/{merchant_id}")
        return self._parse(MerchantConfig, data)

    async def send_otp(self, phone: str) -> Any:
        return await self._request("POST", "auth/otp/send", SendOtpRequest(phone=phone).to_wire())

    async def verify_otp(self, phone: str, otp: int) -> VerifyCodeData:
        body = VerifyOtpRequest(phone=phone, otp=otp).to_wire()
        return self._parse(VerifyCodeData, await self._request("POST", "auth/otp/verify", body))

    async def login_kp_user(self) -> LoginData:
        return self._parse(LoginData, await self._request("GET", "customer/custom/login"))

    async def create_user(self, profile: CreateUserRequest) -> CreateUserData:
        data = await self._request("POST", "customer/custom/create-user", profile.to_wire())
        return self._parse(CreateUserData, data)

    async def validate_user_token(self) -> ValidateUserTokenData:
        data = await self._request("GET", "auth/validate-token")
        return self._parse(ValidateUserTokenData, data)

    async def get_multipass_token(self, request: MultipassRequest) -> ShopifyData:
        data = await self._request("POST", "customer/shopify/multipass", request.to_wire())
        return self._parse(ShopifyData, data)

    async def send_email_otp(self, email: str) -> Any:
        body = EmailOtpRequest(email=email).to_wire()
        return await self._request("POST", "customer/shopify/send-verification-email", body)

    async def verify_email(self, request: EmailVerifyRequest) -> VerifiedUser:
        data = await self._request("POST", "customer/shopify/verify-email", request.to_wire())
        return self._parse(VerifiedUser, data if data is not None else {})

    async def close(self) -> None:
        await self._client.aclose()
