"""
Custom exceptions and error codes for the SDK
Separates user-facing messages from internal logging
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standard error codes for the SDK"""

    # Authentication (1xxx)
    INVALID_CREDENTIALS = "AUTH_1001"
    TOKEN_EXPIRED = "AUTH_1002"
    INVALID_TOKEN = "AUTH_1003"

    # Verification Code (2xxx)
    VERIFICATION_CODE_REQUIRED = "VCODE_2001"
    VERIFICATION_CODE_FORMAT = "VCODE_2002"
    VERIFICATION_CODE_INVALID = "VCODE_2003"
    VERIFICATION_CODE_MAX_ATTEMPTS = "VCODE_2004"

    # Network (3xxx)
    NETWORK_UNAVAILABLE = "NET_3001"
    UNEXPECTED_RESPONSE = "NET_3002"
    EMPTY_RESPONSE = "NET_3003"

    # Persistence (4xxx)
    STORAGE_READ_FAILED = "STORE_4001"
    STORAGE_WRITE_FAILED = "STORE_4002"

    # Validation (6xxx)
    INVALID_INPUT = "VAL_6001"
    MISSING_REQUIRED_FIELD = "VAL_6002"

    # State (7xxx)
    INVALID_STATE = "STATE_7001"

    # Internal Errors (9xxx)
    INTERNAL_ERROR = "SYS_9001"


class AppException(Exception):
    """
    Base exception for SDK errors

    Separates user-facing message from internal details:
    - user_message: Safe message shown to users
    - internal_message: Detailed message for logs (may contain sensitive info)
    - error_code: Standard error code for tracking
    """

    def __init__(
        self,
        user_message: str,
        error_code: ErrorCode,
        internal_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.user_message = user_message
        self.internal_message = internal_message or user_message
        self.error_code = error_code
        self.details = details or {}

        super().__init__(self.internal_message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display or serialization"""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.user_message,
                "details": self.details
            }
        }


class ValidationError(AppException):
    """Local format or required-field failure, keyed by field"""

    def __init__(
        self,
        reason: str,
        field: str,
        user_message: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_INPUT,
        internal_message: Optional[str] = None
    ):
        self.reason = reason
        self.field = field
        super().__init__(
            user_message=user_message or f"Invalid {field}",
            error_code=error_code,
            internal_message=internal_message or f"{field}: {reason}",
            details={"field": field, "reason": reason}
        )


class NetworkError(AppException):
    """API collaborator call failed"""

    def __init__(
        self,
        user_message: str = "Something went wrong, please try again",
        error_code: ErrorCode = ErrorCode.NETWORK_UNAVAILABLE,
        internal_message: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None
    ):
        self.status_code = status_code
        self.request_id = request_id
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if request_id:
            details["request_id"] = request_id
        super().__init__(
            user_message=user_message,
            error_code=error_code,
            internal_message=internal_message,
            details=details
        )


class PersistenceError(AppException):
    """Durable store I/O failed"""

    def __init__(
        self,
        key: str,
        operation: str,
        internal_message: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.STORAGE_WRITE_FAILED
    ):
        self.key = key
        self.operation = operation
        super().__init__(
            user_message="Local storage is unavailable",
            error_code=error_code,
            internal_message=internal_message or f"{operation} failed for key {key}",
            details={"key": key, "operation": operation}
        )


class StateError(AppException):
    """Operation not allowed in the current state"""

    def __init__(
        self,
        user_message: str,
        error_code: ErrorCode = ErrorCode.INVALID_STATE,
        internal_message: Optional[str] = None
    ):
        super().__init__(
            user_message=user_message,
            error_code=error_code,
            internal_message=internal_message
        )


def describe_api_error(status_code: Optional[int], body: Any) -> str:
    """
    Reduce an API error body to a readable reason

    Looks at "error", then "data.error", then falls back to the status code.
    """
    if isinstance(body, dict):
        if body.get("error") is not None:
            return str(body["error"])
        data = body.get("data")
        if isinstance(data, dict) and data.get("error") is not None:
            return str(data["error"])
    return f"Unexpected error with status: {status_code}"
