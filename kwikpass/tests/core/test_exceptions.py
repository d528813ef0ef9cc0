"""
Tests for exception handling and error codes
"""
from kwikpass.core.exceptions import (
    AppException,
    ErrorCode,
    NetworkError,
    PersistenceError,
    StateError,
    ValidationError,
    describe_api_error,
)


class TestErrorCodes:
    """Test error code definitions"""

    def test_error_codes_are_unique(self):
        """Test that all error codes are unique"""
        codes = [code.value for code in ErrorCode]
        assert len(codes) == len(set(codes)), "Error codes must be unique"

    def test_error_codes_format(self):
        """Test that error codes follow naming convention"""
        for code in ErrorCode:
            # Should be in format: PREFIX_NNNN
            prefix, _, number = code.value.partition("_")
            assert len(prefix) >= 2, f"Prefix too short: {prefix}"
            assert number.isdigit(), f"Number part should be digits: {number}"
            assert len(number) == 4, f"Number should be 4 digits: {number}"


class TestAppException:
    """Test base AppException class"""

    def test_internal_message_defaults_to_user_message(self):
        exc = AppException(user_message="Try again", error_code=ErrorCode.INTERNAL_ERROR)

        assert exc.internal_message == "Try again"
        assert str(exc) == "Try again"

    def test_to_dict_hides_internal_message(self):
        """Test conversion to dictionary does not leak internal details"""
        exc = AppException(
            user_message="Something went wrong",
            error_code=ErrorCode.STORAGE_WRITE_FAILED,
            internal_message="redis: connection refused",
            details={"key": "gk-access-token"}
        )

        result = exc.to_dict()

        assert result["error"]["code"] == "STORE_4002"
        assert result["error"]["message"] == "Something went wrong"
        assert result["error"]["details"] == {"key": "gk-access-token"}
        assert "redis" not in str(result)


class TestSpecificExceptions:
    """Test the exception subclasses"""

    def test_validation_error(self):
        exc = ValidationError(reason="format", field="otp", user_message="Enter a valid OTP")

        assert exc.reason == "format"
        assert exc.field == "otp"
        assert exc.details == {"field": "otp", "reason": "format"}
        assert exc.error_code == ErrorCode.INVALID_INPUT

    def test_network_error_carries_status(self):
        exc = NetworkError(status_code=503, request_id="r-1")

        assert exc.status_code == 503
        assert exc.details == {"status_code": 503, "request_id": "r-1"}
        assert exc.error_code == ErrorCode.NETWORK_UNAVAILABLE

    def test_persistence_error(self):
        exc = PersistenceError("gk-kp-token", "write")

        assert exc.user_message == "Local storage is unavailable"
        assert "gk-kp-token" in exc.internal_message

    def test_state_error_default_code(self):
        assert StateError("No resend attempts left").error_code == ErrorCode.INVALID_STATE


class TestDescribeApiError:
    """Test reduction of API error bodies to a readable reason"""

    def test_top_level_error(self):
        assert describe_api_error(400, {"error": "Phone number is blocked"}) == "Phone number is blocked"

    def test_nested_data_error(self):
        assert describe_api_error(401, {"data": {"error": "Invalid OTP"}}) == "Invalid OTP"

    def test_fallback_to_status(self):
        assert describe_api_error(500, None) == "Unexpected error with status: 500"
        assert describe_api_error(502, {"message": "nope"}) == "Unexpected error with status: 502"
