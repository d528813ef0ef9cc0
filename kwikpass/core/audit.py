"""
Audit logging module
Records authentication events as JSON lines on the "kwikpass.audit" logger
"""
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

audit_logger = logging.getLogger("kwikpass.audit")


def configure_audit_file(path: Optional[str]) -> None:
    """Attach a file handler to the audit logger (once)"""
    if not path:
        return
    if any(isinstance(h, logging.FileHandler) for h in audit_logger.handlers):
        return
    handler = logging.FileHandler(path)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    audit_logger.addHandler(handler)
    audit_logger.setLevel(logging.INFO)


class AuditEventType(str, Enum):
    """Audit event types"""
    # Session
    SESSION_INITIALIZED = "session_initialized"
    SESSION_CLEARED = "session_cleared"

    # OTP
    CODE_SENT = "verification_code_sent"
    CODE_VERIFIED = "verification_code_verified"
    CODE_FAILED = "verification_code_failed"
    EMAIL_CODE_SENT = "email_code_sent"
    EMAIL_VERIFIED = "email_verified"

    # Account
    USER_CREATED = "user_created"
    MULTIPASS_EXCHANGED = "multipass_exchanged"
    TOKEN_VALIDATED = "token_validated"
    LOGIN = "login"


def mask_phone(phone: str) -> str:
    """Show only the last 4 digits"""
    return f"***{phone[-4:]}" if len(phone) >= 4 else "***"


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


class AuditService:
    """Service for audit logging"""

    @staticmethod
    def log_event(
        event_type: AuditEventType,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        merchant_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True
    ) -> None:
        """
        Log an audit event

        Args:
            event_type: Type of event
            phone: Phone number (masked before logging)
            email: Email address (masked before logging)
            merchant_id: Merchant the session belongs to
            details: Additional event details
            success: Whether the event was successful
        """
        event_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.value,
            "success": success,
        }

        if merchant_id:
            event_data["merchant_id"] = merchant_id

        if phone:
            event_data["phone"] = mask_phone(phone)

        if email:
            event_data["email"] = mask_email(email)

        if details:
            event_data["details"] = details

        audit_logger.info(json.dumps(event_data, default=str))

    @staticmethod
    def log_code_sent(phone: str, success: bool = True, reason: Optional[str] = None) -> None:
        AuditService.log_event(
            event_type=AuditEventType.CODE_SENT,
            phone=phone,
            details={"reason": reason} if reason else None,
            success=success
        )

    @staticmethod
    def log_code_verified(phone: str, merchant_type: Optional[str] = None) -> None:
        AuditService.log_event(
            event_type=AuditEventType.CODE_VERIFIED,
            phone=phone,
            details={"merchant_type": merchant_type} if merchant_type else None,
            success=True
        )

    @staticmethod
    def log_code_failed(phone: str, reason: str) -> None:
        """Log failed OTP verification"""
        AuditService.log_event(
            event_type=AuditEventType.CODE_FAILED,
            phone=phone,
            details={"reason": reason},
            success=False
        )
