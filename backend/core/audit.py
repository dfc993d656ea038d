"""
Audit logging system for Repurpose
Tracks credential changes, submissions and other sensitive user activity
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import structlog

from core.config import settings
from core.logging import get_correlation_id, get_logger


class AuditEventType(Enum):
    """Types of auditable events"""

    # Authentication events
    AUTH_REGISTER = "auth_register"
    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"
    AUTH_LOGOUT = "auth_logout"

    # Settings and credentials
    SETTINGS_UPDATE = "settings_update"

    # Video submissions
    VIDEO_SUBMIT = "video_submit"
    FILE_UPLOAD = "file_upload"

    # Clip and training video operations
    CLIP_DELETE = "clip_delete"
    TRAINING_VIDEO_CREATE = "training_video_create"
    TRAINING_VIDEO_DELETE = "training_video_delete"


class AuditSeverity(Enum):
    """Audit event severity levels"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AuditEvent:
    """Represents a single audit event"""

    def __init__(
        self,
        event_type: AuditEventType,
        user_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        action: Optional[str] = None,
        outcome: str = "success",
        severity: AuditSeverity = AuditSeverity.LOW,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.event_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)
        self.event_type = event_type
        self.user_id = user_id
        self.resource_id = resource_id
        self.resource_type = resource_type
        self.action = action
        self.outcome = outcome
        self.severity = severity
        self.details = details or {}
        self.correlation_id = get_correlation_id()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "user_id": self.user_id,
            "resource_id": self.resource_id,
            "resource_type": self.resource_type,
            "action": self.action,
            "outcome": self.outcome,
            "severity": self.severity.value,
            "details": self.details,
            "correlation_id": self.correlation_id,
        }


class AuditLogger:
    """Main audit logging class"""

    def __init__(self) -> None:
        self.logger = get_logger("audit")
        self.structured_logger = structlog.get_logger("audit")

    def log_event(self, event: AuditEvent) -> None:
        """Log an audit event"""
        if not settings.enable_audit_logging:
            return

        event_data = event.to_dict()

        if event.severity == AuditSeverity.HIGH:
            self.logger.error(f"AUDIT: {event.event_type.value}", extra={"audit": event_data})
        elif event.severity == AuditSeverity.MEDIUM:
            self.logger.warning(f"AUDIT: {event.event_type.value}", extra={"audit": event_data})
        else:
            self.logger.info(f"AUDIT: {event.event_type.value}", extra={"audit": event_data})

        self.structured_logger.info("audit_event", **event_data)

    def log_auth(
        self,
        event_type: AuditEventType,
        user_id: Optional[str] = None,
        outcome: str = "success",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log registration, login and logout"""
        self.log_event(
            AuditEvent(
                event_type=event_type,
                user_id=user_id,
                action=event_type.value.replace("auth_", ""),
                outcome=outcome,
                severity=AuditSeverity.MEDIUM if outcome != "success" else AuditSeverity.LOW,
                details=details,
            )
        )

    def log_resource_access(
        self,
        event_type: AuditEventType,
        user_id: str,
        resource_id: str,
        resource_type: str,
        action: str,
        severity: AuditSeverity = AuditSeverity.LOW,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log resource access events (create, read, update, delete)"""
        self.log_event(
            AuditEvent(
                event_type=event_type,
                user_id=user_id,
                resource_id=resource_id,
                resource_type=resource_type,
                action=action,
                severity=severity,
                details=details,
            )
        )


# Global audit logger instance
audit_logger = AuditLogger()


def log_auth_success(user_id: str, **kwargs: Any) -> None:
    audit_logger.log_auth(AuditEventType.AUTH_SUCCESS, user_id, **kwargs)


def log_auth_failure(**kwargs: Any) -> None:
    audit_logger.log_auth(AuditEventType.AUTH_FAILURE, outcome="failure", **kwargs)


def log_registration(user_id: str, **kwargs: Any) -> None:
    audit_logger.log_auth(AuditEventType.AUTH_REGISTER, user_id, **kwargs)


def log_logout(user_id: str) -> None:
    audit_logger.log_auth(AuditEventType.AUTH_LOGOUT, user_id)


def log_settings_update(user_id: str, changed_fields: list, cleared_fields: list) -> None:
    """Record which settings changed; values are never included"""
    audit_logger.log_resource_access(
        AuditEventType.SETTINGS_UPDATE,
        user_id=user_id,
        resource_id=user_id,
        resource_type="user_settings",
        action="update",
        severity=AuditSeverity.MEDIUM if cleared_fields else AuditSeverity.LOW,
        details={"changed_fields": changed_fields, "cleared_fields": cleared_fields},
    )


def log_video_submission(user_id: str, video_type: str, **details: Any) -> None:
    audit_logger.log_resource_access(
        AuditEventType.FILE_UPLOAD if video_type == "mp4" else AuditEventType.VIDEO_SUBMIT,
        user_id=user_id,
        resource_id=str(details.get("file_name") or details.get("video_url") or "unknown"),
        resource_type="video",
        action="submit",
        details={"video_type": video_type, **details},
    )


def log_clip_delete(user_id: str, clip_id: str) -> None:
    audit_logger.log_resource_access(
        AuditEventType.CLIP_DELETE,
        user_id=user_id,
        resource_id=clip_id,
        resource_type="clip",
        action="delete",
        severity=AuditSeverity.MEDIUM,
    )


def log_training_video_change(user_id: str, video_id: str, action: str) -> None:
    audit_logger.log_resource_access(
        AuditEventType.TRAINING_VIDEO_CREATE if action == "create" else AuditEventType.TRAINING_VIDEO_DELETE,
        user_id=user_id,
        resource_id=video_id,
        resource_type="training_video",
        action=action,
    )
