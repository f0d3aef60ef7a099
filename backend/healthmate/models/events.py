"""Notification event models streamed to form session subscribers."""

from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime, timezone


class BaseEvent(BaseModel):
    """Base event model for all notification events."""

    type: str
    form_id: str
    timestamp: Optional[datetime] = None

    def model_post_init(self, __context):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    def model_dump(self, **kwargs):
        """Override to always serialize datetimes as ISO strings for JSON safety."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)


class SubmissionStartedEvent(BaseEvent):
    """Emitted when a submit passes validation and the handler is called."""

    type: Literal["submission_started"] = "submission_started"


class NotificationEvent(BaseEvent):
    """Transient top-level notification (a toast) about a submit result."""

    type: Literal["notification"] = "notification"
    level: Literal["success", "error", "info"]
    message: str


class SessionClosedEvent(BaseEvent):
    """Emitted when a form session is deleted or expires."""

    type: Literal["session_closed"] = "session_closed"
    reason: Literal["deleted", "expired"] = "deleted"
