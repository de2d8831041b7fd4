from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    """Events the core reports to the notification sink."""

    TOURNAMENT_JOINED = "tournament_joined"
    TOURNAMENT_STARTED = "tournament_started"
    TOURNAMENT_ENDED = "tournament_ended"
    TOURNAMENT_CANCELLED = "tournament_cancelled"
    PRIZE_WON = "prize_won"
    HOST_EARNINGS = "host_earnings"
    WITHDRAWAL_REQUESTED = "withdrawal_requested"
    WITHDRAWAL_DONE = "withdrawal_done"
    FUNDS_RECEIVED = "funds_received"


class NotificationPriority(str, Enum):
    """Priority levels for notifications."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class NotificationRequest(BaseModel):
    """A message ready to be sent to an FCM topic."""

    kind: NotificationKind = Field(..., description="Event that triggered the notification")
    topic: str = Field(..., description="FCM topic name")
    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    priority: NotificationPriority = Field(NotificationPriority.NORMAL, description="Notification priority")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional data payload")


class NotificationResponse(BaseModel):
    """Outcome of a send attempt."""

    success: bool
    message: str
    message_id: Optional[str] = None
    error: Optional[str] = None
