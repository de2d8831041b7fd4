import logging
from typing import Any, Dict, Protocol

import firebase_admin
from firebase_admin import credentials, messaging

from arena.core.config import settings
from arena.models.notification import (
    NotificationKind,
    NotificationPriority,
    NotificationRequest,
    NotificationResponse,
)
from arena.utils.time_utils import to_utc_isoformat, utc_now

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Fire-and-forget delivery of domain events. Must never raise."""

    def notify(self, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        ...


def user_topic(user_id: str) -> str:
    return f"user_{user_id}"


def tournament_topic(tournament_id: str) -> str:
    return f"tournament_{tournament_id}"


def build_notification(kind: NotificationKind, payload: Dict[str, Any]) -> NotificationRequest:
    """Turn a domain event into an FCM topic message."""
    name = payload.get("tournament_name", "your tournament")

    if kind == NotificationKind.TOURNAMENT_JOINED:
        return NotificationRequest(
            kind=kind,
            topic=user_topic(payload["user_id"]),
            title="You're in!",
            body=f"You joined {name}. Entry fee paid: {payload.get('entry_fee', 0)} credits.",
            data=payload,
        )
    if kind == NotificationKind.TOURNAMENT_STARTED:
        return NotificationRequest(
            kind=kind,
            topic=tournament_topic(payload["tournament_id"]),
            title="Tournament started",
            body=f"{name} has started. Good luck!",
            priority=NotificationPriority.HIGH,
            data=payload,
        )
    if kind == NotificationKind.TOURNAMENT_ENDED:
        return NotificationRequest(
            kind=kind,
            topic=tournament_topic(payload["tournament_id"]),
            title="Tournament ended",
            body=f"{name} has ended. Results will be published shortly.",
            data=payload,
        )
    if kind == NotificationKind.TOURNAMENT_CANCELLED:
        return NotificationRequest(
            kind=kind,
            topic=tournament_topic(payload["tournament_id"]),
            title="Tournament cancelled",
            body=f"{name} was cancelled. Entry fees have been refunded.",
            priority=NotificationPriority.HIGH,
            data=payload,
        )
    if kind == NotificationKind.PRIZE_WON:
        return NotificationRequest(
            kind=kind,
            topic=user_topic(payload["user_id"]),
            title="You won!",
            body=f"{payload['amount']} credits for {payload['position']} place in {name} were added to your earnings.",
            priority=NotificationPriority.HIGH,
            data=payload,
        )
    if kind == NotificationKind.HOST_EARNINGS:
        return NotificationRequest(
            kind=kind,
            topic=user_topic(payload["user_id"]),
            title="Host earnings received",
            body=f"{payload['amount']} credits from {name} were added to your earnings.",
            data=payload,
        )
    if kind == NotificationKind.WITHDRAWAL_REQUESTED:
        return NotificationRequest(
            kind=kind,
            topic=user_topic(payload["user_id"]),
            title="Withdrawal requested",
            body=f"Your withdrawal of {payload['final_amount']} to {payload['upi_id']} will be processed in 2-3 business days.",
            data=payload,
        )
    if kind == NotificationKind.WITHDRAWAL_DONE:
        return NotificationRequest(
            kind=kind,
            topic=user_topic(payload["user_id"]),
            title="Withdrawal completed",
            body=f"Your withdrawal of {payload['final_amount']} has been sent.",
            data=payload,
        )
    return NotificationRequest(
        kind=kind,
        topic=user_topic(payload["user_id"]),
        title="Credits added",
        body=f"{payload.get('credits_amount', 0)} credits were added to your wallet.",
        data=payload,
    )


class FirebaseNotificationService:
    """Service for delivering notifications through Firebase Cloud Messaging."""

    def __init__(self):
        self._initialized = False

    def _initialize_firebase(self):
        """Initialize Firebase Admin SDK on first use."""
        if self._initialized:
            return
        if not firebase_admin._apps:
            cred = credentials.Certificate(settings.GOOGLE_APPLICATION_CREDENTIALS)
            firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin SDK initialized successfully")
        else:
            logger.info("Using existing Firebase Admin SDK instance")
        self._initialized = True

    def _create_message(self, request: NotificationRequest) -> messaging.Message:
        """Create FCM message from notification data."""
        data = dict(request.data or {})
        data.update({
            "notification_type": request.kind.value,
            "priority": request.priority.value,
            "sent_at": to_utc_isoformat(utc_now())
        })

        # Convert all data values to strings (FCM requirement)
        data = {k: str(v) for k, v in data.items()}

        return messaging.Message(
            notification=messaging.Notification(title=request.title, body=request.body),
            data=data,
            android=messaging.AndroidConfig(
                priority="high" if request.priority == NotificationPriority.HIGH else "normal"
            ),
            topic=request.topic
        )

    def send_to_topic(self, request: NotificationRequest) -> NotificationResponse:
        """Send notification to a topic."""
        try:
            self._initialize_firebase()
            message_id = messaging.send(self._create_message(request))

            logger.info(f"Notification sent successfully to topic '{request.topic}', message ID: {message_id}")

            return NotificationResponse(
                success=True,
                message=f"Notification sent to topic '{request.topic}'",
                message_id=message_id
            )

        except Exception as e:
            logger.error(f"Failed to send notification to topic '{request.topic}': {e}")
            return NotificationResponse(
                success=False,
                message=f"Failed to send notification to topic: {str(e)}",
                error=str(e)
            )

    def notify(self, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        """Best-effort delivery; failures are logged and dropped."""
        try:
            self.send_to_topic(build_notification(kind, payload))
        except Exception as e:
            logger.error(f"Failed to build {kind.value} notification: {e}")


# Global notification service instance
notification_service = FirebaseNotificationService()
