import pytest

from arena.models.notification import NotificationKind, NotificationPriority
from arena.services import notification_service as notification_module
from arena.services.notification_service import FirebaseNotificationService, build_notification


@pytest.mark.parametrize("kind,payload,topic", [
    (NotificationKind.TOURNAMENT_JOINED, {"user_id": "u1", "tournament_name": "Cup", "entry_fee": 100}, "user_u1"),
    (NotificationKind.TOURNAMENT_STARTED, {"tournament_id": "t1", "tournament_name": "Cup"}, "tournament_t1"),
    (NotificationKind.TOURNAMENT_CANCELLED, {"tournament_id": "t1", "refunded_count": 3}, "tournament_t1"),
    (NotificationKind.PRIZE_WON, {"user_id": "u2", "amount": 700, "position": "first"}, "user_u2"),
    (NotificationKind.WITHDRAWAL_DONE, {"user_id": "u3", "final_amount": 960}, "user_u3"),
])
def test_routes_events_to_topics(kind, payload, topic):
    request = build_notification(kind, payload)

    assert request.kind == kind
    assert request.topic == topic


def test_prize_message_is_high_priority():
    request = build_notification(
        NotificationKind.PRIZE_WON, {"user_id": "u1", "amount": 200, "position": "second", "tournament_name": "Cup"}
    )

    assert request.priority == NotificationPriority.HIGH
    assert "200 credits" in request.body


class TestFirebaseDelivery:

    def test_sends_string_data_to_topic(self, monkeypatch):
        sent = []

        def fake_send(message):
            sent.append(message)
            return "projects/arena/messages/1"

        monkeypatch.setattr(notification_module.messaging, "send", fake_send)
        service = FirebaseNotificationService()
        service._initialized = True

        response = service.send_to_topic(build_notification(
            NotificationKind.HOST_EARNINGS, {"user_id": "host-1", "amount": 100, "tournament_name": "Cup"}
        ))

        assert response.success
        assert sent[0].topic == "user_host-1"
        assert sent[0].data["amount"] == "100"
        assert sent[0].data["notification_type"] == "host_earnings"

    def test_delivery_failure_is_swallowed(self, monkeypatch):
        def failing_send(message):
            raise RuntimeError("FCM unavailable")

        monkeypatch.setattr(notification_module.messaging, "send", failing_send)
        service = FirebaseNotificationService()
        service._initialized = True

        service.notify(NotificationKind.TOURNAMENT_ENDED, {"tournament_id": "t1"})
        response = service.send_to_topic(
            build_notification(NotificationKind.TOURNAMENT_ENDED, {"tournament_id": "t1"})
        )

        assert not response.success
        assert "FCM unavailable" in response.error

    def test_malformed_payload_is_swallowed(self):
        FirebaseNotificationService().notify(NotificationKind.PRIZE_WON, {})
