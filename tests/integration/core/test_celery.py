"""Celery configuration and outbox relay task."""

import pytest

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "supply_orders"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_relay_is_scheduled_periodically(self, settings):
        entry = settings.CELERY_BEAT_SCHEDULE["relay-outbox-events"]
        assert entry["task"] == "core.relay_outbox_events"


class TestRelayTask:
    def test_delay_runs_eagerly(self, place_order):
        from modules.core.tasks import relay_outbox_events

        place_order()
        result = relay_outbox_events.delay()

        assert result.successful()
        assert result.result == {"published": 2, "failed": 0}
