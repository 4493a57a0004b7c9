"""Testes de integração para configuração do Celery."""

import pytest

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    """Verifica que o Celery carrega corretamente via Django."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "fulfillment"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "fulfillment"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_broadcast_task_is_registered(self):
        from config.celery import app

        app.loader.import_default_modules()
        assert "orders.broadcast_order_event" in app.tasks


class TestBroadcastOnCommit:
    """Notificações só saem depois do commit da transação."""

    def test_claim_broadcasts_status_change(
        self, service, make_order, picker, django_capture_on_commit_callbacks, caplog
    ):
        import logging

        order = make_order()
        with caplog.at_level(logging.INFO):
            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                service.claim_order(order.id, picker, "picker", "pick")

        assert len(callbacks) == 1
        messages = [r.getMessage() for r in caplog.records]
        assert any("order.notification.broadcast" in m for m in messages)
        assert any(f"Order {order.id} moved to picking" in m for m in messages)
