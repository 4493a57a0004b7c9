"""Celery application for the fulfillment service.

The worker consumes the order-notification queue
(``orders.broadcast_order_event``) and reads its configuration from the
Django settings under the ``CELERY_`` prefix.  Worker logging is handed to
the Django ``LOGGING`` dict so task logs come out as the same structlog
JSON lines as the web process.
"""

import os
from logging.config import dictConfig

from celery import Celery
from celery.signals import setup_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("fulfillment")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


@setup_logging.connect
def configure_worker_logging(**kwargs):
    from django.conf import settings

    dictConfig(settings.LOGGING)
