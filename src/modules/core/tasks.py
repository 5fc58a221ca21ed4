"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.conf import settings

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size=100):
    """Deliver pending outbox rows to their in-process handlers.

    Delivery is at least once: a row is marked ``PUBLISHED`` only after
    every handler returned, and a failing row stays due until it runs out
    of retries.  Handlers deduplicate by effect id.
    """
    max_retries = settings.OUTBOX_MAX_RETRIES
    published = failed = 0

    for row in OutboxEvent.objects.due(max_retries)[:batch_size]:
        log = logger.bind(
            outbox_event_id=str(row.id),
            event_type=row.event_type,
            aggregate_id=row.aggregate_id,
            retry_count=row.retry_count,
        )
        try:
            event_bus.publish(DomainEvent.from_dict(row.event_type, row.payload))
        except Exception as exc:
            log.exception("outbox.delivery_failed")
            row.mark_as_failed(str(exc))
            failed += 1
            continue

        row.mark_as_published()
        published += 1

    if published or failed:
        logger.info("outbox.relay_finished", published=published, failed=failed)
    return {"published": published, "failed": failed}
