"""Background jobs of the orders module (run by Celery beat)."""

from __future__ import annotations

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from modules.core.actors import Actor
from modules.orders.constants import (
    AUTO_CANCEL_REASON,
    STALE_CANDIDATE_STATES,
    OrderStatus,
)
from modules.orders.events import OrderAutoCancelled
from modules.orders.exceptions import AlreadyTerminal, InvalidTransition, StaleState
from modules.orders.services import build_order_service
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="orders.cancel_stale_orders")
def cancel_stale_orders() -> dict:
    """Auto-decline orders nobody accepted within the timeout.

    Each cancellation goes through the state machine pinned to the status
    seen by the scan, so a vendor that confirms the order in the meantime
    wins and the order is skipped.
    """
    service = build_order_service()
    timeout = settings.STALE_ORDER_TIMEOUT_MINUTES
    cutoff = timezone.now() - timedelta(minutes=timeout)
    reason = AUTO_CANCEL_REASON.format(minutes=timeout)

    stale = list(service.order_repository.find_stale(STALE_CANDIDATE_STATES, cutoff))
    cancelled = skipped = 0
    for order in stale:
        try:
            result = service.transition(
                order.id,
                OrderStatus.CANCELLED,
                Actor.system(),
                expected_status=order.status,
                reason=reason,
            )
        except (StaleState, AlreadyTerminal, InvalidTransition) as exc:
            skipped += 1
            logger.info(
                "reaper.order_skipped",
                order_id=str(order.id),
                status=order.status,
                error=exc.code,
            )
            continue

        cancelled += 1
        logger.info("reaper.order_cancelled", order_id=str(order.id))
        event_bus.publish(
            OrderAutoCancelled(
                aggregate_id=result.order.id,
                order_number=result.order.order_number,
                vendor_id=result.order.vendor_id,
                customer_id=result.order.customer_id,
                reason=reason,
            )
        )

    summary = {"scanned": len(stale), "cancelled": cancelled, "skipped": skipped}
    logger.info("reaper.completed", **summary)
    return summary


@shared_task(name="orders.assign_waiting_orders")
def assign_waiting_orders() -> dict:
    """Retry partner assignment for ready delivery orders left unassigned."""
    service = build_order_service()
    waiting = list(service.order_repository.find_awaiting_assignment())
    assigned = 0
    for order in waiting:
        if service.assign_partner(order) is not None:
            assigned += 1

    summary = {"waiting": len(waiting), "assigned": assigned}
    logger.info("assignment_sweep.completed", **summary)
    return summary
