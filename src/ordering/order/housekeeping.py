"""Stale-order housekeeping.

Orders that never receive a payment are cancelled by the system after a
configurable age. The scheduler lives outside the engine (cron, a worker,
the ``housekeeping.py`` CLI); this module is what it calls.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean.utils.globals import current_domain

from ordering.errors import IllegalTransitionError
from ordering.order.order import ActorRole, Order, OrderStatus
from ordering.order.transitions import apply_transition

logger = structlog.get_logger(__name__)

_EXPIRABLE = (OrderStatus.DRAFT, OrderStatus.PENDING_PAYMENT)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


def find_stale_orders(max_age: timedelta, now: datetime | None = None) -> list[Order]:
    cutoff = (now or datetime.now(UTC)) - max_age
    candidates = current_domain.repository_for(Order).with_status(*_EXPIRABLE)
    return [order for order in candidates if order.created_at and _aware(order.created_at) < cutoff]


def expire_stale_orders(max_age: timedelta, now: datetime | None = None) -> list[str]:
    """Cancel unpaid orders older than ``max_age``. Returns the cancelled order numbers.

    An order that moved on after it was selected (paid, verified, cancelled
    by an administrator) is skipped.
    """
    hours = int(max_age.total_seconds() // 3600)
    reason = f"Payment not received within {hours} hours"
    expired = []
    for order in find_stale_orders(max_age, now):
        try:
            apply_transition(order.order_number, OrderStatus.CANCELLED, ActorRole.SYSTEM, reason=reason)
        except IllegalTransitionError:
            logger.info("stale_order_skipped", order_number=order.order_number)
            continue
        expired.append(order.order_number)

    logger.info("stale_orders_expired", count=len(expired), max_age_hours=hours)
    return expired
