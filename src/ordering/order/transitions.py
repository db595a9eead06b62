"""Status transitions: command, handler and the locked service entry point."""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import ForbiddenTransitionError, IllegalTransitionError, InvalidOrderError
from ordering.identity import get_identity
from ordering.order.locks import order_locks
from ordering.order.order import ActorRole, Order, OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class TransitionOrder:
    order_number = String(required=True, max_length=40)
    target_status = String(required=True, max_length=20)
    actor_role = String(required=True, max_length=20)
    actor_id = String(max_length=100)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_number(command.order_number)
        previous = order.status
        order.transition_to(
            OrderStatus(command.target_status),
            ActorRole(command.actor_role),
            actor_id=command.actor_id,
            reason=command.reason,
        )
        repo.add(order)
        logger.info(
            "order_status_changed",
            order_number=command.order_number,
            from_status=previous,
            to_status=order.status,
            actor_role=command.actor_role,
        )
        return order.status


def parse_status(raw: str) -> OrderStatus:
    try:
        return OrderStatus(raw)
    except ValueError as exc:
        allowed = ", ".join(status.value for status in OrderStatus)
        raise InvalidOrderError({"status": [f"Status must be one of: {allowed}"]}) from exc


def resolve_role(actor_id: str | None) -> ActorRole:
    """Administrators are recognised through the identity port; everyone else is a customer."""
    if get_identity().is_administrator(actor_id):
        return ActorRole.ADMINISTRATOR
    return ActorRole.CUSTOMER


def apply_transition(
    order_number: str,
    target: OrderStatus,
    role: ActorRole,
    actor_id: str | None = None,
    reason: str | None = None,
) -> Order:
    """Apply one transition while holding the order's lock.

    The lock spans load, mutation and commit, so two racing callers observe
    each other's result: the loser sees the new status and gets
    IllegalTransitionError.
    """
    with order_locks.hold(order_number):
        try:
            current_domain.process(
                TransitionOrder(
                    order_number=order_number,
                    target_status=target.value,
                    actor_role=role.value,
                    actor_id=actor_id,
                    reason=reason,
                ),
                asynchronous=False,
            )
        except (IllegalTransitionError, ForbiddenTransitionError, InvalidOrderError) as exc:
            logger.warning(
                "order_transition_rejected",
                order_number=order_number,
                target_status=target.value,
                actor_role=role.value,
                error=type(exc).__name__,
            )
            raise
    return current_domain.repository_for(Order).get_by_number(order_number)


def transition_order(
    order_number: str,
    target_status: OrderStatus | str,
    actor_id: str | None,
    reason: str | None = None,
) -> Order:
    """Move an order on behalf of a user, whose role comes from the identity port."""
    target = target_status if isinstance(target_status, OrderStatus) else parse_status(target_status)
    return apply_transition(order_number, target, resolve_role(actor_id), actor_id=actor_id, reason=reason)
