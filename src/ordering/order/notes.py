"""Administrative edits that do not move the order: notes and cancellation reasons."""

from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import ForbiddenTransitionError
from ordering.identity import get_identity
from ordering.order.locks import order_locks
from ordering.order.order import Order


@ordering.command(part_of="Order")
class UpdateAdminNotes:
    order_number = String(required=True, max_length=40)
    notes = Text()


@ordering.command(part_of="Order")
class AmendCancellationReason:
    order_number = String(required=True, max_length=40)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class AdminNotesHandler:
    @handle(UpdateAdminNotes)
    def update_admin_notes(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_number(command.order_number)
        order.update_admin_notes(command.notes)
        repo.add(order)

    @handle(AmendCancellationReason)
    def amend_cancellation_reason(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_by_number(command.order_number)
        order.amend_cancellation_reason(command.reason)
        repo.add(order)


def _require_administrator(actor_id: str | None) -> None:
    if not get_identity().is_administrator(actor_id):
        raise ForbiddenTransitionError({"actor": ["Only administrators can edit orders"]})


def update_admin_notes(order_number: str, notes: str | None, actor_id: str | None) -> Order:
    _require_administrator(actor_id)
    with order_locks.hold(order_number):
        current_domain.process(UpdateAdminNotes(order_number=order_number, notes=notes), asynchronous=False)
    return current_domain.repository_for(Order).get_by_number(order_number)


def amend_cancellation_reason(order_number: str, reason: str, actor_id: str | None) -> Order:
    _require_administrator(actor_id)
    with order_locks.hold(order_number):
        current_domain.process(
            AmendCancellationReason(order_number=order_number, reason=reason),
            asynchronous=False,
        )
    return current_domain.repository_for(Order).get_by_number(order_number)
