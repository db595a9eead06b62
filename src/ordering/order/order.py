"""Order aggregate (CQRS): the core of the ordering domain.

An order is a snapshot of what the customer bought (line items with locked
prices, billing details, totals) plus a small state machine that tracks
payment and delivery. Digital content is unlocked on the items exactly once,
when the order becomes paid.

State Machine:
    DRAFT → PENDING_PAYMENT → VERIFYING → PAID → DELIVERED
    {DRAFT, PENDING_PAYMENT, VERIFYING, PAID} → CANCELLED

DELIVERED and CANCELLED are terminal. Every edge names the roles allowed to
traverse it; customers never move an order themselves.
"""

import json
import secrets
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import ForbiddenTransitionError, IllegalTransitionError, InvalidOrderError
from ordering.order.events import (
    AdminNotesUpdated,
    BankTransferRequested,
    CancellationReasonAmended,
    DigitalContentUnlocked,
    OrderCancelled,
    OrderDelivered,
    OrderPaid,
    OrderPlaced,
    OrderStatusChanged,
    PaymentFailed,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    DRAFT = "draft"
    PENDING_PAYMENT = "pending_payment"
    VERIFYING = "verifying"
    PAID = "paid"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    BANK_TRANSFER = "bank_transfer"
    GATEWAY = "gateway"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class ActorRole(Enum):
    CUSTOMER = "customer"
    ADMINISTRATOR = "administrator"
    SYSTEM = "system"


_ADMIN = ActorRole.ADMINISTRATOR
_SYSTEM = ActorRole.SYSTEM

# (from, to) -> roles allowed to traverse the edge
_TRANSITIONS = {
    (OrderStatus.DRAFT, OrderStatus.PENDING_PAYMENT): {_SYSTEM, _ADMIN},
    (OrderStatus.DRAFT, OrderStatus.CANCELLED): {_SYSTEM, _ADMIN},
    (OrderStatus.PENDING_PAYMENT, OrderStatus.VERIFYING): {_SYSTEM, _ADMIN},
    (OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED): {_SYSTEM, _ADMIN},
    (OrderStatus.VERIFYING, OrderStatus.PAID): {_SYSTEM, _ADMIN},
    (OrderStatus.VERIFYING, OrderStatus.CANCELLED): {_ADMIN},
    (OrderStatus.PAID, OrderStatus.DELIVERED): {_ADMIN},
    (OrderStatus.PAID, OrderStatus.CANCELLED): {_ADMIN},
}

# Edges the system may only take on behalf of the payment gateway.
# Bank transfers are confirmed by a human.
_GATEWAY_ONLY_FOR_SYSTEM = {
    (OrderStatus.PENDING_PAYMENT, OrderStatus.VERIFYING),
    (OrderStatus.VERIFYING, OrderStatus.PAID),
}

CANONICAL_PATH = [
    OrderStatus.DRAFT,
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.VERIFYING,
    OrderStatus.PAID,
    OrderStatus.DELIVERED,
]

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
SETTLED_STATUSES = {OrderStatus.PAID, OrderStatus.DELIVERED}
AWAITING_PAYMENT_STATUSES = {OrderStatus.DRAFT, OrderStatus.PENDING_PAYMENT, OrderStatus.VERIFYING}

BILLING_INFO_VERSION = "v1"


def allowed_targets(current: OrderStatus) -> set[OrderStatus]:
    """Statuses reachable from ``current`` in one step, regardless of role."""
    return {target for (source, target) in _TRANSITIONS if source == current}


def is_legal(current: OrderStatus, target: OrderStatus) -> bool:
    return (current, target) in _TRANSITIONS


def is_authorized(
    current: OrderStatus,
    target: OrderStatus,
    role: ActorRole,
    payment_method: PaymentMethod,
) -> bool:
    roles = _TRANSITIONS.get((current, target), set())
    if role not in roles:
        return False
    if role == _SYSTEM and (current, target) in _GATEWAY_ONLY_FOR_SYSTEM:
        return payment_method == PaymentMethod.GATEWAY
    return True


def _round_money(amount: float) -> float:
    return round(amount, 2)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class BillingInfo:
    """Billing details captured at checkout.

    Immutable once recorded: later profile edits never change what an order
    was billed to. The ``version`` tag lets the boundary reject payload shapes
    it does not understand.
    """

    version = String(max_length=5, default=BILLING_INFO_VERSION)
    email = String(required=True, max_length=254)
    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    phone = String(max_length=30)
    address = String(max_length=255)
    city = String(max_length=100)
    postal_code = String(max_length=20)

    @invariant.post
    def version_is_supported(self):
        if self.version != BILLING_INFO_VERSION:
            raise ValidationError({"version": [f"Unsupported billing info version {self.version!r}"]})

    @invariant.post
    def email_has_mailbox_and_domain(self):
        local, _, domain = (self.email or "").partition("@")
        if not local or not domain or " " in self.email:
            raise ValidationError({"email": [f"Invalid email address: {self.email!r}"]})

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A purchased product or bundle with its price locked at checkout.

    ``digital_content`` stays empty until the order is paid; it then holds a
    JSON document with the activation code and redemption instructions.
    """

    product_id = Identifier()
    bundle_id = Identifier()
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    digital_content = Text()

    @invariant.post
    def references_exactly_one_catalog_entry(self):
        if bool(self.product_id) == bool(self.bundle_id):
            raise ValidationError({"product_id": ["An order line must reference either a product or a bundle"]})

    @property
    def line_total(self) -> float:
        return _round_money(self.unit_price * self.quantity)

    @property
    def is_unlocked(self) -> bool:
        return bool(self.digital_content)


@ordering.entity(part_of="Order")
class StatusChange:
    """One traversed edge of the state machine, kept for the audit trail."""

    from_status = String(max_length=20, choices=OrderStatus)
    to_status = String(required=True, max_length=20, choices=OrderStatus)
    actor_role = String(required=True, max_length=20, choices=ActorRole)
    actor_id = String(max_length=100)
    reason = String(max_length=500)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=40, unique=True)
    customer_id = Identifier(required=True)
    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.DRAFT.value,
    )
    payment_method = String(required=True, max_length=20, choices=PaymentMethod)
    payment_status = String(
        max_length=20,
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    history = HasMany(StatusChange)
    billing_info = ValueObject(BillingInfo, required=True)
    subtotal = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    customer_notes = Text()
    admin_notes = Text()
    bank_transfer_link = Text()
    bank_transfer_requested_at = DateTime()
    paid_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=20, choices=ActorRole)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def subtotal_matches_line_items(self):
        if not self.items:
            return
        expected = _round_money(sum(item.unit_price * item.quantity for item in self.items))
        if abs((self.subtotal or 0.0) - expected) > 0.005:
            raise ValidationError({"subtotal": [f"Subtotal {self.subtotal} does not match line items ({expected})"]})

    @invariant.post
    def total_is_subtotal_less_discount(self):
        expected = _round_money(max((self.subtotal or 0.0) - (self.discount_amount or 0.0), 0.0))
        if abs((self.total or 0.0) - expected) > 0.005:
            raise ValidationError({"total": [f"Total {self.total} must equal max(subtotal - discount, 0) = {expected}"]})

    @invariant.post
    def cancelled_orders_record_why_and_when(self):
        if self.status != OrderStatus.CANCELLED.value:
            if self.cancelled_at is not None:
                raise ValidationError({"cancelled_at": ["Only cancelled orders carry a cancellation time"]})
            return
        if not self.cancellation_reason or not self.cancellation_reason.strip():
            raise ValidationError({"cancellation_reason": ["Cancelled orders must record a reason"]})
        if self.cancelled_at is None:
            raise ValidationError({"cancelled_at": ["Cancelled orders must record when they were cancelled"]})

    @invariant.post
    def delivery_time_only_on_delivered_orders(self):
        delivered = self.status == OrderStatus.DELIVERED.value
        if delivered and self.delivered_at is None:
            raise ValidationError({"delivered_at": ["Delivered orders must record when they were delivered"]})
        if not delivered and self.delivered_at is not None:
            raise ValidationError({"delivered_at": ["Only delivered orders carry a delivery time"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number: str,
        customer_id: str,
        payment_method: str,
        billing_info: BillingInfo,
        lines: list[dict],
        discount_amount: float = 0.0,
        customer_notes: str | None = None,
    ):
        """Create a draft order from validated checkout lines.

        Args:
            lines: dicts with product_id or bundle_id, product_name, quantity
                   and unit_price (checked against the catalog, priced at checkout).
        """
        now = datetime.now(UTC)
        subtotal = _round_money(sum(line["unit_price"] * line["quantity"] for line in lines))
        discount = _round_money(discount_amount or 0.0)
        total = _round_money(max(subtotal - discount, 0.0))

        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            status=OrderStatus.DRAFT.value,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            billing_info=billing_info,
            items=[OrderItem(**line) for line in lines],
            subtotal=subtotal,
            discount_amount=discount,
            total=total,
            customer_notes=customer_notes,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                payment_method=payment_method,
                items=json.dumps(lines),
                subtotal=subtotal,
                discount_amount=discount,
                total=total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    @property
    def is_settled(self) -> bool:
        return self.current_status in SETTLED_STATUSES

    @property
    def is_awaiting_payment(self) -> bool:
        return self.current_status in AWAITING_PAYMENT_STATUSES

    def contains_product(self, product_id: str) -> bool:
        return any(str(item.product_id) == str(product_id) for item in self.items if item.product_id)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus, role: ActorRole) -> None:
        current = self.current_status
        if not is_legal(current, target):
            raise IllegalTransitionError({"status": [f"Cannot transition from {current.value} to {target.value}"]})
        if not is_authorized(current, target, role, PaymentMethod(self.payment_method)):
            raise ForbiddenTransitionError(
                {"status": [f"Role {role.value} may not move an order from {current.value} to {target.value}"]}
            )

    def transition_to(
        self,
        target: OrderStatus,
        role: ActorRole,
        actor_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Move the order along one edge of the state machine.

        Legality is checked first (IllegalTransitionError), then the actor's
        role (ForbiddenTransitionError), then the cancellation reason
        (InvalidOrderError). Side effects of the target state are applied in
        the same change.
        """
        self._assert_can_transition(target, role)
        if target == OrderStatus.CANCELLED and not (reason and reason.strip()):
            raise InvalidOrderError({"cancellation_reason": ["A reason is required to cancel an order"]})

        previous = self.current_status
        now = datetime.now(UTC)
        unlocked = 0

        with atomic_change(self):
            self.status = target.value
            self.updated_at = now

            if target == OrderStatus.PAID:
                self.payment_status = PaymentStatus.PAID.value
                self.paid_at = now
            elif target == OrderStatus.DELIVERED:
                self.delivered_at = now
            elif target == OrderStatus.CANCELLED:
                self.cancelled_at = now
                self.cancellation_reason = reason.strip()
                self.cancelled_by = role.value

            self.add_history(
                StatusChange(
                    from_status=previous.value,
                    to_status=target.value,
                    actor_role=role.value,
                    actor_id=actor_id,
                    reason=reason.strip() if reason else None,
                    changed_at=now,
                )
            )
            if target == OrderStatus.PAID:
                unlocked = self._unlock_digital_content(now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                from_status=previous.value,
                to_status=target.value,
                actor_role=role.value,
                actor_id=actor_id,
                changed_at=now,
            )
        )
        if target == OrderStatus.PAID:
            self.raise_(
                OrderPaid(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    customer_id=str(self.customer_id),
                    payment_method=self.payment_method,
                    total=self.total,
                    paid_at=now,
                )
            )
            if unlocked:
                self.raise_(
                    DigitalContentUnlocked(
                        order_id=str(self.id),
                        order_number=self.order_number,
                        item_count=unlocked,
                        unlocked_at=now,
                    )
                )
        elif target == OrderStatus.DELIVERED:
            self.raise_(
                OrderDelivered(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    delivered_at=now,
                )
            )
        elif target == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    previous_status=previous.value,
                    reason=self.cancellation_reason,
                    cancelled_by=role.value,
                    cancelled_at=now,
                )
            )

    def advance_to(self, target: OrderStatus, role: ActorRole, actor_id: str | None = None) -> list[OrderStatus]:
        """Walk the canonical path from the current status up to ``target``.

        Used by the payment handshake, where the gateway's answer can skip
        the intermediate ``verifying`` step. Returns the statuses entered.
        """
        current = self.current_status
        if current not in CANONICAL_PATH or target not in CANONICAL_PATH:
            raise IllegalTransitionError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        start, end = CANONICAL_PATH.index(current), CANONICAL_PATH.index(target)
        if end <= start:
            raise IllegalTransitionError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        entered = []
        for step in CANONICAL_PATH[start + 1 : end + 1]:
            self.transition_to(step, role, actor_id=actor_id)
            entered.append(step)
        return entered

    def _unlock_digital_content(self, now: datetime) -> int:
        """Issue activation codes for items that have none yet. Returns how many were issued."""
        prefix = self.order_number.split("-", 1)[0]
        issued = 0
        for item in self.items:
            if item.is_unlocked:
                continue
            item.digital_content = json.dumps(
                {
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "digital_code": f"{prefix}-{int(now.timestamp())}-{secrets.token_hex(4).upper()}",
                    "instructions": "Redeem this code on the platform's store. Contact support if it does not work.",
                    "issued_at": now.isoformat(),
                }
            )
            issued += 1
        return issued

    # -------------------------------------------------------------------
    # Payment bookkeeping
    # -------------------------------------------------------------------
    def record_payment_failure(self, gateway_session_id: str) -> None:
        """Mark the current payment attempt as failed without changing status."""
        if not self.is_awaiting_payment:
            raise IllegalTransitionError(
                {"payment_status": [f"Cannot record a failed payment on a {self.status} order"]}
            )
        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.FAILED.value
        self.updated_at = now
        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                order_number=self.order_number,
                gateway_session_id=gateway_session_id,
                failed_at=now,
            )
        )

    def reopen_payment(self) -> None:
        """A fresh payment session was opened; the attempt is pending again."""
        self.payment_status = PaymentStatus.PENDING.value
        self.updated_at = datetime.now(UTC)

    def request_bank_transfer(self, link: str) -> bool:
        """Record the messaging deep link for a manual payment.

        Returns False when a link was already recorded; the stored link is kept.
        """
        if self.bank_transfer_requested_at is not None:
            return False
        now = datetime.now(UTC)
        self.bank_transfer_link = link
        self.bank_transfer_requested_at = now
        self.updated_at = now
        self.raise_(
            BankTransferRequested(
                order_id=str(self.id),
                order_number=self.order_number,
                link=link,
                requested_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def amend_cancellation_reason(self, reason: str) -> None:
        if self.current_status != OrderStatus.CANCELLED:
            raise IllegalTransitionError(
                {"cancellation_reason": ["Only cancelled orders have a cancellation reason to amend"]}
            )
        if not reason or not reason.strip():
            raise InvalidOrderError({"cancellation_reason": ["Cancellation reason cannot be empty"]})

        now = datetime.now(UTC)
        self.cancellation_reason = reason.strip()
        self.updated_at = now
        self.raise_(
            CancellationReasonAmended(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=self.cancellation_reason,
                amended_at=now,
            )
        )

    def update_admin_notes(self, notes: str | None) -> None:
        now = datetime.now(UTC)
        self.admin_notes = notes or None
        self.updated_at = now
        self.raise_(
            AdminNotesUpdated(
                order_id=str(self.id),
                order_number=self.order_number,
                updated_at=now,
            )
        )
