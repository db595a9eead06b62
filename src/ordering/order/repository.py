"""Repository for the Order aggregate.

The base repository provides get/add by id. Orders are addressed by their
public order number everywhere outside the engine, so lookups by number and
the listing queries used by the API and eligibility checks live here.

Listings are unbounded: the aggregate's default query limit would silently
truncate them.
"""

from protean.exceptions import ObjectNotFoundError

from ordering.domain import ordering
from ordering.order.order import SETTLED_STATUSES, Order, OrderStatus


def _unbounded(query) -> list:
    # Must be the last call before all(): chaining re-applies the default limit.
    return query.limit(None).all().items


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_number(self, order_number: str) -> Order | None:
        results = self._dao.query.filter(order_number=order_number).all().items
        return results[0] if results else None

    def get_by_number(self, order_number: str) -> Order:
        order = self.find_by_number(order_number)
        if order is None:
            raise ObjectNotFoundError(f"Order with number `{order_number}` does not exist")
        return order

    def for_customer(self, customer_id: str) -> list[Order]:
        return _unbounded(self._dao.query.filter(customer_id=str(customer_id)).order_by("-created_at"))

    def with_status(self, *statuses: OrderStatus) -> list[Order]:
        query = self._dao.query
        if statuses:
            query = query.filter(status__in=[status.value for status in statuses])
        return _unbounded(query.order_by("-created_at"))

    def settled_for_customer(self, customer_id: str) -> list[Order]:
        """Paid or delivered orders belonging to the customer, oldest first."""
        return _unbounded(
            self._dao.query.filter(
                customer_id=str(customer_id),
                status__in=[status.value for status in SETTLED_STATUSES],
            ).order_by("created_at")
        )

    def has_settled_order(self, customer_id: str, product_id: str | None = None) -> bool:
        """True if any settled order of the customer exists, containing ``product_id`` when given."""
        settled = self.settled_for_customer(customer_id)
        if product_id is None:
            return bool(settled)
        return any(order.contains_product(product_id) for order in settled)
