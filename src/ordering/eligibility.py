"""Purchase eligibility.

A customer may review products only after buying them. Eligibility is
derived from the Order Store on every call and never cached, so it follows
cancellations immediately.
"""

from protean.utils.globals import current_domain

from ordering.order.order import Order


def is_eligible(user_id: str | None, product_id: str | None = None) -> bool:
    """True iff the user has a paid or delivered order (containing ``product_id`` when given)."""
    if not user_id:
        return False
    return current_domain.repository_for(Order).has_settled_order(user_id, product_id)
