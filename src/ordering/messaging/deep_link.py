"""WhatsApp deep links and the messages carried in them."""

import re
from urllib.parse import quote

from ordering.errors import InvalidOrderError

_NON_DIGITS = re.compile(r"\D")
# Characters encodeURIComponent leaves untouched
_URI_SAFE = "!~*'()"


def whatsapp_link(phone: str | None, text: str) -> str:
    """Build a ``https://wa.me/<digits>?text=...`` link.

    Raises InvalidOrderError when the phone number has no digits.
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        raise InvalidOrderError({"phone": ["No usable phone number on record"]})
    return f"https://wa.me/{digits}?text={quote(text, safe=_URI_SAFE)}"


def _money(amount: float, currency: str) -> str:
    return f"${amount:,.2f} {currency.upper()}"


def bank_transfer_message(order, store_name: str, currency: str) -> str:
    """Structured payment request the customer sends to the store."""
    billing = order.billing_info
    lines = [
        f"Hello {store_name}! I would like to pay order #{order.order_number} by bank transfer.",
        "",
        f"Name: {billing.first_name} {billing.last_name}",
        f"Email: {billing.email}",
        "",
        "Items:",
    ]
    for item in order.items:
        lines.append(f"- {item.product_name} x{item.quantity}: {_money(item.unit_price * item.quantity, currency)}")
    if order.discount_amount:
        lines.append(f"Discount: -{_money(order.discount_amount, currency)}")
    lines.append(f"Total: {_money(order.total, currency)}")
    if order.customer_notes:
        lines.extend(["", f"Notes: {order.customer_notes}"])
    return "\n".join(lines)


def customer_contact_message(order, store_name: str) -> str:
    return f"Hello! This is {store_name}, writing about your order #{order.order_number}. How can we help?"
