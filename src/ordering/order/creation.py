"""Order creation: command, handler and boundary parsing.

Checkout payloads arrive as JSON (items and a versioned billing-info
document). They are parsed strictly here: unknown keys, unsupported
versions, malformed quantities and negative prices are rejected with
InvalidOrderError before anything is looked up. The unit price is the one
the client submitted and is snapshotted onto the order; the catalog only
confirms the product exists, is active and supplies its name.
"""

import json
import math

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.catalog import get_catalog
from ordering.domain import ordering
from ordering.errors import InvalidOrderError, ProductUnavailableError
from ordering.order.numbering import get_generator
from ordering.order.order import BILLING_INFO_VERSION, BillingInfo, Order, PaymentMethod

logger = structlog.get_logger(__name__)

_ITEM_KEYS = {"product_id", "bundle_id", "quantity", "unit_price"}
_BILLING_KEYS = {"version", "email", "first_name", "last_name", "phone", "address", "city", "postal_code"}


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id|bundle_id, quantity, unit_price}
    billing_info = Text(required=True)  # JSON: versioned billing document
    payment_method = String(required=True, max_length=50)
    customer_notes = Text()
    discount_amount = Float(default=0.0)
    order_number_prefix = String(max_length=8, default="VG")


# ---------------------------------------------------------------------------
# Boundary parsing
# ---------------------------------------------------------------------------
def _load_json(raw, field: str):
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidOrderError({field: [f"Malformed JSON: {exc.msg}"]}) from exc


def parse_items(raw) -> list[dict]:
    """Validate checkout lines: one catalog reference, positive integer quantity and non-negative price each."""
    items = _load_json(raw, "items")
    if not isinstance(items, list) or not items:
        raise InvalidOrderError({"items": ["An order needs at least one item"]})

    parsed = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidOrderError({"items": [f"Item {position} must be an object"]})

        unknown = set(item) - _ITEM_KEYS
        if unknown:
            raise InvalidOrderError({"items": [f"Item {position} has unknown fields: {', '.join(sorted(unknown))}"]})

        product_id, bundle_id = item.get("product_id"), item.get("bundle_id")
        if bool(product_id) == bool(bundle_id):
            raise InvalidOrderError({"items": [f"Item {position} must reference exactly one product or bundle"]})

        quantity = item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidOrderError({"items": [f"Item {position} quantity must be a positive integer"]})

        unit_price = item.get("unit_price")
        is_number = isinstance(unit_price, (int, float)) and not isinstance(unit_price, bool)
        if not is_number or not (unit_price >= 0 and math.isfinite(unit_price)):
            raise InvalidOrderError({"items": [f"Item {position} unit_price must be a non-negative number"]})

        parsed.append(
            {
                "product_id": str(product_id) if product_id else None,
                "bundle_id": str(bundle_id) if bundle_id else None,
                "quantity": quantity,
                "unit_price": float(unit_price),
            }
        )
    return parsed


def parse_billing_info(raw) -> BillingInfo:
    """Build the BillingInfo value object from a versioned payload."""
    data = _load_json(raw, "billing_info")
    if not isinstance(data, dict):
        raise InvalidOrderError({"billing_info": ["Billing info must be an object"]})

    version = data.get("version", BILLING_INFO_VERSION)
    if version != BILLING_INFO_VERSION:
        raise InvalidOrderError({"billing_info": [f"Unsupported billing info version {version!r}"]})

    unknown = set(data) - _BILLING_KEYS
    if unknown:
        raise InvalidOrderError({"billing_info": [f"Unknown fields: {', '.join(sorted(unknown))}"]})

    non_strings = [key for key, value in data.items() if value is not None and not isinstance(value, str)]
    if non_strings:
        raise InvalidOrderError({"billing_info": [f"Fields must be strings: {', '.join(sorted(non_strings))}"]})

    try:
        return BillingInfo(**{**data, "version": version})
    except ValidationError as exc:
        raise InvalidOrderError(exc.messages) from exc


def parse_payment_method(raw) -> PaymentMethod:
    try:
        return PaymentMethod(raw)
    except ValueError as exc:
        allowed = ", ".join(method.value for method in PaymentMethod)
        raise InvalidOrderError({"payment_method": [f"Payment method must be one of: {allowed}"]}) from exc


def price_lines(items: list[dict]) -> list[dict]:
    """Check every line against the catalog and snapshot its name with the submitted price."""
    catalog = get_catalog()
    lines = []
    for item in items:
        if item["product_id"]:
            entry, kind, ref = catalog.get_product(item["product_id"]), "Product", item["product_id"]
        else:
            entry, kind, ref = catalog.get_bundle(item["bundle_id"]), "Bundle", item["bundle_id"]

        if entry is None or not entry.active:
            raise ProductUnavailableError({"items": [f"{kind} {ref} is not available"]})

        lines.append(
            {
                "product_id": item["product_id"],
                "bundle_id": item["bundle_id"],
                "product_name": entry.name,
                "quantity": item["quantity"],
                "unit_price": item["unit_price"],
            }
        )
    return lines


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------
@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        payment_method = parse_payment_method(command.payment_method)
        billing_info = parse_billing_info(command.billing_info)
        items = parse_items(command.items)
        if (command.discount_amount or 0.0) < 0:
            raise InvalidOrderError({"discount_amount": ["Discount cannot be negative"]})

        lines = price_lines(items)

        repo = current_domain.repository_for(Order)
        generator = get_generator(command.order_number_prefix or "VG")
        order_number = generator.next()
        while repo.find_by_number(order_number) is not None:
            logger.warning("order_number_collision", order_number=order_number)
            order_number = generator.next()

        order = Order.place(
            order_number=order_number,
            customer_id=str(command.customer_id),
            payment_method=payment_method.value,
            billing_info=billing_info,
            lines=lines,
            discount_amount=command.discount_amount or 0.0,
            customer_notes=command.customer_notes,
        )
        repo.add(order)
        logger.info(
            "order_placed",
            order_number=order_number,
            customer_id=str(command.customer_id),
            payment_method=payment_method.value,
            total=order.total,
        )
        return order_number


def create_order(
    user_id: str,
    items,
    billing_info,
    payment_method: str,
    customer_notes: str | None = None,
    discount_amount: float = 0.0,
    order_number_prefix: str = "VG",
) -> Order:
    """Place a draft order and return it.

    ``items`` and ``billing_info`` may be given as parsed objects or as JSON
    text. Raises InvalidOrderError or ProductUnavailableError; nothing is
    stored when either is raised.
    """
    try:
        command = PlaceOrder(
            customer_id=user_id,
            items=items if isinstance(items, str) else json.dumps(items),
            billing_info=billing_info if isinstance(billing_info, str) else json.dumps(billing_info),
            payment_method=payment_method,
            customer_notes=customer_notes,
            discount_amount=discount_amount,
            order_number_prefix=order_number_prefix,
        )
    except ValidationError as exc:
        raise InvalidOrderError(exc.messages) from exc

    order_number = current_domain.process(command, asynchronous=False)
    return current_domain.repository_for(Order).get_by_number(order_number)
