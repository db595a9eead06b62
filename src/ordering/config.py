"""Store configuration.

``StoreSettings`` is built from the environment once per request and handed
explicitly to the operations that need it (routing, housekeeping). Nothing
inside the engine reads environment variables on its own.
"""

import os

from pydantic import BaseModel, ConfigDict, Field


def _env(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    return value if value not in (None, "") else default


class StoreSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    store_name: str = "VG Store"
    # Messaging number that receives bank-transfer payment requests, digits only
    whatsapp_number: str = "5215555555555"
    order_number_prefix: str = Field(default="VG", min_length=1, max_length=8)
    currency: str = Field(default="mxn", min_length=3, max_length=3)
    frontend_url: str = "http://localhost:5173"
    admin_user_ids: frozenset[str] = frozenset()
    stale_order_hours: int = Field(default=48, gt=0)
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    # JSON catalog loaded into the in-memory catalog at startup
    catalog_file: str | None = None

    @classmethod
    def from_env(cls) -> "StoreSettings":
        admin_ids = _env("VGSTORE_ADMIN_USER_IDS", "") or ""
        return cls(
            store_name=_env("VGSTORE_NAME", "VG Store"),
            whatsapp_number=_env("VGSTORE_WHATSAPP_NUMBER", "5215555555555"),
            order_number_prefix=_env("VGSTORE_ORDER_PREFIX", "VG"),
            currency=_env("VGSTORE_CURRENCY", "mxn"),
            frontend_url=_env("VGSTORE_FRONTEND_URL", "http://localhost:5173"),
            admin_user_ids=frozenset(i.strip() for i in admin_ids.split(",") if i.strip()),
            stale_order_hours=int(_env("VGSTORE_STALE_ORDER_HOURS", "48")),
            stripe_secret_key=_env("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=_env("STRIPE_WEBHOOK_SECRET"),
            catalog_file=_env("VGSTORE_CATALOG_FILE"),
        )

    def success_url(self, order_number: str) -> str:
        return f"{self.frontend_url}/order-confirmation/{order_number}?session_id={{CHECKOUT_SESSION_ID}}"

    def cancel_url(self) -> str:
        return f"{self.frontend_url}/checkout"
