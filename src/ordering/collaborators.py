"""Startup wiring of the collaborator adapters from StoreSettings."""

import structlog

from ordering.catalog import set_catalog
from ordering.catalog.memory_adapter import InMemoryCatalog
from ordering.config import StoreSettings
from ordering.gateway import set_gateway
from ordering.gateway.stripe_adapter import StripeGateway
from ordering.identity import set_identity
from ordering.identity.static_adapter import StaticIdentity

logger = structlog.get_logger(__name__)


def install_collaborators(settings: StoreSettings) -> None:
    set_identity(StaticIdentity(settings.admin_user_ids))

    if settings.catalog_file:
        catalog = InMemoryCatalog.from_file(settings.catalog_file)
        set_catalog(catalog)
        logger.info(
            "catalog_configured",
            source=settings.catalog_file,
            products=len(catalog.products),
            bundles=len(catalog.bundles),
        )
    else:
        logger.warning("catalog_configured", source=None, reason="VGSTORE_CATALOG_FILE not set")

    if settings.stripe_secret_key:
        set_gateway(StripeGateway(settings.stripe_secret_key, settings.stripe_webhook_secret))
        logger.info("payment_gateway_configured", gateway="stripe")
    else:
        logger.warning("payment_gateway_configured", gateway="fake", reason="STRIPE_SECRET_KEY not set")
