import pytest
from ordering.catalog import set_catalog
from ordering.catalog.memory_adapter import InMemoryCatalog
from ordering.config import StoreSettings
from ordering.gateway import set_gateway
from ordering.gateway.fake_adapter import FakeGateway
from ordering.identity import set_identity
from ordering.identity.static_adapter import StaticIdentity
from ordering.messaging import set_channel
from ordering.messaging.fake_channel import FakeMessagingChannel
from protean.integrations.pytest import DomainFixture

ADMIN_ID = "admin-001"
CUSTOMER_ID = "cust-001"


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    bed = DomainFixture(ordering)
    bed.setup()
    setup_db(ordering)
    yield bed
    drop_db(ordering)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def catalog():
    catalog = InMemoryCatalog()
    catalog.add_product("prod-001", "Gift Card $500", 500.0)
    catalog.add_product("prod-002", "Game Pass 3 Months", 299.0)
    catalog.add_bundle("bundle-001", "Starter Bundle", 650.0)
    set_catalog(catalog)
    return catalog


@pytest.fixture(autouse=True)
def gateway():
    gateway = FakeGateway()
    set_gateway(gateway)
    return gateway


@pytest.fixture(autouse=True)
def channel():
    channel = FakeMessagingChannel()
    set_channel(channel)
    return channel


@pytest.fixture(autouse=True)
def identity():
    identity = StaticIdentity([ADMIN_ID])
    set_identity(identity)
    return identity


@pytest.fixture()
def settings():
    return StoreSettings(
        store_name="VG Store",
        whatsapp_number="+52 1 55 1234 5678",
        order_number_prefix="VG",
        currency="mxn",
        frontend_url="https://vgstore.test",
        admin_user_ids=frozenset({ADMIN_ID}),
    )


# ---------------------------------------------------------------------------
# Checkout payloads
# ---------------------------------------------------------------------------
@pytest.fixture()
def billing_info():
    return {
        "version": "v1",
        "email": "ana@example.com",
        "first_name": "Ana",
        "last_name": "García",
        "phone": "+52 55 9876 5432",
        "city": "CDMX",
    }


@pytest.fixture()
def items():
    return [
        {"product_id": "prod-001", "quantity": 1, "unit_price": 500.0},
        {"bundle_id": "bundle-001", "quantity": 2, "unit_price": 650.0},
    ]


@pytest.fixture()
def place_order(billing_info, items):
    """Factory: place a draft order through the creation command and return it."""
    from ordering.order.creation import create_order

    default_items, default_billing = items, billing_info

    def _place(payment_method="gateway", user_id=CUSTOMER_ID, items=None, billing_info=None, **kwargs):
        return create_order(
            user_id,
            items if items is not None else default_items,
            billing_info if billing_info is not None else default_billing,
            payment_method,
            **kwargs,
        )

    return _place
