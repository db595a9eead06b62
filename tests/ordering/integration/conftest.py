import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.dependencies import get_settings
from ordering.api.errors import register_error_handlers
from ordering.api.routes import admin_router, order_router, payment_router
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client(settings):
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(admin_router)
    app.include_router(payment_router)
    register_exception_handlers(app)
    register_error_handlers(app)
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


@pytest.fixture()
def checkout_payload(items, billing_info):
    def _payload(payment_method="gateway", **overrides):
        return {
            "items": items,
            "billing_info": billing_info,
            "payment_method": payment_method,
            **overrides,
        }

    return _payload


@pytest.fixture()
def checked_out(client, checkout_payload):
    """Factory: POST /orders/checkout as the default customer and return the JSON body."""

    def _checkout(payment_method="gateway", **overrides):
        response = client.post(
            "/orders/checkout",
            json=checkout_payload(payment_method, **overrides),
            headers={"X-User-Id": "cust-001"},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _checkout
