"""Integration tests for the /admin/orders endpoints via TestClient."""

from datetime import UTC, datetime, timedelta

from ordering.order.order import Order
from protean import current_domain

CUSTOMER = {"X-User-Id": "cust-001"}
ADMIN = {"X-User-Id": "admin-001"}


def _move(client, order_number, status, reason=None):
    return client.put(f"/admin/orders/{order_number}/status", json={"status": status, "reason": reason}, headers=ADMIN)


class TestAdminAccess:
    def test_customers_are_forbidden(self, client, checked_out):
        created = checked_out()
        assert client.get("/admin/orders", headers=CUSTOMER).status_code == 403
        assert client.get(f"/admin/orders/{created['order_number']}", headers=CUSTOMER).status_code == 403
        response = client.put(
            f"/admin/orders/{created['order_number']}/status",
            json={"status": "cancelled", "reason": "mine"},
            headers=CUSTOMER,
        )
        assert response.status_code == 403

    def test_anonymous_is_unauthorized(self, client):
        assert client.get("/admin/orders").status_code == 401


class TestAdminReads:
    def test_list_and_filter_by_status(self, client, checked_out, place_order):
        pending = checked_out("bank_transfer")
        draft = place_order(user_id="cust-002")

        everything = client.get("/admin/orders", headers=ADMIN).json()
        assert {order["order_number"] for order in everything} == {pending["order_number"], draft.order_number}

        drafts = client.get("/admin/orders", params={"status": "draft"}, headers=ADMIN).json()
        assert [order["order_number"] for order in drafts] == [draft.order_number]
        assert drafts[0]["customer_id"] == "cust-002"

    def test_unknown_status_filter(self, client):
        response = client.get("/admin/orders", params={"status": "shipped"}, headers=ADMIN)
        assert response.status_code == 400
        assert "status" in response.json()["detail"]

    def test_detail_includes_admin_fields(self, client, checked_out):
        created = checked_out("bank_transfer")

        body = client.get(f"/admin/orders/{created['order_number']}", headers=ADMIN).json()

        assert body["customer_id"] == "cust-001"
        assert body["bank_transfer_link"] == created["redirect_url"]
        assert [change["to_status"] for change in body["history"]] == ["pending_payment"]
        assert body["history"][0]["actor_role"] == "system"

    def test_unknown_order(self, client):
        response = client.get("/admin/orders/VG-000000-0000-000000", headers=ADMIN)
        assert response.status_code == 404
        assert "detail" in response.json()


class TestAdminTransitions:
    def test_manual_advance_to_delivered(self, client, checked_out):
        created = checked_out("bank_transfer")
        order_number = created["order_number"]

        for status in ("verifying", "paid", "delivered"):
            response = _move(client, order_number, status)
            assert response.status_code == 200, response.text

        body = response.json()
        assert body["status"] == "delivered"
        assert body["payment_status"] == "paid"
        assert body["delivered_at"] is not None
        assert all(item["digital_content"] for item in body["items"])
        assert [change["to_status"] for change in body["history"]] == [
            "pending_payment",
            "verifying",
            "paid",
            "delivered",
        ]
        assert body["history"][-1]["actor_id"] == "admin-001"

    def test_illegal_edge_is_a_conflict_with_detail(self, client, checked_out):
        created = checked_out("bank_transfer")

        response = _move(client, created["order_number"], "delivered")

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "contact_support"
        assert "pending_payment" in body["detail"]["status"][0]

    def test_unknown_status_is_a_bad_request(self, client, checked_out):
        created = checked_out("bank_transfer")
        assert _move(client, created["order_number"], "refunded").status_code == 400

    def test_cancel_requires_reason(self, client, checked_out):
        created = checked_out("bank_transfer")

        assert _move(client, created["order_number"], "cancelled").status_code == 400

        response = _move(client, created["order_number"], "cancelled", reason="Customer request")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["cancellation_reason"] == "Customer request"
        assert body["cancelled_by"] == "administrator"

    def test_cancelled_is_terminal(self, client, checked_out):
        created = checked_out("bank_transfer")
        _move(client, created["order_number"], "cancelled", reason="Duplicate")

        assert _move(client, created["order_number"], "pending_payment").status_code == 409


class TestAdminEdits:
    def test_notes(self, client, checked_out):
        created = checked_out()

        response = client.put(
            f"/admin/orders/{created['order_number']}/notes",
            json={"notes": "Asked for invoice"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["admin_notes"] == "Asked for invoice"
        customer_view = client.get(f"/orders/{created['order_number']}", headers=CUSTOMER).json()
        assert "admin_notes" not in customer_view

    def test_amend_cancellation_reason(self, client, checked_out):
        created = checked_out("bank_transfer")
        _move(client, created["order_number"], "cancelled", reason="Dup")

        response = client.put(
            f"/admin/orders/{created['order_number']}/cancellation-reason",
            json={"reason": "Duplicate order"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["cancellation_reason"] == "Duplicate order"

    def test_amend_reason_of_open_order_is_a_conflict(self, client, checked_out):
        created = checked_out("bank_transfer")
        response = client.put(
            f"/admin/orders/{created['order_number']}/cancellation-reason",
            json={"reason": "Nope"},
            headers=ADMIN,
        )
        assert response.status_code == 409

    def test_contact_link(self, client, checked_out):
        created = checked_out()

        response = client.get(f"/admin/orders/{created['order_number']}/contact", headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["link"].startswith("https://wa.me/525598765432?text=")


class TestExpireStale:
    def test_expires_old_unpaid_orders(self, client, checked_out):
        created = checked_out("bank_transfer")
        repo = current_domain.repository_for(Order)
        order = repo.get_by_number(created["order_number"])
        order.created_at = datetime.now(UTC) - timedelta(hours=60)
        repo.add(order)

        response = client.post("/admin/orders/expire-stale", headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {"expired": [created["order_number"]]}
        body = client.get(f"/admin/orders/{created['order_number']}", headers=ADMIN).json()
        assert body["status"] == "cancelled"
        assert body["cancelled_by"] == "system"

    def test_custom_age(self, client, checked_out):
        created = checked_out("bank_transfer")
        repo = current_domain.repository_for(Order)
        order = repo.get_by_number(created["order_number"])
        order.created_at = datetime.now(UTC) - timedelta(hours=5)
        repo.add(order)

        assert client.post("/admin/orders/expire-stale", headers=ADMIN).json() == {"expired": []}
        response = client.post("/admin/orders/expire-stale", json={"older_than_hours": 4}, headers=ADMIN)
        assert response.json() == {"expired": [created["order_number"]]}

    def test_rejects_non_positive_age(self, client):
        response = client.post("/admin/orders/expire-stale", json={"older_than_hours": 0}, headers=ADMIN)
        assert response.status_code == 422
