"""Integration tests for the Orders API.

Covers:
  - POST /api/v1/orders/ (201, idempotent replay 200, validation errors).
  - Per-party listings with filters and pagination.
  - GET /api/v1/orders/{id}/ visibility.
  - PUT status / accept-delivery / rate endpoints.
  - Error body format for domain errors.
"""

import pytest

from modules.orders.constants import OrderStatus

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


@pytest.fixture()
def payload(menu_item, make):
    return {
        "vendor_id": str(menu_item.vendor_id),
        "order_type": "delivery",
        "items": [
            {
                "menu_item_id": str(menu_item.id),
                "quantity": 2,
                "customizations": [
                    {"name": "Spice", "selected_option": "Medium"}
                ],
            }
        ],
        "payment_method": "cod",
        "delivery_address": make.address,
    }


# ---------------------------------------------------------------------------
# POST /api/v1/orders/
# ---------------------------------------------------------------------------


class TestCreateOrder:
    def test_created(self, customer_client, payload):
        response = customer_client.post(ORDERS_URL, payload, format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        order = body["order"]
        assert order["status"] == "placed"
        assert order["pricing"] == {
            "subtotal": "200.00",
            "delivery_fee": "30.00",
            "cgst": "5.00",
            "sgst": "5.00",
            "igst": "0.00",
            "tax_total": "10.00",
            "total": "240.00",
        }
        assert order["items"][0]["customizations"][0]["selected_option"] == "Medium"
        assert [h["status"] for h in order["status_history"]] == ["placed"]

    def test_idempotent_replay(self, customer_client, payload):
        first = customer_client.post(
            ORDERS_URL, payload, format="json", HTTP_IDEMPOTENCY_KEY="abc-123"
        )
        second = customer_client.post(
            ORDERS_URL, payload, format="json", HTTP_IDEMPOTENCY_KEY="abc-123"
        )

        assert first.status_code == 201
        assert second.status_code == 200
        assert first.json()["order"]["id"] == second.json()["order"]["id"]

    def test_empty_items(self, customer_client, payload):
        payload["items"] = []
        response = customer_client.post(ORDERS_URL, payload, format="json")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "validation_error"
        assert "items" in body["details"]

    def test_delivery_without_address(self, customer_client, payload):
        payload["delivery_address"] = {}
        response = customer_client.post(ORDERS_URL, payload, format="json")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_vendor_cannot_order(self, vendor_client, payload):
        response = vendor_client.post(ORDERS_URL, payload, format="json")

        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "message": "Only customers can place orders.",
            "error": "access_denied",
        }

    def test_unauthenticated(self, api_client, payload):
        response = api_client.post(ORDERS_URL, payload, format="json")
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class TestListings:
    def test_customer_sees_own_orders(self, customer_client, place_order, make):
        mine = place_order()
        place_order(by=make.customer())

        response = customer_client.get(f"{ORDERS_URL}customer/")

        assert response.status_code == 200
        body = response.json()
        assert [o["id"] for o in body["results"]] == [str(mine.id)]
        assert body["pagination"] == {"current": 1, "pages": 1, "total": 1}

    def test_vendor_filters_by_status(self, vendor_client, place_order, advance):
        advance(place_order(), "confirmed")
        place_order()

        response = vendor_client.get(f"{ORDERS_URL}vendor/", {"status": "confirmed"})

        results = response.json()["results"]
        assert len(results) == 1
        assert results[0]["status"] == "confirmed"

    def test_pagination_limit(self, vendor_client, place_order):
        for _ in range(3):
            place_order()

        response = vendor_client.get(f"{ORDERS_URL}vendor/", {"limit": 2, "page": 2})

        body = response.json()
        assert len(body["results"]) == 1
        assert body["pagination"] == {"current": 2, "pages": 2, "total": 3}

    def test_delivery_listing(self, partner_client, place_order, advance, partner):
        order = advance(place_order(), "ready")

        response = partner_client.get(f"{ORDERS_URL}delivery/")

        assert [o["id"] for o in response.json()["results"]] == [str(order.id)]

    def test_wrong_listing_for_role(self, customer_client):
        response = customer_client.get(f"{ORDERS_URL}vendor/")
        assert response.status_code == 403

    def test_admin_sees_everything(self, admin_client, place_order, make):
        place_order()
        place_order(by=make.customer())

        response = admin_client.get(f"{ORDERS_URL}vendor/")

        assert response.json()["pagination"]["total"] == 2


# ---------------------------------------------------------------------------
# Retrieve
# ---------------------------------------------------------------------------


class TestRetrieve:
    def test_party_can_read(self, vendor_client, place_order):
        order = place_order()

        response = vendor_client.get(f"{ORDERS_URL}{order.id}/")

        assert response.status_code == 200
        assert response.json()["order"]["order_number"] == order.order_number

    def test_stranger_denied(self, place_order, make):
        order = place_order()
        client = make.client(make.customer())

        response = client.get(f"{ORDERS_URL}{order.id}/")

        assert response.status_code == 403

    def test_unknown_order(self, customer_client):
        response = customer_client.get(
            f"{ORDERS_URL}00000000-0000-0000-0000-000000000000/"
        )
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


# ---------------------------------------------------------------------------
# Lifecycle endpoints
# ---------------------------------------------------------------------------


class TestStatusEndpoint:
    def test_vendor_confirms(self, vendor_client, place_order):
        order = place_order()

        response = vendor_client.put(
            f"{ORDERS_URL}{order.id}/status/",
            {"status": "confirmed", "expected_status": "placed"},
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["order"]["status"] == "confirmed"
        assert "status_updated" in body["side_effects"]
        assert body["order"]["status_history"][-1]["status"] == "confirmed"

    def test_stale_expected_status(self, vendor_client, place_order, advance):
        order = advance(place_order(), "confirmed")

        response = vendor_client.put(
            f"{ORDERS_URL}{order.id}/status/",
            {"status": "preparing", "expected_status": "placed"},
            format="json",
        )

        assert response.status_code == 409
        assert response.json()["error"] == "stale_state"

    def test_invalid_edge(self, admin_client, place_order):
        order = place_order()

        response = admin_client.put(
            f"{ORDERS_URL}{order.id}/status/",
            {"status": "out_for_delivery"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_transition"

    def test_terminal(self, customer_client, place_order):
        order = place_order()
        url = f"{ORDERS_URL}{order.id}/status/"
        customer_client.put(url, {"status": "cancelled"}, format="json")

        response = customer_client.put(url, {"status": "cancelled"}, format="json")

        assert response.status_code == 409
        assert response.json()["error"] == "already_terminal"

    def test_cancellation_in_body(self, customer_client, place_order):
        order = place_order()

        response = customer_client.put(
            f"{ORDERS_URL}{order.id}/status/",
            {"status": "cancelled", "reason": "Ordered by mistake"},
            format="json",
        )

        cancellation = response.json()["order"]["cancellation"]
        assert cancellation["reason"] == "Ordered by mistake"
        assert cancellation["cancelled_by"] == "customer"


class TestAcceptAndRate:
    def test_accept_delivery(self, place_order, advance, make):
        order = advance(place_order(), "confirmed", "ready")
        partner = make.partner()

        response = make.client(partner).put(f"{ORDERS_URL}{order.id}/accept-delivery/")

        assert response.status_code == 200
        assert response.json()["order"]["status"] == OrderStatus.PICKED_UP
        assert response.json()["order"]["delivery_partner_id"] == str(partner.id)

    def test_accept_taken_order(self, place_order, advance, partner, make):
        order = advance(place_order(), "ready")

        response = make.client(make.partner()).put(
            f"{ORDERS_URL}{order.id}/accept-delivery/"
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_rate_delivered_order(
        self, customer_client, place_order, advance, order_service, partner, make
    ):
        order = advance(place_order(), "ready")
        order_service.transition(order.id, "picked_up", make.actor(partner))
        order_service.transition(order.id, "delivered", make.actor(partner))

        response = customer_client.put(
            f"{ORDERS_URL}{order.id}/rate/",
            {"overall": 5, "delivery": 4, "review": "Hot and fast"},
            format="json",
        )

        assert response.status_code == 200
        rating = response.json()["order"]["rating"]
        assert rating["overall"] == 5
        assert rating["review"] == "Hot and fast"

    def test_rating_out_of_range(self, customer_client, place_order):
        order = place_order()

        response = customer_client.put(
            f"{ORDERS_URL}{order.id}/rate/", {"overall": 6}, format="json"
        )

        assert response.status_code == 400
