"""
Testy integracyjne routerow: role, kody HTTP, aliasy camelCase.
"""
from fastapi import status

from conftest import ADMIN_ID, CUSTOMER_ID, OTHER_VENDOR_ID, VENDOR_ID, auth

ADMIN = auth(ADMIN_ID, "admin")
VENDOR = auth(VENDOR_ID, "vendor")
OTHER_VENDOR = auth(OTHER_VENDOR_ID, "vendor")
CUSTOMER = auth(CUSTOMER_ID, "user")
COURIER = auth(10, "livreur")

ORDER_BODY = {
    "vendorId": VENDOR_ID,
    "items": [{"productId": 1, "title": "Clavier", "price": "20.00", "quantity": 2}],
    "shippingAddress": {"street": "5 Avenue Habib Bourguiba", "city": "Tunis", "postalCode": "1001"},
    "shippingCost": "7",
    "paymentMethod": "cash_on_delivery",
}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_identity_is_401(client):
    assert client.get("/orders/1").status_code == status.HTTP_401_UNAUTHORIZED
    bad = client.get("/orders/1", headers={"X-User-Id": "abc", "X-User-Role": "user"})
    assert bad.status_code == status.HTTP_401_UNAUTHORIZED
    bad = client.get("/orders/1", headers={"X-User-Id": "3", "X-User-Role": "pirate"})
    assert bad.status_code == status.HTTP_401_UNAUTHORIZED


def test_customer_checkout_and_read(client):
    created = client.post("/orders/", json=ORDER_BODY, headers=CUSTOMER)
    assert created.status_code == status.HTTP_201_CREATED
    body = created.json()
    assert body["status"] == "pending"
    assert body["total_amount"] == "47.00"

    order_id = body["id"]
    assert client.get(f"/orders/{order_id}", headers=CUSTOMER).status_code == 200
    assert client.get(f"/orders/{order_id}", headers=auth(99, "user")).status_code == 403
    assert client.get("/orders/4242", headers=ADMIN).status_code == 404


def test_only_customers_checkout(client):
    assert client.post("/orders/", json=ORDER_BODY, headers=VENDOR).status_code == 403


def test_invalid_body_is_422(client):
    body = dict(ORDER_BODY, items=[])
    assert client.post("/orders/", json=body, headers=CUSTOMER).status_code == 422


def test_vendor_flow_over_http(client, make_order):
    order = make_order()
    assert client.put(f"/vendor/orders/{order.id}/ship", json={}, headers=VENDOR).status_code == 400
    assert client.put(f"/vendor/orders/{order.id}/confirm", headers=OTHER_VENDOR).status_code == 404
    assert client.put(f"/vendor/orders/{order.id}/confirm", headers=CUSTOMER).status_code == 403

    assert client.put(f"/vendor/orders/{order.id}/confirm", headers=VENDOR).status_code == 200
    assert client.put(f"/vendor/orders/{order.id}/process", headers=VENDOR).status_code == 200
    shipped = client.put(
        f"/vendor/orders/{order.id}/ship",
        json={"carrier": "Aramex", "trackingNumber": "T-1"},
        headers=VENDOR,
    )
    assert shipped.status_code == 200
    assert shipped.json()["status"] == "ready_to_ship"
    assert shipped.json()["tracking_number"] == "T-1"

    listing = client.get("/vendor/orders", params={"status": "ready_to_ship"}, headers=VENDOR).json()
    assert listing["pagination"]["total"] == 1
    assert "user_id" not in listing["orders"][0]


def test_assignment_and_delivery_over_http(client, make_order, make_livreur):
    order = make_order(status="ready_to_ship")
    make_livreur(10, rating=4.0)
    make_livreur(11, rating=4.8)

    ready = client.get("/assignment/orders/ready", params={"city": "tunis"}, headers=ADMIN).json()
    assert [o["id"] for o in ready["orders"]] == [order.id]

    couriers = client.get("/assignment/livreurs", params={"city": "Tunis"}, headers=VENDOR).json()
    assert couriers["total"] == 2

    assigned = client.put(f"/assignment/orders/{order.id}/assign", json={"livreurId": 10}, headers=ADMIN)
    assert assigned.status_code == 200
    assert assigned.json()["livreur"]["livreur_id"] == 10

    # ponowne przypisanie - zamowienie juz nie jest ready_to_ship
    again = client.put(f"/assignment/orders/{order.id}/assign", json={"livreurId": 11}, headers=ADMIN)
    assert again.status_code == 400
    assert "assigned_to_delivery" in again.json()["detail"]

    # obcy kurier
    wrong = client.put(f"/livreur/orders/{order.id}/status", json={"status": "picked_up"}, headers=auth(11, "livreur"))
    assert wrong.status_code == 403

    for step in ("picked_up", "out_for_delivery"):
        resp = client.put(f"/livreur/orders/{order.id}/status", json={"status": step}, headers=COURIER)
        assert resp.status_code == 200

    delivered = client.put(
        f"/livreur/orders/{order.id}/status",
        json={"status": "delivered", "signature": "AB", "location": {"lat": 36.8, "lng": 10.18}},
        headers=COURIER,
    )
    assert delivered.status_code == 200
    assert delivered.json()["delivery_proof"]["signature"] == "AB"

    board = client.get("/livreur/dashboard", headers=COURIER).json()
    assert board["today_stats"]["delivered"] == 1
    assert board["livreur"]["current_order_ids"] == []

    history = client.get("/livreur/history", headers=COURIER).json()
    assert history["orders"][0]["status"] == "delivered"


def test_auto_assign_and_unassign_over_http(client, make_order, make_livreur):
    order = make_order(status="ready_to_ship", city="Sfax")
    make_livreur(10, zone="Tunis")

    missing = client.post(f"/assignment/orders/{order.id}/auto-assign", headers=ADMIN)
    assert missing.status_code == 404
    assert "Sfax" in missing.json()["detail"]

    make_livreur(11, zone="Sfax")
    auto = client.post(f"/assignment/orders/{order.id}/auto-assign", headers=ADMIN)
    assert auto.status_code == 200
    assert auto.json()["livreur"]["livreur_id"] == 11

    forbidden = client.put(f"/assignment/orders/{order.id}/unassign", json={"reason": "x"}, headers=VENDOR)
    assert forbidden.status_code == 403

    reverted = client.put(f"/assignment/orders/{order.id}/unassign", json={"reason": "panne"}, headers=ADMIN)
    assert reverted.status_code == 200
    assert reverted.json()["order"]["status"] == "ready_to_ship"
    assert reverted.json()["previous_livreur_id"] == 11


def test_held_lock_is_409(client, lock_service, make_order, make_livreur):
    order = make_order(status="ready_to_ship")
    make_livreur(10)
    lock_service.locks[order.id] = "other"
    resp = client.put(f"/assignment/orders/{order.id}/assign", json={"livreurId": 10}, headers=ADMIN)
    assert resp.status_code == status.HTTP_409_CONFLICT


def test_scan_over_http(client, make_order, make_livreur):
    make_livreur(10)
    order = make_order(status="ready_to_ship")
    resp = client.get(f"/livreur/scan/{order.delivery_code}", headers=COURIER)
    assert resp.status_code == 200
    assert resp.json()["order_number"] == order.order_number
    assert client.get("/livreur/scan/LIV-XXXXXX", headers=COURIER).status_code == 404
    assert client.get(f"/livreur/scan/{order.delivery_code}", headers=CUSTOMER).status_code == 403


def test_courier_registry_over_http(client, make_user):
    make_user(20, name="Nour", role="livreur")
    body = {"userId": 20, "zone": "Sousse", "vehicleType": "voiture", "maxOrdersAtOnce": 3}

    assert client.post("/livreurs/", json=body, headers=VENDOR).status_code == 403
    created = client.post("/livreurs/", json=body, headers=ADMIN)
    assert created.status_code == 201
    assert created.json()["status"] == "pending"
    assert created.json()["max_orders_at_once"] == 3

    approved = client.put("/livreurs/20/status", json={"status": "approved"}, headers=ADMIN)
    assert approved.json()["status"] == "approved"
    assert client.put("/livreurs/77/status", json={"status": "approved"}, headers=ADMIN).status_code == 404

    off = client.put("/livreur/availability", json={"isAvailable": False}, headers=auth(20, "livreur"))
    assert off.json()["is_available"] is False


def test_cancel_and_refund_over_http(client, make_order):
    order = make_order(status="processing")
    assert client.put(f"/orders/{order.id}/refund", json={}, headers=CUSTOMER).status_code == 403

    cancelled = client.put(f"/orders/{order.id}/cancel", json={"reason": "erreur"}, headers=CUSTOMER)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = client.put(f"/orders/{order.id}/cancel", json={}, headers=CUSTOMER)
    assert again.status_code == 400

    refunded = client.put(f"/orders/{order.id}/refund", json={"amount": "12.5"}, headers=ADMIN)
    assert refunded.status_code == 200
    assert refunded.json()["refund_amount"] == "12.50"


def test_refund_and_discount_ceilings_over_http(client, make_order):
    order = make_order(status="confirmed")
    resp = client.put(f"/orders/{order.id}/refund", json={"amount": "999999"}, headers=ADMIN)
    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    assert "47.00" in resp.json()["detail"]

    body = dict(ORDER_BODY, discount="500")
    assert client.post("/orders/", json=body, headers=CUSTOMER).status_code == status.HTTP_400_BAD_REQUEST


def test_users_directory(client):
    payload = {"id": 30, "name": "Salma", "role": "vendor", "email": "s@example.com"}
    assert client.post("/users/", json=payload).json()["role"] == "vendor"
    assert client.get("/users/30").json()["name"] == "Salma"
    assert client.get("/users/31").status_code == 404
