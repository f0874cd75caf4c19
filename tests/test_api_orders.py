import pytest


@pytest.fixture
def marketplace(client, register, auth_header):
    farmer = register("farmer", farmName="Green Valley")
    customer = register()
    product = client.post(
        "/products",
        json={
            "name": "Tomatoes",
            "price": 5.0,
            "unit": "kg",
            "minimumOrderQuantity": 1,
            "maxAvailableQuantity": 10,
        },
        headers=auth_header(farmer),
    )
    assert product.status_code == 201, product.text
    return farmer, customer, product.json()


def test_order_scenario(client, register, auth_header, marketplace):
    farmer, customer, product = marketplace

    created = client.post(
        "/orders",
        json={"items": [{"productId": product["id"], "quantity": 2}], "notes": "Morning delivery"},
        headers=auth_header(customer),
    )
    assert created.status_code == 201
    order = created.json()
    assert order["totalPrice"] == pytest.approx(10.0)
    assert order["status"] == "PROCESSING"
    assert order["items"][0]["farmName"] == "Green Valley"
    assert order["items"][0]["lineTotal"] == pytest.approx(10.0)

    accepted = client.put(f"/orders/{order['id']}/accept", headers=auth_header(farmer))
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "CONFIRMED"

    again = client.put(f"/orders/{order['id']}/accept", headers=auth_header(farmer))
    assert again.status_code == 400
    assert again.json()["status"] == 400

    stranger = register()
    assert client.get(f"/orders/{order['id']}", headers=auth_header(stranger)).status_code == 403
    assert client.get(f"/orders/{order['id']}", headers=auth_header(farmer)).status_code == 200
    assert client.get("/orders/999", headers=auth_header(customer)).status_code == 404


def test_role_gates(client, auth_header, marketplace):
    farmer, customer, product = marketplace
    payload = {"items": [{"productId": product["id"], "quantity": 1}]}

    assert client.post("/orders", json=payload, headers=auth_header(farmer)).status_code == 403
    assert client.post("/orders", json=payload).status_code == 401

    order = client.post("/orders", json=payload, headers=auth_header(customer)).json()
    assert client.put(f"/orders/{order['id']}/reject", headers=auth_header(customer)).status_code == 403
    assert client.get("/orders/farmer-orders", headers=auth_header(customer)).status_code == 403


def test_invalid_orders(client, auth_header, marketplace):
    _, customer, product = marketplace

    empty = client.post("/orders", json={"items": []}, headers=auth_header(customer))
    too_many = client.post(
        "/orders", json={"items": [{"productId": product["id"], "quantity": 11}]}, headers=auth_header(customer)
    )
    unknown = client.post(
        "/orders", json={"items": [{"productId": 12345, "quantity": 1}]}, headers=auth_header(customer)
    )
    negative = client.post(
        "/orders", json={"items": [{"productId": product["id"], "quantity": -1}]}, headers=auth_header(customer)
    )

    assert empty.status_code == 400
    assert too_many.status_code == 400
    assert unknown.status_code == 404
    assert negative.status_code == 400
    assert "items.0.quantity" in negative.json()["validationErrors"]


def test_order_listings(client, auth_header, marketplace):
    farmer, customer, product = marketplace
    for quantity in (1, 2, 3):
        client.post(
            "/orders",
            json={"items": [{"productId": product["id"], "quantity": quantity}]},
            headers=auth_header(customer),
        )

    mine = client.get("/orders/my-orders", params={"page": 0, "size": 2}, headers=auth_header(customer)).json()
    assert mine["totalElements"] == 3
    assert mine["totalPages"] == 2
    assert [o["totalPrice"] for o in mine["items"]] == [pytest.approx(15.0), pytest.approx(10.0)]

    farmer_view = client.get("/orders/farmer-orders", headers=auth_header(farmer)).json()
    assert farmer_view["totalElements"] == 3


def test_price_change_does_not_touch_orders(client, auth_header, marketplace):
    farmer, customer, product = marketplace
    order = client.post(
        "/orders", json={"items": [{"productId": product["id"], "quantity": 2}]}, headers=auth_header(customer)
    ).json()

    updated = client.patch(f"/products/{product['id']}", json={"price": 7.5}, headers=auth_header(farmer))
    assert updated.status_code == 200
    assert updated.json()["price"] == pytest.approx(7.5)

    reloaded = client.get(f"/orders/{order['id']}", headers=auth_header(customer)).json()
    assert reloaded["totalPrice"] == pytest.approx(10.0)
    assert reloaded["items"][0]["price"] == pytest.approx(5.0)
