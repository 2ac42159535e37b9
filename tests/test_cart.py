import pytest
from bson import ObjectId


@pytest.fixture
def widget(seed_product):
    return seed_product("M-100", name="Widget", price=10.0, stock=3)


def stock_of(db, product):
    return db["product"].find_one({"_id": product["_id"]})["stock"]


def add(client, headers, product, quantity=1):
    return client.post(
        "/api/cart/add", json={"productId": str(product["_id"]), "quantity": quantity}, headers=headers
    )


def test_cart_requires_login(client):
    assert client.get("/api/cart").status_code == 401


def test_empty_cart(client, user_headers):
    res = client.get("/api/cart", headers=user_headers)
    assert res.status_code == 200
    assert res.json() == {"message": "Cart is empty"}


def test_add_decrements_stock_and_creates_cart(client, db, user_headers, widget):
    res = add(client, user_headers, widget, 2)
    assert res.status_code == 200
    cart = res.json()["cart"]
    (line,) = cart["items"]
    assert line["quantity"] == 2
    assert line["name"] == "Widget"
    assert line["price"] == 10.0
    assert line["product"] == {"id": str(widget["_id"]), "name": "Widget", "price": 10.0, "stock": 1, "isActive": True}
    assert cart["totalPrice"] == 20.0
    assert cart["status"] == "active"
    assert stock_of(db, widget) == 1


def test_add_merges_line_and_refreshes_snapshot(client, db, user_headers, widget):
    add(client, user_headers, widget, 1)
    db["product"].update_one({"_id": widget["_id"]}, {"$set": {"price": 12.5, "name": "Widget v2"}})
    res = add(client, user_headers, widget, 1)
    (line,) = res.json()["cart"]["items"]
    assert line["quantity"] == 2
    assert line["price"] == 12.5
    assert line["name"] == "Widget v2"
    assert res.json()["cart"]["totalPrice"] == 25.0
    assert db["cart"].count_documents({}) == 1


def test_add_more_than_stock(client, db, user_headers, widget):
    res = add(client, user_headers, widget, 5)
    assert res.status_code == 400
    assert stock_of(db, widget) == 3
    assert db["cart"].count_documents({}) == 0


def test_add_inactive_or_missing_product(client, user_headers, seed_product):
    hidden = seed_product("M-200", isActive=False)
    assert add(client, user_headers, hidden).status_code == 404
    assert add(client, user_headers, {"_id": ObjectId()}).status_code == 404
    res = client.post("/api/cart/add", json={"productId": "bogus"}, headers=user_headers)
    assert res.status_code == 400


def test_add_rejects_zero_quantity(client, user_headers, widget):
    assert add(client, user_headers, widget, 0).status_code == 422


def test_update_applies_delta(client, db, user_headers, widget):
    add(client, user_headers, widget, 1)
    res = client.put("/api/cart/update", json={"productId": str(widget["_id"]), "quantity": 3}, headers=user_headers)
    assert res.status_code == 200
    assert res.json()["cart"]["items"][0]["quantity"] == 3
    assert stock_of(db, widget) == 0

    res = client.put("/api/cart/update", json={"productId": str(widget["_id"]), "quantity": 1}, headers=user_headers)
    assert res.json()["cart"]["items"][0]["quantity"] == 1
    assert stock_of(db, widget) == 2


def test_update_beyond_stock(client, db, user_headers, widget):
    add(client, user_headers, widget, 1)
    res = client.put("/api/cart/update", json={"productId": str(widget["_id"]), "quantity": 4}, headers=user_headers)
    assert res.status_code == 400
    assert stock_of(db, widget) == 2


def test_update_without_cart_or_line(client, user_headers, widget, seed_product):
    body = {"productId": str(widget["_id"]), "quantity": 1}
    assert client.put("/api/cart/update", json=body, headers=user_headers).status_code == 404
    other = seed_product("M-300")
    add(client, user_headers, other, 1)
    assert client.put("/api/cart/update", json=body, headers=user_headers).status_code == 404


def test_remove_restores_stock_and_drops_empty_cart(client, db, user_headers, widget):
    add(client, user_headers, widget, 2)
    res = client.request("DELETE", "/api/cart/remove", json={"productId": str(widget["_id"])}, headers=user_headers)
    assert res.status_code == 200
    assert "cart" not in res.json()
    assert stock_of(db, widget) == 3
    assert db["cart"].count_documents({}) == 0


def test_remove_keeps_other_lines(client, db, user_headers, widget, seed_product):
    gadget = seed_product("M-300", name="Gadget", price=4.0, stock=5)
    add(client, user_headers, widget, 1)
    add(client, user_headers, gadget, 2)
    res = client.request("DELETE", "/api/cart/remove", json={"productId": str(widget["_id"])}, headers=user_headers)
    cart = res.json()["cart"]
    assert [line["name"] for line in cart["items"]] == ["Gadget"]
    assert cart["totalPrice"] == 8.0


def test_remove_unknown_line(client, user_headers, widget):
    res = client.request("DELETE", "/api/cart/remove", json={"productId": str(widget["_id"])}, headers=user_headers)
    assert res.status_code == 404


def test_clear_restores_every_line(client, db, user_headers, widget, seed_product):
    gadget = seed_product("M-300", stock=5)
    add(client, user_headers, widget, 3)
    add(client, user_headers, gadget, 4)
    res = client.delete("/api/cart/clear", headers=user_headers)
    assert res.json() == {"message": "Cart cleared"}
    assert stock_of(db, widget) == 3
    assert stock_of(db, gadget) == 5
    assert client.get("/api/cart", headers=user_headers).json() == {"message": "Cart is empty"}
    assert client.delete("/api/cart/clear", headers=user_headers).json() == {"message": "Cart is already empty"}


def test_carts_are_per_user(client, register, user_headers, widget):
    add(client, user_headers, widget, 1)
    _, other_token = register(2)
    res = client.get("/api/cart", headers={"Authorization": f"Bearer {other_token}"})
    assert res.json() == {"message": "Cart is empty"}


def test_line_shows_deleted_product_as_null(client, db, user_headers, widget):
    add(client, user_headers, widget, 1)
    db["product"].delete_one({"_id": widget["_id"]})
    (line,) = client.get("/api/cart", headers=user_headers).json()["cart"]["items"]
    assert line["product"] is None
