"""Cart endpoints: add/update/remove/clear, price snapshots, totals."""


def test_add_same_product_twice_sums_quantity(client, as_user, add_product):
    add_product("p1", price=100)

    client.post("/cart", json={"productId": "p1", "quantity": 2})
    resp = client.post("/cart", json={"productId": "p1", "quantity": 3})

    assert resp.status_code == 200
    items = resp.json()["items"]
    assert len(items) == 1
    assert items[0]["productId"] == "p1"
    assert items[0]["quantity"] == 5
    assert items[0]["price"] == 100
    assert items[0]["product"]["name"] == "Product p1"


def test_cart_totals_match_checkout(client, as_user, add_product):
    add_product("p1", price=100)
    client.post("/cart", json={"productId": "p1", "quantity": 2})
    client.post("/cart", json={"productId": "p1", "quantity": 3})

    body = client.get("/cart/totals").json()

    assert body["totalQuantity"] == 5
    assert body["itemsPrice"] == 500
    assert body["taxPrice"] == 50
    assert body["shippingPrice"] == 0
    assert body["totalPrice"] == 550
    assert body["currency"] == "usd"
    assert body["amount"] == 55000


def test_add_refreshes_price_snapshot(client, db, as_user, add_product):
    add_product("p1", price=100)
    client.post("/cart", json={"productId": "p1", "quantity": 1})

    db.collection("products").document("p1").update({"price": 120})
    resp = client.post("/cart", json={"productId": "p1", "quantity": 1})

    assert resp.json()["items"][0]["price"] == 120
    assert db.docs("carts")["user-1"]["items"][0]["price"] == 120


def test_add_unknown_product_404(client, as_user):
    resp = client.post("/cart", json={"productId": "ghost", "quantity": 1})

    assert resp.status_code == 404
    assert resp.json() == {"message": "Product not found"}


def test_add_out_of_stock_400(client, db, as_user, add_product):
    add_product("p1", in_stock=False)

    resp = client.post("/cart", json={"productId": "p1", "quantity": 1})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Product is out of stock"
    assert "carts" not in db.store


def test_add_zero_quantity_400(client, db, as_user, add_product):
    add_product("p1")

    resp = client.post("/cart", json={"productId": "p1", "quantity": 0})

    assert resp.status_code == 400
    assert resp.json()["message"] == "Quantity must be at least 1"


def test_get_cart_without_document_is_empty(client, as_user):
    resp = client.get("/cart")

    assert resp.status_code == 200
    assert resp.json() == {"userId": "user-1", "items": []}


def test_update_quantity(client, as_user, add_product):
    add_product("p1", price=100)
    client.post("/cart", json={"productId": "p1", "quantity": 1})

    resp = client.put("/cart", json={"productId": "p1", "quantity": 4})

    assert resp.status_code == 200
    assert resp.json()["items"][0]["quantity"] == 4


def test_update_below_one_removes_line(client, as_user, add_product):
    add_product("p1")
    add_product("p2")
    client.post("/cart", json={"productId": "p1", "quantity": 1})
    client.post("/cart", json={"productId": "p2", "quantity": 1})

    resp = client.put("/cart", json={"productId": "p1", "quantity": 0})

    assert [it["productId"] for it in resp.json()["items"]] == ["p2"]


def test_update_without_cart_or_line_404(client, as_user, add_product):
    add_product("p1")
    add_product("p2")

    no_cart = client.put("/cart", json={"productId": "p1", "quantity": 2})
    assert no_cart.status_code == 404
    assert no_cart.json()["message"] == "Cart not found"

    client.post("/cart", json={"productId": "p1", "quantity": 1})
    no_line = client.put("/cart", json={"productId": "p2", "quantity": 2})
    assert no_line.status_code == 404
    assert no_line.json()["message"] == "Item not found in cart"


def test_remove_is_idempotent(client, as_user, add_product):
    add_product("p1")
    client.post("/cart", json={"productId": "p1", "quantity": 1})

    first = client.delete("/cart/p1")
    second = client.delete("/cart/p1")

    assert first.status_code == 200
    assert second.status_code == 200
    assert first.json()["items"] == []
    assert second.json() == first.json()


def test_remove_without_cart_returns_empty(client, db, as_user):
    resp = client.delete("/cart/p1")

    assert resp.status_code == 200
    assert resp.json()["items"] == []
    assert "user-1" not in db.store.get("carts", {})


def test_clear_keeps_document(client, db, as_user, add_product):
    add_product("p1")
    client.post("/cart", json={"productId": "p1", "quantity": 2})

    resp = client.delete("/cart")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Cart cleared successfully"}
    assert db.docs("carts")["user-1"]["items"] == []


def test_clear_without_cart_404(client, as_user):
    resp = client.delete("/cart")

    assert resp.status_code == 404
    assert resp.json()["message"] == "Cart not found"


def test_carts_are_per_user(client, login, add_product):
    add_product("p1")
    login(uid="alice")
    client.post("/cart", json={"productId": "p1", "quantity": 1})

    login(uid="bob")
    assert client.get("/cart").json()["items"] == []


def test_guest_may_use_cart(client, login, add_product):
    add_product("p1")
    login(uid="anon-1", role="guest", email=None, name=None)

    resp = client.post("/cart", json={"productId": "p1", "quantity": 1})

    assert resp.status_code == 200


def test_cart_requires_authentication(client):
    resp = client.get("/cart")

    assert resp.status_code == 401
    assert resp.json() == {"message": "Missing Authorization header."}
