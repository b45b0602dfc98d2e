from orderdesk import models


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def place_order(client, token, number, **extra):
    data = {"orderNumber": number, "orderType": "pickup"}
    data.update(extra)
    r = client.post("/api/orders", data=data, headers=auth(token))
    assert r.status_code == 201, r.text


def test_admin_routes_require_token(client):
    assert client.get("/api/admin/users").status_code == 401
    assert client.get("/api/admin/orders").status_code == 401
    assert client.delete("/api/admin/orders/1").status_code == 401


def test_non_admin_is_forbidden_not_unauthorized(client, user_token):
    for method, path in (
        ("GET", "/api/admin/users"),
        ("GET", "/api/admin/orders"),
        ("DELETE", "/api/admin/orders/1"),
    ):
        r = client.request(method, path, headers=auth(user_token))
        assert r.status_code == 403
        assert r.json()["message"] == "Forbidden: Admins only."


def test_admin_login_reports_role(client, admin_token):
    r = client.post("/api/login", json={"email": "boss@x.com", "password": "adminpass"})
    assert r.json()["role"] == "admin"


def test_admin_lists_users_without_password(client, register, admin_token):
    register(email="first@x.com", name="First")
    register(email="second@x.com", name="Second")

    r = client.get("/api/admin/users", headers=auth(admin_token))
    assert r.status_code == 200
    users = r.json()
    # newest first
    assert [u["email"] for u in users] == ["second@x.com", "first@x.com", "boss@x.com"]
    for u in users:
        assert "password" not in u
        assert "password_hash" not in u
        assert u["created_at"]
    assert users[0]["phone"] == "555"
    assert users[0]["user_class"] == "C1"
    assert users[0]["role"] == "user"


def test_admin_lists_orders_newest_first(client, user_token, admin_token):
    place_order(client, user_token, "O1", total="1.00")
    place_order(client, user_token, "O2", items='["x"]', paymentMethod="cash")

    r = client.get("/api/admin/orders", headers=auth(admin_token))
    assert r.status_code == 200
    orders = r.json()
    assert [o["order_number"] for o in orders] == ["O2", "O1"]
    assert orders[0]["customer_name"] == "A"
    assert orders[0]["order_details"] == '["x"]'
    assert orders[0]["payment_method"] == "cash"
    assert orders[1]["total_amount"] == "1.00"


def test_delete_order_then_repeat_is_not_found(client, user_token, admin_token, db_session):
    place_order(client, user_token, "KEEP")
    place_order(client, user_token, "DROP")
    drop_id = db_session.query(models.Order).filter(models.Order.order_number == "DROP").one().id

    r = client.delete(f"/api/admin/orders/{drop_id}", headers=auth(admin_token))
    assert r.status_code == 200
    assert r.json() == {"message": "Order deleted successfully."}

    remaining = [o["order_number"] for o in client.get("/api/admin/orders", headers=auth(admin_token)).json()]
    assert remaining == ["KEEP"]

    r = client.delete(f"/api/admin/orders/{drop_id}", headers=auth(admin_token))
    assert r.status_code == 404
    assert r.json()["message"] == "Order not found."


def test_delete_unknown_order(client, admin_token):
    r = client.delete("/api/admin/orders/999999", headers=auth(admin_token))
    assert r.status_code == 404
    assert r.json()["code"] == "NOT_FOUND"


def test_deleting_order_keeps_receipt_file(client, user_token, admin_token, db_session):
    r = client.post(
        "/api/orders",
        data={"orderNumber": "R1", "orderType": "pickup"},
        files={"receipt": ("r.jpg", b"jpeg", "image/jpeg")},
        headers=auth(user_token),
    )
    assert r.status_code == 201
    order = db_session.query(models.Order).one()
    public_path = order.notes.split("[Receipt: ")[1].rstrip("]")

    assert client.delete(f"/api/admin/orders/{order.id}", headers=auth(admin_token)).status_code == 200
    assert client.get(public_path).status_code == 200
