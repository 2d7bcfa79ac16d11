from decimal import Decimal

from souq.models.user_models import UserRole, UserStatus

CODE = "K7M2P9QX4WZ8HN3R"
ADDRESS = {"street": "Baghdad St. 12", "city": "Damascus", "governorate": "Damascus"}


async def test_health(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["ok"] is True


async def test_redeem_returns_camel_case_envelope(client, customer, make_voucher, auth_headers):
    await make_voucher(CODE, value="10.00")

    response = await client.post("/vouchers/redeem", json={"code": CODE.lower()}, headers=auth_headers(customer))

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["data"]["creditedAmount"] == 10.0
    assert body["data"]["walletBalance"] == 10.0
    assert body["data"]["currency"] == "USD"
    assert "transactionId" in body["data"]

    wallet = await client.get("/vouchers/wallet", headers=auth_headers(customer))
    assert wallet.json()["data"] == {"walletBalance": 10.0, "walletCurrency": "USD"}

    history = await client.get("/vouchers/wallet/transactions", headers=auth_headers(customer))
    page = history.json()["data"]
    assert page["meta"]["total"] == 1
    assert page["items"][0]["type"] == "CREDIT"
    assert page["items"][0]["reason"] == "VOUCHER_REDEEM"


async def test_unknown_code_is_rejected(client, customer, auth_headers):
    response = await client.post("/vouchers/redeem", json={"code": "ABCDEF12"}, headers=auth_headers(customer))
    assert response.status_code == 400
    assert response.json() == {
        "ok": False,
        "error": {"code": "INVALID_CODE", "message": "Invalid voucher code"},
    }


async def test_short_code_is_a_validation_error(client, customer, auth_headers):
    response = await client.post("/vouchers/redeem", json={"code": "abc"}, headers=auth_headers(customer))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_sixth_failure_is_rate_limited(client, customer, auth_headers):
    headers = auth_headers(customer)
    for _ in range(5):
        response = await client.post("/vouchers/redeem", json={"code": "ABCDEF12"}, headers=headers)
        assert response.status_code == 400

    response = await client.post("/vouchers/redeem", json={"code": "ABCDEF12"}, headers=headers)
    assert response.status_code == 429
    error = response.json()["error"]
    assert error["code"] == "RATE_LIMITED"
    assert error["retryAfter"] == 600
    assert response.headers["Retry-After"] == "600"


async def test_missing_token_is_unauthorized(client):
    response = await client.post("/vouchers/redeem", json={"code": CODE})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


async def test_bad_token_is_unauthorized(client):
    response = await client.get("/vouchers/wallet", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_place_order(client, customer, make_seller, make_product, auth_headers):
    _, shop = await make_seller()
    product = await make_product(shop, price="33.33", quantity=3)

    response = await client.post("/orders", headers=auth_headers(customer), json={
        "items": [{"productId": product.id, "qty": 3}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert len(data["orders"]) == 1
    assert data["orders"][0]["total"] == 99.99
    assert data["orders"][0]["itemCount"] == 1

    mine = await client.get("/orders/me", headers=auth_headers(customer))
    [order] = mine.json()["data"]["items"]
    assert order["status"] == "PENDING"
    assert order["commissionTotal"] == 5.0


async def test_out_of_stock_order_error_envelope(client, customer, make_seller, make_product, auth_headers):
    _, shop = await make_seller()
    product = await make_product(shop, quantity=1)

    response = await client.post("/orders", headers=auth_headers(customer), json={
        "items": [{"productId": product.id, "qty": 2}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
    })
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INSUFFICIENT_STOCK"
    assert error["details"] == {"productId": product.id, "available": 1}


async def test_seller_cannot_place_orders(client, make_seller, make_product, auth_headers):
    seller_user, shop = await make_seller()
    product = await make_product(shop)

    response = await client.post("/orders", headers=auth_headers(seller_user), json={
        "items": [{"productId": product.id, "qty": 1}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
    })
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


async def test_seller_moves_order_forward(client, customer, make_seller, make_product, auth_headers):
    seller_user, shop = await make_seller()
    product = await make_product(shop)
    created = await client.post("/orders", headers=auth_headers(customer), json={
        "items": [{"productId": product.id, "qty": 1}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
    })
    order_id = created.json()["data"]["orders"][0]["id"]

    response = await client.patch(
        f"/seller/orders/{order_id}/status", json={"status": "CONFIRMED"}, headers=auth_headers(seller_user)
    )
    assert response.status_code == 200
    assert response.json()["data"]["previousStatus"] == "PENDING"
    assert response.json()["data"]["newStatus"] == "CONFIRMED"

    jump = await client.patch(
        f"/seller/orders/{order_id}/status", json={"status": "DELIVERED"}, headers=auth_headers(seller_user)
    )
    assert jump.status_code == 400
    assert jump.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"


async def test_public_product_listing(client, make_seller, make_product):
    _, shop = await make_seller()
    await make_product(shop, title="Damask rose water", score=2.0)
    await make_product(shop, title="Pinned brocade", pinned=True)

    response = await client.get("/products", params={"limit": 5})
    assert response.status_code == 200
    items = response.json()["data"]["items"]
    assert [i["title"] for i in items] == ["Pinned brocade", "Damask rose water"]
    assert items[0]["pinned"] is True
    assert "storeName" in items[0]


async def test_admin_generates_and_lists_vouchers(client, admin, customer, auth_headers):
    response = await client.post(
        "/admin/vouchers/generate", json={"count": 2, "value": "15.00"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    codes = response.json()["data"]["codes"]
    assert len(codes) == 2

    redeemed = await client.post("/vouchers/redeem", json={"code": codes[0]}, headers=auth_headers(customer))
    assert redeemed.json()["data"]["creditedAmount"] == 15.0

    listing = await client.get("/admin/vouchers", params={"status": "USED"}, headers=auth_headers(admin))
    [used] = listing.json()["data"]["items"]
    assert used["codeLast4"] == codes[0][-4:]
    assert used["usedByEmail"] == customer.email


async def test_admin_routes_reject_customers(client, customer, auth_headers):
    response = await client.get("/admin/settings", headers=auth_headers(customer))
    assert response.status_code == 403


async def test_admin_settings_roundtrip(client, admin, auth_headers):
    headers = auth_headers(admin)
    current = await client.get("/admin/settings", headers=headers)
    assert current.status_code == 200
    assert current.json()["data"]["globalCommissionRate"] == 0.05
    assert current.json()["data"]["freeMode"] is False

    updated = await client.patch("/admin/settings", headers=headers, json={
        "freeMode": True,
        "rankingWeights": {"w_stock": 0.5},
    })
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["freeMode"] is True
    assert data["rankingWeights"]["w_stock"] == 0.5
    assert data["rankingWeights"]["w_recency"] == 0.3


async def test_admin_recompute_and_explain(client, admin, make_seller, make_product, auth_headers):
    _, shop = await make_seller()
    product = await make_product(shop)

    recompute = await client.patch("/admin/ranking/recompute", headers=auth_headers(admin))
    assert recompute.status_code == 200
    assert recompute.json()["data"]["productsUpdated"] == 1

    explain = await client.get(f"/admin/ranking/explain/{product.id}", headers=auth_headers(admin))
    data = explain.json()["data"]
    assert abs(data["storedScore"] - data["finalScore"]) < 1e-3

    missing = await client.get("/admin/ranking/explain/9999", headers=auth_headers(admin))
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


async def test_suspended_user_is_refused(client, make_user, auth_headers):
    user = await make_user(UserRole.CUSTOMER, status=UserStatus.SUSPENDED, wallet_balance=Decimal("1.00"))
    response = await client.get("/vouchers/wallet", headers=auth_headers(user))
    assert response.status_code == 403


async def test_guest_checkout_endpoint(client, make_user, make_seller, make_product):
    _, shop = await make_seller()
    product = await make_product(shop, price="12.50", quantity=2)

    response = await client.post("/orders/guest", json={
        "items": [{"productId": product.id, "qty": 2}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
        "email": "walk.in@souq.test",
        "name": "Walk In",
    })
    assert response.status_code == 201
    [order] = response.json()["data"]["orders"]
    assert order["total"] == 25.0

    sold_out = await client.post("/orders/guest", json={
        "items": [{"productId": product.id, "qty": 1}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
        "email": "walk.in@souq.test",
    })
    assert sold_out.status_code == 400
    assert sold_out.json()["error"]["code"] == "INSUFFICIENT_STOCK"

    banned = await make_user(UserRole.CUSTOMER, status=UserStatus.BANNED)
    refused = await client.post("/orders/guest", json={
        "items": [{"productId": product.id, "qty": 1}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
        "email": banned.email,
    })
    assert refused.status_code == 403
    assert refused.json()["error"]["code"] == "ACCOUNT_INACTIVE"


async def test_admin_disable_twice_returns_domain_error(client, admin, make_voucher, auth_headers):
    voucher = await make_voucher(CODE)
    headers = auth_headers(admin)

    first = await client.post(f"/admin/vouchers/{voucher.id}/disable", headers=headers)
    assert first.status_code == 200

    second = await client.post(f"/admin/vouchers/{voucher.id}/disable", headers=headers)
    assert second.status_code == 400
    assert second.json()["error"]["code"] == "ALREADY_DISABLED"


async def test_unavailable_product_error_envelope(client, customer, auth_headers):
    response = await client.post("/orders", headers=auth_headers(customer), json={
        "items": [{"productId": 987654, "qty": 1}],
        "deliveryAddress": ADDRESS,
        "phone": "0933123456",
    })
    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"productIds": [987654]}
