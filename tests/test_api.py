# tests/test_api.py

from decimal import Decimal

from httpx import AsyncClient

from app.models.user import UserStatus


TEST_PASSWORD = "secret123"


async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_register_client_with_referral_code(client: AsyncClient, auth_headers_for, referrer_user):
    # 1. Регистрация по коду приглашения
    response = await client.post("/api/register/client", json={
        "name": "New Client",
        "email": "New@Example.com",
        "password": "secret123",
        "referral_code": referrer_user.invitation_code.lower(),
    })
    assert response.status_code == 201
    data = response.json()
    user = data["user"]
    assert data["access_token"]
    assert user["email"] == "new@example.com"
    assert user["username"] == f"{user['id']}_Cliente"
    assert user["invitation_code"] == f"CL{user['id']:04d}"

    # 2. Пригласивший получил фиксированный бонус и уведомление
    headers = auth_headers_for(referrer_user)
    balance = (await client.get("/api/client/balance", headers=headers)).json()
    assert Decimal(balance["balance"]) == Decimal("1.00")
    assert (await client.get("/api/notifications/unread-count", headers=headers)).json() == {"count": 1}


async def test_register_duplicate_email(client: AsyncClient, client_user):
    response = await client.post("/api/register/client", json={
        "name": "Dup", "email": "ANA@example.com", "password": "secret123",
    })
    assert response.status_code == 400


async def test_register_merchant(client: AsyncClient):
    response = await client.post("/api/register/merchant", json={
        "name": "Shop Owner",
        "email": "owner@example.com",
        "password": "secret123",
        "store_name": "Corner Shop",
        "category": "grocery",
    })
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["type"] == "merchant"
    assert user["invitation_code"].startswith("LJ")
    assert user["username"].endswith("_Lojista")

    invite = await client.get(f"/api/invite/{user['invitation_code']}")
    assert invite.status_code == 200
    assert invite.json()["store"]["store_name"] == "Corner Shop"


async def test_login_and_me(client: AsyncClient, client_user):
    response = await client.post("/api/auth/login", json={"email": client_user.email, "password": TEST_PASSWORD})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == client_user.id


async def test_login_wrong_password(client: AsyncClient, client_user):
    response = await client.post("/api/auth/login", json={"email": client_user.email, "password": "nope123"})
    assert response.status_code == 401


async def test_inactive_user_is_forbidden(client: AsyncClient, auth_headers_for, db_session, client_user):
    headers = auth_headers_for(client_user)
    client_user.status = UserStatus.INACTIVE
    db_session.commit()

    assert (await client.get("/api/auth/me", headers=headers)).status_code == 403
    login = await client.post("/api/auth/login", json={"email": client_user.email, "password": TEST_PASSWORD})
    assert login.status_code == 403


async def test_invalid_token_is_401(client: AsyncClient):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


async def test_role_checks(client: AsyncClient, auth_headers_for, client_user, merchant_user, admin_user):
    client_headers = auth_headers_for(client_user)
    assert (await client.get("/api/merchant/sales", headers=client_headers)).status_code == 403
    assert (await client.get("/api/admin/settings/rates", headers=client_headers)).status_code == 403
    assert (await client.get("/api/admin/settings/rates", headers=auth_headers_for(merchant_user))).status_code == 403
    # Роль проверяется строго: у администратора нет доступа к разделам клиента и магазина
    admin_headers = auth_headers_for(admin_user)
    assert (await client.get("/api/client/balance", headers=admin_headers)).status_code == 403
    assert (await client.get("/api/merchant/sales", headers=admin_headers)).status_code == 403
    assert (await client.get("/api/client/balance", headers=auth_headers_for(merchant_user))).status_code == 403


async def test_admin_cannot_spend_through_client_routes(
    client: AsyncClient, auth_headers_for, admin_user, client_user, fund
):
    fund(admin_user, "10.00")
    response = await client.post("/api/client/transfers", headers=auth_headers_for(admin_user), json={
        "recipient_id": client_user.id, "amount": "5.00",
    })
    assert response.status_code == 403


async def test_sales_flow(client: AsyncClient, auth_headers_for, merchant_user, client_user, referrer_user):
    headers = auth_headers_for(merchant_user)

    # 1. Продажа с явным реферером
    response = await client.post("/api/merchant/sales", headers=headers, json={
        "customer_id": client_user.id,
        "items": [{"product_name": "Shoes", "quantity": 1, "price": "100.00"}],
        "payment_method": "credit_card",
        "referrer_id": referrer_user.id,
        "idempotency_key": "order-42",
    })
    assert response.status_code == 201
    sale = response.json()
    assert Decimal(sale["cashback_amount"]) == Decimal("2.00")
    assert Decimal(sale["distribution"]["total"]) == Decimal("7.00")

    # 2. Повтор с тем же ключом
    retry = await client.post("/api/merchant/sales", headers=headers, json={
        "customer_id": client_user.id,
        "manual_amount": "100.00",
        "payment_method": "credit_card",
        "idempotency_key": "order-42",
    })
    assert retry.json()["id"] == sale["id"]

    listing = (await client.get("/api/merchant/sales", headers=headers)).json()
    assert listing["total_items"] == 1

    # 3. Возврат, повторный переход запрещен, затем удаление
    refund = await client.put(f"/api/merchant/sales/{sale['id']}/status", headers=headers, json={"status": "refunded"})
    assert refund.status_code == 200
    again = await client.put(f"/api/merchant/sales/{sale['id']}/status", headers=headers, json={"status": "completed"})
    assert again.status_code == 400

    deleted = await client.delete(f"/api/merchant/sales/{sale['id']}", headers=headers)
    assert deleted.status_code == 204
    assert (await client.get(f"/api/merchant/sales/{sale['id']}", headers=headers)).status_code == 404

    client_balance = (await client.get("/api/client/balance", headers=auth_headers_for(client_user))).json()
    assert Decimal(client_balance["balance"]) == Decimal("0.00")
    assert Decimal(client_balance["total_earned"]) == Decimal("2.00")


async def test_sale_validation_error(client: AsyncClient, auth_headers_for, merchant_user, client_user):
    response = await client.post("/api/merchant/sales", headers=auth_headers_for(merchant_user), json={
        "customer_id": client_user.id,
        "payment_method": "cash",
    })
    assert response.status_code == 422


async def test_transfer_endpoint(client: AsyncClient, auth_headers_for, client_user, other_client, fund):
    fund(client_user, "10.00")
    headers = auth_headers_for(client_user)

    small = await client.post("/api/client/transfers", headers=headers, json={
        "recipient_id": other_client.id, "amount": "0.50",
    })
    assert small.status_code == 400

    ok = await client.post("/api/client/transfers", headers=headers, json={
        "recipient_email": other_client.email, "amount": "4.00", "description": "dinner",
    })
    assert ok.status_code == 201

    history = (await client.get("/api/client/transfers", headers=headers)).json()
    assert history["total_items"] == 1
    cashbacks = (await client.get("/api/client/cashbacks", headers=headers)).json()
    assert cashbacks["total_items"] == 2
    balance = (await client.get("/api/client/balance", headers=headers)).json()
    assert Decimal(balance["transferred_out"]) == Decimal("4.00")


async def test_qr_payment_endpoint(client: AsyncClient, auth_headers_for, merchant_user, client_user):
    qr = await client.post("/api/merchant/qrcode", headers=auth_headers_for(merchant_user), json={"amount": "20.00"})
    assert qr.status_code == 201
    code = qr.json()["code"]

    headers = auth_headers_for(client_user)
    paid = await client.post("/api/client/pay-qrcode", headers=headers, json={"code": code})
    assert paid.status_code == 201
    assert Decimal(paid.json()["amount"]) == Decimal("20.00")

    reused = await client.post("/api/client/pay-qrcode", headers=headers, json={"code": code})
    assert reused.status_code == 404


async def test_withdrawal_admin_flow(client: AsyncClient, auth_headers_for, merchant_user, admin_user, fund):
    fund(merchant_user, "100.00")
    response = await client.post("/api/merchant/withdrawal-requests", headers=auth_headers_for(merchant_user), json={
        "amount": "60.00",
        "full_name": "Mario Rossi",
        "store_name": "Mario's Store",
        "phone": "+15550001111",
        "email": "mario@example.com",
        "bank_name": "First Bank",
        "agency": "0001",
        "account": "123456-7",
        "payment_method": "zelle",
    })
    assert response.status_code == 201
    request_id = response.json()["id"]

    admin_headers = auth_headers_for(admin_user)
    pending = (await client.get("/api/admin/withdrawal-requests?status=pending", headers=admin_headers)).json()
    assert pending["total_items"] == 1

    approved = await client.patch(
        f"/api/admin/withdrawal-requests/{request_id}", headers=admin_headers, json={"status": "completed"}
    )
    assert approved.status_code == 200
    assert approved.json()["processed_by"] == admin_user.id

    twice = await client.patch(
        f"/api/admin/withdrawal-requests/{request_id}", headers=admin_headers, json={"status": "rejected"}
    )
    assert twice.status_code == 400

    balance = (await client.get("/api/merchant/balance", headers=auth_headers_for(merchant_user))).json()
    assert Decimal(balance["balance"]) == Decimal("40.00")


async def test_admin_rates(client: AsyncClient, auth_headers_for, admin_user):
    headers = auth_headers_for(admin_user)

    current = await client.get("/api/admin/settings/rates", headers=headers)
    assert current.status_code == 200
    assert Decimal(current.json()["client_cashback"]) == Decimal("2.0")

    bad = await client.patch("/api/admin/settings/rates", headers=headers, json={"client_cashback": "50"})
    assert bad.status_code == 400

    updated = await client.patch("/api/admin/settings/rates", headers=headers, json={"referral_bonus": "1.5"})
    assert updated.status_code == 200
    assert Decimal(updated.json()["referral_bonus"]) == Decimal("1.5")

    history = (await client.get("/api/admin/settings/rates/history", headers=headers)).json()
    assert history["total_items"] == 2


async def test_notifications_endpoints(client: AsyncClient, auth_headers_for, client_user, other_client, fund):
    fund(client_user, "10.00")
    await client.post("/api/client/transfers", headers=auth_headers_for(client_user), json={
        "recipient_id": other_client.id, "amount": "2.00",
    })

    headers = auth_headers_for(other_client)
    listing = (await client.get("/api/notifications", headers=headers)).json()
    assert listing["total_items"] == 1
    notification_id = listing["items"][0]["id"]

    read = await client.patch(f"/api/notifications/{notification_id}/read", headers=headers)
    assert read.status_code == 200
    assert read.json()["is_read"] is True

    assert (await client.patch("/api/notifications/mark-all-read", headers=headers)).status_code == 200
    assert (await client.delete(f"/api/notifications/{notification_id}", headers=headers)).status_code == 204
    assert (await client.delete(f"/api/notifications/{notification_id}", headers=headers)).status_code == 404
