import pytest


def _login(client, email, password="secret-pass"):
    response = client.post("/api/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


def _register(client, email, password="secret-pass"):
    response = client.post("/api/register", json={"email": email, "password": password})
    assert response.status_code == 201


@pytest.fixture
def operator(client):
    _register(client, "ops@ethernal.test")
    account = client.app.state.accounts.get_by_email("ops@ethernal.test")
    client.app.state.admin.set_admin_flag(account.id, True)
    return _login(client, "ops@ethernal.test")


@pytest.fixture
def buyer(client):
    _register(client, "buyer@ethernal.test")
    headers = _login(client, "buyer@ethernal.test")
    response = client.post(
        "/api/tickets/purchase",
        json={"event_id": "EventX", "seats": ["seat-1", "seat-2"], "total_price": 400},
        headers=headers,
    )
    assert response.status_code == 200
    return headers


def test_non_admin_is_forbidden(client, buyer):
    assert client.get("/api/admin/users", headers=buyer).status_code == 403
    assert client.post("/api/admin/tickets/reset", headers=buyer).status_code == 403


def test_list_users_and_tickets(client, operator, buyer):
    users = client.get("/api/admin/users", headers=operator)
    assert users.status_code == 200
    assert {u["email"] for u in users.json()} == {"ops@ethernal.test", "buyer@ethernal.test"}

    tickets = client.get("/api/admin/tickets", headers=operator)
    assert sorted(t["seat"] for t in tickets.json()) == ["seat-1", "seat-2"]


def test_revoke_frees_seat(client, operator, buyer):
    response = client.post(
        "/api/admin/tickets/revoke",
        json={"seat_ids": ["seat-1"]},
        headers=operator,
    )

    assert response.status_code == 200
    assert response.json()["removed"] == 1
    assert client.get("/api/tickets/sold/EventX").json() == ["seat-2"]


def test_reset_event_and_reset_all(client, operator, buyer):
    response = client.post(
        "/api/admin/tickets/reset-event",
        json={"event_id": "EventX"},
        headers=operator,
    )
    assert response.json()["removed"] == 2
    assert client.get("/api/tickets/sold").json() == []

    response = client.post("/api/admin/tickets/reset", headers=operator)
    assert response.json()["removed"] == 0


def test_balance_grant_and_adjust(client, operator, buyer):
    buyer_id = client.get("/api/me", headers=buyer).json()["id"]

    granted = client.post(
        "/api/admin/add-balance",
        json={"email": "buyer@ethernal.test", "amount": 250},
        headers=operator,
    )
    assert granted.json()["balance"] == 850

    adjusted = client.post(
        "/api/admin/adjust-balance",
        json={"account_id": buyer_id, "delta": -50, "reason": "chargeback"},
        headers=operator,
    )
    assert adjusted.json()["balance"] == 800

    overdraw = client.post(
        "/api/admin/adjust-balance",
        json={"account_id": buyer_id, "delta": -10_000},
        headers=operator,
    )
    assert overdraw.status_code == 402

    balance = client.get(f"/api/admin/balance/{buyer_id}", headers=operator)
    assert balance.json()["balance"] == 800

    missing = client.get("/api/admin/balance/nope", headers=operator)
    assert missing.status_code == 404


def test_change_password_and_set_admin(client, operator, buyer):
    changed = client.post(
        "/api/admin/change-password",
        json={"email": "buyer@ethernal.test", "new_password": "fresh-pass"},
        headers=operator,
    )
    assert changed.status_code == 200
    headers = _login(client, "buyer@ethernal.test", password="fresh-pass")

    promoted = client.post(
        "/api/admin/set-admin",
        json={"email": "buyer@ethernal.test", "is_admin": True},
        headers=operator,
    )
    assert promoted.status_code == 200
    assert client.get("/api/admin/users", headers=headers).status_code == 200
