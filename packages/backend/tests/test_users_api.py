"""User management API tests (admin only).

Learn: Every /auth/users route stacks require_admin on top of the token
check: no token → 401, valid non-admin token → 403. Mutations are
paired with the service lifecycle, which these tests observe through a
recording ServiceRegistry.
"""

import pytest
import pytest_asyncio

from conftest import login
from floodgate.services.lifecycle import ServiceRegistry

BOB = {"username": "bob", "password": "bob-password", "host": "10.0.0.2", "port": 5001}


class RecordingRegistry(ServiceRegistry):
    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, str]] = []

    async def create(self, user):
        self.calls.append(("create", user.username))
        await super().create(user)

    async def update(self, user):
        self.calls.append(("update", user.username))
        await super().update(user)

    async def destroy(self, user):
        self.calls.append(("destroy", user.username))
        await super().destroy(user)


@pytest_asyncio.fixture()
async def services():
    return RecordingRegistry()


@pytest_asyncio.fixture()
async def bob(client, admin_headers):
    r = await client.put("/api/v1/auth/users", json=BOB, headers=admin_headers)
    assert r.status_code == 201, r.text
    return r.json()


# ═══════════════════════════════════════════════════════════
# List / create
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_list_users(client, admin_headers, bob):
    r = await client.get("/api/v1/auth/users", headers=admin_headers)
    assert r.status_code == 200
    users = r.json()
    assert [u["username"] for u in users] == ["alice", "bob"]
    for user in users:
        assert "password" not in user
        assert "passwordHash" not in user
        assert "password_hash" not in user


@pytest.mark.asyncio
async def test_create_user(bob, services):
    assert bob == {
        "username": "bob",
        "isAdmin": False,
        "host": "10.0.0.2",
        "port": 5001,
        "socketPath": None,
    }
    assert ("create", "bob") in services.calls


@pytest.mark.asyncio
async def test_create_user_with_socket(client, admin_headers):
    r = await client.put(
        "/api/v1/auth/users",
        json={"username": "carol", "password": "pw", "socketPath": "/run/carol.sock"},
        headers=admin_headers,
    )
    assert r.status_code == 201
    assert r.json()["socketPath"] == "/run/carol.sock"
    assert r.json()["host"] is None


@pytest.mark.asyncio
async def test_create_duplicate(client, admin_headers, bob):
    r = await client.put("/api/v1/auth/users", json=BOB, headers=admin_headers)
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_create_rejects_unknown_fields(client, admin_headers):
    r = await client.put(
        "/api/v1/auth/users",
        json={**BOB, "role": "root"},
        headers=admin_headers,
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_new_user_can_login(client, bob):
    headers = await login(client, "bob", "bob-password")
    r = await client.get("/api/v1/auth/verify", headers=headers)
    assert r.json()["username"] == "bob"
    assert r.json()["isAdmin"] is False


# ═══════════════════════════════════════════════════════════
# Admin gate
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_users_requires_token(client, admin_headers):
    r = await client.get("/api/v1/auth/users")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_non_admin_forbidden(client, bob):
    headers = await login(client, "bob", "bob-password")
    assert (await client.get("/api/v1/auth/users", headers=headers)).status_code == 403
    r = await client.put(
        "/api/v1/auth/users",
        json={"username": "carol", "password": "pw", "host": "h", "port": 1},
        headers=headers,
    )
    assert r.status_code == 403
    r = await client.patch("/api/v1/auth/users/alice", json={"isAdmin": False}, headers=headers)
    assert r.status_code == 403
    r = await client.delete("/api/v1/auth/users/alice", headers=headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_promotion_takes_effect_immediately(client, admin_headers, bob):
    bob_headers = await login(client, "bob", "bob-password")
    r = await client.patch("/api/v1/auth/users/bob", json={"isAdmin": True}, headers=admin_headers)
    assert r.status_code == 200

    # Bob's existing token still says isAdmin=false; the directory wins.
    assert (await client.get("/api/v1/auth/users", headers=bob_headers)).status_code == 200


@pytest.mark.asyncio
async def test_demotion_takes_effect_immediately(client, admin_headers, bob):
    await client.patch("/api/v1/auth/users/bob", json={"isAdmin": True}, headers=admin_headers)
    bob_headers = await login(client, "bob", "bob-password")
    await client.patch("/api/v1/auth/users/bob", json={"isAdmin": False}, headers=admin_headers)
    assert (await client.get("/api/v1/auth/users", headers=bob_headers)).status_code == 403


# ═══════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_patch_switches_to_socket(client, admin_headers, bob, services):
    r = await client.patch(
        "/api/v1/auth/users/bob",
        json={"socketPath": "/run/bob.sock"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["socketPath"] == "/run/bob.sock"
    assert body["host"] is None
    assert body["port"] is None
    assert ("update", "bob") in services.calls
    assert services.get("bob").connection.path == "/run/bob.sock"


@pytest.mark.asyncio
async def test_patch_switches_to_network(client, admin_headers, bob):
    await client.patch(
        "/api/v1/auth/users/bob",
        json={"socketPath": "/run/bob.sock"},
        headers=admin_headers,
    )
    r = await client.patch(
        "/api/v1/auth/users/bob",
        json={"host": "10.0.0.9", "port": 5009},
        headers=admin_headers,
    )
    body = r.json()
    assert (body["host"], body["port"], body["socketPath"]) == ("10.0.0.9", 5009, None)


@pytest.mark.asyncio
async def test_patch_admin_flag_keeps_connection(client, admin_headers, bob):
    r = await client.patch("/api/v1/auth/users/bob", json={"isAdmin": True}, headers=admin_headers)
    body = r.json()
    assert body["isAdmin"] is True
    assert (body["host"], body["port"]) == ("10.0.0.2", 5001)


@pytest.mark.asyncio
async def test_patch_both_forms_rejected(client, admin_headers, bob):
    r = await client.patch(
        "/api/v1/auth/users/bob",
        json={"host": "h", "port": 1, "socketPath": "/s"},
        headers=admin_headers,
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_patch_bad_port_rejected(client, admin_headers, bob):
    r = await client.patch(
        "/api/v1/auth/users/bob",
        json={"host": "h", "port": 70000},
        headers=admin_headers,
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_patch_unknown_user(client, admin_headers):
    r = await client.patch("/api/v1/auth/users/nobody", json={"isAdmin": True}, headers=admin_headers)
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete_destroys_service_once(client, admin_headers, bob, services):
    """Deleting bob tears down bob's service, exactly once, and nobody else's."""
    r = await client.delete("/api/v1/auth/users/bob", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"deleted": True, "username": "bob"}

    destroyed = [name for op, name in services.calls if op == "destroy"]
    assert destroyed == ["bob"]
    assert "bob" not in services
    assert "alice" in services

    users = await client.get("/api/v1/auth/users", headers=admin_headers)
    assert [u["username"] for u in users.json()] == ["alice"]


@pytest.mark.asyncio
async def test_deleted_user_token_rejected(client, admin_headers, bob):
    bob_headers = await login(client, "bob", "bob-password")
    await client.delete("/api/v1/auth/users/bob", headers=admin_headers)
    r = await client.get("/api/v1/auth/verify", headers=bob_headers)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_delete_unknown_user(client, admin_headers):
    r = await client.delete("/api/v1/auth/users/nobody", headers=admin_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client, admin_headers, bob, services):
    r = await client.delete("/api/v1/auth/users/alice", headers=admin_headers)
    assert r.status_code == 409
    assert not [c for c in services.calls if c[0] == "destroy"]


@pytest.mark.asyncio
async def test_last_user_cannot_be_deleted(client, admin_headers, bob):
    """Bob (promoted) removes alice; nobody can then remove bob."""
    await client.patch("/api/v1/auth/users/bob", json={"isAdmin": True}, headers=admin_headers)
    bob_headers = await login(client, "bob", "bob-password")

    r = await client.delete("/api/v1/auth/users/alice", headers=bob_headers)
    assert r.status_code == 200
    r = await client.delete("/api/v1/auth/users/bob", headers=bob_headers)
    assert r.status_code == 409

    # Registration stays closed.
    assert (await client.get("/api/v1/auth/verify")).status_code == 401
