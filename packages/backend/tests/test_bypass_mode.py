"""Bypass mode tests — users and auth disabled.

Learn: with `disable_users_and_auth` every request is the config
pseudo-user, an admin. There is nothing to manage, so register and the
user routes answer 404 instead of pretending to work.
"""

import pytest

from floodgate.services.user_directory import CONFIG_USERNAME


@pytest.mark.asyncio
async def test_verify_without_token(bypass_client):
    r = await bypass_client.get("/api/v1/auth/verify")
    assert r.status_code == 200
    body = r.json()
    assert body["initialUser"] is False
    assert body["username"] == CONFIG_USERNAME
    assert body["isAdmin"] is True
    assert r.headers.get("set-cookie", "").startswith("jwt=")


@pytest.mark.asyncio
async def test_authenticate_without_credentials(bypass_client):
    r = await bypass_client.post("/api/v1/auth/authenticate", json={})
    assert r.status_code == 200
    assert r.json()["username"] == CONFIG_USERNAME
    assert r.json()["isAdmin"] is True


@pytest.mark.asyncio
async def test_register_not_found(bypass_client):
    r = await bypass_client.post(
        "/api/v1/auth/register",
        json={"username": "alice", "password": "pw1", "host": "localhost", "port": 5000},
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_user_routes_not_found(bypass_client):
    assert (await bypass_client.get("/api/v1/auth/users")).status_code == 404
    r = await bypass_client.put(
        "/api/v1/auth/users",
        json={"username": "bob", "password": "pw", "host": "h", "port": 1},
    )
    assert r.status_code == 404
    r = await bypass_client.patch("/api/v1/auth/users/bob", json={"isAdmin": True})
    assert r.status_code == 404
    assert (await bypass_client.delete("/api/v1/auth/users/bob")).status_code == 404


@pytest.mark.asyncio
async def test_settings_without_token(bypass_client):
    r = await bypass_client.patch("/api/v1/settings", json={"id": "language", "data": "en"})
    assert r.status_code == 200
    r = await bypass_client.get("/api/v1/settings")
    assert r.json() == {"language": "en"}


@pytest.mark.asyncio
async def test_settings_belong_to_config_user(bypass_client, settings_store):
    await bypass_client.patch("/api/v1/settings", json={"id": "language", "data": "en"})
    assert settings_store.manager.is_open(CONFIG_USERNAME)


@pytest.mark.asyncio
async def test_garbage_token_ignored(bypass_client):
    r = await bypass_client.get(
        "/api/v1/auth/verify",
        headers={"Authorization": "Bearer garbage"},
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_logout(bypass_client):
    r = await bypass_client.get("/api/v1/auth/logout")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_register_not_found_before_validation(bypass_client):
    """Register doesn't exist in bypass mode, even for a malformed body."""
    r = await bypass_client.post("/api/v1/auth/register", json={"username": 123})
    assert r.status_code == 404
    r = await bypass_client.post("/api/v1/auth/register", json={})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_user_mutations_not_found_before_validation(bypass_client):
    r = await bypass_client.put("/api/v1/auth/users", json={"bogus": True})
    assert r.status_code == 404
    r = await bypass_client.patch("/api/v1/auth/users/bob", json={"port": "nope"})
    assert r.status_code == 404
