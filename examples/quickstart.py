#!/usr/bin/env python3
"""
Floodgate Quickstart — the whole gateway in one script.

Bootstraps (or logs in) an admin → creates a user → logs in as them →
saves and reads settings → cleans up.
Run with: python examples/quickstart.py

Requires: pip install -e ".[examples]"  (httpx)
Backend must be running: floodgate serve (http://localhost:3000)
"""

import sys
import uuid

import httpx

from _common import BASE, create_client


def main():
    run_id = uuid.uuid4().hex[:6]
    admin = create_client()

    # ── Who am I ──────────────────────────────────────────────────
    print("\n1. Verifying session...")
    me = admin.get("/auth/verify").json()
    print(f"   Signed in as {me['username']} (admin={me['isAdmin']})")

    # ── Create a regular user ─────────────────────────────────────
    username = f"demo-{run_id}"
    print(f"\n2. Creating user {username}...")
    resp = admin.put("/auth/users", json={
        "username": username,
        "password": "demo-user-password",
        "socketPath": f"/tmp/{username}.sock",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   Connection: unix:{resp.json()['socketPath']}")

    # ── Switch them to a network client ───────────────────────────
    print("\n3. Moving user to host/port...")
    resp = admin.patch(f"/auth/users/{username}", json={"host": "127.0.0.1", "port": 5001})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    user = resp.json()
    print(f"   Connection: {user['host']}:{user['port']} (socketPath={user['socketPath']})")

    # ── Log in as the user ────────────────────────────────────────
    print("\n4. Logging in as the new user...")
    resp = httpx.post(f"{BASE}/auth/authenticate", json={
        "username": username,
        "password": "demo-user-password",
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    user_client = httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": resp.json()["token"]},
    )
    print("   ✓")

    # ── Non-admins can't manage users ─────────────────────────────
    resp = user_client.get("/auth/users")
    print(f"   GET /auth/users as user → {resp.status_code}")

    # ── Settings ──────────────────────────────────────────────────
    print("\n5. Saving settings...")
    resp = user_client.patch("/settings", json=[
        {"id": "language", "data": "en"},
        {"id": "sortTorrents", "data": {"property": "downloadRate", "direction": "desc"}},
    ])
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Updated: {', '.join(resp.json()['updated'])}")

    print("\n6. Reading settings back...")
    settings = user_client.get("/settings").json()
    for key, value in settings.items():
        print(f"   {key}: {value}")
    # Legacy property names come back migrated.
    if settings["sortTorrents"]["property"] != "downRate":
        print("   ✗ expected sortTorrents.property to be migrated")
        sys.exit(1)

    # ── Clean up ──────────────────────────────────────────────────
    print(f"\n7. Deleting {username}...")
    resp = admin.delete(f"/auth/users/{username}")
    assert resp.status_code == 200, f"Failed: {resp.text}"
    resp = user_client.get("/auth/verify")
    print(f"   Old token now → {resp.status_code}")

    user_client.close()
    admin.close()
    print("\nDone.")


if __name__ == "__main__":
    main()
