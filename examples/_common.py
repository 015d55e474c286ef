"""
Shared helpers for Floodgate examples.

Needs httpx: pip install -e ".[examples]".

Handles the first-run bootstrap (register the initial admin) or a plain
login, so each example can focus on its specific workflow.
"""

import os
import sys

import httpx

BASE = os.environ.get("FLOODGATE_URL", "http://localhost:3000/api/v1")

ADMIN_USERNAME = os.environ.get("FLOODGATE_ADMIN", "admin")
ADMIN_PASSWORD = os.environ.get("FLOODGATE_ADMIN_PASSWORD", "demo-password-123")


def check_backend() -> dict:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  floodgate serve")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")
    print(f"  Auth:     {health['auth']}")
    return health


def authenticate() -> str:
    """Return a token for the example admin.

    On a fresh install the admin is registered as the initial user;
    afterwards the same credentials are used to log in.
    """
    resp = httpx.get(f"{BASE}/auth/verify", timeout=10)
    if resp.status_code == 200 and resp.json().get("initialUser"):
        resp = httpx.post(
            f"{BASE}/auth/register",
            json={
                "username": ADMIN_USERNAME,
                "password": ADMIN_PASSWORD,
                "host": "127.0.0.1",
                "port": 5000,
            },
            timeout=10,
        )
        if resp.status_code != 201:
            print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
            sys.exit(1)
        print(f"  Registered initial admin '{ADMIN_USERNAME}'")
        return resp.json()["token"]

    resp = httpx.post(
        f"{BASE}/auth/authenticate",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"ERROR: Login failed: {resp.status_code} {resp.text}")
        print("Set FLOODGATE_ADMIN / FLOODGATE_ADMIN_PASSWORD to an existing admin.")
        sys.exit(1)
    return resp.json()["token"]


def create_client() -> httpx.Client:
    """Check backend, authenticate, and return an httpx Client with auth headers."""
    check_backend()
    token = authenticate()
    print("  Token:    ✓ (JWT)")
    return httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": token},
    )
