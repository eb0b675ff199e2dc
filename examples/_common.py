"""
Shared helpers for Partner Portal examples.

Handles backend configuration and sign-in so each example can focus on
its specific workflow. Credentials come from PORTAL_USERNAME /
PORTAL_PASSWORD; the backend URL from PARTNER_PORTAL_API_URL.
"""

import os
import sys

import httpx

from partner_portal.auth.tokens import Credentials, MemoryTokenStore
from partner_portal.client import ApiClient
from partner_portal.config import settings
from partner_portal.errors import InvalidCredentials
from partner_portal.navigation import HistoryNavigator


def credentials_from_env() -> Credentials:
    username = os.environ.get("PORTAL_USERNAME")
    password = os.environ.get("PORTAL_PASSWORD")
    if not username or not password:
        print("ERROR: set PORTAL_USERNAME and PORTAL_PASSWORD")
        sys.exit(1)
    return Credentials(username=username, password=password)


async def create_client() -> ApiClient:
    """Sign in with env credentials and return a ready client.

    Tokens live in memory only, so examples never touch the CLI's token file.
    """
    client = ApiClient(
        settings.api_url,
        MemoryTokenStore(),
        HistoryNavigator(),
        timeout=settings.request_timeout,
    )
    try:
        await client.login(credentials_from_env())
    except httpx.ConnectError:
        await client.aclose()
        print(f"ERROR: Backend not reachable at {settings.api_url}")
        print("Point PARTNER_PORTAL_API_URL at a running backend and try again.")
        sys.exit(1)
    except InvalidCredentials:
        await client.aclose()
        print(f"ERROR: Login rejected by {settings.api_url}")
        sys.exit(1)

    print(f"Backend: {settings.api_url}")
    print("  Auth:   ✓ (JWT)")
    return client
