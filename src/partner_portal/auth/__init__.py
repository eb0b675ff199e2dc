"""Authentication state for the portal client.

Learn: The backend uses JWT access/refresh pairs. This package holds the
token models and the stores that persist them between calls:
1. Credentials → POST /api/v1/token/ → TokenPair (persisted)
2. Refresh token → POST /api/v1/token/refresh/ → new access token

The client reads the store on every request; nothing is cached elsewhere.
"""

from partner_portal.auth.tokens import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    AccessToken,
    Credentials,
    FileTokenStore,
    MemoryTokenStore,
    TokenPair,
    TokenStore,
)

__all__ = [
    "ACCESS_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "AccessToken",
    "Credentials",
    "FileTokenStore",
    "MemoryTokenStore",
    "TokenPair",
    "TokenStore",
]
