"""Authenticated API client with transparent token refresh.

Learn: Every call from the CLI, the resource helpers, and scripts goes
through ApiClient.request(). It handles three things so callers don't:

1. Attach "Authorization: Bearer <access>" when an access token is stored
2. On 401 → refresh the access token once and replay the request once
3. When the session can't be restored → clear tokens, redirect to /login

401 and 403 are handled differently:
- 401 means the access token expired → refresh + one retry (never chained,
  so a dead refresh token can't cause a request storm)
- 403 means "logged in, but not allowed" → redirect to /403, no refresh

Concurrent calls are not coordinated: two requests racing across an
expiry may each refresh on their own.
"""

import json
from typing import Any, Optional

import httpx
import structlog
from pydantic import BaseModel

from partner_portal.auth.tokens import (
    ACCESS_TOKEN_KEY,
    AccessToken,
    Credentials,
    TokenPair,
    TokenStore,
)
from partner_portal.errors import (
    AccessForbidden,
    ApiError,
    AuthenticationFailed,
    InvalidCredentials,
)
from partner_portal.navigation import FORBIDDEN_ROUTE, LOGIN_ROUTE, Navigator

logger = structlog.get_logger()

TOKEN_PATH = "/api/v1/token/"
TOKEN_REFRESH_PATH = "/api/v1/token/refresh/"

JSON_HEADERS = {"Content-Type": "application/json"}


class ApiClient:
    """One backend, one token store, one navigator.

    Learn: No module-level singleton — build one client per backend (or per
    test). The underlying httpx.AsyncClient is closed by aclose() or by
    leaving the async context manager.
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        navigator: Navigator,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.tokens = token_store
        self.navigator = navigator
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─── Session ─────────────────────────────────────────

    async def login(self, credentials: Credentials) -> TokenPair:
        """Exchange username/password for a token pair and persist it."""
        response = await self._http.post(
            self._url(TOKEN_PATH),
            headers=JSON_HEADERS,
            json=credentials.model_dump(),
        )

        if not response.is_success:
            logger.warning(
                "portal.login_rejected",
                username=credentials.username,
                status=response.status_code,
            )
            raise InvalidCredentials()

        pair = TokenPair.model_validate(response.json())
        self.tokens.write(pair)
        logger.info("portal.login_succeeded", username=credentials.username)
        return pair

    async def refresh_access_token(self) -> bool:
        """Mint a new access token from the stored refresh token.

        Never raises. Returns False when there is no refresh token (no
        request is made), when the backend rejects it, or when the call
        fails for any transport/parse reason. Only the access token is
        overwritten on success.
        """
        refresh_token = self.tokens.refresh_token
        if not refresh_token:
            logger.debug("portal.token_refresh_skipped", reason="no_refresh_token")
            return False

        try:
            response = await self._http.post(
                self._url(TOKEN_REFRESH_PATH),
                headers=JSON_HEADERS,
                json={"refresh": refresh_token},
            )
            if not response.is_success:
                logger.info("portal.token_refresh_rejected", status=response.status_code)
                return False

            token = AccessToken.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:  # ValueError: bad JSON or ValidationError
            logger.warning("portal.token_refresh_failed", error=str(e))
            return False

        self.tokens.set(ACCESS_TOKEN_KEY, token.access)
        logger.info("portal.token_refreshed")
        return True

    def logout(self) -> None:
        """Forget both tokens and send the user to the login view."""
        self.tokens.clear()
        logger.info("portal.logged_out")
        self.navigator.redirect(LOGIN_ROUTE)

    def is_authenticated(self) -> bool:
        """True when an access token is stored."""
        return bool(self.tokens.access_token)

    # ─── Requests ────────────────────────────────────────

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send an authenticated request and return the decoded JSON body.

        Raises AuthenticationFailed, AccessForbidden or ApiError — see the
        module docstring for how each status is handled.
        """
        url = self._url(path)
        content = self._encode(body)

        response = await self._send(method, url, content, headers)

        if response.status_code == 401:
            logger.info("portal.unauthenticated", method=method, path=path)
            if await self.refresh_access_token():
                # Replay once with the new token. No second refresh.
                retry = await self._send(method, url, content, headers)
                if not retry.is_success:
                    logger.warning(
                        "portal.retry_failed",
                        method=method,
                        path=path,
                        status=retry.status_code,
                    )
                    raise ApiError(retry.status_code, retry.reason_phrase)
                return self._decode(retry)

            self.tokens.clear()
            self.navigator.redirect(LOGIN_ROUTE)
            raise AuthenticationFailed()

        if response.status_code == 403:
            logger.warning("portal.forbidden", method=method, path=path)
            self.navigator.redirect(FORBIDDEN_ROUTE)
            raise AccessForbidden()

        if not response.is_success:
            logger.warning(
                "portal.api_error",
                method=method,
                path=path,
                status=response.status_code,
            )
            raise ApiError(response.status_code, response.reason_phrase)

        return self._decode(response)

    async def get(self, path: str) -> Any:
        return await self.request(path, "GET")

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request(path, "POST", body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request(path, "PUT", body)

    async def delete(self, path: str) -> Any:
        return await self.request(path, "DELETE")

    # ─── Internals ───────────────────────────────────────

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _headers(self, extra: Optional[dict[str, str]]) -> dict[str, str]:
        """Build headers from the *current* store contents."""
        headers = {**JSON_HEADERS, **(extra or {})}
        access_token = self.tokens.access_token
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        content: Optional[bytes],
        headers: Optional[dict[str, str]],
    ) -> httpx.Response:
        logger.debug("portal.request", method=method, url=url)
        return await self._http.request(
            method, url, content=content, headers=self._headers(headers)
        )

    @staticmethod
    def _encode(body: Any) -> Optional[bytes]:
        """JSON-encode a request body. Empty bodies are not sent."""
        if not body:
            return None
        if isinstance(body, BaseModel):
            return body.model_dump_json(exclude_none=True).encode()
        return json.dumps(body).encode()

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        return response.json()
