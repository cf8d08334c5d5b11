"""
Async PocketBase REST client with retry logic, error mapping and an auth store.
"""
import asyncio
import base64
import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from timeclock.config import settings
from timeclock.integrations.pocketbase_types import AuthResponse, ListResult, PasswordAuth
from timeclock.utils.http import create_http_client

logger = logging.getLogger(__name__)

# Methods that may be replayed after a timeout or a 5xx without side effects.
_IDEMPOTENT_METHODS = ("GET", "HEAD")


class PocketBaseAPIError(Exception):
    """Base exception for PocketBase API errors.

    status_code is 0 when no response was received.
    """
    def __init__(self, code: str, message: str, status_code: int = 0):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthStore:
    """Holds the auth token and user record of the signed-in user."""

    def __init__(self):
        self.token: str = ""
        self.record: Optional[Dict[str, Any]] = None

    def save(self, token: str, record: Dict[str, Any]) -> None:
        self.token = token
        self.record = record

    def clear(self) -> None:
        self.token = ""
        self.record = None

    @property
    def user_id(self) -> Optional[str]:
        if not self.record:
            return None
        return self.record.get("id")

    @property
    def is_valid(self) -> bool:
        """True when a token is present and its exp claim lies in the future."""
        if not self.token:
            return False
        payload = _jwt_payload(self.token)
        exp = payload.get("exp") if isinstance(payload, dict) else None
        if not isinstance(exp, (int, float)):
            return False
        return exp > time.time()


def _jwt_payload(token: str) -> Optional[Dict[str, Any]]:
    # Claims are read without verifying the signature; the server does that.
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        return json.loads(base64.urlsafe_b64decode(segment.encode()))
    except (ValueError, UnicodeDecodeError):
        return None


class PocketBaseClient:
    """Async PocketBase API client."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        self.base_url = (base_url or settings.POCKETBASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.POCKETBASE_TIMEOUT
        self.max_retries = max(1, max_retries if max_retries is not None else settings.POCKETBASE_MAX_RETRIES)
        self.auth = AuthStore()

    def _auth_headers(self) -> Dict[str, str]:
        """Get authentication headers."""
        if self.auth.token:
            return {"Authorization": self.auth.token}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """
        Make HTTP request with retry logic.
        Maps errors to PocketBaseAPIError with appropriate codes.
        """
        url = f"{self.base_url}{path}"
        headers = self._auth_headers()
        method = method.upper()
        replayable = method in _IDEMPOTENT_METHODS

        last_exception = None
        for attempt in range(self.max_retries):
            delay = (2 ** attempt) * 0.5
            has_next = attempt < self.max_retries - 1
            try:
                async with create_http_client(timeout=self.timeout) as client:
                    response = await client.request(
                        method,
                        url,
                        headers=headers,
                        params=params,
                        json=json_body,
                    )
            except httpx.ConnectError as e:
                # The request never reached the server, so any method can be replayed.
                last_exception = e
                logger.warning(
                    f"PocketBase unreachable (attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if has_next:
                    await asyncio.sleep(delay)
                    continue
                break
            except httpx.TimeoutException as e:
                last_exception = e
                logger.warning(
                    f"PocketBase timeout on {method} {path} (attempt {attempt + 1}/{self.max_retries})"
                )
                if has_next and replayable:
                    await asyncio.sleep(delay)
                    continue
                break
            except httpx.TransportError as e:
                last_exception = e
                logger.error(f"PocketBase transport failure on {method} {path}: {e}")
                break

            if response.status_code == 429:
                logger.warning(
                    f"PocketBase rate limit hit, retrying in {delay}s (attempt {attempt + 1}/{self.max_retries})"
                )
                if has_next:
                    await asyncio.sleep(delay)
                    continue
                raise PocketBaseAPIError("rate_limited", "Too many requests, please slow down", 429)

            if response.status_code >= 500:
                logger.warning(f"PocketBase server error {response.status_code} on {method} {path}")
                if has_next and replayable:
                    await asyncio.sleep(delay)
                    continue
                raise PocketBaseAPIError(
                    "upstream_error",
                    f"Server error: {response.status_code}",
                    response.status_code,
                )

            if response.status_code >= 400:
                raise _map_error(response)

            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        raise PocketBaseAPIError(
            "network_error",
            "Unable to connect to server",
            0,
        ) from last_exception

    async def authenticate(self, email: str, password: str, collection: str = "users") -> AuthResponse:
        """Sign in with email and password and keep the token in the auth store."""
        body = PasswordAuth(identity=email, password=password)
        data = await self._request(
            "POST",
            f"/api/collections/{collection}/auth-with-password",
            json_body=body.model_dump(),
        )
        auth = AuthResponse(**data)
        self.auth.save(auth.token, auth.record)
        return auth

    async def create_record(self, collection: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create a record."""
        return await self._request(
            "POST",
            f"/api/collections/{collection}/records",
            json_body=fields,
        )

    async def update_record(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Patch fields of an existing record."""
        return await self._request(
            "PATCH",
            f"/api/collections/{collection}/records/{record_id}",
            json_body=fields,
        )

    async def list_records(
        self,
        collection: str,
        page: int = 1,
        per_page: int = 30,
        filter: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> ListResult:
        """Fetch one page of records."""
        params: Dict[str, Any] = {"page": page, "perPage": per_page}
        if filter:
            params["filter"] = filter
        if sort:
            params["sort"] = sort
        data = await self._request(
            "GET",
            f"/api/collections/{collection}/records",
            params=params,
        )
        return ListResult(**data)

    async def query_records(
        self,
        collection: str,
        filter: Optional[str] = None,
        sort: Optional[str] = None,
        batch: int = 500,
    ) -> List[Dict[str, Any]]:
        """Fetch every record matching filter, page by page."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            result = await self.list_records(collection, page, batch, filter, sort)
            items.extend(result.items)
            if len(result.items) < batch or page >= result.totalPages:
                return items
            page += 1


def _map_error(response: httpx.Response) -> PocketBaseAPIError:
    try:
        error_data = response.json()
    except ValueError:
        error_data = {"message": response.text}
    if not isinstance(error_data, dict):
        error_data = {}
    message = error_data.get("message") or "Unknown error"

    if response.status_code == 400:
        return PocketBaseAPIError("validation_error", f"Bad request: {message}", 400)
    if response.status_code == 401:
        return PocketBaseAPIError("unauthorized", "Authentication required or expired", 401)
    if response.status_code == 403:
        return PocketBaseAPIError("forbidden", message, 403)
    if response.status_code == 404:
        return PocketBaseAPIError("not_found", message, 404)
    return PocketBaseAPIError("client_error", message, response.status_code)
