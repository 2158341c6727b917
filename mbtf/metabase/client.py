"""Metabase API client operations."""

from __future__ import annotations

import os
from typing import Any

import httpx

from mbtf.metabase.errors import MetabaseAPIError, PaginationError

# Environment variables for HTTPS configuration
MBTF_HTTPS_VERIFY_ENV = "MBTF_HTTPS_VERIFY"
MBTF_TIMEOUT_ENV = "MBTF_TIMEOUT"

# Header carrying the session ID obtained from `POST /api/session`
SESSION_HEADER = "X-Metabase-Session"

# Header carrying an API key
API_KEY_HEADER = "X-Api-Key"


def _get_ssl_verify() -> bool:
    """Get SSL verification setting from environment.

    Set MBTF_HTTPS_VERIFY=false to disable SSL verification
    (useful for self-signed certificates).

    Returns:
        True for default verification, False to disable
    """
    verify_env = os.environ.get(MBTF_HTTPS_VERIFY_ENV, "").lower()
    if verify_env in ("false", "0", "no", "off"):
        return False
    return True


def _get_timeout() -> float:
    """Get timeout setting from environment.

    Set MBTF_TIMEOUT to override default 30s timeout.

    Returns:
        Timeout in seconds
    """
    timeout_env = os.environ.get(MBTF_TIMEOUT_ENV)
    if timeout_env:
        try:
            return float(timeout_env)
        except ValueError:
            pass
    return 30.0


def _get_http_client(
    endpoint: str,
    headers: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create HTTP client with proper SSL and proxy configuration.

    Respects standard proxy environment variables (HTTP_PROXY, HTTPS_PROXY).

    Args:
        endpoint: Base URL of the Metabase instance
        headers: Headers sent with every request
        transport: Optional transport (tests use `httpx.MockTransport`)

    Returns:
        Configured httpx.Client
    """
    return httpx.Client(
        base_url=f"{endpoint}/api",
        headers=headers or {},
        timeout=_get_timeout(),
        verify=_get_ssl_verify(),
        transport=transport,
    )


class MetabaseClient:
    """Read-only access to the Metabase API.

    Every `get_*` and `list_*` method returns the decoded JSON body. Callers
    build typed models from it when they need them, and keep the raw payload
    when they need every attribute.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        session_id: str | None = None,
        api_key: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Base URL of the Metabase instance, without `/api`
            session_id: Session ID obtained by logging in
            api_key: API key, used when no session ID is given
            transport: Optional HTTP transport
        """
        headers: dict[str, str] = {}
        if session_id:
            headers[SESSION_HEADER] = session_id
        elif api_key:
            headers[API_KEY_HEADER] = api_key

        self.endpoint = endpoint
        self._http = _get_http_client(endpoint, headers, transport)

    @classmethod
    def login(
        cls,
        endpoint: str,
        username: str,
        password: str,
        transport: httpx.BaseTransport | None = None,
    ) -> MetabaseClient:
        """Authenticate with a username and password.

        Args:
            endpoint: Base URL of the Metabase instance
            username: Email address of the user
            password: Password of the user
            transport: Optional HTTP transport

        Returns:
            A client sending the obtained session ID with every request

        Raises:
            MetabaseAPIError: If authentication fails
        """
        with _get_http_client(endpoint, transport=transport) as http:
            body = _send(
                http,
                "POST",
                "/session",
                "creating a session",
                json={"username": username, "password": password},
            )

        if not isinstance(body, dict) or not body.get("id"):
            raise MetabaseAPIError(
                "Received unexpected response from the Metabase session API"
            )

        return cls(endpoint, session_id=str(body["id"]), transport=transport)

    def close(self) -> None:
        """Close the underlying HTTP connections."""
        self._http.close()

    def __enter__(self) -> MetabaseClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_current_user(self) -> dict[str, Any]:
        return self._get_object("/user/current", "getting the current user")

    def get_card(self, card_id: int) -> dict[str, Any]:
        return self._get_object(f"/card/{card_id}", f"getting card {card_id}")

    def get_dashboard(self, dashboard_id: int) -> dict[str, Any]:
        return self._get_object(
            f"/dashboard/{dashboard_id}", f"getting dashboard {dashboard_id}"
        )

    def get_table_metadata(self, table_id: int) -> dict[str, Any]:
        return self._get_object(
            f"/table/{table_id}/query_metadata", f"getting table {table_id}"
        )

    def get_field(self, field_id: int) -> dict[str, Any]:
        return self._get_object(f"/field/{field_id}", f"getting field {field_id}")

    def get_collection(self, collection_id: int | str) -> dict[str, Any]:
        return self._get_object(
            f"/collection/{collection_id}", f"getting collection {collection_id}"
        )

    def get_database(self, database_id: int) -> dict[str, Any]:
        return self._get_object(
            f"/database/{database_id}", f"getting database {database_id}"
        )

    def list_collections(self) -> list[dict[str, Any]]:
        body = _send(self._http, "GET", "/collection", "listing collections")
        return _as_list(body, "listing collections")

    def list_databases(self) -> list[dict[str, Any]]:
        """List databases.

        Recent Metabase versions wrap the list in `{"data": [...], "total": n}`,
        older ones return a bare list. Both are accepted.
        """
        body = _send(self._http, "GET", "/database", "listing databases")
        return _as_list(body, "listing databases")

    def list_collection_items(
        self,
        collection_id: int | str,
        models: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """List the items of a collection.

        Args:
            collection_id: ID of the collection (or `root`)
            models: Restrict the listing to these item types (e.g. `dashboard`)

        Returns:
            The listed items

        Raises:
            PaginationError: If the response does not contain every item
        """
        params = {"models": models} if models else None
        body = _send(
            self._http,
            "GET",
            f"/collection/{collection_id}/items",
            f"listing items in collection {collection_id}",
            params=params,
        )
        return _as_list(body, f"listing items in collection {collection_id}")

    def _get_object(self, path: str, action: str) -> dict[str, Any]:
        body = _send(self._http, "GET", path, action)
        if not isinstance(body, dict):
            raise MetabaseAPIError(
                f"Received unexpected response from the Metabase API when {action}"
            )
        return body


def _send(
    http: httpx.Client,
    method: str,
    path: str,
    action: str,
    **kwargs: Any,
) -> Any:
    """Send a request and decode its JSON body.

    Args:
        http: HTTP client
        method: HTTP method
        path: Path relative to `/api`
        action: Description of the call, used in error messages
        **kwargs: Passed to `httpx.Client.request`

    Returns:
        The decoded JSON body

    Raises:
        MetabaseAPIError: On network errors, non-200 responses or invalid JSON
    """
    try:
        response = http.request(method, path, **kwargs)
    except httpx.ConnectError as e:
        raise MetabaseAPIError(f"Connection failed when {action}: {e}") from e
    except httpx.TimeoutException as e:
        raise MetabaseAPIError(f"Request timed out when {action}: {e}") from e
    except httpx.HTTPError as e:
        raise MetabaseAPIError(f"Network error when {action}: {e}") from e

    if response.status_code != 200:
        raise MetabaseAPIError(
            f"Received unexpected response from the Metabase API when {action}: "
            f"{response.status_code} {response.text[:200]}",
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise MetabaseAPIError(
            f"Received invalid JSON from the Metabase API when {action}",
            status_code=response.status_code,
        ) from e


def _as_list(body: Any, action: str) -> list[dict[str, Any]]:
    """Extract the items of a listing response, refusing partial results."""
    if isinstance(body, list):
        return body

    if isinstance(body, dict) and isinstance(body.get("data"), list):
        items: list[dict[str, Any]] = body["data"]
        total = body.get("total")
        if total is not None and total != len(items):
            raise PaginationError(
                f"Received {len(items)} of {total} items when {action}: "
                "pagination is not supported"
            )
        return items

    raise MetabaseAPIError(
        f"Received unexpected response from the Metabase API when {action}"
    )
