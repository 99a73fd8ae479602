"""
HTTP client for the commerce platform API.

Wraps the handful of REST endpoints the connector needs: approval flows,
customers, associate roles, business units, orders, states and
subscriptions. Authentication uses the OAuth2 client-credentials grant.

Design decisions:
- One ``httpx.AsyncClient`` per process, shared by all requests
- The access token is reused until shortly before it expires
- Responses are parsed into the models in ``shared.models``
- Non-2xx responses raise ``CommerceApiError``; nothing is retried
- Timeouts are the HTTP client's defaults
"""

import logging
import time
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from shared.config import Settings, get_settings
from shared.errors import CommerceApiError
from shared.models import (
    ApprovalFlow,
    AssociateRole,
    BusinessUnit,
    Customer,
    Order,
    State,
    Subscription,
)

logger = logging.getLogger("commerce_client")

# Refresh the token this many seconds before the platform expires it
TOKEN_EXPIRY_MARGIN = 60

# Largest page size the platform accepts for a query
MAX_QUERY_LIMIT = 500

ModelT = TypeVar("ModelT", bound=BaseModel)


def _quote(value: str) -> str:
    """Quote a value for use in a query predicate."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _parse(model: type[ModelT], data: Any) -> ModelT:
    """Validate a response body, reporting an unexpected shape as ``CommerceApiError``."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise CommerceApiError(
            502, f"Unexpected {model.__name__} in response: {e.error_count()} invalid field(s)"
        ) from e


class CommerceClient:
    """
    Async client for the commerce platform.

    Example:
        async with CommerceClient(settings) as client:
            order = await client.get_order("ord-1")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Credentials and URLs (defaults to the cached settings)
            http_client: Underlying HTTP client (defaults to a new one)
        """
        self.settings = settings or get_settings()
        self.http = http_client or httpx.AsyncClient()
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

    async def __aenter__(self) -> "CommerceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        data = {"grant_type": "client_credentials"}
        if self.settings.ctp_scope:
            data["scope"] = self.settings.ctp_scope

        logger.debug("Requesting commerce platform access token")
        body = await self._send(
            "POST",
            f"{self.settings.auth_url}/oauth/token",
            data=data,
            auth=(self.settings.ctp_client_id, self.settings.ctp_client_secret),
        )
        if not body.get("access_token"):
            raise CommerceApiError(502, "Token response has no access_token")
        self._access_token = body["access_token"]
        expires_in = int(body.get("expires_in", 0))
        self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        return self._access_token

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        token = await self._get_access_token()
        url = f"{self.settings.api_url}/{self.settings.ctp_project_key}/{path}"

        logger.debug(f"{method} {url} params={params}")
        return await self._send(
            method,
            url,
            params=params,
            json=json,
            headers={"Authorization": f"Bearer {token}"},
        )

    async def _send(self, method: str, url: str, **kwargs) -> dict[str, Any]:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise CommerceApiError(503, f"Request to {url} failed: {e}") from e
        if response.is_error:
            raise self._api_error(response)
        try:
            body = response.json()
        except ValueError as e:
            raise CommerceApiError(response.status_code, "Invalid JSON response") from e
        if not isinstance(body, dict):
            raise CommerceApiError(response.status_code, "Invalid JSON response")
        return body

    @staticmethod
    def _api_error(response: httpx.Response) -> CommerceApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or response.reason_phrase or "Unknown error"
        return CommerceApiError(response.status_code, message, body.get("errors"))

    # =========================================================================
    # Approval flows
    # =========================================================================

    async def get_approval_flow(
        self,
        approval_flow_id: str,
        associate_id: str,
        business_unit_key: str,
    ) -> ApprovalFlow:
        """Read an approval flow as ``associate_id`` within a business unit."""
        body = await self._request(
            "GET",
            f"as-associate/{associate_id}/in-business-unit/key={business_unit_key}"
            f"/approval-flows/{approval_flow_id}",
        )
        return _parse(ApprovalFlow, body)

    # =========================================================================
    # Customers, associate roles, business units
    # =========================================================================

    async def get_customer(self, customer_id: str) -> Customer:
        body = await self._request("GET", f"customers/{customer_id}")
        return _parse(Customer, body)

    async def query_customers_by_ids(self, customer_ids: list[str]) -> list[Customer]:
        """
        Fetch several customers using an ``id in (...)`` predicate.

        One query per ``MAX_QUERY_LIMIT`` ids, so a single query in practice.
        """
        customers: list[Customer] = []
        for start in range(0, len(customer_ids), MAX_QUERY_LIMIT):
            batch = customer_ids[start:start + MAX_QUERY_LIMIT]
            where = f"id in ({','.join(_quote(i) for i in batch)})"
            body = await self._request(
                "GET",
                "customers",
                params={"where": where, "limit": len(batch)},
            )
            customers.extend(_parse(Customer, c) for c in body.get("results", []))
        return customers

    async def get_associate_role_by_key(self, key: str) -> AssociateRole:
        body = await self._request("GET", f"associate-roles/key={key}")
        return _parse(AssociateRole, body)

    async def get_business_unit_by_key(self, key: str) -> BusinessUnit:
        body = await self._request("GET", f"business-units/key={key}")
        return _parse(BusinessUnit, body)

    # =========================================================================
    # Orders and states
    # =========================================================================

    async def get_order(self, order_id: str) -> Order:
        body = await self._request("GET", f"orders/{order_id}")
        return _parse(Order, body)

    async def update_order(
        self,
        order_id: str,
        version: int,
        actions: list[dict[str, Any]],
    ) -> Order:
        """Apply update actions; ``version`` must match the platform's current one."""
        body = await self._request(
            "POST",
            f"orders/{order_id}",
            json={"version": version, "actions": actions},
        )
        return _parse(Order, body)

    async def query_states_by_key(self, key: str) -> list[State]:
        body = await self._request("GET", "states", params={"where": f"key={_quote(key)}"})
        return [_parse(State, s) for s in body.get("results", [])]

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def query_subscriptions_by_key(self, key: str) -> list[Subscription]:
        body = await self._request(
            "GET", "subscriptions", params={"where": f"key = {_quote(key)}"}
        )
        return [_parse(Subscription, s) for s in body.get("results", [])]

    async def create_subscription(self, draft: dict[str, Any]) -> Subscription:
        body = await self._request("POST", "subscriptions", json=draft)
        return _parse(Subscription, body)

    async def delete_subscription_by_key(self, key: str, version: int) -> Subscription:
        body = await self._request(
            "DELETE", f"subscriptions/key={key}", params={"version": version}
        )
        return _parse(Subscription, body)


# Module-level instance (would use proper DI in production)
_client: Optional[CommerceClient] = None


def get_commerce_client() -> CommerceClient:
    """Get the process-wide commerce client."""
    global _client
    if _client is None:
        _client = CommerceClient()
    return _client


def reset_commerce_client(client: Optional[CommerceClient] = None) -> None:
    """Replace the process-wide commerce client (for testing)."""
    global _client
    _client = client


async def close_commerce_client() -> None:
    """Close the process-wide commerce client, if one was created."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
