"""
Tests for the commerce platform client against the fake platform.
"""

import httpx
import pytest

from shared.commerce import MAX_QUERY_LIMIT, CommerceClient
from shared.errors import CommerceApiError


class TestAuthentication:
    """Tests for the client-credentials token handling."""

    @pytest.mark.asyncio
    async def test_token_is_reused_across_calls(self, commerce_client, platform):
        await commerce_client.get_order("ord1")
        await commerce_client.get_customer("cust-ann")

        assert platform.token_requests == 1

    @pytest.mark.asyncio
    async def test_token_request_uses_client_credentials(self, settings):
        seen = []

        def capture(request):
            if request.url.path == "/oauth/token":
                seen.append(request)
                return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
            assert request.headers["Authorization"] == "Bearer t"
            return httpx.Response(200, json={"id": "ord1", "version": 1})

        client = CommerceClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(capture)))
        await client.get_order("ord1")

        token_request = seen[0]
        assert token_request.url.host == "auth.test.commercetools.com"
        assert b"grant_type=client_credentials" in token_request.content
        assert token_request.headers["Authorization"].startswith("Basic ")

    @pytest.mark.asyncio
    async def test_failed_token_request_raises(self, settings):
        def reject(request):
            return httpx.Response(401, json={"statusCode": 401, "message": "invalid_client"})

        client = CommerceClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(reject)))

        with pytest.raises(CommerceApiError) as exc_info:
            await client.get_order("ord1")

        assert exc_info.value.status_code == 401


class TestReads:
    """Tests for the read endpoints."""

    @pytest.mark.asyncio
    async def test_get_order(self, commerce_client):
        order = await commerce_client.get_order("ord1")

        assert order.id == "ord1"
        assert order.version == 3
        assert order.business_unit.key == "bu1"

    @pytest.mark.asyncio
    async def test_missing_order_raises_api_error(self, commerce_client):
        with pytest.raises(CommerceApiError) as exc_info:
            await commerce_client.get_order("nope")

        assert exc_info.value.status_code == 404
        assert exc_info.value.errors[0]["code"] == "ResourceNotFound"
        assert not exc_info.value.is_concurrent_modification

    @pytest.mark.asyncio
    async def test_get_approval_flow_is_scoped_to_associate_and_business_unit(
        self, commerce_client, platform
    ):
        flow = await commerce_client.get_approval_flow("af2", "cust-ann", "bu1")

        assert flow.id == "af2"
        assert platform.calls[-1].path == (
            "as-associate/cust-ann/in-business-unit/key=bu1/approval-flows/af2"
        )

    @pytest.mark.asyncio
    async def test_query_customers_by_ids_uses_single_in_predicate(self, commerce_client, platform):
        customers = await commerce_client.query_customers_by_ids(["cust-ann", "cust-bob"])

        assert [c.id for c in customers] == ["cust-ann", "cust-bob"]
        assert platform.count("GET", "customers") == 1
        assert platform.calls[-1].params["where"] == 'id in ("cust-ann","cust-bob")'

    @pytest.mark.asyncio
    async def test_query_customers_with_no_ids_skips_request(self, commerce_client, platform):
        assert await commerce_client.query_customers_by_ids([]) == []
        assert platform.calls == []

    @pytest.mark.asyncio
    async def test_business_unit_and_role_by_key(self, commerce_client):
        unit = await commerce_client.get_business_unit_by_key("bu1")
        role = await commerce_client.get_associate_role_by_key("approver")

        assert len(unit.associates) == 4
        assert role.key == "approver"

    @pytest.mark.asyncio
    async def test_query_states_by_key(self, commerce_client, platform):
        states = await commerce_client.query_states_by_key("approved")

        assert [s.id for s in states] == ["state-approved"]
        assert platform.calls[-1].params["where"] == 'key="approved"'


class TestUpdates:
    """Tests for versioned updates."""

    @pytest.mark.asyncio
    async def test_update_order_with_current_version(self, commerce_client, platform):
        order = await commerce_client.update_order(
            "ord1", 3, [{"action": "transitionState", "state": {"typeId": "state", "id": "state-approved"}}]
        )

        assert order.version == 4
        assert order.state.id == "state-approved"

    @pytest.mark.asyncio
    async def test_update_order_with_stale_version_is_a_conflict(self, commerce_client):
        with pytest.raises(CommerceApiError) as exc_info:
            await commerce_client.update_order("ord1", 2, [])

        assert exc_info.value.status_code == 409
        assert exc_info.value.is_concurrent_modification

    @pytest.mark.asyncio
    async def test_network_failure_becomes_api_error(self, settings):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = CommerceClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(unreachable)))

        with pytest.raises(CommerceApiError) as exc_info:
            await client.get_order("ord1")

        assert exc_info.value.status_code == 503
        assert "connection refused" in str(exc_info.value)


class TestUnexpectedResponses:
    """Tests for successful responses the client cannot use."""

    @pytest.mark.asyncio
    async def test_non_json_body(self, commerce_client, platform):
        platform.canned[("GET", "orders/ord1")] = httpx.Response(200, text="<html></html>")

        with pytest.raises(CommerceApiError) as exc_info:
            await commerce_client.get_order("ord1")

        assert exc_info.value.status_code == 200
        assert exc_info.value.message == "Invalid JSON response"

    @pytest.mark.asyncio
    async def test_json_that_is_not_an_object(self, commerce_client, platform):
        platform.canned[("GET", "orders/ord1")] = httpx.Response(200, json=[1, 2])

        with pytest.raises(CommerceApiError):
            await commerce_client.get_order("ord1")

    @pytest.mark.asyncio
    async def test_body_with_wrong_shape(self, commerce_client, platform):
        platform.orders["ord1"]["version"] = "not-a-number"

        with pytest.raises(CommerceApiError) as exc_info:
            await commerce_client.get_order("ord1")

        assert exc_info.value.status_code == 502
        assert "Unexpected Order in response" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_token_response_without_token(self, settings):
        def no_token(request):
            return httpx.Response(200, json={"expires_in": 3600})

        client = CommerceClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(no_token)))

        with pytest.raises(CommerceApiError):
            await client.get_order("ord1")


class TestLargeCustomerQueries:
    """Customer id queries stay within the platform's page size."""

    @pytest.mark.asyncio
    async def test_ids_are_split_into_pages(self, commerce_client, platform):
        ids = [f"cust-{i}" for i in range(MAX_QUERY_LIMIT + 1)]
        for customer_id in ids:
            platform.customers[customer_id] = {"id": customer_id, "email": f"{customer_id}@example.com"}

        customers = await commerce_client.query_customers_by_ids(ids)

        queries = [c for c in platform.calls if c.path == "customers"]
        assert [q.params["limit"] for q in queries] == [str(MAX_QUERY_LIMIT), "1"]
        assert len(customers) == MAX_QUERY_LIMIT + 1
