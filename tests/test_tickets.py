import json

import pytest
import respx
from codimir_sdk.client import CodimirClient
from codimir_sdk.core.errors import ApiError, ErrorCode
from codimir_sdk.core.retry import RetryConfig
from codimir_sdk.models import CreateTicketInput, Ticket
from httpx import Response

BASE = "https://api.test"

TICKET = {
    "id": "TKT-1",
    "title": "Fix login bug",
    "description": "Special characters break login",
    "status": "open",
    "priority": "high",
    "assignee": "ana@example.com",
    "reporter": "bo@example.com",
    "createdAt": "2025-01-01T00:00:00Z",
    "updatedAt": "2025-01-02T00:00:00Z",
    "labels": ["auth"],
    "comments": 2,
    "linkedPRs": 1,
}


@pytest.fixture
def client():
    return CodimirClient(
        BASE, token="key", retry=RetryConfig(attempts=1, min_delay_ms=0)
    )


@pytest.mark.asyncio
@respx.mock
async def test_create_posts_camel_case_body(client):
    route = respx.post(f"{BASE}/api/v1/tickets").mock(
        return_value=Response(201, json=TICKET)
    )

    async with client:
        ticket = await client.tickets.create(
            CreateTicketInput(
                title="Fix login bug", priority="high", due_date="2025-02-01"
            )
        )

    assert isinstance(ticket, Ticket)
    assert ticket.linked_prs == 1
    assert json.loads(route.calls[0].request.content) == {
        "title": "Fix login bug",
        "priority": "high",
        "dueDate": "2025-02-01",
    }


@pytest.mark.asyncio
@respx.mock
async def test_create_is_not_retried_on_server_error(client):
    route = respx.post(f"{BASE}/api/v1/tickets").mock(return_value=Response(502))

    async with client:
        with pytest.raises(ApiError) as exc:
            await client.tickets.create({"title": "x"})

    assert exc.value.code == ErrorCode.BAD_GATEWAY
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_get_fetches_by_id(client):
    route = respx.get(f"{BASE}/api/v1/tickets/TKT-1").mock(
        return_value=Response(200, json=TICKET)
    )

    async with client:
        ticket = await client.tickets.get("TKT-1")

    assert route.called
    assert ticket.id == "TKT-1"


@pytest.mark.asyncio
@respx.mock
async def test_list_sends_only_set_filters(client):
    route = respx.get(f"{BASE}/api/v1/tickets").mock(
        return_value=Response(200, json={"items": [TICKET], "nextCursor": "c2"})
    )

    async with client:
        page = await client.tickets.list(
            {"status": "open", "limit": 10, "projectId": "p1"}
        )

    params = route.calls[0].request.url.params
    assert dict(params) == {"status": "open", "limit": "10", "projectId": "p1"}
    assert page.next_cursor == "c2"
    assert page.items[0].title == "Fix login bug"


@pytest.mark.asyncio
@respx.mock
async def test_list_without_filters_has_no_query(client):
    route = respx.get(f"{BASE}/api/v1/tickets").mock(
        return_value=Response(200, json={"items": []})
    )

    async with client:
        page = await client.tickets.list()

    assert route.calls[0].request.url.query == b""
    assert page.items == []


@pytest.mark.asyncio
@respx.mock
async def test_get_all_follows_cursor(client):
    second = dict(TICKET, id="TKT-2")
    route = respx.get(f"{BASE}/api/v1/tickets").mock(
        side_effect=[
            Response(200, json={"items": [TICKET], "nextCursor": "c2"}),
            Response(200, json={"items": [second]}),
        ]
    )

    async with client:
        tickets = await client.tickets.get_all({"status": "open"})

    assert [t.id for t in tickets] == ["TKT-1", "TKT-2"]
    first_params = route.calls[0].request.url.params
    second_params = route.calls[1].request.url.params
    assert first_params["limit"] == "100"
    assert "cursor" not in first_params
    assert second_params["cursor"] == "c2"
    assert second_params["status"] == "open"


@pytest.mark.asyncio
@respx.mock
async def test_search_sets_query(client):
    route = respx.get(f"{BASE}/api/v1/tickets").mock(
        return_value=Response(200, json={"items": []})
    )

    async with client:
        await client.tickets.search("login bug", {"limit": 20})

    params = route.calls[0].request.url.params
    assert params["search"] == "login bug"
    assert params["limit"] == "20"


@pytest.mark.asyncio
@respx.mock
async def test_update_uses_patch_and_is_not_retried(client):
    route = respx.patch(f"{BASE}/api/v1/tickets/TKT-1").mock(
        return_value=Response(503)
    )

    async with client:
        with pytest.raises(ApiError):
            await client.tickets.update("TKT-1", {"status": "closed"})

    assert route.call_count == 1
    assert json.loads(route.calls[0].request.content) == {"status": "closed"}


@pytest.mark.asyncio
@respx.mock
async def test_replace_uses_put_and_is_retried(client):
    route = respx.put(f"{BASE}/api/v1/tickets/TKT-1").mock(
        side_effect=[Response(503), Response(200, json=TICKET)]
    )

    async with client:
        ticket = await client.tickets.replace("TKT-1", {"title": "Fix login bug"})

    assert route.call_count == 2
    assert ticket.id == "TKT-1"


@pytest.mark.asyncio
@respx.mock
async def test_remove_returns_none_on_204(client):
    respx.delete(f"{BASE}/api/v1/tickets/TKT-1").mock(return_value=Response(204))

    async with client:
        assert await client.tickets.remove("TKT-1") is None


@pytest.mark.asyncio
async def test_empty_ticket_id_rejected(client):
    async with client:
        with pytest.raises(ValueError):
            await client.tickets.get("")
