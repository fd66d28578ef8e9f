import json

import pytest
import respx
from codimir_sdk.core.errors import ErrorCode
from codimir_sdk.core.executor import ExchangeResult, RequestExecutor, encode_body
from codimir_sdk.models import CreateTicketInput
from httpx import AsyncClient, ConnectError, Response

BASE = "https://api.test"


def test_encode_body_none_sends_nothing():
    assert encode_body(None) is None


def test_encode_body_dumps_models_by_alias_without_nones():
    body = encode_body(CreateTicketInput(title="Fix", due_date="2025-01-01"))

    assert json.loads(body) == {"title": "Fix", "dueDate": "2025-01-01"}


def test_encode_body_keeps_empty_objects():
    assert encode_body({}) == b"{}"


def test_build_headers():
    executor = RequestExecutor(AsyncClient(), timeout_ms=1000)

    assert executor.build_headers(None) == {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    assert executor.build_headers("t")["Authorization"] == "Bearer t"


@pytest.mark.asyncio
@respx.mock
async def test_no_content_is_distinct_from_json_null():
    respx.get(f"{BASE}/empty").mock(return_value=Response(204))
    respx.get(f"{BASE}/null").mock(
        return_value=Response(
            200, content=b"null", headers={"Content-Type": "application/json"}
        )
    )

    async with AsyncClient(base_url=BASE) as http:
        executor = RequestExecutor(http, timeout_ms=1000)
        empty = await executor.execute("GET", "/empty")
        null = await executor.execute("GET", "/null")

    assert empty.ok and empty.no_content
    assert null.ok and not null.no_content
    assert null.value is None


@pytest.mark.asyncio
@respx.mock
async def test_http_failure_keeps_status_and_payload():
    respx.get(f"{BASE}/x").mock(
        return_value=Response(422, json={"error": {"message": "bad title"}})
    )

    async with AsyncClient(base_url=BASE) as http:
        result = await RequestExecutor(http, timeout_ms=1000).execute("GET", "/x")

    assert not result.ok
    assert result.status == 422
    err = result.to_error()
    assert err.code == ErrorCode.VALIDATION_ERROR
    assert err.message == "bad title"


@pytest.mark.asyncio
@respx.mock
async def test_local_failure_reports_status_zero():
    route = respx.get(f"{BASE}/x").mock(side_effect=ConnectError("refused"))

    async with AsyncClient(base_url=BASE) as http:
        result = await RequestExecutor(http, timeout_ms=1000).execute("GET", "/x")

    assert route.call_count == 1
    assert result.status == 0
    assert isinstance(result.exception, ConnectError)
    assert result.to_error().code == ErrorCode.NETWORK_ERROR


def test_exchange_result_ok_requires_2xx_and_no_error():
    assert ExchangeResult(status=200, value=1).ok
    assert not ExchangeResult(status=301).ok
    assert not ExchangeResult(status=0, exception=OSError("x")).ok


@pytest.mark.asyncio
async def test_encoding_failure_reports_status_zero():
    async with AsyncClient(base_url=BASE) as http:
        result = await RequestExecutor(http, timeout_ms=1000).execute(
            "POST", "/x", {"when": object()}
        )

    assert result.status == 0
    assert isinstance(result.exception, TypeError)
    assert result.to_error().code == ErrorCode.NETWORK_ERROR
