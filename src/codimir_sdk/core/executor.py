from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import anyio
import httpx
from pydantic import BaseModel

from .auth import bearer_headers
from .errors import ApiError, ErrorCode, error_from_exception, error_from_response
from .retry import NO_RESPONSE_STATUS

JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of exactly one HTTP exchange."""

    status: int
    value: Any = None
    no_content: bool = False
    payload: Any = None
    error: Optional[ApiError] = None
    exception: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return (
            200 <= self.status < 300 and self.error is None and self.exception is None
        )

    def to_error(self) -> ApiError:
        if self.error is not None:
            return self.error
        if self.exception is not None:
            return error_from_exception(self.exception)
        return error_from_response(self.status, self.payload)


def encode_body(body: Any) -> Optional[bytes]:
    if body is None:
        return None
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(body).encode("utf-8")


def _maybe_json(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


class RequestExecutor:
    """Performs one bounded HTTP exchange. Never retries."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        timeout_ms: int,
        default_headers: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.http = http
        self.timeout_ms = timeout_ms
        self.default_headers = dict(default_headers or {})
        self.log = logger or logging.getLogger("codimir_sdk.transport")

    def build_headers(self, token: Optional[str]) -> Dict[str, str]:
        headers = {
            **self.default_headers,
            "Content-Type": JSON_CONTENT_TYPE,
            "Accept": JSON_CONTENT_TYPE,
        }
        headers.update(bearer_headers(token))
        return headers

    async def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        token: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        attempt: int = 0,
    ) -> ExchangeResult:
        method = method.upper()
        start = time.perf_counter()

        # Encoding, header and URL errors count as failed exchanges too.
        try:
            content = encode_body(body)
            headers = self.build_headers(token)
            with anyio.fail_after(self.timeout_ms / 1000):
                resp = await self.http.request(
                    method, path, content=content, headers=headers, params=params
                )
        except Exception as exc:
            self.log.debug(
                "transport.attempt",
                extra={
                    "method": method,
                    "path": path,
                    "status": "exception",
                    "error_type": type(exc).__name__,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                    "attempt": attempt,
                },
            )
            return ExchangeResult(status=NO_RESPONSE_STATUS, exception=exc)

        self.log.debug(
            "transport.attempt",
            extra={
                "method": method,
                "path": path,
                "status": resp.status_code,
                "duration_ms": int((time.perf_counter() - start) * 1000),
                "attempt": attempt,
            },
        )

        if resp.status_code < 200 or resp.status_code >= 300:
            return ExchangeResult(status=resp.status_code, payload=_maybe_json(resp))

        return self._decode_success(resp)

    def _decode_success(self, resp: httpx.Response) -> ExchangeResult:
        # 204 and empty bodies carry no value; JSON null is a value.
        if resp.status_code == 204 or not resp.content:
            return ExchangeResult(status=resp.status_code, no_content=True)

        try:
            value = resp.json()
        except ValueError:
            snippet = (resp.text or "")[:500]
            return ExchangeResult(
                status=resp.status_code,
                error=ApiError(
                    f"Expected JSON from {resp.request.method} "
                    f"{resp.request.url}, got non-JSON body",
                    502,
                    ErrorCode.INVALID_RESPONSE,
                    {"status": resp.status_code, "body": snippet},
                ),
            )
        return ExchangeResult(status=resp.status_code, value=value)


__all__ = [
    "ExchangeResult",
    "RequestExecutor",
    "JSON_CONTENT_TYPE",
    "encode_body",
]
