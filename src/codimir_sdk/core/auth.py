"""Bearer token injection. The SDK never stores or refreshes tokens."""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Optional, Union

TokenCallable = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]
TokenProvider = Union[str, None, TokenCallable]
TokenSource = Callable[[], Awaitable[Optional[str]]]


def token_source(provider: TokenProvider) -> TokenSource:
    """
    Wrap a static token, a sync callable or an async callable into one
    awaitable source. Callables are invoked on every call.
    """

    async def _resolve() -> Optional[str]:
        if provider is None or isinstance(provider, str):
            token = provider
        else:
            token = provider()
            if inspect.isawaitable(token):
                token = await token
        return token or None

    return _resolve


def bearer_headers(token: Optional[str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


__all__ = [
    "TokenCallable",
    "TokenProvider",
    "TokenSource",
    "token_source",
    "bearer_headers",
]
