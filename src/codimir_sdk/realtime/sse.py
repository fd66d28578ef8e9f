from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

import httpx

from codimir_sdk.core.observability import DiagnosticSink, LoggingSink, emit
from codimir_sdk.models import Event, parse_event

from .channels import (
    Deliver,
    EventChannel,
    SSEMessage,
    SSEOptions,
    StreamOpener,
    create_event_channel,
)

MessageHandler = Callable[[SSEMessage], Union[None, Awaitable[None]]]
EventHandler = Callable[[Event], Union[None, Awaitable[None]]]


async def _invoke(handler: Callable[[Any], Any], arg: Any) -> None:
    result = handler(arg)
    if inspect.isawaitable(result):
        await result


class Subscription:
    """
    Cancellation handle for one running event feed.

    cancel() is synchronous and idempotent: the first call stops any further
    reconnect and cancels the in-flight read (its response is closed on the
    way out); later calls do nothing. Use `await aclose()` to also wait until
    the connection has been released.
    """

    def __init__(self, channel: EventChannel, deliver: Deliver, sink: DiagnosticSink):
        self._channel = channel
        self._sink = sink
        self._cancelled = False
        self._task = asyncio.get_running_loop().create_task(self._run(deliver))
        self._task.add_done_callback(self._on_done)

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def mode(self) -> str:
        return self._channel.mode

    @property
    def closed(self) -> bool:
        return self._task.done()

    def _is_active(self) -> bool:
        return not self._cancelled

    async def _run(self, deliver: Deliver) -> None:
        try:
            await self._channel.run(deliver, self._is_active)
        finally:
            await self._channel.aclose()

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            emit(
                self._sink,
                "sse.subscription_failed",
                logging.ERROR,
                url=self._channel.options.url,
                mode=self.mode,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._task.cancel()
        emit(self._sink, "sse.cancelled", url=self._channel.options.url, mode=self.mode)

    __call__ = cancel

    async def aclose(self) -> None:
        self.cancel()
        if self._task is asyncio.current_task():
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def _start(
    options: SSEOptions,
    deliver: Deliver,
    *,
    http: Optional[httpx.AsyncClient],
    opener: Optional[StreamOpener],
    sink: DiagnosticSink,
    sleep: Optional[Callable[[float], Awaitable[Any]]],
) -> Subscription:
    kwargs = {"sleep": sleep} if sleep is not None else {}
    channel = create_event_channel(
        options, http=http, opener=opener, sink=sink, **kwargs
    )
    return Subscription(channel, deliver, sink)


def subscribe_sse(
    options: SSEOptions,
    on_message: MessageHandler,
    *,
    http: Optional[httpx.AsyncClient] = None,
    opener: Optional[StreamOpener] = None,
    sink: Optional[DiagnosticSink] = None,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> Subscription:
    """
    Subscribe to raw event frames. Must be called from a running event loop.

    Example:
        sub = subscribe_sse(SSEOptions(url=".../api/v1/events/stream"), print)
        ...
        sub.cancel()
    """
    sink = sink or LoggingSink()

    async def deliver(message: SSEMessage) -> None:
        try:
            await _invoke(on_message, message)
        except Exception as exc:
            emit(
                sink,
                "sse.handler_error",
                logging.WARNING,
                url=options.url,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    return _start(options, deliver, http=http, opener=opener, sink=sink, sleep=sleep)


def subscribe_typed_events(
    options: SSEOptions,
    on_event: Optional[EventHandler] = None,
    *,
    handlers: Optional[Mapping[str, EventHandler]] = None,
    http: Optional[httpx.AsyncClient] = None,
    opener: Optional[StreamOpener] = None,
    sink: Optional[DiagnosticSink] = None,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> Subscription:
    """
    Subscribe to parsed events. Each frame is decoded into an Event and routed
    to handlers[event.type] when present, else to on_event. A frame that fails
    to parse is reported to the sink and skipped; the feed keeps running.
    """
    if on_event is None and not handlers:
        raise ValueError("Provide on_event or at least one typed handler.")
    sink = sink or LoggingSink()
    routes = dict(handlers or {})

    async def deliver(message: SSEMessage) -> None:
        try:
            event = parse_event(json.loads(message.data))
        except ValueError as exc:
            emit(
                sink,
                "sse.parse_error",
                logging.WARNING,
                url=options.url,
                error=str(exc),
                data=message.data[:200],
            )
            return

        handler = routes.get(event.type, on_event)
        if handler is None:
            return
        try:
            await _invoke(handler, event)
        except Exception as exc:
            emit(
                sink,
                "sse.handler_error",
                logging.WARNING,
                url=options.url,
                event_type=event.type,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    return _start(options, deliver, http=http, opener=opener, sink=sink, sleep=sleep)


__all__ = [
    "EventHandler",
    "MessageHandler",
    "Subscription",
    "subscribe_sse",
    "subscribe_typed_events",
]
