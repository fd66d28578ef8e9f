import logging

import httpx
import pytest
import respx
from codimir_sdk.core.logging import LogfmtFormatter, setup_logging
from codimir_sdk.core.observability import Diagnostic, LoggingSink, emit, log_event
from codimir_sdk.core.retry import RetryConfig
from codimir_sdk.core.transport import Transport, TransportConfig


def test_log_event_drops_reserved_keys(caplog):
    log = logging.getLogger("codimir_sdk.test")
    with caplog.at_level(logging.INFO, logger="codimir_sdk.test"):
        log_event("thing_happened", log, status=200, name="clobbered", mode="manual")

    record = next(r for r in caplog.records if r.getMessage() == "thing_happened")
    assert record.event == "thing_happened"
    assert record.status == 200
    assert record.mode == "manual"
    assert record.name == "codimir_sdk.test"


def test_logging_sink_forwards_level_and_fields(caplog):
    caplog.set_level(logging.DEBUG, logger="codimir_sdk.realtime")
    sink = LoggingSink()

    emit(sink, "sse.connection_error", logging.WARNING, code="NETWORK_ERROR")

    record = next(
        r for r in caplog.records if r.getMessage() == "sse.connection_error"
    )
    assert record.levelno == logging.WARNING
    assert record.code == "NETWORK_ERROR"


def test_emit_builds_diagnostic():
    seen = []

    emit(seen.append, "sse.cancelled", mode="native")

    assert seen == [
        Diagnostic(name="sse.cancelled", level=logging.INFO, fields={"mode": "native"})
    ]


def test_logfmt_formatter_quotes_values_with_spaces():
    record = logging.LogRecord(
        "codimir_sdk.transport", logging.INFO, __file__, 1, "transport.retry", None, None
    )
    record.method = "GET"
    record.path = "/api/v1/tickets"
    record.code = "SERVICE UNAVAILABLE"

    line = LogfmtFormatter().format(record)

    assert line.startswith("level=info logger=codimir_sdk.transport")
    assert "event=transport.retry" in line
    assert "method=GET" in line
    assert 'code="SERVICE UNAVAILABLE"' in line
    assert "status=" not in line


@pytest.mark.asyncio
@respx.mock
async def test_transport_logs_each_retry(caplog):
    caplog.set_level(logging.INFO, logger="codimir_sdk.transport")
    respx.get("https://api.test/api/v1/tickets").mock(
        side_effect=[httpx.Response(503), httpx.Response(200, json={"items": []})]
    )

    async def no_sleep(_):
        return None

    transport = Transport(
        TransportConfig(
            "https://api.test", retry=RetryConfig(attempts=2, min_delay_ms=100)
        ),
        sleep=no_sleep,
    )
    async with transport:
        await transport.get("/api/v1/tickets")

    retries = [r for r in caplog.records if r.getMessage() == "transport.retry"]
    assert len(retries) == 1
    assert retries[0].status == 503
    assert retries[0].attempt == 0
    assert retries[0].delay_ms == 100
    assert retries[0].method == "GET"


def test_setup_logging_installs_one_logfmt_handler():
    log = logging.getLogger("codimir_sdk")
    previous_handlers, previous_level = list(log.handlers), log.level
    try:
        setup_logging("debug")
        setup_logging("warning")

        assert len(log.handlers) == 1
        assert isinstance(log.handlers[0].formatter, LogfmtFormatter)
        assert log.level == logging.WARNING
    finally:
        log.handlers = previous_handlers
        log.setLevel(previous_level)
