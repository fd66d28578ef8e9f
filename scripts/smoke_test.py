from __future__ import annotations

import asyncio
import os
import sys
from datetime import datetime, timezone
from typing import Optional

from codimir_sdk import ApiError, ClientSettings, CodimirClient, setup_logging
from codimir_sdk.models import Event


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(name)
    return val if val else default


def _print_step(title: str) -> None:
    print(f"\n== {title}")


def _fail(msg: str) -> int:
    print(f"FAILED: {msg}")
    return 1


async def run_smoke_test() -> int:
    # --- Config ---
    try:
        settings = ClientSettings.from_env()
    except ValueError as exc:
        return _fail(str(exc))
    setup_logging(settings.log_level)

    listen_s = float(_env("SMOKE_TEST_LISTEN_S", "3") or 3)
    cleanup = _env("SMOKE_TEST_CLEANUP", "1") == "1"

    print("Config:")
    print(f"  base_url: {settings.base_url}")
    print(f"  has_token: {bool(settings.api_key)}")
    print(f"  listen_s: {listen_s}")
    print(f"  cleanup: {cleanup}")

    events: list[Event] = []

    async with CodimirClient.from_settings(settings) as client:
        # --- Connectivity ---
        _print_step("Test connection")
        try:
            await client.test_connection()
        except ApiError as exc:
            return _fail(f"{exc.message} ({exc.code})")
        print("Connected")

        # --- Subscribe ---
        _print_step("Subscribe to events")
        subscription = client.subscribe(events.append)
        print(f"Subscribed (mode={subscription.mode})")

        # --- Create ticket ---
        _print_step("Create ticket")
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        try:
            ticket = await client.tickets.create(
                {"title": f"Smoke Test {stamp}", "description": "Smoke test artifact."}
            )
        except ApiError as exc:
            await subscription.aclose()
            return _fail(f"Create failed: {exc.message} ({exc.code})")
        print(f"Created ticket id={ticket.id}")

        # --- Update ticket ---
        _print_step("Update ticket")
        try:
            updated = await client.tickets.update(ticket.id, {"status": "in-progress"})
        except ApiError as exc:
            await subscription.aclose()
            return _fail(f"Update failed: {exc.message} ({exc.code})")
        if updated.status != "in-progress":
            await subscription.aclose()
            return _fail(f"Expected status 'in-progress', got '{updated.status}'")
        print("Update OK")

        # --- Listen ---
        _print_step("Listen")
        await asyncio.sleep(listen_s)
        await subscription.aclose()
        print(f"Received {len(events)} event(s): {[e.type for e in events]}")

        # --- Cleanup (optional) ---
        _print_step("Cleanup")
        if cleanup:
            await client.tickets.remove(ticket.id)
            print(f"Deleted ticket id={ticket.id}")
        else:
            print("Cleanup skipped (SMOKE_TEST_CLEANUP=0). Ticket left in system.")

    print("\nPASSED smoke test.")
    return 0


def main() -> int:
    return asyncio.run(run_smoke_test())


if __name__ == "__main__":
    sys.exit(main())
