"""SMS Relay CLI — control the listener and inject test deliveries.

Usage:
    smsrelay start                                  # startListening
    smsrelay stop                                   # stopListening
    smsrelay status                                 # Listener state + counters
    smsrelay send --from +15550100 "Hi " "there"    # Deliver a 2-fragment SMS
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
import time
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("SMSRELAY_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the SMS Relay server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=10.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. Click's CliRunner inside an async
    test) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(response: httpx.Response) -> None:
    try:
        detail = response.json().get("detail", response.text)
    except json.JSONDecodeError:
        detail = response.text
    click.secho(f"Error ({response.status_code}): {detail}", fg="red", err=True)
    sys.exit(1)


def _state_color(state: str) -> str:
    return {"listening": "green", "idle": "yellow"}.get(state, "white")


async def _command(method: str) -> bool:
    async with _client() as c:
        r = await c.post("/api/v1/listener/commands", json={"method": method})
        if r.status_code != 200:
            _fail(r)
        return r.json()["result"]


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="smsrelay")
def main():
    """SMS Relay — merge SMS fragments and stream completed messages."""


@main.command()
def start():
    """Start listening for SMS deliveries."""
    ok = _run(_command("startListening"))
    click.secho("Listening" if ok else "Start failed", fg="green" if ok else "red")


@main.command()
def stop():
    """Stop listening for SMS deliveries."""
    ok = _run(_command("stopListening"))
    click.secho("Stopped" if ok else "Stop failed", fg="green" if ok else "red")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def status(as_json: bool):
    """Show listener state and delivery counters."""
    _run(_status_impl(as_json))


async def _status_impl(as_json: bool):
    async with _client() as c:
        r = await c.get("/api/v1/listener")
        if r.status_code != 200:
            _fail(r)
        data = r.json()

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"  State:      {click.style(data['state'], fg=_state_color(data['state']))}")
    click.echo(f"  Source:     {data['source']}")
    click.echo(f"  Subscriber: {'attached' if data['subscriber_attached'] else 'none'}")
    click.echo(f"  Sessions:   {data['sessions']}")
    click.echo(f"  Delivered:  {data['delivered']}  Dropped: {data['dropped']}")


@main.command()
@click.argument("parts", nargs=-1, required=True)
@click.option("--from", "sender", default="", help="Originating address")
@click.option("--timestamp", type=int, help="Delivery timestamp in ms (default: now)")
def send(parts: tuple[str, ...], sender: str, timestamp: Optional[int]):
    """Deliver one SMS made of PARTS (one fragment each)."""
    ts = timestamp if timestamp is not None else int(time.time() * 1000)
    batch = {
        "fragments": [
            {"originating_address": sender, "body": part, "delivery_timestamp": ts}
            for part in parts
        ],
    }
    receivers = _run(_send_impl(batch))
    if receivers:
        click.secho(f"Delivered to {receivers} receiver(s)", fg="green")
    else:
        click.secho("No receivers — is the listener started?", fg="yellow")


async def _send_impl(batch: dict) -> int:
    async with _client() as c:
        r = await c.post("/api/v1/sms/deliveries", json=batch)
        if r.status_code != 202:
            _fail(r)
        return r.json()["receivers"]


if __name__ == "__main__":
    main()
