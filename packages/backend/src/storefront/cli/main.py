"""Storefront CLI — talk to a running Storefront API.

Usage:
    storefront register a@x.com                  # prompts for password
    storefront confirm --link "<url from email>" # or: confirm USER_ID CODE
    storefront login a@x.com                     # prints the bearer token
    storefront clients list --token $TOKEN
    storefront clients add Ada Lovelace --phone 555-0100 --token $TOKEN
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional
from urllib.parse import parse_qs, urlparse

import click
import httpx

from storefront import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("STOREFRONT_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Storefront backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. CliRunner inside an async test)
    by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _fail(r: httpx.Response) -> None:
    """Print the API's error list and exit non-zero."""
    try:
        body = r.json()
    except ValueError:
        body = {"errors": [r.text or r.reason_phrase]}
    errors = body.get("errors") if isinstance(body, dict) else None
    if not errors:
        errors = [str(body.get("detail", body)) if isinstance(body, dict) else str(body)]
    for e in errors:
        click.secho(f"Error ({r.status_code}): {e}", fg="red", err=True)
    sys.exit(1)


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("STOREFRONT_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set STOREFRONT_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def parse_confirmation_link(link: str) -> tuple[str, str]:
    """Pull userId and code out of a confirmation URL."""
    query = parse_qs(urlparse(link).query)
    return query.get("userId", [""])[0], query.get("code", [""])[0]


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="storefront")
def main():
    """Storefront — accounts and clients from the command line."""


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.password_option()
def register(email: str, password: str):
    """Register EMAIL. A confirmation link is mailed to it."""
    _run(_register_impl(email, password))


async def _register_impl(email: str, password: str):
    async with _client() as c:
        r = await c.post(
            "/api/Authentication/Register",
            json={"email": email, "password": password},
        )
    if r.status_code != 200:
        _fail(r)
    click.secho(f"Registered {email}. Check your inbox to confirm.", fg="green")


@main.command()
@click.argument("user_id", required=False, default="")
@click.argument("code", required=False, default="")
@click.option("--link", help="Full confirmation URL from the email")
def confirm(user_id: str, code: str, link: Optional[str]):
    """Confirm an email address with USER_ID and CODE (or --link)."""
    if link:
        user_id, code = parse_confirmation_link(link)
    _run(_confirm_impl(user_id, code))


async def _confirm_impl(user_id: str, code: str):
    async with _client() as c:
        r = await c.get(
            "/api/Authentication/ConfirmEmail",
            params={"userId": user_id, "code": code},
        )
    if r.status_code != 200:
        _fail(r)
    click.echo(r.text)


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in as EMAIL and print the bearer token."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client() as c:
        r = await c.post(
            "/api/Authentication/Login",
            json={"email": email, "password": password},
        )
    if r.status_code != 200:
        _fail(r)
    click.echo(r.json()["token"])


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


@main.group()
def clients():
    """Manage store clients (requires a login token)."""


@clients.command("list")
@click.option("--token", help="Bearer token (or set STOREFRONT_TOKEN)")
def clients_list(token: Optional[str]):
    """List all clients."""
    _run(_clients_list_impl(_require_token(token)))


async def _clients_list_impl(token: str):
    async with _client(token) as c:
        r = await c.get("/api/Clients")
    if r.status_code != 200:
        _fail(r)
    rows = r.json()
    if not rows:
        click.echo("No clients.")
        return
    for row in rows:
        click.echo(
            f"#{row['id']:<5} {row['first_name']} {row['last_name']}"
            f"  {row.get('phone') or ''}"
        )


@clients.command("add")
@click.argument("first_name")
@click.argument("last_name")
@click.option("--phone")
@click.option("--address")
@click.option("--birth-date", help="YYYY-MM-DD")
@click.option("--token", help="Bearer token (or set STOREFRONT_TOKEN)")
def clients_add(first_name: str, last_name: str, phone: Optional[str],
                address: Optional[str], birth_date: Optional[str],
                token: Optional[str]):
    """Create a client."""
    body = {
        "first_name": first_name,
        "last_name": last_name,
        "phone": phone,
        "address": address,
        "birth_date": birth_date,
    }
    _run(_clients_add_impl(_require_token(token), body))


async def _clients_add_impl(token: str, body: dict):
    async with _client(token) as c:
        r = await c.post("/api/Clients", json=body)
    if r.status_code != 201:
        _fail(r)
    click.echo(_pretty_json(r.json()))


@clients.command("delete")
@click.argument("client_id", type=int)
@click.option("--token", help="Bearer token (or set STOREFRONT_TOKEN)")
def clients_delete(client_id: int, token: Optional[str]):
    """Delete a client by id."""
    _run(_clients_delete_impl(_require_token(token), client_id))


async def _clients_delete_impl(token: str, client_id: int):
    async with _client(token) as c:
        r = await c.delete(f"/api/Clients/{client_id}")
    if r.status_code != 204:
        _fail(r)
    click.secho(f"Deleted client #{client_id}", fg="green")


if __name__ == "__main__":
    main()
