"""Marketplace CLI — browse assistants, place orders, manage your account.

Usage:
    marketplace register you@example.com             # Create an account (prompts for password)
    marketplace login you@example.com                # Sign in, saves tokens locally
    marketplace whoami                               # Show the signed-in profile
    marketplace assistants --category productivity   # Browse the catalog
    marketplace assistant sales-pro                  # Details + latest reviews
    marketplace demo sales-pro "hello there"         # Try an assistant
    marketplace order <assistant-id> setup           # Place an order
    marketplace orders                               # Your order history
    marketplace cancel <order-id>                    # Cancel a pending order
    marketplace review <order-id> 5 -c "great"       # Review a completed order
    marketplace stats                                # Orders, reviews, total spent
    marketplace logout                               # Revoke and forget tokens
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click

from marketplace import __version__
from marketplace.cli.client import (
    DEFAULT_API_URL,
    ClientError,
    CredentialStore,
    MarketplaceClient,
)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


def _api_url() -> str:
    return os.environ.get("MARKETPLACE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> MarketplaceClient:
    """Build an API client pointed at the marketplace backend."""
    return MarketplaceClient(_api_url(), CredentialStore.default())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. CliRunner inside an async test) by
    offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _call(coro):
    """Run a client call; print the API's error message and exit 1 on failure."""
    try:
        return _run(coro)
    except ClientError as e:
        click.secho(f"Error: {e.message}", fg="red", err=True)
        for detail in e.errors:
            click.secho(f"  - {detail}", fg="red", err=True)
        sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(
            str(row.get(k) if row.get(k) is not None else "—")[:w].ljust(w)
            for _, k, w in columns
        )
        click.echo(line)


def _status_color(status: str) -> str:
    colors = {
        "pending": "yellow",
        "processing": "cyan",
        "completed": "green",
        "cancelled": "red",
        "refunded": "magenta",
    }
    return colors.get(status, "white")


def _print_meta(meta: dict) -> None:
    click.echo(
        f"\nPage {meta['page']} of {max(meta['totalPages'], 1)} "
        f"({meta['total']} total)"
    )


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="marketplace")
def main():
    """AI assistant marketplace client.

    Set MARKETPLACE_API_URL to point at your backend (default: localhost:3001).
    """


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.password_option()
@click.option("--first-name", help="First name")
@click.option("--last-name", help="Last name")
@click.option("--phone", help="Phone number, e.g. +15551234567")
def register(email: str, password: str, first_name: Optional[str],
             last_name: Optional[str], phone: Optional[str]):
    """Create an account and sign in."""
    fields = {"email": email, "password": password}
    if first_name:
        fields["firstName"] = first_name
    if last_name:
        fields["lastName"] = last_name
    if phone:
        fields["phone"] = phone
    user = _call(_register_impl(fields))
    click.secho(f"✓ Registered {user['email']}", fg="green")


async def _register_impl(fields: dict) -> dict:
    async with _client() as c:
        return await c.register(**fields)


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Sign in and save tokens locally."""
    user = _call(_login_impl(email, password))
    click.secho(f"✓ Logged in as {user['email']} ({user['subscriptionTier']})", fg="green")


async def _login_impl(email: str, password: str) -> dict:
    async with _client() as c:
        return await c.login(email, password)


@main.command()
def logout():
    """Revoke refresh tokens on the server and forget the local session."""
    _call(_logout_impl())
    click.secho("✓ Logged out", fg="green")


async def _logout_impl() -> None:
    async with _client() as c:
        await c.logout()


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw profile")
def whoami(as_json: bool):
    """Show the signed-in user's profile."""
    profile = _call(_get_impl("/auth/profile"))["data"]
    if as_json:
        click.echo(_pretty_json(profile))
        return
    name = " ".join(p for p in (profile.get("firstName"), profile.get("lastName")) if p)
    click.secho(profile["email"], bold=True)
    if name:
        click.echo(f"  Name: {name}")
    click.echo(f"  Tier: {profile['subscriptionTier']}")
    click.echo(f"  Since: {profile['createdAt'][:10]}")


async def _get_impl(path: str, *, auth: bool = True, params: Optional[dict] = None) -> dict:
    async with _client() as c:
        return await c.request("GET", path, auth=auth, params=params)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@main.command()
@click.option("--category", "-c", help="Filter by category")
@click.option("--search", "-s", help="Search name and description")
@click.option("--page", "-p", default=1, help="Page number")
@click.option("--limit", "-l", default=12, help="Results per page")
def assistants(category: Optional[str], search: Optional[str], page: int, limit: int):
    """List active assistants."""
    params = {"page": page, "limit": limit}
    if category:
        params["category"] = category
    if search:
        params["search"] = search
    body = _call(_get_impl("/assistants", auth=False, params=params))

    rows = body["data"]
    if not rows:
        click.echo("No assistants found.")
        return
    for row in rows:
        rating = row.get("averageRating")
        row["rating"] = f"{rating:.1f}" if rating is not None else None
    _print_table(
        rows,
        [
            ("SLUG", "slug", 22),
            ("NAME", "name", 24),
            ("CATEGORY", "category", 16),
            ("RATING", "rating", 6),
            ("ORDERS", "totalOrders", 6),
        ],
    )
    _print_meta(body["meta"])


@main.command()
@click.argument("slug")
def assistant(slug: str):
    """Show one assistant with its latest reviews."""
    a = _call(_get_impl(f"/assistants/{slug}", auth=False))["data"]
    click.secho(f"{a['name']}  ({a['slug']})", bold=True)
    click.echo(f"  ID: {a['id']}")
    click.echo(f"  Category: {a['category']}")
    if a.get("averageRating") is not None:
        click.echo(f"  Rating: {a['averageRating']:.1f} from {a['totalReviews']} review(s)")
    click.echo(f"  Orders: {a['totalOrders']}")
    if a.get("description"):
        click.echo(f"\n  {a['description']}")
    for tier in a.get("pricing") or []:
        click.echo(f"  • {tier.get('name')}: {tier.get('price')} {tier.get('currency', '')}")
    if a.get("reviews"):
        click.secho("\nLatest reviews:", bold=True)
        for r in a["reviews"]:
            who = (r.get("user") or {}).get("firstName") or "anonymous"
            click.echo(f"  {'★' * r['rating']:<5}  {who}: {r.get('comment') or ''}")


@main.command()
@click.argument("slug")
@click.argument("message")
def demo(slug: str, message: str):
    """Send a demo message to an assistant."""
    body = _call(_demo_impl(slug, message))
    click.secho(f"{body['data']['assistant']}:", bold=True)
    click.echo(body["data"]["response"])


async def _demo_impl(slug: str, message: str) -> dict:
    async with _client() as c:
        return await c.request(
            "POST", f"/assistants/{slug}/demo", auth=False, json={"message": message}
        )


# ---------------------------------------------------------------------------
# Orders & reviews
# ---------------------------------------------------------------------------


@main.command()
@click.argument("assistant_id")
@click.argument("services", nargs=-1, required=True)
@click.option("--notes", "-n", help="Notes for the order")
def order(assistant_id: str, services: tuple[str, ...], notes: Optional[str]):
    """Place an order for an assistant."""
    payload = {
        "assistantId": assistant_id,
        "serviceDetails": [{"serviceType": s, "quantity": 1} for s in services],
    }
    if notes:
        payload["notes"] = notes
    o = _call(_send_impl("POST", "/orders", payload))["data"]
    click.secho(f"✓ Order {o['id']} placed", fg="green")
    click.echo(f"  {o['assistant']['name']} — {o['totalAmount']:.2f} {o['currency']}")


async def _send_impl(method: str, path: str, payload: Optional[dict] = None) -> dict:
    async with _client() as c:
        if payload is None:
            return await c.request(method, path)
        return await c.request(method, path, json=payload)


@main.command()
@click.option("--page", "-p", default=1, help="Page number")
@click.option("--limit", "-l", default=10, help="Results per page")
def orders(page: int, limit: int):
    """List your orders, newest first."""
    body = _call(_get_impl("/users/orders", params={"page": page, "limit": limit}))
    rows = body["data"]
    if not rows:
        click.echo("No orders yet.")
        return
    for row in rows:
        row["assistantName"] = row["assistant"]["name"]
        row["amount"] = f"{row['totalAmount']:.2f} {row['currency']}"
        row["created"] = row["createdAt"][:10]
    _print_table(
        rows,
        [
            ("ID", "id", 36),
            ("ASSISTANT", "assistantName", 22),
            ("STATUS", "status", 10),
            ("AMOUNT", "amount", 12),
            ("CREATED", "created", 10),
        ],
    )
    _print_meta(body["meta"])


@main.command()
@click.argument("order_id")
def cancel(order_id: str):
    """Cancel a pending order."""
    o = _call(_send_impl("PUT", f"/orders/{order_id}/cancel"))["data"]
    click.secho(f"✓ Order {o['id']} ", fg="green", nl=False)
    click.secho(o["status"], fg=_status_color(o["status"]))


@main.command()
@click.argument("order_id")
@click.argument("rating", type=click.IntRange(1, 5))
@click.option("--comment", "-c", help="Review text")
def review(order_id: str, rating: int, comment: Optional[str]):
    """Review a completed order (1-5 stars)."""
    payload = {"rating": rating}
    if comment:
        payload["comment"] = comment
    _call(_send_impl("POST", f"/orders/{order_id}/review", payload))
    click.secho(f"✓ Reviewed order {order_id} ({rating}/5)", fg="green")


@main.command()
def stats():
    """Orders placed, reviews written and total spent."""
    s = _call(_get_impl("/users/stats"))["data"]
    click.echo(f"  Orders:      {s['ordersCount']}")
    click.echo(f"  Reviews:     {s['reviewsCount']}")
    click.echo(f"  Total spent: {s['totalSpent']:.2f}")


if __name__ == "__main__":
    main()
