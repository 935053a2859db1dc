"""Keyward admin command line.

Secrets are printed exactly once, when created. Listings show prefixes and
status only.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click

from keyward.config import get_settings
from keyward.db import close_db, get_async_session, init_db
from keyward.errors import KeywardError
from keyward.models import Role
from keyward.services.admin import AdminService, IssuedSecret
from keyward.services.store import CredentialStore

T = TypeVar("T")

_BANNER = "=" * 46
_RULE = "-" * 75


def _run_admin(operation: Callable[[AdminService], Awaitable[T]]) -> T:
    """Run one admin operation against the configured store."""

    async def runner() -> T:
        await init_db(get_settings().database)
        try:
            async with get_async_session() as session:
                return await operation(AdminService(CredentialStore(session)))
        finally:
            await close_db()

    try:
        return asyncio.run(runner())
    except KeywardError as exc:
        raise click.ClickException(exc.message) from exc


def _print_secret(title: str, label: str, issued: IssuedSecret) -> None:
    click.echo(_BANNER)
    click.echo(f"{title} (save this - shown only once!)")
    click.echo(f"{label + ':':<8}{issued.secret.full_secret}")
    click.echo(f"Prefix: {issued.secret.prefix}")
    click.echo(f"User:   {issued.user.email} (id={issued.user.id})")
    click.echo(_BANNER)


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


@click.group()
def cli() -> None:
    """Keyward identity server and credential administration."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", type=int, default=None, help="Port (default from config)")
def serve(host: str | None, port: int | None) -> None:
    """Start the HTTP server."""
    from keyward.main import run

    run(host=host, port=port)


@cli.command("create-user")
@click.option("--email", required=True)
@click.option("--role", required=True, type=click.Choice([r.value for r in Role]))
def create_user(email: str, role: str) -> None:
    """Create a new user."""
    user = _run_admin(lambda admin: admin.create_user(email, role))
    click.echo(f"Created user '{user.email}' with id {user.id}")


@cli.command("create-key")
@click.option("--user-id", required=True, type=int)
def create_key(user_id: int) -> None:
    """Create an API key for a user."""
    issued = _run_admin(lambda admin: admin.create_key(user_id))
    _print_secret("API KEY CREATED", "Key", issued)


@cli.command("revoke-key")
@click.option("--prefix", required=True)
def revoke_key(prefix: str) -> None:
    """Revoke an API key by prefix."""
    _run_admin(lambda admin: admin.revoke_key(prefix))
    click.echo(f"Revoked key with prefix {prefix}")


@cli.command("create-activation-code")
@click.option("--user-id", required=True, type=int)
def create_activation_code(user_id: int) -> None:
    """Create an activation code for a user."""
    issued = _run_admin(lambda admin: admin.create_activation_code(user_id))
    _print_secret("ACTIVATION CODE CREATED", "Code", issued)


@cli.command("list-users")
def list_users() -> None:
    """List all users."""
    users = _run_admin(lambda admin: admin.list_users())
    click.echo(f"{'ID':<5} {'Email':<30} {'Role':<10} {'Status':<12} Created")
    click.echo(_RULE)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.email:<30} {user.role.value:<10} "
            f"{user.subscription_status.value:<12} {_fmt_time(user.created_at)}"
        )


@cli.command("list-keys")
def list_keys() -> None:
    """List all API keys."""
    keys = _run_admin(lambda admin: admin.list_keys())
    click.echo(f"{'ID':<5} {'Prefix':<15} {'User':<30} {'Created':<20} Status")
    click.echo(_RULE)
    for key in keys:
        click.echo(
            f"{key.id:<5} {key.prefix:<15} {key.email:<30} "
            f"{_fmt_time(key.created_at):<20} {key.status}"
        )


@cli.command("list-activation-codes")
def list_activation_codes() -> None:
    """List all activation codes."""
    codes = _run_admin(lambda admin: admin.list_activation_codes())
    click.echo(f"{'ID':<5} {'Prefix':<15} {'User':<30} {'Created':<20} Status")
    click.echo(_RULE)
    for code in codes:
        click.echo(
            f"{code.id:<5} {code.prefix:<15} {code.email:<30} "
            f"{_fmt_time(code.created_at):<20} {code.status}"
        )


@cli.command()
def seed() -> None:
    """Seed development data."""
    click.echo("Seeding development data...\n")
    result = _run_admin(lambda admin: admin.seed())

    for user in result.users:
        click.echo(f"Created user '{user.email}' with id {user.id}")
    for issued in result.keys:
        click.echo(f"\n--- {issued.user.role.value.capitalize()} Key ---")
        _print_secret("API KEY CREATED", "Key", issued)
    click.echo("\n--- Customer Activation Code ---")
    _print_secret("ACTIVATION CODE CREATED", "Code", result.activation_code)
    click.echo("\nSeed data created successfully.")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
