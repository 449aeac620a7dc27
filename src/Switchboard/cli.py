"""Command line entry point: serve a client, publish its commands, make dev keys."""

from __future__ import annotations

import asyncio
import importlib

import click
import nacl.encoding
import nacl.signing
import structlog
import uvicorn

from Switchboard.client import Client
from Switchboard.config import load_settings
from Switchboard.logging import redact_settings, setup_logging

log = structlog.get_logger()


def load_client(target: str) -> Client:
    """Import ``module:attribute`` and return the Client it names."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter("expected MODULE:ATTRIBUTE", param_hint="TARGET")
    module = importlib.import_module(module_name)
    obj = getattr(module, attr, None)
    if callable(obj) and not isinstance(obj, Client):
        obj = obj()
    if not isinstance(obj, Client):
        raise click.BadParameter(f"{target} is not a Switchboard Client", param_hint="TARGET")
    return obj


@click.group()
def main() -> None:
    """Switchboard interaction server tools."""


@main.command()
@click.argument("target")
@click.option("--endpoint", default=None, help="Interactions endpoint path.")
@click.option("--host", default=None, help="Bind address.")
@click.option("--port", type=int, default=None, help="Bind port.")
def serve(target: str, endpoint: str | None, host: str | None, port: int | None) -> None:
    """Serve TARGET (module:attribute naming a Client) with uvicorn."""
    settings = load_settings()
    setup_logging(settings)
    log.info("app.startup", config=redact_settings(settings))

    client = load_client(target)
    app = asyncio.run(client.listen(endpoint or settings.interactions_endpoint))
    uvicorn.run(app, host=host or settings.app_host, port=port or settings.app_port, log_config=None)


@main.command()
@click.argument("target")
@click.option("--guild", "guild_id", default=None, help="Register to one guild instead of globally.")
def register(target: str, guild_id: str | None) -> None:
    """Publish the command definitions collected by TARGET."""
    settings = load_settings()
    setup_logging(settings)
    client = load_client(target)
    registrar = client.get_registrar()
    if guild_id:
        ok = asyncio.run(registrar.register_guild(guild_id))
    else:
        ok = asyncio.run(registrar.register_global())
    scope = f"guild {guild_id}" if guild_id else "global"
    if not ok:
        click.echo(click.style(f"Failed to register {scope} commands", fg="red", bold=True), err=True)
        raise SystemExit(1)
    click.echo(click.style(f"Registered {len(registrar.definitions)} {scope} command(s)", fg="green"))


@main.command()
def keygen() -> None:
    """Generate an Ed25519 keypair for signing local test requests."""
    signing_key = nacl.signing.SigningKey.generate()
    verify_key = signing_key.verify_key
    click.echo("Add these to your .env file (local testing only):")
    click.echo(f"DISCORD_PUBLIC_KEY={verify_key.encode(encoder=nacl.encoding.HexEncoder).decode()}")
    click.echo(f"DISCORD_PRIVATE_KEY={signing_key.encode(encoder=nacl.encoding.HexEncoder).decode()}")