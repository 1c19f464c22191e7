"""deskwatch entry point: wires components together and runs the server."""

from __future__ import annotations

import asyncio
import json
import signal
import sys

import click

from deskwatch.config import Settings, load_settings
from deskwatch.context import build_context
from deskwatch.errors import DeskwatchError
from deskwatch.notify.formatter import priority_label
from deskwatch.utils.logging import get_logger, setup_logging
from deskwatch.webhooks.server import WebhookServer

log = get_logger(__name__)


async def run(settings: Settings) -> None:
    server = WebhookServer(build_context(settings))

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await server.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await server.stop()


async def _list_tickets(settings: Settings, days: int | None, tag: str | None) -> dict:
    context = build_context(settings)
    try:
        return await context.tickets.list_tickets(days_back=days, tag=tag)
    finally:
        await context.close()


async def _check(settings: Settings) -> bool:
    context = build_context(settings)
    try:
        click.echo(f"Monitored tags: {', '.join(context.tag_config.patterns)}"
                   f" (case {'sensitive' if context.tag_config.case_sensitive else 'insensitive'})")
        return await context.gateway.validate_connection()
    finally:
        await context.close()


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML file")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """Relay Linear service desk hashtags to Slack."""
    settings = load_settings(config_path)
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)
    ctx.obj = settings


@cli.command()
@click.option("--host", default=None, help="Bind address")
@click.option("--port", type=int, default=None, help="Listen port")
@click.pass_obj
def serve(settings: Settings, host: str | None, port: int | None) -> None:
    """Run the webhook server."""
    if host:
        settings.server.bind = host
    if port:
        settings.server.port = port
    asyncio.run(run(settings))


@cli.command()
@click.option("--days", type=int, default=None, help="How many days back to scan")
@click.option("--tag", default=None, help="Only show tickets with this tag")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
@click.pass_obj
def tickets(settings: Settings, days: int | None, tag: str | None, as_json: bool) -> None:
    """List recent comments carrying monitored tags."""
    try:
        payload = asyncio.run(_list_tickets(settings, days, tag))
    except DeskwatchError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(payload, indent=2))
        return

    for ticket in payload["tickets"]:
        issue = ticket["issue"]
        comment = ticket["comment"]
        click.echo(
            f"{comment['createdAt']}  {issue['identifier']:<10} "
            f"{priority_label(issue['priority']):<10} {', '.join(ticket['matchedTags']):<20} "
            f"{issue['title']}"
        )
    suffix = " (truncated, older comments not scanned)" if payload["truncated"] else ""
    click.echo(f"{len(payload['tickets'])} ticket(s){suffix}")


@cli.command()
@click.pass_obj
def check(settings: Settings) -> None:
    """Verify the Linear API key and show the resolved tag patterns."""
    if not asyncio.run(_check(settings)):
        raise click.ClickException("Could not connect to Linear")
    click.echo("Linear connection OK")


if __name__ == "__main__":
    cli()
