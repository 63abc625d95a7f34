from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import click
import schedule
from rich.console import Console
from rich.table import Table

from models.message import PollResult
from services.auth_service import AuthService
from services.errors import AutoResponderError
from services.gmail_service import GmailService
from services.label_manager import LabelManager
from services.persistence_service import JsonRepliedStore
from services.poll_loop import PollLoop, random_interval
from services.reply_sender import ReplySender
from services.statistics_service import StatisticsService
from utils.config import AppConfig, load_config
from utils.logger import configure_logging


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppContext:
    config: AppConfig
    stats: StatisticsService
    replied_store: JsonRepliedStore
    console: Console


@dataclass(slots=True)
class Responder:
    gmail: GmailService
    labels: LabelManager
    loop: PollLoop
    label_id: str


def build_context(env_file: str) -> AppContext:
    config = load_config(env_file)
    configure_logging(config.log_dir, config.log_level)
    return AppContext(
        config=config,
        stats=StatisticsService(config.stats_file),
        replied_store=JsonRepliedStore(config.replied_ids_file),
        console=Console(),
    )


def build_gmail(app: AppContext) -> GmailService:
    auth_service = AuthService(app.config.credentials_file, app.config.token_file)
    return GmailService.from_auth(auth_service, app.config.user_id)


def build_responder(app: AppContext) -> Responder:
    gmail = build_gmail(app)
    labels = LabelManager(gmail)
    responder_config = app.config.responder
    label_id = labels.ensure_label(responder_config.label_name)
    LOGGER.info("Using label %s with ID %s", responder_config.label_name, label_id)
    sender = ReplySender(gmail, labels, app.replied_store, responder_config)
    loop = PollLoop(
        gmail,
        sender,
        label_id,
        interval=random_interval(app.config.min_interval, app.config.max_interval),
        on_iteration=app.stats.record_poll,
    )
    return Responder(gmail=gmail, labels=labels, loop=loop, label_id=label_id)


@click.group()
@click.option("--env-file", default=".env", show_default=True, help="Path to the .env file")
@click.pass_context
def cli(ctx: click.Context, env_file: str) -> None:
    """Reply once to every new top-level message under a Gmail label."""

    try:
        ctx.obj = build_context(env_file)
    except (ValueError, FileNotFoundError) as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc


@cli.command("run")
@click.option("--max-iterations", type=int, default=None, help="Stop after this many polls")
@click.pass_obj
def run(app: AppContext, max_iterations: Optional[int]) -> None:
    """Poll the label forever, sleeping a random interval between polls."""

    responder = _start(app)
    app.console.print(
        f"Watching label [bold]{app.config.responder.label_name}[/bold] every "
        f"{app.config.min_interval}-{app.config.max_interval}s. Press Ctrl+C to stop."
    )
    try:
        responder.loop.run(max_iterations=max_iterations)
    except KeyboardInterrupt:
        app.console.print("Responder stopped.")
    except AutoResponderError as exc:
        LOGGER.exception("Poll loop stopped")
        raise click.ClickException(str(exc)) from exc


@cli.command("poll")
@click.pass_obj
def poll(app: AppContext) -> None:
    """Run a single poll iteration and print a summary."""

    responder = _start(app)
    try:
        result = responder.loop.run_once()
    except AutoResponderError as exc:
        LOGGER.exception("Poll failed")
        raise click.ClickException(str(exc)) from exc
    app.console.print(_summarize(result))


@cli.command("schedule")
@click.option("--interval", type=int, default=2, show_default=True, help="Interval in minutes")
@click.pass_obj
def schedule_polls(app: AppContext, interval: int) -> None:
    """Poll on a fixed interval using the schedule library."""

    responder = _start(app)

    def job() -> None:
        result = responder.loop.run_once()
        app.console.print(f"[scheduler] {_summarize(result)}")

    schedule.every(interval).minutes.do(job)

    app.console.print(
        f"Polling label {app.config.responder.label_name} every {interval} minute(s). Press Ctrl+C to stop."
    )
    try:
        job()
        while True:
            schedule.run_pending()
            time.sleep(1)
    except KeyboardInterrupt:
        app.console.print("Scheduler stopped.")
    except AutoResponderError as exc:
        LOGGER.exception("Scheduled poll failed")
        raise click.ClickException(str(exc)) from exc
    finally:
        schedule.clear()


@cli.command("create-label")
@click.argument("label_name")
@click.pass_obj
def create_label(app: AppContext, label_name: str) -> None:
    """Create a Gmail label if it does not exist."""

    try:
        label_id = LabelManager(build_gmail(app)).ensure_label(label_name)
    except AutoResponderError as exc:
        raise click.ClickException(str(exc)) from exc
    app.console.print(f"Label {label_name} is ready (id: {label_id}).")


@cli.command("replied")
@click.pass_obj
def replied(app: AppContext) -> None:
    """List message ids that already received a reply."""

    try:
        ids = sorted(app.replied_store.ids())
    except AutoResponderError as exc:
        raise click.ClickException(str(exc)) from exc
    if not ids:
        app.console.print("No replies recorded yet.")
        return

    table = Table(title=f"Replied messages ({app.replied_store.path.name})")
    table.add_column("Message ID", overflow="fold")
    for message_id in ids:
        table.add_row(message_id)
    app.console.print(table)


@cli.command("stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Display local activity statistics."""

    snapshot = app.stats.snapshot()
    if not snapshot:
        app.console.print("No stats recorded yet.")
        return

    table = Table(title="Responder stats")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Poll runs", str(snapshot.get("poll_runs", 0)))
    table.add_row("Messages seen", str(snapshot.get("messages_seen", 0)))
    table.add_row("Replies sent", str(snapshot.get("replies_sent", 0)))
    table.add_row("Skipped replies", str(snapshot.get("skipped_replies", 0)))
    table.add_row("Already replied", str(snapshot.get("already_replied", 0)))
    table.add_row("Failed", str(snapshot.get("failed", 0)))
    table.add_row("Last poll", snapshot.get("last_poll_at", "-"))
    app.console.print(table)


def main() -> None:
    cli(standalone_mode=True)


def _start(app: AppContext) -> Responder:
    try:
        return build_responder(app)
    except AutoResponderError as exc:
        LOGGER.error("Startup failed: %s", exc)
        raise click.ClickException(str(exc)) from exc


def _summarize(result: PollResult) -> str:
    return (
        f"{result.listed} listed, {result.replies_sent} replied, "
        f"{result.skipped_replies} replies skipped, {result.already_replied} already handled, "
        f"{result.failed} failed"
    )


if __name__ == "__main__":
    main()
