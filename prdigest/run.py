"""Main entry point for the PR digest bot."""

import asyncio
import json
import logging
import os
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from .commands import CommandRouter
from .config import Settings, settings
from .database import create_key_value_store
from .digest import DigestProducer
from .directory import Directory
from .events import EventBus
from .github import GitHubClient
from .notifiers import DigestDelivery, NotificationError, SlackNotifier
from .recurrence import RecurrenceSpec
from .runtime import BotRuntime
from .scheduler import SchedulerEngine
from .service import DigestService
from .subscriptions import SubscriptionStore

console = Console()


def setup_logging(level: str) -> None:
    """Set up logging with Rich handler or JSON lines."""
    log_level = getattr(logging, level.upper())
    if settings.log_json:

        class JsonFormatter(logging.Formatter):
            def format(self, record: logging.LogRecord) -> str:
                payload = {
                    "level": record.levelname,
                    "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
                    "message": record.getMessage(),
                    "name": record.name,
                }
                return json.dumps(payload)

        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=log_level, handlers=[handler])
    else:
        logging.basicConfig(
            level=log_level,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True)],
        )
    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(max(log_level, logging.WARNING))


logger = logging.getLogger(__name__)


def create_service(config: Settings, notifier: Optional[SlackNotifier] = None) -> DigestService:
    """Wire the digest service from configuration."""
    client = GitHubClient(
        token=config.github_token,
        api_url=config.github_api_url,
        timeout=config.http_timeout_seconds,
    )
    directory = Directory(client)
    default_frequency = RecurrenceSpec.default(
        config.default_digest_hour, config.default_digest_minute
    )
    bus = EventBus()
    if notifier is not None:
        bus.subscribe(DigestDelivery(notifier, dry_run=config.dry_run))

    return DigestService(
        store=SubscriptionStore(create_key_value_store(config.database_file)),
        engine=SchedulerEngine(default_frequency, timezone=config.schedule_timezone),
        producer=DigestProducer(client, directory),
        directory=directory,
        bus=bus,
    )


async def _digest_once(
    service: DigestService,
    user: Optional[str],
    team: Optional[str],
    org: Optional[str],
) -> str:
    request = await service.build_request(user=user, team=team, organization=org)
    result = await service.run_once(request)
    return result.text


@click.command()
@click.option(
    "--once",
    "once_room",
    default=None,
    help="Post a single digest to this room and exit instead of serving",
)
@click.option("--user", default=None, help="With --once: only PRs by this login")
@click.option("--team", default=None, help="With --once: only PRs by this team")
@click.option("--org", default=None, help="With --once: only this organization")
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Build digests but don't post them",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Set logging level",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port for the Slack events server (defaults to PORT or 8000)",
)
def main(
    once_room: Optional[str],
    user: Optional[str],
    team: Optional[str],
    org: Optional[str],
    dry_run: bool,
    log_level: str,
    port: Optional[int],
) -> None:
    """Slack bot posting open pull request digests on a schedule."""
    # Override config with CLI options
    if dry_run:
        settings.dry_run = True
    if log_level:
        settings.log_level = log_level

    setup_logging(settings.log_level)

    try:
        settings.validate_github_config()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    if not settings.slack_bot_token and not settings.dry_run:
        logger.error("SLACK_BOT_TOKEN is required unless --dry-run is set")
        sys.exit(1)

    notifier = SlackNotifier(settings.slack_bot_token or "")

    if once_room:
        service = create_service(settings)
        try:
            text = asyncio.run(_digest_once(service, user, team, org))
        except Exception as e:
            logger.error(f"Failed to build digest: {e}")
            sys.exit(1)

        if settings.dry_run:
            console.print(f"\n[yellow]DRY RUN - Would post to {once_room}:[/yellow]")
            console.print("\n" + "=" * 50)
            console.print(text)
            console.print("=" * 50 + "\n")
            return

        try:
            notifier.send(once_room, text)
        except NotificationError as e:
            console.print(f"[red]❌ Notification failed:[/red] {e}")
            sys.exit(1)
        return

    from .slack_app import SlackApp
    from .web_server import create_web_server

    if not settings.has_slack_credentials():
        if settings.is_production():
            logger.error(
                "Server mode requires SLACK_BOT_TOKEN and SLACK_SIGNING_SECRET in production"
            )
            sys.exit(1)
        logger.warning("Slack credentials incomplete - running without verification")

    service = create_service(settings, notifier)
    runtime = BotRuntime(service)
    runtime.start()

    slack_app = SlackApp(
        runtime,
        CommandRouter(service, settings.bot_name),
        notifier,
        signing_secret=settings.slack_signing_secret,
    )
    app = create_web_server(slack_app)

    if port is None:
        port = int(os.environ.get("PORT", 8000))

    logger.info(f"🚀 Starting Slack events server on port {port}")
    try:
        app.run(host="0.0.0.0", port=port, debug=False)
    except KeyboardInterrupt:
        logger.info("Web server stopped")
    finally:
        runtime.stop()


if __name__ == "__main__":
    main()
