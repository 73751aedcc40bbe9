"""Chat commands: parsing, dispatch and listing tables."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .errors import DigestBotError, ValidationError
from .models import DigestRequest
from .service import DigestService

logger = logging.getLogger(__name__)

ACTIONS = ("digest", "subscribe", "unsubscribe", "list", "refresh", "help")

CLAUSE_PATTERN = re.compile(
    r'\s*(?:(?P<key>user|team|org):(?P<value>[^\s"]+)|cron:"(?P<cron>[^"]*)")',
    re.IGNORECASE,
)


@dataclass
class Command:
    action: str
    user: Optional[str] = None
    team: Optional[str] = None
    org: Optional[str] = None
    schedule: Optional[str] = None
    request_id: Optional[int] = None
    list_all: bool = False


def parse_command(text: str, bot_name: str = "pr") -> Optional[Command]:
    """Parse ``<bot_name> <action> [clauses]``.

    Returns None for messages not addressed to the bot and raises
    ValidationError for malformed commands that are.
    """
    match = re.match(
        rf"^\s*@?{re.escape(bot_name)}[:,]?\s+(?P<action>\w+)(?P<rest>.*)$",
        text or "",
        re.IGNORECASE | re.DOTALL,
    )
    if not match:
        return None

    action = match.group("action").lower()
    rest = match.group("rest").strip()
    if action not in ACTIONS:
        raise ValidationError(f"Unknown command `{action}`. Try `{bot_name} help`.")

    command = Command(action=action)

    if action == "unsubscribe":
        if not rest.isdigit():
            raise ValidationError(f"Usage: `{bot_name} unsubscribe <id>`")
        command.request_id = int(rest)
        return command

    if action == "list":
        if rest.lower() not in ("", "all"):
            raise ValidationError(f"Usage: `{bot_name} list [all]`")
        command.list_all = rest.lower() == "all"
        return command

    if action in ("refresh", "help"):
        return command

    position = 0
    while position < len(rest):
        clause = CLAUSE_PATTERN.match(rest, position)
        if not clause:
            raise ValidationError(f"Could not understand `{rest[position:].strip()}`")
        if clause.group("cron") is not None:
            if action != "subscribe":
                raise ValidationError("`cron:` only applies to subscriptions")
            command.schedule = clause.group("cron")
        else:
            setattr(command, clause.group("key").lower(), clause.group("value"))
        position = clause.end()

    return command


def format_room_table(requests: List[DigestRequest]) -> str:
    """Subscriptions of one room as a tab-separated table."""
    if not requests:
        return "No PR digests are scheduled for this room."
    lines = ["id\tdigest"]
    lines.extend(f"{request.id}\t{request.short_describe()}" for request in requests)
    return "\n".join(lines)


def format_global_table(requests: List[DigestRequest]) -> str:
    """Every subscription as a tab-separated table."""
    if not requests:
        return "No PR digests are scheduled."
    lines = ["id\troom\trequested by\tdigest"]
    lines.extend(
        f"{request.id}\t{request.room}\t{request.requested_by or '-'}\t"
        f"{request.short_describe()}"
        for request in requests
    )
    return "\n".join(lines)


def help_text(bot_name: str = "pr") -> str:
    return (
        "*PR digest commands*\n"
        f"• `{bot_name} digest [user:<login>] [team:<slug>] [org:<login>]` - "
        "Open PRs right now\n"
        f'• `{bot_name} subscribe [user:..] [team:..] [org:..] [cron:"<expr>"]` - '
        "Post the digest on a schedule (weekdays by default)\n"
        f"• `{bot_name} list` - Digests scheduled in this room\n"
        f"• `{bot_name} list all` - Digests scheduled everywhere\n"
        f"• `{bot_name} unsubscribe <id>` - Stop a digest from this room\n"
        f"• `{bot_name} refresh` - Reload organizations and teams\n\n"
        "*Examples:*\n"
        f"• `{bot_name} digest team:backend`\n"
        f'• `{bot_name} subscribe org:acme cron:"30 8 * * mon-fri"`'
    )


class CommandRouter:
    """Runs parsed commands against the digest service and returns the reply."""

    def __init__(self, service: DigestService, bot_name: str = "pr"):
        self.service = service
        self.bot_name = bot_name

    async def handle(self, room: str, user: Optional[str], text: str) -> Optional[str]:
        """Reply to a chat message, or None when it is not a command."""
        try:
            command = parse_command(text, self.bot_name)
            if command is None:
                return None
            return await self.dispatch(command, room, user)
        except DigestBotError as e:
            logger.info(f"Command from {user} in {room} rejected: {e}")
            return str(e)
        except Exception as e:
            logger.error(f"Command `{text}` in {room} failed: {e!r}")
            return f"Command failed: {e}"

    async def dispatch(self, command: Command, room: str, user: Optional[str]) -> str:
        service = self.service

        if command.action == "help":
            return help_text(self.bot_name)

        if command.action == "list":
            if command.list_all:
                return format_global_table(service.list_all())
            return format_room_table(service.list_room(room))

        if command.action == "unsubscribe":
            request = service.unsubscribe(room, command.request_id)
            return f"Unsubscribed #{request.id}: {service.describe(request, True)}"

        if command.action == "refresh":
            await service.directory.refresh()
            return (
                f"Reloaded {len(service.directory.organizations)} organizations."
            )

        request = await service.build_request(
            user=command.user,
            team=command.team,
            organization=command.org,
            schedule=command.schedule,
        )

        if command.action == "subscribe":
            service.subscribe(request, room, user)
            return f"Subscribed #{request.id}: {service.describe(request)}"

        result = await service.run_once(request)
        return result.text
