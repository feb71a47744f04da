"""
Slash Command Dispatcher

Resolves a slash-command line to its handler, runs it and normalizes
every outcome into a TurnResult:

    "/"            -> listing of all commands
    "/frobnicate"  -> "Unknown command" reply with a pointer to /help
    "/status"      -> the handler's TurnResult
    handler fault  -> degraded reply (HandlerExecutionError is logged,
                      never raised to the caller)

The dispatcher never touches the ConversationSession: slash commands
don't build conversational memory.
"""

from typing import Optional

import structlog

from src.commands.registry import Command, CommandRegistry, UnknownCommandError
from src.models.chat import TurnResult, TurnStatus


logger = structlog.get_logger(__name__)


class HandlerExecutionError(Exception):
    """A slash-command handler failed (usually a Ledger Store fault)."""

    def __init__(self, command: str, cause: BaseException):
        self.command = command
        self.cause = cause
        super().__init__(f"/{command} failed: {cause}")


def format_command_listing(
    registry: CommandRegistry,
    prefix: str = "/",
) -> str:
    """One line per unique command: '/name (/alias, ...) - description'."""
    lines = ["Available slash commands:", ""]
    for command in registry.list_unique():
        aliases = ""
        if command.aliases:
            aliases = " (" + ", ".join(f"{prefix}{a}" for a in command.aliases) + ")"
        lines.append(f"  {prefix}{command.name}{aliases} - {command.description}")
    return "\n".join(lines)


class SlashCommandDispatcher:
    """Turns one slash-command line into a TurnResult."""

    def __init__(self, registry: CommandRegistry, prefix: str = "/"):
        self._registry = registry
        self._prefix = prefix

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    def _split(self, raw_line: str) -> tuple[str, str]:
        """Strip the trigger character; return (token, args)."""
        body = raw_line.strip()
        if body.startswith(self._prefix):
            body = body[len(self._prefix):]
        parts = body.strip().split(maxsplit=1)
        if not parts:
            return "", ""
        token = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""
        return token, args

    async def process(self, raw_line: str) -> TurnResult:
        """Dispatch one slash-command line. Never raises for handler faults."""
        token, args = self._split(raw_line)

        if not token:
            return TurnResult(
                reply_text=format_command_listing(self._registry, self._prefix),
            )

        try:
            command = self._registry.require(token)
        except UnknownCommandError as e:
            logger.info("unknown_command", token=e.token)
            return TurnResult(
                reply_text=(
                    f"Unknown command: {self._prefix}{e.token}\n"
                    f"Type {self._prefix}help to see available commands"
                ),
                status=TurnStatus.UNKNOWN_COMMAND,
            )

        try:
            return await self._execute(command, args)
        except HandlerExecutionError as e:
            logger.error(
                "command_failed",
                command=e.command,
                error=str(e.cause),
                error_type=type(e.cause).__name__,
            )
            return self._degraded(command)

    async def _execute(self, command: Command, args: str) -> TurnResult:
        try:
            result = await command.handler(args)
        except Exception as e:
            raise HandlerExecutionError(command.name, e) from e

        logger.debug("command_executed", command=command.name)
        if result.command is None:
            result = result.model_copy(update={"command": command.name})
        return result

    def _degraded(self, command: Optional[Command]) -> TurnResult:
        name = command.name if command else ""
        return TurnResult(
            reply_text=(
                f"Sorry, {self._prefix}{name} couldn't load your data right now. "
                f"Please try again in a moment, or type {self._prefix}help for other commands."
            ),
            status=TurnStatus.DEGRADED,
            command=name or None,
        )
