"""Slash command package."""

from src.commands.registry import (
    Command,
    CommandHandler,
    CommandRegistry,
    DuplicateAliasError,
    UnknownCommandError,
)
from src.commands.dispatcher import (
    HandlerExecutionError,
    SlashCommandDispatcher,
    format_command_listing,
)
from src.commands.handlers import LedgerCommandHandlers, build_command_registry

__all__ = [
    "Command",
    "CommandHandler",
    "CommandRegistry",
    "DuplicateAliasError",
    "HandlerExecutionError",
    "LedgerCommandHandlers",
    "SlashCommandDispatcher",
    "UnknownCommandError",
    "build_command_registry",
    "format_command_listing",
]
