"""
Command Registry

A static lookup table from command names and aliases to Command
descriptors. Adding a slash command is a data change (one more
register() call), never a new branch in the dispatcher.

INVARIANTS:
- Every key (canonical name or alias) maps to exactly one Command.
- Keys are stored lowercase; lookup is case-insensitive.
- A collision with a different command is a configuration error
  (DuplicateAliasError), raised before anything is registered.
"""

from typing import Awaitable, Callable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.models.chat import TurnResult


# Handlers receive the text after the command token ("" if none)
CommandHandler = Callable[[str], Awaitable[TurnResult]]


class Command(BaseModel):
    """A registered slash command. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str
    aliases: tuple[str, ...] = ()
    handler: CommandHandler

    @property
    def keys(self) -> tuple[str, ...]:
        """Every lookup key for this command, lowercase, name first."""
        return (self.name.lower(), *(alias.lower() for alias in self.aliases))


class DuplicateAliasError(Exception):
    """A command name or alias is already taken by another command."""

    def __init__(self, key: str, existing: str, new: str):
        self.key = key
        self.existing = existing
        self.new = new
        super().__init__(
            f"'{key}' is already registered to /{existing}; cannot register /{new}"
        )


class UnknownCommandError(Exception):
    """No command is registered under the given token."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown command: {token}")


class CommandRegistry:
    """
    Case-insensitive map of command names and aliases to Commands.

    Registration order is preserved for help and suggestion listings.
    """

    def __init__(self, commands: Optional[list[Command]] = None):
        self._index: dict[str, Command] = {}
        for command in commands or []:
            self.register(command)

    def register(self, command: Command) -> Command:
        """
        Register a command under its name and all its aliases.

        Raises:
            DuplicateAliasError: If any key already maps to a different command
        """
        for key in command.keys:
            existing = self._index.get(key)
            if existing is not None and existing is not command:
                raise DuplicateAliasError(key, existing.name, command.name)

        for key in command.keys:
            self._index[key] = command
        return command

    def resolve(self, token: str) -> Optional[Command]:
        """Look up a bare command token (no trigger prefix)."""
        return self._index.get(token.strip().lower())

    def require(self, token: str) -> Command:
        """Like resolve(), but raises UnknownCommandError on a miss."""
        command = self.resolve(token)
        if command is None:
            raise UnknownCommandError(token)
        return command

    def list_unique(self) -> Iterator[Command]:
        """
        Yield each distinct command once, in registration order.

        Lazy; call again for a fresh pass.
        """
        seen: set[int] = set()
        for command in self._index.values():
            if id(command) in seen:
                continue
            seen.add(id(command))
            yield command

    def __iter__(self) -> Iterator[Command]:
        return self.list_unique()

    def __contains__(self, token: str) -> bool:
        return self.resolve(token) is not None

    def __len__(self) -> int:
        return sum(1 for _ in self.list_unique())
