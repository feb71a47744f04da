"""
Conversation Session

The bounded, ordered memory of turns sent to the Answer Generator as
context. One instance per interactive session; never shared, never
persisted.

EVICTION POLICY:
- Length never exceeds max_turns (an even number).
- Oldest turns are dropped first (FIFO).
- After eviction, an assistant turn left at the front without the user
  turn it answered is dropped as well, so history always opens with a
  user turn and stays in user/assistant pairs.
"""

from typing import Optional

from src.models.chat import Turn, TurnRole


MAX_TURNS = 20


class ConversationSession:
    """Bounded FIFO history of conversational turns."""

    def __init__(self, max_turns: int = MAX_TURNS):
        if max_turns < 2 or max_turns % 2 != 0:
            raise ValueError(f"max_turns must be an even number >= 2, got {max_turns}")
        self._max_turns = max_turns
        self._turns: list[Turn] = []

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def __len__(self) -> int:
        return len(self._turns)

    def append_user(self, text: str) -> Turn:
        return self._append(Turn(role=TurnRole.USER, text=text))

    def append_assistant(self, text: str) -> Turn:
        return self._append(Turn(role=TurnRole.ASSISTANT, text=text))

    def snapshot(self) -> tuple[Turn, ...]:
        """Current turns, oldest first. Read-only."""
        return tuple(self._turns)

    def preview_with(self, turn: Turn) -> tuple[Turn, ...]:
        """
        What snapshot() would return after appending `turn`, without
        appending it.

        Lets the router send a pending user turn to the generator and
        only commit it once the generator has answered.
        """
        return tuple(self._evict([*self._turns, turn]))

    def clear(self) -> None:
        self._turns = []

    def _append(self, turn: Turn) -> Turn:
        # Build the new list first so a partial append is never observable
        self._turns = self._evict([*self._turns, turn])
        return turn

    def _evict(self, turns: list[Turn]) -> list[Turn]:
        overflow = len(turns) - self._max_turns
        if overflow <= 0:
            return turns
        turns = turns[overflow:]
        if turns and turns[0].role == TurnRole.ASSISTANT:
            turns = turns[1:]
        return turns

    def last(self, role: Optional[TurnRole] = None) -> Optional[Turn]:
        """Most recent turn, optionally of a given role."""
        for turn in reversed(self._turns):
            if role is None or turn.role == role:
                return turn
        return None
