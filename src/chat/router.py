"""
Natural Language Router

Routes free text to the Answer Generator with conversation context and
turns the reply into a TurnResult.

DESIGN DECISION: The session is only written after the generator has
answered. The pending user turn is sent as part of the context via
ConversationSession.preview_with(), then both turns are committed
together. A failed call therefore leaves history exactly as it was.
"""

import structlog

from src.agents.answer_generator import (
    AnswerGeneratorInterface,
    GeneratorUnavailableError,
)
from src.chat.session import ConversationSession
from src.models.chat import (
    ActionKind,
    ActionSuggestion,
    Turn,
    TurnResult,
    TurnRole,
)


logger = structlog.get_logger(__name__)


SYSTEM_INSTRUCTION = """You are an AI bookkeeping assistant that helps users manage their finances.

Your capabilities include:
- Categorizing expenses and transactions
- Reviewing and approving expense categorizations
- Answering questions about spending and finances
- Providing bookkeeping guidance
- Suggesting expense categories

Guidelines:
- Be concise and helpful
- Ask for clarification when needed
- Always confirm before making changes to financial data
- Use a friendly but professional tone
- When suggesting categories, explain your reasoning briefly

Remember: You are helping with bookkeeping, so accuracy and user confirmation are important."""


# Substrings that indicate the reply is about reviewing transactions
REVIEW_KEYWORDS = ("categoriz", "approve")

REVIEW_PROMPT = "Would you like me to show you transactions that need attention?"


def detect_action_hints(reply: str) -> list[ActionSuggestion]:
    """Scan a reply for phrasing that warrants a follow-up action."""
    lowered = reply.lower()
    if any(keyword in lowered for keyword in REVIEW_KEYWORDS):
        return [
            ActionSuggestion(
                kind=ActionKind.SUGGEST_REVIEW.value,
                data={"message": REVIEW_PROMPT},
            )
        ]
    return []


def _merge_actions(*groups: list[ActionSuggestion]) -> list[ActionSuggestion]:
    """Concatenate suggestion lists, keeping the first suggestion per kind."""
    seen: set[str] = set()
    merged = []
    for group in groups:
        for action in group:
            if action.kind in seen:
                continue
            seen.add(action.kind)
            merged.append(action)
    return merged


class NaturalLanguageRouter:
    """Sends free text plus bounded history to the Answer Generator."""

    def __init__(
        self,
        generator: AnswerGeneratorInterface,
        session: ConversationSession,
        system_instruction: str = SYSTEM_INSTRUCTION,
    ):
        self._generator = generator
        self._session = session
        self._system_instruction = system_instruction

    @property
    def session(self) -> ConversationSession:
        return self._session

    async def route(self, text: str) -> TurnResult:
        """
        Answer one natural-language line.

        Args:
            text: The user's line, already trimmed

        Returns:
            TurnResult with the reply and any suggested actions

        Raises:
            GeneratorUnavailableError: If the generator fails. The
                session is left unchanged.
        """
        pending = Turn(role=TurnRole.USER, text=text)
        context = self._session.preview_with(pending)

        try:
            answer = await self._generator.generate(self._system_instruction, context)
        except GeneratorUnavailableError:
            raise
        except Exception as e:
            # Generators other than Gemini may not wrap their faults
            raise GeneratorUnavailableError(cause=e) from e

        self._session.append_user(text)
        self._session.append_assistant(answer.reply)

        actions = _merge_actions(answer.action_hints, detect_action_hints(answer.reply))

        logger.debug(
            "query_routed",
            history_length=len(self._session),
            action_count=len(actions),
        )

        return TurnResult(reply_text=answer.reply, suggested_actions=actions)
