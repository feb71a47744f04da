"""
Answer Generator

DESIGN DECISION: The language model sits behind a one-method interface:

    generate(system_instruction, turns) -> GeneratedAnswer(reply, action_hints)

The conversational core treats it as a black box. Retry policy lives
here (tenacity), not in the router; once retries are exhausted every
fault surfaces as a single GeneratorUnavailableError.

CRITICAL BOUNDARIES:
- The generator NEVER writes to the ledger.
- Action hints are suggestions; the user confirms every change.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import GeminiSettings, get_settings
from src.models.chat import ActionSuggestion, Turn, TurnRole


logger = structlog.get_logger(__name__)

FALLBACK_REPLY = "I apologize, but I couldn't process that request."


class GeneratedAnswer(BaseModel):
    """A reply from the Answer Generator."""

    reply: str
    action_hints: list[ActionSuggestion] = Field(default_factory=list)


class GeneratorUnavailableError(Exception):
    """The Answer Generator could not produce a reply."""

    def __init__(self, message: str = "Unable to process your request. Please try again.", cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class AnswerGeneratorInterface(ABC):
    """Anything that turns conversation context into a reply."""

    @abstractmethod
    async def generate(
        self,
        system_instruction: str,
        turns: Sequence[Turn],
    ) -> GeneratedAnswer:
        """
        Produce a reply to the last user turn.

        Args:
            system_instruction: Fixed role and capability description
            turns: Prior turns, oldest first, ending with the user's turn

        Raises:
            GeneratorUnavailableError: On any collaborator fault
        """
        pass


class GeminiAnswerGenerator(AnswerGeneratorInterface):
    """
    Answer Generator backed by Google Gemini.

    Turns map to Gemini chat contents (user -> "user",
    assistant -> "model"); the system instruction is set on the model.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._models: dict[str, genai.GenerativeModel] = {}
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    @property
    def model_name(self) -> str:
        return self._settings.model_name

    def _model_for(self, system_instruction: str) -> genai.GenerativeModel:
        # The instruction is constant per session, so this holds one model
        model = self._models.get(system_instruction)
        if model is None:
            model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                system_instruction=system_instruction,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                },
            )
            self._models[system_instruction] = model
        return model

    @staticmethod
    def _to_contents(turns: Sequence[Turn]) -> list[dict]:
        return [
            {
                "role": "user" if turn.role == TurnRole.USER else "model",
                "parts": [turn.text],
            }
            for turn in turns
        ]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate_text(self, system_instruction: str, turns: Sequence[Turn]) -> str:
        model = self._model_for(system_instruction)
        response = await model.generate_content_async(self._to_contents(turns))
        return response.text.strip()

    async def generate(
        self,
        system_instruction: str,
        turns: Sequence[Turn],
    ) -> GeneratedAnswer:
        try:
            text = await self._generate_text(system_instruction, turns)
        except Exception as e:
            logger.error(
                "gemini_request_failed",
                model=self._settings.model_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GeneratorUnavailableError(cause=e) from e

        return GeneratedAnswer(reply=text or FALLBACK_REPLY)
