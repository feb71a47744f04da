"""Answer Generator package."""

from src.agents.answer_generator import (
    AnswerGeneratorInterface,
    FALLBACK_REPLY,
    GeminiAnswerGenerator,
    GeneratedAnswer,
    GeneratorUnavailableError,
)

__all__ = [
    "AnswerGeneratorInterface",
    "FALLBACK_REPLY",
    "GeminiAnswerGenerator",
    "GeneratedAnswer",
    "GeneratorUnavailableError",
]
