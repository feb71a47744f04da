"""
Tests for the Gemini-backed Answer Generator (google.generativeai patched).
"""

import google.generativeai as genai
import pytest
from tenacity import wait_none

from src.agents import FALLBACK_REPLY, GeminiAnswerGenerator, GeneratorUnavailableError
from src.config import GeminiSettings
from src.models.chat import Turn, TurnRole


class _Response:
    def __init__(self, text):
        self.text = text


@pytest.fixture
def fake_gemini(monkeypatch):
    """Replace the Gemini SDK; returns a dict to script replies and inspect calls."""
    state = {"reply": "Hello there", "error": None, "models": [], "contents": []}

    class FakeModel:
        def __init__(self, **kwargs):
            self.kwargs = kwargs
            state["models"].append(self)

        async def generate_content_async(self, contents):
            state["contents"].append(contents)
            if state["error"] is not None:
                raise state["error"]
            return _Response(state["reply"])

    monkeypatch.setattr(genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(genai, "GenerativeModel", FakeModel)
    monkeypatch.setattr(GeminiAnswerGenerator._generate_text.retry, "wait", wait_none())
    return state


def _generator():
    return GeminiAnswerGenerator(GeminiSettings(api_key="test-key", model_name="gemini-1.5-flash"))


TURNS = (
    Turn(role=TurnRole.USER, text="hi"),
    Turn(role=TurnRole.ASSISTANT, text="Hello!"),
    Turn(role=TurnRole.USER, text="what needs categorizing?"),
)


class TestGeminiAnswerGenerator:

    @pytest.mark.asyncio
    async def test_turns_map_to_gemini_roles(self, fake_gemini):
        answer = await _generator().generate("You are a bookkeeper.", TURNS)

        assert answer.reply == "Hello there"
        assert [c["role"] for c in fake_gemini["contents"][0]] == ["user", "model", "user"]
        assert fake_gemini["models"][0].kwargs["system_instruction"] == "You are a bookkeeper."

    @pytest.mark.asyncio
    async def test_model_is_reused_for_same_instruction(self, fake_gemini):
        generator = _generator()

        await generator.generate("You are a bookkeeper.", TURNS)
        await generator.generate("You are a bookkeeper.", TURNS)

        assert len(fake_gemini["models"]) == 1

    @pytest.mark.asyncio
    async def test_empty_reply_falls_back(self, fake_gemini):
        fake_gemini["reply"] = "   "

        answer = await _generator().generate("You are a bookkeeper.", TURNS)

        assert answer.reply == FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_faults_surface_as_generator_unavailable(self, fake_gemini):
        fake_gemini["error"] = RuntimeError("quota exceeded")

        with pytest.raises(GeneratorUnavailableError) as exc_info:
            await _generator().generate("You are a bookkeeper.", TURNS)

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert len(fake_gemini["contents"]) == 3  # retried
