"""
Tests for the conversational core: input classification, session
memory and natural-language routing.
"""

import pytest

from src.agents import GeneratorUnavailableError
from src.chat import (
    SYSTEM_INSTRUCTION,
    ConversationSession,
    NaturalLanguageRouter,
    classify_input,
    detect_action_hints,
)
from src.models.chat import ActionSuggestion, InputKind, TurnRole

from tests.fakes import FailingAnswerGenerator, FakeAnswerGenerator


class TestClassifyInput:
    """Tests for raw line classification."""

    @pytest.mark.parametrize("raw", ["", "   ", "\t\n"])
    def test_blank_input_is_noop(self, raw):
        assert classify_input(raw).kind == InputKind.NOOP

    @pytest.mark.parametrize("raw", ["exit", "QUIT", "  Bye  "])
    def test_exit_words_are_case_insensitive(self, raw):
        assert classify_input(raw).kind == InputKind.EXIT

    def test_exit_word_inside_sentence_is_natural_language(self):
        result = classify_input("how do I exit a lease early?")
        assert result.kind == InputKind.NATURAL_LANGUAGE

    def test_slash_prefix(self):
        result = classify_input("  /status  ")
        assert result.kind == InputKind.SLASH_COMMAND
        assert result.raw == "/status"

    def test_custom_prefix(self):
        assert classify_input("!help", command_prefix="!").kind == InputKind.SLASH_COMMAND
        assert classify_input("/help", command_prefix="!").kind == InputKind.NATURAL_LANGUAGE

    def test_same_line_same_classification(self):
        line = "what needs categorizing?"
        assert classify_input(line) == classify_input(line)


class TestConversationSession:
    """Tests for bounded history."""

    def test_rejects_odd_cap(self):
        with pytest.raises(ValueError):
            ConversationSession(max_turns=5)

    def test_eleven_pairs_keep_most_recent_twenty(self):
        session = ConversationSession(max_turns=20)
        for i in range(11):
            session.append_user(f"question {i}")
            session.append_assistant(f"answer {i}")

        turns = session.snapshot()

        assert len(turns) == 20
        assert turns[0].text == "question 1"
        assert turns[0].role == TurnRole.USER
        assert turns[-1].text == "answer 10"

    def test_length_never_exceeds_cap(self):
        session = ConversationSession(max_turns=4)
        for i in range(7):
            session.append_user(f"q{i}")
            assert len(session) <= 4
            session.append_assistant(f"a{i}")
            assert len(session) <= 4

    def test_history_always_opens_with_user_turn(self):
        session = ConversationSession(max_turns=4)
        for i in range(3):
            session.append_user(f"q{i}")
            session.append_assistant(f"a{i}")
        session.append_user("q3")

        assert session.snapshot()[0].role == TurnRole.USER

    def test_preview_does_not_mutate(self):
        session = ConversationSession(max_turns=4)
        session.append_user("hi")
        session.append_assistant("hello")

        pending = session.snapshot()[0].model_copy(update={"text": "next"})
        preview = session.preview_with(pending)

        assert len(preview) == 3
        assert len(session) == 2

    def test_snapshot_is_read_only_copy(self):
        session = ConversationSession()
        session.append_user("hi")
        snapshot = session.snapshot()
        session.append_assistant("hello")

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1

    def test_clear(self):
        session = ConversationSession()
        session.append_user("hi")
        session.clear()
        assert len(session) == 0
        assert session.last() is None


class TestDetectActionHints:
    """Tests for reply scanning."""

    def test_categorize_vocabulary_suggests_review(self):
        hints = detect_action_hints("I can help you categorize those expenses.")
        assert [h.kind for h in hints] == ["suggest_review"]

    def test_approval_vocabulary_suggests_review(self):
        assert detect_action_hints("Want to APPROVE them now?")

    def test_plain_reply_has_no_hints(self):
        assert detect_action_hints("Your balance is healthy.") == []


class TestNaturalLanguageRouter:
    """Tests for routing free text to the Answer Generator."""

    @pytest.mark.asyncio
    async def test_reply_with_categorize_suggests_review(self):
        generator = FakeAnswerGenerator(reply="Sure, let's categorize your transactions.")
        router = NaturalLanguageRouter(generator, ConversationSession())

        result = await router.route("what needs categorizing?")

        assert result.reply_text == "Sure, let's categorize your transactions."
        assert any(a.kind == "suggest_review" for a in result.suggested_actions)

    @pytest.mark.asyncio
    async def test_success_appends_both_turns(self):
        session = ConversationSession()
        router = NaturalLanguageRouter(FakeAnswerGenerator(reply="Hello!"), session)

        await router.route("hi")

        turns = session.snapshot()
        assert [(t.role, t.text) for t in turns] == [
            (TurnRole.USER, "hi"),
            (TurnRole.ASSISTANT, "Hello!"),
        ]

    @pytest.mark.asyncio
    async def test_generator_sees_history_plus_pending_turn(self):
        session = ConversationSession()
        session.append_user("earlier question")
        session.append_assistant("earlier answer")
        generator = FakeAnswerGenerator()
        router = NaturalLanguageRouter(generator, session)

        await router.route("new question")

        instruction, turns = generator.calls[0]
        assert instruction == SYSTEM_INSTRUCTION
        assert [t.text for t in turns] == ["earlier question", "earlier answer", "new question"]

    @pytest.mark.asyncio
    async def test_failure_leaves_session_unchanged(self):
        session = ConversationSession()
        session.append_user("earlier question")
        session.append_assistant("earlier answer")
        before = session.snapshot()
        router = NaturalLanguageRouter(FailingAnswerGenerator(), session)

        with pytest.raises(GeneratorUnavailableError):
            await router.route("will this work?")

        assert session.snapshot() == before

    @pytest.mark.asyncio
    async def test_unwrapped_generator_fault_is_normalized(self):
        session = ConversationSession()
        router = NaturalLanguageRouter(FailingAnswerGenerator(TimeoutError("slow")), session)

        with pytest.raises(GeneratorUnavailableError):
            await router.route("hello?")

        assert len(session) == 0

    @pytest.mark.asyncio
    async def test_generator_hints_are_merged_without_duplicates(self):
        generator = FakeAnswerGenerator(
            reply="Let me help you approve these.",
            action_hints=[
                ActionSuggestion(kind="suggest_review", data={"message": "Review now?"}),
                ActionSuggestion(kind="open_dashboard"),
            ],
        )
        router = NaturalLanguageRouter(generator, ConversationSession())

        result = await router.route("help me approve")

        assert [a.kind for a in result.suggested_actions] == ["suggest_review", "open_dashboard"]
        assert result.suggested_actions[0].data["message"] == "Review now?"
