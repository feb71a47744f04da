"""
Tests for the terminal loop (rich prompts patched, no real terminal).
"""

import asyncio
from types import SimpleNamespace

import pytest

from app import cli
from src.models.audit import AuditEventType
from src.orchestrator import ChatState, build_controller

from tests.fakes import FailingAnswerGenerator, FakeAnswerGenerator


@pytest.fixture
def terminal(monkeypatch, chat_settings):
    """Feed scripted lines to the loop and capture what it prints."""
    lines = []
    printed = []

    def ask(*args, **kwargs):
        if not lines:
            raise EOFError
        return lines.pop(0)

    monkeypatch.setattr(cli, "get_settings", lambda: SimpleNamespace(chat=chat_settings))
    monkeypatch.setattr(cli.Prompt, "ask", ask)
    monkeypatch.setattr(cli.console, "print", lambda *args, **kwargs: printed.append(args))
    return lines, printed


def _controller(store, generator, chat_settings, audit_logger):
    return build_controller(
        store=store,
        generator=generator,
        audit_logger=audit_logger,
        chat_settings=chat_settings,
        model_name="gemini-1.5-flash",
    )


class TestRunChat:

    @pytest.mark.asyncio
    async def test_exit_word_ends_loop(self, terminal, empty_store, chat_settings, audit_logger):
        lines, _ = terminal
        lines.extend(["/help", "exit"])
        controller = _controller(empty_store, FakeAnswerGenerator(), chat_settings, audit_logger)

        await cli.run_chat(controller)

        assert controller.state == ChatState.TERMINATED

    @pytest.mark.asyncio
    async def test_end_of_input_ends_session(self, terminal, empty_store, chat_settings, audit_logger, audit_storage):
        controller = _controller(empty_store, FakeAnswerGenerator(), chat_settings, audit_logger)

        await cli.run_chat(controller)

        assert controller.state == ChatState.TERMINATED
        assert AuditEventType.SESSION_ENDED in [e.event_type for e in audit_storage.events]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("interrupt", [KeyboardInterrupt(), asyncio.CancelledError()])
    async def test_interrupt_while_waiting_for_answer_ends_session(
        self, interrupt, terminal, empty_store, chat_settings, audit_logger, audit_storage,
    ):
        lines, _ = terminal
        lines.append("what needs categorizing?")
        controller = _controller(empty_store, FailingAnswerGenerator(interrupt), chat_settings, audit_logger)

        await cli.run_chat(controller)

        assert controller.state == ChatState.TERMINATED
        assert AuditEventType.SESSION_ENDED in [e.event_type for e in audit_storage.events]

    @pytest.mark.asyncio
    async def test_interrupt_during_confirmation_ends_session(
        self, monkeypatch, terminal, sample_store, chat_settings, audit_logger,
    ):
        lines, _ = terminal
        lines.append("/categorize")
        controller = _controller(sample_store, FakeAnswerGenerator(), chat_settings, audit_logger)

        async def interrupted(request):
            raise KeyboardInterrupt

        monkeypatch.setattr(cli, "prompt_user", interrupted)

        await cli.run_chat(controller)

        assert controller.state == ChatState.TERMINATED
        assert len(await sample_store.list_uncategorized_transactions()) == 19
