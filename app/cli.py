"""
Terminal Frontend for the AI Bookkeeping Assistant

    ai-bookkeeping            # interactive chat (default)
    ai-bookkeeping chat
    ai-bookkeeping status     # print /status once and exit

Ctrl+C or end-of-input ends the session the same way "exit" does.
"""

import asyncio

import typer
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.text import Text

from src.chat import ConfirmationRequest
from src.commands import LedgerCommandHandlers
from src.config import get_settings
from src.models.chat import ExitSignal, TurnResult
from src.orchestrator import ConversationController, create_app_components, create_storage


app = typer.Typer(
    name="ai-bookkeeping",
    help="Conversational bookkeeping assistant",
    add_completion=False,
)
console = Console()


def render_result(result: TurnResult) -> None:
    style = "yellow" if result.degraded else None
    console.print("[bold green]Assistant:[/bold green]")
    console.print(Text(result.reply_text, style=style))
    console.print()


async def prompt_user(request: ConfirmationRequest) -> str:
    """Ask a confirmation question in the terminal."""
    if request.lines:
        console.print("[yellow]\n📋 Transactions to review:[/yellow]")
        for line in request.lines:
            console.print(Text(line))
    try:
        if request.yes_no:
            return "yes" if Confirm.ask(request.question, console=console) else "no"
        return Prompt.ask(request.question, console=console, default="approve all")
    except (KeyboardInterrupt, EOFError):
        return "no"


async def _farewell(controller: ConversationController) -> None:
    signal = await controller.end()
    console.print(f"\n[blue]👋 {signal.farewell}[/blue]")


async def run_chat(controller: ConversationController) -> None:
    """The interactive loop. Ctrl+C or EOF anywhere ends the session like "exit"."""
    prefix = get_settings().chat.command_prefix
    console.print("[bold blue]🤖 AI Bookkeeping Assistant[/bold blue]")
    console.print(
        f'[dim]Type naturally, use {prefix}help for commands, or "exit" to quit.[/dim]\n'
    )
    await controller.start()

    while True:
        try:
            line = Prompt.ask("[bold cyan]You[/bold cyan]", console=console, default="", show_default=False)

            with console.status("Thinking..."):
                result = await controller.handle_line(line)

            if result is None:
                continue
            if isinstance(result, ExitSignal):
                console.print(f"[blue]👋 {result.farewell}[/blue]")
                return

            render_result(result)

            if controller.has_pending_actions:
                for outcome in await controller.resolve_pending(prompt_user):
                    style = "green" if outcome.success else "red"
                    console.print(Text(outcome.message, style=style))
                console.print()
        except (KeyboardInterrupt, EOFError, asyncio.CancelledError):
            await _farewell(controller)
            return


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Start a chat when no command is given."""
    if ctx.invoked_subcommand is None:
        chat()


@app.command()
def chat() -> None:
    """Chat with the assistant."""
    try:
        controller = create_app_components(use_storage=True)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] Failed to initialize: {e}")
        raise typer.Exit(code=1)
    try:
        asyncio.run(run_chat(controller))
    except KeyboardInterrupt:
        # Interrupted again while saying goodbye
        raise typer.Exit(code=130)


@app.command()
def status() -> None:
    """Show account status and exit."""
    settings = get_settings()
    store, _ = create_storage(use_storage=True)
    handlers = LedgerCommandHandlers(store, settings.chat)
    result = asyncio.run(handlers.show_status())
    render_result(result)


if __name__ == "__main__":
    app()
