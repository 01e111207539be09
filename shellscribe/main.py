"""
Main entry point for ShellScribe CLI.

This module provides the command-line interface for ShellScribe,
handling command-line arguments and driving the script generation flow.
"""

import asyncio
import importlib.metadata
import subprocess
from typing import Any, Coroutine, List, Optional

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

# Import from our own modules
from shellscribe.config import api_manager
from shellscribe.config.settings import settings
from shellscribe.translator import completion
from shellscribe.translator.openai_client import CompletionClient
from shellscribe.translator.prompt_builder import PromptBuilder
from shellscribe.utils.errors import KnownError
from shellscribe.utils.logging import initialize_logging

# Create Typer app
app = typer.Typer(
    name="shellscribe",
    help="Turn natural language into shell commands",
    add_completion=False,
)

# Set up console for rich output
console = Console()

state = {"debug": False}

ACTIONS = ["run", "revise", "explain", "cancel"]


def get_version() -> str:
    """Get the installed version of ShellScribe."""
    try:
        return importlib.metadata.version("shellscribe")
    except importlib.metadata.PackageNotFoundError:
        return "0.1.0"  # Default during development


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """
    Run a coroutine, turning failures into a clean exit.

    Known errors are printed without a traceback; anything else is reported
    as unexpected (with the traceback in debug mode).
    """
    try:
        return asyncio.run(coro)
    except KnownError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1) from e
    except Exception as e:
        if state["debug"]:
            console.print_exception()
        console.print(f"[bold red]Unexpected error:[/] {escape(str(e))}")
        raise typer.Exit(1) from e


def create_client(
    api_key: Optional[str], model: Optional[str], endpoint: Optional[str]
) -> CompletionClient:
    """Create a completion client from options, environment and settings."""
    key = api_manager.get_api_key(api_key)
    if not key:
        console.print(
            "[bold red]No API key found.[/] Set the "
            f"[bold]{api_manager.ENV_VAR_NAME}[/] environment variable, pass "
            "[bold]--api-key[/], or add api.api_key to "
            f"{escape(str(settings.config_file))}."
        )
        raise typer.Exit(1)
    if not api_manager.is_api_key_valid(key):
        console.print("[bold red]Invalid API key format.[/]")
        raise typer.Exit(1)

    return CompletionClient(
        api_key=key,
        api_endpoint=endpoint or settings.get("api", "api_endpoint"),
        model=model or settings.get("api", "model"),
        timeout=settings.get("api", "timeout", 60),
    )


def write_fragment(text: str) -> None:
    console.print(text, end="", markup=False, highlight=False, soft_wrap=True)


def show_script(result: completion.ScriptAndInfo) -> None:
    """Display a generated script and, unless silent, its explanation."""
    console.print(
        Panel(Text(result.script, style="bold white"), title="Script", border_style="green")
    )
    if not settings.get("ui", "silent_mode", False):
        result.read_info(lambda info: console.print(Text(info)))


def execute_script(script: str) -> int:
    """Run a script in the user's shell and report its exit code."""
    console.print(f"\n[bold]Running:[/] {escape(script)}\n")
    completed = subprocess.run(script, shell=True, check=False)
    if completed.returncode == 0:
        console.print("\n[bold green]Command executed successfully.[/]")
    else:
        console.print(
            f"\n[bold red]Command failed with exit code {completed.returncode}.[/]"
        )
    return completed.returncode


async def stream_explanation(
    script: str, client: CompletionClient, builder: PromptBuilder
) -> str:
    with console.status("[bold green]Loading explanation...[/]", spinner="dots"):
        stream = await completion.get_explanation(script, client, builder)
    console.print("[dim]Press q or Esc to stop.[/]")
    explanation = await stream.read_explanation(write_fragment)
    console.print()
    return explanation


async def generate(
    prompt: str,
    client: CompletionClient,
    builder: PromptBuilder,
    code: Optional[str] = None,
) -> completion.ScriptAndInfo:
    with console.status("[bold green]Loading...[/]", spinner="dots"):
        if code is None:
            return await completion.get_script_and_info(prompt, client, builder)
        return await completion.get_revision(prompt, code, client, builder)


def process_prompt(
    prompt: str, client: CompletionClient, builder: PromptBuilder, execute: bool
) -> None:
    """
    Generate a script for ``prompt`` and let the user act on it.

    Args:
        prompt (str): Natural language request.
        client (CompletionClient): Client for the completion API.
        builder (PromptBuilder): Prompt builder for the current environment.
        execute (bool): Run the script without asking.
    """
    result = run_async(generate(prompt, client, builder))

    while True:
        if not result.script:
            console.print(Text(result.explanation))
            console.print("[yellow]No command was produced.[/]")
            revision = typer.prompt("Describe the command differently (empty to quit)", default="")
            if not revision:
                return
            result = run_async(generate(revision, client, builder))
            continue

        show_script(result)

        if execute:
            execute_script(result.script)
            return

        action = typer.prompt(
            "What would you like to do?",
            type=click.Choice(ACTIONS),
            default="cancel",
        )
        if action == "run":
            execute_script(result.script)
            return
        if action == "revise":
            revision = typer.prompt("What should change?")
            result = run_async(generate(revision, client, builder, code=result.script))
        elif action == "explain":
            run_async(stream_explanation(result.script, client, builder))
        else:
            console.print("[yellow]Cancelled.[/]")
            return


@app.callback(invoke_without_command=True)
def callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", help="Show the application version and exit."
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    """ShellScribe - turn natural language into shell commands."""
    state["debug"] = debug
    initialize_logging(debug=debug)

    if version:
        console.print(f"[bold green]ShellScribe CLI Version:[/] {get_version()}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


_PROMPT_ARG = typer.Argument(None, help="What the command should do.")
_SCRIPT_ARG = typer.Argument(None, help="Script to explain.")
_API_KEY_OPT = typer.Option(None, "--api-key", help="API key (overrides env/settings).")
_MODEL_OPT = typer.Option(None, "--model", "-m", help="Model to use.")
_ENDPOINT_OPT = typer.Option(None, "--endpoint", help="OpenAI-compatible API base URL.")


@app.command()
def run(
    prompt: List[str] = _PROMPT_ARG,
    execute: bool = typer.Option(
        False, "--execute", "-x", help="Run the generated command without asking."
    ),
    api_key: Optional[str] = _API_KEY_OPT,
    model: Optional[str] = _MODEL_OPT,
    endpoint: Optional[str] = _ENDPOINT_OPT,
) -> None:
    """
    Generate a shell command from a description.

    The command is shown with an explanation; it can then be run, revised
    or explained step by step.
    """
    text = " ".join(prompt or []).strip()
    if not text:
        text = typer.prompt("What would you like to do?")

    client = create_client(api_key, model, endpoint)
    process_prompt(text, client, PromptBuilder.from_environment(settings), execute)


@app.command()
def explain(
    script: List[str] = _SCRIPT_ARG,
    api_key: Optional[str] = _API_KEY_OPT,
    model: Optional[str] = _MODEL_OPT,
    endpoint: Optional[str] = _ENDPOINT_OPT,
) -> None:
    """Explain what a shell script does, streaming the answer."""
    if not script:
        console.print("[bold red]Error:[/] No script provided.")
        console.print('Usage: [bold]shellscribe explain "ls -la"[/]')
        raise typer.Exit(1)

    client = create_client(api_key, model, endpoint)
    builder = PromptBuilder.from_environment(settings)
    run_async(stream_explanation(" ".join(script), client, builder))


@app.command()
def models(
    api_key: Optional[str] = _API_KEY_OPT,
    endpoint: Optional[str] = _ENDPOINT_OPT,
) -> None:
    """List the models available at the configured endpoint."""
    client = create_client(api_key, None, endpoint)
    available = run_async(client.list_models())

    table = Table(title="Available Models", show_header=True)
    table.add_column("Model", style="cyan")
    table.add_column("Owned by", style="white")
    for entry in sorted(available, key=lambda m: m.id):
        table.add_row(entry.id, getattr(entry, "owned_by", "") or "")
    console.print(table)


config_app = typer.Typer(help="Show or change ShellScribe settings.")
app.add_typer(config_app, name="config")


def save_settings() -> None:
    if not settings.save():
        console.print(
            f"[bold red]Error:[/] Could not write {escape(str(settings.config_file))}."
        )
        raise typer.Exit(1)


@config_app.command("show")
def config_show() -> None:
    """Show every setting and where the file lives."""
    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    for section, values in settings.get_all().items():
        for key, value in values.items():
            if key == "api_key" and value:
                value = f"{str(value)[:3]}...{str(value)[-4:]}"
            table.add_row(f"{section}.{key}", escape(str(value)))
    console.print(table)
    console.print(f"[dim]File: {escape(str(settings.config_file))}[/]")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name, e.g. api.model"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Change one setting."""
    try:
        stored = settings.set_value(key, value)
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1) from e
    save_settings()
    console.print(f"[green]Set[/] {escape(key)} = {escape(repr(stored))}")


@config_app.command("reset")
def config_reset(
    section: Optional[str] = typer.Argument(
        None, help="Section to reset (api, ui, advanced); all if omitted."
    ),
) -> None:
    """Restore default settings."""
    try:
        settings.reset(section)
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1) from e
    save_settings()
    console.print(f"[green]Reset {escape(section or 'all settings')} to defaults.[/]")
