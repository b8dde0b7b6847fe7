"""flowbot CLI: Typer-based command-line interface."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from flowbot import __version__
from flowbot.core.errors import FlowbotError

app = typer.Typer(
    name="flowbot",
    help="flowbot - conversational agent backend",
    no_args_is_help=True,
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"flowbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=_version_callback, is_eager=True
    ),
) -> None:
    """flowbot - conversational agent backend."""


def _load():
    from flowbot.core.config.loader import load_config
    from flowbot.core.logging import setup_logging

    config = load_config()
    setup_logging(config.logging)
    return config


def _parse_input(raw: str) -> dict:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON input:[/red] {e}")
        raise typer.Exit(code=2)
    if not isinstance(value, dict):
        console.print("[red]Input must be a JSON object[/red]")
        raise typer.Exit(code=2)
    return value


# ════════════════════════════════════════════════════════════
# run: start API server
# ════════════════════════════════════════════════════════════


@app.command()
def run(
    port: int | None = typer.Option(None, "--port", "-p", help="Port number (default: server.port)"),
    host: str | None = typer.Option(None, "--host", "-h", help="Host address (default: server.host)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Start the API server (uvicorn)."""
    import uvicorn

    config = _load()
    host = host or config.server.host
    port = port or config.server.port
    console.print(f"[green]Starting flowbot API on {host}:{port}[/green]")
    uvicorn.run("flowbot.api.app:app", host=host, port=port, reload=reload)


# ════════════════════════════════════════════════════════════
# chat: one message through the pipeline
# ════════════════════════════════════════════════════════════


@app.command()
def chat(
    message: str = typer.Option(..., "--message", "-m", help="Message to send"),
    user: str = typer.Option("cli_user", "--user", "-u", help="CLI user identity"),
    model: str | None = typer.Option(None, "--model", help="Override llm.model"),
) -> None:
    """Send one message and print the assistant reply."""
    from flowbot.agent.runner import ChatRunner
    from flowbot.agent.skills.local import LocalSkillRuntime
    from flowbot.core.providers.litellm_llm import LiteLLMProvider
    from flowbot.memory.store import MemoryStore
    from flowbot.memory.values import Channel

    config = _load()
    db = MemoryStore(config.database.path)
    runner = ChatRunner(
        db,
        LiteLLMProvider(config),
        LocalSkillRuntime(config.skills),
        config.server.max_message_length,
    )

    try:
        result = asyncio.run(runner.send(user, message, model=model, channel=Channel.CLI))
    except FlowbotError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(f"\n[bold cyan]flowbot:[/bold cyan] {result.message.content}\n")
    console.print(
        f"[dim]session {result.session.id} · "
        f"{result.tokens.input}+{result.tokens.output} tokens[/dim]"
    )


# ════════════════════════════════════════════════════════════
# skills: runtime listing (sub-command group)
# ════════════════════════════════════════════════════════════

skills_app = typer.Typer(help="Inspect and run skills")
app.add_typer(skills_app, name="skills")


@skills_app.command("list")
def skills_list() -> None:
    """List executables visible to the local skill runtime."""
    from flowbot.agent.skills.local import LocalSkillRuntime

    config = _load()
    runtime = LocalSkillRuntime(config.skills)
    names = runtime.list()

    if not names:
        console.print(f"[dim]No skills found in {runtime.directory}.[/dim]")
        return

    table = Table(title="Skills")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Docs", style="green")

    for name in names:
        details = runtime.get_skill(name)
        table.add_row(name, details.get("description", ""), str(details["has_documentation"]))

    console.print(table)


@skills_app.command("run")
def skills_run(
    name: str = typer.Argument(help="Skill name"),
    input: str = typer.Option("{}", "--input", "-i", help="JSON object input"),
) -> None:
    """Run a skill directly through the local runtime (no session, no task)."""
    from flowbot.agent.skills.local import LocalSkillRuntime

    config = _load()
    runtime = LocalSkillRuntime(config.skills)
    try:
        result = asyncio.run(runtime.execute(name, _parse_input(input)))
    except FlowbotError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if result.success:
        console.print(result.output)
    else:
        console.print(f"[red]Failed:[/red] {result.error}")
        raise typer.Exit(code=1)


# ════════════════════════════════════════════════════════════
# schedules: schedule registry (sub-command group)
# ════════════════════════════════════════════════════════════

schedules_app = typer.Typer(help="Manage skill schedules")
app.add_typer(schedules_app, name="schedules")


def _schedules():
    from flowbot.core.cron.registry import ScheduleRegistry
    from flowbot.memory.store import MemoryStore

    config = _load()
    return ScheduleRegistry(MemoryStore(config.database.path).schedules)


@schedules_app.command("list")
def schedules_list(
    skill: str | None = typer.Option(None, "--skill", "-s", help="Filter by skill"),
) -> None:
    """List schedules."""
    registry = _schedules()
    items = registry.list_by_skill(skill) if skill else registry.list()

    if not items:
        console.print("[dim]No schedules found.[/dim]")
        return

    table = Table(title="Schedules")
    table.add_column("ID", style="cyan")
    table.add_column("Skill", style="blue")
    table.add_column("Cron", style="yellow")
    table.add_column("Input", style="white")
    table.add_column("Enabled", style="green")

    for s in items:
        table.add_row(s.id, s.skill, str(s.cron_expression), s.input, str(s.enabled))

    console.print(table)


@schedules_app.command("add")
def schedules_add(
    skill: str = typer.Argument(help="Skill name"),
    cron: str = typer.Argument(help="5-field cron expression, e.g. '0 9 * * 1-5'"),
    input: str = typer.Option("{}", "--input", "-i", help="JSON object input"),
    disabled: bool = typer.Option(False, "--disabled", help="Create disabled"),
) -> None:
    """Add a schedule."""
    registry = _schedules()
    try:
        schedule = registry.create(skill, cron, _parse_input(input), enabled=not disabled)
    except FlowbotError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Schedule created:[/green] {schedule.id}")


def _toggle(schedule_id: str, enabled: bool) -> None:
    registry = _schedules()
    try:
        registry.set_enabled(schedule_id, enabled)
    except FlowbotError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Schedule {'enabled' if enabled else 'disabled'}:[/green] {schedule_id}")


@schedules_app.command("enable")
def schedules_enable(schedule_id: str = typer.Argument(help="Schedule ID")) -> None:
    """Enable a schedule."""
    _toggle(schedule_id, True)


@schedules_app.command("disable")
def schedules_disable(schedule_id: str = typer.Argument(help="Schedule ID")) -> None:
    """Disable a schedule."""
    _toggle(schedule_id, False)


@schedules_app.command("remove")
def schedules_remove(schedule_id: str = typer.Argument(help="Schedule ID")) -> None:
    """Remove a schedule by ID."""
    registry = _schedules()
    try:
        registry.delete(schedule_id)
    except FlowbotError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed schedule:[/green] {schedule_id}")
