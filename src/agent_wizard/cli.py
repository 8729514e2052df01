"""CLI entry point for the agent wizard."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from agent_wizard.config import Settings
from agent_wizard.errors import WizardError

app = typer.Typer(
    name="agent-wizard",
    help="Agent wizard: turn an organization description into committed agent definitions.",
    no_args_is_help=True,
)
console = Console()

DEFAULT_DB = Settings().db_path

DbOption = typer.Option(DEFAULT_DB, envvar="AGENT_WIZARD_DB", help="Path to SQLite database")
TenantOption = typer.Option("local", envvar="AGENT_WIZARD_TENANT", help="Tenant identifier")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )
    # Provider SDK request logs are noise at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _ensure_db_dir(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def _wizard(db: Path) -> AsyncIterator[Any]:
    """Open storage and build the orchestrator; the storage handle closes on exit."""
    from agent_wizard.generation.backend import AnthropicBackend
    from agent_wizard.orchestrator import StageOrchestrator
    from agent_wizard.storage.sqlite import StorageEngine

    _ensure_db_dir(db)
    settings = Settings.from_env()
    storage = StorageEngine(db)
    await storage.initialize()
    try:
        backend = AnthropicBackend(model=settings.model, timeout=settings.provider_timeout)
        yield StageOrchestrator(storage, backend, settings)
    finally:
        await storage.close()


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    try:
        return asyncio.run(coro)
    except WizardError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


def _print_result(result: Any) -> None:
    console.print_json(data=result.to_document())
    if not result.success:
        raise typer.Exit(1)


@app.command()
def init(db: Path = DbOption) -> None:
    """Initialize a new agent wizard database."""
    from agent_wizard.storage.sqlite import StorageEngine

    _ensure_db_dir(db)

    async def _init() -> None:
        engine = StorageEngine(db)
        await engine.initialize()
        await engine.close()

    asyncio.run(_init())
    console.print(f"[green]Initialized agent wizard at {db}[/green]")


@app.command()
def new(
    name: str = typer.Argument(help="Session name"),
    source_type: str = typer.Option("text", help="Source type: text, file, web or xml"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Create a wizard session."""
    from agent_wizard.models.enums import SourceType

    try:
        kind = SourceType(source_type)
    except ValueError:
        console.print(f"[red]Unknown source type: {source_type}[/red]")
        raise typer.Exit(1) from None

    async def _new() -> None:
        async with _wizard(db) as wizard:
            session = await wizard.create_session(tenant, name, kind)
            console.print(f"[green]Created session {session.id}[/green]")

    _run(_new())


@app.command()
def extract(
    session_id: str = typer.Argument(help="Session ID"),
    text: str | None = typer.Option(None, help="Organization description"),
    file: Path | None = typer.Option(None, help="Read the description from a file"),
    url: str | None = typer.Option(None, help="Read the description from a web page"),
    context: str | None = typer.Option(None, help="Additional context for the model"),
    industry: str | None = typer.Option(None, help="Industry hint"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Step 1: extract capabilities from an organization description."""
    import httpx

    from agent_wizard import sources
    from agent_wizard.models.enums import SourceType

    if sum(option is not None for option in (text, file, url)) != 1:
        console.print("[red]Provide exactly one of --text, --file or --url[/red]")
        raise typer.Exit(1)

    async def _extract() -> None:
        source_type = None
        try:
            if file is not None:
                description = sources.read_file(file)
                source_type = sources.source_type_for(file)
            elif url is not None:
                console.print(f"[dim]Fetching {url}...[/dim]")
                description = await sources.fetch_page(url)
                source_type = SourceType.WEB
            else:
                description = sources.read_text(text)
        except (OSError, ValueError, httpx.HTTPError) as exc:
            console.print(f"[red]Could not read the description: {exc}[/red]")
            raise typer.Exit(1) from exc

        async with _wizard(db) as wizard:
            result = await wizard.run_extract(
                session_id,
                tenant,
                description,
                custom_context=context,
                industry=industry,
                source_type=source_type,
            )
        _print_result(result)

    _run(_extract())


@app.command()
def classify(
    session_id: str = typer.Argument(help="Session ID"),
    select: list[str] | None = typer.Option(None, help="Capability ID to classify (repeatable)"),
    context: str | None = typer.Option(None, help="Additional context for the model"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Step 2: classify extracted capabilities into element types."""

    async def _classify() -> None:
        async with _wizard(db) as wizard:
            result = await wizard.run_classify(
                session_id, tenant, selected_capability_ids=select or None, custom_context=context
            )
        _print_result(result)

    _run(_classify())


@app.command()
def propose(
    session_id: str = typer.Argument(help="Session ID"),
    agents: int | None = typer.Option(None, help="Target agent count"),
    context: str | None = typer.Option(None, help="Organization context"),
    optimize: bool = typer.Option(True, help="Run the optimization pass"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Step 3: propose agents and optimize the proposal."""

    async def _propose() -> None:
        async with _wizard(db) as wizard:
            result = await wizard.run_propose(
                session_id,
                tenant,
                target_agent_count=agents,
                organization_context=context,
                optimize=optimize,
            )
        _print_result(result)

    _run(_propose())


@app.command()
def configure(
    session_id: str = typer.Argument(help="Session ID"),
    risk: str | None = typer.Option(None, help="Organization risk tolerance"),
    compliance: list[str] | None = typer.Option(None, help="Compliance requirement (repeatable)"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Step 4: assign patterns and define skills."""

    async def _configure() -> None:
        async with _wizard(db) as wizard:
            result = await wizard.run_configure(
                session_id, tenant, risk_tolerance=risk, compliance_requirements=compliance
            )
        _print_result(result)

    _run(_configure())


@app.command()
def flow(
    session_id: str = typer.Argument(help="Session ID"),
    element_id: str = typer.Argument(help="Classified element ID"),
    context: str | None = typer.Option(None, help="Additional context for the model"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Step 5 (optional): generate a BPMN process flow for one element."""

    async def _flow() -> None:
        async with _wizard(db) as wizard:
            result = await wizard.run_process_flow(
                session_id, tenant, element_id, custom_context=context
            )
        _print_result(result)

    _run(_flow())


@app.command()
def connect(
    session_id: str = typer.Argument(help="Session ID"),
    industry: str | None = typer.Option(None, help="Industry hint"),
    system: list[str] | None = typer.Option(None, help="Known system (repeatable)"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Step 6: define relationships and integrations."""

    async def _connect() -> None:
        async with _wizard(db) as wizard:
            result = await wizard.run_connect(
                session_id, tenant, industry=industry, known_systems=system
            )
        _print_result(result)

    _run(_connect())


@app.command()
def show(
    session_id: str = typer.Argument(help="Session ID"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Show a session's current stage, stage data and status."""

    async def _show() -> None:
        async with _wizard(db) as wizard:
            state = await wizard.get_state(session_id, tenant)
        console.print_json(data=state.to_document())

    _run(_show())


@app.command()
def sessions(
    limit: int = typer.Option(50, help="Maximum number of sessions"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """List sessions, newest first."""

    async def _sessions() -> None:
        async with _wizard(db) as wizard:
            rows = await wizard.list_sessions(tenant, limit=limit)

        if not rows:
            console.print("[dim]No sessions found.[/dim]")
            return
        table = Table(title=f"Sessions ({tenant})")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Stage", justify="right")
        table.add_column("Status")
        table.add_column("Created")
        for row in rows:
            table.add_row(
                row["id"],
                row["session_name"],
                str(row["current_stage"]),
                row["status"],
                str(row["created_at"]),
            )
        console.print(table)

    _run(_sessions())


@app.command()
def delete(
    session_id: str = typer.Argument(help="Session ID"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Delete a session. Agents already applied from it are kept."""

    async def _delete() -> None:
        async with _wizard(db) as wizard:
            await wizard.delete_session(session_id, tenant)
        console.print(f"[green]Deleted session {session_id}[/green]")

    _run(_delete())


@app.command(name="apply")
def apply_session(
    session_id: str = typer.Argument(help="Session ID"),
    output: Path | None = typer.Option(None, help="Also write the result to this file"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Commit a session's agents, skills, relationships and integrations."""
    from agent_wizard.apply import ApplyEngine

    async def _apply() -> None:
        async with _wizard(db) as wizard:
            result = await ApplyEngine(wizard.storage).apply(session_id, tenant)
        if output is not None:
            _write_result(result, output)
        _print_result(result)

    _run(_apply())


def _write_result(result: Any, output: Path) -> None:
    if output.suffix in (".yaml", ".yml"):
        from agent_wizard.export.yaml import export_apply_result_yaml

        export_apply_result_yaml(result, output)
    else:
        from agent_wizard.export.json import export_apply_result_json

        export_apply_result_json(result, output)


@app.command()
def export(
    session_id: str = typer.Argument(help="Session ID"),
    output: Path = typer.Option(..., help="Output file path"),
    format: str = typer.Option("json", help="Export format: json or yaml"),
    tenant: str = TenantOption,
    db: Path = DbOption,
) -> None:
    """Export a session's state to JSON or YAML."""
    if format not in ("json", "yaml"):
        console.print(f"[red]Unknown format '{format}'. Use json or yaml.[/red]")
        raise typer.Exit(1)

    async def _export() -> None:
        async with _wizard(db) as wizard:
            state = await wizard.get_state(session_id, tenant)

        if format == "yaml":
            from agent_wizard.export.yaml import export_state_yaml

            export_state_yaml(state, output)
        else:
            from agent_wizard.export.json import export_state_json

            export_state_json(state, output)
        console.print(f"[green]Exported session {session_id} to {output}[/green]")

    _run(_export())


@app.command()
def patterns(
    suggest: str | None = typer.Option(None, help="Suggest a pattern for this agent purpose"),
) -> None:
    """List the agentic design patterns."""
    from agent_wizard.patterns import ALL_PATTERNS, get_pattern, suggest_pattern

    if suggest:
        name = suggest_pattern(suggest)
        pattern = get_pattern(name)
        console.print(f"[bold]{name}[/bold]: {pattern.use_when if pattern else ''}")
        return

    table = Table(title="Agentic design patterns")
    table.add_column("Pattern")
    table.add_column("Category")
    table.add_column("Use when")
    table.add_column("Characteristics")
    for p in ALL_PATTERNS:
        table.add_row(p.name, p.category, p.use_when, p.characteristics)
    console.print(table)


if __name__ == "__main__":
    app()
