"""
CLI Main - Typer-based command-line interface.

Usage:
    academiq extract path/to/cv.pdf --save
    academiq list --search smith
    academiq show 12
    academiq serve
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from academiq.config import Settings, configure_logging, get_settings

app = typer.Typer(
    name="academiq",
    help="AcademiQ - Academic CV extraction",
    add_completion=False,
)
console = Console()

STAGE_STYLES = {
    "warning": "yellow",
    "parse_error": "yellow",
    "error": "red",
    "complete": "green",
}


@app.callback()
def cli(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Configure logging for every command."""
    configure_logging("DEBUG" if verbose else "WARNING")


@app.command()
def extract(
    pdf_path: Path = typer.Argument(..., help="Path to PDF CV"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON path"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model id"),
    save: bool = typer.Option(False, "--save", "-s", help="Store the record in the database"),
    email: str | None = typer.Option(None, "--email", "-e", help="Contact email to store"),
) -> None:
    """Extract a structured record from an academic CV."""
    if not pdf_path.exists():
        console.print(f"[red]Error:[/red] File not found: {pdf_path}")
        raise typer.Exit(1)

    asyncio.run(_extract_async(pdf_path, output, model, save, email))


async def _extract_async(
    pdf_path: Path,
    output: Path | None,
    model: str | None,
    save: bool,
    email: str | None,
) -> None:
    """Async extraction implementation."""
    from academiq.config import DuplicateError
    from academiq.domains.extraction import RawDocument
    from academiq.interfaces.api.deps import build_pipeline

    settings = get_settings()
    pipeline = build_pipeline(settings)
    document = RawDocument(filename=pdf_path.name, content=pdf_path.read_bytes())

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Uploading...", total=None)
        run = pipeline.start(document, model)

        async def consume() -> None:
            async for event in run.events():
                style = STAGE_STYLES.get(event.stage.value, "cyan")
                console.print(f"[{style}]{event.stage.value:>13}[/{style}] {event.message}")
                progress.update(task, description=event.message)

        try:
            await asyncio.wait_for(consume(), timeout=settings.client_timeout_seconds)
        except asyncio.TimeoutError:
            run.task.cancel()
            await asyncio.gather(run.task, return_exceptions=True)
            console.print(
                f"[red]Error:[/red] No result after {settings.client_timeout_seconds:.0f}s, giving up"
            )
            raise typer.Exit(1)

    cv = await run.result()
    terminal = run.publisher.terminal_event
    if cv is None or terminal is None:
        message = terminal.message if terminal else "Extraction did not finish"
        console.print(f"[red]Error:[/red] {message}")
        raise typer.Exit(1)

    summary = terminal.details or {}
    table = Table(title="Extraction Summary")
    table.add_column("Section", style="cyan")
    table.add_column("Count", style="green")
    table.add_row("Name", summary.get("personal") or "-")
    for section, count in cv.counts().items():
        table.add_row(section.capitalize(), str(count))
    table.add_row("Chunks", str(summary.get("chunks", 0)))
    table.add_row("Time", f"{summary.get('totalMs', 0) / 1000:.1f}s")
    console.print(table)

    if output:
        output.write_text(json.dumps(cv.to_wire(), indent=2, ensure_ascii=False))
        console.print(f"\n[green]Saved to:[/green] {output}")

    if save:
        from academiq.adapters.sqlite.repository import CVRepository

        repo = CVRepository(settings.db_path)
        try:
            await repo.initialize()
            person_id = await repo.save_cv(cv, pdf_filename=pdf_path.name, email=email)
        except DuplicateError as e:
            console.print(f"[yellow]Duplicate:[/yellow] {e.message}")
            raise typer.Exit(2)
        except Exception as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        finally:
            await repo.close()
        console.print(f"[green]Stored as researcher {person_id}[/green]")


@app.command("list")
def list_researchers(
    search: str | None = typer.Option(None, "--search", "-q", help="Match on name or email"),
    sort_by: str = typer.Option(
        "imported_at", "--sort", help="name, imported_at, birth_year or publications"
    ),
    ascending: bool = typer.Option(False, "--asc", help="Sort ascending"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of results"),
) -> None:
    """List stored researchers."""
    asyncio.run(_list_async(search, sort_by, ascending, limit))


async def _list_async(search: str | None, sort_by: str, ascending: bool, limit: int) -> None:
    """Async listing implementation."""
    from academiq.adapters.sqlite.repository import CVRepository

    repo = CVRepository(get_settings().db_path)
    try:
        await repo.initialize()
        persons = await repo.list_persons(
            search=search, sort_by=sort_by, descending=not ascending, limit=limit
        )
        total = await repo.count_persons()
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        await repo.close()

    table = Table(title=f"Researchers ({len(persons)} of {total})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Born")
    table.add_column("Publications", style="green")
    table.add_column("Imported", style="dim")
    for person in persons:
        table.add_row(
            str(person["id"]),
            f"{person['first_name']} {person['last_name']}",
            person["email"] or "-",
            str(person["birth_year"] or "-"),
            str(person["publication_count"]),
            str(person["imported_at"]),
        )
    console.print(table)


@app.command()
def show(
    person_id: int = typer.Argument(..., help="Researcher ID"),
) -> None:
    """Show one researcher with all their records."""
    asyncio.run(_show_async(person_id))


async def _show_async(person_id: int) -> None:
    """Async detail implementation."""
    from academiq.adapters.sqlite.repository import CVRepository
    from academiq.domains.extraction.models import SECTION_MODELS

    repo = CVRepository(get_settings().db_path)
    try:
        await repo.initialize()
        person = await repo.get_person(person_id)
    finally:
        await repo.close()

    if person is None:
        console.print(f"[red]Error:[/red] Researcher {person_id} not found")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[bold]Email:[/bold] {person['email'] or '-'}\n"
            f"[bold]Born:[/bold] {person['birth_year'] or '-'} {person['birth_country'] or ''}\n"
            f"[bold]Source:[/bold] {person['pdf_filename'] or '-'}",
            title=f"{person['first_name']} {person['last_name']}",
        )
    )

    for section in SECTION_MODELS:
        records = person[section]
        if not records:
            continue
        console.print(f"\n[bold cyan]{section.capitalize()}[/bold cyan] ({len(records)})")
        for record in records:
            values = [
                str(value)
                for key, value in record.items()
                if key not in ("id", "person_id") and value not in (None, [], "")
            ]
            console.print(f"  - {', '.join(values)}")


@app.command()
def delete(
    person_id: int = typer.Argument(..., help="Researcher ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a researcher and all their records."""
    if not yes:
        typer.confirm(f"Delete researcher {person_id}?", abort=True)
    asyncio.run(_delete_async(person_id))


async def _delete_async(person_id: int) -> None:
    """Async delete implementation."""
    from academiq.adapters.sqlite.repository import CVRepository

    repo = CVRepository(get_settings().db_path)
    try:
        await repo.initialize()
        deleted = await repo.delete_person(person_id)
    finally:
        await repo.close()

    if not deleted:
        console.print(f"[red]Error:[/red] Researcher {person_id} not found")
        raise typer.Exit(1)
    console.print(f"[green]Deleted researcher {person_id}[/green]")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print("\n[green]Starting AcademiQ API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "academiq.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init(
    data_dir: Path | None = typer.Option(None, "--data", "-d", help="Data directory"),
) -> None:
    """Initialize the AcademiQ database."""
    asyncio.run(_init_async(data_dir))


async def _init_async(data_dir: Path | None) -> None:
    """Async initialization."""
    from academiq.adapters.sqlite.repository import CVRepository

    settings = Settings(data_dir=data_dir) if data_dir else get_settings()
    data_path = settings.data_dir
    db_path = settings.db_path

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Initializing...", total=2)

        progress.update(task, description="Creating directories...")
        data_path.mkdir(parents=True, exist_ok=True)
        progress.advance(task)

        progress.update(task, description="Initializing SQLite database...")
        repo = CVRepository(db_path)
        try:
            await repo.initialize()
        finally:
            await repo.close()
        progress.advance(task)

    console.print("\n[green]Initialization complete![/green]")
    console.print(f"[dim]Database: {db_path}[/dim]")
    if not settings.openai_api_key:
        console.print("[yellow]OPENAI_API_KEY is not set; extraction will fail[/yellow]")


@app.command()
def version() -> None:
    """Show version information."""
    from academiq import __version__

    console.print(f"AcademiQ v{__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
