import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from classgraph import __version__
from classgraph.daemon import SERVER_CONFIG, EditorBackend
from classgraph.exceptions import ClassgraphError
from classgraph.logging_config import logger, setup_logging
from classgraph.parser import extract_file
from classgraph.paths import ClassgraphPaths
from classgraph.watcher import DirectorySynchronizer

app = typer.Typer(help="Visual class graph editor backend and tools.")
console = Console(stderr=True)


@app.callback()
def global_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    if verbose:
        setup_logging(level="DEBUG", force=True)


@app.command()
def version():
    """
    Prints the current version of classgraph.
    """
    typer.echo(f"classgraph v{__version__}")


@app.command()
def serve(
    project: Path = typer.Argument(
        Path("."), help="Project directory holding app/.", file_okay=False
    ),
    host: str = typer.Option(SERVER_CONFIG["host"], "--host", help="Host to bind to."),
    port: int = typer.Option(SERVER_CONFIG["port"], "--port", "-p", help="Port to listen on."),
    no_watch: bool = typer.Option(False, "--no-watch", help="Do not watch the class directory."),
):
    """
    Runs the editor backend for a project.
    """
    backend = EditorBackend(project.resolve(), host=host, port=port, config={"watch": not no_watch})

    async def run() -> None:
        await backend.start()
        console.print(f"[green]Serving[/green] {project.resolve()} on ws://{backend.host}:{backend.port}")
        try:
            await backend.serve_forever()
        finally:
            await backend.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


@app.command()
def init(
    project: Path = typer.Argument(Path("."), help="Project directory to initialize.", file_okay=False),
):
    """
    Creates app/, the entry file and .classgraph/ and lists the classes found.
    """
    synchronizer = DirectorySynchronizer(ClassgraphPaths(project.resolve()))
    classes = synchronizer.initialize(watch=False)
    synchronizer.dispose()

    table = Table(title=f"Classes in {synchronizer.paths.app_dir}")
    table.add_column("Class", style="cyan")
    table.add_column("Mixins")
    table.add_column("Injects")
    table.add_column("Position", justify="right")
    for class_id, placed in sorted(classes.items()):
        table.add_row(
            class_id,
            ", ".join(mixin.value for mixin in placed.mixins),
            ", ".join(injector.class_id for injector in placed.injectors),
            f"{placed.x:g}, {placed.y:g}",
        )
    console.print(table)


@app.command()
def extract(
    file: Path = typer.Argument(..., help="Class file to extract.", exists=True, dir_okay=False, readable=True),
    json_output: bool = typer.Option(False, "--json", help="Output the extracted class as JSON."),
    class_id: Optional[str] = typer.Option(None, "--class", help="Class name, if it differs from the file name."),
):
    """
    Prints the structural model of one class file.
    """
    try:
        extracted = extract_file(file, class_id=class_id)
    except ClassgraphError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps(extracted.to_wire(), indent=2))
        return

    table = Table(title=extracted.class_id)
    table.add_column("Kind", style="cyan")
    table.add_column("Members")
    table.add_row("mixins", ", ".join(mixin.value for mixin in extracted.mixins))
    table.add_row(
        "injectors",
        ", ".join(f"{i.property_name} <- {i.class_id} ({i.kind})" for i in extracted.injectors),
    )
    table.add_row("observables", ", ".join(m.name for m in extracted.observables))
    table.add_row("computed", ", ".join(m.name for m in extracted.computed))
    table.add_row("actions", ", ".join(m.name for m in extracted.actions))
    Console().print(table)


if __name__ == "__main__":
    app()
