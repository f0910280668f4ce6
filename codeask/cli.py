"""
Command-line interface for codeask.

Commands for initializing a project, indexing it, asking questions about
it and managing the index.
"""

import logging
import sys
from pathlib import Path
import click
from rich.console import Console
from rich.markdown import Markdown
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn
from rich.table import Table

from .assistant import Assistant, db_path_for
from .config import Config
from .errors import CodeAskError, ConfigError
from .logging_config import setup_logging
from .progress import ProgressReporter
from .store import VectorStore
from . import __version__

logger = logging.getLogger(__name__)

console = Console()

CONFIG_TEMPLATE = """# codeask configuration
# Provider keys are read from the environment (or .env): OPENAI_API_KEY

[indexer]
exclude = []              # extra gitignore-style patterns to skip
max_file_size = 5242880   # 5MB
chunk_size = 2500         # characters per chunk
chunk_overlap = 400
max_chunks = 20           # per file
max_files = 200           # per run
batch_size = 5

[embeddings]
provider = "local"        # "local" (sentence-transformers) or "openai"
model = "all-MiniLM-L6-v2"
openai_model = "text-embedding-3-small"
max_input_chars = 8000

[store]
table_name = "code_records"

[search]
top_k = 10

[conversation]
history_cap = 10

[generation]
model = "gpt-4-turbo"
temperature = 0.2
max_tokens = 200
"""


def _fail_config(error: ConfigError) -> None:
    console.print("[red]Configuration error:[/red]")
    for problem in error.problems:
        console.print(f"  - {problem}")
    sys.exit(1)


def _load_assistant(project_root: Path, require_generation: bool = True) -> Assistant:
    try:
        return Assistant.from_config(Config(project_root), require_generation=require_generation)
    except ConfigError as e:
        _fail_config(e)
    except CodeAskError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


def _open_store(project_root: Path) -> VectorStore:
    """Open the existing index without loading an embedding model."""
    try:
        config = Config(project_root)
    except ConfigError as e:
        _fail_config(e)
    return VectorStore(db_path_for(project_root), table_name=config.get("store", "table_name"))


def _print_answer(answer) -> None:
    if answer.success:
        console.print(Markdown(answer.text))
    else:
        console.print(f"[red]{answer.text}[/red]")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(path_type=Path), help="Also write logs to this file")
@click.version_option(version=__version__, prog_name="codeask")
def main(debug: bool, log_file: Path):
    """codeask - ask questions about a local code tree."""
    setup_logging(level="DEBUG" if debug else "WARNING", log_file=log_file)


@main.command()
@click.option("--path", "-p", default=".", help="Project root path")
def init(path: str):
    """Create .codeask/config.toml with default settings."""
    project_root = Path(path).resolve()
    config_path = project_root / ".codeask" / "config.toml"
    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        return

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(CONFIG_TEMPLATE)

    console.print(f"[green]✓[/green] Created config at {config_path}")
    console.print("\nNext steps:")
    console.print("  1. Set [cyan]OPENAI_API_KEY[/cyan] in your environment or .env")
    console.print("  2. Run [cyan]codeask index[/cyan] to index your code")
    console.print("  3. Run [cyan]codeask chat[/cyan] to ask questions")


@main.command()
@click.argument("path", default=".")
def index(path: str):
    """Index a folder (or a single file) for question answering.

    The index is kept in .codeask/ under the current directory, where the
    other commands look for it.
    """
    index_path = Path(path).resolve()
    if not index_path.exists():
        console.print(f"[red]Error: Path does not exist: {index_path}[/red]")
        sys.exit(1)

    project_root = Path.cwd()
    assistant = _load_assistant(project_root, require_generation=False)

    console.print(f"[cyan]Indexing {index_path}...[/cyan]")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        TextColumn("[cyan]ETA: {task.fields[eta]}"),
        console=console,
    ) as progress:
        task = progress.add_task("Indexing files...", total=0, eta="calculating...")

        def progress_callback(event):
            progress.update(
                task,
                total=event.total,
                completed=event.current,
                description=f"Batch {event.batch}/{event.total_batches}: {Path(event.filename).name}",
                eta=ProgressReporter.format_eta(event.eta_seconds),
            )

        try:
            result = assistant.index(index_path, progress_callback=progress_callback)
        except (OSError, CodeAskError) as e:
            console.print(f"\n[red]Error during indexing: {e}[/red]")
            if logger.isEnabledFor(logging.DEBUG):
                raise
            sys.exit(1)

    console.print("\n[green]✓ Indexing complete![/green]\n")
    console.print(str(result))


@main.command()
@click.argument("question")
def ask(question: str):
    """Ask one question about the indexed code."""
    project_root = Path.cwd()
    if not db_path_for(project_root).exists():
        console.print("[red]Error: No index found. Run 'codeask index' first.[/red]")
        sys.exit(1)

    assistant = _load_assistant(project_root)
    answer = assistant.ask(assistant.new_session(), question)
    _print_answer(answer)
    if not answer.success:
        sys.exit(1)


@main.command()
def chat():
    """Interactive conversation about the indexed code.

    Type /clear to forget the conversation so far, /exit to quit.
    """
    project_root = Path.cwd()
    if not db_path_for(project_root).exists():
        console.print("[red]Error: No index found. Run 'codeask index' first.[/red]")
        sys.exit(1)

    assistant = _load_assistant(project_root)
    session = assistant.new_session()
    console.print("[dim]Ask a question about your code. /clear resets the conversation, /exit quits.[/dim]")

    while True:
        try:
            question = console.input("[bold cyan]> [/bold cyan]").strip()
        except (EOFError, KeyboardInterrupt):
            console.print()
            break

        if not question:
            continue
        if question == "/exit":
            break
        if question == "/clear":
            session.clear()
            console.print("[dim]Conversation history cleared.[/dim]")
            continue

        with console.status("Thinking..."):
            answer = assistant.ask(session, question)
        _print_answer(answer)
        console.print()


@main.command()
def status():
    """Show index statistics."""
    project_root = Path.cwd()
    db_path = db_path_for(project_root)
    if not db_path.exists():
        console.print("[yellow]No index found. Run 'codeask index' to create one.[/yellow]")
        return

    store = _open_store(project_root)
    try:
        stats = store.get_stats()
    except CodeAskError as e:
        console.print(f"[red]Error getting status: {e}[/red]")
        sys.exit(1)

    table = Table(title="Index Statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for line in str(stats).splitlines():
        metric, _, value = line.partition(": ")
        table.add_row(metric, value)
    console.print(table)


@main.command()
@click.confirmation_option(prompt="Are you sure you want to delete all indexed data?")
def clean():
    """Remove all indexed data."""
    project_root = Path.cwd()
    db_path = db_path_for(project_root)
    if not db_path.exists():
        console.print("[yellow]No index found.[/yellow]")
        return

    store = _open_store(project_root)
    try:
        store.clear_all()
    except CodeAskError as e:
        console.print(f"[red]Error cleaning index: {e}[/red]")
        sys.exit(1)
    console.print("[green]✓ Cleared all indexed data.[/green]")


if __name__ == "__main__":
    main()
