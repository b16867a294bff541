"""Typer-based CLI for memvault."""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import MemvaultConfig, load_config
from .errors import ConfigError
from .heartbeat import HeartbeatRunner
from .llm import get_agent_client
from .memory import derive_checkpoint, get_embedding_client, index_vault
from .runtime import Runtime, open_runtime

app = typer.Typer(
    name="memvault",
    help="memvault - markdown memory vault with semantic search",
    add_completion=False,
)

console = Console()

VAULT_OPTION = typer.Option(None, "--vault", "-v", help="Path to vault directory (default: MEMVAULT_VAULT_PATH or ./vault)")
DB_OPTION = typer.Option(None, "--db", help="Path to SQLite database (default: MEMVAULT_DB_PATH or ./data/memvault.db)")
ENGINE_OPTION = typer.Option("auto", "--engine", "-e", help="Embedding engine: 'voyage', 'fake', or 'auto'")


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load_config(vault_path: Optional[str], db_path: Optional[str]) -> MemvaultConfig:
    try:
        return load_config({"vault_path": vault_path, "db_path": db_path})
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


def _open(config: MemvaultConfig, engine: str) -> Runtime:
    try:
        embedder = get_embedding_client(config, engine)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    return open_runtime(config, embedder=embedder)


@app.command("embed-vault")
def embed_vault(
    vault_path: str = VAULT_OPTION,
    db_path: str = DB_OPTION,
    engine: str = ENGINE_OPTION,
    full: bool = typer.Option(False, "--full", help="Re-embed every document, even unchanged ones"),
):
    """Chunk, embed and store every markdown file in the vault."""
    config = _load_config(vault_path, db_path)
    if not config.vault_path.exists():
        console.print(f"[red]Error: vault path does not exist: {config.vault_path}[/red]")
        raise typer.Exit(code=1)

    with _open(config, engine) as rt:
        if rt.embedder is None:
            console.print("[yellow]No VOYAGE_API_KEY configured; nothing embedded[/yellow]")
            raise typer.Exit(code=1)

        console.print(f"[dim]Embedding vault at: {config.vault_path}[/dim]")
        summary = index_vault(
            config.vault_path,
            store=rt.store,
            embedder=rt.embedder,
            max_chars=config.chunk_max_chars,
            full=full,
        )

    console.print(
        f"[bold green]Done:[/bold green] {summary.files_indexed} indexed, "
        f"{summary.files_unchanged} unchanged, {summary.files_removed} removed, "
        f"{summary.chunks_stored} chunks stored ({summary.files_considered} files considered)"
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="Natural-language query"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum results (default: search_limit)"),
    vault_path: str = VAULT_OPTION,
    db_path: str = DB_OPTION,
    engine: str = ENGINE_OPTION,
):
    """Search the vault by semantic similarity."""
    config = _load_config(vault_path, db_path)
    with _open(config, engine) as rt:
        results = rt.retrieval.search(query, limit)

    if not results:
        console.print("[yellow]No relevant memories found.[/yellow]")
        return

    table = Table(title=f"Results for: {query}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Relevance", justify="right")
    table.add_column("Excerpt")
    for i, r in enumerate(results, start=1):
        excerpt = r.content if len(r.content) <= 160 else r.content[:157] + "..."
        table.add_row(str(i), r.source_file, f"{r.relevance:.3f}", excerpt)
    console.print(table)


@app.command()
def distill(
    scope: str = typer.Option(..., "--scope", "-s", help="Chat scope whose backlog to check"),
    checkpoint: Optional[str] = typer.Option(
        None,
        "--checkpoint",
        help="Distill turns after this ISO timestamp (default: the last distilled turn of the scope)",
    ),
    agent_engine: str = typer.Option("auto", "--agent", help="Agent engine: 'anthropic', 'fake', or 'auto'"),
    vault_path: str = VAULT_OPTION,
    db_path: str = DB_OPTION,
    engine: str = ENGINE_OPTION,
):
    """Run one distillation check for a chat scope."""
    config = _load_config(vault_path, db_path)
    try:
        agent = get_agent_client(config, agent_engine)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    if agent is None:
        console.print("[red]Error: no agent configured (set ANTHROPIC_API_KEY or use --agent fake)[/red]")
        raise typer.Exit(code=1)

    with _open(config, engine) as rt:
        start = checkpoint if checkpoint is not None else derive_checkpoint(rt.conversations, scope)
        outcome = rt.distillation_trigger(agent).check(scope, start)

    color = {"distilled": "green", "failed": "red"}.get(outcome.status, "yellow")
    console.print(f"[{color}]{outcome.status}[/{color}] ({outcome.turns_considered} turns considered)")
    if outcome.document:
        console.print(f"[dim]Document: {outcome.document} ({outcome.chunks_indexed} chunks indexed)[/dim]")
    console.print(f"[dim]Checkpoint: {outcome.checkpoint or '-'}[/dim]")
    if outcome.status == "failed":
        raise typer.Exit(code=1)


@app.command("heartbeat-check")
def heartbeat_check(
    agent_engine: str = typer.Option("auto", "--agent", help="Agent engine: 'anthropic', 'fake', or 'auto'"),
    vault_path: str = VAULT_OPTION,
    db_path: str = DB_OPTION,
):
    """Run one heartbeat tick, printing the notification instead of sending it."""
    config = _load_config(vault_path, db_path)
    try:
        agent = get_agent_client(config, agent_engine)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    if agent is None:
        console.print("[red]Error: no agent configured (set ANTHROPIC_API_KEY or use --agent fake)[/red]")
        raise typer.Exit(code=1)

    with _open(config, "auto") as rt:
        runner = HeartbeatRunner(
            vault_root=config.vault_path,
            log=rt.heartbeat_log,
            agent=agent,
            deliver=lambda text: console.print(f"[bold cyan]Notification:[/bold cyan] {text}"),
            checklist_file=config.heartbeat_file,
            active_hours_start=config.active_hours_start,
            active_hours_end=config.active_hours_end,
            tz=config.tzinfo,
        )
        outcome = runner.tick()

    console.print(f"[dim]Heartbeat: {outcome.status}[/dim]")


@app.command()
def status(
    vault_path: str = VAULT_OPTION,
    db_path: str = DB_OPTION,
):
    """Show indexed chunk counts per document."""
    config = _load_config(vault_path, db_path)
    with open_runtime(config, embedder=None) as rt:
        sources = rt.store.list_sources()
        migrations = rt.db.applied_migrations()

    console.print(f"[dim]Database: {config.db_path} (migrations: {', '.join(migrations)})[/dim]")
    if not sources:
        console.print("[yellow]No documents indexed[/yellow]")
        return

    table = Table(title="Indexed documents")
    table.add_column("Source", style="cyan")
    table.add_column("Chunks", justify="right")
    for source, n in sources.items():
        table.add_row(source, str(n))
    console.print(table)
    console.print(f"[bold]{sum(sources.values())}[/bold] chunks in {len(sources)} documents")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
