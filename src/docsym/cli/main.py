"""
docsym CLI

Command-line interface for building and querying symbol indexes.

Usage::

    docsym index ./html/search        # Build and persist a snapshot
    docsym search "obj mutex"         # Query the latest snapshot
    docsym stats                      # Show snapshot statistics
    docsym watch ./html/search        # Rebuild whenever the tables change
    docsym mcp                        # Start the MCP server
"""

import logging
import time
from pathlib import Path

import click

from docsym.client import Docsym
from docsym.core.config import DocsymConfig
from docsym.core.search import ResultFormatter
from docsym.exceptions import DocsymError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: DocsymConfig, verbose: bool) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="docsym")
@click.option("-n", "--max-results", type=int, default=None,
              help="Result limit override (default: $DOCSYM_MAX_RESULTS or 50).")
@click.pass_context
def cli(ctx: click.Context, max_results: int | None):
    """docsym — jump-to-symbol search for generated API documentation."""
    config = DocsymConfig.from_env()
    if max_results is not None:
        config.max_results = max_results
    try:
        config.validate()
    except DocsymError as exc:
        _fail(exc)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# ---------------------------------------------------------------------------
# docsym index
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("source", type=click.Path(exists=True))
@click.option("--root", type=click.Path(file_okay=False), default=".",
              help="Directory whose .docsym/ sidecar receives the snapshot.")
@click.option("--snapshot", "version", default=None,
              help="Snapshot version label (default: content fingerprint).")
@click.option("--dry-run", is_flag=True, help="Build and report without saving.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def index(ctx: click.Context, source: str, root: str, version: str | None,
          dry_run: bool, verbose: bool):
    """Build a symbol index from SOURCE (Doxygen search/ dir, table, or .jsonl)."""
    config = ctx.obj["config"]
    _configure_logging(config, verbose)
    client = Docsym(config=config)
    try:
        result = client.index(source, path=root, version=version,
                              save=not dry_run, show_progress=True)
    except DocsymError as exc:
        _fail(exc)

    click.echo("─" * 50)
    click.echo("  DOCSYM — Index")
    click.echo("─" * 50)
    click.echo(f"  Snapshot          {result.snapshot_version}")
    click.echo(f"  Files loaded      {result.files_loaded:>8,}")
    click.echo(f"  Records indexed   {result.records_indexed:>8,}")
    click.echo(f"  Records rejected  {result.records_rejected:>8,}")
    click.echo(f"  Buckets           {result.buckets:>8,}")
    if dry_run:
        click.echo("  (dry run — nothing saved)")
    elif not result.saved:
        click.echo("  (snapshot already stored; now the latest)")
    click.echo("─" * 50)
    for message in result.errors[:20]:
        click.echo(f"  rejected: {message}", err=True)
    if len(result.errors) > 20:
        click.echo(f"  ... and {len(result.errors) - 20} more", err=True)


# ---------------------------------------------------------------------------
# docsym search
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
@click.option("--root", type=click.Path(file_okay=False), default=".",
              help="Directory containing the .docsym/ index.")
@click.option("--snapshot", "version", default=None, help="Snapshot version (default: latest).")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "compact"]),
              default="console", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def search(ctx: click.Context, query: str, root: str, version: str | None,
           fmt: str, verbose: bool):
    """Search the index for QUERY (prefix of a name or its qualifiers)."""
    config = ctx.obj["config"]
    _configure_logging(config, verbose)
    client = Docsym(config=config)
    try:
        client.load(root, version)
    except DocsymError as exc:
        _fail(exc)

    # Snapshot is cached by load(); time only the query itself
    t0 = time.perf_counter()
    hits = client.search(query, path=root, version=version)
    elapsed = time.perf_counter() - t0

    if fmt == "json":
        click.echo(ResultFormatter.format_json(hits))
    elif fmt == "compact":
        click.echo(ResultFormatter.format_compact(hits))
    else:
        click.echo(ResultFormatter.format_console(hits, query=query, elapsed_time=elapsed))


# ---------------------------------------------------------------------------
# docsym stats
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--root", type=click.Path(file_okay=False), default=".",
              help="Directory containing the .docsym/ index.")
@click.pass_context
def stats(ctx: click.Context, root: str):
    """Show snapshot statistics."""
    client = Docsym(config=ctx.obj["config"])
    try:
        s = client.stats(root)
    except DocsymError as exc:
        _fail(exc)
    click.echo("─" * 50)
    click.echo("  DOCSYM — Index Statistics")
    click.echo("─" * 50)
    click.echo(f"  Index location : {client.config.get_index_dir(Path(root).resolve())}")
    click.echo(f"  Latest snapshot: {s['latest_version']}")
    click.echo()
    click.echo(f"  Snapshots  {s['snapshots']:>8,}")
    click.echo(f"  Records    {s['records']:>8,}")
    click.echo(f"  Buckets    {s['buckets']:>8,}")
    click.echo("─" * 50)


# ---------------------------------------------------------------------------
# docsym watch
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False))
@click.option("--root", type=click.Path(file_okay=False), default=".",
              help="Directory whose .docsym/ sidecar receives the snapshots.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def watch(ctx: click.Context, source: str, root: str, verbose: bool):
    """Index SOURCE, then rebuild whenever its tables change (Ctrl+C to stop)."""
    from docsym.core.autoreload import SnapshotWatcher

    config = ctx.obj["config"]
    _configure_logging(config, verbose)
    client = Docsym(config=config)
    try:
        client.index(source, path=root)
    except DocsymError as exc:
        _fail(exc)

    watcher = SnapshotWatcher(
        Path(source), client, Path(root),
        interval_seconds=config.reload_interval_seconds,
        debounce_seconds=config.reload_debounce_seconds,
        extensions=config.watch_extensions,
    )
    watcher.start()
    click.echo(f"Watching {source} — press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\n  Stopped.")
    finally:
        watcher.stop()


# ---------------------------------------------------------------------------
# docsym mcp
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--transport", type=click.Choice(["stdio", "sse"]),
              default="stdio", help="MCP transport (default: stdio).")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def mcp(ctx: click.Context, transport: str, verbose: bool):
    """Start the docsym MCP server for agent integration."""
    config = ctx.obj["config"]
    _configure_logging(config, verbose)
    try:
        from docsym.mcp.server import create_server  # noqa: E402
    except ImportError:
        click.echo(
            "Error: MCP dependencies not installed.\n"
            "Install with:  pip install 'docsym[mcp]'",
            err=True,
        )
        raise SystemExit(1)

    server = create_server(config)
    server.run(transport=transport)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
