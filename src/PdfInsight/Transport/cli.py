"""Typer-based CLI for the PdfInsight server and its transport.

Commands:
    serve            Run the MCP server over stdio
    list             Show registered local documents and allowed origins
    read             Read one chunk and print its metadata
    fetch            Reassemble a whole document in-process and write it
    print-config     Print the merged configuration
    validate-config  Validate a configuration file
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from PdfInsight.Transport.codec import from_wire
from PdfInsight.Transport.config import export_config_schema, load_config
from PdfInsight.Transport.config.models import PdfInsightConfig
from PdfInsight.Transport.errors import PdfInsightError, get_actionable_error_message
from PdfInsight.Transport.logging_utils import setup_logging
from PdfInsight.Transport.tools import ToolContext, list_pdfs, read_pdf_bytes

LOGGER = logging.getLogger(__name__)

console = Console(stderr=True)
app = typer.Typer(
    name="pdfinsight",
    help="PdfInsight - chunked PDF transport server",
    no_args_is_help=True,
)

_state: Dict[str, Any] = {"config_path": None, "verbose": 0}

# ============================================================================
# Setup
# ============================================================================


def _load(overrides: Optional[Dict[str, Any]] = None) -> PdfInsightConfig:
    try:
        return load_config(_state["config_path"], cli_overrides=overrides)
    except (ValueError, RuntimeError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1)


def _configure_logging(cfg: PdfInsightConfig) -> None:
    verbose = _state["verbose"]
    level = "DEBUG" if verbose >= 2 else ("INFO" if verbose == 1 else cfg.logging.level)
    setup_logging(level=level, log_dir=cfg.logging.log_dir, max_log_size_mb=cfg.logging.max_log_size_mb)


def _fail(message: str, exc: Optional[BaseException] = None) -> None:
    console.print(f"[red]{message}[/red]")
    if exc is not None:
        _, hint = get_actionable_error_message(exc)
        if hint:
            console.print(f"[yellow]Hint:[/yellow] {hint}")
    raise typer.Exit(1)


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="PDFI_CONFIG",
        help="Path to config file (YAML or JSON)",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
) -> None:
    """PdfInsight - serve PDFs to viewers in bounded chunks."""
    _state["config_path"] = str(config) if config else None
    _state["verbose"] = verbose


# ============================================================================
# Commands
# ============================================================================


@app.command()
def serve(
    transport: str = typer.Option(
        "stdio", "--transport", "-t", help="MCP transport: stdio, sse or streamable-http"
    ),
) -> None:
    """Run the MCP server."""
    from PdfInsight.Transport.server import create_server

    cfg = _load()
    _configure_logging(cfg)
    server = create_server(cfg)
    LOGGER.info("Starting PdfInsight server (%s)", transport)
    server.run(transport=transport)


@app.command(name="list")
def list_sources() -> None:
    """Show registered local documents and allowed remote origins."""
    cfg = _load()
    _configure_logging(cfg)
    ctx = ToolContext.from_config(cfg)
    try:
        data = list_pdfs(ctx)["structuredContent"]
    finally:
        ctx.close()

    table = Table(title="Allowed sources")
    table.add_column("Kind", style="cyan")
    table.add_column("Source")
    for url in data["localFiles"]:
        table.add_row("local", url)
    for origin in data["allowedOrigins"]:
        table.add_row("remote", origin)
    Console().print(table)


@app.command()
def read(
    url: str = typer.Argument(..., help="Document URL or registered local path"),
    offset: int = typer.Option(0, "--offset", "-o", min=0, help="Byte offset"),
    byte_count: Optional[int] = typer.Option(
        None, "--byte-count", "-n", min=1, help="Bytes to read (clamped to the server cap)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw chunk message"),
) -> None:
    """Read one chunk and print its metadata."""
    cfg = _load()
    _configure_logging(cfg)
    ctx = ToolContext.from_config(cfg)
    try:
        result = read_pdf_bytes(ctx, url, offset, byte_count)
    finally:
        ctx.close()

    if result.get("isError"):
        _fail(result["content"][0]["text"])

    structured = result["structuredContent"]
    if as_json:
        typer.echo(json.dumps(structured, indent=2))
        return

    message = from_wire(structured)
    table = Table(title="Chunk")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("url", message.url)
    table.add_row("offset", str(message.offset))
    table.add_row("byteCount", str(message.byte_count))
    table.add_row("totalBytes", str(message.total_bytes) if message.total_known else "unknown")
    table.add_row("hasMore", str(message.has_more))
    Console().print(table)


@app.command()
def fetch(
    url: str = typer.Argument(..., help="Document URL or registered local path"),
    output: Path = typer.Argument(..., help="Where to write the reassembled document"),
    chunk_size: Optional[int] = typer.Option(
        None, "--chunk-size", min=1, help="Bytes requested per round trip"
    ),
) -> None:
    """Reassemble a whole document through the chunk transport and write it."""
    from PdfInsight.Viewer.loader import fetch_all
    from PdfInsight.Viewer.transport import InProcessTransport

    cfg = _load()
    _configure_logging(cfg)
    ctx = ToolContext.from_config(cfg)

    def _progress(loaded: int, total: int) -> None:
        if total:
            console.print(f"{loaded}/{total} bytes ({loaded * 100 // total}%)")
        else:
            console.print(f"{loaded} bytes")

    try:
        data = fetch_all(
            InProcessTransport(ctx),
            url,
            _progress,
            chunk_size=chunk_size or cfg.viewer.chunk_size_bytes,
        )
    except PdfInsightError as e:
        _fail(str(e), e)
    finally:
        ctx.close()

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)
    console.print(f"[green]Wrote {len(data)} bytes to {output}[/green]")


@app.command(name="print-config")
def print_config(
    schema: bool = typer.Option(False, "--schema", help="Print the JSON Schema instead"),
) -> None:
    """Print the merged configuration (file < env < CLI)."""
    if schema:
        typer.echo(json.dumps(export_config_schema(), indent=2))
        return
    cfg = _load()
    typer.echo(json.dumps(cfg.model_dump(mode="json"), indent=2))


@app.command(name="validate-config")
def validate_config(
    path: Path = typer.Argument(..., help="Config file to validate"),
) -> None:
    """Validate a configuration file."""
    try:
        cfg = load_config(str(path))
    except (ValueError, RuntimeError) as e:
        console.print("[red]Config validation failed:[/red]")
        console.print(f"   {e}")
        raise typer.Exit(1)
    console.print("[green]Config is valid[/green]")
    console.print(f"   Config hash: {cfg.config_hash()[:16]}...")


if __name__ == "__main__":
    app()
