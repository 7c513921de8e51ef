"""Quickcrawl CLI: crawl a page from the terminal or run the HTTP server.

Usage:
    python cli/main.py --help

Commands:
    crawl   → run the crawl pipeline once and print the markdown
    serve   → start the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from quickcrawl.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import Optional

import typer

from quickcrawl.config import settings
from quickcrawl.errors import RateLimitExceeded
from quickcrawl.logger import configure_logging
from quickcrawl.services import build_crawl_service

app = typer.Typer(
    name="quickcrawl",
    help="Quickcrawl: turn a web page into markdown.",
    no_args_is_help=True,
)


@app.command("crawl")
def crawl(
    url: str = typer.Option(..., help="URL to crawl (http or https)."),
    as_json: bool = typer.Option(False, "--json", help="Print the full JSON envelope."),
) -> None:
    """Fetch URL, extract its main content, and print it as markdown."""
    configure_logging(settings.log_level)
    service = build_crawl_service(settings)

    try:
        result = asyncio.run(service.crawl_url(url, identifier="cli"))
    except RateLimitExceeded as exc:
        typer.echo(f"[crawl] Rate limited, retry in {exc.retry_after}s", err=True)
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    elif result.success and result.data is not None:
        if result.data.title:
            typer.echo(f"# {result.data.title}\n")
        typer.echo(result.data.markdown)
    elif result.error is not None:
        typer.echo(f"[crawl] {result.error.type}: {result.error.message}", err=True)

    if not result.success:
        raise typer.Exit(1)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, help="Port (defaults to $PORT or 3000)."),
    reload: bool = typer.Option(False, help="Reload on code changes (development)."),
) -> None:
    """Run the HTTP API."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run(
        "quickcrawl.api.app:app",
        host=host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
