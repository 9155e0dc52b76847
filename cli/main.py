"""Scout CLI — entry-point for the acquisition layer.

Usage:
    python cli/main.py --help

Commands:
    fetch    → fetch one page and print its extracted content
    search   → query the configured search backends
    batch    → fetch several pages in bounded batches
    reviews  → mine review fragments from a page and summarise them
    serve    → run the HTTP API with uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from scout.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
import logging
from typing import Any, List, Optional

import typer

from scout.config import settings
from scout.layer import AcquisitionLayer
from scout.models import FetchOptions

app = typer.Typer(
    name="scout",
    help="Scout web data-acquisition CLI.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Configure logging for every sub-command."""
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)-7s %(message)s", stream=sys.stderr)


def _emit_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _synthetic_note(synthetic: bool) -> str:
    return "  ⚠️  synthetic (all strategies failed)" if synthetic else ""


# ---------------------------------------------------------------------------
# Page fetch
# ---------------------------------------------------------------------------
@app.command("fetch")
def fetch(
    url: str = typer.Argument(..., help="URL to fetch."),
    timeout: Optional[float] = typer.Option(None, help="Per-strategy timeout in seconds."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore cached results."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
) -> None:
    """Fetch a URL and print its extracted content."""
    with AcquisitionLayer() as layer:
        page = layer.fetch_page(url, FetchOptions(timeout=timeout, skip_cache=no_cache))

    if as_json:
        _emit_json(page.to_dict())
        return

    typer.echo(f"[fetch] Method  : {page.method}{_synthetic_note(page.synthetic)}")
    typer.echo(f"[fetch] Title   : {page.title or '(none)'}")
    typer.echo(f"[fetch] Words   : {len(page.text.split())}")
    typer.echo(f"[fetch] Links   : {len(page.links)}")
    if page.contact.email or page.contact.phone:
        typer.echo(f"[fetch] Contact : {page.contact.email} {page.contact.phone}".rstrip())
    if page.pricing:
        typer.echo(f"[fetch] Pricing : {', '.join(page.pricing)}")
    if page.reviews:
        typer.echo(f"[fetch] Reviews : {len(page.reviews)}")
    typer.echo("")
    typer.echo(page.text)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
@app.command("search")
def search(
    query: str = typer.Argument(..., help="Search query."),
    max_results: int = typer.Option(settings.search_max_results, "--max-results", "-n", min=1),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore cached results."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
) -> None:
    """Search the web and list the hits."""
    with AcquisitionLayer() as layer:
        result = layer.search(query, max_results=max_results, options=FetchOptions(skip_cache=no_cache))

    if as_json:
        _emit_json(result.to_dict())
        return

    typer.echo(f"[search] {len(result.hits)} hit(s) via {result.backend}{_synthetic_note(result.synthetic)}")
    for i, hit in enumerate(result.hits, 1):
        typer.echo(f"  {i:>2}. {hit.title}")
        typer.echo(f"      {hit.url}")


# ---------------------------------------------------------------------------
# Batch fetch
# ---------------------------------------------------------------------------
@app.command("batch")
def batch(
    urls: List[str] = typer.Argument(..., help="URLs to fetch."),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-c", min=1, help="Pages in flight at once."),
    as_json: bool = typer.Option(False, "--json", help="Print the full results as JSON."),
) -> None:
    """Fetch several URLs in bounded batches."""
    with AcquisitionLayer() as layer:
        pages = layer.fetch_multiple(urls, FetchOptions(max_concurrency=concurrency))

    if as_json:
        _emit_json([p.to_dict() for p in pages])
        return

    for page in pages:
        marker = "✗" if page.synthetic else "✓"
        typer.echo(f"  {marker} [{page.method}] {page.url}  {page.title!r}")


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------
@app.command("reviews")
def reviews(
    url: str = typer.Argument(..., help="Page to mine for reviews."),
    as_json: bool = typer.Option(False, "--json", help="Print the full summary as JSON."),
) -> None:
    """Extract review fragments from a page and summarise them."""
    with AcquisitionLayer() as layer:
        report = layer.review_summary(url)

    if as_json:
        _emit_json(report)
        return

    summary = report["summary"]
    typer.echo(
        f"[reviews] {summary['count']} fragment(s), average {summary['average_rating']}, "
        f"overall {summary['overall']} (confidence: {summary['confidence']})"
        f"{_synthetic_note(report['synthetic'])}"
    )
    for topic in report["topics"]:
        typer.echo(f"  - {topic['topic']}: {topic['mentions']} mention(s), {topic['sentiment']}")
    for review in report["reviews"]:
        typer.echo(f"  [{review['rating']}] {review['text']}")


# ---------------------------------------------------------------------------
# HTTP API
# ---------------------------------------------------------------------------
@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("scout.api.app:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
