"""Command line entry point for one-off searches and the API server."""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

import click
import orjson
from dotenv import load_dotenv
from pydantic import ValidationError

from .errors import SearchFailedError
from .models import SearchRequest
from .pipeline import SearchPipeline
from .settings import ScraperConfig

BASE_DIR = Path(__file__).resolve().parents[1]

LOGGER = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Search results scraper."""
    load_dotenv(BASE_DIR / ".env")
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


@cli.command()
@click.argument("query")
@click.option(
    "--backend",
    type=click.Choice(["playwright", "http"]),
    help="Override SCRAPER_BACKEND",
)
def search(query: str, backend: str) -> None:
    """Run one search and print records as JSON lines."""
    config = ScraperConfig.from_env()
    if backend:
        config = dataclasses.replace(config, backend=backend)

    try:
        request = SearchRequest(query=query)
    except ValidationError as exc:
        raise click.BadParameter("query must not be blank", param_hint="QUERY") from exc

    pipeline = SearchPipeline.from_config(config)
    try:
        batch = asyncio.run(pipeline.run(request))
    except SearchFailedError as exc:
        raise click.ClickException(str(exc)) from exc

    for record in batch.to_payload():
        sys.stdout.write(orjson.dumps(record).decode() + "\n")
    summary = batch.summary()
    click.echo(
        f"records={summary['records']} sponsored={summary['sponsored']} "
        f"incomplete={summary['incomplete']} failed={summary['failed']}",
        err=True,
    )


@cli.command()
@click.option("--host", help="Override SCRAPER_HOST")
@click.option("--port", type=int, help="Override SCRAPER_PORT")
def serve(host: str, port: int) -> None:
    """Start the HTTP API."""
    import uvicorn

    from api.main import create_app

    config = ScraperConfig.from_env()
    host = host or config.host
    port = port or config.port
    LOGGER.info("Starting search scraper API on %s:%s (backend=%s)", host, port, config.backend)
    uvicorn.run(create_app(config), host=host, port=port)


if __name__ == "__main__":
    cli()
