"""Geocoding CLI commands: single address, batch file, suggestions, cache stats."""

import asyncio
import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import typer

from ghost_api.lib.geocoder import GeocodingEngine

geocode_app = typer.Typer()


@geocode_app.command("address")
def geocode_address(
    address: str = typer.Argument(..., help="Freeform address"),  # noqa: B008
    min_confidence: int | None = typer.Option(None, "--min-confidence", min=0, max=100, help="Minimum confidence"),  # noqa: B008
) -> None:
    """Geocode a single address."""
    asyncio.run(_geocode_address(address, min_confidence))


@geocode_app.command("batch")
def geocode_batch(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with a list of locations"),  # noqa: B008
    output: Path | None = typer.Option(None, "--output", "-o", help="Write results here instead of stdout"),  # noqa: B008
    min_confidence: int | None = typer.Option(None, "--min-confidence", min=0, max=100, help="Minimum confidence"),  # noqa: B008
    max_concurrent: int | None = typer.Option(None, "--max-concurrent", min=1, help="Chunk size / concurrency bound"),  # noqa: B008
    missing_only: bool = typer.Option(False, "--missing-only", help="Skip records that already have coordinates"),  # noqa: B008
) -> None:
    """Geocode every location in a JSON file with the full fallback ladder."""
    asyncio.run(_geocode_batch(input_file, output, min_confidence, max_concurrent, missing_only))


@geocode_app.command("suggest")
def suggest(
    query: str = typer.Argument(..., help="Partial address"),  # noqa: B008
    limit: int | None = typer.Option(None, "--limit", min=1, max=50, help="Maximum suggestions"),  # noqa: B008
) -> None:
    """Show autocomplete suggestions for a partial address."""
    asyncio.run(_suggest(query, limit))


@geocode_app.command("stats")
def stats() -> None:
    """Show geocoding cache statistics."""
    asyncio.run(_stats())


@asynccontextmanager
async def _engine_session() -> AsyncGenerator[GeocodingEngine]:
    """Build a geocoding engine for one CLI invocation and tear it down afterwards."""
    from ghost_api.core.config import get_settings
    from ghost_api.core.database import dispose_engine, get_session_factory, init_engine
    from ghost_api.services.geocoding_service import create_geocoding_engine, create_http_client

    settings = get_settings()
    use_database = settings.geocoder_cache_backend == "database"
    if use_database:
        init_engine(settings.database_url, schema=settings.database_schema)

    client = create_http_client(settings)
    try:
        factory = get_session_factory() if use_database else None
        yield create_geocoding_engine(settings, client, factory)
    finally:
        await client.aclose()
        if use_database:
            await dispose_engine()


async def _geocode_address(address: str, min_confidence: int | None) -> None:
    """Async implementation of single-address geocoding."""
    from ghost_api.services.geocoding_service import geocode_single_address

    async with _engine_session() as engine:
        response = await geocode_single_address(engine, address, min_confidence)

    if not response.success or response.result is None:
        typer.echo(response.message or "No result")
        raise typer.Exit(code=1)

    result = response.result
    typer.echo(f"Lat/Lon:     {result.latitude}, {result.longitude}")
    typer.echo(f"Confidence:  {result.confidence}")
    typer.echo(f"Provider:    {result.provider}")
    typer.echo(f"Cached:      {response.cached}")
    if result.display_name:
        typer.echo(f"Matched:     {result.display_name}")


async def _geocode_batch(
    input_file: Path,
    output: Path | None,
    min_confidence: int | None,
    max_concurrent: int | None,
    missing_only: bool = False,
) -> None:
    """Async implementation of batch geocoding."""
    from pydantic import TypeAdapter, ValidationError

    from ghost_api.lib.geocoder import BatchSummary
    from ghost_api.schemas.geocoding import LocationRecord
    from ghost_api.services.geocoding_service import geocode_locations, geocode_missing_locations

    try:
        locations = TypeAdapter(list[LocationRecord]).validate_json(input_file.read_bytes())
    except ValidationError as e:
        typer.echo(f"Invalid locations file: {e}", err=True)
        raise typer.Exit(code=2) from e

    async with _engine_session() as engine:
        if missing_only:
            results = await geocode_missing_locations(
                engine,
                locations,
                min_confidence=min_confidence,
                max_concurrent=max_concurrent,
            )
            summary = BatchSummary.from_records(results)
        else:
            response = await geocode_locations(
                engine,
                locations,
                min_confidence=min_confidence,
                max_concurrent=max_concurrent,
            )
            results, summary = response.results, response.summary

    payload = json.dumps([r.model_dump(exclude_none=True) for r in results], indent=2)
    if output is not None:
        output.write_text(payload + "\n", encoding="utf-8")
    else:
        typer.echo(payload)

    typer.echo(f"\nGeocoding completed: {summary.total} total", err=True)
    typer.echo(f"  With coordinates:  {summary.geocoded}", err=True)
    typer.echo(f"  Resolved now:      {summary.resolved}", err=True)


async def _suggest(query: str, limit: int | None) -> None:
    """Async implementation of address suggestions."""
    from ghost_api.services.geocoding_service import get_suggestions

    async with _engine_session() as engine:
        suggestions = await get_suggestions(engine, query, limit)

    if not suggestions:
        typer.echo("No suggestions")
        return
    for s in suggestions:
        typer.echo(f"[{s.confidence:>3}] {s.display_name} ({s.latitude}, {s.longitude})")


async def _stats() -> None:
    """Async implementation of cache statistics."""
    from ghost_api.services.geocoding_service import get_cache_stats

    async with _engine_session() as engine:
        cache_stats = await get_cache_stats(engine)

    avg = f"{cache_stats.avg_confidence:.1f}" if cache_stats.avg_confidence is not None else "n/a"
    typer.echo(f"Total cached:        {cache_stats.total_cached}")
    typer.echo(f"With coordinates:    {cache_stats.successful_geocodes}")
    typer.echo(f"Average confidence:  {avg}")
    typer.echo(f"Cached last 24h:     {cache_stats.cached_today}")
