"""Search Hub CLI - Main entry point.

Provides the `search-hub` command-line interface.

Usage:
    search-hub search "quarterly budget" --tenant acme --limit 5 --format markdown
    search-hub breaker-config
"""

import asyncio
from enum import Enum
from typing import Optional

import typer

from search_hub_common import configure_logging, get_settings, init_telemetry
from search_hub_contracts import SearchQuery, SearchResponse, SearchType
from search_hub_search import create_search_service
from search_hub_storage import DatabaseConfig, close_connection_pool, get_connection_pool

from search_hub_cli.formatters import format_response_json, format_response_markdown


class OutputFormat(str, Enum):
    """Output format options."""

    markdown = "markdown"
    json = "json"


class SearchMode(str, Enum):
    """Search modes exposed on the command line."""

    hybrid = "hybrid"
    lexical = "lexical"
    semantic = "semantic"


app = typer.Typer(
    name="search-hub",
    help="Query the search-hub retrieval engine.",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logs from the search engines"
    ),
):
    """Search-hub command line."""
    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_output=settings.log_format == "json",
    )
    if settings.otel_enabled:
        init_telemetry(service_name=settings.otel_service_name)


async def run_search(
    query: SearchQuery,
    mode: SearchMode,
    user_id: str,
) -> SearchResponse:
    """Open the pool, run one search, release everything.

    Args:
        query: Validated search query
        mode: Search mode
        user_id: User recorded in the search log

    Returns:
        SearchResponse for the requested page
    """
    settings = get_settings()
    service = create_search_service(settings)

    try:
        await get_connection_pool(DatabaseConfig.from_settings(settings))
        return await service.search(query, user_id=user_id, search_type=SearchType(mode.value))
    finally:
        await service.aclose()
        await close_connection_pool()


@app.command()
def search(
    query_text: str = typer.Argument(..., help="The query to search for"),
    tenant: str = typer.Option(..., "--tenant", "-t", help="Tenant to search within"),
    mode: SearchMode = typer.Option(
        SearchMode.hybrid,
        "--mode",
        "-m",
        help="Search mode",
    ),
    limit: int = typer.Option(10, "--limit", "-l", help="Results per page (1-50)"),
    offset: int = typer.Option(0, "--offset", "-o", help="Results to skip"),
    semantic_k: Optional[int] = typer.Option(
        None, "--semantic-k", help="Semantic hits kept after reranking"
    ),
    rrf_k: Optional[int] = typer.Option(None, "--rrf-k", help="RRF smoothing constant"),
    user: str = typer.Option("cli", "--user", "-u", help="User recorded in the search log"),
    format: OutputFormat = typer.Option(
        OutputFormat.markdown,
        "--format",
        "-f",
        help="Output format",
    ),
):
    """Search a tenant's documents.

    Examples:

        search-hub search "quarterly budget" --tenant acme

        search-hub search "travel policy" -t acme --mode lexical --offset 10

        search-hub search "hiring plan" -t acme --format json
    """
    try:
        query = SearchQuery(
            tenant_id=tenant,
            text=query_text,
            limit=limit,
            offset=offset,
            semantic_k=semantic_k,
            rrf_k=rrf_k,
        )
        response = asyncio.run(run_search(query, mode, user))

        if format == OutputFormat.json:
            output = format_response_json(response, query_text, mode.value)
        else:
            output = format_response_markdown(response, query_text, mode.value)

        typer.echo(output)

    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command(name="breaker-config")
def breaker_config():
    """Show the effective circuit breaker and relevance configuration."""
    try:
        settings = get_settings()
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Semantic Search Configuration")
    typer.echo("=" * 40)
    typer.echo(f"Failure threshold:      {settings.breaker_failure_threshold}")
    typer.echo(f"Reset timeout:          {settings.breaker_reset_timeout_ms} ms")
    typer.echo(f"Half-open timeout:      {settings.breaker_half_open_timeout_ms} ms")
    typer.echo(f"Provider timeout:       {settings.provider_timeout_seconds} s")
    typer.echo(f"Rerank threshold:       {settings.semantic_rerank_threshold}")
    typer.echo(f"Top score cutoff:       {settings.semantic_top_score_cutoff}")
    typer.echo(f"Embedding model:        {settings.voyage_embed_model}")
    typer.echo(f"Rerank model:           {settings.voyage_rerank_model}")
    typer.echo(f"API key configured:     {'yes' if settings.voyage_api_key else 'no'}")


if __name__ == "__main__":
    app()
