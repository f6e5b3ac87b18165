"""Output formatters for CLI results.

Provides two output formats:
- markdown: Human-readable, highlights rendered as bold
- json: Machine-parseable JSON
"""

import json

from search_hub_contracts import SearchResponse, SearchResultItem


def _highlight(snippet: str) -> str:
    return snippet.replace("<mark>", "**").replace("</mark>", "**")


def format_result_markdown(item: SearchResultItem, rank: int) -> str:
    """Format a single result as markdown.

    Args:
        item: Result item to format
        rank: 1-based position on the page

    Returns:
        Markdown-formatted string
    """
    score = f"{item.score:.4f}" if item.score is not None else "n/a"

    lines = [
        f"## Result {rank} (score: {score})",
        f"**Title**: {item.title}",
        f"**Document**: {item.id}",
    ]
    if item.url:
        lines.append(f"**URL**: {item.url}")
    if item.snippet:
        lines.append(f"\n> {_highlight(item.snippet).replace(chr(10), chr(10) + '> ')}")

    return "\n".join(lines)


def format_response_markdown(response: SearchResponse, query: str, mode: str) -> str:
    """Format a search page as markdown.

    Args:
        response: Search response
        query: Original query string
        mode: Search mode used (hybrid, lexical, semantic)

    Returns:
        Markdown-formatted string
    """
    if not response.items:
        if response.no_strong_matches:
            return f"No strong matches for: **{query}**"
        return f"No results found for: **{query}**"

    first_rank = (response.page - 1) * response.page_size + 1
    header = (
        f'# Search Results for: "{query}" ({mode})\n\n'
        f"Showing {len(response.items)} of {response.total} results "
        f"(page {response.page}):\n"
    )
    body = "\n\n".join(
        format_result_markdown(item, rank)
        for rank, item in enumerate(response.items, start=first_rank)
    )
    return f"{header}\n{body}"


def format_response_json(response: SearchResponse, query: str, mode: str) -> str:
    """Format a search page as a JSON string."""
    output = {
        "query": query,
        "mode": mode,
        **response.model_dump(mode="json"),
    }
    return json.dumps(output, indent=2)
