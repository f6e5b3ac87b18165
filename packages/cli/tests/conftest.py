"""Fixtures for CLI testing."""

import pytest
from typer.testing import CliRunner

from search_hub_contracts import SearchResponse, SearchResultItem


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def search_response():
    """Two-item first page with a highlighted snippet."""
    return SearchResponse(
        total=12,
        items=[
            SearchResultItem(
                id="doc-1",
                title="Quarterly Budget 2026",
                snippet="The <mark>budget</mark> review covers hiring",
                score=0.032522,
                url="https://docs.example.com/budget",
            ),
            SearchResultItem(
                id="doc-2",
                title="Travel Policy",
                snippet=None,
                score=0.016129,
            ),
        ],
        page=1,
        page_size=10,
    )
