"""
Content adapters: resolve "give me material for topic X".

Usage:
    registry = default_registry(config, http)
    result = registry.fetch_content(ContentRequest(category="tv-shows", topic="friends"))
"""

from typing import Optional

from quiz_pipeline.config import PipelineConfig
from quiz_pipeline.scraping.http import HttpClient
from quiz_pipeline.scraping.transcripts import ScraperChain

from .base import Citation, ContentAdapter, ContentRequest, ContentResult
from .registry import AdapterRegistry
from .tv import TVAdapter
from .wikipedia import (
    ArticleSetAdapter,
    MoviesAdapter,
    SportsAdapter,
    WikipediaAdapter,
    WikipediaClient,
)


def default_registry(
    config: PipelineConfig,
    http: HttpClient,
    scraper: Optional[ScraperChain] = None,
) -> AdapterRegistry:
    """Standard adapter order: media first, then knowledge, then sports."""
    wikipedia = WikipediaClient(http)
    return AdapterRegistry(
        [
            TVAdapter(config, wikipedia, scraper=scraper),
            MoviesAdapter(wikipedia),
            WikipediaAdapter(wikipedia),
            SportsAdapter(wikipedia),
        ]
    )


__all__ = [
    "Citation",
    "ContentAdapter",
    "ContentRequest",
    "ContentResult",
    "AdapterRegistry",
    "TVAdapter",
    "ArticleSetAdapter",
    "MoviesAdapter",
    "SportsAdapter",
    "WikipediaAdapter",
    "WikipediaClient",
    "default_registry",
]
