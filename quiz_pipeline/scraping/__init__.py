"""
Scraping package: rate-limited HTTP and the transcript fallback chain.
"""

from .http import HttpClient, RateLimiter
from .transcripts import (
    EpisodeRef,
    FriendsTranscriptSource,
    ScraperChain,
    SubslikescriptSource,
    TranscriptResult,
    TranscriptSource,
    acquire_season,
    save_transcript,
    slugify,
    transcript_path,
)

__all__ = [
    "HttpClient",
    "RateLimiter",
    "EpisodeRef",
    "FriendsTranscriptSource",
    "ScraperChain",
    "SubslikescriptSource",
    "TranscriptResult",
    "TranscriptSource",
    "acquire_season",
    "save_transcript",
    "slugify",
    "transcript_path",
]
