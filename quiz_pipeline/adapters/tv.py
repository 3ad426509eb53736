"""
TV show adapter.

Fallback order for a request:
  1. the requested episode's cached transcript (when season and episode are given)
  2. the scraper chain for that episode, saved to the cache (when a chain is configured)
  3. every cached transcript of the show, bounded per episode and in total
  4. the show's encyclopedia summary

Transcripts are cached under generation/transcripts/<topic>/sNNeNN.json.
"""

import json
import re
from pathlib import Path
from typing import Optional

from quiz_pipeline.adapters.base import Citation, ContentAdapter, ContentRequest, ContentResult
from quiz_pipeline.adapters.wikipedia import WikipediaClient
from quiz_pipeline.config import PipelineConfig
from quiz_pipeline.errors import NotFound, PipelineError, UpstreamFetchFailure
from quiz_pipeline.logger import setup_logging
from quiz_pipeline.scraping.transcripts import (
    EpisodeRef,
    ScraperChain,
    save_transcript,
    transcript_path,
)


logger = setup_logging(logger_name="adapters")

SOURCE_CACHED_EPISODE = "Cached Transcript"
SOURCE_SCRAPED_EPISODE = "Scraped Transcript"
SOURCE_CACHED_SHOW = "Cached Transcripts"
SOURCE_ENCYCLOPEDIA = "Wikipedia"

MIN_SUMMARY_CHARS = 100

_EPISODE_FILE = re.compile(r"^s(\d+)e(\d+)\.json$")

SHOW_NAMES = {
    "friends": "Friends",
    "the-office-us": "The Office",
    "the-big-bang-theory": "The Big Bang Theory",
    "how-i-met-your-mother": "How I Met Your Mother",
    "brooklyn-nine-nine": "Brooklyn Nine-Nine",
    "parks-and-recreation": "Parks and Recreation",
    "schitts-creek": "Schitt's Creek",
    "house-md": "House",
    "greys-anatomy": "Grey's Anatomy",
}


def show_name(topic: str) -> str:
    return SHOW_NAMES.get(topic) or " ".join(w.capitalize() for w in topic.split("-") if w)


class TVAdapter(ContentAdapter):
    name = "tv-adapter"
    categories = ("tv-shows",)

    def __init__(
        self,
        config: PipelineConfig,
        wikipedia: WikipediaClient,
        scraper: Optional[ScraperChain] = None,
    ):
        self.config = config
        self.wikipedia = wikipedia
        self.scraper = scraper

    def _show_dir(self, topic: str) -> Path:
        return Path(self.config.generation_dir) / "transcripts" / topic

    def _load(self, path: Path) -> Optional[dict]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable transcript {path}: {e}")
            return None
        return data if isinstance(data, dict) else None

    def fetch(self, request: ContentRequest) -> ContentResult:
        topic = request.topic
        show = show_name(topic)

        if request.part is not None and request.chapter is not None:
            result = self._cached_episode(topic, show, request.part, request.chapter)
            if result:
                return result
            result = self._scraped_episode(topic, show, request.part, request.chapter)
            if result:
                return result

        result = self._cached_show(topic, show)
        if result:
            return result

        result = self._encyclopedia_summary(topic, show)
        if result:
            return result

        raise NotFound(
            f"No transcripts found for '{show}' and the encyclopedia lookup failed. "
            "Scrape transcripts first."
        )

    def _cached_episode(
        self, topic: str, show: str, season: int, episode: int, source: str = SOURCE_CACHED_EPISODE
    ) -> Optional[ContentResult]:
        path = transcript_path(self.config.generation_dir, topic, season, episode)
        if not path.is_file():
            return None
        data = self._load(path)
        if data is None:
            return None

        transcript = data.get("transcript") or data.get("content") or ""
        if not isinstance(transcript, str) or not transcript.strip():
            return None

        title = data.get("title") or f"Season {season} Episode {episode}"
        upstream = data.get("source") or "Transcript"
        logger.info(f"Using cached transcript {path}")
        return ContentResult(
            title=f"{show}: {title}",
            content=f"# {show} - {title}\n\n*Season {season}, Episode {episode}*\n\n{transcript}",
            source=source,
            source_url=data.get("source_url") or "",
            citations=[
                Citation(
                    text=f"S{season}E{episode}: {title}",
                    source=upstream,
                    url=data.get("source_url"),
                )
            ],
            metadata={
                "category": "tv-shows",
                "topic": topic,
                "season": season,
                "episode": episode,
                "word_count": len(transcript.split()),
            },
        )

    def _scraped_episode(
        self, topic: str, show: str, season: int, episode: int
    ) -> Optional[ContentResult]:
        if self.scraper is None:
            return None
        try:
            scraped = self.scraper.acquire(EpisodeRef(show=show, season=season, episode=episode, slug=topic))
        except UpstreamFetchFailure as e:
            logger.warning(f"Scraping {show} S{season}E{episode} failed: {e}")
            return None
        save_transcript(scraped, self.config.generation_dir)
        return self._cached_episode(topic, show, season, episode, source=SOURCE_SCRAPED_EPISODE)

    def _cached_show(self, topic: str, show: str) -> Optional[ContentResult]:
        show_dir = self._show_dir(topic)
        if not show_dir.is_dir():
            return None

        episodes = []
        for path in show_dir.glob("*.json"):
            match = _EPISODE_FILE.match(path.name)
            if match:
                episodes.append((int(match.group(1)), int(match.group(2)), path))
        episodes.sort()

        sections: list[str] = []
        citations: list[Citation] = []
        for season, episode, path in episodes:
            data = self._load(path)
            if data is None:
                continue
            transcript = data.get("transcript") or data.get("content") or ""
            if not isinstance(transcript, str) or not transcript.strip():
                continue
            title = data.get("title") or "Unknown"
            truncated = transcript[: self.config.max_unit_chars]
            sections.append(f"\n## Season {season}, Episode {episode}: {title}\n\n{truncated}")
            citations.append(
                Citation(
                    text=f"S{season}E{episode}: {title}",
                    source=data.get("source") or "Transcript",
                    url=data.get("source_url"),
                )
            )

        if not sections:
            return None

        content = f"# {show} - Episode Transcripts\n\n*{len(sections)} episodes loaded*\n\n"
        included = 0
        for section in sections:
            block = section + "\n\n---\n"
            if len(content) + len(block) > self.config.max_aggregate_chars:
                break
            content += block
            included += 1

        logger.info(f"Aggregated {included}/{len(sections)} cached transcripts for {show}")
        return ContentResult(
            title=show,
            content=content,
            source=SOURCE_CACHED_SHOW,
            source_url="",
            citations=citations[: self.config.max_citations],
            metadata={
                "category": "tv-shows",
                "topic": topic,
                "episode_count": len(sections),
                "episodes_included": included,
            },
        )

    def _encyclopedia_summary(self, topic: str, show: str) -> Optional[ContentResult]:
        for title in (f"{show} (TV series)", f"{show} (American TV series)", show):
            try:
                summary = self.wikipedia.summary(title)
            except PipelineError as e:
                logger.warning(f"Encyclopedia lookup for '{title}' failed: {e}")
                continue
            extract = (summary or {}).get("extract") or ""
            if len(extract) <= MIN_SUMMARY_CHARS:
                continue

            page_title = summary.get("title") or title
            url = ((summary.get("content_urls") or {}).get("desktop") or {}).get("page") or ""
            return ContentResult(
                title=show,
                content=f"# {page_title}\n\n{extract}\n\n",
                source=SOURCE_ENCYCLOPEDIA,
                source_url=url,
                citations=[Citation(text=page_title, source="Wikipedia", url=url)],
                metadata={"category": "tv-shows", "topic": topic},
            )
        return None
