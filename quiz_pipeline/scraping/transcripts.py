"""
Episode transcript acquisition.

A ScraperChain tries an ordered list of TranscriptSource strategies for one
episode. A strategy returns None when it does not apply (another show, page
not found, empty page); errors from one strategy are logged and the chain moves
on. The first success wins; when every strategy fails the chain raises
UpstreamFetchFailure with the per-strategy reasons.

Acquired transcripts are written to generation/transcripts/<topic>/sNNeNN.json,
the layout read by both the tracking index and the TV adapter.
"""

import json
import re
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from bs4 import BeautifulSoup

from quiz_pipeline.errors import NotFound, PipelineError, UpstreamFetchFailure
from quiz_pipeline.logger import log_function, setup_logging
from quiz_pipeline.scraping.http import HttpClient


logger = setup_logging(logger_name="scraper")

MIN_TRANSCRIPT_CHARS = 100


def slugify(name: str) -> str:
    """'The Big Bang Theory' -> 'the-big-bang-theory'"""
    slug = re.sub(r"[^\w\s-]", "", name.lower())
    return re.sub(r"[\s_-]+", "-", slug).strip("-")


def episode_filename(season: int, episode: int) -> str:
    return f"s{season:02d}e{episode:02d}.json"


def transcript_path(generation_dir: Path, topic: str, season: int, episode: int) -> Path:
    return Path(generation_dir) / "transcripts" / topic / episode_filename(season, episode)


@dataclass(frozen=True)
class EpisodeRef:
    show: str
    season: int
    episode: int
    slug: Optional[str] = None  # registry topic slug when it differs from slugify(show)

    @property
    def topic(self) -> str:
        return self.slug or slugify(self.show)

    @property
    def code(self) -> str:
        return f"S{self.season:02d}E{self.episode:02d}"


@dataclass
class TranscriptResult:
    show: str
    topic: str
    season: int
    episode: int
    title: str
    transcript: str
    source: str
    source_url: str
    scraped_at: str = field(default_factory=lambda: datetime.now().isoformat())
    has_character_names: bool = False

    @property
    def word_count(self) -> int:
        return len(self.transcript.split())

    def to_dict(self) -> dict:
        data = asdict(self)
        data["word_count"] = self.word_count
        return data


class TranscriptSource(ABC):
    """One site-specific acquisition strategy."""

    name: str = ""

    def __init__(self, http: HttpClient):
        self.http = http

    @abstractmethod
    def fetch(self, episode: EpisodeRef) -> Optional[TranscriptResult]:
        """Return the normalized transcript, or None if this source does not apply."""


class FriendsTranscriptSource(TranscriptSource):
    """fangj.github.io hosts every Friends episode with character names."""

    name = "Friends Transcripts (fangj.github.io)"
    URL = "https://fangj.github.io/friends/season/{code}.html"

    def url_for(self, episode: EpisodeRef) -> str:
        return self.URL.format(code=f"{episode.season:02d}{episode.episode:02d}")

    def fetch(self, episode):
        if episode.topic != "friends":
            return None

        url = self.url_for(episode)
        logger.info(f"Trying {self.name}: {url}")
        try:
            html = self.http.get_text(url)
        except NotFound:
            return None

        soup = BeautifulSoup(html, "html.parser")
        title = (soup.title.get_text(strip=True) if soup.title else "") or (
            f"Friends Season {episode.season} Episode {episode.episode}"
        )
        body = soup.body or soup
        lines = [line.strip() for line in body.get_text("\n").split("\n")]
        transcript = "\n".join(line for line in lines if line)
        if len(transcript) < MIN_TRANSCRIPT_CHARS:
            return None

        return TranscriptResult(
            show=episode.show,
            topic=episode.topic,
            season=episode.season,
            episode=episode.episode,
            title=title,
            transcript=transcript,
            source=self.name,
            source_url=url,
            has_character_names=True,
        )


class SubslikescriptSource(TranscriptSource):
    name = "Subslikescript"
    URL = "https://subslikescript.com/series/{slug}/season-{season}/episode-{episode}"

    def url_for(self, episode: EpisodeRef) -> str:
        slug = re.sub(r"[^\w\s-]", "", episode.show)
        slug = re.sub(r"_+", "_", re.sub(r"\s+", "_", slug))
        return self.URL.format(slug=slug, season=episode.season, episode=episode.episode)

    def fetch(self, episode):
        url = self.url_for(episode)
        logger.info(f"Trying {self.name}: {url}")
        try:
            html = self.http.get_text(url)
        except NotFound:
            return None

        soup = BeautifulSoup(html, "html.parser")
        script = soup.select_one(".full-script")
        transcript = script.get_text("\n").strip() if script else ""
        if len(transcript) < MIN_TRANSCRIPT_CHARS:
            logger.warning(f"{self.name} has no transcript content at {url}")
            return None

        heading = soup.find("h1")
        title = (heading.get_text(strip=True) if heading else "") or (
            f"{episode.show} Season {episode.season} Episode {episode.episode}"
        )
        return TranscriptResult(
            show=episode.show,
            topic=episode.topic,
            season=episode.season,
            episode=episode.episode,
            title=title,
            transcript=transcript,
            source=self.name,
            source_url=url,
        )


class ScraperChain:
    """Ordered fallback over transcript sources; the first success wins."""

    def __init__(self, sources: list[TranscriptSource]):
        self.sources = list(sources)

    @classmethod
    def default(cls, http: HttpClient) -> "ScraperChain":
        return cls([FriendsTranscriptSource(http), SubslikescriptSource(http)])

    def acquire(self, episode: EpisodeRef) -> TranscriptResult:
        """
        Raises:
            UpstreamFetchFailure: no source produced a transcript
        """
        logger.info(f"Scraping {episode.show} {episode.code}")
        attempts: list[str] = []

        for source in self.sources:
            try:
                result = source.fetch(episode)
            except PipelineError as e:
                logger.warning(f"{source.name} failed for {episode.show} {episode.code}: {e}")
                attempts.append(f"{source.name}: {e}")
                continue

            if result is None:
                attempts.append(f"{source.name}: not applicable")
                continue

            logger.info(f"Scraped {episode.show} {episode.code} from {result.source}")
            return result

        raise UpstreamFetchFailure(
            f"Failed to scrape transcript for {episode.show} {episode.code} from all sources",
            attempts=attempts,
        )


def save_transcript(result: TranscriptResult, generation_dir: Path) -> Path:
    path = transcript_path(generation_dir, result.topic, result.season, result.episode)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
    logger.info(f"Saved transcript: {path}")
    return path


@log_function(logger_name="scraper", log_args=True, log_execution_time=True)
def acquire_season(
    chain: ScraperChain,
    show: str,
    season: int,
    episode_count: int,
    generation_dir: Path,
    slug: Optional[str] = None,
    delay: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """
    Scrape every missing episode of a season.

    Episodes already on disk are skipped; a failed episode does not stop the
    season. Sleeps `delay` seconds between scraped episodes.

    Returns:
        Statistics dict with scraped/skipped/failed counts and failure messages
    """
    stats = {"scraped": 0, "skipped": 0, "failed": 0, "failures": []}

    for number in range(1, episode_count + 1):
        episode = EpisodeRef(show=show, season=season, episode=number, slug=slug)
        if transcript_path(generation_dir, episode.topic, season, number).exists():
            logger.info(f"{show} {episode.code} already downloaded, skipping")
            stats["skipped"] += 1
            continue

        try:
            result = chain.acquire(episode)
            save_transcript(result, generation_dir)
            stats["scraped"] += 1
        except UpstreamFetchFailure as e:
            logger.error(str(e))
            stats["failed"] += 1
            stats["failures"].append(f"{episode.code}: {e}")

        if number < episode_count:
            sleep(delay)

    logger.info(
        f"{show} season {season}: {stats['scraped']} scraped, "
        f"{stats['skipped']} skipped, {stats['failed']} failed"
    )
    return stats
