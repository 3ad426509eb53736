"""
Encyclopedia-backed adapters.

WikipediaClient wraps the two endpoints the adapters need:
  - REST summary:   https://en.wikipedia.org/api/rest_v1/page/summary/<title>
  - Plain extracts: https://en.wikipedia.org/w/api.php?action=query&prop=extracts&explaintext=1

An article is its summary plus the first five sections longer than 100
characters. WikipediaAdapter, MoviesAdapter and SportsAdapter share the
article-set fetch and differ only in categories, topic mappings and labels.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional
from urllib.parse import quote

from quiz_pipeline.adapters.base import Citation, ContentAdapter, ContentRequest, ContentResult
from quiz_pipeline.errors import NotFound, PipelineError
from quiz_pipeline.logger import setup_logging
from quiz_pipeline.scraping.http import HttpClient


logger = setup_logging(logger_name="adapters")

REST_API = "https://en.wikipedia.org/api/rest_v1"
ACTION_API = "https://en.wikipedia.org/w/api.php"

MAX_SECTIONS = 5
MIN_SECTION_CHARS = 100

_SECTION_HEADING = re.compile(r"^==\s*([^=].*?)\s*==\s*$", re.MULTILINE)


def page_url(title: str) -> str:
    return f"https://en.wikipedia.org/wiki/{quote(title.replace(' ', '_'))}"


def humanize_topic(slug: str) -> str:
    return " ".join(word.capitalize() for word in slug.split("-") if word)


@dataclass
class Article:
    title: str
    content: str
    url: str


class WikipediaClient:
    def __init__(self, http: HttpClient):
        self.http = http

    def summary(self, title: str) -> Optional[dict[str, Any]]:
        """REST summary of an article, or None if it does not exist."""
        try:
            return self.http.get_json(f"{REST_API}/page/summary/{quote(title, safe='')}")
        except NotFound:
            logger.warning(f"Wikipedia article not found: {title}")
            return None

    def sections(self, title: str, limit: int = MAX_SECTIONS) -> list[tuple[str, str]]:
        """First `limit` level-2 sections with more than 100 characters of text."""
        data = self.http.get_json(
            ACTION_API,
            params={
                "action": "query",
                "prop": "extracts",
                "explaintext": 1,
                "redirects": 1,
                "format": "json",
                "titles": title,
            },
        )
        pages = (data.get("query") or {}).get("pages") or {}
        extract = next((page.get("extract") or "" for page in pages.values()), "")

        parts = _SECTION_HEADING.split(extract)
        # parts = [lead, heading1, body1, heading2, body2, ...]
        found = []
        for heading, body in zip(parts[1::2], parts[2::2]):
            text = re.sub(r"\s+", " ", body).strip()
            if len(text) > MIN_SECTION_CHARS:
                found.append((heading, text))
            if len(found) >= limit:
                break
        return found

    def fetch_article(self, title: str) -> Optional[Article]:
        summary = self.summary(title)
        if summary is None:
            return None

        content = summary.get("extract") or ""
        try:
            for heading, text in self.sections(title):
                content += f"\n\n### {heading}\n{text}"
        except PipelineError as e:
            # The summary alone is still usable
            logger.warning(f"Could not fetch sections for '{title}': {e}")

        url = ((summary.get("content_urls") or {}).get("desktop") or {}).get("page")
        return Article(title=title, content=content, url=url or page_url(title))


class ArticleSetAdapter(ContentAdapter):
    """Fetches a set of articles mapped from the topic slug and concatenates them."""

    source_label = "Wikipedia"
    topic_articles: dict[str, list[str]] = {}

    def __init__(self, wikipedia: WikipediaClient):
        self.wikipedia = wikipedia

    def articles_for(self, topic: str) -> list[str]:
        return self.topic_articles.get(topic) or [humanize_topic(topic)]

    def fetch(self, request: ContentRequest) -> ContentResult:
        logger.info(f"[{self.name}] Fetching content for: {request.topic}")

        articles = self.articles_for(request.topic)
        contents: list[str] = []
        citations: list[Citation] = []

        for title in articles:
            try:
                article = self.wikipedia.fetch_article(title)
            except PipelineError as e:
                logger.warning(f"Failed to fetch article '{title}': {e}")
                continue
            if article is None or not article.content:
                continue
            contents.append(f"## {title}\n\n{article.content}")
            citations.append(Citation(text=title, source="Wikipedia", url=article.url))

        if not contents:
            raise NotFound(f"No {self.source_label} content found for topic: {request.topic}")

        return ContentResult(
            title=humanize_topic(request.topic),
            content="\n\n---\n\n".join(contents),
            source=self.source_label,
            source_url=page_url(articles[0]),
            citations=citations,
            metadata={
                "category": request.category,
                "subcategory": request.subcategory,
                "topic": request.topic,
                "article_count": len(contents),
            },
        )


class WikipediaAdapter(ArticleSetAdapter):
    name = "wikipedia-adapter"
    categories = (
        "science",
        "mathematics",
        "history",
        "geography",
        "entertainment",
        "technology",
        "general-knowledge",
    )
    topic_articles = {
        "thermodynamics": ["Thermodynamics", "Laws of thermodynamics", "Heat transfer"],
        "quantum-physics": ["Quantum mechanics", "Wave–particle duality", "Uncertainty principle"],
        "relativity": ["Theory of relativity", "Special relativity", "General relativity"],
        "periodic-table": ["Periodic table", "Chemical element", "Atomic number"],
        "genetics": ["Genetics", "DNA", "Gene", "Heredity"],
        "evolution": ["Evolution", "Natural selection", "Charles Darwin"],
        "solar-system": ["Solar System", "Planet", "Sun"],
        "black-holes": ["Black hole", "Event horizon", "Hawking radiation"],
        "ancient-egypt": ["Ancient Egypt", "Pharaoh", "Giza pyramid complex"],
        "roman-empire": ["Roman Empire", "Julius Caesar", "Roman Republic"],
        "world-war-2": ["World War II", "Normandy landings", "Pacific War"],
        "cold-war": ["Cold War", "Soviet Union", "Cuban Missile Crisis"],
        "mountains": ["Mountain", "Mount Everest", "Himalayas"],
        "oceans-and-seas": ["Ocean", "Sea", "Pacific Ocean"],
        "artificial-intelligence": ["Artificial intelligence", "Machine learning", "Deep learning"],
        "internet-history": ["History of the Internet", "World Wide Web", "ARPANET"],
        "oscar-awards": ["Academy Awards", "Academy Award for Best Picture"],
        "shakespeare": ["William Shakespeare", "Hamlet", "Romeo and Juliet"],
    }


class MoviesAdapter(ArticleSetAdapter):
    name = "movies-adapter"
    categories = ("movies",)
    source_label = "Wikipedia (Movies)"
    topic_articles = {
        "marvel-mcu": ["Marvel Cinematic Universe", "List of Marvel Cinematic Universe films"],
        "star-wars": ["Star Wars", "Star Wars sequel trilogy", "Star Wars prequel trilogy"],
        "harry-potter": ["Harry Potter (film series)", "Wizarding World"],
        "lord-of-the-rings": ["The Lord of the Rings (film series)", "The Hobbit (film series)"],
        "james-bond": ["James Bond in film", "List of James Bond films"],
        "the-matrix": ["The Matrix (franchise)", "The Matrix"],
        "pixar": ["Pixar", "List of Pixar films", "Toy Story (franchise)"],
        "studio-ghibli": ["Studio Ghibli", "List of Studio Ghibli works", "Hayao Miyazaki"],
        "oscar-winners": ["Academy Award for Best Picture", "List of Academy Award-winning films"],
    }


class SportsAdapter(ArticleSetAdapter):
    """Sports statistics go stale: results carry the fetch date and a warning."""

    name = "sports-adapter"
    categories = ("sports",)
    source_label = "Wikipedia (Sports)"
    staleness_warning = "Sports statistics and records may change. Data accurate as of fetch date."
    topic_articles = {
        "cricket-world-cups": ["Cricket World Cup", "List of Cricket World Cup finals"],
        "ipl": ["Indian Premier League", "List of Indian Premier League seasons and results"],
        "fifa-world-cup": ["FIFA World Cup", "List of FIFA World Cup finals"],
        "premier-league": ["Premier League", "List of Premier League seasons"],
        "champions-league": ["UEFA Champions League", "List of European Cup and UEFA Champions League finals"],
        "nba": ["National Basketball Association", "List of NBA champions"],
        "super-bowl": ["Super Bowl", "List of Super Bowl champions"],
        "grand-slams": ["Grand Slam (tennis)", "List of Grand Slam men's singles champions"],
        "summer-olympics": ["Summer Olympic Games", "List of Summer Olympic Games"],
        "formula-1": ["Formula One", "List of Formula One World Drivers' Champions"],
    }

    def fetch(self, request: ContentRequest) -> ContentResult:
        result = super().fetch(request)
        result.as_of_date = date.today().isoformat()
        result.metadata["warning"] = self.staleness_warning
        return result
