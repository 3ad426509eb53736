"""
Family scanners: derive content units from artifacts on disk.

Each content family encodes the composite key of its units in a path shape
under the generation directory:

    tv-shows       transcripts/<topic>/sNNeNN.json
    movies         movies/<topic>.json
    mahabharata    epics/mahabharata/parva-<N>-<name>/section-<N>.json
    ramayana       epics/ramayana/page-<N>.json
    bhagavad-gita  epics/bhagavad-gita/chapter-<N>.json
    bible          epics/bible/<book>.json          (sorted, numbered from 1)
    quran          epics/quran/surah-<N>.json
    mythology      mythology/<topic>/part-<N>-<name>/chapter-<N>.json
    encyclopedia   wikipedia/<category>/<topic>.json
    manifest       **/manifest.json                 (keys declared explicitly)

A topic directory that holds a manifest.json is owned by the manifest scanner
and ignored by the path scanners. Malformed artifacts are logged and reported
as skipped; they never abort a scan.
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from quiz_pipeline.keys import ContentKey
from quiz_pipeline.logger import setup_logging


logger = setup_logging(logger_name="tracking")

MANIFEST_NAME = "manifest.json"

# (category, topic, family default) -> subcategory
SubcategoryResolver = Callable[[str, str, str], str]


def keep_default(category: str, topic: str, default: str) -> str:
    return default


@dataclass
class ScannedUnit:
    """One content unit found on disk, with the descriptive fields probed from it."""

    key: ContentKey
    path: Path
    source_file: str  # relative to the generation directory
    source_type: str
    part_name: Optional[str] = None
    chapter_title: Optional[str] = None
    word_count: int = 0
    is_downloaded: bool = True


@dataclass
class ScanResult:
    units: list[ScannedUnit] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def count_words(text: Any) -> int:
    if not text:
        return 0
    if not isinstance(text, str):
        text = json.dumps(text, ensure_ascii=False)
    return len(text.split())


def humanize_slug(slug: str) -> str:
    """'udyoga-parva' -> 'Udyoga Parva'"""
    return " ".join(word.capitalize() for word in slug.split("-") if word)


def has_manifest(directory: Path) -> bool:
    return (directory / MANIFEST_NAME).is_file()


def _sorted_files(directory: Path, pattern: str = "*.json") -> list[Path]:
    return sorted(p for p in directory.glob(pattern) if p.is_file() and p.name != MANIFEST_NAME)


def _sorted_dirs(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.is_dir())


class FamilyScanner(ABC):
    """
    Base class for one content family.

    Subclasses implement `scan_units()`; probing and error isolation live here.
    """

    name: str = ""
    category: Optional[str] = None

    def __init__(
        self,
        generation_dir: Path,
        resolve_subcategory: SubcategoryResolver = keep_default,
    ):
        self.generation_dir = Path(generation_dir)
        self.resolve_subcategory = resolve_subcategory
        self._skipped: list[str] = []

    def scan(self) -> ScanResult:
        self._skipped = []
        units = list(self.scan_units())
        logger.debug(f"[{self.name}] Scanned {len(units)} units, skipped {len(self._skipped)}")
        return ScanResult(units=units, skipped=list(self._skipped))

    @abstractmethod
    def scan_units(self) -> Iterable[ScannedUnit]:
        """Yield every well-formed unit of the family."""

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.generation_dir).as_posix()

    def _skip(self, path: Path, reason: str) -> None:
        logger.warning(f"[{self.name}] Skipping {path}: {reason}")
        self._skipped.append(self._relative(path))

    def _probe(self, path: Path) -> Optional[dict[str, Any]]:
        """Load a JSON artifact, or record it as skipped and return None."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._skip(path, f"malformed JSON ({e})")
            return None
        except OSError as e:
            self._skip(path, f"unreadable ({e})")
            return None

        if not isinstance(data, dict):
            self._skip(path, "expected a JSON object")
            return None
        return data

    def _unit(
        self,
        path: Path,
        subcategory: str,
        topic: str,
        part: Optional[int],
        chapter: Optional[int],
        source_type: str,
        chapter_title: Optional[str],
        word_count: int,
        part_name: Optional[str] = None,
        category: Optional[str] = None,
        resolve: bool = True,
    ) -> ScannedUnit:
        category = category or self.category
        if resolve:
            subcategory = self.resolve_subcategory(category, topic, subcategory)
        return ScannedUnit(
            key=ContentKey(
                category=category,
                subcategory=subcategory,
                topic=topic,
                part=part,
                chapter=chapter,
            ),
            path=path,
            source_file=self._relative(path),
            source_type=source_type,
            part_name=part_name,
            chapter_title=chapter_title,
            word_count=word_count,
        )


class TVShowScanner(FamilyScanner):
    name = "tv-shows"
    category = "tv-shows"
    EPISODE = re.compile(r"^s(\d+)e(\d+)\.json$")

    def __init__(self, generation_dir, resolve_subcategory=keep_default, drama_shows=()):
        super().__init__(generation_dir, resolve_subcategory)
        self.drama_shows = set(drama_shows)

    def scan_units(self):
        root = self.generation_dir / "transcripts"
        if not root.is_dir():
            return
        for show_dir in _sorted_dirs(root):
            if has_manifest(show_dir):
                continue
            topic = show_dir.name
            subcategory = "drama" if topic in self.drama_shows else "sitcoms"
            for path in _sorted_files(show_dir):
                match = self.EPISODE.match(path.name)
                if not match:
                    continue
                data = self._probe(path)
                if data is None:
                    continue
                season, episode = int(match.group(1)), int(match.group(2))
                yield self._unit(
                    path,
                    subcategory,
                    topic,
                    season,
                    episode,
                    "transcript",
                    data.get("title") or data.get("episodeTitle") or "",
                    count_words(data.get("transcript") or data.get("content")),
                    part_name=f"Season {season}",
                )


class MovieScanner(FamilyScanner):
    name = "movies"
    category = "movies"

    def scan_units(self):
        root = self.generation_dir / "movies"
        if not root.is_dir() or has_manifest(root):
            return
        for path in _sorted_files(root):
            data = self._probe(path)
            if data is None:
                continue
            topic = path.stem
            yield self._unit(
                path,
                "films",
                topic,
                None,
                None,
                "script",
                data.get("title") or topic,
                count_words(data.get("script") or data.get("content")),
            )


class MahabharataScanner(FamilyScanner):
    name = "mahabharata"
    category = "epics"
    PARVA = re.compile(r"^parva-(\d+)-(.+)$")
    SECTION = re.compile(r"^section-(\d+)\.json$")

    def scan_units(self):
        root = self.generation_dir / "epics" / "mahabharata"
        if not root.is_dir() or has_manifest(root):
            return
        for parva_dir in _sorted_dirs(root):
            parva = self.PARVA.match(parva_dir.name)
            if not parva:
                continue
            parva_num = int(parva.group(1))
            parva_name = humanize_slug(parva.group(2))
            for path in _sorted_files(parva_dir):
                section = self.SECTION.match(path.name)
                if not section:
                    continue
                data = self._probe(path)
                if data is None:
                    continue
                yield self._unit(
                    path,
                    "hindu-epics",
                    "mahabharata",
                    parva_num,
                    int(section.group(1)),
                    "text",
                    data.get("title") or "",
                    count_words(data.get("content")),
                    part_name=parva_name,
                )


class NumberedChapterScanner(FamilyScanner):
    """Flat directory of `<prefix>-<N>.json` files, one chapter per file."""

    topic: str = ""
    subcategory: str = ""
    source_type: str = "text"
    pattern: re.Pattern

    def scan_units(self):
        root = self.generation_dir / "epics" / self.topic
        if not root.is_dir() or has_manifest(root):
            return
        for path in _sorted_files(root):
            match = self.pattern.match(path.name)
            if not match:
                continue
            data = self._probe(path)
            if data is None:
                continue
            chapter = int(match.group(1))
            title, words = self.describe(chapter, data)
            yield self._unit(
                path, self.subcategory, self.topic, None, chapter, self.source_type, title, words
            )

    def describe(self, chapter: int, data: dict) -> tuple[str, int]:
        return data.get("title") or "", count_words(data.get("content"))


class RamayanaScanner(NumberedChapterScanner):
    name = "ramayana"
    category = "epics"
    topic = "ramayana"
    subcategory = "hindu-epics"
    pattern = re.compile(r"^page-(\d+)\.json$")


class GitaScanner(NumberedChapterScanner):
    name = "bhagavad-gita"
    category = "epics"
    topic = "bhagavad-gita"
    subcategory = "hindu-epics"
    source_type = "api"
    pattern = re.compile(r"^chapter-(\d+)\.json$")

    def describe(self, chapter, data):
        return f"Chapter {chapter}", count_words(data.get("verses"))


class QuranScanner(NumberedChapterScanner):
    name = "quran"
    category = "epics"
    topic = "quran"
    subcategory = "abrahamic"
    source_type = "api"
    pattern = re.compile(r"^surah-(\d+)\.json$")

    def describe(self, chapter, data):
        return data.get("englishName") or "", count_words(data.get("ayahs"))


class BibleScanner(FamilyScanner):
    """Books are numbered by their sorted file order, starting at 1."""

    name = "bible"
    category = "epics"

    def scan_units(self):
        root = self.generation_dir / "epics" / "bible"
        if not root.is_dir() or has_manifest(root):
            return
        for number, path in enumerate(_sorted_files(root), start=1):
            data = self._probe(path)
            if data is None:
                continue
            yield self._unit(
                path,
                "abrahamic",
                "bible",
                None,
                number,
                "api",
                path.stem,
                count_words(data.get("text")),
            )


class MythologyScanner(FamilyScanner):
    name = "mythology"
    category = "mythology"
    PART = re.compile(r"^part-(\d+)-(.+)$")
    CHAPTER = re.compile(r"^chapter-(\d+)\.json$")

    def scan_units(self):
        root = self.generation_dir / "mythology"
        if not root.is_dir():
            return
        for topic_dir in _sorted_dirs(root):
            if has_manifest(topic_dir):
                continue
            for part_dir in _sorted_dirs(topic_dir):
                part = self.PART.match(part_dir.name)
                if not part:
                    continue
                for path in _sorted_files(part_dir):
                    chapter = self.CHAPTER.match(path.name)
                    if not chapter:
                        continue
                    data = self._probe(path)
                    if data is None:
                        continue
                    yield self._unit(
                        path,
                        "world",
                        topic_dir.name,
                        int(part.group(1)),
                        int(chapter.group(1)),
                        "text",
                        data.get("title") or "",
                        count_words(data.get("content")),
                        part_name=humanize_slug(part.group(2)),
                    )


class EncyclopediaScanner(FamilyScanner):
    """One article per topic; the category is the parent directory name."""

    name = "encyclopedia"

    def scan_units(self):
        root = self.generation_dir / "wikipedia"
        if not root.is_dir():
            return
        for category_dir in _sorted_dirs(root):
            if has_manifest(category_dir):
                continue
            for path in _sorted_files(category_dir):
                data = self._probe(path)
                if data is None:
                    continue
                topic = path.stem
                yield self._unit(
                    path,
                    "general",
                    topic,
                    None,
                    None,
                    "wiki",
                    data.get("title") or topic,
                    count_words(data.get("content") or data.get("extract")),
                    category=category_dir.name,
                )


class ManifestScanner(FamilyScanner):
    """
    Units declared by `manifest.json` files anywhere under the generation directory.

    Manifest format:
        {
          "category": "tv-shows", "subcategory": "sitcoms", "topic": "friends",
          "source_type": "transcript",
          "units": [
            {"file": "s01e01.json", "part": 1, "chapter": 1,
             "part_name": "Season 1", "title": "The Pilot"}
          ]
        }

    Declared units whose file is missing are tracked as not downloaded.
    """

    name = "manifest"

    def scan_units(self):
        if not self.generation_dir.is_dir():
            return
        for manifest_path in sorted(self.generation_dir.rglob(MANIFEST_NAME)):
            manifest = self._probe(manifest_path)
            if manifest is None:
                continue
            yield from self._manifest_units(manifest_path, manifest)

    def _manifest_units(self, manifest_path: Path, manifest: dict):
        try:
            category = manifest["category"]
            subcategory = manifest["subcategory"]
            topic = manifest["topic"]
            declared = manifest["units"]
        except KeyError as e:
            self._skip(manifest_path, f"missing manifest field {e}")
            return
        if not isinstance(declared, list):
            self._skip(manifest_path, "'units' must be a list")
            return

        source_type = manifest.get("source_type", "text")
        for entry in declared:
            if not isinstance(entry, dict) or "file" not in entry:
                self._skip(manifest_path, f"invalid unit entry {entry!r}")
                continue
            if not all(
                entry.get(field) is None or isinstance(entry.get(field), int)
                for field in ("part", "chapter")
            ):
                self._skip(manifest_path, f"invalid unit entry {entry!r}")
                continue

            path = manifest_path.parent / entry["file"]
            word_count = 0
            title = entry.get("title") or ""
            is_downloaded = path.is_file()
            if is_downloaded:
                data = self._probe(path)
                if data is None:
                    continue
                title = title or data.get("title") or ""
                word_count = count_words(
                    data.get("transcript") or data.get("content") or data.get("text")
                )

            unit = self._unit(
                path,
                subcategory,
                topic,
                entry.get("part"),
                entry.get("chapter"),
                source_type,
                title,
                word_count,
                part_name=entry.get("part_name"),
                category=category,
                resolve=False,
            )
            unit.is_downloaded = is_downloaded
            yield unit


def write_manifest(directory: Path, units: list[ScannedUnit]) -> Path:
    """
    Migrate a topic directory from its path layout to an explicit manifest.

    Once written, the path scanners skip the directory and the manifest
    scanner yields the same keys.

    Raises:
        ValueError: units are empty, belong to several topics, or live outside the directory
    """
    directory = Path(directory)
    if not units:
        raise ValueError("Cannot write an empty manifest")

    keys = {(u.key.category, u.key.subcategory, u.key.topic) for u in units}
    if len(keys) != 1:
        raise ValueError(f"Units span several topics: {sorted(keys)}")
    category, subcategory, topic = keys.pop()

    entries = []
    for unit in units:
        entry = {
            "file": unit.path.relative_to(directory).as_posix(),
            "part": unit.key.part,
            "chapter": unit.key.chapter,
        }
        if unit.part_name:
            entry["part_name"] = unit.part_name
        if unit.chapter_title:
            entry["title"] = unit.chapter_title
        entries.append(entry)

    manifest = {
        "category": category,
        "subcategory": subcategory,
        "topic": topic,
        "source_type": units[0].source_type,
        "units": entries,
    }
    manifest_path = directory / MANIFEST_NAME
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)

    logger.info(f"Wrote manifest for {category}/{topic} with {len(entries)} units to {manifest_path}")
    return manifest_path


def build_scanners(
    generation_dir: Path,
    resolve_subcategory: SubcategoryResolver = keep_default,
    drama_shows: Iterable[str] = (),
) -> dict[str, FamilyScanner]:
    """Every family scanner, keyed by family name, in scan order."""
    scanners = [
        TVShowScanner(generation_dir, resolve_subcategory, drama_shows=drama_shows),
        MovieScanner(generation_dir, resolve_subcategory),
        MahabharataScanner(generation_dir, resolve_subcategory),
        RamayanaScanner(generation_dir, resolve_subcategory),
        GitaScanner(generation_dir, resolve_subcategory),
        BibleScanner(generation_dir, resolve_subcategory),
        QuranScanner(generation_dir, resolve_subcategory),
        MythologyScanner(generation_dir, resolve_subcategory),
        EncyclopediaScanner(generation_dir, resolve_subcategory),
        ManifestScanner(generation_dir, resolve_subcategory),
    ]
    return {scanner.name: scanner for scanner in scanners}
