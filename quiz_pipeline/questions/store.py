"""
Deduplicated question stores, one physical SQLite file per top-level category.

A question's fingerprint is a SHA-256 digest over its identifying fields
(category, subcategory, topic, part, chapter and the normalized question text).
The unique index on the fingerprint makes re-submission a no-op, so generation
retries and historical re-imports can run any number of times.

Usage:
    stores = QuestionStoreSet(config.data_dir)
    result = stores.store("tv-shows").insert(record)
    if not result.inserted:
        print(result.reason)  # "duplicate" or "invalid"
    stores.close()
"""

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError

from quiz_pipeline.config import RESERVED_DB_NAMES
from quiz_pipeline.db import Difficulty, Question, QuestionBase, SQLiteStore
from quiz_pipeline.errors import DuplicateContent
from quiz_pipeline.keys import ContentKey
from quiz_pipeline.logger import log_function, setup_logging


logger = setup_logging(logger_name="question_store")

_WHITESPACE = re.compile(r"\s+")


@dataclass
class QuestionRecord:
    category: str
    subcategory: str
    topic: str
    question: str
    options: list[str]
    correct_answer: str
    difficulty: Union[Difficulty, str] = Difficulty.MEDIUM
    part: Optional[int] = None
    chapter: Optional[int] = None
    title: Optional[str] = None
    explanation: Optional[str] = None
    hash: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def key(self) -> ContentKey:
        return ContentKey(self.category, self.subcategory, self.topic, self.part, self.chapter)


@dataclass
class InsertResult:
    inserted: bool
    hash: str
    reason: Optional[str] = None  # "duplicate" | "invalid"


@dataclass
class QuestionCounts:
    """Question counts for one (category, subcategory, topic, part, chapter) group."""

    category: str
    subcategory: str
    topic: str
    part: Optional[int]
    chapter: Optional[int]
    total: int = 0
    easy: int = 0
    medium: int = 0
    hard: int = 0

    @property
    def key(self) -> ContentKey:
        return ContentKey(self.category, self.subcategory, self.topic, self.part, self.chapter)


def normalize_question_text(text: str) -> str:
    return _WHITESPACE.sub("", text).lower()


def compute_fingerprint(record: QuestionRecord) -> str:
    """Deterministic digest over the question's identifying fields."""
    fields = [
        record.category or "",
        record.subcategory or "",
        record.topic or "",
        "" if record.part is None else str(record.part),
        "" if record.chapter is None else str(record.chapter),
        normalize_question_text(record.question or ""),
    ]
    return hashlib.sha256("|".join(fields).encode("utf-8")).hexdigest()


def _validation_error(record: QuestionRecord, category: str) -> Optional[str]:
    if record.category != category:
        return f"record category '{record.category}' does not belong in the '{category}' store"
    if not record.subcategory or not record.topic:
        return "subcategory and topic are required"
    if not record.question or not record.question.strip():
        return "question text is empty"
    if not isinstance(record.options, (list, tuple)) or len(record.options) < 2:
        return "at least two options are required"
    if not record.correct_answer or not str(record.correct_answer).strip():
        return "correct answer is missing"
    try:
        Difficulty(record.difficulty)
    except ValueError:
        return f"unknown difficulty '{record.difficulty}'"
    return None


def _to_record(row: Question) -> QuestionRecord:
    return QuestionRecord(
        category=row.category,
        subcategory=row.subcategory,
        topic=row.topic,
        part=row.part,
        chapter=row.chapter,
        title=row.title,
        question=row.question,
        options=list(row.options),
        correct_answer=row.correct_answer,
        difficulty=row.difficulty,
        explanation=row.explanation,
        hash=row.hash,
        created_at=row.created_at,
    )


class QuestionStore:
    """Question store for a single top-level category."""

    def __init__(self, category: str, db_path: Union[str, Path]):
        self.category = category
        self._db = SQLiteStore(
            db_path, metadata=QuestionBase.metadata, name=f"questions:{category}"
        )

    @property
    def path(self) -> Path:
        return self._db.path

    def close(self) -> None:
        self._db.close()

    # ============ WRITES ============
    def _write(self, record: QuestionRecord, fingerprint: str) -> None:
        """Insert one row; raises DuplicateContent when the fingerprint already exists."""
        with self._db.session() as session:
            session.add(
                Question(
                    hash=fingerprint,
                    category=record.category,
                    subcategory=record.subcategory,
                    topic=record.topic,
                    part=record.part,
                    chapter=record.chapter,
                    title=record.title,
                    question=record.question.strip(),
                    options=list(record.options),
                    correct_answer=record.correct_answer,
                    difficulty=Difficulty(record.difficulty),
                    explanation=record.explanation,
                )
            )
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateContent(fingerprint) from e

    def insert(self, record: QuestionRecord) -> InsertResult:
        fingerprint = compute_fingerprint(record)

        error = _validation_error(record, self.category)
        if error:
            logger.warning(f"Rejected question for {record.key.label()}: {error}")
            return InsertResult(inserted=False, hash=fingerprint, reason="invalid")

        try:
            self._write(record, fingerprint)
        except DuplicateContent:
            logger.debug(f"Duplicate question {fingerprint[:12]} for {record.key.label()}")
            return InsertResult(inserted=False, hash=fingerprint, reason="duplicate")

        return InsertResult(inserted=True, hash=fingerprint)

    @log_function(logger_name="question_store", log_execution_time=True)
    def insert_many(self, records: Iterable[QuestionRecord]) -> dict[str, int]:
        """
        Insert a batch of records one by one (historical re-import path).

        Returns:
            Statistics dict with inserted/duplicate/invalid counts
        """
        stats = {"inserted": 0, "duplicate": 0, "invalid": 0}
        for record in records:
            result = self.insert(record)
            if result.inserted:
                stats["inserted"] += 1
            else:
                stats[result.reason] += 1

        logger.info(
            f"[{self.category}] Imported {stats['inserted']} questions "
            f"({stats['duplicate']} duplicates, {stats['invalid']} invalid)"
        )
        return stats

    def delete(self, fingerprint: str) -> bool:
        """Remove a rejected question. Returns False if it was not stored."""
        with self._db.session() as session:
            deleted = session.query(Question).filter(Question.hash == fingerprint).delete()
            session.commit()
        if deleted:
            logger.info(f"[{self.category}] Deleted question {fingerprint[:12]}")
        return bool(deleted)

    # ============ READS ============
    def exists(self, record: QuestionRecord) -> bool:
        fingerprint = compute_fingerprint(record)
        with self._db.session() as session:
            return (
                session.query(Question.id).filter(Question.hash == fingerprint).first()
                is not None
            )

    def count(self) -> int:
        with self._db.session() as session:
            return session.query(func.count(Question.id)).scalar() or 0

    def stats(self) -> list[QuestionCounts]:
        """Counts grouped by (category, subcategory, topic, part, chapter) with a difficulty breakdown."""

        def _difficulty_sum(difficulty: Difficulty):
            return func.sum(case((Question.difficulty == difficulty, 1), else_=0))

        with self._db.session() as session:
            rows = (
                session.query(
                    Question.category,
                    Question.subcategory,
                    Question.topic,
                    Question.part,
                    Question.chapter,
                    func.count(Question.id),
                    _difficulty_sum(Difficulty.EASY),
                    _difficulty_sum(Difficulty.MEDIUM),
                    _difficulty_sum(Difficulty.HARD),
                )
                .group_by(
                    Question.category,
                    Question.subcategory,
                    Question.topic,
                    Question.part,
                    Question.chapter,
                )
                .all()
            )

        return [
            QuestionCounts(
                category=category,
                subcategory=subcategory,
                topic=topic,
                part=part,
                chapter=chapter,
                total=total,
                easy=easy or 0,
                medium=medium or 0,
                hard=hard or 0,
            )
            for category, subcategory, topic, part, chapter, total, easy, medium, hard in rows
        ]

    def unit_questions(
        self, topic: str, part: Optional[int] = None, chapter: Optional[int] = None
    ) -> list[QuestionRecord]:
        with self._db.session() as session:
            query = session.query(Question).filter(Question.topic == topic)
            query = query.filter(Question.part.is_(None) if part is None else Question.part == part)
            query = query.filter(
                Question.chapter.is_(None) if chapter is None else Question.chapter == chapter
            )
            return [_to_record(row) for row in query.order_by(Question.id).all()]

    def topic_questions(self, topic: str) -> list[QuestionRecord]:
        with self._db.session() as session:
            rows = (
                session.query(Question)
                .filter(Question.topic == topic)
                .order_by(Question.part, Question.chapter, Question.id)
                .all()
            )
            return [_to_record(row) for row in rows]


class QuestionStoreSet:
    """
    Owns every per-category QuestionStore of a data directory.

    Each store is opened at most once per process and kept until close().
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self._stores: dict[str, QuestionStore] = {}

    def path_for(self, category: str) -> Path:
        return self.data_dir / f"{category}.db"

    def store(self, category: str) -> QuestionStore:
        if category not in self._stores:
            self._stores[category] = QuestionStore(category, self.path_for(category))
        return self._stores[category]

    def is_materialized(self, category: str) -> bool:
        return category in self._stores or self.path_for(category).exists()

    def list_materialized_categories(self) -> list[str]:
        """Categories whose store file currently exists on disk."""
        if not self.data_dir.exists():
            return []
        return sorted(
            path.stem
            for path in self.data_dir.glob("*.db")
            if path.name not in RESERVED_DB_NAMES and not path.name.startswith("_")
        )

    def totals(self) -> dict[str, Any]:
        """Aggregate question counts across every materialized store."""
        result: dict[str, Any] = {
            "total": 0,
            "by_category": {},
            "by_subcategory": {},
            "by_difficulty": {d.value: 0 for d in Difficulty},
        }
        for category in self.list_materialized_categories():
            for counts in self.store(category).stats():
                sub_key = f"{counts.category}/{counts.subcategory}"
                result["total"] += counts.total
                result["by_category"][counts.category] = (
                    result["by_category"].get(counts.category, 0) + counts.total
                )
                result["by_subcategory"][sub_key] = (
                    result["by_subcategory"].get(sub_key, 0) + counts.total
                )
                result["by_difficulty"]["easy"] += counts.easy
                result["by_difficulty"]["medium"] += counts.medium
                result["by_difficulty"]["hard"] += counts.hard
        return result

    def close(self) -> None:
        for store in self._stores.values():
            store.close()
        self._stores.clear()
