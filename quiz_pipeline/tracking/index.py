"""
Pipeline Tracking Index

Reconciles artifacts on disk against the question stores and records, for
every content unit, whether it has been acquired and whether questions exist
for it. The index is derived state: it is rebuilt by rescans and never deleted.

Status rules:
  - A new unit starts COMPLETED if questions exist for it, PENDING otherwise
  - A rescan escalates to COMPLETED only when it observes a positive count
    (and clears any recorded generation error)
  - A rescan that observes zero questions preserves the current status;
    only reset() moves a unit back to PENDING
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError

from quiz_pipeline.config import PipelineConfig
from quiz_pipeline.db import ContentTracking, GenerationStatus, SQLiteStore, TrackingBase
from quiz_pipeline.errors import NotFound
from quiz_pipeline.keys import ContentKey
from quiz_pipeline.logger import log_function, log_with_timer, setup_logging
from quiz_pipeline.questions import QuestionStoreSet
from quiz_pipeline.registry import RegistryStore
from quiz_pipeline.tracking.scanners import ScannedUnit, build_scanners


logger = setup_logging(logger_name="tracking")

UnitCounts = dict[tuple[str, Optional[int], Optional[int]], dict[str, int]]

_NO_QUESTIONS = {"total": 0, "easy": 0, "medium": 0, "hard": 0}


def _match_key(query, key: ContentKey):
    """Filter on the full composite key; NULL part/chapter match with IS NULL."""
    query = query.filter(
        ContentTracking.category == key.category,
        ContentTracking.subcategory == key.subcategory,
        ContentTracking.topic == key.topic,
    )
    if key.part is None:
        query = query.filter(ContentTracking.part.is_(None))
    else:
        query = query.filter(ContentTracking.part == key.part)
    if key.chapter is None:
        query = query.filter(ContentTracking.chapter.is_(None))
    else:
        query = query.filter(ContentTracking.chapter == key.chapter)
    return query


def _row_dict(row: ContentTracking) -> dict[str, Any]:
    return {
        "category": row.category,
        "subcategory": row.subcategory,
        "topic": row.topic,
        "part": row.part,
        "part_name": row.part_name,
        "chapter": row.chapter,
        "chapter_title": row.chapter_title,
        "source_type": row.source_type,
        "source_file": row.source_file,
        "word_count": row.word_count,
        "is_downloaded": row.is_downloaded,
        "downloaded_at": row.downloaded_at.isoformat() if row.downloaded_at else None,
        "generation_status": row.generation_status.value,
        "questions_generated": row.questions_generated,
        "easy_count": row.easy_count,
        "medium_count": row.medium_count,
        "hard_count": row.hard_count,
        "generation_error": row.generation_error,
        "generation_attempts": row.generation_attempts,
    }


def _status_sum(status: GenerationStatus):
    return func.sum(case((ContentTracking.generation_status == status, 1), else_=0))


def _downloaded_sum():
    return func.sum(case((ContentTracking.is_downloaded.is_(True), 1), else_=0))


class PipelineTracker:
    """
    Tracking index over data/pipeline.db.

    Usage:
        tracker = PipelineTracker(config, stores, registry)
        report = tracker.sync()
        for item in tracker.pending_items(limit=10):
            ...
        tracker.close()
    """

    def __init__(
        self,
        config: PipelineConfig,
        stores: QuestionStoreSet,
        registry: Optional[RegistryStore] = None,
        db_path: Optional[Union[str, Path]] = None,
    ):
        self.config = config
        self.stores = stores
        self.registry = registry
        self._db = SQLiteStore(
            db_path or config.pipeline_path, metadata=TrackingBase.metadata, name="pipeline"
        )
        self.scanners = build_scanners(
            config.generation_dir,
            resolve_subcategory=self._resolve_subcategory,
            drama_shows=config.drama_shows,
        )

    def close(self) -> None:
        self._db.close()

    def _resolve_subcategory(self, category: str, topic: str, default: str) -> str:
        """A subcategory registered for the topic wins over the family default."""
        if self.registry is None:
            return default
        registered = self.registry.get_topic(topic)
        if registered and registered["category"] == category:
            return registered["subcategory"]
        return default

    # ============ SYNC ============
    def _unit_counts(self, category: str) -> Optional[UnitCounts]:
        """
        Question counts of one category keyed by (topic, part, chapter).

        A category without a store on disk has no questions yet. Returns None when
        the store exists but cannot be read.
        The subcategory is summed over: generators and scanners may label it differently.
        """
        if not self.stores.is_materialized(category):
            return {}
        try:
            stats = self.stores.store(category).stats()
        except SQLAlchemyError as e:
            logger.error(f"Question store for '{category}' is unavailable: {e}")
            return None

        counts: UnitCounts = {}
        for group in stats:
            unit = group.key.unit()
            totals = counts.setdefault(unit, dict(_NO_QUESTIONS))
            totals["total"] += group.total
            totals["easy"] += group.easy
            totals["medium"] += group.medium
            totals["hard"] += group.hard
        return counts

    def _upsert(self, unit: ScannedUnit, questions: dict[str, int], now: datetime) -> None:
        """Insert or refresh one unit in its own transaction."""
        with self._db.session() as session:
            row = _match_key(session.query(ContentTracking), unit.key).one_or_none()

            if row is None:
                row = ContentTracking(
                    category=unit.key.category,
                    subcategory=unit.key.subcategory,
                    topic=unit.key.topic,
                    part=unit.key.part,
                    chapter=unit.key.chapter,
                    generation_status=(
                        GenerationStatus.COMPLETED
                        if questions["total"] > 0
                        else GenerationStatus.PENDING
                    ),
                    generation_attempts=0,
                )
                session.add(row)
            elif questions["total"] > 0 and row.generation_status != GenerationStatus.COMPLETED:
                row.generation_status = GenerationStatus.COMPLETED
                row.generation_error = None

            # Descriptive fields always follow the latest scan
            row.part_name = unit.part_name
            row.chapter_title = unit.chapter_title
            row.source_type = unit.source_type
            row.source_file = unit.source_file
            row.word_count = unit.word_count
            row.is_downloaded = unit.is_downloaded
            row.questions_generated = questions["total"]
            row.easy_count = questions["easy"]
            row.medium_count = questions["medium"]
            row.hard_count = questions["hard"]
            if row.downloaded_at is None and unit.is_downloaded:
                row.downloaded_at = now
            row.last_synced_at = now

            session.commit()

    @log_function(logger_name="tracking", log_args=True, log_execution_time=True)
    def sync(self, families: Optional[Iterable[str]] = None) -> dict[str, Any]:
        """
        Reconcile the index with the filesystem and the question stores.

        Args:
            families: Family names to rescan (default: all)

        Returns:
            Report dict: units per family, skipped artifacts, unavailable stores,
            units that failed to write, synced_at timestamp

        Raises:
            ValueError: unknown family name
        """
        selected = list(families) if families is not None else list(self.scanners)
        unknown = [name for name in selected if name not in self.scanners]
        if unknown:
            raise ValueError(
                f"Unknown families {unknown}; expected some of {list(self.scanners)}"
            )

        now = datetime.now()
        report: dict[str, Any] = {
            "families": {},
            "skipped": [],
            "unavailable_stores": [],
            "errors": 0,
            "synced_at": now.isoformat(),
        }
        counts_by_category: dict[str, Optional[UnitCounts]] = {}

        for name in selected:
            result = self.scanners[name].scan()
            report["skipped"].extend(result.skipped)

            synced = 0
            for unit in result.units:
                category = unit.key.category
                if category not in counts_by_category:
                    counts_by_category[category] = self._unit_counts(category)
                    if counts_by_category[category] is None:
                        report["unavailable_stores"].append(category)

                counts = counts_by_category[category] or {}
                questions = counts.get(unit.key.unit(), _NO_QUESTIONS)
                try:
                    self._upsert(unit, questions, now)
                    synced += 1
                except SQLAlchemyError as e:
                    logger.error(f"Failed to sync {unit.key.label()}: {e}")
                    report["errors"] += 1

            report["families"][name] = synced
            logger.info(f"[{name}] Synced {synced} units")

        total = sum(report["families"].values())
        logger.info(
            f"Sync complete: {total} units, {len(report['skipped'])} skipped artifacts, "
            f"{report['errors']} errors"
        )
        return report

    # ============ READS ============
    @log_with_timer("tracking")
    def summary(self) -> dict[str, Any]:
        """Totals per category plus a grand total."""
        with self._db.session() as session:
            rows = (
                session.query(
                    ContentTracking.category,
                    func.count(ContentTracking.id),
                    _downloaded_sum(),
                    _status_sum(GenerationStatus.COMPLETED),
                    _status_sum(GenerationStatus.PENDING),
                    _status_sum(GenerationStatus.FAILED),
                    func.sum(ContentTracking.questions_generated),
                )
                .group_by(ContentTracking.category)
                .order_by(ContentTracking.category)
                .all()
            )

        categories = [
            {
                "category": category,
                "total": total,
                "downloaded": downloaded or 0,
                "completed": completed or 0,
                "pending": pending or 0,
                "failed": failed or 0,
                "questions": questions or 0,
            }
            for category, total, downloaded, completed, pending, failed, questions in rows
        ]
        totals = {
            field: sum(c[field] for c in categories)
            for field in ("total", "downloaded", "completed", "pending", "failed", "questions")
        }
        return {"categories": categories, "totals": totals}

    def by_topic(self, category: Optional[str] = None) -> list[dict[str, Any]]:
        with self._db.session() as session:
            query = session.query(
                ContentTracking.category,
                ContentTracking.subcategory,
                ContentTracking.topic,
                func.count(ContentTracking.id),
                _status_sum(GenerationStatus.COMPLETED),
                _status_sum(GenerationStatus.PENDING),
                _status_sum(GenerationStatus.FAILED),
                func.sum(ContentTracking.questions_generated),
            )
            if category:
                query = query.filter(ContentTracking.category == category)
            rows = (
                query.group_by(
                    ContentTracking.category, ContentTracking.subcategory, ContentTracking.topic
                )
                .order_by(ContentTracking.category, ContentTracking.topic)
                .all()
            )

        return [
            {
                "category": cat,
                "subcategory": subcategory,
                "topic": topic,
                "total_units": total,
                "completed": completed or 0,
                "pending": pending or 0,
                "failed": failed or 0,
                "questions": questions or 0,
            }
            for cat, subcategory, topic, total, completed, pending, failed, questions in rows
        ]

    def pending_items(self, limit: int = 50) -> list[dict[str, Any]]:
        """Downloaded units without questions yet: the actionable backlog."""
        with self._db.session() as session:
            rows = (
                session.query(ContentTracking)
                .filter(
                    ContentTracking.is_downloaded.is_(True),
                    ContentTracking.generation_status != GenerationStatus.COMPLETED,
                )
                .order_by(
                    ContentTracking.category,
                    ContentTracking.topic,
                    ContentTracking.part,
                    ContentTracking.chapter,
                )
                .limit(limit)
                .all()
            )
            return [_row_dict(row) for row in rows]

    def failed_items(self) -> list[dict[str, Any]]:
        """Units with a recorded generation error, most attempted first."""
        with self._db.session() as session:
            rows = (
                session.query(ContentTracking)
                .filter(ContentTracking.generation_error.isnot(None))
                .order_by(
                    ContentTracking.generation_attempts.desc(),
                    ContentTracking.category,
                    ContentTracking.topic,
                    ContentTracking.part,
                    ContentTracking.chapter,
                )
                .all()
            )
            return [_row_dict(row) for row in rows]

    def get(self, key: ContentKey) -> Optional[dict[str, Any]]:
        with self._db.session() as session:
            row = _match_key(session.query(ContentTracking), key).one_or_none()
            return _row_dict(row) if row else None

    # ============ REMEDIATION ============
    def record_failure(self, key: ContentKey, error: str) -> dict[str, Any]:
        """
        Durably record a failed generation attempt for a unit.

        Raises:
            NotFound: the unit has never been synced
        """
        with self._db.session() as session:
            row = _match_key(session.query(ContentTracking), key).one_or_none()
            if row is None:
                raise NotFound(f"Unit {key.label()} is not tracked")

            row.generation_status = GenerationStatus.FAILED
            row.generation_error = error
            row.generation_attempts = (row.generation_attempts or 0) + 1
            session.commit()
            logger.warning(
                f"Recorded failure #{row.generation_attempts} for {key.label()}: {error}"
            )
            return _row_dict(row)

    def reset(self, key: ContentKey) -> dict[str, Any]:
        """
        Deliberately return a unit to PENDING, clearing its error and attempts.

        Used after questions were removed from a store (e.g. quality rejection):
        sync alone never downgrades a status.

        Raises:
            NotFound: the unit has never been synced
        """
        with self._db.session() as session:
            row = _match_key(session.query(ContentTracking), key).one_or_none()
            if row is None:
                raise NotFound(f"Unit {key.label()} is not tracked")

            row.generation_status = GenerationStatus.PENDING
            row.generation_error = None
            row.generation_attempts = 0
            session.commit()
            logger.info(f"Reset {key.label()} to pending")
            return _row_dict(row)
