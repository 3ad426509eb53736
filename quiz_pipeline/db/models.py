"""
SQLAlchemy ORM models for the quiz pipeline.

Three physical databases, each with its own declarative base so that
`create_all` on one file never creates another file's tables:

    RegistryBase  -> data/registry.db     Category, Subcategory, Topic
    QuestionBase  -> data/<category>.db   Question (one file per top-level category)
    TrackingBase  -> data/pipeline.db     ContentTracking

Enums:
    Difficulty: easy / medium / hard
    GenerationStatus: pending / completed / failed
"""

from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

RegistryBase = declarative_base()
QuestionBase = declarative_base()
TrackingBase = declarative_base()


def _enum_column(enum_cls, name: str) -> Enum:
    # Persist the lowercase values ("completed"), not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class TimestampMixin:
    """
    Mixin to add automatic timestamp tracking to models.

    Provides:
        created_at: Timestamp when record was created (set automatically)
        updated_at: Timestamp when record was last modified (updated automatically)
    """

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )


class Difficulty(str, PyEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GenerationStatus(str, PyEnum):
    """
    Lifecycle of a content unit in the tracking index.

        PENDING: downloaded, no questions observed yet
        COMPLETED: questions observed in the category's question store
        FAILED: a generation attempt failed and was recorded durably

    COMPLETED and FAILED are terminal for the synchronizer: a rescan that
    observes zero questions never moves a unit back to PENDING.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ============ REGISTRY ============
class Category(RegistryBase):
    __tablename__ = "categories"

    slug = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Category(slug={self.slug}, name='{self.name}')>"


class Subcategory(RegistryBase):
    """Subcategory slugs are unique across the whole registry."""

    __tablename__ = "subcategories"

    slug = Column(String, primary_key=True)
    category = Column(String, ForeignKey("categories.slug"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Subcategory(slug={self.slug}, category={self.category})>"


class Topic(RegistryBase):
    """
    A generation target, e.g. tv-shows/sitcoms/friends.

    Attributes:
        slug: globally unique key consumed by adapters, stores and the tracker
        total_parts: number of parts (seasons, parvas, ...) known for the topic
        source_type: how its material is acquired ("transcript", "script", "text", "api", "wiki")
    """

    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, nullable=False, unique=True)
    category = Column(String, ForeignKey("categories.slug"), nullable=False)
    subcategory = Column(String, ForeignKey("subcategories.slug"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    total_parts = Column(Integer, nullable=False, default=0)
    source_type = Column(String, nullable=True)
    source_url = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_topics_category", "category"),
        Index("idx_topics_subcategory", "category", "subcategory"),
    )

    def __repr__(self):
        return f"<Topic(slug={self.slug}, category={self.category}, subcategory={self.subcategory})>"


# ============ QUESTION STORE ============
class Question(QuestionBase):
    """
    One stored quiz question. `hash` is the content fingerprint and is unique
    within the store; re-submitting the same logical question is a no-op.
    """

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    hash = Column(String, nullable=False, unique=True)

    category = Column(String, nullable=False)
    subcategory = Column(String, nullable=False)
    topic = Column(String, nullable=False)
    part = Column(Integer, nullable=True)
    chapter = Column(Integer, nullable=True)
    title = Column(String, nullable=True)

    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_answer = Column(Text, nullable=False)
    difficulty = Column(
        _enum_column(Difficulty, "difficulty"),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    explanation = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_questions_category", "category"),
        Index("idx_questions_subcategory", "category", "subcategory"),
        Index("idx_questions_topic", "category", "subcategory", "topic"),
        Index(
            "idx_questions_unit", "category", "subcategory", "topic", "part", "chapter"
        ),
        Index("idx_questions_difficulty", "difficulty"),
    )

    def __repr__(self):
        return (
            f"<Question(hash={self.hash[:12]}, topic={self.topic}, part={self.part}, "
            f"chapter={self.chapter}, difficulty={self.difficulty.value})>"
        )


# ============ TRACKING INDEX ============
class ContentTracking(TrackingBase, TimestampMixin):
    """
    Derived row for one content unit, rebuilt by rescans.

    Descriptive columns mirror the artifact on disk and the question store
    aggregates; the status columns are owned by the synchronizer and the
    explicit failure/reset operations.

    File Path Conventions (source_file, relative to the generation directory):
        transcripts/<topic>/sNNeNN.json
        movies/<topic>.json
        epics/mahabharata/parva-<N>-<name>/section-<N>.json
        mythology/<topic>/part-<N>-<name>/chapter-<N>.json
        wikipedia/<category>/<topic>.json
    """

    __tablename__ = "content_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Composite identity
    category = Column(String, nullable=False)
    subcategory = Column(String, nullable=False)
    topic = Column(String, nullable=False)
    part = Column(Integer, nullable=True)
    chapter = Column(Integer, nullable=True)

    # Descriptive
    part_name = Column(String, nullable=True)
    chapter_title = Column(String, nullable=True)
    source_type = Column(String, nullable=True)
    source_file = Column(String, nullable=True)
    word_count = Column(Integer, nullable=False, default=0)

    # Acquisition
    is_downloaded = Column(Boolean, nullable=False, default=False)
    downloaded_at = Column(DateTime, nullable=True)

    # Generation
    generation_status = Column(
        _enum_column(GenerationStatus, "generationstatus"),
        nullable=False,
        default=GenerationStatus.PENDING,
    )
    questions_generated = Column(Integer, nullable=False, default=0)
    easy_count = Column(Integer, nullable=False, default=0)
    medium_count = Column(Integer, nullable=False, default=0)
    hard_count = Column(Integer, nullable=False, default=0)
    generation_error = Column(Text, nullable=True)
    generation_attempts = Column(Integer, nullable=False, default=0)
    last_synced_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "category", "subcategory", "topic", "part", "chapter", name="uq_content_unit"
        ),
        Index("idx_tracking_backlog", "category", "topic", "part", "chapter"),
        Index("idx_tracking_status", "generation_status"),
    )

    def __repr__(self):
        return (
            f"<ContentTracking({self.category}/{self.topic} part={self.part} "
            f"chapter={self.chapter}, status={self.generation_status.value}, "
            f"questions={self.questions_generated})>"
        )
