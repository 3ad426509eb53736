"""
Database package for the quiz pipeline.

Structure:
- models.py: SQLAlchemy ORM models for the registry, question stores and tracking index
- database.py: SQLiteStore (engine + session factory for one database file)

Database Patterns:
- One SQLiteStore per physical file, constructed once and closed explicitly
- Session-per-operation through `store.session()`
"""

from .models import (
    RegistryBase,
    QuestionBase,
    TrackingBase,
    TimestampMixin,
    Category,
    Subcategory,
    Topic,
    Question,
    ContentTracking,
    Difficulty,
    GenerationStatus,
)
from .database import SQLiteStore, create_sqlite_engine, optimize_sqlite_connection

__all__ = [
    # Models
    "RegistryBase",
    "QuestionBase",
    "TrackingBase",
    "TimestampMixin",
    "Category",
    "Subcategory",
    "Topic",
    "Question",
    "ContentTracking",
    "Difficulty",
    "GenerationStatus",
    # Database utilities
    "SQLiteStore",
    "create_sqlite_engine",
    "optimize_sqlite_connection",
]
