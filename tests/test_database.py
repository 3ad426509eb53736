"""Tests for SQLite engine and session management."""

import sqlite3
from pathlib import Path

import pytest
from sqlalchemy import text

from quiz_pipeline.db import Category, RegistryBase, SQLiteStore


class TestSQLiteStore:
    def test_creates_tables(self, tmp_path: Path) -> None:
        db_path = tmp_path / "registry.db"
        store = SQLiteStore(db_path, metadata=RegistryBase.metadata)
        store.close()

        conn = sqlite3.connect(str(db_path))
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        conn.close()

        assert {"categories", "subcategories", "topics"} <= tables
        assert "questions" not in tables
        assert "content_tracking" not in tables

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "test.db"
        store = SQLiteStore(db_path, metadata=RegistryBase.metadata)
        store.close()
        assert db_path.exists()

    def test_idempotent_schema_creation(self, tmp_path: Path) -> None:
        db_path = tmp_path / "registry.db"
        SQLiteStore(db_path, metadata=RegistryBase.metadata).close()
        SQLiteStore(db_path, metadata=RegistryBase.metadata).close()  # Should not raise

    def test_wal_journal_mode(self, tmp_path: Path) -> None:
        db_path = tmp_path / "registry.db"
        SQLiteStore(db_path, metadata=RegistryBase.metadata).close()

        conn = sqlite3.connect(str(db_path))
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        conn.close()
        assert mode == "wal"

    def test_connection_pragmas(self, tmp_path: Path) -> None:
        store = SQLiteStore(tmp_path / "test.db")
        with store.session() as session:
            assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1
            assert session.execute(text("PRAGMA busy_timeout")).scalar() == 30000
            assert session.execute(text("PRAGMA synchronous")).scalar() == 2  # FULL
        store.close()

    def test_check_connection(self, tmp_path: Path) -> None:
        store = SQLiteStore(tmp_path / "test.db")
        assert store.check_connection() is True
        store.close()

    def test_session_rolls_back_on_error(self, tmp_path: Path) -> None:
        store = SQLiteStore(tmp_path / "registry.db", metadata=RegistryBase.metadata)

        with pytest.raises(RuntimeError):
            with store.session() as session:
                session.add(Category(slug="tv-shows", name="TV Shows"))
                session.flush()
                raise RuntimeError("boom")

        with store.session() as session:
            assert session.query(Category).count() == 0
        store.close()
