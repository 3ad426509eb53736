"""Tests for the deduplicated per-category question stores."""

from pathlib import Path
from typing import Callable

import pytest

from quiz_pipeline.db import Difficulty
from quiz_pipeline.questions import (
    QuestionRecord,
    QuestionStore,
    QuestionStoreSet,
    compute_fingerprint,
)


@pytest.fixture
def store(tmp_path: Path):
    question_store = QuestionStore("tv-shows", tmp_path / "tv-shows.db")
    yield question_store
    question_store.close()


class TestFingerprint:
    def test_deterministic(self, make_question: Callable[..., QuestionRecord]) -> None:
        assert compute_fingerprint(make_question()) == compute_fingerprint(make_question())

    def test_ignores_whitespace_and_case(
        self, make_question: Callable[..., QuestionRecord]
    ) -> None:
        a = make_question("Who owns the duck?")
        b = make_question("  WHO owns\nthe   Duck? ")
        assert compute_fingerprint(a) == compute_fingerprint(b)

    def test_depends_on_unit(self, make_question: Callable[..., QuestionRecord]) -> None:
        episode_1 = make_question(chapter=1)
        episode_2 = make_question(chapter=2)
        assert compute_fingerprint(episode_1) != compute_fingerprint(episode_2)

    def test_ignores_answer_fields(self, make_question: Callable[..., QuestionRecord]) -> None:
        a = make_question(options=["A", "B"], correct_answer="A")
        b = make_question(options=["C", "D"], correct_answer="D", difficulty="hard")
        assert compute_fingerprint(a) == compute_fingerprint(b)


class TestInsert:
    def test_insert_new_question(
        self, store: QuestionStore, make_question: Callable[..., QuestionRecord]
    ) -> None:
        result = store.insert(make_question())
        assert result.inserted is True
        assert result.reason is None
        assert len(result.hash) == 64
        assert store.count() == 1

    def test_duplicate_is_a_noop(
        self, store: QuestionStore, make_question: Callable[..., QuestionRecord]
    ) -> None:
        first = store.insert(make_question())
        second = store.insert(make_question("who OWNS the duck?"))

        assert second.inserted is False
        assert second.reason == "duplicate"
        assert second.hash == first.hash
        assert store.count() == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"question": "   "},
            {"question": None},
            {"subcategory": None},
            {"topic": None},
            {"topic": ""},
            {"options": ["Only one"]},
            {"correct_answer": ""},
            {"difficulty": "impossible"},
            {"category": "movies"},
        ],
    )
    def test_invalid_records_are_rejected(
        self,
        store: QuestionStore,
        make_question: Callable[..., QuestionRecord],
        overrides: dict,
    ) -> None:
        result = store.insert(make_question(**overrides))
        assert result.inserted is False
        assert result.reason == "invalid"
        assert store.count() == 0

    def test_insert_many_counts(
        self, store: QuestionStore, make_question: Callable[..., QuestionRecord]
    ) -> None:
        records = [
            make_question("Q1"),
            make_question("Q2"),
            make_question("q1"),
            make_question("Q3", options=[]),
        ]
        assert store.insert_many(records) == {"inserted": 2, "duplicate": 1, "invalid": 1}

    def test_reimport_is_idempotent(
        self, store: QuestionStore, make_question: Callable[..., QuestionRecord]
    ) -> None:
        records = [make_question(f"Question {i}") for i in range(5)]
        store.insert_many(records)
        assert store.insert_many(records) == {"inserted": 0, "duplicate": 5, "invalid": 0}
        assert store.count() == 5


class TestReads:
    def test_stats_group_by_unit_and_difficulty(
        self, store: QuestionStore, make_question: Callable[..., QuestionRecord]
    ) -> None:
        store.insert(make_question("Q1", difficulty="easy"))
        store.insert(make_question("Q2", difficulty="hard"))
        store.insert(make_question("Q3", difficulty=Difficulty.HARD))
        store.insert(make_question("Q4", chapter=2))

        stats = {(s.topic, s.part, s.chapter): s for s in store.stats()}
        assert stats[("friends", 1, 1)].total == 3
        assert stats[("friends", 1, 1)].easy == 1
        assert stats[("friends", 1, 1)].medium == 0
        assert stats[("friends", 1, 1)].hard == 2
        assert stats[("friends", 1, 2)].total == 1
        assert stats[("friends", 1, 2)].medium == 1

    def test_unit_questions_match_null_parts(self, tmp_path: Path) -> None:
        movies = QuestionStore("movies", tmp_path / "movies.db")
        movies.insert(
            QuestionRecord(
                category="movies",
                subcategory="films",
                topic="inception",
                question="Who directed Inception?",
                options=["Nolan", "Scott"],
                correct_answer="Nolan",
            )
        )

        questions = movies.unit_questions("inception")
        assert len(questions) == 1
        assert questions[0].part is None
        assert questions[0].options == ["Nolan", "Scott"]
        assert questions[0].difficulty == Difficulty.MEDIUM
        assert questions[0].created_at is not None
        assert movies.unit_questions("inception", part=1) == []
        movies.close()

    def test_topic_questions_ordered(
        self, store: QuestionStore, make_question: Callable[..., QuestionRecord]
    ) -> None:
        store.insert(make_question("Later", part=2, chapter=1))
        store.insert(make_question("Earlier", part=1, chapter=3))
        assert [q.question for q in store.topic_questions("friends")] == ["Earlier", "Later"]

    def test_exists_and_delete(
        self, store: QuestionStore, make_question: Callable[..., QuestionRecord]
    ) -> None:
        record = make_question()
        result = store.insert(record)
        assert store.exists(record) is True

        assert store.delete(result.hash) is True
        assert store.exists(record) is False
        assert store.delete(result.hash) is False

        # Once deleted, the same question can be stored again
        assert store.insert(record).inserted is True


class TestQuestionStoreSet:
    def test_one_file_per_category(
        self, tmp_path: Path, make_question: Callable[..., QuestionRecord]
    ) -> None:
        stores = QuestionStoreSet(tmp_path)
        stores.store("tv-shows").insert(make_question())
        assert stores.store("tv-shows") is stores.store("tv-shows")
        assert (tmp_path / "tv-shows.db").exists()
        stores.close()

    def test_list_materialized_categories(self, tmp_path: Path) -> None:
        for name in ("registry.db", "pipeline.db", "questions.db", "_backup.db"):
            (tmp_path / name).touch()

        stores = QuestionStoreSet(tmp_path)
        stores.store("sports")
        stores.store("epics")

        assert stores.list_materialized_categories() == ["epics", "sports"]
        assert stores.is_materialized("sports") is True
        assert stores.is_materialized("movies") is False
        stores.close()

    def test_missing_data_dir(self, tmp_path: Path) -> None:
        assert QuestionStoreSet(tmp_path / "missing").list_materialized_categories() == []

    def test_totals_across_stores(
        self, tmp_path: Path, make_question: Callable[..., QuestionRecord]
    ) -> None:
        stores = QuestionStoreSet(tmp_path)
        stores.store("tv-shows").insert(make_question("Q1", difficulty="easy"))
        stores.store("tv-shows").insert(make_question("Q2", subcategory="drama", topic="the-wire"))
        stores.store("sports").insert(
            make_question("Q3", category="sports", subcategory="cricket", topic="ipl", difficulty="hard")
        )

        totals = stores.totals()
        assert totals["total"] == 3
        assert totals["by_category"] == {"sports": 1, "tv-shows": 2}
        assert totals["by_subcategory"]["tv-shows/drama"] == 1
        assert totals["by_difficulty"] == {"easy": 1, "medium": 1, "hard": 1}
        stores.close()
