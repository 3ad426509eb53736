"""Shared fixtures for the quiz pipeline tests."""

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from quiz_pipeline.config import PipelineConfig
from quiz_pipeline.questions import QuestionRecord


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(
        data_dir=tmp_path / "data",
        generation_dir=tmp_path / "generation",
    )


@pytest.fixture
def write_json() -> Callable[[Path, Any], Path]:
    def _write(path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_question() -> Callable[..., QuestionRecord]:
    def _make(question: str = "Who owns the duck?", **overrides: Any) -> QuestionRecord:
        fields = {
            "category": "tv-shows",
            "subcategory": "sitcoms",
            "topic": "friends",
            "part": 1,
            "chapter": 1,
            "title": "The Pilot",
            "question": question,
            "options": ["Joey", "Chandler", "Ross", "Monica"],
            "correct_answer": "Joey",
            "difficulty": "medium",
        }
        fields.update(overrides)
        return QuestionRecord(**fields)

    return _make
