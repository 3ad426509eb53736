"""Tests for configuration loading."""

from pathlib import Path

import pytest

from quiz_pipeline.config import PipelineConfig, load_config


class TestPipelineConfigDefaults:
    def test_default_paths(self) -> None:
        config = PipelineConfig()
        assert config.data_dir == Path("data")
        assert config.generation_dir == Path("generation")
        assert config.registry_path == Path("data") / "registry.db"
        assert config.pipeline_path == Path("data") / "pipeline.db"

    def test_default_http_settings(self) -> None:
        config = PipelineConfig()
        assert config.requests_per_second == 1.0
        assert config.max_retries == 3
        assert "QuizGenerator" in config.user_agent

    def test_default_aggregate_bounds(self) -> None:
        config = PipelineConfig()
        assert config.max_unit_chars == 15_000
        assert config.max_aggregate_chars == 100_000
        assert config.max_citations == 20

    def test_default_drama_shows(self) -> None:
        assert "breaking-bad" in PipelineConfig().drama_shows
        assert "friends" not in PipelineConfig().drama_shows


class TestLoadConfig:
    def test_env_vars_override_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("QUIZ_DATA_DIR", str(tmp_path / "db"))
        monkeypatch.setenv("QUIZ_GENERATION_DIR", str(tmp_path / "gen"))
        monkeypatch.setenv("QUIZ_REQUESTS_PER_SECOND", "0.5")
        monkeypatch.setenv("QUIZ_MAX_RETRIES", "5")

        config = load_config(str(tmp_path / "missing.env"))
        assert config.data_dir == tmp_path / "db"
        assert config.generation_dir == tmp_path / "gen"
        assert config.requests_per_second == 0.5
        assert config.max_retries == 5

    def test_env_file_is_loaded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Registered with monkeypatch so the value loaded from the file is undone
        monkeypatch.setenv("QUIZ_USER_AGENT", "placeholder")
        monkeypatch.delenv("QUIZ_USER_AGENT")
        env_file = tmp_path / ".env"
        env_file.write_text("QUIZ_USER_AGENT=TestAgent/2.0\n")

        config = load_config(str(env_file))
        assert config.user_agent == "TestAgent/2.0"

    def test_missing_env_uses_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        for name in ("QUIZ_DATA_DIR", "QUIZ_HTTP_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

        config = load_config(str(tmp_path / "missing.env"))
        assert config.data_dir == Path("data")
        assert config.http_timeout == 10.0
