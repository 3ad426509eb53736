"""Tests for the tracking and scraping command line entry points."""

import json
import sys
from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest

from quiz_pipeline.scraping import __main__ as scraping_cli
from quiz_pipeline.tracking import __main__ as tracking_cli


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("QUIZ_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("QUIZ_GENERATION_DIR", str(tmp_path / "generation"))
    monkeypatch.setenv("QUIZ_LOG_DIR", str(tmp_path / "logs"))
    return tmp_path


def run_cli(
    main: Callable[[], None], args: list[str], monkeypatch: pytest.MonkeyPatch, env_file: Path
) -> None:
    monkeypatch.setattr(sys, "argv", ["prog", "--env-file", str(env_file), *args])
    main()


class TestTrackingCli:
    def test_sync_then_status_json(
        self,
        workspace: Path,
        write_json: Callable,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture,
    ) -> None:
        write_json(
            workspace / "generation" / "transcripts" / "friends" / "s01e01.json",
            {"title": "The Pilot", "transcript": "Monica: There's nothing to tell!"},
        )
        env_file = workspace / "missing.env"

        run_cli(tracking_cli.main, ["--json", "sync"], monkeypatch, env_file)
        report = json.loads(capsys.readouterr().out)
        assert report["families"]["tv-shows"] == 1

        run_cli(tracking_cli.main, ["--json", "pending"], monkeypatch, env_file)
        pending = json.loads(capsys.readouterr().out)
        assert [(p["topic"], p["part"], p["chapter"]) for p in pending] == [("friends", 1, 1)]

        run_cli(tracking_cli.main, ["--json", "status"], monkeypatch, env_file)
        summary = json.loads(capsys.readouterr().out)
        assert summary["totals"]["pending"] == 1

    def test_unknown_family_exits_with_usage_error(
        self, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_cli(
                tracking_cli.main, ["sync", "--family", "podcasts"], monkeypatch, workspace / "x.env"
            )
        assert exc_info.value.code == 2

    def test_table_output(
        self, workspace: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        run_cli(tracking_cli.main, ["failed"], monkeypatch, workspace / "x.env")
        assert "No failed units" in capsys.readouterr().out


class TestScrapingCli:
    def test_exit_code_reflects_failures(
        self, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        acquire = MagicMock(
            return_value={"scraped": 1, "skipped": 0, "failed": 1, "failures": ["S01E02: gone"]}
        )
        monkeypatch.setattr(scraping_cli, "acquire_season", acquire)

        with pytest.raises(SystemExit) as exc_info:
            run_cli(
                scraping_cli.main,
                ["Friends", "--season", "1", "--episodes", "2", "--delay", "0"],
                monkeypatch,
                workspace / "x.env",
            )

        assert exc_info.value.code == 1
        args, kwargs = acquire.call_args
        assert args[1:4] == ("Friends", 1, 2)
        assert kwargs["delay"] == 0.0
