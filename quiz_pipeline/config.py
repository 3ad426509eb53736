"""
Configuration settings for the quiz content pipeline.

Values are read from the environment (and a local .env file) when a
PipelineConfig is built with `load_config()`. Every store and adapter receives
the config explicitly; nothing reads the environment lazily at first use.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


REGISTRY_DB_NAME = "registry.db"
PIPELINE_DB_NAME = "pipeline.db"

# Database files in the data directory that are not question stores
RESERVED_DB_NAMES = {REGISTRY_DB_NAME, PIPELINE_DB_NAME, "questions.db"}


@dataclass
class PipelineConfig:
    """Configuration for the registry, question stores, tracker and adapters"""

    # Storage layout
    data_dir: Path = Path("data")
    generation_dir: Path = Path("generation")

    # Outbound HTTP
    requests_per_second: float = 1.0
    http_timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 2.0  # seconds, doubled per 429 response
    max_backoff: float = 60.0
    user_agent: str = "QuizGenerator/1.0 (educational project)"

    # Episodic aggregate cache bounds
    max_unit_chars: int = 15_000
    max_aggregate_chars: int = 100_000
    max_citations: int = 20

    drama_shows: tuple = field(
        default=("game-of-thrones", "breaking-bad", "mad-men", "the-sopranos", "the-wire")
    )

    @property
    def registry_path(self) -> Path:
        return self.data_dir / REGISTRY_DB_NAME

    @property
    def pipeline_path(self) -> Path:
        return self.data_dir / PIPELINE_DB_NAME


def load_config(env_file: Optional[str] = None) -> PipelineConfig:
    """
    Build a PipelineConfig from environment variables.

    Args:
        env_file: Optional path to a .env file (default: search from cwd)

    Returns:
        PipelineConfig with environment overrides applied
    """
    load_dotenv(env_file)

    config = PipelineConfig()
    config.data_dir = Path(os.getenv("QUIZ_DATA_DIR", str(config.data_dir)))
    config.generation_dir = Path(
        os.getenv("QUIZ_GENERATION_DIR", str(config.generation_dir))
    )
    config.requests_per_second = float(
        os.getenv("QUIZ_REQUESTS_PER_SECOND", config.requests_per_second)
    )
    config.http_timeout = float(os.getenv("QUIZ_HTTP_TIMEOUT", config.http_timeout))
    config.max_retries = int(os.getenv("QUIZ_MAX_RETRIES", config.max_retries))
    config.user_agent = os.getenv("QUIZ_USER_AGENT", config.user_agent)

    return config
