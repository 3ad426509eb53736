"""
Error taxonomy for the quiz pipeline.

    NotFound              no adapter matches, or a requested artifact/row is missing
    DuplicateContent      insert collided with an existing fingerprint (a no-op signal)
    UpstreamFetchFailure  every strategy of a fallback chain was exhausted
    RateLimited           upstream kept answering 429 after bounded backoff
    SchemaConflict        registry slug reused with an incompatible parent or attributes
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class NotFound(PipelineError):
    pass


class DuplicateContent(PipelineError):
    def __init__(self, fingerprint: str):
        super().__init__(f"Question already stored with hash {fingerprint}")
        self.fingerprint = fingerprint


class UpstreamFetchFailure(PipelineError):
    def __init__(self, message: str, attempts: Optional[list[str]] = None):
        super().__init__(message)
        self.attempts = attempts or []


class RateLimited(PipelineError):
    def __init__(self, url: str, retries: int):
        super().__init__(f"Rate limited by {url} after {retries} retries")
        self.url = url
        self.retries = retries


class SchemaConflict(PipelineError):
    pass
