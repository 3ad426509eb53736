"""
Deduplicated per-category question stores.
"""

from .store import (
    InsertResult,
    QuestionCounts,
    QuestionRecord,
    QuestionStore,
    QuestionStoreSet,
    compute_fingerprint,
    normalize_question_text,
)

__all__ = [
    "InsertResult",
    "QuestionCounts",
    "QuestionRecord",
    "QuestionStore",
    "QuestionStoreSet",
    "compute_fingerprint",
    "normalize_question_text",
]
