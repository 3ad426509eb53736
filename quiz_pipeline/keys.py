"""
Composite identity shared by the question stores and the tracking index.

A content unit is addressed by (category, subcategory, topic, part, chapter)
where part and chapter are nullable integers (season/episode, parva/section,
or nothing at all for single-document content).
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ContentKey:
    """Immutable, hashable composite key of one content unit."""

    category: str
    subcategory: str
    topic: str
    part: Optional[int] = None
    chapter: Optional[int] = None

    def unit(self) -> tuple[str, Optional[int], Optional[int]]:
        """(topic, part, chapter): the join key between a store and the index.

        Question stores are one per category, so the category is implied, and the
        subcategory is descriptive only: the tracker may derive it differently from
        the generator that wrote the questions.
        """
        return (self.topic, self.part, self.chapter)

    def label(self) -> str:
        parts = [self.category, self.subcategory, self.topic]
        if self.part is not None:
            parts.append(f"part {self.part}")
        if self.chapter is not None:
            parts.append(f"chapter {self.chapter}")
        return "/".join(str(p) for p in parts)

    def as_dict(self) -> dict:
        return {
            "category": self.category,
            "subcategory": self.subcategory,
            "topic": self.topic,
            "part": self.part,
            "chapter": self.chapter,
        }
