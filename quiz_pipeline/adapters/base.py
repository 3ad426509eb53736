from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class ContentRequest:
    category: str
    topic: str
    subcategory: Optional[str] = None
    part: Optional[int] = None
    chapter: Optional[int] = None


@dataclass
class Citation:
    text: str
    source: str
    url: Optional[str] = None


@dataclass
class ContentResult:
    """
    Material for question generation.

    `source` names the step that actually produced the content (e.g. a cached
    transcript vs. an encyclopedia summary), for provenance downstream.
    """

    title: str
    content: str
    source: str
    source_url: str
    fetched_at: str = field(default_factory=lambda: datetime.now().isoformat())
    citations: list[Citation] = field(default_factory=list)
    as_of_date: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ContentAdapter(ABC):
    """
    Abstract base class for content adapters.

    An adapter declares which requests it can serve and fetches material for
    them, applying its own internal fallback order.
    """

    name: str = ""
    categories: tuple[str, ...] = ()

    def can_handle(self, request: ContentRequest) -> bool:
        """
        Check if this adapter serves the request.

        Args:
            request (ContentRequest): The content request.

        Returns:
            bool: True if the request's category belongs to this adapter.
        """
        return request.category in self.categories

    @abstractmethod
    def fetch(self, request: ContentRequest) -> ContentResult:
        """Fetch material for a request.

        Args:
            request (ContentRequest): The content request.

        Returns:
            ContentResult: The fetched material.

        Raises:
            NotFound: If every internal fallback step came up empty.
        """
        pass
