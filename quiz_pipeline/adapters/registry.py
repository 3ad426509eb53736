"""
Adapter registry: first registered adapter whose can_handle() matches wins.
"""

from typing import Any, Iterable, Optional

from quiz_pipeline.adapters.base import ContentAdapter, ContentRequest, ContentResult
from quiz_pipeline.errors import NotFound
from quiz_pipeline.logger import setup_logging


logger = setup_logging(logger_name="adapters")


class AdapterRegistry:
    def __init__(self, adapters: Optional[Iterable[ContentAdapter]] = None):
        self._adapters: list[ContentAdapter] = []
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ContentAdapter) -> None:
        if any(existing.name == adapter.name for existing in self._adapters):
            raise ValueError(f"Adapter '{adapter.name}' is already registered")
        self._adapters.append(adapter)

    def resolve(self, request: ContentRequest) -> Optional[ContentAdapter]:
        for adapter in self._adapters:
            if adapter.can_handle(request):
                return adapter
        return None

    def fetch_content(self, request: ContentRequest) -> ContentResult:
        """
        Fetch material through the matching adapter.

        Raises:
            NotFound: no adapter handles the request, or the adapter found nothing
        """
        adapter = self.resolve(request)
        if adapter is None:
            raise NotFound(
                f"No adapter found for category: {request.category}, topic: {request.topic}"
            )

        logger.info(f"Using {adapter.name} for {request.category}/{request.topic}")
        result = adapter.fetch(request)
        logger.info(
            f"{adapter.name} returned {len(result.content)} chars for "
            f"{request.category}/{request.topic} from {result.source}"
        )
        return result

    def list_adapters(self) -> list[dict[str, Any]]:
        return [
            {"name": adapter.name, "categories": list(adapter.categories)}
            for adapter in self._adapters
        ]
