"""Common behaviour of event source adapters."""
import logging
from abc import ABC, abstractmethod
from typing import Iterator, List

from processor.models import RawEvent
from scraper.http_client import PageFetcher

logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """
    A source of candidate events.

    Subclasses implement `_iter_events`. Callers use `fetch_events`, which
    never raises: any failure while fetching or parsing yields an empty
    batch for this source.
    """

    name = 'source'

    def __init__(self, fetcher: PageFetcher):
        self.fetcher = fetcher

    @abstractmethod
    def _iter_events(self) -> Iterator[RawEvent]:
        """Yield candidate events from the source."""

    def fetch_events(self) -> List[RawEvent]:
        """
        Fetch all candidate events from this source.

        Returns:
            List of RawEvent objects, empty when the source failed
        """
        try:
            events = list(self._iter_events())
        except Exception as e:
            logger.error(
                f"{self.name} fetch failed: {e}",
                extra={'source': self.name, 'error_type': type(e).__name__},
                exc_info=True
            )
            return []

        logger.info(f"{self.name}: fetched {len(events)} candidate events")
        return events
