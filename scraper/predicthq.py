"""Client for the PredictHQ events search API."""
import logging
from datetime import date
from typing import Any, Dict, Iterator, Optional, Tuple

from dateutil.relativedelta import relativedelta

from processor.models import DEFAULT_LOCATION, RawEvent
from scraper.base import SourceAdapter
from scraper.http_client import PageFetcher

logger = logging.getLogger(__name__)


class PredictHQClient(SourceAdapter):
    """Fetches upcoming events around Doha from PredictHQ."""

    name = 'PredictHQ'
    API_URL = 'https://api.predicthq.com/v1/events/'
    DOHA_LOCATION = '25.2854,51.5310'
    RESULT_LIMIT = 50
    REMOTE_CATEGORIES = 'concerts,festivals,performing-arts,sports,expos'

    CATEGORY_MAP = {
        'concerts': 'music',
        'festivals': 'festival',
        'performing-arts': 'arts',
        'sports': 'sports',
        'expos': 'arts',
    }

    def __init__(
        self,
        fetcher: PageFetcher,
        api_key: Optional[str] = None,
        location: str = DOHA_LOCATION,
        radius: str = '50km',
        today: Optional[date] = None
    ):
        super().__init__(fetcher)
        self.api_key = api_key
        self.location = location
        self.radius = radius
        self.today = today

    def _iter_events(self) -> Iterator[RawEvent]:
        if not self.api_key:
            logger.warning("PREDICTHQ_API_KEY not set - skipping PredictHQ")
            return

        logger.info("Fetching events from PredictHQ API")
        data = self.fetcher.fetch_json(
            self.API_URL,
            params=self._build_params(),
            headers={'Authorization': f"Bearer {self.api_key}"}
        )

        results = data.get('results') or []
        logger.info(f"PredictHQ returned {len(results)} results")

        for result in results:
            yield self._to_raw_event(result)

    def _build_params(self) -> Dict[str, Any]:
        start = self.today or date.today()
        end = start + relativedelta(months=3)
        return {
            'location_around.origin': self.location,
            'location_around.radius': self.radius,
            'start.gte': start.isoformat(),
            'start.lte': end.isoformat(),
            'limit': self.RESULT_LIMIT,
            'sort': 'start',
            'category': self.REMOTE_CATEGORIES,
        }

    def _to_raw_event(self, result: Dict[str, Any]) -> RawEvent:
        """
        Map one API result to a candidate event.

        Args:
            result: Entry of the response 'results' array

        Returns:
            RawEvent with date and time split from the start timestamp
        """
        start_date, start_time = self._split_timestamp(
            result.get('start_local') or result.get('start')
        )
        end_date, _ = self._split_timestamp(
            result.get('end_local') or result.get('end')
        )
        address = ((result.get('geo') or {}).get('address') or {})

        return RawEvent(
            title=result.get('title') or '',
            source=self.name,
            date=start_date,
            end_date=end_date,
            time=start_time,
            location=address.get('formatted_address') or DEFAULT_LOCATION,
            description=result.get('description') or None,
            price='Check website',
            category=self.CATEGORY_MAP.get(result.get('category'), 'other'),
        )

    def _split_timestamp(
        self,
        timestamp: Optional[str]
    ) -> Tuple[Optional[str], Optional[str]]:
        """Split '2025-12-18T19:30:00Z' into ('2025-12-18', '19:30')."""
        if not timestamp:
            return None, None
        if 'T' not in timestamp:
            return timestamp, None
        day, clock = timestamp.split('T', 1)
        return day, clock[:5] or None
