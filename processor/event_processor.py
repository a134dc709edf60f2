"""Event processor for validating and normalizing event data."""
import logging
import re
import uuid
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote_plus

from dateutil import parser as dateparser

from processor.models import CATEGORIES, DEFAULT_LOCATION, Event, RawEvent

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor for validating and normalizing event data."""

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 2000
    DEFAULT_PRICE = 'Check website'
    SEARCH_URL = 'https://www.google.com/search?q={query}'

    # Ordered: the first group with a hit decides the category. Keywords match
    # at word starts, so compounds such as "seafood" are listed on their own.
    CATEGORY_KEYWORDS = (
        ('music', ('concert', 'live', 'music', 'dj', 'band', 'orchestra',
                   'symphony', 'opera')),
        ('sports', ('sport', 'football', 'marathon', 'tennis', 'golf', 'race',
                    'run', 'karting', 'motorsport', 'waterpark', 'theme park',
                    'padel')),
        ('food', ('food', 'seafood', 'streetfood', 'brunch', 'dinner',
                  'dining', 'restaurant', 'culinary', 'chef')),
        ('festival', ('festival', 'celebration', 'carnival')),
        ('arts', ('art', 'exhibition', 'museum', 'gallery', 'theater',
                  'theatre', 'comedy', 'cinema')),
    )

    FREE_PRICES = ('0', 'qar 0')

    _DMY_PATTERN = re.compile(r'^(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})$')
    _YMD_PATTERN = re.compile(r'^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?:[T ].*)?$')
    _PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))

    def __init__(self):
        self._category_patterns = [
            (category, re.compile(
                r'\b(?:' + '|'.join(re.escape(k) for k in keywords) + r')'
            ))
            for category, keywords in self.CATEGORY_KEYWORDS
        ]

    def process_events(self, raw_events: List[RawEvent]) -> List[Event]:
        """
        Process and validate raw event data.

        Args:
            raw_events: List of RawEvent objects from a source adapter

        Returns:
            List of normalized Event objects
        """
        processed_events = []

        for event in raw_events:
            try:
                processed_event = self._process_single_event(event)
                if processed_event:
                    processed_events.append(processed_event)
            except Exception as e:
                logger.warning(
                    f"Failed to process event '{event.title}': {e}"
                )
                continue

        logger.info(
            f"Processed {len(processed_events)} valid events out of "
            f"{len(raw_events)} total events"
        )
        return processed_events

    def _process_single_event(self, event: RawEvent) -> Optional[Event]:
        """
        Process a single event.

        Args:
            event: Raw candidate event

        Returns:
            Event object or None if the title is missing. An unparseable
            date is kept as None; the merge stage refuses such records.
        """
        title = ' '.join((event.title or '').split())[:self.MAX_TITLE_LENGTH]
        if not title:
            logger.warning("Event missing required field: title")
            return None

        normalized_date = None
        if event.date:
            normalized_date = self._normalize_date(event.date)
            if not normalized_date:
                logger.warning(
                    f"Invalid date format for event '{title}': {event.date}"
                )

        end_date = None
        if event.end_date:
            end_date = self._normalize_date(event.end_date)
            if end_date and normalized_date and end_date < normalized_date:
                logger.warning(
                    f"Dropping end date {end_date} before start date "
                    f"{normalized_date} for event '{title}'"
                )
                end_date = None

        start_time = None
        if event.time:
            start_time = self._normalize_time(event.time)

        description = (event.description or '').strip() or title
        description = description[:self.MAX_DESCRIPTION_LENGTH]

        category = event.category
        if category not in CATEGORIES:
            category = self.categorize(title, description)

        price = (event.price or '').strip() or self.DEFAULT_PRICE

        return Event(
            event_id=self.generate_event_id(),
            title=title,
            date=normalized_date,
            end_date=end_date,
            time=start_time,
            location=(event.location or '').strip() or DEFAULT_LOCATION,
            category=category,
            is_free=self.is_free_price(price),
            price=price,
            description=description,
            url=event.url or self._search_url(title),
            source=event.source
        )

    def _normalize_date(self, date_str: str) -> Optional[str]:
        """
        Normalize date to ISO 8601 format (YYYY-MM-DD).

        Numeric day-month-year (26-12-2025) is tried first; anything else
        goes through dateutil with day-first disambiguation. Year-first
        numeric dates skip dateutil, which would read 2026-01-05 as May 1
        when dayfirst is set.

        Args:
            date_str: Date string in various formats

        Returns:
            ISO 8601 formatted date string or None if parsing fails
        """
        date_str = date_str.strip()

        match = self._DMY_PATTERN.match(date_str)
        if match:
            day, month, year = (int(part) for part in match.groups())
            return self._build_date(year, month, day)

        match = self._YMD_PATTERN.match(date_str)
        if match:
            year, month, day = (int(part) for part in match.groups())
            return self._build_date(year, month, day)

        # A fragment like "Friday" or "December" takes its missing parts from
        # the default, so two different defaults give two different answers.
        try:
            parsed = [
                dateparser.parse(date_str, dayfirst=True, default=default)
                for default in self._PARSE_DEFAULTS
            ]
        except (ValueError, OverflowError):
            return None
        if parsed[0].date() != parsed[1].date():
            return None
        return parsed[0].strftime('%Y-%m-%d')

    def _build_date(self, year: int, month: int, day: int) -> Optional[str]:
        try:
            return datetime(year, month, day).strftime('%Y-%m-%d')
        except ValueError:
            return None

    def _normalize_time(self, time_str: str) -> Optional[str]:
        """
        Normalize time to 24-hour format (HH:MM).

        Args:
            time_str: Time string in various formats

        Returns:
            24-hour formatted time string or None if parsing fails
        """
        time_formats = [
            '%H:%M',         # 24-hour format
            '%I:%M %p',      # 12-hour format with AM/PM
            '%I:%M%p',       # 12-hour format without space
            '%H:%M:%S',      # 24-hour with seconds
            '%I %p',         # hour only with AM/PM
        ]

        time_str = time_str.strip()

        for fmt in time_formats:
            try:
                time_obj = datetime.strptime(time_str, fmt)
                return time_obj.strftime('%H:%M')
            except ValueError:
                continue

        return None

    def categorize(self, title: str, description: str = '') -> str:
        """
        Classify an event from its title and description.

        Args:
            title: Event title
            description: Optional event description

        Returns:
            One of CATEGORIES
        """
        text = f"{title} {description}".lower()
        for category, pattern in self._category_patterns:
            if pattern.search(text):
                return category
        return 'other'

    def is_free_price(self, price: Optional[str]) -> bool:
        """Return True when the price text says the event costs nothing."""
        if not price:
            return False
        lower = price.strip().lower()
        return 'free' in lower or lower in self.FREE_PRICES

    def generate_event_id(self) -> str:
        """
        Generate a unique identifier for a new event.

        Returns:
            Opaque id of the form evt_<16 hex chars>
        """
        return f"evt_{uuid.uuid4().hex[:16]}"

    def _search_url(self, title: str) -> str:
        return self.SEARCH_URL.format(query=quote_plus(f"{title} Doha"))
