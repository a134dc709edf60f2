"""Listing-page scraper for Marhaba.qa events."""
import logging
import re
from datetime import date
from typing import Dict, Iterator, List, Optional
from urllib.parse import unquote, urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from processor.models import DEFAULT_LOCATION, RawEvent
from scraper.base import SourceAdapter
from scraper.http_client import PageFetcher

logger = logging.getLogger(__name__)

MISSING_DATE_POLICIES = ('drop', 'placeholder')


class MarhabaScraper(SourceAdapter):
    """
    Scraper for the Marhaba.qa events listing.

    The listing is pattern-matched as text: anchors pointing at an event
    detail path become candidates. Dates come from the detail pages of the
    first `detail_fetch_limit` candidates.
    """

    name = 'Marhaba'
    BASE_URL = 'https://marhaba.qa/events/'
    MIN_TITLE_LENGTH = 5
    NAV_LABELS = frozenset({
        'event', 'events', 'venues', 'all', 'all events', 'read more',
        'more', 'details', 'view', 'view event', 'view details', 'book now',
        'tickets', 'buy tickets', 'learn more',
    })

    ANCHOR_PATTERN = re.compile(
        r'<a\b[^>]*?\bhref\s*=\s*["\']([^"\']*/event/[^"\'#?]+)[^"\']*["\'][^>]*>(.*?)</a>',
        re.IGNORECASE | re.DOTALL
    )
    SLUG_PATTERN = re.compile(r'/event/([^/]+)/?$')
    LONG_DATE_PATTERN = re.compile(
        r'\b(\d{1,2})\s+(January|February|March|April|May|June|July|August|'
        r'September|October|November|December)\s+(\d{4})\b',
        re.IGNORECASE
    )

    def __init__(
        self,
        fetcher: PageFetcher,
        missing_date_policy: str,
        listing_url: str = BASE_URL,
        detail_fetch_limit: int = 10,
        today: Optional[date] = None
    ):
        """
        Initialize the scraper.

        Args:
            fetcher: HTTP transport
            missing_date_policy: 'drop' discards undated candidates,
                'placeholder' dates them today
            listing_url: Events listing page
            detail_fetch_limit: Maximum detail pages fetched per run
            today: Date used for placeholders (defaults to the run date)
        """
        super().__init__(fetcher)
        if missing_date_policy not in MISSING_DATE_POLICIES:
            raise ValueError(
                f"missing_date_policy must be one of {MISSING_DATE_POLICIES}, "
                f"got {missing_date_policy!r}"
            )
        self.missing_date_policy = missing_date_policy
        self.listing_url = listing_url
        self.detail_fetch_limit = detail_fetch_limit
        self.today = today

    def _iter_events(self) -> Iterator[RawEvent]:
        logger.info(f"Fetching events listing from {self.listing_url}")
        html_content = self.fetcher.fetch_page(self.listing_url)

        candidates = self._parse_listing(html_content)
        logger.info(f"Found {len(candidates)} event URLs")

        with_dates = 0
        for candidate in candidates[:self.detail_fetch_limit]:
            candidate.date = self._fetch_event_date(candidate.url)
            if candidate.date:
                with_dates += 1
        logger.info(
            f"Found dates for {with_dates} of "
            f"{min(len(candidates), self.detail_fetch_limit)} detail pages"
        )

        placeholder = (self.today or date.today()).isoformat()
        for candidate in candidates:
            if candidate.date:
                yield candidate
            elif self.missing_date_policy == 'placeholder':
                candidate.date = placeholder
                yield candidate
            else:
                logger.debug(f"Dropping undated event '{candidate.title}'")

    def _parse_listing(self, html_content: str) -> List[RawEvent]:
        """
        Extract candidate events from listing HTML.

        Args:
            html_content: Raw listing page

        Returns:
            Candidates in page order, one per event URL on the listing host
        """
        titles: Dict[str, Optional[str]] = {}
        listing_host = urlparse(self.listing_url).netloc

        for match in self.ANCHOR_PATTERN.finditer(html_content):
            url = urljoin(self.listing_url, match.group(1))
            if urlparse(url).netloc != listing_host:
                continue
            link_text = self._clean_text(match.group(2))
            if not self._is_usable_title(link_text):
                link_text = None
            if url not in titles or (titles[url] is None and link_text):
                titles[url] = link_text

        candidates = []
        for url, link_text in titles.items():
            title = link_text or self._title_from_url(url)
            if not self._is_usable_title(title):
                continue
            candidates.append(RawEvent(
                title=title,
                source=self.name,
                location=DEFAULT_LOCATION,
                price='Check website',
                description=title,
                url=url
            ))
        return candidates

    def _fetch_event_date(self, url: str) -> Optional[str]:
        """
        Find the first long-form date on an event detail page.

        Returns:
            Matched date text such as '26 December 2025', or None
        """
        try:
            html_content = self.fetcher.fetch_page(url)
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch event details from {url}: {e}")
            return None

        text = BeautifulSoup(html_content, 'html.parser').get_text(' ')
        match = self.LONG_DATE_PATTERN.search(text)
        if not match:
            return None
        return ' '.join(match.groups())

    def _title_from_url(self, url: str) -> Optional[str]:
        """Derive a title from the URL slug, e.g. 'qatar-motor-show'."""
        match = self.SLUG_PATTERN.search(urlparse(url).path)
        if not match:
            return None
        tokens = unquote(match.group(1)).split('-')
        return ' '.join(t[:1].upper() + t[1:] for t in tokens if t).strip()

    def _clean_text(self, fragment: str) -> Optional[str]:
        text = BeautifulSoup(fragment, 'html.parser').get_text(' ')
        text = ' '.join(text.split())
        return text or None

    def _is_usable_title(self, text: Optional[str]) -> bool:
        """Reject empty, too short and navigational link texts."""
        return (
            bool(text)
            and len(text) >= self.MIN_TITLE_LENGTH
            and text.lower() not in self.NAV_LABELS
        )
