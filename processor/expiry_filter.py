"""Removal of events that have already ended."""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ExpiryFilter:
    """Drops events whose effective end is before yesterday."""

    def cutoff(self, now: datetime) -> date:
        """Start of yesterday relative to now."""
        return (now - timedelta(days=1)).date()

    def apply(
        self,
        events: List[Dict[str, Any]],
        now: datetime
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Filter out expired events.

        Args:
            events: Event records
            now: Run time the cutoff is computed from

        Returns:
            Tuple of (kept events, number removed)
        """
        cutoff = self.cutoff(now)
        kept = []

        for event in events:
            effective_end = self._effective_end(event)
            if effective_end is None:
                logger.warning(
                    f"Keeping event '{event.get('title')}' with unreadable "
                    f"date {event.get('endDate') or event.get('date')!r}"
                )
                kept.append(event)
            elif effective_end >= cutoff:
                kept.append(event)

        removed = len(events) - len(kept)
        logger.info(f"Removed {removed} expired events (cutoff {cutoff.isoformat()})")
        return kept, removed

    def _effective_end(self, event: Dict[str, Any]) -> Optional[date]:
        value = event.get('endDate') or event.get('date')
        if not value:
            return None
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            return None
