"""Additive merge of newly fetched events into the persisted collection."""
import logging
import re
from typing import Any, Dict, List, Sequence, Tuple

from processor.models import Event, MergeResult

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r'[^a-z0-9]')


def normalize_title(title: str) -> str:
    """Reduce a title to its dedup key: lower-case alphanumerics only."""
    return _NON_ALNUM.sub('', (title or '').lower())


def sort_events_by_date(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return events sorted ascending by ISO date; ties keep their order."""
    return sorted(events, key=lambda event: event.get('date') or '')


class EventMerger:
    """
    Merges candidate batches into an existing event collection.

    Existing records are never removed or altered here. A candidate is
    admitted only when it has a date, a title longer than MIN_TITLE_LENGTH
    and a dedup key not already present, so the first source to bring a
    title wins.
    """

    MIN_TITLE_LENGTH = 5

    def merge(
        self,
        existing: Sequence[Dict[str, Any]],
        batches: Sequence[Tuple[str, List[Event]]]
    ) -> MergeResult:
        """
        Merge ordered batches of candidates into the existing collection.

        Args:
            existing: Persisted event records
            batches: (source name, normalized events) pairs in source order

        Returns:
            MergeResult holding a new list and per-source counts
        """
        merged = list(existing)
        known_keys = {normalize_title(event.get('title')) for event in existing}
        known_ids = {event.get('id') for event in existing}
        result = MergeResult(events=merged)

        for source, candidates in batches:
            added = duplicates = rejected = 0

            for candidate in candidates:
                key = normalize_title(candidate.title)
                if (
                    not candidate.date
                    or len(candidate.title) <= self.MIN_TITLE_LENGTH
                    or not key
                ):
                    rejected += 1
                    continue

                if key in known_keys or candidate.event_id in known_ids:
                    logger.debug(f"Skipping duplicate event '{candidate.title}'")
                    duplicates += 1
                    continue

                merged.append(candidate.to_dict())
                known_keys.add(key)
                known_ids.add(candidate.event_id)
                added += 1

            result.added[source] = result.added.get(source, 0) + added
            result.duplicates[source] = result.duplicates.get(source, 0) + duplicates
            result.rejected[source] = result.rejected.get(source, 0) + rejected

            logger.info(
                f"{source}: added {added} new events, "
                f"{duplicates} duplicates, {rejected} rejected"
            )

        logger.info(
            f"Merge complete: added {result.total_added} new events "
            f"(kept all {len(existing)} existing), total {len(merged)}"
        )
        return result
