"""Data models for event processing."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


CATEGORIES = ('music', 'sports', 'food', 'festival', 'arts', 'other')

DEFAULT_LOCATION = 'Doha, Qatar'


@dataclass
class RawEvent:
    """Candidate event from a source adapter, before normalization."""
    title: str
    source: str
    date: Optional[str] = None
    end_date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    price: Optional[str] = None
    category: Optional[str] = None
    url: Optional[str] = None


@dataclass
class Event:
    """Validated and normalized event."""
    event_id: str
    title: str
    date: Optional[str]
    end_date: Optional[str]
    time: Optional[str]
    location: str
    category: str
    is_free: bool
    price: str
    description: str
    url: str
    source: str

    def to_dict(self) -> Dict[str, Any]:
        """Render the record in its persisted shape."""
        return {
            'id': self.event_id,
            'title': self.title,
            'date': self.date,
            'endDate': self.end_date,
            'time': self.time,
            'location': self.location,
            'category': self.category,
            'isFree': self.is_free,
            'price': self.price,
            'description': self.description,
            'url': self.url,
            'source': self.source,
        }


@dataclass
class SourceReport:
    """Counts for one source adapter in one run."""
    source: str
    fetched: int = 0
    normalized: int = 0


@dataclass
class MergeResult:
    """Result of merge operation."""
    events: List[Dict[str, Any]]
    added: Dict[str, int] = field(default_factory=dict)
    duplicates: Dict[str, int] = field(default_factory=dict)
    rejected: Dict[str, int] = field(default_factory=dict)

    @property
    def total_added(self) -> int:
        return sum(self.added.values())


@dataclass
class RunSummary:
    """Stage counts of a full update run."""
    starting_total: int
    sources: List[SourceReport]
    added: Dict[str, int]
    duplicates: Dict[str, int]
    rejected: Dict[str, int]
    removed: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'starting_total': self.starting_total,
            'sources': [
                {
                    'source': report.source,
                    'fetched': report.fetched,
                    'normalized': report.normalized,
                    'added': self.added.get(report.source, 0),
                    'duplicates': self.duplicates.get(report.source, 0),
                    'rejected': self.rejected.get(report.source, 0),
                }
                for report in self.sources
            ],
            'events_added': sum(self.added.values()),
            'events_removed': self.removed,
            'total_events': self.total,
        }
