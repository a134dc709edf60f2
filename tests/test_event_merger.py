"""Unit tests for EventMerger."""
import copy

import pytest

from processor.event_merger import EventMerger, normalize_title, sort_events_by_date
from processor.models import Event


def make_event(title, date, event_id=None, source="Marhaba", end_date=None):
    """Build a normalized candidate event."""
    return Event(
        event_id=event_id or f"evt_{normalize_title(title)[:12]}_{date}",
        title=title,
        date=date,
        end_date=end_date,
        time=None,
        location="Doha, Qatar",
        category="other",
        is_free=False,
        price="Check website",
        description=title,
        url="https://example.com/event",
        source=source
    )


@pytest.fixture
def curated_events():
    """Existing persisted collection."""
    return [
        {
            'id': 'evt_curated1',
            'title': 'National Day Celebration',
            'date': '2025-12-18',
            'endDate': None,
            'time': '16:00',
            'location': 'Doha Corniche',
            'category': 'festival',
            'isFree': True,
            'price': 'Free',
            'description': 'Parade and fireworks',
            'url': 'https://www.visitqatar.com',
            'source': 'Curated',
            'featured': True
        }
    ]


class TestNormalizeTitle:
    """Test cases for dedup key normalization."""

    def test_punctuation_and_case_collide(self):
        assert normalize_title("Doha Food Festival!!") == normalize_title("doha food festival")

    def test_different_titles_do_not_collide(self):
        assert normalize_title("Doha Food Festival") != normalize_title("Qatar Food Festival")

    def test_strips_non_alphanumerics(self):
        assert normalize_title("Art & Design: 2026 Edition") == "artdesign2026edition"

    def test_none_title(self):
        assert normalize_title(None) == ""


class TestEventMerger:
    """Test cases for EventMerger class."""

    def test_national_day_scenario(self, curated_events):
        """Test duplicate discarded and new event added."""
        original = copy.deepcopy(curated_events)
        batch = [
            make_event("National Day Celebration!", "2025-12-18"),
            make_event("New Year Gala", "2026-01-01")
        ]

        result = EventMerger().merge(curated_events, [("Marhaba", batch)])

        assert len(result.events) == 2
        assert result.events[0] is curated_events[0]
        assert result.events[0] == original[0]
        assert result.events[1]['title'] == "New Year Gala"
        assert result.events[1]['date'] == "2026-01-01"
        assert result.added == {"Marhaba": 1}
        assert result.duplicates == {"Marhaba": 1}

    def test_merge_is_additive(self, curated_events):
        """Test every existing record survives by identity."""
        batch = [
            make_event("Qatar Motor Show", "2026-01-10"),
            make_event("National Day Celebration", "2025-12-18"),
            make_event("Undated Pop-Up Market", None)
        ]

        result = EventMerger().merge(curated_events, [("Marhaba", batch)])

        for record in curated_events:
            assert any(record is merged for merged in result.events)

    def test_input_not_mutated(self, curated_events):
        """Test that the existing list is left as it was."""
        snapshot = copy.deepcopy(curated_events)

        result = EventMerger().merge(
            curated_events,
            [("Marhaba", [make_event("Qatar Motor Show", "2026-01-10")])]
        )

        assert curated_events == snapshot
        assert result.events is not curated_events

    def test_merge_idempotent(self, curated_events):
        """Test merging the same batch twice adds nothing the second time."""
        merger = EventMerger()
        batch = [
            make_event("Qatar Motor Show", "2026-01-10"),
            make_event("Doha Jewellery Exhibition", "2026-02-22")
        ]

        first = merger.merge(curated_events, [("Marhaba", batch)])
        second = merger.merge(first.events, [("Marhaba", batch)])

        assert first.total_added == 2
        assert second.total_added == 0
        assert second.events == first.events

    def test_candidate_without_date_rejected(self):
        """Test that undated candidates never reach the collection."""
        result = EventMerger().merge(
            [],
            [("Marhaba", [make_event("Desert Camping Weekend", None)])]
        )

        assert result.events == []
        assert result.rejected == {"Marhaba": 1}

    def test_short_title_rejected(self):
        """Test that titles of five characters or fewer are refused."""
        result = EventMerger().merge(
            [],
            [("Marhaba", [
                make_event("Expos", "2026-01-01"),
                make_event("Expo 26", "2026-01-01")
            ])]
        )

        assert [event['title'] for event in result.events] == ["Expo 26"]
        assert result.rejected == {"Marhaba": 1}

    def test_punctuation_only_title_rejected(self):
        """Test that a title with an empty dedup key is refused."""
        result = EventMerger().merge(
            [],
            [("Marhaba", [make_event("!!! ??? !!!", "2026-01-01")])]
        )

        assert result.events == []

    def test_earlier_source_wins_collision(self):
        """Test that the first source to bring a title keeps it."""
        marhaba = [make_event("Doha Food Festival", "2026-03-01", source="Marhaba")]
        phq = [make_event("DOHA FOOD FESTIVAL", "2026-03-02", source="PredictHQ")]

        result = EventMerger().merge([], [("Marhaba", marhaba), ("PredictHQ", phq)])

        assert len(result.events) == 1
        assert result.events[0]['source'] == "Marhaba"
        assert result.added == {"Marhaba": 1, "PredictHQ": 0}
        assert result.duplicates == {"Marhaba": 0, "PredictHQ": 1}

    def test_duplicates_within_batch(self):
        """Test that a batch cannot add the same title twice."""
        batch = [
            make_event("Qatar Motor Show", "2026-01-10", event_id="evt_a"),
            make_event("Qatar Motor-Show", "2026-01-11", event_id="evt_b")
        ]

        result = EventMerger().merge([], [("Marhaba", batch)])

        assert [event['id'] for event in result.events] == ["evt_a"]

    def test_paraphrases_are_not_duplicates(self, curated_events):
        """Test that only exact-after-normalization titles collide."""
        batch = [make_event("Qatar National Day Celebrations", "2025-12-18")]

        result = EventMerger().merge(curated_events, [("Marhaba", batch)])

        assert result.total_added == 1

    def test_existing_id_not_reused(self, curated_events):
        """Test that a candidate carrying an existing id is refused."""
        batch = [make_event("Completely Different Event", "2026-01-05", event_id="evt_curated1")]

        result = EventMerger().merge(curated_events, [("Marhaba", batch)])

        assert len(result.events) == 1
        assert len({event['id'] for event in result.events}) == len(result.events)

    def test_empty_batches(self, curated_events):
        """Test merging nothing returns the collection unchanged."""
        result = EventMerger().merge(curated_events, [("Marhaba", []), ("PredictHQ", [])])

        assert result.events == curated_events
        assert result.total_added == 0


class TestSortEventsByDate:
    """Test cases for date ordering."""

    def test_sorted_ascending(self):
        events = [
            {'title': 'C', 'date': '2026-03-01'},
            {'title': 'A', 'date': '2025-12-18'},
            {'title': 'B', 'date': '2026-01-01'}
        ]

        ordered = sort_events_by_date(events)

        assert [event['title'] for event in ordered] == ['A', 'B', 'C']

    def test_ties_keep_order(self):
        events = [
            {'title': 'First', 'date': '2026-01-01'},
            {'title': 'Second', 'date': '2026-01-01'}
        ]

        ordered = sort_events_by_date(events)

        assert [event['title'] for event in ordered] == ['First', 'Second']
