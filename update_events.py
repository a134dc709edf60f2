"""Batch entry point for the Doha events auto-updater."""
import argparse
import json
import logging
import sys
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from processor.event_merger import EventMerger, sort_events_by_date
from processor.event_processor import EventProcessor
from processor.expiry_filter import ExpiryFilter
from processor.models import RunSummary, SourceReport
from scraper.base import SourceAdapter
from scraper.http_client import PageFetcher
from scraper.marhaba import MISSING_DATE_POLICIES, MarhabaScraper
from scraper.predicthq import PredictHQClient
from settings import Settings
from storage.events_document import (
    DocumentLoadError,
    DocumentWriteError,
    EventsDocumentStore,
)

# Attributes every LogRecord has; anything else came in through `extra`.
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO', log_format: str = 'text') -> None:
    """
    Configure root logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: 'text' for human-readable lines, 'json' for one JSON
            object per line
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == 'json':
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)-7s %(name)s: %(message)s'
        ))
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_adapters(settings: Settings) -> List[SourceAdapter]:
    """
    Create the source adapters in merge order.

    Earlier adapters win title collisions against later ones.
    """
    fetcher = PageFetcher(
        timeout=settings.timeout_seconds,
        max_retries=settings.max_retries
    )
    return [
        MarhabaScraper(
            fetcher,
            missing_date_policy=settings.missing_date_policy,
            listing_url=settings.marhaba_url,
            detail_fetch_limit=settings.detail_fetch_limit
        ),
        PredictHQClient(
            fetcher,
            api_key=settings.predicthq_api_key,
            location=settings.doha_location,
            radius=settings.search_radius
        ),
    ]


def _failure(message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    duration = time.time() - start_time
    return {
        'statusCode': 500,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'note': 'Previous events document left untouched',
            'duration_seconds': round(duration, 2)
        })
    }


def run_update(
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Run one update: load, fetch, normalize, merge, prune, sort, save.

    Nothing is written unless every stage before the save succeeds.

    Args:
        settings: Run configuration (read from the environment if omitted)
        now: Run time, used for expiry and lastUpdated

    Returns:
        Response dict with statusCode and summary statistics
    """
    settings = settings or Settings.from_env()
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Events update started",
        extra={
            'events_file': settings.events_file,
            'prune_expired': settings.prune_expired,
            'missing_date_policy': settings.missing_date_policy
        }
    )

    store = EventsDocumentStore(settings.events_file)
    try:
        document = store.load()
    except DocumentLoadError as e:
        logger.error(
            f"Failed to load events document: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _failure('Failed to load events document', e, start_time)

    try:
        existing = document['events']
        logger.info(f"Starting with {len(existing)} curated events")

        # Fetch and normalize each source in merge order
        processor = EventProcessor()
        reports = []
        batches = []
        for adapter in build_adapters(settings):
            raw_events = adapter.fetch_events()
            events = processor.process_events(raw_events)
            reports.append(SourceReport(
                source=adapter.name,
                fetched=len(raw_events),
                normalized=len(events)
            ))
            batches.append((adapter.name, events))

        merge_result = EventMerger().merge(existing, batches)
        events = merge_result.events

        now = now or datetime.now().astimezone()
        removed = 0
        if settings.prune_expired:
            events, removed = ExpiryFilter().apply(events, now)
        else:
            logger.info("Expiry pruning disabled - keeping all events")

        events = sort_events_by_date(events)

        # Synchronize the document on disk
        try:
            store.save(document, events, now)
        except DocumentWriteError as e:
            logger.error(
                f"Failed to write events document: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _failure('Failed to write events document', e, start_time)

        summary = RunSummary(
            starting_total=len(existing),
            sources=reports,
            added=merge_result.added,
            duplicates=merge_result.duplicates,
            rejected=merge_result.rejected,
            removed=removed,
            total=len(events)
        )
        statistics = summary.to_dict()
        duration = time.time() - start_time
        statistics['duration_seconds'] = round(duration, 2)

        for report in statistics['sources']:
            logger.info(
                f"{report['source']}: fetched {report['fetched']}, "
                f"normalized {report['normalized']}, added {report['added']}"
            )
        logger.info(
            f"Events update completed: added {statistics['events_added']}, "
            f"removed {removed}, total {len(events)}",
            extra={'duration_seconds': statistics['duration_seconds']}
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Events updated successfully',
                'statistics': statistics
            })
        }

    except Exception as e:
        logger.error(
            f"Events update failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _failure('Events update failed', e, start_time)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Fetch new Doha events and merge them into the events document.'
    )
    parser.add_argument('--events-file', help='Path of the events JSON document')
    parser.add_argument(
        '--prune-expired',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Remove events that ended before yesterday'
    )
    parser.add_argument(
        '--missing-date-policy',
        choices=MISSING_DATE_POLICIES,
        help='What to do with scraped events that have no date'
    )
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING or ERROR')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command-line entry point.

    Returns:
        Process exit status: 0 on success, 1 on failure
    """
    args = parse_args(argv)

    try:
        settings = Settings.from_env()
        if args.events_file:
            settings.events_file = args.events_file
        if args.prune_expired is not None:
            settings.prune_expired = args.prune_expired
        if args.missing_date_policy:
            settings.missing_date_policy = args.missing_date_policy
        if args.log_level:
            settings.log_level = args.log_level
        settings.validate()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.log_level, settings.log_format)

    try:
        response = run_update(settings)
    except KeyboardInterrupt:
        logging.getLogger(__name__).error(
            "Update interrupted - events document not written"
        )
        return 130

    return 0 if response['statusCode'] == 200 else 1


if __name__ == '__main__':
    sys.exit(main())
