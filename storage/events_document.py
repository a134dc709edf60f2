"""JSON document storage for the events collection."""
import json
import logging
import os
import stat
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class DocumentLoadError(Exception):
    """The persisted events document is missing or unreadable."""


class DocumentWriteError(Exception):
    """The merged events document could not be written."""


def format_timestamp(now: datetime) -> str:
    """Render a UTC ISO-8601 timestamp with milliseconds, e.g. 2025-12-18T10:00:00.000Z."""
    if now.tzinfo is None:
        now = now.astimezone()
    utc = now.astimezone(timezone.utc)
    return utc.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class EventsDocumentStore:
    """Reads and writes the events document (events, sources, lastUpdated)."""

    def __init__(self, path: str):
        """
        Initialize the store.

        Args:
            path: Location of the JSON document
        """
        self.path = path
        logger.info(f"Initialized EventsDocumentStore for {path}")

    def load(self) -> Dict[str, Any]:
        """
        Read the persisted document.

        Returns:
            The parsed document

        Raises:
            DocumentLoadError: If the file is missing, not valid JSON or
                not shaped like an events document
        """
        try:
            with open(self.path, encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise DocumentLoadError(
                f"Cannot read events document {self.path}: {e}"
            ) from e

        if not isinstance(document, dict):
            raise DocumentLoadError(
                f"Events document {self.path} must be a JSON object"
            )
        if not isinstance(document.get('events'), list):
            raise DocumentLoadError(
                f"Events document {self.path} has no 'events' list"
            )

        logger.info(
            f"Loaded {len(document['events'])} events from {self.path}"
        )
        return document

    def save(
        self,
        document: Dict[str, Any],
        events: List[Dict[str, Any]],
        now: datetime
    ) -> Dict[str, Any]:
        """
        Write the document back with a new events list.

        Only 'events' and 'lastUpdated' are replaced; every other top-level
        field is written as loaded. The file is replaced in one step.

        Args:
            document: Document as returned by load()
            events: Events to persist
            now: Run completion time

        Returns:
            The document that was written

        Raises:
            DocumentWriteError: If serialization or the write fails
        """
        updated = dict(document)
        updated['events'] = events
        updated['lastUpdated'] = format_timestamp(now)

        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            payload = json.dumps(updated, indent=2, ensure_ascii=False)
            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=directory,
                prefix='.events-',
                suffix='.json',
                delete=False
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(payload)
            if os.path.exists(self.path):
                os.chmod(tmp_path, stat.S_IMODE(os.stat(self.path).st_mode))
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise DocumentWriteError(
                f"Cannot write events document {self.path}: {e}"
            ) from e
        finally:
            # Set only while the replace has not happened yet
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.info(f"Wrote {len(events)} events to {self.path}")
        return updated
