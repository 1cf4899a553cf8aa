"""CSV export of survey results."""
import csv
import io
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from planner.errors import NothingToExportError
from planner.event_planner import sorted_events
from planner.models import Event

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = 'cluster-g'
LIST_SEPARATOR = '; '
HEADERS = [
    'Event Name',
    'Description',
    'Submitted By',
    'Votes',
    'Interested in Hosting',
    'Interested in Organizing',
    'Timing Preferences',
]


def export_to_csv(events: List[Event]) -> str:
    """
    Render events as CSV, most-voted first.

    Text fields are always quoted with embedded quotes doubled; the vote
    count is written bare.

    Args:
        events: Current event collection

    Returns:
        CSV document with a header row and one row per event

    Raises:
        NothingToExportError: If there are no events
    """
    if not events:
        raise NothingToExportError('No events to export')

    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        quoting=csv.QUOTE_NONNUMERIC,
        lineterminator='\n'
    )
    writer.writerow(HEADERS)
    for event in sorted_events(events):
        writer.writerow(_event_row(event))

    # No trailing newline after the last row
    return buffer.getvalue().rstrip('\n')


def export_filename(prefix: str = DEFAULT_PREFIX, day: Optional[date] = None) -> str:
    """Build '<prefix>-events-YYYY-MM-DD.csv' for the given date (default: today in UTC)."""
    day = day or datetime.now(timezone.utc).date()
    return f"{prefix}-events-{day.isoformat()}.csv"


def write_csv_export(
    events: List[Event],
    directory: Union[str, Path] = '.',
    prefix: str = DEFAULT_PREFIX,
    day: Optional[date] = None
) -> Path:
    """
    Write the CSV export to a dated file.

    Returns:
        Path of the written file

    Raises:
        NothingToExportError: If there are no events
    """
    content = export_to_csv(events)

    path = Path(directory).expanduser() / export_filename(prefix, day)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding='utf-8', newline='')

    logger.info(f"Exported {len(events)} events to {path}")
    return path


def _event_row(event: Event) -> list:
    timing = LIST_SEPARATOR.join(
        f"{pref.name}: {pref.preference}" for pref in event.timing_preferences
    )
    return [
        event.name,
        event.description,
        event.submitter,
        event.votes,
        LIST_SEPARATOR.join(event.hosts),
        LIST_SEPARATOR.join(event.organizers),
        timing,
    ]
