"""Shared event collection persisted as one JSON blob."""
import json
import logging
from typing import List, Optional

from planner.models import Event, TimingPreference

logger = logging.getLogger(__name__)


class StoreReadError(Exception):
    """The stored collection could not be read in full."""


class EventStore:
    """
    Load and fully rewrite the shared list of events.

    Every save sends the whole collection in one backend set; there is no
    version check, so concurrent writers overwrite each other (last write
    wins).
    """

    EVENTS_KEY = 'survey-events'

    def __init__(self, backend, key: str = EVENTS_KEY):
        """
        Args:
            backend: Shared key/value store with get(key, shared) and
                set(key, value, shared)
            key: Key the collection is stored under
        """
        self.backend = backend
        self.key = key

    def load(self) -> List[Event]:
        """
        Fetch the current collection for display.

        Returns:
            List of events in insertion order; empty if nothing has been
            stored yet or the stored data cannot be read
        """
        try:
            payload = self._read_payload()
        except StoreReadError as e:
            logger.warning(str(e))
            return []

        if payload is None:
            logger.info("No events stored yet")
            return []

        try:
            events = deserialize_events(payload)
        except ValueError as e:
            logger.warning(f"Stored events are unreadable, starting empty: {e}")
            return []

        logger.info(f"Loaded {len(events)} events from shared store")
        return events

    def load_for_update(self) -> List[Event]:
        """
        Fetch the complete collection before rewriting it.

        Unlike load(), nothing is skipped: saving a partial read would drop
        the missing events from the shared store.

        Returns:
            List of events; empty only if the key has never been written

        Raises:
            StoreReadError: If the backend fails or any record is unreadable
        """
        payload = self._read_payload()
        if payload is None:
            return []

        try:
            return deserialize_events(payload, strict=True)
        except ValueError as e:
            raise StoreReadError(f"Stored events are unreadable: {e}") from e

    def save(self, events: List[Event]) -> bool:
        """
        Overwrite the stored collection.

        Args:
            events: Complete collection to persist

        Returns:
            True if the backend accepted the write, False otherwise
        """
        payload = serialize_events(events)
        try:
            self.backend.set(self.key, payload, shared=True)
        except Exception as e:
            logger.error(f"Failed to save events: {e}", exc_info=True)
            return False

        logger.info(f"Saved {len(events)} events to shared store")
        return True

    def _read_payload(self) -> Optional[str]:
        try:
            return self.backend.get(self.key, shared=True)
        except Exception as e:
            raise StoreReadError(
                f"Could not read events from shared store: {e}"
            ) from e


def serialize_events(events: List[Event]) -> str:
    """Encode events in the shared wire format."""
    return json.dumps([_event_to_record(event) for event in events])


def deserialize_events(payload: str, strict: bool = False) -> List[Event]:
    """
    Decode the shared wire format.

    Missing list fields, description and votes take their defaults, which
    covers records written before organizers existed.

    Args:
        payload: JSON text
        strict: Raise on a malformed record instead of skipping it

    Raises:
        ValueError: If the payload is not a JSON array, or in strict mode
            if any record is malformed
    """
    records = json.loads(payload)
    if not isinstance(records, list):
        raise ValueError("Expected a JSON array of events")

    events = []
    for record in records:
        try:
            events.append(_record_to_event(record))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            if strict:
                raise ValueError(f"Malformed event record: {e!r}") from e
            logger.warning(f"Skipping malformed event record: {e!r}")
    return events


def _event_to_record(event: Event) -> dict:
    return {
        'id': event.id,
        'name': event.name,
        'description': event.description,
        'submitter': event.submitter,
        'votes': event.votes,
        'hosts': list(event.hosts),
        'organizers': list(event.organizers),
        'timingPreferences': [
            {'name': pref.name, 'preference': pref.preference}
            for pref in event.timing_preferences
        ],
        'createdAt': event.created_at
    }


def _record_to_event(record) -> Event:
    if not isinstance(record, dict):
        raise TypeError(f"Expected an event object, got {type(record).__name__}")

    timing = record.get('timingPreferences') or []
    if not isinstance(timing, list):
        raise ValueError("'timingPreferences' must be a list")

    return Event(
        id=str(record['id']),
        name=record.get('name') or '',
        description=record.get('description') or '',
        submitter=record.get('submitter') or '',
        votes=int(record.get('votes') or 0),
        hosts=_name_list(record, 'hosts'),
        organizers=_name_list(record, 'organizers'),
        timing_preferences=[
            TimingPreference(
                name=pref.get('name') or '',
                preference=pref.get('preference') or ''
            )
            for pref in timing
        ],
        created_at=record.get('createdAt') or ''
    )


def _name_list(record: dict, field: str) -> List[str]:
    value = record.get(field)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(n, str) for n in value):
        raise ValueError(f"'{field}' must be a list of names")
    return list(value)
