"""Read-modify-write actions on the shared event collection."""
import hashlib
import logging
import secrets
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

from planner.errors import DuplicateVolunteerError, ValidationError
from planner.models import Event, TimingPreference
from storage.event_store import EventStore, StoreReadError
from storage.local_votes import LocalVoteSet

logger = logging.getLogger(__name__)

NO_EVENTS_PLACEHOLDER = 'None yet'


class EventPlanner:
    """
    Survey actions against the shared store and this device's votes.

    Each mutation loads the current collection, applies one transformation
    keyed by event id, writes the whole collection back and only then
    touches local state. `events` changes only on refresh or a successful
    save.
    """

    def __init__(self, event_store: EventStore, vote_set: LocalVoteSet):
        self.event_store = event_store
        self.vote_set = vote_set
        self.events: List[Event] = []
        self.save_failed = False

    def refresh(self) -> List[Event]:
        """Reload the shared collection and the local votes."""
        self.events = self.event_store.load()
        self.vote_set.load()
        return self.events

    def has_voted(self, event_id: str) -> bool:
        return event_id in self.vote_set

    def create_event(
        self,
        name: str,
        description: str,
        submitter: str,
        wants_host: bool = False,
        wants_organize: bool = False,
        timing_preference: str = ''
    ) -> Optional[Event]:
        """
        Append a new event proposal.

        Args:
            name: Event name (required)
            description: Free text, may be empty
            submitter: Name of the person proposing (required)
            wants_host: Add the submitter to hosts
            wants_organize: Add the submitter to organizers
            timing_preference: Submitter's availability, may be empty

        Returns:
            The new Event, or None if the save failed

        Raises:
            ValidationError: If name or submitter is blank
        """
        if not name.strip() or not submitter.strip():
            raise ValidationError('Please fill in event name and your name')

        created_at = datetime.now(timezone.utc).isoformat()
        event = Event(
            id=generate_event_id(name, submitter),
            name=name,
            description=description or '',
            submitter=submitter,
            votes=0,
            hosts=[submitter] if wants_host else [],
            organizers=[submitter] if wants_organize else [],
            timing_preferences=(
                [TimingPreference(name=submitter, preference=timing_preference)]
                if timing_preference else []
            ),
            created_at=created_at
        )

        events = self._load_for_update()
        if events is None:
            return None
        if not self._commit(events + [event]):
            return None

        logger.info(f"Created event '{name}' ({event.id}) by {submitter}")
        return event

    def toggle_vote(self, event_id: str) -> Optional[Event]:
        """
        Add this device's vote to an event, or take it back.

        Returns:
            The updated Event, or None if the event is unknown or the save
            failed
        """
        had_voted = event_id in self.vote_set
        delta = -1 if had_voted else 1

        updated = self._update_event(
            event_id,
            lambda event: replace(event, votes=event.votes + delta)
        )
        if updated is None:
            return None

        # Shared and local writes are independent; a failure here leaves the
        # counter changed without the matching local entry.
        if had_voted:
            self.vote_set.discard(event_id)
        else:
            self.vote_set.add(event_id)

        logger.info(
            f"{'Removed' if had_voted else 'Added'} vote on {event_id}, "
            f"now {updated.votes}"
        )
        return updated

    def volunteer_host(self, event_id: str, name: str) -> Optional[Event]:
        """
        Add a name to an event's hosts.

        Raises:
            DuplicateVolunteerError: If the name is already a host
        """
        return self._volunteer(
            event_id, name, 'hosts',
            'You are already listed as a host for this event'
        )

    def volunteer_organize(self, event_id: str, name: str) -> Optional[Event]:
        """
        Add a name to an event's organizers.

        Raises:
            DuplicateVolunteerError: If the name is already an organizer
        """
        return self._volunteer(
            event_id, name, 'organizers',
            'You are already listed as an organizer for this event'
        )

    def add_timing_preference(
        self,
        event_id: str,
        name: str,
        preference: str
    ) -> Optional[Event]:
        """Append a timing preference; the same person may add several."""
        if not name or not name.strip():
            return None
        if not preference or not preference.strip():
            return None

        entry = TimingPreference(name=name.strip(), preference=preference.strip())
        return self._update_event(
            event_id,
            lambda event: replace(
                event,
                timing_preferences=event.timing_preferences + [entry]
            )
        )

    def _volunteer(
        self,
        event_id: str,
        name: str,
        role: str,
        duplicate_message: str
    ) -> Optional[Event]:
        if not name or not name.strip():
            return None
        name = name.strip()

        def add_volunteer(event: Event) -> Event:
            volunteers = getattr(event, role)
            if name in volunteers:
                raise DuplicateVolunteerError(duplicate_message)
            return replace(event, **{role: volunteers + [name]})

        updated = self._update_event(event_id, add_volunteer)
        if updated:
            logger.info(f"{name} volunteered for {role} on {event_id}")
        return updated

    def _update_event(
        self,
        event_id: str,
        transform: Callable[[Event], Event]
    ) -> Optional[Event]:
        events = self._load_for_update()
        if events is None:
            return None

        index = _find_index(events, event_id)
        if index is None:
            logger.warning(f"Event {event_id} not found, ignoring action")
            return None

        updated = transform(events[index])
        new_events = events[:index] + [updated] + events[index + 1:]
        if not self._commit(new_events):
            return None
        return updated

    def _load_for_update(self) -> Optional[List[Event]]:
        self.save_failed = False
        try:
            return self.event_store.load_for_update()
        except StoreReadError as e:
            # Writing back a partial read would erase the unread events
            logger.error(f"Aborting change: {e}")
            self.save_failed = True
            return None

    def _commit(self, events: List[Event]) -> bool:
        if not self.event_store.save(events):
            self.save_failed = True
            return False
        self.events = events
        return True


def generate_event_id(name: str, submitter: str) -> str:
    """
    Generate a unique identifier for a new event.

    Args:
        name: Event name
        submitter: Submitter name

    Returns:
        SHA256 hex digest of the names, the current time and a random salt
    """
    composite = f"{name}|{submitter}|{time.time_ns()}|{secrets.token_hex(8)}"
    return hashlib.sha256(composite.encode('utf-8')).hexdigest()


def sorted_events(events: List[Event]) -> List[Event]:
    """Events by descending votes; ties keep insertion order."""
    return sorted(events, key=lambda event: event.votes, reverse=True)


def total_votes(events: List[Event]) -> int:
    return sum(event.votes for event in events)


def most_popular(events: List[Event]) -> str:
    """Name of the top-voted event, or a placeholder when there are none."""
    ranked = sorted_events(events)
    return ranked[0].name if ranked else NO_EVENTS_PLACEHOLDER


def _find_index(events: List[Event], event_id: str) -> Optional[int]:
    for index, event in enumerate(events):
        if event.id == event_id:
            return index
    return None
