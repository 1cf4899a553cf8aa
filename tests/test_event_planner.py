"""Unit tests for EventPlanner."""
import json
from unittest.mock import patch

import pytest

from planner.errors import DuplicateVolunteerError, ValidationError
from planner.event_planner import (
    EventPlanner,
    generate_event_id,
    most_popular,
    sorted_events,
    total_votes,
)
from planner.models import Event
from storage.event_store import EventStore
from storage.file_store import JsonFileStore
from storage.local_votes import LocalVoteSet


@pytest.fixture
def shared_store(tmp_path):
    """Shared key/value store on disk."""
    return JsonFileStore(tmp_path / 'shared.json')


@pytest.fixture
def planner(shared_store, tmp_path):
    """Planner with empty shared and local stores."""
    planner = EventPlanner(
        event_store=EventStore(shared_store),
        vote_set=LocalVoteSet(JsonFileStore(tmp_path / 'local.json'))
    )
    planner.refresh()
    return planner


def make_event(event_id, votes=0, name=None):
    return Event(
        id=event_id,
        name=name or f'Event {event_id}',
        submitter='Ann',
        created_at='2024-01-01T00:00:00+00:00',
        votes=votes
    )


class TestCreateEvent:
    """Test cases for creating events."""

    def test_create_event_appends_with_zero_votes(self, planner):
        """Test a valid submission adds exactly one event with no votes."""
        planner.create_event('Hiking Trip', 'Up the hill', 'Ann')
        before = len(planner.events)

        event = planner.create_event('Game Night', '', 'Ben')

        assert len(planner.events) == before + 1
        assert planner.events[-1] is event
        assert event.votes == 0
        assert event.hosts == []
        assert event.organizers == []
        assert event.timing_preferences == []

    def test_create_event_opt_ins(self, planner):
        """Test the submitter is added to the lists they opted into."""
        event = planner.create_event(
            'Potluck', 'Bring a dish', 'Cara',
            wants_host=True, wants_organize=True,
            timing_preference='Sunday afternoons'
        )

        assert event.hosts == ['Cara']
        assert event.organizers == ['Cara']
        assert len(event.timing_preferences) == 1
        assert event.timing_preferences[0].name == 'Cara'
        assert event.timing_preferences[0].preference == 'Sunday afternoons'
        assert event.created_at

    @pytest.mark.parametrize('name,submitter', [
        ('', 'Ann'),
        ('   ', 'Ann'),
        ('Board Games', ''),
        ('Board Games', ' \t'),
    ])
    def test_create_event_requires_name_and_submitter(self, planner, name, submitter):
        """Test blank required fields are rejected without a state change."""
        with pytest.raises(ValidationError) as exc_info:
            planner.create_event(name, 'desc', submitter)

        assert exc_info.value.message == 'Please fill in event name and your name'
        assert planner.events == []
        assert planner.event_store.load() == []

    def test_create_event_persists(self, planner, shared_store):
        """Test the new event is written to the shared store."""
        event = planner.create_event('Board Games', '', 'Ann')

        stored = json.loads(shared_store.get('survey-events', shared=True))
        assert [record['id'] for record in stored] == [event.id]

    def test_create_event_reads_latest_shared_state(self, planner, tmp_path):
        """Test an event written by someone else is kept when appending."""
        other = EventPlanner(
            event_store=EventStore(JsonFileStore(tmp_path / 'shared.json')),
            vote_set=LocalVoteSet(JsonFileStore(tmp_path / 'other-local.json'))
        )
        other.create_event('Karaoke', '', 'Dan')

        planner.create_event('Board Games', '', 'Ann')

        assert [e.name for e in planner.events] == ['Karaoke', 'Board Games']

    def test_create_event_save_failure(self, planner):
        """Test a failed save leaves the view unchanged."""
        planner.create_event('Board Games', '', 'Ann')
        before = list(planner.events)

        with patch.object(planner.event_store.backend, 'set',
                          side_effect=OSError('disk full')):
            result = planner.create_event('Karaoke', '', 'Dan')

        assert result is None
        assert planner.save_failed is True
        assert planner.events == before

    def test_create_event_read_failure_keeps_stored_events(self, planner, shared_store):
        """Test an unreadable store aborts the create instead of replacing it."""
        for name in ('Hike', 'Karaoke', 'Picnic'):
            planner.create_event(name, '', 'Ann')

        with patch.object(shared_store, 'get',
                          side_effect=OSError('transient read error')):
            result = planner.create_event('Board Games', '', 'Ben')

        assert result is None
        assert planner.save_failed is True
        stored = json.loads(shared_store.get('survey-events', shared=True))
        assert [record['name'] for record in stored] == ['Hike', 'Karaoke', 'Picnic']

    def test_create_event_malformed_record_keeps_blob(self, planner, shared_store):
        """Test a stored record that cannot be read is never dropped by a save."""
        blob = json.dumps([
            {'id': 'a', 'name': 'Hike', 'submitter': 'Ann', 'createdAt': ''},
            {'name': 'No id', 'submitter': 'Eve'},
        ])
        shared_store.set('survey-events', blob, shared=True)

        assert planner.create_event('Board Games', '', 'Ben') is None
        assert planner.save_failed is True
        assert shared_store.get('survey-events', shared=True) == blob

    def test_create_event_first_event_on_empty_store(self, planner):
        """Test a key that was never written still counts as no events."""
        event = planner.create_event('Board Games', '', 'Ann')

        assert planner.save_failed is False
        assert planner.events == [event]


class TestToggleVote:
    """Test cases for voting."""

    def test_toggle_vote_twice_restores_state(self, planner):
        """Test toggling twice returns votes and membership to the start."""
        event = planner.create_event('Board Games', '', 'Ann')

        first = planner.toggle_vote(event.id)
        assert first.votes == 1
        assert planner.has_voted(event.id)

        second = planner.toggle_vote(event.id)
        assert second.votes == 0
        assert not planner.has_voted(event.id)

    def test_toggle_vote_persists_local_votes(self, planner, tmp_path):
        """Test the local vote set survives a reload."""
        event = planner.create_event('Board Games', '', 'Ann')
        planner.toggle_vote(event.id)

        reloaded = LocalVoteSet(JsonFileStore(tmp_path / 'local.json'))
        reloaded.load()

        assert event.id in reloaded

    def test_toggle_vote_unknown_event(self, planner):
        """Test a stale id is ignored."""
        planner.create_event('Board Games', '', 'Ann')

        assert planner.toggle_vote('missing-id') is None
        assert len(planner.vote_set) == 0
        assert planner.events[0].votes == 0

    def test_toggle_vote_save_failure_keeps_local_votes(self, planner):
        """Test the local set is untouched when the shared save fails."""
        event = planner.create_event('Board Games', '', 'Ann')

        with patch.object(planner.event_store.backend, 'set',
                          side_effect=OSError('disk full')):
            result = planner.toggle_vote(event.id)

        assert result is None
        assert not planner.has_voted(event.id)
        assert planner.events[0].votes == 0

    def test_toggle_vote_read_failure_keeps_local_votes(self, planner, shared_store):
        """Test a failed read aborts the vote on both stores."""
        event = planner.create_event('Board Games', '', 'Ann')

        with patch.object(shared_store, 'get', side_effect=OSError('timeout')):
            assert planner.toggle_vote(event.id) is None

        assert planner.save_failed is True
        assert not planner.has_voted(event.id)
        assert planner.event_store.load()[0].votes == 0

    def test_votes_from_two_devices(self, planner, tmp_path):
        """Test each device contributes its own vote to the shared counter."""
        event = planner.create_event('Board Games', '', 'Ann')
        other = EventPlanner(
            event_store=EventStore(JsonFileStore(tmp_path / 'shared.json')),
            vote_set=LocalVoteSet(JsonFileStore(tmp_path / 'other-local.json'))
        )
        other.refresh()

        planner.toggle_vote(event.id)
        updated = other.toggle_vote(event.id)

        assert updated.votes == 2
        assert other.has_voted(event.id)


class TestVolunteering:
    """Test cases for host and organizer sign-ups."""

    def test_volunteer_host_appends_trimmed_name(self, planner):
        """Test a new host is trimmed and appended."""
        event = planner.create_event('Board Games', '', 'Ann', wants_host=True)

        updated = planner.volunteer_host(event.id, '  Ben ')

        assert updated.hosts == ['Ann', 'Ben']
        assert planner.events[0].hosts == ['Ann', 'Ben']

    def test_volunteer_host_duplicate_rejected(self, planner):
        """Test an existing host cannot sign up twice."""
        event = planner.create_event('Board Games', '', 'Ann', wants_host=True)

        with pytest.raises(DuplicateVolunteerError) as exc_info:
            planner.volunteer_host(event.id, ' Ann ')

        assert 'already listed as a host' in exc_info.value.message
        assert planner.event_store.load()[0].hosts == ['Ann']

    def test_volunteer_host_is_case_sensitive(self, planner):
        """Test names differing in case are distinct people."""
        event = planner.create_event('Board Games', '', 'Ann', wants_host=True)

        updated = planner.volunteer_host(event.id, 'ann')

        assert updated.hosts == ['Ann', 'ann']

    @pytest.mark.parametrize('name', ['', '   ', None])
    def test_volunteer_blank_name_is_noop(self, planner, name):
        """Test a cancelled or blank prompt changes nothing."""
        event = planner.create_event('Board Games', '', 'Ann')

        assert planner.volunteer_host(event.id, name) is None
        assert planner.volunteer_organize(event.id, name) is None
        assert planner.events[0].hosts == []
        assert planner.events[0].organizers == []

    def test_volunteer_organize(self, planner):
        """Test organizers are tracked separately from hosts."""
        event = planner.create_event('Board Games', '', 'Ann', wants_host=True)

        updated = planner.volunteer_organize(event.id, 'Ben')

        assert updated.organizers == ['Ben']
        assert updated.hosts == ['Ann']

    def test_volunteer_organize_duplicate_rejected(self, planner):
        """Test an existing organizer cannot sign up twice."""
        event = planner.create_event('Board Games', '', 'Ann', wants_organize=True)

        with pytest.raises(DuplicateVolunteerError) as exc_info:
            planner.volunteer_organize(event.id, 'Ann')

        assert 'already listed as an organizer' in exc_info.value.message

    def test_volunteer_organize_legacy_record(self, planner, shared_store):
        """Test a record stored without organizers accepts a volunteer."""
        shared_store.set('survey-events', json.dumps([{
            'id': 'legacy-1',
            'name': 'Picnic',
            'description': '',
            'submitter': 'Eve',
            'votes': 3,
            'hosts': [],
            'timingPreferences': [],
            'createdAt': '2023-06-01T12:00:00.000Z'
        }]), shared=True)

        updated = planner.volunteer_organize('legacy-1', 'Ben')

        assert updated.organizers == ['Ben']
        assert updated.votes == 3


class TestTimingPreferences:
    """Test cases for timing preferences."""

    def test_add_timing_preference_allows_repeats(self, planner):
        """Test the same person may add several preferences."""
        event = planner.create_event('Board Games', '', 'Ann')

        planner.add_timing_preference(event.id, 'Ben', 'Weekends')
        updated = planner.add_timing_preference(event.id, ' Ben ', ' Evenings ')

        assert [(p.name, p.preference) for p in updated.timing_preferences] == [
            ('Ben', 'Weekends'),
            ('Ben', 'Evenings'),
        ]

    @pytest.mark.parametrize('name,preference', [
        ('', 'Weekends'),
        ('Ben', ''),
        ('Ben', '   '),
        (None, 'Weekends'),
    ])
    def test_add_timing_preference_requires_both(self, planner, name, preference):
        """Test blank answers are ignored."""
        event = planner.create_event('Board Games', '', 'Ann')

        assert planner.add_timing_preference(event.id, name, preference) is None
        assert planner.events[0].timing_preferences == []


class TestDerivedViews:
    """Test cases for sorting and totals."""

    def test_sorted_events_descending_and_stable(self):
        """Test ties keep insertion order."""
        events = [
            make_event('a', votes=1),
            make_event('b', votes=3),
            make_event('c', votes=1),
            make_event('d', votes=3),
            make_event('e', votes=0),
        ]

        assert [e.id for e in sorted_events(events)] == ['b', 'd', 'a', 'c', 'e']
        assert [e.id for e in events] == ['a', 'b', 'c', 'd', 'e']

    def test_total_votes(self):
        """Test votes are summed across events."""
        events = [make_event('a', votes=2), make_event('b', votes=5)]

        assert total_votes(events) == 7
        assert total_votes([]) == 0

    def test_most_popular(self):
        """Test the top event's name or the placeholder."""
        events = [make_event('a', votes=1, name='Picnic'),
                  make_event('b', votes=4, name='Karaoke')]

        assert most_popular(events) == 'Karaoke'
        assert most_popular([]) == 'None yet'

    def test_generate_event_id_unique(self):
        """Test identical inputs still get distinct ids."""
        ids = {generate_event_id('Board Games', 'Ann') for _ in range(50)}

        assert len(ids) == 50
        assert all(len(event_id) == 64 for event_id in ids)


def test_board_games_scenario(planner):
    """Test the full submit, vote, volunteer flow for one event."""
    event = planner.create_event('Board Games', '', 'Ann', wants_host=True)
    assert event.hosts == ['Ann']
    assert event.votes == 0

    assert planner.toggle_vote(event.id).votes == 1
    assert planner.has_voted(event.id)

    assert planner.toggle_vote(event.id).votes == 0
    assert len(planner.vote_set) == 0

    with pytest.raises(DuplicateVolunteerError):
        planner.volunteer_host(event.id, 'Ann')
    assert planner.events[0].hosts == ['Ann']

    assert planner.volunteer_organize(event.id, 'Ben').organizers == ['Ben']
