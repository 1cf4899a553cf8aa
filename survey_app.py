"""Command-line front end for the event planning survey."""
import argparse
import json
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from exporter.csv_exporter import DEFAULT_PREFIX, write_csv_export
from planner.errors import SurveyError
from planner.event_planner import (
    EventPlanner,
    most_popular,
    sorted_events,
    total_votes,
)
from planner.models import Event
from storage.dynamodb_store import DynamoDBKeyValueStore
from storage.event_store import EventStore
from storage.file_store import JsonFileStore
from storage.http_store import HttpKeyValueStore
from storage.local_votes import LocalVoteSet

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_SAVE_FAILED = 2
EXIT_STARTUP_FAILED = 3


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

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'WARNING') -> None:
    """
    Configure logging with JSON formatter on stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))


def load_config() -> Dict[str, Any]:
    """Read settings from environment variables."""
    return {
        'backend': os.environ.get('SURVEY_BACKEND', 'file').lower(),
        'table_name': os.environ.get('TABLE_NAME', 'event-survey'),
        'storage_url': os.environ.get('STORAGE_URL'),
        'shared_store_path': os.environ.get(
            'SHARED_STORE_PATH', '~/.event_survey/shared.json'
        ),
        'local_store_path': os.environ.get(
            'LOCAL_STORE_PATH', '~/.event_survey/local.json'
        ),
        'export_prefix': os.environ.get('EXPORT_PREFIX', DEFAULT_PREFIX),
        'log_level': os.environ.get('LOG_LEVEL', 'WARNING'),
        'timeout_seconds': int(os.environ.get('TIMEOUT_SECONDS', '30')),
    }


def create_shared_backend(config: Dict[str, Any]):
    """
    Build the shared key/value store named by the configuration.

    Raises:
        ValueError: If the backend is unknown or misconfigured
    """
    backend = config['backend']
    if backend == 'dynamodb':
        return DynamoDBKeyValueStore(table_name=config['table_name'])
    if backend == 'http':
        if not config.get('storage_url'):
            raise ValueError('STORAGE_URL is required for the http backend')
        return HttpKeyValueStore(
            base_url=config['storage_url'],
            timeout=config['timeout_seconds']
        )
    if backend == 'file':
        return JsonFileStore(config['shared_store_path'])
    raise ValueError(f"Unknown SURVEY_BACKEND: {backend}")


def create_planner(config: Dict[str, Any]) -> EventPlanner:
    """Wire stores into a planner and load the current state."""
    planner = EventPlanner(
        event_store=EventStore(create_shared_backend(config)),
        vote_set=LocalVoteSet(JsonFileStore(config['local_store_path']))
    )
    planner.refresh()
    return planner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='event-survey',
        description='Propose events, vote on them and volunteer to help.'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('list', help='Show events, most votes first')
    subparsers.add_parser('stats', help='Show survey totals')

    submit = subparsers.add_parser('submit', help='Propose a new event')
    submit.add_argument('name', help='Event name')
    submit.add_argument('--submitter', required=True, help='Your name')
    submit.add_argument('--description', default='')
    submit.add_argument('--host', action='store_true',
                        help='You are willing to host')
    submit.add_argument('--organize', action='store_true',
                        help='You are willing to help organize')
    submit.add_argument('--timing', default='', help='When works for you')

    vote = subparsers.add_parser('vote', help='Vote for an event or take it back')
    vote.add_argument('event_id')

    for command, help_text in (('host', 'Volunteer to host'),
                               ('organize', 'Volunteer to help organize')):
        volunteer = subparsers.add_parser(command, help=help_text)
        volunteer.add_argument('event_id')
        volunteer.add_argument('--name')

    timing = subparsers.add_parser('timing', help='Add a timing preference')
    timing.add_argument('event_id')
    timing.add_argument('--name')
    timing.add_argument('--preference')

    export = subparsers.add_parser('export', help='Write results to CSV')
    export.add_argument('--output-dir', default='.')

    return parser


def format_event(event: Event, voted: bool) -> List[str]:
    """Render one event as display lines."""
    heart = '♥' if voted else '♡'
    lines = [f"{heart} {event.votes:>3}  {event.name}  [{event.id}]"]
    if event.description:
        lines.append(f"      {event.description}")
    lines.append(f"      Submitted by: {event.submitter}")
    if event.hosts:
        lines.append(f"      Hosts: {', '.join(event.hosts)}")
    if event.organizers:
        lines.append(f"      Organizers: {', '.join(event.organizers)}")
    for pref in event.timing_preferences:
        lines.append(f"      {pref.name}: {pref.preference}")
    return lines


def main(argv: Optional[List[str]] = None, prompt: Callable[[str], str] = input) -> int:
    """
    Run one survey command.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])
        prompt: Reads free-text answers when a name or preference is missing

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
        setup_logging(config['log_level'])
        planner = create_planner(config)
    except Exception as e:
        logger.error(
            f"Survey startup failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        print(f"Could not start: {e}", file=sys.stderr)
        return EXIT_STARTUP_FAILED

    logger.info(f"Running '{args.command}' with {len(planner.events)} events")

    try:
        if args.command == 'list':
            if not planner.events:
                print('No events yet. Be the first to submit an idea!')
            for event in sorted_events(planner.events):
                print('\n'.join(format_event(event, planner.has_voted(event.id))))
            return EXIT_OK

        if args.command == 'stats':
            print(f"Event ideas: {len(planner.events)}")
            print(f"Total votes: {total_votes(planner.events)}")
            print(f"Most popular: {most_popular(planner.events)}")
            return EXIT_OK

        if args.command == 'export':
            path = write_csv_export(
                planner.events,
                directory=args.output_dir,
                prefix=config['export_prefix']
            )
            print(path)
            return EXIT_OK

        if args.command == 'submit':
            result = planner.create_event(
                name=args.name,
                description=args.description,
                submitter=args.submitter,
                wants_host=args.host,
                wants_organize=args.organize,
                timing_preference=args.timing
            )
        elif args.command == 'vote':
            result = planner.toggle_vote(args.event_id)
        elif args.command == 'host':
            name = args.name or prompt('Enter your name to volunteer as host: ')
            result = planner.volunteer_host(args.event_id, name)
        elif args.command == 'organize':
            name = args.name or prompt(
                'Enter your name to volunteer to help organize: '
            )
            result = planner.volunteer_organize(args.event_id, name)
        else:
            name = args.name or prompt('Enter your name: ')
            if not name.strip():
                return EXIT_OK
            preference = args.preference or prompt(
                'Enter your timing preference (e.g., "Weekends in December"): '
            )
            result = planner.add_timing_preference(args.event_id, name, preference)

    except SurveyError as e:
        print(e.message, file=sys.stderr)
        return EXIT_REJECTED

    if result is None:
        if planner.save_failed:
            print('Could not save your change, please try again.', file=sys.stderr)
            return EXIT_SAVE_FAILED
        return EXIT_OK

    print('\n'.join(format_event(result, planner.has_voted(result.id))))
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
