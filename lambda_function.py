"""AWS Lambda handler for the production calendar timeline."""
import json
import logging
import os
import time
from typing import Any, Dict

from scheduler.shoot_days import ShootDayParser
from storage.event_repository import DynamoDBEventRepository, event_to_record
from timeline.event_store import EventStore


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


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


ACTIONS = ('sync_shoot_days', 'move_event', 'resize_event')


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _sync_shoot_days(store: EventStore, event: Dict[str, Any]) -> Dict[str, Any]:
    shoot_days = ShootDayParser().parse_records(event.get('shoot_days') or [])
    if event.get('refresh'):
        count = store.refresh_shoot_days(shoot_days)
    else:
        count = store.sync_shoot_days(shoot_days)
    return {
        'message': 'Shoot days synced',
        'statistics': {
            'shoot_days_received': len(shoot_days),
            'events_added': count,
            'total_events': len(store.events)
        }
    }


def _require_event_id(event: Dict[str, Any]) -> str:
    event_id = event.get('event_id')
    if not event_id:
        raise ValueError("event_id is required")
    return event_id


def _move_event(store: EventStore, event: Dict[str, Any]) -> Dict[str, Any]:
    event_id = _require_event_id(event)
    parser = ShootDayParser()
    new_date = parser.parse_datetime(event.get('new_date'))
    if new_date is None:
        raise ValueError(f"Invalid new_date: {event.get('new_date')!r}")

    result = store.move_event(event_id, new_date, event.get('subcategory_id'))
    return {
        'message': f"Move {result.status.value}",
        'status': result.status.value,
        'event': event_to_record(result.event) if result.event else None
    }


def _resize_event(store: EventStore, event: Dict[str, Any]) -> Dict[str, Any]:
    event_id = _require_event_id(event)
    parser = ShootDayParser()
    new_start = parser.parse_datetime(event.get('new_start_date'))
    new_end = parser.parse_datetime(event.get('new_end_date'))

    result = store.resize_event(event_id, new_start, new_end)
    return {
        'message': f"Resize {result.status.value}",
        'status': result.status.value,
        'event': event_to_record(result.event) if result.event else None
    }


_HANDLERS = {
    'sync_shoot_days': _sync_shoot_days,
    'move_event': _move_event,
    'resize_event': _resize_event,
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for production calendar updates.

    Args:
        event: Payload with project_id, action (sync_shoot_days, move_event
            or resize_event; default sync_shoot_days) and action arguments
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'production-calendar-events')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    project_id = event.get('project_id')
    action = event.get('action', 'sync_shoot_days')
    logger.info(
        f"Lambda execution started",
        extra={'table_name': table_name, 'project_id': project_id, 'action': action}
    )

    if not project_id or action not in ACTIONS:
        logger.warning(f"Rejected request: project_id={project_id!r} action={action!r}")
        return _response(400, {
            'message': 'Invalid request',
            'error': 'project_id is required and action must be one of '
                     + ', '.join(ACTIONS)
        })

    try:
        repository = DynamoDBEventRepository(table_name=table_name, project_id=project_id)
        store = EventStore(repository=repository)
        load_status = store.load()
        logger.info(f"Loaded {len(store.events)} events (status: {load_status.value})")

        try:
            body = _HANDLERS[action](store, event)
        except ValueError as e:
            logger.warning(f"Invalid {action} request: {e}")
            return _response(400, {
                'message': 'Invalid request',
                'error': str(e),
                'error_type': type(e).__name__
            })

        duration = time.time() - start_time
        body['duration_seconds'] = round(duration, 2)
        logger.info(
            f"Lambda execution completed successfully",
            extra={'duration_seconds': round(duration, 2), 'action': action}
        )
        return _response(200, body)

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return _response(500, {
            'message': 'Calendar update failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
