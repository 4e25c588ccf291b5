"""DynamoDB repository for per-project production calendar events."""
import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from timeline.models import (
    LoadResult,
    LoadStatus,
    ProductionEvent,
    ProductionEventType,
    ProductionPhase,
)

logger = logging.getLogger(__name__)


class DynamoDBEventRepository:
    """
    Stores each project's event list as one JSON blob in DynamoDB.

    Items are keyed by ``storage_key`` (``calendarEvents_<project_id>``).
    """

    KEY_PREFIX = 'calendarEvents_'

    def __init__(self, table_name: str, project_id: str):
        """
        Initialize DynamoDB table reference for one project.

        Args:
            table_name: Name of the DynamoDB table
            project_id: Project identifier the events belong to
        """
        self.table_name = table_name
        self.project_id = project_id
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(
            f"Initialized DynamoDBEventRepository for table: {table_name}, "
            f"project: {project_id}"
        )

    @property
    def storage_key(self) -> str:
        return f"{self.KEY_PREFIX}{self.project_id}"

    def load_events(self) -> LoadResult:
        """
        Load the project's events.

        Returns:
            LoadResult with status LOADED, MISSING (no item stored yet)
            or CORRUPT (blob could not be decoded); events are empty
            unless loaded

        Raises:
            ClientError: If the DynamoDB read fails
        """
        try:
            response = self.table.get_item(Key={'storage_key': self.storage_key})
        except ClientError as e:
            logger.error(f"Error reading events for {self.storage_key}: {e}")
            raise

        item = response.get('Item')
        if not item or 'events' not in item:
            logger.info(f"No stored events for {self.storage_key}")
            return LoadResult(status=LoadStatus.MISSING, events=[])

        try:
            events = decode_events(item['events'])
        except (TypeError, ValueError, KeyError) as e:
            logger.warning(f"Failed to decode events for {self.storage_key}: {e}")
            return LoadResult(status=LoadStatus.CORRUPT, events=[])

        logger.info(f"Loaded {len(events)} events for {self.storage_key}")
        return LoadResult(status=LoadStatus.LOADED, events=events)

    def save_events(self, events: List[ProductionEvent]) -> bool:
        """
        Replace the project's stored events.

        Args:
            events: Full event list to store

        Returns:
            True if the write succeeded, False otherwise
        """
        item = {
            'storage_key': self.storage_key,
            'project_id': self.project_id,
            'events': encode_events(events),
            'last_updated': int(time.time())
        }

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing events for {self.storage_key}: {e}")
            return False

        logger.info(f"Saved {len(events)} events for {self.storage_key}")
        return True


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def event_to_record(event: ProductionEvent) -> Dict[str, Any]:
    """
    Convert ProductionEvent object to a JSON-compatible record.

    Args:
        event: ProductionEvent object

    Returns:
        Dictionary with ISO 8601 datetimes and enum values as strings
    """
    record = {
        'id': event.id,
        'title': event.title,
        'type': event.type.value,
        'phase': event.phase.value,
        'date': _format_datetime(event.date),
        'notes': event.notes,
        'location': event.location,
        'scenes': list(event.scenes),
        'crew': list(event.crew),
        'linked_task_ids': list(event.linked_task_ids)
    }

    # Add optional fields if present
    optional = {
        'end_date': _format_datetime(event.end_date),
        'subcategory_id': event.subcategory_id,
        'call_time': _format_datetime(event.call_time),
        'wrap_time': _format_datetime(event.wrap_time),
        'custom_color': event.custom_color,
        'linked_location_id': event.linked_location_id
    }
    record.update({key: value for key, value in optional.items() if value is not None})

    return record


def record_to_event(record: Dict[str, Any]) -> ProductionEvent:
    """
    Convert a stored record back to a ProductionEvent.

    Args:
        record: Dictionary produced by event_to_record

    Returns:
        ProductionEvent object

    Raises:
        KeyError: If a required field is missing
        ValueError: If an enum value or datetime is invalid
    """
    return ProductionEvent(
        id=record['id'],
        title=record['title'],
        type=ProductionEventType(record['type']),
        phase=ProductionPhase(record.get('phase', ProductionPhase.DEVELOPMENT.value)),
        date=_parse_datetime(record['date']),
        end_date=_parse_datetime(record.get('end_date')),
        subcategory_id=record.get('subcategory_id'),
        notes=record.get('notes', ''),
        location=record.get('location', ''),
        scenes=list(record.get('scenes', [])),
        crew=list(record.get('crew', [])),
        call_time=_parse_datetime(record.get('call_time')),
        wrap_time=_parse_datetime(record.get('wrap_time')),
        custom_color=record.get('custom_color'),
        linked_location_id=record.get('linked_location_id'),
        linked_task_ids=list(record.get('linked_task_ids', []))
    )


def encode_events(events: List[ProductionEvent]) -> str:
    return json.dumps([event_to_record(event) for event in events])


def decode_events(blob: str) -> List[ProductionEvent]:
    records = json.loads(blob)
    if not isinstance(records, list):
        raise ValueError(f"Expected a JSON array, got {type(records).__name__}")
    return [record_to_event(record) for record in records]
