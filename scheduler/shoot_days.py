"""Shoot-day records from the production scheduler."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from timeline.models import ProductionEvent, ProductionEventType

logger = logging.getLogger(__name__)


@dataclass
class ShootDay:
    """One scheduled shooting day as exported by the scheduler."""
    date: datetime
    day_number: int = 0
    scenes: List[str] = field(default_factory=list)
    location: str = ''
    call_time: Optional[datetime] = None
    notes: str = ''


class ShootDayParser:
    """Parser for raw shoot-day records."""

    DATETIME_FORMATS = [
        '%Y-%m-%dT%H:%M:%S',   # ISO 8601
        '%Y-%m-%dT%H:%M',
        '%Y-%m-%d %H:%M:%S',
        '%Y-%m-%d %H:%M',
        '%Y-%m-%d',
    ]

    def parse_records(self, records: Iterable[Dict[str, Any]]) -> List[ShootDay]:
        """
        Parse raw scheduler records into ShootDay objects.

        Records without a usable date are skipped with a warning.

        Args:
            records: Dictionaries with date, day_number, scenes, location,
                call_time and notes keys

        Returns:
            List of ShootDay objects sorted by date
        """
        shoot_days = []

        for record in records:
            try:
                shoot_day = self._parse_single_record(record)
                if shoot_day:
                    shoot_days.append(shoot_day)
            except (TypeError, ValueError) as e:
                logger.warning(f"Failed to parse shoot day record {record!r}: {e}")
                continue

        shoot_days.sort(key=lambda day: day.date)
        return shoot_days

    def _parse_single_record(self, record: Dict[str, Any]) -> Optional[ShootDay]:
        shoot_date = self.parse_datetime(record.get('date'))
        if shoot_date is None:
            logger.warning(f"Shoot day record missing valid date: {record.get('date')!r}")
            return None

        return ShootDay(
            date=shoot_date,
            day_number=int(record.get('day_number') or 0),
            scenes=self._parse_scenes(record.get('scenes') or []),
            location=record.get('location') or '',
            call_time=self.parse_datetime(record.get('call_time')),
            notes=record.get('notes') or ''
        )

    def _parse_scenes(self, scenes: Iterable[Any]) -> List[str]:
        """
        Extract scene numbers from scene entries.

        Args:
            scenes: Scene numbers as strings, or dicts carrying a
                'scene_number' or 'number' key

        Returns:
            Sorted list of scene number strings
        """
        numbers = []
        for scene in scenes:
            if isinstance(scene, dict):
                number = scene.get('scene_number') or scene.get('number')
            else:
                number = scene
            if number:
                numbers.append(str(number))
        return sorted(numbers)

    def parse_datetime(self, value: Any) -> Optional[datetime]:
        """
        Parse a datetime from a string or pass a datetime through.

        Args:
            value: datetime, string in one of DATETIME_FORMATS, or None

        Returns:
            datetime or None if parsing fails
        """
        if value is None or isinstance(value, datetime):
            return value

        text = str(value).strip()
        if not text:
            return None

        for fmt in self.DATETIME_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue

        return None


def shoot_day_title(day_number: int) -> str:
    return f"Shoot Day {day_number}" if day_number > 0 else "Shoot Day"


def materialize_shoot_day_events(
    shoot_days: Iterable[ShootDay],
    existing_events: Iterable[ProductionEvent]
) -> List[ProductionEvent]:
    """
    Create shoot-day events for scheduler days not yet on the calendar.

    A day is already covered when a shoot-day event starts on the same
    calendar day.

    Args:
        shoot_days: Scheduled shooting days
        existing_events: Events currently on the calendar

    Returns:
        List of new ProductionEvent objects (existing events untouched)
    """
    covered_days = {
        event.date.date() for event in existing_events
        if event.type is ProductionEventType.SHOOT_DAY
    }
    new_events = []

    for shoot_day in shoot_days:
        day = shoot_day.date.date()
        if day in covered_days:
            continue

        new_events.append(ProductionEvent(
            title=shoot_day_title(shoot_day.day_number),
            type=ProductionEventType.SHOOT_DAY,
            date=shoot_day.date,
            notes=shoot_day.notes,
            location=shoot_day.location,
            scenes=list(shoot_day.scenes),
            call_time=shoot_day.call_time
        ))
        covered_days.add(day)

    logger.info(f"Materialized {len(new_events)} new shoot day events")
    return new_events
