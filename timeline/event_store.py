"""Event store for a project's production calendar."""
import copy
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, time
from typing import Iterable, List, Optional

from scheduler.shoot_days import ShootDay, materialize_shoot_day_events
from timeline.categories import default_categories, find_subcategory, phase_for_subcategory
from timeline.models import (
    LoadStatus,
    MutationResult,
    MutationStatus,
    ProductionCategory,
    ProductionEvent,
    ProductionEventType,
    ProductionSubcategory,
)

logger = logging.getLogger(__name__)


def _on_day(day: date, source: datetime) -> datetime:
    """Place the hour and minute of ``source`` on ``day`` (seconds dropped)."""
    return datetime.combine(day, time(source.hour, source.minute), tzinfo=source.tzinfo)


def _start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time(0, 0), tzinfo=value.tzinfo)


class EventStore:
    """
    Canonical list of production events for one project.

    Every mutation snapshots the whole list onto the undo stack first and
    hands the new list to the repository afterwards. The repository is any
    object with ``load_events()`` returning a LoadResult and
    ``save_events(events)`` returning a bool.
    """

    MAX_UNDO_STEPS = 20

    def __init__(
        self,
        repository=None,
        categories: Optional[List[ProductionCategory]] = None,
        events: Optional[List[ProductionEvent]] = None
    ):
        """
        Initialize the store.

        Args:
            repository: Persistence collaborator, or None for in-memory use
            categories: Timeline categories used to resolve subcategory moves
                (default: the default categories)
            events: Initial events (default: empty)
        """
        self.repository = repository
        self.categories = categories if categories is not None else default_categories()
        self._events: List[ProductionEvent] = list(events or [])
        self._undo_stack: List[List[ProductionEvent]] = []
        self._redo_stack: List[List[ProductionEvent]] = []
        self._clipboard: Optional[ProductionEvent] = None

    @property
    def events(self) -> List[ProductionEvent]:
        return list(self._events)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def get_event(self, event_id: str) -> Optional[ProductionEvent]:
        index = self._index_of(event_id)
        return self._events[index] if index is not None else None

    # Persistence

    def load(self) -> LoadStatus:
        """
        Replace the current events with the repository's copy.

        Missing or corrupt stored data leaves the store empty. Undo and
        redo history is discarded.

        Returns:
            LoadStatus reported by the repository, or MISSING without a
            repository
        """
        self._undo_stack.clear()
        self._redo_stack.clear()

        if self.repository is None:
            self._events = []
            return LoadStatus.MISSING

        result = self.repository.load_events()
        self._events = list(result.events)
        if result.status is LoadStatus.CORRUPT:
            logger.warning("Stored events could not be decoded; starting empty")
        return result.status

    def _persist(self) -> None:
        if self.repository is None:
            return
        if not self.repository.save_events(self._events):
            logger.warning(f"Failed to persist {len(self._events)} events")

    # Undo / redo

    def _snapshot(self) -> List[ProductionEvent]:
        return copy.deepcopy(self._events)

    def _save_to_undo_stack(self) -> None:
        self._undo_stack.append(self._snapshot())
        self._redo_stack.clear()
        if len(self._undo_stack) > self.MAX_UNDO_STEPS:
            self._undo_stack.pop(0)

    def undo(self) -> MutationResult:
        """Restore the event list from before the last mutation."""
        if not self._undo_stack:
            return MutationResult(MutationStatus.EMPTY)

        self._redo_stack.append(self._snapshot())
        self._events = self._undo_stack.pop()
        self._persist()
        return MutationResult(MutationStatus.APPLIED)

    def redo(self) -> MutationResult:
        """Re-apply the last undone mutation."""
        if not self._redo_stack:
            return MutationResult(MutationStatus.EMPTY)

        self._undo_stack.append(self._snapshot())
        self._events = self._redo_stack.pop()
        self._persist()
        return MutationResult(MutationStatus.APPLIED)

    # Mutations

    def _index_of(self, event_id: str) -> Optional[int]:
        for index, event in enumerate(self._events):
            if event.id == event_id:
                return index
        return None

    def _not_found(self, operation: str, event_id: str) -> MutationResult:
        logger.info(f"{operation}: no event with id {event_id}")
        return MutationResult(MutationStatus.NOT_FOUND)

    def move_event(
        self,
        event_id: str,
        new_date: datetime,
        new_subcategory_id: Optional[str] = None
    ) -> MutationResult:
        """
        Move an event to a new start day and optionally a new row.

        The start keeps its time of day, the end keeps the same number of
        days after the start, and call/wrap times shift by the same number
        of days. A different subcategory also updates the phase to the
        subcategory's category.

        Args:
            event_id: Id of the event to move
            new_date: Any instant on the target start day
            new_subcategory_id: Target row, or None to keep the current one

        Returns:
            MutationResult with the updated event, or NOT_FOUND
        """
        index = self._index_of(event_id)
        if index is None:
            return self._not_found('move_event', event_id)

        self._save_to_undo_stack()
        event = self._events[index]

        old_day = event.date.date()
        new_day = new_date.date()
        day_delta = new_day - old_day

        updated = replace(event, date=_on_day(new_day, event.date))

        if event.end_date is not None:
            span = event.end_date.date() - old_day
            updated.end_date = _on_day(new_day + span, event.end_date)

        if event.call_time is not None:
            updated.call_time = _on_day(event.call_time.date() + day_delta, event.call_time)
        if event.wrap_time is not None:
            updated.wrap_time = _on_day(event.wrap_time.date() + day_delta, event.wrap_time)

        if new_subcategory_id is not None and new_subcategory_id != event.subcategory_id:
            updated.subcategory_id = new_subcategory_id
            found = find_subcategory(self.categories, new_subcategory_id)
            if found:
                category, subcategory = found
                phase = phase_for_subcategory(subcategory)
                if phase is not None:
                    updated.phase = phase
                logger.info(
                    f"Event '{event.title}' moved to subcategory: {subcategory.name} "
                    f"in category: {category.name}"
                )
            else:
                logger.warning(
                    f"Event '{event.title}' moved to unknown subcategory "
                    f"{new_subcategory_id}; phase unchanged"
                )

        self._events[index] = updated
        self._persist()
        return MutationResult(MutationStatus.APPLIED, updated)

    def resize_event(
        self,
        event_id: str,
        new_start_date: Optional[datetime] = None,
        new_end_date: Optional[datetime] = None
    ) -> MutationResult:
        """
        Change an event's start and/or end day.

        A start past the end is clamped to the end. An end before the start
        day clears the end date, collapsing the event to a single day.

        Args:
            event_id: Id of the event to resize
            new_start_date: New start day (time of day is kept), or None
            new_end_date: New end day (start of day, or the start time when it
                falls on the start day), or None

        Returns:
            MutationResult with the updated event, NOT_FOUND, or UNCHANGED
            when neither date is given
        """
        index = self._index_of(event_id)
        if index is None:
            return self._not_found('resize_event', event_id)
        if new_start_date is None and new_end_date is None:
            return MutationResult(MutationStatus.UNCHANGED, self._events[index])

        self._save_to_undo_stack()
        updated = replace(self._events[index])

        if new_start_date is not None:
            updated.date = _on_day(new_start_date.date(), updated.date)
            if updated.end_date is not None and updated.date > updated.end_date:
                updated.date = updated.end_date

        if new_end_date is not None:
            end_of_day = _start_of_day(new_end_date)
            if end_of_day.date() >= updated.date.date():
                # Same-day end stays at or after the start time
                updated.end_date = max(end_of_day, updated.date)
            else:
                updated.end_date = None

        self._events[index] = updated
        self._persist()
        return MutationResult(MutationStatus.APPLIED, updated)

    def add_event(self, event: ProductionEvent) -> MutationResult:
        self._save_to_undo_stack()
        self._events.append(event)
        self._persist()
        return MutationResult(MutationStatus.APPLIED, event)

    def update_event(self, event: ProductionEvent) -> MutationResult:
        """Replace the stored event that has the same id."""
        index = self._index_of(event.id)
        if index is None:
            return self._not_found('update_event', event.id)

        self._save_to_undo_stack()
        self._events[index] = event
        self._persist()
        return MutationResult(MutationStatus.APPLIED, event)

    def delete_event(self, event_id: str) -> MutationResult:
        index = self._index_of(event_id)
        if index is None:
            return self._not_found('delete_event', event_id)

        self._save_to_undo_stack()
        removed = self._events.pop(index)
        self._persist()
        return MutationResult(MutationStatus.APPLIED, removed)

    # Clipboard

    def copy_event(self, event_id: str) -> MutationResult:
        event = self.get_event(event_id)
        if event is None:
            return self._not_found('copy_event', event_id)
        self._clipboard = copy.deepcopy(event)
        return MutationResult(MutationStatus.UNCHANGED, event)

    def cut_event(self, event_id: str) -> MutationResult:
        result = self.copy_event(event_id)
        if result.status is MutationStatus.NOT_FOUND:
            return result
        return self.delete_event(event_id)

    def paste_event(self, target_day: date) -> MutationResult:
        """
        Paste the clipboard event onto a day as a new event.

        Args:
            target_day: Day the pasted copy starts on

        Returns:
            MutationResult with the new event, or EMPTY if nothing was copied
        """
        if self._clipboard is None:
            return MutationResult(MutationStatus.EMPTY)

        source = self._clipboard
        if isinstance(target_day, datetime):
            target_day = target_day.date()

        pasted = copy.deepcopy(source)
        pasted.id = str(uuid.uuid4())
        pasted.date = _on_day(target_day, source.date)

        if source.end_date is not None:
            span = source.end_date.date() - source.date.date()
            pasted.end_date = _on_day(target_day + span, source.end_date)
        if source.call_time is not None:
            pasted.call_time = _on_day(target_day, source.call_time)
        if source.wrap_time is not None:
            pasted.wrap_time = _on_day(target_day, source.wrap_time)

        return self.add_event(pasted)

    # Queries

    def filter_events(
        self,
        types: Optional[Iterable[ProductionEventType]] = None
    ) -> List[ProductionEvent]:
        if types is None:
            return list(self._events)
        wanted = set(types)
        return [event for event in self._events if event.type in wanted]

    def events_for_date(
        self,
        day: date,
        types: Optional[Iterable[ProductionEventType]] = None
    ) -> List[ProductionEvent]:
        """
        Events covering a calendar day, sorted by start.

        Args:
            day: Calendar day (a datetime is reduced to its day)
            types: Event types to include (default: all)

        Returns:
            List of ProductionEvent objects
        """
        if isinstance(day, datetime):
            day = day.date()
        matches = [event for event in self.filter_events(types) if event.spans_day(day)]
        return sorted(matches, key=lambda event: event.date)

    def events_for_category(self, category: ProductionCategory) -> List[ProductionEvent]:
        return [event for event in self._events if event.category_id == category.id]

    def events_for_subcategory(
        self,
        subcategory: ProductionSubcategory,
        category: ProductionCategory
    ) -> List[ProductionEvent]:
        """
        Events shown on one subcategory row.

        Events without an explicit row appear on the first subcategory of
        their category.
        """
        first_id = category.subcategories[0].id if category.subcategories else None
        matches = []
        for event in self._events:
            if event.subcategory_id is not None:
                if event.subcategory_id == subcategory.id:
                    matches.append(event)
            elif event.category_id == subcategory.category_id and subcategory.id == first_id:
                matches.append(event)
        return matches

    # Scheduler collaboration

    def sync_shoot_days(self, shoot_days: Iterable[ShootDay]) -> int:
        """
        Add shoot-day events for scheduler days not on the calendar yet.

        Args:
            shoot_days: Days from the scheduler

        Returns:
            Number of events added
        """
        new_events = materialize_shoot_day_events(shoot_days, self._events)
        self._events.extend(new_events)
        self._persist()
        return len(new_events)

    def refresh_shoot_days(self, shoot_days: Iterable[ShootDay]) -> int:
        """
        Replace all shoot-day events with fresh ones from the scheduler.

        Args:
            shoot_days: Days from the scheduler

        Returns:
            Number of shoot-day events after the refresh
        """
        removed = len(self._events)
        self._events = [
            event for event in self._events
            if event.type is not ProductionEventType.SHOOT_DAY
        ]
        removed -= len(self._events)
        logger.info(f"Removed {removed} shoot day events before refresh")
        return self.sync_shoot_days(shoot_days)
