"""Pointer gesture handling for Gantt bars: drag to move, handles to resize."""
import logging
import math
from datetime import date, timedelta
from typing import Optional, Tuple

from timeline.drag_controller import (
    DragController,
    clamp_resize_end_offset,
    clamp_resize_start_offset,
    days_delta,
)
from timeline.event_store import EventStore
from timeline.models import (
    DragMode,
    MutationResult,
    MutationStatus,
    ProductionEvent,
)
from timeline.subcategory_layout import SubcategoryLayout

logger = logging.getLogger(__name__)


class GanttInteraction:
    """
    Turns pointer events over Gantt bars into event store commits.

    A pointer-down only records the pending gesture; the session opens on
    the first pointer-move at least MIN_DRAG_DISTANCE away, so a plain
    click never touches the store.
    """

    DAY_WIDTH = 60.0
    MIN_DRAG_DISTANCE = 1.0
    BAR_INSET = 4.0

    def __init__(
        self,
        store: EventStore,
        layout: SubcategoryLayout,
        timeline_start: date,
        controller: Optional[DragController] = None,
        day_width: float = DAY_WIDTH
    ):
        self.store = store
        self.layout = layout
        self.timeline_start = timeline_start
        self.controller = controller or DragController()
        self.day_width = day_width
        self._pending: Optional[Tuple[str, DragMode, float, float]] = None
        self._last_y = 0.0

    # Geometry

    def offset_days(self, event: ProductionEvent) -> int:
        """Days between the timeline start and the event's start day."""
        return (event.date.date() - self.timeline_start).days

    def bar_width(self, event: ProductionEvent) -> float:
        return max(
            event.duration * self.day_width - self.BAR_INSET,
            self.day_width - self.BAR_INSET
        )

    def live_duration(self, event: ProductionEvent) -> int:
        """
        Duration in days including the resize in progress, for bar labels.

        Args:
            event: Event whose bar is being drawn

        Returns:
            Adjusted duration, never below 1
        """
        start_delta = days_delta(
            self.controller.offset(event.id, DragMode.RESIZE_START), self.day_width
        )
        end_delta = days_delta(
            self.controller.offset(event.id, DragMode.RESIZE_END), self.day_width
        )
        return max(1, event.duration - start_delta + end_delta)

    # Pointer events

    def pointer_down(self, event_id: str, mode: DragMode, x: float, y: float = 0.0) -> None:
        if mode is DragMode.NONE:
            raise ValueError("pointer_down needs a move or resize mode")
        self._pending = (event_id, mode, x, y)
        self._last_y = y

    def pointer_move(self, x: float, y: float = 0.0) -> bool:
        """
        Track pointer movement.

        Args:
            x: Pointer x in global coordinates
            y: Pointer y in global coordinates

        Returns:
            True if a drag session is active after this move
        """
        self._last_y = y
        if not self.controller.is_active:
            if self._pending is None:
                return False
            event_id, mode, start_x, start_y = self._pending
            if math.hypot(x - start_x, y - start_y) < self.MIN_DRAG_DISTANCE:
                return False
            self.controller.begin_drag(event_id, mode, start_x, start_y)

        session = self.controller.session
        if session.mode is DragMode.MOVE:
            self.controller.update_drag(x, y)
            target = self.layout.subcategory_at(y)
            target_id = target.id if target else None
            if session.hovered_subcategory_id != target_id:
                self.controller.update_hovered_subcategory(target_id)
        else:
            self.controller.update_drag(x, session.start_y)
            self._constrain_resize()

        return True

    def _constrain_resize(self) -> None:
        session = self.controller.session
        event = self.store.get_event(session.active_event_id)
        if event is None:
            return

        raw = session.current_offset_x
        if session.mode is DragMode.RESIZE_START:
            constrained = clamp_resize_start_offset(
                raw, self.bar_width(event), self.day_width, self.offset_days(event)
            )
        else:
            constrained = clamp_resize_end_offset(raw, self.bar_width(event), self.day_width)

        if constrained != raw:
            self.controller.update_drag(session.start_x + constrained, session.current_y)

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> MutationResult:
        """
        Finish the gesture and commit it to the store.

        Args:
            x: Final pointer x, if it moved since the last pointer_move
            y: Final pointer y, if it moved since the last pointer_move

        Returns:
            MutationResult from the store, or UNCHANGED when there was no
            drag or it resolved to no change
        """
        if x is not None:
            self.pointer_move(x, y if y is not None else self._last_y)
        self._pending = None

        if not self.controller.is_active:
            return MutationResult(MutationStatus.UNCHANGED)

        event_id = self.controller.session.active_event_id
        mode = self.controller.session.mode
        final_y = self.controller.session.current_y
        x_offset, _ = self.controller.end_drag()
        delta = days_delta(x_offset, self.day_width)

        event = self.store.get_event(event_id)
        if event is None:
            logger.warning(f"Drag ended for missing event {event_id}")
            return MutationResult(MutationStatus.NOT_FOUND)

        if mode is DragMode.MOVE:
            return self._commit_move(event, delta, final_y)
        if delta == 0:
            return MutationResult(MutationStatus.UNCHANGED, event)
        if mode is DragMode.RESIZE_START:
            return self.store.resize_event(
                event.id, new_start_date=event.date + timedelta(days=delta)
            )
        current_end = event.end_date or event.date
        return self.store.resize_event(
            event.id, new_end_date=current_end + timedelta(days=delta)
        )

    def displayed_subcategory_id(self, event: ProductionEvent) -> Optional[str]:
        """Row the event's bar is drawn on: its own, else its category's first."""
        if event.subcategory_id:
            return event.subcategory_id
        for category in self.layout.categories or self.store.categories:
            if category.id == event.category_id:
                return category.subcategories[0].id if category.subcategories else None
        return None

    def _commit_move(self, event: ProductionEvent, delta: int, final_y: float) -> MutationResult:
        target = self.layout.subcategory_at(final_y)
        new_subcategory_id = None
        if target is not None and target.id != self.displayed_subcategory_id(event):
            new_subcategory_id = target.id

        if delta == 0 and new_subcategory_id is None:
            return MutationResult(MutationStatus.UNCHANGED, event)

        logger.info(
            f"Moving event '{event.title}' by {delta} days "
            f"to subcategory {new_subcategory_id}"
        )
        return self.store.move_event(
            event.id, event.date + timedelta(days=delta), new_subcategory_id
        )

    def cancel(self) -> None:
        """Abandon the current gesture, e.g. when the window loses focus."""
        self._pending = None
        self.controller.cancel_drag()
