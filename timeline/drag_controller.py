"""Drag and resize gesture tracking for Gantt bars."""
import logging
import math
from typing import Optional, Tuple

from timeline.models import DragMode, DragSession

logger = logging.getLogger(__name__)


class DragSessionActiveError(RuntimeError):
    """Raised when a drag begins while another event's drag is still open."""


def days_delta(pixel_offset: float, day_width: float) -> int:
    """
    Convert a horizontal pixel offset to whole days.

    Rounds half away from zero, so a 30px drag on a 60px day moves one day
    in either direction.

    Args:
        pixel_offset: Horizontal offset in pixels
        day_width: Width of one day column in pixels

    Returns:
        Number of days, possibly zero
    """
    days = abs(pixel_offset) / day_width
    rounded = int(math.floor(days + 0.5))
    return rounded if pixel_offset >= 0 else -rounded


def clamp_resize_start_offset(
    raw_offset: float,
    bar_width: float,
    day_width: float,
    offset_days: int
) -> float:
    """
    Limit a left-handle offset.

    The bar may not shrink below one day and may not extend before the
    start of the timeline.

    Args:
        raw_offset: Pointer offset from the gesture start
        bar_width: Current bar width in pixels
        day_width: Width of one day column in pixels
        offset_days: Days between the timeline start and the event start

    Returns:
        Constrained offset in pixels
    """
    max_offset = bar_width - day_width
    min_offset = -offset_days * day_width
    return min(max_offset, max(min_offset, raw_offset))


def clamp_resize_end_offset(raw_offset: float, bar_width: float, day_width: float) -> float:
    """Limit a right-handle offset so the bar never shrinks below one day."""
    return max(-(bar_width - day_width), raw_offset)


class DragController:
    """
    Owner of the single in-progress drag session for one timeline.

    Views read offsets through the query methods while the gesture is
    active; ``refresh_trigger`` flips on every change so a view layer can
    batch its redraws instead of observing each pixel.
    """

    def __init__(self):
        self.session = DragSession()
        self.refresh_trigger = False

    @property
    def is_active(self) -> bool:
        return self.session.active_event_id is not None

    def begin_drag(
        self,
        event_id: str,
        mode: DragMode,
        start_x: float,
        start_y: float = 0.0,
        replace: bool = False
    ) -> DragSession:
        """
        Open a session for an event.

        Re-beginning for the same event (for example switching from a move
        to a resize) overwrites the session.

        Args:
            event_id: Id of the event under the pointer
            mode: Gesture kind
            start_x: Pointer x where the gesture started
            start_y: Pointer y where the gesture started
            replace: Discard another event's open session instead of raising

        Returns:
            The new session

        Raises:
            DragSessionActiveError: If another event's session is open and
                replace is False
        """
        active_id = self.session.active_event_id
        if active_id is not None and active_id != event_id:
            if not replace:
                raise DragSessionActiveError(
                    f"Drag already active for event {active_id}"
                )
            logger.warning(f"Replacing unfinished drag session for event {active_id}")

        self.session = DragSession(
            active_event_id=event_id,
            mode=mode,
            start_x=start_x,
            current_offset_x=0.0,
            start_y=start_y,
            current_y=start_y
        )
        logger.debug(f"Drag started: event={event_id} mode={mode.value} x={start_x} y={start_y}")
        return self.session

    def update_drag(self, current_x: float, current_y: float = 0.0) -> None:
        self.session.current_offset_x = current_x - self.session.start_x
        self.session.current_y = current_y
        self.refresh_trigger = not self.refresh_trigger

    def update_hovered_subcategory(self, subcategory_id: Optional[str]) -> None:
        self.session.hovered_subcategory_id = subcategory_id

    def end_drag(self) -> Tuple[float, float]:
        """
        Close the session.

        Returns:
            Final (x_offset, y_offset) in pixels
        """
        x_offset = self.session.current_offset_x
        y_offset = self.session.current_y_offset
        logger.debug(
            f"Drag ended: event={self.session.active_event_id} "
            f"offset=({x_offset}, {y_offset})"
        )
        self.session = DragSession()
        self.refresh_trigger = not self.refresh_trigger
        return x_offset, y_offset

    def cancel_drag(self) -> None:
        """Discard the session without producing offsets."""
        if self.is_active:
            logger.info(f"Drag cancelled for event {self.session.active_event_id}")
        self.session = DragSession()
        self.refresh_trigger = not self.refresh_trigger

    def _is_active_for(self, event_id: str, mode: DragMode) -> bool:
        return self.session.active_event_id == event_id and self.session.mode is mode

    def is_dragging(self, event_id: str) -> bool:
        return self._is_active_for(event_id, DragMode.MOVE)

    def is_resizing_start(self, event_id: str) -> bool:
        return self._is_active_for(event_id, DragMode.RESIZE_START)

    def is_resizing_end(self, event_id: str) -> bool:
        return self._is_active_for(event_id, DragMode.RESIZE_END)

    def offset(self, event_id: str, mode: DragMode) -> float:
        """Horizontal offset for an event and mode, 0 when not the active gesture."""
        if not self._is_active_for(event_id, mode):
            return 0.0
        return self.session.current_offset_x
