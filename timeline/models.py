"""Data models for the production calendar timeline."""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class ProductionEventType(Enum):
    """Kind of production event shown on the calendar."""
    SHOOT_DAY = 'Shoot Day'
    PREP_DAY = 'Prep Day'
    REHEARSAL = 'Rehearsal'
    LOCATION_SCOUT = 'Location Scout'
    MEETING = 'Meeting'
    MILESTONE = 'Milestone'
    WRAP_DAY = 'Wrap Day'
    PRE_PRODUCTION = 'Pre-Production'
    POST_PRODUCTION = 'Post-Production'

    @property
    def color(self) -> str:
        """Default bar colour as a hex string."""
        return _EVENT_TYPE_COLORS[self]


_EVENT_TYPE_COLORS = {
    ProductionEventType.SHOOT_DAY: '#FF3B30',
    ProductionEventType.PREP_DAY: '#FF9900',
    ProductionEventType.REHEARSAL: '#BF38DE',
    ProductionEventType.LOCATION_SCOUT: '#007AFF',
    ProductionEventType.MEETING: '#33C7C7',
    ProductionEventType.MILESTONE: '#FFCC00',
    ProductionEventType.WRAP_DAY: '#33C759',
    ProductionEventType.PRE_PRODUCTION: '#5C5CF2',
    ProductionEventType.POST_PRODUCTION: '#FF2E8C',
}


class ProductionPhase(Enum):
    """Production lifecycle stage; buckets events into timeline categories."""
    DEVELOPMENT = 'Development'
    PRE_PRODUCTION = 'Pre-Production'
    PRODUCTION = 'Production'
    POST_PRODUCTION = 'Post-Production'

    @property
    def category_id(self) -> str:
        """Timeline category id for this phase (e.g. 'pre-production')."""
        return self.value.lower()

    @classmethod
    def from_category_id(cls, category_id: str) -> Optional['ProductionPhase']:
        for phase in cls:
            if phase.category_id == category_id:
                return phase
        return None


class DragMode(Enum):
    """What an in-progress gesture is doing to a Gantt bar."""
    NONE = 'none'
    MOVE = 'move'
    RESIZE_START = 'resize_start'
    RESIZE_END = 'resize_end'


def _new_event_id() -> str:
    return str(uuid.uuid4())


@dataclass
class ProductionEvent:
    """One event on the production calendar."""
    title: str
    type: ProductionEventType
    date: datetime
    end_date: Optional[datetime] = None
    phase: ProductionPhase = ProductionPhase.DEVELOPMENT
    subcategory_id: Optional[str] = None
    notes: str = ''
    location: str = ''
    scenes: List[str] = field(default_factory=list)
    crew: List[str] = field(default_factory=list)
    call_time: Optional[datetime] = None
    wrap_time: Optional[datetime] = None
    custom_color: Optional[str] = None
    linked_location_id: Optional[str] = None
    linked_task_ids: List[str] = field(default_factory=list)
    id: str = field(default_factory=_new_event_id)

    @property
    def category_id(self) -> str:
        return self.phase.category_id

    @property
    def duration(self) -> int:
        """Number of calendar days covered, inclusive, never below 1."""
        if self.end_date is None:
            return 1
        return max(1, (self.end_date.date() - self.date.date()).days + 1)

    @property
    def is_multi_day(self) -> bool:
        if self.end_date is None:
            return False
        return (self.end_date.date() - self.date.date()).days > 0

    @property
    def display_color(self) -> str:
        return self.custom_color or self.type.color

    def spans_day(self, day: date) -> bool:
        """
        Check whether the event covers a calendar day.

        Args:
            day: Calendar day to test

        Returns:
            True if the day falls between the start and end days inclusive
        """
        start_day = self.date.date()
        if self.end_date is None:
            return start_day == day
        return start_day <= day <= self.end_date.date()


@dataclass
class ProductionSubcategory:
    """A row within a timeline category."""
    id: str
    name: str
    category_id: str


@dataclass
class ProductionCategory:
    """A collapsible group of subcategory rows on the timeline."""
    id: str
    name: str
    color: str
    subcategories: List[ProductionSubcategory]
    is_expanded: bool = True


@dataclass
class EventItem:
    """Project-defined subcategory record used to build the timeline rows."""
    id: str
    name: str
    production_phase: str
    sort_order: int = 0


@dataclass
class SubcategoryRow:
    """Vertical placement of one visible subcategory row."""
    subcategory: ProductionSubcategory
    category_id: str
    y_offset: float
    row_height: float

    def contains(self, relative_y: float) -> bool:
        return self.y_offset <= relative_y < self.y_offset + self.row_height


@dataclass
class DragSession:
    """State of the one gesture currently manipulating a Gantt bar."""
    active_event_id: Optional[str] = None
    mode: DragMode = DragMode.NONE
    start_x: float = 0.0
    current_offset_x: float = 0.0
    start_y: float = 0.0
    current_y: float = 0.0
    hovered_subcategory_id: Optional[str] = None

    @property
    def current_y_offset(self) -> float:
        return self.current_y - self.start_y


class MutationStatus(Enum):
    """Outcome of an event store operation."""
    APPLIED = 'applied'
    NOT_FOUND = 'not_found'
    UNCHANGED = 'unchanged'
    EMPTY = 'empty'


@dataclass
class MutationResult:
    """Result of an event store operation."""
    status: MutationStatus
    event: Optional[ProductionEvent] = None

    @property
    def applied(self) -> bool:
        return self.status is MutationStatus.APPLIED


class LoadStatus(Enum):
    """Outcome of loading a project's events from storage."""
    LOADED = 'loaded'
    MISSING = 'missing'
    CORRUPT = 'corrupt'


@dataclass
class LoadResult:
    """Result of loading a project's events from storage."""
    status: LoadStatus
    events: List[ProductionEvent]
