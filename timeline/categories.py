"""Timeline categories: defaults, building from project items, lookups."""
import logging
from typing import Iterable, List, Optional, Tuple

from timeline.models import (
    EventItem,
    ProductionCategory,
    ProductionPhase,
    ProductionSubcategory,
)

logger = logging.getLogger(__name__)


PHASE_COLORS = {
    ProductionPhase.DEVELOPMENT: '#CC6633',
    ProductionPhase.PRE_PRODUCTION: '#3399E6',
    ProductionPhase.PRODUCTION: '#E64D4D',
    ProductionPhase.POST_PRODUCTION: '#994DCC',
}

_DEFAULT_SUBCATEGORIES = {
    ProductionPhase.DEVELOPMENT: [
        ('dev-concept', 'Concept Development'),
        ('dev-script', 'Script Writing'),
        ('dev-review', 'Review & Approval'),
    ],
    ProductionPhase.PRE_PRODUCTION: [
        ('pre-script', 'Shooting Script'),
        ('pre-breakdown', 'Script Breakdown'),
        ('pre-budget', 'Budgeting'),
        ('pre-schedule', 'Scheduling'),
        ('pre-casting', 'Casting'),
        ('pre-location', 'Location Scouting'),
    ],
    ProductionPhase.PRODUCTION: [
        ('prod-principal', 'Principal Photography'),
        ('prod-pickups', 'Pick-up Shots'),
        ('prod-broll', 'B-Roll'),
    ],
    ProductionPhase.POST_PRODUCTION: [
        ('post-edit', 'Editing'),
        ('post-color', 'Color Grading'),
        ('post-sound', 'Sound Design'),
        ('post-vfx', 'Visual Effects'),
        ('post-music', 'Music & Scoring'),
        ('post-final', 'Final Mix & Mastering'),
    ],
}


def _category_for_phase(
    phase: ProductionPhase,
    subcategories: List[ProductionSubcategory]
) -> ProductionCategory:
    return ProductionCategory(
        id=phase.category_id,
        name=phase.value.upper(),
        color=PHASE_COLORS[phase],
        subcategories=subcategories,
        is_expanded=True
    )


def default_subcategories(phase: ProductionPhase) -> List[ProductionSubcategory]:
    return [
        ProductionSubcategory(id=sub_id, name=name, category_id=phase.category_id)
        for sub_id, name in _DEFAULT_SUBCATEGORIES[phase]
    ]


def default_categories() -> List[ProductionCategory]:
    """
    Build a fresh copy of the default category list, one per phase.

    Returns:
        List of ProductionCategory objects in display order
    """
    return [
        _category_for_phase(phase, default_subcategories(phase))
        for phase in ProductionPhase
    ]


def build_categories(event_items: Iterable[EventItem]) -> List[ProductionCategory]:
    """
    Build timeline categories from a project's event items.

    Phases without any project items fall back to the default
    subcategories.

    Args:
        event_items: Project EventItem records

    Returns:
        List of ProductionCategory objects, one per phase in phase order
    """
    items = list(event_items)
    categories = []

    for phase in ProductionPhase:
        phase_items = sorted(
            (item for item in items if item.production_phase == phase.category_id),
            key=lambda item: item.sort_order
        )

        if phase_items:
            subcategories = [
                ProductionSubcategory(
                    id=item.id,
                    name=item.name,
                    category_id=phase.category_id
                )
                for item in phase_items
                if item.id and item.name
            ]
        else:
            subcategories = default_subcategories(phase)

        categories.append(_category_for_phase(phase, subcategories))

    logger.debug(
        f"Built {len(categories)} categories from {len(items)} event items"
    )
    return categories


def find_subcategory(
    categories: Iterable[ProductionCategory],
    subcategory_id: str
) -> Optional[Tuple[ProductionCategory, ProductionSubcategory]]:
    for category in categories:
        for subcategory in category.subcategories:
            if subcategory.id == subcategory_id:
                return category, subcategory
    return None


def phase_for_subcategory(
    subcategory: Optional[ProductionSubcategory]
) -> Optional[ProductionPhase]:
    """Phase owning a subcategory, or None if its category is unknown."""
    if subcategory is None:
        return None
    return ProductionPhase.from_category_id(subcategory.category_id)
