"""Vertical layout of timeline rows for drag re-categorization."""
import logging
from typing import List, Optional, Tuple

from timeline.models import ProductionCategory, ProductionSubcategory, SubcategoryRow

logger = logging.getLogger(__name__)


class SubcategoryLayout:
    """
    Maps a pointer's vertical position to the subcategory row under it.

    Rows are laid out top to bottom after the date header band: every
    category contributes a header row, and expanded categories add one row
    per subcategory. Each row is followed by a divider.
    """

    ROW_HEIGHT = 44.0
    HEADER_HEIGHT = 36.0
    DIVIDER_HEIGHT = 1.0

    def __init__(
        self,
        categories: Optional[List[ProductionCategory]] = None,
        row_height: float = ROW_HEIGHT,
        header_height: float = HEADER_HEIGHT,
        divider_height: float = DIVIDER_HEIGHT
    ):
        self.row_height = row_height
        self.header_height = header_height
        self.divider_height = divider_height
        self.origin_y = 0.0
        self.categories: List[ProductionCategory] = []
        self.rows: List[SubcategoryRow] = []
        self._signature: Tuple = ()
        if categories is not None:
            self.update_categories(categories)

    @staticmethod
    def _signature_of(categories: List[ProductionCategory]) -> Tuple:
        return tuple(
            (category.id, category.is_expanded,
             tuple(sub.id for sub in category.subcategories))
            for category in categories
        )

    def update_categories(self, categories: List[ProductionCategory]) -> bool:
        """
        Adopt a category list, rebuilding rows only if it changed.

        Args:
            categories: Categories in display order

        Returns:
            True if the rows were rebuilt
        """
        self.categories = categories
        signature = self._signature_of(categories)
        if signature == self._signature:
            return False
        self._signature = signature
        self.rebuild()
        return True

    def toggle_category(self, category_id: str) -> bool:
        """Flip a category's expansion; returns the new expanded state."""
        for category in self.categories:
            if category.id == category_id:
                category.is_expanded = not category.is_expanded
                self.update_categories(self.categories)
                return category.is_expanded
        raise KeyError(category_id)

    def rebuild(self) -> List[SubcategoryRow]:
        """
        Recompute every visible row's offset from the layout origin.

        Returns:
            List of SubcategoryRow objects in display order
        """
        rows = []
        current_y = self.header_height + self.divider_height

        for category in self.categories:
            # category header row
            current_y += self.row_height + self.divider_height

            if not category.is_expanded:
                continue

            for subcategory in category.subcategories:
                rows.append(SubcategoryRow(
                    subcategory=subcategory,
                    category_id=category.id,
                    y_offset=current_y,
                    row_height=self.row_height
                ))
                current_y += self.row_height + self.divider_height

        self.rows = rows
        logger.debug(f"Rebuilt subcategory layout: {len(rows)} visible rows")
        return rows

    def set_origin(self, global_y: float) -> None:
        """Record the grid top in global coordinates (after mount or resize)."""
        self.origin_y = global_y

    def row_at(self, global_y: float) -> Optional[SubcategoryRow]:
        relative_y = global_y - self.origin_y
        for row in self.rows:
            if row.contains(relative_y):
                return row
        return None

    def subcategory_at(self, global_y: float) -> Optional[ProductionSubcategory]:
        """
        Find the subcategory row under a pointer.

        Args:
            global_y: Pointer y in global coordinates

        Returns:
            ProductionSubcategory, or None above, below or between rows
        """
        row = self.row_at(global_y)
        return row.subcategory if row else None
