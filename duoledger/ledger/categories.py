"""
Category Catalog

A small, user-editable list of categories. Records reference categories
by NAME only.

DESIGN DECISION: Removing a category never touches existing records.
They keep the now-orphaned name so history stays exactly as it was
entered. Reports show orphaned names with a fallback icon.
"""

from typing import Iterable, Iterator, Optional

from duoledger.models.records import Category


FALLBACK_CATEGORY = "Other"
FALLBACK_ICON = "🐈"


class DuplicateCategoryError(ValueError):
    """A category with this name already exists."""
    pass


class CategoryCatalog:
    """Ordered list of categories, unique by name."""

    def __init__(
        self,
        categories: Iterable[Category] = (),
        fallback_name: str = FALLBACK_CATEGORY,
        fallback_icon: str = FALLBACK_ICON,
    ):
        self._categories: list[Category] = []
        self._fallback_name = fallback_name
        self._fallback_icon = fallback_icon
        for category in categories:
            self._append(category)

    @classmethod
    def from_settings(cls, settings) -> "CategoryCatalog":
        return cls(
            settings.categories,
            fallback_name=settings.fallback_category,
            fallback_icon=settings.fallback_category_icon,
        )

    def _append(self, category: Category) -> None:
        if category.name in self:
            raise DuplicateCategoryError(
                f"A category named '{category.name}' already exists"
            )
        self._categories.append(category)

    def add(self, name: str, icon: str = "✨") -> Category:
        """
        Add a category at the end of the list.

        Raises:
            DuplicateCategoryError: name is already used
            ValueError: name is empty
        """
        category = Category(name=name, icon=icon)
        self._append(category)
        return category

    def remove(self, name: str) -> bool:
        """Remove a category by name. Returns False if it did not exist."""
        before = len(self._categories)
        self._categories = [c for c in self._categories if c.name != name]
        return len(self._categories) < before

    def get(self, name: str) -> Optional[Category]:
        for category in self._categories:
            if category.name == name:
                return category
        return None

    def default_name(self) -> str:
        """First configured category, or the literal fallback."""
        if self._categories:
            return self._categories[0].name
        return self._fallback_name

    def icon_for(self, name: str) -> str:
        category = self.get(name)
        return category.icon if category else self._fallback_icon

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._categories]

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self._categories)

    def __iter__(self) -> Iterator[Category]:
        return iter(list(self._categories))

    def __len__(self) -> int:
        return len(self._categories)
