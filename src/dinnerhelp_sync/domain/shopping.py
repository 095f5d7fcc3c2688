"""Domain models for shopping lists."""

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

CATEGORY_ORDER: dict[str, int] = {
    "produce": 1,
    "bakery": 2,
    "dairy": 3,
    "meat": 4,
    "frozen": 5,
    "pantry": 6,
    "beverages": 7,
    "household": 8,
    "other": 9,
}


def category_rank(category: str) -> int:
    """Return the aisle order for a category; unknown ones sort with other."""
    return CATEGORY_ORDER.get(category, CATEGORY_ORDER["other"])


def item_key(name: str, unit: str) -> tuple[str, str]:
    """Return the aggregation key for an item name and unit."""
    return name.strip().casefold(), unit.strip().casefold()


@dataclass(frozen=True)
class ShoppingItem:
    """A row on a shopping list."""

    id: str
    name: str
    category: str
    quantity: float
    unit: str
    checked: bool = False
    estimated_price: float | None = None
    recipe_id: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-compatible representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ShoppingItem":
        """Build a shopping item from a stored or remote payload."""
        price = payload.get("estimated_price")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            category=str(payload.get("category") or "other"),
            quantity=float(payload.get("quantity") or 0),
            unit=str(payload.get("unit") or ""),
            checked=bool(payload.get("checked", False)),
            estimated_price=float(price) if price is not None else None,
            recipe_id=payload.get("recipe_id"),
        )


def sort_items(items: Iterable[ShoppingItem]) -> tuple[ShoppingItem, ...]:
    """Sort items by aisle order, keeping insertion order within a category."""
    return tuple(sorted(items, key=lambda item: category_rank(item.category)))


@dataclass(frozen=True)
class ShoppingList:
    """A named shopping list."""

    id: str
    name: str
    created_at: str
    is_active: bool = False
    items: tuple[ShoppingItem, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-compatible representation."""
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at,
            "is_active": self.is_active,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ShoppingList":
        """Build a shopping list from a stored payload."""
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            created_at=str(payload.get("created_at") or ""),
            is_active=bool(payload.get("is_active", False)),
            items=tuple(
                ShoppingItem.from_dict(item) for item in payload.get("items") or []
            ),
        )


@dataclass(frozen=True)
class FavoriteStore:
    """A store the household likes to shop at."""

    id: str
    name: str
    address: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-compatible representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FavoriteStore":
        """Build a favourite store from a stored payload."""
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            address=payload.get("address"),
        )


@dataclass(frozen=True)
class ShoppingItemDraft:
    """Content of an item about to be added to a list."""

    name: str
    quantity: float
    unit: str
    category: str = "other"
    estimated_price: float | None = None
    recipe_id: str | None = None
