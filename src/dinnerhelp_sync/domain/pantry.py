"""Domain models for the pantry inventory."""

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

PANTRY_CATEGORIES = (
    "produce",
    "meat",
    "dairy",
    "grains",
    "canned",
    "frozen",
    "spices",
    "condiments",
    "beverages",
    "snacks",
    "other",
)


@dataclass(frozen=True)
class Ingredient:
    """An item on hand in the pantry."""

    id: str
    name: str
    category: str
    quantity: float
    unit: str
    added_at: str
    expiration_date: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-compatible representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Ingredient":
        """Build an ingredient from a stored or remote payload."""
        category = str(payload.get("category") or "other")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            category=category if category in PANTRY_CATEGORIES else "other",
            quantity=float(payload.get("quantity") or 0),
            unit=str(payload.get("unit") or ""),
            added_at=str(payload.get("added_at") or ""),
            expiration_date=payload.get("expiration_date"),
        )
