"""Domain models for meal plans."""

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")


@dataclass(frozen=True)
class MealPlanEntry:
    """A recipe scheduled for a meal slot on a given date."""

    id: str
    date: str
    meal_type: str
    recipe_id: str

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-compatible representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MealPlanEntry":
        """Build a meal plan entry from a stored or remote payload."""
        return cls(
            id=str(payload["id"]),
            date=str(payload.get("date", "")),
            meal_type=str(payload.get("meal_type") or "dinner"),
            recipe_id=str(payload.get("recipe_id", "")),
        )
