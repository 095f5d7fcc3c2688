"""Domain models for recipes."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RecipeIngredient:
    """An ingredient line of a recipe."""

    name: str
    quantity: str
    unit: str


@dataclass(frozen=True)
class Recipe:
    """A recipe known locally, discovered or user-created."""

    id: str
    title: str
    cook_time: int
    difficulty: str
    servings: int
    source: str
    ingredients: tuple[RecipeIngredient, ...] = field(default_factory=tuple)
    instructions: tuple[str, ...] = field(default_factory=tuple)
    description: str | None = None
    image: str | None = None
    prep_time: int | None = None
    source_id: str | None = None
    category: str | None = None
    cuisine: str | None = None
    is_favorite: bool = False
    rating: int = 0
    is_custom: bool = False
    created_at: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-compatible representation."""
        return {
            "id": self.id,
            "title": self.title,
            "cook_time": self.cook_time,
            "difficulty": self.difficulty,
            "servings": self.servings,
            "source": self.source,
            "ingredients": [
                {"name": item.name, "quantity": item.quantity, "unit": item.unit}
                for item in self.ingredients
            ],
            "instructions": list(self.instructions),
            "description": self.description,
            "image": self.image,
            "prep_time": self.prep_time,
            "source_id": self.source_id,
            "category": self.category,
            "cuisine": self.cuisine,
            "is_favorite": self.is_favorite,
            "rating": self.rating,
            "is_custom": self.is_custom,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Recipe":
        """Build a recipe from a stored or remote payload."""
        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title", "")),
            cook_time=int(payload.get("cook_time") or 0),
            difficulty=str(payload.get("difficulty") or "easy"),
            servings=int(payload.get("servings") or 1),
            source=str(payload.get("source") or "custom"),
            ingredients=tuple(
                RecipeIngredient(
                    name=str(item.get("name", "")),
                    quantity=str(item.get("quantity", "")),
                    unit=str(item.get("unit", "")),
                )
                for item in payload.get("ingredients") or []
            ),
            instructions=tuple(str(step) for step in payload.get("instructions") or []),
            description=payload.get("description"),
            image=payload.get("image"),
            prep_time=payload.get("prep_time"),
            source_id=payload.get("source_id"),
            category=payload.get("category"),
            cuisine=payload.get("cuisine"),
            is_favorite=bool(payload.get("is_favorite", False)),
            rating=int(payload.get("rating") or 0),
            is_custom=bool(payload.get("is_custom", False)),
            created_at=payload.get("created_at"),
        )
