"""Pantry inventory store."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import ClassVar
from uuid import uuid4

from dinnerhelp_sync.domain.pantry import Ingredient
from dinnerhelp_sync.domain.snapshots import SyncField
from dinnerhelp_sync.services.local_state import PushHook, SnapshotStorage


@dataclass
class PantryStore:
    """Owns the local list of ingredients on hand."""

    storage: SnapshotStorage
    push_hook: PushHook | None = None
    ingredients: list[Ingredient] = field(default_factory=list)

    storage_key: ClassVar[str] = "dinnerhelp-pantry"

    @classmethod
    def restore(cls, storage: SnapshotStorage) -> "PantryStore":
        """Load the pantry from its durable slot."""
        payload = storage.load(cls.storage_key) or {}
        raw_items = payload.get("ingredients")
        items = raw_items if isinstance(raw_items, list) else []
        return cls(
            storage=storage,
            ingredients=[Ingredient.from_dict(item) for item in items],
        )

    def add_ingredient(
        self,
        name: str,
        category: str = "other",
        quantity: float = 1,
        unit: str = "pcs",
        expiration_date: str | None = None,
    ) -> Ingredient:
        """Add an ingredient and return it."""
        ingredient = Ingredient(
            id=str(uuid4()),
            name=name.strip(),
            category=category,
            quantity=quantity,
            unit=unit,
            added_at=datetime.now(tz=UTC).isoformat(),
            expiration_date=expiration_date,
        )
        self.ingredients.append(ingredient)
        self._commit(push=True)
        return ingredient

    def update_ingredient(
        self, ingredient_id: str, updates: dict[str, object]
    ) -> Ingredient | None:
        """Apply field updates to an ingredient."""
        changes = {key: value for key, value in updates.items() if key != "id"}
        for index, ingredient in enumerate(self.ingredients):
            if ingredient.id == ingredient_id:
                updated = replace(ingredient, **changes)
                self.ingredients[index] = updated
                self._commit(push=True)
                return updated
        return None

    def remove_ingredient(self, ingredient_id: str) -> None:
        """Remove an ingredient by id."""
        self.ingredients = [
            ingredient
            for ingredient in self.ingredients
            if ingredient.id != ingredient_id
        ]
        self._commit(push=True)

    def clear(self) -> None:
        """Remove every ingredient."""
        self.ingredients = []
        self._commit(push=True)

    def by_category(self, category: str) -> list[Ingredient]:
        """Return ingredients in a category."""
        return [item for item in self.ingredients if item.category == category]

    def search(self, query: str) -> list[Ingredient]:
        """Return ingredients whose name contains the query."""
        needle = query.casefold()
        return [item for item in self.ingredients if needle in item.name.casefold()]

    def snapshot(self) -> tuple[Ingredient, ...]:
        """Return the current ingredients for a push."""
        return tuple(self.ingredients)

    def apply_remote(self, ingredients: Iterable[Ingredient]) -> None:
        """Replace the pantry with a remote copy without pushing it back."""
        self.ingredients = list(ingredients)
        self._commit(push=False)

    def _commit(self, push: bool) -> None:
        self.storage.save(
            self.storage_key,
            {"ingredients": [item.to_dict() for item in self.ingredients]},
        )
        if push and self.push_hook is not None:
            self.push_hook(SyncField.PANTRY)
