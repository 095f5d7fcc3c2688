"""Aggregate reader over the four domain stores."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from dinnerhelp_sync.domain.snapshots import SnapshotPatch, SyncField
from dinnerhelp_sync.services.local_state import PushHook, SnapshotStorage
from dinnerhelp_sync.services.meal_plans import MealPlanStore
from dinnerhelp_sync.services.pantry import PantryStore
from dinnerhelp_sync.services.recipes import RecipeStore
from dinnerhelp_sync.services.shopping import ShoppingStore


@dataclass
class DomainStores:
    """Holds the stores the sync coordinator reads from and merges into."""

    pantry: PantryStore
    shopping: ShoppingStore
    meal_plans: MealPlanStore
    recipes: RecipeStore

    @classmethod
    def restore(cls, storage: SnapshotStorage) -> "DomainStores":
        """Restore every store from the same durable storage."""
        return cls(
            pantry=PantryStore.restore(storage),
            shopping=ShoppingStore.restore(storage),
            meal_plans=MealPlanStore.restore(storage),
            recipes=RecipeStore.restore(storage),
        )

    def attach_push_hook(self, hook: PushHook | None) -> None:
        """Route every store's mutations to a single push hook."""
        self.pantry.push_hook = hook
        self.shopping.push_hook = hook
        self.meal_plans.push_hook = hook
        self.recipes.push_hook = hook

    def read_field(self, sync_field: SyncField) -> Sequence[Any]:
        """Return the current local value of one synced region."""
        readers = {
            SyncField.PANTRY: self.pantry.snapshot,
            SyncField.SHOPPING_ITEMS: self.shopping.snapshot_items,
            SyncField.MEAL_PLANS: self.meal_plans.snapshot,
            SyncField.FAVORITES: self.recipes.snapshot_favorites,
            SyncField.CUSTOM_RECIPES: self.recipes.snapshot_custom_recipes,
        }
        return readers[sync_field]()

    def read_patch(self, sync_field: SyncField) -> SnapshotPatch:
        """Return a patch carrying one region's current value."""
        return SnapshotPatch.of(sync_field, self.read_field(sync_field))

    def aggregate(self) -> SnapshotPatch:
        """Return a patch carrying every region's current value."""
        return SnapshotPatch(
            pantry=self.pantry.snapshot(),
            shopping_items=self.shopping.snapshot_items(),
            meal_plans=self.meal_plans.snapshot(),
            favorites=self.recipes.snapshot_favorites(),
            custom_recipes=self.recipes.snapshot_custom_recipes(),
        )
