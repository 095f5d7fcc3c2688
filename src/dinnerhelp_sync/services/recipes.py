"""Recipe and favourites store."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import ClassVar

from dinnerhelp_sync.domain.recipes import Recipe
from dinnerhelp_sync.domain.snapshots import SyncField
from dinnerhelp_sync.services.local_state import PushHook, SnapshotStorage

_MAX_RATING = 5


@dataclass
class RecipeStore:
    """Owns known recipes and the ids of favourite recipes.

    Only custom recipes and the favourite ids are part of the synced aggregate;
    recipes discovered from catalogues stay on this device.
    """

    storage: SnapshotStorage
    push_hook: PushHook | None = None
    recipes: list[Recipe] = field(default_factory=list)
    favorites: list[str] = field(default_factory=list)

    storage_key: ClassVar[str] = "dinnerhelp-recipes"

    @classmethod
    def restore(cls, storage: SnapshotStorage) -> "RecipeStore":
        """Load recipes and favourites from the durable slot."""
        payload = storage.load(cls.storage_key) or {}
        raw_recipes = payload.get("recipes")
        raw_favorites = payload.get("favorites")
        return cls(
            storage=storage,
            recipes=[
                Recipe.from_dict(item)
                for item in (raw_recipes if isinstance(raw_recipes, list) else [])
            ],
            favorites=[
                str(item)
                for item in (raw_favorites if isinstance(raw_favorites, list) else [])
            ],
        )

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        """Return a recipe by id."""
        return next((recipe for recipe in self.recipes if recipe.id == recipe_id), None)

    def add_recipe(self, recipe: Recipe) -> None:
        """Add a recipe, or replace the stored one with the same id."""
        existing = self.get_recipe(recipe.id)
        self._upsert(recipe)
        custom = recipe.is_custom or (existing is not None and existing.is_custom)
        self._commit(*([SyncField.CUSTOM_RECIPES] if custom else []))

    def update_recipe(self, recipe_id: str, updates: dict[str, object]) -> Recipe | None:
        """Apply field updates to a recipe."""
        existing = self.get_recipe(recipe_id)
        if existing is None:
            return None
        changes = {key: value for key, value in updates.items() if key != "id"}
        updated = replace(existing, **changes)
        self._upsert(updated)
        custom = existing.is_custom or updated.is_custom
        self._commit(*([SyncField.CUSTOM_RECIPES] if custom else []))
        return updated

    def remove_recipe(self, recipe_id: str) -> None:
        """Remove a recipe and drop it from the favourites."""
        existing = self.get_recipe(recipe_id)
        was_favorite = recipe_id in self.favorites
        self.recipes = [recipe for recipe in self.recipes if recipe.id != recipe_id]
        self.favorites = [fid for fid in self.favorites if fid != recipe_id]
        changed: list[SyncField] = []
        if was_favorite:
            changed.append(SyncField.FAVORITES)
        if existing is not None and existing.is_custom:
            changed.append(SyncField.CUSTOM_RECIPES)
        self._commit(*changed)

    def toggle_favorite(self, recipe_id: str) -> bool:
        """Flip a recipe's favourite status and return the new status."""
        is_favorite = recipe_id not in self.favorites
        if is_favorite:
            self.favorites.append(recipe_id)
        else:
            self.favorites = [fid for fid in self.favorites if fid != recipe_id]
        changed = [SyncField.FAVORITES]
        recipe = self.get_recipe(recipe_id)
        if recipe is not None:
            self._upsert(replace(recipe, is_favorite=is_favorite))
            if recipe.is_custom:
                changed.append(SyncField.CUSTOM_RECIPES)
        self._commit(*changed)
        return is_favorite

    def rate_recipe(self, recipe_id: str, rating: int) -> None:
        """Rate a recipe from 0 to 5."""
        recipe = self.get_recipe(recipe_id)
        if recipe is None:
            return
        self._upsert(replace(recipe, rating=max(0, min(_MAX_RATING, rating))))
        self._commit(*([SyncField.CUSTOM_RECIPES] if recipe.is_custom else []))

    def favorite_recipes(self) -> list[Recipe]:
        """Return the known recipes marked as favourites."""
        return [recipe for recipe in self.recipes if recipe.id in self.favorites]

    def custom_recipes(self) -> list[Recipe]:
        """Return the user-created recipes."""
        return [recipe for recipe in self.recipes if recipe.is_custom]

    def search(self, query: str) -> list[Recipe]:
        """Search recipes by title, category or cuisine."""
        needle = query.casefold()
        return [
            recipe
            for recipe in self.recipes
            if needle in recipe.title.casefold()
            or needle in (recipe.category or "").casefold()
            or needle in (recipe.cuisine or "").casefold()
        ]

    def snapshot_favorites(self) -> tuple[str, ...]:
        """Return the favourite ids for a push."""
        return tuple(self.favorites)

    def snapshot_custom_recipes(self) -> tuple[Recipe, ...]:
        """Return the custom recipes for a push."""
        return tuple(self.custom_recipes())

    def apply_remote_favorites(self, favorites: Iterable[str]) -> None:
        """Replace the favourite ids with a remote copy without pushing."""
        self.favorites = list(dict.fromkeys(favorites))
        favorite_ids = set(self.favorites)
        self.recipes = [
            replace(recipe, is_favorite=recipe.id in favorite_ids)
            if recipe.is_favorite != (recipe.id in favorite_ids)
            else recipe
            for recipe in self.recipes
        ]
        self._commit()

    def merge_remote_recipes(self, recipes: Iterable[Recipe]) -> None:
        """Upsert remote recipes by id, keeping recipes only known locally."""
        favorite_ids = set(self.favorites)
        for recipe in recipes:
            self._upsert(replace(recipe, is_favorite=recipe.id in favorite_ids))
        self._commit()

    def _upsert(self, recipe: Recipe) -> None:
        for index, existing in enumerate(self.recipes):
            if existing.id == recipe.id:
                self.recipes[index] = recipe
                return
        self.recipes.append(recipe)

    def _commit(self, *changed: SyncField) -> None:
        self.storage.save(
            self.storage_key,
            {
                "recipes": [recipe.to_dict() for recipe in self.recipes],
                "favorites": list(self.favorites),
            },
        )
        if self.push_hook is not None:
            for sync_field in changed:
                self.push_hook(sync_field)
