"""Synchronized aggregate exchanged with the remote document store."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from dinnerhelp_sync.domain.meal_plans import MealPlanEntry
from dinnerhelp_sync.domain.pantry import Ingredient
from dinnerhelp_sync.domain.recipes import Recipe
from dinnerhelp_sync.domain.shopping import ShoppingItem


class SyncField(StrEnum):
    """Regions of the aggregate that are pushed independently."""

    PANTRY = "pantry"
    SHOPPING_ITEMS = "shopping_items"
    MEAL_PLANS = "meal_plans"
    FAVORITES = "favorites"
    CUSTOM_RECIPES = "custom_recipes"


_DECODERS = {
    SyncField.PANTRY: Ingredient.from_dict,
    SyncField.SHOPPING_ITEMS: ShoppingItem.from_dict,
    SyncField.MEAL_PLANS: MealPlanEntry.from_dict,
    SyncField.FAVORITES: str,
    SyncField.CUSTOM_RECIPES: Recipe.from_dict,
}


def encode_field(sync_field: SyncField, value: Sequence[Any]) -> list[object]:
    """Encode one region into JSON-compatible values."""
    if sync_field is SyncField.FAVORITES:
        return [str(item) for item in value]
    return [item.to_dict() for item in value]


def decode_field(sync_field: SyncField, raw: object) -> tuple[Any, ...] | None:
    """Decode one region from a remote payload; None when never written."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValueError(f"Expected a list for {sync_field}, got {type(raw).__name__}")
    decoder = _DECODERS[sync_field]
    return tuple(decoder(item) for item in raw)


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO timestamp as produced by Postgres or isoformat()."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class SnapshotPatch:
    """Partial aggregate for a merge write; None fields are left untouched."""

    pantry: tuple[Ingredient, ...] | None = None
    shopping_items: tuple[ShoppingItem, ...] | None = None
    meal_plans: tuple[MealPlanEntry, ...] | None = None
    favorites: tuple[str, ...] | None = None
    custom_recipes: tuple[Recipe, ...] | None = None

    @classmethod
    def of(cls, sync_field: SyncField, value: Sequence[Any]) -> "SnapshotPatch":
        """Build a patch carrying a single region."""
        return cls(**{sync_field.value: tuple(value)})

    def fields(self) -> frozenset[SyncField]:
        """Return the regions present in this patch."""
        return frozenset(
            sync_field
            for sync_field in SyncField
            if getattr(self, sync_field.value) is not None
        )

    def to_payload(self) -> dict[str, list[object]]:
        """Encode the present regions, keyed by column name."""
        return {
            sync_field.value: encode_field(
                sync_field, getattr(self, sync_field.value)
            )
            for sync_field in self.fields()
        }


@dataclass(frozen=True)
class SyncSnapshot:
    """Full aggregate stored remotely for one partition."""

    pantry: tuple[Ingredient, ...] | None = None
    shopping_items: tuple[ShoppingItem, ...] | None = None
    meal_plans: tuple[MealPlanEntry, ...] | None = None
    favorites: tuple[str, ...] | None = None
    custom_recipes: tuple[Recipe, ...] | None = None
    last_synced_at: datetime | None = None

    def get(self, sync_field: SyncField) -> tuple[Any, ...] | None:
        """Return a region's value, or None if it was never written."""
        return getattr(self, sync_field.value)

    def to_payload(self) -> dict[str, object]:
        """Encode the snapshot, keyed by column name."""
        payload: dict[str, object] = {}
        for sync_field in SyncField:
            value = self.get(sync_field)
            payload[sync_field.value] = (
                encode_field(sync_field, value) if value is not None else None
            )
        payload["last_synced_at"] = (
            self.last_synced_at.isoformat() if self.last_synced_at else None
        )
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SyncSnapshot":
        """Decode a snapshot from a remote row or realtime record."""
        values: dict[str, Any] = {
            sync_field.value: decode_field(sync_field, payload.get(sync_field.value))
            for sync_field in SyncField
        }
        values["last_synced_at"] = parse_timestamp(payload.get("last_synced_at"))
        return cls(**values)

    def with_patch(
        self, patch: SnapshotPatch, last_synced_at: datetime
    ) -> "SyncSnapshot":
        """Return this snapshot with the patch's regions applied."""
        values = {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if item.name != "last_synced_at"
        }
        for sync_field in patch.fields():
            values[sync_field.value] = getattr(patch, sync_field.value)
        return SyncSnapshot(**values, last_synced_at=last_synced_at)
