"""Apply a remote snapshot to the local domain stores."""

import logging
from collections.abc import Callable, Collection, Sequence
from typing import Any

from dinnerhelp_sync.domain.snapshots import SyncField, SyncSnapshot
from dinnerhelp_sync.services.stores import DomainStores

_logger = logging.getLogger(__name__)


def _appliers(stores: DomainStores) -> dict[SyncField, Callable[[Sequence[Any]], None]]:
    return {
        SyncField.PANTRY: stores.pantry.apply_remote,
        SyncField.SHOPPING_ITEMS: stores.shopping.apply_remote_items,
        SyncField.MEAL_PLANS: stores.meal_plans.apply_remote,
        SyncField.FAVORITES: stores.recipes.apply_remote_favorites,
        SyncField.CUSTOM_RECIPES: stores.recipes.merge_remote_recipes,
    }


def merge_snapshot(
    stores: DomainStores,
    snapshot: SyncSnapshot,
    skip: Collection[SyncField] = (),
) -> frozenset[SyncField]:
    """Merge a remote snapshot into the stores and return the merged regions.

    Pantry, meal plans, favourites and the mirrored shopping list are replaced
    wholesale by the remote value. Custom recipes are upserted by id and local
    recipes the remote does not mention are kept. Regions the remote never
    wrote, and regions listed in ``skip``, are left as they are.
    """
    appliers = _appliers(stores)
    merged: set[SyncField] = set()
    for sync_field in SyncField:
        value = snapshot.get(sync_field)
        if value is None:
            continue
        if sync_field in skip:
            _logger.debug("Keeping local %s, a push is pending", sync_field)
            continue
        appliers[sync_field](value)
        merged.add(sync_field)
    return frozenset(merged)
