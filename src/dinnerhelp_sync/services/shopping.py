"""Shopping list store."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import ClassVar
from uuid import uuid4

from dinnerhelp_sync.domain.shopping import (
    FavoriteStore,
    ShoppingItem,
    ShoppingItemDraft,
    ShoppingList,
    item_key,
    sort_items,
)
from dinnerhelp_sync.domain.snapshots import SyncField
from dinnerhelp_sync.services.local_state import PushHook, SnapshotStorage

DEFAULT_LIST_NAME = "Shopping List"


@dataclass
class ShoppingStore:
    """Owns shopping lists, their items and favourite stores.

    The remote aggregate holds a single item list. The list it maps to is the
    active list, or the first list when none is active; mutations of any other
    list stay local.
    """

    storage: SnapshotStorage
    push_hook: PushHook | None = None
    lists: list[ShoppingList] = field(default_factory=list)
    favorite_stores: list[FavoriteStore] = field(default_factory=list)
    active_list_id: str | None = None

    storage_key: ClassVar[str] = "dinnerhelp-shopping"

    @classmethod
    def restore(cls, storage: SnapshotStorage) -> "ShoppingStore":
        """Load lists and favourite stores from the durable slot."""
        payload = storage.load(cls.storage_key) or {}
        raw_lists = payload.get("lists")
        raw_stores = payload.get("favorite_stores")
        active = payload.get("active_list_id")
        return cls(
            storage=storage,
            lists=[
                ShoppingList.from_dict(item)
                for item in (raw_lists if isinstance(raw_lists, list) else [])
            ],
            favorite_stores=[
                FavoriteStore.from_dict(item)
                for item in (raw_stores if isinstance(raw_stores, list) else [])
            ],
            active_list_id=str(active) if active else None,
        )

    def create_list(self, name: str) -> str:
        """Create a list, make it active and return its id."""
        list_id = str(uuid4())
        self.lists = [replace(item, is_active=False) for item in self.lists]
        self.lists.append(
            ShoppingList(
                id=list_id,
                name=name,
                created_at=datetime.now(tz=UTC).isoformat(),
                is_active=True,
            )
        )
        self.active_list_id = list_id
        self._commit(push=False)
        return list_id

    def delete_list(self, list_id: str) -> None:
        """Delete a list; the active selection is cleared if it pointed there."""
        self.lists = [item for item in self.lists if item.id != list_id]
        if self.active_list_id == list_id:
            self.active_list_id = None
        self._commit(push=False)

    def set_active_list(self, list_id: str) -> None:
        """Mark a list as the active one."""
        self.lists = [replace(item, is_active=item.id == list_id) for item in self.lists]
        self.active_list_id = list_id
        self._commit(push=False)

    def get_list(self, list_id: str) -> ShoppingList | None:
        """Return a list by id."""
        return next((item for item in self.lists if item.id == list_id), None)

    def active_list(self) -> ShoppingList | None:
        """Return the active list, if any."""
        if self.active_list_id is None:
            return None
        return self.get_list(self.active_list_id)

    def sync_list(self) -> ShoppingList | None:
        """Return the list mirrored by the remote aggregate."""
        active = self.active_list()
        if active is not None:
            return active
        return self.lists[0] if self.lists else None

    def add_item(self, list_id: str, draft: ShoppingItemDraft) -> ShoppingItem | None:
        """Add an item, aggregating quantities with a matching row."""
        shopping_list = self.get_list(list_id)
        if shopping_list is None:
            return None
        key = item_key(draft.name, draft.unit)
        items = list(shopping_list.items)
        for index, existing in enumerate(items):
            if item_key(existing.name, existing.unit) == key:
                merged = replace(existing, quantity=existing.quantity + draft.quantity)
                items[index] = merged
                self._replace_items(list_id, items)
                return merged

        item = ShoppingItem(
            id=str(uuid4()),
            name=draft.name.strip(),
            category=draft.category,
            quantity=draft.quantity,
            unit=draft.unit,
            estimated_price=draft.estimated_price,
            recipe_id=draft.recipe_id,
        )
        items.append(item)
        self._replace_items(list_id, items)
        return item

    def add_items_from_recipe(
        self, list_id: str, drafts: Iterable[ShoppingItemDraft]
    ) -> None:
        """Add every ingredient line of a recipe to a list."""
        for draft in drafts:
            self.add_item(list_id, draft)

    def update_item(
        self, list_id: str, item_id: str, updates: dict[str, object]
    ) -> ShoppingItem | None:
        """Apply field updates to an item."""
        shopping_list = self.get_list(list_id)
        if shopping_list is None:
            return None
        changes = {key: value for key, value in updates.items() if key != "id"}
        updated: ShoppingItem | None = None
        items = []
        for item in shopping_list.items:
            if item.id == item_id:
                updated = replace(item, **changes)
                items.append(updated)
            else:
                items.append(item)
        if updated is not None:
            self._replace_items(list_id, items)
        return updated

    def remove_item(self, list_id: str, item_id: str) -> None:
        """Remove an item from a list."""
        shopping_list = self.get_list(list_id)
        if shopping_list is None:
            return
        self._replace_items(
            list_id, [item for item in shopping_list.items if item.id != item_id]
        )

    def toggle_item_checked(self, list_id: str, item_id: str) -> None:
        """Flip the checked flag of an item."""
        shopping_list = self.get_list(list_id)
        if shopping_list is None:
            return
        self._replace_items(
            list_id,
            [
                replace(item, checked=not item.checked) if item.id == item_id else item
                for item in shopping_list.items
            ],
        )

    def checked_items(self, list_id: str) -> list[ShoppingItem]:
        """Return the checked items of a list."""
        shopping_list = self.get_list(list_id)
        if shopping_list is None:
            return []
        return [item for item in shopping_list.items if item.checked]

    def clear_checked_items(self, list_id: str) -> None:
        """Drop every checked item from a list."""
        shopping_list = self.get_list(list_id)
        if shopping_list is None:
            return
        self._replace_items(
            list_id, [item for item in shopping_list.items if not item.checked]
        )

    def add_favorite_store(self, name: str, address: str | None = None) -> str:
        """Remember a favourite store and return its id."""
        store = FavoriteStore(id=str(uuid4()), name=name, address=address)
        self.favorite_stores.append(store)
        self._commit(push=False)
        return store.id

    def remove_favorite_store(self, store_id: str) -> None:
        """Forget a favourite store."""
        self.favorite_stores = [
            store for store in self.favorite_stores if store.id != store_id
        ]
        self._commit(push=False)

    def snapshot_items(self) -> tuple[ShoppingItem, ...]:
        """Return the items of the list mirrored remotely."""
        shopping_list = self.sync_list()
        return shopping_list.items if shopping_list is not None else ()

    def apply_remote_items(self, items: Iterable[ShoppingItem]) -> None:
        """Replace the mirrored list's items with a remote copy without pushing."""
        target = self.sync_list()
        if target is None:
            list_id = self.create_list(DEFAULT_LIST_NAME)
        else:
            list_id = target.id
        self._set_items(list_id, items)
        self._commit(push=False)

    def _replace_items(self, list_id: str, items: Iterable[ShoppingItem]) -> None:
        self._set_items(list_id, items)
        sync_list = self.sync_list()
        self._commit(push=sync_list is not None and sync_list.id == list_id)

    def _set_items(self, list_id: str, items: Iterable[ShoppingItem]) -> None:
        sorted_items = sort_items(items)
        self.lists = [
            replace(item, items=sorted_items) if item.id == list_id else item
            for item in self.lists
        ]

    def _commit(self, push: bool) -> None:
        self.storage.save(
            self.storage_key,
            {
                "lists": [item.to_dict() for item in self.lists],
                "favorite_stores": [store.to_dict() for store in self.favorite_stores],
                "active_list_id": self.active_list_id,
            },
        )
        if push and self.push_hook is not None:
            self.push_hook(SyncField.SHOPPING_ITEMS)
