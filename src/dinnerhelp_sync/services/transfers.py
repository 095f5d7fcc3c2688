"""Operations that span more than one domain store."""

from dinnerhelp_sync.domain.pantry import Ingredient
from dinnerhelp_sync.services.pantry import PantryStore
from dinnerhelp_sync.services.shopping import ShoppingStore

_PANTRY_CATEGORY_BY_AISLE = {
    "produce": "produce",
    "bakery": "grains",
    "dairy": "dairy",
    "meat": "meat",
    "frozen": "frozen",
    "beverages": "beverages",
}


def pantry_category(shopping_category: str) -> str:
    """Map a shopping aisle category onto a pantry category."""
    return _PANTRY_CATEGORY_BY_AISLE.get(shopping_category, "other")


def move_checked_to_pantry(
    shopping: ShoppingStore, pantry: PantryStore, list_id: str
) -> list[Ingredient]:
    """Add a list's checked items to the pantry, then drop them from the list.

    Each store commits and notifies its own push hook, so the pantry and the
    shopping items are pushed as two independent regions.
    """
    checked = shopping.checked_items(list_id)
    if not checked:
        return []
    added = [
        pantry.add_ingredient(
            item.name,
            category=pantry_category(item.category),
            quantity=item.quantity,
            unit=item.unit,
        )
        for item in checked
    ]
    shopping.clear_checked_items(list_id)
    return added
