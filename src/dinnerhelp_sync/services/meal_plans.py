"""Meal plan store."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import ClassVar
from uuid import uuid4

from dinnerhelp_sync.domain.meal_plans import MealPlanEntry
from dinnerhelp_sync.domain.snapshots import SyncField
from dinnerhelp_sync.services.local_state import PushHook, SnapshotStorage


@dataclass
class MealPlanStore:
    """Owns the planned meals, at most one per date and meal type."""

    storage: SnapshotStorage
    push_hook: PushHook | None = None
    meal_plans: list[MealPlanEntry] = field(default_factory=list)

    storage_key: ClassVar[str] = "dinnerhelp-mealplan"

    @classmethod
    def restore(cls, storage: SnapshotStorage) -> "MealPlanStore":
        """Load meal plans from the durable slot."""
        payload = storage.load(cls.storage_key) or {}
        raw_plans = payload.get("meal_plans")
        plans = raw_plans if isinstance(raw_plans, list) else []
        return cls(
            storage=storage,
            meal_plans=[MealPlanEntry.from_dict(item) for item in plans],
        )

    def add_meal_plan(
        self, plan_date: str, meal_type: str, recipe_id: str
    ) -> MealPlanEntry:
        """Plan a recipe, replacing whatever occupied the same slot."""
        entry = MealPlanEntry(
            id=str(uuid4()),
            date=plan_date,
            meal_type=meal_type,
            recipe_id=recipe_id,
        )
        self.meal_plans = [
            plan
            for plan in self.meal_plans
            if not (plan.date == plan_date and plan.meal_type == meal_type)
        ]
        self.meal_plans.append(entry)
        self._commit(push=True)
        return entry

    def update_meal_plan(
        self, plan_id: str, updates: dict[str, object]
    ) -> MealPlanEntry | None:
        """Apply field updates to a planned meal."""
        changes = {key: value for key, value in updates.items() if key != "id"}
        for index, plan in enumerate(self.meal_plans):
            if plan.id == plan_id:
                updated = replace(plan, **changes)
                self.meal_plans[index] = updated
                self._commit(push=True)
                return updated
        return None

    def remove_meal_plan(self, plan_id: str) -> None:
        """Remove a planned meal."""
        self.meal_plans = [plan for plan in self.meal_plans if plan.id != plan_id]
        self._commit(push=True)

    def meals_for_date(self, plan_date: str) -> list[MealPlanEntry]:
        """Return the meals planned on a date."""
        return [plan for plan in self.meal_plans if plan.date == plan_date]

    def meals_for_week(self, start_date: str) -> list[MealPlanEntry]:
        """Return the meals planned in the seven days from start_date."""
        return [plan for plan in self.meal_plans if _in_week(plan, start_date)]

    def clear_week(self, start_date: str) -> None:
        """Remove the meals planned in the seven days from start_date."""
        self.meal_plans = [
            plan for plan in self.meal_plans if not _in_week(plan, start_date)
        ]
        self._commit(push=True)

    def snapshot(self) -> tuple[MealPlanEntry, ...]:
        """Return the current meal plans for a push."""
        return tuple(self.meal_plans)

    def apply_remote(self, plans: Iterable[MealPlanEntry]) -> None:
        """Replace the meal plans with a remote copy without pushing."""
        self.meal_plans = list(plans)
        self._commit(push=False)

    def _commit(self, push: bool) -> None:
        self.storage.save(
            self.storage_key,
            {"meal_plans": [plan.to_dict() for plan in self.meal_plans]},
        )
        if push and self.push_hook is not None:
            self.push_hook(SyncField.MEAL_PLANS)


def _in_week(plan: MealPlanEntry, start_date: str) -> bool:
    start = date.fromisoformat(start_date[:10])
    try:
        planned = date.fromisoformat(plan.date[:10])
    except ValueError:
        return False
    return start <= planned < start + timedelta(days=7)
