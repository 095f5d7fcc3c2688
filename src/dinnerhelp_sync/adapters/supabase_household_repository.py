"""Supabase-backed household repository."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from supabase import AsyncClient, PostgrestAPIError

from dinnerhelp_sync.domain.errors import TransientReadError, TransientWriteError
from dinnerhelp_sync.domain.households import Household
from dinnerhelp_sync.domain.snapshots import parse_timestamp
from dinnerhelp_sync.services.households import HouseholdRepository

_HOUSEHOLD_COLUMNS = "id, name, owner_id, invite_code, member_ids, created_at"
_TRANSPORT_ERRORS = (httpx.HTTPError, PostgrestAPIError)


def _to_household(row: Mapping[str, Any]) -> Household:
    return Household(
        id=row["id"],
        name=row["name"],
        owner_id=row["owner_id"],
        invite_code=row["invite_code"],
        member_ids=tuple(row.get("member_ids") or ()),
        created_at=parse_timestamp(row.get("created_at")),
    )


@dataclass
class SupabaseHouseholdRepository(HouseholdRepository):
    """Supabase implementation for households and household pointers."""

    client: AsyncClient

    async def get_user_household_id(self, user_id: str) -> str | None:
        """Return the household id stored on the user's document."""
        try:
            response = await (
                self.client.table("user_data")
                .select("household_id")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise TransientReadError(f"Loading user {user_id} failed: {exc}") from exc
        if not response.data:
            return None
        return response.data[0].get("household_id") or None

    async def set_user_household_id(
        self, user_id: str, household_id: str | None
    ) -> None:
        """Store the household pointer without touching synced columns."""
        try:
            await (
                self.client.table("user_data")
                .upsert(
                    {"user_id": user_id, "household_id": household_id},
                    on_conflict="user_id",
                )
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise TransientWriteError(f"Updating user {user_id} failed: {exc}") from exc

    async def create_household(self, household: Household) -> Household:
        """Insert a household row and return it."""
        try:
            response = await (
                self.client.table("households")
                .insert(
                    {
                        "id": household.id,
                        "name": household.name,
                        "owner_id": household.owner_id,
                        "invite_code": household.invite_code,
                        "member_ids": list(household.member_ids),
                        "created_at": (
                            household.created_at.isoformat()
                            if household.created_at
                            else None
                        ),
                    }
                )
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise TransientWriteError(f"Creating household failed: {exc}") from exc
        if not response.data:
            raise TransientWriteError("Failed to create household in Supabase")
        return _to_household(response.data[0])

    async def get_household(self, household_id: str) -> Household | None:
        """Return a household by id, if present."""
        return await self._find_one("id", household_id)

    async def find_by_invite_code(self, invite_code: str) -> Household | None:
        """Return the household holding an invite code, if any."""
        return await self._find_one("invite_code", invite_code)

    async def update_members(
        self, household_id: str, member_ids: tuple[str, ...]
    ) -> None:
        """Replace the member list of a household."""
        await self._update(household_id, {"member_ids": list(member_ids)})

    async def update_invite_code(self, household_id: str, invite_code: str) -> None:
        """Replace the invite code of a household."""
        await self._update(household_id, {"invite_code": invite_code})

    async def _find_one(self, column: str, value: str) -> Household | None:
        try:
            response = await (
                self.client.table("households")
                .select(_HOUSEHOLD_COLUMNS)
                .eq(column, value)
                .limit(1)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise TransientReadError(f"Loading household failed: {exc}") from exc
        if not response.data:
            return None
        return _to_household(response.data[0])

    async def _update(self, household_id: str, payload: dict[str, object]) -> None:
        try:
            await (
                self.client.table("households")
                .update(payload)
                .eq("id", household_id)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise TransientWriteError(
                f"Updating household {household_id} failed: {exc}"
            ) from exc
