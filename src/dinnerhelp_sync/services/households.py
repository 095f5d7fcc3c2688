"""Household partition resolution and household membership management."""

import logging
import secrets
import string
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol

from dinnerhelp_sync.domain.errors import (
    HouseholdError,
    ResolutionError,
    TransientReadError,
)
from dinnerhelp_sync.domain.households import Household
from dinnerhelp_sync.domain.identity import Identity, PartitionKey

_logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 6
_ID_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 9


class HouseholdRepository(Protocol):
    """Persistence interface for households and user household pointers."""

    async def get_user_household_id(self, user_id: str) -> str | None:
        """Return the household a user belongs to, if any."""

    async def set_user_household_id(self, user_id: str, household_id: str | None) -> None:
        """Point a user at a household, or clear the pointer."""

    async def create_household(self, household: Household) -> Household:
        """Persist a new household and return it."""

    async def get_household(self, household_id: str) -> Household | None:
        """Return a household by id, if present."""

    async def find_by_invite_code(self, invite_code: str) -> Household | None:
        """Return the household holding an invite code, if any."""

    async def update_members(
        self, household_id: str, member_ids: tuple[str, ...]
    ) -> None:
        """Replace a household's member list."""

    async def update_invite_code(self, household_id: str, invite_code: str) -> None:
        """Replace a household's invite code."""


def generate_invite_code() -> str:
    """Return a random invite code without look-alike characters."""
    return "".join(
        secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH)
    )


def generate_household_id(now: datetime | None = None) -> str:
    """Return an id of the form household_<epoch-ms>_<random base36>."""
    moment = now or datetime.now(tz=UTC)
    suffix = "".join(
        secrets.choice(_ID_SUFFIX_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH)
    )
    return f"household_{int(moment.timestamp() * 1000)}_{suffix}"


@dataclass
class HouseholdResolver:
    """Resolves and caches the partition of the signed-in identity."""

    repository: HouseholdRepository
    _cached: PartitionKey | None = field(default=None, init=False)
    _identity_id: str | None = field(default=None, init=False)

    @property
    def cached(self) -> PartitionKey | None:
        """Return the partition resolved for the current session."""
        return self._cached

    async def resolve(self, identity: Identity) -> PartitionKey:
        """Return the identity's partition, looking it up once per session."""
        if self._cached is not None and self._identity_id == identity.id:
            return self._cached
        try:
            household_id = await self.repository.get_user_household_id(identity.id)
        except TransientReadError as exc:
            raise ResolutionError(
                f"Household lookup failed for {identity.id}"
            ) from exc
        partition = (
            PartitionKey.household(household_id)
            if household_id
            else PartitionKey.personal(identity)
        )
        self._remember(identity, partition)
        _logger.info("Resolved partition %s", partition)
        return partition

    def use_personal_fallback(self, identity: Identity) -> PartitionKey:
        """Cache and return the personal partition after a failed lookup."""
        partition = PartitionKey.personal(identity)
        self._remember(identity, partition)
        return partition

    def invalidate(self) -> None:
        """Forget the cached partition."""
        self._cached = None
        self._identity_id = None

    async def refresh(self, identity: Identity) -> PartitionKey:
        """Drop the cache and resolve again."""
        self.invalidate()
        return await self.resolve(identity)

    def _remember(self, identity: Identity, partition: PartitionKey) -> None:
        self._cached = partition
        self._identity_id = identity.id


@dataclass
class HouseholdService:
    """Creates, joins and leaves shared households."""

    repository: HouseholdRepository

    async def create_household(self, user_id: str, name: str) -> Household:
        """Create a household owned by the user and move the user into it."""
        household = Household(
            id=generate_household_id(),
            name=name.strip(),
            owner_id=user_id,
            invite_code=generate_invite_code(),
            member_ids=(user_id,),
            created_at=datetime.now(tz=UTC),
        )
        created = await self.repository.create_household(household)
        await self.repository.set_user_household_id(user_id, created.id)
        return created

    async def join_household(self, user_id: str, invite_code: str) -> Household:
        """Join the household holding the invite code."""
        household = await self.repository.find_by_invite_code(
            invite_code.strip().upper()
        )
        if household is None:
            raise HouseholdError("Invalid invite code")
        if user_id in household.member_ids:
            raise HouseholdError("You are already a member of this household")
        members = (*household.member_ids, user_id)
        await self.repository.update_members(household.id, members)
        await self.repository.set_user_household_id(user_id, household.id)
        return replace(household, member_ids=members)

    async def leave_household(self, user_id: str, household_id: str) -> None:
        """Remove the user from a household; the household stays for others."""
        household = await self._require(household_id)
        await self.repository.update_members(
            household.id,
            tuple(member for member in household.member_ids if member != user_id),
        )
        await self.repository.set_user_household_id(user_id, None)

    async def get_household(self, household_id: str) -> Household | None:
        """Return a household by id."""
        return await self.repository.get_household(household_id)

    async def regenerate_invite_code(self, user_id: str, household_id: str) -> str:
        """Issue a new invite code; only the owner may do this."""
        household = await self._require(household_id)
        if household.owner_id != user_id:
            raise HouseholdError(
                "Only the household owner can regenerate the invite code"
            )
        code = generate_invite_code()
        await self.repository.update_invite_code(household.id, code)
        return code

    async def _require(self, household_id: str) -> Household:
        household = await self.repository.get_household(household_id)
        if household is None:
            raise HouseholdError("Household not found")
        return household
