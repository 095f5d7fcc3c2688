"""Domain models for identities and data partitions."""

from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True)
class Identity:
    """Authenticated account as reported by the identity provider."""

    id: str
    display_name: str | None = None
    email: str | None = None
    phone: str | None = None
    photo_url: str | None = None


class PartitionKind(StrEnum):
    """Scope of the remote document a session reads and writes."""

    PERSONAL = "personal"
    HOUSEHOLD = "household"


@dataclass(frozen=True)
class PartitionKey:
    """Selects the remote document for the signed-in session."""

    kind: PartitionKind
    id: str

    @classmethod
    def personal(cls, identity: Identity) -> "PartitionKey":
        """Return the personal partition for an identity."""
        return cls(kind=PartitionKind.PERSONAL, id=identity.id)

    @classmethod
    def household(cls, household_id: str) -> "PartitionKey":
        """Return the shared partition for a household."""
        return cls(kind=PartitionKind.HOUSEHOLD, id=household_id)

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"
