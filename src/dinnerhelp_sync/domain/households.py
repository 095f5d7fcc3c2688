"""Domain models for shared households."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Household:
    """A group of accounts sharing one data partition."""

    id: str
    name: str
    owner_id: str
    invite_code: str
    member_ids: tuple[str, ...] = field(default_factory=tuple)
    created_at: datetime | None = None
