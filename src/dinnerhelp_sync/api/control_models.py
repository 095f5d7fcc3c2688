"""Request and response models for the local control API."""

from datetime import datetime

from pydantic import BaseModel, Field


class PasswordLoginRequest(BaseModel):
    """Email and password sign-in or registration."""

    email: str
    password: str = Field(min_length=1)
    create_account: bool = False
    display_name: str | None = None


class FederatedLoginRequest(BaseModel):
    """Sign-in with a federated provider id token."""

    provider: str
    id_token: str


class PhoneCodeRequest(BaseModel):
    """Phone number to send a one-time code to."""

    phone: str


class PhoneVerifyRequest(BaseModel):
    """One-time code received by SMS."""

    code: str


class SyncEnabledRequest(BaseModel):
    """Cloud sync preference."""

    enabled: bool


class CreateHouseholdRequest(BaseModel):
    """New household payload."""

    name: str = Field(min_length=1)


class JoinHouseholdRequest(BaseModel):
    """Invite code of the household to join."""

    invite_code: str = Field(min_length=1)


class IdentityResponse(BaseModel):
    """Signed-in identity."""

    id: str
    display_name: str | None = None
    email: str | None = None
    phone: str | None = None
    photo_url: str | None = None


class SyncStatusResponse(BaseModel):
    """Sync session status."""

    state: str
    partition: str | None = None
    last_synced_at: datetime | None = None
    last_error: str | None = None
    pending: list[str] = Field(default_factory=list)
    sync_enabled: bool
    user_id: str | None = None


class HouseholdResponse(BaseModel):
    """Household details."""

    id: str
    name: str
    owner_id: str
    invite_code: str
    member_ids: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
