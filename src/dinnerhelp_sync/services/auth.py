"""Authentication session state on top of the identity provider."""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Protocol

from dinnerhelp_sync.domain.errors import ChallengeRequiredError
from dinnerhelp_sync.domain.identity import Identity
from dinnerhelp_sync.domain.snapshots import parse_timestamp
from dinnerhelp_sync.services.local_state import SnapshotStorage

_logger = logging.getLogger(__name__)

IdentityListener = Callable[[Identity | None], None]
Unsubscribe = Callable[[], None]


class IdentityProvider(Protocol):
    """External identity provider; failures are raised as AuthError."""

    async def sign_in(self, email: str, password: str) -> Identity:
        """Sign in with email and password."""

    async def sign_up(
        self, email: str, password: str, display_name: str | None = None
    ) -> Identity:
        """Create an account and sign in."""

    async def sign_in_with_federated_provider(
        self, provider: str, id_token: str
    ) -> Identity:
        """Sign in with a token issued by a federated provider."""

    async def send_phone_code(self, phone: str) -> None:
        """Send a one-time code to a phone number."""

    async def verify_phone_code(self, phone: str, code: str) -> Identity:
        """Complete a phone sign-in with the received code."""

    async def sign_out(self) -> None:
        """End the provider session."""

    def on_identity_change(self, listener: IdentityListener) -> Unsubscribe:
        """Register for identity transitions and return an unsubscribe callable."""


@dataclass
class AuthService:
    """Tracks the signed-in user and the persisted sync preferences.

    Only ``sync_enabled`` and ``last_synced_at`` are written to local storage;
    identity tokens never are.
    """

    provider: IdentityProvider
    storage: SnapshotStorage
    sync_enabled: bool = True
    last_synced_at: datetime | None = None
    user: Identity | None = field(default=None, init=False)
    is_loading: bool = field(default=False, init=False)
    phone_verification_pending: bool = field(default=False, init=False)
    _pending_phone: str | None = field(default=None, init=False)

    storage_key: ClassVar[str] = "dinnerhelp-auth"

    @classmethod
    def restore(
        cls,
        provider: IdentityProvider,
        storage: SnapshotStorage,
        sync_enabled_default: bool = True,
    ) -> "AuthService":
        """Load persisted preferences, falling back to the defaults."""
        payload = storage.load(cls.storage_key) or {}
        enabled = payload.get("sync_enabled", sync_enabled_default)
        return cls(
            provider=provider,
            storage=storage,
            sync_enabled=bool(enabled),
            last_synced_at=parse_timestamp(payload.get("last_synced_at")),
        )

    async def login(self, email: str, password: str) -> Identity:
        """Sign in with email and password."""
        with self._loading():
            self.user = await self.provider.sign_in(email, password)
        return self.user

    async def register(
        self, email: str, password: str, display_name: str | None = None
    ) -> Identity:
        """Create an account and sign in."""
        with self._loading():
            self.user = await self.provider.sign_up(email, password, display_name)
        return self.user

    async def login_with_federated_provider(
        self, provider: str, id_token: str
    ) -> Identity:
        """Sign in with a federated provider token."""
        with self._loading():
            self.user = await self.provider.sign_in_with_federated_provider(
                provider, id_token
            )
        return self.user

    async def send_phone_code(self, phone: str) -> None:
        """Start a phone sign-in."""
        with self._loading():
            await self.provider.send_phone_code(phone)
            self._pending_phone = phone
            self.phone_verification_pending = True

    async def verify_phone_code(self, code: str) -> Identity:
        """Finish a phone sign-in started by send_phone_code."""
        phone = self._pending_phone
        if not self.phone_verification_pending or phone is None:
            raise ChallengeRequiredError("Request a phone code before verifying it")
        with self._loading():
            self.user = await self.provider.verify_phone_code(phone, code)
            self._pending_phone = None
            self.phone_verification_pending = False
        return self.user

    async def logout(self) -> None:
        """Sign out and forget the last-synced marker."""
        with self._loading():
            await self.provider.sign_out()
            self.user = None
            self.record_last_synced(None)

    def observe_identity(self, identity: Identity | None) -> None:
        """Track an identity transition reported by the provider."""
        self.user = identity

    def set_sync_enabled(self, enabled: bool) -> None:
        """Persist whether cloud sync is enabled."""
        self.sync_enabled = enabled
        self._save()

    def record_last_synced(self, value: datetime | None) -> None:
        """Persist the time of the last confirmed cloud agreement."""
        self.last_synced_at = value
        self._save()

    @contextmanager
    def _loading(self) -> Iterator[None]:
        self.is_loading = True
        try:
            yield
        finally:
            self.is_loading = False

    def _save(self) -> None:
        self.storage.save(
            self.storage_key,
            {
                "sync_enabled": self.sync_enabled,
                "last_synced_at": (
                    self.last_synced_at.isoformat() if self.last_synced_at else None
                ),
            },
        )
        _logger.debug("Saved session preferences")
