"""Supabase Auth implementation of the identity provider."""

import logging
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from supabase import (
    AsyncClient,
    AuthApiError,
    AuthInvalidCredentialsError,
    AuthRetryableError,
)
from supabase import AuthError as SupabaseAuthError

from dinnerhelp_sync.domain.errors import (
    AccountExistsError,
    AuthError,
    AuthNetworkError,
    AuthProviderError,
    InvalidCredentialsError,
)
from dinnerhelp_sync.domain.identity import Identity
from dinnerhelp_sync.services.auth import (
    IdentityListener,
    IdentityProvider,
    Unsubscribe,
)

_logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_INVALID_CREDENTIAL_CODES = {"invalid_credentials", "invalid_grant", "otp_expired"}
_ACCOUNT_EXISTS_CODES = {"user_already_exists", "email_exists", "phone_exists"}


def identity_from_user(user: Any) -> Identity:
    """Build an Identity from a Supabase user object."""
    metadata: Mapping[str, Any] = getattr(user, "user_metadata", None) or {}
    display_name = (
        metadata.get("display_name") or metadata.get("full_name") or metadata.get("name")
    )
    return Identity(
        id=str(user.id),
        display_name=display_name,
        email=getattr(user, "email", None) or None,
        phone=getattr(user, "phone", None) or None,
        photo_url=metadata.get("avatar_url") or metadata.get("picture"),
    )


def translate_auth_error(exc: Exception) -> AuthError:
    """Map a Supabase Auth or transport failure onto an AuthError kind."""
    if isinstance(exc, AuthRetryableError | httpx.HTTPError):
        return AuthNetworkError(str(exc))
    if isinstance(exc, AuthInvalidCredentialsError):
        return InvalidCredentialsError(str(exc))
    if isinstance(exc, AuthApiError):
        code = getattr(exc, "code", None)
        if code in _INVALID_CREDENTIAL_CODES:
            return InvalidCredentialsError(str(exc))
        if code in _ACCOUNT_EXISTS_CODES:
            return AccountExistsError(str(exc))
    return AuthProviderError(str(exc))


@dataclass
class SupabaseIdentityProvider(IdentityProvider):
    """Identity provider backed by Supabase Auth."""

    client: AsyncClient

    async def sign_in(self, email: str, password: str) -> Identity:
        """Sign in with email and password."""
        response = await self._call(
            self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        )
        return self._identity(response)

    async def sign_up(
        self, email: str, password: str, display_name: str | None = None
    ) -> Identity:
        """Create an account, storing the display name in user metadata."""
        credentials: dict[str, Any] = {"email": email, "password": password}
        if display_name:
            credentials["options"] = {"data": {"display_name": display_name}}
        response = await self._call(self.client.auth.sign_up(credentials))
        return self._identity(response)

    async def sign_in_with_federated_provider(
        self, provider: str, id_token: str
    ) -> Identity:
        """Exchange a federated provider id token for a session."""
        response = await self._call(
            self.client.auth.sign_in_with_id_token(
                {"provider": provider, "token": id_token}
            )
        )
        return self._identity(response)

    async def send_phone_code(self, phone: str) -> None:
        """Send an SMS one-time code."""
        await self._call(self.client.auth.sign_in_with_otp({"phone": phone}))

    async def verify_phone_code(self, phone: str, code: str) -> Identity:
        """Verify an SMS one-time code."""
        response = await self._call(
            self.client.auth.verify_otp({"phone": phone, "token": code, "type": "sms"})
        )
        return self._identity(response)

    async def sign_out(self) -> None:
        """End the Supabase session."""
        await self._call(self.client.auth.sign_out())

    def on_identity_change(self, listener: IdentityListener) -> Unsubscribe:
        """Forward auth state changes as identities."""

        def handle(event: str, session: Any) -> None:
            user = getattr(session, "user", None) if session is not None else None
            _logger.debug("Auth state changed: %s", event)
            listener(identity_from_user(user) if user is not None else None)

        subscription = self.client.auth.on_auth_state_change(handle)
        return subscription.unsubscribe

    @staticmethod
    async def _call(operation: Awaitable[_T]) -> _T:
        try:
            return await operation
        except (SupabaseAuthError, httpx.HTTPError) as exc:
            raise translate_auth_error(exc) from exc

    @staticmethod
    def _identity(response: Any) -> Identity:
        user = getattr(response, "user", None)
        if user is None:
            raise AuthProviderError("Identity provider returned no user")
        return identity_from_user(user)
