"""Error types raised across the sync engine."""


class AuthError(Exception):
    """Raised when the identity provider rejects or cannot complete an action."""

    kind = "provider_failure"


class InvalidCredentialsError(AuthError):
    """Raised when the supplied credentials are rejected."""

    kind = "invalid_credentials"


class AccountExistsError(AuthError):
    """Raised when registering an account that already exists."""

    kind = "account_exists"


class AuthNetworkError(AuthError):
    """Raised when the identity provider is unreachable."""

    kind = "network_error"


class ChallengeRequiredError(AuthError):
    """Raised when a phone-code challenge must be completed first."""

    kind = "challenge_required"


class AuthProviderError(AuthError):
    """Raised for any other identity provider failure."""


class ResolutionError(Exception):
    """Raised when the household lookup for an identity cannot complete."""


class TransientReadError(Exception):
    """Raised when a remote snapshot read fails in transport."""


class TransientWriteError(Exception):
    """Raised when a remote snapshot write fails in transport."""


class HouseholdError(Exception):
    """Raised when a household management rule is violated."""
