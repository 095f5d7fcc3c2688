"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import acreate_client

from dinnerhelp_sync.adapters.json_snapshot_storage import JsonSnapshotStorage
from dinnerhelp_sync.adapters.supabase_document_gateway import (
    SupabaseDocumentGateway,
)
from dinnerhelp_sync.adapters.supabase_household_repository import (
    SupabaseHouseholdRepository,
)
from dinnerhelp_sync.adapters.supabase_identity_provider import (
    SupabaseIdentityProvider,
)
from dinnerhelp_sync.config import Settings
from dinnerhelp_sync.services.auth import AuthService, IdentityProvider
from dinnerhelp_sync.services.households import (
    HouseholdRepository,
    HouseholdResolver,
    HouseholdService,
)
from dinnerhelp_sync.services.local_state import SnapshotStorage
from dinnerhelp_sync.services.session_lifecycle import SessionLifecycleController
from dinnerhelp_sync.services.stores import DomainStores
from dinnerhelp_sync.services.sync import RemoteDataGateway, SyncCoordinator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    stores: DomainStores
    auth_service: AuthService
    household_service: HouseholdService
    coordinator: SyncCoordinator
    session_controller: SessionLifecycleController
    close_resources: Callable[[], Awaitable[None]]


def assemble_container(  # noqa: PLR0913
    settings: Settings,
    storage: SnapshotStorage,
    gateway: RemoteDataGateway,
    household_repository: HouseholdRepository,
    identity_provider: IdentityProvider,
    close_resources: Callable[[], Awaitable[None]],
) -> AppContainer:
    """Wire services around the given ports."""
    stores = DomainStores.restore(storage)
    auth_service = AuthService.restore(
        identity_provider, storage, settings.sync_enabled_default
    )
    coordinator = SyncCoordinator(
        stores=stores,
        gateway=gateway,
        resolver=HouseholdResolver(household_repository),
        push_debounce_seconds=settings.push_debounce_seconds,
        on_last_synced=auth_service.record_last_synced,
    )
    session_controller = SessionLifecycleController(
        provider=identity_provider,
        coordinator=coordinator,
        auth=auth_service,
    )
    return AppContainer(
        settings=settings,
        stores=stores,
        auth_service=auth_service,
        household_service=HouseholdService(household_repository),
        coordinator=coordinator,
        session_controller=session_controller,
        close_resources=close_resources,
    )


async def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = await acreate_client(
        resolved_settings.supabase_url, resolved_settings.supabase_anon_key
    )

    async def close_resources() -> None:
        await supabase_client.remove_all_channels()

    return assemble_container(
        settings=resolved_settings,
        storage=JsonSnapshotStorage(Path(resolved_settings.snapshot_dir)),
        gateway=SupabaseDocumentGateway(supabase_client),
        household_repository=SupabaseHouseholdRepository(supabase_client),
        identity_provider=SupabaseIdentityProvider(supabase_client),
        close_resources=close_resources,
    )
