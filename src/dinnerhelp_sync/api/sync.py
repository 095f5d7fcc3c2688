"""Sync control endpoints guarded by the control token."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from dinnerhelp_sync.api.control_models import SyncEnabledRequest, SyncStatusResponse

if TYPE_CHECKING:
    from dinnerhelp_sync.containers import AppContainer

router = APIRouter(prefix="/sync", tags=["sync"])


def _get_control_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.control_token


async def require_control(
    x_control_token: str | None = Header(default=None),
    control_token: str = Depends(_get_control_token),
) -> None:
    """Ensure requests include a valid control token."""
    if not x_control_token or x_control_token != control_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def sync_status(container: AppContainer) -> SyncStatusResponse:
    """Build the status payload shared by the sync endpoints."""
    current = container.coordinator.status()
    user = container.auth_service.user
    return SyncStatusResponse(
        state=current.state.value,
        partition=str(current.partition) if current.partition else None,
        last_synced_at=current.last_synced_at,
        last_error=current.last_error,
        pending=sorted(field.value for field in current.pending),
        sync_enabled=container.auth_service.sync_enabled,
        user_id=user.id if user else None,
    )


@router.get("/status", dependencies=[Depends(require_control)])
async def get_status(request: Request) -> SyncStatusResponse:
    """Return the current sync state."""
    container: AppContainer = request.app.state.container
    return sync_status(container)


@router.post("/push", dependencies=[Depends(require_control)])
async def push_all(request: Request) -> SyncStatusResponse:
    """Write every local region to the cloud now."""
    container: AppContainer = request.app.state.container
    await container.coordinator.flush_pushes()
    await container.coordinator.push_all()
    return sync_status(container)


@router.post("/pull", dependencies=[Depends(require_control)])
async def pull(request: Request) -> SyncStatusResponse:
    """Load the cloud copy and merge it into the local stores."""
    container: AppContainer = request.app.state.container
    await container.coordinator.pull()
    return sync_status(container)


@router.post("/refresh", dependencies=[Depends(require_control)])
async def refresh(request: Request) -> SyncStatusResponse:
    """Resolve the partition again and re-pull."""
    container: AppContainer = request.app.state.container
    container.session_controller.request_refresh()
    await container.session_controller.drain()
    return sync_status(container)


@router.post("/enabled", dependencies=[Depends(require_control)])
async def set_enabled(
    payload: SyncEnabledRequest, request: Request
) -> SyncStatusResponse:
    """Turn cloud sync on or off."""
    container: AppContainer = request.app.state.container
    container.session_controller.set_sync_enabled(payload.enabled)
    await container.session_controller.drain()
    return sync_status(container)
