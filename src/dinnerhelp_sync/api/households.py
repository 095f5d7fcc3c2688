"""Household membership endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status

from dinnerhelp_sync.api.control_models import (
    CreateHouseholdRequest,
    HouseholdResponse,
    JoinHouseholdRequest,
)
from dinnerhelp_sync.api.sync import require_control

if TYPE_CHECKING:
    from dinnerhelp_sync.containers import AppContainer
    from dinnerhelp_sync.domain.households import Household

router = APIRouter(
    prefix="/households", tags=["households"], dependencies=[Depends(require_control)]
)


def _current_user_id(container: AppContainer) -> str:
    user = container.auth_service.user
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user.id


def _household_response(household: Household) -> HouseholdResponse:
    return HouseholdResponse(
        id=household.id,
        name=household.name,
        owner_id=household.owner_id,
        invite_code=household.invite_code,
        member_ids=list(household.member_ids),
        created_at=household.created_at,
    )


async def _resync(container: AppContainer) -> None:
    container.session_controller.request_refresh()
    await container.session_controller.drain()


@router.post("")
async def create_household(
    payload: CreateHouseholdRequest, request: Request
) -> HouseholdResponse:
    """Create a household and move the signed-in user into it."""
    container: AppContainer = request.app.state.container
    household = await container.household_service.create_household(
        _current_user_id(container), payload.name
    )
    await _resync(container)
    return _household_response(household)


@router.post("/join")
async def join_household(
    payload: JoinHouseholdRequest, request: Request
) -> HouseholdResponse:
    """Join a household by invite code."""
    container: AppContainer = request.app.state.container
    household = await container.household_service.join_household(
        _current_user_id(container), payload.invite_code
    )
    await _resync(container)
    return _household_response(household)


@router.get("/{household_id}")
async def get_household(household_id: str, request: Request) -> HouseholdResponse:
    """Return a household."""
    container: AppContainer = request.app.state.container
    household = await container.household_service.get_household(household_id)
    if household is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return _household_response(household)


@router.post("/{household_id}/leave")
async def leave_household(household_id: str, request: Request) -> dict[str, str]:
    """Leave a household and go back to the personal partition."""
    container: AppContainer = request.app.state.container
    await container.household_service.leave_household(
        _current_user_id(container), household_id
    )
    await _resync(container)
    return {"status": "left"}


@router.post("/{household_id}/invite-code")
async def regenerate_invite_code(
    household_id: str, request: Request
) -> dict[str, str]:
    """Issue a new invite code; owners only."""
    container: AppContainer = request.app.state.container
    code = await container.household_service.regenerate_invite_code(
        _current_user_id(container), household_id
    )
    return {"invite_code": code}
