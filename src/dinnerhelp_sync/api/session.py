"""Sign-in and sign-out endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request

from dinnerhelp_sync.api.control_models import (
    FederatedLoginRequest,
    IdentityResponse,
    PasswordLoginRequest,
    PhoneCodeRequest,
    PhoneVerifyRequest,
)
from dinnerhelp_sync.api.sync import require_control

if TYPE_CHECKING:
    from dinnerhelp_sync.containers import AppContainer
    from dinnerhelp_sync.domain.identity import Identity

router = APIRouter(
    prefix="/session", tags=["session"], dependencies=[Depends(require_control)]
)


def _identity_response(identity: Identity) -> IdentityResponse:
    return IdentityResponse(
        id=identity.id,
        display_name=identity.display_name,
        email=identity.email,
        phone=identity.phone,
        photo_url=identity.photo_url,
    )


@router.post("/login")
async def login(payload: PasswordLoginRequest, request: Request) -> IdentityResponse:
    """Sign in, or register when requested, with email and password."""
    container: AppContainer = request.app.state.container
    if payload.create_account:
        identity = await container.auth_service.register(
            payload.email, payload.password, payload.display_name
        )
    else:
        identity = await container.auth_service.login(payload.email, payload.password)
    await container.session_controller.drain()
    return _identity_response(identity)


@router.post("/federated")
async def login_federated(
    payload: FederatedLoginRequest, request: Request
) -> IdentityResponse:
    """Sign in with a federated provider token."""
    container: AppContainer = request.app.state.container
    identity = await container.auth_service.login_with_federated_provider(
        payload.provider, payload.id_token
    )
    await container.session_controller.drain()
    return _identity_response(identity)


@router.post("/phone/code")
async def send_phone_code(
    payload: PhoneCodeRequest, request: Request
) -> dict[str, str]:
    """Send a one-time code to a phone number."""
    container: AppContainer = request.app.state.container
    await container.auth_service.send_phone_code(payload.phone)
    return {"status": "code_sent"}


@router.post("/phone/verify")
async def verify_phone_code(
    payload: PhoneVerifyRequest, request: Request
) -> IdentityResponse:
    """Finish a phone sign-in."""
    container: AppContainer = request.app.state.container
    identity = await container.auth_service.verify_phone_code(payload.code)
    await container.session_controller.drain()
    return _identity_response(identity)


@router.post("/logout")
async def logout(request: Request) -> dict[str, str]:
    """Sign out; local data stays on this device."""
    container: AppContainer = request.app.state.container
    await container.auth_service.logout()
    await container.session_controller.drain()
    return {"status": "signed_out"}
