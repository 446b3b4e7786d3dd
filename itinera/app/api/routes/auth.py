"""Account endpoints - local sign-up/login and the current identity."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from itinera.app.api.auth import get_current_identity
from itinera.app.api.deps import get_account_service
from itinera.app.auth.identity import Identity
from itinera.app.models.account import AuthResponse, IdentityView, LoginRequest, SignupRequest
from itinera.app.services.account_service import AccountService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> AuthResponse:
    """Create a local account and return an access token.

    Returns:
        409 if the e-mail is already registered
    """
    return await accounts.signup(request)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    accounts: Annotated[AccountService, Depends(get_account_service)],
) -> AuthResponse:
    """Exchange e-mail and password for an access token."""
    return await accounts.login(request)


@router.get("/me", response_model=IdentityView)
async def me(identity: Annotated[Identity, Depends(get_current_identity)]) -> IdentityView:
    """Identity resolved for the bearer token."""
    return identity.to_view()
