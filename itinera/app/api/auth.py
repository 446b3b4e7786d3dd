"""Auth dependencies - build the session context and run it through the auth gate."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from itinera.app.adapters.clerk import ClerkProfileStore
from itinera.app.api.deps import get_account_repository, get_rate_limiter
from itinera.app.auth.gate import AuthGate
from itinera.app.auth.identity import Identity
from itinera.app.auth.session import SessionContext
from itinera.app.auth.verifiers import ClerkVerifier, LocalJwtVerifier, ProfileStore, Verifier
from itinera.app.config import Settings, get_settings
from itinera.app.db.repositories import AccountRepository, RateLimiter
from itinera.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map


def get_auth_gate(
    settings: Annotated[Settings, Depends(get_settings)],
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
) -> AuthGate:
    """Auth gate for the configured identity provider.

    ``local`` verifies tokens issued by /auth/login and reads profiles from
    the account table; ``clerk`` verifies the provider's session tokens and
    fetches profiles from its users API.
    """
    verifier: Verifier
    profiles: ProfileStore

    if settings.identity_provider == "clerk":
        verifier = ClerkVerifier(
            settings.clerk_jwt_key, authorized_parties=settings.clerk_authorized_parties
        )
        profiles = ClerkProfileStore(settings.clerk_secret_key, base_url=settings.clerk_api_url)
    else:
        verifier = LocalJwtVerifier(
            settings.jwt_secret, algorithm=settings.jwt_algorithm, issuer=settings.jwt_issuer
        )
        profiles = accounts

    return AuthGate(verifier, profiles, timeout_seconds=settings.verifier_timeout_ms / 1000)


async def get_session_context(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> SessionContext:
    """Create the request's session context from the Authorization header.

    The context is also stored on ``request.state.session``.
    """
    session = SessionContext.from_header(authorization)
    request.state.session = session
    return session


async def get_current_identity(
    session: Annotated[SessionContext, Depends(get_session_context)],
    gate: Annotated[AuthGate, Depends(get_auth_gate)],
) -> Identity:
    """Resolve the caller's identity.

    Raises:
        Unauthenticated: Mapped to 401 with ``WWW-Authenticate: Bearer``
    """
    return await gate.resolve_identity(session)


async def enforce_rate_limit(
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Count a mutating request against the caller's quota.

    Raises:
        HTTPException: 429 with Retry-After when over quota
    """
    middleware = RateLimitMiddleware(limiter, create_default_bucket_map())
    allowed, retry_after = middleware.check_rate_limit(
        request.method, request.url.path, identity.id
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after)},
        )
