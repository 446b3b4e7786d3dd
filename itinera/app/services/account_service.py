"""Account service - sign-up and login for the local token scheme."""

import logging

from itinera.app.auth.identity import Identity
from itinera.app.auth.passwords import hash_password, verify_password
from itinera.app.auth.verifiers import LocalTokenIssuer
from itinera.app.db.repositories import AccountRecord, AccountRepository
from itinera.app.errors import Unauthenticated
from itinera.app.models.account import AuthResponse, LoginRequest, SignupRequest

logger = logging.getLogger(__name__)

INVALID_LOGIN_MESSAGE = "Invalid email or password"


class AccountService:
    """Creates local accounts and exchanges credentials for access tokens."""

    def __init__(self, accounts: AccountRepository, issuer: LocalTokenIssuer) -> None:
        self._accounts = accounts
        self._issuer = issuer

    async def signup(self, request: SignupRequest) -> AuthResponse:
        """Register an account and log it in.

        Raises:
            InvalidState: E-mail already registered
        """
        record = await self._accounts.create_account(
            request.email,
            hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
        )
        logger.info(f"[AccountService] signup account_id={record.id}")
        return self._issue(record)

    async def login(self, request: LoginRequest) -> AuthResponse:
        """Check credentials and issue a token.

        Raises:
            Unauthenticated: Unknown e-mail or wrong password (same message
                for both)
        """
        record = await self._accounts.get_account_by_email(request.email)
        if record is None or not verify_password(request.password, record.password_hash):
            logger.info("[AccountService] login rejected")
            raise Unauthenticated(INVALID_LOGIN_MESSAGE)

        return self._issue(record)

    def _issue(self, record: AccountRecord) -> AuthResponse:
        token, expires_at = self._issuer.issue(record.id, record.email)
        identity = Identity.from_profile(record.id, record.to_profile())
        return AuthResponse(access_token=token, expires_at=expires_at, user=identity.to_view())
