"""Credential verifiers and profile stores behind the auth gate.

The gate only knows the two protocols below. One Verifier implementation
exists per token scheme:

- LocalJwtVerifier: HS256 tokens issued by this service (LocalTokenIssuer)
- ClerkVerifier: RS256 session tokens issued by the hosted identity provider
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from jose import ExpiredSignatureError, jwt
from jose.exceptions import JOSEError

from itinera.app.auth.identity import Profile

logger = logging.getLogger(__name__)

CLERK_ALGORITHM = "RS256"


class VerificationError(Exception):
    """Credential is malformed, expired, revoked or otherwise not trusted."""


class ProfileNotFound(Exception):
    """No profile exists for the verified subject."""


class ProfileUnavailable(Exception):
    """The profile store answered with a payload that is not a usable profile."""


@dataclass(frozen=True)
class VerifiedToken:
    """Result of a successful verification."""

    subject_id: str
    claims: dict[str, Any] = field(default_factory=dict)


class Verifier(Protocol):
    """Verifies a bearer credential."""

    async def verify(self, token: str) -> VerifiedToken:
        """Verify a token.

        Args:
            token: Raw bearer credential

        Returns:
            Verified subject and claims

        Raises:
            VerificationError: If the token is not trusted
        """
        ...


class ProfileStore(Protocol):
    """Looks up the profile of a verified subject."""

    async def get_profile(self, subject_id: str) -> Profile:
        """Get the profile for a subject.

        Args:
            subject_id: Verified subject identifier

        Returns:
            Subject profile

        Raises:
            ProfileNotFound: If the subject has no profile
        """
        ...


def _subject_from(claims: dict[str, Any]) -> VerifiedToken:
    subject = claims.get("sub")
    if not subject:
        raise VerificationError("Token has no subject")
    return VerifiedToken(subject_id=str(subject), claims=claims)


class LocalTokenIssuer:
    """Issues HS256 access tokens for local accounts."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = "itinera",
        expiration: timedelta = timedelta(hours=24),
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._expiration = expiration

    def issue(
        self, subject_id: str, email: str, now: datetime | None = None
    ) -> tuple[str, datetime]:
        """Issue a token for a subject.

        Returns:
            Tuple of (encoded token, expiry timestamp)
        """
        now = now or datetime.now(timezone.utc)
        expires_at = now + self._expiration
        claims = {
            "sub": subject_id,
            "email": email,
            "iss": self._issuer,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm), expires_at


class LocalJwtVerifier:
    """Verifies tokens issued by LocalTokenIssuer."""

    def __init__(self, secret: str, algorithm: str = "HS256", issuer: str = "itinera") -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer

    async def verify(self, token: str) -> VerifiedToken:
        """Check signature, expiry and issuer of a local token."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                issuer=self._issuer,
            )
        except ExpiredSignatureError as e:
            raise VerificationError("Token expired") from e
        except JOSEError as e:
            raise VerificationError(f"Invalid token: {e}") from e

        return _subject_from(claims)


class ClerkVerifier:
    """Verifies hosted identity provider session tokens offline.

    Uses the provider's PEM public key; no network call is made.
    """

    def __init__(
        self,
        public_key_pem: str,
        authorized_parties: Sequence[str] = (),
        leeway_seconds: int = 5,
    ) -> None:
        self._public_key = public_key_pem
        self._authorized_parties = frozenset(authorized_parties)
        self._leeway_seconds = leeway_seconds

    async def verify(self, token: str) -> VerifiedToken:
        """Check signature, expiry and authorized party of a session token."""
        if not self._public_key:
            raise VerificationError("Identity provider public key is not configured")

        try:
            claims = jwt.decode(
                token,
                self._public_key,
                algorithms=[CLERK_ALGORITHM],
                options={"verify_aud": False, "leeway": self._leeway_seconds},
            )
        except ExpiredSignatureError as e:
            raise VerificationError("Session token expired") from e
        except JOSEError as e:
            # JWKError (unloadable key) is a JOSEError but not a JWTError
            raise VerificationError(f"Invalid session token: {e}") from e

        if self._authorized_parties:
            azp = claims.get("azp")
            if azp not in self._authorized_parties:
                logger.warning(f"[ClerkVerifier] rejected token for unauthorized party azp={azp}")
                raise VerificationError("Token issued for an unauthorized party")

        return _subject_from(claims)
