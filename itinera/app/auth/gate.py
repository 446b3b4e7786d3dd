"""Auth gate - resolves the identity of a request or rejects it."""

import asyncio
import logging

import httpx

from itinera.app.auth.identity import Identity
from itinera.app.auth.session import AuthState, SessionContext
from itinera.app.auth.verifiers import (
    ProfileNotFound,
    ProfileStore,
    ProfileUnavailable,
    VerificationError,
    Verifier,
)
from itinera.app.errors import Unauthenticated
from itinera.app.utils.metrics import PrometheusAuthMetrics

logger = logging.getLogger(__name__)


class AuthGate:
    """Single gate in front of every authenticated route.

    The token scheme is a property of the injected Verifier; the gate logic
    is the same for all schemes.
    """

    def __init__(
        self,
        verifier: Verifier,
        profiles: ProfileStore,
        timeout_seconds: float = 3.0,
        metrics: PrometheusAuthMetrics | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            verifier: Credential verifier for the configured scheme
            profiles: Profile lookup for verified subjects
            timeout_seconds: Budget for verification plus profile lookup
            metrics: Optional metrics sink
        """
        self._verifier = verifier
        self._profiles = profiles
        self._timeout_seconds = timeout_seconds
        self._metrics = metrics or PrometheusAuthMetrics()

    async def resolve_identity(self, session: SessionContext) -> Identity:
        """Resolve the session's identity, attaching it on success.

        Args:
            session: Per-request session context

        Returns:
            Resolved identity

        Raises:
            Unauthenticated: Missing, malformed, expired or unverifiable
                credential, unknown subject, provider error or timeout
        """
        if session.state is AuthState.resolved and session.identity is not None:
            return session.identity
        if session.state is AuthState.rejected:
            raise Unauthenticated("Request was already rejected")

        token = session.bearer_token()
        if token is None:
            self._reject(session, "missing_credential")
            raise Unauthenticated("No valid authorization token provided")

        try:
            identity = await asyncio.wait_for(self._verify(token), self._timeout_seconds)
        except asyncio.TimeoutError as e:
            self._reject(session, "timeout")
            raise Unauthenticated("Invalid or expired token") from e
        except VerificationError as e:
            self._reject(session, "invalid_credential", str(e))
            raise Unauthenticated("Invalid or expired token") from e
        except ProfileNotFound as e:
            self._reject(session, "profile_missing", str(e))
            raise Unauthenticated("Invalid or expired token") from e
        except (httpx.HTTPError, ProfileUnavailable) as e:
            self._reject(session, "provider_error", type(e).__name__)
            raise Unauthenticated("Invalid or expired token") from e

        session.resolve(identity)
        self._metrics.record_resolution("resolved")
        logger.debug(f"[AuthGate] resolved subject={identity.id}")
        return identity

    async def _verify(self, token: str) -> Identity:
        verified = await self._verifier.verify(token)
        profile = await self._profiles.get_profile(verified.subject_id)
        return Identity.from_profile(verified.subject_id, profile)

    def _reject(self, session: SessionContext, outcome: str, reason: str | None = None) -> None:
        session.reject()
        self._metrics.record_resolution(outcome)
        if reason:
            logger.info(f"[AuthGate] rejected outcome={outcome} reason={reason}")
        else:
            logger.info(f"[AuthGate] rejected outcome={outcome}")
