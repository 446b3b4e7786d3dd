"""Profile store backed by the hosted identity provider's users API."""

from datetime import datetime, timezone
from typing import Any

import httpx

from itinera.app.auth.identity import Profile
from itinera.app.auth.verifiers import ProfileNotFound, ProfileUnavailable


def profile_from_user(data: dict[str, Any]) -> Profile:
    """Map a users API payload to a Profile.

    Args:
        data: JSON body of GET /users/{user_id}

    Returns:
        Profile; e-mail is the first listed address (empty if none),
        created_at converts the epoch milliseconds to UTC
    """
    addresses = data.get("email_addresses") or []
    email = addresses[0].get("email_address", "") if addresses else ""

    created_ms = data.get("created_at")
    created_at = (
        datetime.fromtimestamp(created_ms / 1000, tz=timezone.utc)
        if created_ms is not None
        else datetime.now(timezone.utc)
    )

    return Profile(
        subject_id=data["id"],
        email=email,
        created_at=created_at,
        first_name=data.get("first_name") or None,
        last_name=data.get("last_name") or None,
        image_url=data.get("image_url") or None,
    )


class ClerkProfileStore:
    """Fetches user profiles from the identity provider."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.clerk.com/v1",
        timeout_seconds: float = 4.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            secret_key: Backend API secret key
            base_url: Users API base URL
            timeout_seconds: HTTP timeout when the store creates its own client
            client: Optional httpx client (for testing with mocks)
        """
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._client = client

    async def get_profile(self, subject_id: str) -> Profile:
        """Fetch the profile of a user.

        Raises:
            ProfileNotFound: If the provider has no such user
            ProfileUnavailable: If the reply is not a user payload
            httpx.HTTPError: On network or other HTTP errors
        """
        client = self._client
        close_client = False
        if client is None:
            client = httpx.AsyncClient(timeout=self._timeout_seconds)
            close_client = True

        try:
            response = await client.get(
                f"{self._base_url}/users/{subject_id}",
                headers={"Authorization": f"Bearer {self._secret_key}"},
            )
            if response.status_code == 404:
                raise ProfileNotFound(f"No user {subject_id} at identity provider")
            response.raise_for_status()
            try:
                return profile_from_user(response.json())
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                raise ProfileUnavailable(
                    f"Unusable user payload for {subject_id}: {type(e).__name__}"
                ) from e
        finally:
            if close_client:
                await client.aclose()
