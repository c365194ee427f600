"""Identity provider (Clerk) backend API client.

This client handles:
- Fetching a user profile to materialize the local user cache
- Writing the role into the user's public metadata
- Verifying user lifecycle webhooks (svix signatures)

SECURITY: The secret key and webhook secret are kept server-side and never
exposed to clients.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog
from svix.webhooks import Webhook, WebhookVerificationError

from edumarket.auth.permissions import UserRole, resolve_role
from edumarket.config.settings import Settings
from edumarket.core.exceptions import (
    NotFoundError,
    UpstreamUnavailableError,
    WebhookSignatureError,
)


logger = structlog.get_logger(__name__)

# User lifecycle events mirrored into the local user cache
USER_UPSERT_EVENTS = frozenset({"user.created", "user.updated"})
USER_DELETED_EVENT = "user.deleted"


@dataclass
class IdentityProfile:
    """User profile as known by the identity provider."""

    user_id: str
    name: str
    email: str | None = None
    image_url: str | None = None
    role: UserRole = UserRole.STUDENT
    public_metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "IdentityProfile":
        """Build a profile from a ``GET /users/{id}`` response body."""
        name = " ".join(
            part for part in (data.get("first_name"), data.get("last_name")) if part
        )

        email = None
        primary_id = data.get("primary_email_address_id")
        addresses = data.get("email_addresses") or []
        for address in addresses:
            if address.get("id") == primary_id:
                email = address.get("email_address")
                break
        if email is None and addresses:
            email = addresses[0].get("email_address")

        metadata = data.get("public_metadata") or {}
        return cls(
            user_id=data["id"],
            name=name or data.get("username") or email or data["id"],
            email=email,
            image_url=data.get("image_url"),
            role=resolve_role(metadata.get("role")),
            public_metadata=metadata,
        )


class IdentityProviderClient:
    """Client for the identity provider's backend API."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client with settings.

        Args:
            settings: Application settings containing identity configuration.
            transport: Optional transport override (tests).
        """
        self.settings = settings
        self._base_url = settings.identity_api_url.rstrip("/")
        self._secret_key = settings.identity_secret_key
        self._timeout = settings.identity_timeout_seconds
        self._transport = transport
        self._webhook_secret = settings.identity_webhook_secret

    @property
    def is_configured(self) -> bool:
        """Check if the backend API key is set."""
        return self.settings.identity_configured

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"Authorization": f"Bearer {self._secret_key}"},
            transport=self._transport,
        )

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        if not self.is_configured:
            logger.error("identity_provider_not_configured")
            raise UpstreamUnavailableError("Identity provider is not configured")

        try:
            async with self._client() as client:
                response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error("identity_provider_timeout", path=path, error=str(e))
            raise UpstreamUnavailableError from e
        except httpx.RequestError as e:
            logger.error("identity_provider_request_error", path=path, error=str(e))
            raise UpstreamUnavailableError from e

        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError("User not found in identity provider", "user_not_found")

        if response.status_code != httpx.codes.OK:
            logger.error(
                "identity_provider_request_failed",
                path=path,
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise UpstreamUnavailableError

        return response.json()

    async def get_user(self, user_id: str) -> IdentityProfile:
        """Fetch a user's profile.

        Raises:
            NotFoundError: If the provider does not know the user
            UpstreamUnavailableError: If the provider is unreachable or errors
        """
        data = await self._request("GET", f"/users/{user_id}")
        return IdentityProfile.from_api(data)

    async def update_public_metadata(
        self, user_id: str, metadata: dict[str, Any]
    ) -> IdentityProfile:
        """Merge ``metadata`` into the user's public metadata."""
        data = await self._request(
            "PATCH", f"/users/{user_id}/metadata", json={"public_metadata": metadata}
        )
        logger.info(
            "identity_metadata_updated", user_id=user_id, keys=sorted(metadata)
        )
        return IdentityProfile.from_api(data)

    def verify_webhook(
        self, payload: bytes, headers: Mapping[str, str]
    ) -> dict[str, Any]:
        """Verify a webhook delivery and return the decoded event.

        Deliveries carry ``svix-id``, ``svix-timestamp`` and ``svix-signature``
        headers.

        Raises:
            WebhookSignatureError: If the signature or timestamp is invalid
            UpstreamUnavailableError: If no webhook secret is configured
        """
        if not self._webhook_secret:
            logger.error("identity_webhook_secret_not_configured")
            raise UpstreamUnavailableError("Webhook secret is not configured")

        try:
            event = Webhook(self._webhook_secret).verify(payload, dict(headers))
        except WebhookVerificationError as e:
            logger.warning("identity_webhook_signature_invalid", error=str(e))
            raise WebhookSignatureError(str(e)) from e

        if not isinstance(event, dict):
            raise WebhookSignatureError("Webhook payload is not a JSON object")
        return event
