"""
HTTP client for the external fixture feed.

Two resources are used:
- GET {base}/team/{external_team_id}        upcoming and past games of a team
- GET {base}/team/table/{external_team_id}  league table of the team's group

Every request carries the deployment token in the x-auth-token header.
All upstream failures surface as ExternalServiceError so the API layer can
map them to 502 (or 401 for a rejected token).
"""

from typing import Any, Dict, Optional

import httpx

from backend.src.config.settings import AppSettings, get_settings
from backend.src.services.exceptions import ExternalServiceError
from backend.src.utils.logging_config import get_logger


logger = get_logger("feed")


# ============================================================================
# Constants
# ============================================================================

DEFAULT_TIMEOUT = 15.0  # seconds
AUTH_HEADER = "x-auth-token"
TOKEN_REJECTED_MESSAGE = "API token invalid or expired"


# ============================================================================
# FixtureFeedClient Class
# ============================================================================


class FixtureFeedClient:
    """
    Synchronous client for the fixture feed.

    Usage:
        >>> with FixtureFeedClient.from_settings() as client:
        ...     payload = client.fetch_team_info("011MIC9NDS000000VV0AG80NVV8OQVTB")
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the feed client.

        Args:
            base_url: Feed base URL (trailing slash is ignored)
            token: Value of the x-auth-token header
            timeout: Request timeout in seconds
            transport: Optional transport (tests use httpx.MockTransport)

        Raises:
            ExternalServiceError: If no token is configured
        """
        if not token:
            raise ExternalServiceError("Fixture feed token is not configured")

        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={AUTH_HEADER: token, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Optional[AppSettings] = None) -> "FixtureFeedClient":
        settings = settings or get_settings()
        return cls(settings.feed_base_url, settings.feed_token)

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "FixtureFeedClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def fetch_team_info(self, external_team_id: str) -> Any:
        """
        Fetch the games payload of a team.

        Returns:
            Decoded JSON payload (shape varies; see fixture import)

        Raises:
            ExternalServiceError: On transport errors, non-2xx or non-JSON
        """
        return self._get_json(f"/team/{external_team_id}")

    def fetch_team_table(self, external_team_id: str) -> Dict[str, Any]:
        """
        Fetch the league table payload of a team.

        Raises:
            ExternalServiceError: As fetch_team_info, or if the payload is
                not a JSON object
        """
        payload = self._get_json(f"/team/table/{external_team_id}")
        if not isinstance(payload, dict):
            raise ExternalServiceError("Unexpected league table payload")
        return payload

    def _get_json(self, path: str) -> Any:
        try:
            response = self._client.get(path)
        except httpx.TimeoutException as e:
            logger.warning(f"Fixture feed timed out: {path}", extra={"path": path})
            raise ExternalServiceError(f"Fixture feed timed out: {e}")
        except httpx.HTTPError as e:
            logger.warning(f"Fixture feed unreachable: {e}", extra={"path": path})
            raise ExternalServiceError(f"Fixture feed unreachable: {e}")

        if response.status_code == 401:
            logger.warning("Fixture feed rejected the token", extra={"path": path})
            raise ExternalServiceError(TOKEN_REJECTED_MESSAGE, upstream_status=401)
        if not response.is_success:
            logger.warning(
                f"Fixture feed returned {response.status_code}",
                extra={"path": path, "status_code": response.status_code},
            )
            raise ExternalServiceError(
                f"Fixture feed request failed with status {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError:
            raise ExternalServiceError("Fixture feed returned invalid JSON")
