from typing import Optional
import logging
from urllib.parse import quote

import httpx

from ..core.config import settings
from ..core.exceptions import UpstreamUnavailableError
from ..schemas.auth import Identity

logger = logging.getLogger(__name__)


class IdentityClient:
    """HTTP client for the Credential Store (auth service).

    Every call uses the same explicit timeout and is never retried. A
    rejected token or unknown id resolves to ``None``; an unreachable or
    failing Credential Store raises ``UpstreamUnavailableError``.
    """

    def __init__(
        self,
        base_url: str = settings.AUTH_SERVICE_URL,
        timeout: float = settings.AUTH_SERVICE_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    async def get_identity(self, token: str) -> Optional[Identity]:
        """Resolve a bearer token to the identity it was issued for."""
        data = await self._get("/identity", token)
        if data is None:
            return None
        return Identity.model_validate(data["user"])

    async def get_doctor(self, doctor_id: str, token: str) -> Optional[Identity]:
        """Fetch an identity by id; the caller checks that it is a doctor."""
        data = await self._get(f"/doctors/{quote(doctor_id, safe='')}", token)
        if data is None:
            return None
        return Identity.model_validate(data["doctor"])

    async def _get(self, path: str, token: str) -> Optional[dict]:
        try:
            response = await self._client.get(
                path,
                headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.RequestError as e:
            logger.error(f"Error communicating with auth service at {path}: {e!r}")
            raise UpstreamUnavailableError("Auth service unavailable")

        if response.status_code >= 500:
            logger.error(f"Auth service error for {path}: {response.status_code}")
            raise UpstreamUnavailableError("Auth service unavailable")

        if response.status_code != 200:
            logger.warning(f"Auth service rejected {path}: {response.status_code}")
            return None

        return response.json()
