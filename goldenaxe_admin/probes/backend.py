"""
Backend indexer health probe
GET {BE_URL}/health/detailed - None means unreachable
"""
import logging
import time
from typing import Optional

import httpx

from goldenaxe_admin.api.models.health import BackendHealth
from goldenaxe_admin.config import BE_URL, BACKEND_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class BackendHealthProbe:
    """Fetches the indexer's detailed health report"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = BE_URL,
        timeout: float = BACKEND_TIMEOUT_SECONDS
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def fetch(self) -> Optional[BackendHealth]:
        """Timeouts, non-2xx and malformed bodies all map to None"""
        start = time.monotonic()
        try:
            response = await self.client.get(
                f"{self.base_url}/health/detailed",
                headers={"Cache-Control": "no-store"},
                timeout=self.timeout,
            )
            if not response.is_success:
                logger.warning(f"⚠️ Backend health returned HTTP {response.status_code}")
                return None

            health = BackendHealth.model_validate(response.json())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"⚠️ Backend unreachable: {e!r}")
            return None
        except ValueError as e:
            # Covers JSON decode errors and pydantic validation errors
            logger.warning(f"⚠️ Backend health body malformed: {e}")
            return None

        health.probe_latency_ms = int((time.monotonic() - start) * 1000)
        return health
