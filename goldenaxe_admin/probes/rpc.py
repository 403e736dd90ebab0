"""
JSON-RPC eth_blockNumber probe
One call per chain, never raises - the outcome is encoded in the result
"""
import logging
import re
import time
from typing import Optional

import httpx

from goldenaxe_admin.api.models.health import RpcProbeResult
from goldenaxe_admin.config import RPC_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_LAST_PATH_SEGMENT = re.compile(r"/[^/]*$")


def redact_url(url: str) -> str:
    """Hide the last path segment (usually the provider API key)"""
    return _LAST_PATH_SEGMENT.sub("/***", url, count=1)


class RpcProbe:
    """Measures round trip and head block of an RPC endpoint"""

    def __init__(self, client: httpx.AsyncClient, timeout: float = RPC_TIMEOUT_SECONDS):
        self.client = client
        self.timeout = timeout

    async def block_number(self, url: str, timeout: Optional[float] = None) -> RpcProbeResult:
        payload = {
            "jsonrpc": "2.0",
            "method": "eth_blockNumber",
            "params": [],
            "id": time.time_ns(),  # unique per request, defeats caching proxies
        }
        start = time.monotonic()

        try:
            response = await self.client.post(
                url,
                json=payload,
                headers={"Cache-Control": "no-store"},
                timeout=timeout or self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            latency = _elapsed_ms(start)
            logger.warning(f"⚠️ RPC {redact_url(url)} unreachable after {latency}ms: {e!r}")
            return RpcProbeResult(outcome="transport_error", latency_ms=latency, error=str(e) or type(e).__name__)

        latency = _elapsed_ms(start)

        if not response.is_success:
            return RpcProbeResult(
                outcome="transport_error",
                latency_ms=latency,
                http_status=response.status_code,
                error=f"HTTP {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError:
            return RpcProbeResult(outcome="transport_error", latency_ms=latency, error="Invalid JSON response")

        if not isinstance(data, dict):
            return RpcProbeResult(outcome="transport_error", latency_ms=latency, error="Invalid JSON-RPC response")

        if data.get("error"):
            error = data["error"]
            message = error.get("message", "Unknown error") if isinstance(error, dict) else str(error)
            return RpcProbeResult(outcome="remote_error", latency_ms=latency, error=message)

        try:
            block_number = int(data["result"], 16)
        except (KeyError, TypeError, ValueError):
            return RpcProbeResult(outcome="remote_error", latency_ms=latency, error="Missing block number in response")

        return RpcProbeResult(outcome="ok", latency_ms=latency, block_number=block_number)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
