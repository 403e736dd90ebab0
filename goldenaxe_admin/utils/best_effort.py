"""
Best-effort side effects
Bookkeeping writes (last_triggered_at, last_error, last_sent_at) must never
break the read/alert path: await, log failures, move on
"""
import logging
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


async def best_effort(operation: Awaitable[Any], what: str) -> Optional[Any]:
    """Await operation; on failure log a warning and return None"""
    try:
        return await operation
    except Exception as e:
        logger.warning(f"⚠️ Best-effort {what} failed: {e}")
        return None
