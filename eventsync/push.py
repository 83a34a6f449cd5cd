import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


# --- EXTERNAL PUSH RELAY ---
async def relay_push(url: Optional[str], event: str, data: Any):
    """POST a channel message to an external push endpoint; failures are only logged."""
    if not url:
        return
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            resp = await client.post(url, json={"event": event, "data": data})
            logger.info(f"Push relay {event}: {resp.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Push relay error: {e}")
