"""
Analytics Service - product event capture
"""
import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)

CAPTURE_TIMEOUT_SECONDS = 5.0


class AnalyticsService:
    """Sends product events to a PostHog-compatible capture endpoint"""

    def __init__(self, host: Optional[str] = None, api_key: Optional[str] = None):
        self.host = host if host is not None else settings.analytics_host
        self.api_key = api_key if api_key is not None else settings.analytics_api_key

    async def track_event(
        self,
        distinct_id: str,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Capture one event for distinct_id.

        Without a configured host the event is only logged. HTTP failures
        raise httpx errors; callers treat emission as best-effort.
        """
        if not self.host or not self.api_key:
            logger.info(f"analytics | {event} | distinct_id={distinct_id} | {properties or {}}")
            return

        payload = {
            "api_key": self.api_key,
            "event": event,
            "distinct_id": distinct_id,
            "properties": properties or {},
        }
        async with httpx.AsyncClient(timeout=CAPTURE_TIMEOUT_SECONDS) as client:
            response = await client.post(f"{self.host.rstrip('/')}/capture/", json=payload)
            response.raise_for_status()
