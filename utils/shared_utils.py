"""
Shared utility functions for routers and services
"""
import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def log_endpoint_event(endpoint: str, user_id: Optional[str] = None, result: str = "success", details: Optional[dict] = None):
    """Log endpoint execution to app.log"""
    logger.info(f"{endpoint} | user={user_id or 'none'} | {result} | {json.dumps(details or {}, default=str)}")
