# src/hwmgr_plugin/utils/http_client.py
"""
httpx client factory for hardware manager backends reached over HTTP.
"""

import logging
from typing import Optional

import httpx

from ..core.config import config

logger = logging.getLogger(__name__)


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")


def get_async_http_client(
    base_url: str,
    verify: bool = True,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """
    Returns an AsyncClient bound to base_url, carrying the plugin's
    User-Agent and the configured connect/read timeouts. Every response is
    logged at debug level.
    """
    if timeout is None:
        timeout = httpx.Timeout(config.DEFAULT_TIMEOUT_READ, connect=config.DEFAULT_TIMEOUT_CONNECT)
    if not verify:
        logger.warning(f"TLS certificate verification disabled for {base_url}")

    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        headers={"User-Agent": config.USER_AGENT},
        verify=verify,
        event_hooks={"response": [_log_response]},
    )
