"""
Fetch-with-timeout primitive for off-chain JSON documents
"""
from typing import Any, Optional

import aiohttp

from wallet_metadata import config


async def fetch_json(session: aiohttp.ClientSession, url: str, timeout: Optional[float] = None) -> Any:
    """
    GET a URL and parse the body as JSON.
    Raises on timeout, transport failure, non-2xx status, or a body that is
    empty, null or unparseable.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout or config.get_gateway_timeout())
    headers = {"accept": "application/json"}

    async with session.get(url, headers=headers, timeout=client_timeout) as response:
        response.raise_for_status()
        # Gateways often serve JSON as text/plain or octet-stream
        document = await response.json(content_type=None)

    # aiohttp returns None for an empty body
    if document is None:
        raise ValueError(f"Empty or null JSON body from {url}")
    return document
