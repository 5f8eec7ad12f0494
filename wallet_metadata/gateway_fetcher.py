"""
Fetches off-chain token metadata JSON through public IPFS/Arweave gateways
and extracts the logo URL from it.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from wallet_metadata import config
from wallet_metadata.external_integrations.http_client import fetch_json
from wallet_metadata.uri_resolver import candidate_urls, resolve_uri

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Checked in order, first populated wins
LOGO_FIELDS = ("image", "logo", "logoURI", "logo_uri", "icon", "image_url")

JsonFetcher = Callable[[aiohttp.ClientSession, str, float], Awaitable[Any]]


def extract_logo_field(document: Any) -> Optional[str]:
    if not isinstance(document, dict):
        return None
    for key in LOGO_FIELDS:
        value = document.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class GatewayFetcher:
    """Walks the gateway candidates for a metadata URI until one returns JSON"""

    def __init__(self, session: aiohttp.ClientSession, fetch: JsonFetcher = fetch_json, timeout: Optional[float] = None):
        self.session = session
        self.fetch = fetch
        self.timeout = timeout or config.get_gateway_timeout()

    async def fetch_document(self, uri: Optional[str]) -> Optional[Any]:
        """
        Return the first JSON document any candidate URL serves, None if all fail
        """
        for url in candidate_urls(uri):
            try:
                return await self.fetch(self.session, url, self.timeout)
            except asyncio.TimeoutError:
                logger.debug(f"Gateway timed out after {self.timeout}s: {url}")
            except aiohttp.ClientError as e:
                logger.debug(f"Gateway request failed for {url}: {str(e)}")
            except ValueError as e:
                # json.JSONDecodeError
                logger.debug(f"Gateway returned invalid JSON for {url}: {str(e)}")
            except Exception as e:
                logger.warning(f"Unexpected error fetching {url}: {str(e)}")
        return None

    async def fetch_off_chain_logo(self, uri: Optional[str]) -> Optional[str]:
        """
        Resolve the logo URL referenced by an off-chain metadata document. Never raises.
        """
        if not uri or not uri.strip():
            return None

        document = await self.fetch_document(uri)
        if document is None:
            logger.info(f"No gateway served metadata for {uri}")
            return None

        logo = resolve_uri(extract_logo_field(document))
        if logo is None:
            logger.debug(f"Metadata document for {uri} has no logo field")
        return logo
