"""
Loads the off-chain token registry (bulk mint -> name/symbol/logo listing) once per session
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import aiohttp

from wallet_metadata import config
from wallet_metadata.external_integrations.http_client import fetch_json
from wallet_metadata.models import RegistryEntry

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Keys an object-shaped response may wrap the entry list under, probed in order
WRAPPER_KEYS = ("data", "tokens", "result", "items", "list")

MINT_ALIASES = ("mint", "address", "mintAddress", "mint_address", "token_address", "tokenAddress")
NAME_ALIASES = ("name", "tokenName", "token_name")
SYMBOL_ALIASES = ("symbol", "tokenSymbol", "token_symbol", "ticker")
DECIMALS_ALIASES = ("decimals", "decimal")
LOGO_ALIASES = ("logo", "logoURI", "logoUri", "logo_uri", "image", "icon")


def first_populated(entry: Dict[str, Any], aliases: Sequence[str]) -> Optional[Any]:
    """
    Value of the first alias present with a non-empty value
    """
    for key in aliases:
        value = entry.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        return value
    return None


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_decimals(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def extract_entries(payload: Any) -> List[Any]:
    """
    Find the entry list in a bare-array or object-wrapped response
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    for key in WRAPPER_KEYS:
        wrapped = payload.get(key)
        if isinstance(wrapped, list):
            return wrapped
        # e.g. {"data": {"tokens": [...]}}
        if isinstance(wrapped, dict):
            for inner_key in WRAPPER_KEYS:
                inner = wrapped.get(inner_key)
                if isinstance(inner, list):
                    return inner
    return []


def parse_entry(raw: Any) -> Optional[RegistryEntry]:
    if not isinstance(raw, dict):
        return None
    mint = first_populated(raw, MINT_ALIASES)
    if not isinstance(mint, str):
        return None

    logo = first_populated(raw, LOGO_ALIASES)
    return RegistryEntry(
        mint=mint,
        name=_as_text(first_populated(raw, NAME_ALIASES)),
        symbol=_as_text(first_populated(raw, SYMBOL_ALIASES)),
        decimals=_as_decimals(first_populated(raw, DECIMALS_ALIASES)),
        logo=logo if isinstance(logo, str) else None,
    )


def build_registry_table(payload: Any) -> Dict[str, RegistryEntry]:
    table: Dict[str, RegistryEntry] = {}
    for raw in extract_entries(payload):
        entry = parse_entry(raw)
        if entry is not None:
            # Last write wins on duplicate mints
            table[entry.mint] = entry
    return table


class RegistryClient:
    """Session-lifetime holder of the registry table"""

    def __init__(self,
                 session: aiohttp.ClientSession,
                 url: Optional[str] = None,
                 fetch: Callable[[aiohttp.ClientSession, str, float], Awaitable[Any]] = fetch_json,
                 timeout: Optional[float] = None):
        self.session = session
        self.url = url or config.get_registry_url()
        self.fetch = fetch
        self.timeout = timeout or config.get_registry_timeout()
        self.table: Dict[str, RegistryEntry] = {}
        self.loaded = False
        self._lock = asyncio.Lock()

    async def load_registry(self) -> Dict[str, RegistryEntry]:
        """
        Load the registry once. Any failure leaves an empty table; either way the load is marked complete.
        """
        async with self._lock:
            if self.loaded:
                return self.table

            try:
                logger.info(f"Loading token registry from {self.url}")
                payload = await self.fetch(self.session, self.url, self.timeout)
                self.table = build_registry_table(payload)
                logger.info(f"Token registry loaded with {len(self.table)} entries")
            except Exception as e:
                logger.error(f"Error loading token registry: {str(e)}")
                self.table = {}
            finally:
                self.loaded = True

            return self.table
