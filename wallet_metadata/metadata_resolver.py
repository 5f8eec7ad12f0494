"""
Master metadata resolver.

Each mint is run through an ordered chain of strategies, first hit wins:

1. Token-2022 inline metadata extension (live getAccountInfo)
2. Precomputed Metaplex metadata table from the batch pass
3. Off-chain token registry
4. Hardcoded overrides
5. Single Metaplex metadata account lookup
6. Name/symbol synthesized from the mint address

A strategy that raises is logged and treated as a miss.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from wallet_metadata import config
from wallet_metadata.batch_fetcher import BatchMetadataFetcher
from wallet_metadata.gateway_fetcher import GatewayFetcher
from wallet_metadata.layout_decoder import decode_inline_extension
from wallet_metadata.models import (
    LogoCache,
    MetadataSource,
    RegistryEntry,
    ResolvedMetadata,
    TokenMetadataFields,
)
from wallet_metadata.uri_resolver import resolve_uri

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MAX_SYNTHESIZED_SYMBOL = 10


@dataclass
class ResolutionContext:
    """State owned by one resolution pass"""
    rpc: Any
    gateway: GatewayFetcher
    batch_fetcher: BatchMetadataFetcher
    registry: Dict[str, RegistryEntry] = field(default_factory=dict)
    derived_table: Dict[str, TokenMetadataFields] = field(default_factory=dict)
    # Mints the batch pass answered for, including those with no account
    batch_covered: Set[str] = field(default_factory=set)
    logo_cache: LogoCache = field(default_factory=dict)

    async def logo_for(self, mint: str, uri: str) -> Optional[str]:
        """
        Logo from the mint's off-chain metadata document, fetched at most once per pass
        """
        if mint in self.logo_cache:
            return self.logo_cache[mint]
        logo = await self.gateway.fetch_off_chain_logo(uri) if uri else None
        self.logo_cache[mint] = logo
        return logo


def synthesize_symbol(name: str, mint: str) -> str:
    if name and name.split():
        return name.split()[0].upper()[:MAX_SYNTHESIZED_SYMBOL]
    return mint[:4].upper()


def build_metadata(mint: str, name: str, symbol: str, logo_uri: Optional[str],
                   source: MetadataSource) -> Optional[ResolvedMetadata]:
    """
    Complete a partial name/symbol pair, None when neither is present
    """
    name = name or symbol
    if not name:
        return None
    return ResolvedMetadata(
        mint=mint,
        name=name,
        symbol=symbol or synthesize_symbol(name, mint),
        logo_uri=logo_uri,
        source=source,
    )


def fallback_metadata(mint: str) -> ResolvedMetadata:
    return ResolvedMetadata(
        mint=mint,
        name=f"{mint[:6]}…{mint[-4:]}",
        symbol=mint[:4].upper() or "?",
        logo_uri=None,
        source=MetadataSource.UNRESOLVED,
    )


class MetadataStrategy:
    """One source of token metadata. attempt() returns None when the source has nothing."""
    source: MetadataSource = MetadataSource.UNRESOLVED

    async def attempt(self, mint: str, context: ResolutionContext) -> Optional[ResolvedMetadata]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.__class__.__name__


class InlineExtensionStrategy(MetadataStrategy):
    source = MetadataSource.INLINE_EXTENSION

    async def attempt(self, mint, context):
        account = await context.rpc.get_account_info(mint, encoding="jsonParsed")
        fields = decode_inline_extension(account)
        if fields is None:
            return None
        logo = await context.logo_for(mint, fields.uri) if fields.uri else None
        return build_metadata(mint, fields.name, fields.symbol, logo, self.source)


class DerivedAccountTableStrategy(MetadataStrategy):
    source = MetadataSource.DERIVED_ACCOUNT

    async def attempt(self, mint, context):
        fields = context.derived_table.get(mint)
        if fields is None:
            return None
        logo = await context.logo_for(mint, fields.uri)
        return build_metadata(mint, fields.name, fields.symbol, logo, self.source)


class RegistryStrategy(MetadataStrategy):
    source = MetadataSource.REGISTRY

    async def attempt(self, mint, context):
        entry = context.registry.get(mint)
        if entry is None:
            return None
        # Registry logos are image URLs already, not metadata documents
        return build_metadata(mint, entry.name, entry.symbol, resolve_uri(entry.logo), self.source)


class HardcodedOverrideStrategy(MetadataStrategy):
    source = MetadataSource.HARDCODED_OVERRIDE

    def __init__(self, overrides: Optional[Dict[str, TokenMetadataFields]] = None):
        if overrides is None:
            overrides = {
                config.BRAINS_MINT: TokenMetadataFields(
                    name="Brains", symbol="BRAINS", uri=config.get_brains_logo_uri() or ""
                ),
            }
        self.overrides = overrides

    async def attempt(self, mint, context):
        fields = self.overrides.get(mint)
        if fields is None:
            return None
        return build_metadata(mint, fields.name, fields.symbol, resolve_uri(fields.uri), self.source)


class SingleDerivedAccountStrategy(MetadataStrategy):
    """Covers mints the batch pass did not include or could not fetch"""
    source = MetadataSource.DERIVED_ACCOUNT

    async def attempt(self, mint, context):
        if mint in context.batch_covered:
            return None
        fields = await context.batch_fetcher.fetch_single(mint)
        if fields is None:
            return None
        context.derived_table[mint] = fields
        logo = await context.logo_for(mint, fields.uri)
        return build_metadata(mint, fields.name, fields.symbol, logo, self.source)


def default_strategies() -> List[MetadataStrategy]:
    return [
        InlineExtensionStrategy(),
        DerivedAccountTableStrategy(),
        RegistryStrategy(),
        HardcodedOverrideStrategy(),
        SingleDerivedAccountStrategy(),
    ]


class MetadataResolver:
    """Runs the strategy chain for one mint, or for many mints concurrently"""

    def __init__(self, strategies: Optional[Sequence[MetadataStrategy]] = None, concurrency: Optional[int] = None):
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.concurrency = concurrency or config.get_resolve_concurrency()

    async def resolve(self, mint: str, context: ResolutionContext) -> ResolvedMetadata:
        for strategy in self.strategies:
            try:
                result = await strategy.attempt(mint, context)
            except Exception as e:
                logger.error(f"{strategy!r} failed for {mint}: {str(e)}")
                continue
            if result is not None:
                logger.debug(f"Resolved {mint} via {strategy!r}: {result.name} ({result.symbol})")
                return result

        logger.info(f"No metadata found for {mint}, using address fallback")
        return fallback_metadata(mint)

    async def resolve_many(self, mints: Iterable[str], context: ResolutionContext) -> Dict[str, ResolvedMetadata]:
        """
        Resolve every mint concurrently. A failure for one mint never affects the others.
        """
        unique_mints = list(dict.fromkeys(mints))
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(mint: str) -> ResolvedMetadata:
            async with semaphore:
                return await self.resolve(mint, context)

        results = await asyncio.gather(*(_bounded(mint) for mint in unique_mints), return_exceptions=True)

        resolved: Dict[str, ResolvedMetadata] = {}
        for mint, result in zip(unique_mints, results):
            if isinstance(result, BaseException):
                logger.error(f"Resolution crashed for {mint}: {str(result)}")
                resolved[mint] = fallback_metadata(mint)
            else:
                resolved[mint] = result
        return resolved
