"""
Wallet session: loads the registry once, then for an owner address lists held
token accounts, resolves their metadata and assembles sorted results.
"""
import asyncio
import logging
import sys
from typing import Any, Dict, Iterable, List, Optional, Set

import aiohttp

from wallet_metadata import config
from wallet_metadata.batch_fetcher import BatchMetadataFetcher
from wallet_metadata.external_integrations.solana_rpc import SolanaRpcClient
from wallet_metadata.gateway_fetcher import GatewayFetcher
from wallet_metadata.metadata_resolver import MetadataResolver, ResolutionContext
from wallet_metadata.models import (
    HeldTokenAccount,
    ResolvedMetadata,
    ResolvedToken,
    WalletTokens,
    decode_mint,
    is_valid_solana_address,
)
from wallet_metadata.registry_client import RegistryClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_token_account(entry: Dict[str, Any], is_token_2022: bool) -> Optional[HeldTokenAccount]:
    """
    Build a HeldTokenAccount from one jsonParsed getTokenAccountsByOwner entry
    """
    try:
        info = entry["account"]["data"]["parsed"]["info"]
        token_amount = info["tokenAmount"]
        return HeldTokenAccount(
            mint=info["mint"],
            raw_balance=int(token_amount.get("amount", "0")),
            decimals=int(token_amount.get("decimals", 0)),
            is_token_2022=is_token_2022,
            token_account=entry.get("pubkey", ""),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Skipping unparseable token account {entry.get('pubkey', '?') if isinstance(entry, dict) else '?'}: {str(e)}")
        return None


def sort_tokens(tokens: Iterable[ResolvedToken]) -> List[ResolvedToken]:
    return sorted(tokens, key=lambda t: (-t.account.balance, t.metadata.symbol.lower(), t.account.mint))


class WalletSession:
    """Owns the collaborators for one wallet session; the registry table lives as long as the session"""

    def __init__(self,
                 session: aiohttp.ClientSession,
                 rpc: Optional[SolanaRpcClient] = None,
                 registry: Optional[RegistryClient] = None,
                 gateway: Optional[GatewayFetcher] = None,
                 batch_fetcher: Optional[BatchMetadataFetcher] = None,
                 resolver: Optional[MetadataResolver] = None):
        self.session = session
        self.rpc = rpc or SolanaRpcClient(session)
        self.registry = registry or RegistryClient(session)
        self.gateway = gateway or GatewayFetcher(session)
        self.batch_fetcher = batch_fetcher or BatchMetadataFetcher(self.rpc)
        self.resolver = resolver or MetadataResolver()

    async def ensure_registry(self):
        return await self.registry.load_registry()

    async def _list_program_accounts(self, owner: str, program_id: str, is_token_2022: bool) -> List[HeldTokenAccount]:
        try:
            entries = await self.rpc.get_token_accounts_by_owner(owner, program_id)
        except Exception as e:
            logger.error(f"Error listing token accounts for {owner} under {program_id}: {str(e)}")
            return []

        accounts = []
        for entry in entries:
            account = parse_token_account(entry, is_token_2022)
            if account is not None:
                accounts.append(account)
        return accounts

    async def list_held_accounts(self, owner: str) -> List[HeldTokenAccount]:
        """
        All token accounts of the owner under both token programs, zero balances included
        """
        if not is_valid_solana_address(owner) or decode_mint(owner) is None:
            raise ValueError(f"Invalid wallet address: {owner}")

        legacy, token_2022 = await asyncio.gather(
            self._list_program_accounts(owner, config.TOKEN_PROGRAM_ID, False),
            self._list_program_accounts(owner, config.TOKEN_2022_PROGRAM_ID, True),
        )
        return legacy + token_2022

    async def resolve_mints(self, mints: Iterable[str]) -> Dict[str, ResolvedMetadata]:
        """
        One resolution pass: fresh caches, batch table first, then every mint concurrently
        """
        mints = list(dict.fromkeys(mints))
        registry_table = await self.ensure_registry()
        batch_covered: Set[str] = set()
        derived_table = await self.batch_fetcher.batch_resolve(mints, covered=batch_covered) if mints else {}

        context = ResolutionContext(
            rpc=self.rpc,
            gateway=self.gateway,
            batch_fetcher=self.batch_fetcher,
            registry=registry_table,
            derived_table=derived_table,
            batch_covered=batch_covered,
            logo_cache={},
        )
        return await self.resolver.resolve_many(mints, context)

    async def scan_wallet(self, owner: str) -> WalletTokens:
        """
        Resolve metadata for every non-zero holding of the owner
        """
        await self.ensure_registry()

        accounts = await self.list_held_accounts(owner)
        held = [account for account in accounts if account.raw_balance > 0]
        logger.info(f"Wallet {owner} holds {len(held)} tokens ({len(accounts) - len(held)} empty accounts skipped)")

        resolved = await self.resolve_mints(account.mint for account in held)

        results = WalletTokens(owner=owner)
        resolved_tokens = [ResolvedToken(account=account, metadata=resolved[account.mint]) for account in held]
        results.tokens = sort_tokens(t for t in resolved_tokens if not t.account.is_token_2022)
        results.token_2022 = sort_tokens(t for t in resolved_tokens if t.account.is_token_2022)
        return results


async def _scan(owner: str) -> WalletTokens:
    async with aiohttp.ClientSession() as session:
        return await WalletSession(session).scan_wallet(owner)


def scan_wallet_sync(owner: str) -> WalletTokens:
    """
    Scan a wallet (synchronous version)
    """
    return asyncio.run(_scan(owner))


# Test function
if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: python -m wallet_metadata.session <wallet address>")
        sys.exit(1)

    wallet = scan_wallet_sync(sys.argv[1])
    for token in wallet.all_tokens:
        print(f"{token.metadata.symbol:<12} {token.account.balance:>20} {token.metadata.name} [{token.metadata.source.value}]")
        if token.metadata.logo_uri:
            print(f"{'':<12} logo: {token.metadata.logo_uri}")
