"""
Batched lookup of Metaplex metadata accounts for many mints
"""
import logging
from typing import Dict, List, Optional, Set

from solders.pubkey import Pubkey

from wallet_metadata import config
from wallet_metadata.external_integrations.solana_rpc import SolanaRpcClient
from wallet_metadata.layout_decoder import decode_derived_account_record
from wallet_metadata.models import TokenMetadataFields

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

METADATA_PROGRAM = Pubkey.from_string(config.METADATA_PROGRAM_ID)


def derive_metadata_address(mint: str) -> str:
    """
    Metaplex metadata PDA: seeds ["metadata", program_id, mint] under the metadata program
    """
    mint_pubkey = Pubkey.from_string(mint)
    pda, _bump = Pubkey.find_program_address(
        [config.METADATA_SEED, bytes(METADATA_PROGRAM), bytes(mint_pubkey)],
        METADATA_PROGRAM
    )
    return str(pda)


def chunked(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchMetadataFetcher:
    """Resolves derived metadata accounts with getMultipleAccounts, 100 at a time"""

    def __init__(self, rpc: SolanaRpcClient, batch_size: Optional[int] = None):
        self.rpc = rpc
        self.batch_size = batch_size or config.get_batch_size()

    def _derive_all(self, mints: List[str]) -> Dict[str, str]:
        derived = {}
        for mint in dict.fromkeys(mints):
            try:
                derived[mint] = derive_metadata_address(mint)
            except Exception as e:
                logger.warning(f"Could not derive metadata address for {mint}: {str(e)}")
        return derived

    async def batch_resolve(self, mints: List[str], covered: Optional[Set[str]] = None) -> Dict[str, TokenMetadataFields]:
        """
        Map each mint to its decoded metadata record. Mints without a (valid) record are absent.

        When a `covered` set is given, every mint whose chunk was answered is added to it,
        whether or not its account exists. Mints of failed chunks are left out.
        """
        derived = self._derive_all(mints)
        ordered_mints = list(derived)
        results: Dict[str, TokenMetadataFields] = {}

        chunks = chunked(ordered_mints, self.batch_size)
        logger.info(f"Fetching metadata accounts for {len(ordered_mints)} mints in {len(chunks)} batches")

        # Sequential on purpose: RPC providers rate limit large getMultipleAccounts bursts
        for index, chunk in enumerate(chunks, start=1):
            addresses = [derived[mint] for mint in chunk]
            try:
                accounts = await self.rpc.get_multiple_accounts(addresses, encoding="base64")
            except Exception as e:
                logger.warning(f"Metadata batch {index}/{len(chunks)} failed, skipping: {str(e)}")
                continue

            if covered is not None:
                covered.update(chunk[:len(accounts)])
            for mint, account in zip(chunk, accounts):
                if not account:
                    continue
                record = decode_derived_account_record(account.get("data") if isinstance(account, dict) else None)
                if record is not None:
                    results[mint] = record

        logger.info(f"Decoded metadata accounts for {len(results)}/{len(ordered_mints)} mints")
        return results

    async def fetch_single(self, mint: str) -> Optional[TokenMetadataFields]:
        """
        Non-batched lookup of one mint's metadata account
        """
        account = await self.rpc.get_account_info(derive_metadata_address(mint), encoding="base64")
        if not account:
            return None
        return decode_derived_account_record(account.get("data"))
