"""
Data types shared by the metadata resolution pipeline
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import base58

# Mint address -> resolved logo URL. A missing key means the document was never
# fetched; a key mapped to None means it was fetched and had no logo.
LogoCache = Dict[str, Optional[str]]


def is_valid_solana_address(address: str) -> bool:
    # Solana addresses must be 32-44 characters long in base58 encoding
    return bool(address) and bool(re.match(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$', address))


def decode_mint(address: str) -> Optional[bytes]:
    """
    Raw 32-byte public key for a mint or wallet address, or None if it does not decode
    """
    try:
        raw = base58.b58decode(address)
    except ValueError:
        return None
    return raw if len(raw) == 32 else None


class MetadataSource(str, Enum):
    INLINE_EXTENSION = "inline_extension"
    DERIVED_ACCOUNT = "derived_account"
    REGISTRY = "registry"
    HARDCODED_OVERRIDE = "hardcoded_override"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class TokenMetadataFields:
    """name/symbol/uri triple decoded from an on-chain metadata layout"""
    name: str
    symbol: str
    uri: str = ""


@dataclass(frozen=True)
class RegistryEntry:
    mint: str
    name: str = ""
    symbol: str = ""
    decimals: Optional[int] = None
    logo: Optional[str] = None


@dataclass(frozen=True)
class ResolvedMetadata:
    mint: str
    name: str
    symbol: str
    logo_uri: Optional[str]
    source: MetadataSource

    @property
    def is_resolved(self) -> bool:
        return self.source != MetadataSource.UNRESOLVED


@dataclass
class HeldTokenAccount:
    """One token account owned by the wallet, as reported by the RPC listing"""
    mint: str
    raw_balance: int
    decimals: int
    is_token_2022: bool = False
    token_account: str = ""

    @property
    def balance(self) -> float:
        return self.raw_balance / (10 ** self.decimals) if self.decimals else float(self.raw_balance)


@dataclass
class ResolvedToken:
    account: HeldTokenAccount
    metadata: ResolvedMetadata

    def to_dict(self) -> dict:
        return {
            "mint": self.account.mint,
            "token_account": self.account.token_account,
            "name": self.metadata.name,
            "symbol": self.metadata.symbol,
            "logo_uri": self.metadata.logo_uri,
            "source": self.metadata.source.value,
            "balance": self.account.balance,
            "raw_balance": str(self.account.raw_balance),
            "decimals": self.account.decimals,
            "is_token_2022": self.account.is_token_2022,
        }


@dataclass
class WalletTokens:
    """Result of one wallet scan: resolved holdings split by token program"""
    owner: str
    tokens: List[ResolvedToken] = field(default_factory=list)
    token_2022: List[ResolvedToken] = field(default_factory=list)

    @property
    def all_tokens(self) -> List[ResolvedToken]:
        return self.tokens + self.token_2022

    def to_dict(self) -> dict:
        return {
            "owner": self.owner,
            "tokens": [t.to_dict() for t in self.tokens],
            "token_2022": [t.to_dict() for t in self.token_2022],
        }
