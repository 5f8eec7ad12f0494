"""
Token metadata resolution for X1 (Solana-compatible) wallets
"""
from wallet_metadata.models import (
    HeldTokenAccount,
    MetadataSource,
    RegistryEntry,
    ResolvedMetadata,
    ResolvedToken,
    TokenMetadataFields,
    WalletTokens,
)

__all__ = [
    "HeldTokenAccount",
    "MetadataSource",
    "RegistryEntry",
    "ResolvedMetadata",
    "ResolvedToken",
    "TokenMetadataFields",
    "WalletTokens",
]
