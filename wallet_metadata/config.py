"""
Runtime settings for the wallet metadata resolver, read from the environment
"""
import os
from typing import List, Optional
from urllib.parse import urlparse

# X1 mainnet (Solana-compatible)
DEFAULT_RPC_ENDPOINT = "https://rpc.mainnet.x1.xyz"
DEFAULT_REGISTRY_URL = "https://api.xdex.xyz/api/xendex/tokens"

DEFAULT_IPFS_GATEWAYS = [
    "https://ipfs.io/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://gateway.pinata.cloud/ipfs/",
    "https://dweb.link/ipfs/",
]
DEFAULT_ARWEAVE_GATEWAY = "https://arweave.net/"

# Program ids
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
METADATA_PROGRAM_ID = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"
METADATA_SEED = b"metadata"

# $BRAINS on X1; its canonical metadata source is unreliable so it is pinned
BRAINS_MINT = "EpKRiKwbCKZDZE9pgH48HcXqQkBunXUK5axC1EHUBtPN"


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name, "")
    try:
        return int(value) if value else default
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    value = os.environ.get(name, "")
    try:
        return float(value) if value else default
    except ValueError:
        return default


def get_rpc_endpoint() -> str:
    """
    Get the X1 RPC endpoint, falling back to the public mainnet node
    """
    return os.environ.get("X1_RPC_URL", "") or DEFAULT_RPC_ENDPOINT


def get_registry_url() -> str:
    return os.environ.get("TOKEN_REGISTRY_URL", "") or DEFAULT_REGISTRY_URL


def get_registry_origin() -> str:
    """
    Scheme and host of the registry API, used to absolutize root-relative logo paths
    """
    parsed = urlparse(get_registry_url())
    return f"{parsed.scheme}://{parsed.netloc}"


def get_ipfs_gateways() -> List[str]:
    """
    Ordered public IPFS gateways. The first one is the primary gateway.
    """
    raw = os.environ.get("IPFS_GATEWAYS", "")
    gateways = [g.strip() for g in raw.split(",") if g.strip()] or list(DEFAULT_IPFS_GATEWAYS)
    return [g if g.endswith("/") else g + "/" for g in gateways]


def get_arweave_gateway() -> str:
    gateway = os.environ.get("ARWEAVE_GATEWAY", "") or DEFAULT_ARWEAVE_GATEWAY
    return gateway if gateway.endswith("/") else gateway + "/"


def get_gateway_timeout() -> float:
    return _float_env("GATEWAY_TIMEOUT_SECONDS", 5.0)


def get_rpc_timeout() -> float:
    return _float_env("RPC_TIMEOUT_SECONDS", 20.0)


def get_registry_timeout() -> float:
    return _float_env("REGISTRY_TIMEOUT_SECONDS", 15.0)


def get_batch_size() -> int:
    # getMultipleAccounts accepts at most 100 addresses per call
    return max(1, min(_int_env("METADATA_BATCH_SIZE", 100), 100))


def get_resolve_concurrency() -> int:
    return max(1, _int_env("RESOLVE_CONCURRENCY", 16))


def get_brains_logo_uri() -> Optional[str]:
    return os.environ.get("BRAINS_LOGO_URI", "") or None
