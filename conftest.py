"""
Shared fakes for the test suite: an in-memory RPC node and a scripted JSON fetcher
"""
import base64
from typing import Any, Dict, List, Optional

import base58
import pytest

from wallet_metadata.external_integrations.solana_rpc import RpcError

BRAINS_MINT = "EpKRiKwbCKZDZE9pgH48HcXqQkBunXUK5axC1EHUBtPN"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
JUP_MINT = "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN"
OWNER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"

CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


def make_mint(seed: int) -> str:
    """A valid 32-byte base58 public key, distinct per seed (1-255)"""
    return base58.b58encode(bytes([seed]) * 32).decode()


def encode_string(value: bytes) -> bytes:
    return len(value).to_bytes(4, byteorder='little') + value


def build_metadata_record(name: str, symbol: str, uri: str, pad_name: int = 0, pad_symbol: int = 0, pad_uri: int = 0) -> bytes:
    """Metaplex metadata account bytes, with optional NUL padding per field"""
    name_bytes = name.encode('utf-8').ljust(pad_name, b"\x00")
    symbol_bytes = symbol.encode('utf-8').ljust(pad_symbol, b"\x00")
    uri_bytes = uri.encode('utf-8').ljust(pad_uri, b"\x00")
    return (
        b"\x04"
        + bytes(range(32))
        + bytes(range(32, 64))
        + encode_string(name_bytes)
        + encode_string(symbol_bytes)
        + encode_string(uri_bytes)
        + b"\x01\x00"
    )


def make_inline_account(name: str, symbol: str, uri: str = "") -> Dict[str, Any]:
    """jsonParsed Token-2022 mint account with a tokenMetadata extension"""
    return {
        "data": {
            "program": "spl-token-2022",
            "parsed": {
                "type": "mint",
                "info": {
                    "decimals": 9,
                    "extensions": [
                        {"extension": "metadataPointer", "state": {"metadataAddress": "x"}},
                        {
                            "extension": "tokenMetadata",
                            "state": {"name": name, "symbol": symbol, "uri": uri, "additionalMetadata": []},
                        },
                    ],
                },
            },
        },
        "executable": False,
    }


def make_token_account(mint: str, amount: int, decimals: int = 9, pubkey: str = "") -> Dict[str, Any]:
    return {
        "pubkey": pubkey or f"acct-{mint[:8]}",
        "account": {
            "data": {
                "parsed": {
                    "type": "account",
                    "info": {
                        "mint": mint,
                        "owner": OWNER,
                        "tokenAmount": {"amount": str(amount), "decimals": decimals},
                    },
                },
            },
        },
    }


class FakeRpc:
    """In-memory stand-in for SolanaRpcClient"""

    def __init__(self):
        self.endpoint = "http://fake-rpc.local"
        self.parsed_accounts: Dict[str, Any] = {}
        self.raw_accounts: Dict[str, bytes] = {}
        self.token_accounts: Dict[str, List[Dict[str, Any]]] = {}
        self.fail_batch_calls = set()
        self.fail_account_info = set()
        self.multiple_calls: List[List[str]] = []
        self.account_info_calls: List[str] = []

    def _wrap(self, address: str) -> Optional[Dict[str, Any]]:
        raw = self.raw_accounts.get(address)
        if raw is None:
            return None
        return {"data": [base64.b64encode(raw).decode(), "base64"], "owner": "meta"}

    async def get_account_info(self, address, encoding="jsonParsed"):
        self.account_info_calls.append(address)
        if address in self.fail_account_info:
            raise RpcError("getAccountInfo", "node unavailable")
        if encoding == "jsonParsed":
            return self.parsed_accounts.get(address)
        return self._wrap(address)

    async def get_multiple_accounts(self, addresses, encoding="base64"):
        self.multiple_calls.append(list(addresses))
        if len(self.multiple_calls) in self.fail_batch_calls:
            raise RpcError("getMultipleAccounts", "HTTP 503: overloaded")
        return [self._wrap(address) for address in addresses]

    async def get_token_accounts_by_owner(self, owner, program_id):
        return self.token_accounts.get(program_id, [])


class FakeFetch:
    """Scripted replacement for http_client.fetch_json"""

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        self.responses = responses or {}
        self.calls: List[str] = []

    async def __call__(self, session, url, timeout):
        self.calls.append(url)
        if url not in self.responses:
            raise ValueError(f"no scripted response for {url}")
        response = self.responses[url]
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def fake_rpc():
    return FakeRpc()


@pytest.fixture
def fake_fetch():
    return FakeFetch()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("X1_RPC_URL", "TOKEN_REGISTRY_URL", "IPFS_GATEWAYS", "ARWEAVE_GATEWAY",
                 "GATEWAY_TIMEOUT_SECONDS", "RPC_TIMEOUT_SECONDS", "REGISTRY_TIMEOUT_SECONDS",
                 "METADATA_BATCH_SIZE", "RESOLVE_CONCURRENCY", "BRAINS_LOGO_URI"):
        monkeypatch.delenv(name, raising=False)
