"""
JSON-RPC integration for the X1 (Solana-compatible) chain
"""
import logging
from typing import Any, Dict, List, Optional

import aiohttp
import requests

from wallet_metadata import config

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class RpcError(Exception):
    """The node answered with a non-200 status or a JSON-RPC error object"""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        self.method = method
        self.code = code
        super().__init__(f"{method} failed: {message}")


class SolanaRpcClient:
    """Async JSON-RPC client sharing one aiohttp session"""

    def __init__(self, session: aiohttp.ClientSession, endpoint: Optional[str] = None, timeout: Optional[float] = None):
        self.session = session
        self.endpoint = endpoint or config.get_rpc_endpoint()
        self.timeout = aiohttp.ClientTimeout(total=timeout or config.get_rpc_timeout())
        self._request_id = 0

    async def _post(self, method: str, params: List[Any]) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params
        }

        async with self.session.post(self.endpoint, json=payload, timeout=self.timeout) as response:
            if response.status != 200:
                text = await response.text()
                raise RpcError(method, f"HTTP {response.status}: {text[:200]}")
            data = await response.json(content_type=None)

        if not isinstance(data, dict):
            raise RpcError(method, "malformed response")
        if data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                raise RpcError(method, str(error.get("message", error)), error.get("code"))
            raise RpcError(method, str(error))
        return data.get("result")

    async def get_account_info(self, address: str, encoding: str = "jsonParsed") -> Optional[Dict[str, Any]]:
        """
        Get one account. Returns the RPC "value" object, None when the account does not exist.
        """
        result = await self._post("getAccountInfo", [address, {"encoding": encoding}])
        if not isinstance(result, dict):
            return None
        return result.get("value")

    async def get_multiple_accounts(self, addresses: List[str], encoding: str = "base64") -> List[Optional[Dict[str, Any]]]:
        """
        Get many accounts in one round trip. Missing accounts come back as None entries,
        in the same order as the requested addresses.
        """
        if not addresses:
            return []
        result = await self._post("getMultipleAccounts", [addresses, {"encoding": encoding}])
        value = result.get("value") if isinstance(result, dict) else None
        if not isinstance(value, list):
            raise RpcError("getMultipleAccounts", "missing value list")
        return value

    async def get_token_accounts_by_owner(self, owner: str, program_id: str) -> List[Dict[str, Any]]:
        """
        List the owner's token accounts for one token program (jsonParsed)
        """
        result = await self._post(
            "getTokenAccountsByOwner",
            [
                owner,
                {"programId": program_id},
                {"encoding": "jsonParsed"}
            ]
        )
        value = result.get("value") if isinstance(result, dict) else None
        return value if isinstance(value, list) else []


def check_health(endpoint: Optional[str] = None) -> bool:
    """
    Verify the RPC node is reachable and healthy
    """
    endpoint = endpoint or config.get_rpc_endpoint()
    payload = {
        "jsonrpc": "2.0",
        "id": "1",
        "method": "getHealth"
    }

    try:
        response = requests.post(endpoint, json=payload, timeout=config.get_rpc_timeout())
        logger.info(f"RPC health check - Status: {response.status_code}")

        if response.status_code == 200:
            data = response.json()
            return data.get("result") == "ok"
        else:
            logger.warning(f"RPC health check failed: {response.text}")
            return False
    except Exception as e:
        logger.error(f"RPC health check error: {str(e)}")
        return False
