from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import List, Optional
import logging
import traceback

import aiohttp

from wallet_metadata.external_integrations.solana_rpc import check_health
from wallet_metadata.models import ResolvedToken, is_valid_solana_address
from wallet_metadata.session import WalletSession

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI()
api_router = FastAPI()

# Add CORS middleware
api_router.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Created on startup, shared by all requests
http_session: Optional[aiohttp.ClientSession] = None
wallet_session: Optional[WalletSession] = None


# Define schemas
class TokenResponse(BaseModel):
    mint: str
    token_account: str = ""
    name: str
    symbol: str
    logo_uri: Optional[str] = None
    source: str
    balance: float
    raw_balance: str
    decimals: int
    is_token_2022: bool = False

    @classmethod
    def from_resolved(cls, token: ResolvedToken) -> "TokenResponse":
        return cls(**token.to_dict())


class WalletTokensResponse(BaseModel):
    owner: str
    tokens: List[TokenResponse]
    token_2022: List[TokenResponse]


class HealthResponse(BaseModel):
    rpc: str
    registry_loaded: bool
    registry_size: int


def get_wallet_session() -> WalletSession:
    if wallet_session is None:
        raise HTTPException(status_code=503, detail="Wallet session not initialized")
    return wallet_session


@api_router.get("/health", response_model=HealthResponse)
def get_health(session: WalletSession = Depends(get_wallet_session)):
    """
    RPC node and registry status
    """
    return HealthResponse(
        rpc="ok" if check_health(session.rpc.endpoint) else "unavailable",
        registry_loaded=session.registry.loaded,
        registry_size=len(session.registry.table),
    )


@api_router.get("/wallet/{wallet_address}/tokens", response_model=WalletTokensResponse)
async def get_wallet_tokens(wallet_address: str, session: WalletSession = Depends(get_wallet_session)):
    """
    Get the wallet's non-zero token holdings with resolved name, symbol and logo
    """
    if not is_valid_solana_address(wallet_address):
        raise HTTPException(status_code=400, detail="Invalid wallet address")

    try:
        logger.info(f"Scanning wallet: {wallet_address}")
        result = await session.scan_wallet(wallet_address)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error scanning wallet: {str(e)}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail=f"Error scanning wallet: {str(e)}")

    return WalletTokensResponse(
        owner=result.owner,
        tokens=[TokenResponse.from_resolved(t) for t in result.tokens],
        token_2022=[TokenResponse.from_resolved(t) for t in result.token_2022],
    )


# Mount the API router
app.mount("/api", api_router)


# Root endpoint
@app.get("/")
async def app_root():
    return {"message": "X1 wallet token metadata API. Access API at /api"}


@app.on_event("startup")
async def startup_wallet_session():
    global http_session, wallet_session
    http_session = aiohttp.ClientSession()
    wallet_session = WalletSession(http_session)
    await wallet_session.ensure_registry()
    logger.info("Wallet session ready")


@app.on_event("shutdown")
async def shutdown_wallet_session():
    if http_session is not None:
        await http_session.close()
