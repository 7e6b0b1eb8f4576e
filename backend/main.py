from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from assembler import MintTransactionAssembler
from checkpoint import RpcCheckpointSource
from errors import ConfigurationError, InvalidInput, MintError
from policy_store import PolicyStore, load_policy_store
from pricing import check_available
from settings import Settings, load_authority_keypair
from tx_builder import encode_transaction, parse_requester

settings = Settings()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cnft_mint")

POLICY_STORE: Optional[PolicyStore] = None
ASSEMBLER: Optional[MintTransactionAssembler] = None

app = FastAPI(title="cNFT Mint API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


class MintRequest(BaseModel):
    account: Optional[str] = None


class MintResponse(BaseModel):
    transaction: str
    message: str


class MintLabelResponse(BaseModel):
    label: str
    icon: str


class CurrentResponse(BaseModel):
    enabled: bool
    title: Optional[str] = None
    image: Optional[str] = None
    end: Optional[str] = None


@app.exception_handler(MintError)
async def mint_error_handler(request: Request, exc: MintError):
    if exc.status_code >= 500:
        logger.error("mint_error path=%s kind=%s detail=%s", request.url.path, type(exc).__name__, exc.detail)
        message = exc.public_message
    else:
        message = exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unexpected_error path=%s kind=%s", request.url.path, type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": MintError.public_message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": InvalidInput.public_message})


@app.on_event("startup")
def startup_event():
    global POLICY_STORE, ASSEMBLER
    POLICY_STORE = load_policy_store(settings.policy_file)
    authority = load_authority_keypair(settings.authority_key)
    checkpoints = RpcCheckpointSource(settings.solana_rpc, settings.checkpoint_timeout_seconds)
    ASSEMBLER = MintTransactionAssembler(authority, checkpoints)
    logger.info("startup policies=%s authority=%s rpc=%s", len(POLICY_STORE), authority.pubkey(), settings.solana_rpc)


def get_policy_store() -> PolicyStore:
    if POLICY_STORE is None:
        raise ConfigurationError("Policy table not loaded")
    return POLICY_STORE


def get_assembler() -> MintTransactionAssembler:
    if ASSEMBLER is None:
        raise ConfigurationError("Authority not loaded")
    return ASSEMBLER


def get_now() -> datetime:
    return datetime.now(timezone.utc)


async def build_mint_response(
    tag: str,
    account: Optional[str],
    store: PolicyStore,
    assembler: MintTransactionAssembler,
    now: datetime,
) -> MintResponse:
    policy = store.resolve(tag)
    requester = parse_requester(account)
    logger.info("mint_request tag=%s account=%s", tag, requester)
    check_available(policy, now)
    tx, message = await assembler.assemble(requester, policy, now, tag=tag)
    return MintResponse(transaction=encode_transaction(tx), message=message)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/mint/{tag}", response_model=None)
async def mint_label(
    tag: str,
    account: Optional[str] = None,
    store: PolicyStore = Depends(get_policy_store),
    assembler: MintTransactionAssembler = Depends(get_assembler),
    now: datetime = Depends(get_now),
):
    if settings.get_as_post:
        # Debug alias: lets a browser hit the POST flow with ?account=...
        return await build_mint_response(tag, account, store, assembler, now)
    policy = store.resolve(tag)
    return MintLabelResponse(label=settings.mint_label, icon=policy.image or settings.mint_icon)


@app.post("/mint/{tag}", response_model=MintResponse)
async def mint_build(
    tag: str,
    req: Optional[MintRequest] = None,
    store: PolicyStore = Depends(get_policy_store),
    assembler: MintTransactionAssembler = Depends(get_assembler),
    now: datetime = Depends(get_now),
):
    return await build_mint_response(tag, req.account if req else None, store, assembler, now)


@app.get("/current", response_model=CurrentResponse, response_model_exclude_none=True)
def current(store: PolicyStore = Depends(get_policy_store)):
    policy = store.current_policy()
    if policy is None or policy.disabled:
        return CurrentResponse(enabled=False)
    return CurrentResponse(
        enabled=True,
        title=policy.name,
        image=policy.image,
        end=policy.late_after.isoformat() if policy.late_after else None,
    )
