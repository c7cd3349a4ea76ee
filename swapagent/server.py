import logging
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from swapagent.bridge import SignalBridge, TradeCredentials
from swapagent.config import settings
from swapagent.errors import InvalidRequest, SwapAgentError
from swapagent.exchange.base import ExchangeClient
from swapagent.exchange.venues import get_exchange
from swapagent.executor import TradeExecutor
from swapagent.router import SwapRouter
from swapagent.signals.extractor import extract_signals
from swapagent.signals.feed import get_feed
from swapagent.types import (
    Action,
    ExchangeCredentials,
    SignalSource,
    TradeResult,
    TradingSignal,
)

logger = logging.getLogger("swapagent.server")

app = FastAPI(title="SwapAgent")


# --- request bodies ---


class BuyRequest(BaseModel):
    token_address: str
    eth_amount: str = "0.001"


class SellRequest(BaseModel):
    token_address: str
    amount: str = "all"


class UnwrapRequest(BaseModel):
    amount: str = "all"


class QuoteRequest(BaseModel):
    sell_token: str
    buy_token: str
    sell_amount: int
    taker: Optional[str] = None


class SignalRequest(BaseModel):
    action: Action
    token: str
    amount: Optional[str] = None
    tp: Optional[str] = None
    sl: Optional[str] = None
    venue: Optional[str] = None


class OrderRequest(BaseModel):
    symbol: str
    amount: Optional[str] = None
    quantity: Optional[str] = None
    price: Optional[str] = None
    tp: Optional[str] = None
    sl: Optional[str] = None


class CancelRequest(BaseModel):
    symbol: str
    order_id: str


# --- auth + credentials ---


def _auth_ok(provided: Optional[str]) -> bool:
    secret = settings.api_secret
    if not secret:
        return True
    return provided == secret


def require_secret(x_api_secret: Optional[str] = Header(default=None)) -> None:
    if not _auth_ok(x_api_secret):
        raise HTTPException(status_code=401, detail="bad secret")


def exchange_credentials(
    x_exchange_key: Optional[str] = Header(default=None),
    x_exchange_secret: Optional[str] = Header(default=None),
    x_exchange_passphrase: Optional[str] = Header(default=None),
) -> Optional[ExchangeCredentials]:
    key = x_exchange_key or settings.exchange_api_key
    secret = x_exchange_secret or settings.exchange_secret_key
    if not key or not secret:
        return None
    return ExchangeCredentials(
        api_key=key,
        secret_key=secret,
        passphrase=x_exchange_passphrase or settings.exchange_passphrase,
    )


def wallet_account(x_wallet_key: Optional[str] = Header(default=None)) -> Optional[LocalAccount]:
    key = x_wallet_key or settings.wallet_private_key
    if not key:
        return None
    try:
        return Account.from_key(key)
    except (ValueError, TypeError) as e:
        raise InvalidRequest("Invalid wallet key") from e


def _require_creds(creds: Optional[ExchangeCredentials]) -> ExchangeCredentials:
    if creds is None:
        raise InvalidRequest("Exchange credentials are required")
    return creds


def _require_wallet(wallet: Optional[LocalAccount]) -> LocalAccount:
    if wallet is None:
        raise InvalidRequest("A wallet key is required")
    return wallet


# --- components (overridable in tests) ---


def get_executor() -> TradeExecutor:
    return TradeExecutor()


def get_router() -> SwapRouter:
    return SwapRouter()


def get_bridge() -> SignalBridge:
    return SignalBridge()


def exchange_client(venue: str) -> ExchangeClient:
    return get_exchange(venue)


# --- error mapping ---


@app.exception_handler(SwapAgentError)
async def swapagent_error_handler(request: Request, exc: SwapAgentError):
    logger.warning(f"[http] {request.url.path} {exc.kind.value}: {exc.message}")
    return JSONResponse(
        TradeResult.failure(exc).model_dump(mode="json", exclude_none=True), status_code=400
    )


def _result(result: TradeResult):
    body = result.model_dump(mode="json", exclude_none=True)
    return JSONResponse(body, status_code=200 if result.success else 400)


# --- signals ---


@app.get("/signals/scan", dependencies=[Depends(require_secret)])
def scan_signals(sort: str = "new", limit: int = 50, min_confidence: float = 0.0):
    posts = get_feed(sort=sort, limit=limit)
    signals = [s for s in extract_signals(posts) if s.confidence >= min_confidence]
    return {
        "posts": len(posts),
        "signals": [s.model_dump(mode="json") for s in signals],
    }


@app.post("/signals/execute", dependencies=[Depends(require_secret)])
def execute_signal(
    req: SignalRequest,
    bridge: SignalBridge = Depends(get_bridge),
    creds: Optional[ExchangeCredentials] = Depends(exchange_credentials),
    wallet: Optional[LocalAccount] = Depends(wallet_account),
):
    signal = TradingSignal(
        action=req.action,
        token=req.token.lstrip("$").upper(),
        amount=req.amount,
        take_profit=req.tp,
        stop_loss=req.sl,
        confidence=1.0,
        source=SignalSource(post_id="manual", title="", author="api", upvotes=0),
    )
    if req.venue:
        bridge.venue = req.venue.lower()
    return _result(bridge.execute(signal, TradeCredentials(exchange=creds, wallet=wallet)))


# --- on-chain ---


@app.post("/trade/buy", dependencies=[Depends(require_secret)])
def trade_buy(
    req: BuyRequest,
    executor: TradeExecutor = Depends(get_executor),
    wallet: Optional[LocalAccount] = Depends(wallet_account),
):
    return _result(executor.buy(_require_wallet(wallet), req.token_address, req.eth_amount))


@app.post("/trade/sell", dependencies=[Depends(require_secret)])
def trade_sell(
    req: SellRequest,
    executor: TradeExecutor = Depends(get_executor),
    wallet: Optional[LocalAccount] = Depends(wallet_account),
):
    return _result(executor.sell(_require_wallet(wallet), req.token_address, req.amount))


@app.post("/trade/unwrap", dependencies=[Depends(require_secret)])
def trade_unwrap(
    req: UnwrapRequest,
    executor: TradeExecutor = Depends(get_executor),
    wallet: Optional[LocalAccount] = Depends(wallet_account),
):
    return _result(executor.unwrap_weth(_require_wallet(wallet), req.amount))


@app.post("/swap/quote", dependencies=[Depends(require_secret)])
def swap_quote(
    req: QuoteRequest,
    router: SwapRouter = Depends(get_router),
    wallet: Optional[LocalAccount] = Depends(wallet_account),
):
    taker = req.taker or (wallet.address if wallet is not None else None)
    if not taker:
        raise InvalidRequest("taker address is required")
    if req.sell_amount <= 0:
        raise InvalidRequest("sell_amount must be greater than zero")
    quote = router.get_executable_swap(req.sell_token, req.buy_token, req.sell_amount, taker)
    return quote.model_dump(mode="json")


# --- centralized exchange ---


@app.post("/exchange/{venue}/buy", dependencies=[Depends(require_secret)])
def exchange_buy(
    req: OrderRequest,
    client: ExchangeClient = Depends(exchange_client),
    creds: Optional[ExchangeCredentials] = Depends(exchange_credentials),
):
    creds = _require_creds(creds)
    if req.price:
        if not req.quantity:
            raise InvalidRequest("limit orders need a quantity")
        order = client.place_limit_order(creds, req.symbol, Action.BUY, req.quantity, req.price)
        return {"order": order.model_dump(mode="json")}
    if not req.amount:
        raise InvalidRequest("amount is required")
    bracket = client.buy_with_bracket(creds, req.symbol, req.amount, tp=req.tp, sl=req.sl)
    return bracket.model_dump(mode="json")


@app.post("/exchange/{venue}/sell", dependencies=[Depends(require_secret)])
def exchange_sell(
    req: OrderRequest,
    client: ExchangeClient = Depends(exchange_client),
    creds: Optional[ExchangeCredentials] = Depends(exchange_credentials),
):
    creds = _require_creds(creds)
    if not req.quantity:
        raise InvalidRequest("quantity is required")
    if req.price:
        order = client.place_limit_order(creds, req.symbol, Action.SELL, req.quantity, req.price)
    else:
        order = client.place_market_order(creds, req.symbol, Action.SELL, quantity=req.quantity)
    return {"order": order.model_dump(mode="json")}


@app.post("/exchange/{venue}/cancel", dependencies=[Depends(require_secret)])
def exchange_cancel(
    req: CancelRequest,
    client: ExchangeClient = Depends(exchange_client),
    creds: Optional[ExchangeCredentials] = Depends(exchange_credentials),
):
    ok = client.cancel_order(_require_creds(creds), req.symbol, req.order_id)
    return {"success": ok, "order_id": req.order_id}


@app.get("/exchange/{venue}/balance", dependencies=[Depends(require_secret)])
def exchange_balance(
    client: ExchangeClient = Depends(exchange_client),
    creds: Optional[ExchangeCredentials] = Depends(exchange_credentials),
):
    balances = client.get_balance(_require_creds(creds))
    return {"balances": [b.model_dump(mode="json") for b in balances]}


@app.get("/exchange/{venue}/orders", dependencies=[Depends(require_secret)])
def exchange_orders(
    symbol: Optional[str] = None,
    client: ExchangeClient = Depends(exchange_client),
    creds: Optional[ExchangeCredentials] = Depends(exchange_credentials),
):
    orders = client.get_open_orders(_require_creds(creds), symbol)
    return {"orders": [o.model_dump(mode="json") for o in orders]}
