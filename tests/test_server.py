import httpx
import pytest
from eth_account import Account

from swapagent import server
from swapagent.errors import NoLiquidity
from swapagent.types import (
    Action,
    Balance,
    BracketResult,
    ExchangeOrder,
    OrderType,
    Post,
    Provider,
    SwapQuote,
    TradeResult,
)

KEY = "0x" + "11" * 32
TOKEN = "0x1111111111111111111111111111111111111111"


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    monkeypatch.setattr(server.settings, "api_secret", None)
    monkeypatch.setattr(server.settings, "wallet_private_key", None)
    monkeypatch.setattr(server.settings, "exchange_api_key", None)
    monkeypatch.setattr(server.settings, "exchange_secret_key", None)
    yield
    server.app.dependency_overrides.clear()


async def call(method, path, **kw):
    transport = httpx.ASGITransport(app=server.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.request(method, path, **kw)


class FakeExecutor:
    def __init__(self):
        self.calls = []

    def buy(self, wallet, token, eth_amount="0.001"):
        self.calls.append(("buy", wallet.address, token, eth_amount))
        return TradeResult(success=True, transaction_hash="0xabc", amount_received="5",
                           symbol="MEME", provider=Provider.PRIMARY)

    def sell(self, wallet, token, amount="all"):
        self.calls.append(("sell", wallet.address, token, amount))
        return TradeResult.failure(NoLiquidity("No liquidity found", manual_url="https://venue/x"))

    def unwrap_weth(self, wallet, amount="all"):
        self.calls.append(("unwrap", wallet.address, amount))
        return TradeResult(success=True, transaction_hash="0xdef", amount_received="0.1", symbol="ETH")


class FakeExchange:
    name = "fake"

    def __init__(self):
        self.calls = []

    def buy_with_bracket(self, creds, symbol, amount, tp=None, sl=None):
        self.calls.append(("bracket", creds.api_key, symbol, amount, tp, sl))
        order = ExchangeOrder(symbol=symbol, side=Action.BUY, order_type=OrderType.MARKET, order_id="1")
        return BracketResult(order=order)

    def place_market_order(self, creds, symbol, side, quantity=None, quote_amount=None):
        self.calls.append(("market", symbol, side, quantity))
        return ExchangeOrder(symbol=symbol, side=side, order_type=OrderType.MARKET, order_id="2")

    def place_limit_order(self, creds, symbol, side, quantity, price):
        self.calls.append(("limit", symbol, side, quantity, price))
        return ExchangeOrder(symbol=symbol, side=side, order_type=OrderType.LIMIT, order_id="3",
                             quantity=quantity, price=price)

    def cancel_order(self, creds, symbol, order_id):
        self.calls.append(("cancel", symbol, order_id))
        return True

    def get_balance(self, creds):
        return [Balance(asset="USDT", free="10")]

    def get_open_orders(self, creds, symbol=None):
        return []


def test_auth_ok_with_and_without_secret(monkeypatch):
    assert server._auth_ok(None) is True
    monkeypatch.setattr(server.settings, "api_secret", "secret123")
    assert server._auth_ok("secret123") is True
    assert server._auth_ok("wrong") is False


@pytest.mark.asyncio
async def test_unauthorized(monkeypatch):
    monkeypatch.setattr(server.settings, "api_secret", "secret123")
    resp = await call("GET", "/signals/scan", headers={"x-api-secret": "wrong"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "bad secret"


@pytest.mark.asyncio
async def test_scan_signals(monkeypatch):
    posts = [
        Post(id="1", title="buying $PEPE, looks ready to pump", upvotes=20, downvotes=2),
        Post(id="2", title="gm"),
    ]
    monkeypatch.setattr(server, "get_feed", lambda sort="new", limit=50: posts)
    resp = await call("GET", "/signals/scan?limit=2")
    assert resp.status_code == 200
    body = resp.json()
    assert body["posts"] == 2
    assert len(body["signals"]) == 1
    assert body["signals"][0]["token"] == "PEPE"
    assert body["signals"][0]["action"] == "buy"
    assert body["signals"][0]["confidence"] == pytest.approx(0.86)


@pytest.mark.asyncio
async def test_buy_requires_wallet():
    server.app.dependency_overrides[server.get_executor] = FakeExecutor
    resp = await call("POST", "/trade/buy", json={"token_address": TOKEN})
    assert resp.status_code == 400
    assert resp.json()["error_kind"] == "invalid_request"


@pytest.mark.asyncio
async def test_buy_with_wallet_header():
    executor = FakeExecutor()
    server.app.dependency_overrides[server.get_executor] = lambda: executor
    resp = await call(
        "POST", "/trade/buy", json={"token_address": TOKEN, "eth_amount": "0.01"},
        headers={"x-wallet-key": KEY},
    )
    assert resp.status_code == 200
    assert resp.json()["transaction_hash"] == "0xabc"
    assert resp.json()["provider"] == "primary"
    assert executor.calls == [("buy", Account.from_key(KEY).address, TOKEN, "0.01")]


@pytest.mark.asyncio
async def test_sell_failure_maps_to_400(monkeypatch):
    monkeypatch.setattr(server.settings, "wallet_private_key", KEY)
    server.app.dependency_overrides[server.get_executor] = FakeExecutor
    resp = await call("POST", "/trade/sell", json={"token_address": TOKEN})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error_kind"] == "no_liquidity"
    assert body["manual_url"] == "https://venue/x"


@pytest.mark.asyncio
async def test_unwrap(monkeypatch):
    monkeypatch.setattr(server.settings, "wallet_private_key", KEY)
    server.app.dependency_overrides[server.get_executor] = FakeExecutor
    resp = await call("POST", "/trade/unwrap", json={})
    assert resp.status_code == 200
    assert resp.json()["amount_received"] == "0.1"


@pytest.mark.asyncio
async def test_invalid_wallet_key():
    server.app.dependency_overrides[server.get_executor] = FakeExecutor
    resp = await call("POST", "/trade/buy", json={"token_address": TOKEN}, headers={"x-wallet-key": "nope"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid wallet key"


@pytest.mark.asyncio
async def test_swap_quote():
    class FakeRouter:
        def get_executable_swap(self, sell_token, buy_token, sell_amount, taker):
            return SwapQuote(to="0x33", data="0x01", value=sell_amount, provider=Provider.SECONDARY)

    server.app.dependency_overrides[server.get_router] = FakeRouter
    resp = await call(
        "POST", "/swap/quote",
        json={"sell_token": "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE", "buy_token": TOKEN,
              "sell_amount": 1000, "taker": "0x9999999999999999999999999999999999999999"},
    )
    assert resp.status_code == 200
    assert resp.json()["provider"] == "secondary"
    assert resp.json()["value"] == 1000


@pytest.mark.asyncio
async def test_swap_quote_without_taker():
    resp = await call("POST", "/swap/quote", json={"sell_token": TOKEN, "buy_token": TOKEN, "sell_amount": 1})
    assert resp.status_code == 400
    assert resp.json()["error_kind"] == "invalid_request"


@pytest.mark.asyncio
async def test_exchange_buy_with_header_credentials():
    ex = FakeExchange()
    server.app.dependency_overrides[server.exchange_client] = lambda: ex
    resp = await call(
        "POST", "/exchange/mexc/buy",
        json={"symbol": "PEPEUSDT", "amount": "10", "tp": "0.00002"},
        headers={"x-exchange-key": "hk", "x-exchange-secret": "hs"},
    )
    assert resp.status_code == 200
    assert resp.json()["order"]["order_id"] == "1"
    assert ex.calls == [("bracket", "hk", "PEPEUSDT", "10", "0.00002", None)]


@pytest.mark.asyncio
async def test_exchange_requires_credentials():
    server.app.dependency_overrides[server.exchange_client] = FakeExchange
    resp = await call("GET", "/exchange/mexc/balance")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Exchange credentials are required"


@pytest.mark.asyncio
async def test_exchange_sell_limit_cancel_and_balance(monkeypatch):
    monkeypatch.setattr(server.settings, "exchange_api_key", "sk")
    monkeypatch.setattr(server.settings, "exchange_secret_key", "ss")
    ex = FakeExchange()
    server.app.dependency_overrides[server.exchange_client] = lambda: ex

    sell = await call("POST", "/exchange/okx/sell", json={"symbol": "PEPE-USDT", "quantity": "5"})
    limit = await call("POST", "/exchange/okx/sell", json={"symbol": "PEPE-USDT", "quantity": "5", "price": "1"})
    cancel = await call("POST", "/exchange/okx/cancel", json={"symbol": "PEPE-USDT", "order_id": "3"})
    balance = await call("GET", "/exchange/okx/balance")
    orders = await call("GET", "/exchange/okx/orders?symbol=PEPE-USDT")

    assert sell.json()["order"]["order_id"] == "2"
    assert limit.json()["order"]["order_type"] == "limit"
    assert cancel.json() == {"success": True, "order_id": "3"}
    assert balance.json()["balances"][0]["asset"] == "USDT"
    assert orders.json() == {"orders": []}
    assert [c[0] for c in ex.calls] == ["market", "limit", "cancel"]


@pytest.mark.asyncio
async def test_unknown_venue_is_invalid_request(monkeypatch):
    monkeypatch.setattr(server.settings, "exchange_api_key", "sk")
    monkeypatch.setattr(server.settings, "exchange_secret_key", "ss")
    resp = await call("GET", "/exchange/binance/balance")
    assert resp.status_code == 400
    assert resp.json()["error_kind"] == "invalid_request"


@pytest.mark.asyncio
async def test_execute_signal_through_bridge():
    seen = {}

    class FakeBridge:
        venue = "exchange"

        def execute(self, signal, credentials):
            seen["signal"] = signal
            seen["credentials"] = credentials
            return TradeResult(success=True, symbol="PEPEUSDT", order_id="9")

    server.app.dependency_overrides[server.get_bridge] = FakeBridge
    resp = await call(
        "POST", "/signals/execute",
        json={"action": "buy", "token": "$pepe", "tp": "2"},
        headers={"x-exchange-key": "k", "x-exchange-secret": "s"},
    )
    assert resp.status_code == 200
    assert resp.json()["order_id"] == "9"
    assert seen["signal"].token == "PEPE"
    assert seen["signal"].take_profit == "2"
    assert seen["credentials"].exchange.api_key == "k"
    assert seen["credentials"].wallet is None
