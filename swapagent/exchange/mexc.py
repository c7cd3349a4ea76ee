import hashlib
import hmac
import time
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from swapagent.config import settings
from swapagent.errors import ProviderError
from swapagent.exchange.base import ExchangeClient, logger
from swapagent.types import (
    Action,
    Balance,
    ExchangeCredentials,
    ExchangeOrder,
    OrderType,
    Ticker,
)


def sign_query(secret: str, query: str) -> str:
    return hmac.new(secret.encode(), query.encode(), hashlib.sha256).hexdigest()


def _order_type(raw: str) -> OrderType:
    return OrderType.MARKET if raw.upper() == "MARKET" else OrderType.LIMIT


class MexcClient(ExchangeClient):
    """MEXC spot v3. Signature: HMAC-SHA256 hex over the query string."""

    name = "mexc"

    def default_base_url(self) -> str:
        return settings.mexc_base

    def pair(self, token: str, quote_currency: str) -> str:
        return f"{token}{quote_currency}".upper()

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        creds: Optional[ExchangeCredentials] = None,
    ) -> Any:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        headers = {"Content-Type": "application/json"}
        if creds is not None:
            params["timestamp"] = str(int(time.time() * 1000))
            query = urlencode(params)
            query = f"{query}&signature={sign_query(creds.secret_key, query)}"
            headers["X-MEXC-APIKEY"] = creds.api_key
        else:
            query = urlencode(params)
        url = f"{self.base_url}{path}" + (f"?{query}" if query else "")

        try:
            r = requests.request(method, url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ProviderError(f"mexc: {e}", provider=self.name) from e
        try:
            data = r.json()
        except ValueError as e:
            raise ProviderError(
                f"mexc: HTTP {r.status_code} {r.text}", provider=self.name, status=r.status_code
            ) from e
        code = data.get("code") if isinstance(data, dict) else None
        if not 200 <= r.status_code < 300 or (code not in (None, 0, 200, "0", "200")):
            msg = data.get("msg") if isinstance(data, dict) else r.text
            logger.warning(f"[mexc] {method} {path} failed: {code} {msg}")
            raise ProviderError(f"mexc: {msg}", provider=self.name, status=r.status_code)
        return data

    def _order(self, data: dict, fallback: Optional[dict] = None) -> ExchangeOrder:
        fallback = fallback or {}
        return ExchangeOrder(
            symbol=data.get("symbol") or fallback.get("symbol", ""),
            side=Action((data.get("side") or fallback.get("side", "BUY")).lower()),
            order_type=_order_type(data.get("type") or fallback.get("type", "MARKET")),
            order_id=str(data.get("orderId", "")),
            quantity=data.get("origQty") or fallback.get("quantity"),
            quote_amount=data.get("origQuoteOrderQty") or fallback.get("quoteOrderQty"),
            price=data.get("price") or fallback.get("price"),
            status=(data.get("status") or "NEW").lower(),
            executed_quantity=data.get("executedQty") or "0",
        )

    # --- public ---

    def get_ticker(self, symbol: str) -> Ticker:
        data = self.request("GET", "/api/v3/ticker/24hr", {"symbol": symbol})
        return Ticker(
            symbol=data.get("symbol", symbol),
            last_price=data.get("lastPrice", "0"),
            high=data.get("highPrice"),
            low=data.get("lowPrice"),
            volume=data.get("volume"),
        )

    def get_price(self, symbol: str) -> str:
        data = self.request("GET", "/api/v3/ticker/price", {"symbol": symbol})
        return data.get("price", "0")

    # --- private ---

    def place_order(
        self,
        creds,
        symbol,
        side,
        order_type,
        quantity=None,
        quote_amount=None,
        price=None,
        position_side=None,
    ) -> ExchangeOrder:
        if position_side is not None:
            raise ProviderError("mexc: spot API has no position side", provider=self.name)
        params = {
            "symbol": symbol,
            "side": side.value.upper(),
            "type": order_type.value.upper(),
            "quantity": quantity,
            "quoteOrderQty": quote_amount,
            "price": price,
        }
        data = self.request("POST", "/api/v3/order", params, creds)
        order = self._order(data, params)
        logger.info(f"[mexc] {side.value} {order_type.value} {symbol} -> {order.order_id}")
        return order

    def place_bracket_leg(
        self, creds, symbol, side, quantity, trigger_price, leg, position_side=None
    ) -> ExchangeOrder:
        # spot v3 has no trigger orders: both legs rest as limit orders
        return self.place_limit_order(creds, symbol, side, quantity, trigger_price)

    def get_order(self, creds, symbol, order_id) -> ExchangeOrder:
        data = self.request("GET", "/api/v3/order", {"symbol": symbol, "orderId": order_id}, creds)
        return self._order(data)

    def cancel_order(self, creds, symbol, order_id) -> bool:
        self.request("DELETE", "/api/v3/order", {"symbol": symbol, "orderId": order_id}, creds)
        return True

    def get_balance(self, creds) -> list[Balance]:
        data = self.request("GET", "/api/v3/account", {}, creds)
        balances = []
        for b in data.get("balances") or []:
            if float(b.get("free") or 0) > 0 or float(b.get("locked") or 0) > 0:
                balances.append(Balance(asset=b["asset"], free=b["free"], locked=b.get("locked", "0")))
        return balances

    def get_open_orders(self, creds, symbol=None) -> list[ExchangeOrder]:
        data = self.request("GET", "/api/v3/openOrders", {"symbol": symbol}, creds)
        return [self._order(o) for o in data] if isinstance(data, list) else []

    def get_order_history(self, creds, symbol, limit=100) -> list[ExchangeOrder]:
        data = self.request("GET", "/api/v3/allOrders", {"symbol": symbol, "limit": limit}, creds)
        return [self._order(o) for o in data] if isinstance(data, list) else []
