import base64
import hashlib
import hmac
import json
from datetime import datetime, timezone
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


def sign_request(secret: str, timestamp: str, method: str, path: str, body: str = "") -> str:
    message = f"{timestamp}{method.upper()}{path}{body}"
    mac = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(mac).decode()


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _order_type(raw: str) -> OrderType:
    if raw == "market":
        return OrderType.MARKET
    if raw in ("conditional", "oco", "trigger"):
        return OrderType.CONDITIONAL
    return OrderType.LIMIT


class OkxClient(ExchangeClient):
    """OKX v5. Signature: base64 HMAC-SHA256 over ts + METHOD + path + body."""

    name = "okx"

    def default_base_url(self) -> str:
        return settings.okx_base

    def pair(self, token: str, quote_currency: str) -> str:
        return f"{token}-{quote_currency}".upper()

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        body: Optional[dict] = None,
        creds: Optional[ExchangeCredentials] = None,
    ) -> list:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        if params:
            path = f"{path}?{urlencode(params)}"
        payload = json.dumps(body, separators=(",", ":")) if body is not None else ""
        headers = {"Content-Type": "application/json"}
        if creds is not None:
            ts = _timestamp()
            headers.update(
                {
                    "OK-ACCESS-KEY": creds.api_key,
                    "OK-ACCESS-SIGN": sign_request(creds.secret_key, ts, method, path, payload),
                    "OK-ACCESS-TIMESTAMP": ts,
                    "OK-ACCESS-PASSPHRASE": creds.passphrase or "",
                }
            )
            if creds.demo:
                headers["x-simulated-trading"] = "1"

        try:
            r = requests.request(
                method,
                f"{self.base_url}{path}",
                data=payload or None,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"okx: {e}", provider=self.name) from e
        try:
            data: Any = r.json()
        except ValueError as e:
            raise ProviderError(
                f"okx: HTTP {r.status_code} {r.text}", provider=self.name, status=r.status_code
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(f"okx: unexpected response {r.text}", provider=self.name)
        if not 200 <= r.status_code < 300 or str(data.get("code")) != "0":
            msg = data.get("msg") or _first_item_msg(data) or r.text
            logger.warning(f"[okx] {method} {path} failed: {data.get('code')} {msg}")
            raise ProviderError(f"okx: {msg}", provider=self.name, status=r.status_code)
        return data.get("data") or []

    def _item(self, data: list) -> dict:
        if not data:
            raise ProviderError("okx: empty response", provider=self.name)
        item = data[0]
        if str(item.get("sCode", "0")) != "0":
            raise ProviderError(f"okx: {item.get('sMsg')}", provider=self.name)
        return item

    def _order(self, data: dict, fallback: Optional[dict] = None) -> ExchangeOrder:
        fallback = fallback or {}
        quote_sized = fallback.get("tgtCcy") == "quote_ccy"
        return ExchangeOrder(
            symbol=data.get("instId") or fallback.get("instId", ""),
            side=Action(data.get("side") or fallback.get("side", "buy")),
            order_type=_order_type(data.get("ordType") or fallback.get("ordType", "market")),
            order_id=str(data.get("ordId") or data.get("algoId") or ""),
            quantity=data.get("sz") or (None if quote_sized else fallback.get("sz")),
            quote_amount=fallback.get("sz") if quote_sized else None,
            price=data.get("px") or fallback.get("px") or None,
            status=data.get("state") or "live",
            executed_quantity=data.get("accFillSz") or "0",
        )

    # --- public ---

    def get_ticker(self, symbol: str) -> Ticker:
        item = self._item(self.request("GET", "/api/v5/market/ticker", {"instId": symbol}))
        return Ticker(
            symbol=item.get("instId", symbol),
            last_price=item.get("last", "0"),
            high=item.get("high24h"),
            low=item.get("low24h"),
            volume=item.get("vol24h"),
        )

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
        body = {
            "instId": symbol,
            "tdMode": "cross" if position_side else "cash",
            "side": side.value,
            "ordType": order_type.value,
            "sz": quote_amount or quantity,
        }
        if order_type is OrderType.MARKET and not position_side:
            body["tgtCcy"] = "quote_ccy" if quote_amount else "base_ccy"
        if price:
            body["px"] = price
        if position_side:
            body["posSide"] = position_side
        item = self._item(self.request("POST", "/api/v5/trade/order", body=body, creds=creds))
        order = self._order(item, body)
        logger.info(f"[okx] {side.value} {order_type.value} {symbol} -> {order.order_id}")
        return order

    def place_bracket_leg(
        self, creds, symbol, side, quantity, trigger_price, leg, position_side=None
    ) -> ExchangeOrder:
        prefix = "tp" if leg == "take_profit" else "sl"
        body = {
            "instId": symbol,
            "tdMode": "cross" if position_side else "cash",
            "side": side.value,
            "ordType": "conditional",
            "sz": quantity,
            f"{prefix}TriggerPx": trigger_price,
            f"{prefix}OrdPx": "-1",
        }
        if position_side:
            body["posSide"] = position_side
        item = self._item(self.request("POST", "/api/v5/trade/order-algo", body=body, creds=creds))
        order = self._order(item, body)
        return order.model_copy(update={"price": trigger_price})

    def set_leverage(self, creds, symbol, leverage) -> None:
        self.request(
            "POST",
            "/api/v5/account/set-leverage",
            body={"instId": symbol, "lever": str(leverage), "mgnMode": "cross"},
            creds=creds,
        )

    def get_order(self, creds, symbol, order_id) -> ExchangeOrder:
        item = self._item(
            self.request("GET", "/api/v5/trade/order", {"instId": symbol, "ordId": order_id}, creds=creds)
        )
        return self._order(item)

    def cancel_order(self, creds, symbol, order_id) -> bool:
        data = self.request(
            "POST", "/api/v5/trade/cancel-order", body={"instId": symbol, "ordId": order_id}, creds=creds
        )
        self._item(data)
        return True

    def get_balance(self, creds) -> list[Balance]:
        data = self.request("GET", "/api/v5/account/balance", creds=creds)
        details = data[0].get("details", []) if data else []
        return [
            Balance(asset=d["ccy"], free=d.get("availBal", "0"), locked=d.get("frozenBal", "0"))
            for d in details
        ]

    def get_open_orders(self, creds, symbol=None) -> list[ExchangeOrder]:
        data = self.request("GET", "/api/v5/trade/orders-pending", {"instId": symbol}, creds=creds)
        return [self._order(o) for o in data]

    def get_order_history(self, creds, symbol, limit=100) -> list[ExchangeOrder]:
        data = self.request(
            "GET",
            "/api/v5/trade/orders-history-archive",
            {"instType": "SPOT", "instId": symbol, "limit": limit},
            creds=creds,
        )
        return [self._order(o) for o in data]


def _first_item_msg(data: Any) -> Optional[str]:
    items = data.get("data") if isinstance(data, dict) else None
    if items and isinstance(items, list) and isinstance(items[0], dict):
        return items[0].get("sMsg")
    return None
