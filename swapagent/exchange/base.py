import logging
from typing import Optional

from swapagent.config import settings
from swapagent.errors import ProviderError
from swapagent.types import (
    Action,
    Balance,
    BracketResult,
    ExchangeCredentials,
    ExchangeOrder,
    OrderType,
    Ticker,
)

logger = logging.getLogger("swapagent.exchange")


class ExchangeClient:
    """Signed REST client for a centralized venue.

    Credentials are an argument of every private call; the client itself
    only knows its base URL. Venue errors raise ``ProviderError``.
    """

    name = "exchange"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or self.default_base_url()).rstrip("/")
        self.timeout = timeout or settings.http_timeout

    def default_base_url(self) -> str:
        raise NotImplementedError

    def pair(self, token: str, quote_currency: str) -> str:
        raise NotImplementedError

    # --- venue primitives ---

    def place_order(
        self,
        creds: ExchangeCredentials,
        symbol: str,
        side: Action,
        order_type: OrderType,
        quantity: Optional[str] = None,
        quote_amount: Optional[str] = None,
        price: Optional[str] = None,
        position_side: Optional[str] = None,
    ) -> ExchangeOrder:
        raise NotImplementedError

    def place_bracket_leg(
        self,
        creds: ExchangeCredentials,
        symbol: str,
        side: Action,
        quantity: str,
        trigger_price: str,
        leg: str,
        position_side: Optional[str] = None,
    ) -> ExchangeOrder:
        raise NotImplementedError

    def get_order(self, creds: ExchangeCredentials, symbol: str, order_id: str) -> ExchangeOrder:
        raise NotImplementedError

    def cancel_order(self, creds: ExchangeCredentials, symbol: str, order_id: str) -> bool:
        raise NotImplementedError

    def get_balance(self, creds: ExchangeCredentials) -> list[Balance]:
        raise NotImplementedError

    def get_open_orders(
        self, creds: ExchangeCredentials, symbol: Optional[str] = None
    ) -> list[ExchangeOrder]:
        raise NotImplementedError

    def get_order_history(
        self, creds: ExchangeCredentials, symbol: str, limit: int = 100
    ) -> list[ExchangeOrder]:
        raise NotImplementedError

    def get_ticker(self, symbol: str) -> Ticker:
        raise NotImplementedError

    def set_leverage(self, creds: ExchangeCredentials, symbol: str, leverage: str) -> None:
        raise ProviderError(f"{self.name}: leveraged trading is not supported", provider=self.name)

    # --- convenience ---

    def get_price(self, symbol: str) -> str:
        return self.get_ticker(symbol).last_price

    def place_market_order(
        self,
        creds: ExchangeCredentials,
        symbol: str,
        side: Action,
        quantity: Optional[str] = None,
        quote_amount: Optional[str] = None,
    ) -> ExchangeOrder:
        if not quantity and not quote_amount:
            raise ProviderError("market order needs a quantity or quote amount", provider=self.name)
        return self.place_order(
            creds, symbol, side, OrderType.MARKET, quantity=quantity, quote_amount=quote_amount
        )

    def place_limit_order(
        self, creds: ExchangeCredentials, symbol: str, side: Action, quantity: str, price: str
    ) -> ExchangeOrder:
        return self.place_order(creds, symbol, side, OrderType.LIMIT, quantity=quantity, price=price)

    def buy_with_bracket(
        self,
        creds: ExchangeCredentials,
        symbol: str,
        amount: str,
        tp: Optional[str] = None,
        sl: Optional[str] = None,
    ) -> BracketResult:
        """Market-buy ``amount`` of quote currency, then place TP/SL sells."""
        order = self.place_market_order(creds, symbol, Action.BUY, quote_amount=amount)
        return self._bracket(creds, order, tp, sl)

    def open_leveraged_position(
        self,
        creds: ExchangeCredentials,
        symbol: str,
        size: str,
        leverage: str,
        side: Action,
        tp: Optional[str] = None,
        sl: Optional[str] = None,
    ) -> BracketResult:
        position_side = "long" if side is Action.BUY else "short"
        self.set_leverage(creds, symbol, leverage)
        order = self.place_order(
            creds, symbol, side, OrderType.MARKET, quantity=size, position_side=position_side
        )
        return self._bracket(creds, order, tp, sl, position_side=position_side)

    def close_position(
        self, creds: ExchangeCredentials, symbol: str, size: str, side: Action
    ) -> ExchangeOrder:
        """Close a long (side=buy) or short (side=sell) position at market."""
        position_side = "long" if side is Action.BUY else "short"
        return self.place_order(
            creds,
            symbol,
            side.opposite,
            OrderType.MARKET,
            quantity=size,
            position_side=position_side,
        )

    def _filled(self, creds: ExchangeCredentials, order: ExchangeOrder) -> ExchangeOrder:
        if order.filled_quantity > 0:
            return order
        # some venues acknowledge market orders before reporting the fill
        try:
            return self.get_order(creds, order.symbol, order.order_id)
        except ProviderError as e:
            logger.warning(f"[{self.name}] could not read fill for {order.order_id}: {e.message}")
            return order

    def _bracket(
        self,
        creds: ExchangeCredentials,
        order: ExchangeOrder,
        tp: Optional[str],
        sl: Optional[str],
        position_side: Optional[str] = None,
    ) -> BracketResult:
        result = BracketResult(order=order)
        if not tp and not sl:
            return result
        order = self._filled(creds, order)
        result.order = order
        if order.filled_quantity <= 0:
            result.errors.append("primary order reported no filled quantity; brackets skipped")
            return result

        for leg, price in (("take_profit", tp), ("stop_loss", sl)):
            if not price:
                continue
            try:
                placed = self.place_bracket_leg(
                    creds,
                    order.symbol,
                    order.side.opposite,
                    order.executed_quantity,
                    price,
                    leg,
                    position_side=position_side,
                )
            except ProviderError as e:
                logger.warning(f"[{self.name}] {leg} for {order.symbol} failed: {e.message}")
                result.errors.append(f"{leg}: {e.message}")
                continue
            setattr(result, leg, placed)
        return result
