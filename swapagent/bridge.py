import logging
from dataclasses import dataclass
from typing import Optional

from eth_account.signers.local import LocalAccount

from swapagent.config import settings
from swapagent.errors import InvalidRequest, SwapAgentError
from swapagent.exchange.base import ExchangeClient
from swapagent.exchange.venues import get_exchange
from swapagent.executor import TradeExecutor
from swapagent.types import Action, ExchangeCredentials, TradeResult, TradingSignal

logger = logging.getLogger("swapagent.bridge")


@dataclass
class TradeCredentials:
    exchange: Optional[ExchangeCredentials] = None
    wallet: Optional[LocalAccount] = None


class SignalBridge:
    """Turns a ``TradingSignal`` into a trade on the configured venue.

    ``venue="exchange"`` trades ``<TOKEN><QUOTE>`` on a centralized exchange,
    ``venue="onchain"`` resolves the symbol through ``TOKEN_ADDRESSES`` and
    swaps against ETH.
    """

    def __init__(
        self,
        exchange: Optional[ExchangeClient] = None,
        executor: Optional[TradeExecutor] = None,
        venue: Optional[str] = None,
        quote_currency: Optional[str] = None,
        default_size: Optional[str] = None,
    ):
        self.venue = (venue or settings.signal_venue).lower()
        self._exchange = exchange
        self._executor = executor
        self.quote_currency = quote_currency or settings.signal_quote_currency
        self.default_size = default_size or settings.default_trade_size

    @property
    def exchange(self) -> ExchangeClient:
        if self._exchange is None:
            self._exchange = get_exchange(settings.signal_exchange)
        return self._exchange

    @property
    def executor(self) -> TradeExecutor:
        if self._executor is None:
            self._executor = TradeExecutor()
        return self._executor

    def execute(self, signal: TradingSignal, credentials: TradeCredentials) -> TradeResult:
        logger.info(
            f"[bridge] {signal.action.value} {signal.token} venue={self.venue} "
            f"amount={signal.amount} tp={signal.take_profit} sl={signal.stop_loss}"
        )
        try:
            if self.venue == "exchange":
                return self._on_exchange(signal, credentials)
            if self.venue == "onchain":
                return self._on_chain(signal, credentials)
            raise InvalidRequest(f"Unknown signal venue: {self.venue}")
        except SwapAgentError as e:
            logger.warning(f"[bridge] {signal.token} failed: {e.kind.value} {e.message}")
            return TradeResult.failure(e)

    def _on_exchange(self, signal: TradingSignal, credentials: TradeCredentials) -> TradeResult:
        if credentials.exchange is None:
            raise InvalidRequest("Exchange credentials are required")
        creds = credentials.exchange
        symbol = self.exchange.pair(signal.token, self.quote_currency)
        size = signal.amount or self.default_size

        if signal.action is Action.BUY:
            bracket = self.exchange.buy_with_bracket(
                creds, symbol, size, tp=signal.take_profit, sl=signal.stop_loss
            )
            order = bracket.order
            errors = bracket.errors
        else:
            # sells are sized in base units
            order = self.exchange.place_market_order(creds, symbol, Action.SELL, quantity=size)
            errors = []

        return TradeResult(
            success=True,
            symbol=symbol,
            order_id=order.order_id,
            amount_received=order.executed_quantity if order.filled_quantity > 0 else None,
            error="; ".join(errors) or None,
        )

    def _on_chain(self, signal: TradingSignal, credentials: TradeCredentials) -> TradeResult:
        if credentials.wallet is None:
            raise InvalidRequest("A wallet is required for on-chain trades")
        address = settings.token_address(signal.token)
        if not address:
            raise InvalidRequest(f"No contract address configured for {signal.token}")

        # signal amounts are quote-currency sizes, not ETH or token units
        if signal.action is Action.BUY:
            return self.executor.buy(
                credentials.wallet, address, settings.default_onchain_size_eth
            )
        return self.executor.sell(credentials.wallet, address, "all")
