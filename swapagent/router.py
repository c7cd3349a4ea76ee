import logging
from typing import Optional, Sequence

from swapagent.aggregators.base import AggregatorClient
from swapagent.aggregators.kyberswap import KyberSwapClient
from swapagent.aggregators.odos import OdosClient
from swapagent.aggregators.oneinch import OneInchClient
from swapagent.aggregators.paraswap import ParaSwapClient
from swapagent.chains import is_native
from swapagent.errors import NoLiquidity, NoRouteFound, ProviderError
from swapagent.onchain.devbuy import DevBuyRoute
from swapagent.types import SwapQuote

logger = logging.getLogger("swapagent.router")


def default_providers() -> list[AggregatorClient]:
    """Fixed priority: primary, secondary, tertiary, quaternary."""
    return [KyberSwapClient(), OdosClient(), ParaSwapClient(), OneInchClient()]


class SwapRouter:
    """Sequential fallback chain over the aggregators.

    The first provider that returns an executable quote wins; prices are
    not compared. When every provider fails on a native -> launch-venue
    token buy, the direct dev-buy call is used instead.
    """

    def __init__(
        self,
        providers: Optional[Sequence[AggregatorClient]] = None,
        direct: Optional[DevBuyRoute] = None,
    ):
        self.providers = list(providers) if providers is not None else default_providers()
        self.direct = direct if direct is not None else DevBuyRoute()

    def get_executable_swap(
        self, sell_token: str, buy_token: str, sell_amount: int, taker: str
    ) -> SwapQuote:
        failures = []
        for client in self.providers:
            try:
                quote = client.quote_and_build(sell_token, buy_token, sell_amount, taker)
            except (NoRouteFound, ProviderError) as e:
                logger.info(f"[router] {client.name} failed: {e.message}")
                failures.append(f"{client.name}: {e.kind.value}")
                continue
            logger.info(f"[router] using {client.name} ({quote.provider.value}) for {buy_token}")
            return quote

        if is_native(sell_token) and self.direct.supports(buy_token):
            logger.info(f"[router] all aggregators failed, falling back to dev-buy for {buy_token}")
            return self.direct.build(buy_token, sell_amount, taker)

        manual_url = self.direct.manual_url(buy_token) if self.direct.supports(buy_token) else None
        logger.warning(f"[router] no liquidity for {sell_token}->{buy_token} ({', '.join(failures)})")
        raise NoLiquidity(
            "No liquidity found for this token yet. Try again later.",
            manual_url=manual_url,
        )
