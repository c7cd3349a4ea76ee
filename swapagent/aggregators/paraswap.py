from swapagent.aggregators.base import AggregatorClient
from swapagent.config import settings
from swapagent.types import Provider, SwapQuote


class ParaSwapClient(AggregatorClient):
    name = "paraswap"
    provider = Provider.TERTIARY
    slippage_bps = 300

    def default_base_url(self) -> str:
        return settings.paraswap_base

    def get_route(self, sell_token, buy_token, sell_amount, taker):
        data = self.request(
            "GET",
            "/prices",
            params={
                "srcToken": self.token(sell_token),
                "destToken": self.token(buy_token),
                "amount": str(sell_amount),
                "network": settings.chain_id,
                "side": "SELL",
                "userAddress": taker,
            },
        )
        route = data.get("priceRoute")
        return route if isinstance(route, dict) else None

    def build(self, route, sell_token, buy_token, sell_amount, taker) -> SwapQuote:
        # allowance is granted after quoting, so skip ParaSwap's balance checks
        data = self.request(
            "POST",
            f"/transactions/{settings.chain_id}",
            params={"ignoreChecks": "true"},
            json={
                "srcToken": self.token(sell_token),
                "destToken": self.token(buy_token),
                "srcAmount": str(sell_amount),
                "slippage": self.slippage_bps,
                "priceRoute": route,
                "userAddress": taker,
            },
        )
        return self.make_quote(
            sell_token,
            sell_amount,
            data.get("to"),
            data.get("data"),
            spender=route.get("tokenTransferProxy"),
            expected_out=self.amount(route.get("destAmount")),
        )
