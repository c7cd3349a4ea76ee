from swapagent.aggregators.base import AggregatorClient
from swapagent.chains import ZERO_ADDRESS
from swapagent.config import settings
from swapagent.types import Provider, SwapQuote


class OdosClient(AggregatorClient):
    name = "odos"
    provider = Provider.SECONDARY
    slippage_bps = 300
    native_token = ZERO_ADDRESS

    def default_base_url(self) -> str:
        return settings.odos_base

    def get_route(self, sell_token, buy_token, sell_amount, taker):
        data = self.request(
            "POST",
            "/sor/quote/v2",
            json={
                "chainId": settings.chain_id,
                "inputTokens": [
                    {"tokenAddress": self.token(sell_token), "amount": str(sell_amount)}
                ],
                "outputTokens": [{"tokenAddress": self.token(buy_token), "proportion": 1}],
                "userAddr": taker,
                "slippageLimitPercent": self.slippage_bps / 100,
                "disableRFQs": True,
            },
        )
        return data if data.get("pathId") else None

    def build(self, route, sell_token, buy_token, sell_amount, taker) -> SwapQuote:
        data = self.request(
            "POST",
            "/sor/assemble",
            json={"userAddr": taker, "pathId": route["pathId"]},
        )
        tx = data.get("transaction")
        if not isinstance(tx, dict):
            raise self.no_route("assemble returned no transaction")
        out_amounts = route.get("outAmounts")
        if not isinstance(out_amounts, list):
            out_amounts = []
        return self.make_quote(
            sell_token,
            sell_amount,
            tx.get("to"),
            tx.get("data"),
            expected_out=self.amount(out_amounts[0]) if out_amounts else None,
        )
