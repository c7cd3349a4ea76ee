from swapagent.aggregators.base import AggregatorClient
from swapagent.config import settings
from swapagent.types import Provider, SwapQuote


class KyberSwapClient(AggregatorClient):
    name = "kyberswap"
    provider = Provider.PRIMARY
    slippage_bps = 500

    def default_base_url(self) -> str:
        return settings.kyber_base

    def _headers(self) -> dict:
        return {"Accept": "application/json", "X-Client-Id": settings.kyber_client_id}

    def get_route(self, sell_token, buy_token, sell_amount, taker):
        data = self.request(
            "GET",
            f"/{settings.kyber_chain}/api/v1/routes",
            params={
                "tokenIn": self.token(sell_token),
                "tokenOut": self.token(buy_token),
                "amountIn": str(sell_amount),
                "saveGas": "false",
                "gasInclude": "true",
            },
            headers=self._headers(),
        )
        route = data.get("data")
        if not isinstance(route, dict) or not isinstance(route.get("routeSummary"), dict):
            return None
        return route

    def build(self, route, sell_token, buy_token, sell_amount, taker) -> SwapQuote:
        data = self.request(
            "POST",
            f"/{settings.kyber_chain}/api/v1/route/build",
            json={
                "routeSummary": route["routeSummary"],
                "sender": taker,
                "recipient": taker,
                "slippageTolerance": self.slippage_bps,
            },
            headers=self._headers(),
        )
        built = data.get("data")
        if not isinstance(built, dict) or not built.get("data"):
            raise self.no_route("build returned no transaction")
        amount_out = built.get("amountOut") or route["routeSummary"].get("amountOut")
        return self.make_quote(
            sell_token,
            sell_amount,
            built.get("routerAddress") or route.get("routerAddress"),
            built["data"],
            expected_out=self.amount(amount_out),
        )
