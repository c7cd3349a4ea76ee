from swapagent.aggregators.base import AggregatorClient
from swapagent.config import settings
from swapagent.types import Provider, SwapQuote


class OneInchClient(AggregatorClient):
    name = "1inch"
    provider = Provider.QUATERNARY
    slippage_bps = 300

    def default_base_url(self) -> str:
        return settings.oneinch_base

    def _headers(self) -> dict:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {settings.oneinch_api_key or ''}",
        }

    def get_route(self, sell_token, buy_token, sell_amount, taker):
        data = self.request(
            "GET",
            f"/swap/v6.0/{settings.chain_id}/quote",
            params={
                "src": self.token(sell_token),
                "dst": self.token(buy_token),
                "amount": str(sell_amount),
            },
            headers=self._headers(),
        )
        return data if data.get("dstAmount") else None

    def build(self, route, sell_token, buy_token, sell_amount, taker) -> SwapQuote:
        data = self.request(
            "GET",
            f"/swap/v6.0/{settings.chain_id}/swap",
            params={
                "src": self.token(sell_token),
                "dst": self.token(buy_token),
                "amount": str(sell_amount),
                "from": taker,
                "origin": taker,
                "slippage": self.slippage_bps / 100,
                "disableEstimate": "true",
            },
            headers=self._headers(),
        )
        tx = data.get("tx")
        if not isinstance(tx, dict):
            raise self.no_route("swap returned no transaction")
        return self.make_quote(
            sell_token,
            sell_amount,
            tx.get("to"),
            tx.get("data"),
            expected_out=self.amount(route["dstAmount"]),
        )
