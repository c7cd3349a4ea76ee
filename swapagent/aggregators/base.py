import logging
from typing import Any, Optional

import requests

from swapagent.chains import NATIVE_TOKEN, is_native
from swapagent.config import settings
from swapagent.errors import NoRouteFound, ProviderError
from swapagent.types import Provider, SwapQuote

logger = logging.getLogger("swapagent.aggregators")


class AggregatorClient:
    """One swap aggregator behind a uniform route -> build protocol.

    ``quote_and_build`` raises ``NoRouteFound`` when the provider has no
    route or cannot build one, and ``ProviderError`` on transport failures
    and non-2xx responses. No retries here; the router owns fallback.
    """

    name = "aggregator"
    provider: Provider = Provider.PRIMARY
    slippage_bps = 300
    native_token = NATIVE_TOKEN

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or self.default_base_url()).rstrip("/")
        self.timeout = timeout or settings.http_timeout

    def default_base_url(self) -> str:
        raise NotImplementedError

    # --- protocol ---

    def get_route(self, sell_token: str, buy_token: str, sell_amount: int, taker: str) -> Any:
        raise NotImplementedError

    def build(
        self, route: Any, sell_token: str, buy_token: str, sell_amount: int, taker: str
    ) -> SwapQuote:
        raise NotImplementedError

    def quote_and_build(
        self, sell_token: str, buy_token: str, sell_amount: int, taker: str
    ) -> SwapQuote:
        route = self.get_route(sell_token, buy_token, sell_amount, taker)
        if not route:
            raise NoRouteFound(f"{self.name}: no route found", provider=self.name)
        return self.build(route, sell_token, buy_token, sell_amount, taker)

    # --- helpers ---

    def token(self, address: str) -> str:
        return self.native_token if is_native(address) else address

    def no_route(self, detail: str = "no route found") -> NoRouteFound:
        return NoRouteFound(f"{self.name}: {detail}", provider=self.name)

    def amount(self, value: Any) -> Optional[int]:
        """Base-unit integer from a response field; garbage means no route."""
        if value is None or value == "":
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise self.no_route(f"bad amount {value!r}") from e

    def make_quote(
        self,
        sell_token: str,
        sell_amount: int,
        to: Optional[str],
        data: Optional[str],
        spender: Optional[str] = None,
        expected_out: Optional[int] = None,
    ) -> SwapQuote:
        if not isinstance(to, str) or not isinstance(data, str) or not to or not data:
            raise self.no_route("malformed build response")
        return SwapQuote(
            to=to,
            data=data,
            value=sell_amount if is_native(sell_token) else 0,
            provider=self.provider,
            spender=spender,
            expected_out=expected_out,
        )

    def request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            r = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ProviderError(f"{self.name}: {e}", provider=self.name) from e
        if not 200 <= r.status_code < 300:
            logger.warning(f"[{self.name}] HTTP {r.status_code} {r.text[:200]}")
            raise ProviderError(
                f"{self.name}: HTTP {r.status_code} {r.text}",
                provider=self.name,
                status=r.status_code,
            )
        try:
            body = r.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.name}: malformed JSON response", provider=self.name, status=r.status_code
            ) from e
        if not isinstance(body, dict):
            raise ProviderError(
                f"{self.name}: unexpected {type(body).__name__} response",
                provider=self.name,
                status=r.status_code,
            )
        return body
