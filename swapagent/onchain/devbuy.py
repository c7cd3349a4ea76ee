import logging
from typing import Iterable, Optional

from web3 import Web3

from swapagent.config import settings
from swapagent.onchain.abi import DEVBUY_SIGNATURE, encode_function_call
from swapagent.types import Provider, SwapQuote

logger = logging.getLogger("swapagent.devbuy")


class DevBuyRoute:
    """Direct payable ``buy`` on the token-launch venue for fresh tokens."""

    provider = Provider.DIRECT

    def __init__(
        self, contract: Optional[str] = None, tokens: Optional[Iterable[str]] = None
    ):
        self.contract = contract or settings.devbuy_contract
        self._tokens = {t.lower() for t in (tokens if tokens is not None else settings.launch_tokens())}

    def register(self, token: str) -> None:
        self._tokens.add(token.lower())

    def supports(self, token: str) -> bool:
        return token.lower() in self._tokens

    def manual_url(self, token: str) -> str:
        return settings.launch_venue_url.format(token=token)

    def build(self, token: str, amount: int, recipient: str) -> SwapQuote:
        data = encode_function_call(
            DEVBUY_SIGNATURE,
            [Web3.to_checksum_address(token), Web3.to_checksum_address(recipient), 0],
        )
        logger.info(f"[devbuy] building launch-venue buy for {token} amount={amount}")
        return SwapQuote(
            to=self.contract, data=data, value=amount, provider=self.provider
        )
