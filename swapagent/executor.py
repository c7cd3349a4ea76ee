import logging
from typing import Optional

from eth_account.signers.local import LocalAccount

from swapagent.chains import NATIVE_TOKEN
from swapagent.config import settings
from swapagent.errors import (
    ApprovalFailure,
    InsufficientFunds,
    InvalidRequest,
    NoLiquidity,
    NothingToSell,
    SwapAgentError,
    TransactionFailure,
)
from swapagent.onchain.abi import ERC20_ABI, WETH_ABI
from swapagent.onchain.eth import ChainClient
from swapagent.onchain.units import (
    format_ether,
    format_units,
    is_zero_amount,
    parse_ether,
    parse_units,
)
from swapagent.router import SwapRouter
from swapagent.types import Provider, SwapQuote, TradeResult

logger = logging.getLogger("swapagent.executor")


class TradeExecutor:
    """Buys and sells ERC-20 tokens against native ETH.

    Every public method returns a ``TradeResult``; failures are typed where
    they happen and converted here, so callers never need to catch.
    """

    def __init__(self, chain: Optional[ChainClient] = None, router: Optional[SwapRouter] = None):
        self.chain = chain if chain is not None else ChainClient()
        self.router = router if router is not None else SwapRouter()

    # --- buy ---

    def buy(self, wallet: LocalAccount, token_address: str, eth_amount: str = "0.001") -> TradeResult:
        try:
            return self._buy(wallet, token_address, eth_amount)
        except SwapAgentError as e:
            logger.warning(f"[buy] {token_address} failed: {e.kind.value} {e.message}")
            return TradeResult.failure(e)

    def _buy(self, wallet: LocalAccount, token_address: str, eth_amount: str) -> TradeResult:
        amount_in = parse_ether(eth_amount)
        if amount_in == 0:
            raise InvalidRequest("Buy amount must be greater than zero")

        balance = self.chain.get_balance(wallet.address)
        if balance < amount_in + parse_ether(settings.gas_buffer_eth):
            raise InsufficientFunds(
                f"Insufficient ETH. You have {format_ether(balance)} ETH "
                f"but need {eth_amount} ETH + gas"
            )

        quote = self.router.get_executable_swap(
            NATIVE_TOKEN, token_address, amount_in, wallet.address
        )
        logger.info(f"[buy] {eth_amount} ETH -> {token_address} via {quote.provider.value}")
        tx_hash = self._submit(wallet, quote, token_address)
        self.chain.wait_for_receipt(tx_hash)

        decimals = self.chain.read_contract(token_address, ERC20_ABI, "decimals")
        held = self.chain.read_contract(token_address, ERC20_ABI, "balanceOf", wallet.address)
        return TradeResult(
            success=True,
            transaction_hash=tx_hash,
            amount_received=format_units(held, decimals),
            symbol=self._symbol(token_address),
            provider=quote.provider,
        )

    def _submit(self, wallet: LocalAccount, quote: SwapQuote, token_address: str) -> str:
        try:
            return self.chain.send_transaction(wallet, quote.to, quote.data, quote.value)
        except TransactionFailure as e:
            if quote.provider is not Provider.DIRECT:
                raise
            raise NoLiquidity(
                "Token not tradeable via aggregators yet and the launch-venue buy failed. "
                "Trade it on the launch venue directly.",
                manual_url=self.router.direct.manual_url(token_address),
            ) from e

    def _symbol(self, token_address: str) -> str:
        try:
            return str(self.chain.read_contract(token_address, ERC20_ABI, "symbol"))
        except TransactionFailure:
            return "TOKEN"

    # --- sell ---

    def sell(self, wallet: LocalAccount, token_address: str, amount: str = "all") -> TradeResult:
        try:
            return self._sell(wallet, token_address, amount)
        except SwapAgentError as e:
            logger.warning(f"[sell] {token_address} failed: {e.kind.value} {e.message}")
            return TradeResult.failure(e)

    def _sell(self, wallet: LocalAccount, token_address: str, amount: str) -> TradeResult:
        sell_all = str(amount).strip().lower() == "all"
        if not sell_all and is_zero_amount(amount):
            raise NothingToSell("No tokens to sell")

        decimals = self.chain.read_contract(token_address, ERC20_ABI, "decimals")
        held = self.chain.read_contract(token_address, ERC20_ABI, "balanceOf", wallet.address)
        qty = held if sell_all else parse_units(amount, decimals)
        if qty == 0:
            raise NothingToSell("No tokens to sell")
        if qty > held:
            raise InsufficientFunds(
                f"Not enough tokens. You hold {format_units(held, decimals)}"
            )

        quote = self.router.get_executable_swap(
            token_address, NATIVE_TOKEN, qty, wallet.address
        )
        logger.info(f"[sell] {qty} of {token_address} via {quote.provider.value}")

        try:
            approve_hash = self.chain.write_contract(
                wallet, token_address, ERC20_ABI, "approve", quote.approval_target, qty
            )
            self.chain.wait_for_receipt(approve_hash)
        except TransactionFailure as e:
            raise ApprovalFailure(f"Token approval failed: {e.message}") from e

        before = self.chain.get_balance(wallet.address)
        tx_hash = self.chain.send_transaction(wallet, quote.to, quote.data, quote.value)
        self.chain.wait_for_receipt(tx_hash)
        after = self.chain.get_balance(wallet.address)

        return TradeResult(
            success=True,
            transaction_hash=tx_hash,
            amount_received=format_ether(max(0, after - before)),
            symbol="ETH",
            provider=quote.provider,
        )

    # --- WETH ---

    def weth_balance(self, address: str) -> str:
        try:
            raw = self.chain.read_contract(settings.wrapped_native, WETH_ABI, "balanceOf", address)
        except TransactionFailure:
            return "0"
        return format_ether(raw)

    def unwrap_weth(self, wallet: LocalAccount, amount: str = "all") -> TradeResult:
        try:
            weth = settings.wrapped_native
            held = self.chain.read_contract(weth, WETH_ABI, "balanceOf", wallet.address)
            if held == 0:
                raise NothingToSell("No WETH to unwrap")
            qty = held if str(amount).strip().lower() == "all" else parse_ether(amount)
            if qty == 0:
                raise NothingToSell("No WETH to unwrap")
            if qty > held:
                raise InsufficientFunds(f"Not enough WETH. You have {format_ether(held)} WETH")
            tx_hash = self.chain.write_contract(wallet, weth, WETH_ABI, "withdraw", qty)
            self.chain.wait_for_receipt(tx_hash)
        except SwapAgentError as e:
            logger.warning(f"[unwrap] failed: {e.kind.value} {e.message}")
            return TradeResult.failure(e)
        return TradeResult(
            success=True,
            transaction_hash=tx_hash,
            amount_received=format_ether(qty),
            symbol="ETH",
        )
