import logging
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from swapagent.config import settings
from swapagent.errors import InsufficientFunds, TransactionFailure

logger = logging.getLogger("swapagent.chain")

_w3 = None


def get_eth_client(url: str) -> Web3:
    return Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": 20}))


def w3() -> Web3:
    global _w3
    if _w3 is None:
        if not settings.rpc_http:
            raise TransactionFailure("RPC_HTTP is not configured")
        client = get_eth_client(settings.rpc_http)
        if not client.is_connected():
            raise TransactionFailure(f"Web3 failed to connect to {settings.rpc_http}")
        _w3 = client
    return _w3


def _classify(exc: Exception, action: str) -> Exception:
    """Map a node/web3 failure onto the error taxonomy."""
    msg = str(exc)
    lowered = msg.lower()
    if "insufficient funds" in lowered or "exceeds the balance" in lowered:
        return InsufficientFunds(f"Insufficient ETH for gas + {action}")
    return TransactionFailure(f"{action} failed: {msg}")


class ChainClient:
    """Thin wrapper over the RPC. The signing account is passed per call."""

    def __init__(self, web3: Web3 | None = None):
        self._web3 = web3

    @property
    def web3(self) -> Web3:
        return self._web3 if self._web3 is not None else w3()

    def _contract(self, address: str, abi: list):
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def get_balance(self, address: str) -> int:
        try:
            return int(self.web3.eth.get_balance(Web3.to_checksum_address(address)))
        except (Web3Exception, ValueError, OSError) as e:
            raise TransactionFailure(f"balance lookup failed: {e}") from e

    def read_contract(self, address: str, abi: list, fn: str, *args: Any) -> Any:
        try:
            return getattr(self._contract(address, abi).functions, fn)(*args).call()
        except (Web3Exception, ValueError, OSError) as e:
            raise TransactionFailure(f"{fn}() call failed: {e}") from e

    def send_transaction(
        self, wallet: LocalAccount, to: str, data: str, value: int = 0
    ) -> str:
        eth = self.web3.eth
        try:
            tx: dict[str, Any] = {
                "from": wallet.address,
                "to": Web3.to_checksum_address(to),
                "data": data,
                "value": int(value),
                "chainId": settings.chain_id,
                "nonce": eth.get_transaction_count(wallet.address, "pending"),
            }
            tx["gas"] = eth.estimate_gas(tx)
            priority = eth.max_priority_fee
            base_fee = eth.get_block("latest").get("baseFeePerGas", 0)
            tx["maxPriorityFeePerGas"] = priority
            tx["maxFeePerGas"] = 2 * base_fee + priority
            signed = wallet.sign_transaction(tx)
            tx_hash = Web3.to_hex(eth.send_raw_transaction(signed.raw_transaction))
        except ContractLogicError as e:
            raise TransactionFailure(f"transaction reverted: {e}") from e
        except (Web3Exception, ValueError, OSError) as e:
            raise _classify(e, "transaction") from e
        logger.info(f"[chain] sent {tx_hash} to={to} value={value}")
        return tx_hash

    def write_contract(
        self, wallet: LocalAccount, address: str, abi: list, fn: str, *args: Any
    ) -> str:
        data = self._contract(address, abi).encode_abi(fn, args=list(args))
        return self.send_transaction(wallet, address, data, 0)

    def wait_for_receipt(self, tx_hash: str) -> dict:
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=settings.receipt_timeout
            )
        except TimeExhausted as e:
            raise TransactionFailure(f"transaction {tx_hash} not mined: {e}") from e
        except (Web3Exception, ValueError, OSError) as e:
            raise TransactionFailure(f"receipt lookup failed: {e}") from e
        if receipt.get("status") != 1:
            raise TransactionFailure(f"transaction {tx_hash} reverted")
        return dict(receipt)
