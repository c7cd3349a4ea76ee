from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NO_LIQUIDITY = "no_liquidity"
    NO_ROUTE_FOUND = "no_route_found"
    PROVIDER_ERROR = "provider_error"
    APPROVAL_FAILURE = "approval_failure"
    NOTHING_TO_SELL = "nothing_to_sell"
    TRANSACTION_FAILURE = "transaction_failure"
    INVALID_REQUEST = "invalid_request"


class SwapAgentError(Exception):
    """Base error. ``kind`` is fixed where the failure happens."""

    kind: ErrorKind = ErrorKind.TRANSACTION_FAILURE

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.kind.value


class InsufficientFunds(SwapAgentError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class NoRouteFound(SwapAgentError):
    kind = ErrorKind.NO_ROUTE_FOUND

    def __init__(self, message: str = "", provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class NoLiquidity(SwapAgentError):
    kind = ErrorKind.NO_LIQUIDITY

    def __init__(self, message: str = "", manual_url: Optional[str] = None):
        super().__init__(message)
        self.manual_url = manual_url


class ProviderError(SwapAgentError):
    kind = ErrorKind.PROVIDER_ERROR

    def __init__(
        self,
        message: str = "",
        provider: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status = status


class ApprovalFailure(SwapAgentError):
    kind = ErrorKind.APPROVAL_FAILURE


class NothingToSell(SwapAgentError):
    kind = ErrorKind.NOTHING_TO_SELL


class TransactionFailure(SwapAgentError):
    kind = ErrorKind.TRANSACTION_FAILURE


class InvalidRequest(SwapAgentError):
    kind = ErrorKind.INVALID_REQUEST
