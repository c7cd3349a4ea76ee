from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from swapagent.errors import ErrorKind, NoLiquidity, SwapAgentError


class Action(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Action":
        return Action.SELL if self is Action.BUY else Action.BUY


class Provider(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"
    QUATERNARY = "quaternary"
    DIRECT = "direct"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    CONDITIONAL = "conditional"


# --- Social feed ---


class PostAuthor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""


class Post(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    content: Optional[str] = None
    author: PostAuthor = Field(default_factory=PostAuthor)
    upvotes: int = 0
    downvotes: int = 0

    @property
    def text(self) -> str:
        return f"{self.title} {self.content or ''}"


class SignalSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    post_id: str
    title: str
    author: str
    upvotes: int


class TradingSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: Action
    token: str
    amount: str | None = None
    take_profit: str | None = None
    stop_loss: str | None = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    source: SignalSource

    @property
    def key(self) -> tuple[Action, str]:
        return (self.action, self.token)


# --- On-chain ---


class SwapQuote(BaseModel):
    """Executable swap transaction, single use.

    ``value`` is the native amount to attach: the sell amount for
    native -> token swaps and zero for token -> native swaps.
    ``spender`` is the allowance target when it differs from ``to``.
    """

    model_config = ConfigDict(frozen=True)

    to: str
    data: str
    value: int = 0
    provider: Provider
    spender: str | None = None
    expected_out: int | None = None

    @property
    def approval_target(self) -> str:
        return self.spender or self.to


class TradeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    transaction_hash: str | None = None
    amount_received: str | None = None
    symbol: str | None = None
    order_id: str | None = None
    provider: Provider | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    manual_url: str | None = None

    @classmethod
    def failure(cls, exc: SwapAgentError) -> "TradeResult":
        return cls(
            success=False,
            error_kind=exc.kind,
            error=exc.message,
            manual_url=exc.manual_url if isinstance(exc, NoLiquidity) else None,
        )


# --- Centralized exchange ---


class ExchangeCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str
    secret_key: str = Field(repr=False)
    passphrase: str | None = Field(default=None, repr=False)
    demo: bool = False


class ExchangeOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    side: Action
    order_type: OrderType
    order_id: str
    quantity: str | None = None
    quote_amount: str | None = None
    price: str | None = None
    status: str = "new"
    executed_quantity: str = "0"

    @property
    def filled_quantity(self) -> Decimal:
        try:
            return Decimal(self.executed_quantity or "0")
        except InvalidOperation:
            return Decimal(0)


class BracketResult(BaseModel):
    order: ExchangeOrder
    take_profit: ExchangeOrder | None = None
    stop_loss: ExchangeOrder | None = None
    errors: list[str] = Field(default_factory=list)


class Balance(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: str
    free: str
    locked: str = "0"


class Ticker(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    last_price: str
    high: str | None = None
    low: str | None = None
    volume: str | None = None
