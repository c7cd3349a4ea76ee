import json
import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from eth_account import Account

from swapagent.chains import NATIVE_TOKEN
from swapagent.config.settings import settings
from swapagent.errors import SwapAgentError
from swapagent.executor import TradeExecutor
from swapagent.onchain.units import parse_units
from swapagent.router import SwapRouter
from swapagent.signals.extractor import extract_signals
from swapagent.signals.feed import get_feed
from swapagent.types import TradeResult

app = typer.Typer()

# --- Logging setup ---
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(threadName)s - %(message)s",
)
logger = logging.getLogger("swapagent")


def _wallet():
    if not settings.wallet_private_key:
        print("WALLET_PRIVATE_KEY is not set")
        raise typer.Exit(code=1)
    return Account.from_key(settings.wallet_private_key)


def _report(result: TradeResult):
    if result.success:
        print(
            f"[ok] tx={result.transaction_hash} received={result.amount_received} "
            f"{result.symbol or ''} via={result.provider.value if result.provider else '-'}"
        )
        return
    print(f"[error] {result.error_kind.value if result.error_kind else '?'}: {result.error}")
    if result.manual_url:
        print(f"  try manually: {result.manual_url}")
    raise typer.Exit(code=1)


@app.command()
def scan(
    file: Optional[Path] = typer.Option(None, help="read posts from a JSON file instead of the feed"),
    sort: str = typer.Option("new", help="feed sort order"),
    limit: int = typer.Option(50, help="posts to fetch"),
    min_confidence: float = typer.Option(0.0, help="hide weaker signals"),
):
    """Extract trading signals from recent posts."""
    if file is not None:
        data = json.loads(file.read_text())
        posts = data.get("posts", []) if isinstance(data, dict) else data
    else:
        try:
            posts = get_feed(sort=sort, limit=limit)
        except SwapAgentError as e:
            print(f"[error] {e.message}")
            raise typer.Exit(code=1)

    signals = [s for s in extract_signals(posts) if s.confidence >= min_confidence]
    logger.info(f"[scan] {len(posts)} posts -> {len(signals)} signals")
    if not signals:
        print("no signals")
        return
    for s in signals:
        print(
            f"{s.action.value.upper():4} {s.token:10} conf={s.confidence:.2f} "
            f"amount={s.amount or '-'} tp={s.take_profit or '-'} sl={s.stop_loss or '-'} "
            f"by={s.source.author or '?'} post={s.source.post_id}"
        )


@app.command()
def quote(
    buy_token: str = typer.Argument(..., help="token to receive"),
    amount: str = typer.Argument(..., help="amount to sell, in whole units"),
    sell_token: str = typer.Option(NATIVE_TOKEN, help="token to sell (default: native ETH)"),
    decimals: int = typer.Option(18, help="decimals of the sell token"),
    taker: Optional[str] = typer.Option(None, help="taker address (default: configured wallet)"),
):
    """Show the executable swap the router would use."""
    try:
        sell_amount = parse_units(amount, decimals)
        taker = taker or _wallet().address
        q = SwapRouter().get_executable_swap(sell_token, buy_token, sell_amount, taker)
    except SwapAgentError as e:
        print(f"[error] {e.kind.value}: {e.message}")
        raise typer.Exit(code=1)
    print(f"[quote] provider={q.provider.value} to={q.to} value={q.value} spender={q.approval_target}")
    if q.expected_out is not None:
        print(f"  expected_out={q.expected_out}")


@app.command()
def buy(
    token_address: str = typer.Argument(..., help="token contract address"),
    eth_amount: str = typer.Option("0.001", help="ETH to spend"),
):
    """Buy a token with ETH from the configured wallet."""
    _report(TradeExecutor().buy(_wallet(), token_address, eth_amount))


@app.command()
def sell(
    token_address: str = typer.Argument(..., help="token contract address"),
    amount: str = typer.Option("all", help='token amount, or "all"'),
):
    """Sell a token for ETH from the configured wallet."""
    _report(TradeExecutor().sell(_wallet(), token_address, amount))


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="bind address"),
    port: int = typer.Option(8000, help="bind port"),
):
    """Run the HTTP API."""
    logger.info(f"Starting SwapAgent API on {host}:{port} (network={settings.network})")
    uvicorn.run("swapagent.server:app", host=host, port=port)


if __name__ == "__main__":
    app()
