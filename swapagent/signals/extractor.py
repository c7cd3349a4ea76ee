# swapagent/signals/extractor.py
"""Heuristic extraction of trading signals from social posts.

Pattern matches give candidate symbols, votes give a base confidence and
curated known tokens get a boost. Output confidence is advisory only.
"""

import re
from typing import Any, Iterable, Optional, Union

from swapagent.types import Action, Post, SignalSource, TradingSignal

KNOWN_TOKENS = frozenset(
    """
    BTC ETH SOL DOGE XRP ADA AVAX DOT MATIC LINK UNI AAVE ATOM FTM NEAR APT
    ARB OP SUI SEI BONK PEPE SHIB WIF FLOKI MEME BOME SLERF POPCAT JUP PYTH
    JTO TIA INJ RENDER FET TAO WLD ARKM ONDO ENA ETHFI ALT STRK MANTA DYM
    PIXEL PORTAL LTC BCH ETC FIL ICP HBAR VET ALGO EGLD SAND MANA AXS GMT APE
    GALA ENJ IMX BLUR MAGIC PRIME STX ORDI SATS RATS MTRX AI GPT AGIX OCEAN
    RNDR
    """.split()
)

# Words the intent patterns catch that are never tickers
COMMON_WORDS = frozenset(
    """
    THE AND FOR ARE BUT NOT YOU ALL CAN HER WAS ONE OUR OUT HAS HIS HOW ITS
    MAY NEW NOW OLD SEE WAY WHO BOY DID GET LET PUT SAY SHE TOO USE USD USDT
    COIN TOKEN THIS THAT WITH FROM HAVE BEEN WILL WHAT WHEN YOUR JUST MORE
    SOME THAN THEM THEN VERY WOULD ABOUT
    """.split()
)

_SYM = r"(\$?[a-z]{2,10})"
_DSYM = r"(\$[a-z]{2,10})"


def _compile(patterns: list[str]) -> list[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


BUY_PATTERNS = _compile(
    [
        rf"\bbuy\s+{_SYM}\b",
        rf"\bbuying\s+{_SYM}\b",
        rf"\bbought\s+{_SYM}\b",
        rf"\blong\s+{_SYM}\b",
        rf"\blonging\s+{_SYM}\b",
        rf"\bbullish\s+(?:on\s+)?{_SYM}\b",
        rf"\baccumulate\s+{_SYM}\b",
        rf"\baccumulating\s+{_SYM}\b",
        rf"\bload\s+(?:up\s+)?(?:on\s+)?{_SYM}\b",
        rf"\bloading\s+{_SYM}\b",
        rf"\bentry\s+(?:on\s+)?{_SYM}\b",
        rf"\bape\s+(?:into\s+)?{_SYM}\b",
        rf"\baping\s+(?:into\s+)?{_SYM}\b",
        rf"\baped\s+(?:into\s+)?{_SYM}\b",
        rf"\bfomo\s+(?:into\s+)?{_SYM}\b",
        rf"\bstack\s+(?:more\s+)?{_SYM}\b",
        rf"\bstacking\s+{_SYM}\b",
        rf"\bgrab\s+(?:some\s+)?{_SYM}\b",
        rf"\bscoop\s+(?:up\s+)?{_SYM}\b",
        rf"\bscooping\s+{_SYM}\b",
        # sentiment
        rf"{_DSYM}\s+(?:to the moon|moon|pump|pumping|going up|breaking out|breakout|ripping|mooning|sending|flying)",
        rf"{_DSYM}\s+(?:looks good|looking good|bullish|strong|ready|primed|set to run|about to run)",
        rf"(?:bullish|long|buy|grab|load|stack)\s+(?:on\s+)?{_DSYM}",
        # price action
        rf"{_DSYM}\s+(?:\d+x|100x|10x|5x|2x|will pump|gonna pump|about to pump)",
        rf"{_DSYM}\s+(?:easy money|free money|alpha|gem|hidden gem|undervalued)",
    ]
)

SELL_PATTERNS = _compile(
    [
        rf"\bsell\s+{_SYM}\b",
        rf"\bselling\s+{_SYM}\b",
        rf"\bsold\s+{_SYM}\b",
        rf"\bshort\s+{_SYM}\b",
        rf"\bshorting\s+{_SYM}\b",
        rf"\bbearish\s+(?:on\s+)?{_SYM}\b",
        rf"\bexit\s+{_SYM}\b",
        rf"\bexiting\s+{_SYM}\b",
        rf"\bdump\s+{_SYM}\b",
        rf"\bdumping\s+{_SYM}\b",
        rf"\btake\s+profit\s+(?:on\s+)?{_SYM}\b",
        rf"\btp\s+(?:on\s+)?{_SYM}\b",
        rf"\bclose\s+{_SYM}\b",
        rf"\bclosing\s+{_SYM}\b",
        rf"\bfade\s+{_SYM}\b",
        rf"\bfading\s+{_SYM}\b",
        # sentiment
        rf"{_DSYM}\s+(?:dump|dumping|crashing|going down|tanking|dying|dead|rug|rugging)",
        rf"{_DSYM}\s+(?:looks weak|looking weak|bearish|overbought|topped|topping)",
        rf"(?:bearish|short|sell|dump|fade)\s+(?:on\s+)?{_DSYM}",
    ]
)

TOKEN_MENTION = re.compile(r"\$([a-z]{2,10})\b", re.IGNORECASE)
TP_PATTERN = re.compile(r"\b(?:tp|take\s*profit|target|pt)[\s:@=]*\$?(\d+\.?\d*)", re.IGNORECASE)
SL_PATTERN = re.compile(r"\b(?:sl|stop\s*loss|stop|stoploss)[\s:@=]*\$?(\d+\.?\d*)", re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r"(\$?\d+\.?\d*)\s*(?:usdt|usd|\$|dollars?|worth)", re.IGNORECASE)

MIN_CONFIDENCE = 0.1
MAX_BASE_CONFIDENCE = 0.9
MAX_CONFIDENCE = 0.95
KNOWN_TOKEN_BOOST = 0.2
MENTION_FACTOR = 0.7


def clean_token(token: str) -> str:
    return token.lstrip("$").upper()


def is_valid_token(token: str) -> bool:
    # upper() folds some non-ASCII letters into ASCII ones, so check first
    if not token.isascii():
        return False
    clean = clean_token(token)
    if not 2 <= len(clean) <= 10:
        return False
    if clean in COMMON_WORDS:
        return False
    return clean.isalpha()


def is_known_token(token: str) -> bool:
    return clean_token(token) in KNOWN_TOKENS


def base_confidence(upvotes: int, downvotes: int = 0) -> float:
    net = upvotes - downvotes
    return min(MAX_BASE_CONFIDENCE, max(MIN_CONFIDENCE, 0.3 + net / 50))


def extract_tp_sl(text: str) -> tuple[Optional[str], Optional[str]]:
    tp = TP_PATTERN.search(text)
    sl = SL_PATTERN.search(text)
    return (tp.group(1) if tp else None, sl.group(1) if sl else None)


def extract_amount(text: str) -> Optional[str]:
    m = AMOUNT_PATTERN.search(text)
    return m.group(1).replace("$", "") if m else None


def _as_post(post: Union[Post, dict[str, Any]]) -> Post:
    return post if isinstance(post, Post) else Post.model_validate(post)


def extract_from_post(post: Union[Post, dict[str, Any]]) -> list[TradingSignal]:
    """Signals for one post, deduplicated by (action, token), first wins."""
    post = _as_post(post)
    text = post.text
    base = base_confidence(post.upvotes, post.downvotes)
    source = SignalSource(
        post_id=post.id, title=post.title, author=post.author.name, upvotes=post.upvotes
    )
    tp, sl = extract_tp_sl(text)
    amount = extract_amount(text)

    signals: list[TradingSignal] = []
    for action, patterns in ((Action.BUY, BUY_PATTERNS), (Action.SELL, SELL_PATTERNS)):
        for pattern in patterns:
            for match in pattern.finditer(text):
                token = match.group(1)
                if not token or not is_valid_token(token):
                    continue
                confidence = base + KNOWN_TOKEN_BOOST if is_known_token(token) else base
                signals.append(
                    TradingSignal(
                        action=action,
                        token=clean_token(token),
                        amount=amount,
                        take_profit=tp,
                        stop_loss=sl,
                        confidence=min(MAX_CONFIDENCE, confidence),
                        source=source,
                    )
                )

    # bare $TOKEN mentions of known tokens default to a weak buy
    for match in TOKEN_MENTION.finditer(text):
        if not match.group(1).isascii():
            continue
        token = clean_token(match.group(1))
        if token not in KNOWN_TOKENS or any(s.token == token for s in signals):
            continue
        signals.append(
            TradingSignal(
                action=Action.BUY,
                token=token,
                confidence=max(MIN_CONFIDENCE, base * MENTION_FACTOR),
                source=source,
            )
        )

    seen: set[tuple[Action, str]] = set()
    unique = []
    for sig in signals:
        if sig.key in seen:
            continue
        seen.add(sig.key)
        unique.append(sig)
    return unique


def extract_signals(posts: Iterable[Union[Post, dict[str, Any]]]) -> list[TradingSignal]:
    """Signals for a batch: best confidence per (action, token), highest first."""
    best: dict[tuple[Action, str], TradingSignal] = {}
    for post in posts:
        for sig in extract_from_post(post):
            current = best.get(sig.key)
            if current is None or sig.confidence > current.confidence:
                best[sig.key] = sig
    return sorted(best.values(), key=lambda s: s.confidence, reverse=True)
