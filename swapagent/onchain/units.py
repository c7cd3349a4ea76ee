from decimal import Decimal, InvalidOperation, ROUND_DOWN

from swapagent.errors import InvalidRequest


def parse_units(amount: str, decimals: int = 18) -> int:
    """Decimal string -> integer base units, truncating extra precision."""
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise InvalidRequest(f"Invalid amount: {amount!r}") from e
    if not value.is_finite() or value < 0:
        raise InvalidRequest(f"Invalid amount: {amount!r}")
    return int(value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def format_units(value: int, decimals: int = 18) -> str:
    if value == 0:
        return "0"
    return format(Decimal(value).scaleb(-decimals).normalize(), "f")


def parse_ether(amount: str) -> int:
    return parse_units(amount, 18)


def format_ether(value: int) -> str:
    return format_units(value, 18)


def is_zero_amount(amount: str) -> bool:
    try:
        return Decimal(str(amount).strip()) == 0
    except InvalidOperation:
        return False
