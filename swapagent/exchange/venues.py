from swapagent.errors import InvalidRequest
from swapagent.exchange.base import ExchangeClient
from swapagent.exchange.mexc import MexcClient
from swapagent.exchange.okx import OkxClient

VENUES: dict[str, type[ExchangeClient]] = {"mexc": MexcClient, "okx": OkxClient}


def get_exchange(name: str) -> ExchangeClient:
    try:
        return VENUES[name.lower()]()
    except KeyError:
        raise InvalidRequest(f"Unknown exchange venue: {name}") from None
