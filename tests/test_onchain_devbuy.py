from eth_abi import decode
from web3 import Web3

from swapagent.onchain.abi import DEVBUY_SIGNATURE, encode_function_call
from swapagent.onchain.devbuy import DevBuyRoute
from swapagent.types import Provider

TOKEN = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
RECIPIENT = "0x9999999999999999999999999999999999999999"


def test_encode_function_call_layout():
    data = encode_function_call("transfer(address,uint256)", [RECIPIENT, 5])
    assert data.startswith("0xa9059cbb")
    assert len(data) == 2 + 8 + 64 * 2


def test_devbuy_quote():
    route = DevBuyRoute(contract="0x1331f0788F9c08C8F38D52c7a1152250A9dE00be", tokens=[])
    quote = route.build(TOKEN, 10**15, RECIPIENT)

    assert quote.provider == Provider.DIRECT
    assert quote.to == "0x1331f0788F9c08C8F38D52c7a1152250A9dE00be"
    assert quote.value == 10**15
    assert quote.approval_target == quote.to

    raw = bytes.fromhex(quote.data[2:])
    assert raw[:4] == Web3.keccak(text=DEVBUY_SIGNATURE)[:4]
    token, recipient, min_out = decode(["address", "address", "uint256"], raw[4:])
    assert token.lower() == TOKEN
    assert recipient.lower() == RECIPIENT
    assert min_out == 0


def test_devbuy_registry_is_case_insensitive(monkeypatch):
    monkeypatch.setattr("swapagent.onchain.devbuy.settings.launch_venue_tokens", TOKEN.upper())
    route = DevBuyRoute()
    assert route.supports(TOKEN)
    other = "0x5555555555555555555555555555555555555555"
    assert not route.supports(other)
    route.register(other)
    assert route.supports(other)


def test_manual_url(monkeypatch):
    monkeypatch.setattr(
        "swapagent.onchain.devbuy.settings.launch_venue_url", "https://venue.test/t/{token}"
    )
    assert DevBuyRoute(tokens=[]).manual_url(TOKEN) == f"https://venue.test/t/{TOKEN}"
