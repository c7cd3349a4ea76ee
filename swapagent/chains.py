from dataclasses import dataclass

# Aggregator placeholder for the native asset
NATIVE_TOKEN = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class EvmChain:
    name: str
    chain_id: int
    wrapped_native: str
    rpc_http: str
    kyber_slug: str


BASE = EvmChain(
    "base",
    8453,
    "0x4200000000000000000000000000000000000006",
    "https://mainnet.base.org",
    "base",
)

ETHEREUM = EvmChain(
    "ethereum",
    1,
    "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "https://eth.llamarpc.com",
    "ethereum",
)

CHAINS = {"base": BASE, "ethereum": ETHEREUM}


def is_native(token: str) -> bool:
    return token.lower() in (NATIVE_TOKEN.lower(), ZERO_ADDRESS)
