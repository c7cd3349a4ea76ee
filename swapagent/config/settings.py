# swapagent/config/settings.py

import json
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator

from swapagent.chains import CHAINS


def _parse_list(val: str | None) -> list[str]:
    """Parse env var into list. Accepts comma-separated or JSON array."""
    if not val:
        return []
    val = val.strip()
    if val.startswith("["):
        try:
            return [str(x) for x in json.loads(val)]
        except ValueError:
            pass
    return [x.strip() for x in val.split(",") if x.strip()]


class Settings(BaseSettings):
    # --- Core ---
    network: str = Field(default="base")
    log_level: str = Field(default="INFO")
    http_timeout: float = Field(default=15.0)

    # --- Chain (filled from swapagent.chains when unset) ---
    chain_id: Optional[int] = None
    wrapped_native: Optional[str] = None
    rpc_http: Optional[str] = None
    kyber_chain: Optional[str] = None
    gas_buffer_eth: str = Field(default="0.0005")
    receipt_timeout: float = Field(default=120.0)

    # --- Aggregators ---
    kyber_base: str = Field(default="https://aggregator-api.kyberswap.com")
    kyber_client_id: str = Field(default="swapagent")
    odos_base: str = Field(default="https://api.odos.xyz")
    paraswap_base: str = Field(default="https://apiv5.paraswap.io")
    oneinch_base: str = Field(default="https://api.1inch.dev")
    oneinch_api_key: Optional[str] = None

    # --- Launch venue (dev-buy fallback) ---
    devbuy_contract: str = Field(default="0x1331f0788F9c08C8F38D52c7a1152250A9dE00be")
    launch_venue_tokens: Optional[str] = None
    launch_venue_url: str = Field(default="https://clanker.world/clanker/{token}")

    # --- Centralized exchanges ---
    mexc_base: str = Field(default="https://api.mexc.com")
    okx_base: str = Field(default="https://www.okx.com")
    exchange_api_key: Optional[str] = None
    exchange_secret_key: Optional[str] = None
    exchange_passphrase: Optional[str] = None

    # --- Signals ---
    moltbook_base: str = Field(default="https://www.moltbook.com/api/v1")
    moltbook_api_key: Optional[str] = None
    signal_venue: str = Field(default="exchange")
    signal_exchange: str = Field(default="mexc")
    signal_quote_currency: str = Field(default="USDT")
    default_trade_size: str = Field(default="10")
    default_onchain_size_eth: str = Field(default="0.001")
    token_addresses: Optional[str] = None

    # --- Wallet + HTTP surface ---
    wallet_private_key: Optional[str] = Field(default=None, repr=False)
    api_secret: Optional[str] = Field(default=None, repr=False)

    # --- Helpers ---
    def launch_tokens(self) -> set[str]:
        return {t.lower() for t in _parse_list(self.launch_venue_tokens)}

    def token_address(self, symbol: str) -> Optional[str]:
        """Resolve a token symbol from TOKEN_ADDRESSES (``SYM:0xaddr,...``)."""
        for entry in _parse_list(self.token_addresses):
            sym, _, addr = entry.partition(":")
            if sym.strip().upper() == symbol.upper() and addr.strip():
                return addr.strip()
        return None

    # --- Validators ---
    @model_validator(mode="after")
    def configure_network_defaults(self):
        """Fill chain defaults depending on the selected network."""
        chain = CHAINS.get(self.network)
        if chain is not None:
            self.chain_id = self.chain_id or chain.chain_id
            self.wrapped_native = self.wrapped_native or chain.wrapped_native
            self.rpc_http = self.rpc_http or chain.rpc_http
            self.kyber_chain = self.kyber_chain or chain.kyber_slug
        return self


# Global settings instance
settings = Settings()
