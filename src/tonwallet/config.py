"""Application configuration using pydantic-settings.

All wallet engine tunables (RPC endpoint, retry/poll bounds, fees, slippage and
the vault secret) are read from environment variables or a local .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Blockchain RPC
    # ======================
    toncenter_endpoint: str = Field(
        default="https://toncenter.com/api/v2/jsonRPC",
        description="toncenter v2 JSON-RPC endpoint",
    )
    toncenter_api_key: str = Field(default="", description="toncenter API key")
    rpc_max_attempts: int = Field(default=3, description="Attempts per RPC call")
    rpc_backoff_base: float = Field(
        default=1.0, description="Backoff base in seconds (base * 2^(attempt-1))"
    )
    rpc_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # ======================
    # Confirmation
    # ======================
    confirmation_interval: float = Field(
        default=3.0, description="Seconds between seqno polls"
    )
    confirmation_attempts: int = Field(default=10, description="Seqno polls before timeout")

    # ======================
    # Fees (nanoton)
    # ======================
    network_fee: int = Field(
        default=50_000_000, description="Network fee reserved per send (0.05 TON)"
    )
    swap_protocol_fee: int = Field(
        default=300_000_000, description="Extra TON attached to token-input swaps (0.3 TON)"
    )
    slippage_bps: int = Field(
        default=100, description="Swap slippage tolerance in basis points (1%)"
    )

    # ======================
    # Prices
    # ======================
    price_feed_url: str = Field(
        default="https://api.coingecko.com/api/v3/simple/price",
        description="CoinGecko simple-price endpoint",
    )
    price_cache_ttl: float = Field(default=60.0, description="Price cache TTL in seconds")

    # ======================
    # Tokens / wallet contract
    # ======================
    tracked_jettons: str = Field(
        default="USDT,NOT,STON", description="Comma-separated jetton symbols to track"
    )
    wallet_code_boc: Optional[str] = Field(
        default=None,
        description="Base64 BOC overriding the built-in wallet v4r2 code",
    )
    keystore_path: str = Field(
        default="./data/keystore.json", description="Encrypted key store file used by the CLI"
    )

    # ======================
    # Encryption
    # ======================
    encryption_key: Optional[str] = Field(
        default=None, description="Server-held secret used to derive wallet vault keys"
    )

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/tonwallet.db",
        description="Database connection URL",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def jetton_symbols(self) -> list[str]:
        """Parse tracked jetton symbols into an upper-case list."""
        if not self.tracked_jettons:
            return []
        return [s.strip().upper() for s in self.tracked_jettons.split(",") if s.strip()]

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "database_url": self._redact_url(self.database_url),
            "encryption_key": "***" if self.encryption_key else "(not set)",
            "rpc": {
                "endpoint": self.toncenter_endpoint,
                "api_key": "***" if self.toncenter_api_key else "(not set)",
                "max_attempts": self.rpc_max_attempts,
                "backoff_base": self.rpc_backoff_base,
                "timeout": self.rpc_timeout,
            },
            "confirmation": {
                "interval": self.confirmation_interval,
                "attempts": self.confirmation_attempts,
            },
            "fees": {
                "network_fee": self.network_fee,
                "swap_protocol_fee": self.swap_protocol_fee,
                "slippage_bps": self.slippage_bps,
            },
            "tracked_jettons": self.jetton_symbols,
            "wallet_code_override": bool(self.wallet_code_boc),
            "keystore_path": self.keystore_path,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
