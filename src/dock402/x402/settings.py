"""
x402 runtime settings
Uses pydantic-settings for type-safe environment variable loading
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dock402.x402.config import NetworkConfig


class X402Settings(BaseSettings):
    """Settings shared by the payment handler and the payment interceptor.

    Every field can be set from the environment with the ``X402_`` prefix,
    e.g. ``X402_FACILITATOR_URL``. ``X402_RPC_URLS`` takes a JSON object.
    """

    model_config = SettingsConfigDict(
        env_prefix="X402_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server side
    network: str = Field(default=NetworkConfig.BASE_SEPOLIA, description="Default payment network")
    pay_to: str = Field(default="", description="Default recipient address")
    facilitator_url: str = Field(default="http://localhost:8001", description="Facilitator base URL")
    facilitator_timeout: float = Field(default=5.0, description="Per-request timeout in seconds")
    verify_max_retries: int = Field(default=3, ge=0)
    verify_backoff_base: float = Field(default=0.5, ge=0, description="Backoff base in seconds")
    spec_ttl_seconds: float = Field(default=300.0, gt=0, description="Negotiation window")
    onchain_verification: bool = Field(default=False)

    # Chain RPC overrides, keyed by network
    rpc_urls: dict[str, str] = Field(default_factory=dict)

    # Client side
    max_amount: Optional[int] = Field(default=None, ge=0, description="Ceiling in smallest units")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")

    @field_validator("network")
    @classmethod
    def validate_network(cls, v):
        if not NetworkConfig.is_supported(v):
            raise ValueError(f"Unsupported network: {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    def get_rpc_url(self, network: str) -> str | None:
        return NetworkConfig.get_rpc_url(network, self.rpc_urls)


_settings: X402Settings | None = None


def get_settings() -> X402Settings:
    """Get or create settings singleton"""
    global _settings
    if _settings is None:
        _settings = X402Settings()
    return _settings
