"""
Configuration management for the transaction core.

Supports configuration via environment variables and .env files.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chaintx.hashing import HashType


class SdkConfig(BaseSettings):
    """
    Configuration settings for the transaction core.

    All settings can be configured via environment variables with the CHAINTX_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAINTX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Node RPC settings
    rpc_url: str = Field(
        default="http://127.0.0.1:36002",
        description="HTTP endpoint of the node"
    )
    rpc_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single RPC request"
    )

    # Notification stream settings
    event_ws_url: str = Field(
        default="ws://127.0.0.1:36003",
        description="WebSocket endpoint delivering transaction and ledger notifications"
    )

    # Chain settings
    hash_type: HashType = Field(
        default=HashType.SHA256,
        description="Hash algorithm assumed until the node advertises one"
    )

    # Transaction lifecycle settings
    final_notify_seq_offset: int = Field(
        default=20,
        ge=1,
        description="Ledgers to wait past the current height before a transaction times out"
    )
    sync_wait_timeout_seconds: float = Field(
        default=500.0,
        gt=0,
        description="Wall-clock ceiling for a synchronous commit"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )


# Global config instance
_config: Optional[SdkConfig] = None


def get_config() -> SdkConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = SdkConfig()
    return _config


def set_config(config: SdkConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
