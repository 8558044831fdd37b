"""
RODT Ledger Configuration

All settings come from environment variables so that the same build can run
a throwaway in-memory ledger for tests and a SQLite-backed node.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int(env_var: str, default: int, minimum: int = 0) -> int:
    """Read an integer setting, rejecting values below ``minimum``."""
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{env_var} must be >= {minimum}, got {value}")
    return value


def _get_bool(env_var: str, default: bool = False) -> bool:
    raw = os.getenv(env_var, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# Contract metadata defaults
NFT_METADATA_SPEC = "RODT-near.org-0.91.91"
NFT_STANDARD_NAME = "nep171"
NFT_STANDARD_VERSION = "1.0.0"
DEFAULT_CONTRACT_NAME = "Cableguard FORGE"
DEFAULT_CONTRACT_SYMBOL = "CGRODT"
DEFAULT_BASE_URI = "cableguard.org"

# Royalty shares are expressed in basis points
ROYALTY_BASIS_POINTS = 10_000


@dataclass(frozen=True)
class Config:
    """Runtime settings for a ledger instance."""

    default_page_limit: int = 50
    max_page_limit: int = 1000
    max_len_payout: int = 10
    db_path: str = ""
    restrict_mint_to_owner: bool = False
    contract_owner: str = ""
    log_level: str = "INFO"
    log_file: str = ""
    environment: str = "development"
    node_url: str = "http://localhost:8080"

    def __post_init__(self) -> None:
        if self.default_page_limit < 1:
            raise ConfigurationError("default_page_limit must be positive")
        if self.max_page_limit < self.default_page_limit:
            raise ConfigurationError(
                "max_page_limit must be >= default_page_limit "
                f"({self.max_page_limit} < {self.default_page_limit})"
            )
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Unknown log level {self.log_level!r}")

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from ``RODT_*`` environment variables."""
        config = cls(
            default_page_limit=_get_int("RODT_DEFAULT_PAGE_LIMIT", 50, minimum=1),
            max_page_limit=_get_int("RODT_MAX_PAGE_LIMIT", 1000, minimum=1),
            max_len_payout=_get_int("RODT_MAX_LEN_PAYOUT", 10),
            db_path=os.getenv("RODT_DB_PATH", "").strip(),
            restrict_mint_to_owner=_get_bool("RODT_RESTRICT_MINT_TO_OWNER"),
            contract_owner=os.getenv("RODT_CONTRACT_OWNER", "").strip(),
            log_level=os.getenv("RODT_LOG_LEVEL", "INFO").strip() or "INFO",
            log_file=os.getenv("RODT_LOG_FILE", "").strip(),
            environment=os.getenv("RODT_ENVIRONMENT", "development").strip() or "development",
            node_url=os.getenv("RODT_NODE_URL", "http://localhost:8080").strip(),
        )
        if config.restrict_mint_to_owner and not config.contract_owner:
            raise ConfigurationError(
                "RODT_CONTRACT_OWNER is required when RODT_RESTRICT_MINT_TO_OWNER is set"
            )
        logger.debug(
            "Loaded configuration",
            extra={
                "event": "config.loaded",
                "environment": config.environment,
                "persistent": bool(config.db_path),
            },
        )
        return config
