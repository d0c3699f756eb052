"""
config.py - Configuration and Order-Book Details

Settings live in a YAML file (default: ./swapbook.yaml, or the path in
SWAPBOOK_CONFIG). Every key is optional; a missing file means defaults.
SWAPBOOK_STORE and SWAPBOOK_LOG_LEVEL override the file.

OrderBookDetails are the identifiers produced by setup (issuers, tags,
accounts) and are persisted next to the ledger store so later commands can
rebuild their session.
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging
import os

import yaml

from .core import ConfigError


DEFAULT_CONFIG_PATH = "swapbook.yaml"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class SetupConfig:
    """Parameters of the order book built by `swapbook setup`."""
    num_notes: int = 50
    max_supply: int = 1000
    fund_amount: int = 500
    total_offered: int = 500
    total_requested: int = 500
    user_fund_amount: int = 100


@dataclass(frozen=True)
class SwapBookConfig:
    store_path: str = "swapbook_store.yaml"
    details_path: str = "order_book.yaml"
    ledger_name: str = "local"
    log_level: str = "INFO"
    seed: Optional[int] = None
    setup: SetupConfig = field(default_factory=SetupConfig)

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


def _check_keys(section: str, data: Dict[str, Any], cls) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in {section}: {', '.join(sorted(unknown))}")


def _validate_setup(setup: SetupConfig) -> None:
    for f in fields(setup):
        value = getattr(setup, f.name)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"setup.{f.name} must be a positive integer, got {value!r}")
    if setup.total_offered < setup.num_notes or setup.total_requested < setup.num_notes:
        raise ConfigError("setup totals must be at least num_notes")
    if setup.fund_amount < setup.total_offered:
        raise ConfigError("setup.fund_amount must cover setup.total_offered")
    if setup.max_supply < setup.fund_amount + setup.user_fund_amount:
        raise ConfigError("setup.max_supply must cover fund_amount plus one user_fund_amount")


def config_from_dict(data: Dict[str, Any]) -> SwapBookConfig:
    """
    Build a validated config from a parsed mapping.

    Raises:
        ConfigError: On unknown keys or invalid values
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")
    data = dict(data)
    setup_data = data.pop("setup", None) or {}
    if not isinstance(setup_data, dict):
        raise ConfigError("setup must be a mapping")
    _check_keys("configuration", data, SwapBookConfig)
    _check_keys("setup", setup_data, SetupConfig)

    setup = SetupConfig(**setup_data)
    _validate_setup(setup)
    config = SwapBookConfig(setup=setup, **data)

    level = str(config.log_level).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"Unknown log_level {config.log_level!r}")
    if config.seed is not None and (isinstance(config.seed, bool) or not isinstance(config.seed, int)):
        raise ConfigError(f"seed must be an integer, got {config.seed!r}")
    return replace(config, log_level=level)


def load_config(path: Optional[Union[str, Path]] = None) -> SwapBookConfig:
    """
    Load configuration from YAML, then apply environment overrides.

    Args:
        path: Config file; defaults to $SWAPBOOK_CONFIG or ./swapbook.yaml

    Raises:
        ConfigError: If the file is unreadable or invalid
    """
    path = Path(path or os.getenv("SWAPBOOK_CONFIG", DEFAULT_CONFIG_PATH))
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

    overrides = {
        "store_path": os.getenv("SWAPBOOK_STORE"),
        "log_level": os.getenv("SWAPBOOK_LOG_LEVEL"),
    }
    if isinstance(data, dict):
        data = {**data, **{k: v for k, v in overrides.items() if v}}
    return config_from_dict(data)


# ============================================================================
# ORDER-BOOK DETAILS
# ============================================================================

@dataclass(frozen=True)
class OrderBookDetails:
    """
    Identifiers of an order book built by setup.

    Attributes:
        faucet_a, faucet_b: Issuer ids of the two assets
        symbol_a, symbol_b: Their token symbols
        swap_a_b_tag: Tag of notes offering asset A for asset B
        swap_b_a_tag: Tag of notes offering asset B for asset A
        admin: Account that funded the initial notes
        user: Default trading account, if one was created
    """
    faucet_a: str
    faucet_b: str
    symbol_a: str
    symbol_b: str
    swap_a_b_tag: int
    swap_b_a_tag: int
    admin: str
    user: Optional[str] = None


def save_details(details: OrderBookDetails, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(asdict(details), f, sort_keys=False)


def load_details(path: Union[str, Path]) -> OrderBookDetails:
    """
    Raises:
        ConfigError: If the file is missing or not a details mapping
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"{path} not found; run `swapbook setup` first")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return OrderBookDetails(**data)
    except (OSError, yaml.YAMLError, TypeError) as e:
        raise ConfigError(f"Cannot read order book details from {path}: {e}") from e
