"""Configuration management for wheel ledger accounting runs.

This module provides configuration loading, validation, and persistence
for replay behavior, portfolio valuation inputs and risk thresholds.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from .constants import (
    DEFAULT_MIN_INITIAL_INVESTMENT,
    HIGH_RISK_THRESHOLD,
    MEDIUM_RISK_THRESHOLD,
)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    pass


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return bool(default)
    return value.strip().lower() in ("1", "true", "yes", "on")


class LedgerConfig:
    """Configuration for accounting runs.

    Attributes:
        strict_replay: Raise on the first bad record instead of skipping it
        assignment_creates_shares: Book share purchases/sales for assignments
        cash_balance: Cash available before collateral is reserved
        min_initial_investment: Floor of the initial investment for total return
        high_risk_threshold: Probability (percent) for HIGH assignment risk
        medium_risk_threshold: Probability (percent) for MEDIUM assignment risk
    """

    def __init__(
        self,
        strict_replay: bool = False,
        assignment_creates_shares: bool = False,
        cash_balance: float = 0.0,
        min_initial_investment: float = DEFAULT_MIN_INITIAL_INVESTMENT,
        high_risk_threshold: float = HIGH_RISK_THRESHOLD,
        medium_risk_threshold: float = MEDIUM_RISK_THRESHOLD,
    ):
        """Initialize configuration.

        Example:
            >>> config = LedgerConfig(strict_replay=True, cash_balance=25000)
        """
        self.strict_replay = strict_replay
        self.assignment_creates_shares = assignment_creates_shares
        self.cash_balance = cash_balance
        self.min_initial_investment = min_initial_investment
        self.high_risk_threshold = high_risk_threshold
        self.medium_risk_threshold = medium_risk_threshold

        self._validate()

    def _validate(self):
        """Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.min_initial_investment < 0:
            raise ConfigurationError("min_initial_investment must be non-negative")

        for name in ("high_risk_threshold", "medium_risk_threshold"):
            value = getattr(self, name)
            if value < 0 or value > 100:
                raise ConfigurationError(f"{name} must be between 0 and 100")

        if self.medium_risk_threshold > self.high_risk_threshold:
            raise ConfigurationError(
                "medium_risk_threshold must not exceed high_risk_threshold"
            )

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get default configuration file path (~/.wheel_ledger/config.yaml)."""
        return Path.home() / ".wheel_ledger" / "config.yaml"

    @classmethod
    def load_from_file(cls, path: Optional[Path] = None) -> "LedgerConfig":
        """Load configuration from YAML file.

        If the file doesn't exist, returns default configuration.
        Environment variables override file values.

        Args:
            path: Optional path to config file (default: ~/.wheel_ledger/config.yaml)

        Returns:
            Configuration instance

        Raises:
            ConfigurationError: If configuration file is invalid
        """
        config_path = path or cls.get_default_config_path()

        config_dict: dict[str, Any] = {}

        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f)
                    if file_config:
                        config_dict = file_config
                logger.debug(f"Loaded configuration from {config_path}")
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid YAML in configuration file: {e}"
                ) from e
            except OSError as e:
                raise ConfigurationError(
                    f"Failed to load configuration file: {e}"
                ) from e
        else:
            logger.debug(f"Configuration file not found at {config_path}, using defaults")

        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        return cls.merge_with_defaults(config_dict)

    @classmethod
    def merge_with_defaults(cls, config_dict: dict[str, Any]) -> "LedgerConfig":
        """Merge configuration dictionary with defaults and environment variables.

        Precedence order (highest to lowest):
        1. Environment variables
        2. Config file values
        3. Default values

        Example:
            >>> config = LedgerConfig.merge_with_defaults({
            ...     "portfolio": {"cash_balance": 50000}
            ... })
        """
        replay_config = config_dict.get("replay", {}) or {}
        portfolio_config = config_dict.get("portfolio", {}) or {}
        risk_config = config_dict.get("risk", {}) or {}

        try:
            strict_replay = _env_flag(
                "WHEEL_LEDGER_STRICT_REPLAY",
                replay_config.get("strict", False),
            )
            assignment_creates_shares = _env_flag(
                "WHEEL_LEDGER_ASSIGNMENT_CREATES_SHARES",
                replay_config.get("assignment_creates_shares", False),
            )
            cash_balance = float(
                os.getenv(
                    "WHEEL_LEDGER_CASH_BALANCE",
                    portfolio_config.get("cash_balance", 0.0),
                )
            )
            min_initial_investment = float(
                os.getenv(
                    "WHEEL_LEDGER_MIN_INITIAL_INVESTMENT",
                    portfolio_config.get(
                        "min_initial_investment", DEFAULT_MIN_INITIAL_INVESTMENT
                    ),
                )
            )
            high_risk_threshold = float(
                os.getenv(
                    "WHEEL_LEDGER_HIGH_RISK_THRESHOLD",
                    risk_config.get("high_threshold", HIGH_RISK_THRESHOLD),
                )
            )
            medium_risk_threshold = float(
                os.getenv(
                    "WHEEL_LEDGER_MEDIUM_RISK_THRESHOLD",
                    risk_config.get("medium_threshold", MEDIUM_RISK_THRESHOLD),
                )
            )

            return cls(
                strict_replay=strict_replay,
                assignment_creates_shares=assignment_creates_shares,
                cash_balance=cash_balance,
                min_initial_investment=min_initial_investment,
                high_risk_threshold=high_risk_threshold,
                medium_risk_threshold=medium_risk_threshold,
            )
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def save_to_file(self, path: Optional[Path] = None):
        """Save configuration to YAML file.

        Raises:
            ConfigurationError: If save fails
        """
        config_path = path or self.get_default_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(config_path, "w") as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
            logger.info(f"Configuration saved to {config_path}")
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to the nested file layout."""
        return {
            "replay": {
                "strict": self.strict_replay,
                "assignment_creates_shares": self.assignment_creates_shares,
            },
            "portfolio": {
                "cash_balance": self.cash_balance,
                "min_initial_investment": self.min_initial_investment,
            },
            "risk": {
                "high_threshold": self.high_risk_threshold,
                "medium_threshold": self.medium_risk_threshold,
            },
        }

    def __repr__(self) -> str:
        return (
            f"LedgerConfig("
            f"strict_replay={self.strict_replay}, "
            f"assignment_creates_shares={self.assignment_creates_shares}, "
            f"cash_balance={self.cash_balance}, "
            f"min_initial_investment={self.min_initial_investment}, "
            f"high_risk_threshold={self.high_risk_threshold}, "
            f"medium_risk_threshold={self.medium_risk_threshold}"
            ")"
        )


def load_config(config_path: Optional[Path] = None) -> LedgerConfig:
    """Load configuration from file or defaults.

    Example:
        >>> from wheel_ledger.config import load_config
        >>> config = load_config()
        >>> print(config.cash_balance)
    """
    return LedgerConfig.load_from_file(config_path)
