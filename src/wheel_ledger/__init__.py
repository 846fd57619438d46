"""
Wheel Ledger - FIFO accounting and valuation for wheel strategy trades.

This package replays brokerage activity into share and short option lot
ledgers, reports cost basis and realized P&L, and values open positions
against current quotes.

Public API:
    Portfolio: Replays trade activity into the ledgers
    TradeActivity: One brokerage activity record
    SharePosition: FIFO share ledger for one symbol
    OptionPosition: FIFO short option ledger for one contract
    LedgerConfig: Replay and valuation settings
    Quote: Current price of a symbol
    value_portfolio: Total value and assignment exposure of a Portfolio
    calculate_cycle_metrics: P&L and returns of one wheel cycle
    generate_portfolio_performance: Portfolio value history
"""

from .activity import (
    ActionKind,
    ContractKey,
    OptionKind,
    TradeActivity,
)
from .analysis import (
    OptionLeg,
    analyze_leg,
    analyze_position,
    calculate_cycle_metrics,
    calculate_portfolio_value,
    calculate_shares_at_risk,
    generate_portfolio_performance,
    value_portfolio,
)
from .config import ConfigurationError, LedgerConfig, load_config
from .exceptions import (
    InsufficientLotsError,
    InvalidStateError,
    LedgerError,
    UnsupportedActivityError,
    ValidationError,
)
from .ledger import (
    ClosedOptionLot,
    ClosedShareLot,
    OptionLot,
    OptionPosition,
    ShareLot,
    SharePosition,
)
from .portfolio import Portfolio, PortfolioSnapshot, ReplayResult, ReplayWarning
from .quotes import Quote, quotes_from_prices
from .state import CloseReason, OptionLifecycle

__all__ = [
    # Trade events
    "ActionKind",
    "OptionKind",
    "ContractKey",
    "TradeActivity",
    # Ledgers
    "ShareLot",
    "ClosedShareLot",
    "SharePosition",
    "OptionLot",
    "ClosedOptionLot",
    "OptionPosition",
    "OptionLifecycle",
    "CloseReason",
    # Portfolio
    "Portfolio",
    "PortfolioSnapshot",
    "ReplayResult",
    "ReplayWarning",
    # Valuation
    "Quote",
    "quotes_from_prices",
    "OptionLeg",
    "analyze_leg",
    "analyze_position",
    "calculate_shares_at_risk",
    "calculate_portfolio_value",
    "value_portfolio",
    "calculate_cycle_metrics",
    "generate_portfolio_performance",
    # Configuration
    "LedgerConfig",
    "load_config",
    "ConfigurationError",
    # Exceptions
    "LedgerError",
    "ValidationError",
    "InsufficientLotsError",
    "UnsupportedActivityError",
    "InvalidStateError",
]

__version__ = "0.1.0"


# Deferred import: schemas pulls in pydantic
def __getattr__(name: str):
    """Lazy import for the pydantic schemas module."""
    if name == "schemas":
        from . import schemas
        return schemas
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
