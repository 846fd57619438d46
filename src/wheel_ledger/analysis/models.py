"""
Valuation and risk data models.

This module defines the option leg input and the data classes returned by
the valuation engine and the portfolio risk aggregator. All results are
recomputed on demand from lots, a quote and an as-of date.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional

from ..activity import OptionKind
from ..constants import (
    CONTRACT_MULTIPLIER,
    HIGH_RISK_THRESHOLD,
    HIGH_RISK_WARNING_PCT,
    MEDIUM_RISK_THRESHOLD,
)
from ..exceptions import ValidationError
from ..utils.date_utils import to_date
from .probability import risk_level


class LegSide(Enum):
    """Whether the option was written or bought."""

    SELL = "SELL"
    BUY = "BUY"


class LegStatus(Enum):
    """Status of a leg or a multi-leg position."""

    ACTIVE = "ACTIVE"
    ASSIGNED = "ASSIGNED"
    EXPIRED = "EXPIRED"
    CLOSED = "CLOSED"


class AssignmentRiskType(Enum):
    """Direction of share movement on assignment."""

    PUT_ASSIGNMENT = "PUT_ASSIGNMENT"  # Shares bought at strike
    CALL_ASSIGNMENT = "CALL_ASSIGNMENT"  # Shares called away at strike


@dataclass
class OptionLeg:
    """
    One option leg to value.

    premium is per share (open price). close_price, when set, is the per
    share price paid (sold legs) or received (bought legs) on close.
    """

    id: str
    symbol: str
    option_kind: OptionKind
    side: LegSide
    strike: float
    premium: float
    expiry: date
    contracts: float
    open_date: Optional[date] = None
    close_date: Optional[date] = None
    close_price: Optional[float] = None
    is_assigned: bool = False
    commissions: float = 0.0
    position_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.strike <= 0:
            raise ValidationError(f"Leg {self.id}: strike must be positive")
        if self.contracts <= 0:
            raise ValidationError(f"Leg {self.id}: contracts must be positive")
        if self.premium < 0:
            raise ValidationError(f"Leg {self.id}: premium must be non-negative")
        self.symbol = self.symbol.upper()
        self.expiry = to_date(self.expiry)

    @property
    def is_sold(self) -> bool:
        return self.side == LegSide.SELL

    @property
    def is_closed(self) -> bool:
        """True once the leg was closed or assigned."""
        return self.close_date is not None or self.is_assigned

    @property
    def shares(self) -> float:
        """Shares controlled by the leg."""
        return self.contracts * CONTRACT_MULTIPLIER

    @property
    def notional(self) -> float:
        """Strike value of the shares controlled (collateral for a short put)."""
        return self.strike * self.shares

    @property
    def premium_total(self) -> float:
        return self.premium * self.shares


@dataclass
class LegAnalysis:
    """Valuation of a single leg at a price and date."""

    id: str
    option_kind: OptionKind
    side: LegSide
    strike: float
    current_price: float
    expiry: date
    days_to_expiry: int
    is_expired: bool
    is_in_the_money: bool
    intrinsic_value: float
    time_value: float
    distance_from_strike: float
    distance_percent: float
    probability_of_exercise: float
    should_be_exercised: bool
    premium_collected: float
    current_value: float
    unrealized_pl: float
    status: LegStatus

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "type": self.option_kind.value.upper(),
            "side": self.side.value,
            "strike": self.strike,
            "current_price": round(self.current_price, 4),
            "expiry": self.expiry.isoformat(),
            "days_to_expiry": self.days_to_expiry,
            "is_expired": self.is_expired,
            "is_in_the_money": self.is_in_the_money,
            "intrinsic_value": round(self.intrinsic_value, 4),
            "time_value": round(self.time_value, 4),
            "distance_from_strike": round(self.distance_from_strike, 4),
            "distance_percent": round(self.distance_percent, 2),
            "probability_of_exercise": round(self.probability_of_exercise, 2),
            "should_be_exercised": self.should_be_exercised,
            "premium_collected": round(self.premium_collected, 2),
            "current_value": round(self.current_value, 2),
            "unrealized_pl": round(self.unrealized_pl, 2),
            "status": self.status.value,
        }


@dataclass
class RiskMetrics:
    """
    Risk metrics for a position.

    Attributes:
        max_loss: Capital at risk minus premium collected
        max_gain: Premium collected
        break_even_price: Put strike minus premium per share
        capital_at_risk: Collateral of active short puts
        return_on_capital: Net premium / capital at risk (percent)
        annualized_return: return_on_capital scaled to 365 days
    """

    max_loss: float
    max_gain: float
    break_even_price: float
    capital_at_risk: float
    return_on_capital: float
    annualized_return: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "max_loss": round(self.max_loss, 2),
            "max_gain": round(self.max_gain, 2),
            "break_even_price": round(self.break_even_price, 4),
            "capital_at_risk": round(self.capital_at_risk, 2),
            "return_on_capital": round(self.return_on_capital, 2),
            "annualized_return": round(self.annualized_return, 2),
        }


@dataclass
class ProfitLossAnalysis:
    """Realized and unrealized P&L of a position."""

    realized_pl: float
    unrealized_pl: float
    total_pl: float
    roi: float
    annualized_roi: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "realized_pl": round(self.realized_pl, 2),
            "unrealized_pl": round(self.unrealized_pl, 2),
            "total_pl": round(self.total_pl, 2),
            "roi": round(self.roi, 2),
            "annualized_roi": round(self.annualized_roi, 2),
        }


@dataclass
class PositionAnalysis:
    """Combined valuation of all legs of one position."""

    id: Optional[str]
    symbol: str
    current_price: float
    legs: list[LegAnalysis]
    total_premium_collected: float
    total_commissions: float
    net_premium: float
    status: LegStatus
    days_to_expiry: int
    risk_metrics: RiskMetrics
    profit_loss: ProfitLossAnalysis

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "symbol": self.symbol,
            "current_price": round(self.current_price, 4),
            "legs": [leg.to_dict() for leg in self.legs],
            "total_premium_collected": round(self.total_premium_collected, 2),
            "total_commissions": round(self.total_commissions, 2),
            "net_premium": round(self.net_premium, 2),
            "status": self.status.value,
            "days_to_expiry": self.days_to_expiry,
            "risk_metrics": self.risk_metrics.to_dict(),
            "profit_loss": self.profit_loss.to_dict(),
        }


@dataclass
class AssignmentDetails:
    """Outcome of a short put being assigned at the current price."""

    shares_assigned: float
    cost_basis: float  # Strike
    net_cost_basis: float  # Strike less premium per share
    total_cost: float
    premium_received: float
    current_value: float
    unrealized_pl: float


@dataclass
class SharesAtRiskPosition:
    """Shares that may move on assignment of one short leg."""

    symbol: str
    shares: float
    strike_price: float
    current_price: float
    risk_value: float
    probability: float
    days_to_expiry: int
    risk_type: AssignmentRiskType
    high_threshold: float = HIGH_RISK_THRESHOLD
    medium_threshold: float = MEDIUM_RISK_THRESHOLD

    @property
    def is_in_the_money(self) -> bool:
        if self.risk_type == AssignmentRiskType.PUT_ASSIGNMENT:
            return self.current_price < self.strike_price
        return self.current_price > self.strike_price

    @property
    def distance_percent(self) -> float:
        return abs(self.current_price - self.strike_price) / self.strike_price * 100

    @property
    def risk_level(self) -> str:
        return risk_level(self.probability, self.high_threshold, self.medium_threshold)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "shares": self.shares,
            "strike_price": self.strike_price,
            "current_price": round(self.current_price, 4),
            "risk_value": round(self.risk_value, 2),
            "probability": round(self.probability, 2),
            "days_to_expiry": self.days_to_expiry,
            "type": self.risk_type.value,
        }


@dataclass
class SharesAtRiskSummary:
    """Portfolio-wide assignment exposure."""

    total_shares: float = 0.0
    total_value: float = 0.0
    weighted_probability: float = 0.0
    positions: list[SharesAtRiskPosition] = field(default_factory=list)
    high_threshold: float = HIGH_RISK_THRESHOLD
    medium_threshold: float = MEDIUM_RISK_THRESHOLD

    @property
    def put_assignments(self) -> list[SharesAtRiskPosition]:
        return [
            p for p in self.positions if p.risk_type == AssignmentRiskType.PUT_ASSIGNMENT
        ]

    @property
    def call_assignments(self) -> list[SharesAtRiskPosition]:
        return [
            p for p in self.positions if p.risk_type == AssignmentRiskType.CALL_ASSIGNMENT
        ]

    @property
    def risk_level(self) -> str:
        return risk_level(
            self.weighted_probability, self.high_threshold, self.medium_threshold
        )

    @property
    def has_high_risk(self) -> bool:
        """True when positions should be considered for rolling or closing."""
        return self.weighted_probability > HIGH_RISK_WARNING_PCT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_shares": self.total_shares,
            "total_value": round(self.total_value, 2),
            "weighted_probability": round(self.weighted_probability, 2),
            "risk_level": self.risk_level,
            "positions": [p.to_dict() for p in self.positions],
        }


@dataclass
class CoveredCallPosition:
    """Coverage of one holding by short calls."""

    symbol: str
    shares_owned: float
    calls_written: float
    shares_covered: float
    available_shares: float
    call_strike: float
    call_expiry: date
    call_premium: float
    assignment_risk: float


@dataclass
class CoveredCallSharePosition:
    """A holding with the covered calls written against it."""

    symbol: str
    quantity: float
    cost_basis: float
    current_price: float
    market_value: float
    unrealized_pl: float
    unrealized_pl_percent: float
    covered_call_count: float
    covered_call_strikes: list[float]
    covered_call_expiries: list[date]
    total_premium_collected: float
    potential_profit_if_assigned: float
    average_days_to_expiry: float
    average_assignment_risk: float


@dataclass
class SharesPosition:
    """Marked-to-market holding."""

    symbol: str
    quantity: float
    cost_basis: float
    current_price: float
    market_value: float
    unrealized_pl: float
    unrealized_pl_percent: float
    source: str = "PURCHASE"
    covered_calls_against: float = 0.0
    available_shares: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "quantity": self.quantity,
            "cost_basis": round(self.cost_basis, 4),
            "current_price": round(self.current_price, 4),
            "market_value": round(self.market_value, 2),
            "unrealized_pl": round(self.unrealized_pl, 2),
            "unrealized_pl_percent": round(self.unrealized_pl_percent, 2),
            "source": self.source,
            "covered_calls_against": self.covered_calls_against,
            "available_shares": self.available_shares,
        }


@dataclass
class PortfolioValue:
    """Total value and exposure of the portfolio."""

    total_cash: float
    total_equity: float
    total_portfolio_value: float
    shares_value: float
    options_value: float
    collateral_value: float
    shares_at_risk: SharesAtRiskSummary
    shares_positions: list[SharesPosition]
    total_return: float
    total_return_percent: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_cash": round(self.total_cash, 2),
            "total_equity": round(self.total_equity, 2),
            "total_portfolio_value": round(self.total_portfolio_value, 2),
            "shares_value": round(self.shares_value, 2),
            "options_value": round(self.options_value, 2),
            "collateral_value": round(self.collateral_value, 2),
            "shares_at_risk": self.shares_at_risk.to_dict(),
            "shares_positions": [p.to_dict() for p in self.shares_positions],
            "total_return": round(self.total_return, 2),
            "total_return_percent": round(self.total_return_percent, 2),
        }


@dataclass
class CycleMetrics:
    """
    Returns of one wheel cycle on an underlying.

    Attributes:
        total_premium: Premium received on sold legs
        option_pl: Premium kept after buy-backs, net of bought legs
        stock_pl: Gain on shares put to and called away from the cycle
        net_pl: option_pl + stock_pl - commissions
        max_collateral: Largest sold put notional, the capital base of the ROIs
        break_even_price: Assigned put strike less premium per share (0 if none)
    """

    start_date: Optional[date]
    end_date: date
    days_in_trade: int
    total_premium: float
    total_commissions: float
    option_pl: float
    stock_pl: float
    net_pl: float
    max_collateral: float
    break_even_price: float
    roi: float
    annualized_roi: float
    monthly_roi: float
    roi_per_day: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat(),
            "days_in_trade": self.days_in_trade,
            "total_premium": round(self.total_premium, 2),
            "total_commissions": round(self.total_commissions, 2),
            "option_pl": round(self.option_pl, 2),
            "stock_pl": round(self.stock_pl, 2),
            "net_pl": round(self.net_pl, 2),
            "max_collateral": round(self.max_collateral, 2),
            "break_even_price": round(self.break_even_price, 4),
            "roi": round(self.roi, 2),
            "annualized_roi": round(self.annualized_roi, 2),
            "monthly_roi": round(self.monthly_roi, 2),
            "roi_per_day": round(self.roi_per_day, 4),
        }


@dataclass
class PerformancePoint:
    """One point of the portfolio value history (date None for the start)."""

    date: Optional[date]
    portfolio_value: float
    total_return: float
    total_return_percent: float
    day_change: float
    day_change_percent: float
    shares_value: float
    options_value: float
    cash_value: float
    collateral_value: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat() if self.date else None,
            "portfolio_value": round(self.portfolio_value, 2),
            "total_return": round(self.total_return, 2),
            "total_return_percent": round(self.total_return_percent, 2),
            "day_change": round(self.day_change, 2),
            "day_change_percent": round(self.day_change_percent, 2),
            "shares_value": round(self.shares_value, 2),
            "options_value": round(self.options_value, 2),
            "cash_value": round(self.cash_value, 2),
            "collateral_value": round(self.collateral_value, 2),
        }
