"""Pydantic models for ledger requests and responses.

This module contains the request schema external collaborators use to hand
trade activity to the ledgers, and response schemas for positions,
snapshots and valuation results consumed by presentation or persistence
layers.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .activity import ActionKind, OptionKind, TradeActivity
from .analysis.models import (
    LegAnalysis,
    PortfolioValue,
    SharesAtRiskPosition,
    SharesAtRiskSummary,
    SharesPosition,
)
from .ledger.options import OptionPosition
from .ledger.shares import SharePosition
from .portfolio import Portfolio


def _canonical(enum_cls, value: str, label: str) -> str:
    cleaned = value.strip()
    for member in enum_cls:
        if cleaned.lower() in (member.value.lower(), member.name.lower()):
            return member.value
    valid = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"{label} must be one of: {valid}")


class TradeActivityRequest(BaseModel):
    """Request schema for one brokerage activity record.

    Attributes:
        date: Trade date
        action: Activity kind (e.g. "Buy", "STO", "SELL_TO_OPEN")
        symbol: Stock or option symbol as reported
        quantity: Shares or contracts (fractional allowed)
        price: Share price, or premium per share for options
        amount: Net cash amount
        notes: Free text
        is_option: Whether the record is an option trade
        underlying: Underlying symbol (options)
        expiration: Expiration date (options)
        strike: Strike price (options)
        option_kind: "Call" or "Put" (options)

    Example:
        >>> TradeActivityRequest(
        >>>     date="2024-01-02",
        >>>     action="STO",
        >>>     quantity=1,
        >>>     price=2.50,
        >>>     is_option=True,
        >>>     underlying="AAPL",
        >>>     expiration="2024-01-19",
        >>>     strike=150.0,
        >>>     option_kind="Put",
        >>> )
    """

    date: dt.datetime = Field(..., description="Trade date")
    action: str = Field(..., description="Activity kind")
    symbol: Optional[str] = Field(None, description="Symbol as reported")
    quantity: Optional[float] = Field(None, description="Shares or contracts")
    price: Optional[float] = Field(None, ge=0, description="Price or premium per share")
    amount: float = Field(0.0, description="Net cash amount")
    notes: str = Field("", description="Free text")
    is_option: bool = Field(False, description="Whether the record is an option trade")
    underlying: Optional[str] = Field(None, description="Underlying symbol")
    expiration: Optional[dt.date] = Field(None, description="Expiration date (YYYY-MM-DD)")
    strike: Optional[float] = Field(None, gt=0, description="Strike price")
    option_kind: Optional[str] = Field(None, description="Call or Put")

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: str) -> str:
        """Normalize the action to its canonical value.

        Raises:
            ValueError: If the action is not a known activity kind
        """
        return _canonical(ActionKind, v, "Action")

    @field_validator("option_kind")
    @classmethod
    def validate_option_kind(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the option kind to "Call" or "Put"."""
        if v is None:
            return v
        return _canonical(OptionKind, v, "Option kind")

    def to_activity(self) -> TradeActivity:
        """Build the ledger record.

        Raises:
            ValidationError: If an option record lacks its contract identity
        """
        return TradeActivity.from_dict(self.model_dump())

    model_config = {
        "json_schema_extra": {
            "example": {
                "date": "2024-01-02T00:00:00",
                "action": "STO",
                "symbol": "AAPL 01/19/2024 150.00 P",
                "quantity": 1,
                "price": 2.50,
                "amount": 250.0,
                "is_option": True,
                "underlying": "AAPL",
                "expiration": "2024-01-19",
                "strike": 150.0,
                "option_kind": "Put",
            }
        }
    }


class SharePositionResponse(BaseModel):
    """Response schema for a share position."""

    symbol: str = Field(..., description="Stock ticker symbol")
    quantity: float = Field(..., description="Shares held")
    cost_basis: float = Field(..., description="Weighted average cost per share")
    total_cost: float = Field(..., description="Cost of the shares held")
    realized_pnl: float = Field(..., description="Realized P&L from sales")
    open_lots: int = Field(..., description="Number of lots still held")

    @classmethod
    def from_position(cls, position: SharePosition) -> "SharePositionResponse":
        return cls(
            symbol=position.symbol,
            quantity=position.quantity,
            cost_basis=round(position.cost_basis, 4),
            total_cost=round(position.total_cost, 2),
            realized_pnl=round(position.realized_pnl, 2),
            open_lots=len(position.lots),
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "symbol": "AAPL",
                "quantity": 150,
                "cost_basis": 53.3333,
                "total_cost": 8000.0,
                "realized_pnl": 0.0,
                "open_lots": 2,
            }
        }
    }


class OptionPositionResponse(BaseModel):
    """Response schema for an option contract position.

    Attributes:
        contract: Display key (SYMBOL_YYYY-MM-DD_STRIKE_Kind)
        lifecycle: pending, open, partially_closed or closed
    """

    contract: str = Field(..., description="Contract display key")
    symbol: str = Field(..., description="Underlying symbol")
    expiration: dt.date = Field(..., description="Expiration date")
    strike: float = Field(..., description="Strike price")
    option_kind: str = Field(..., description="Call or Put")
    open_contracts: float = Field(..., description="Contracts outstanding")
    total_credit: float = Field(..., description="Premium held on open contracts")
    average_premium: float = Field(..., description="Average premium per share")
    realized_pnl: float = Field(..., description="Realized P&L")
    lifecycle: str = Field(..., description="Lifecycle state")
    closed_lots: int = Field(..., description="Number of closed lot records")

    @classmethod
    def from_position(cls, position: OptionPosition) -> "OptionPositionResponse":
        key = position.key
        return cls(
            contract=key.occ,
            symbol=key.symbol,
            expiration=key.expiration,
            strike=key.strike,
            option_kind=key.option_kind.value,
            open_contracts=position.open_contracts,
            total_credit=round(position.total_credit, 2),
            average_premium=round(position.average_premium, 4),
            realized_pnl=round(position.realized_pnl, 2),
            lifecycle=position.lifecycle.value,
            closed_lots=position.closed_lot_count,
        )


class PortfolioSnapshotResponse(BaseModel):
    """Response schema for the open positions of a replayed portfolio."""

    realized_pnl: float = Field(..., description="Cumulative realized P&L")
    shares: list[SharePositionResponse] = Field(default_factory=list)
    options: list[OptionPositionResponse] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list, description="Skipped records")

    @classmethod
    def from_portfolio(cls, portfolio: Portfolio) -> "PortfolioSnapshotResponse":
        options = sorted(
            portfolio.open_option_positions.values(), key=lambda pos: pos.key.occ
        )
        return cls(
            realized_pnl=round(portfolio.realized_pnl, 2),
            shares=[
                SharePositionResponse.from_position(pos)
                for pos in portfolio.open_share_positions
            ],
            options=[OptionPositionResponse.from_position(pos) for pos in options],
            warnings=[str(w) for w in portfolio.warnings],
        )


class LegAnalysisResponse(BaseModel):
    """Response schema for the valuation of one option leg."""

    id: str
    option_type: str = Field(..., description="CALL or PUT")
    side: str = Field(..., description="SELL or BUY")
    strike: float
    current_price: float
    expiry: dt.date
    days_to_expiry: int
    is_expired: bool
    is_in_the_money: bool
    intrinsic_value: float
    time_value: float
    distance_from_strike: float
    distance_percent: float
    probability_of_exercise: float = Field(..., ge=0, le=100)
    should_be_exercised: bool
    premium_collected: float
    current_value: float
    unrealized_pl: float
    status: str

    @classmethod
    def from_analysis(cls, analysis: LegAnalysis) -> "LegAnalysisResponse":
        data = analysis.to_dict()
        data["option_type"] = data.pop("type")
        return cls(**data)


class SharesAtRiskPositionResponse(BaseModel):
    """Response schema for one assignment exposure entry."""

    symbol: str
    shares: float
    strike_price: float
    current_price: float
    risk_value: float
    probability: float = Field(..., ge=0, le=100)
    days_to_expiry: int
    risk_type: str = Field(..., description="PUT_ASSIGNMENT or CALL_ASSIGNMENT")
    risk_level: str = Field(..., description="Risk level (LOW, MEDIUM, HIGH)")

    @classmethod
    def from_position(cls, position: SharesAtRiskPosition) -> "SharesAtRiskPositionResponse":
        data = position.to_dict()
        data["risk_type"] = data.pop("type")
        return cls(**data, risk_level=position.risk_level)


class SharesAtRiskResponse(BaseModel):
    """Response schema for portfolio-wide assignment exposure."""

    total_shares: float
    total_value: float
    weighted_probability: float
    risk_level: str = Field(..., description="Risk level (LOW, MEDIUM, HIGH)")
    has_high_risk: bool = Field(..., description="Whether rolling or closing should be considered")
    positions: list[SharesAtRiskPositionResponse] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: SharesAtRiskSummary) -> "SharesAtRiskResponse":
        return cls(
            total_shares=summary.total_shares,
            total_value=round(summary.total_value, 2),
            weighted_probability=round(summary.weighted_probability, 2),
            risk_level=summary.risk_level,
            has_high_risk=summary.has_high_risk,
            positions=[
                SharesAtRiskPositionResponse.from_position(p) for p in summary.positions
            ],
        )


class SharesPositionResponse(BaseModel):
    """Response schema for a marked-to-market holding."""

    symbol: str
    quantity: float
    cost_basis: float
    current_price: float
    market_value: float
    unrealized_pl: float
    unrealized_pl_percent: float
    source: str
    covered_calls_against: float
    available_shares: float

    @classmethod
    def from_position(cls, position: SharesPosition) -> "SharesPositionResponse":
        return cls(**position.to_dict())


class PortfolioValueResponse(BaseModel):
    """Response schema for total portfolio value and exposure."""

    total_cash: float = Field(..., description="Cash less collateral reserved for short puts")
    total_equity: float
    total_portfolio_value: float
    shares_value: float
    options_value: float = Field(..., description="Signed mark-to-market of open legs")
    collateral_value: float
    total_return: float
    total_return_percent: float
    shares_at_risk: SharesAtRiskResponse
    shares_positions: list[SharesPositionResponse] = Field(default_factory=list)

    @classmethod
    def from_value(cls, value: PortfolioValue) -> "PortfolioValueResponse":
        return cls(
            total_cash=round(value.total_cash, 2),
            total_equity=round(value.total_equity, 2),
            total_portfolio_value=round(value.total_portfolio_value, 2),
            shares_value=round(value.shares_value, 2),
            options_value=round(value.options_value, 2),
            collateral_value=round(value.collateral_value, 2),
            total_return=round(value.total_return, 2),
            total_return_percent=round(value.total_return_percent, 2),
            shares_at_risk=SharesAtRiskResponse.from_summary(value.shares_at_risk),
            shares_positions=[
                SharesPositionResponse.from_position(p) for p in value.shares_positions
            ],
        )
