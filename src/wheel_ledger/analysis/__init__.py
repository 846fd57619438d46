"""
Valuation and risk analysis package.

This package contains the computation layer that runs on top of the ledgers:
- probability: Heuristic exercise/assignment probability model
- models: Option leg input and analysis result data classes
- valuation: Per-leg and per-position valuation
- risk: Portfolio shares-at-risk, covered call coverage and total value
- cycle: Wheel cycle P&L and return metrics
- performance: Portfolio value history over the trade dates

All classes and functions are re-exported at the package level for convenience.
"""

from .cycle import (
    calculate_annualized_roi,
    calculate_break_even_price,
    calculate_cycle_metrics,
    calculate_days_in_trade,
    calculate_leg_roi,
    calculate_monthly_roi,
    calculate_roi_per_day,
)
from .models import (
    AssignmentDetails,
    AssignmentRiskType,
    CoveredCallPosition,
    CoveredCallSharePosition,
    CycleMetrics,
    LegAnalysis,
    LegSide,
    LegStatus,
    OptionLeg,
    PerformancePoint,
    PortfolioValue,
    PositionAnalysis,
    ProfitLossAnalysis,
    RiskMetrics,
    SharesAtRiskPosition,
    SharesAtRiskSummary,
    SharesPosition,
)
from .performance import generate_portfolio_performance
from .probability import (
    assignment_probability,
    call_assignment_probability,
    exercise_probability,
    put_assignment_probability,
    risk_level,
)
from .risk import (
    analyze_covered_call_positions,
    analyze_covered_call_share_positions,
    calculate_portfolio_value,
    calculate_shares_at_risk,
    mark_option_leg,
    value_portfolio,
    weighted_probability,
)
from .valuation import (
    analyze_leg,
    analyze_position,
    calculate_assignment_details,
    should_auto_exercise,
)

__all__ = [
    # cycle
    "calculate_annualized_roi",
    "calculate_break_even_price",
    "calculate_cycle_metrics",
    "calculate_days_in_trade",
    "calculate_leg_roi",
    "calculate_monthly_roi",
    "calculate_roi_per_day",
    # models
    "AssignmentDetails",
    "AssignmentRiskType",
    "CoveredCallPosition",
    "CoveredCallSharePosition",
    "CycleMetrics",
    "LegAnalysis",
    "LegSide",
    "LegStatus",
    "OptionLeg",
    "PerformancePoint",
    "PortfolioValue",
    "PositionAnalysis",
    "ProfitLossAnalysis",
    "RiskMetrics",
    "SharesAtRiskPosition",
    "SharesAtRiskSummary",
    "SharesPosition",
    # performance
    "generate_portfolio_performance",
    # probability
    "assignment_probability",
    "call_assignment_probability",
    "exercise_probability",
    "put_assignment_probability",
    "risk_level",
    # risk
    "analyze_covered_call_positions",
    "analyze_covered_call_share_positions",
    "calculate_portfolio_value",
    "calculate_shares_at_risk",
    "mark_option_leg",
    "value_portfolio",
    "weighted_probability",
    # valuation
    "analyze_leg",
    "analyze_position",
    "calculate_assignment_details",
    "should_auto_exercise",
]
