"""
Position valuation engine.

Pure functions that value option legs and multi-leg positions against a
current price and an as-of date: intrinsic/time value, moneyness, heuristic
probability of exercise, and per-position risk and P&L metrics.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from ..activity import OptionKind
from ..constants import AUTO_EXERCISE_THRESHOLD, CONTRACT_MULTIPLIER
from ..exceptions import ValidationError
from ..utils.date_utils import DateLike, calculate_days_to_expiry
from .models import (
    AssignmentDetails,
    LegAnalysis,
    LegSide,
    LegStatus,
    OptionLeg,
    PositionAnalysis,
    ProfitLossAnalysis,
    RiskMetrics,
)
from .probability import (
    distance_percent,
    exercise_probability,
    intrinsic_value,
    is_in_the_money,
)

logger = logging.getLogger(__name__)


def _safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def analyze_leg(
    leg: OptionLeg,
    current_price: float,
    as_of: Optional[DateLike] = None,
) -> LegAnalysis:
    """
    Value one option leg.

    Args:
        leg: The leg to value
        current_price: Current price of the underlying
        as_of: Valuation time (default: now)

    Returns:
        LegAnalysis with moneyness, probability and P&L
    """
    as_of = as_of if as_of is not None else datetime.now()
    days_to_expiry = calculate_days_to_expiry(leg.expiry, as_of)
    is_expired = days_to_expiry == 0

    intrinsic = intrinsic_value(leg.option_kind, current_price, leg.strike)
    itm = is_in_the_money(leg.option_kind, current_price, leg.strike)

    # Premium less intrinsic; a heuristic, not a pricing model
    time_value = max(0.0, leg.premium - intrinsic)

    probability = exercise_probability(
        leg.option_kind, current_price, leg.strike, days_to_expiry
    )
    should_be_exercised = is_expired and itm and intrinsic > AUTO_EXERCISE_THRESHOLD

    premium_collected = leg.premium * CONTRACT_MULTIPLIER * leg.contracts
    current_value = intrinsic * CONTRACT_MULTIPLIER * leg.contracts
    if leg.side == LegSide.SELL:
        unrealized_pl = premium_collected - current_value
    else:
        unrealized_pl = current_value - premium_collected

    if leg.close_date is not None:
        status = LegStatus.CLOSED
    elif leg.is_assigned:
        status = LegStatus.ASSIGNED
    elif is_expired:
        status = LegStatus.ASSIGNED if should_be_exercised else LegStatus.EXPIRED
    else:
        status = LegStatus.ACTIVE

    return LegAnalysis(
        id=leg.id,
        option_kind=leg.option_kind,
        side=leg.side,
        strike=leg.strike,
        current_price=current_price,
        expiry=leg.expiry,
        days_to_expiry=days_to_expiry,
        is_expired=is_expired,
        is_in_the_money=itm,
        intrinsic_value=intrinsic,
        time_value=time_value,
        distance_from_strike=abs(current_price - leg.strike),
        distance_percent=distance_percent(current_price, leg.strike),
        probability_of_exercise=probability,
        should_be_exercised=should_be_exercised,
        premium_collected=premium_collected,
        current_value=current_value,
        unrealized_pl=unrealized_pl,
        status=status,
    )


def should_auto_exercise(analysis: LegAnalysis) -> bool:
    """True for an expired ITM leg with more than a cent of intrinsic value."""
    return (
        analysis.is_expired
        and analysis.is_in_the_money
        and analysis.intrinsic_value > AUTO_EXERCISE_THRESHOLD
    )


def _position_status(analyses: Sequence[LegAnalysis]) -> LegStatus:
    statuses = [a.status for a in analyses]
    if LegStatus.ASSIGNED in statuses:
        return LegStatus.ASSIGNED
    if all(s == LegStatus.CLOSED for s in statuses):
        return LegStatus.CLOSED
    if all(s in (LegStatus.EXPIRED, LegStatus.CLOSED) for s in statuses):
        return LegStatus.EXPIRED
    return LegStatus.ACTIVE


def _realized_pl(legs: Sequence[OptionLeg]) -> float:
    realized = 0.0
    for leg in legs:
        if leg.close_date is None:
            continue
        premium = leg.premium * CONTRACT_MULTIPLIER * leg.contracts
        close_amount = (leg.close_price or 0.0) * CONTRACT_MULTIPLIER * leg.contracts
        if leg.side == LegSide.SELL:
            realized += premium - close_amount
        else:
            realized += close_amount - premium
    return realized


def analyze_position(
    legs: Sequence[OptionLeg],
    current_price: float,
    as_of: Optional[DateLike] = None,
) -> PositionAnalysis:
    """
    Value a multi-leg position on one underlying.

    Args:
        legs: Legs of the position (at least one)
        current_price: Current price of the underlying
        as_of: Valuation time (default: now)

    Returns:
        PositionAnalysis with per-leg results, risk metrics and P&L

    Raises:
        ValidationError: If no legs are given
    """
    if not legs:
        raise ValidationError("No legs provided for position analysis")

    as_of = as_of if as_of is not None else datetime.now()
    analyses = [analyze_leg(leg, current_price, as_of) for leg in legs]
    pairs = list(zip(legs, analyses))

    total_premium = sum(a.premium_collected for a in analyses if a.side == LegSide.SELL)
    total_commissions = sum(leg.commissions for leg in legs)
    net_premium = total_premium - total_commissions

    status = _position_status(analyses)

    active_days = [a.days_to_expiry for a in analyses if a.status == LegStatus.ACTIVE]
    days_to_expiry = min(active_days) if active_days else 0

    sold_puts = [
        (leg, a)
        for leg, a in pairs
        if leg.option_kind == OptionKind.PUT and leg.side == LegSide.SELL
    ]
    open_puts = [(leg, a) for leg, a in sold_puts if a.status == LegStatus.ACTIVE]
    capital_at_risk = sum(leg.notional for leg, _ in open_puts)

    primary_put = open_puts[0][0] if open_puts else (sold_puts[0][0] if sold_puts else None)
    if primary_put is not None:
        premium_per_share = total_premium / (CONTRACT_MULTIPLIER * primary_put.contracts)
        break_even = primary_put.strike - premium_per_share
    else:
        break_even = 0.0

    return_on_capital = _safe_ratio(net_premium, capital_at_risk) * 100
    annualized_return = _safe_ratio(return_on_capital * 365, days_to_expiry)

    unrealized = sum(a.unrealized_pl for a in analyses if a.status != LegStatus.CLOSED)
    realized = _realized_pl(legs)
    total_pl = realized + unrealized
    roi = _safe_ratio(total_pl, capital_at_risk) * 100
    annualized_roi = _safe_ratio(roi * 365, days_to_expiry)

    logger.debug(
        f"{legs[0].symbol}: {len(legs)} legs, status {status.value}, "
        f"capital at risk ${capital_at_risk:,.2f}"
    )

    return PositionAnalysis(
        id=legs[0].position_id,
        symbol=legs[0].symbol,
        current_price=current_price,
        legs=analyses,
        total_premium_collected=total_premium,
        total_commissions=total_commissions,
        net_premium=net_premium,
        status=status,
        days_to_expiry=days_to_expiry,
        risk_metrics=RiskMetrics(
            max_loss=capital_at_risk - total_premium,
            max_gain=total_premium,
            break_even_price=break_even,
            capital_at_risk=capital_at_risk,
            return_on_capital=return_on_capital,
            annualized_return=annualized_return,
        ),
        profit_loss=ProfitLossAnalysis(
            realized_pl=realized,
            unrealized_pl=unrealized,
            total_pl=total_pl,
            roi=roi,
            annualized_roi=annualized_roi,
        ),
    )


def calculate_assignment_details(
    leg: OptionLeg, current_price: float
) -> Optional[AssignmentDetails]:
    """
    What assignment of a short put would mean at the current price.

    Returns:
        AssignmentDetails, or None for anything but a sold put
    """
    if leg.option_kind != OptionKind.PUT or leg.side != LegSide.SELL:
        return None

    shares = leg.shares
    total_cost = shares * leg.strike
    premium_received = leg.premium_total
    current_value = shares * current_price

    return AssignmentDetails(
        shares_assigned=shares,
        cost_basis=leg.strike,
        net_cost_basis=leg.strike - premium_received / shares,
        total_cost=total_cost,
        premium_received=premium_received,
        current_value=current_value,
        unrealized_pl=current_value - total_cost + premium_received,
    )
