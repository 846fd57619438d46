"""
Wheel cycle return metrics.

A cycle is the run of legs written on one underlying: short puts until
shares are put to the account, then covered calls until they are called
away. Returns are measured against the largest put collateral of the cycle.
"""

import logging
import math
from collections.abc import Sequence
from datetime import date, datetime
from typing import Optional

from ..activity import OptionKind
from ..constants import DAYS_PER_MONTH
from ..exceptions import ValidationError
from ..utils.date_utils import SECONDS_PER_DAY, DateLike, to_date, to_datetime
from .models import CycleMetrics, LegSide, OptionLeg

logger = logging.getLogger(__name__)


def calculate_leg_roi(net_pl: float, collateral: float) -> float:
    """Return on collateral in percent (0 without collateral)."""
    return net_pl / collateral * 100 if collateral > 0 else 0.0


def calculate_annualized_roi(roi: float, days_in_trade: int) -> float:
    return roi * 365 / days_in_trade if days_in_trade > 0 else 0.0


def calculate_roi_per_day(net_pl: float, collateral: float, days_in_trade: int) -> float:
    """Average daily return in percent."""
    if collateral <= 0 or days_in_trade <= 0:
        return 0.0
    return calculate_leg_roi(net_pl, collateral) / days_in_trade


def calculate_monthly_roi(net_pl: float, collateral: float, days_in_trade: int) -> float:
    """
    Return scaled to one month, in percent.

    Trades shorter than a month are extrapolated linearly to 30 days. Longer
    trades are annualized and divided by 12.
    """
    if collateral <= 0 or days_in_trade <= 0:
        return 0.0
    roi = calculate_leg_roi(net_pl, collateral)
    if days_in_trade < DAYS_PER_MONTH:
        return roi * DAYS_PER_MONTH / days_in_trade
    return calculate_annualized_roi(roi, days_in_trade) / 12


def calculate_days_in_trade(opened: DateLike, closed: Optional[DateLike] = None) -> int:
    """Days from open to close (default: now), partial days rounded up, at least 1."""
    end = to_datetime(closed) if closed is not None else datetime.now()
    seconds = (end - to_datetime(opened)).total_seconds()
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def calculate_break_even_price(cost_basis: float, total_premiums: float, shares: float) -> float:
    """Share cost basis lowered by the premium collected per share."""
    return cost_basis - total_premiums / shares if shares > 0 else 0.0


def _option_pl(leg: OptionLeg) -> float:
    close_amount = (leg.close_price or 0.0) * leg.shares
    if leg.side == LegSide.SELL:
        return leg.premium_total - close_amount
    return close_amount - leg.premium_total


def _assigned(legs: Sequence[OptionLeg], option_kind: OptionKind) -> Optional[OptionLeg]:
    for leg in legs:
        if leg.option_kind == option_kind and leg.side == LegSide.SELL and leg.is_assigned:
            return leg
    return None


def _leg_end(leg: OptionLeg, as_of: DateLike) -> date:
    if leg.close_date is not None:
        return to_date(leg.close_date)
    if leg.is_assigned:
        return leg.expiry
    return to_date(as_of)


def calculate_cycle_metrics(
    legs: Sequence[OptionLeg],
    as_of: Optional[DateLike] = None,
) -> CycleMetrics:
    """
    Returns of a wheel cycle.

    Stock P&L is booked when the cycle holds both an assigned short put and
    an assigned short call: the called-away shares earn the call strike less
    the put strike. A leg ends on its close date, on its expiry when it was
    assigned, and at as_of while still open.

    Args:
        legs: Legs of the cycle (at least one)
        as_of: Valuation time for open legs (default: now)

    Returns:
        CycleMetrics with P&L and ROI figures

    Raises:
        ValidationError: If no legs are given
    """
    if not legs:
        raise ValidationError("No legs provided for cycle metrics")

    as_of = as_of if as_of is not None else datetime.now()

    total_premium = sum(leg.premium_total for leg in legs if leg.side == LegSide.SELL)
    total_commissions = sum(leg.commissions for leg in legs)
    option_pl = sum(_option_pl(leg) for leg in legs)

    put = _assigned(legs, OptionKind.PUT)
    call = _assigned(legs, OptionKind.CALL)
    stock_pl = (call.strike - put.strike) * call.shares if put and call else 0.0
    break_even = (
        calculate_break_even_price(put.strike, total_premium, put.shares) if put else 0.0
    )

    net_pl = option_pl + stock_pl - total_commissions

    open_dates = [to_date(leg.open_date) for leg in legs if leg.open_date is not None]
    start_date = min(open_dates) if open_dates else None
    end_date = max(_leg_end(leg, as_of) for leg in legs)
    days_in_trade = calculate_days_in_trade(start_date or end_date, end_date)

    max_collateral = max(
        (
            leg.notional
            for leg in legs
            if leg.option_kind == OptionKind.PUT and leg.side == LegSide.SELL
        ),
        default=0.0,
    )
    roi = calculate_leg_roi(net_pl, max_collateral)

    logger.debug(
        f"{legs[0].symbol} cycle: {len(legs)} legs over {days_in_trade} days, "
        f"net ${net_pl:,.2f}"
    )

    return CycleMetrics(
        start_date=start_date,
        end_date=end_date,
        days_in_trade=days_in_trade,
        total_premium=total_premium,
        total_commissions=total_commissions,
        option_pl=option_pl,
        stock_pl=stock_pl,
        net_pl=net_pl,
        max_collateral=max_collateral,
        break_even_price=break_even,
        roi=roi,
        annualized_roi=calculate_annualized_roi(roi, days_in_trade),
        monthly_roi=calculate_monthly_roi(net_pl, max_collateral, days_in_trade),
        roi_per_day=calculate_roi_per_day(net_pl, max_collateral, days_in_trade),
    )
