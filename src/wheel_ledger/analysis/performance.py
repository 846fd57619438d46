"""
Portfolio performance history.

Replays option premiums, put collateral and share purchases in date order
into a short time series of portfolio value. No price history is available
here, so shares are carried at cost and the value moves with premium income.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import NamedTuple, Protocol

from ..activity import OptionKind
from ..constants import DEFAULT_STARTING_VALUE, MAX_PERFORMANCE_POINTS
from ..ledger.shares import ShareLot
from ..utils.date_utils import to_date, to_datetime
from .models import LegSide, OptionLeg, PerformancePoint

logger = logging.getLogger(__name__)


class LotHolding(Protocol):
    """Share holding that can list its open lots (SharePosition satisfies this)."""

    symbol: str

    def open_lots(self) -> list[ShareLot]: ...


class _Event(NamedTuple):
    at: datetime
    premium: float = 0.0
    collateral: float = 0.0
    stock_cost: float = 0.0


def _collect_events(
    legs: Sequence[OptionLeg], holdings: Sequence[LotHolding]
) -> list[_Event]:
    events: list[_Event] = []
    for leg in legs:
        if leg.open_date is None:
            logger.debug(f"Leg {leg.id} has no open date, left out of history")
            continue
        opened = to_datetime(leg.open_date)
        premium = leg.premium_total if leg.side == LegSide.SELL else -leg.premium_total
        events.append(_Event(opened, premium=premium))
        if leg.option_kind == OptionKind.PUT and leg.side == LegSide.SELL and not leg.is_closed:
            events.append(_Event(opened, collateral=leg.notional))

    for holding in holdings:
        for lot in holding.open_lots():
            events.append(_Event(lot.acquired_at, stock_cost=lot.cost))

    # Stable, so same-day events keep their collection order
    events.sort(key=lambda event: event.at)
    return events


def generate_portfolio_performance(
    legs: Sequence[OptionLeg],
    holdings: Sequence[LotHolding] = (),
    starting_value: float = DEFAULT_STARTING_VALUE,
    max_points: int = MAX_PERFORMANCE_POINTS,
) -> list[PerformancePoint]:
    """
    Build the portfolio value history.

    The series opens with an undated starting point. After it, a point is
    taken every len(events) // max_points events and at the last event.

    Args:
        legs: Option legs; sold legs add premium, bought legs pay it
        holdings: Share holdings whose open lots become purchases
        starting_value: Cash at the start of the history
        max_points: Approximate number of points after the start

    Returns:
        PerformancePoint list in date order
    """
    points = [
        PerformancePoint(
            date=None,
            portfolio_value=starting_value,
            total_return=0.0,
            total_return_percent=0.0,
            day_change=0.0,
            day_change_percent=0.0,
            shares_value=0.0,
            options_value=0.0,
            cash_value=starting_value,
            collateral_value=0.0,
        )
    ]

    events = _collect_events(legs, holdings)
    if not events:
        return points

    step = max(1, len(events) // max(1, max_points))
    premium = collateral = stock_cost = 0.0
    previous_value = starting_value

    for index, event in enumerate(events):
        premium += event.premium
        collateral += event.collateral
        stock_cost += event.stock_cost

        if index % step != 0 and index != len(events) - 1:
            continue

        cash = starting_value + premium - stock_cost - collateral
        value = cash + stock_cost + collateral
        total_return = value - starting_value
        day_change = value - previous_value

        points.append(
            PerformancePoint(
                date=to_date(event.at),
                portfolio_value=value,
                total_return=total_return,
                total_return_percent=(
                    total_return / starting_value * 100 if starting_value > 0 else 0.0
                ),
                day_change=day_change,
                day_change_percent=(
                    day_change / previous_value * 100 if previous_value > 0 else 0.0
                ),
                shares_value=stock_cost,
                options_value=premium,
                cash_value=cash,
                collateral_value=collateral,
            )
        )
        previous_value = value

    logger.debug(f"Performance history: {len(events)} events, {len(points)} points")
    return points
