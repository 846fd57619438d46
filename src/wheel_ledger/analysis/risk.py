"""
Portfolio risk and valuation aggregator.

Combines leg valuations across all positions into shares-at-risk exposure,
covered call coverage, and total portfolio value.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Protocol

from ..activity import OptionKind
from ..constants import (
    CONTRACT_MULTIPLIER,
    DECAY_WINDOW_DAYS,
    DEFAULT_MIN_INITIAL_INVESTMENT,
    HIGH_RISK_THRESHOLD,
    MEDIUM_RISK_THRESHOLD,
    MIN_DECAY_FACTOR,
)
from ..quotes import QuoteLookup, get_price
from ..utils.date_utils import DateLike, calculate_days_to_expiry, is_past_expiry
from .models import (
    AssignmentRiskType,
    CoveredCallPosition,
    CoveredCallSharePosition,
    LegSide,
    OptionLeg,
    PortfolioValue,
    SharesAtRiskPosition,
    SharesAtRiskSummary,
    SharesPosition,
)
from .probability import (
    call_assignment_probability,
    intrinsic_value,
    put_assignment_probability,
)

if TYPE_CHECKING:
    from ..config import LedgerConfig
    from ..portfolio import Portfolio

logger = logging.getLogger(__name__)


class Holding(Protocol):
    """Shares held in one symbol (SharePosition satisfies this)."""

    symbol: str
    quantity: float

    @property
    def cost_basis(self) -> float: ...


def _is_open(leg: OptionLeg, as_of: DateLike) -> bool:
    """Not closed, not assigned and not past expiry at as_of."""
    return not leg.is_closed and not is_past_expiry(leg.expiry, as_of)


def _is_open_short(leg: OptionLeg, option_kind: OptionKind, as_of: DateLike) -> bool:
    return (
        leg.option_kind == option_kind
        and leg.side == LegSide.SELL
        and _is_open(leg, as_of)
    )


def _holdings_by_symbol(holdings: Sequence[Holding]) -> dict[str, Holding]:
    return {h.symbol: h for h in holdings if h.quantity > 0}


def weighted_probability(positions: Sequence[SharesAtRiskPosition]) -> float:
    """Risk-value weighted average probability (0 for no exposure)."""
    total_value = sum(p.risk_value for p in positions)
    if total_value <= 0:
        return 0.0
    return sum(p.probability * p.risk_value for p in positions) / total_value


def calculate_shares_at_risk(
    legs: Sequence[OptionLeg],
    quotes: QuoteLookup,
    holdings: Sequence[Holding],
    as_of: Optional[DateLike] = None,
    high_threshold: float = HIGH_RISK_THRESHOLD,
    medium_threshold: float = MEDIUM_RISK_THRESHOLD,
) -> SharesAtRiskSummary:
    """
    Shares that may be bought (short puts) or called away (covered calls).

    Each open short leg with a quote yields an independent entry. Calls only
    count when the holding covers all of their shares.

    Args:
        legs: Option legs
        quotes: Symbol to quote lookup
        holdings: Current share holdings
        as_of: Valuation time (default: now)
        high_threshold: Probability for HIGH risk level
        medium_threshold: Probability for MEDIUM risk level

    Returns:
        SharesAtRiskSummary with per-leg entries and weighted probability
    """
    as_of = as_of if as_of is not None else datetime.now()
    by_symbol = _holdings_by_symbol(holdings)
    positions: list[SharesAtRiskPosition] = []

    for leg in legs:
        if not _is_open_short(leg, OptionKind.PUT, as_of):
            continue
        price = get_price(quotes, leg.symbol)
        if price is None:
            logger.debug(f"No quote for {leg.symbol}, skipping put {leg.id}")
            continue

        days = calculate_days_to_expiry(leg.expiry, as_of)
        positions.append(
            SharesAtRiskPosition(
                symbol=leg.symbol,
                shares=leg.shares,
                strike_price=leg.strike,
                current_price=price,
                risk_value=leg.notional,
                probability=put_assignment_probability(price, leg.strike, days),
                days_to_expiry=days,
                risk_type=AssignmentRiskType.PUT_ASSIGNMENT,
                high_threshold=high_threshold,
                medium_threshold=medium_threshold,
            )
        )

    for leg in legs:
        if not _is_open_short(leg, OptionKind.CALL, as_of):
            continue
        price = get_price(quotes, leg.symbol)
        if price is None:
            logger.debug(f"No quote for {leg.symbol}, skipping call {leg.id}")
            continue

        holding = by_symbol.get(leg.symbol)
        if holding is None or holding.quantity < leg.shares:
            logger.debug(f"Call {leg.id} on {leg.symbol} is not covered by shares held")
            continue

        days = calculate_days_to_expiry(leg.expiry, as_of)
        positions.append(
            SharesAtRiskPosition(
                symbol=leg.symbol,
                shares=leg.shares,
                strike_price=leg.strike,
                current_price=price,
                risk_value=leg.shares * price,
                probability=call_assignment_probability(price, leg.strike, days),
                days_to_expiry=days,
                risk_type=AssignmentRiskType.CALL_ASSIGNMENT,
                high_threshold=high_threshold,
                medium_threshold=medium_threshold,
            )
        )

    return SharesAtRiskSummary(
        total_shares=sum(p.shares for p in positions),
        total_value=sum(p.risk_value for p in positions),
        weighted_probability=weighted_probability(positions),
        positions=positions,
        high_threshold=high_threshold,
        medium_threshold=medium_threshold,
    )


def _open_calls_by_symbol(
    legs: Sequence[OptionLeg], as_of: DateLike
) -> dict[str, list[OptionLeg]]:
    calls: dict[str, list[OptionLeg]] = {}
    for leg in legs:
        if _is_open_short(leg, OptionKind.CALL, as_of):
            calls.setdefault(leg.symbol, []).append(leg)
    return calls


def analyze_covered_call_positions(
    legs: Sequence[OptionLeg],
    holdings: Sequence[Holding],
    quotes: QuoteLookup,
    as_of: Optional[DateLike] = None,
) -> list[CoveredCallPosition]:
    """
    Coverage of each holding by the short calls written against it.

    shares_covered = min(shares owned, contracts written * 100) and
    available_shares is the rest. The earliest-expiring call is reported as
    the primary call.
    """
    as_of = as_of if as_of is not None else datetime.now()
    calls_by_symbol = _open_calls_by_symbol(legs, as_of)
    results: list[CoveredCallPosition] = []

    for symbol, holding in _holdings_by_symbol(holdings).items():
        calls = calls_by_symbol.get(symbol)
        if not calls:
            continue
        price = get_price(quotes, symbol)
        if price is None:
            continue

        contracts_written = sum(call.contracts for call in calls)
        shares_covered = min(holding.quantity, contracts_written * CONTRACT_MULTIPLIER)
        primary = min(calls, key=lambda call: call.expiry)
        days = calculate_days_to_expiry(primary.expiry, as_of)

        results.append(
            CoveredCallPosition(
                symbol=symbol,
                shares_owned=holding.quantity,
                calls_written=contracts_written,
                shares_covered=shares_covered,
                available_shares=max(0.0, holding.quantity - shares_covered),
                call_strike=primary.strike,
                call_expiry=primary.expiry,
                call_premium=sum(call.premium_total for call in calls),
                assignment_risk=call_assignment_probability(price, primary.strike, days),
            )
        )

    return results


def analyze_covered_call_share_positions(
    legs: Sequence[OptionLeg],
    holdings: Sequence[Holding],
    quotes: QuoteLookup,
    as_of: Optional[DateLike] = None,
) -> list[CoveredCallSharePosition]:
    """Every quoted holding with the covered calls written against it."""
    as_of = as_of if as_of is not None else datetime.now()
    calls_by_symbol = _open_calls_by_symbol(legs, as_of)
    results: list[CoveredCallSharePosition] = []

    for symbol, holding in _holdings_by_symbol(holdings).items():
        price = get_price(quotes, symbol)
        if price is None:
            continue

        calls = calls_by_symbol.get(symbol, [])
        days = [calculate_days_to_expiry(call.expiry, as_of) for call in calls]
        risks = [
            call_assignment_probability(price, call.strike, d)
            for call, d in zip(calls, days)
        ]
        potential_profit = sum(
            (call.strike - holding.cost_basis) * call.shares + call.premium_total
            for call in calls
        )

        market_value = holding.quantity * price
        total_cost = holding.quantity * holding.cost_basis
        unrealized = market_value - total_cost

        results.append(
            CoveredCallSharePosition(
                symbol=symbol,
                quantity=holding.quantity,
                cost_basis=holding.cost_basis,
                current_price=price,
                market_value=market_value,
                unrealized_pl=unrealized,
                unrealized_pl_percent=(unrealized / total_cost * 100) if total_cost > 0 else 0.0,
                covered_call_count=sum(call.contracts for call in calls),
                covered_call_strikes=[call.strike for call in calls],
                covered_call_expiries=[call.expiry for call in calls],
                total_premium_collected=sum(call.premium_total for call in calls),
                potential_profit_if_assigned=potential_profit,
                average_days_to_expiry=(sum(days) / len(days)) if days else 0.0,
                average_assignment_risk=(sum(risks) / len(risks)) if risks else 0.0,
            )
        )

    return results


def mark_option_leg(leg: OptionLeg, price: float, as_of: DateLike) -> float:
    """
    Signed mark-to-market value of an open leg.

    Per share: intrinsic + time value * max(0.1, dte / 30). Sold legs are a
    liability and come back negative.
    """
    intrinsic = intrinsic_value(leg.option_kind, price, leg.strike)
    time_value = max(0.0, leg.premium - intrinsic)
    days = calculate_days_to_expiry(leg.expiry, as_of)
    decay_factor = max(MIN_DECAY_FACTOR, days / DECAY_WINDOW_DAYS)

    value = (intrinsic + time_value * decay_factor) * leg.shares
    return -value if leg.side == LegSide.SELL else value


def calculate_portfolio_value(
    legs: Sequence[OptionLeg],
    holdings: Sequence[Holding],
    quotes: QuoteLookup,
    cash_balance: float = 0.0,
    as_of: Optional[DateLike] = None,
    min_initial_investment: float = DEFAULT_MIN_INITIAL_INVESTMENT,
    high_threshold: float = HIGH_RISK_THRESHOLD,
    medium_threshold: float = MEDIUM_RISK_THRESHOLD,
) -> PortfolioValue:
    """
    Total portfolio value.

    cash (less collateral reserved for open short puts) + shares value +
    options mark-to-market + collateral.

    Args:
        legs: Option legs
        holdings: Current share holdings
        quotes: Symbol to quote lookup
        cash_balance: Cash before collateral is reserved
        as_of: Valuation time (default: now)
        min_initial_investment: Floor of the initial investment for total return
        high_threshold: Probability for HIGH risk level
        medium_threshold: Probability for MEDIUM risk level

    Returns:
        PortfolioValue with exposure and per-holding details
    """
    as_of = as_of if as_of is not None else datetime.now()

    collateral_value = sum(
        leg.notional for leg in legs if _is_open_short(leg, OptionKind.PUT, as_of)
    )
    adjusted_cash = cash_balance - collateral_value

    coverage = {
        cc.symbol: cc for cc in analyze_covered_call_positions(legs, holdings, quotes, as_of)
    }

    shares_positions: list[SharesPosition] = []
    shares_value = 0.0
    for holding in holdings:
        if holding.quantity <= 0:
            continue
        price = get_price(quotes, holding.symbol)
        if price is None:
            logger.debug(f"No quote for {holding.symbol}, holding left out of value")
            continue

        market_value = holding.quantity * price
        total_cost = holding.quantity * holding.cost_basis
        unrealized = market_value - total_cost
        covered = coverage.get(holding.symbol)

        shares_positions.append(
            SharesPosition(
                symbol=holding.symbol,
                quantity=holding.quantity,
                cost_basis=holding.cost_basis,
                current_price=price,
                market_value=market_value,
                unrealized_pl=unrealized,
                unrealized_pl_percent=(unrealized / total_cost * 100) if total_cost > 0 else 0.0,
                covered_calls_against=covered.shares_covered if covered else 0.0,
                available_shares=covered.available_shares if covered else holding.quantity,
            )
        )
        shares_value += market_value

    options_value = 0.0
    for leg in legs:
        if not _is_open(leg, as_of):
            continue
        price = get_price(quotes, leg.symbol)
        if price is None:
            continue
        options_value += mark_option_leg(leg, price, as_of)

    shares_at_risk = calculate_shares_at_risk(
        legs, quotes, holdings, as_of, high_threshold, medium_threshold
    )

    total_equity = shares_value + options_value + collateral_value
    total_portfolio_value = adjusted_cash + total_equity

    premium_collected = sum(leg.premium_total for leg in legs if leg.side == LegSide.SELL)
    stock_cost = sum(p.quantity * p.cost_basis for p in shares_positions)
    initial_investment = max(min_initial_investment, stock_cost + collateral_value)
    total_return = total_equity - initial_investment + premium_collected
    total_return_percent = (
        total_return / initial_investment * 100 if initial_investment > 0 else 0.0
    )

    logger.info(
        f"Portfolio value ${total_portfolio_value:,.2f} "
        f"(shares ${shares_value:,.2f}, options ${options_value:,.2f}, "
        f"collateral ${collateral_value:,.2f})"
    )

    return PortfolioValue(
        total_cash=adjusted_cash,
        total_equity=total_equity,
        total_portfolio_value=total_portfolio_value,
        shares_value=shares_value,
        options_value=options_value,
        collateral_value=collateral_value,
        shares_at_risk=shares_at_risk,
        shares_positions=shares_positions,
        total_return=total_return,
        total_return_percent=total_return_percent,
    )


def value_portfolio(
    portfolio: "Portfolio",
    quotes: QuoteLookup,
    cash_balance: Optional[float] = None,
    as_of: Optional[DateLike] = None,
    config: Optional["LedgerConfig"] = None,
) -> PortfolioValue:
    """
    Value a replayed Portfolio.

    Open option positions become sold legs and open share positions the
    holdings. Explicit cash_balance wins over the configured one.
    """
    if config is not None:
        return calculate_portfolio_value(
            portfolio.option_legs(),
            portfolio.open_share_positions,
            quotes,
            cash_balance=config.cash_balance if cash_balance is None else cash_balance,
            as_of=as_of,
            min_initial_investment=config.min_initial_investment,
            high_threshold=config.high_risk_threshold,
            medium_threshold=config.medium_risk_threshold,
        )
    return calculate_portfolio_value(
        portfolio.option_legs(),
        portfolio.open_share_positions,
        quotes,
        cash_balance=cash_balance or 0.0,
        as_of=as_of,
    )
