"""Tests for the portfolio risk and valuation aggregator."""

import math
from datetime import date

import pytest

from wheel_ledger.activity import ActionKind, OptionKind
from wheel_ledger.analysis.models import AssignmentRiskType, LegSide
from wheel_ledger.analysis.risk import (
    analyze_covered_call_positions,
    analyze_covered_call_share_positions,
    calculate_portfolio_value,
    calculate_shares_at_risk,
    mark_option_leg,
    value_portfolio,
    weighted_probability,
)
from wheel_ledger.config import LedgerConfig
from wheel_ledger.ledger.shares import SharePosition
from wheel_ledger.portfolio import Portfolio
from wheel_ledger.quotes import quotes_from_prices

CALL_EXPIRY = date(2024, 2, 16)


def _holding(symbol: str, quantity: float, price: float) -> SharePosition:
    position = SharePosition(symbol=symbol)
    position.buy(quantity, price, date(2024, 1, 2))
    return position


@pytest.fixture
def covered_call(make_leg):
    return make_leg(
        option_kind=OptionKind.CALL,
        strike=155.0,
        premium=1.20,
        expiry=CALL_EXPIRY,
        leg_id="call",
    )


class TestSharesAtRisk:
    """Tests for calculate_shares_at_risk."""

    def test_put_and_call_are_independent(self, make_leg, as_of) -> None:
        """An ITM put at 50 and a covered call at 60 yield two separate entries."""
        put = make_leg(symbol="XYZ", strike=50.0, premium=1.0, leg_id="put")
        call = make_leg(
            symbol="XYZ", strike=60.0, premium=0.5, option_kind=OptionKind.CALL, leg_id="call"
        )
        quotes = quotes_from_prices({"XYZ": 45.0})

        summary = calculate_shares_at_risk(
            [put, call], quotes, [_holding("XYZ", 100, 55.0)], as_of
        )

        assert len(summary.positions) == 2
        (put_entry,) = summary.put_assignments
        (call_entry,) = summary.call_assignments

        assert put_entry.risk_type == AssignmentRiskType.PUT_ASSIGNMENT
        assert put_entry.probability == pytest.approx(5 / 50 * 100 + 50 * (1 - 9 / 30))
        assert put_entry.risk_value == pytest.approx(5000.0)
        assert put_entry.is_in_the_money

        assert call_entry.probability == pytest.approx(
            max(5.0, 50 * math.exp(-25.0 / 8))
        )
        assert call_entry.risk_value == pytest.approx(4500.0)
        assert not call_entry.is_in_the_money

        assert summary.total_shares == 200
        assert summary.total_value == pytest.approx(9500.0)
        assert summary.weighted_probability == pytest.approx(
            (put_entry.probability * 5000 + call_entry.probability * 4500) / 9500
        )

    def test_uncovered_call_excluded(self, covered_call, as_of) -> None:
        """Calls without enough shares held are not exposure."""
        quotes = quotes_from_prices({"AAPL": 150.0})
        summary = calculate_shares_at_risk(
            [covered_call], quotes, [_holding("AAPL", 50, 145.0)], as_of
        )
        assert summary.positions == []
        assert summary.weighted_probability == 0.0
        assert summary.risk_level == "LOW"

    def test_closed_expired_and_unquoted_legs_excluded(self, make_leg, as_of) -> None:
        """Only open, unexpired, quoted short legs count."""
        legs = [
            make_leg(close_date=date(2024, 1, 5), close_price=0.5),
            make_leg(is_assigned=True),
            make_leg(expiry=date(2024, 1, 5)),
            make_leg(side=LegSide.BUY),
            make_leg(symbol="MSFT"),
        ]
        quotes = quotes_from_prices({"AAPL": 140.0})
        summary = calculate_shares_at_risk(legs, quotes, [], as_of)
        assert summary.positions == []

    def test_high_risk_flags(self, make_leg, as_of) -> None:
        """Deep ITM exposure is HIGH risk with the warning flag set."""
        quotes = quotes_from_prices({"AAPL": 40.0})
        summary = calculate_shares_at_risk([make_leg()], quotes, [], as_of)

        assert summary.weighted_probability == pytest.approx(95.0)
        assert summary.risk_level == "HIGH"
        assert summary.has_high_risk

    def test_custom_thresholds(self, make_leg, as_of) -> None:
        """Thresholds passed in drive the summary risk level."""
        quotes = quotes_from_prices({"AAPL": 145.0})
        summary = calculate_shares_at_risk(
            [make_leg()], quotes, [], as_of, high_threshold=30.0, medium_threshold=10.0
        )
        assert summary.risk_level == "HIGH"
        assert summary.to_dict()["risk_level"] == "HIGH"
        (entry,) = summary.positions
        assert entry.risk_level == "HIGH"
        default = calculate_shares_at_risk([make_leg()], quotes, [], as_of)
        assert default.positions[0].risk_level == "MEDIUM"

    def test_weighted_probability_empty(self) -> None:
        """No exposure weighs to zero."""
        assert weighted_probability([]) == 0.0


class TestCoveredCalls:
    """Tests for covered call coverage views."""

    def test_partial_coverage(self, covered_call, as_of) -> None:
        """Shares beyond the written contracts remain available."""
        quotes = quotes_from_prices({"AAPL": 150.0})
        (coverage,) = analyze_covered_call_positions(
            [covered_call], [_holding("AAPL", 150, 145.0)], quotes, as_of
        )

        assert coverage.shares_owned == 150
        assert coverage.calls_written == 1
        assert coverage.shares_covered == 100
        assert coverage.available_shares == 50
        assert coverage.call_strike == 155.0
        assert coverage.call_premium == pytest.approx(120.0)

    def test_primary_call_is_earliest_expiry(self, make_leg, covered_call, as_of) -> None:
        """The nearest expiring call is reported as primary."""
        near = make_leg(option_kind=OptionKind.CALL, strike=160.0, expiry=date(2024, 1, 26))
        quotes = quotes_from_prices({"AAPL": 150.0})
        (coverage,) = analyze_covered_call_positions(
            [covered_call, near], [_holding("AAPL", 100, 145.0)], quotes, as_of
        )

        assert coverage.call_strike == 160.0
        assert coverage.shares_covered == 100
        assert coverage.available_shares == 0

    def test_share_view(self, covered_call, as_of) -> None:
        """Holdings list the calls written against them."""
        quotes = quotes_from_prices({"AAPL": 150.0})
        (view,) = analyze_covered_call_share_positions(
            [covered_call], [_holding("AAPL", 100, 145.0)], quotes, as_of
        )

        assert view.market_value == pytest.approx(15000.0)
        assert view.unrealized_pl == pytest.approx(500.0)
        assert view.unrealized_pl_percent == pytest.approx(500.0 / 14500.0 * 100)
        assert view.covered_call_count == 1
        assert view.covered_call_strikes == [155.0]
        assert view.covered_call_expiries == [CALL_EXPIRY]
        assert view.potential_profit_if_assigned == pytest.approx(1000.0 + 120.0)
        assert view.average_days_to_expiry == 37


class TestMarkToMarket:
    """Tests for mark_option_leg."""

    def test_sold_leg_is_liability(self, make_leg, as_of) -> None:
        """Sold legs carry negative value decaying with time."""
        value = mark_option_leg(make_leg(), 155.0, as_of)
        assert value == pytest.approx(-(2.50 * 0.3) * 100)

    def test_bought_leg_is_asset(self, make_leg, as_of) -> None:
        """Bought legs carry positive value."""
        value = mark_option_leg(make_leg(side=LegSide.BUY), 155.0, as_of)
        assert value == pytest.approx(2.50 * 0.3 * 100)

    def test_decay_factor_floor(self, make_leg) -> None:
        """At expiry a tenth of the time value remains."""
        value = mark_option_leg(make_leg(), 145.0, date(2024, 1, 19))
        # intrinsic 5 exceeds premium, so no time value is left
        assert value == pytest.approx(-500.0)
        otm = mark_option_leg(make_leg(), 155.0, date(2024, 1, 19))
        assert otm == pytest.approx(-(2.50 * 0.1) * 100)


class TestPortfolioValue:
    """Tests for total portfolio value."""

    def test_portfolio_value(self, make_leg, covered_call, as_of) -> None:
        """Cash, collateral, shares and option marks add up."""
        put = make_leg(strike=140.0)
        holding = _holding("AAPL", 100, 145.0)
        quotes = quotes_from_prices({"AAPL": 150.0})

        value = calculate_portfolio_value(
            [put, covered_call], [holding], quotes, cash_balance=50000.0, as_of=as_of
        )

        put_mark = -(2.50 * 0.3) * 100
        call_mark = -(1.20 * (37 / 30)) * 100
        options_value = put_mark + call_mark
        total_equity = 15000.0 + options_value + 14000.0

        assert value.collateral_value == pytest.approx(14000.0)
        assert value.total_cash == pytest.approx(36000.0)
        assert value.shares_value == pytest.approx(15000.0)
        assert value.options_value == pytest.approx(options_value)
        assert value.total_equity == pytest.approx(total_equity)
        assert value.total_portfolio_value == pytest.approx(36000.0 + total_equity)
        assert value.total_return == pytest.approx(total_equity - 28500.0 + 370.0)
        assert value.total_return_percent == pytest.approx(
            (total_equity - 28500.0 + 370.0) / 28500.0 * 100
        )

        (shares,) = value.shares_positions
        assert shares.covered_calls_against == 100
        assert shares.available_shares == 0
        assert len(value.shares_at_risk.positions) == 2

    def test_expired_unclosed_leg_not_marked(self, make_leg, as_of) -> None:
        """A leg past expiry drops out of marks as it does out of collateral."""
        stale = make_leg(strike=155.0, expiry=date(2024, 1, 5))
        quotes = quotes_from_prices({"AAPL": 150.0})

        value = calculate_portfolio_value([stale], [], quotes, cash_balance=1000.0, as_of=as_of)

        assert value.options_value == 0.0
        assert value.collateral_value == 0.0
        assert value.shares_at_risk.positions == []
        assert value.total_portfolio_value == pytest.approx(1000.0)

    def test_minimum_initial_investment(self, as_of) -> None:
        """Small portfolios measure return against the minimum investment."""
        holding = _holding("AAPL", 10, 100.0)
        quotes = quotes_from_prices({"AAPL": 110.0})

        value = calculate_portfolio_value([], [holding], quotes, as_of=as_of)

        assert value.total_return == pytest.approx(1100.0 - 10000.0)
        assert value.shares_positions[0].available_shares == 10

    def test_unquoted_holding_left_out(self, as_of) -> None:
        """Holdings without a quote are not valued."""
        value = calculate_portfolio_value(
            [], [_holding("AAPL", 10, 100.0)], {}, cash_balance=1000.0, as_of=as_of
        )
        assert value.shares_value == 0.0
        assert value.shares_positions == []
        assert value.total_portfolio_value == pytest.approx(1000.0)

    def test_to_dict(self, as_of) -> None:
        """Serialized portfolio value nests the exposure summary."""
        value = calculate_portfolio_value([], [], {}, cash_balance=1234.567, as_of=as_of)
        data = value.to_dict()
        assert data["total_cash"] == 1234.57
        assert data["shares_at_risk"]["positions"] == []


class TestValuePortfolio:
    """Tests for valuing a replayed Portfolio."""

    @pytest.fixture
    def portfolio(self, stock_trade, option_trade) -> Portfolio:
        portfolio = Portfolio()
        portfolio.replay(
            [
                stock_trade(ActionKind.BUY, 100, 145.0, date(2024, 1, 2)),
                option_trade(
                    ActionKind.SELL_TO_OPEN,
                    date(2024, 1, 3),
                    price=1.20,
                    expiration=CALL_EXPIRY,
                    strike=155.0,
                    option_kind=OptionKind.CALL,
                ),
                option_trade(ActionKind.SELL_TO_OPEN, date(2024, 1, 3), price=2.50, strike=140.0),
            ]
        )
        return portfolio

    def test_matches_direct_calculation(self, portfolio, as_of) -> None:
        """value_portfolio feeds open legs and holdings to the aggregator."""
        quotes = quotes_from_prices({"AAPL": 150.0})

        value = value_portfolio(portfolio, quotes, cash_balance=50000.0, as_of=as_of)
        direct = calculate_portfolio_value(
            portfolio.option_legs(),
            portfolio.open_share_positions,
            quotes,
            cash_balance=50000.0,
            as_of=as_of,
        )

        assert value.to_dict() == direct.to_dict()
        assert value.collateral_value == pytest.approx(14000.0)

    def test_uses_config(self, portfolio, as_of) -> None:
        """Configured cash and thresholds apply unless cash is passed."""
        config = LedgerConfig(cash_balance=20000.0, high_risk_threshold=10.0, medium_risk_threshold=5.0)
        quotes = quotes_from_prices({"AAPL": 150.0})

        configured = value_portfolio(portfolio, quotes, as_of=as_of, config=config)
        explicit = value_portfolio(portfolio, quotes, cash_balance=0.0, as_of=as_of, config=config)

        assert configured.total_cash == pytest.approx(20000.0 - 14000.0)
        assert explicit.total_cash == pytest.approx(-14000.0)
        assert configured.shares_at_risk.high_threshold == 10.0
