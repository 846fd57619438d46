"""Tests for the portfolio performance history."""

from datetime import date

import pytest

from wheel_ledger.activity import ActionKind, OptionKind
from wheel_ledger.analysis.models import LegSide
from wheel_ledger.analysis.performance import generate_portfolio_performance
from wheel_ledger.ledger.shares import SharePosition
from wheel_ledger.portfolio import Portfolio


@pytest.fixture
def wheel_history(make_leg):
    """An open short put, 100 shares bought later and a call written on them."""
    holding = SharePosition(symbol="AAPL")
    holding.buy(100, 145.0, date(2024, 1, 22))
    legs = [
        make_leg(open_date=date(2024, 1, 2)),
        make_leg(
            option_kind=OptionKind.CALL,
            strike=155.0,
            premium=1.20,
            expiry=date(2024, 2, 16),
            open_date=date(2024, 1, 22),
        ),
    ]
    return legs, [holding]


class TestPerformanceHistory:
    """Tests for generate_portfolio_performance."""

    def test_empty_history_is_starting_point(self) -> None:
        """With nothing traded only the starting point is returned."""
        (start,) = generate_portfolio_performance([], [], starting_value=25000.0)

        assert start.date is None
        assert start.portfolio_value == 25000.0
        assert start.cash_value == 25000.0
        assert start.total_return == 0.0

    def test_events_in_date_order(self, wheel_history) -> None:
        """Premium raises value, collateral and purchases only move cash."""
        legs, holdings = wheel_history
        points = generate_portfolio_performance(legs, holdings)

        assert [p.date for p in points] == [
            None,
            date(2024, 1, 2),
            date(2024, 1, 2),
            date(2024, 1, 22),
            date(2024, 1, 22),
        ]
        assert [p.portfolio_value for p in points] == pytest.approx(
            [10000.0, 10250.0, 10250.0, 10370.0, 10370.0]
        )
        assert points[1].day_change == pytest.approx(250.0)
        assert points[1].day_change_percent == pytest.approx(2.5)
        assert points[2].day_change == 0.0

        last = points[-1]
        assert last.options_value == pytest.approx(370.0)
        assert last.collateral_value == pytest.approx(15000.0)
        assert last.shares_value == pytest.approx(14500.0)
        assert last.cash_value == pytest.approx(10000.0 + 370.0 - 14500.0 - 15000.0)
        assert last.total_return == pytest.approx(370.0)
        assert last.total_return_percent == pytest.approx(3.7)

    def test_sampling_keeps_last_event(self, wheel_history) -> None:
        """Points are sampled every few events and always include the last one."""
        legs, holdings = wheel_history
        points = generate_portfolio_performance(legs, holdings, max_points=2)

        assert len(points) == 4
        assert points[-1].portfolio_value == pytest.approx(10370.0)

    def test_bought_and_closed_legs(self, make_leg) -> None:
        """Bought legs pay premium and closed puts reserve no collateral."""
        legs = [
            make_leg(side=LegSide.BUY, premium=1.00, open_date=date(2024, 1, 2)),
            make_leg(
                strike=140.0,
                open_date=date(2024, 1, 3),
                close_date=date(2024, 1, 9),
                close_price=0.50,
            ),
        ]
        points = generate_portfolio_performance(legs)

        last = points[-1]
        assert last.options_value == pytest.approx(-100.0 + 250.0)
        assert last.collateral_value == 0.0

    def test_legs_without_open_date_left_out(self, make_leg) -> None:
        """Legs with no open date cannot be placed in the history."""
        points = generate_portfolio_performance([make_leg()])
        assert len(points) == 1

    def test_from_replayed_portfolio(self, stock_trade, option_trade) -> None:
        """Open legs and holdings of a replayed portfolio feed the history."""
        portfolio = Portfolio()
        portfolio.replay(
            [
                stock_trade(ActionKind.BUY, 100, 145.0, date(2024, 1, 2)),
                option_trade(
                    ActionKind.SELL_TO_OPEN,
                    date(2024, 1, 3),
                    price=1.20,
                    strike=155.0,
                    option_kind=OptionKind.CALL,
                ),
            ]
        )

        points = generate_portfolio_performance(
            portfolio.option_legs(), portfolio.open_share_positions
        )

        assert [p.date for p in points[1:]] == [date(2024, 1, 2), date(2024, 1, 3)]
        assert points[-1].portfolio_value == pytest.approx(10120.0)
        assert points[-1].to_dict()["shares_value"] == 14500.0
