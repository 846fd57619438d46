"""Tests for wheel cycle metrics."""

from datetime import date, datetime

import pytest

from wheel_ledger.activity import OptionKind
from wheel_ledger.analysis.cycle import (
    calculate_annualized_roi,
    calculate_break_even_price,
    calculate_cycle_metrics,
    calculate_days_in_trade,
    calculate_leg_roi,
    calculate_monthly_roi,
    calculate_roi_per_day,
)
from wheel_ledger.exceptions import ValidationError


@pytest.fixture
def full_cycle(make_leg):
    """A put assigned at 150, then a call at 155 that takes the shares away."""
    return [
        make_leg(open_date=date(2024, 1, 2), is_assigned=True),
        make_leg(
            option_kind=OptionKind.CALL,
            strike=155.0,
            premium=1.20,
            expiry=date(2024, 2, 16),
            open_date=date(2024, 1, 22),
            is_assigned=True,
        ),
    ]


class TestReturnHelpers:
    """Tests for the ROI and day count helpers."""

    def test_leg_roi(self) -> None:
        """ROI is P&L over collateral, 0 without collateral."""
        assert calculate_leg_roi(150.0, 15000.0) == pytest.approx(1.0)
        assert calculate_leg_roi(150.0, 0.0) == 0.0

    def test_annualized_roi(self) -> None:
        """ROI scales to 365 days."""
        assert calculate_annualized_roi(1.0, 73) == pytest.approx(5.0)
        assert calculate_annualized_roi(1.0, 0) == 0.0

    def test_roi_per_day(self) -> None:
        """Daily ROI spreads the return over the days held."""
        assert calculate_roi_per_day(100.0, 10000.0, 4) == pytest.approx(0.25)
        assert calculate_roi_per_day(100.0, 10000.0, 0) == 0.0

    def test_monthly_roi_short_trade_extrapolates(self) -> None:
        """Trades under a month scale linearly to 30 days."""
        assert calculate_monthly_roi(100.0, 10000.0, 10) == pytest.approx(3.0)

    def test_monthly_roi_long_trade_annualizes(self) -> None:
        """Trades of a month or more are annualized and split over 12 months."""
        assert calculate_monthly_roi(100.0, 10000.0, 60) == pytest.approx(365 / 60 / 12)
        assert calculate_monthly_roi(100.0, 0.0, 60) == 0.0

    def test_days_in_trade(self) -> None:
        """Partial days round up and a same-day trade counts as one day."""
        assert calculate_days_in_trade(date(2024, 1, 2), date(2024, 1, 2)) == 1
        assert calculate_days_in_trade(date(2024, 1, 2), date(2024, 1, 12)) == 10
        assert (
            calculate_days_in_trade(datetime(2024, 1, 2, 9, 0), datetime(2024, 1, 3, 10, 0))
            == 2
        )

    def test_break_even_price(self) -> None:
        """Premium per share lowers the cost basis."""
        assert calculate_break_even_price(50.0, 200.0, 100) == pytest.approx(48.0)
        assert calculate_break_even_price(50.0, 200.0, 0) == 0.0


class TestCycleMetrics:
    """Tests for calculate_cycle_metrics."""

    def test_full_cycle(self, full_cycle) -> None:
        """Premiums plus the share gain over the cycle, measured on put collateral."""
        metrics = calculate_cycle_metrics(full_cycle, as_of=date(2024, 3, 1))

        assert metrics.total_premium == pytest.approx(370.0)
        assert metrics.option_pl == pytest.approx(370.0)
        assert metrics.stock_pl == pytest.approx(500.0)
        assert metrics.net_pl == pytest.approx(870.0)
        assert metrics.start_date == date(2024, 1, 2)
        assert metrics.end_date == date(2024, 2, 16)
        assert metrics.days_in_trade == 45
        assert metrics.max_collateral == pytest.approx(15000.0)
        assert metrics.break_even_price == pytest.approx(146.30)
        assert metrics.roi == pytest.approx(5.8)
        assert metrics.annualized_roi == pytest.approx(5.8 * 365 / 45)
        assert metrics.monthly_roi == pytest.approx(5.8 * 365 / 45 / 12)
        assert metrics.roi_per_day == pytest.approx(5.8 / 45)

    def test_bought_back_put(self, make_leg) -> None:
        """A put closed early keeps premium less the buy-back."""
        leg = make_leg(
            premium=5.50,
            open_date=date(2024, 1, 2),
            close_date=date(2024, 1, 8),
            close_price=2.00,
        )
        metrics = calculate_cycle_metrics([leg], as_of=date(2024, 3, 1))

        assert metrics.option_pl == pytest.approx(350.0)
        assert metrics.stock_pl == 0.0
        assert metrics.break_even_price == 0.0
        assert metrics.days_in_trade == 6
        assert metrics.roi == pytest.approx(350.0 / 15000.0 * 100)
        assert metrics.monthly_roi == pytest.approx(350.0 / 15000.0 * 100 * 30 / 6)

    def test_open_leg_runs_to_as_of(self, make_leg) -> None:
        """An open leg ends at the valuation date."""
        leg = make_leg(open_date=date(2024, 1, 2))
        metrics = calculate_cycle_metrics([leg], as_of=datetime(2024, 1, 10, 12, 0))

        assert metrics.end_date == date(2024, 1, 10)
        assert metrics.days_in_trade == 8

    def test_commissions_reduce_net(self, make_leg) -> None:
        """Commissions come off the net P&L."""
        leg = make_leg(open_date=date(2024, 1, 2), is_assigned=True, commissions=1.30)
        metrics = calculate_cycle_metrics([leg])

        assert metrics.total_commissions == pytest.approx(1.30)
        assert metrics.net_pl == pytest.approx(248.70)

    def test_calls_only_has_no_collateral(self, make_leg) -> None:
        """Without a sold put every ratio is 0."""
        call = make_leg(option_kind=OptionKind.CALL, open_date=date(2024, 1, 2))
        metrics = calculate_cycle_metrics([call], as_of=date(2024, 1, 10))

        assert metrics.max_collateral == 0.0
        assert metrics.roi == 0.0
        assert metrics.monthly_roi == 0.0

    def test_empty_cycle_raises(self) -> None:
        """A cycle needs at least one leg."""
        with pytest.raises(ValidationError):
            calculate_cycle_metrics([])

    def test_to_dict(self, full_cycle) -> None:
        """Serialization rounds money and dates to ISO strings."""
        data = calculate_cycle_metrics(full_cycle).to_dict()

        assert data["start_date"] == "2024-01-02"
        assert data["net_pl"] == 870.0
        assert data["break_even_price"] == 146.3
