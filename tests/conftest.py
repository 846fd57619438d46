"""Pytest fixtures shared by the ledger and valuation tests.

Factories build TradeActivity records and OptionLeg inputs with sensible
defaults so individual tests only spell out what they care about.
"""

from datetime import date, datetime

import pytest

from wheel_ledger.activity import ActionKind, OptionKind, TradeActivity
from wheel_ledger.analysis.models import LegSide, OptionLeg

AS_OF = datetime(2024, 1, 10, 12, 0)


@pytest.fixture
def as_of() -> datetime:
    """Fixed valuation time used across valuation tests."""
    return AS_OF


@pytest.fixture
def stock_trade():
    """Factory for stock activity records.

    Example:
        >>> def test_buy(stock_trade):
        >>>     trade = stock_trade(ActionKind.BUY, 10, 100.0, date(2024, 1, 2))
    """

    def _make(action, quantity, price, day, symbol="AAPL"):
        return TradeActivity(
            date=day,
            action=action,
            symbol=symbol,
            quantity=quantity,
            price=price,
        )

    return _make


@pytest.fixture
def option_trade():
    """Factory for option activity records on one contract."""

    def _make(
        action,
        day,
        quantity=1,
        price=None,
        underlying="AAPL",
        expiration=date(2024, 1, 19),
        strike=150.0,
        option_kind=OptionKind.PUT,
    ):
        if price is None and action in (ActionKind.SELL_TO_OPEN, ActionKind.BUY_TO_CLOSE):
            price = 1.0
        return TradeActivity(
            date=day,
            action=action,
            symbol=f"{underlying} {expiration:%m/%d/%Y} {strike:.2f} {option_kind.value[0]}",
            quantity=quantity,
            price=price,
            is_option=True,
            underlying=underlying,
            expiration=expiration,
            strike=strike,
            option_kind=option_kind,
        )

    return _make


@pytest.fixture
def make_leg():
    """Factory for option legs (a sold put by default)."""

    def _make(
        strike=150.0,
        premium=2.50,
        expiry=date(2024, 1, 19),
        option_kind=OptionKind.PUT,
        side=LegSide.SELL,
        contracts=1,
        symbol="AAPL",
        leg_id=None,
        **kwargs,
    ):
        return OptionLeg(
            id=leg_id or f"{symbol}-{option_kind.value}-{strike}",
            symbol=symbol,
            option_kind=option_kind,
            side=side,
            strike=strike,
            premium=premium,
            expiry=expiry,
            contracts=contracts,
            **kwargs,
        )

    return _make
