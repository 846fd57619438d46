"""Tests for the trade event model."""

from datetime import date, datetime

import pytest

from wheel_ledger.activity import (
    NON_LEDGER_ACTIONS,
    OPTION_ACTIONS,
    SHARE_ACTIONS,
    ActionKind,
    ContractKey,
    OptionKind,
    TradeActivity,
)
from wheel_ledger.exceptions import ValidationError


class TestActionKinds:
    """Tests for action kind grouping."""

    def test_groups_are_disjoint_and_complete(self) -> None:
        """Every action kind belongs to exactly one group."""
        groups = [SHARE_ACTIONS, OPTION_ACTIONS, NON_LEDGER_ACTIONS]
        for kind in ActionKind:
            assert sum(kind in group for group in groups) == 1

    def test_brokerage_codes(self) -> None:
        """Option actions carry the brokerage abbreviations."""
        assert ActionKind.SELL_TO_OPEN.value == "STO"
        assert ActionKind.BUY_TO_CLOSE.value == "BTC"


class TestContractKey:
    """Tests for option contract identity."""

    def test_occ_display(self) -> None:
        """Display key joins symbol, expiry, strike and kind."""
        key = ContractKey("AAPL", date(2024, 1, 19), 150.0, OptionKind.PUT)
        assert key.occ == "AAPL_2024-01-19_150.0_Put"
        assert str(key) == key.occ

    def test_strike_distinguishes_contracts(self) -> None:
        """Contracts differing only by strike are different keys."""
        a = ContractKey("AAPL", date(2024, 1, 19), 150.0, OptionKind.PUT)
        b = ContractKey("AAPL", date(2024, 1, 19), 145.0, OptionKind.PUT)
        assert a != b
        assert len({a, b}) == 2

    def test_kind_distinguishes_contracts(self) -> None:
        """A call and a put at the same strike are different keys."""
        put = ContractKey("AAPL", date(2024, 1, 19), 150.0, OptionKind.PUT)
        call = ContractKey("AAPL", date(2024, 1, 19), 150.0, OptionKind.CALL)
        assert put != call


class TestTradeActivity:
    """Tests for TradeActivity construction."""

    def test_date_normalized_to_datetime(self) -> None:
        """Plain dates become midnight datetimes."""
        trade = TradeActivity(date=date(2024, 1, 2), action=ActionKind.BUY, symbol="aapl")
        assert trade.date == datetime(2024, 1, 2)
        assert trade.symbol == "AAPL"

    def test_option_requires_contract_identity(self) -> None:
        """Option records without strike and kind are rejected."""
        with pytest.raises(ValidationError, match="strike, option_kind"):
            TradeActivity(
                date=date(2024, 1, 2),
                action=ActionKind.SELL_TO_OPEN,
                is_option=True,
                underlying="AAPL",
                expiration=date(2024, 1, 19),
            )

    def test_contract_key_from_option(self, option_trade) -> None:
        """Option records expose their contract key."""
        trade = option_trade(ActionKind.SELL_TO_OPEN, date(2024, 1, 2), price=2.5)
        assert trade.contract_key == ContractKey(
            "AAPL", date(2024, 1, 19), 150.0, OptionKind.PUT
        )
        assert trade.position_symbol == "AAPL"

    def test_contract_key_on_stock_raises(self, stock_trade) -> None:
        """Stock records have no contract key."""
        trade = stock_trade(ActionKind.BUY, 10, 100.0, date(2024, 1, 2))
        with pytest.raises(ValidationError):
            _ = trade.contract_key

    def test_require_quantity_missing(self) -> None:
        """Missing quantity fails when the ledger needs it."""
        trade = TradeActivity(date=date(2024, 1, 2), action=ActionKind.BUY, symbol="AAPL")
        with pytest.raises(ValidationError, match="no quantity"):
            trade.require_quantity()

    def test_fractional_quantity_kept(self, stock_trade) -> None:
        """Fractional share quantities are allowed."""
        trade = stock_trade(ActionKind.BUY, 0.5, 100.0, date(2024, 1, 2))
        assert trade.require_quantity() == 0.5

    @pytest.mark.parametrize("strike", [0, 0.0, -150.0])
    def test_option_non_positive_strike_rejected(self, option_trade, strike) -> None:
        """Option records need a positive strike."""
        with pytest.raises(ValidationError, match="strike must be positive"):
            option_trade(ActionKind.SELL_TO_OPEN, date(2024, 1, 2), strike=strike)

    def test_contract_key_rechecks_strike(self, option_trade) -> None:
        """A strike edited after construction still cannot form a contract key."""
        trade = option_trade(ActionKind.SELL_TO_OPEN, date(2024, 1, 2))
        trade.strike = 0.0
        with pytest.raises(ValidationError, match="strike must be positive"):
            _ = trade.contract_key

    def test_non_numeric_quantity_and_price(self) -> None:
        """Non-numeric amounts fail as ValidationError, not ValueError."""
        trade = TradeActivity(
            date=date(2024, 1, 2),
            action=ActionKind.BUY,
            symbol="AAPL",
            quantity="ten",
            price="n/a",
        )
        with pytest.raises(ValidationError, match="Invalid quantity 'ten'"):
            trade.require_quantity()
        with pytest.raises(ValidationError, match="Invalid price 'n/a'"):
            trade.require_price()

    def test_numeric_strings_accepted(self) -> None:
        """Numeric strings convert like numbers."""
        trade = TradeActivity(
            date=date(2024, 1, 2), action=ActionKind.BUY, symbol="AAPL", quantity="10", price="99.5"
        )
        assert trade.require_quantity() == 10.0
        assert trade.require_price() == 99.5


class TestTradeActivityFromDict:
    """Tests for building activity from plain mappings."""

    def test_from_dict_option_with_aliases(self) -> None:
        """Names, ISO strings and strike_price/option_type aliases are accepted."""
        trade = TradeActivity.from_dict(
            {
                "date": "2024-01-02",
                "action": "SELL_TO_OPEN",
                "quantity": 2,
                "price": 1.25,
                "is_option": True,
                "underlying": "msft",
                "expiration": "2024-02-16",
                "strike_price": 400,
                "option_type": "Call",
            }
        )
        assert trade.action == ActionKind.SELL_TO_OPEN
        assert trade.contract_key == ContractKey(
            "MSFT", date(2024, 2, 16), 400.0, OptionKind.CALL
        )

    def test_from_dict_invalid_strike(self) -> None:
        """Zero and non-numeric strikes are rejected at the boundary."""
        record = {
            "date": "2024-01-02",
            "action": "STO",
            "quantity": 1,
            "price": 3.0,
            "is_option": True,
            "underlying": "AAPL",
            "expiration": "2024-02-16",
            "option_kind": "Put",
        }
        with pytest.raises(ValidationError, match="strike must be positive"):
            TradeActivity.from_dict({**record, "strike": 0})
        with pytest.raises(ValidationError, match="Invalid strike"):
            TradeActivity.from_dict({**record, "strike": "tbd"})

    def test_from_dict_unknown_action(self) -> None:
        """Unknown actions are rejected."""
        with pytest.raises(ValidationError, match="Invalid action"):
            TradeActivity.from_dict({"date": "2024-01-02", "action": "Split"})

    def test_from_dict_requires_date_and_action(self) -> None:
        """date and action are mandatory."""
        with pytest.raises(ValidationError):
            TradeActivity.from_dict({"symbol": "AAPL"})

    def test_to_dict_round_trip(self, option_trade) -> None:
        """to_dict output rebuilds an equal record."""
        trade = option_trade(ActionKind.SELL_TO_OPEN, date(2024, 1, 2), price=2.5)
        assert TradeActivity.from_dict(trade.to_dict()) == trade
