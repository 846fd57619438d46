"""
Portfolio aggregator.

This module provides the Portfolio class which owns every share and option
ledger of one accounting run, replays a trade stream into them in date
order, and sums realized P&L.
"""

import copy
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from .activity import (
    NON_LEDGER_ACTIONS,
    OPTION_ACTIONS,
    SHARE_ACTIONS,
    ActionKind,
    ContractKey,
    OptionKind,
    TradeActivity,
)
from .analysis.models import LegSide, OptionLeg
from .constants import CONTRACT_MULTIPLIER
from .exceptions import (
    InsufficientLotsError,
    InvalidStateError,
    LedgerError,
    UnsupportedActivityError,
    ValidationError,
)
from .ledger.options import OptionLot, OptionPosition
from .ledger.shares import ShareLot, SharePosition
from .state import OptionLifecycle

if TYPE_CHECKING:
    from .config import LedgerConfig

logger = logging.getLogger(__name__)


@dataclass
class ReplayWarning:
    """A record skipped during replay and why."""

    trade: TradeActivity
    message: str

    def __str__(self) -> str:
        return (
            f"{self.trade.date:%Y-%m-%d} {self.trade.action.value} "
            f"{self.trade.position_symbol}: {self.message}"
        )


@dataclass
class ReplayResult:
    """Outcome of replaying one batch of records."""

    applied: int = 0
    ignored: int = 0
    skipped: int = 0
    realized_pnl: float = 0.0
    warnings: list[ReplayWarning] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.applied + self.ignored + self.skipped


@dataclass(frozen=True)
class SharePositionSnapshot:
    """Open share position at a point of the replay."""

    symbol: str
    quantity: float
    total_cost: float
    cost_basis: float
    realized_pnl: float
    lots: tuple[ShareLot, ...]


@dataclass(frozen=True)
class OptionPositionSnapshot:
    """Open option position at a point of the replay."""

    key: ContractKey
    open_contracts: float
    total_credit: float
    realized_pnl: float
    lifecycle: OptionLifecycle
    lots: tuple[OptionLot, ...]


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Open positions and realized P&L; equal for equal replays."""

    realized_pnl: float
    shares: tuple[SharePositionSnapshot, ...]
    options: tuple[OptionPositionSnapshot, ...]


class Portfolio:
    """
    Owns all ledgers of one accounting run.

    Positions are created lazily on first reference. The ledgers stay
    private; every view hands out detached copies, so changes made to them
    never reach the running totals.

    Example:
        portfolio = Portfolio()
        result = portfolio.replay(trades)
        print(portfolio.realized_pnl, len(result.warnings))
    """

    def __init__(self, strict: bool = False, assignment_creates_shares: bool = False):
        """
        Initialize an empty portfolio.

        Args:
            strict: Raise on the first bad record instead of skip-and-warn
            assignment_creates_shares: Book the share purchase (put) or sale
                (call) implied by an assignment. Leave off when the trade
                stream already reports those stock trades.
        """
        self.strict = strict
        self.assignment_creates_shares = assignment_creates_shares
        self._share_positions: dict[str, SharePosition] = {}
        self._option_positions: dict[ContractKey, OptionPosition] = {}
        self._retired_option_positions: list[OptionPosition] = []
        self.realized_pnl = 0.0
        self.warnings: list[ReplayWarning] = []

    @classmethod
    def from_config(cls, config: "LedgerConfig") -> "Portfolio":
        """Create a portfolio using the replay settings of a configuration."""
        return cls(
            strict=config.strict_replay,
            assignment_creates_shares=config.assignment_creates_shares,
        )

    # --- Replay ---

    def load_shares(self, trades: Iterable[TradeActivity]) -> ReplayResult:
        """Replay the stock records of a trade stream."""
        return self._replay(trades, include_shares=True, include_options=False)

    def load_options(self, trades: Iterable[TradeActivity]) -> ReplayResult:
        """Replay the option records of a trade stream."""
        return self._replay(trades, include_shares=False, include_options=True)

    def replay(self, trades: Iterable[TradeActivity]) -> ReplayResult:
        """Replay stock and option records in one chronological pass."""
        return self._replay(trades, include_shares=True, include_options=True)

    @staticmethod
    def _chronological(trades: Iterable[TradeActivity]) -> list[TradeActivity]:
        records = list(trades)
        ordered = sorted(records, key=lambda t: t.date)
        if ordered != records:
            logger.warning(
                f"Trade stream of {len(records)} records was not in date order; sorted before replay"
            )
        return ordered

    def _replay(
        self,
        trades: Iterable[TradeActivity],
        include_shares: bool,
        include_options: bool,
    ) -> ReplayResult:
        result = ReplayResult()
        realized_before = self.realized_pnl

        for trade in self._chronological(trades):
            if trade.is_option and not include_options:
                continue
            if not trade.is_option and not include_shares:
                continue

            try:
                applied = self.apply(trade)
            except LedgerError as e:
                if self.strict:
                    raise
                warning = ReplayWarning(trade=trade, message=str(e))
                self.warnings.append(warning)
                result.warnings.append(warning)
                result.skipped += 1
                logger.warning(f"Skipped record: {warning}")
                continue

            if applied:
                result.applied += 1
            else:
                result.ignored += 1

        result.realized_pnl = self.realized_pnl - realized_before
        logger.info(
            f"Replayed {result.total} records: {result.applied} applied, "
            f"{result.ignored} ignored, {result.skipped} skipped, "
            f"realized ${result.realized_pnl:,.2f}"
        )
        return result

    def apply(self, trade: TradeActivity) -> bool:
        """
        Apply one record to its ledger.

        Records are not re-sorted here; use replay() for streams.

        Returns:
            False if the action kind is not booked by the ledgers

        Raises:
            LedgerError: If the record cannot be applied
        """
        if trade.action in NON_LEDGER_ACTIONS:
            logger.debug(f"Ignoring {trade.action.value} for {trade.position_symbol}")
            return False

        if trade.is_option:
            self._apply_option(trade)
        else:
            self._apply_share(trade)
        return True

    # --- Share records ---

    def _share_position(self, symbol: Optional[str]) -> SharePosition:
        if not symbol:
            raise ValidationError("Stock activity has no symbol")
        position = self._share_positions.get(symbol)
        if position is None:
            position = SharePosition(symbol=symbol)
            self._share_positions[symbol] = position
        return position

    def _apply_share(self, trade: TradeActivity) -> None:
        if trade.action not in SHARE_ACTIONS:
            raise UnsupportedActivityError(
                f"{trade.action.value} is not a stock activity ({trade.symbol})"
            )

        position = self._share_position(trade.symbol)
        quantity = trade.require_quantity()
        price = trade.require_price()

        if trade.action == ActionKind.BUY:
            position.buy(quantity, price, trade.date)
        else:
            self.realized_pnl += position.sell(quantity, price, trade.date)

    # --- Option records ---

    def _option_position(self, key: ContractKey) -> OptionPosition:
        position = self._option_positions.get(key)
        if position is None:
            position = OptionPosition(key=key)
            self._option_positions[key] = position
        return position

    def _apply_option(self, trade: TradeActivity) -> None:
        if trade.action not in OPTION_ACTIONS:
            raise UnsupportedActivityError(
                f"{trade.action.value} is not supported for options ({trade.contract_key})"
            )

        key = trade.contract_key
        position = self._option_position(key)

        if trade.action == ActionKind.SELL_TO_OPEN:
            if position.is_closed:
                # Same contract sold again: start a fresh lifecycle
                self._retired_option_positions.append(position)
                position = OptionPosition(key=key)
                self._option_positions[key] = position
            position.sell_to_open(
                trade.require_quantity(), trade.require_price(), trade.date, source=trade
            )

        elif trade.action == ActionKind.BUY_TO_CLOSE:
            self.realized_pnl += position.buy_to_close(
                trade.require_quantity(), trade.require_price(), trade.date, source=trade
            )

        elif trade.action == ActionKind.EXPIRED:
            self.realized_pnl += position.expire(trade.date, source=trade)

        else:
            self._assign(position, trade)

    def _assign(self, position: OptionPosition, trade: TradeActivity) -> None:
        key = position.key

        if not self.assignment_creates_shares:
            self.realized_pnl += position.assign(trade.date, source=trade)
            return

        shares = self._check_assignment(position)
        self.realized_pnl += position.assign(trade.date, source=trade)

        holding = self._share_position(key.symbol)
        if key.option_kind == OptionKind.PUT:
            holding.buy(shares, key.strike, trade.date)
            logger.debug(f"{key.occ}: assigned {shares} shares @ ${key.strike:.2f}")
        else:
            self.realized_pnl += holding.sell(shares, key.strike, trade.date)
            logger.debug(f"{key.occ}: {shares} shares called away @ ${key.strike:.2f}")

    def _check_assignment(self, position: OptionPosition) -> float:
        """Validate both legs of an assignment before either ledger changes."""
        key = position.key
        if not position.is_open:
            raise InvalidStateError(
                f"Cannot assign {key.occ}: position is {position.lifecycle.value}"
            )
        shares = position.open_contracts * CONTRACT_MULTIPLIER
        if key.option_kind == OptionKind.CALL:
            holding = self._share_positions.get(key.symbol)
            held = holding.quantity if holding is not None else 0.0
            if held < shares:
                raise InsufficientLotsError(
                    f"Assignment of {key.occ} needs {shares} shares, {held} held"
                )
        return shares

    # --- Views ---

    def _open_shares(self) -> list[SharePosition]:
        return [
            self._share_positions[symbol]
            for symbol in sorted(self._share_positions)
            if not self._share_positions[symbol].is_flat
        ]

    def _open_options(self) -> list[OptionPosition]:
        return sorted(
            (pos for pos in self._option_positions.values() if pos.is_open),
            key=lambda pos: pos.key.occ,
        )

    @property
    def open_share_positions(self) -> list[SharePosition]:
        """Copies of the share positions still holding shares, by symbol."""
        return copy.deepcopy(self._open_shares())

    @property
    def open_option_positions(self) -> dict[ContractKey, OptionPosition]:
        """Copies of the option positions with open contracts."""
        return {pos.key: pos for pos in copy.deepcopy(self._open_options())}

    @property
    def closed_option_positions(self) -> list[OptionPosition]:
        """Copies of closed option positions, including contracts later sold again."""
        closed = [pos for pos in self._option_positions.values() if pos.is_closed]
        return copy.deepcopy(self._retired_option_positions + closed)

    @property
    def retired_option_positions(self) -> list[OptionPosition]:
        """Copies of closed positions replaced by a new sale of the same contract."""
        return copy.deepcopy(self._retired_option_positions)

    def share_position(self, symbol: str) -> Optional[SharePosition]:
        """Copy of the share ledger of a symbol, flat or not."""
        position = self._share_positions.get(symbol.upper())
        return copy.deepcopy(position) if position is not None else None

    def option_position(self, key: ContractKey) -> Optional[OptionPosition]:
        """Copy of the current ledger of a contract."""
        position = self._option_positions.get(key)
        return copy.deepcopy(position) if position is not None else None

    def realized_pnl_by_symbol(self) -> dict[str, float]:
        """Realized P&L per underlying across shares and options."""
        totals: dict[str, float] = {}
        for symbol, position in self._share_positions.items():
            totals[symbol] = totals.get(symbol, 0.0) + position.realized_pnl
        for position in self._retired_option_positions + list(self._option_positions.values()):
            totals[position.symbol] = totals.get(position.symbol, 0.0) + position.realized_pnl
        return totals

    def option_legs(self) -> list[OptionLeg]:
        """One sold leg per open option position, for valuation."""
        legs = []
        for position in self._open_options():
            key = position.key
            opened_at: Optional[datetime] = position.opened_at
            legs.append(
                OptionLeg(
                    id=key.occ,
                    symbol=key.symbol,
                    option_kind=key.option_kind,
                    side=LegSide.SELL,
                    strike=key.strike,
                    premium=position.average_premium,
                    expiry=key.expiration,
                    contracts=position.open_contracts,
                    open_date=opened_at.date() if opened_at else None,
                    position_id=key.occ,
                )
            )
        return legs

    def snapshot(self) -> PortfolioSnapshot:
        """Immutable view of the open positions and realized P&L."""
        shares = tuple(
            SharePositionSnapshot(
                symbol=pos.symbol,
                quantity=pos.quantity,
                total_cost=pos.total_cost,
                cost_basis=pos.cost_basis,
                realized_pnl=pos.realized_pnl,
                lots=tuple(pos.open_lots()),
            )
            for pos in self._open_shares()
        )
        options = tuple(
            OptionPositionSnapshot(
                key=pos.key,
                open_contracts=pos.open_contracts,
                total_credit=pos.total_credit,
                realized_pnl=pos.realized_pnl,
                lifecycle=pos.lifecycle,
                lots=tuple(pos.open_lots()),
            )
            for pos in self._open_options()
        )
        return PortfolioSnapshot(realized_pnl=self.realized_pnl, shares=shares, options=options)
