"""
Option lot ledger.

Tracks short option lots for one contract in FIFO order. Realized P&L is
booked when lots are bought back, expire, or are assigned. Share movements
caused by assignment are the Portfolio's job, not this ledger's.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..activity import ContractKey, TradeActivity
from ..constants import CONTRACT_MULTIPLIER, QUANTITY_EPSILON
from ..exceptions import InsufficientLotsError, InvalidStateError, ValidationError
from ..state import CloseReason, OptionLifecycle, can_transition, get_next_state
from ..utils.date_utils import DateLike, to_datetime
from .fifo import enqueue_fifo

logger = logging.getLogger(__name__)


@dataclass
class OptionLot:
    """One sell-to-open batch still (partly) open."""

    contracts: float
    premium: float  # Per share, as quoted
    opened_at: datetime
    source: Optional[TradeActivity] = None

    @property
    def credit(self) -> float:
        """Premium collected for the remaining contracts."""
        return self.premium * self.contracts * CONTRACT_MULTIPLIER


@dataclass
class ClosedOptionLot:
    """Contracts from one lot that left the ledger."""

    contracts: float
    premium: float
    debit_per_contract: float
    opened_at: datetime
    closed_at: datetime
    reason: CloseReason
    realized_pnl: float
    source: Optional[TradeActivity] = None
    close_source: Optional[TradeActivity] = None


@dataclass
class OptionPosition:
    """
    FIFO ledger of short lots for one option contract.

    open_contracts and total_credit always match the remaining lots.
    """

    key: ContractKey
    open_contracts: float = 0.0
    total_credit: float = 0.0
    realized_pnl: float = 0.0
    lifecycle: OptionLifecycle = OptionLifecycle.PENDING
    lots: deque[OptionLot] = field(default_factory=deque)
    closed_lots: list[ClosedOptionLot] = field(default_factory=list)

    @property
    def symbol(self) -> str:
        """Underlying symbol."""
        return self.key.symbol

    @property
    def is_closed(self) -> bool:
        """True once the position reached its terminal state."""
        return self.lifecycle == OptionLifecycle.CLOSED

    @property
    def is_open(self) -> bool:
        """True while contracts are outstanding."""
        return self.lifecycle in (OptionLifecycle.OPEN, OptionLifecycle.PARTIALLY_CLOSED)

    @property
    def average_premium(self) -> float:
        """Weighted premium per share of the open contracts."""
        if self.open_contracts <= QUANTITY_EPSILON:
            return 0.0
        return self.total_credit / (self.open_contracts * CONTRACT_MULTIPLIER)

    @property
    def opened_at(self) -> Optional[datetime]:
        """Open date of the oldest outstanding lot."""
        return self.lots[0].opened_at if self.lots else None

    @property
    def closed_lot_count(self) -> int:
        return len(self.closed_lots)

    @property
    def contracts_closed(self) -> float:
        """Total contracts that left the ledger."""
        return sum(lot.contracts for lot in self.closed_lots)

    def _transition(self, action: str) -> None:
        if not can_transition(self.lifecycle, action):
            raise InvalidStateError(
                f"Cannot {action.replace('_', ' ')} {self.key.occ}: "
                f"position is {self.lifecycle.value}"
            )
        self.lifecycle = get_next_state(self.lifecycle, action)

    def sell_to_open(
        self,
        contracts: float,
        premium: float,
        opened_at: DateLike,
        source: Optional[TradeActivity] = None,
    ) -> OptionLot:
        """
        Open (or add to) a short position.

        Args:
            contracts: Contracts sold
            premium: Premium per share received
            opened_at: Trade date
            source: Originating activity record

        Returns:
            The new lot

        Raises:
            ValidationError: If contracts is not positive or premium is negative
            InvalidStateError: If the position is already closed
        """
        if contracts <= 0:
            raise ValidationError(f"Contracts to open must be positive, got {contracts}")
        if premium < 0:
            raise ValidationError(f"Premium must be non-negative, got {premium}")
        self._transition("sell_to_open")

        lot = OptionLot(
            contracts=contracts,
            premium=premium,
            opened_at=to_datetime(opened_at),
            source=source,
        )
        enqueue_fifo(self.lots, lot, lambda item: item.opened_at)
        self.total_credit += lot.credit
        self.open_contracts += contracts

        logger.debug(
            f"{self.key.occ}: sold {contracts} to open @ ${premium:.2f}, "
            f"{self.open_contracts} open"
        )
        return lot

    def buy_to_close(
        self,
        contracts: float,
        debit_per_contract: float,
        closed_at: DateLike,
        source: Optional[TradeActivity] = None,
    ) -> float:
        """
        Buy back contracts against the oldest lots first.

        Args:
            contracts: Contracts bought back
            debit_per_contract: Price paid per share
            closed_at: Trade date
            source: Closing activity record

        Returns:
            Realized P&L (credit kept minus debit paid)

        Raises:
            ValidationError: If contracts is not positive or debit is negative
            InsufficientLotsError: If contracts exceed the open contracts
        """
        if contracts <= 0:
            raise ValidationError(f"Contracts to close must be positive, got {contracts}")
        if debit_per_contract < 0:
            raise ValidationError(
                f"Debit per contract must be non-negative, got {debit_per_contract}"
            )
        if contracts > self.open_contracts + QUANTITY_EPSILON:
            raise InsufficientLotsError(
                f"Cannot close {contracts} {self.key.occ}: "
                f"only {self.open_contracts} open"
            )

        closed_at_dt = to_datetime(closed_at)
        realized = 0.0
        remaining = contracts

        while remaining > QUANTITY_EPSILON and self.lots:
            lot = self.lots[0]
            lot_qty = min(remaining, lot.contracts)
            lot_credit = lot.premium * lot_qty * CONTRACT_MULTIPLIER
            lot_debit = debit_per_contract * lot_qty * CONTRACT_MULTIPLIER

            realized += lot_credit - lot_debit
            self.open_contracts -= lot_qty
            self.total_credit -= lot_credit
            self.closed_lots.append(
                ClosedOptionLot(
                    contracts=lot_qty,
                    premium=lot.premium,
                    debit_per_contract=debit_per_contract,
                    opened_at=lot.opened_at,
                    closed_at=closed_at_dt,
                    reason=CloseReason.BUY_TO_CLOSE,
                    realized_pnl=lot_credit - lot_debit,
                    source=lot.source,
                    close_source=source,
                )
            )

            lot.contracts -= lot_qty
            if lot.contracts <= QUANTITY_EPSILON:
                self.lots.popleft()
            remaining -= lot_qty

        self.realized_pnl += realized
        if self.lots:
            self._transition("partial_close")
        else:
            self._reset()
            self._transition("close")

        logger.debug(
            f"{self.key.occ}: bought {contracts} to close @ ${debit_per_contract:.2f}, "
            f"realized ${realized:,.2f}"
        )
        return realized

    def expire(self, expired_at: DateLike, source: Optional[TradeActivity] = None) -> float:
        """
        Expire every open lot worthless, keeping the full premium.

        Returns:
            Realized P&L (all outstanding credit)

        Raises:
            InvalidStateError: If nothing is open
        """
        realized = self._release_all(expired_at, CloseReason.EXPIRED, source)
        self._transition("expire")
        logger.debug(f"{self.key.occ}: expired, realized ${realized:,.2f}")
        return realized

    def assign(self, assigned_at: DateLike, source: Optional[TradeActivity] = None) -> float:
        """
        Close every open lot by assignment, keeping the full premium.

        The matching share purchase/sale is booked by the caller.

        Returns:
            Realized P&L (all outstanding credit)

        Raises:
            InvalidStateError: If nothing is open
        """
        realized = self._release_all(assigned_at, CloseReason.ASSIGNED, source)
        self._transition("assign")
        logger.debug(f"{self.key.occ}: assigned, realized ${realized:,.2f}")
        return realized

    def _release_all(
        self,
        closed_at: DateLike,
        reason: CloseReason,
        source: Optional[TradeActivity],
    ) -> float:
        action = "expire" if reason == CloseReason.EXPIRED else "assign"
        if not can_transition(self.lifecycle, action):
            raise InvalidStateError(
                f"Cannot {action} {self.key.occ}: position is {self.lifecycle.value}"
            )

        closed_at_dt = to_datetime(closed_at)
        realized = 0.0
        while self.lots:
            lot = self.lots.popleft()
            realized += lot.credit
            self.closed_lots.append(
                ClosedOptionLot(
                    contracts=lot.contracts,
                    premium=lot.premium,
                    debit_per_contract=0.0,
                    opened_at=lot.opened_at,
                    closed_at=closed_at_dt,
                    reason=reason,
                    realized_pnl=lot.credit,
                    source=lot.source,
                    close_source=source,
                )
            )

        self._reset()
        self.realized_pnl += realized
        return realized

    def _reset(self) -> None:
        self.lots.clear()
        self.open_contracts = 0.0
        self.total_credit = 0.0

    def open_lots(self) -> list[OptionLot]:
        """Copies of the remaining lots, oldest first."""
        return [
            OptionLot(
                contracts=lot.contracts,
                premium=lot.premium,
                opened_at=lot.opened_at,
                source=lot.source,
            )
            for lot in self.lots
        ]
