"""
Share lot ledger.

Tracks purchased share lots for one symbol in FIFO order and computes cost
basis and realized P&L when shares are sold.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..constants import QUANTITY_EPSILON
from ..exceptions import InsufficientLotsError, ValidationError
from ..utils.date_utils import DateLike, calculate_holding_days, to_datetime
from .fifo import enqueue_fifo

logger = logging.getLogger(__name__)


@dataclass
class ShareLot:
    """One purchase batch still (partly) held."""

    quantity: float
    price: float
    acquired_at: datetime

    @property
    def cost(self) -> float:
        """Cost of the remaining shares in this lot."""
        return self.quantity * self.price


@dataclass
class ClosedShareLot:
    """Shares from one lot matched against a sale."""

    quantity: float
    cost_price: float
    sale_price: float
    acquired_at: datetime
    sold_at: Optional[datetime]
    realized_pnl: float

    @property
    def holding_days(self) -> int:
        """Days held, 0 when the sale date is unknown."""
        if self.sold_at is None:
            return 0
        return calculate_holding_days(self.acquired_at, self.sold_at)


@dataclass
class SharePosition:
    """
    FIFO share ledger for a single symbol.

    total_cost always equals the sum of the remaining lots' cost, so
    total_cost / quantity is the weighted average cost basis.
    """

    symbol: str
    quantity: float = 0.0
    total_cost: float = 0.0
    realized_pnl: float = 0.0
    lots: deque[ShareLot] = field(default_factory=deque)
    closed_lots: list[ClosedShareLot] = field(default_factory=list)

    @property
    def cost_basis(self) -> float:
        """Weighted average cost per share (0 when flat)."""
        if self.quantity <= QUANTITY_EPSILON:
            return 0.0
        return self.total_cost / self.quantity

    @property
    def is_flat(self) -> bool:
        """True when no shares are held."""
        return self.quantity <= QUANTITY_EPSILON

    def buy(self, quantity: float, price: float, acquired_at: DateLike) -> ShareLot:
        """
        Add a purchased lot.

        Args:
            quantity: Shares bought (fractional allowed)
            price: Price per share
            acquired_at: Purchase date

        Returns:
            The new lot

        Raises:
            ValidationError: If quantity or price is not positive
        """
        if quantity <= 0:
            raise ValidationError(f"Quantity to buy must be positive, got {quantity}")
        if price <= 0:
            raise ValidationError(f"Purchase price must be positive, got {price}")

        lot = ShareLot(quantity=quantity, price=price, acquired_at=to_datetime(acquired_at))
        enqueue_fifo(self.lots, lot, lambda item: item.acquired_at)
        self.quantity += quantity
        self.total_cost += quantity * price

        logger.debug(f"{self.symbol}: bought {quantity} @ ${price:.2f}")
        return lot

    def sell(
        self,
        quantity: float,
        price: float,
        sold_at: Optional[DateLike] = None,
    ) -> float:
        """
        Sell shares against the oldest lots first.

        A partially consumed lot keeps its remainder at the front of the
        queue for the next sale.

        Args:
            quantity: Shares to sell
            price: Sale price per share
            sold_at: Sale date (recorded in closed lot history)

        Returns:
            Realized P&L of this sale

        Raises:
            ValidationError: If quantity or price is not positive
            InsufficientLotsError: If quantity exceeds shares held
        """
        if quantity <= 0:
            raise ValidationError(f"Quantity to sell must be positive, got {quantity}")
        if price <= 0:
            raise ValidationError(f"Sale price must be positive, got {price}")
        if quantity > self.quantity + QUANTITY_EPSILON:
            raise InsufficientLotsError(
                f"Cannot sell {quantity} {self.symbol}: only {self.quantity} held"
            )

        sold_at_dt = to_datetime(sold_at) if sold_at is not None else None
        realized = 0.0
        remaining = quantity

        while remaining > QUANTITY_EPSILON and self.lots:
            lot = self.lots[0]
            lot_qty = min(remaining, lot.quantity)
            lot_realized = (price - lot.price) * lot_qty

            realized += lot_realized
            self.quantity -= lot_qty
            self.total_cost -= lot_qty * lot.price
            self.closed_lots.append(
                ClosedShareLot(
                    quantity=lot_qty,
                    cost_price=lot.price,
                    sale_price=price,
                    acquired_at=lot.acquired_at,
                    sold_at=sold_at_dt,
                    realized_pnl=lot_realized,
                )
            )

            lot.quantity -= lot_qty
            if lot.quantity <= QUANTITY_EPSILON:
                self.lots.popleft()
            remaining -= lot_qty

        if not self.lots:
            # Clear float residue once flat
            self.quantity = 0.0
            self.total_cost = 0.0

        self.realized_pnl += realized
        logger.debug(
            f"{self.symbol}: sold {quantity} @ ${price:.2f}, realized ${realized:,.2f}"
        )
        return realized

    def market_value(self, price: float) -> float:
        """Value of the shares held at a given price."""
        return self.quantity * price

    def unrealized_pnl(self, price: float) -> float:
        """Mark-to-market gain of the shares held."""
        return self.market_value(price) - self.total_cost

    def open_lots(self) -> list[ShareLot]:
        """Copies of the remaining lots, oldest first."""
        return [
            ShareLot(quantity=lot.quantity, price=lot.price, acquired_at=lot.acquired_at)
            for lot in self.lots
        ]
