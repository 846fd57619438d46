"""
Market quote inputs.

Quotes are fetched by an external market-data collaborator and handed in as
a plain symbol -> Quote mapping; nothing here performs I/O.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .exceptions import ValidationError

QuoteLookup = Mapping[str, "Quote"]


@dataclass(frozen=True)
class Quote:
    """Last price of a symbol and when it was observed."""

    symbol: str
    price: float
    as_of: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.price <= 0:
            raise ValidationError(f"Quote for {self.symbol} must be positive, got {self.price}")


def quotes_from_prices(
    prices: Mapping[str, float], as_of: Optional[datetime] = None
) -> dict[str, Quote]:
    """
    Build a quote lookup from plain prices.

    Example:
        >>> quotes = quotes_from_prices({"AAPL": 187.5})
        >>> quotes["AAPL"].price
        187.5
    """
    stamp = as_of or datetime.now()
    return {
        symbol.upper(): Quote(symbol=symbol.upper(), price=float(price), as_of=stamp)
        for symbol, price in prices.items()
    }


def get_price(quotes: QuoteLookup, symbol: str) -> Optional[float]:
    """Price for a symbol, or None when the lookup has no quote."""
    quote = quotes.get(symbol)
    return quote.price if quote is not None else None
