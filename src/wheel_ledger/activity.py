"""
Trade event model.

A TradeActivity is the canonical shape of one brokerage activity record.
Format-specific importers build these; the ledgers only consume them.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, NamedTuple, Optional

from .exceptions import ValidationError
from .utils.date_utils import DateLike, to_date, to_datetime


class ActionKind(Enum):
    """Kinds of brokerage activity."""

    BUY = "Buy"
    SELL = "Sell"
    SELL_TO_OPEN = "STO"
    BUY_TO_CLOSE = "BTC"
    ASSIGNMENT = "Assignment"
    EXPIRED = "Expired"
    DIVIDEND = "Dividend"
    INTEREST = "Interest"
    TRANSFER = "Transfer"
    OTHER = "Other"
    UNKNOWN = "Unknown"


class OptionKind(Enum):
    """Option contract type."""

    CALL = "Call"
    PUT = "Put"


SHARE_ACTIONS = frozenset({ActionKind.BUY, ActionKind.SELL})
OPTION_ACTIONS = frozenset(
    {
        ActionKind.SELL_TO_OPEN,
        ActionKind.BUY_TO_CLOSE,
        ActionKind.EXPIRED,
        ActionKind.ASSIGNMENT,
    }
)
NON_LEDGER_ACTIONS = frozenset(
    {
        ActionKind.DIVIDEND,
        ActionKind.INTEREST,
        ActionKind.TRANSFER,
        ActionKind.OTHER,
        ActionKind.UNKNOWN,
    }
)


class ContractKey(NamedTuple):
    """Identity of one option contract: underlying, expiry, strike and kind."""

    symbol: str
    expiration: date
    strike: float
    option_kind: OptionKind

    @property
    def occ(self) -> str:
        """Display key, e.g. AAPL_2024-01-19_150.0_Put."""
        return (
            f"{self.symbol}_{self.expiration.isoformat()}_"
            f"{self.strike}_{self.option_kind.value}"
        )

    def __str__(self) -> str:
        return self.occ


def _parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if value in (member.value, member.name):
            return member
    raise ValidationError(f"Invalid {field_name} '{value}'")


def _parse_number(value: Any, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid {field_name} '{value}'") from e


def _parse_date(value: Any, field_name: str) -> datetime:
    if isinstance(value, (date, datetime)):
        return to_datetime(value)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"Invalid {field_name} '{value}': {e}") from e
    raise ValidationError(f"Invalid {field_name} '{value}'")


@dataclass
class TradeActivity:
    """
    One brokerage activity record.

    Option records must carry their full contract identity (underlying,
    expiration, strike and option kind); construction fails otherwise.
    Quantities may be fractional. For options, price is the premium per share.
    """

    date: datetime
    action: ActionKind
    symbol: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    amount: float = 0.0
    notes: str = ""

    is_option: bool = False
    underlying: Optional[str] = None
    expiration: Optional[date] = None
    strike: Optional[float] = None
    option_kind: Optional[OptionKind] = None

    def __post_init__(self) -> None:
        """Normalize dates and symbols, then enforce the option invariant."""
        self.date = to_datetime(self.date)
        if self.symbol:
            self.symbol = self.symbol.strip().upper()
        if self.underlying:
            self.underlying = self.underlying.strip().upper()
        if self.expiration is not None:
            self.expiration = to_date(self.expiration)

        if self.is_option:
            missing = [
                name
                for name in ("underlying", "expiration", "strike", "option_kind")
                if getattr(self, name) is None
            ]
            if missing:
                raise ValidationError(
                    f"Option activity on {self.date:%Y-%m-%d} missing: "
                    f"{', '.join(missing)}"
                )
            self.strike = _parse_number(self.strike, "strike")
            if self.strike <= 0:
                raise ValidationError(
                    f"Option activity on {self.date:%Y-%m-%d}: strike must be "
                    f"positive, got {self.strike}"
                )

    @property
    def position_symbol(self) -> Optional[str]:
        """Symbol the record books against (underlying for options)."""
        if self.is_option:
            return self.underlying
        return self.symbol

    @property
    def contract_key(self) -> ContractKey:
        """
        Contract identity of an option record.

        Raises:
            ValidationError: If the record is not an option or its strike
                is not a positive number.
        """
        if not self.is_option:
            raise ValidationError(f"{self.symbol} activity is not an option")
        strike = _parse_number(self.strike, "strike")
        if strike <= 0:
            raise ValidationError(
                f"{self.underlying} option strike must be positive, got {strike}"
            )
        return ContractKey(
            symbol=self.underlying,
            expiration=self.expiration,
            strike=strike,
            option_kind=self.option_kind,
        )

    def require_quantity(self) -> float:
        """Return quantity, failing when the record has none or it is not numeric."""
        if self.quantity is None:
            raise ValidationError(
                f"{self.action.value} activity for {self.position_symbol} has no quantity"
            )
        return _parse_number(self.quantity, "quantity")

    def require_price(self) -> float:
        """Return price, failing when the record has none or it is not numeric."""
        if self.price is None:
            raise ValidationError(
                f"{self.action.value} activity for {self.position_symbol} has no price"
            )
        return _parse_number(self.price, "price")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TradeActivity":
        """
        Build an activity from a plain mapping.

        Accepts enum values or names (e.g. "STO" or "SELL_TO_OPEN") and ISO
        date strings. Option records may use "strike_price" and "option_type".
        """
        if "date" not in data or "action" not in data:
            raise ValidationError("Activity requires 'date' and 'action'")

        option_kind = data.get("option_kind", data.get("option_type"))
        expiration = data.get("expiration")
        return cls(
            date=_parse_date(data["date"], "date"),
            action=_parse_enum(ActionKind, data["action"], "action"),
            symbol=data.get("symbol"),
            quantity=data.get("quantity"),
            price=data.get("price"),
            amount=data.get("amount") or 0.0,
            notes=data.get("notes") or "",
            is_option=bool(data.get("is_option", False)),
            underlying=data.get("underlying"),
            expiration=(
                _parse_date(expiration, "expiration").date()
                if expiration is not None
                else None
            ),
            strike=data.get("strike", data.get("strike_price")),
            option_kind=(
                _parse_enum(OptionKind, option_kind, "option kind")
                if option_kind is not None
                else None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date.isoformat(),
            "action": self.action.value,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "price": self.price,
            "amount": self.amount,
            "notes": self.notes,
            "is_option": self.is_option,
            "underlying": self.underlying,
            "expiration": self.expiration.isoformat() if self.expiration else None,
            "strike": self.strike,
            "option_kind": self.option_kind.value if self.option_kind else None,
        }
