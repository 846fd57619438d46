"""
FIFO lot ledgers.

- shares: share lots per symbol (cost basis, realized P&L on sale)
- options: short option lots per contract (realized P&L on close/expire/assign)
"""

from .options import ClosedOptionLot, OptionLot, OptionPosition
from .shares import ClosedShareLot, ShareLot, SharePosition

__all__ = [
    "ClosedOptionLot",
    "ClosedShareLot",
    "OptionLot",
    "OptionPosition",
    "ShareLot",
    "SharePosition",
]
