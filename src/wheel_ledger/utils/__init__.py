"""Shared utility functions."""

from .date_utils import (
    calculate_days_to_expiry,
    calculate_holding_days,
    is_past_expiry,
    to_date,
    to_datetime,
)

__all__ = [
    "calculate_days_to_expiry",
    "calculate_holding_days",
    "is_past_expiry",
    "to_date",
    "to_datetime",
]
