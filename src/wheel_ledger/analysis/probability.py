"""
Heuristic exercise and assignment probabilities.

These are simple approximations, not pricing-model estimates. All functions
are pure and return a percentage (0-100).

Model (before expiration):
    ITM: min(95, moneyness * 100 + W * (1 - min(1, dte / 30)))
         moneyness = intrinsic / strike, W = time weight
    OTM: max(5, 50 * exp(-distance_pct / D))
         distance_pct = |price - strike| / strike * 100, D = decay constant

At expiration (dte == 0) the outcome is certain: 100 if ITM else 0.

Puts (and generic leg analysis) use W=50, D=10. Covered calls use W=40, D=8.
"""

import math

from ..activity import OptionKind
from ..constants import (
    CALL_ITM_TIME_WEIGHT,
    CALL_OTM_DECAY,
    DECAY_WINDOW_DAYS,
    HIGH_RISK_THRESHOLD,
    MAX_ITM_PROBABILITY,
    MEDIUM_RISK_THRESHOLD,
    MIN_OTM_PROBABILITY,
    OTM_BASE_PROBABILITY,
    PUT_ITM_TIME_WEIGHT,
    PUT_OTM_DECAY,
)


def intrinsic_value(option_kind: OptionKind, price: float, strike: float) -> float:
    """Per-share intrinsic value of an option."""
    if option_kind == OptionKind.PUT:
        return max(0.0, strike - price)
    return max(0.0, price - strike)


def is_in_the_money(option_kind: OptionKind, price: float, strike: float) -> bool:
    """True when exercising would have value."""
    if option_kind == OptionKind.PUT:
        return price < strike
    return price > strike


def distance_percent(price: float, strike: float) -> float:
    """Distance between price and strike as a percent of strike."""
    if strike <= 0:
        return 0.0
    return abs(price - strike) / strike * 100


def exercise_probability(
    option_kind: OptionKind,
    price: float,
    strike: float,
    days_to_expiry: int,
    itm_time_weight: float = PUT_ITM_TIME_WEIGHT,
    otm_decay: float = PUT_OTM_DECAY,
) -> float:
    """
    Heuristic probability (percent) that an option ends up exercised.

    Args:
        option_kind: PUT or CALL
        price: Current underlying price
        strike: Strike price
        days_to_expiry: Calendar days left (0 = expired)
        itm_time_weight: Weight of time remaining in the ITM branch
        otm_decay: Distance percent per e-fold in the OTM branch

    Returns:
        Probability in percent, within [0, 100]. Before expiry it is at most
        95, and at least 5 when out of the money.
    """
    itm = is_in_the_money(option_kind, price, strike)

    if days_to_expiry <= 0:
        return 100.0 if itm else 0.0

    if itm:
        moneyness = intrinsic_value(option_kind, price, strike) / strike if strike > 0 else 0.0
        time_remaining = min(1.0, days_to_expiry / DECAY_WINDOW_DAYS)
        return min(
            MAX_ITM_PROBABILITY,
            moneyness * 100 + itm_time_weight * (1 - time_remaining),
        )

    return max(
        MIN_OTM_PROBABILITY,
        OTM_BASE_PROBABILITY * math.exp(-distance_percent(price, strike) / otm_decay),
    )


def put_assignment_probability(price: float, strike: float, days_to_expiry: int) -> float:
    """Probability (percent) that a short put is assigned."""
    return exercise_probability(
        OptionKind.PUT,
        price,
        strike,
        days_to_expiry,
        itm_time_weight=PUT_ITM_TIME_WEIGHT,
        otm_decay=PUT_OTM_DECAY,
    )


def call_assignment_probability(price: float, strike: float, days_to_expiry: int) -> float:
    """Probability (percent) that covered shares are called away."""
    return exercise_probability(
        OptionKind.CALL,
        price,
        strike,
        days_to_expiry,
        itm_time_weight=CALL_ITM_TIME_WEIGHT,
        otm_decay=CALL_OTM_DECAY,
    )


def assignment_probability(
    option_kind: OptionKind, price: float, strike: float, days_to_expiry: int
) -> float:
    """Dispatch to the put or covered call heuristic."""
    if option_kind == OptionKind.PUT:
        return put_assignment_probability(price, strike, days_to_expiry)
    return call_assignment_probability(price, strike, days_to_expiry)


def risk_level(
    probability: float,
    high_threshold: float = HIGH_RISK_THRESHOLD,
    medium_threshold: float = MEDIUM_RISK_THRESHOLD,
) -> str:
    """Classify a probability as HIGH, MEDIUM or LOW assignment risk."""
    if probability >= high_threshold:
        return "HIGH"
    if probability >= medium_threshold:
        return "MEDIUM"
    return "LOW"
