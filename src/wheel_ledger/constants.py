"""
Shared constants for position accounting and risk valuation.

This module centralizes the contract multiplier and the tuning values of the
heuristic exercise/assignment probability model, so the model can be tuned
without touching ledger code.
"""

# =============================================================================
# Contract Terms
# =============================================================================

CONTRACT_MULTIPLIER = 100
"""Shares represented by one equity option contract."""

QUANTITY_EPSILON = 1e-9
"""Tolerance for fractional share/contract quantities."""


# =============================================================================
# Exercise Probability Heuristic
# =============================================================================

DECAY_WINDOW_DAYS = 30
"""Days over which time remaining is normalized (~one monthly cycle)."""

MAX_ITM_PROBABILITY = 95.0
"""Cap for the in-the-money branch before expiration."""

MIN_OTM_PROBABILITY = 5.0
"""Floor for the out-of-the-money branch before expiration."""

OTM_BASE_PROBABILITY = 50.0
"""Probability at the strike, decayed exponentially with distance."""

PUT_ITM_TIME_WEIGHT = 50.0
"""Weight of time remaining for ITM puts (and generic leg analysis)."""

PUT_OTM_DECAY = 10.0
"""Distance percent per e-fold of OTM put probability."""

CALL_ITM_TIME_WEIGHT = 40.0
"""Weight of time remaining for ITM covered calls."""

CALL_OTM_DECAY = 8.0
"""Distance percent per e-fold of OTM covered call probability."""

AUTO_EXERCISE_THRESHOLD = 0.01
"""Minimum intrinsic value for an expired ITM option to be exercised."""


# =============================================================================
# Mark-to-Market
# =============================================================================

MIN_DECAY_FACTOR = 0.1
"""Floor for the time value decay factor of open option legs."""


# =============================================================================
# Risk Levels
# =============================================================================

HIGH_RISK_THRESHOLD = 70.0
"""Probability (percent) at or above which assignment risk is HIGH."""

MEDIUM_RISK_THRESHOLD = 40.0
"""Probability (percent) at or above which assignment risk is MEDIUM."""

HIGH_RISK_WARNING_PCT = 50.0
"""Weighted probability above which a portfolio warrants rolling/closing."""

DEFAULT_MIN_INITIAL_INVESTMENT = 10000.0
"""Lower bound of the initial investment used for total return."""


# =============================================================================
# Cycle Returns and Performance History
# =============================================================================

DAYS_PER_MONTH = 30
"""Trade length below which monthly ROI is extrapolated linearly."""

DEFAULT_STARTING_VALUE = 10000.0
"""Portfolio value the performance history starts from."""

MAX_PERFORMANCE_POINTS = 15
"""Approximate number of history points after the starting point."""
