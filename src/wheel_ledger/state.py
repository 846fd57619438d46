"""State machine enums for short option positions."""

from enum import Enum


class OptionLifecycle(Enum):
    """
    Lifecycle of one option contract position.

    A position is created lazily (PENDING), opened by selling contracts, may
    be bought back in pieces (PARTIALLY_CLOSED, still open), and ends CLOSED
    once no contracts remain, whether by buy-to-close, expiration or
    assignment. CLOSED is terminal.
    """

    PENDING = "pending"  # Created, nothing sold yet
    OPEN = "open"  # Contracts sold, none bought back
    PARTIALLY_CLOSED = "partially_closed"  # Some contracts bought back
    CLOSED = "closed"  # No open contracts left


class CloseReason(Enum):
    """How a short option lot left the ledger."""

    BUY_TO_CLOSE = "buy_to_close"  # Bought back - pay debit
    EXPIRED = "expired"  # Expired worthless - KEEP PREMIUM
    ASSIGNED = "assigned"  # Exercised against us - keep premium, shares move


# Valid state transitions for the option lifecycle
VALID_TRANSITIONS: dict[OptionLifecycle, dict[str, OptionLifecycle]] = {
    OptionLifecycle.PENDING: {
        "sell_to_open": OptionLifecycle.OPEN,
    },
    OptionLifecycle.OPEN: {
        "sell_to_open": OptionLifecycle.OPEN,
        "partial_close": OptionLifecycle.PARTIALLY_CLOSED,
        "close": OptionLifecycle.CLOSED,
        "expire": OptionLifecycle.CLOSED,
        "assign": OptionLifecycle.CLOSED,
    },
    OptionLifecycle.PARTIALLY_CLOSED: {
        "sell_to_open": OptionLifecycle.PARTIALLY_CLOSED,
        "partial_close": OptionLifecycle.PARTIALLY_CLOSED,
        "close": OptionLifecycle.CLOSED,
        "expire": OptionLifecycle.CLOSED,
        "assign": OptionLifecycle.CLOSED,
    },
    OptionLifecycle.CLOSED: {},
}


def get_valid_actions(state: OptionLifecycle) -> list[str]:
    """Get list of valid actions from a given state."""
    return list(VALID_TRANSITIONS.get(state, {}).keys())


def can_transition(from_state: OptionLifecycle, action: str) -> bool:
    """Check if a transition is valid from the current state."""
    return action in VALID_TRANSITIONS.get(from_state, {})


def get_next_state(from_state: OptionLifecycle, action: str) -> OptionLifecycle:
    """
    Get the next state after an action.

    Raises:
        ValueError: If the transition is not valid.
    """
    transitions = VALID_TRANSITIONS.get(from_state, {})
    if action not in transitions:
        valid = get_valid_actions(from_state)
        raise ValueError(
            f"Invalid action '{action}' from state '{from_state.value}'. "
            f"Valid actions: {valid}"
        )
    return transitions[action]
