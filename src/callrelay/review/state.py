"""Per-item state machine for review requests.

Every item in a review starts pending and is resolved exactly once:

    PENDING -> APPROVED
    PENDING -> REJECTED

Both resolved states are terminal.
"""

from __future__ import annotations

from enum import Enum


class ItemState(str, Enum):
    """Disposition of a single item in a review.

    States:
        PENDING: Awaiting a reviewer decision.
        APPROVED: Approved and filed as an issue.
        REJECTED: Rejected by the reviewer; no issue is filed.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvalidItemTransitionError(Exception):
    """Raised when an invalid item state transition is attempted.

    Attributes:
        current: The current item state.
        target: The attempted target state.
        review_id: The review the item belongs to.
        item_index: The index of the item.
    """

    def __init__(
        self,
        current: ItemState,
        target: ItemState,
        review_id: str | None = None,
        item_index: int | None = None,
    ) -> None:
        self.current = current
        self.target = target
        self.review_id = review_id
        self.item_index = item_index
        msg = f"Invalid item transition from {current.value} to {target.value}"
        if review_id is not None:
            msg += f" for {review_id}[{item_index}]"
        super().__init__(msg)


VALID_ITEM_TRANSITIONS: dict[ItemState, set[ItemState]] = {
    ItemState.PENDING: {ItemState.APPROVED, ItemState.REJECTED},
    ItemState.APPROVED: set(),
    ItemState.REJECTED: set(),
}


def validate_item_transition(current: ItemState, target: ItemState) -> bool:
    """Validate if an item state transition is allowed.

    Args:
        current: Current item state.
        target: Target item state.

    Returns:
        True if the transition is valid according to VALID_ITEM_TRANSITIONS.
    """
    return target in VALID_ITEM_TRANSITIONS.get(current, set())


def is_terminal(state: ItemState) -> bool:
    """Whether no further transitions are possible from state."""
    return not VALID_ITEM_TRANSITIONS.get(state)
