# Overview: Activity reason codes and the loss-vs-correction rule.

from __future__ import annotations

REASON_CREATION = "CREATION"
REASON_CORRECTION = "CORRECTION"
REASON_LOSS = "LOSS"
REASON_EXPIRY = "EXPIRY"

# Reasons that value the decrement as money lost
LOSS_REASONS = frozenset({REASON_LOSS, REASON_EXPIRY})

# Reasons a caller may attach to a stock change
STOCK_REASONS = frozenset({REASON_CORRECTION, REASON_LOSS, REASON_EXPIRY})


def classify_stock_change(old: int, new: int, requested: str | None) -> str:
    """
    Final reason for a stock change.

    The caller's tag is trusted, but only decrements can be losses: a loss
    tag on an increment (or on no change) falls back to CORRECTION.
    """
    if requested in LOSS_REASONS and new < old:
        return requested
    return REASON_CORRECTION
