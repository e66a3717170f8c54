# Overview: Selling-price helpers (cents + basis points, integer math only).

from __future__ import annotations


def suggest_selling_price_cents(cost_cents: int, margin_bps: int) -> int:
    """
    cost x (1 + margin/100), nearest cent, half-up.

    margin_bps is the margin percent in basis points (35.5% -> 3550).
    """
    numerator = cost_cents * (10_000 + margin_bps)
    return (numerator + 5_000) // 10_000


def loss_value_cents(quantity_lost: int, unit_price_cents: int) -> int:
    """Money lost on a shrinkage decrement, valued at selling price."""
    return quantity_lost * unit_price_cents
