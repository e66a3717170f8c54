# Overview: Category vocabulary and the "<CATEGORY> <base>" product naming convention.

from __future__ import annotations

UNCATEGORIZED = "SIN CATEGORIA"

CATEGORIES = (
    "ALMACEN",
    "CIGARRILLOS",
    "GOLOSINAS",
    "BEBIDA",
    "CERVEZA",
    "FIAMBRES",
    "TABACO",
    "HUEVOS",
    "HIGIENE",
    "ALCOHOL",
    "PROMO",
    "BRECA",
)


def is_valid_category(category: str) -> bool:
    return category == UNCATEGORIZED or category in CATEGORIES


def split_name(name: str) -> tuple[str, str]:
    """
    Recover (category, base) from a stored product name.

    The first whitespace-delimited token is upper-cased and checked against
    the vocabulary. On a match it is stripped off; otherwise the whole name
    is the base and the category is UNCATEGORIZED.
    """
    parts = name.strip().split(" ")
    first = parts[0].upper() if parts else ""
    if first in CATEGORIES:
        return first, " ".join(parts[1:])
    return UNCATEGORIZED, name


def compose_name(category: str, base: str) -> str:
    if category == UNCATEGORIZED:
        return base
    return f"{category} {base}"
