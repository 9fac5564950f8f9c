"""
Mirror the filter state into a shareable query string and back.

Only non-default values are written; a missing key means "default". Reading
is forgiving: unknown sort keys, bad numbers and blank values fall back to
the defaults of the base state.
"""

import math
from dataclasses import replace
from urllib.parse import parse_qs, urlencode

from storefront.client.state import DEFAULT_DIRECTION, DEFAULT_SORT, SORT_KEYS, FilterState


def _format_price(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _parse_price(values: list[str]) -> float | None:
    if not values:
        return None
    try:
        number = float(values[-1])
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return max(0.0, number)


def encode_query(state: FilterState) -> str:
    """Query string (without '?') for the filter part of ``state``."""
    pairs: list[tuple[str, str]] = []
    if state.search:
        pairs.append(("q", state.search))
    pairs.extend(("category", name) for name in sorted(state.categories))
    if state.price_min is not None:
        pairs.append(("min", _format_price(state.price_min)))
    if state.price_max is not None:
        pairs.append(("max", _format_price(state.price_max)))
    if state.sort != DEFAULT_SORT or state.direction != DEFAULT_DIRECTION:
        pairs.append(("sort", state.sort))
        if state.direction != DEFAULT_DIRECTION:
            pairs.append(("order", state.direction))
    if state.page > 1:
        pairs.append(("page", str(state.page)))
    return urlencode(pairs)


def decode_query(query: str, base: FilterState | None = None) -> FilterState:
    """Rebuild filter state from a query string, keeping ``base`` for anything absent."""
    base = base or FilterState()
    params = parse_qs(query.lstrip("?"), keep_blank_values=False)

    search = params.get("q", [""])[-1].strip()
    categories = frozenset(name.strip() for name in params.get("category", []) if name.strip())

    sort = params.get("sort", [DEFAULT_SORT])[-1]
    direction = params.get("order", [DEFAULT_DIRECTION])[-1].lower()
    if sort not in SORT_KEYS:
        sort, direction = DEFAULT_SORT, DEFAULT_DIRECTION
    if direction not in ("asc", "desc"):
        direction = DEFAULT_DIRECTION

    price_min = _parse_price(params.get("min", []))
    price_max = _parse_price(params.get("max", []))
    if price_min is not None and price_max is not None and price_min > price_max:
        price_min, price_max = price_max, price_min

    try:
        page = max(1, int(params.get("page", ["1"])[-1]))
    except ValueError:
        page = 1

    return replace(
        base,
        search=search,
        categories=categories,
        price_min=price_min,
        price_max=price_max,
        sort=sort,
        direction=direction,
        page=page,
    )
