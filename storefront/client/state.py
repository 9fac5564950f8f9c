"""
Client-side catalog filter state and its transitions.

``FilterState`` is an immutable value; every change goes through ``reduce``
with one of the tagged actions below. Fetch results carry the sequence
number of the request that produced them, and ``reduce`` ignores any result
whose number is not the latest one scheduled.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

SORT_KEYS = ("name", "price", "createdAt")
DEFAULT_SORT = "name"
DEFAULT_DIRECTION = "asc"
DEFAULT_PAGE_SIZE = 24


class FetchStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FETCHED_OK = "fetched_ok"
    FETCH_ERROR = "fetch_error"


@dataclass(frozen=True)
class ProductCard:
    code: str
    name: str
    price: float
    description: str | None = None
    image_url: str | None = None
    category: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ProductCard":
        return cls(
            code=data["code"],
            name=data.get("name") or "",
            price=float(data.get("price") or 0),
            description=data.get("description"),
            image_url=data.get("image_url"),
            category=data.get("category"),
        )


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    categories: frozenset[str] = frozenset()
    price_min: float | None = None
    price_max: float | None = None
    sort: str = DEFAULT_SORT
    direction: str = DEFAULT_DIRECTION
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    # Last successfully applied result
    items: tuple[ProductCard, ...] = ()
    total: int = 0
    total_pages: int = 1

    status: FetchStatus = FetchStatus.IDLE
    error: str | None = None
    request_seq: int = 0
    applied_seq: int = 0

    def filters(self) -> tuple:
        """The part of the state a URL can carry; used for equivalence checks."""
        return (
            self.search,
            self.categories,
            self.price_min,
            self.price_max,
            self.sort,
            self.direction,
            self.page,
        )

    def query_params(self) -> list[tuple[str, str]]:
        """Parameters for the product listing endpoint."""
        params: list[tuple[str, str]] = [
            ("sort", self.sort),
            ("order", self.direction),
            ("page", str(self.page)),
            ("limit", str(self.page_size)),
        ]
        if self.search:
            params.append(("search", self.search))
        params.extend(("category", name) for name in sorted(self.categories))
        if self.price_min is not None:
            params.append(("price_min", str(self.price_min)))
        if self.price_max is not None:
            params.append(("price_max", str(self.price_max)))
        return params

    def facet_params(self) -> list[tuple[str, str]]:
        return [(key, value) for key, value in self.query_params() if key not in ("page", "limit", "sort", "order")]


# ============================================================================
# Actions
# ============================================================================


@dataclass(frozen=True)
class SetSearch:
    text: str


@dataclass(frozen=True)
class ToggleCategory:
    name: str


@dataclass(frozen=True)
class SetCategories:
    names: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class SetPriceRange:
    price_min: float | None
    price_max: float | None


@dataclass(frozen=True)
class SetSort:
    sort: str
    direction: str = DEFAULT_DIRECTION


@dataclass(frozen=True)
class GoToPage:
    page: int


@dataclass(frozen=True)
class ClearFilters:
    pass


@dataclass(frozen=True)
class FetchStarted:
    seq: int


@dataclass(frozen=True)
class FetchSucceeded:
    seq: int
    items: tuple[ProductCard, ...]
    total: int
    page: int
    total_pages: int


@dataclass(frozen=True)
class FetchFailed:
    seq: int
    message: str


FILTER_ACTIONS = (SetSearch, ToggleCategory, SetCategories, SetPriceRange, SetSort, ClearFilters)


def _clean_price(value: float | None) -> float | None:
    if value is None:
        return None
    return max(0.0, float(value))


def _filters_changed(state: FilterState, **changes: Any) -> FilterState:
    """Back to page 1, and any fetch already in flight is now stale."""
    return replace(state, page=1, request_seq=state.request_seq + 1, **changes)


def reduce(state: FilterState, action: object) -> FilterState:
    """
    Apply one action. Filter changes reset to page 1; page changes do not.

    Filter changes also advance ``request_seq`` so a response to a request
    issued before the change can never be applied on top of it.
    """
    if isinstance(action, SetSearch):
        return _filters_changed(state, search=action.text.strip())

    if isinstance(action, ToggleCategory):
        name = action.name.strip()
        if not name:
            return state
        return _filters_changed(state, categories=state.categories ^ {name})

    if isinstance(action, SetCategories):
        names = frozenset(n.strip() for n in action.names if n and n.strip())
        return _filters_changed(state, categories=names)

    if isinstance(action, SetPriceRange):
        low, high = _clean_price(action.price_min), _clean_price(action.price_max)
        if low is not None and high is not None and low > high:
            low, high = high, low
        return _filters_changed(state, price_min=low, price_max=high)

    if isinstance(action, SetSort):
        if action.sort not in SORT_KEYS:
            sort, direction = DEFAULT_SORT, DEFAULT_DIRECTION
        else:
            sort = action.sort
            direction = action.direction if action.direction in ("asc", "desc") else DEFAULT_DIRECTION
        return _filters_changed(state, sort=sort, direction=direction)

    if isinstance(action, ClearFilters):
        return _filters_changed(
            state,
            search="",
            categories=frozenset(),
            price_min=None,
            price_max=None,
            sort=DEFAULT_SORT,
            direction=DEFAULT_DIRECTION,
        )

    if isinstance(action, GoToPage):
        if action.page < 1 or action.page == state.page:
            return state
        if state.status != FetchStatus.IDLE and action.page > state.total_pages:
            return state
        return replace(state, page=action.page)

    if isinstance(action, FetchStarted):
        return replace(state, status=FetchStatus.FETCHING, request_seq=action.seq)

    if isinstance(action, FetchSucceeded):
        if action.seq != state.request_seq:
            return state
        return replace(
            state,
            items=action.items,
            total=action.total,
            page=action.page,
            total_pages=max(1, action.total_pages),
            status=FetchStatus.FETCHED_OK,
            error=None,
            applied_seq=action.seq,
        )

    if isinstance(action, FetchFailed):
        if action.seq != state.request_seq:
            return state
        # Previous items stay visible alongside the retry affordance
        return replace(state, status=FetchStatus.FETCH_ERROR, error=action.message)

    raise TypeError(f"Unknown action: {action!r}")
