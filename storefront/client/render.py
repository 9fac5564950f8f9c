"""
Pure rendering of the catalog filter state into a view model.

``render`` has no side effects, so a view can be snapshot-tested without a
browser. Sections are produced in the order the page updates them: product
grid, pagination, active filter tags, result count, URL.
"""

from dataclasses import dataclass
from urllib.parse import quote

from storefront.client.state import FetchStatus, FilterState, ProductCard
from storefront.client.url_state import encode_query
from storefront.services.pagination import ELLIPSIS, page_sequence

PLACEHOLDER_IMAGE = "/images/placeholder.svg"
DESCRIPTION_LIMIT = 120


@dataclass(frozen=True)
class CardView:
    code: str
    name: str
    price_text: str
    description: str
    image_url: str
    category: str
    detail_url: str


@dataclass(frozen=True)
class PageEntry:
    label: str
    page: int | None  # None for an ellipsis
    active: bool = False


@dataclass(frozen=True)
class PaginationView:
    entries: tuple[PageEntry, ...]
    prev_page: int | None
    next_page: int | None
    visible: bool


@dataclass(frozen=True)
class FilterTag:
    kind: str
    label: str


@dataclass(frozen=True)
class FacetView:
    name: str
    count: int
    checked: bool


@dataclass(frozen=True)
class CatalogView:
    grid: tuple[CardView, ...]
    empty: bool
    pagination: PaginationView
    tags: tuple[FilterTag, ...]
    result_count: str
    url: str
    loading: bool
    show_retry: bool
    error: str | None
    facets: tuple[FacetView, ...] = ()


def format_price(price: float) -> str:
    return f"$ {price:.2f} USD"


def truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    return text if len(text) <= limit else text[:limit] + "…"


def render_card(product: ProductCard) -> CardView:
    return CardView(
        code=product.code,
        name=product.name or "Product",
        price_text=format_price(product.price),
        description=truncate(product.description or ""),
        image_url=product.image_url or PLACEHOLDER_IMAGE,
        category=product.category or "General",
        detail_url=f"/product-detail?code={quote(product.code, safe='')}",
    )


def render_pagination(state: FilterState) -> PaginationView:
    if state.total_pages <= 1:
        return PaginationView(entries=(), prev_page=None, next_page=None, visible=False)
    entries = tuple(
        PageEntry(label="…", page=None) if number == ELLIPSIS else PageEntry(
            label=str(number), page=number, active=number == state.page
        )
        for number in page_sequence(state.page, state.total_pages)
    )
    return PaginationView(
        entries=entries,
        prev_page=state.page - 1 if state.page > 1 else None,
        next_page=state.page + 1 if state.page < state.total_pages else None,
        visible=True,
    )


def render_tags(state: FilterState) -> tuple[FilterTag, ...]:
    tags: list[FilterTag] = []
    if state.search:
        tags.append(FilterTag("search", f'"{state.search}"'))
    tags.extend(FilterTag("category", name) for name in sorted(state.categories))
    if state.price_min is not None or state.price_max is not None:
        low = f"${state.price_min:.2f}" if state.price_min is not None else "$0"
        high = f"${state.price_max:.2f}" if state.price_max is not None else "any"
        tags.append(FilterTag("price", f"{low} - {high}"))
    return tuple(tags)


def render_result_count(state: FilterState) -> str:
    if state.total <= 0:
        return "No products found"
    start = (state.page - 1) * state.page_size + 1
    end = min(state.page * state.page_size, state.total)
    return f"Showing {start}-{end} of {state.total} products"


def render(state: FilterState, facets: tuple[tuple[str, int], ...] = ()) -> CatalogView:
    query = encode_query(state)
    return CatalogView(
        grid=tuple(render_card(product) for product in state.items),
        empty=not state.items and state.status == FetchStatus.FETCHED_OK,
        pagination=render_pagination(state),
        tags=render_tags(state),
        result_count=render_result_count(state),
        url=f"?{query}" if query else "",
        loading=state.status == FetchStatus.FETCHING,
        show_retry=state.status == FetchStatus.FETCH_ERROR,
        error=state.error if state.status == FetchStatus.FETCH_ERROR else None,
        facets=tuple(FacetView(name, count, name in state.categories) for name, count in facets),
    )
