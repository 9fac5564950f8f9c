"""
Catalog browsing controller: event -> action -> state transition -> render.

``CatalogBrowser`` owns the single ``FilterState`` for one listing page.
User events become actions; filter changes schedule a product fetch
(debounced for typing and price sliders) and a facet refresh. Each fetch
is tagged with a new sequence number so that only the latest request's
response is ever applied.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol

from storefront.client.debounce import Debouncer
from storefront.client.render import CatalogView, render
from storefront.client.state import (
    DEFAULT_PAGE_SIZE,
    FILTER_ACTIONS,
    ClearFilters,
    FetchFailed,
    FetchStarted,
    FetchSucceeded,
    FilterState,
    GoToPage,
    ProductCard,
    SetPriceRange,
    SetSearch,
    SetSort,
    ToggleCategory,
    reduce,
)
from storefront.client.url_state import decode_query
from storefront.core.errors import StorefrontError

logger = logging.getLogger(__name__)


class CatalogApi(Protocol):
    async def list_products(self, params: list[tuple[str, str]]) -> dict[str, Any]: ...

    async def facets(self, params: list[tuple[str, str]]) -> dict[str, Any]: ...


@dataclass(frozen=True)
class BrowserConfig:
    page_size: int = DEFAULT_PAGE_SIZE
    search_debounce: float = 0.3
    price_debounce: float = 0.6
    fetch_timeout: float = 10.0


class CatalogBrowser:
    def __init__(
        self,
        api: CatalogApi,
        config: BrowserConfig | None = None,
        on_render: Callable[[CatalogView], None] | None = None,
    ):
        self.api = api
        self.config = config or BrowserConfig()
        self.on_render = on_render
        self.state = FilterState(page_size=self.config.page_size)
        self.facets: tuple[tuple[str, int], ...] = ()
        self.facets_degraded = False
        self.url = ""
        self._facet_seq = 0
        self._search_debouncer = Debouncer(self.config.search_debounce)
        self._price_debouncer = Debouncer(self.config.price_debounce)

    # ============================================================================
    # State plumbing
    # ============================================================================

    def dispatch(self, action: object) -> FilterState:
        self.state = reduce(self.state, action)
        return self.state

    def view(self) -> CatalogView:
        return render(self.state, self.facets)

    def _render(self) -> None:
        if self.on_render is not None:
            self.on_render(self.view())

    # ============================================================================
    # Lifecycle
    # ============================================================================

    async def start(self, query_string: str = "") -> CatalogView:
        """Restore state from a shared link, then load products and facets together."""
        self.state = decode_query(query_string, replace(self.state, page_size=self.config.page_size))
        await asyncio.gather(self.refresh(), self.load_facets())
        return self.view()

    async def wait_idle(self) -> None:
        """Let every scheduled debounced fetch run to completion."""
        await asyncio.gather(self._search_debouncer.wait(), self._price_debouncer.wait())

    # ============================================================================
    # User events
    # ============================================================================

    def search(self, text: str) -> None:
        """Keystroke in the search box. Fetches once typing pauses."""
        self.dispatch(SetSearch(text))
        self._search_debouncer.trigger(self._filters_changed)

    async def submit_search(self, text: str) -> None:
        """Explicit submit skips the debounce."""
        self._search_debouncer.cancel()
        self.dispatch(SetSearch(text))
        await self._filters_changed()

    def set_price_range(self, price_min: float | None, price_max: float | None) -> None:
        self.dispatch(SetPriceRange(price_min, price_max))
        self._price_debouncer.trigger(self._filters_changed)

    async def toggle_category(self, name: str) -> None:
        await self._apply(ToggleCategory(name))

    async def set_sort(self, sort: str, direction: str = "asc") -> None:
        await self._apply(SetSort(sort, direction))

    async def clear_filters(self) -> None:
        await self._apply(ClearFilters())

    async def go_to_page(self, page: int) -> None:
        before = self.state
        if self.dispatch(GoToPage(page)) is before:
            return
        await self.refresh()

    async def retry(self) -> None:
        await self.refresh()

    async def _apply(self, action: object) -> None:
        if not isinstance(action, FILTER_ACTIONS):
            raise TypeError(f"Not a filter action: {action!r}")
        self.dispatch(action)
        await self._filters_changed()

    async def _filters_changed(self) -> None:
        await asyncio.gather(self.refresh(), self.load_facets())

    # ============================================================================
    # Fetching
    # ============================================================================

    async def refresh(self) -> None:
        """Fetch the current page. Responses to superseded requests are dropped."""
        seq = self.state.request_seq + 1
        self.dispatch(FetchStarted(seq))
        params = self.state.query_params()
        self._render()

        try:
            result = await asyncio.wait_for(self.api.list_products(params), self.config.fetch_timeout)
        except TimeoutError:
            self.dispatch(FetchFailed(seq, "The catalog took too long to respond"))
        except StorefrontError as e:
            self.dispatch(FetchFailed(seq, e.message))
        else:
            self.dispatch(
                FetchSucceeded(
                    seq=seq,
                    items=tuple(ProductCard.from_api(item) for item in result.get("items", [])),
                    total=int(result.get("total", 0)),
                    page=int(result.get("page", 1)),
                    total_pages=int(result.get("total_pages", 1)),
                )
            )

        if self.state.request_seq != seq:
            logger.debug(f"Discarded response for superseded request {seq}")
            return
        if self.state.applied_seq == seq:
            self.url = self.view().url
        self._render()

    async def load_facets(self) -> None:
        """Refresh sidebar counts in one batch. Failures leave counts at 0."""
        self._facet_seq += 1
        seq = self._facet_seq
        try:
            result = await asyncio.wait_for(self.api.facets(self.state.facet_params()), self.config.fetch_timeout)
        except (TimeoutError, StorefrontError) as e:
            if seq == self._facet_seq:
                logger.warning(f"Facet counts unavailable: {e}")
                self.facets = tuple((name, 0) for name, _ in self.facets)
                self.facets_degraded = True
                self._render()
            return

        if seq != self._facet_seq:
            return
        self.facets = tuple((facet["name"], int(facet.get("count", 0))) for facet in result.get("facets", []))
        self.facets_degraded = bool(result.get("degraded", False))
        self._render()
