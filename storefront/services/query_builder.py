"""
Translate raw catalog filter parameters into a MongoDB query plan.

Two steps:

1. ``parse_filter_request`` coerces loosely-typed input (query strings,
   URL state) into a ``FilterRequest``. It never raises: malformed values
   are logged and replaced with defaults.
2. ``build_query`` turns a ``FilterRequest`` into a ``QueryPlan`` that is
   always scoped to one tenant. Search text is regex-escaped, categories
   are matched by equality and the sort key only ever comes from the
   profile's whitelist.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pymongo import ASCENDING, DESCENDING

from storefront.core.config import settings
from storefront.core.errors import ValidationError
from storefront.schemas.filters import CatalogProfile, FilterRequest, QueryPlan

logger = logging.getLogger(__name__)

MAX_SEARCH_LENGTH = 200

# Legacy "every category" sentinel still present in old shared links
ALL_CATEGORIES = "all"

STOREFRONT_PROFILE = CatalogProfile(
    name="storefront",
    sort_fields={"name": "name", "price": "price", "createdAt": "created_at"},
    default_sort="name",
    search_fields=("name",),
    default_page_size=settings.STOREFRONT_PAGE_SIZE,
    max_page_size=settings.MAX_PAGE_SIZE,
)

ADMIN_PROFILE = CatalogProfile(
    name="admin",
    sort_fields={
        "code": "code",
        "name": "name",
        "price": "price",
        "category": "category",
        "createdAt": "created_at",
    },
    default_sort="code",
    search_fields=("name", "code", "description"),
    default_page_size=settings.ADMIN_PAGE_SIZE,
    max_page_size=settings.MAX_PAGE_SIZE,
)


# ============================================================================
# Coercion helpers (raise ValidationError, caught by parse_filter_request)
# ============================================================================


def coerce_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be an integer, got {value!r}") from e


def coerce_price(value: Any, field: str) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be numeric")
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be numeric, got {value!r}") from e
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number")
    return max(0.0, number)


def normalize_categories(values: Any) -> list[str]:
    """Trim, drop blanks and the legacy 'all' sentinel, de-duplicate in order."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    seen: dict[str, None] = {}
    for value in values:
        if value is None:
            continue
        label = str(value).strip()
        if not label or label.lower() == ALL_CATEGORIES:
            continue
        seen.setdefault(label, None)
    return list(seen)


def normalize_search(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text[:MAX_SEARCH_LENGTH]


def resolve_sort(value: Any, profile: CatalogProfile) -> str:
    """Whitelisted sort key, or the profile default for anything unknown."""
    if isinstance(value, str) and value in profile.sort_fields:
        return value
    if value not in (None, ""):
        logger.warning(f"Rejected sort key {value!r} for {profile.name}; using {profile.default_sort!r}")
    return profile.default_sort


def resolve_direction(value: Any, profile: CatalogProfile) -> str:
    if isinstance(value, str) and value.strip().lower() in ("asc", "desc"):
        return value.strip().lower()
    return profile.default_direction


# ============================================================================
# Public API
# ============================================================================


def parse_filter_request(
    params: Mapping[str, Any],
    profile: CatalogProfile = STOREFRONT_PROFILE,
) -> FilterRequest:
    """
    Build a ``FilterRequest`` from raw parameters, defaulting anything malformed.

    Recognised keys: ``search``, ``categories`` (or ``category``), ``price_min``,
    ``price_max``, ``sort``, ``direction`` (or ``order``), ``page``, ``page_size``
    (or ``limit``).
    """
    sort_key = resolve_sort(params.get("sort"), profile)
    direction = resolve_direction(params.get("direction", params.get("order")), profile)
    if params.get("sort") is not None and sort_key != params.get("sort"):
        # A forged or stale sort key resets the whole ordering
        direction = profile.default_direction

    page = 1
    raw_page = params.get("page")
    if raw_page is not None:
        try:
            page = max(1, coerce_int(raw_page, "page"))
        except ValidationError as e:
            logger.warning(f"{e.message}; defaulting to page 1")

    page_size = profile.default_page_size
    raw_size = params.get("page_size", params.get("limit"))
    if raw_size is not None:
        try:
            page_size = min(max(1, coerce_int(raw_size, "page_size")), profile.max_page_size)
        except ValidationError as e:
            logger.warning(f"{e.message}; defaulting to {profile.default_page_size}")

    bounds: dict[str, float | None] = {}
    for key in ("price_min", "price_max"):
        try:
            bounds[key] = coerce_price(params.get(key), key)
        except ValidationError as e:
            logger.warning(f"{e.message}; ignoring {key}")
            bounds[key] = None
    price_min, price_max = bounds["price_min"], bounds["price_max"]
    if price_min is not None and price_max is not None and price_min > price_max:
        price_min, price_max = price_max, price_min

    raw_categories = params.get("categories", params.get("category"))

    return FilterRequest(
        search=normalize_search(params.get("search")),
        categories=normalize_categories(raw_categories),
        price_min=price_min,
        price_max=price_max,
        sort=sort_key,
        direction=direction,
        page=page,
        page_size=page_size,
    )


def build_match(
    tenant: str,
    request: FilterRequest,
    profile: CatalogProfile = STOREFRONT_PROFILE,
    *,
    include_categories: bool = True,
) -> dict[str, Any]:
    """Predicate set for ``request``: the logical AND of every active filter."""
    match: dict[str, Any] = {"tenant": tenant}

    if request.search:
        pattern = {"$regex": re.escape(request.search), "$options": "i"}
        if len(profile.search_fields) == 1:
            match[profile.search_fields[0]] = pattern
        else:
            match["$or"] = [{field: pattern} for field in profile.search_fields]

    if include_categories and request.categories:
        match["category"] = {"$in": list(request.categories)}

    price: dict[str, float] = {}
    if request.price_min is not None:
        price["$gte"] = request.price_min
    if request.price_max is not None:
        price["$lte"] = request.price_max
    if price:
        match["price"] = price

    return match


def build_sort(request: FilterRequest, profile: CatalogProfile = STOREFRONT_PROFILE) -> list[tuple[str, int]]:
    """Sort keys with ``code`` as tie-breaker so page boundaries are stable."""
    field = profile.sort_fields.get(request.sort) or profile.sort_fields[profile.default_sort]
    order = DESCENDING if request.direction == "desc" else ASCENDING
    sort = [(field, order)]
    if field != "code":
        sort.append(("code", ASCENDING))
    return sort


def build_query(
    tenant: str,
    request: FilterRequest,
    profile: CatalogProfile = STOREFRONT_PROFILE,
) -> QueryPlan:
    """Pure transformation of a filter request into a tenant-scoped query plan."""
    notes: list[str] = []
    if request.sort not in profile.sort_fields:
        notes.append(f"sort {request.sort!r} replaced by {profile.default_sort!r}")
        request = request.model_copy(update={"sort": profile.default_sort, "direction": profile.default_direction})

    page_size = min(max(1, request.page_size), profile.max_page_size)
    return QueryPlan(
        filter=build_match(tenant, request, profile),
        sort=build_sort(request, profile),
        page=request.page,
        page_size=page_size,
        notes=notes,
    )


def iter_active_filters(request: FilterRequest) -> Iterable[tuple[str, str]]:
    """(kind, label) pairs for every non-default filter, used in log lines."""
    if request.search:
        yield "search", request.search
    for category in request.categories:
        yield "category", category
    if request.price_min is not None:
        yield "price_min", f"{request.price_min:g}"
    if request.price_max is not None:
        yield "price_max", f"{request.price_max:g}"
