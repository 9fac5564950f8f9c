"""Tests for filter coercion and query plan construction."""

import re

import pytest
from pymongo import ASCENDING, DESCENDING

from storefront.schemas.filters import FilterRequest
from storefront.services.query_builder import (
    ADMIN_PROFILE,
    STOREFRONT_PROFILE,
    build_match,
    build_query,
    iter_active_filters,
    parse_filter_request,
)

pytestmark = pytest.mark.unit


def test_empty_params_give_defaults():
    request = parse_filter_request({})

    assert request == FilterRequest(page_size=STOREFRONT_PROFILE.default_page_size)


def test_malformed_values_are_defaulted_not_rejected():
    request = parse_filter_request(
        {"page": "two", "page_size": "-4", "price_min": "cheap", "price_max": "nan", "sort": "rating"}
    )

    assert request.page == 1
    assert request.page_size == 1
    assert request.price_min is None
    assert request.price_max is None
    assert request.sort == "name"


def test_page_size_is_capped():
    request = parse_filter_request({"limit": "5000"})

    assert request.page_size == STOREFRONT_PROFILE.max_page_size


def test_inverted_price_bounds_are_swapped():
    request = parse_filter_request({"price_min": "100", "price_max": "50"})

    assert (request.price_min, request.price_max) == (50.0, 100.0)


def test_negative_price_is_clamped_to_zero():
    request = parse_filter_request({"price_min": "-10"})

    assert request.price_min == 0.0


def test_categories_are_trimmed_and_deduplicated():
    request = parse_filter_request({"category": [" Audio ", "Video", "", "Audio", "all"]})

    assert request.categories == ["Audio", "Video"]


def test_single_category_string_is_accepted():
    assert parse_filter_request({"categories": "Audio"}).categories == ["Audio"]


def test_unknown_sort_resets_direction():
    request = parse_filter_request({"sort": "$where", "order": "desc"})

    assert request.sort == "name"
    assert request.direction == "asc"


def test_known_sort_keeps_direction():
    request = parse_filter_request({"sort": "price", "order": "DESC"})

    assert request.sort == "price"
    assert request.direction == "desc"


def test_search_is_trimmed_and_blank_ignored():
    assert parse_filter_request({"search": "  cable  "}).search == "cable"
    assert parse_filter_request({"search": "   "}).search is None


def test_match_is_always_tenant_scoped():
    assert build_match("acme", FilterRequest()) == {"tenant": "acme"}


def test_search_text_is_regex_escaped():
    match = build_match("acme", FilterRequest(search="4K (2024)+"))

    assert match["name"] == {"$regex": re.escape("4K (2024)+"), "$options": "i"}


def test_admin_search_spans_several_fields():
    match = build_match("acme", FilterRequest(search="cab"), ADMIN_PROFILE)

    assert [list(clause) for clause in match["$or"]] == [["name"], ["code"], ["description"]]


def test_filters_combine_with_and():
    request = FilterRequest(search="cable", categories=["Audio", "Video"], price_min=10, price_max=20)
    match = build_match("acme", request)

    assert match == {
        "tenant": "acme",
        "name": {"$regex": "cable", "$options": "i"},
        "category": {"$in": ["Audio", "Video"]},
        "price": {"$gte": 10, "$lte": 20},
    }


def test_facet_match_leaves_out_categories():
    request = FilterRequest(categories=["Audio"], price_max=20)

    assert "category" not in build_match("acme", request, include_categories=False)


def test_sort_maps_to_storage_field_with_tie_breaker():
    plan = build_query("acme", FilterRequest(sort="createdAt", direction="desc"))

    assert plan.sort == [("created_at", DESCENDING), ("code", ASCENDING)]
    assert plan.notes == []


def test_sort_outside_whitelist_is_replaced():
    plan = build_query("acme", FilterRequest(sort="category", direction="desc"))

    assert plan.sort == [("name", ASCENDING), ("code", ASCENDING)]
    assert plan.notes


def test_admin_default_sort_has_no_duplicate_tie_breaker():
    plan = build_query("acme", FilterRequest(sort="code"), ADMIN_PROFILE)

    assert plan.sort == [("code", ASCENDING)]


def test_iter_active_filters_labels():
    request = FilterRequest(search="tv", categories=["Video"], price_min=9.5)

    assert list(iter_active_filters(request)) == [("search", "tv"), ("category", "Video"), ("price_min", "9.5")]
