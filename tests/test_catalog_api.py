"""Tests for the public catalog endpoints."""

import pytest

from storefront.core.config import settings

ACME = {"X-Tenant-Id": "acme"}


def codes(response):
    return [item["code"] for item in response.json()["items"]]


@pytest.mark.asyncio
async def test_search_paginates_large_result(client, db, make_product):
    await db[settings.PRODUCTS_COLLECTION].insert_many(
        [make_product(f"CBL-{i:02d}", f"USB Cable {i:02d}", 5.0 + i, "Cables") for i in range(30)]
    )

    first = await client.get("/api/products", params={"search": "cable"}, headers=ACME)
    second = await client.get("/api/products", params={"search": "cable", "page": 2}, headers=ACME)

    assert first.status_code == 200
    body = first.json()
    assert len(body["items"]) == 24
    assert body["total"] == 30
    assert body["total_pages"] == 2
    assert body["page_size"] == 24
    assert len(second.json()["items"]) == 6
    assert set(codes(first)).isdisjoint(codes(second))


@pytest.mark.asyncio
async def test_search_is_case_insensitive_and_literal(client, catalog):
    response = await client.get("/api/products", params={"search": "CABLE"}, headers=ACME)
    assert sorted(codes(response)) == ["NET-1", "VID-2"]

    response = await client.get("/api/products", params={"search": ".*"}, headers=ACME)
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_multiple_categories_match_any(client, catalog):
    response = await client.get(
        "/api/products",
        params=[("category", "Audio"), ("category", "Video")],
        headers=ACME,
    )

    assert response.json()["total"] == 5
    assert all(item["category"] in ("Audio", "Video") for item in response.json()["items"])


@pytest.mark.asyncio
async def test_price_bounds_are_inclusive(client, catalog):
    response = await client.get("/api/products", params={"price_min": "50", "price_max": "100"}, headers=ACME)

    assert sorted(codes(response)) == ["AUD-2", "MSC-1", "NET-2"]


@pytest.mark.asyncio
async def test_inverted_price_bounds_are_swapped(client, catalog):
    swapped = await client.get("/api/products", params={"price_min": "100", "price_max": "50"}, headers=ACME)

    assert sorted(codes(swapped)) == ["AUD-2", "MSC-1", "NET-2"]


@pytest.mark.asyncio
async def test_filters_combine(client, catalog):
    response = await client.get(
        "/api/products",
        params={"search": "cable", "category": "Video", "price_max": "20"},
        headers=ACME,
    )

    assert codes(response) == ["VID-2"]


@pytest.mark.asyncio
async def test_empty_result_still_has_one_page(client, catalog):
    response = await client.get("/api/products", params={"search": "does-not-exist"}, headers=ACME)

    assert response.json() == {"items": [], "total": 0, "page": 1, "page_size": 24, "total_pages": 1}


@pytest.mark.asyncio
async def test_default_sort_is_name_ascending(client, catalog):
    response = await client.get("/api/products", headers=ACME)

    assert [item["name"] for item in response.json()["items"]] == [
        "4K Monitor",
        "Bluetooth Speaker",
        "Ethernet Cable",
        "Gift Card",
        "HDMI Cable",
        "Soundbar",
        "Studio Headphones",
        "Wi-Fi Router",
    ]


@pytest.mark.asyncio
async def test_sort_by_price_descending(client, catalog):
    response = await client.get("/api/products", params={"sort": "price", "order": "desc"}, headers=ACME)

    prices = [item["price"] for item in response.json()["items"]]
    assert prices == sorted(prices, reverse=True)
    assert prices[0] == 320.0


@pytest.mark.asyncio
async def test_sort_by_newest(client, catalog):
    response = await client.get("/api/products", params={"sort": "createdAt", "order": "desc"}, headers=ACME)

    assert codes(response)[0] == "MSC-1"


@pytest.mark.asyncio
async def test_unknown_sort_falls_back_to_name(client, catalog):
    forged = await client.get("/api/products", params={"sort": "description", "order": "desc"}, headers=ACME)
    default = await client.get("/api/products", headers=ACME)

    assert forged.status_code == 200
    assert codes(forged) == codes(default)


@pytest.mark.asyncio
async def test_out_of_range_page_clamps_to_last(client, catalog):
    response = await client.get("/api/products", params={"page": "9", "limit": "3"}, headers=ACME)

    body = response.json()
    assert body["page"] == 3
    assert body["total_pages"] == 3
    assert len(body["items"]) == 2


@pytest.mark.asyncio
async def test_malformed_params_are_defaulted(client, catalog):
    response = await client.get(
        "/api/products",
        params={"page": "abc", "limit": "x", "price_min": "free"},
        headers=ACME,
    )

    assert response.status_code == 200
    assert response.json()["total"] == 8
    assert response.json()["page"] == 1


@pytest.mark.asyncio
async def test_tenants_are_isolated(client, catalog):
    acme = await client.get("/api/products", params={"search": "speaker"}, headers=ACME)
    other = await client.get("/api/products", params={"search": "speaker"}, headers={"X-Tenant-Id": "other"})
    default = await client.get("/api/products")

    assert codes(acme) == ["AUD-1"]
    assert codes(other) == ["AUD-9"]
    assert default.json()["total"] == 0


@pytest.mark.asyncio
async def test_listing_is_idempotent(client, catalog):
    params = {"category": "Audio", "sort": "price", "page": "1", "limit": "2"}

    first = await client.get("/api/products", params=params, headers=ACME)
    second = await client.get("/api/products", params=params, headers=ACME)

    assert first.json() == second.json()


@pytest.mark.asyncio
async def test_get_product_by_code(client, catalog):
    response = await client.get("/api/products/VID-1", headers=ACME)

    assert response.status_code == 200
    assert response.json()["name"] == "4K Monitor"


@pytest.mark.asyncio
async def test_get_product_from_another_tenant_is_not_found(client, catalog):
    response = await client.get("/api/products/AUD-9", headers=ACME)

    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


@pytest.mark.asyncio
async def test_categories_skip_blank_labels(client, catalog):
    response = await client.get("/api/categories", headers=ACME)

    assert response.json() == {"categories": ["Audio", "Networking", "Video"], "counts": None}


@pytest.mark.asyncio
async def test_categories_with_counts(client, catalog):
    response = await client.get("/api/categories", params={"with_counts": "true"}, headers=ACME)

    assert response.json()["counts"] == [
        {"name": "Audio", "count": 3},
        {"name": "Networking", "count": 2},
        {"name": "Video", "count": 2},
    ]


@pytest.mark.asyncio
async def test_facets_ignore_category_selection(client, catalog):
    response = await client.get(
        "/api/categories/facets",
        params={"category": "Audio", "price_max": "100"},
        headers=ACME,
    )

    assert response.json() == {
        "facets": [
            {"name": "Audio", "count": 2},
            {"name": "Networking", "count": 2},
            {"name": "Video", "count": 1},
        ],
        "degraded": False,
    }


@pytest.mark.asyncio
async def test_facets_keep_zero_count_categories(client, catalog):
    response = await client.get("/api/categories/facets", params={"search": "router"}, headers=ACME)

    assert response.json()["facets"] == [
        {"name": "Networking", "count": 1},
        {"name": "Audio", "count": 0},
        {"name": "Video", "count": 0},
    ]
