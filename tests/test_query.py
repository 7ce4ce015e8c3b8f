"""Unit tests for the item query pipeline."""

import math
import random
from datetime import datetime, timedelta, timezone

import pytest

from catalog_api.models import Item
from catalog_api.query import (
    ItemFilters,
    matches,
    parse_filters,
    parse_pagination,
    parse_sort,
    run_item_query,
)
from catalog_api.stores import CategoryStore, CredentialStore

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_item(item_id, name="item", price=1.0, tags=(), is_active=True, category_id=None, user_id=1,
              description="plain"):
    created = BASE_TIME + timedelta(minutes=item_id)
    return Item(
        id=item_id,
        name=name,
        description=description,
        price=price,
        category_id=category_id,
        user_id=user_id,
        tags=list(tags),
        created_at=created,
        updated_at=created,
        is_active=is_active,
    )


def random_items(rng, count):
    return [make_item(i, name=rng.choice(["alpha", "Beta", "gamma", "Delta"]), price=round(rng.uniform(0, 500), 2))
            for i in range(1, count + 1)]


# ------------------------------------------------------------
# Parsing
# ------------------------------------------------------------

@pytest.mark.parametrize(
    "params,expected",
    [
        ({}, (1, 10, 0)),
        ({"page": "3", "limit": "20"}, (3, 20, 40)),
        ({"page": "0"}, (1, 10, 0)),
        ({"page": "-4"}, (1, 10, 0)),
        ({"page": "abc", "limit": "xyz"}, (1, 10, 0)),
        ({"limit": "500"}, (1, 100, 0)),
        ({"limit": "-2"}, (1, 1, 0)),
        ({"limit": "0"}, (1, 10, 0)),
        ({"page": "2.5", "limit": "20abc"}, (2, 20, 20)),
        ({"page": " +3", "limit": "abc20"}, (3, 10, 20)),
    ],
)
def test_parse_pagination(params, expected):
    page = parse_pagination(params)
    assert (page.page, page.limit, page.skip) == expected


def test_parse_filters():
    filters = parse_filters({
        "category": "2",
        "userId": "7",
        "minPrice": "1.5",
        "maxPrice": "nan",
        "active": "FALSE",
        "search": "  Phone ",
        "tags": "a, ,B,",
    })
    assert filters.category_id == 2
    assert filters.user_id == 7
    assert filters.min_price == 1.5
    assert filters.max_price is None
    assert filters.active is False
    assert filters.search == "phone"
    assert filters.tags == ["a", "B"]


def test_parse_filters_ignores_garbage():
    filters = parse_filters({"category": "x", "minPrice": "cheap", "active": "maybe", "search": "   "})
    assert filters == ItemFilters()
    assert filters.to_dict() == {}


def test_parse_sort():
    assert parse_sort({}).sort_by == "id"
    assert parse_sort({"sortBy": "createdAt", "sortOrder": "desc"}).sort_order == "desc"
    assert parse_sort({"sortBy": "stock"}).sort_by == "id"


# ------------------------------------------------------------
# Filtering
# ------------------------------------------------------------

def test_price_range_property():
    rng = random.Random(1234)
    for _ in range(50):
        items = random_items(rng, rng.randint(0, 40))
        low = round(rng.uniform(0, 300), 2)
        high = round(rng.uniform(low, 500), 2)
        result = run_item_query({"minPrice": str(low), "maxPrice": str(high), "limit": "100"}, items,
                                enrich_items=False)
        assert all(low <= item.price <= high for item in result.items)
        expected = sum(1 for item in items if low <= item.price <= high)
        assert result.pagination.total_items == expected


def test_inactive_hidden_unless_requested():
    items = [make_item(1), make_item(2, is_active=False)]
    assert [i.id for i in run_item_query({}, items, enrich_items=False).items] == [1]
    assert [i.id for i in run_item_query({"active": "true"}, items, enrich_items=False).items] == [1]
    assert [i.id for i in run_item_query({"active": "false"}, items, enrich_items=False).items] == [2]


def test_search_matches_name_description_or_tag():
    items = [
        make_item(1, name="Red Lamp"),
        make_item(2, description="a LAMP for desks"),
        make_item(3, tags=["lamps"]),
        make_item(4, name="Chair"),
    ]
    result = run_item_query({"search": "lamp"}, items, enrich_items=False)
    assert [item.id for item in result.items] == [1, 2, 3]


def test_tags_use_or_semantics_and_ignore_case():
    items = [
        make_item(1, tags=["Red"]),
        make_item(2, tags=["blue", "green"]),
        make_item(3, tags=["reddish"]),
        make_item(4),
    ]
    result = run_item_query({"tags": "red,BLUE"}, items, enrich_items=False)
    assert [item.id for item in result.items] == [1, 2]


def test_criteria_combine_with_and():
    filters = ItemFilters(category_id=1, min_price=10)
    assert matches(make_item(1, category_id=1, price=20), filters)
    assert not matches(make_item(2, category_id=2, price=20), filters)
    assert not matches(make_item(3, category_id=1, price=5), filters)


def test_user_filter():
    items = [make_item(1, user_id=1), make_item(2, user_id=2)]
    assert [i.id for i in run_item_query({"userId": "2"}, items, enrich_items=False).items] == [2]


# ------------------------------------------------------------
# Sorting and pagination
# ------------------------------------------------------------

def test_name_sort_is_case_insensitive():
    rng = random.Random(99)
    items = random_items(rng, 30)
    result = run_item_query({"sortBy": "name", "limit": "100"}, items, enrich_items=False)
    names = [item.name.lower() for item in result.items]
    assert all(a <= b for a, b in zip(names, names[1:]))


def test_sort_ties_keep_store_order_in_both_directions():
    items = [make_item(1, price=5), make_item(2, price=3), make_item(3, price=5), make_item(4, price=3)]
    asc = run_item_query({"sortBy": "price"}, items, enrich_items=False).items
    desc = run_item_query({"sortBy": "price", "sortOrder": "desc"}, items, enrich_items=False).items
    assert [i.id for i in asc] == [2, 4, 1, 3]
    assert [i.id for i in desc] == [1, 3, 2, 4]


def test_sort_by_created_at_desc():
    items = [make_item(1), make_item(2), make_item(3)]
    result = run_item_query({"sortBy": "createdAt", "sortOrder": "desc"}, items, enrich_items=False)
    assert [i.id for i in result.items] == [3, 2, 1]


@pytest.mark.parametrize("count,limit", [(0, 10), (1, 1), (9, 3), (10, 3), (25, 10), (7, 100)])
def test_pages_concatenate_to_full_sorted_set(count, limit):
    rng = random.Random(count * 31 + limit)
    items = random_items(rng, count)
    params = {"sortBy": "price", "limit": str(limit)}
    full = run_item_query({**params, "limit": "100"}, items, enrich_items=False).items

    first = run_item_query({**params, "page": "1"}, items, enrich_items=False)
    assert first.pagination.total_pages == math.ceil(count / limit)

    collected = []
    for page in range(1, first.pagination.total_pages + 1):
        result = run_item_query({**params, "page": str(page)}, items, enrich_items=False)
        assert result.pagination.current_page == page
        assert result.pagination.has_previous_page == (page > 1)
        assert result.pagination.has_next_page == (page < first.pagination.total_pages)
        collected.extend(result.items)

    assert [item.id for item in collected] == [item.id for item in full]


def test_page_past_the_end_is_empty():
    items = [make_item(i) for i in range(1, 4)]
    result = run_item_query({"page": "5"}, items, enrich_items=False)
    assert result.items == []
    assert result.pagination.total_items == 3
    assert result.pagination.has_next_page is False


# ------------------------------------------------------------
# Enrichment
# ------------------------------------------------------------

def test_enrichment_uses_reduced_views_and_nulls():
    users = CredentialStore()
    users.create("owner", "owner@example.com", "hash")
    categories = CategoryStore()
    categories.create("Tools", "Hand tools")

    items = [make_item(1, category_id=1, user_id=1), make_item(2, category_id=9, user_id=9)]
    result = run_item_query({}, items, categories, users)

    first, second = result.items
    assert first.category.model_dump() == {"id": 1, "name": "Tools"}
    assert first.user.model_dump() == {"id": 1, "username": "owner"}
    assert second.category is None
    assert second.user is None


def test_filters_read_leading_integers():
    filters = parse_filters({"category": "1x", "userId": "7.9"})
    assert filters.category_id == 1
    assert filters.user_id == 7
