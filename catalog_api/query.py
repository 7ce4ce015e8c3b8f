"""
Query pipeline for item listings.

Raw query parameters go through a fixed sequence of steps:
pagination parsing, filter parsing, filter application, sorting, slicing and
enrichment. Parsing is lenient: a malformed value falls back to its default
(or is ignored, for filters) instead of failing the request.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from catalog_api.models import CategoryRef, EnrichedItem, Item, Pagination, SortSpec, UserRef

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# public sort key -> record attribute
SORT_FIELDS = {
    "id": "id",
    "name": "name",
    "price": "price",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
SORT_ORDERS = ("asc", "desc")

LEADING_INT = re.compile(r"\s*[+-]?\d+")


def _parse_int(value) -> Optional[int]:
    if value is None:
        return None
    # leading integer only, so "20abc" is 20 and "2.5" is 2
    match = LEADING_INT.match(str(value))
    return int(match.group()) if match else None


def _parse_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_bool(value) -> Optional[bool]:
    if value is None:
        return None
    value = str(value).strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    return None


# ------------------------------------------------------------
# 1. Pagination
# ------------------------------------------------------------

@dataclass
class PageRequest:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def parse_pagination(params: Mapping[str, str]) -> PageRequest:
    page = max(1, _parse_int(params.get("page")) or DEFAULT_PAGE)
    limit = min(MAX_LIMIT, max(1, _parse_int(params.get("limit")) or DEFAULT_LIMIT))
    return PageRequest(page=page, limit=limit)


def paginate(records: list, page: PageRequest):
    """Slice one page out of ``records``; returns the page and the pre-slice total."""
    total = len(records)
    return records[page.skip:page.skip + page.limit], total


def page_metadata(page: PageRequest, total: int) -> Pagination:
    return Pagination(
        current_page=page.page,
        total_pages=math.ceil(total / page.limit),
        total_items=total,
        items_per_page=page.limit,
        has_next_page=page.skip + page.limit < total,
        has_previous_page=page.page > 1,
    )


# ------------------------------------------------------------
# 2. Filters
# ------------------------------------------------------------

@dataclass
class ItemFilters:
    category_id: Optional[int] = None
    user_id: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    active: Optional[bool] = None
    search: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Echo of the filters that were actually applied, camelCase keys."""
        echoed = {
            "categoryId": self.category_id,
            "userId": self.user_id,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "active": self.active,
            "search": self.search,
            "tags": self.tags or None,
        }
        return {key: value for key, value in echoed.items() if value is not None}


def parse_filters(params: Mapping[str, str]) -> ItemFilters:
    filters = ItemFilters()

    category_id = _parse_int(params.get("category"))
    if category_id:
        filters.category_id = category_id
    user_id = _parse_int(params.get("userId"))
    if user_id:
        filters.user_id = user_id

    filters.min_price = _parse_float(params.get("minPrice"))
    filters.max_price = _parse_float(params.get("maxPrice"))
    filters.active = parse_bool(params.get("active"))

    search = (params.get("search") or "").strip()
    if search:
        filters.search = search.lower()

    raw_tags = params.get("tags") or ""
    filters.tags = [tag.strip() for tag in raw_tags.split(",") if tag.strip()]
    return filters


def matches(item: Item, filters: ItemFilters) -> bool:
    # inactive items stay hidden unless explicitly asked for
    if not item.is_active and filters.active is not False:
        return False
    if filters.active is not None and item.is_active != filters.active:
        return False
    if filters.category_id is not None and item.category_id != filters.category_id:
        return False
    if filters.user_id is not None and item.user_id != filters.user_id:
        return False
    if filters.min_price is not None and item.price < filters.min_price:
        return False
    if filters.max_price is not None and item.price > filters.max_price:
        return False

    if filters.search:
        needle = filters.search
        in_name = needle in item.name.lower()
        in_description = needle in item.description.lower()
        in_tags = any(needle in tag.lower() for tag in item.tags)
        if not (in_name or in_description or in_tags):
            return False

    if filters.tags:
        wanted = {tag.lower() for tag in filters.tags}
        if not any(tag.lower() in wanted for tag in item.tags):
            return False

    return True


# ------------------------------------------------------------
# 3. Sorting
# ------------------------------------------------------------

def parse_sort(params: Mapping[str, str]) -> SortSpec:
    sort_by = params.get("sortBy")
    if sort_by not in SORT_FIELDS:
        sort_by = "id"
    sort_order = "desc" if params.get("sortOrder") == "desc" else "asc"
    return SortSpec(sort_by=sort_by, sort_order=sort_order)


def sort_items(items: list[Item], sort: SortSpec) -> list[Item]:
    attribute = SORT_FIELDS[sort.sort_by]

    def key(item):
        value = getattr(item, attribute)
        return value.lower() if isinstance(value, str) else value

    # sorted() is stable in both directions, so ties keep store order
    return sorted(items, key=key, reverse=sort.sort_order == "desc")


# ------------------------------------------------------------
# 4. Enrichment
# ------------------------------------------------------------

def enrich(item: Item, categories=None, users=None) -> EnrichedItem:
    category = categories.find_by_id(item.category_id) if categories is not None else None
    owner = users.find_by_id(item.user_id) if users is not None and item.user_id is not None else None
    return EnrichedItem(
        **item.model_dump(),
        category=CategoryRef(id=category.id, name=category.name) if category else None,
        user=UserRef(id=owner.id, username=owner.username) if owner else None,
    )


# ------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------

@dataclass
class ItemQueryResult:
    items: list
    pagination: Pagination
    filters: ItemFilters
    sort: SortSpec


def run_item_query(params: Mapping[str, str], items: list[Item], categories=None, users=None,
                   enrich_items: bool = True) -> ItemQueryResult:
    page = parse_pagination(params)
    filters = parse_filters(params)
    sort = parse_sort(params)

    selected = sort_items([item for item in items if matches(item, filters)], sort)
    page_items, total = paginate(selected, page)
    if enrich_items:
        page_items = [enrich(item, categories, users) for item in page_items]

    return ItemQueryResult(
        items=page_items,
        pagination=page_metadata(page, total),
        filters=filters,
        sort=sort,
    )
