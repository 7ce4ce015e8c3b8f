from fastapi import APIRouter, Depends, Path

from catalog_api.auth import get_category_store, get_item_store, require_admin
from catalog_api.errors import NotFound
from catalog_api.models import CategoryCreate, User, dump
from catalog_api.ratelimit import limit_api
from catalog_api.stores import CategoryStore, ItemStore

router = APIRouter(prefix="/api/categories", tags=["categories"], dependencies=[Depends(limit_api)])


@router.get("")
def list_categories(
    categories: CategoryStore = Depends(get_category_store),
    items: ItemStore = Depends(get_item_store),
):
    all_items = items.list()
    category_list = []
    for category in categories.list():
        entry = dump(category)
        entry["itemCount"] = sum(1 for item in all_items if item.category_id == category.id and item.is_active)
        category_list.append(entry)
    return {"success": True, "count": len(category_list), "data": category_list}


# Get category by ID with its active items
@router.get("/{category_id}")
def get_category(
    category_id: int = Path(..., ge=1),
    categories: CategoryStore = Depends(get_category_store),
    items: ItemStore = Depends(get_item_store),
):
    category = categories.find_by_id(category_id)
    if not category:
        raise NotFound(f"Category with ID {category_id} not found")

    data = dump(category)
    data["items"] = [dump(item) for item in items.list() if item.category_id == category_id and item.is_active]
    return {"success": True, "data": data}


@router.post("", status_code=201)
def create_category(
    payload: CategoryCreate,
    admin: User = Depends(require_admin),
    categories: CategoryStore = Depends(get_category_store),
):
    category = categories.create(payload.name, payload.description)
    return {"success": True, "message": "Category created successfully", "data": dump(category)}
