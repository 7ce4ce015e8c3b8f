import logging

from fastapi import APIRouter, Depends, Path, Request

from catalog_api.auth import get_category_store, get_current_user, get_item_store, get_user_store
from catalog_api.errors import NotFound
from catalog_api.models import (
    BulkItemCreate,
    BulkItemDelete,
    CategoryDetailRef,
    Item,
    ItemCreate,
    ItemDetail,
    ItemPage,
    ItemUpdate,
    User,
    UserDetailRef,
    dump,
)
from catalog_api.query import enrich, run_item_query
from catalog_api.ratelimit import limit_api
from catalog_api.stores import CategoryStore, CredentialStore, ItemStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/items", tags=["items"], dependencies=[Depends(limit_api)])


def item_detail(item: Item, categories: CategoryStore, users: CredentialStore) -> ItemDetail:
    category = categories.find_by_id(item.category_id)
    owner = users.find_by_id(item.user_id) if item.user_id is not None else None
    return ItemDetail(
        **item.model_dump(),
        category=CategoryDetailRef(id=category.id, name=category.name, description=category.description)
        if category else None,
        user=UserDetailRef(id=owner.id, username=owner.username, email=owner.email) if owner else None,
    )


# ------------------------------------------------------------
# Read
# ------------------------------------------------------------

# Retrieve items with filtering, pagination, search and sorting
@router.get("", response_model=ItemPage)
def list_items(
    request: Request,
    items: ItemStore = Depends(get_item_store),
    categories: CategoryStore = Depends(get_category_store),
    users: CredentialStore = Depends(get_user_store),
):
    result = run_item_query(request.query_params, items.list(), categories, users)
    return ItemPage(
        data=result.items,
        pagination=result.pagination,
        filters=result.filters.to_dict(),
        sort=result.sort,
    )


@router.get("/{item_id}")
def get_item(
    item_id: int = Path(..., ge=1),
    items: ItemStore = Depends(get_item_store),
    categories: CategoryStore = Depends(get_category_store),
    users: CredentialStore = Depends(get_user_store),
):
    item = items.find_by_id(item_id)
    if not item:
        raise NotFound(f"Item with ID {item_id} not found")
    return {"success": True, "data": dump(item_detail(item, categories, users))}


# ------------------------------------------------------------
# Create (JWT-protected)
# ------------------------------------------------------------

@router.post("", status_code=201)
def create_item(
    payload: ItemCreate,
    current_user: User = Depends(get_current_user),
    items: ItemStore = Depends(get_item_store),
    categories: CategoryStore = Depends(get_category_store),
    users: CredentialStore = Depends(get_user_store),
):
    item = items.create(payload, owner_id=current_user.id)
    logger.info("User %s created item %s", current_user.id, item.id)
    return {
        "success": True,
        "message": "Item created successfully",
        "data": dump(enrich(item, categories, users)),
    }


@router.post("/bulk", status_code=201)
def bulk_create_items(
    payload: BulkItemCreate,
    current_user: User = Depends(get_current_user),
    items: ItemStore = Depends(get_item_store),
):
    created, errors = items.bulk_create(payload.items, owner_id=current_user.id)
    return {
        "success": True,
        "message": f"{len(created)} items created successfully",
        "data": {"created": [dump(item) for item in created], "errors": errors},
    }


# ------------------------------------------------------------
# Update and Delete (owner or admin)
# ------------------------------------------------------------

@router.put("/{item_id}")
def update_item(
    payload: ItemUpdate,
    item_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    items: ItemStore = Depends(get_item_store),
    categories: CategoryStore = Depends(get_category_store),
    users: CredentialStore = Depends(get_user_store),
):
    item = items.update(item_id, payload, requester=current_user)
    return {
        "success": True,
        "message": "Item updated successfully",
        "data": dump(enrich(item, categories, users)),
    }


# registered before "/{item_id}" so "bulk" is never parsed as an id
@router.delete("/bulk")
def bulk_delete_items(
    payload: BulkItemDelete,
    current_user: User = Depends(get_current_user),
    items: ItemStore = Depends(get_item_store),
):
    deleted, errors = items.bulk_delete(payload.item_ids, requester=current_user)
    return {
        "success": True,
        "message": f"{len(deleted)} items deleted successfully",
        "data": {"deleted": [dump(item) for item in deleted], "errors": errors},
    }


@router.delete("/{item_id}")
def delete_item(
    item_id: int = Path(..., ge=1),
    current_user: User = Depends(get_current_user),
    items: ItemStore = Depends(get_item_store),
):
    item = items.delete(item_id, requester=current_user)
    logger.info("User %s deleted item %s", current_user.id, item_id)
    return {"success": True, "message": "Item deleted successfully", "data": dump(item)}
