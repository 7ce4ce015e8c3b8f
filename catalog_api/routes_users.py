import logging
import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from catalog_api.auth import get_category_store, get_item_store, get_user_store, require_admin
from catalog_api.errors import NotFound
from catalog_api.models import StatusUpdate, User, UserOut, dump
from catalog_api.policy import check_status_change
from catalog_api.query import paginate, parse_pagination
from catalog_api.ratelimit import limit_api
from catalog_api.stores import CategoryStore, CredentialStore, ItemStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["admin"], dependencies=[Depends(limit_api)])

RECENT_ITEMS = 5


# ------------------------------------------------------------
# User Management (admin only)
# ------------------------------------------------------------

@router.get("/users")
def list_users(
    request: Request,
    role: Optional[Literal["admin", "user"]] = Query(default=None),
    active: Optional[bool] = Query(default=None),
    admin: User = Depends(require_admin),
    users: CredentialStore = Depends(get_user_store),
):
    page = parse_pagination(request.query_params)

    filtered = [
        user for user in users.list()
        if (role is None or user.role == role) and (active is None or user.is_active == active)
    ]
    page_users, total = paginate(filtered, page)

    return {
        "success": True,
        "data": [dump(UserOut.from_user(user)) for user in page_users],
        "pagination": {
            "currentPage": page.page,
            "totalPages": math.ceil(total / page.limit),
            "totalUsers": total,
            "usersPerPage": page.limit,
        },
    }


@router.get("/users/{user_id}")
def get_user(
    user_id: int = Path(..., ge=1),
    admin: User = Depends(require_admin),
    users: CredentialStore = Depends(get_user_store),
    items: ItemStore = Depends(get_item_store),
):
    user = users.find_by_id(user_id)
    if not user:
        raise NotFound(f"User with ID {user_id} not found")

    user_items = [item for item in items.list() if item.user_id == user_id]
    data = dump(UserOut.from_user(user))
    data["itemsCreated"] = len(user_items)
    data["recentItems"] = [dump(item) for item in user_items[-RECENT_ITEMS:]]
    return {"success": True, "data": data}


@router.put("/users/{user_id}/status")
def update_user_status(
    payload: StatusUpdate,
    user_id: int = Path(..., ge=1),
    admin: User = Depends(require_admin),
    users: CredentialStore = Depends(get_user_store),
):
    if not users.find_by_id(user_id):
        raise NotFound(f"User with ID {user_id} not found")

    check_status_change(admin, user_id, payload.is_active)

    user = users.set_active(user_id, payload.is_active)
    logger.info("Admin %s set user %s active=%s", admin.id, user_id, payload.is_active)
    return {
        "success": True,
        "message": f"User {'activated' if payload.is_active else 'deactivated'} successfully",
        "data": dump(UserOut.from_user(user)),
    }


# ------------------------------------------------------------
# Statistics (admin only)
# ------------------------------------------------------------

def collect_stats(users: list, items: list, categories: list) -> dict:
    active_users = sum(1 for user in users if user.is_active)
    active_items = [item for item in items if item.is_active]

    items_by_category = [
        {"category": category.name, "count": sum(1 for item in active_items if item.category_id == category.id)}
        for category in categories
    ]
    items_by_user = []
    for user in users:
        count = sum(1 for item in active_items if item.user_id == user.id)
        if count > 0:
            items_by_user.append({"username": user.username, "count": count})

    return {
        "users": {"total": len(users), "active": active_users, "inactive": len(users) - active_users},
        "items": {"total": len(items), "active": len(active_items), "inactive": len(items) - len(active_items)},
        "categories": {"total": len(categories)},
        "breakdown": {"itemsByCategory": items_by_category, "itemsByUser": items_by_user},
    }


@router.get("/stats")
def get_stats(
    admin: User = Depends(require_admin),
    users: CredentialStore = Depends(get_user_store),
    items: ItemStore = Depends(get_item_store),
    categories: CategoryStore = Depends(get_category_store),
):
    return {"success": True, "data": collect_stats(users.list(), items.list(), categories.list())}
