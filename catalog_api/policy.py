"""Authorization rules. Pure functions of (requester, target); they raise
``Forbidden`` or ``BadRequest`` and never touch a store."""

from catalog_api.errors import BadRequest, Forbidden
from catalog_api.models import Item, User


def can_modify_item(requester: User, item: Item) -> bool:
    if requester is None:
        return False
    return requester.id == item.user_id or requester.is_admin


def authorize_item_mutation(requester: User, item: Item, action: str = "update"):
    if not can_modify_item(requester, item):
        raise Forbidden(f"You can only {action} your own items")


def require_admin_role(requester: User):
    if not requester.is_admin:
        raise Forbidden("Admin access required")


def check_status_change(requester: User, target_id: int, is_active: bool):
    # an admin may not lock themselves out
    if target_id == requester.id and not is_active:
        raise BadRequest("Cannot deactivate your own account")
