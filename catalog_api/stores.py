"""
In-memory record stores.

Each store owns its records and hands out copies, so callers can never
mutate stored state behind the store's back. Id allocation and every
mutation run under the store's lock; bulk operations hold it for the whole
batch.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from catalog_api.errors import BadRequest, Conflict, Forbidden, NotFound
from catalog_api.models import Category, Item, User
from catalog_api.policy import authorize_item_mutation

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


class _IdCounter:
    def __init__(self, start=1):
        self._next = start

    def allocate(self) -> int:
        value = self._next
        self._next += 1
        return value

    def bump_past(self, used_id: int):
        if used_id >= self._next:
            self._next = used_id + 1


# ------------------------------------------------------------
# Credential Store
# ------------------------------------------------------------

class CredentialStore:
    def __init__(self):
        self._users: list[User] = []
        self._ids = _IdCounter()
        self._lock = threading.RLock()

    def _find(self, predicate) -> Optional[User]:
        for user in self._users:
            if predicate(user):
                return user
        return None

    def find_by_id(self, user_id: int) -> Optional[User]:
        with self._lock:
            user = self._find(lambda u: u.id == user_id)
            return user.model_copy() if user else None

    def find_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            user = self._find(lambda u: u.username == username)
            return user.model_copy() if user else None

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user = self._find(lambda u: u.email == email)
            return user.model_copy() if user else None

    def list(self) -> list[User]:
        with self._lock:
            return [user.model_copy() for user in self._users]

    def create(self, username: str, email: str, password_hash: str, role: str = "user",
               created_at: Optional[datetime] = None) -> User:
        with self._lock:
            # Checks if username or email is already taken
            if self._find(lambda u: u.username == username):
                raise Conflict("Username already exists")
            if self._find(lambda u: u.email == email):
                raise Conflict("Email already exists")

            user = User(
                id=self._ids.allocate(),
                username=username,
                email=email,
                password_hash=password_hash,
                role=role,
                created_at=created_at or _now(),
                is_active=True,
            )
            self._users.append(user)
            logger.info("Created user %s (id=%s, role=%s)", username, user.id, role)
            return user.model_copy()

    def set_active(self, user_id: int, is_active: bool) -> User:
        with self._lock:
            for index, user in enumerate(self._users):
                if user.id == user_id:
                    self._users[index] = user.model_copy(update={"is_active": is_active})
                    logger.info("User %s is now %s", user_id, "active" if is_active else "inactive")
                    return self._users[index].model_copy()
        raise NotFound(f"User with ID {user_id} not found")


# ------------------------------------------------------------
# Category Store
# ------------------------------------------------------------

class CategoryStore:
    def __init__(self):
        self._categories: list[Category] = []
        self._ids = _IdCounter()
        self._lock = threading.RLock()

    def find_by_id(self, category_id) -> Optional[Category]:
        if category_id is None:
            return None
        with self._lock:
            for category in self._categories:
                if category.id == category_id:
                    return category.model_copy()
        return None

    def exists(self, category_id) -> bool:
        return self.find_by_id(category_id) is not None

    def list(self) -> list[Category]:
        with self._lock:
            return [category.model_copy() for category in self._categories]

    def create(self, name: str, description: Optional[str] = None,
               created_at: Optional[datetime] = None) -> Category:
        name = name.strip()
        with self._lock:
            # category names are unique regardless of case
            if any(c.name.lower() == name.lower() for c in self._categories):
                raise Conflict("Category name already exists")
            category = Category(
                id=self._ids.allocate(),
                name=name,
                description=description.strip() if description else "",
                created_at=created_at or _now(),
            )
            self._categories.append(category)
            logger.info("Created category %r (id=%s)", name, category.id)
            return category.model_copy()


# ------------------------------------------------------------
# Item Store
# ------------------------------------------------------------

class ItemStore:
    """Items plus the category references they point at.

    ``enforce_ownership`` turns the owner-or-admin rule on for update and
    delete; the unauthenticated basic service runs without it.
    """

    def __init__(self, categories: Optional[CategoryStore] = None, enforce_ownership: bool = True):
        self._items: list[Item] = []
        self._ids = _IdCounter()
        self._lock = threading.RLock()
        self.categories = categories
        self.enforce_ownership = enforce_ownership

    def _index_of(self, item_id: int) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return -1

    def _category_missing(self, category_id) -> bool:
        if not category_id or self.categories is None:
            return False
        return not self.categories.exists(category_id)

    def _build(self, draft, owner_id: Optional[int]) -> Item:
        now = _now()
        return Item(
            id=self._ids.allocate(),
            name=draft.name.strip(),
            description=(draft.description or "").strip(),
            price=draft.price or 0,
            category_id=getattr(draft, "category_id", None) or None,
            user_id=owner_id,
            tags=list(getattr(draft, "tags", None) or []),
            stock=getattr(draft, "stock", None) or 0,
            created_at=now,
            updated_at=now,
            is_active=True,
        )

    def find_by_id(self, item_id: int) -> Optional[Item]:
        with self._lock:
            index = self._index_of(item_id)
            return self._items[index].model_copy() if index != -1 else None

    def list(self) -> list[Item]:
        with self._lock:
            return [item.model_copy() for item in self._items]

    def add(self, item: Item) -> Item:
        """Insert a fully-formed record, keeping its id (used for seeding)."""
        with self._lock:
            if self._index_of(item.id) != -1:
                raise Conflict(f"Item with ID {item.id} already exists")
            self._ids.bump_past(item.id)
            self._items.append(item.model_copy())
            return item.model_copy()

    def create(self, draft, owner_id: Optional[int] = None) -> Item:
        with self._lock:
            if self._category_missing(getattr(draft, "category_id", None)):
                raise BadRequest("Invalid category ID")
            item = self._build(draft, owner_id)
            self._items.append(item)
            return item.model_copy()

    def bulk_create(self, drafts, owner_id: Optional[int] = None):
        created, errors = [], []
        with self._lock:
            for position, draft in enumerate(drafts, start=1):
                if self._category_missing(getattr(draft, "category_id", None)):
                    errors.append(f"Item {position}: Invalid category ID")
                    continue
                item = self._build(draft, owner_id)
                self._items.append(item)
                created.append(item.model_copy())
        logger.info("Bulk create: %d created, %d rejected", len(created), len(errors))
        return created, errors

    def update(self, item_id: int, patch, requester: Optional[User] = None) -> Item:
        with self._lock:
            index = self._index_of(item_id)
            if index == -1:
                raise NotFound(f"Item with ID {item_id} not found")
            existing = self._items[index]

            if self.enforce_ownership:
                authorize_item_mutation(requester, existing, "update")

            if self._category_missing(getattr(patch, "category_id", None)):
                raise BadRequest("Invalid category ID")

            changes = {
                "name": patch.name.strip(),
                "description": (patch.description or "").strip(),
                "updated_at": _now(),
            }
            for field in ("price", "category_id", "tags", "stock"):
                value = getattr(patch, field, None)
                if value is not None:
                    changes[field] = value
            # only admins may flip list visibility
            is_active = getattr(patch, "is_active", None)
            if is_active is not None and requester is not None and requester.is_admin:
                changes["is_active"] = is_active

            self._items[index] = existing.model_copy(update=changes)
            return self._items[index].model_copy()

    def delete(self, item_id: int, requester: Optional[User] = None) -> Item:
        with self._lock:
            index = self._index_of(item_id)
            if index == -1:
                raise NotFound(f"Item with ID {item_id} not found")
            if self.enforce_ownership:
                authorize_item_mutation(requester, self._items[index], "delete")
            return self._items.pop(index)

    def bulk_delete(self, item_ids, requester: Optional[User] = None):
        deleted, errors = [], []
        with self._lock:
            for item_id in item_ids:
                index = self._index_of(item_id)
                if index == -1:
                    errors.append(f"Item with ID {item_id} not found")
                    continue
                if self.enforce_ownership:
                    try:
                        authorize_item_mutation(requester, self._items[index], "delete")
                    except Forbidden:
                        errors.append(f"No permission to delete item with ID {item_id}")
                        continue
                deleted.append(self._items.pop(index))
        logger.info("Bulk delete: %d deleted, %d rejected", len(deleted), len(errors))
        return deleted, errors


# ------------------------------------------------------------
# Seed data
# ------------------------------------------------------------

def seed_defaults(users: CredentialStore, categories: CategoryStore, items: ItemStore, password_hash: str):
    """Load the demo records: an admin, a regular user, three categories and two items.

    Both demo accounts use the password ``password``.
    """
    users.create("admin", "admin@example.com", password_hash, role="admin",
                 created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    users.create("user1", "user1@example.com", password_hash, role="user",
                 created_at=datetime(2024, 1, 2, tzinfo=timezone.utc))

    categories.create("Electronics", "Electronic devices and gadgets")
    categories.create("Books", "Books and publications")
    categories.create("Clothing", "Apparel and fashion items")

    first = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    second = datetime(2024, 1, 2, 11, 0, tzinfo=timezone.utc)
    items.add(Item(
        id=1, name="Smartphone", description="Latest model smartphone with advanced features",
        price=999.99, category_id=1, user_id=1, tags=["electronics", "mobile", "technology"],
        stock=50, created_at=first, updated_at=first,
    ))
    items.add(Item(
        id=2, name="Programming Book", description="Complete guide to Node.js development",
        price=49.99, category_id=2, user_id=2, tags=["books", "programming", "nodejs"],
        stock=25, created_at=second, updated_at=second,
    ))
