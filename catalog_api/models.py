"""
Pydantic models for stored records, request payloads and response bodies.

Every model serializes with camelCase keys (``categoryId``, ``isActive``)
and accepts either camelCase or snake_case on input.
"""

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------------
# Stored records
# ----------------------------

class User(CamelModel):
    id: int
    username: str
    email: str
    password_hash: str
    role: str = "user"  # either admin or user
    created_at: datetime
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Category(CamelModel):
    id: int
    name: str
    description: str = ""
    created_at: Optional[datetime] = None


class Item(CamelModel):
    id: int
    name: str
    description: str
    price: float = 0
    category_id: Optional[int] = None
    user_id: Optional[int] = None
    tags: list[str] = Field(default_factory=list)
    stock: int = 0
    created_at: datetime
    updated_at: datetime
    is_active: bool = True


# ----------------------------
# Request payloads
# ----------------------------

class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r'^[a-zA-Z0-9_]+$')
    email: EmailStr
    password: str

    @field_validator('username', mode='before')
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('email')
    def normalize_email(cls, v):
        return v.lower()

    @field_validator('password')
    def password_must_be_strong(cls, v):
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long")
        if not re.search(r'[a-z]', v) or not re.search(r'[A-Z]', v) or not re.search(r'\d', v):
            raise ValueError(
                "Password must contain at least one lowercase letter, one uppercase letter, and one number"
            )
        return v


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator('username')
    def strip_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v


class ItemCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    category_id: Optional[int] = Field(default=None, ge=1)
    tags: Optional[list[str]] = None
    stock: Optional[int] = Field(default=None, ge=0)

    @field_validator('tags')
    def clean_tags(cls, v):
        if v is None:
            return v
        return [tag for tag in (t.strip() for t in v) if tag]


class ItemUpdate(ItemCreate):
    is_active: Optional[StrictBool] = None


class BulkItemCreate(CamelModel):
    items: list[ItemCreate] = Field(..., min_length=1, max_length=50)


class BulkItemDelete(CamelModel):
    item_ids: list[int] = Field(..., min_length=1, max_length=50)

    @field_validator('item_ids')
    def ids_must_be_positive(cls, v):
        for item_id in v:
            if item_id < 1:
                raise ValueError("Each item ID must be a positive integer")
        return v


class CategoryCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)


class StatusUpdate(CamelModel):
    is_active: StrictBool


class BasicItemCreate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class BasicUserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=100)


# ----------------------------
# Response bodies
# ----------------------------

class UserOut(CamelModel):
    id: int
    username: str
    email: str
    role: str
    created_at: datetime
    is_active: bool

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls.model_validate(user.model_dump(exclude={"password_hash"}))


class CategoryRef(CamelModel):
    id: int
    name: str


class CategoryDetailRef(CategoryRef):
    description: str = ""


class UserRef(CamelModel):
    id: int
    username: str


class UserDetailRef(UserRef):
    email: str


class EnrichedItem(Item):
    category: Optional[CategoryRef] = None
    user: Optional[UserRef] = None


class ItemDetail(Item):
    category: Optional[CategoryDetailRef] = None
    user: Optional[UserDetailRef] = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool


class SortSpec(CamelModel):
    sort_by: str
    sort_order: str


class ItemPage(CamelModel):
    success: bool = True
    data: list[EnrichedItem]
    pagination: Pagination
    filters: dict[str, Any]
    sort: SortSpec


class AuthPayload(CamelModel):
    user: UserOut
    token: str


class AuthResponse(CamelModel):
    success: bool = True
    message: str
    data: AuthPayload


def dump(model: BaseModel) -> dict:
    """JSON-ready dict with camelCase keys."""
    return model.model_dump(mode="json", by_alias=True)
