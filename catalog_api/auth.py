"""
Request-scoped dependencies: store lookup, Bearer authentication and the
admin gate.

``get_current_user`` is the auth gate for every protected endpoint. It only
reads: a missing header is 401, anything wrong with the token or the account
behind it is 403.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from catalog_api.errors import Forbidden, Unauthorized
from catalog_api.models import User
from catalog_api.policy import require_admin_role
from catalog_api.security import TokenExpired, TokenInvalid, TokenService
from catalog_api.stores import CategoryStore, CredentialStore, ItemStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------
# Store dependencies
# ------------------------------------------------------------

def get_user_store(request: Request) -> CredentialStore:
    return request.app.state.users


def get_item_store(request: Request) -> ItemStore:
    return request.app.state.items


def get_category_store(request: Request) -> CategoryStore:
    return request.app.state.categories


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


# ------------------------------------------------------------
# Authentication
# ------------------------------------------------------------

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    users: CredentialStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Access token is required")

    try:
        user_id = tokens.verify(credentials.credentials)
    except (TokenExpired, TokenInvalid) as exc:
        logger.info("Rejected token: %s", exc)
        raise Forbidden("Invalid or expired token")

    user = users.find_by_id(user_id)
    if not user or not user.is_active:
        logger.info("Rejected token for missing or inactive user %s", user_id)
        raise Forbidden("User not found or inactive")

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    require_admin_role(current_user)
    return current_user
