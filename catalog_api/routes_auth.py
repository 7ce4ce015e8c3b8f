import logging

from fastapi import APIRouter, Depends

from catalog_api.auth import get_current_user, get_token_service, get_user_store
from catalog_api.errors import Conflict, Unauthorized
from catalog_api.models import AuthPayload, AuthResponse, LoginRequest, RegisterRequest, User, UserOut, dump
from catalog_api.ratelimit import limit_auth
from catalog_api.security import TokenService, hash_password, verify_password
from catalog_api.stores import CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(limit_auth)])


# ------------------------------------------------------------
# User Registration and Login
# ------------------------------------------------------------

@router.post("/register", status_code=201, response_model=AuthResponse)
def register(
    payload: RegisterRequest,
    users: CredentialStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
):
    # Checks if username or email is already taken before paying for the hash
    if users.find_by_username(payload.username):
        raise Conflict("Username already exists")
    if users.find_by_email(payload.email):
        raise Conflict("Email already exists")

    hashed_password = hash_password(payload.password)
    user = users.create(payload.username, payload.email, hashed_password)

    return AuthResponse(
        message="User registered successfully",
        data=AuthPayload(user=UserOut.from_user(user), token=tokens.issue(user.id)),
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    users: CredentialStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
):
    user = users.find_by_username(payload.username)
    if not user or not user.is_active:
        logger.info("Login refused for %s: unknown or inactive", payload.username)
        raise Unauthorized("Invalid credentials or inactive account")

    if not verify_password(payload.password, user.password_hash):
        logger.info("Login refused for %s: bad password", payload.username)
        raise Unauthorized("Invalid credentials")

    return AuthResponse(
        message="Login successful",
        data=AuthPayload(user=UserOut.from_user(user), token=tokens.issue(user.id)),
    )


# Get current user profile
@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": dump(UserOut.from_user(current_user))}
