"""
The basic variant: an unauthenticated ``/items`` CRUD service over the
in-memory item store, and a ``/users`` CRUD service over a SQL table.
"""

import logging

from fastapi import APIRouter, Depends, FastAPI, Path, Request
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_api.config import Config
from catalog_api.errors import NotFound, register_error_handlers
from catalog_api.models import BasicItemCreate, BasicUserCreate, dump
from catalog_api.models_sql import Base, User
from catalog_api.query import run_item_query
from catalog_api.stores import ItemStore

logger = logging.getLogger(__name__)

items_router = APIRouter(prefix="/items", tags=["items"])
users_router = APIRouter(prefix="/users", tags=["users"])


def make_engine(database_url: str):
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # an in-memory database only lives as long as its single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url)


# ------------------------------------------------------------
# Dependency
# ------------------------------------------------------------

def get_db(request: Request):
    db = request.app.state.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_basic_items(request: Request) -> ItemStore:
    return request.app.state.items


# ------------------------------------------------------------
# Items CRUD (in-memory)
# ------------------------------------------------------------

@items_router.get("")
def list_items(request: Request, items: ItemStore = Depends(get_basic_items)):
    result = run_item_query(request.query_params, items.list(), enrich_items=False)
    return {
        "success": True,
        "data": [dump(item) for item in result.items],
        "pagination": dump(result.pagination),
        "filters": result.filters.to_dict(),
        "sort": dump(result.sort),
    }


@items_router.get("/{item_id}")
def get_item(item_id: int = Path(..., ge=1), items: ItemStore = Depends(get_basic_items)):
    item = items.find_by_id(item_id)
    if not item:
        raise NotFound(f"Item with ID {item_id} not found")
    return dump(item)


@items_router.post("", status_code=201)
def create_item(payload: BasicItemCreate, items: ItemStore = Depends(get_basic_items)):
    return dump(items.create(payload))


@items_router.put("/{item_id}")
def update_item(payload: BasicItemCreate, item_id: int = Path(..., ge=1),
                items: ItemStore = Depends(get_basic_items)):
    return dump(items.update(item_id, payload))


@items_router.delete("/{item_id}")
def delete_item(item_id: int = Path(..., ge=1), items: ItemStore = Depends(get_basic_items)):
    return dump(items.delete(item_id))


# ------------------------------------------------------------
# Users CRUD (SQL)
# ------------------------------------------------------------

@users_router.get("")
def get_users(db: Session = Depends(get_db)):
    return [user.to_dict() for user in db.query(User).order_by(User.id).all()]


@users_router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user.to_dict()


@users_router.post("", status_code=201)
def create_user(payload: BasicUserCreate, db: Session = Depends(get_db)):
    new_user = User(name=payload.name, email=payload.email)
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user.to_dict()


@users_router.put("/{user_id}")
def update_user(user_id: int, payload: BasicUserCreate, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    user.name = payload.name
    user.email = payload.email
    db.commit()
    db.refresh(user)
    return user.to_dict()


@users_router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    deleted = user.to_dict()
    db.delete(user)
    db.commit()
    return deleted


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "Database operation failed"},
    )


# ------------------------------------------------------------
# Application factory
# ------------------------------------------------------------

def create_basic_app(config=None, engine=None) -> FastAPI:
    config = config or Config
    logging.basicConfig(level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO))

    app = FastAPI(title="Catalog API (basic)", version=config.VERSION)
    app.state.items = ItemStore(enforce_ownership=False)

    engine = engine or make_engine(config.DATABASE_URL)
    app.state.engine = engine
    app.state.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)  # creates the users table if it doesn't already exist

    register_error_handlers(app)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(items_router)
    app.include_router(users_router)
    return app
