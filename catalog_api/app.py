import logging
import sys
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from catalog_api.config import Config
from catalog_api.errors import register_error_handlers
from catalog_api.ratelimit import RateLimiter, limit_api
from catalog_api.routes_auth import router as auth_router
from catalog_api.routes_categories import router as categories_router
from catalog_api.routes_items import router as items_router
from catalog_api.routes_users import router as users_router
from catalog_api.security import TokenService, hash_password
from catalog_api.stores import CategoryStore, CredentialStore, ItemStore, seed_defaults

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}

FEATURES = [
    "JWT Authentication",
    "Role-based Authorization",
    "Rate Limiting",
    "Input Validation",
    "Pagination & Filtering",
    "Search Functionality",
    "Bulk Operations",
    "Security Headers",
    "Request Logging",
]


def _memory_snapshot():
    # peak resident set size; the resource module only exists on Unix
    if sys.platform.startswith("win"):
        return None
    import resource

    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {"maxRss": usage.ru_maxrss}


# ------------------------------------------------------------
# Application factory
# ------------------------------------------------------------

def create_app(config=None) -> FastAPI:
    """Build the enhanced API: auth, items, categories, users and stats."""
    config = config or Config
    logging.basicConfig(level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO))

    app = FastAPI(title="Catalog API", version=config.VERSION)
    app.state.config = config
    app.state.started_at = time.monotonic()

    # stores and services are injected through app.state
    app.state.users = CredentialStore()
    app.state.categories = CategoryStore()
    app.state.items = ItemStore(app.state.categories)
    app.state.tokens = TokenService(
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        expires_minutes=config.JWT_EXPIRES_MINUTES,
    )
    app.state.api_limiter = RateLimiter(
        config.API_RATE_LIMIT,
        config.RATE_LIMIT_WINDOW_SECONDS,
        "Too many requests from this IP, please try again later.",
    )
    app.state.auth_limiter = RateLimiter(
        config.AUTH_RATE_LIMIT,
        config.RATE_LIMIT_WINDOW_SECONDS,
        "Too many authentication attempts, please try again later.",
    )

    if config.SEED_DATA:
        seed_defaults(app.state.users, app.state.categories, app.state.items, hash_password("password"))

    register_error_handlers(app)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    app.include_router(auth_router)
    app.include_router(items_router)
    app.include_router(categories_router)
    app.include_router(users_router)

    @app.get("/")
    def index():
        return {
            "message": "Welcome to the Catalog API",
            "version": config.VERSION,
            "documentation": {
                "authentication": "POST /auth/register, POST /auth/login, GET /auth/me",
                "items": "GET /api/items, POST /api/items, PUT /api/items/:id, DELETE /api/items/:id",
                "bulk": "POST /api/items/bulk, DELETE /api/items/bulk",
                "categories": "GET /api/categories, POST /api/categories",
                "users": "GET /api/users (admin only)",
                "stats": "GET /api/stats (admin only)",
                "health": "GET /api/health",
            },
            "features": FEATURES,
        }

    @app.get("/api/health", dependencies=[Depends(limit_api)])
    def health():
        return {
            "status": "OK",
            "message": "Catalog API server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - app.state.started_at,
            "memory": _memory_snapshot(),
            "environment": config.ENVIRONMENT,
            "version": config.VERSION,
        }

    logger.info("Catalog API ready (environment=%s, seeded=%s)", config.ENVIRONMENT, config.SEED_DATA)
    return app
