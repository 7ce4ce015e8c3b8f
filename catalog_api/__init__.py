"""Items and users REST APIs: a basic CRUD variant and an enhanced variant
with JWT auth, roles, rate limiting and a filter/sort/paginate query pipeline."""

from catalog_api.app import create_app
from catalog_api.basic_app import create_basic_app

__all__ = ["create_app", "create_basic_app"]
