# Overview: Read-through entity cache with explicit invalidation.

"""
Entity cache

Reads of slow-changing collections (products, categories, customers,
suppliers, store settings, users, store credits) go through get_or_load().
Writers call invalidate(entity_type) after a committed write; nothing is
refreshed implicitly. A failed write never touches the cache, so the next
read returns the pre-write value.

One cache lives on each Flask app (app.extensions["thumma_cache"]).
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from flask import current_app


PRODUCTS = "products"
CATEGORIES = "categories"
CUSTOMERS = "customers"
SUPPLIERS = "suppliers"
STORE_SETTINGS = "store_settings"
USERS = "users"
STORE_CREDITS = "store_credits"

ENTITY_TYPES = (PRODUCTS, CATEGORIES, CUSTOMERS, SUPPLIERS, STORE_SETTINGS, USERS, STORE_CREDITS)


class EntityCache:
    """Entries are keyed by (entity_type, key). Values are plain dicts/lists, never ORM objects."""

    def __init__(self):
        self._entries: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get_or_load(self, entity_type: str, key: str, loader: Callable[[], Any]) -> Any:
        with self._lock:
            bucket = self._entries.get(entity_type)
            if bucket is not None and key in bucket:
                return bucket[key]
        value = loader()
        with self._lock:
            self._entries.setdefault(entity_type, {})[key] = value
        return value

    def peek(self, entity_type: str, key: str) -> Any:
        with self._lock:
            return self._entries.get(entity_type, {}).get(key)

    def invalidate(self, entity_type: str) -> None:
        with self._lock:
            self._entries.pop(entity_type, None)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        with self._lock:
            return {entity_type: len(bucket) for entity_type, bucket in self._entries.items()}


def init_cache(app) -> EntityCache:
    cache = EntityCache()
    app.extensions["thumma_cache"] = cache
    return cache


def get_cache() -> EntityCache:
    return current_app.extensions["thumma_cache"]


def get_or_load(entity_type: str, key: str, loader: Callable[[], Any]) -> Any:
    return get_cache().get_or_load(entity_type, key, loader)


def invalidate(entity_type: str) -> None:
    get_cache().invalidate(entity_type)


def invalidate_all() -> None:
    get_cache().invalidate_all()
