"""
Storage backend selection.

The backend is chosen once per app from STORAGE_BACKEND and stored in
app.extensions; request code reaches it through get_storage().
"""

from flask import Flask, current_app

from .base import (
    HandoverSubmittedError,
    InsufficientStockError,
    LineInput,
    ReturnedSummary,
    ReturnQuantityError,
    SalesDay,
    Storage,
)
from .memory import MemoryStorage
from .sql import SqlStorage

BACKENDS = {
    "sql": SqlStorage,
    "memory": MemoryStorage,
}

_EXTENSION_KEY = "retailpos.storage"


def init_storage(app: Flask) -> Storage:
    backend = app.config.get("STORAGE_BACKEND", "sql")
    try:
        storage = BACKENDS[backend]()
    except KeyError:
        raise RuntimeError(
            f"Unknown STORAGE_BACKEND {backend!r}; expected one of: {', '.join(BACKENDS)}"
        ) from None
    app.extensions[_EXTENSION_KEY] = storage
    return storage


def get_storage() -> Storage:
    return current_app.extensions[_EXTENSION_KEY]


__all__ = [
    "HandoverSubmittedError",
    "InsufficientStockError",
    "LineInput",
    "MemoryStorage",
    "ReturnQuantityError",
    "ReturnedSummary",
    "SalesDay",
    "SqlStorage",
    "Storage",
    "get_storage",
    "init_storage",
]
