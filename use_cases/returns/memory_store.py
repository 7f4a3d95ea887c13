"""
In-memory storage for the returns use case.

Implements the same Repository contract as the Cosmos DB client,
including version checks, so services behave identically under tests
and STORE_BACKEND=memory.
"""

import logging
import threading
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from core.data import (
    ConcurrencyConflict,
    OrderDirectory,
    QueryOptions,
    QueryResult,
    Repository,
    paginate,
)

from .domain.models import RefundRequest, ReturnRequest, StoreSettings
from .sample_data import sample_orders

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class InMemoryRepository(Repository[T], Generic[T]):
    """Dictionary-backed repository keyed by entity id."""

    def __init__(self):
        self._items: Dict[str, T] = {}
        self._lock = threading.Lock()

    def get_by_id(self, id: str) -> Optional[T]:
        return self._items.get(id)

    def find(self, options: Optional[QueryOptions] = None) -> QueryResult[T]:
        options = options or QueryOptions()
        items = [
            item for item in list(self._items.values())
            if all(_plain(getattr(item, key, None)) == _plain(value)
                   for key, value in options.filters.items() if value is not None)
        ]
        if options.order_by:
            items.sort(key=lambda item: getattr(item, options.order_by), reverse=options.order_desc)
        return paginate(items, options)

    def save(self, entity: T, expected_version: Optional[int] = None) -> T:
        with self._lock:
            current = self._items.get(entity.id)
            actual = current.version if current is not None else None
            if expected_version is None:
                if current is not None:
                    raise ConcurrencyConflict(entity.id, 0, actual)
                saved = replace(entity, version=1)
            else:
                if actual != expected_version:
                    raise ConcurrencyConflict(entity.id, expected_version, actual)
                saved = replace(entity, version=expected_version + 1)
            self._items[entity.id] = saved
            return saved

    def delete(self, id: str) -> bool:
        with self._lock:
            return self._items.pop(id, None) is not None


class InMemoryReturnRepository(InMemoryRepository[ReturnRequest]):
    pass


class InMemoryRefundRepository(InMemoryRepository[RefundRequest]):
    pass


class InMemoryStoreSettingsRepository(InMemoryRepository[StoreSettings]):
    def find(self, options: Optional[QueryOptions] = None) -> QueryResult[StoreSettings]:
        options = options or QueryOptions(order_by="store_id", order_desc=False)
        return super().find(options)


class InMemoryOrderDirectory(OrderDirectory):
    """Order lookup over a fixed list of snapshots (case-insensitive codes)."""

    def __init__(self, orders: Optional[List[Dict[str, Any]]] = None):
        self._orders = {
            str(order["id"]).lower(): order
            for order in (orders if orders is not None else sample_orders())
        }
        logger.info("In-memory order directory loaded with %d orders", len(self._orders))

    def get_order(self, order_code: str) -> Optional[Dict[str, Any]]:
        return self._orders.get(order_code.strip().lower())
