"""
Data Layer Base Classes.

The data layer provides the Repository pattern for data access.
This abstracts away the specific data store (Cosmos DB, in-memory, etc.)
and provides a clean interface for the orchestration layer.

Key principles:
- Repositories handle CRUD operations only
- No business logic in repositories
- Return domain objects, not raw dicts
- Writes are version-checked so concurrent updates never silently overwrite
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

# Type variable for entity types
T = TypeVar("T")


class EntityNotFound(LookupError):
    """Raised when an entity does not exist in the store."""
    code = "not_found"

    def __init__(self, entity: str, id: str):
        super().__init__(f"{entity} '{id}' not found")
        self.entity = entity
        self.id = id


class ConcurrencyConflict(RuntimeError):
    """
    Raised when a save is based on a stale version of the entity.

    The caller must reload the entity and retry the operation.
    """
    code = "concurrency_conflict"

    def __init__(self, id: str, expected_version: int, actual_version: Optional[int]):
        super().__init__(
            f"Entity '{id}' was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.id = id
        self.expected_version = expected_version
        self.actual_version = actual_version


@dataclass
class QueryOptions:
    """Options for repository queries."""
    limit: int = 100
    offset: int = 0
    order_by: Optional[str] = "created_at"
    order_desc: bool = True
    filters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class QueryResult(Generic[T]):
    """Result of a repository query with pagination info."""
    data: List[T]
    total_count: int
    has_more: bool
    next_offset: Optional[int] = None


class Repository(ABC, Generic[T]):
    """
    Abstract base class for repositories.

    A Repository provides data access methods for a specific entity type.
    Entities are expected to expose ``id`` and an integer ``version``.

    Example:
        class RefundRepository(Repository[RefundRequest]):
            def get_by_id(self, id: str) -> Optional[RefundRequest]:
                doc = self._container.read_item(id, id)
                return RefundRequest.from_dict(doc) if doc else None
    """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """
        Get an entity by its ID.

        Args:
            id: The entity's unique identifier

        Returns:
            The entity if found, None otherwise
        """
        pass

    @abstractmethod
    def find(self, options: Optional[QueryOptions] = None) -> QueryResult[T]:
        """
        Find entities matching the query options.

        Args:
            options: Query options for filtering, pagination, sorting

        Returns:
            QueryResult containing the matching entities
        """
        pass

    @abstractmethod
    def save(self, entity: T, expected_version: Optional[int] = None) -> T:
        """
        Save an entity (create or update).

        Args:
            entity: The entity to save
            expected_version: Version the caller loaded. None means the
                entity is new and must not exist yet.

        Returns:
            The saved entity with its version incremented

        Raises:
            ConcurrencyConflict: If the stored version differs from
                expected_version (or the entity already exists on create)
        """
        pass

    @abstractmethod
    def delete(self, id: str) -> bool:
        """
        Delete an entity by ID.

        Args:
            id: The entity's unique identifier

        Returns:
            True if deleted, False if not found
        """
        pass

    def require(self, id: str, entity_name: str = "Entity") -> T:
        """Get an entity by ID or raise EntityNotFound."""
        entity = self.get_by_id(id)
        if entity is None:
            raise EntityNotFound(entity_name, id)
        return entity


def paginate(items: List[T], options: QueryOptions) -> QueryResult[T]:
    """Slice an already filtered and sorted list into a QueryResult."""
    total = len(items)
    end = options.offset + options.limit
    page = items[options.offset:end]
    has_more = end < total
    return QueryResult(
        data=page,
        total_count=total,
        has_more=has_more,
        next_offset=end if has_more else None,
    )


class OrderDirectory(ABC):
    """
    Read-only lookup of storefront orders.

    Orders are owned by the storefront; this service only reads snapshots.
    """

    @abstractmethod
    def get_order(self, order_code: str) -> Optional[Dict[str, Any]]:
        """Get a raw order snapshot by its code, or None."""
        pass

    def find_for_customer(self, order_code: str, email: str) -> Optional[Dict[str, Any]]:
        """
        Look up an order by code and the buyer's e-mail (both case-insensitive).

        Returns None when the order does not exist or belongs to someone else.
        """
        order = self.get_order(order_code.strip())
        if order is None:
            return None
        if str(order.get("email", "")).strip().lower() != email.strip().lower():
            return None
        return order
