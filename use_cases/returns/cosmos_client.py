"""
Cosmos DB Client for the Returns Use Case.

Provides repositories for return/exchange requests, refund requests and
store settings, plus the storefront order lookup.
Uses DefaultAzureCredential for flexible authentication.

Writes are guarded twice: the document's version field must match the
version the caller loaded, and the replace is sent with the document's
ETag (IfNotModified) so a write racing between read and replace fails too.
"""

import logging
import re
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from azure.core import MatchConditions
from azure.cosmos import CosmosClient
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)
from azure.identity import DefaultAzureCredential

from core.data import (
    ConcurrencyConflict,
    EntityNotFound,
    OrderDirectory,
    QueryOptions,
    QueryResult,
    Repository,
)

# Import shared configuration
from shared.cosmos_config import (
    COSMOS_ENDPOINT,
    DATABASE_NAME,
    get_container_name,
)

from .domain.models import RefundRequest, ReturnRequest, StoreSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Cosmos DB system properties stripped before building domain objects
_SYSTEM_FIELDS = ("_rid", "_self", "_etag", "_attachments", "_ts")


def _strip_system_fields(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in doc.items() if k not in _SYSTEM_FIELDS}


class ReturnsCosmosClient:
    """Client for accessing returns data in Cosmos DB."""

    def __init__(self):
        """Initialize the Cosmos DB client."""
        logger.info("Initializing Returns Cosmos DB client...")
        self._credential = DefaultAzureCredential(
            exclude_interactive_browser_credential=False,
            exclude_shared_token_cache_credential=False,
        )
        self._client = CosmosClient(COSMOS_ENDPOINT, credential=self._credential)
        self._database = self._client.get_database_client(DATABASE_NAME)
        self._containers = {}
        logger.info("Returns Cosmos DB client initialized")

    def get_container(self, name: str):
        """Get a container client, caching for reuse."""
        if name not in self._containers:
            container_name = get_container_name(name)
            self._containers[name] = self._database.get_container_client(container_name)
        return self._containers[name]


class CosmosRepository(Repository[T], Generic[T]):
    """
    Repository over one Cosmos DB container.

    Args:
        container: Container client
        entity_name: Name used in errors and logs
        from_dict: Builds the domain object from a stored document
        partition_key: Extracts the partition key value from an entity
    """

    def __init__(
        self,
        container,
        entity_name: str,
        from_dict: Callable[[Dict[str, Any]], T],
        partition_key: Callable[[T], str],
    ):
        self._container = container
        self.entity_name = entity_name
        self._from_dict = from_dict
        self._partition_key = partition_key

    def _read_document(self, id: str) -> Optional[Dict[str, Any]]:
        query = "SELECT * FROM c WHERE c.id = @id"
        params = [{"name": "@id", "value": id}]
        items = list(self._container.query_items(query, parameters=params, enable_cross_partition_query=True))
        return items[0] if items else None

    def get_by_id(self, id: str) -> Optional[T]:
        doc = self._read_document(id)
        return self._from_dict(_strip_system_fields(doc)) if doc else None

    def find(self, options: Optional[QueryOptions] = None) -> QueryResult[T]:
        options = options or QueryOptions()
        clauses: List[str] = []
        params: List[Dict[str, Any]] = []
        for key, value in options.filters.items():
            if value is None:
                continue
            if not _FIELD_NAME.match(key):
                raise ValueError(f"Invalid filter field: {key}")
            clauses.append(f"c.{key} = @{key}")
            params.append({"name": f"@{key}", "value": getattr(value, "value", value)})
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        count_query = f"SELECT VALUE COUNT(1) FROM c{where}"
        total = list(self._container.query_items(
            count_query, parameters=params, enable_cross_partition_query=True,
        ))
        total_count = total[0] if total else 0

        query = f"SELECT * FROM c{where}"
        if options.order_by:
            if not _FIELD_NAME.match(options.order_by):
                raise ValueError(f"Invalid order field: {options.order_by}")
            query += f" ORDER BY c.{options.order_by} {'DESC' if options.order_desc else 'ASC'}"
        query += " OFFSET @offset LIMIT @limit"
        page_params = params + [
            {"name": "@offset", "value": options.offset},
            {"name": "@limit", "value": options.limit},
        ]
        docs = self._container.query_items(query, parameters=page_params, enable_cross_partition_query=True)
        data = [self._from_dict(_strip_system_fields(doc)) for doc in docs]

        end = options.offset + options.limit
        has_more = end < total_count
        return QueryResult(
            data=data,
            total_count=total_count,
            has_more=has_more,
            next_offset=end if has_more else None,
        )

    def save(self, entity: T, expected_version: Optional[int] = None) -> T:
        if expected_version is None:
            body = entity.to_dict()
            body["version"] = 1
            try:
                self._container.create_item(body=body)
            except CosmosResourceExistsError:
                existing = self._read_document(entity.id)
                raise ConcurrencyConflict(entity.id, 0, existing.get("version") if existing else None)
            logger.info("Created %s %s", self.entity_name, entity.id)
            return self._from_dict(body)

        current = self._read_document(entity.id)
        if current is None:
            raise EntityNotFound(self.entity_name, entity.id)
        if current.get("version") != expected_version:
            raise ConcurrencyConflict(entity.id, expected_version, current.get("version"))

        body = entity.to_dict()
        body["version"] = expected_version + 1
        try:
            self._container.replace_item(
                item=current,
                body=body,
                etag=current["_etag"],
                match_condition=MatchConditions.IfNotModified,
            )
        except CosmosAccessConditionFailedError:
            latest = self._read_document(entity.id)
            raise ConcurrencyConflict(entity.id, expected_version, latest.get("version") if latest else None)
        return self._from_dict(body)

    def delete(self, id: str) -> bool:
        doc = self._read_document(id)
        if doc is None:
            return False
        entity = self._from_dict(_strip_system_fields(doc))
        try:
            self._container.delete_item(item=id, partition_key=self._partition_key(entity))
        except CosmosResourceNotFoundError:
            return False
        return True


class CosmosOrderDirectory(OrderDirectory):
    """Storefront orders, looked up by code (case-insensitive)."""

    def __init__(self, container):
        self._container = container

    def get_order(self, order_code: str) -> Optional[Dict[str, Any]]:
        query = "SELECT * FROM c WHERE LOWER(c.id) = LOWER(@code)"
        params = [{"name": "@code", "value": order_code.strip()}]
        items = list(self._container.query_items(query, parameters=params, enable_cross_partition_query=True))
        return _strip_system_fields(items[0]) if items else None


# =============================================================================
# FACTORIES
# =============================================================================

def return_repository(client: ReturnsCosmosClient) -> CosmosRepository[ReturnRequest]:
    return CosmosRepository(
        client.get_container("returns"), "ReturnRequest", ReturnRequest.from_dict, lambda r: r.store_id,
    )


def refund_repository(client: ReturnsCosmosClient) -> CosmosRepository[RefundRequest]:
    return CosmosRepository(
        client.get_container("refunds"), "RefundRequest", RefundRequest.from_dict, lambda r: r.store_id,
    )


def store_settings_repository(client: ReturnsCosmosClient) -> CosmosRepository[StoreSettings]:
    return CosmosRepository(
        client.get_container("store_settings"), "StoreSettings", StoreSettings.from_dict, lambda s: s.store_id,
    )


def order_directory(client: ReturnsCosmosClient) -> CosmosOrderDirectory:
    return CosmosOrderDirectory(client.get_container("orders"))


# Singleton instance
_client: Optional[ReturnsCosmosClient] = None


def get_returns_client() -> ReturnsCosmosClient:
    """Get the singleton Cosmos DB client instance."""
    global _client
    if _client is None:
        _client = ReturnsCosmosClient()
    return _client
