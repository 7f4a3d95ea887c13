"""
Cosmos DB Data Population Script for the Returns & Refunds service.

Creates the containers and loads the sample storefront orders and the
demo store's settings, using AzureCliCredential.

Usage:
    python scripts/populate_cosmosdb.py

Environment:
    COSMOS_ENDPOINT - Override the default Cosmos DB endpoint
    COSMOS_DATABASE - Override the default database name

Containers:
    - Returns_StoreSettings  (partition: /id)
    - Returns_Orders         (partition: /id)
    - Returns_Requests       (partition: /store_id) - created empty
    - Returns_Refunds        (partition: /store_id) - created empty

Sample order dates are written relative to today, so re-running the
script also refreshes them into (or out of) the return window.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from azure.cosmos import CosmosClient, PartitionKey
from azure.cosmos.exceptions import CosmosHttpResponseError
from azure.identity import AzureCliCredential

from config import settings
from shared.cosmos_config import (
    COSMOS_ENDPOINT,
    DATABASE_NAME,
    RETURNS_CONTAINERS,
    get_container_config,
)
from use_cases.returns.sample_data import DEFAULT_STORE_ID, sample_orders
from use_cases.returns.service import StoreDefaults

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


# =============================================================================
# DATA PREPARATION
# =============================================================================

def prepare_store_settings() -> List[Dict[str, Any]]:
    """Demo store settings seeded from the configured defaults."""
    store = StoreDefaults.from_settings(settings).for_store(DEFAULT_STORE_ID)
    item = store.to_dict()
    item["version"] = 1
    return [item]


def prepare_orders() -> List[Dict[str, Any]]:
    """Sample orders with dates relative to now."""
    return sample_orders()


# =============================================================================
# COSMOS DB OPERATIONS
# =============================================================================

def upsert_items(container, items: List[Dict[str, Any]]) -> int:
    """Upsert items into a container."""
    count = 0
    for item in items:
        try:
            container.upsert_item(item)
            count += 1
        except CosmosHttpResponseError as e:
            logger.error(f"Failed to upsert item {item.get('id')}: {e}")
    return count


def main():
    """Main function to create containers and populate sample data."""
    logger.info("=" * 60)
    logger.info("Returns & Refunds - Cosmos DB Population Script")
    logger.info("=" * 60)
    logger.info(f"Endpoint: {COSMOS_ENDPOINT}")
    logger.info(f"Database: {DATABASE_NAME}")
    logger.info("Authentication: AzureCliCredential")
    logger.info("=" * 60)

    credential = AzureCliCredential()
    client = CosmosClient(COSMOS_ENDPOINT, credential=credential)

    logger.info(f"Connecting to database '{DATABASE_NAME}'...")
    try:
        database = client.create_database_if_not_exists(DATABASE_NAME)
    except CosmosHttpResponseError as e:
        logger.error(f"Database '{DATABASE_NAME}' not available or access denied: {e}")
        logger.error("Please create the database first or check RBAC permissions")
        return

    logger.info("\n--- Containers ---")
    containers = {}
    for key in RETURNS_CONTAINERS:
        container_name, partition_key = get_container_config(key)
        containers[key] = database.create_container_if_not_exists(
            id=container_name,
            partition_key=PartitionKey(path=partition_key),
        )
        logger.info(f"  {container_name} (partition: {partition_key})")

    data_sets = [
        ("store_settings", prepare_store_settings()),
        ("orders", prepare_orders()),
    ]

    logger.info("\n--- Populating Sample Data ---")
    total_items = 0
    for key, items in data_sets:
        count = upsert_items(containers[key], items)
        logger.info(f"  {containers[key].id}: {count} items")
        total_items += count

    logger.info("\n" + "=" * 60)
    logger.info(f"COMPLETE: {total_items} total items populated")
    logger.info("Request containers are created empty and populated at runtime")
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
