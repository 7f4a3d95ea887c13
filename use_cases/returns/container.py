"""
Service wiring for the returns use case.

Builds the repositories for the configured backend and the services on
top of them. The FastAPI app keeps one ReturnsServices on app.state.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.presentation import Notifier

from .memory_store import (
    InMemoryOrderDirectory,
    InMemoryRefundRepository,
    InMemoryReturnRepository,
    InMemoryStoreSettingsRepository,
)
from .presentation import ReturnsNotificationComposer
from .service import (
    RefundRequestService,
    ReturnRequestService,
    StoreDefaults,
    StoreSettingsService,
)

logger = logging.getLogger(__name__)

BACKENDS = ("cosmos", "memory")


@dataclass
class ReturnsServices:
    settings: StoreSettingsService
    returns: ReturnRequestService
    refunds: RefundRequestService


def build_services(
    backend: str = "memory",
    defaults: Optional[StoreDefaults] = None,
    notifier: Optional[Notifier] = None,
    orders: Optional[List[Dict[str, Any]]] = None,
) -> ReturnsServices:
    """
    Build the services for a backend.

    Args:
        backend: "cosmos" or "memory"
        defaults: Store policy used until a store saves its own
        notifier: Where notifications go (application log by default)
        orders: Order snapshots for the memory backend (sample data by default)
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown store backend: {backend} (expected one of {', '.join(BACKENDS)})")

    if backend == "cosmos":
        # Imported lazily so the memory backend needs no Azure credentials
        from .cosmos_client import (
            get_returns_client,
            order_directory,
            refund_repository,
            return_repository,
            store_settings_repository,
        )
        client = get_returns_client()
        settings_repo = store_settings_repository(client)
        return_repo = return_repository(client)
        refund_repo = refund_repository(client)
        directory = order_directory(client)
    else:
        settings_repo = InMemoryStoreSettingsRepository()
        return_repo = InMemoryReturnRepository()
        refund_repo = InMemoryRefundRepository()
        directory = InMemoryOrderDirectory(orders)

    logger.info("Returns services using %s backend", backend)
    composer = ReturnsNotificationComposer()
    settings_service = StoreSettingsService(settings_repo, composer, notifier, defaults)
    return ReturnsServices(
        settings=settings_service,
        returns=ReturnRequestService(return_repo, settings_service, directory, composer, notifier),
        refunds=RefundRequestService(refund_repo, settings_service, composer, notifier),
    )
