"""
Returns & Refunds Use Case.

Eligibility checks, guarded status workflows and refund settlement for
a store's return, exchange and refund requests.

Components:
- domain/: Eligibility evaluator, status workflows, method resolver, intake
- presentation/: Notification composer
- service.py: Orchestration services (settings, returns, refunds)
- memory_store.py / cosmos_client.py: Repositories for each backend
- routes.py: FastAPI router

Usage:
    from use_cases.returns import build_services

    services = build_services("memory")
    outcome = services.returns.submit_public("loja-demo", "#28471", "maria@email.com", "exchange")
"""

from use_cases.returns.container import ReturnsServices, build_services
from use_cases.returns.routes import router
from use_cases.returns.sample_data import DEFAULT_STORE_ID, sample_orders
from use_cases.returns.service import (
    RefundRequestService,
    ReturnRequestService,
    StoreDefaults,
    StoreSettingsService,
)

__all__ = [
    "ReturnsServices",
    "build_services",
    "router",
    "DEFAULT_STORE_ID",
    "sample_orders",
    "RefundRequestService",
    "ReturnRequestService",
    "StoreDefaults",
    "StoreSettingsService",
]
