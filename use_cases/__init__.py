"""
Use Cases Package.

Each use case is a self-contained module with its own domain rules,
repositories, notification composer and HTTP routes.

Available use cases:
- returns: Returns, exchanges and refunds for a store

Architecture:
Each use case follows the layered architecture pattern defined in core/:
- domain/: Pure business logic (policies, workflows, services)
- memory_store.py / cosmos_client.py: Repository implementations
- presentation/: Notification composition
- service.py: Orchestration services extending RequestService
- routes.py: FastAPI router
"""

from use_cases.returns import ReturnsServices, build_services, router as returns_router

__all__ = [
    "ReturnsServices",
    "build_services",
    "returns_router",
]
