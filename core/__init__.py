"""
Core Framework for Use Cases.

This module provides the extensible base classes and interfaces
that all use cases should implement. The layered architecture ensures:

1. Domain Layer - Pure business rules, no I/O
2. Data Layer - Repository pattern for data access
3. Presentation Layer - Notification composition
4. Orchestration Layer - Services that wire everything together

Each use case follows this pattern for consistency and reusability.
"""

from .domain import DomainError, DomainService, PolicyEngine, Validator
from .data import ConcurrencyConflict, EntityNotFound, Repository
from .presentation import Notification, NotificationComposer, Notifier
from .orchestration import OperationOutcome, RequestService

__all__ = [
    # Domain
    "DomainError",
    "DomainService",
    "PolicyEngine",
    "Validator",
    # Data
    "ConcurrencyConflict",
    "EntityNotFound",
    "Repository",
    # Presentation
    "Notification",
    "NotificationComposer",
    "Notifier",
    # Orchestration
    "OperationOutcome",
    "RequestService",
]
