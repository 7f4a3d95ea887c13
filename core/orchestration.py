"""
Orchestration Layer Base Classes.

The orchestration layer wires together all components:
- Domain services and workflows for business decisions
- Repositories for data access
- Notification composers for presentation

Services in this layer are the only place where decisions meet I/O:
compute a decision synchronously, persist the resulting entity, then
emit a user-facing notification.
"""

import logging
from abc import ABC
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from .data import ConcurrencyConflict, EntityNotFound, Repository
from .domain import DomainError
from .presentation import LoggingNotifier, Notification, NotificationComposer, Notifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OperationOutcome(Generic[T]):
    """The entity produced by an operation plus the message shown to the user."""
    entity: T
    notification: Notification

    def to_dict(self) -> Dict[str, Any]:
        data = self.entity.to_dict() if hasattr(self.entity, "to_dict") else self.entity
        return {"data": data, "notification": self.notification.to_dict()}


class RequestService(ABC, Generic[T]):
    """
    Abstract base class for use case services.

    Provides:
    - Repository access
    - Notification composition and delivery
    - Uniform handling of rejected operations

    A rejected operation (domain rule, missing entity or stale version)
    is reported through the notifier and re-raised; nothing is persisted.
    """

    entity_name = "Entity"

    def __init__(
        self,
        repository: Repository[T],
        composer: NotificationComposer,
        notifier: Optional[Notifier] = None,
    ):
        """
        Initialize the service.

        Args:
            repository: Store for the aggregate this service manages
            composer: Builds user-facing notifications
            notifier: Delivers notifications (logs them by default)
        """
        self.repository = repository
        self.composer = composer
        self.notifier = notifier or LoggingNotifier()

    def _emit(self, notification: Notification) -> Notification:
        self.notifier.notify(notification)
        return notification

    def _succeed(self, entity: T, notification: Notification) -> OperationOutcome[T]:
        return OperationOutcome(entity=entity, notification=self._emit(notification))

    def _guard(self, operation: str, func: Callable[[], OperationOutcome[T]]) -> OperationOutcome[T]:
        """
        Run an operation, reporting and re-raising expected failures.

        Args:
            operation: Short name used in log messages
            func: Zero-argument callable performing the operation
        """
        try:
            return func()
        except (DomainError, EntityNotFound, ConcurrencyConflict) as e:
            logger.warning("%s %s rejected: %s", self.entity_name, operation, e)
            self._emit(self.composer.compose_error(e))
            raise

    def get(self, id: str) -> T:
        """Get an entity by ID or raise EntityNotFound."""
        return self.repository.require(id, self.entity_name)
