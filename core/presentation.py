"""
Presentation Layer Base Classes.

The presentation layer turns domain outcomes into user-facing messages
(toast-style notifications) and display hints such as badge colors.

Key principles:
- Notifications are stateless representations
- No business logic in composers
- Consistent theming across use cases
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum

logger = logging.getLogger(__name__)


class NotificationVariant(Enum):
    """Standard notification variants."""
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class BadgeColor(Enum):
    """Standard badge colors."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    WARNING = "warning"
    DANGER = "danger"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    """A user-facing message produced by an operation."""
    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT

    @property
    def is_error(self) -> bool:
        return self.variant == NotificationVariant.DESTRUCTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "variant": self.variant.value,
        }


@dataclass
class PresentationTheme:
    """
    Theme configuration for status display.

    Provides consistent styling across all use cases.
    """
    status_colors: Dict[str, str] = field(default_factory=dict)

    risk_colors: Dict[str, str] = field(default_factory=lambda: {
        "Alto": BadgeColor.DANGER.value,
        "Médio": BadgeColor.WARNING.value,
        "Baixo": BadgeColor.SUCCESS.value,
    })

    def get_status_color(self, status: str) -> str:
        """Get the badge color for a status."""
        return self.status_colors.get(status, BadgeColor.SECONDARY.value)

    def get_risk_color(self, label: str) -> str:
        """Get the badge color for a risk category label."""
        return self.risk_colors.get(label, BadgeColor.SECONDARY.value)


class NotificationComposer(ABC):
    """
    Abstract base class for notification composers.

    Each use case has its own composer that knows how to phrase
    its specific outcomes.
    """

    def __init__(self, theme: Optional[PresentationTheme] = None):
        self.theme = theme or PresentationTheme()

    def success(self, title: str, description: str) -> Notification:
        return Notification(title=title, description=description)

    def failure(self, title: str, description: str) -> Notification:
        return Notification(
            title=title,
            description=description,
            variant=NotificationVariant.DESTRUCTIVE,
        )

    @abstractmethod
    def compose_error(self, error: Exception) -> Notification:
        """Compose the notification shown when an operation is rejected."""
        pass


# =============================================================================
# NOTIFIERS
# =============================================================================

class Notifier(ABC):
    """Delivers notifications to whoever is watching (UI, log, queue)."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass


class LoggingNotifier(Notifier):
    """Writes notifications to the application log."""

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.is_error else logging.INFO
        logger.log(level, "%s: %s", notification.title, notification.description)


class CollectingNotifier(Notifier):
    """Keeps notifications in memory, newest last."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def last(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None
