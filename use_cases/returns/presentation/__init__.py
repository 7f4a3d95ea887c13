"""
Returns Presentation Layer.

Contains the NotificationComposer for returns and refunds outcomes.
"""

from .composer import ReturnsNotificationComposer, ReturnsTheme

__all__ = ["ReturnsNotificationComposer", "ReturnsTheme"]
