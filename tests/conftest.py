"""Shared fixtures for the returns tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional

import pytest

from core.presentation import CollectingNotifier
from use_cases.returns import build_services, sample_orders
from use_cases.returns.domain.models import (
    CustomerSnapshot,
    EligibilityRules,
    LineItem,
)

NOW = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)
STORE_ID = "loja-teste"


def make_order(
    delivered_days_ago: Optional[int] = 10,
    ordered_days_ago: int = 12,
    total: float = 289.90,
    categories: Iterable[str] = ("Roupas",),
    now: datetime = NOW,
) -> Dict[str, Any]:
    categories = list(categories)
    price = round(total / len(categories), 2)
    return {
        "id": "#28471",
        "email": "maria@email.com",
        "customer_name": "Maria Lima",
        "total": total,
        "items": [
            {"id": str(i), "name": f"Item {i}", "category": c, "price": price, "quantity": 1}
            for i, c in enumerate(categories, start=1)
        ],
        "order_date": (now - timedelta(days=ordered_days_ago)).isoformat(),
        "delivery_date": (
            (now - timedelta(days=delivered_days_ago)).isoformat()
            if delivered_days_ago is not None else None
        ),
    }


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def rules():
    """15-day window, R$ 50 minimum, no photos required, auto-approval on."""
    return EligibilityRules(
        window_days=15,
        minimum_value=50.0,
        blocked_categories=[],
        require_photos_for_defect=False,
        auto_approve=True,
    )


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def services(notifier):
    """In-memory services seeded with sample orders dated relative to NOW."""
    return build_services("memory", notifier=notifier, orders=sample_orders(NOW))


@pytest.fixture
def customer():
    return CustomerSnapshot(name="Maria Lima", email="maria@email.com")


@pytest.fixture
def items():
    return [LineItem(id="1", name="Camiseta Premium", category="Roupas", price=100.0)]
