"""
Sample storefront data for the returns use case.

Used to seed the in-memory backend and by scripts/populate_cosmosdb.py.
Dates are generated relative to "now" so the demo orders stay inside
(or deliberately outside) the default 15-day window.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from core.domain import utc_now

DEFAULT_STORE_ID = "loja-demo"

# (order, days since order, days since delivery)
_ORDERS = [
    (
        {
            "id": "#28471",
            "email": "maria@email.com",
            "customer_name": "Maria Lima",
            "total": 289.90,
            "items": [
                {"id": "1", "name": "Camiseta Premium", "category": "Roupas", "price": 289.90, "quantity": 1},
            ],
        },
        12,
        10,
    ),
    (
        {
            "id": "#28502",
            "email": "joao@email.com",
            "customer_name": "João Santos",
            "total": 219.90,
            "items": [
                {"id": "2", "name": "Calça Jeans", "category": "Roupas", "price": 219.90, "quantity": 1},
            ],
        },
        22,
        20,
    ),
    (
        {
            "id": "#28503",
            "email": "ana@email.com",
            "customer_name": "Ana Costa",
            "total": 159.90,
            "items": [
                {"id": "3", "name": "Blusa Casual", "category": "Roupas", "price": 159.90, "quantity": 1},
            ],
        },
        7,
        5,
    ),
]


def sample_orders(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Sample order snapshots with dates relative to now."""
    now = now or utc_now()
    orders = []
    for order, ordered_days_ago, delivered_days_ago in _ORDERS:
        item = dict(order)
        item["order_date"] = (now - timedelta(days=ordered_days_ago)).isoformat()
        item["delivery_date"] = (now - timedelta(days=delivered_days_ago)).isoformat()
        orders.append(item)
    return orders
