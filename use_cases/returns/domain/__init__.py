"""
Returns Domain Layer.

Contains pure business logic for returns, exchanges and refunds.
No database access or I/O - just business rules.
"""

from .models import (
    Actor,
    CustomerSnapshot,
    EligibilityResult,
    EligibilityRules,
    LineItem,
    Order,
    PixKeyType,
    RefundConfig,
    RefundMethod,
    RefundPayment,
    RefundRequest,
    RefundStatus,
    RequestType,
    ReturnRequest,
    ReturnStatus,
    StoreSettings,
    TimelineEvent,
)
from .policies import (
    EligibilityEvaluator,
    MANUAL_REVIEW_REASONS,
)
from .workflow import (
    RefundAction,
    RefundWorkflow,
    ReturnAction,
    ReturnWorkflow,
    TransitionContext,
    TransitionResult,
)
from .methods import RefundMethodResolver
from .services import (
    CustomerHistory,
    RefundIntakeValidator,
    RefundRequestBuilder,
    ReturnRequestBuilder,
    RiskScorer,
    initial_refund_status,
    risk_category,
)

__all__ = [
    # Models
    "Actor",
    "CustomerSnapshot",
    "EligibilityResult",
    "EligibilityRules",
    "LineItem",
    "Order",
    "PixKeyType",
    "RefundConfig",
    "RefundMethod",
    "RefundPayment",
    "RefundRequest",
    "RefundStatus",
    "RequestType",
    "ReturnRequest",
    "ReturnStatus",
    "StoreSettings",
    "TimelineEvent",
    # Policies
    "EligibilityEvaluator",
    "MANUAL_REVIEW_REASONS",
    # Workflow
    "RefundAction",
    "RefundWorkflow",
    "ReturnAction",
    "ReturnWorkflow",
    "TransitionContext",
    "TransitionResult",
    # Methods
    "RefundMethodResolver",
    # Services
    "CustomerHistory",
    "RefundIntakeValidator",
    "RefundRequestBuilder",
    "ReturnRequestBuilder",
    "RiskScorer",
    "initial_refund_status",
    "risk_category",
]
