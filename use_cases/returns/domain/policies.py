"""
Eligibility Policies - Pure Business Rules.

These policies encapsulate the business rules for return and exchange
eligibility. They have NO dependencies on databases or external services.
All data needed for evaluation is passed in as parameters.

Two kinds of checks exist and must stay separate:
- hard checks (time window, minimum value, blocked category) decide
  whether the request is eligible at all;
- review triggers (photo evidence, subjective reason, exchange age) only
  route an eligible request to manual review.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from core.domain import (
    InvalidOrder,
    PolicyDecision,
    PolicyEngine,
    PolicyResult,
    parse_date,
    utc_now,
)

from .models import (
    EligibilityResult,
    EligibilityRules,
    Order,
    ReasonCategory,
    RequestType,
)


# =============================================================================
# CONFIGURATION
# =============================================================================

# Reasons that are inherently subjective and always need a human
MANUAL_REVIEW_REASONS = [
    "Arrependimento da compra",
    "Não gostei do produto",
]

# Exchanges older than this are never auto-approved
EXCHANGE_AUTO_APPROVE_DAYS = 7

INVALID_ORDER_REASON = "Pedido inválido"


def elapsed_days(order: Order, now: Optional[datetime] = None) -> int:
    """Whole days since delivery (or since the order date when undelivered)."""
    now = parse_date(now) if now else utc_now()
    delta = now - order.reference_date
    return delta.days


# =============================================================================
# HARD CHECKS
# =============================================================================

class ReturnWindowPolicy(PolicyEngine):
    """
    Policy for checking if a request is within its time window.

    Context required:
        - elapsed_days: Days since the reference date
        - window_days: Allowed window
    """

    def evaluate(self, context: Dict[str, Any]) -> PolicyDecision:
        elapsed = context["elapsed_days"]
        window = context["window_days"]

        if elapsed > window:
            return PolicyDecision(
                result=PolicyResult.DENIED,
                reason=f"Prazo excedido: {elapsed} dias (limite: {window} dias)",
                metadata={"elapsed_days": elapsed, "window_days": window},
            )

        return PolicyDecision(
            result=PolicyResult.APPROVED,
            reason=f"{window - elapsed} dias restantes no prazo",
            metadata={"days_remaining": window - elapsed},
        )


class MinimumValuePolicy(PolicyEngine):
    """
    Policy for the store's minimum order value.

    Context required:
        - order_total: Order total
        - minimum_value: Store minimum
    """

    def evaluate(self, context: Dict[str, Any]) -> PolicyDecision:
        total = context["order_total"]
        minimum = context["minimum_value"]

        if total < minimum:
            return PolicyDecision(
                result=PolicyResult.DENIED,
                reason=f"Valor abaixo do mínimo: R$ {total:.2f} (mínimo: R$ {minimum:.2f})",
            )
        return PolicyDecision(result=PolicyResult.APPROVED, reason="Valor acima do mínimo")


class CategoryPolicy(PolicyEngine):
    """
    Policy for checking if any ordered category is blocked.

    Context required:
        - categories: Category of each line item, in order
        - blocked_categories: Categories the store does not accept back
    """

    def evaluate(self, context: Dict[str, Any]) -> PolicyDecision:
        blocked = set(context.get("blocked_categories") or [])
        offending: List[str] = []
        for category in context.get("categories", []):
            if category in blocked and category not in offending:
                offending.append(category)

        if offending:
            return PolicyDecision(
                result=PolicyResult.DENIED,
                reason=f"Categoria bloqueada: {', '.join(offending)}",
                metadata={"blocked": offending},
            )
        return PolicyDecision(result=PolicyResult.APPROVED, reason="Categorias aceitas")


# =============================================================================
# REVIEW TRIGGERS
# =============================================================================

class PhotoEvidencePolicy(PolicyEngine):
    """
    Requires photo evidence before a request can skip review.

    Context required:
        - require_photos: Store flag
        - has_photo_evidence: Whether photos were attached
    """

    def evaluate(self, context: Dict[str, Any]) -> PolicyDecision:
        if context.get("require_photos") and not context.get("has_photo_evidence"):
            return PolicyDecision(
                result=PolicyResult.REQUIRES_REVIEW,
                reason="Fotos obrigatórias não enviadas - será necessária análise manual",
            )
        return PolicyDecision(result=PolicyResult.APPROVED, reason="Evidências suficientes")


class SubjectiveReasonPolicy(PolicyEngine):
    """Routes subjective reasons (remorse, dislike) to manual review."""

    def __init__(self, reasons: Optional[List[str]] = None):
        self.reasons = reasons if reasons is not None else MANUAL_REVIEW_REASONS

    def evaluate(self, context: Dict[str, Any]) -> PolicyDecision:
        if context.get("declared_reason") in self.reasons:
            return PolicyDecision(
                result=PolicyResult.REQUIRES_REVIEW,
                reason="Motivo requer análise manual da equipe",
            )
        return PolicyDecision(result=PolicyResult.APPROVED, reason="Motivo objetivo")


class ExchangeAgePolicy(PolicyEngine):
    """Exchanges have a tighter auto-approval window than eligibility."""

    def __init__(self, max_days: int = EXCHANGE_AUTO_APPROVE_DAYS):
        self.max_days = max_days

    def evaluate(self, context: Dict[str, Any]) -> PolicyDecision:
        if context.get("request_type") == RequestType.EXCHANGE and context["elapsed_days"] > self.max_days:
            return PolicyDecision(
                result=PolicyResult.REQUIRES_REVIEW,
                reason=f"Trocas com mais de {self.max_days} dias requerem aprovação manual",
            )
        return PolicyDecision(result=PolicyResult.APPROVED, reason="Prazo de troca automática")


# =============================================================================
# COMPOSITE EVALUATOR
# =============================================================================

class EligibilityEvaluator:
    """
    Composite evaluator for return/exchange requests.

    Every check runs; failures accumulate instead of short-circuiting,
    so a request can be ineligible on several grounds at once.
    """

    def __init__(
        self,
        exchange_auto_approve_days: int = EXCHANGE_AUTO_APPROVE_DAYS,
        manual_review_reasons: Optional[List[str]] = None,
    ):
        self.hard_checks: List[PolicyEngine] = [
            ReturnWindowPolicy(),
            MinimumValuePolicy(),
            CategoryPolicy(),
        ]
        self.review_triggers: List[PolicyEngine] = [
            PhotoEvidencePolicy(),
            SubjectiveReasonPolicy(manual_review_reasons),
            ExchangeAgePolicy(exchange_auto_approve_days),
        ]

    def evaluate(
        self,
        order: Union[Order, Dict[str, Any], None],
        rules: EligibilityRules,
        request_type: Union[RequestType, str],
        declared_reason: Optional[str],
        has_photo_evidence: bool,
        now: Optional[datetime] = None,
    ) -> EligibilityResult:
        """
        Decide whether a request qualifies and whether it may skip review.

        Args:
            order: Order snapshot (or raw storefront dict)
            rules: The store's eligibility rules
            request_type: exchange / return (Portuguese labels accepted)
            declared_reason: Reason text chosen by the customer
            has_photo_evidence: Whether photos were attached
            now: Evaluation instant (defaults to current UTC time)

        Returns:
            EligibilityResult; auto_approve implies is_eligible
        """
        try:
            if not isinstance(order, Order):
                order = Order.from_dict(order)
        except InvalidOrder:
            return EligibilityResult(
                is_eligible=False,
                auto_approve=False,
                reasons=[INVALID_ORDER_REASON],
            )

        request_type = RequestType.parse(request_type)
        elapsed = elapsed_days(order, now)
        window = rules.window_for(ReasonCategory.classify(declared_reason))

        context = {
            "elapsed_days": elapsed,
            "window_days": window,
            "order_total": order.total,
            "minimum_value": rules.minimum_value,
            "categories": order.categories,
            "blocked_categories": rules.blocked_categories,
            "require_photos": rules.require_photos_for_defect,
            "has_photo_evidence": has_photo_evidence,
            "declared_reason": declared_reason,
            "request_type": request_type,
        }

        reasons = [d.reason for d in (p.evaluate(context) for p in self.hard_checks) if d.is_denied]
        warnings = [d.reason for d in (p.evaluate(context) for p in self.review_triggers) if d.requires_review]

        is_eligible = not reasons
        return EligibilityResult(
            is_eligible=is_eligible,
            auto_approve=is_eligible and rules.auto_approve and not warnings,
            reasons=reasons,
            warnings=warnings,
            elapsed_days=elapsed,
            window_days=window,
        )
