"""
Domain Services - Business Operations.

These services orchestrate business logic without I/O dependencies.
They use policies for decisions and work with pure data structures.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
import math
import random

from core.domain import (
    DomainService,
    IntakeValidationError,
    ValidationError,
    Validator,
    round_money,
    utc_now,
)

from .methods import RefundMethodResolver
from .models import (
    Actor,
    CustomerSnapshot,
    EligibilityResult,
    LineItem,
    RefundConfig,
    RefundMethod,
    RefundRequest,
    RefundStatus,
    RequestType,
    ReturnRequest,
    ReturnStatus,
    TimelineEvent,
    new_id,
)


# =============================================================================
# PROTOCOL CODES
# =============================================================================

def generate_refund_protocol(now: Optional[datetime] = None) -> str:
    """Refund protocol, e.g. RB-2025-042."""
    year = (now or utc_now()).year
    return f"RB-{year}-{random.randint(0, 999):03d}"


def generate_return_protocol(request_type: RequestType, now: Optional[datetime] = None) -> str:
    """Return/exchange protocol, e.g. TR-512345 or DV-512345."""
    prefix = "TR" if request_type == RequestType.EXCHANGE else "DV"
    millis = int((now or utc_now()).timestamp() * 1000)
    return f"{prefix}-{str(millis)[-6:]}"


# =============================================================================
# RISK SCORING
# =============================================================================

@dataclass
class CustomerHistory:
    total_orders: int = 0
    total_refunds: int = 0
    account_age_days: int = 0


@dataclass(frozen=True)
class RiskCategory:
    label: str
    description: str


class RiskScorer(DomainService):
    """
    Scores how risky a refund request is, from 0 (safe) to 100.

    Bands:
        amount            0-35
        no attachments    25
        no items          15
        customer history  0-25 (15 when unknown)
    """

    def execute(
        self,
        amount: float,
        has_attachments: bool,
        has_items: bool,
        customer_history: Optional[CustomerHistory] = None,
    ) -> int:
        score = 0

        if amount > 1000:
            score += 35
        elif amount > 500:
            score += 25
        elif amount > 200:
            score += 15
        elif amount > 100:
            score += 5

        if not has_attachments:
            score += 25

        if not has_items:
            score += 15

        if customer_history is None:
            score += 15
        else:
            if customer_history.account_age_days < 30:
                score += 15
            elif customer_history.account_age_days < 90:
                score += 10

            if customer_history.total_orders > 0:
                refund_rate = customer_history.total_refunds / customer_history.total_orders
                if refund_rate > 0.5:
                    score += 10
                elif refund_rate > 0.3:
                    score += 5
            elif customer_history.total_refunds > 0:
                # Refunds with no recorded orders
                score += 20

        return min(max(score, 0), 100)


def risk_category(score: int) -> RiskCategory:
    if score >= 70:
        return RiskCategory("Alto", "Requer revisão manual detalhada")
    if score >= 40:
        return RiskCategory("Médio", "Requer verificação adicional")
    return RiskCategory("Baixo", "Pode ser aprovado automaticamente")


def initial_refund_status(risk_score: int, amount: float, auto_approve_limit: float = 100.0) -> RefundStatus:
    """Low-risk refunds within the auto-approval ceiling go to the fast queue."""
    if amount <= auto_approve_limit and risk_score < 30:
        return RefundStatus.SOLICITADO
    return RefundStatus.EM_ANALISE


# =============================================================================
# VALIDATORS
# =============================================================================

class RefundIntakeValidator(Validator):
    """
    Validates refund request data before submission.

    The store's RefundConfig decides which methods and PIX keys are accepted.
    """

    def __init__(self, config: RefundConfig):
        self.config = config

    def validate(self, data: Dict[str, Any]) -> List[ValidationError]:
        errors = []

        if not str(data.get("order_code") or "").strip():
            errors.append(ValidationError("order_code", "Número do pedido é obrigatório", "required"))

        if not str(data.get("customer_name") or "").strip():
            errors.append(ValidationError("customer_name", "Nome do cliente é obrigatório", "required"))

        method = data.get("method")
        if not method:
            errors.append(ValidationError("method", "Método de reembolso é obrigatório", "required"))
        else:
            try:
                method = RefundMethod(method)
            except ValueError:
                errors.append(ValidationError("method", f"Método inválido: {method}", "invalid_choice"))
                method = None
            if method is not None and not self.config.is_enabled(method):
                errors.append(ValidationError(
                    "method",
                    f"Método {method.label} não está habilitado para esta loja",
                    "disabled",
                ))
            if method == RefundMethod.PIX:
                key_type = self.config.pix_key_type
                if not RefundMethodResolver.validate_pix_key(data.get("pix_key"), key_type):
                    errors.append(ValidationError(
                        "pix_key",
                        f"Chave PIX inválida (formato aceito: {key_type.value})",
                        "invalid_format",
                    ))

        try:
            amount = float(data.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0
        if not math.isfinite(amount) or amount <= 0:
            errors.append(ValidationError("amount", "Valor deve ser maior que zero", "min_value"))

        if not data.get("items"):
            errors.append(ValidationError("items", "Adicione pelo menos um item ao pedido", "min_length"))

        return errors


# =============================================================================
# BUILDERS
# =============================================================================

def creation_event(description: str, status: str, actor: Actor, now: datetime) -> TimelineEvent:
    return TimelineEvent(
        id=new_id("EVT"),
        timestamp=now,
        action="Solicitação criada",
        description=description,
        actor=actor,
        from_status=None,
        to_status=status,
    )


class RefundRequestBuilder(DomainService):
    """
    Builds a validated refund request.

    This service:
    1. Validates all input data against the store's refund config
    2. Scores the request's risk
    3. Picks the initial status
    4. Creates the request with its creation event
    """

    def __init__(self):
        self.risk_scorer = RiskScorer()

    def execute(
        self,
        store_id: str,
        config: RefundConfig,
        order_code: str,
        customer: CustomerSnapshot,
        amount: float,
        method: Any,
        items: Sequence[LineItem],
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        attachments: Sequence[str] = (),
        pix_key: Optional[str] = None,
        customer_history: Optional[CustomerHistory] = None,
        origin: str = "internal",
        currency: str = "BRL",
        now: Optional[datetime] = None,
    ) -> RefundRequest:
        """
        Build a refund request.

        Raises:
            IntakeValidationError: If any field is invalid
        """
        errors = RefundIntakeValidator(config).validate({
            "order_code": order_code,
            "customer_name": customer.name,
            "method": method,
            "amount": amount,
            "items": items,
            "pix_key": pix_key,
        })
        if errors:
            raise IntakeValidationError(errors)

        now = now or utc_now()
        amount = round_money(amount)
        score = self.risk_scorer.execute(
            amount=amount,
            has_attachments=bool(attachments),
            has_items=bool(items),
            customer_history=customer_history,
        )
        status = initial_refund_status(score, amount, config.auto_approve_limit)
        actor = Actor.CUSTOMER if origin == "public" else Actor.SYSTEM

        return RefundRequest(
            id=new_id("REF"),
            store_id=store_id,
            code=generate_refund_protocol(now),
            order_code=order_code.strip(),
            customer=customer,
            requested_amount=amount,
            method=RefundMethod(method),
            status=status,
            reason=(reason or "").strip() or None,
            notes=(notes or "").strip() or None,
            currency=currency,
            attachments=tuple(attachments),
            items=tuple(items),
            risk_score=score,
            origin=origin,
            pix_key=pix_key,
            timeline=(creation_event("Solicitação de reembolso criada", status.value, actor, now),),
            created_at=now,
            updated_at=now,
        )


class ReturnRequestBuilder(DomainService):
    """
    Builds a return or exchange request.

    Agent-entered requests start as Nova. Portal requests carry an
    eligibility result and start as Aprovada (auto-approved) or Em análise.
    """

    def execute(
        self,
        store_id: str,
        order_code: str,
        customer: CustomerSnapshot,
        request_type: Any,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        amount: float = 0.0,
        attachments: Sequence[str] = (),
        eligibility: Optional[EligibilityResult] = None,
        origin: str = "internal",
        currency: str = "BRL",
        now: Optional[datetime] = None,
    ) -> ReturnRequest:
        now = now or utc_now()
        errors = []
        if not (order_code or "").strip():
            errors.append(ValidationError("order_code", "Número do pedido é obrigatório", "required"))
        if not (customer.name or "").strip():
            errors.append(ValidationError("customer_name", "Nome do cliente é obrigatório", "required"))
        request_type = RequestType.parse(request_type)
        if request_type == RequestType.REFUND:
            errors.append(ValidationError(
                "type", "Reembolsos devem ser abertos pelo fluxo de reembolso", "invalid_choice",
            ))
        amount = amount or 0.0
        if not math.isfinite(amount) or amount < 0:
            errors.append(ValidationError("amount", "Valor inválido", "invalid_format"))
        if errors:
            raise IntakeValidationError(errors)

        auto_approved = bool(eligibility and eligibility.auto_approve)
        if eligibility is None:
            status = ReturnStatus.NOVA
            description = f"Solicitação de {request_type.label.lower()} criada"
        elif auto_approved:
            status = ReturnStatus.APROVADA
            description = "Aprovada automaticamente"
        else:
            status = ReturnStatus.EM_ANALISE
            description = "Solicitação recebida e em análise"

        actor = Actor.CUSTOMER if origin == "public" else Actor.SYSTEM

        return ReturnRequest(
            id=new_id("RET"),
            store_id=store_id,
            code=generate_return_protocol(request_type, now),
            order_code=order_code.strip(),
            customer=customer,
            type=request_type,
            status=status,
            reason=(reason or "").strip() or None,
            notes=(notes or "").strip() or None,
            amount=round_money(amount),
            currency=currency,
            attachments=tuple(attachments),
            origin=origin,
            auto_approved=auto_approved,
            timeline=(creation_event(description, status.value, actor, now),),
            created_at=now,
            updated_at=now,
        )
