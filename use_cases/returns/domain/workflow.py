"""
Status Transition Engine.

Guards every status change of a refund or return request. A transition
either succeeds completely (next status + exactly one timeline event) or
raises a DomainError and changes nothing.

The two flows share the machinery below but never each other's statuses:
a refund workflow rejects a return status and vice versa.
"""

import math
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, List, Optional, Tuple, Type, TypeVar

from core.domain import (
    IllegalTransition,
    InvalidAmount,
    MissingEvidence,
    round_money,
    utc_now,
)

from .models import (
    REFUND_FLOW,
    REFUND_TERMINAL,
    RETURN_FLOW,
    RETURN_TERMINAL,
    Actor,
    RefundMethod,
    RefundStatus,
    ReturnStatus,
    TimelineEvent,
    new_id,
)

S = TypeVar("S", bound=Enum)
A = TypeVar("A", bound=Enum)


class RefundAction(str, Enum):
    START_REVIEW = "start_review"
    APPROVE = "approve"
    REJECT = "reject"
    START_PROCESSING = "start_processing"
    MARK_PAID = "mark_paid"
    REVERT = "revert"


class ReturnAction(str, Enum):
    START_REVIEW = "start_review"
    APPROVE = "approve"
    AWAIT_SHIPMENT = "await_shipment"
    RECEIVE = "receive"
    COMPLETE = "complete"
    REJECT = "reject"
    REVERT = "revert"


@dataclass(frozen=True)
class TransitionContext:
    """Inputs an action may need besides the current status."""
    reason: Optional[str] = None
    final_amount: Optional[float] = None
    requested_amount: Optional[float] = None
    method: Optional[RefundMethod] = None
    transaction_id: Optional[str] = None
    voucher_code: Optional[str] = None
    actor: Actor = Actor.AGENT
    now: Optional[datetime] = None


@dataclass(frozen=True)
class TransitionResult(Generic[S]):
    """
    Outcome of a legal transition.

    Attributes:
        next_status: Status the request moves to
        event: The single timeline event recording the change
        changes: Other request fields the action sets (amounts, evidence)
    """
    next_status: S
    event: TimelineEvent
    changes: Dict[str, Any] = field(default_factory=dict)


class StatusWorkflow(ABC, Generic[S, A]):
    """
    Base class for a guarded status machine.

    Subclasses declare:
        status_type / action_type: the closed enums of the flow
        flow: canonical order used by revert
        terminal: statuses that accept no action at all
        transitions: action -> (legal source statuses, target status)
        action_labels: human-readable label for each action
    """

    status_type: Type[S]
    action_type: Type[A]
    revert_action: A
    flow: Tuple[S, ...]
    terminal: FrozenSet[S]
    transitions: Dict[A, Tuple[FrozenSet[S], S]]
    action_labels: Dict[A, str]

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def _coerce_status(self, status: Any) -> Optional[S]:
        if isinstance(status, self.status_type):
            return status
        if isinstance(status, Enum):
            # A status from the other vocabulary
            return None
        try:
            return self.status_type(status)
        except ValueError:
            return None

    def _coerce_action(self, action: Any) -> Optional[A]:
        if isinstance(action, self.action_type):
            return action
        try:
            return self.action_type(action)
        except ValueError:
            return None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _target(self, status: S, action: A) -> Optional[S]:
        if status in self.terminal:
            return None
        if action == self.revert_action:
            if status not in self.flow:
                return None
            index = self.flow.index(status)
            return self.flow[index - 1] if index > 0 else None
        sources, target = self.transitions[action]
        return target if status in sources else None

    def can_perform(self, status: Any, action: Any) -> bool:
        """Whether action is legal from status."""
        status = self._coerce_status(status)
        action = self._coerce_action(action)
        if status is None or action is None:
            return False
        return self._target(status, action) is not None

    def available_actions(self, status: Any) -> List[A]:
        """Actions legal from status, in declaration order."""
        return [a for a in self.action_type if self.can_perform(status, a)]

    # -------------------------------------------------------------------------
    # Transition
    # -------------------------------------------------------------------------

    def transition(
        self,
        status: Any,
        action: Any,
        context: Optional[TransitionContext] = None,
    ) -> TransitionResult[S]:
        """
        Compute the next status and audit event for an action.

        Raises:
            IllegalTransition: Action unknown or not legal from status
            InvalidAmount / MissingEvidence: Action inputs are invalid
        """
        context = context or TransitionContext()
        current = self._coerce_status(status)
        parsed = self._coerce_action(action)
        if current is None:
            raise IllegalTransition(f"Status '{status}' não pertence a este fluxo")
        if parsed is None:
            raise IllegalTransition(f"Ação desconhecida: '{action}'")

        next_status = self._target(current, parsed)
        if next_status is None:
            raise IllegalTransition(
                f"Ação '{parsed.value}' não permitida no status '{current.label}'"
            )

        changes = self._validate(current, parsed, context)
        event = TimelineEvent(
            id=new_id("EVT"),
            timestamp=context.now or utc_now(),
            action=self.action_labels[parsed],
            description=f"{current.label} → {next_status.label}",
            actor=context.actor,
            from_status=current.value,
            to_status=next_status.value,
            reason=self._event_reason(parsed, next_status, context),
        )
        return TransitionResult(next_status=next_status, event=event, changes=changes)

    def _validate(self, status: S, action: A, context: TransitionContext) -> Dict[str, Any]:
        """Check action inputs; return the request fields to update."""
        return {}

    def _event_reason(self, action: A, next_status: S, context: TransitionContext) -> str:
        if context.reason and context.reason.strip():
            return context.reason.strip()
        return f"status changed to {next_status.value}"


def _require_text(value: Optional[str], message: str) -> str:
    if not value or not value.strip():
        raise MissingEvidence(message)
    return value.strip()


# =============================================================================
# REFUND FLOW
# =============================================================================

class RefundWorkflow(StatusWorkflow[RefundStatus, RefundAction]):
    """SOLICITADO → EM_ANALISE → APROVADO → PROCESSANDO → CONCLUIDO, or RECUSADO."""

    status_type = RefundStatus
    action_type = RefundAction
    revert_action = RefundAction.REVERT
    flow = REFUND_FLOW
    terminal = REFUND_TERMINAL
    transitions = {
        RefundAction.START_REVIEW: (
            frozenset({RefundStatus.SOLICITADO}),
            RefundStatus.EM_ANALISE,
        ),
        RefundAction.APPROVE: (
            frozenset({RefundStatus.SOLICITADO, RefundStatus.EM_ANALISE}),
            RefundStatus.APROVADO,
        ),
        RefundAction.REJECT: (
            frozenset({RefundStatus.SOLICITADO, RefundStatus.EM_ANALISE, RefundStatus.APROVADO}),
            RefundStatus.RECUSADO,
        ),
        RefundAction.START_PROCESSING: (
            frozenset({RefundStatus.APROVADO}),
            RefundStatus.PROCESSANDO,
        ),
        RefundAction.MARK_PAID: (
            frozenset({RefundStatus.PROCESSANDO}),
            RefundStatus.CONCLUIDO,
        ),
    }
    action_labels = {
        RefundAction.START_REVIEW: "Análise iniciada",
        RefundAction.APPROVE: "Reembolso aprovado",
        RefundAction.REJECT: "Reembolso rejeitado",
        RefundAction.START_PROCESSING: "Processamento iniciado",
        RefundAction.MARK_PAID: "Reembolso pago",
        RefundAction.REVERT: "Status revertido",
    }

    def _validate(self, status: RefundStatus, action: RefundAction, context: TransitionContext) -> Dict[str, Any]:
        if action == RefundAction.APPROVE:
            if context.final_amount is None:
                raise InvalidAmount("Informe o valor final do reembolso")
            if not math.isfinite(context.final_amount):
                raise InvalidAmount("O valor final deve ser um número válido")
            final_amount = round_money(context.final_amount)
            if final_amount <= 0:
                raise InvalidAmount("O valor final deve ser maior que zero")
            if context.requested_amount is not None and final_amount > context.requested_amount:
                raise InvalidAmount(
                    f"O valor final (R$ {final_amount:.2f}) excede o valor solicitado "
                    f"(R$ {context.requested_amount:.2f})"
                )
            return {"final_amount": final_amount}

        if action == RefundAction.REJECT:
            reason = _require_text(context.reason, "Informe o motivo da rejeição")
            return {"rejection_reason": reason}

        if action == RefundAction.MARK_PAID:
            if context.method is None:
                raise MissingEvidence("Método de reembolso não informado")
            if context.method == RefundMethod.VOUCHER:
                code = _require_text(context.voucher_code, "Informe o código do vale-compra")
                return {"voucher_code": code}
            transaction_id = _require_text(context.transaction_id, "Informe o ID da transação")
            return {"transaction_id": transaction_id}

        if action == RefundAction.REVERT and status == RefundStatus.APROVADO:
            # Leaving APROVADO discards the approved amount
            return {"final_amount": None}

        return {}


# =============================================================================
# RETURN / EXCHANGE FLOW
# =============================================================================

class ReturnWorkflow(StatusWorkflow[ReturnStatus, ReturnAction]):
    """Nova → Em análise → Aprovada → Aguardando postagem → Recebida em CD → Concluída, or Recusada."""

    status_type = ReturnStatus
    action_type = ReturnAction
    revert_action = ReturnAction.REVERT
    flow = RETURN_FLOW
    terminal = RETURN_TERMINAL
    transitions = {
        ReturnAction.START_REVIEW: (
            frozenset({ReturnStatus.NOVA}),
            ReturnStatus.EM_ANALISE,
        ),
        ReturnAction.APPROVE: (
            frozenset({ReturnStatus.NOVA, ReturnStatus.EM_ANALISE}),
            ReturnStatus.APROVADA,
        ),
        ReturnAction.AWAIT_SHIPMENT: (
            frozenset({ReturnStatus.APROVADA}),
            ReturnStatus.AGUARDANDO_POSTAGEM,
        ),
        ReturnAction.RECEIVE: (
            frozenset({ReturnStatus.AGUARDANDO_POSTAGEM}),
            ReturnStatus.RECEBIDA_EM_CD,
        ),
        ReturnAction.COMPLETE: (
            frozenset({ReturnStatus.RECEBIDA_EM_CD}),
            ReturnStatus.CONCLUIDA,
        ),
        ReturnAction.REJECT: (
            frozenset({
                ReturnStatus.NOVA,
                ReturnStatus.EM_ANALISE,
                ReturnStatus.APROVADA,
                ReturnStatus.AGUARDANDO_POSTAGEM,
            }),
            ReturnStatus.RECUSADA,
        ),
    }
    action_labels = {
        ReturnAction.START_REVIEW: "Análise iniciada",
        ReturnAction.APPROVE: "Solicitação aprovada",
        ReturnAction.AWAIT_SHIPMENT: "Etiqueta gerada",
        ReturnAction.RECEIVE: "Recebido no CD",
        ReturnAction.COMPLETE: "Solicitação concluída",
        ReturnAction.REJECT: "Solicitação recusada",
        ReturnAction.REVERT: "Status revertido",
    }

    def _validate(self, status: ReturnStatus, action: ReturnAction, context: TransitionContext) -> Dict[str, Any]:
        if action == ReturnAction.REJECT:
            reason = _require_text(context.reason, "Informe o motivo da recusa")
            return {"rejection_reason": reason}
        return {}
