"""
Returns Notification Composer.

Turns returns/refunds outcomes into the toast-style notifications shown
to store agents and portal customers. All phrasing is centralized here.
"""

from typing import Dict, Union

from core.data import ConcurrencyConflict, EntityNotFound
from core.domain import (
    DomainError,
    IllegalTransition,
    IntakeValidationError,
    InvalidAmount,
    InvalidOrder,
    MissingEvidence,
    NotEligible,
)
from core.presentation import (
    BadgeColor,
    Notification,
    NotificationComposer,
    PresentationTheme,
)

from ..domain.models import (
    RefundRequest,
    RefundStatus,
    ReturnRequest,
    ReturnStatus,
    StoreSettings,
)
from ..domain.services import risk_category


class ReturnsTheme(PresentationTheme):
    """Badge colors for both status vocabularies."""

    def __init__(self):
        super().__init__()
        self.status_colors.update({
            RefundStatus.SOLICITADO.value: BadgeColor.INFO.value,
            RefundStatus.EM_ANALISE.value: BadgeColor.WARNING.value,
            RefundStatus.APROVADO.value: BadgeColor.PRIMARY.value,
            RefundStatus.PROCESSANDO.value: BadgeColor.PRIMARY.value,
            RefundStatus.CONCLUIDO.value: BadgeColor.SUCCESS.value,
            RefundStatus.RECUSADO.value: BadgeColor.DANGER.value,
            ReturnStatus.NOVA.value: BadgeColor.INFO.value,
            ReturnStatus.EM_ANALISE.value: BadgeColor.WARNING.value,
            ReturnStatus.APROVADA.value: BadgeColor.PRIMARY.value,
            ReturnStatus.AGUARDANDO_POSTAGEM.value: BadgeColor.SECONDARY.value,
            ReturnStatus.RECEBIDA_EM_CD.value: BadgeColor.PRIMARY.value,
            ReturnStatus.CONCLUIDA.value: BadgeColor.SUCCESS.value,
            ReturnStatus.RECUSADA.value: BadgeColor.DANGER.value,
        })


_ERROR_TITLES: Dict[type, str] = {
    InvalidOrder: "Pedido inválido",
    IllegalTransition: "Ação não permitida",
    InvalidAmount: "Valor inválido",
    MissingEvidence: "Informação obrigatória",
    NotEligible: "Pedido não elegível",
    IntakeValidationError: "Dados inválidos",
}


class ReturnsNotificationComposer(NotificationComposer):
    """
    Notification composer for the returns and refunds flows.

    Provides one method per outcome an agent or customer can see.
    """

    def __init__(self):
        super().__init__(theme=ReturnsTheme())

    # =========================================================================
    # RETURNS / EXCHANGES
    # =========================================================================

    def compose_return_created(self, request: ReturnRequest) -> Notification:
        return self.success(
            "Solicitação criada",
            f"Protocolo {request.code} - {request.type.label} do pedido {request.order_code}",
        )

    def compose_return_submitted(self, request: ReturnRequest) -> Notification:
        """Portal confirmation; tells the customer whether a human will review."""
        if request.auto_approved:
            description = f"Protocolo {request.code}. Sua solicitação foi aprovada automaticamente."
        else:
            description = f"Protocolo {request.code}. Sua solicitação será analisada pela equipe."
        return self.success("Solicitação enviada", description)

    def compose_return_status_changed(self, request: ReturnRequest) -> Notification:
        return self.success(
            "Status atualizado",
            f"Solicitação {request.code} agora está: {request.status.label}",
        )

    # =========================================================================
    # REFUNDS
    # =========================================================================

    def compose_refund_created(self, request: RefundRequest) -> Notification:
        return self.success(
            "Reembolso solicitado",
            f"Protocolo {request.code} - R$ {request.requested_amount:.2f} via {request.method.label}",
        )

    def compose_refund_status_changed(self, request: RefundRequest) -> Notification:
        if request.status == RefundStatus.APROVADO:
            return self.success(
                "Reembolso aprovado",
                f"Reembolso {request.code} aprovado: R$ {request.final_amount:.2f}",
            )
        if request.status == RefundStatus.RECUSADO:
            return self.success(
                "Reembolso rejeitado",
                f"Reembolso {request.code} rejeitado: {request.rejection_reason}",
            )
        if request.status == RefundStatus.CONCLUIDO and request.payments:
            payment = request.payments[-1]
            return self.success(
                "Reembolso pago",
                f"R$ {payment.amount:.2f} pagos via {payment.method.label}",
            )
        return self.success(
            "Status atualizado",
            f"Reembolso {request.code} agora está: {request.status.label}",
        )

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def compose_settings_saved(self, settings: StoreSettings) -> Notification:
        return self.success("Configurações salvas", f"Políticas da loja {settings.store_id} atualizadas")

    # =========================================================================
    # BADGES
    # =========================================================================

    def compose_badges(self, request: Union[ReturnRequest, RefundRequest]) -> Dict[str, str]:
        """Badge colors for a request's status and, for refunds, its risk."""
        badges = {"status_color": self.theme.get_status_color(request.status.value)}
        if isinstance(request, RefundRequest):
            category = risk_category(request.risk_score)
            badges["risk_category"] = category.label
            badges["risk_color"] = self.theme.get_risk_color(category.label)
        return badges

    # =========================================================================
    # ERRORS
    # =========================================================================

    def compose_error(self, error: Exception) -> Notification:
        if isinstance(error, ConcurrencyConflict):
            return self.failure(
                "Conflito de atualização",
                "A solicitação foi alterada por outra pessoa. Recarregue e tente novamente.",
            )
        if isinstance(error, EntityNotFound):
            return self.failure("Não encontrado", f"{error.entity} '{error.id}' não encontrado")
        if isinstance(error, DomainError):
            return self.failure(_ERROR_TITLES.get(type(error), "Erro"), error.message)
        return self.failure("Erro", str(error))
