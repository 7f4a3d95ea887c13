"""Tests for intake rules and the orchestration services."""

import re

import pytest

from core.data import ConcurrencyConflict, EntityNotFound
from core.domain import IntakeValidationError, InvalidAmount, MissingEvidence, NotEligible
from use_cases.returns.domain.models import (
    EligibilityRules,
    LineItem,
    PixKeyType,
    RefundConfig,
    RefundMethod,
    RefundStatus,
    RequestType,
    ReturnStatus,
)
from use_cases.returns.domain.services import (
    CustomerHistory,
    RefundIntakeValidator,
    RiskScorer,
    generate_refund_protocol,
    generate_return_protocol,
    initial_refund_status,
    risk_category,
)

from .conftest import NOW, STORE_ID

GOOD_HISTORY = CustomerHistory(total_orders=10, total_refunds=1, account_age_days=365)


# =============================================================================
# RISK AND INTAKE
# =============================================================================

class TestRiskScorer:
    def test_large_undocumented_request_is_high_risk(self):
        score = RiskScorer().execute(1500, has_attachments=False, has_items=False)

        assert score == 90
        assert risk_category(score).label == "Alto"

    def test_small_documented_request_from_known_customer(self):
        score = RiskScorer().execute(50, has_attachments=True, has_items=True, customer_history=GOOD_HISTORY)

        assert score == 0
        assert risk_category(score).label == "Baixo"

    def test_new_account_with_high_refund_rate(self):
        history = CustomerHistory(total_orders=4, total_refunds=3, account_age_days=10)
        score = RiskScorer().execute(300, has_attachments=True, has_items=True, customer_history=history)

        assert score == 15 + 15 + 10
        assert risk_category(score).label == "Médio"

    def test_score_is_capped_at_100(self):
        history = CustomerHistory(total_orders=0, total_refunds=2, account_age_days=5)
        score = RiskScorer().execute(5000, has_attachments=False, has_items=False, customer_history=history)
        assert score == 100


def test_initial_status_depends_on_limit_and_score():
    assert initial_refund_status(10, 100.0, auto_approve_limit=100.0) == RefundStatus.SOLICITADO
    assert initial_refund_status(10, 100.01, auto_approve_limit=100.0) == RefundStatus.EM_ANALISE
    assert initial_refund_status(30, 50.0, auto_approve_limit=100.0) == RefundStatus.EM_ANALISE


def test_protocol_formats():
    assert re.match(r"^RB-2025-\d{3}$", generate_refund_protocol(NOW))
    assert re.match(r"^TR-\d{6}$", generate_return_protocol(RequestType.EXCHANGE, NOW))
    assert re.match(r"^DV-\d{6}$", generate_return_protocol(RequestType.RETURN, NOW))


class TestRefundIntakeValidator:
    def test_empty_submission_reports_every_field(self):
        errors = RefundIntakeValidator(RefundConfig()).validate({})
        fields = {e.field for e in errors}
        assert fields == {"order_code", "customer_name", "method", "amount", "items"}

    def test_disabled_method_is_rejected(self):
        validator = RefundIntakeValidator(RefundConfig(enable_boleto=False))
        errors = validator.validate({
            "order_code": "#1", "customer_name": "Ana", "method": "BOLETO", "amount": 10, "items": [1],
        })
        assert [e.code for e in errors] == ["disabled"]

    def test_pix_key_must_match_configured_type(self):
        validator = RefundIntakeValidator(RefundConfig(pix_key_type=PixKeyType.CPF))
        data = {"order_code": "#1", "customer_name": "Ana", "method": "PIX", "amount": 10, "items": [1]}

        assert [e.field for e in validator.validate({**data, "pix_key": "ana@email.com"})] == ["pix_key"]
        assert validator.is_valid({**data, "pix_key": "123.456.789-01"})

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), "nan"])
    def test_non_finite_amount_is_rejected(self, amount):
        validator = RefundIntakeValidator(RefundConfig())
        errors = validator.validate({
            "order_code": "#1", "customer_name": "Ana", "method": "CARD", "amount": amount, "items": [1],
        })
        assert [e.field for e in errors] == ["amount"]


# =============================================================================
# RETURN REQUEST SERVICE
# =============================================================================

class TestReturnRequestService:
    def test_eligible_portal_request_with_photos_is_auto_approved(self, services, notifier):
        outcome = services.returns.submit_public(
            STORE_ID, "#28471", "MARIA@email.com", "return",
            reason="Tamanho errado", attachments=["foto.jpg"], now=NOW,
        )

        request = outcome.entity
        assert request.status == ReturnStatus.APROVADA
        assert request.auto_approved is True
        assert request.amount == 289.90
        assert request.origin == "public"
        assert len(request.timeline) == 1
        assert request.timeline[0].to_status == "Aprovada"
        assert request.code.startswith("DV-")
        assert notifier.last.is_error is False

    def test_portal_request_without_photos_goes_to_review(self, services):
        outcome = services.returns.submit_public(STORE_ID, "#28471", "maria@email.com", "return", now=NOW)
        assert outcome.entity.status == ReturnStatus.EM_ANALISE
        assert outcome.entity.auto_approved is False

    def test_ineligible_portal_request_creates_nothing(self, services, notifier):
        with pytest.raises(NotEligible) as exc_info:
            services.returns.submit_public(STORE_ID, "#28502", "joao@email.com", "return", now=NOW)

        assert exc_info.value.message == "Prazo excedido: 20 dias (limite: 15 dias)"
        assert services.returns.list(STORE_ID).total_count == 0
        assert notifier.last.is_error is True
        assert notifier.last.title == "Pedido não elegível"

    def test_wrong_email_is_an_invalid_order(self, services):
        with pytest.raises(NotEligible) as exc_info:
            services.returns.submit_public(STORE_ID, "#28471", "outra@email.com", "exchange", now=NOW)
        assert exc_info.value.reasons == ["Pedido inválido"]

    def test_internal_request_starts_as_new(self, services, customer):
        outcome = services.returns.create_internal(STORE_ID, "#9001", customer, "Troca", now=NOW)

        assert outcome.entity.status == ReturnStatus.NOVA
        assert outcome.entity.type == RequestType.EXCHANGE
        assert outcome.entity.version == 1
        assert outcome.entity.code.startswith("TR-")

    def test_internal_request_requires_order_code(self, services, customer):
        with pytest.raises(IntakeValidationError):
            services.returns.create_internal(STORE_ID, "  ", customer, "return")

    def test_perform_appends_one_event_and_bumps_version(self, services, customer):
        created = services.returns.create_internal(STORE_ID, "#9001", customer, "return", now=NOW).entity

        outcome = services.returns.perform(created.id, "approve", now=NOW)

        assert outcome.entity.status == ReturnStatus.APROVADA
        assert len(outcome.entity.timeline) == 2
        assert outcome.entity.version == 2
        assert services.returns.get(created.id).status == ReturnStatus.APROVADA

    def test_stale_version_is_rejected(self, services, customer):
        created = services.returns.create_internal(STORE_ID, "#9001", customer, "return").entity
        services.returns.perform(created.id, "start_review", expected_version=1)

        with pytest.raises(ConcurrencyConflict):
            services.returns.perform(created.id, "approve", expected_version=1)

        assert services.returns.get(created.id).status == ReturnStatus.EM_ANALISE

    def test_second_writer_with_stale_copy_conflicts(self, services, customer):
        created = services.returns.create_internal(STORE_ID, "#9001", customer, "return").entity
        repository = services.returns.repository
        first = created.with_event(ReturnStatus.EM_ANALISE, created.timeline[0])
        repository.save(first, created.version)

        with pytest.raises(ConcurrencyConflict):
            repository.save(first, created.version)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), -1.0])
    def test_internal_request_rejects_invalid_amount(self, services, customer, amount):
        with pytest.raises(IntakeValidationError) as exc_info:
            services.returns.create_internal(STORE_ID, "#9001", customer, "return", amount=amount)
        assert [e.field for e in exc_info.value.errors] == ["amount"]

    def test_unknown_request_is_not_found(self, services):
        with pytest.raises(EntityNotFound):
            services.returns.perform("RET-NOPE", "approve")

    def test_list_filters_by_status(self, services, customer):
        first = services.returns.create_internal(STORE_ID, "#1", customer, "return").entity
        services.returns.create_internal(STORE_ID, "#2", customer, "return")
        services.returns.create_internal("outra-loja", "#3", customer, "return")
        services.returns.perform(first.id, "approve")

        assert services.returns.list(STORE_ID).total_count == 2
        approved = services.returns.list(STORE_ID, status="Aprovada")
        assert [r.id for r in approved.data] == [first.id]


# =============================================================================
# REFUND REQUEST SERVICE
# =============================================================================

def create_refund(services, customer, items, amount=100.0, method="CARD", **kwargs):
    return services.refunds.create(
        STORE_ID, "#28471", customer, amount, method, items,
        attachments=["nota.pdf"], customer_history=GOOD_HISTORY, now=NOW, **kwargs,
    ).entity


class TestRefundRequestService:
    def test_low_risk_refund_starts_requested(self, services, customer, items):
        refund = create_refund(services, customer, items)

        assert refund.status == RefundStatus.SOLICITADO
        assert refund.risk_score == 0
        assert refund.version == 1
        assert len(refund.timeline) == 1

    def test_refund_above_limit_starts_in_analysis(self, services, customer, items):
        refund = create_refund(services, customer, items, amount=250.0)
        assert refund.status == RefundStatus.EM_ANALISE

    def test_approval_above_requested_leaves_refund_untouched(self, services, customer, items, notifier):
        refund = create_refund(services, customer, items)

        with pytest.raises(InvalidAmount):
            services.refunds.perform(refund.id, "approve", final_amount=150)

        stored = services.refunds.get(refund.id)
        assert stored.status == RefundStatus.SOLICITADO
        assert len(stored.timeline) == 1
        assert stored.version == 1
        assert notifier.last.is_error is True

    @pytest.mark.parametrize("final_amount", [float("nan"), float("inf")])
    def test_non_finite_approval_leaves_refund_untouched(self, services, customer, items, final_amount):
        refund = create_refund(services, customer, items)

        with pytest.raises(InvalidAmount):
            services.refunds.perform(refund.id, "approve", final_amount=final_amount)

        stored = services.refunds.get(refund.id)
        assert stored.status == RefundStatus.SOLICITADO
        assert stored.final_amount is None
        assert stored.version == 1

    def test_voucher_payment_without_code_keeps_processing(self, services, customer, items):
        refund = create_refund(services, customer, items, method="VOUCHER")
        services.refunds.perform(refund.id, "approve", final_amount=100)
        services.refunds.perform(refund.id, "start_processing")

        with pytest.raises(MissingEvidence):
            services.refunds.perform(refund.id, "mark_paid", voucher_code="")

        assert services.refunds.get(refund.id).status == RefundStatus.PROCESSANDO

    def test_revert_from_approved(self, services, customer, items):
        refund = create_refund(services, customer, items)
        services.refunds.perform(refund.id, "approve", final_amount=90)

        reverted = services.refunds.perform(refund.id, "revert").entity

        assert reverted.status == RefundStatus.EM_ANALISE
        assert reverted.final_amount is None
        assert len(reverted.timeline) == 3
        assert reverted.timeline[-1].from_status == "APROVADO"
        assert reverted.timeline[-1].to_status == "EM_ANALISE"

    def test_voucher_paid_with_bonus(self, services, customer, items):
        services.settings.update(
            STORE_ID,
            EligibilityRules(),
            RefundConfig(prioritize_voucher=True, voucher_bonus=10),
        )
        refund = create_refund(services, customer, items, method="VOUCHER")
        services.refunds.perform(refund.id, "approve", final_amount=80)
        services.refunds.perform(refund.id, "start_processing")

        paid = services.refunds.perform(refund.id, "mark_paid", voucher_code="VALE-1").entity

        assert paid.status == RefundStatus.CONCLUIDO
        assert paid.voucher_code == "VALE-1"
        assert len(paid.payments) == 1
        assert paid.payments[0].amount == 88.0
        assert paid.payments[0].method == RefundMethod.VOUCHER
        assert paid.final_amount == 80.0

    def test_disabled_method_is_refused_at_intake(self, services, customer, items):
        services.settings.update(STORE_ID, EligibilityRules(), RefundConfig(enable_pix=False))

        with pytest.raises(IntakeValidationError):
            create_refund(services, customer, items, method="PIX", pix_key="maria@email.com")

        assert services.refunds.list(STORE_ID).total_count == 0

    def test_refund_requires_items(self, services, customer):
        with pytest.raises(IntakeValidationError) as exc_info:
            create_refund(services, customer, [])
        assert [e.field for e in exc_info.value.errors] == ["items"]


# =============================================================================
# STORE SETTINGS SERVICE
# =============================================================================

class TestStoreSettingsService:
    def test_unsaved_store_gets_defaults(self, services):
        settings = services.settings.get_settings("nova-loja")

        assert settings.version == 0
        assert settings.eligibility_rules.window_days == 15
        assert settings.refund_config.auto_approve_limit == 100.0

    def test_update_with_stale_version_conflicts(self, services):
        saved = services.settings.update(STORE_ID, EligibilityRules(window_days=30), RefundConfig()).entity
        services.settings.update(STORE_ID, EligibilityRules(window_days=20), RefundConfig(), saved.version)

        with pytest.raises(ConcurrencyConflict):
            services.settings.update(STORE_ID, EligibilityRules(window_days=10), RefundConfig(), saved.version)

        assert services.settings.get_settings(STORE_ID).eligibility_rules.window_days == 20

    def test_rules_drive_eligibility(self, services):
        services.settings.update(STORE_ID, EligibilityRules(window_days=30), RefundConfig())

        result = services.returns.evaluate_eligibility(
            STORE_ID, "return", order_code="#28502", email="joao@email.com",
            has_photo_evidence=True, now=NOW,
        )

        assert result.is_eligible is True

    def test_refund_methods_reflect_config(self, services):
        services.settings.update(
            STORE_ID, EligibilityRules(), RefundConfig(enable_card=False, pix_key_type=PixKeyType.EMAIL),
        )

        methods = services.settings.refund_methods(STORE_ID)

        assert [m["method"] for m in methods["methods"]] == ["PIX", "BOLETO", "VOUCHER"]
        assert methods["pix_key_type"] == "email"


def test_line_item_subtotal():
    assert LineItem(id="1", name="A", category="X", price=10.0, quantity=3).subtotal == 30.0
