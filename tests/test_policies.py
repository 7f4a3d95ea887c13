"""Tests for the eligibility evaluator and its policies."""

import pytest

from core.domain import IntakeValidationError
from use_cases.returns.domain.models import EligibilityRules, Order, RequestType
from use_cases.returns.domain.policies import EligibilityEvaluator, elapsed_days

from .conftest import NOW, make_order


@pytest.fixture
def evaluator():
    return EligibilityEvaluator()


def evaluate(evaluator, order, rules, request_type="return", reason="wrong size", photos=False):
    return evaluator.evaluate(order, rules, request_type, reason, photos, now=NOW)


class TestHardChecks:
    def test_order_inside_window_is_eligible_and_auto_approved(self, evaluator, rules):
        result = evaluate(evaluator, make_order(delivered_days_ago=10), rules)

        assert result.is_eligible is True
        assert result.auto_approve is True
        assert result.reasons == []
        assert result.elapsed_days == 10
        assert result.window_days == 15

    def test_order_past_window_is_rejected_with_elapsed_and_limit(self, evaluator, rules):
        result = evaluate(evaluator, make_order(delivered_days_ago=20), rules)

        assert result.is_eligible is False
        assert result.auto_approve is False
        assert result.reasons == ["Prazo excedido: 20 dias (limite: 15 dias)"]

    def test_last_day_of_window_is_still_eligible(self, evaluator, rules):
        result = evaluate(evaluator, make_order(delivered_days_ago=15), rules)
        assert result.is_eligible is True

    def test_total_below_minimum(self, evaluator, rules):
        result = evaluate(evaluator, make_order(total=30.0), rules)

        assert result.is_eligible is False
        assert result.reasons == ["Valor abaixo do mínimo: R$ 30.00 (mínimo: R$ 50.00)"]

    def test_blocked_category_is_listed_once(self, evaluator, rules):
        rules.blocked_categories = ["Íntimas"]
        order = make_order(categories=["Roupas", "Íntimas", "Íntimas"])

        result = evaluate(evaluator, order, rules)

        assert result.is_eligible is False
        assert result.reasons == ["Categoria bloqueada: Íntimas"]

    def test_failures_accumulate(self, evaluator, rules):
        rules.blocked_categories = ["Íntimas"]
        order = make_order(delivered_days_ago=30, total=20.0, categories=["Íntimas"])

        result = evaluate(evaluator, order, rules)

        assert len(result.reasons) == 3
        assert result.reasons[0].startswith("Prazo excedido")
        assert result.reasons[1].startswith("Valor abaixo do mínimo")
        assert result.reasons[2].startswith("Categoria bloqueada")

    def test_window_counts_from_order_date_when_not_delivered(self, evaluator, rules):
        order = make_order(delivered_days_ago=None, ordered_days_ago=18)

        result = evaluate(evaluator, order, rules)

        assert result.reasons == ["Prazo excedido: 18 dias (limite: 15 dias)"]

    def test_regret_reason_uses_its_own_window(self, evaluator, rules):
        rules.regret_window_days = 7

        result = evaluate(evaluator, make_order(delivered_days_ago=10), rules, reason="Arrependimento da compra")

        assert result.reasons == ["Prazo excedido: 10 dias (limite: 7 dias)"]

    def test_reason_windows_from_saved_settings_are_integers(self, evaluator):
        rules = EligibilityRules.from_dict({
            "window_days": "15",
            "require_photos_for_defect": False,
            "regret_window_days": "7",
            "defeitoDays": "30",
        })

        assert rules.regret_window_days == 7
        assert rules.defect_window_days == 30
        result = evaluate(evaluator, make_order(delivered_days_ago=10), rules, reason="Arrependimento da compra")
        assert result.reasons == ["Prazo excedido: 10 dias (limite: 7 dias)"]


class TestInvalidOrders:
    @pytest.mark.parametrize("order", [
        None,
        {},
        "#28471",
        {"id": "#1", "total": 100.0, "items": []},
        {"id": "#1", "order_date": "not a date", "items": []},
        {"id": "#1", "order_date": "2025-09-01", "items": "nope"},
        {"id": "#1", "order_date": "2025-09-01", "items": [], "total": "nan"},
        {"id": "#1", "order_date": "2025-09-01", "items": [], "total": float("inf")},
    ])
    def test_malformed_order_is_not_eligible(self, evaluator, rules, order):
        result = evaluate(evaluator, order, rules)

        assert result.is_eligible is False
        assert result.auto_approve is False
        assert result.reasons == ["Pedido inválido"]

    def test_nan_total_is_an_invalid_order(self, evaluator, rules):
        order = make_order()
        order["total"] = float("nan")

        result = evaluate(evaluator, order, rules)

        assert result.is_eligible is False
        assert result.reasons == ["Pedido inválido"]

    def test_total_defaults_to_item_sum(self):
        order = Order.from_dict({
            "id": "#1",
            "order_date": "2025-09-01",
            "items": [{"id": "1", "name": "A", "category": "X", "price": 40.0, "quantity": 2}],
        })
        assert order.total == 80.0


class TestReviewTriggers:
    def test_missing_photos_routes_to_review(self, evaluator, rules):
        rules.require_photos_for_defect = True

        result = evaluate(evaluator, make_order(), rules, photos=False)

        assert result.is_eligible is True
        assert result.auto_approve is False
        assert any("Fotos obrigatórias" in w for w in result.warnings)

    def test_photos_supplied_keeps_auto_approval(self, evaluator, rules):
        rules.require_photos_for_defect = True

        result = evaluate(evaluator, make_order(), rules, photos=True)

        assert result.auto_approve is True
        assert result.warnings == []

    def test_subjective_reason_routes_to_review(self, evaluator, rules):
        result = evaluate(evaluator, make_order(), rules, reason="Não gostei do produto")

        assert result.is_eligible is True
        assert result.auto_approve is False

    def test_old_exchange_needs_manual_approval(self, evaluator, rules):
        result = evaluate(evaluator, make_order(delivered_days_ago=8), rules, request_type="exchange")

        assert result.is_eligible is True
        assert result.auto_approve is False
        assert "Trocas com mais de 7 dias requerem aprovação manual" in result.warnings

    def test_recent_exchange_is_auto_approved(self, evaluator, rules):
        result = evaluate(evaluator, make_order(delivered_days_ago=5), rules, request_type="Troca")
        assert result.auto_approve is True

    def test_store_without_auto_approval(self, evaluator, rules):
        rules.auto_approve = False

        result = evaluate(evaluator, make_order(), rules)

        assert result.is_eligible is True
        assert result.auto_approve is False


def test_auto_approve_always_implies_eligible(evaluator):
    orders = [
        make_order(delivered_days_ago=d, total=t)
        for d in (1, 7, 15, 16, 40)
        for t in (10.0, 50.0, 289.90)
    ]
    for order in orders:
        for auto in (True, False):
            for photos in (True, False):
                rules = EligibilityRules(auto_approve=auto, require_photos_for_defect=True)
                result = evaluate(evaluator, order, rules, photos=photos)
                assert not result.auto_approve or result.is_eligible


def test_unknown_request_type_is_a_validation_error(evaluator, rules):
    with pytest.raises(IntakeValidationError):
        evaluate(evaluator, make_order(), rules, request_type="gift")


def test_request_type_accepts_portuguese_labels():
    assert RequestType.parse("Devolução") == RequestType.RETURN
    assert RequestType.parse("troca") == RequestType.EXCHANGE


def test_elapsed_days_accepts_naive_now():
    order = Order.from_dict(make_order(delivered_days_ago=3))
    assert elapsed_days(order, NOW.replace(tzinfo=None)) == 3
