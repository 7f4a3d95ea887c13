"""
Returns Orchestration Services.

Wires the pure domain (evaluator, workflows, resolver, builders) to the
repositories and the notification composer. Every mutating operation
follows the same sequence:

    load -> decide (pure) -> persist with version check -> notify

A rejected decision raises before anything is persisted.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from core.data import (
    ConcurrencyConflict,
    OrderDirectory,
    QueryOptions,
    QueryResult,
    Repository,
)
from core.domain import NotEligible
from core.orchestration import OperationOutcome, RequestService
from core.presentation import Notifier

from .domain.methods import RefundMethodResolver
from .domain.models import (
    Actor,
    CustomerSnapshot,
    EligibilityResult,
    EligibilityRules,
    LineItem,
    Order,
    RefundConfig,
    RefundPayment,
    RefundRequest,
    ReturnRequest,
    StoreSettings,
    new_id,
)
from .domain.policies import EXCHANGE_AUTO_APPROVE_DAYS, EligibilityEvaluator
from .domain.services import (
    CustomerHistory,
    RefundRequestBuilder,
    ReturnRequestBuilder,
    risk_category,
)
from .domain.workflow import (
    RefundAction,
    RefundWorkflow,
    ReturnWorkflow,
    TransitionContext,
)
from .presentation import ReturnsNotificationComposer

logger = logging.getLogger(__name__)


def _check_version(entity: Any, expected_version: Optional[int]) -> None:
    """Fail early when the caller acted on a stale copy."""
    if expected_version is not None and expected_version != entity.version:
        raise ConcurrencyConflict(entity.id, expected_version, entity.version)


# =============================================================================
# STORE SETTINGS
# =============================================================================

@dataclass
class StoreDefaults:
    """Policy a store gets until its settings are saved for the first time."""
    eligibility_rules: EligibilityRules = field(default_factory=EligibilityRules)
    refund_config: RefundConfig = field(default_factory=RefundConfig)
    currency: str = "BRL"
    exchange_auto_approve_days: int = EXCHANGE_AUTO_APPROVE_DAYS

    def for_store(self, store_id: str) -> StoreSettings:
        return StoreSettings(
            store_id=store_id,
            eligibility_rules=copy.deepcopy(self.eligibility_rules),
            refund_config=copy.deepcopy(self.refund_config),
        )

    @classmethod
    def from_settings(cls, settings) -> "StoreDefaults":
        """Build defaults from the application Settings object."""
        return cls(
            eligibility_rules=EligibilityRules(
                window_days=settings.default_window_days,
                minimum_value=settings.default_minimum_value,
                require_photos_for_defect=settings.default_require_photos,
                auto_approve=settings.default_auto_approve,
            ),
            refund_config=RefundConfig(auto_approve_limit=settings.default_auto_approve_limit),
            currency=settings.default_currency,
            exchange_auto_approve_days=settings.exchange_auto_approve_days,
        )


class StoreSettingsService(RequestService[StoreSettings]):
    """Reads and updates per-store eligibility rules and refund config."""

    entity_name = "StoreSettings"

    def __init__(
        self,
        repository: Repository[StoreSettings],
        composer: Optional[ReturnsNotificationComposer] = None,
        notifier: Optional[Notifier] = None,
        defaults: Optional[StoreDefaults] = None,
    ):
        super().__init__(repository, composer or ReturnsNotificationComposer(), notifier)
        self.defaults = defaults or StoreDefaults()

    def get_settings(self, store_id: str) -> StoreSettings:
        """Saved settings for the store, or the defaults (version 0)."""
        return self.repository.get_by_id(store_id) or self.defaults.for_store(store_id)

    def update(
        self,
        store_id: str,
        eligibility_rules: EligibilityRules,
        refund_config: RefundConfig,
        expected_version: Optional[int] = None,
    ) -> OperationOutcome[StoreSettings]:
        """
        Replace a store's settings.

        Args:
            expected_version: Version the editor loaded; None overwrites
                whatever is stored.
        """
        def run() -> OperationOutcome[StoreSettings]:
            current = self.repository.get_by_id(store_id)
            updated = StoreSettings(
                store_id=store_id,
                eligibility_rules=eligibility_rules,
                refund_config=refund_config,
                version=current.version if current else 0,
            )
            if current is None:
                if expected_version:
                    raise ConcurrencyConflict(store_id, expected_version, None)
                saved = self.repository.save(updated)
            else:
                version = current.version if expected_version is None else expected_version
                saved = self.repository.save(updated, version)
            logger.info("Store %s settings saved (version %d)", store_id, saved.version)
            return self._succeed(saved, self.composer.compose_settings_saved(saved))

        return self._guard("update", run)

    def refund_methods(self, store_id: str) -> Dict[str, Any]:
        """Settlement options a store offers on its intake form."""
        config = self.get_settings(store_id).refund_config
        pix_key_type = RefundMethodResolver.pix_key_type(config)
        return {
            "methods": [
                {"method": m.value, "label": m.label}
                for m in RefundMethodResolver.resolve_methods(config)
            ],
            "pix_key_type": pix_key_type.value if pix_key_type else None,
            "prioritize_voucher": config.prioritize_voucher,
            "voucher_bonus": config.voucher_bonus,
        }


# =============================================================================
# RETURNS / EXCHANGES
# =============================================================================

class ReturnRequestService(RequestService[ReturnRequest]):
    """
    Service for return and exchange requests.

    Agents create requests directly; customers go through the portal,
    where the order is looked up and eligibility is evaluated first.
    """

    entity_name = "ReturnRequest"

    def __init__(
        self,
        repository: Repository[ReturnRequest],
        settings_service: StoreSettingsService,
        orders: OrderDirectory,
        composer: Optional[ReturnsNotificationComposer] = None,
        notifier: Optional[Notifier] = None,
    ):
        super().__init__(repository, composer or ReturnsNotificationComposer(), notifier)
        self.settings_service = settings_service
        self.orders = orders
        defaults = settings_service.defaults
        self.evaluator = EligibilityEvaluator(defaults.exchange_auto_approve_days)
        self.workflow = ReturnWorkflow()
        self.builder = ReturnRequestBuilder()
        self.currency = defaults.currency

    def list(
        self,
        store_id: str,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> QueryResult[ReturnRequest]:
        """Requests of a store, newest first."""
        return self.repository.find(QueryOptions(
            limit=limit,
            offset=offset,
            filters={"store_id": store_id, "status": status},
        ))

    def evaluate_eligibility(
        self,
        store_id: str,
        request_type: Any,
        declared_reason: Optional[str] = None,
        has_photo_evidence: bool = False,
        order: Optional[Dict[str, Any]] = None,
        order_code: Optional[str] = None,
        email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EligibilityResult:
        """
        Evaluate an order against the store's rules without creating anything.

        The order is either given as a snapshot or looked up by code and
        e-mail; an unknown order evaluates as invalid.
        """
        if order is None and order_code:
            order = self.orders.find_for_customer(order_code, email or "")
        rules = self.settings_service.get_settings(store_id).eligibility_rules
        return self.evaluator.evaluate(
            order=order,
            rules=rules,
            request_type=request_type,
            declared_reason=declared_reason,
            has_photo_evidence=has_photo_evidence,
            now=now,
        )

    def create_internal(
        self,
        store_id: str,
        order_code: str,
        customer: CustomerSnapshot,
        request_type: Any,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        amount: float = 0.0,
        attachments: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> OperationOutcome[ReturnRequest]:
        """Agent-entered request; starts as Nova and skips eligibility."""
        def run() -> OperationOutcome[ReturnRequest]:
            request = self.builder.execute(
                store_id=store_id,
                order_code=order_code,
                customer=customer,
                request_type=request_type,
                reason=reason,
                notes=notes,
                amount=amount,
                attachments=attachments,
                currency=self.currency,
                now=now,
            )
            saved = self.repository.save(request)
            logger.info("Return request %s created for order %s", saved.code, saved.order_code)
            return self._succeed(saved, self.composer.compose_return_created(saved))

        return self._guard("create", run)

    def submit_public(
        self,
        store_id: str,
        order_code: str,
        email: str,
        request_type: Any,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        attachments: Sequence[str] = (),
        has_photo_evidence: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> OperationOutcome[ReturnRequest]:
        """
        Customer portal submission.

        Raises:
            NotEligible: The order fails a hard check; nothing is created
        """
        def run() -> OperationOutcome[ReturnRequest]:
            raw_order = self.orders.find_for_customer(order_code, email)
            result = self.evaluate_eligibility(
                store_id=store_id,
                request_type=request_type,
                declared_reason=reason,
                has_photo_evidence=bool(attachments) if has_photo_evidence is None else has_photo_evidence,
                order=raw_order,
                now=now,
            )
            if not result.is_eligible:
                raise NotEligible(result.reasons)

            order = Order.from_dict(raw_order)
            request = self.builder.execute(
                store_id=store_id,
                order_code=order.id,
                customer=CustomerSnapshot(name=order.customer_name, email=order.email),
                request_type=request_type,
                reason=reason,
                notes=notes,
                amount=order.total,
                attachments=attachments,
                eligibility=result,
                origin="public",
                currency=self.currency,
                now=now,
            )
            saved = self.repository.save(request)
            logger.info(
                "Portal request %s for order %s (%s)",
                saved.code, saved.order_code, "auto-approved" if saved.auto_approved else "review",
            )
            return self._succeed(saved, self.composer.compose_return_submitted(saved))

        return self._guard("submit", run)

    def available_actions(self, request: ReturnRequest):
        return self.workflow.available_actions(request.status)

    def perform(
        self,
        id: str,
        action: Any,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
        actor: Actor = Actor.AGENT,
        now: Optional[datetime] = None,
    ) -> OperationOutcome[ReturnRequest]:
        """Apply a workflow action and persist the result."""
        def run() -> OperationOutcome[ReturnRequest]:
            request = self.get(id)
            _check_version(request, expected_version)
            result = self.workflow.transition(
                request.status, action, TransitionContext(reason=reason, actor=actor, now=now),
            )
            updated = request.with_event(result.next_status, result.event, **result.changes)
            saved = self.repository.save(updated, request.version)
            logger.info("Return %s: %s -> %s", saved.code, request.status.value, saved.status.value)
            return self._succeed(saved, self.composer.compose_return_status_changed(saved))

        return self._guard("perform", run)


# =============================================================================
# REFUNDS
# =============================================================================

class RefundRequestService(RequestService[RefundRequest]):
    """
    Service for refund requests.

    Intake validates against the store's refund config and scores risk;
    marking a refund paid records the settlement at the method's amount.
    """

    entity_name = "RefundRequest"

    def __init__(
        self,
        repository: Repository[RefundRequest],
        settings_service: StoreSettingsService,
        composer: Optional[ReturnsNotificationComposer] = None,
        notifier: Optional[Notifier] = None,
    ):
        super().__init__(repository, composer or ReturnsNotificationComposer(), notifier)
        self.settings_service = settings_service
        self.workflow = RefundWorkflow()
        self.builder = RefundRequestBuilder()
        self.resolver = RefundMethodResolver()
        self.currency = settings_service.defaults.currency

    def list(
        self,
        store_id: str,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> QueryResult[RefundRequest]:
        """Refunds of a store, newest first."""
        return self.repository.find(QueryOptions(
            limit=limit,
            offset=offset,
            filters={"store_id": store_id, "status": status},
        ))

    def create(
        self,
        store_id: str,
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
        now: Optional[datetime] = None,
    ) -> OperationOutcome[RefundRequest]:
        """Validate, score and open a refund request."""
        def run() -> OperationOutcome[RefundRequest]:
            config = self.settings_service.get_settings(store_id).refund_config
            request = self.builder.execute(
                store_id=store_id,
                config=config,
                order_code=order_code,
                customer=customer,
                amount=amount,
                method=method,
                items=items,
                reason=reason,
                notes=notes,
                attachments=attachments,
                pix_key=pix_key,
                customer_history=customer_history,
                origin=origin,
                currency=self.currency,
                now=now,
            )
            saved = self.repository.save(request)
            logger.info(
                "Refund %s created: R$ %.2f, risk %d (%s), status %s",
                saved.code, saved.requested_amount, saved.risk_score,
                risk_category(saved.risk_score).label, saved.status.value,
            )
            return self._succeed(saved, self.composer.compose_refund_created(saved))

        return self._guard("create", run)

    def available_actions(self, request: RefundRequest):
        return self.workflow.available_actions(request.status)

    def perform(
        self,
        id: str,
        action: Any,
        final_amount: Optional[float] = None,
        reason: Optional[str] = None,
        transaction_id: Optional[str] = None,
        voucher_code: Optional[str] = None,
        expected_version: Optional[int] = None,
        actor: Actor = Actor.AGENT,
        now: Optional[datetime] = None,
    ) -> OperationOutcome[RefundRequest]:
        """Apply a workflow action and persist the result."""
        def run() -> OperationOutcome[RefundRequest]:
            request = self.get(id)
            _check_version(request, expected_version)
            context = TransitionContext(
                reason=reason,
                final_amount=final_amount,
                requested_amount=request.requested_amount,
                method=request.method,
                transaction_id=transaction_id,
                voucher_code=voucher_code,
                actor=actor,
                now=now,
            )
            result = self.workflow.transition(request.status, action, context)
            changes = dict(result.changes)

            if RefundAction(action) == RefundAction.MARK_PAID:
                config = self.settings_service.get_settings(request.store_id).refund_config
                payment = RefundPayment(
                    id=new_id("PAY"),
                    method=request.method,
                    amount=self.resolver.settlement_amount(request.payable_amount, request.method, config),
                    created_at=result.event.timestamp,
                    transaction_id=changes.get("transaction_id"),
                    voucher_code=changes.get("voucher_code"),
                )
                changes["payments"] = request.payments + (payment,)

            updated = request.with_event(result.next_status, result.event, **changes)
            saved = self.repository.save(updated, request.version)
            logger.info("Refund %s: %s -> %s", saved.code, request.status.value, saved.status.value)
            return self._succeed(saved, self.composer.compose_refund_status_changed(saved))

        return self._guard("perform", run)
