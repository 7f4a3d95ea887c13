"""
HTTP API for returns, exchanges and refunds.

Thin FastAPI layer: parse the body, call one service operation, return
the entity with its available actions and the notification. Errors are
mapped to HTTP responses by the handlers registered in main.py.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from .container import ReturnsServices
from .domain.models import (
    Actor,
    CustomerSnapshot,
    EligibilityRules,
    LineItem,
    RefundConfig,
)
from .domain.services import CustomerHistory

router = APIRouter(prefix="/api", tags=["returns"])


def get_services(request: Request) -> ReturnsServices:
    return request.app.state.returns_services


# =============================================================================
# REQUEST BODIES
# =============================================================================

class CustomerBody(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_domain(self) -> CustomerSnapshot:
        return CustomerSnapshot(name=self.name, email=self.email, phone=self.phone)


class LineItemBody(BaseModel):
    id: str
    name: str
    category: str = ""
    price: float
    quantity: int = 1

    def to_domain(self) -> LineItem:
        return LineItem(id=self.id, name=self.name, category=self.category, price=self.price, quantity=self.quantity)


class CustomerHistoryBody(BaseModel):
    total_orders: int = 0
    total_refunds: int = 0
    account_age_days: int = 0


class SettingsBody(BaseModel):
    eligibility_rules: Dict[str, Any] = Field(default_factory=dict)
    refund_config: Dict[str, Any] = Field(default_factory=dict)
    version: Optional[int] = None


class EligibilityBody(BaseModel):
    request_type: str
    declared_reason: Optional[str] = None
    has_photo_evidence: bool = False
    order: Optional[Dict[str, Any]] = None
    order_code: Optional[str] = None
    email: Optional[str] = None


class ReturnCreateBody(BaseModel):
    order_code: str
    customer: CustomerBody
    type: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    amount: float = 0.0
    attachments: List[str] = Field(default_factory=list)


class PublicReturnBody(BaseModel):
    order_code: str
    email: str
    type: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    has_photo_evidence: Optional[bool] = None


class RefundCreateBody(BaseModel):
    order_code: str
    customer: CustomerBody
    amount: float
    method: str
    items: List[LineItemBody] = Field(default_factory=list)
    reason: Optional[str] = None
    notes: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    pix_key: Optional[str] = None
    customer_history: Optional[CustomerHistoryBody] = None
    origin: str = "internal"


class ActionBody(BaseModel):
    reason: Optional[str] = None
    final_amount: Optional[float] = None
    transaction_id: Optional[str] = None
    voucher_code: Optional[str] = None
    version: Optional[int] = None
    actor: Actor = Actor.AGENT


def _present(service: Any, outcome_or_entity: Any) -> Dict[str, Any]:
    """Serialize an outcome (or bare entity) plus its badges and the actions now legal."""
    if hasattr(outcome_or_entity, "notification"):
        entity = outcome_or_entity.entity
        payload = outcome_or_entity.to_dict()
    else:
        entity = outcome_or_entity
        payload = {"data": entity.to_dict(), "notification": None}
    payload["data"].update(service.composer.compose_badges(entity))
    payload["data"]["available_actions"] = [a.value for a in service.available_actions(entity)]
    return payload


# =============================================================================
# STORE SETTINGS
# =============================================================================

@router.get("/stores/{store_id}/settings")
def get_settings(store_id: str, services: ReturnsServices = Depends(get_services)):
    return services.settings.get_settings(store_id).to_dict()


@router.put("/stores/{store_id}/settings")
def update_settings(store_id: str, body: SettingsBody, services: ReturnsServices = Depends(get_services)):
    outcome = services.settings.update(
        store_id,
        EligibilityRules.from_dict(body.eligibility_rules),
        RefundConfig.from_dict(body.refund_config),
        expected_version=body.version,
    )
    return outcome.to_dict()


@router.get("/stores/{store_id}/refund-methods")
def get_refund_methods(store_id: str, services: ReturnsServices = Depends(get_services)):
    return services.settings.refund_methods(store_id)


@router.post("/stores/{store_id}/eligibility")
def check_eligibility(store_id: str, body: EligibilityBody, services: ReturnsServices = Depends(get_services)):
    result = services.returns.evaluate_eligibility(
        store_id=store_id,
        request_type=body.request_type,
        declared_reason=body.declared_reason,
        has_photo_evidence=body.has_photo_evidence,
        order=body.order,
        order_code=body.order_code,
        email=body.email,
    )
    return result.to_dict()


# =============================================================================
# RETURNS / EXCHANGES
# =============================================================================

@router.get("/stores/{store_id}/returns")
def list_returns(
    store_id: str,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    services: ReturnsServices = Depends(get_services),
):
    result = services.returns.list(store_id, status=status, limit=limit, offset=offset)
    return {
        "data": [r.to_dict() for r in result.data],
        "total_count": result.total_count,
        "has_more": result.has_more,
        "next_offset": result.next_offset,
    }


@router.post("/stores/{store_id}/returns", status_code=201)
def create_return(store_id: str, body: ReturnCreateBody, services: ReturnsServices = Depends(get_services)):
    outcome = services.returns.create_internal(
        store_id=store_id,
        order_code=body.order_code,
        customer=body.customer.to_domain(),
        request_type=body.type,
        reason=body.reason,
        notes=body.notes,
        amount=body.amount,
        attachments=body.attachments,
    )
    return _present(services.returns, outcome)


@router.post("/stores/{store_id}/returns/public", status_code=201)
def submit_public_return(store_id: str, body: PublicReturnBody, services: ReturnsServices = Depends(get_services)):
    outcome = services.returns.submit_public(
        store_id=store_id,
        order_code=body.order_code,
        email=body.email,
        request_type=body.type,
        reason=body.reason,
        notes=body.notes,
        attachments=body.attachments,
        has_photo_evidence=body.has_photo_evidence,
    )
    return _present(services.returns, outcome)


@router.get("/returns/{request_id}")
def get_return(request_id: str, services: ReturnsServices = Depends(get_services)):
    request = services.returns.get(request_id)
    return _present(services.returns, request)


@router.post("/returns/{request_id}/actions/{action}")
def perform_return_action(
    request_id: str,
    action: str,
    body: Optional[ActionBody] = None,
    services: ReturnsServices = Depends(get_services),
):
    body = body or ActionBody()
    outcome = services.returns.perform(
        request_id,
        action,
        reason=body.reason,
        expected_version=body.version,
        actor=body.actor,
    )
    return _present(services.returns, outcome)


# =============================================================================
# REFUNDS
# =============================================================================

@router.get("/stores/{store_id}/refunds")
def list_refunds(
    store_id: str,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    services: ReturnsServices = Depends(get_services),
):
    result = services.refunds.list(store_id, status=status, limit=limit, offset=offset)
    return {
        "data": [r.to_dict() for r in result.data],
        "total_count": result.total_count,
        "has_more": result.has_more,
        "next_offset": result.next_offset,
    }


@router.post("/stores/{store_id}/refunds", status_code=201)
def create_refund(store_id: str, body: RefundCreateBody, services: ReturnsServices = Depends(get_services)):
    history = body.customer_history
    outcome = services.refunds.create(
        store_id=store_id,
        order_code=body.order_code,
        customer=body.customer.to_domain(),
        amount=body.amount,
        method=body.method,
        items=[item.to_domain() for item in body.items],
        reason=body.reason,
        notes=body.notes,
        attachments=body.attachments,
        pix_key=body.pix_key,
        customer_history=CustomerHistory(**history.model_dump()) if history else None,
        origin=body.origin,
    )
    return _present(services.refunds, outcome)


@router.get("/refunds/{request_id}")
def get_refund(request_id: str, services: ReturnsServices = Depends(get_services)):
    request = services.refunds.get(request_id)
    return _present(services.refunds, request)


@router.post("/refunds/{request_id}/actions/{action}")
def perform_refund_action(
    request_id: str,
    action: str,
    body: Optional[ActionBody] = None,
    services: ReturnsServices = Depends(get_services),
):
    body = body or ActionBody()
    outcome = services.refunds.perform(
        request_id,
        action,
        final_amount=body.final_amount,
        reason=body.reason,
        transaction_id=body.transaction_id,
        voucher_code=body.voucher_code,
        expected_version=body.version,
        actor=body.actor,
    )
    return _present(services.refunds, outcome)
