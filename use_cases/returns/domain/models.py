"""
Returns Domain Model.

Plain dataclasses for orders, store policy, requests and their audit
timeline. Status vocabularies are closed enums: a refund status can
never be stored on a return and vice versa.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import math
import uuid

from core.domain import (
    IntakeValidationError,
    InvalidOrder,
    ValidationError,
    parse_date,
    round_money,
    utc_now,
)


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in data (snake_case or camelCase)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


# =============================================================================
# ENUMERATIONS
# =============================================================================

class RequestType(str, Enum):
    """Kind of request a customer or agent can open."""
    EXCHANGE = "exchange"
    RETURN = "return"
    REFUND = "refund"

    @property
    def label(self) -> str:
        return {"exchange": "Troca", "return": "Devolução", "refund": "Reembolso"}[self.value]

    @classmethod
    def parse(cls, value: Any) -> "RequestType":
        """Accept enum values or the Portuguese labels used by the portal."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {
            "troca": cls.EXCHANGE,
            "devolução": cls.RETURN,
            "devolucao": cls.RETURN,
            "reembolso": cls.REFUND,
        }
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            raise IntakeValidationError([
                ValidationError("type", f"Tipo de solicitação inválido: {value}", "invalid_choice")
            ]) from None


class Actor(str, Enum):
    """Who caused a timeline event."""
    SYSTEM = "system"
    CUSTOMER = "customer"
    AGENT = "agent"


class ReasonCategory(Enum):
    """Reason buckets that carry their own time window."""
    REGRET = "regret"
    DEFECT = "defect"
    OTHER = "other"

    @classmethod
    def classify(cls, reason: Optional[str]) -> "ReasonCategory":
        text = (reason or "").lower()
        if any(word in text for word in ("arrependimento", "não gostei", "nao gostei", "desisti")):
            return cls.REGRET
        if any(word in text for word in ("defeito", "danificad", "quebrad", "avaria")):
            return cls.DEFECT
        return cls.OTHER


class RefundMethod(str, Enum):
    """Settlement methods a refund can be paid through."""
    CARD = "CARD"
    PIX = "PIX"
    BOLETO = "BOLETO"
    VOUCHER = "VOUCHER"

    @property
    def label(self) -> str:
        return {
            "CARD": "Cartão",
            "PIX": "PIX",
            "BOLETO": "Boleto",
            "VOUCHER": "Vale-compra",
        }[self.value]

    @property
    def requires_transaction_id(self) -> bool:
        return self is not RefundMethod.VOUCHER


class PixKeyType(str, Enum):
    """Accepted PIX key formats."""
    ANY = "any"
    CPF = "cpf"
    CNPJ = "cnpj"
    EMAIL = "email"
    PHONE = "phone"


class RefundStatus(str, Enum):
    """Refund flow statuses."""
    SOLICITADO = "SOLICITADO"
    EM_ANALISE = "EM_ANALISE"
    APROVADO = "APROVADO"
    PROCESSANDO = "PROCESSANDO"
    CONCLUIDO = "CONCLUIDO"
    RECUSADO = "RECUSADO"

    @property
    def label(self) -> str:
        return _REFUND_LABELS[self]

    @property
    def is_terminal(self) -> bool:
        return self in REFUND_TERMINAL


class ReturnStatus(str, Enum):
    """Return/exchange flow statuses."""
    NOVA = "Nova"
    EM_ANALISE = "Em análise"
    APROVADA = "Aprovada"
    AGUARDANDO_POSTAGEM = "Aguardando postagem"
    RECEBIDA_EM_CD = "Recebida em CD"
    CONCLUIDA = "Concluída"
    RECUSADA = "Recusada"

    @property
    def label(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in RETURN_TERMINAL


_REFUND_LABELS = {
    RefundStatus.SOLICITADO: "Solicitado",
    RefundStatus.EM_ANALISE: "Em análise",
    RefundStatus.APROVADO: "Aprovado",
    RefundStatus.PROCESSANDO: "Processando",
    RefundStatus.CONCLUIDO: "Concluído",
    RefundStatus.RECUSADO: "Recusado",
}

# Canonical progression used by revert; rejection sits outside the line.
REFUND_FLOW: Tuple[RefundStatus, ...] = (
    RefundStatus.SOLICITADO,
    RefundStatus.EM_ANALISE,
    RefundStatus.APROVADO,
    RefundStatus.PROCESSANDO,
    RefundStatus.CONCLUIDO,
)
REFUND_TERMINAL = frozenset({RefundStatus.CONCLUIDO, RefundStatus.RECUSADO})

RETURN_FLOW: Tuple[ReturnStatus, ...] = (
    ReturnStatus.NOVA,
    ReturnStatus.EM_ANALISE,
    ReturnStatus.APROVADA,
    ReturnStatus.AGUARDANDO_POSTAGEM,
    ReturnStatus.RECEBIDA_EM_CD,
    ReturnStatus.CONCLUIDA,
)
RETURN_TERMINAL = frozenset({ReturnStatus.CONCLUIDA, ReturnStatus.RECUSADA})


# =============================================================================
# ORDER SNAPSHOT (read-only, supplied by the storefront)
# =============================================================================

@dataclass(frozen=True)
class LineItem:
    id: str
    name: str
    category: str
    price: float
    quantity: int = 1

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
        try:
            return cls(
                id=str(_pick(data, "id", "sku", default="")),
                name=str(_pick(data, "name", "title", default="")),
                category=str(_pick(data, "category", default="")),
                price=float(_pick(data, "price", "unit_price", default=0)),
                quantity=int(_pick(data, "quantity", "qty", default=1)),
            )
        except (TypeError, ValueError) as e:
            raise InvalidOrder(f"Item inválido: {e}") from e


@dataclass(frozen=True)
class Order:
    id: str
    email: str
    customer_name: str
    total: float
    items: Tuple[LineItem, ...]
    order_date: datetime
    delivery_date: Optional[datetime] = None

    @property
    def reference_date(self) -> datetime:
        """Date every day-window is counted from."""
        return self.delivery_date or self.order_date

    @property
    def categories(self) -> List[str]:
        return [item.category for item in self.items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "customer_name": self.customer_name,
            "total": self.total,
            "items": [item.to_dict() for item in self.items],
            "order_date": _iso(self.order_date),
            "delivery_date": _iso(self.delivery_date),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Order":
        """
        Build an order snapshot from storefront data.

        Raises:
            InvalidOrder: If the snapshot is missing or malformed
        """
        if not data:
            raise InvalidOrder("Pedido inválido")
        if not isinstance(data, dict):
            raise InvalidOrder("Pedido inválido")

        order_id = str(_pick(data, "id", "order_code", "orderCode", default="")).strip()
        if not order_id:
            raise InvalidOrder("Pedido sem identificador")

        order_date = parse_date(_pick(data, "order_date", "orderDate"))
        if order_date is None:
            raise InvalidOrder(f"Pedido {order_id} sem data válida")

        raw_items = _pick(data, "items", default=[])
        if not isinstance(raw_items, (list, tuple)):
            raise InvalidOrder(f"Pedido {order_id} com itens inválidos")
        items = tuple(LineItem.from_dict(item) for item in raw_items)

        raw_total = _pick(data, "total")
        try:
            total = float(raw_total) if raw_total is not None else sum(i.subtotal for i in items)
        except (TypeError, ValueError) as e:
            raise InvalidOrder(f"Pedido {order_id} com total inválido") from e
        if not math.isfinite(total):
            raise InvalidOrder(f"Pedido {order_id} com total inválido")

        return cls(
            id=order_id,
            email=str(_pick(data, "email", "customer_email", default="")),
            customer_name=str(_pick(data, "customer_name", "customerName", default="")),
            total=round_money(total),
            items=items,
            order_date=order_date,
            delivery_date=parse_date(_pick(data, "delivery_date", "deliveryDate")),
        )


# =============================================================================
# STORE POLICY
# =============================================================================

@dataclass
class EligibilityRules:
    """Per-store rules for return/exchange eligibility."""
    window_days: int = 15
    minimum_value: float = 50.0
    blocked_categories: List[str] = field(default_factory=list)
    require_photos_for_defect: bool = True
    auto_approve: bool = True
    regret_window_days: Optional[int] = None
    defect_window_days: Optional[int] = None

    def window_for(self, category: ReasonCategory) -> int:
        """Time window applied to a reason category."""
        if category == ReasonCategory.REGRET and self.regret_window_days is not None:
            return self.regret_window_days
        if category == ReasonCategory.DEFECT and self.defect_window_days is not None:
            return self.defect_window_days
        return self.window_days

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window_days": self.window_days,
            "minimum_value": self.minimum_value,
            "blocked_categories": list(self.blocked_categories),
            "require_photos_for_defect": self.require_photos_for_defect,
            "auto_approve": self.auto_approve,
            "regret_window_days": self.regret_window_days,
            "defect_window_days": self.defect_window_days,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EligibilityRules":
        blocked = _pick(data, "blocked_categories", "categoriasBloquadas", default=[])
        if isinstance(blocked, str):
            # Settings screens store the list as comma-separated text
            blocked = [c.strip() for c in blocked.split(",") if c.strip()]
        return cls(
            window_days=int(_pick(data, "window_days", "janelaDias", default=15)),
            minimum_value=float(_pick(data, "minimum_value", "valorMinimo", default=50.0)),
            blocked_categories=list(blocked),
            require_photos_for_defect=bool(_pick(data, "require_photos_for_defect", "exigirFotos", default=True)),
            auto_approve=bool(_pick(data, "auto_approve", "aprovarAuto", default=True)),
            regret_window_days=_optional_int(_pick(data, "regret_window_days", "arrependimentoDays")),
            defect_window_days=_optional_int(_pick(data, "defect_window_days", "defeitoDays")),
        )


@dataclass
class RefundConfig:
    """Per-store refund settlement configuration."""
    auto_approve_limit: float = 100.0
    prioritize_voucher: bool = False
    voucher_bonus: float = 0.0
    enable_card: bool = True
    enable_pix: bool = True
    enable_boleto: bool = True
    enable_voucher: bool = True
    pix_key_type: PixKeyType = PixKeyType.ANY

    def is_enabled(self, method: RefundMethod) -> bool:
        return {
            RefundMethod.CARD: self.enable_card,
            RefundMethod.PIX: self.enable_pix,
            RefundMethod.BOLETO: self.enable_boleto,
            RefundMethod.VOUCHER: self.enable_voucher,
        }[method]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auto_approve_limit": self.auto_approve_limit,
            "prioritize_voucher": self.prioritize_voucher,
            "voucher_bonus": self.voucher_bonus,
            "enable_card": self.enable_card,
            "enable_pix": self.enable_pix,
            "enable_boleto": self.enable_boleto,
            "enable_voucher": self.enable_voucher,
            "pix_key_type": self.pix_key_type.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefundConfig":
        return cls(
            auto_approve_limit=float(_pick(data, "auto_approve_limit", "autoApproveLimit", default=100.0)),
            prioritize_voucher=bool(_pick(data, "prioritize_voucher", "prioritizeVoucher", default=False)),
            voucher_bonus=float(_pick(data, "voucher_bonus", "voucherBonus", default=0.0)),
            enable_card=bool(_pick(data, "enable_card", "enableCard", default=True)),
            enable_pix=bool(_pick(data, "enable_pix", "enablePix", default=True)),
            enable_boleto=bool(_pick(data, "enable_boleto", "enableBoleto", default=True)),
            enable_voucher=bool(_pick(data, "enable_voucher", "enableVoucher", default=True)),
            pix_key_type=PixKeyType(_pick(data, "pix_key_type", "pixValidation", default="any")),
        )


@dataclass
class StoreSettings:
    store_id: str
    eligibility_rules: EligibilityRules = field(default_factory=EligibilityRules)
    refund_config: RefundConfig = field(default_factory=RefundConfig)
    version: int = 0

    @property
    def id(self) -> str:
        return self.store_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.store_id,
            "store_id": self.store_id,
            "eligibility_rules": self.eligibility_rules.to_dict(),
            "refund_config": self.refund_config.to_dict(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreSettings":
        return cls(
            store_id=data.get("store_id") or data["id"],
            eligibility_rules=EligibilityRules.from_dict(data.get("eligibility_rules") or {}),
            refund_config=RefundConfig.from_dict(data.get("refund_config") or {}),
            version=int(data.get("version", 0)),
        )


# =============================================================================
# DERIVED RESULTS
# =============================================================================

@dataclass
class EligibilityResult:
    """Outcome of an eligibility evaluation. Never persisted."""
    is_eligible: bool
    auto_approve: bool
    reasons: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    elapsed_days: Optional[int] = None
    window_days: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_eligible": self.is_eligible,
            "auto_approve": self.auto_approve,
            "reasons": list(self.reasons),
            "warnings": list(self.warnings),
            "elapsed_days": self.elapsed_days,
            "window_days": self.window_days,
        }


# =============================================================================
# AUDIT TIMELINE
# =============================================================================

@dataclass(frozen=True)
class TimelineEvent:
    """Append-only audit entry attached to a request."""
    id: str
    timestamp: datetime
    action: str
    description: str
    actor: Actor
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": _iso(self.timestamp),
            "action": self.action,
            "description": self.description,
            "actor": self.actor.value,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineEvent":
        return cls(
            id=data["id"],
            timestamp=parse_date(data["timestamp"]),
            action=data["action"],
            description=data.get("description", ""),
            actor=Actor(data.get("actor", "system")),
            from_status=data.get("from_status"),
            to_status=data.get("to_status"),
            reason=data.get("reason"),
        )


@dataclass(frozen=True)
class RefundPayment:
    """Settlement record written when a refund is marked paid."""
    id: str
    method: RefundMethod
    amount: float
    created_at: datetime
    transaction_id: Optional[str] = None
    voucher_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "method": self.method.value,
            "amount": self.amount,
            "created_at": _iso(self.created_at),
            "transaction_id": self.transaction_id,
            "voucher_code": self.voucher_code,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefundPayment":
        return cls(
            id=data["id"],
            method=RefundMethod(data["method"]),
            amount=float(data["amount"]),
            created_at=parse_date(data["created_at"]),
            transaction_id=data.get("transaction_id"),
            voucher_code=data.get("voucher_code"),
        )


# =============================================================================
# REQUEST AGGREGATES
# =============================================================================

@dataclass(frozen=True)
class CustomerSnapshot:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "email": self.email, "phone": self.phone}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomerSnapshot":
        return cls(name=data.get("name", ""), email=data.get("email"), phone=data.get("phone"))


@dataclass(frozen=True)
class ReturnRequest:
    """A return or exchange request."""
    id: str
    store_id: str
    code: str
    order_code: str
    customer: CustomerSnapshot
    type: RequestType
    status: ReturnStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    amount: float = 0.0
    currency: str = "BRL"
    attachments: Tuple[str, ...] = ()
    origin: str = "internal"
    auto_approved: bool = False
    rejection_reason: Optional[str] = None
    timeline: Tuple[TimelineEvent, ...] = ()
    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def with_event(self, status: ReturnStatus, event: TimelineEvent, **changes: Any) -> "ReturnRequest":
        """Copy of this request moved to status with event appended."""
        return replace(
            self,
            status=status,
            timeline=self.timeline + (event,),
            updated_at=event.timestamp,
            **changes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "code": self.code,
            "order_code": self.order_code,
            "customer": self.customer.to_dict(),
            "type": self.type.value,
            "status": self.status.value,
            "reason": self.reason,
            "notes": self.notes,
            "amount": self.amount,
            "currency": self.currency,
            "attachments": list(self.attachments),
            "origin": self.origin,
            "auto_approved": self.auto_approved,
            "rejection_reason": self.rejection_reason,
            "timeline": [e.to_dict() for e in self.timeline],
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReturnRequest":
        return cls(
            id=data["id"],
            store_id=data["store_id"],
            code=data.get("code", ""),
            order_code=data["order_code"],
            customer=CustomerSnapshot.from_dict(data.get("customer") or {}),
            type=RequestType.parse(data["type"]),
            status=ReturnStatus(data["status"]),
            reason=data.get("reason"),
            notes=data.get("notes"),
            amount=float(data.get("amount") or 0),
            currency=data.get("currency", "BRL"),
            attachments=tuple(data.get("attachments") or ()),
            origin=data.get("origin", "internal"),
            auto_approved=bool(data.get("auto_approved", False)),
            rejection_reason=data.get("rejection_reason"),
            timeline=tuple(TimelineEvent.from_dict(e) for e in data.get("timeline") or ()),
            version=int(data.get("version", 0)),
            created_at=parse_date(data.get("created_at")) or utc_now(),
            updated_at=parse_date(data.get("updated_at")) or utc_now(),
        )


@dataclass(frozen=True)
class RefundRequest:
    """A refund request and its settlement history."""
    id: str
    store_id: str
    code: str
    order_code: str
    customer: CustomerSnapshot
    requested_amount: float
    method: RefundMethod
    status: RefundStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    final_amount: Optional[float] = None
    currency: str = "BRL"
    attachments: Tuple[str, ...] = ()
    items: Tuple[LineItem, ...] = ()
    risk_score: int = 0
    origin: str = "internal"
    pix_key: Optional[str] = None
    transaction_id: Optional[str] = None
    voucher_code: Optional[str] = None
    rejection_reason: Optional[str] = None
    payments: Tuple[RefundPayment, ...] = ()
    timeline: Tuple[TimelineEvent, ...] = ()
    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def payable_amount(self) -> float:
        """Approved amount, or the requested amount if none was set."""
        return self.final_amount if self.final_amount is not None else self.requested_amount

    def with_event(self, status: RefundStatus, event: TimelineEvent, **changes: Any) -> "RefundRequest":
        """Copy of this request moved to status with event appended."""
        return replace(
            self,
            status=status,
            timeline=self.timeline + (event,),
            updated_at=event.timestamp,
            **changes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "code": self.code,
            "order_code": self.order_code,
            "customer": self.customer.to_dict(),
            "requested_amount": self.requested_amount,
            "final_amount": self.final_amount,
            "currency": self.currency,
            "method": self.method.value,
            "status": self.status.value,
            "reason": self.reason,
            "notes": self.notes,
            "attachments": list(self.attachments),
            "items": [i.to_dict() for i in self.items],
            "risk_score": self.risk_score,
            "origin": self.origin,
            "pix_key": self.pix_key,
            "transaction_id": self.transaction_id,
            "voucher_code": self.voucher_code,
            "rejection_reason": self.rejection_reason,
            "payments": [p.to_dict() for p in self.payments],
            "timeline": [e.to_dict() for e in self.timeline],
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefundRequest":
        final_amount = data.get("final_amount")
        return cls(
            id=data["id"],
            store_id=data["store_id"],
            code=data.get("code", ""),
            order_code=data["order_code"],
            customer=CustomerSnapshot.from_dict(data.get("customer") or {}),
            requested_amount=float(data["requested_amount"]),
            method=RefundMethod(data["method"]),
            status=RefundStatus(data["status"]),
            reason=data.get("reason"),
            notes=data.get("notes"),
            final_amount=float(final_amount) if final_amount is not None else None,
            currency=data.get("currency", "BRL"),
            attachments=tuple(data.get("attachments") or ()),
            items=tuple(LineItem.from_dict(i) for i in data.get("items") or ()),
            risk_score=int(data.get("risk_score", 0)),
            origin=data.get("origin", "internal"),
            pix_key=data.get("pix_key"),
            transaction_id=data.get("transaction_id"),
            voucher_code=data.get("voucher_code"),
            rejection_reason=data.get("rejection_reason"),
            payments=tuple(RefundPayment.from_dict(p) for p in data.get("payments") or ()),
            timeline=tuple(TimelineEvent.from_dict(e) for e in data.get("timeline") or ()),
            version=int(data.get("version", 0)),
            created_at=parse_date(data.get("created_at")) or utc_now(),
            updated_at=parse_date(data.get("updated_at")) or utc_now(),
        )
