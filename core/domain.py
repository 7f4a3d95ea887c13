"""
Domain Layer Base Classes.

The domain layer contains pure business logic with no external dependencies.
This makes business rules:
- Easy to test (no mocking needed)
- Reusable across the HTTP API, scripts and background jobs
- Clear and self-documenting

Every policy receives its configuration as an explicit argument; nothing
in this layer reads settings or the data store.

Example Usage:
    class MinimumValuePolicy(PolicyEngine):
        def evaluate(self, context: dict) -> PolicyDecision:
            # Pure business logic here
            ...
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum


class PolicyResult(Enum):
    """Result of a policy evaluation."""
    APPROVED = "approved"
    DENIED = "denied"
    REQUIRES_REVIEW = "requires_review"


@dataclass
class PolicyDecision:
    """
    The outcome of a policy evaluation.

    Attributes:
        result: The policy decision result
        reason: Human-readable explanation
        metadata: Additional context for the decision
    """
    result: PolicyResult
    reason: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_denied(self) -> bool:
        return self.result == PolicyResult.DENIED

    @property
    def requires_review(self) -> bool:
        return self.result == PolicyResult.REQUIRES_REVIEW


class PolicyEngine(ABC):
    """
    Abstract base class for policy engines.

    A PolicyEngine encapsulates a set of business rules that can be
    evaluated against a context to produce a decision.

    Example:
        class ReturnWindowPolicy(PolicyEngine):
            def evaluate(self, context: dict) -> PolicyDecision:
                if context["elapsed_days"] > context["window_days"]:
                    return PolicyDecision(
                        result=PolicyResult.DENIED,
                        reason="Prazo excedido"
                    )
                return PolicyDecision(
                    result=PolicyResult.APPROVED,
                    reason="Dentro do prazo"
                )
    """

    @abstractmethod
    def evaluate(self, context: Dict[str, Any]) -> PolicyDecision:
        """
        Evaluate the policy against the given context.

        Args:
            context: Dictionary containing all data needed for evaluation

        Returns:
            PolicyDecision with the result and explanation
        """
        pass


class DomainService(ABC):
    """
    Abstract base class for domain services.

    Domain services contain business logic that doesn't belong to a single entity.
    They orchestrate multiple policies and entities to perform complex operations.

    Key principles:
    - No I/O operations (database, network, file)
    - All dependencies passed as parameters
    - Return domain objects, not DTOs
    """

    @abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """
        Execute the domain service operation.

        Implementation should contain pure business logic only.
        """
        pass


@dataclass
class ValidationError:
    """A validation error with field and message."""
    field: str
    message: str
    code: str = "invalid"


class Validator(ABC):
    """
    Abstract base class for validators.

    Validators check that data meets business requirements before processing.
    """

    @abstractmethod
    def validate(self, data: Dict[str, Any]) -> List[ValidationError]:
        """
        Validate the data and return any errors.

        Args:
            data: The data to validate

        Returns:
            List of ValidationError objects (empty if valid)
        """
        pass

    def is_valid(self, data: Dict[str, Any]) -> bool:
        """Check if data is valid."""
        return len(self.validate(data)) == 0


# =============================================================================
# DOMAIN ERRORS
# =============================================================================

class DomainError(ValueError):
    """
    Base class for business-rule failures.

    These are validation failures, never system faults: the caller surfaces
    the message and leaves persisted state untouched.
    """
    code = "domain_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidOrder(DomainError):
    """The order snapshot is missing or malformed."""
    code = "invalid_order"


class IllegalTransition(DomainError):
    """The requested action is not permitted from the current status."""
    code = "illegal_transition"


class InvalidAmount(DomainError):
    """An approval amount is not positive or exceeds the requested amount."""
    code = "invalid_amount"


class MissingEvidence(DomainError):
    """A required reason, transaction id or voucher code was not supplied."""
    code = "missing_evidence"


class NotEligible(DomainError):
    """An order does not qualify for a return or exchange under store policy."""
    code = "not_eligible"

    def __init__(self, reasons: List[str]):
        self.reasons = list(reasons)
        super().__init__(self.reasons[0] if self.reasons else "Pedido não elegível")


class IntakeValidationError(DomainError):
    """A new request failed field validation."""
    code = "validation_failed"

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        super().__init__("; ".join(e.message for e in errors))


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO format date string (or date/datetime) safely."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        if "Z" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except (ValueError, TypeError):
        return None


def round_money(value: float) -> float:
    """Round a monetary value to two decimal places (half up)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
