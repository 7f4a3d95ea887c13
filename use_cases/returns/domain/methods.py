"""
Refund Method Resolver.

Decides which settlement methods a store offers and what each one pays.
Pure functions of RefundConfig; the requested amount is never modified,
only derived values are returned.
"""

import re
from typing import List, Optional

from core.domain import round_money

from .models import PixKeyType, RefundConfig, RefundMethod


# Display order of methods on the intake form
METHOD_ORDER = [
    RefundMethod.CARD,
    RefundMethod.PIX,
    RefundMethod.BOLETO,
    RefundMethod.VOUCHER,
]

_PIX_KEY_PATTERNS = {
    PixKeyType.CPF: re.compile(r"^\d{11}$"),
    PixKeyType.CNPJ: re.compile(r"^\d{14}$"),
    PixKeyType.EMAIL: re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$"),
    PixKeyType.PHONE: re.compile(r"^\+?\d{10,13}$"),
}


class RefundMethodResolver:
    """Resolves enabled methods and settlement amounts for a store."""

    @staticmethod
    def resolve_methods(config: RefundConfig) -> List[RefundMethod]:
        """Methods flagged as enabled, in display order."""
        return [method for method in METHOD_ORDER if config.is_enabled(method)]

    @staticmethod
    def pix_key_type(config: RefundConfig) -> Optional[PixKeyType]:
        """Accepted PIX key format, or None when PIX is not offered."""
        return config.pix_key_type if config.enable_pix else None

    @staticmethod
    def apply_voucher_bonus(amount: float, config: RefundConfig) -> float:
        """
        Voucher value for a refund of amount.

        Adds voucher_bonus percent when the store prioritizes vouchers;
        otherwise returns the amount at face value.
        """
        if not config.prioritize_voucher:
            return round_money(amount)
        return round_money(amount * (1 + config.voucher_bonus / 100))

    @classmethod
    def settlement_amount(cls, amount: float, method: RefundMethod, config: RefundConfig) -> float:
        """What the customer actually receives through method."""
        if method == RefundMethod.VOUCHER:
            return cls.apply_voucher_bonus(amount, config)
        return round_money(amount)

    @staticmethod
    def validate_pix_key(key: Optional[str], key_type: PixKeyType) -> bool:
        """Check a PIX key against the store's accepted format."""
        if not key or not key.strip():
            return False
        key = key.strip()
        if key_type == PixKeyType.ANY:
            return True
        if key_type in (PixKeyType.CPF, PixKeyType.CNPJ, PixKeyType.PHONE):
            # Punctuation is common in typed documents and phone numbers
            key = re.sub(r"[.\-/()\s]", "", key)
        return bool(_PIX_KEY_PATTERNS[key_type].match(key))
