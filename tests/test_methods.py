"""Tests for the refund method resolver."""

import pytest

from use_cases.returns.domain.methods import RefundMethodResolver
from use_cases.returns.domain.models import PixKeyType, RefundConfig, RefundMethod


def test_all_methods_enabled_in_display_order():
    assert RefundMethodResolver.resolve_methods(RefundConfig()) == [
        RefundMethod.CARD,
        RefundMethod.PIX,
        RefundMethod.BOLETO,
        RefundMethod.VOUCHER,
    ]


def test_disabled_methods_are_not_offered():
    config = RefundConfig(enable_pix=False, enable_boleto=False)
    assert RefundMethodResolver.resolve_methods(config) == [RefundMethod.CARD, RefundMethod.VOUCHER]


def test_pix_key_type_only_when_pix_enabled():
    assert RefundMethodResolver.pix_key_type(RefundConfig(pix_key_type=PixKeyType.CPF)) == PixKeyType.CPF
    assert RefundMethodResolver.pix_key_type(RefundConfig(enable_pix=False)) is None


def test_voucher_bonus_applied_when_vouchers_prioritized():
    config = RefundConfig(prioritize_voucher=True, voucher_bonus=10)
    assert RefundMethodResolver.apply_voucher_bonus(100.0, config) == 110.0


def test_voucher_bonus_rounds_to_cents():
    config = RefundConfig(prioritize_voucher=True, voucher_bonus=5)
    assert RefundMethodResolver.apply_voucher_bonus(99.99, config) == 104.99


def test_no_bonus_without_voucher_priority():
    config = RefundConfig(prioritize_voucher=False, voucher_bonus=10)
    assert RefundMethodResolver.apply_voucher_bonus(100.0, config) == 100.0


def test_bonus_never_changes_input_amount():
    config = RefundConfig(prioritize_voucher=True, voucher_bonus=20)
    amount = 50.0
    RefundMethodResolver.apply_voucher_bonus(amount, config)
    assert amount == 50.0


def test_only_vouchers_settle_with_bonus():
    config = RefundConfig(prioritize_voucher=True, voucher_bonus=10)
    assert RefundMethodResolver.settlement_amount(80.0, RefundMethod.VOUCHER, config) == 88.0
    assert RefundMethodResolver.settlement_amount(80.0, RefundMethod.CARD, config) == 80.0
    assert RefundMethodResolver.settlement_amount(80.0, RefundMethod.PIX, config) == 80.0


@pytest.mark.parametrize("key, key_type, valid", [
    ("123.456.789-01", PixKeyType.CPF, True),
    ("12345678901", PixKeyType.CPF, True),
    ("1234", PixKeyType.CPF, False),
    ("12.345.678/0001-90", PixKeyType.CNPJ, True),
    ("maria@email.com", PixKeyType.EMAIL, True),
    ("maria@", PixKeyType.EMAIL, False),
    ("+55 (11) 99988-8777", PixKeyType.PHONE, True),
    ("qualquer-chave", PixKeyType.ANY, True),
    ("", PixKeyType.ANY, False),
    (None, PixKeyType.EMAIL, False),
])
def test_validate_pix_key(key, key_type, valid):
    assert RefundMethodResolver.validate_pix_key(key, key_type) is valid
