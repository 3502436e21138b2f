"""Tests for payment-method parsing and decomposition."""

import pytest

from pos_recon.reporting.financials import derive_financials
from pos_recon.reporting.payments import (
    PaymentPart,
    SingleMethod,
    SplitMethods,
    decompose_payments,
    parse_payment_method,
)

SPLIT = '[{"method":"cash","amount":60000},{"method":"card","amount":38000}]'


class TestParsePaymentMethod:
    def test_bare_method(self):
        assert parse_payment_method("card") == SingleMethod("card")

    def test_split_json(self):
        assert parse_payment_method(SPLIT) == SplitMethods(
            (PaymentPart("cash", 60000.0), PaymentPart("card", 38000.0))
        )

    def test_native_list(self):
        spec = parse_payment_method([{"method": "qrcode", "amount": "5000"}])
        assert spec == SplitMethods((PaymentPart("qrcode", 5000.0),))

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_defaults_to_cash(self, raw):
        assert parse_payment_method(raw) == SingleMethod("cash")

    @pytest.mark.parametrize("raw", ["[]", "{}", "42", '"card"', "[{bad json"])
    def test_non_split_values_fall_back_to_raw_name(self, raw):
        assert parse_payment_method(raw) == SingleMethod(raw)

    def test_malformed_entries_dropped(self, caplog):
        raw = '[{"method":"cash","amount":1000},{"amount":5},"card"]'
        with caplog.at_level("WARNING", logger="pos_recon"):
            spec = parse_payment_method(raw)
        assert spec == SplitMethods((PaymentPart("cash", 1000.0),))
        assert "malformed payment entry" in caplog.text


class TestDecomposePayments:
    def test_deeply_nested_json_falls_back_to_single_method(self, exclusive_order):
        raw = "[" * 100000 + "]" * 100000
        assert decompose_payments(dict(exclusive_order, paymentMethod=raw)) == {raw: 98000}

    def test_split_scenario(self, exclusive_order):
        order = dict(exclusive_order, paymentMethod=SPLIT)
        totals = decompose_payments(order)
        assert totals == {"cash": 60000, "card": 38000}
        assert sum(totals.values()) == pytest.approx(derive_financials(order).customer_paid, abs=1)

    def test_single_method_gets_customer_paid(self, exclusive_order):
        order = dict(exclusive_order, paymentMethod="vnpay")
        assert decompose_payments(order) == {"vnpay": 98000}

    def test_explicit_customer_paid(self, exclusive_order):
        assert decompose_payments(exclusive_order, customer_paid=1234) == {"cash": 1234}

    def test_duplicate_methods_summed(self, exclusive_order):
        raw = '[{"method":"cash","amount":50000},{"method":"cash","amount":48000}]'
        assert decompose_payments(dict(exclusive_order, paymentMethod=raw)) == {"cash": 98000}

    def test_mismatched_split_not_rescaled(self, exclusive_order, caplog):
        raw = '[{"method":"cash","amount":50000}]'
        with caplog.at_level("WARNING", logger="pos_recon"):
            totals = decompose_payments(dict(exclusive_order, paymentMethod=raw))
        assert totals == {"cash": 50000}
        assert "split payments sum to" in caplog.text

    def test_unknown_method_passed_through(self, exclusive_order):
        assert decompose_payments(dict(exclusive_order, paymentMethod="Gift Voucher")) == {"Gift Voucher": 98000}
