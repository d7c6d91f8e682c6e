"""Unit tests for the IntentMatcher."""

import pytest

from amana.core.intents import (
    Intent,
    IntentMatcher,
    categorize_expense,
    find_invoice_reference,
    parse_amount,
)
from amana.schemas.context import ConversationPointers


class TestInvoiceReferences:
    """Test cases for invoice reference extraction."""

    def test_reference_formats(self):
        cases = {
            "check INV-001": "INV-001",
            "check inv 1": "INV-001",
            "status of #INV-001": "INV-001",
            "invoice 12 status": "INV-012",
            "inv-1234 balance": "INV-1234",
            "check invoice INV-202510-0001": "INV-202510-0001",
            "status of inv 202510-0042?": "INV-202510-0042",
        }
        for text, expected in cases.items():
            assert find_invoice_reference(text) == expected, text

    def test_no_reference(self):
        assert find_invoice_reference("how is my business") is None
        assert find_invoice_reference("check the invoice") is None


class TestAmounts:
    """Test cases for amount parsing."""

    def test_amount_formats(self):
        cases = {
            "80000": 80_000,
            "₦250,000": 250_000,
            "5k": 5_000,
            "1.5m": 1_500_000,
            "N 2,500": 2_500,
            "12.50": 12.5,
        }
        for text, expected in cases.items():
            assert parse_amount(f"add expense {text} for fuel") == pytest.approx(expected), text

    def test_no_amount(self):
        assert parse_amount("add expense for fuel") is None


class TestMatch:
    """Test cases for intent matching."""

    def setup_method(self):
        self.matcher = IntentMatcher()

    def test_add_expense(self):
        match = self.matcher.match("add expense 80000 for fuel to INV-001")

        assert match.intent == Intent.ADD_INVOICE_EXPENSE
        assert match.params["invoice_number"] == "INV-001"
        assert match.params["amount"] == 80_000
        assert match.params["description"] == "fuel"
        assert match.params["category"] == "Fuel"

    def test_add_expense_amount_not_taken_from_invoice_number(self):
        match = self.matcher.match("log expense on inv 2 tolls ₦4,500")

        assert match.params["invoice_number"] == "INV-002"
        assert match.params["amount"] == 4_500
        assert match.params["description"] == "tolls"

    def test_dated_invoice_number(self):
        match = self.matcher.match("check invoice INV-202510-0001")

        assert match.intent == Intent.CHECK_INVOICE_STATUS
        assert match.invoice_number == "INV-202510-0001"

    def test_add_expense_dated_number_is_not_the_amount(self):
        match = self.matcher.match("add expense for fuel to INV-202510-0001")

        assert match.params["invoice_number"] == "INV-202510-0001"
        assert match.params["amount"] is None
        assert match.params["description"] == "fuel"

    def test_add_expense_resolves_that_invoice(self):
        memory = ConversationPointers(last_invoice_number="INV-003")

        match = self.matcher.match("record 15k expense for truck repair on that invoice", memory)

        assert match.intent == Intent.ADD_INVOICE_EXPENSE
        assert match.params["invoice_number"] == "INV-003"
        assert match.params["amount"] == 15_000
        assert match.params["description"] == "truck repair"
        assert match.params["category"] == "Maintenance"

    def test_list_expenses(self):
        match = self.matcher.match("show expenses for INV-001")

        assert match.intent == Intent.LIST_INVOICE_EXPENSES
        assert match.invoice_number == "INV-001"

    def test_invoice_balance(self):
        match = self.matcher.match("wetin be the profit on INV-002?")

        assert match.intent == Intent.INVOICE_BALANCE
        assert match.invoice_number == "INV-002"

    def test_check_status_with_pidgin_anaphora(self):
        memory = ConversationPointers(last_invoice_number="INV-001")

        match = self.matcher.match("abeg check am", memory)

        assert match.intent == Intent.CHECK_INVOICE_STATUS
        assert match.invoice_number == "INV-001"

    def test_anaphora_without_memory_leaves_reference_empty(self):
        match = self.matcher.match("check the status of that invoice")

        assert match.intent == Intent.CHECK_INVOICE_STATUS
        assert match.invoice_number is None

    def test_wallet_balance(self):
        for text in ["my balance", "how much dey my wallet", "I am checking my wallet balance"]:
            match = self.matcher.match(text)
            assert match.intent == Intent.VIEW_BALANCE, text

    def test_business_summary(self):
        for text in ["summary", "show me overdue", "unpaid invoices", "how my business dey?"]:
            match = self.matcher.match(text)
            assert match.intent == Intent.BUSINESS_SUMMARY, text

    def test_no_match(self):
        assert self.matcher.match("create route to Kano tomorrow") is None


class TestCategories:
    def test_categories(self):
        assert categorize_expense("diesel") == "Fuel"
        assert categorize_expense("Tolls at Lekki") == "Tolls"
        assert categorize_expense("driver feeding") == "Driver Pay"
        assert categorize_expense("stationery") == "General"
