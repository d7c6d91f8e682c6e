"""
Intent Matcher - maps task messages onto the fixed business action catalog.

Matching is deterministic: keyword triggers decide the intent, and invoice
references, amounts and descriptions are pulled out with regular
expressions. "That invoice" style references resolve to the last invoice
stored in conversation memory.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from amana.schemas.context import ConversationPointers


class Intent(str, Enum):
    ADD_INVOICE_EXPENSE = "add_invoice_expense"
    LIST_INVOICE_EXPENSES = "list_invoice_expenses"
    INVOICE_BALANCE = "invoice_balance"
    CHECK_INVOICE_STATUS = "check_invoice_status"
    VIEW_BALANCE = "view_balance"
    BUSINESS_SUMMARY = "business_summary"


# INV-001, inv 1, #INV-001, invoice 12, INV-202510-0001
INVOICE_REF_PATTERN = re.compile(r"#?\binv(?:oice)?[\s\-#]*(\d+(?:-\d+)*)\b", re.IGNORECASE)
INVOICE_ANAPHORA_PATTERN = re.compile(
    r"\b(?:that|the|this|same)\s+invoice\b"
    r"|\b(?:check|track|show|see|to|for|on)\s+am\b",
    re.IGNORECASE,
)
INVOICE_WORD_PATTERN = re.compile(r"\binvoice\b", re.IGNORECASE)

# ₦250,000 / 5k / 1.5m / 80000
AMOUNT_PATTERN = re.compile(r"(?:₦|\bngn\s*|\bn(?=\d))?\s*(\d[\d,]*(?:\.\d+)?)\s*([km])?\b", re.IGNORECASE)
AMOUNT_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}

ADD_EXPENSE_TRIGGER = re.compile(r"\b(?:add|log|record)\b.*\bexpenses?\b|\bexpenses?\b.*\b(?:add|log|record)\b", re.IGNORECASE)
LIST_EXPENSES_TRIGGER = re.compile(
    r"\b(?:list|show|see)\s+(?:all\s+|the\s+|my\s+)?expenses\b|\bexpenses?\s+(?:for|on|of)\b",
    re.IGNORECASE,
)
INVOICE_BALANCE_TRIGGER = re.compile(r"\b(?:balance|profit)\b", re.IGNORECASE)
STATUS_TRIGGER = re.compile(r"\b(?:status|check|track)\b", re.IGNORECASE)
WALLET_TRIGGER = re.compile(r"\b(?:wallet|balance)\b", re.IGNORECASE)
SUMMARY_TRIGGER = re.compile(
    r"\b(?:summary|overdue|unpaid)\b|\bhow\b.*\bbusiness\b",
    re.IGNORECASE,
)

DESCRIPTION_STOPWORDS = {
    "add", "log", "record", "expense", "expenses", "for", "to", "on", "of",
    "invoice", "a", "an", "the", "that", "this", "same", "am", "naira",
    "abeg", "please", "pls", "new",
}

EXPENSE_CATEGORIES = (
    (re.compile(r"\b(?:fuel|diesel|petrol|gas)\b", re.IGNORECASE), "Fuel"),
    (re.compile(r"\btolls?\b", re.IGNORECASE), "Tolls"),
    (re.compile(r"\b(?:repair|mechanic|tyres?|tires?|service)\b", re.IGNORECASE), "Maintenance"),
    (re.compile(r"\b(?:driver|salary|allowance|feeding)\b", re.IGNORECASE), "Driver Pay"),
    (re.compile(r"\b(?:loading|offloading|labour|labor)\b", re.IGNORECASE), "Labour"),
)


@dataclass
class IntentMatch:
    """A matched intent and the parameters extracted for it."""

    intent: Intent
    params: dict = field(default_factory=dict)

    @property
    def invoice_number(self) -> Optional[str]:
        return self.params.get("invoice_number")


def normalize_invoice_number(digits: str) -> str:
    """INV-NNN for short forms; dated numbers (202510-0001) are kept as written."""
    if "-" in digits:
        return f"INV-{digits}"
    return f"INV-{digits.zfill(3)}"


def find_invoice_reference(text: str) -> Optional[str]:
    """Explicit invoice reference in the text, normalised to INV-NNN."""
    match = INVOICE_REF_PATTERN.search(text)
    if match is None:
        return None
    return normalize_invoice_number(match.group(1))


def parse_amount(text: str) -> Optional[float]:
    """First amount in the text, honouring ₦, thousands separators and k/m."""
    match = AMOUNT_PATTERN.search(text)
    if match is None:
        return None
    try:
        value = float(match.group(1).replace(",", ""))
    except ValueError:
        return None
    suffix = (match.group(2) or "").lower()
    return value * AMOUNT_MULTIPLIERS.get(suffix, 1)


def extract_description(text: str) -> str:
    """What is left of an add-expense message once trigger words are removed."""
    text = INVOICE_REF_PATTERN.sub(" ", text)
    text = AMOUNT_PATTERN.sub(" ", text)
    words = re.findall(r"[\w'&/-]+", text)
    kept = [word for word in words if word.lower() not in DESCRIPTION_STOPWORDS]
    return " ".join(kept).strip()


def categorize_expense(description: str) -> str:
    for pattern, category in EXPENSE_CATEGORIES:
        if pattern.search(description):
            return category
    return "General"


class IntentMatcher:
    """Deterministic matcher for the business action catalog."""

    def match(self, message: str, memory: Optional[ConversationPointers] = None) -> Optional[IntentMatch]:
        """
        Match a message to an intent.

        Returns None when no trigger fires. A matched invoice intent may carry
        invoice_number=None when no reference could be resolved; the action
        handler reports that back to the user.
        """
        memory = memory or ConversationPointers()
        explicit_ref = find_invoice_reference(message)
        anaphora = bool(INVOICE_ANAPHORA_PATTERN.search(message))

        invoice_number = explicit_ref
        if invoice_number is None and anaphora:
            invoice_number = memory.last_invoice_number

        mentions_invoice = bool(explicit_ref) or anaphora or bool(INVOICE_WORD_PATTERN.search(message))

        if ADD_EXPENSE_TRIGGER.search(message):
            # Amount must not be read from the invoice number
            remainder = INVOICE_REF_PATTERN.sub(" ", message)
            description = extract_description(message)
            return IntentMatch(
                intent=Intent.ADD_INVOICE_EXPENSE,
                params={
                    "invoice_number": invoice_number,
                    "amount": parse_amount(remainder),
                    "description": description,
                    "category": categorize_expense(description),
                },
            )

        if LIST_EXPENSES_TRIGGER.search(message):
            return IntentMatch(Intent.LIST_INVOICE_EXPENSES, {"invoice_number": invoice_number})

        if INVOICE_BALANCE_TRIGGER.search(message) and mentions_invoice:
            return IntentMatch(Intent.INVOICE_BALANCE, {"invoice_number": invoice_number})

        if STATUS_TRIGGER.search(message) and mentions_invoice:
            return IntentMatch(Intent.CHECK_INVOICE_STATUS, {"invoice_number": invoice_number})

        if WALLET_TRIGGER.search(message):
            return IntentMatch(Intent.VIEW_BALANCE)

        if SUMMARY_TRIGGER.search(message):
            return IntentMatch(Intent.BUSINESS_SUMMARY)

        return None
