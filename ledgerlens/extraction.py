"""
Label-driven extraction of balance-sheet line items from normalized text.

Each field has one case-insensitive rule: any of its accepted labels, an
optional ':' or '-', an optional currency symbol, then a number such as
1,234,500 or 1234.50. Which match wins is decided by a policy callable so
that a stricter strategy can be swapped in by callers.
"""

import logging
import re
from typing import Callable, Dict, List, Optional

from .schemas import FINANCIAL_FIELDS, coerce_financial_data

logger = logging.getLogger(__name__)

_VALUE = r"\s*[:\-]?\s*[₹$]?\s*([\d,]+\.?\d*)"

FIELD_LABELS: Dict[str, List[str]] = {
    # Assets
    "totalAssets": [r"Total Assets?", r"Total Assets and Liabilities?"],
    "currentAssets": [r"Current Assets?", r"Current Assets and Liabilities?"],
    "nonCurrentAssets": [r"Non-Current Assets?", r"Fixed Assets?"],
    "cashAndEquivalents": [r"Cash and Cash Equivalents?", r"Cash and Bank Balances?"],
    "investments": [r"Investments?", r"Financial Assets?"],
    "receivables": [r"Trade Receivables?", r"Accounts Receivables?", r"Sundry Debtors?"],
    "inventory": [r"Inventories", r"Inventory", r"Stock in Trade"],
    "propertyPlantEquipment": [
        r"Property, Plant and Equipment",
        r"Fixed Assets?",
        r"Tangible Assets?",
    ],
    "intangibleAssets": [r"Intangible Assets?", r"Goodwill"],
    # Liabilities
    "totalLiabilities": [r"Total Liabilities?", r"Total Equity and Liabilities?"],
    "currentLiabilities": [r"Current Liabilities?", r"Current Provisions?"],
    "nonCurrentLiabilities": [r"Non-Current Liabilities?", r"Long-term Liabilities?"],
    "shortTermBorrowings": [r"Short-term Borrowings?", r"Short-term Loans?"],
    "longTermBorrowings": [r"Long-term Borrowings?", r"Long-term Loans?"],
    "tradePayables": [r"Trade Payables?", r"Accounts Payables?", r"Sundry Creditors?"],
    "provisions": [r"Provisions?", r"Other Liabilities?"],
    # Equity
    "totalEquity": [r"Total Equity", r"Shareholders'? Equity", r"Net Worth"],
    "shareCapital": [r"Share Capital", r"Paid-up Capital"],
    "reservesAndSurplus": [r"Reserves and Surplus", r"Retained Earnings"],
    "retainedEarnings": [r"Retained Earnings", r"Accumulated Profits?"],
    # Income statement
    "revenue": [r"Revenue from Operations", r"Total Revenue", r"Net Sales", r"Revenue"],
    "costOfGoodsSold": [r"Cost of Goods Sold", r"Cost of Sales", r"Cost of Materials Consumed"],
    "grossProfit": [r"Gross Profit"],
    "netProfit": [r"Net Profit", r"Profit After Tax", r"Net Income"],
}


def _compile(labels: List[str]) -> re.Pattern:
    # "Current Assets" must not match inside "Non-Current Assets"
    return re.compile(r"(?<![\w-])(?:" + "|".join(labels) + r")" + _VALUE, re.IGNORECASE)


FIELD_PATTERNS: Dict[str, re.Pattern] = {
    name: _compile(FIELD_LABELS[name]) for name in FINANCIAL_FIELDS
}

MatchPolicy = Callable[[re.Pattern, str], Optional[str]]


def first_match_policy(pattern: re.Pattern, text: str) -> Optional[str]:
    """Take the earliest match in document order."""
    match = pattern.search(text)
    return match.group(1) if match else None


def parse_amount(raw: str) -> float:
    """'1,234,500.50' -> 1234500.5; anything unparsable -> 0.0."""
    try:
        return float(raw.replace(",", ""))
    except (AttributeError, ValueError):
        return 0.0


def extract_financial_fields(
    text: str,
    policy: MatchPolicy = first_match_policy,
) -> Dict[str, float]:
    """
    Pull every known line item out of normalized text.

    Fields with no matching label are 0, so a missing line item and a
    reported zero look the same to callers.
    """
    extracted = {}
    for name, pattern in FIELD_PATTERNS.items():
        raw = policy(pattern, text or "")
        extracted[name] = parse_amount(raw) if raw is not None else 0.0

    found = sum(1 for value in extracted.values() if value)
    logger.debug("Extracted %d of %d financial fields", found, len(FIELD_PATTERNS))
    return coerce_financial_data(extracted)
