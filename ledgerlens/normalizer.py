import re

from .schemas import NormalizedText

_WHITESPACE = re.compile(r"\s+")
_BLANK_LINES = re.compile(r"\n\s*\n")
# Keep word characters, whitespace, -.,() and the currency/percent symbols
_ARTIFACTS = re.compile(r"[^\w\s\-.,()₹$%]")
_YEAR = re.compile(r"(?:FY|Financial Year|Year)\s*[:\-]?\s*(\d{4})", re.IGNORECASE)


def detect_financial_year(text: str):
    """Return the first 'FY 2023' / 'Financial Year: 2023' style year, or None."""
    match = _YEAR.search(text or "")
    return match.group(1) if match else None


def normalize_text(raw_text: str) -> NormalizedText:
    """Clean raw PDF text and pick up the reporting year if one is named."""
    text = raw_text or ""
    cleaned = _WHITESPACE.sub(" ", text)
    cleaned = _BLANK_LINES.sub("\n", cleaned).strip()

    cleaned = _ARTIFACTS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    return NormalizedText(text=cleaned, financial_year=detect_financial_year(cleaned))
