"""
End-to-end processing of one balance sheet.

Nothing here touches the database: each entry point returns a complete
result that the caller persists in a single write.
"""

import logging
from typing import Callable, Dict, Optional

from .extraction import MatchPolicy, extract_financial_fields, first_match_policy
from .insights import analyze_financial_data
from .metrics import calculate_derived_fields, compute_metrics
from .normalizer import normalize_text
from .parsing import ExtractionError, extract_text
from .risk import classify_risk
from .schemas import AnalysisReport, PipelineResult
from .validation import validate_financial_data

logger = logging.getLogger(__name__)


def run_pipeline(
    raw_text: str,
    client=None,
    previous: Optional[Dict[str, float]] = None,
    policy: MatchPolicy = first_match_policy,
) -> PipelineResult:
    """Normalize, extract, validate, compute metrics and analyze.

    Analysis is only attempted for valid data; otherwise it is None and
    can be retried later with ``reanalyze``.
    """
    normalized = normalize_text(raw_text)
    extracted = extract_financial_fields(normalized.text, policy=policy)
    validation = validate_financial_data(extracted)

    data = calculate_derived_fields(extracted)
    metrics = compute_metrics(data)
    risk = classify_risk(metrics)

    analysis = None
    if validation.is_valid:
        analysis = analyze_financial_data(data, client, previous)
    else:
        logger.info("Skipping analysis: %s", "; ".join(validation.errors))

    return PipelineResult(
        financial_year=normalized.financial_year,
        financial_data=data,
        validation=validation,
        metrics=metrics,
        risk_profile=risk,
        analysis=analysis,
    )


def process_pdf(
    pdf_bytes: bytes,
    client=None,
    previous_lookup: Optional[Callable[[Optional[str]], Optional[Dict[str, float]]]] = None,
) -> PipelineResult:
    """
    Run the pipeline on a PDF. Unreadable or text-less files raise ExtractionError.

    ``previous_lookup`` receives the financial year detected in the text
    (or None) and returns the prior period's data, if any, for the
    analysis to compare against.
    """
    pdf = extract_text(pdf_bytes)
    if not pdf.text.strip():
        raise ExtractionError("No text could be extracted from the PDF")

    logger.info("Extracted %d characters from %d page(s)", len(pdf.text), pdf.page_count)
    previous = None
    if previous_lookup is not None:
        previous = previous_lookup(normalize_text(pdf.text).financial_year)
    result = run_pipeline(pdf.text, client, previous)
    result.page_count = pdf.page_count
    return result


def reanalyze(
    data: Dict[str, float],
    client=None,
    previous: Optional[Dict[str, float]] = None,
) -> Optional[AnalysisReport]:
    """Fresh analysis for stored data, replacing whatever was there before."""
    validation = validate_financial_data(data)
    if not validation.is_valid:
        return None
    return analyze_financial_data(calculate_derived_fields(data), client, previous)
