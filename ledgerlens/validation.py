import logging
from typing import Dict, Optional

from . import config
from .schemas import ValidationResult

logger = logging.getLogger(__name__)

NO_CRITICAL_DATA = "No critical financial data found in PDF"


def validate_financial_data(
    data: Dict[str, float],
    tolerance: Optional[float] = None,
) -> ValidationResult:
    """
    Check extracted figures for consistency.

    Imbalance and negative values are warnings. Only a sheet with no
    total assets, liabilities or equity at all is invalid.
    """
    if tolerance is None:
        tolerance = config.BALANCE_TOLERANCE

    result = ValidationResult()

    total_assets = data.get("totalAssets", 0) or 0
    total_liabilities = data.get("totalLiabilities", 0) or 0
    total_equity = data.get("totalEquity", 0) or 0

    difference = abs((total_liabilities + total_equity) - total_assets)
    if difference > total_assets * tolerance:
        result.warnings.append(
            f"Balance sheet equation may not balance. Difference: {difference:g}"
        )

    for name, value in data.items():
        if value < 0:
            result.warnings.append(f"Negative value found for {name}: {value:g}")

    if not total_assets and not total_liabilities and not total_equity:
        result.is_valid = False
        result.errors.append(NO_CRITICAL_DATA)

    if result.warnings or result.errors:
        logger.info(
            "Validation finished with %d error(s), %d warning(s)",
            len(result.errors),
            len(result.warnings),
        )
    return result
