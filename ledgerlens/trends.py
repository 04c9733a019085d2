import logging
from typing import Dict, List, Optional, Sequence

from .metrics import compute_metrics
from .schemas import GrowthMetrics, MetricsSet, PeriodRecord, TrendResult

logger = logging.getLogger(__name__)

TREND_FIELDS = ["revenue", "totalAssets", "totalEquity", "totalLiabilities"]


class InsufficientPeriodsError(ValueError):
    """Raised when a trend needs more periods than were supplied."""


def growth_rate(current: float, previous: float) -> Optional[float]:
    """Percentage change from ``previous``; None when there is no base to grow from."""
    if not previous:
        return None
    return (current - previous) / previous * 100


def cagr(first: float, last: float, period_count: int) -> Optional[float]:
    """
    Compound growth per step across ``period_count`` periods, as a fraction.

    None when the first value is not positive or the span changes sign.
    """
    if period_count < 2 or first <= 0:
        return None
    ratio = last / first
    if ratio < 0:
        return None
    return ratio ** (1 / (period_count - 1)) - 1


def _pair_key(previous: PeriodRecord, current: PeriodRecord) -> str:
    return f"{previous.period_label}-{current.period_label}"


def compute_trends(
    periods: Sequence[PeriodRecord],
    fields: Sequence[str] = TREND_FIELDS,
) -> TrendResult:
    """Growth between adjacent periods plus CAGR over the whole span.

    ``periods`` must already be in chronological order.
    """
    if len(periods) < 2:
        raise InsufficientPeriodsError(
            "At least 2 periods are required for growth analysis"
        )

    growth: Dict[str, Dict[str, Optional[float]]] = {}
    for previous, current in zip(periods, periods[1:]):
        growth[_pair_key(previous, current)] = {
            name: growth_rate(current.data[name], previous.data[name]) for name in fields
        }

    first, last = periods[0], periods[-1]
    compound = {
        name: cagr(first.data[name], last.data[name], len(periods)) for name in fields
    }

    logger.debug("Computed trends over %d periods", len(periods))
    return TrendResult(
        periods=[p.period_label for p in periods],
        growth=growth,
        cagr=compound,
    )


def compute_growth_metrics(
    current: Dict[str, float],
    previous: Optional[Dict[str, float]],
) -> GrowthMetrics:
    """Year-on-year growth of one record against the period before it."""
    if not previous:
        return GrowthMetrics()
    return GrowthMetrics(
        revenue_growth=growth_rate(current.get("revenue", 0), previous.get("revenue", 0)),
        asset_growth=growth_rate(current.get("totalAssets", 0), previous.get("totalAssets", 0)),
        profit_growth=growth_rate(current.get("netProfit", 0), previous.get("netProfit", 0)),
    )


def compute_benchmark_trends(
    periods: Sequence[PeriodRecord],
) -> Dict[str, Dict[str, Optional[float]]]:
    """Percentage change in ROA, debt-to-equity and current ratio between adjacent periods."""
    if len(periods) < 2:
        return {}

    metrics: List[MetricsSet] = [compute_metrics(p.data) for p in periods]
    trends = {}
    for i in range(1, len(periods)):
        previous, current = metrics[i - 1], metrics[i]
        trends[_pair_key(periods[i - 1], periods[i])] = {
            "roaChange": growth_rate(current.roa, previous.roa),
            "debtToEquityChange": growth_rate(current.debt_to_equity, previous.debt_to_equity),
            "currentRatioChange": growth_rate(current.current_ratio, previous.current_ratio),
        }
    return trends
