from dataclasses import dataclass
from typing import Dict, Optional

from . import config
from .schemas import BenchmarkEntry, CreditProfile, MetricsSet, RiskProfile


@dataclass(frozen=True)
class RiskThresholds:
    liquidity_high: float = 1.0        # current ratio below this is High
    liquidity_medium: float = 1.5
    solvency_medium: float = 0.5       # debt-to-equity above this is Medium
    solvency_high: float = 1.0
    operational_medium: float = 0.4    # debt-to-assets above this is Medium
    operational_high: float = 0.6


def default_thresholds() -> RiskThresholds:
    return RiskThresholds(
        solvency_medium=config.RISK_DE_MEDIUM,
        solvency_high=config.RISK_DE_HIGH,
    )


# Mock industry averages
INDUSTRY_AVERAGES = {
    "currentRatio": 1.8,
    "debtToEquity": 0.6,
    "roa": 0.08,
    "roe": 0.12,
    "assetTurnover": 1.2,
    "netMargin": 0.10,
}

# Metrics where a lower value beats the industry
_LOWER_IS_BETTER = {"debtToEquity"}


def _below(value: float, high: float, medium: float) -> str:
    if value < high:
        return "High"
    if value < medium:
        return "Medium"
    return "Low"


def _above(value: float, high: float, medium: float) -> str:
    if value > high:
        return "High"
    if value > medium:
        return "Medium"
    return "Low"


def overall_risk(*levels: str) -> str:
    """High if two or more dimensions are High, else Medium if two or more are Medium."""
    if sum(1 for level in levels if level == "High") >= 2:
        return "High"
    if sum(1 for level in levels if level == "Medium") >= 2:
        return "Medium"
    return "Low"


def classify_risk(
    metrics: MetricsSet,
    thresholds: Optional[RiskThresholds] = None,
) -> RiskProfile:
    t = thresholds or default_thresholds()

    liquidity = _below(metrics.current_ratio, t.liquidity_high, t.liquidity_medium)
    solvency = _above(metrics.debt_to_equity, t.solvency_high, t.solvency_medium)
    operational = _above(metrics.debt_to_assets, t.operational_high, t.operational_medium)

    return RiskProfile(
        liquidity_risk=liquidity,
        solvency_risk=solvency,
        operational_risk=operational,
        overall_risk=overall_risk(liquidity, solvency, operational),
    )


def assess_credit_profile(metrics: MetricsSet) -> CreditProfile:
    """Coarse credit view; later checks override earlier ones."""
    creditworthiness = "Investment Grade"
    if metrics.current_ratio < 1.5:
        creditworthiness = "Speculative Grade"
    if metrics.debt_to_equity > 1:
        creditworthiness = "High Yield"

    flexibility = "High"
    if metrics.cash_ratio < 0.2:
        flexibility = "Moderate"
    if metrics.cash_ratio < 0.1:
        flexibility = "Low"

    risk_profile = "Low"
    if metrics.debt_to_equity > 0.8:
        risk_profile = "Moderate"
    if metrics.debt_to_equity > 1.2:
        risk_profile = "High"

    growth = "Strong"
    if metrics.roa < 0.05:
        growth = "Moderate"
    if metrics.roa < 0.02:
        growth = "Limited"

    strengths = []
    concerns = []
    if metrics.current_ratio >= 1.5:
        strengths.append("Strong liquidity position")
    else:
        concerns.append("Liquidity below comfortable levels")
    if metrics.debt_to_equity <= 0.8:
        strengths.append("Healthy capital structure")
    else:
        concerns.append("Monitor debt levels")
    if metrics.asset_turnover >= INDUSTRY_AVERAGES["assetTurnover"]:
        strengths.append("Good operational efficiency")
    if metrics.cash_ratio < 0.2:
        concerns.append("Ensure adequate cash reserves")

    return CreditProfile(
        creditworthiness=creditworthiness,
        financial_flexibility=flexibility,
        risk_profile=risk_profile,
        growth_potential=growth,
        key_strengths=strengths,
        areas_of_concern=concerns,
    )


def industry_benchmark(metrics: MetricsSet) -> Dict[str, BenchmarkEntry]:
    values = metrics.model_dump(by_alias=True)
    benchmark = {}
    for name, industry in INDUSTRY_AVERAGES.items():
        company = values[name]
        if name in _LOWER_IS_BETTER:
            better = company < industry
        else:
            better = company > industry
        benchmark[name] = BenchmarkEntry(
            company=company,
            industry=industry,
            status="Above Industry" if better else "Below Industry",
        )
    return benchmark
