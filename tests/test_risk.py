from ledgerlens.risk import (
    RiskThresholds,
    assess_credit_profile,
    classify_risk,
    industry_benchmark,
    overall_risk,
)
from ledgerlens.schemas import MetricsSet


def test_all_dimensions_high():
    risk = classify_risk(MetricsSet(current_ratio=0.8, debt_to_equity=1.5, debt_to_assets=0.7))
    assert risk.liquidity_risk == "High"
    assert risk.solvency_risk == "High"
    assert risk.operational_risk == "High"
    assert risk.overall_risk == "High"


def test_all_dimensions_medium():
    risk = classify_risk(MetricsSet(current_ratio=1.2, debt_to_equity=0.7, debt_to_assets=0.5))
    assert (risk.liquidity_risk, risk.solvency_risk, risk.operational_risk) == (
        "Medium", "Medium", "Medium"
    )
    assert risk.overall_risk == "Medium"


def test_healthy_company_is_low():
    risk = classify_risk(MetricsSet(current_ratio=2.5, debt_to_equity=0.3, debt_to_assets=0.2))
    assert risk.overall_risk == "Low"


def test_threshold_boundaries():
    risk = classify_risk(MetricsSet(current_ratio=1.0, debt_to_equity=1.0, debt_to_assets=0.6))
    assert risk.liquidity_risk == "Medium"
    assert risk.solvency_risk == "Medium"
    assert risk.operational_risk == "Medium"

    risk = classify_risk(MetricsSet(current_ratio=1.5, debt_to_equity=0.5, debt_to_assets=0.4))
    assert risk.overall_risk == "Low"
    assert risk.liquidity_risk == "Low"


def test_overall_needs_two_matching_dimensions():
    assert overall_risk("High", "Medium", "Low") == "Low"
    assert overall_risk("High", "High", "Low") == "High"
    assert overall_risk("High", "Medium", "Medium") == "Medium"


def test_debt_to_equity_thresholds_are_configurable():
    metrics = MetricsSet(current_ratio=2, debt_to_equity=1.5, debt_to_assets=0.1)
    strict = RiskThresholds(solvency_medium=1.0, solvency_high=2.0)
    assert classify_risk(metrics).solvency_risk == "High"
    assert classify_risk(metrics, strict).solvency_risk == "Medium"


def test_industry_benchmark_status():
    benchmark = industry_benchmark(MetricsSet(current_ratio=2.0, debt_to_equity=0.4, roa=0.01))
    assert benchmark["currentRatio"].status == "Above Industry"
    assert benchmark["currentRatio"].industry == 1.8
    assert benchmark["debtToEquity"].status == "Above Industry"
    assert benchmark["roa"].status == "Below Industry"
    assert set(benchmark) == {"currentRatio", "debtToEquity", "roa", "roe", "assetTurnover", "netMargin"}


def test_credit_profile():
    weak = assess_credit_profile(
        MetricsSet(current_ratio=0.9, debt_to_equity=1.5, cash_ratio=0.05, roa=0.01)
    )
    assert weak.creditworthiness == "High Yield"
    assert weak.financial_flexibility == "Low"
    assert weak.risk_profile == "High"
    assert weak.growth_potential == "Limited"
    assert "Monitor debt levels" in weak.areas_of_concern

    strong = assess_credit_profile(
        MetricsSet(current_ratio=2.0, debt_to_equity=0.3, cash_ratio=0.5, roa=0.1, asset_turnover=1.5)
    )
    assert strong.creditworthiness == "Investment Grade"
    assert strong.financial_flexibility == "High"
    assert strong.risk_profile == "Low"
    assert strong.growth_potential == "Strong"
    assert strong.areas_of_concern == []
