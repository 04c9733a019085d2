"""
Accounting ratios derived from one period of financial data.

Every ratio divides by its denominator field with a zero replaced by 1,
so a zero denominator yields the numerator itself rather than inf/NaN.
Working capital is a difference and is not guarded.
"""

from typing import Dict

from .schemas import MetricsSet, coerce_financial_data

DAYS_IN_YEAR = 365


def _guard(value: float) -> float:
    return value if value else 1


def _days(amount: float, base: float) -> float:
    return (amount / _guard(base)) * DAYS_IN_YEAR


def cash_conversion_cycle(data: Dict[str, float]) -> float:
    """DSO + DIO - DPO, in days."""
    dso = _days(data.get("receivables", 0), data.get("revenue", 0))
    dio = _days(data.get("inventory", 0), data.get("costOfGoodsSold", 0))
    dpo = _days(data.get("tradePayables", 0), data.get("costOfGoodsSold", 0))
    return dso + dio - dpo


def compute_metrics(data: Dict[str, float]) -> MetricsSet:
    d = coerce_financial_data(data)

    current_assets = d["currentAssets"]
    current_liabilities = _guard(d["currentLiabilities"])
    total_assets = _guard(d["totalAssets"])
    total_liabilities = d["totalLiabilities"]
    total_equity = _guard(d["totalEquity"])
    inventory = d["inventory"]
    revenue = d["revenue"]
    cogs = d["costOfGoodsSold"]
    net_profit = d["netProfit"]

    working_capital = current_assets - d["currentLiabilities"]

    return MetricsSet(
        current_ratio=current_assets / current_liabilities,
        quick_ratio=(current_assets - inventory) / current_liabilities,
        cash_ratio=d["cashAndEquivalents"] / current_liabilities,
        debt_to_equity=total_liabilities / total_equity,
        debt_to_assets=total_liabilities / total_assets,
        # the raw equity figure, not the guarded one
        equity_ratio=d["totalEquity"] / total_assets,
        asset_turnover=revenue / total_assets,
        inventory_turnover=cogs / _guard(inventory),
        receivables_turnover=revenue / _guard(d["receivables"]),
        fixed_asset_turnover=revenue / _guard(d["propertyPlantEquipment"]),
        roa=net_profit / total_assets,
        roe=net_profit / total_equity,
        gross_margin=d["grossProfit"] / _guard(revenue),
        net_margin=net_profit / _guard(revenue),
        working_capital=working_capital,
        working_capital_ratio=working_capital / total_assets,
        days_sales_outstanding=_days(d["receivables"], revenue),
        days_inventory_outstanding=_days(inventory, cogs),
        days_payables_outstanding=_days(d["tradePayables"], cogs),
        cash_conversion_cycle=cash_conversion_cycle(d),
    )


def calculate_derived_fields(data: Dict[str, float]) -> Dict[str, float]:
    """
    Return a copy of ``data`` with the stored derived fields refreshed.

    Run whenever a record's figures change; the result depends only on
    the extracted fields, so repeated calls give the same output.
    """
    refreshed = coerce_financial_data(data)
    metrics = compute_metrics(refreshed)
    refreshed["workingCapital"] = metrics.working_capital
    refreshed["debtToEquityRatio"] = metrics.debt_to_equity
    refreshed["currentRatio"] = metrics.current_ratio
    refreshed["quickRatio"] = metrics.quick_ratio
    return refreshed
