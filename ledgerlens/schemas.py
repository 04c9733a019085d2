# ledgerlens/schemas.py

import math
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ---------------------------
# Field vocabulary
# ---------------------------

ASSET_FIELDS = [
    "totalAssets",
    "currentAssets",
    "nonCurrentAssets",
    "cashAndEquivalents",
    "investments",
    "receivables",
    "inventory",
    "propertyPlantEquipment",
    "intangibleAssets",
]

LIABILITY_FIELDS = [
    "totalLiabilities",
    "currentLiabilities",
    "nonCurrentLiabilities",
    "shortTermBorrowings",
    "longTermBorrowings",
    "tradePayables",
    "provisions",
]

EQUITY_FIELDS = [
    "totalEquity",
    "shareCapital",
    "reservesAndSurplus",
    "retainedEarnings",
]

INCOME_FIELDS = [
    "revenue",
    "costOfGoodsSold",
    "grossProfit",
    "netProfit",
]

# Extracted line items, in extraction order
FINANCIAL_FIELDS = ASSET_FIELDS + LIABILITY_FIELDS + EQUITY_FIELDS + INCOME_FIELDS

# Recomputed on every save, never extracted
DERIVED_FIELDS = ["workingCapital", "debtToEquityRatio", "currentRatio", "quickRatio"]

ALL_FIELDS = FINANCIAL_FIELDS + DERIVED_FIELDS

PERIODS = ["Annual", "Quarterly", "Half-Yearly"]
COMPANY_TYPES = ["Parent", "Subsidiary", "Division"]

RiskLevel = Literal["Low", "Medium", "High"]


def _finite(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def empty_financial_data() -> Dict[str, float]:
    return {name: 0.0 for name in ALL_FIELDS}


def coerce_financial_data(data: Optional[Dict[str, Any]]) -> Dict[str, float]:
    """
    Return a complete financial-data mapping: every known field present,
    every value a finite float. Unknown keys are dropped.
    """
    coerced = empty_financial_data()
    for name, value in (data or {}).items():
        if name in coerced:
            coerced[name] = _finite(value)
    return coerced


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------
# Pipeline models
# ---------------------------

class NormalizedText(CamelModel):
    text: str = ""
    financial_year: Optional[str] = None   # e.g. "2023" when the text names one


class ValidationResult(CamelModel):
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class MetricsSet(CamelModel):
    # Liquidity
    current_ratio: float = 0.0
    quick_ratio: float = 0.0
    cash_ratio: float = 0.0
    # Solvency
    debt_to_equity: float = 0.0
    debt_to_assets: float = 0.0
    equity_ratio: float = 0.0
    # Efficiency
    asset_turnover: float = 0.0
    inventory_turnover: float = 0.0
    receivables_turnover: float = 0.0
    fixed_asset_turnover: float = 0.0
    # Profitability
    roa: float = 0.0
    roe: float = 0.0
    gross_margin: float = 0.0
    net_margin: float = 0.0
    # Working capital
    working_capital: float = 0.0
    working_capital_ratio: float = 0.0
    # Days
    days_sales_outstanding: float = 0.0
    days_inventory_outstanding: float = 0.0
    days_payables_outstanding: float = 0.0
    cash_conversion_cycle: float = 0.0


class RiskProfile(CamelModel):
    liquidity_risk: RiskLevel = "Low"
    solvency_risk: RiskLevel = "Low"
    operational_risk: RiskLevel = "Low"
    overall_risk: RiskLevel = "Low"


class CreditProfile(CamelModel):
    creditworthiness: str
    financial_flexibility: str
    risk_profile: str
    growth_potential: str
    key_strengths: List[str] = Field(default_factory=list)
    areas_of_concern: List[str] = Field(default_factory=list)


class BenchmarkEntry(CamelModel):
    company: float
    industry: float
    status: str   # "Above Industry" / "Below Industry"


class PeriodRecord(CamelModel):
    period_label: str
    data: Dict[str, float] = Field(default_factory=empty_financial_data)

    @field_validator("data", mode="before")
    @classmethod
    def complete_data(cls, v):
        return coerce_financial_data(v)


class TrendResult(CamelModel):
    periods: List[str]
    # keyed "{previous}-{current}", then by field name; None when previous is 0
    growth: Dict[str, Dict[str, Optional[float]]]
    # fraction, e.g. 0.15 for 15%; None when the first value is not positive
    cagr: Dict[str, Optional[float]]


class GrowthMetrics(CamelModel):
    revenue_growth: Optional[float] = None
    asset_growth: Optional[float] = None
    profit_growth: Optional[float] = None


class AnalysisReport(CamelModel):
    analysis: str
    key_insights: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    advanced_metrics: MetricsSet
    industry_benchmark: Dict[str, BenchmarkEntry] = Field(default_factory=dict)
    risk_profile: RiskProfile = Field(default_factory=RiskProfile)
    growth_metrics: GrowthMetrics = Field(default_factory=GrowthMetrics)
    ai_generated: bool = False


class ComparisonReport(CamelModel):
    analysis: str
    highlights: List[str] = Field(default_factory=list)
    trends: TrendResult
    ai_generated: bool = False


class PipelineResult(CamelModel):
    financial_year: Optional[str] = None
    financial_data: Dict[str, float]
    validation: ValidationResult
    metrics: MetricsSet
    risk_profile: RiskProfile
    analysis: Optional[AnalysisReport] = None
    page_count: Optional[int] = None


# ---------------------------
# API models
# ---------------------------

class CompanyCreate(CamelModel):
    name: str
    industry: str
    type: str = "Subsidiary"
    parent_id: Optional[str] = None
    currency: str = "INR"

    @field_validator("type")
    @classmethod
    def known_type(cls, v):
        if v not in COMPANY_TYPES:
            raise ValueError(f"type must be one of {COMPANY_TYPES}")
        return v

    @field_validator("name", "industry")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class CompanyOut(CamelModel):
    id: str
    name: str
    industry: str
    type: str
    parent_id: Optional[str] = None
    currency: str
    created_at: datetime


class BalanceSheetOut(CamelModel):
    id: str
    company_id: str
    financial_year: str
    period: str
    upload_date: datetime
    original_name: Optional[str] = None
    file_size: Optional[int] = None
    financial_data: Dict[str, float]
    validation: Dict[str, Any] = Field(default_factory=dict)
    analysis: Optional[Dict[str, Any]] = None
    processing_status: str
    processing_errors: List[str] = Field(default_factory=list)
    currency: str
    units: str
    is_consolidated: bool
    notes: Optional[str] = None


class BalanceSheetUpdate(CamelModel):
    financial_data: Optional[Dict[str, float]] = None
    notes: Optional[str] = None

    @field_validator("financial_data")
    @classmethod
    def known_fields(cls, v):
        if v is None:
            return v
        unknown = sorted(set(v) - set(FINANCIAL_FIELDS))
        if unknown:
            raise ValueError(f"unknown financial fields: {', '.join(unknown)}")
        return v


class CompareRequest(CamelModel):
    balance_sheet_ids: List[str]


class ChatCreate(CamelModel):
    company_id: str
    title: Optional[str] = None
    balance_sheet_ids: List[str] = Field(default_factory=list)


class ChatMessageIn(CamelModel):
    message: str

    @field_validator("message")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("message must not be blank")
        return v


class ChatMessage(CamelModel):
    role: str  # "user" or "assistant"
    content: str
    timestamp: datetime


class ChatOut(CamelModel):
    id: str
    company_id: str
    title: str
    balance_sheet_ids: List[str] = Field(default_factory=list)
    messages: List[ChatMessage] = Field(default_factory=list)
    status: str
