"""OpenAI-backed narrative analysis, with a deterministic fallback."""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from . import config
from .metrics import compute_metrics
from .risk import classify_risk, industry_benchmark
from .schemas import (
    AnalysisReport,
    ComparisonReport,
    MetricsSet,
    PeriodRecord,
    RiskProfile,
)
from .trends import compute_growth_metrics, compute_trends

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are a senior financial analyst. Analyze the balance sheet data below for top management.

Current Year Data:
{current}
{previous_block}
Cover liquidity, solvency, asset composition and capital structure.

Format your response as JSON with this exact structure:
{{
  "analysis": "A few paragraphs of narrative analysis",
  "keyInsights": ["Insight 1", "Insight 2", "Insight 3"],
  "riskFactors": ["Risk 1", "Risk 2", "Risk 3"],
  "recommendations": ["Recommendation 1", "Recommendation 2", "Recommendation 3"]
}}

Base your analysis ONLY on the provided data. Reference actual numbers."""

COMPARISON_PROMPT = """You are a financial analyst comparing multiple periods of balance sheet data.

Balance Sheet Data (oldest first):
{periods}

Describe growth trends, the evolution of liabilities and equity, and how risk has changed.

Format your response as JSON with this exact structure:
{{
  "analysis": "Narrative comparison",
  "highlights": ["Highlight 1", "Highlight 2", "Highlight 3"]
}}"""

CHAT_SYSTEM_PROMPT = """You are an AI financial analyst assistant answering questions about balance sheet data.
Provide accurate, data-driven answers in clear, professional language and be concise.

Company: {company}

Financial Data Context:
{context}

If the information needed to answer is not in this data, say so clearly."""


def parse_json_response(content: str) -> Dict[str, Any]:
    """Parse a JSON object out of a model reply, tolerating ``` fences."""
    content = (content or "").strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    parsed = json.loads(content.strip())
    if not isinstance(parsed, dict):
        raise ValueError("Model reply is not a JSON object")
    return parsed


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


class OpenAIAnalysisClient:
    """
    Thin wrapper over the OpenAI chat API.

    Calls fail fast: a bounded timeout and no retries, so callers can
    fall back immediately.
    """

    def __init__(
        self,
        api_key: str = None,
        model: str = None,
        timeout: float = None,
        client: OpenAI = None,
    ):
        self.model = model or config.OPENAI_MODEL
        if client is None:
            api_key = api_key or config.OPENAI_API_KEY
            if not api_key:
                raise ValueError("OpenAI API key not found. Set OPENAI_API_KEY environment variable.")
            client = OpenAI(
                api_key=api_key,
                timeout=timeout or config.AI_TIMEOUT_SECONDS,
                max_retries=0,
            )
        self.client = client

    def _complete(self, messages: List[Dict[str, str]], max_tokens: int = None) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=config.AI_TEMPERATURE,
            max_tokens=max_tokens or config.AI_MAX_TOKENS,
        )
        return response.choices[0].message.content or ""

    def generate_analysis(
        self,
        data: Dict[str, float],
        previous: Optional[Dict[str, float]] = None,
    ) -> Dict[str, Any]:
        previous_block = ""
        if previous:
            previous_block = f"\nPrevious Year Data:\n{json.dumps(previous, indent=2)}\n"
        prompt = ANALYSIS_PROMPT.format(
            current=json.dumps(data, indent=2),
            previous_block=previous_block,
        )
        content = self._complete([
            {"role": "system", "content": "You are a financial analyst. Respond with JSON only."},
            {"role": "user", "content": prompt},
        ])
        return parse_json_response(content)

    def generate_comparison(self, periods: List[Dict[str, Any]]) -> Dict[str, Any]:
        prompt = COMPARISON_PROMPT.format(periods=json.dumps(periods, indent=2))
        content = self._complete([
            {"role": "system", "content": "You are a financial analyst. Respond with JSON only."},
            {"role": "user", "content": prompt},
        ])
        return parse_json_response(content)

    def chat(
        self,
        message: str,
        context: Dict[str, Any],
        history: Sequence[Dict[str, str]] = (),
    ) -> str:
        messages = [{
            "role": "system",
            "content": CHAT_SYSTEM_PROMPT.format(
                company=context.get("company", "Unknown"),
                context=json.dumps(context.get("balanceSheets", []), indent=2, default=str),
            ),
        }]
        for msg in list(history)[-config.CHAT_HISTORY_CONTEXT:]:
            messages.append({"role": msg["role"], "content": msg["content"]})
        messages.append({"role": "user", "content": message})
        return self._complete(messages, max_tokens=800)


def get_analysis_client() -> Optional[OpenAIAnalysisClient]:
    """FastAPI dependency: the configured AI client, or None when AI is not configured."""
    if not config.OPENAI_API_KEY:
        logger.debug("OPENAI_API_KEY not set; using rule-based analysis only")
        return None
    return OpenAIAnalysisClient()


# ---------------------------
# Fallback generator
# ---------------------------

def _liquidity_word(current_ratio: float) -> str:
    if current_ratio >= 1.5:
        return "strong"
    if current_ratio >= 1:
        return "adequate"
    return "weak"


def _fallback_insights(data: Dict[str, float], m: MetricsSet) -> List[str]:
    insights = [
        f"Current ratio of {m.current_ratio:.2f} indicates {_liquidity_word(m.current_ratio)} "
        f"short-term liquidity.",
        f"Quick ratio of {m.quick_ratio:.2f} shows the cover for current liabilities "
        f"without relying on inventory.",
        f"Debt-to-equity ratio of {m.debt_to_equity:.2f} with liabilities at "
        f"{m.debt_to_assets * 100:.1f}% of total assets.",
    ]
    if m.working_capital >= 0:
        insights.append(f"Working capital is positive at {m.working_capital:,.2f}.")
    else:
        insights.append(f"Working capital is negative at {m.working_capital:,.2f}.")
    if data.get("revenue"):
        insights.append(
            f"Return on assets is {m.roa * 100:.1f}% and net margin is {m.net_margin * 100:.1f}%."
        )
    return insights


def _fallback_risks(m: MetricsSet, risk: RiskProfile) -> List[str]:
    risks = []
    if risk.liquidity_risk != "Low":
        risks.append(
            f"{risk.liquidity_risk} liquidity risk: current ratio of {m.current_ratio:.2f} "
            f"leaves limited cover for short-term obligations."
        )
    if risk.solvency_risk != "Low":
        risks.append(
            f"{risk.solvency_risk} solvency risk: debt-to-equity ratio of {m.debt_to_equity:.2f}."
        )
    if risk.operational_risk != "Low":
        risks.append(
            f"{risk.operational_risk} leverage on assets: liabilities fund "
            f"{m.debt_to_assets * 100:.1f}% of total assets."
        )
    if not risks:
        risks.append("No significant balance-sheet risks identified from the reported figures.")
    return risks


def _fallback_recommendations(m: MetricsSet, risk: RiskProfile) -> List[str]:
    recommendations = []
    if risk.liquidity_risk != "Low":
        recommendations.append(
            "Strengthen liquidity by building cash reserves or refinancing short-term debt."
        )
    if risk.solvency_risk != "Low":
        recommendations.append("Reduce leverage by retiring debt or raising equity.")
    if m.cash_conversion_cycle > 90:
        recommendations.append(
            f"Shorten the cash conversion cycle of {m.cash_conversion_cycle:.0f} days "
            f"through tighter receivable and inventory management."
        )
    if not recommendations:
        recommendations.append(
            "Maintain the current capital structure and keep monitoring liquidity each period."
        )
    return recommendations


def generate_fallback_analysis(
    data: Dict[str, float],
    previous: Optional[Dict[str, float]] = None,
) -> AnalysisReport:
    """Rule-based analysis from computed ratios. Used whenever the AI is unavailable."""
    m = compute_metrics(data)
    risk = classify_risk(m)
    growth = compute_growth_metrics(data, previous)

    narrative = (
        f"The balance sheet shows a current ratio of {m.current_ratio:.2f}, "
        f"a quick ratio of {m.quick_ratio:.2f} and a debt-to-equity ratio of "
        f"{m.debt_to_equity:.2f}. Working capital stands at {m.working_capital:,.2f}. "
        f"Overall financial risk is assessed as {risk.overall_risk}."
    )
    insights = _fallback_insights(data, m)
    if growth.asset_growth is not None:
        insights.append(f"Total assets changed by {growth.asset_growth:.1f}% on the previous period.")

    return AnalysisReport(
        analysis=narrative,
        key_insights=insights,
        risk_factors=_fallback_risks(m, risk),
        recommendations=_fallback_recommendations(m, risk),
        advanced_metrics=m,
        industry_benchmark=industry_benchmark(m),
        risk_profile=risk,
        growth_metrics=growth,
        ai_generated=False,
    )


def analyze_financial_data(
    data: Dict[str, float],
    client=None,
    previous: Optional[Dict[str, float]] = None,
) -> AnalysisReport:
    """
    Narrative analysis of one period.

    ``client`` is anything with a ``generate_analysis(data, previous)``
    method. Any failure from it, including a malformed reply, yields the
    rule-based analysis instead.
    """
    if client is None:
        return generate_fallback_analysis(data, previous)

    try:
        result = client.generate_analysis(data, previous)
        narrative = result.get("analysis")
        if not isinstance(narrative, str) or not narrative.strip():
            raise ValueError("AI reply has no analysis text")
    except Exception as e:
        logger.warning("AI analysis failed, using fallback: %s", e)
        return generate_fallback_analysis(data, previous)

    m = compute_metrics(data)
    return AnalysisReport(
        analysis=narrative.strip(),
        key_insights=_string_list(result.get("keyInsights"))[:5],
        risk_factors=_string_list(result.get("riskFactors"))[:3],
        recommendations=_string_list(result.get("recommendations"))[:3],
        advanced_metrics=m,
        industry_benchmark=industry_benchmark(m),
        risk_profile=classify_risk(m),
        growth_metrics=compute_growth_metrics(data, previous),
        ai_generated=True,
    )


_TREND_LABELS = {
    "revenue": "Revenue",
    "totalAssets": "Total assets",
    "totalEquity": "Total equity",
    "totalLiabilities": "Total liabilities",
}


def generate_fallback_comparison(periods: Sequence[PeriodRecord]) -> ComparisonReport:
    trends = compute_trends(periods)
    first, last = trends.periods[0], trends.periods[-1]

    highlights = []
    for name, value in trends.cagr.items():
        if value is not None:
            highlights.append(
                f"{_TREND_LABELS[name]} compounded at {value * 100:.1f}% per period "
                f"between {first} and {last}."
            )
    latest_pair = list(trends.growth)[-1]
    for name, value in trends.growth[latest_pair].items():
        if value is not None:
            direction = "grew" if value >= 0 else "declined"
            highlights.append(f"{_TREND_LABELS[name]} {direction} {abs(value):.1f}% in {latest_pair}.")

    analysis = (
        f"Comparison of {len(trends.periods)} periods from {first} to {last}. "
        + (highlights[0] if highlights else "No growth could be computed from the reported figures.")
    )
    return ComparisonReport(analysis=analysis, highlights=highlights, trends=trends, ai_generated=False)


def generate_comparative_analysis(
    periods: Sequence[PeriodRecord],
    client=None,
) -> ComparisonReport:
    """Multi-period comparison; raises InsufficientPeriodsError for fewer than 2 periods."""
    if client is None:
        return generate_fallback_comparison(periods)

    trends = compute_trends(periods)
    payload = [{"period": p.period_label, "data": p.data} for p in periods]
    try:
        result = client.generate_comparison(payload)
        narrative = result.get("analysis")
        if not isinstance(narrative, str) or not narrative.strip():
            raise ValueError("AI reply has no analysis text")
    except Exception as e:
        logger.warning("AI comparison failed, using fallback: %s", e)
        return generate_fallback_comparison(periods)

    return ComparisonReport(
        analysis=narrative.strip(),
        highlights=_string_list(result.get("highlights")),
        trends=trends,
        ai_generated=True,
    )
