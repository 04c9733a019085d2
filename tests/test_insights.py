import json
from unittest.mock import MagicMock

import pytest

from ledgerlens import config, insights
from ledgerlens.insights import (
    OpenAIAnalysisClient,
    analyze_financial_data,
    generate_comparative_analysis,
    generate_fallback_analysis,
    get_analysis_client,
    parse_json_response,
)
from ledgerlens.schemas import PeriodRecord, empty_financial_data
from ledgerlens.trends import InsufficientPeriodsError


@pytest.fixture
def sample_data():
    data = empty_financial_data()
    data.update(
        totalAssets=1000,
        currentAssets=600,
        cashAndEquivalents=150,
        receivables=200,
        inventory=100,
        totalLiabilities=600,
        currentLiabilities=300,
        tradePayables=80,
        totalEquity=400,
        revenue=2000,
        costOfGoodsSold=1200,
        netProfit=150,
    )
    return data


def _openai_reply(content):
    mock = MagicMock()
    mock.chat.completions.create.return_value.choices = [
        MagicMock(message=MagicMock(content=content))
    ]
    return mock


def test_failing_client_falls_back(sample_data, fake_ai):
    fake_ai.fail = True
    report = analyze_financial_data(sample_data, fake_ai)

    assert report.ai_generated is False
    assert "current ratio of 2.00" in report.analysis
    assert report.key_insights
    assert report.advanced_metrics.current_ratio == 2.0
    assert len(fake_ai.calls) == 1


def test_no_client_uses_fallback(sample_data):
    report = analyze_financial_data(sample_data, None)
    assert report == generate_fallback_analysis(sample_data)
    assert report.ai_generated is False


def test_malformed_reply_falls_back(sample_data):
    client = MagicMock()
    client.generate_analysis.return_value = {"analysis": "   ", "keyInsights": ["x"]}
    assert analyze_financial_data(sample_data, client).ai_generated is False

    client.generate_analysis.side_effect = ValueError("Expecting value: line 1 column 1")
    assert analyze_financial_data(sample_data, client).ai_generated is False


def test_ai_reply_is_used(sample_data, fake_ai):
    previous = dict(sample_data, totalAssets=800)
    report = analyze_financial_data(sample_data, fake_ai, previous)

    assert report.ai_generated is True
    assert report.analysis == "The company is liquid and moderately leveraged."
    assert report.key_insights == ["Liquidity is strong", "Leverage is moderate"]
    assert report.recommendations == ["Reduce borrowings"]
    assert report.growth_metrics.asset_growth == pytest.approx(25)
    assert report.industry_benchmark["currentRatio"].status == "Above Industry"
    assert fake_ai.calls[0] == ("analysis", sample_data, previous)


def test_ai_lists_are_capped(sample_data):
    client = MagicMock()
    client.generate_analysis.return_value = {
        "analysis": "Narrative",
        "keyInsights": [f"insight {i}" for i in range(8)],
        "riskFactors": [f"risk {i}" for i in range(8)],
        "recommendations": "not a list",
    }
    report = analyze_financial_data(sample_data, client)
    assert len(report.key_insights) == 5
    assert len(report.risk_factors) == 3
    assert report.recommendations == []


def test_fallback_narrative_follows_risk(sample_data):
    report = generate_fallback_analysis(sample_data)
    assert report.risk_profile.solvency_risk == "High"
    assert any("solvency risk" in r for r in report.risk_factors)
    assert report.recommendations == ["Reduce leverage by retiring debt or raising equity."]
    assert report.growth_metrics.revenue_growth is None


def test_fallback_with_all_zero_data():
    report = generate_fallback_analysis(empty_financial_data())
    assert report.analysis
    assert report.risk_profile.liquidity_risk == "High"


def test_parse_json_response():
    assert parse_json_response('```json\n{"analysis": "ok"}\n```') == {"analysis": "ok"}
    assert parse_json_response('{"a": 1}') == {"a": 1}
    with pytest.raises(ValueError):
        parse_json_response("[1, 2]")
    with pytest.raises(ValueError):
        parse_json_response("Sorry, I cannot help with that.")


def test_openai_client_generate_analysis(sample_data):
    payload = {"analysis": "Solid", "keyInsights": ["a"], "riskFactors": [], "recommendations": []}
    mock = _openai_reply("```json\n" + json.dumps(payload) + "\n```")
    client = OpenAIAnalysisClient(model="test-model", client=mock)

    assert client.generate_analysis(sample_data) == payload
    kwargs = mock.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["max_tokens"] == config.AI_MAX_TOKENS
    assert "Previous Year Data" not in kwargs["messages"][1]["content"]

    client.generate_analysis(sample_data, previous={"totalAssets": 1})
    kwargs = mock.chat.completions.create.call_args.kwargs
    assert "Previous Year Data" in kwargs["messages"][1]["content"]


def test_openai_client_chat_trims_history(monkeypatch):
    monkeypatch.setattr(config, "CHAT_HISTORY_CONTEXT", 5)
    mock = _openai_reply("Liquidity is fine.")
    client = OpenAIAnalysisClient(client=mock)
    history = [{"role": "user", "content": f"q{i}", "timestamp": "t"} for i in range(8)]

    answer = client.chat("And solvency?", {"company": "Acme", "balanceSheets": []}, history)

    assert answer == "Liquidity is fine."
    messages = mock.chat.completions.create.call_args.kwargs["messages"]
    assert len(messages) == 7
    assert "Acme" in messages[0]["content"]
    assert messages[1]["content"] == "q3"
    assert messages[-1] == {"role": "user", "content": "And solvency?"}


def test_openai_client_requires_key(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    with pytest.raises(ValueError):
        OpenAIAnalysisClient()
    assert get_analysis_client() is None


def test_get_analysis_client_with_key(monkeypatch):
    monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(insights, "OpenAI", MagicMock())
    assert isinstance(get_analysis_client(), OpenAIAnalysisClient)


def _periods():
    return [
        PeriodRecord(period_label="2021", data={"totalAssets": 1000, "revenue": 500}),
        PeriodRecord(period_label="2022", data={"totalAssets": 1100, "revenue": 400}),
    ]


def test_comparison_fallback():
    report = generate_comparative_analysis(_periods(), None)
    assert report.ai_generated is False
    assert report.trends.periods == ["2021", "2022"]
    assert "Revenue declined 20.0% in 2021-2022." in report.highlights
    assert report.analysis.startswith("Comparison of 2 periods from 2021 to 2022.")


def test_comparison_with_ai(fake_ai):
    report = generate_comparative_analysis(_periods(), fake_ai)
    assert report.ai_generated is True
    assert report.highlights == ["Assets up"]
    assert fake_ai.calls[0][1][0]["period"] == "2021"

    fake_ai.fail = True
    assert generate_comparative_analysis(_periods(), fake_ai).ai_generated is False


def test_comparison_needs_two_periods(fake_ai):
    with pytest.raises(InsufficientPeriodsError):
        generate_comparative_analysis(_periods()[:1], fake_ai)
    with pytest.raises(InsufficientPeriodsError):
        generate_comparative_analysis(_periods()[:1], None)
