import os
import sys

import pytest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(ROOT_DIR)

# Patch environment before importing the app: in-memory SQLite, no OpenAI key
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""

from fastapi.testclient import TestClient  # noqa: E402

from ledgerlens import parsing  # noqa: E402
from ledgerlens.db import Base, SessionLocal, engine  # noqa: E402
from ledgerlens.insights import get_analysis_client  # noqa: E402
from ledgerlens.main import app  # noqa: E402


SAMPLE_TEXT = (
    "Balance Sheet as at 31 March FY 2023\n"
    "Total Assets: ₹1,000,000\n"
    "Current Assets: 600,000\n"
    "Non-Current Assets: 400,000\n"
    "Cash and Cash Equivalents: 150,000\n"
    "Trade Receivables: 200,000\n"
    "Inventories: 100,000\n"
    "Total Liabilities: 600,000\n"
    "Current Liabilities: 300,000\n"
    "Trade Payables: 80,000\n"
    "Total Equity: 400,000\n"
    "Share Capital: 100,000\n"
    "Revenue from Operations: 2,000,000\n"
    "Cost of Goods Sold: 1,200,000\n"
    "Gross Profit: 800,000\n"
    "Net Profit: 150,000\n"
)


class FakeElement:
    def __init__(self, text, page_number=1):
        self.text = text
        self.metadata = type("Metadata", (), {"page_number": page_number})()

    def __str__(self):
        return self.text


class FakeAnalysisClient:
    """Stands in for the OpenAI client; records calls, can be told to fail."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def generate_analysis(self, data, previous=None):
        self.calls.append(("analysis", data, previous))
        if self.fail:
            raise RuntimeError("429 You exceeded your current quota")
        return {
            "analysis": "The company is liquid and moderately leveraged.",
            "keyInsights": ["Liquidity is strong", "Leverage is moderate"],
            "riskFactors": ["Debt-to-equity above 1"],
            "recommendations": ["Reduce borrowings"],
        }

    def generate_comparison(self, periods):
        self.calls.append(("comparison", periods))
        if self.fail:
            raise RuntimeError("timeout")
        return {"analysis": "Assets grew steadily.", "highlights": ["Assets up"]}

    def chat(self, message, context, history=()):
        self.calls.append(("chat", message, context, list(history)))
        if self.fail:
            raise RuntimeError("service unavailable")
        return f"Answer about {context['company']}"


@pytest.fixture
def session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    s = SessionLocal()
    yield s
    s.close()


@pytest.fixture
def fake_ai():
    return FakeAnalysisClient()


@pytest.fixture(autouse=True)
def element_text(monkeypatch):
    """Render partitioned elements without needing the unstructured extra installed."""
    calls = []

    def to_text(elements):
        calls.append(list(elements))
        return "\n\n".join(str(el) for el in elements)

    monkeypatch.setattr(parsing, "_to_text", to_text)
    return calls


@pytest.fixture
def fake_pdf(monkeypatch):
    """Treat uploaded bytes as the PDF's text so tests can upload plain strings."""
    def partition(pdf_bytes):
        return [FakeElement(pdf_bytes.decode("utf-8"), page_number=2)]

    monkeypatch.setattr(parsing, "_partition", partition)


@pytest.fixture
def test_client(session, fake_ai, fake_pdf):
    app.dependency_overrides[get_analysis_client] = lambda: fake_ai
    yield TestClient(app)
    app.dependency_overrides.clear()
