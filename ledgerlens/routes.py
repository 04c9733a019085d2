import logging
import math
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from . import config, repository
from .db import BalanceSheet, get_session
from .insights import generate_comparative_analysis, get_analysis_client
from .metrics import calculate_derived_fields, compute_metrics
from .parsing import ExtractionError
from .pipeline import process_pdf, reanalyze
from .risk import assess_credit_profile, classify_risk, industry_benchmark
from .schemas import (
    FINANCIAL_FIELDS,
    PERIODS,
    BalanceSheetOut,
    BalanceSheetUpdate,
    ChatCreate,
    ChatMessageIn,
    ChatOut,
    CompanyCreate,
    CompanyOut,
    CompareRequest,
    PeriodRecord,
    coerce_financial_data,
)
from .trends import InsufficientPeriodsError, compute_benchmark_trends, compute_trends
from .validation import validate_financial_data

logger = logging.getLogger(__name__)

router = APIRouter()


def _sheet_out(sheet: BalanceSheet) -> dict:
    return BalanceSheetOut.model_validate(sheet).model_dump(by_alias=True)


def _require_company(session: Session, company_id: str):
    company = repository.get_company(session, company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


def _require_sheet(session: Session, sheet_id: str) -> BalanceSheet:
    sheet = repository.get_balance_sheet(session, sheet_id)
    if sheet is None:
        raise HTTPException(status_code=404, detail="Balance sheet not found")
    return sheet


def _previous_data(session: Session, sheet: BalanceSheet):
    previous = repository.find_previous_period(
        session, sheet.company_id, sheet.financial_year, sheet.period
    )
    return previous.financial_data if previous else None


def _period_records(sheets: List[BalanceSheet]) -> List[PeriodRecord]:
    return [PeriodRecord(period_label=s.financial_year, data=s.financial_data) for s in sheets]


# ---------------------------
# Companies
# ---------------------------

@router.post("/companies", status_code=201)
def create_company(req: CompanyCreate, session: Session = Depends(get_session)):
    if req.parent_id:
        _require_company(session, req.parent_id)
    company = repository.create_company(
        session,
        name=req.name,
        industry=req.industry,
        type=req.type,
        parent_id=req.parent_id,
        currency=req.currency,
    )
    return CompanyOut.model_validate(company).model_dump(by_alias=True)


@router.get("/companies")
def list_companies(session: Session = Depends(get_session)):
    return {
        "companies": [
            CompanyOut.model_validate(c).model_dump(by_alias=True)
            for c in repository.list_companies(session)
        ]
    }


@router.get("/companies/{company_id}")
def get_company(company_id: str, session: Session = Depends(get_session)):
    company = _require_company(session, company_id)
    return CompanyOut.model_validate(company).model_dump(by_alias=True)


# ---------------------------
# Balance sheets
# ---------------------------

@router.post("/balance-sheets/upload", status_code=201)
def upload_balance_sheet(
    company_id: str = Form(..., alias="companyId"),
    financial_year: Optional[str] = Form(None, alias="financialYear"),
    period: str = Form("Annual"),
    is_consolidated: bool = Form(False, alias="isConsolidated"),
    pdf_file: UploadFile = File(..., alias="pdfFile"),
    session: Session = Depends(get_session),
    client=Depends(get_analysis_client),
):
    filename = pdf_file.filename or "upload.pdf"
    if pdf_file.content_type not in config.ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF files are allowed")
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"Period must be one of {PERIODS}")

    company = _require_company(session, company_id)

    # sync endpoint: runs in the threadpool
    blob = pdf_file.file.read()
    if len(blob) > config.MAX_FILE_SIZE:
        raise HTTPException(status_code=413, detail="File exceeds the maximum upload size")

    def resolve_year(detected_year):
        return financial_year or detected_year or str(datetime.utcnow().year)

    def previous_lookup(detected_year):
        previous = repository.find_previous_period(
            session, company_id, resolve_year(detected_year), period
        )
        return previous.financial_data if previous else None

    try:
        result = process_pdf(blob, client, previous_lookup=previous_lookup)
    except ExtractionError as e:
        raise HTTPException(status_code=422, detail=f"PDF processing failed: {e}")

    sheet = BalanceSheet(
        id=uuid.uuid4().hex,
        company_id=company.id,
        financial_year=resolve_year(result.financial_year),
        period=period,
        original_name=filename,
        file_size=len(blob),
        financial_data=result.financial_data,
        validation=result.validation.model_dump(by_alias=True),
        analysis=result.analysis.model_dump(by_alias=True) if result.analysis else None,
        processing_status="Completed",
        processing_errors=list(result.validation.errors),
        currency=company.currency,
        is_consolidated=is_consolidated,
        notes=f"Uploaded from {filename}",
    )
    sheet = repository.save_balance_sheet(session, sheet)
    logger.info("Stored balance sheet %s for company %s (%s)", sheet.id, company.id, sheet.financial_year)

    return {
        "balanceSheet": _sheet_out(sheet),
        "validation": result.validation.model_dump(by_alias=True),
        "metrics": result.metrics.model_dump(by_alias=True),
        "riskProfile": result.risk_profile.model_dump(by_alias=True),
        "pageCount": result.page_count,
    }


@router.get("/balance-sheets/company/{company_id}")
def list_balance_sheets(
    company_id: str,
    page: int = 1,
    limit: int = 10,
    year: Optional[str] = None,
    period: Optional[str] = None,
    session: Session = Depends(get_session),
):
    limit = max(1, min(limit, 100))
    page = max(page, 1)
    sheets, total = repository.list_balance_sheets(
        session, company_id, year=year, period=period, page=page, limit=limit
    )
    return {
        "balanceSheets": [_sheet_out(s) for s in sheets],
        "pagination": {
            "current": page,
            "pages": math.ceil(total / limit),
            "total": total,
        },
    }


@router.get("/balance-sheets/stats/company/{company_id}")
def balance_sheet_stats(company_id: str, session: Session = Depends(get_session)):
    return repository.get_balance_sheet_stats(session, company_id)


@router.get("/balance-sheets/{sheet_id}")
def get_balance_sheet(sheet_id: str, session: Session = Depends(get_session)):
    return {"balanceSheet": _sheet_out(_require_sheet(session, sheet_id))}


@router.put("/balance-sheets/{sheet_id}")
def update_balance_sheet(
    sheet_id: str,
    req: BalanceSheetUpdate,
    session: Session = Depends(get_session),
):
    sheet = _require_sheet(session, sheet_id)

    if req.financial_data:
        # validate the same finite values that get stored
        merged = coerce_financial_data({**sheet.financial_data, **req.financial_data})
        extracted = {name: merged[name] for name in FINANCIAL_FIELDS}
        sheet.validation = validate_financial_data(extracted).model_dump(by_alias=True)
        sheet.financial_data = calculate_derived_fields(merged)
    if req.notes is not None:
        sheet.notes = req.notes

    sheet = repository.save_balance_sheet(session, sheet)
    return {"balanceSheet": _sheet_out(sheet)}


@router.delete("/balance-sheets/{sheet_id}")
def delete_balance_sheet(sheet_id: str, session: Session = Depends(get_session)):
    sheet = _require_sheet(session, sheet_id)
    repository.delete_balance_sheet(session, sheet)
    return {"deleted": sheet_id}


@router.post("/balance-sheets/{sheet_id}/reprocess")
def reprocess_balance_sheet(
    sheet_id: str,
    session: Session = Depends(get_session),
    client=Depends(get_analysis_client),
):
    sheet = _require_sheet(session, sheet_id)

    data = calculate_derived_fields(sheet.financial_data)
    extracted = {name: data[name] for name in FINANCIAL_FIELDS}
    validation = validate_financial_data(extracted)
    analysis = reanalyze(data, client, _previous_data(session, sheet))

    sheet.financial_data = data
    sheet.validation = validation.model_dump(by_alias=True)
    sheet.analysis = analysis.model_dump(by_alias=True) if analysis else None
    sheet.processing_status = "Completed"
    sheet.processing_errors = list(validation.errors)
    sheet = repository.save_balance_sheet(session, sheet)

    return {
        "id": sheet.id,
        "analysis": sheet.analysis,
        "processingStatus": sheet.processing_status,
    }


# ---------------------------
# Analysis
# ---------------------------

@router.get("/analysis/ratios/{company_id}")
def company_ratios(
    company_id: str,
    year: Optional[str] = None,
    session: Session = Depends(get_session),
):
    sheets, _ = repository.list_balance_sheets(session, company_id, year=year)
    if not sheets:
        raise HTTPException(status_code=404, detail="No balance sheets found for this company")
    return {
        "ratios": [
            {"year": s.financial_year, **compute_metrics(s.financial_data).model_dump(by_alias=True)}
            for s in sheets
        ]
    }


@router.get("/analysis/growth/{company_id}")
def company_growth(
    company_id: str,
    period: str = "Annual",
    session: Session = Depends(get_session),
):
    if period not in PERIODS:
        raise HTTPException(status_code=400, detail=f"Period must be one of {PERIODS}")
    # one period type only, so each financial year appears once
    sheets, _ = repository.list_balance_sheets(
        session, company_id, period=period, ascending=True
    )
    try:
        trends = compute_trends(_period_records(sheets))
    except InsufficientPeriodsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"growth": trends.model_dump(by_alias=True)}


@router.get("/analysis/risk/{company_id}")
def company_risk(company_id: str, session: Session = Depends(get_session)):
    sheets, _ = repository.list_balance_sheets(session, company_id, limit=3)
    if not sheets:
        raise HTTPException(status_code=404, detail="No balance sheets found for risk assessment")

    risk_metrics = []
    for sheet in sheets:
        metrics = compute_metrics(sheet.financial_data)
        risk_metrics.append({
            "year": sheet.financial_year,
            "currentRatio": metrics.current_ratio,
            "debtToEquity": metrics.debt_to_equity,
            "debtToAssets": metrics.debt_to_assets,
            **classify_risk(metrics).model_dump(by_alias=True),
        })
    return {"riskMetrics": risk_metrics}


@router.get("/analysis/metrics/{sheet_id}")
def sheet_metrics(sheet_id: str, session: Session = Depends(get_session)):
    sheet = _require_sheet(session, sheet_id)
    company = repository.get_company(session, sheet.company_id)
    return {
        "metrics": compute_metrics(sheet.financial_data).model_dump(by_alias=True),
        "balanceSheet": {
            "id": sheet.id,
            "year": sheet.financial_year,
            "company": company.name if company else None,
        },
    }


@router.get("/analysis/comprehensive/{sheet_id}")
def comprehensive_analysis(sheet_id: str, session: Session = Depends(get_session)):
    sheet = _require_sheet(session, sheet_id)
    company = repository.get_company(session, sheet.company_id)
    metrics = compute_metrics(sheet.financial_data)
    return {
        "balanceSheet": {
            "id": sheet.id,
            "year": sheet.financial_year,
            "company": company.name if company else None,
            "industry": company.industry if company else None,
        },
        "advancedMetrics": metrics.model_dump(by_alias=True),
        "industryBenchmark": {
            name: entry.model_dump(by_alias=True)
            for name, entry in industry_benchmark(metrics).items()
        },
        "creditProfile": assess_credit_profile(metrics).model_dump(by_alias=True),
        "riskProfile": classify_risk(metrics).model_dump(by_alias=True),
        "analysis": sheet.analysis,
    }


@router.get("/analysis/benchmark/{company_id}")
def company_benchmark(company_id: str, session: Session = Depends(get_session)):
    company = _require_company(session, company_id)
    sheets, _ = repository.list_balance_sheets(session, company_id, limit=3)
    if not sheets:
        raise HTTPException(status_code=404, detail="No balance sheets found for benchmarking")

    benchmark_data = []
    for sheet in sheets:
        metrics = compute_metrics(sheet.financial_data)
        benchmark_data.append({
            "year": sheet.financial_year,
            "metrics": metrics.model_dump(by_alias=True),
            "industryBenchmark": {
                name: entry.model_dump(by_alias=True)
                for name, entry in industry_benchmark(metrics).items()
            },
        })

    return {
        "company": company.name,
        "industry": company.industry,
        "benchmarkData": benchmark_data,
        "trends": compute_benchmark_trends(_period_records(list(reversed(sheets)))),
    }


@router.post("/analysis/compare")
def compare_balance_sheets(
    req: CompareRequest,
    session: Session = Depends(get_session),
    client=Depends(get_analysis_client),
):
    if len(req.balance_sheet_ids) < 2:
        raise HTTPException(status_code=400, detail="At least 2 balance sheets are required for comparison")

    sheets = repository.get_balance_sheets(session, req.balance_sheet_ids)
    if len(sheets) < 2:
        raise HTTPException(status_code=400, detail="Could not find the specified balance sheets")

    report = generate_comparative_analysis(_period_records(sheets), client)
    return {
        "analysis": report.model_dump(by_alias=True),
        "balanceSheets": [
            {"id": s.id, "year": s.financial_year, "companyId": s.company_id, "data": s.financial_data}
            for s in sheets
        ],
    }


# ---------------------------
# Chat
# ---------------------------

def _chat_title(first_message: str) -> str:
    words = first_message.split(" ")[:5]
    return " ".join(words) + ("..." if len(first_message) > 50 else "")


@router.post("/chat", status_code=201)
def create_chat(req: ChatCreate, session: Session = Depends(get_session)):
    _require_company(session, req.company_id)
    chat = repository.create_chat(
        session,
        id=uuid.uuid4().hex,
        company_id=req.company_id,
        title=req.title or "New Analysis Session",
        balance_sheet_ids=list(req.balance_sheet_ids),
        messages=[],
    )
    return ChatOut.model_validate(chat).model_dump(by_alias=True)


def _require_chat(session: Session, chat_id: str):
    chat = repository.get_chat(session, chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return chat


@router.get("/chat/{chat_id}")
def get_chat(chat_id: str, session: Session = Depends(get_session)):
    return ChatOut.model_validate(_require_chat(session, chat_id)).model_dump(by_alias=True)


@router.post("/chat/{chat_id}/message")
def send_message(
    chat_id: str,
    req: ChatMessageIn,
    session: Session = Depends(get_session),
    client=Depends(get_analysis_client),
):
    chat = _require_chat(session, chat_id)
    if client is None:
        raise HTTPException(status_code=503, detail="AI assistant is not configured")

    sheets = repository.get_balance_sheets(session, chat.balance_sheet_ids)
    if not sheets:
        sheets, _ = repository.list_balance_sheets(session, chat.company_id, limit=3)
    company = repository.get_company(session, chat.company_id)
    context = {
        "company": company.name if company else "Unknown",
        "balanceSheets": [
            {"year": s.financial_year, "data": s.financial_data, "analysis": s.analysis}
            for s in sheets
        ],
    }

    try:
        answer = client.chat(req.message, context, history=chat.messages or [])
    except Exception as e:
        logger.error("AI chat error: %s", e)
        raise HTTPException(status_code=503, detail="AI processing failed")

    chat = repository.append_chat_messages(
        session,
        chat,
        {"role": "user", "content": req.message},
        {"role": "assistant", "content": answer},
    )
    if len(chat.messages) == 2:
        chat.title = _chat_title(chat.messages[0]["content"])
        session.commit()

    out = ChatOut.model_validate(chat).model_dump(by_alias=True)
    return {
        "userMessage": out["messages"][-2],
        "aiResponse": out["messages"][-1],
        "chatTitle": out["title"],
    }


@router.put("/chat/{chat_id}/archive")
def archive_chat(chat_id: str, session: Session = Depends(get_session)):
    chat = _require_chat(session, chat_id)
    chat.status = "archived"
    session.commit()
    return {"id": chat.id, "status": chat.status}


@router.delete("/chat/{chat_id}")
def delete_chat(chat_id: str, session: Session = Depends(get_session)):
    chat = _require_chat(session, chat_id)
    repository.delete_chat(session, chat)
    return {"deleted": chat_id}


@router.get("/health")
def health():
    return {"status": "ok"}
