"""Functions for saving and querying balance sheets, companies and chats."""

from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .db import BalanceSheet, ChatSession, Company


# ---------------------------
# Companies
# ---------------------------

def create_company(session: Session, **fields) -> Company:
    company = Company(**fields)
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


def get_company(session: Session, company_id: str) -> Optional[Company]:
    return session.get(Company, company_id)


def list_companies(session: Session) -> List[Company]:
    return list(session.scalars(select(Company).order_by(Company.name)))


# ---------------------------
# Balance sheets
# ---------------------------

def save_balance_sheet(session: Session, sheet: BalanceSheet) -> BalanceSheet:
    """
    Insert or update a balance sheet record in one commit.

    Saving the same record again with unchanged fields leaves it as it was.

    Args:
        session: Open database session
        sheet: New or previously loaded BalanceSheet

    Returns:
        The persisted record
    """
    sheet = session.merge(sheet)
    session.commit()
    session.refresh(sheet)
    return sheet


def get_balance_sheet(session: Session, sheet_id: str) -> Optional[BalanceSheet]:
    return session.get(BalanceSheet, sheet_id)


def get_balance_sheets(session: Session, sheet_ids: List[str]) -> List[BalanceSheet]:
    """Fetch several records, oldest financial year first."""
    if not sheet_ids:
        return []
    query = (
        select(BalanceSheet)
        .where(BalanceSheet.id.in_(sheet_ids))
        .order_by(BalanceSheet.financial_year.asc(), BalanceSheet.upload_date.asc())
    )
    return list(session.scalars(query))


def delete_balance_sheet(session: Session, sheet: BalanceSheet) -> None:
    session.delete(sheet)
    session.commit()


def list_balance_sheets(
    session: Session,
    company_id: str,
    year: Optional[str] = None,
    period: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    ascending: bool = False,
) -> Tuple[List[BalanceSheet], int]:
    """
    Balance sheets of one company, newest financial year first by default.

    Args:
        session: Open database session
        company_id: Owning company
        year: Only this financial year
        period: Only this period type (Annual, Quarterly, Half-Yearly)
        page: 1-based page number, used with ``limit``
        limit: Page size; None returns every match
        ascending: Oldest financial year first instead

    Returns:
        (records, total number of matches)
    """
    conditions = [BalanceSheet.company_id == company_id]
    if year:
        conditions.append(BalanceSheet.financial_year == year)
    if period:
        conditions.append(BalanceSheet.period == period)

    if ascending:
        order = (BalanceSheet.financial_year.asc(), BalanceSheet.upload_date.asc())
    else:
        order = (BalanceSheet.financial_year.desc(), BalanceSheet.upload_date.desc())

    query = select(BalanceSheet).where(*conditions).order_by(*order)
    if limit:
        query = query.limit(limit).offset((max(page, 1) - 1) * limit)

    total = session.scalar(
        select(func.count()).select_from(BalanceSheet).where(*conditions)
    )
    return list(session.scalars(query)), total or 0


def find_previous_period(
    session: Session,
    company_id: str,
    financial_year: str,
    period: str = "Annual",
) -> Optional[BalanceSheet]:
    """Latest record of the same company and period type before ``financial_year``."""
    query = (
        select(BalanceSheet)
        .where(
            BalanceSheet.company_id == company_id,
            BalanceSheet.period == period,
            BalanceSheet.financial_year < financial_year,
        )
        .order_by(BalanceSheet.financial_year.desc(), BalanceSheet.upload_date.desc())
        .limit(1)
    )
    return session.scalars(query).first()


def get_balance_sheet_stats(session: Session, company_id: str) -> Dict:
    """
    Summary counts for one company's balance sheets.

    Returns:
        Dict with totalSheets, years, latestYear, earliestYear and periodStats
    """
    rows = session.execute(
        select(BalanceSheet.financial_year, BalanceSheet.period)
        .where(BalanceSheet.company_id == company_id)
    ).all()

    years = sorted({year for year, _ in rows})
    period_counts = Counter(period for _, period in rows)
    return {
        "stats": {
            "totalSheets": len(rows),
            "years": years,
            "latestYear": years[-1] if years else None,
            "earliestYear": years[0] if years else None,
        },
        "periodStats": [
            {"period": period, "count": count} for period, count in sorted(period_counts.items())
        ],
    }


# ---------------------------
# Chat sessions
# ---------------------------

def create_chat(session: Session, **fields) -> ChatSession:
    chat = ChatSession(**fields)
    session.add(chat)
    session.commit()
    session.refresh(chat)
    return chat


def get_chat(session: Session, chat_id: str) -> Optional[ChatSession]:
    return session.get(ChatSession, chat_id)


def append_chat_messages(session: Session, chat: ChatSession, *messages: Dict) -> ChatSession:
    """Append messages (role, content) with a shared timestamp, in one commit."""
    now = datetime.utcnow().isoformat()
    # reassign so the JSON column registers the change
    chat.messages = list(chat.messages or []) + [
        {"role": m["role"], "content": m["content"], "timestamp": now} for m in messages
    ]
    session.commit()
    session.refresh(chat)
    return chat


def delete_chat(session: Session, chat: ChatSession) -> None:
    session.delete(chat)
    session.commit()
