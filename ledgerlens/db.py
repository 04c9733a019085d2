# ledgerlens/db.py

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    create_engine,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from . import config

JSONType = JSON().with_variant(JSONB(), "postgresql")

if config.DATABASE_URL.startswith("sqlite"):
    # one shared connection so an in-memory database survives across sessions
    engine = create_engine(
        config.DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(config.DATABASE_URL, echo=False)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class Company(Base):
    __tablename__ = "companies"
    id = Column(Text, primary_key=True, default=_new_id)
    name = Column(Text, nullable=False, index=True)
    industry = Column(Text, nullable=False)
    type = Column(Text, nullable=False, default="Subsidiary")
    parent_id = Column(Text, ForeignKey("companies.id"), nullable=True, index=True)
    currency = Column(Text, nullable=False, default="INR")
    created_at = Column(DateTime, default=datetime.utcnow)


class BalanceSheet(Base):
    __tablename__ = "balance_sheets"
    id = Column(Text, primary_key=True, default=_new_id)
    company_id = Column(Text, ForeignKey("companies.id"), nullable=False, index=True)
    financial_year = Column(Text, nullable=False, index=True)
    period = Column(Text, nullable=False, default="Annual")
    upload_date = Column(DateTime, default=datetime.utcnow)
    original_name = Column(Text)
    file_size = Column(Integer)
    financial_data = Column(JSONType, nullable=False, default=dict)
    validation = Column(JSONType, nullable=False, default=dict)
    analysis = Column(JSONType, nullable=True)
    processing_status = Column(Text, nullable=False, default="Pending", index=True)
    processing_errors = Column(JSONType, nullable=False, default=list)
    currency = Column(Text, nullable=False, default="INR")
    units = Column(Text, nullable=False, default="Crores")
    is_consolidated = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ChatSession(Base):
    __tablename__ = "chat_sessions"
    id = Column(Text, primary_key=True, default=_new_id)
    company_id = Column(Text, ForeignKey("companies.id"), nullable=False, index=True)
    title = Column(Text, nullable=False, default="New Analysis Session")
    balance_sheet_ids = Column(JSONType, nullable=False, default=list)
    messages = Column(JSONType, nullable=False, default=list)
    status = Column(Text, nullable=False, default="active")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def init_db():
    Base.metadata.create_all(bind=engine)


def get_session():
    """FastAPI dependency yielding a session that is always closed."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
