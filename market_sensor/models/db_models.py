from datetime import datetime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Integer, Text, Boolean, DateTime

class Base(DeclarativeBase):
    pass

class CompetitorRow(Base):
    __tablename__ = "competitor"
    url: Mapped[str] = mapped_column(String(512), primary_key=True)
    name: Mapped[str] = mapped_column(String(256))
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    json_payload: Mapped[str] = mapped_column(Text)

class SnapshotRow(Base):
    __tablename__ = "snapshot"
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    competitor_url: Mapped[str] = mapped_column(String(512), index=True)
    captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    json_payload: Mapped[str] = mapped_column(Text)  # store full JSON as text

class DriftAnalysisRow(Base):
    __tablename__ = "drift_analysis"
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    competitor_url: Mapped[str] = mapped_column(String(512), index=True)
    drift_score: Mapped[int] = mapped_column(Integer)
    json_payload: Mapped[str] = mapped_column(Text)

class ProofRecordRow(Base):
    __tablename__ = "proof_record"
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    proof_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    narrative_tag: Mapped[str] = mapped_column(String(32), index=True)
    persona_tag: Mapped[str] = mapped_column(String(32), index=True)
    stage: Mapped[str] = mapped_column(String(32), index=True)
    json_payload: Mapped[str] = mapped_column(Text)

class ReportRow(Base):
    __tablename__ = "market_pulse_report"
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    json_payload: Mapped[str] = mapped_column(Text)
