import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from market_sensor.db.session import make_engine, make_session_factory
from market_sensor.exceptions import NotFoundError
from market_sensor.models.db_models import (
    Base,
    CompetitorRow,
    SnapshotRow,
    DriftAnalysisRow,
    ProofRecordRow,
    ReportRow,
)
from market_sensor.models.schemas import (
    CompetitorConfig,
    Snapshot,
    DriftAnalysis,
    ProofRecord,
    ProofQuery,
    MarketPulseReport,
)

logger = logging.getLogger(__name__)


def _dump(model) -> str:
    return model.model_dump_json(by_alias=True)


def _prune(s: Session, row_cls, keep: int, *criteria) -> None:
    # drop rows older than the newest `keep` matching criteria
    s.flush()
    newest = select(row_cls.seq).where(*criteria).order_by(row_cls.seq.desc()).limit(keep)
    s.execute(delete(row_cls).where(*criteria, row_cls.seq.not_in(newest)),
              execution_options={"synchronize_session": False})


class Store:
    """Persistence for competitors, snapshots, drift analyses, proofs and reports.

    Built once at process start (see ``market_sensor.main.lifespan``) and
    handed to callers; call ``close()`` on shutdown.
    """

    def __init__(self, database_url: str, snapshot_history: int = 10,
                 drift_history: int = 50, report_history: int = 100):
        self.engine = make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)
        self.snapshot_history = snapshot_history
        self.drift_history = drift_history
        self.report_history = report_history
        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # Competitors

    def add_competitor(self, config: CompetitorConfig) -> CompetitorConfig:
        with self.session() as s:
            s.merge(CompetitorRow(url=config.url, name=config.name,
                                  active=config.active, json_payload=_dump(config)))
        return config

    def get_competitors(self) -> List[CompetitorConfig]:
        with self.session() as s:
            rows = s.scalars(select(CompetitorRow).order_by(CompetitorRow.url)).all()
            return [CompetitorConfig.model_validate_json(r.json_payload) for r in rows]

    def get_competitor(self, url: str) -> Optional[CompetitorConfig]:
        with self.session() as s:
            row = s.get(CompetitorRow, url)
            return CompetitorConfig.model_validate_json(row.json_payload) if row else None

    def update_competitor(self, url: str, **updates) -> CompetitorConfig:
        with self.session() as s:
            row = s.get(CompetitorRow, url)
            if row is None:
                raise NotFoundError("Competitor", url)
            existing = CompetitorConfig.model_validate_json(row.json_payload)
            merged = existing.model_copy(update={k: v for k, v in updates.items() if v is not None})
            row.name = merged.name
            row.active = merged.active
            row.json_payload = _dump(merged)
            return merged

    # Snapshots

    def save_snapshot(self, snapshot: Snapshot) -> None:
        with self.session() as s:
            s.add(SnapshotRow(id=snapshot.id, competitor_url=snapshot.competitor_url,
                              captured_at=snapshot.captured_at, json_payload=_dump(snapshot)))
            _prune(s, SnapshotRow, self.snapshot_history, SnapshotRow.competitor_url == snapshot.competitor_url)

    def get_snapshot_history(self, competitor_url: str, limit: Optional[int] = None) -> List[Snapshot]:
        """Most recent first, bounded by the retained history window."""
        limit = min(limit or self.snapshot_history, self.snapshot_history)
        with self.session() as s:
            rows = s.scalars(
                select(SnapshotRow)
                .where(SnapshotRow.competitor_url == competitor_url)
                .order_by(SnapshotRow.seq.desc())
                .limit(limit)
            ).all()
            return [Snapshot.model_validate_json(r.json_payload) for r in rows]

    def get_latest_snapshot(self, competitor_url: str) -> Optional[Snapshot]:
        history = self.get_snapshot_history(competitor_url, limit=1)
        return history[0] if history else None

    def get_baseline_snapshot(self, competitor_url: str) -> Optional[Snapshot]:
        # oldest snapshot still inside the retained window
        history = self.get_snapshot_history(competitor_url)
        return history[-1] if history else None

    # Drift analyses

    def save_drift_analysis(self, analysis: DriftAnalysis) -> None:
        with self.session() as s:
            s.add(DriftAnalysisRow(id=analysis.id, competitor_url=analysis.competitor_url,
                                   drift_score=analysis.drift_score, json_payload=_dump(analysis)))
            _prune(s, DriftAnalysisRow, self.drift_history,
                   DriftAnalysisRow.competitor_url == analysis.competitor_url)

    def get_drift_history(self, competitor_url: str, limit: Optional[int] = None) -> List[DriftAnalysis]:
        limit = min(limit or self.drift_history, self.drift_history)
        with self.session() as s:
            rows = s.scalars(
                select(DriftAnalysisRow)
                .where(DriftAnalysisRow.competitor_url == competitor_url)
                .order_by(DriftAnalysisRow.seq.desc())
                .limit(limit)
            ).all()
            return [DriftAnalysis.model_validate_json(r.json_payload) for r in rows]

    def get_latest_drift_analysis(self, competitor_url: str) -> Optional[DriftAnalysis]:
        history = self.get_drift_history(competitor_url, limit=1)
        return history[0] if history else None

    def get_all_drift_analyses(self) -> List[DriftAnalysis]:
        """Latest analysis for every configured competitor that has one."""
        analyses = []
        for config in self.get_competitors():
            latest = self.get_latest_drift_analysis(config.url)
            if latest is not None:
                analyses.append(latest)
        return analyses

    # Proof vault

    def save_proof(self, proof: ProofRecord) -> ProofRecord:
        with self.session() as s:
            row = s.scalars(select(ProofRecordRow).where(ProofRecordRow.proof_id == proof.proof_id)).first()
            if row is None:
                row = ProofRecordRow(proof_id=proof.proof_id)
                s.add(row)
            row.narrative_tag = proof.narrative_tag.value
            row.persona_tag = proof.persona_tag.value
            row.stage = proof.stage.value
            row.json_payload = _dump(proof)
        return proof

    def insert_proof(self, proof: ProofRecord) -> bool:
        """Insert-only write; False when the proof_id is already taken."""
        try:
            with self.session() as s:
                s.add(ProofRecordRow(proof_id=proof.proof_id, narrative_tag=proof.narrative_tag.value,
                                     persona_tag=proof.persona_tag.value, stage=proof.stage.value,
                                     json_payload=_dump(proof)))
        except IntegrityError:
            return False
        return True

    def get_proof(self, proof_id: str) -> Optional[ProofRecord]:
        with self.session() as s:
            row = s.scalars(select(ProofRecordRow).where(ProofRecordRow.proof_id == proof_id)).first()
            return ProofRecord.model_validate_json(row.json_payload) if row else None

    def get_all_proofs(self) -> List[ProofRecord]:
        return self.search_proofs(ProofQuery())

    def search_proofs(self, query: ProofQuery) -> List[ProofRecord]:
        """Exact match on every filter that is set, in insertion order."""
        stmt = select(ProofRecordRow).order_by(ProofRecordRow.seq)
        if query.narrative_tag is not None:
            stmt = stmt.where(ProofRecordRow.narrative_tag == query.narrative_tag.value)
        if query.persona is not None:
            stmt = stmt.where(ProofRecordRow.persona_tag == query.persona.value)
        if query.stage is not None:
            stmt = stmt.where(ProofRecordRow.stage == query.stage.value)
        with self.session() as s:
            return [ProofRecord.model_validate_json(r.json_payload) for r in s.scalars(stmt).all()]

    def delete_proof(self, proof_id: str) -> bool:
        with self.session() as s:
            row = s.scalars(select(ProofRecordRow).where(ProofRecordRow.proof_id == proof_id)).first()
            if row is None:
                return False
            s.delete(row)
            return True

    # Market pulse reports

    def save_report(self, report: MarketPulseReport) -> None:
        with self.session() as s:
            row = s.scalars(select(ReportRow).where(ReportRow.id == report.id)).first()
            if row is None:
                s.add(ReportRow(id=report.id, json_payload=_dump(report)))
                _prune(s, ReportRow, self.report_history)
            else:
                row.json_payload = _dump(report)

    def get_report(self, report_id: str) -> Optional[MarketPulseReport]:
        with self.session() as s:
            row = s.scalars(select(ReportRow).where(ReportRow.id == report_id)).first()
            return MarketPulseReport.model_validate_json(row.json_payload) if row else None

    def get_recent_reports(self, limit: int = 10) -> List[MarketPulseReport]:
        limit = min(limit, self.report_history)
        with self.session() as s:
            rows = s.scalars(select(ReportRow).order_by(ReportRow.seq.desc()).limit(limit)).all()
            return [MarketPulseReport.model_validate_json(r.json_payload) for r in rows]
