import logging
import secrets
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response

from market_sensor.config import settings
from market_sensor.db.repo import Store
from market_sensor.exceptions import NotFoundError
from market_sensor.logging_conf import configure_logging
from market_sensor.models.schemas import (
    CompetitorConfig,
    CompetitorCreate,
    CompetitorUpdate,
    DriftAnalysis,
    MarketPulseReport,
    NarrativeTag,
    Persona,
    ProofCreate,
    ProofQuery,
    ProofRecord,
    ReportRequest,
    ScanOutcome,
    ScanRequest,
    Snapshot,
    Stage,
    utcnow,
)
from market_sensor.services.competitors import competitor_key, display_name_for
from market_sensor.services.emailer import EmailService, TEST_EMAIL_HTML, TEST_EMAIL_SUBJECT
from market_sensor.services.export import export_csv
from market_sensor.services.proof_matcher import ProofMatcher
from market_sensor.services import proof_vault
from market_sensor.services.report import high_drift, publish_report
from market_sensor.services.scanner import Scanner

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = Store(settings.DATABASE_URL, snapshot_history=settings.SNAPSHOT_HISTORY,
                  drift_history=settings.DRIFT_HISTORY, report_history=settings.REPORT_HISTORY)
    app.state.store = store
    try:
        yield
    finally:
        store.close()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)


def get_store(request: Request) -> Store:
    return request.app.state.store

def get_matcher(store: Store = Depends(get_store)) -> ProofMatcher:
    return ProofMatcher(store.search_proofs)

def get_scanner(store: Store = Depends(get_store)) -> Scanner:
    return Scanner(store)

def get_email_service() -> EmailService:
    return EmailService()


# Competitors

@app.get("/competitors", response_model=List[CompetitorConfig])
def list_competitors(store: Store = Depends(get_store)):
    return store.get_competitors()

@app.post("/competitors", response_model=CompetitorConfig, status_code=201)
def add_competitor(req: CompetitorCreate, store: Store = Depends(get_store)):
    url = competitor_key(str(req.url))
    config = CompetitorConfig(url=url, name=req.name or display_name_for(url), active=True, added_at=utcnow())
    return store.add_competitor(config)

@app.patch("/competitors", response_model=CompetitorConfig)
def update_competitor(req: CompetitorUpdate, store: Store = Depends(get_store)):
    try:
        return store.update_competitor(competitor_key(req.url), name=req.name, active=req.active,
                                       last_scanned=req.last_scanned)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# Scanning

@app.post("/scan")
async def scan(req: ScanRequest, store: Store = Depends(get_store), scanner: Scanner = Depends(get_scanner)):
    if req.url:
        config = store.get_competitor(competitor_key(req.url))
        if config is None:
            raise HTTPException(status_code=404, detail="Competitor not found")
        outcome = await scanner.scan_competitor(config)
        if not outcome.success:
            raise HTTPException(status_code=500, detail=f"Failed to scan {config.name}: {outcome.error}")
        return outcome.model_dump(mode="json", by_alias=True)

    active = [c for c in store.get_competitors() if c.active]
    if not active:
        raise HTTPException(status_code=400, detail="No active competitors to scan")
    results = await scanner.scan_all()
    return {
        "success": True,
        "scannedCount": sum(r.success for r in results),
        "totalCount": len(active),
        "results": [_scan_summary(r) for r in results],
    }

def _scan_summary(outcome: ScanOutcome) -> dict:
    summary = {"competitor": outcome.competitor, "success": outcome.success}
    if outcome.success:
        summary["driftScore"] = outcome.drift_score
    else:
        summary["error"] = outcome.error
    return summary

@app.get("/cron/scan")
async def cron_scan(
    authorization: Optional[str] = Header(default=None),
    store: Store = Depends(get_store),
    scanner: Scanner = Depends(get_scanner),
    matcher: ProofMatcher = Depends(get_matcher),
    email_service: EmailService = Depends(get_email_service),
):
    expected = f"Bearer {settings.CRON_SECRET}" if settings.CRON_SECRET else None
    if expected is None or not secrets.compare_digest((authorization or "").encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")

    active = [c for c in store.get_competitors() if c.active]
    if not active:
        return {"success": True, "message": "No active competitors to scan"}

    results = await scanner.scan_all()
    analyses = [r.drift_analysis for r in results if r.drift_analysis is not None]
    flagged = high_drift(analyses)

    report_id = None
    email_sent = False
    if flagged:
        report = publish_report(store, matcher, analyses, email_service, settings.recipients)
        report_id = report.id
        email_sent = report.sent_via_email

    return {
        "success": True,
        "scannedCount": len(active),
        "driftDetected": len(analyses),
        "highDriftCount": len(flagged),
        "emailSent": email_sent,
        "reportId": report_id,
    }


# Drift & snapshots

@app.get("/drift", response_model=List[DriftAnalysis])
def list_drift(url: Optional[str] = None, store: Store = Depends(get_store)):
    if url:
        return store.get_drift_history(competitor_key(url))
    return store.get_all_drift_analyses()

@app.get("/snapshots", response_model=List[Snapshot])
def list_snapshots(url: str, limit: int = Query(default=10, ge=1), store: Store = Depends(get_store)):
    return store.get_snapshot_history(competitor_key(url), limit=limit)


# Proof vault

@app.get("/proof")
def get_proofs(
    proof_id: Optional[str] = Query(default=None, alias="proofId"),
    persona: Optional[Persona] = None,
    narrative_tag: Optional[NarrativeTag] = Query(default=None, alias="narrativeTag"),
    stage: Optional[Stage] = None,
    store: Store = Depends(get_store),
):
    if proof_id:
        proof = store.get_proof(proof_id)
        if proof is None:
            raise HTTPException(status_code=404, detail="Proof record not found")
        return proof.model_dump(mode="json", by_alias=True)
    query = ProofQuery(narrative_tag=narrative_tag, persona=persona, stage=stage)
    return [p.model_dump(mode="json", by_alias=True) for p in store.search_proofs(query)]

@app.post("/proof", response_model=ProofRecord, status_code=201)
def create_proof(req: ProofCreate, store: Store = Depends(get_store)):
    proof = proof_vault.create_proof(store, req)
    logger.info("Stored proof %s", proof.proof_id)
    return proof

@app.delete("/proof")
def delete_proof(proof_id: Optional[str] = Query(default=None, alias="proofId"), store: Store = Depends(get_store)):
    if not proof_id:
        raise HTTPException(status_code=400, detail="proofId is required")
    if not store.delete_proof(proof_id):
        raise HTTPException(status_code=404, detail="Proof record not found")
    return {"success": True}


# Reports

@app.get("/reports")
def get_reports(
    report_id: Optional[str] = Query(default=None, alias="id"),
    limit: int = Query(default=10, ge=1),
    store: Store = Depends(get_store),
):
    if report_id:
        report = store.get_report(report_id)
        if report is None:
            raise HTTPException(status_code=404, detail="Report not found")
        return report.model_dump(mode="json", by_alias=True)
    return [r.model_dump(mode="json", by_alias=True) for r in store.get_recent_reports(limit)]

@app.post("/reports", response_model=MarketPulseReport, status_code=201)
def create_report(
    req: ReportRequest,
    store: Store = Depends(get_store),
    matcher: ProofMatcher = Depends(get_matcher),
    email_service: EmailService = Depends(get_email_service),
):
    analyses = store.get_all_drift_analyses()
    if not analyses:
        raise HTTPException(status_code=400, detail="No drift analyses available to generate report")
    send = req.send_email and bool(req.recipients)
    return publish_report(store, matcher, analyses, email_service if send else None, req.recipients)


# Export & email check

@app.get("/export")
def export(store: Store = Depends(get_store), matcher: ProofMatcher = Depends(get_matcher)):
    body = export_csv(store.get_all_drift_analyses(), matcher)
    filename = f"market-pulse-export-{utcnow().date().isoformat()}.csv"
    return Response(content=body, media_type="text/csv",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'})

@app.get("/test-email")
def test_email(to: Optional[str] = None, email_service: EmailService = Depends(get_email_service)):
    if not to:
        raise HTTPException(status_code=400, detail="Please provide ?to=your@email.com in the URL")
    if not email_service.enabled:
        raise HTTPException(status_code=500, detail="RESEND_API_KEY not set in environment variables")
    result = email_service.send([to], TEST_EMAIL_SUBJECT, TEST_EMAIL_HTML)
    if not result.success:
        raise HTTPException(status_code=500, detail=f"Failed to send test email: {result.error}")
    return {"success": True, "message": "Test email sent successfully!", "emailId": result.message_id, "to": to}
