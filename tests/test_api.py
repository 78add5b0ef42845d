"""HTTP-level tests for market_sensor.main using FastAPI's TestClient."""

import pytest
from conftest import FakeEmailService, make_snapshot
from fastapi.testclient import TestClient

from market_sensor.config import settings
from market_sensor.main import app, get_email_service, get_scanner, get_store
from market_sensor.services import proof_vault
from market_sensor.services.analyzer import analyze_drift
from market_sensor.services.scanner import Scanner


class NullFetcher:
    async def close(self):
        pass


class HeroQueue:
    def __init__(self, *heroes):
        self.heroes = list(heroes)

    async def __call__(self, fetcher, url, name):
        return make_snapshot(url=url, name=name, hero=self.heroes.pop(0))


@pytest.fixture
def scraper():
    return HeroQueue("Fast and simple", "AI-powered and secure")


@pytest.fixture
def client(store, scraper, email_service):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_scanner] = lambda: Scanner(store, scrape=scraper, fetcher_factory=NullFetcher)
    app.dependency_overrides[get_email_service] = lambda: email_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _proof_payload(**overrides):
    payload = {
        "evidenceSentence": "Cut pipeline latency 40% at Initech",
        "sourceLink": "https://example.com/initech",
        "personaTag": "CTO",
        "narrativeTag": "Trust",
        "stage": "Awareness",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Competitors
# ---------------------------------------------------------------------------
class TestCompetitorsApi:

    def test_create_list_update(self, client):
        resp = client.post("/competitors", json={"url": "https://www.acme-analytics.io/"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["url"] == "https://www.acme-analytics.io"
        assert body["name"] == "Acme Analytics"
        assert body["active"] is True
        assert "addedAt" in body

        resp = client.patch("/competitors", json={"url": body["url"], "active": False})
        assert resp.status_code == 200
        assert resp.json()["active"] is False
        assert [c["name"] for c in client.get("/competitors").json()] == ["Acme Analytics"]

    def test_urls_are_matched_as_entered(self, client):
        client.post("/competitors", json={"url": "https://www.acme-analytics.io/"})
        resp = client.patch("/competitors", json={"url": "https://www.acme-analytics.io/", "name": "Acme"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Acme"
        assert client.get("/snapshots", params={"url": "https://www.acme-analytics.io/"}).json() == []
        assert client.get("/drift", params={"url": "https://www.acme-analytics.io/"}).json() == []

    def test_update_unknown_is_404(self, client):
        assert client.patch("/competitors", json={"url": "https://nope.io", "active": False}).status_code == 404

    def test_invalid_url_rejected(self, client):
        assert client.post("/competitors", json={"url": "not a url"}).status_code == 422


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------
class TestScanApi:

    def test_scan_all_requires_active_competitors(self, client):
        assert client.post("/scan", json={}).status_code == 400

    def test_scan_single_unknown_is_404(self, client):
        assert client.post("/scan", json={"url": "https://nope.io"}).status_code == 404

    def test_two_scans_produce_drift(self, client):
        client.post("/competitors", json={"url": "https://acme.io", "name": "Acme"})
        first = client.post("/scan", json={"url": "https://acme.io"}).json()
        assert first["success"] is True
        assert first["driftAnalysis"] is None

        result = client.post("/scan", json={}).json()
        assert result["scannedCount"] == 1
        assert result["results"][0]["driftScore"] == 34

        drift = client.get("/drift").json()
        assert len(drift) == 1
        assert drift[0]["driftScore"] == 34
        assert drift[0]["trajectoryCall"] == "Significant language drift detected"
        assert len(client.get("/snapshots", params={"url": "https://acme.io"}).json()) == 2


# ---------------------------------------------------------------------------
# Proof vault
# ---------------------------------------------------------------------------
class TestProofApi:

    def test_create_search_delete(self, client):
        resp = client.post("/proof", json=_proof_payload())
        assert resp.status_code == 201
        proof_id = resp.json()["proofId"]
        assert proof_id.startswith("PROOF-TRUST-CTO-")

        assert client.get("/proof", params={"proofId": proof_id}).json()["evidenceSentence"].startswith("Cut")
        assert len(client.get("/proof", params={"narrativeTag": "Trust", "persona": "CTO"}).json()) == 1
        assert client.get("/proof", params={"stage": "Decision"}).json() == []
        assert len(client.get("/proof").json()) == 1

        assert client.delete("/proof", params={"proofId": proof_id}).json() == {"success": True}
        assert client.get("/proof", params={"proofId": proof_id}).status_code == 404

    def test_same_millisecond_proofs_both_kept(self, client, store, monkeypatch):
        monkeypatch.setattr(proof_vault.time, "time", lambda: 1760860800.0)
        first = client.post("/proof", json=_proof_payload(evidenceSentence="first")).json()
        second = client.post("/proof", json=_proof_payload(evidenceSentence="second")).json()
        assert first["proofId"] != second["proofId"]
        assert sorted(p.evidence_sentence for p in store.get_all_proofs()) == ["first", "second"]

    def test_missing_fields_rejected(self, client):
        resp = client.post("/proof", json=_proof_payload(evidenceSentence=""))
        assert resp.status_code == 422

    def test_unknown_tag_rejected(self, client):
        assert client.post("/proof", json=_proof_payload(personaTag="Intern")).status_code == 422

    def test_delete_requires_id(self, client):
        assert client.delete("/proof").status_code == 400
        assert client.delete("/proof", params={"proofId": "PROOF-NOPE"}).status_code == 404


# ---------------------------------------------------------------------------
# Reports / export / cron
# ---------------------------------------------------------------------------
class TestReportsApi:

    def _seed_drift(self, store):
        client_url = "https://acme.io"
        from market_sensor.models.schemas import CompetitorConfig
        store.add_competitor(CompetitorConfig(url=client_url, name="Acme"))
        store.save_drift_analysis(analyze_drift(
            make_snapshot(hero="Fast and simple"), make_snapshot(hero="AI-powered and secure")))

    def test_no_analyses_is_400(self, client):
        assert client.post("/reports", json={}).status_code == 400

    def test_generate_without_email(self, client, store, email_service):
        self._seed_drift(store)
        resp = client.post("/reports", json={"sendEmail": False})
        assert resp.status_code == 201
        report = resp.json()
        assert report["sentViaEmail"] is False
        assert email_service.sent == []
        innovation = [a for a in report["recommendedActions"] if a["narrativeTag"] == "Innovation"][0]
        assert innovation["status"] == "INSUFFICIENT_DATA"
        assert innovation["proofId"] is None
        assert "INSUFFICIENT DATA" in innovation["nextStep"]

        assert client.get("/reports", params={"id": report["id"]}).json()["id"] == report["id"]
        assert len(client.get("/reports").json()) == 1
        assert client.get("/reports", params={"id": "missing"}).status_code == 404

    def test_generate_and_email(self, client, store, email_service):
        self._seed_drift(store)
        report = client.post("/reports", json={"sendEmail": True, "recipients": ["cmo@example.com"]}).json()
        assert report["sentViaEmail"] is True
        assert email_service.sent[0]["subject"] == "Market Pulse: 1 Competitor Change Detected"

    def test_export_csv(self, client, store):
        self._seed_drift(store)
        resp = client.get("/export")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert "attachment" in resp.headers["content-disposition"]
        assert resp.text.splitlines()[0].startswith("Date,Competitor,Drift Score")
        assert len(resp.text.splitlines()) == 4


class TestCronApi:

    def test_rejects_bad_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        assert client.get("/cron/scan").status_code == 401
        assert client.get("/cron/scan", headers={"Authorization": "Bearer wrong"}).status_code == 401

    def test_rejects_when_secret_unset(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", None)
        assert client.get("/cron/scan", headers={"Authorization": "Bearer None"}).status_code == 401

    def test_scans_and_emails_on_high_drift(self, client, store, email_service, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        monkeypatch.setattr(settings, "MARKET_PULSE_RECIPIENTS", "cmo@example.com, pmm@example.com")
        client.post("/competitors", json={"url": "https://acme.io", "name": "Acme"})
        auth = {"Authorization": "Bearer s3cret"}

        first = client.get("/cron/scan", headers=auth).json()
        assert first["driftDetected"] == 0
        assert first["emailSent"] is False

        second = client.get("/cron/scan", headers=auth).json()
        assert second["highDriftCount"] == 1
        assert second["emailSent"] is True
        assert email_service.sent[0]["to"] == ["cmo@example.com", "pmm@example.com"]
        assert store.get_report(second["reportId"]).sent_via_email is True

    def test_report_kept_when_email_fails(self, client, store, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
        monkeypatch.setattr(settings, "MARKET_PULSE_RECIPIENTS", "cmo@example.com")
        app.dependency_overrides[get_email_service] = lambda: FakeEmailService(succeed=False)
        client.post("/competitors", json={"url": "https://acme.io", "name": "Acme"})
        auth = {"Authorization": "Bearer s3cret"}
        client.get("/cron/scan", headers=auth)
        result = client.get("/cron/scan", headers=auth).json()
        assert result["emailSent"] is False
        assert store.get_report(result["reportId"]) is not None


class TestEmailCheckApi:

    def test_requires_recipient(self, client):
        assert client.get("/test-email").status_code == 400

    def test_disabled_service_is_500(self, client):
        app.dependency_overrides[get_email_service] = lambda: FakeEmailService(enabled=False)
        assert client.get("/test-email", params={"to": "me@example.com"}).status_code == 500

    def test_sends(self, client, email_service):
        resp = client.get("/test-email", params={"to": "me@example.com"})
        assert resp.json()["emailId"] == "msg-1"
        assert email_service.sent[0]["to"] == ["me@example.com"]
