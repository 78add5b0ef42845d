# streamlit_app.py
import streamlit as st
import requests
import pandas as pd
from typing import Any, Dict, List, Optional

NARRATIVE_TAGS = ["Trust", "Speed", "Control", "Innovation", "Cost", "Security"]
PERSONAS = ["CTO", "CFO", "Data Engineer", "VP Engineering", "Product Manager"]
STAGES = ["Awareness", "Consideration", "Decision"]

st.set_page_config(page_title="Market Sensor Engine", layout="wide")

# Sidebar: configure FastAPI base URL
api_base = st.sidebar.text_input("FastAPI base URL", value="http://localhost:8000")
st.sidebar.markdown("Make sure your FastAPI app is running (uvicorn market_sensor.main:app --reload).")

def call_api(method: str, path: str, json: Optional[Dict[str, Any]] = None,
             params: Optional[Dict[str, Any]] = None, timeout: int = 120) -> Any:
    url = api_base.rstrip("/") + path
    resp = requests.request(method, url, json=json, params=params, timeout=timeout)
    # raise_for_status to present proper error messages to user
    resp.raise_for_status()
    if resp.headers.get("content-type", "").startswith("text/csv"):
        return resp.text
    return resp.json()

def show_error(e: Exception):
    if isinstance(e, requests.HTTPError) and e.response is not None:
        st.error(f"API error: {e.response.status_code} — {e.response.text}")
    else:
        st.error(f"Unexpected error: {e}")

def competitors_tab():
    st.subheader("Competitors")
    with st.form("add_competitor"):
        url = st.text_input("Competitor page URL", max_chars=512)
        name = st.text_input("Display name (optional)")
        if st.form_submit_button("Add competitor"):
            try:
                call_api("POST", "/competitors", json={"url": url, "name": name or None})
                st.success("Competitor added")
            except Exception as e:
                show_error(e)

    try:
        competitors = call_api("GET", "/competitors")
    except Exception as e:
        show_error(e)
        return
    if not competitors:
        st.info("No competitors yet.")
        return
    st.dataframe(pd.DataFrame(competitors), use_container_width=True)

    cols = st.columns(2)
    with cols[0]:
        if st.button("Scan all active competitors"):
            try:
                with st.spinner("Scanning..."):
                    result = call_api("POST", "/scan", json={})
                st.success(f"Scanned {result['scannedCount']}/{result['totalCount']}")
                st.dataframe(pd.DataFrame(result["results"]), use_container_width=True)
            except Exception as e:
                show_error(e)
    with cols[1]:
        target = st.selectbox("Competitor", [c["url"] for c in competitors])
        if st.button("Scan selected"):
            try:
                with st.spinner("Scanning..."):
                    result = call_api("POST", "/scan", json={"url": target})
                drift = result.get("driftAnalysis")
                if drift:
                    st.metric("Drift score", drift["driftScore"])
                else:
                    st.info("Baseline captured. Scan again later to measure drift.")
            except Exception as e:
                show_error(e)

def show_drift(drift: Dict[str, Any]):
    st.markdown(f"### {drift['competitorName']}")
    cols = st.columns([1, 3])
    with cols[0]:
        st.metric("Drift score", drift["driftScore"])
        if drift.get("trajectoryCall"):
            st.warning(drift["trajectoryCall"])
    with cols[1]:
        if drift.get("newNouns"):
            st.markdown("**New terms:** " + ", ".join(drift["newNouns"]))
        if drift.get("newVerbs"):
            st.markdown("**New verbs:** " + ", ".join(drift["newVerbs"]))
        for shift in drift.get("toneShifts") or []:
            st.markdown(f"- {shift}")
    implications = drift.get("implications") or []
    if implications:
        st.dataframe(pd.DataFrame(implications), use_container_width=True)

def drift_tab():
    st.subheader("Drift analysis")
    try:
        analyses: List[Dict[str, Any]] = call_api("GET", "/drift")
    except Exception as e:
        show_error(e)
        return
    if not analyses:
        st.info("No drift analyses yet. Each competitor needs two scans.")
        return
    for drift in sorted(analyses, key=lambda d: d["driftScore"], reverse=True):
        show_drift(drift)
        st.markdown("---")
    try:
        csv = call_api("GET", "/export")
        st.download_button("Download CSV", csv, file_name="market-pulse-export.csv", mime="text/csv")
    except Exception as e:
        show_error(e)

def proof_tab():
    st.subheader("Proof vault")
    with st.form("add_proof"):
        evidence = st.text_area("Evidence sentence")
        source = st.text_input("Source link")
        cols = st.columns(3)
        narrative = cols[0].selectbox("Narrative", NARRATIVE_TAGS)
        persona = cols[1].selectbox("Persona", PERSONAS)
        stage = cols[2].selectbox("Stage", STAGES)
        expiry = st.date_input("Expiry date (optional)", value=None)
        if st.form_submit_button("Add proof"):
            payload = {
                "evidenceSentence": evidence,
                "sourceLink": source,
                "narrativeTag": narrative,
                "personaTag": persona,
                "stage": stage,
                "expiryDate": expiry.isoformat() + "T00:00:00Z" if expiry else None,
            }
            try:
                proof = call_api("POST", "/proof", json=payload)
                st.success(f"Stored {proof['proofId']}")
            except Exception as e:
                show_error(e)

    try:
        proofs = call_api("GET", "/proof")
    except Exception as e:
        show_error(e)
        return
    if not proofs:
        st.info("Vault is empty: every counter-move will be flagged INSUFFICIENT DATA.")
        return
    st.dataframe(pd.DataFrame(proofs), use_container_width=True)
    doomed = st.selectbox("Delete proof", [p["proofId"] for p in proofs])
    if st.button("Delete"):
        try:
            call_api("DELETE", "/proof", params={"proofId": doomed})
            st.success(f"Deleted {doomed}")
        except Exception as e:
            show_error(e)

def reports_tab():
    st.subheader("Market Pulse reports")
    with st.form("generate_report"):
        send_email = st.checkbox("Send via email", value=False)
        recipients = st.text_input("Recipients (comma separated)")
        if st.form_submit_button("Generate report"):
            body = {
                "sendEmail": send_email,
                "recipients": [r.strip() for r in recipients.split(",") if r.strip()],
            }
            try:
                report = call_api("POST", "/reports", json=body)
                st.success(f"Report {report['id']} generated (emailed: {report['sentViaEmail']})")
            except Exception as e:
                show_error(e)

    try:
        reports = call_api("GET", "/reports", params={"limit": 10})
    except Exception as e:
        show_error(e)
        return
    for report in reports:
        with st.expander(f"{report['generatedAt']} — {report['id']}"):
            actions = report.get("recommendedActions") or []
            if actions:
                st.dataframe(pd.DataFrame(actions), use_container_width=True)
            st.json(report)

# Page body
st.title("Market Sensor Engine")
st.markdown("Track competitor messaging drift and back every counter-move with proof.")

tabs = st.tabs(["Competitors", "Drift", "Proof Vault", "Reports"])
with tabs[0]:
    competitors_tab()
with tabs[1]:
    drift_tab()
with tabs[2]:
    proof_tab()
with tabs[3]:
    reports_tab()
