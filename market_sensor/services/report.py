import logging
from datetime import datetime
from html import escape
from typing import List, Optional, Sequence, Tuple

from market_sensor.models.schemas import (
    ActionItem,
    ActionStatus,
    DriftAnalysis,
    DriftImplication,
    MarketPulseReport,
    Severity,
    new_id,
    utcnow,
)
from market_sensor.services.analyzer import TRAJECTORY_THRESHOLD
from market_sensor.services.emailer import EmailService
from market_sensor.services.proof_matcher import INSUFFICIENT_DATA_MARKER, ProofMatcher

logger = logging.getLogger(__name__)

REPORT_TOP_IMPLICATIONS = 10
EMAIL_TOP_IMPLICATIONS = 5


def notable_implications(analyses: Sequence[DriftAnalysis], limit: int) -> List[DriftImplication]:
    return [
        imp for d in analyses for imp in d.implications
        if imp.severity in (Severity.HIGH, Severity.MEDIUM)
    ][:limit]


def high_drift(analyses: Sequence[DriftAnalysis]) -> List[DriftAnalysis]:
    return [d for d in analyses if d.drift_score >= TRAJECTORY_THRESHOLD]


def build_report(analyses: Sequence[DriftAnalysis], actions: Sequence[ActionItem]) -> MarketPulseReport:
    return MarketPulseReport(
        id=new_id("report"),
        generated_at=utcnow(),
        drift_analyses=list(analyses),
        top_implications=notable_implications(analyses, REPORT_TOP_IMPLICATIONS),
        recommended_actions=list(actions),
        sent_via_email=False,
    )


def _tags(*values: str) -> str:
    return "".join(f'<span class="tag">{escape(v)}</span>' for v in values)


def _drift_card(d: DriftAnalysis) -> str:
    parts = [f'<div class="drift-card"><strong>{escape(d.competitor_name)}</strong> '
             f'<span class="drift-score">{d.drift_score}</span>']
    if d.trajectory_call:
        parts.append(f"<p><strong>Signal:</strong> {escape(d.trajectory_call)}</p>")
    if d.new_nouns:
        parts.append(f"<p><strong>New Terms:</strong> {escape(', '.join(d.new_nouns))}</p>")
    if d.tone_shifts:
        parts.append(f"<p><strong>Changes:</strong> {escape('; '.join(d.tone_shifts))}</p>")
    parts.append("</div>")
    return "".join(parts)


def _action_block(a: ActionItem) -> str:
    if a.status == ActionStatus.VALIDATED:
        proof = f'<p><strong>Proof:</strong> <span class="proof-badge">{escape(a.proof_id)}</span></p>'
        step = a.next_step
        css = "action-validated"
    else:
        proof = '<p><span class="warning-badge">INSUFFICIENT DATA—PROOF NEEDED</span></p>'
        step = a.next_step.replace(INSUFFICIENT_DATA_MARKER, "").strip()
        css = "action-unvalidated"
    return (f'<div class="action-item {css}"><p><strong>Line:</strong> {escape(a.line)}</p>{proof}'
            f"<p><strong>Next Step:</strong> {escape(step)}</p>"
            f"<div>{_tags(a.narrative_tag.value, a.persona.value)}</div></div>")


def render_market_pulse_email(analyses: Sequence[DriftAnalysis], actions: Sequence[ActionItem],
                              today: Optional[datetime] = None) -> Tuple[str, str]:
    """Subject line and HTML body for the Market Pulse digest."""
    today = today or utcnow()
    flagged = high_drift(analyses)
    validated = [a for a in actions if a.status == ActionStatus.VALIDATED]
    unvalidated = [a for a in actions if a.status == ActionStatus.INSUFFICIENT_DATA]

    subject = f"Market Pulse: {len(flagged)} Competitor Change{'' if len(flagged) == 1 else 's'} Detected"

    changes = "".join(_drift_card(d) for d in flagged) or "<p>No significant changes detected this week.</p>"
    key_changes = "".join(
        f'<div class="implication"><p><strong>{escape(imp.text)}</strong></p><p>{escape(imp.so_what)}</p>'
        f"<div>{_tags(imp.narrative_tag.value, imp.persona.value, imp.stage.value)}</div></div>"
        for imp in notable_implications(analyses, EMAIL_TOP_IMPLICATIONS)
    )
    sections = [
        '<div class="section"><h2>Detected Changes</h2>' + changes + "</div>",
        '<div class="section"><h2>Key Changes</h2>' + key_changes + "</div>",
    ]
    if validated:
        sections.append('<div class="section"><h2>Validated Counter-Moves</h2>'
                        + "".join(_action_block(a) for a in validated) + "</div>")
    if unvalidated:
        sections.append('<div class="section"><h2>Requires Proof Validation</h2>'
                        + "".join(_action_block(a) for a in unvalidated) + "</div>")

    html = f"""<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; line-height: 1.6; color: #333; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .drift-card {{ background: #f7fafc; border-left: 4px solid #667eea; padding: 15px; margin-bottom: 15px; }}
    .drift-score {{ font-size: 24px; font-weight: bold; color: #667eea; }}
    .tag {{ display: inline-block; padding: 4px 8px; border-radius: 4px; font-size: 12px; margin-right: 8px; background: #edf2f7; }}
    .action-validated {{ border-left: 4px solid #48bb78; padding: 15px; }}
    .action-unvalidated {{ border-left: 4px solid #f56565; background: #fff5f5; padding: 15px; }}
    .proof-badge {{ background: #48bb78; color: white; padding: 4px 8px; border-radius: 4px; }}
    .warning-badge {{ background: #f56565; color: white; padding: 4px 8px; border-radius: 4px; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>Market Pulse Report</h1>
    <p>{today.strftime('%A, %B %d, %Y')}</p>
    <p class="notice"><strong>Note:</strong> This report uses basic text comparison (no AI analysis). Insights require manual review.</p>
    {''.join(sections)}
    <p class="footer">Generated by Market Sensor Engine</p>
  </div>
</body>
</html>
"""
    return subject, html


def publish_report(store, matcher: ProofMatcher, analyses: Sequence[DriftAnalysis],
                   email_service: Optional[EmailService] = None,
                   recipients: Sequence[str] = ()) -> MarketPulseReport:
    """Validate actions, persist the report, then email it if asked.

    The report is stored before sending and stored again once sent, so a
    failed send never loses the record.
    """
    implications = [imp for d in analyses for imp in d.implications]
    actions = matcher.validate(implications)
    report = build_report(analyses, actions)
    store.save_report(report)

    if email_service is not None and recipients:
        subject, html = render_market_pulse_email(analyses, actions)
        result = email_service.send(list(recipients), subject, html)
        if result.success:
            report = report.model_copy(update={"sent_via_email": True, "sent_at": utcnow()})
            store.save_report(report)
        else:
            logger.error("Market Pulse email not sent for report %s: %s", report.id, result.error)
    return report
