import csv
import io
from typing import Sequence

from market_sensor.models.schemas import DriftAnalysis
from market_sensor.services.proof_matcher import ProofMatcher

CSV_HEADERS = [
    "Date",
    "Competitor",
    "Drift Score",
    "Implication",
    "So What",
    "Narrative Tag",
    "Persona",
    "Stage",
    "Severity",
    "Proof ID",
    "Action Status",
]


def export_csv(analyses: Sequence[DriftAnalysis], matcher: ProofMatcher) -> str:
    """One row per implication; action items are recomputed against the vault."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for drift in analyses:
        actions = matcher.validate(drift.implications)
        for imp, action in zip(drift.implications, actions):
            writer.writerow([
                drift.analyzed_at.date().isoformat(),
                drift.competitor_name,
                drift.drift_score,
                imp.text,
                imp.so_what,
                imp.narrative_tag.value,
                imp.persona.value,
                imp.stage.value,
                imp.severity.value,
                action.proof_id or "",
                action.status.value,
            ])
    return buf.getvalue()
