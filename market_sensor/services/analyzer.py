import logging
from typing import Optional

from market_sensor.models.schemas import DriftAnalysis, Snapshot, new_id, utcnow
from market_sensor.services import drift_scorer, implications
from market_sensor.services.features import new_words
from market_sensor.services.tone import detect_tone_shifts
from market_sensor.services.word_class import WordClassifier, default_classifier

logger = logging.getLogger(__name__)

TRAJECTORY_THRESHOLD = 30
TRAJECTORY_CALL = "Significant language drift detected"
MAX_TERMS = 10


def analyze_drift(baseline: Snapshot, current: Snapshot,
                  classifier: Optional[WordClassifier] = None) -> DriftAnalysis:
    """Compare two snapshots of one competitor and build a DriftAnalysis."""
    classifier = classifier or default_classifier
    added = new_words(baseline, current)
    classes = [(w, classifier.classify(w)) for w in added]
    new_nouns = [w for w, c in classes if c.is_noun_like]
    new_verbs = [w for w, c in classes if c.is_verb_like]

    tone_shifts = detect_tone_shifts(baseline, current)
    score = drift_scorer.score(baseline, current)
    found = implications.generate(baseline, current, new_nouns, new_verbs, tone_shifts)

    logger.info("Drift for %s: score=%d new_words=%d shifts=%d",
                current.competitor_url, score, len(added), len(tone_shifts))

    return DriftAnalysis(
        id=new_id("drift"),
        competitor_url=current.competitor_url,
        competitor_name=current.competitor_name,
        analyzed_at=utcnow(),
        drift_score=score,
        new_nouns=new_nouns[:MAX_TERMS],
        new_verbs=new_verbs[:MAX_TERMS],
        tone_shifts=tone_shifts,
        implications=found,
        trajectory_call=TRAJECTORY_CALL if score >= TRAJECTORY_THRESHOLD else None,
    )
