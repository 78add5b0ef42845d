from typing import List, Sequence

from market_sensor.models.schemas import (
    DriftImplication,
    NarrativeTag,
    Persona,
    Stage,
    Severity,
)

MAX_IMPLICATIONS = 5
MAX_LISTED_NOUNS = 5
HERO_PREVIEW_CHARS = 100


def generate(baseline, current, new_nouns: Sequence[str], new_verbs: Sequence[str],
             tone_shifts: Sequence[str]) -> List[DriftImplication]:
    """Turn detected deltas into at most five tagged implications.

    Rules run in a fixed order (hero change, new terms, one per tone shift) and
    are not exclusive. When none fire a single low-severity fallback is
    returned, so the result is never empty. ``new_verbs`` is accepted for
    callers that track it but no rule keys on it today.
    """
    implications = []

    if baseline.hero_text != current.hero_text:
        implications.append(DriftImplication(
            text=f'Hero text updated: "{current.hero_text[:HERO_PREVIEW_CHARS]}..."',
            so_what="Primary messaging has changed. Review their new positioning.",
            narrative_tag=NarrativeTag.TRUST,
            persona=Persona.CTO,
            stage=Stage.AWARENESS,
            severity=Severity.HIGH,
        ))

    if new_nouns:
        implications.append(DriftImplication(
            text=f"New product terms added: {', '.join(new_nouns[:MAX_LISTED_NOUNS])}",
            so_what="Competitor is introducing new features or capabilities. Investigate what they launched.",
            narrative_tag=NarrativeTag.INNOVATION,
            persona=Persona.VP_ENGINEERING,
            stage=Stage.CONSIDERATION,
            severity=Severity.MEDIUM,
        ))

    for shift in tone_shifts:
        implications.append(DriftImplication(
            text=shift,
            so_what="Strategic positioning change detected. Monitor their messaging evolution.",
            narrative_tag=NarrativeTag.CONTROL,
            persona=Persona.PRODUCT_MANAGER,
            stage=Stage.AWARENESS,
            severity=Severity.MEDIUM,
        ))

    if not implications:
        implications.append(DriftImplication(
            text="Minor updates detected in competitor messaging",
            so_what="Small textual changes - likely routine updates.",
            narrative_tag=NarrativeTag.TRUST,
            persona=Persona.CTO,
            stage=Stage.AWARENESS,
            severity=Severity.LOW,
        ))

    return implications[:MAX_IMPLICATIONS]
