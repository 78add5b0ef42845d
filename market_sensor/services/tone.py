from typing import List

from market_sensor.services.features import categorize_keywords

HERO_PREVIEW_CHARS = 50
ADOPTION_THRESHOLD = 2


def _positioning_text(snapshot) -> str:
    return snapshot.hero_text + " " + " ".join(snapshot.subheads)


def detect_tone_shifts(baseline, current) -> List[str]:
    shifts = []
    if baseline.hero_text != current.hero_text:
        shifts.append(
            f'Hero text changed from "{baseline.hero_text[:HERO_PREVIEW_CHARS]}..." '
            f'to "{current.hero_text[:HERO_PREVIEW_CHARS]}..."'
        )

    before = categorize_keywords(_positioning_text(baseline))
    after = categorize_keywords(_positioning_text(current))

    if before["ai"] < ADOPTION_THRESHOLD <= after["ai"]:
        shifts.append("Added AI/ML positioning")
    if before["enterprise"] < ADOPTION_THRESHOLD <= after["enterprise"]:
        shifts.append("Moving upmarket to enterprise")
    if before["speed"] > after["speed"] + 1:
        shifts.append("De-emphasizing speed/performance")
    return shifts
