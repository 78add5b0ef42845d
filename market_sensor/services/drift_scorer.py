from typing import Sequence

from market_sensor.services.features import new_words

HERO_WEIGHT = 30
SUBHEAD_WEIGHT = 10
SUBHEAD_CAP = 30
PRICING_WEIGHT = 20
NEW_WORD_WEIGHT = 2
NEW_WORD_CAP = 20
MAX_SCORE = 100


def _positional_diffs(current: Sequence[str], baseline: Sequence[str]) -> int:
    # index-aligned over the current list; reordering counts as change
    return sum(
        1 for i, item in enumerate(current)
        if i >= len(baseline) or item != baseline[i]
    )


def score(baseline, current) -> int:
    """Additive drift score, each factor capped, total capped at 100."""
    total = 0
    if baseline.hero_text != current.hero_text:
        total += HERO_WEIGHT
    total += min(SUBHEAD_WEIGHT * _positional_diffs(current.subheads, baseline.subheads), SUBHEAD_CAP)
    if _positional_diffs(current.pricing_blocks, baseline.pricing_blocks):
        total += PRICING_WEIGHT
    total += min(NEW_WORD_WEIGHT * len(new_words(baseline, current)), NEW_WORD_CAP)
    return min(total, MAX_SCORE)
