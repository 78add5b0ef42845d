import re
from typing import Dict, Iterable, List


_NON_WORD = re.compile(r"[^A-Za-z0-9-]")
MIN_WORD_LEN = 3

KEYWORD_CATEGORIES: Dict[str, re.Pattern] = {
    "ai": re.compile(r"\b(ai|artificial intelligence|machine learning|ml|neural|gpt|llm)\b"),
    "enterprise": re.compile(r"\b(enterprise|business|organization|team|scale)\b"),
    "speed": re.compile(r"\b(fast|quick|instant|real-time|performance|latency)\b"),
    "security": re.compile(r"\b(secure|security|encryption|compliance|private|privacy)\b"),
    "cost": re.compile(r"\b(free|cheap|affordable|cost|price|pricing)\b"),
}


def extract_words(texts: Iterable[str]) -> List[str]:
    """Whitespace tokens with non [A-Za-z0-9-] characters stripped.

    Case is preserved (capitalization feeds the noun heuristic). Tokens of
    two characters or fewer are dropped; repeats keep their first position.
    """
    tokens = (_NON_WORD.sub("", tok) for tok in " ".join(texts).split())
    return list(dict.fromkeys(t for t in tokens if len(t) >= MIN_WORD_LEN))


def categorize_keywords(text: str) -> Dict[str, int]:
    lower = text.lower()
    return {name: len(pat.findall(lower)) for name, pat in KEYWORD_CATEGORIES.items()}


def snapshot_texts(snapshot) -> List[str]:
    return [snapshot.hero_text, *snapshot.subheads, *snapshot.pricing_blocks]


def new_words(baseline, current) -> List[str]:
    """Words in the current snapshot that never appear in the baseline."""
    seen = set(extract_words(snapshot_texts(baseline)))
    return [w for w in extract_words(snapshot_texts(current)) if w not in seen]
