from dataclasses import dataclass
from typing import Protocol, Tuple

VERB_SUFFIXES: Tuple[str, ...] = ("ing", "ed", "ify", "ize")


@dataclass(frozen=True)
class WordClass:
    is_noun_like: bool
    is_verb_like: bool


class WordClassifier(Protocol):
    def classify(self, word: str) -> WordClass: ...


class HeuristicWordClassifier:
    """Capitalization and suffix rules, no POS tagging.

    Capitalized words longer than four characters read as nouns (product and
    feature names); a handful of suffixes read as verbs. A word may be both.
    """

    def classify(self, word: str) -> WordClass:
        return WordClass(
            is_noun_like=len(word) > 4 and "A" <= word[:1] <= "Z",
            is_verb_like=word.endswith(VERB_SUFFIXES),
        )


default_classifier = HeuristicWordClassifier()
