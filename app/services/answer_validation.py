"""Checks a typed translation against the expected answer, tolerating small typos.

Typo tolerance uses :class:`difflib.SequenceMatcher` ratios, which are looser
than a normalised Levenshtein distance on short words: "hous" against
"house" scores 0.889 here where one minus the edit distance over the longer
length gives 0.8. A missing letter in a five letter word is therefore still
accepted at the 0.85 threshold.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher

TYPO_SIMILARITY_THRESHOLD = 0.85

_PUNCTUATION_RE = re.compile(r"[.,!?;:؟،؛]")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(slots=True)
class ValidationResult:
    is_correct: bool
    similarity: float
    feedback: str

    @property
    def similarity_percentage(self) -> int:
        return round(self.similarity * 100)


def normalize_answer(value: str) -> str:
    value = _PUNCTUATION_RE.sub("", value.lower())
    return _WHITESPACE_RE.sub(" ", value).strip()


def similarity(left: str, right: str) -> float:
    if not left and not right:
        return 1.0
    return SequenceMatcher(None, left, right).ratio()


def validate_answer(user_answer: str | None, correct_answer: str) -> ValidationResult:
    """Compare ``user_answer`` to ``correct_answer``.

    ``correct_answer`` may list alternatives separated by ``/`` ("house / home").
    Answers within :data:`TYPO_SIMILARITY_THRESHOLD` of an alternative count
    as correct.
    """

    if not user_answer or not user_answer.strip():
        return ValidationResult(False, 0.0, "Please enter an answer")

    answer = normalize_answer(user_answer)
    expected = normalize_answer(correct_answer)

    if answer == expected:
        return ValidationResult(True, 1.0, "Perfect!")

    alternatives = [part.strip() for part in expected.split("/") if part.strip()] or [expected]
    if len(alternatives) > 1 and answer in alternatives:
        return ValidationResult(True, 1.0, "Correct!")

    best = max(similarity(answer, candidate) for candidate in alternatives)
    if len(alternatives) > 1:
        best = max(best, similarity(answer, expected))

    if best >= TYPO_SIMILARITY_THRESHOLD:
        return ValidationResult(True, best, "Correct! (Small typo, but we got it)")
    return ValidationResult(False, best, "Not quite. Try again!")


__all__ = ["ValidationResult", "validate_answer", "normalize_answer", "TYPO_SIMILARITY_THRESHOLD"]
