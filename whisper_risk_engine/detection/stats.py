"""Numeric helpers shared by the analyzers."""

from typing import Iterable

import numpy as np


def clamp01(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return float(np.clip(value, 0.0, 1.0))


def calculate_variance(values: Iterable[float]) -> float:
    """Population variance; defined as 0.0 for fewer than two values."""
    values = list(values)
    if len(values) < 2:
        return 0.0
    return float(np.var(values))


def word_set(text: str) -> set:
    return set(text.lower().split())


def jaccard_similarity(text1: str, text2: str) -> float:
    """
    Jaccard similarity of the case-folded whitespace token sets.

    Two texts with no tokens at all are defined to have similarity 0.0.
    """
    words1 = word_set(text1 or "")
    words2 = word_set(text2 or "")
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)
