"""Content pattern analysis of transcribed post text."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .flags import ContentFlag, ContentFlagType, Severity
from .patterns import PatternCategory, PatternLibrary
from .stats import clamp01

logger = logging.getLogger(__name__)

# Score added per matched phrase, and the flag type each category feeds
CATEGORY_RULES: Dict[PatternCategory, Tuple[ContentFlagType, float]] = {
    PatternCategory.FINANCIAL_SCAMS: (ContentFlagType.SUSPICIOUS_PATTERNS, 0.2),
    PatternCategory.CLICKBAIT: (ContentFlagType.CLICKBAIT, 0.2),
    PatternCategory.MISLEADING: (ContentFlagType.MISLEADING_INFO, 0.2),
    PatternCategory.FAKE_URGENCY: (ContentFlagType.FAKE_URGENCY, 0.15),
    PatternCategory.PHISHING: (ContentFlagType.PHISHING_ATTEMPT, 0.3),
}

_DESCRIPTIONS = {
    ContentFlagType.SUSPICIOUS_PATTERNS: "Financial scam phrasing detected",
    ContentFlagType.CLICKBAIT: "Clickbait patterns detected",
    ContentFlagType.MISLEADING_INFO: "Misleading information detected",
    ContentFlagType.FAKE_URGENCY: "Fake urgency detected",
    ContentFlagType.PHISHING_ATTEMPT: "Phishing attempt detected",
}


class ContentAnalyzer:
    """Scans post text for scam phrasing and structural red flags."""

    def __init__(
        self,
        library: Optional[PatternLibrary] = None,
        flag_threshold: float = 0.3,
        exclamation_limit: int = 3,
        question_limit: int = 2,
        uppercase_ratio: float = 0.5
    ):
        self.library = library or PatternLibrary()
        self.flag_threshold = flag_threshold
        self.exclamation_limit = exclamation_limit
        self.question_limit = question_limit
        self.uppercase_ratio = uppercase_ratio

    def analyze(self, text: str) -> List[ContentFlag]:
        """
        Analyze a text body and return its content flags.

        Args:
            text: Transcribed post text; anything that is not a string is
                treated as empty

        Returns:
            List of ContentFlag in ContentFlagType order. Empty or
            whitespace-only text yields no flags.
        """
        if not isinstance(text, str) or not text.strip():
            return []

        text_lower = text.lower()
        scores: Dict[ContentFlagType, float] = {t: 0.0 for t in ContentFlagType}
        evidence: Dict[ContentFlagType, Dict[str, Any]] = {t: {} for t in ContentFlagType}

        for category, (flag_type, per_hit) in CATEGORY_RULES.items():
            hits = self.library.matches(text_lower, category)
            if hits:
                scores[flag_type] += per_hit * len(hits)
                evidence[flag_type]['patterns'] = hits

        scores[ContentFlagType.PHISHING_ATTEMPT] = min(
            scores[ContentFlagType.PHISHING_ATTEMPT], 1.0
        )

        structural = self._structural_signals(text)
        scores[ContentFlagType.CLICKBAIT] += 0.1 * sum(structural.values())
        if any(structural.values()):
            evidence[ContentFlagType.CLICKBAIT]['structure'] = sorted(
                name for name, hit in structural.items() if hit
            )

        has_url = self.library.contains_url(text)
        has_email = self.library.contains_email(text)
        if has_url:
            scores[ContentFlagType.PHISHING_ATTEMPT] += 0.2
        if has_email:
            scores[ContentFlagType.PHISHING_ATTEMPT] += 0.2
        if has_url or has_email:
            evidence[ContentFlagType.PHISHING_ATTEMPT].update(
                has_url=has_url, has_email=has_email
            )

        flags = []
        for flag_type in ContentFlagType:
            # Fixed precision: 0.2 + 0.1 must compare equal to 0.3
            score = round(clamp01(scores[flag_type]), 6)

            # Any phishing signal is reported, whatever its score
            if flag_type == ContentFlagType.PHISHING_ATTEMPT:
                if score <= 0.0:
                    continue
                severity = Severity.CRITICAL
            elif score <= self.flag_threshold:
                continue
            else:
                severity = Severity.HIGH if score > 0.7 else Severity.MEDIUM

            flags.append(ContentFlag(
                type=flag_type,
                severity=severity,
                confidence=score,
                description=_DESCRIPTIONS[flag_type],
                evidence={'score': score, **evidence[flag_type]}
            ))

        if flags:
            logger.debug(f"Content flags raised: {[f.type.value for f in flags]}")
        return flags

    def _structural_signals(self, text: str) -> Dict[str, bool]:
        """Punctuation density and shouting checks that feed clickbait."""
        letters = [c for c in text if c.isalpha()]
        upper_ratio = (
            sum(1 for c in letters if c.isupper()) / len(letters)
            if letters else 0.0
        )
        return {
            'exclamations': text.count('!') > self.exclamation_limit,
            'questions': text.count('?') > self.question_limit,
            'uppercase': upper_ratio > self.uppercase_ratio,
        }
