"""Keyword and phrase sets for spam and scam content detection."""

import re
from enum import Enum
from typing import Dict, List, Optional, Tuple


class PatternCategory(str, Enum):
    """Phrase categories recognised in post text."""
    FINANCIAL_SCAMS = "FINANCIAL_SCAMS"
    PHISHING = "PHISHING"
    CLICKBAIT = "CLICKBAIT"
    FAKE_URGENCY = "FAKE_URGENCY"
    MISLEADING = "MISLEADING"


SUSPICIOUS_PATTERNS: Dict[PatternCategory, Tuple[str, ...]] = {
    PatternCategory.FINANCIAL_SCAMS: (
        "make money fast",
        "earn money online",
        "work from home",
        "get rich quick",
        "investment opportunity",
        "cryptocurrency investment",
        "bitcoin investment",
        "forex trading",
        "binary options",
        "pyramid scheme",
        "multi-level marketing",
        "mlm",
        "passive income",
        "financial freedom",
        "quit your job",
        "retire early",
    ),
    PatternCategory.PHISHING: (
        "verify your account",
        "confirm your details",
        "update your information",
        "security check",
        "account suspended",
        "unusual activity",
        "login attempt",
        "password reset",
        "credit card verification",
        "bank account verification",
        "social security number",
        "ssn",
        "tax refund",
        "irs",
        "government grant",
        "free money",
        "claim your prize",
        "you've won",
        "congratulations you won",
    ),
    PatternCategory.CLICKBAIT: (
        "you won't believe",
        "shocking truth",
        "secret revealed",
        "doctors hate this",
        "one weird trick",
        "what happens next",
        "number 7 will shock you",
        "this will change everything",
        "amazing discovery",
        "incredible results",
        "miracle cure",
        "instant results",
        "overnight success",
        "guaranteed results",
    ),
    PatternCategory.FAKE_URGENCY: (
        "limited time",
        "act now",
        "don't wait",
        "expires soon",
        "last chance",
        "final offer",
        "while supplies last",
        "only today",
        "urgent action required",
        "immediate attention",
        "time sensitive",
        "deadline approaching",
    ),
    PatternCategory.MISLEADING: (
        "100% guaranteed",
        "no risk",
        "free trial",
        "no obligation",
        "cancel anytime",
        "no hidden fees",
        "money back guarantee",
        "satisfaction guaranteed",
        "proven results",
        "scientifically proven",
        "doctor recommended",
        "expert approved",
    ),
}

# Engagement-bait phrasing and hot-button topics looked for in post history
FARMING_PHRASES: Tuple[str, ...] = (
    "what do you think",
    "agree or disagree",
)

CONTROVERSIAL_TOPICS: Tuple[str, ...] = (
    "politics",
    "religion",
    "abortion",
    "vaccine",
    "gun control",
    "immigration",
    "election",
    "conspiracy",
)

_URL_PATTERN = re.compile(
    r"(?:https?://|www\.)\S+"
    r"|(?<![@\w.-])[a-z0-9-]+(?:\.[a-z0-9-]+)*\.(?:com|net|org|io|co|xyz|info|biz|ly|me|app)\b(?:/\S*)?",
    re.I
)
_EMAIL_PATTERN = re.compile(r'\b[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[a-z]{2,}\b', re.I)


def phrase_pattern(phrase: str) -> "re.Pattern[str]":
    """Match ``phrase`` as whole words so "irs" does not fire inside "first".

    Stricter than plain substring search: "act now" does not match
    "react nowhere". Scores for such texts come out lower as a result.
    """
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)")


class PatternLibrary:
    """Static phrase sets plus URL and email detectors."""

    def __init__(self, patterns: Optional[Dict[PatternCategory, Tuple[str, ...]]] = None):
        self.patterns = patterns or SUSPICIOUS_PATTERNS
        self._compiled = {
            category: [(phrase, phrase_pattern(phrase)) for phrase in phrases]
            for category, phrases in self.patterns.items()
        }

    def matches(self, text_lower: str, category: PatternCategory) -> List[str]:
        """Phrases of ``category`` occurring in already lower-cased text."""
        return [
            phrase for phrase, pattern in self._compiled.get(category, ())
            if pattern.search(text_lower)
        ]

    def detect_suspicious_patterns(self, text: str) -> List[str]:
        """Every phrase hit across all categories, as ``"CATEGORY: phrase"``."""
        text_lower = text.lower()
        return [
            f"{category.value}: {phrase}"
            for category in self.patterns
            for phrase in self.matches(text_lower, category)
        ]

    @staticmethod
    def contains_url(text: str) -> bool:
        return bool(_URL_PATTERN.search(text))

    @staticmethod
    def contains_email(text: str) -> bool:
        return bool(_EMAIL_PATTERN.search(text))
