"""Typed observations emitted by the analyzers."""

from typing import Any, Dict
from dataclasses import dataclass, field
from enum import Enum


class Severity(str, Enum):
    """How harmful a flagged observation is."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_score(cls, score: float) -> "Severity":
        """Standard banding: > 0.7 high, > 0.5 medium, else low."""
        if score > 0.7:
            return cls.HIGH
        if score > 0.5:
            return cls.MEDIUM
        return cls.LOW


class ContentFlagType(str, Enum):
    """Categories of suspicious content."""
    SUSPICIOUS_PATTERNS = "suspicious_patterns"
    CLICKBAIT = "clickbait"
    MISLEADING_INFO = "misleading_info"
    FAKE_URGENCY = "fake_urgency"
    PHISHING_ATTEMPT = "phishing_attempt"


class BehavioralFlagType(str, Enum):
    """Posting-pattern signals derived from the author's history."""
    REPETITIVE_POSTING = "repetitive_posting"
    RAPID_POSTING = "rapid_posting"
    SIMILAR_CONTENT = "similar_content"
    BOT_LIKE_BEHAVIOR = "bot_like_behavior"
    ENGAGEMENT_FARMING = "engagement_farming"


class UserBehaviorFlagType(str, Enum):
    """Account and identity signals."""
    NEW_ACCOUNT = "new_account"
    LOW_REPUTATION = "low_reputation"
    SUSPICIOUS_TIMING = "suspicious_timing"
    GEOGRAPHIC_ANOMALY = "geographic_anomaly"
    DEVICE_PATTERN = "device_pattern"


@dataclass(frozen=True, kw_only=True)
class _Flag:
    severity: Severity
    confidence: float
    description: str
    evidence: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate the flag after initialization."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"Confidence must be between 0.0 and 1.0, got {self.confidence}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'severity': self.severity.value,
            'confidence': self.confidence,
            'description': self.description,
            'evidence': dict(self.evidence),
        }


@dataclass(frozen=True, kw_only=True)
class ContentFlag(_Flag):
    """Observation about the text of the current post."""
    type: ContentFlagType


@dataclass(frozen=True, kw_only=True)
class BehavioralFlag(_Flag):
    """Observation about the author's recent posting behavior."""
    type: BehavioralFlagType


@dataclass(frozen=True, kw_only=True)
class UserBehaviorFlag(_Flag):
    """Observation about the author's account and reputation."""
    type: UserBehaviorFlagType
