"""Mapping of completed analysis results into persistence-ready violation records."""

from typing import TYPE_CHECKING, Any, Dict, List
from dataclasses import dataclass
from enum import Enum

from .detection.flags import Severity
from .policy import SuggestedAction

if TYPE_CHECKING:
    from .engine import SpamAnalysisResult


class ViolationType(str, Enum):
    SPAM = "spam"
    SCAM = "scam"


@dataclass(frozen=True)
class Violation:
    """Point-in-time violation record; never updated once created."""
    type: ViolationType
    severity: Severity
    confidence: float
    description: str
    suggested_action: SuggestedAction

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'severity': self.severity.value,
            'confidence': self.confidence,
            'description': self.description,
            'suggestedAction': self.suggested_action.value,
        }


def violation_severity(score: float) -> Severity:
    """Canonical banding: > 0.8 critical, > 0.6 high, > 0.4 medium, else low."""
    if score > 0.8:
        return Severity.CRITICAL
    if score > 0.6:
        return Severity.HIGH
    if score > 0.4:
        return Severity.MEDIUM
    return Severity.LOW


class ViolationConverter:
    """Pure mapping from an analysis result to zero, one or two violations."""

    @staticmethod
    def convert(result: "SpamAnalysisResult") -> List[Violation]:
        violations = []

        if result.is_scam:
            violations.append(Violation(
                type=ViolationType.SCAM,
                severity=violation_severity(result.scam_score),
                confidence=result.scam_score,
                description=result.reason,
                suggested_action=result.suggested_action
            ))

        if result.is_spam:
            violations.append(Violation(
                type=ViolationType.SPAM,
                severity=violation_severity(result.spam_score),
                confidence=result.spam_score,
                description=result.reason,
                suggested_action=result.suggested_action
            ))

        return violations
