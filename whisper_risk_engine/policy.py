"""Decision table turning risk scores and trust level into a moderation action."""

from typing import List, Optional, Sequence, Tuple
from enum import Enum, IntEnum
import logging

from .collaborators import TrustLevel
from .config import RiskThresholds, SCAM_THRESHOLDS, SPAM_THRESHOLDS
from .detection.flags import (
    BehavioralFlag,
    BehavioralFlagType,
    ContentFlag,
    ContentFlagType,
    UserBehaviorFlag,
    UserBehaviorFlagType,
)

logger = logging.getLogger(__name__)


class SuggestedAction(str, Enum):
    """Non-binding moderation recommendation."""
    WARN = "warn"
    FLAG = "flag"
    REJECT = "reject"
    BAN = "ban"


class RiskTier(IntEnum):
    """Band reached by the riskier of the two axes."""
    NONE = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3


# tier -> (action for trusted users, action for everyone else)
ACTION_TABLE = {
    RiskTier.CRITICAL: (SuggestedAction.REJECT, SuggestedAction.BAN),
    RiskTier.HIGH: (SuggestedAction.FLAG, SuggestedAction.REJECT),
    RiskTier.MEDIUM: (SuggestedAction.WARN, SuggestedAction.FLAG),
    RiskTier.NONE: (SuggestedAction.WARN, SuggestedAction.WARN),
}

SCAM_CONTENT_TYPES = (ContentFlagType.PHISHING_ATTEMPT, ContentFlagType.SUSPICIOUS_PATTERNS)
SPAM_BEHAVIOR_TYPES = (BehavioralFlagType.REPETITIVE_POSTING, BehavioralFlagType.RAPID_POSTING)

DEFAULT_REASON = "Suspicious content detected"
CLEAN_REASON = "No risk indicators detected"


def risk_tier(score: float, thresholds: RiskThresholds) -> RiskTier:
    """Band a single axis score (strictly above each threshold)."""
    if score > thresholds.critical:
        return RiskTier.CRITICAL
    if score > thresholds.high:
        return RiskTier.HIGH
    if score > thresholds.medium:
        return RiskTier.MEDIUM
    return RiskTier.NONE


class PolicyEngine:
    """
    Stateless decision table keyed by risk tier and trust level.

    Each axis is banded against its own thresholds (spam 0.5/0.7/0.9,
    scam 0.6/0.8/0.95) and the higher tier wins. Trusted users get one
    step of leniency; every other level, banned included, uses the
    standard column.
    """

    def __init__(
        self,
        spam_thresholds: RiskThresholds = SPAM_THRESHOLDS,
        scam_thresholds: RiskThresholds = SCAM_THRESHOLDS
    ):
        self.spam_thresholds = spam_thresholds
        self.scam_thresholds = scam_thresholds

    def tier(self, spam_score: float, scam_score: float) -> RiskTier:
        return max(
            risk_tier(spam_score, self.spam_thresholds),
            risk_tier(scam_score, self.scam_thresholds)
        )

    def decide(
        self,
        spam_score: float,
        scam_score: float,
        level: Optional[TrustLevel] = None
    ) -> SuggestedAction:
        """
        Map scores and trust level to a suggested action.

        Args:
            spam_score: Spam risk in [0, 1]
            scam_score: Scam risk in [0, 1]
            level: Author's trust level; ``None`` means unknown and is
                treated like any non-trusted level

        Returns:
            SuggestedAction
        """
        tier = self.tier(spam_score, scam_score)
        trusted, other = ACTION_TABLE[tier]
        action = trusted if level == TrustLevel.TRUSTED else other
        logger.debug(
            f"Policy tier {tier.name} for level {getattr(level, 'value', level)} -> {action.value}"
        )
        return action

    def decide_content_only(self, spam_score: float, scam_score: float) -> SuggestedAction:
        """
        Milder table for pre-publication screening, where the author is unknown.

        Confident scam content is rejected and confident spam is flagged;
        everything else is a warning. This path never suggests a ban.
        """
        confidence = max(spam_score, scam_score)
        if scam_score > self.scam_thresholds.medium and confidence > self.scam_thresholds.high:
            return SuggestedAction.REJECT
        if spam_score > self.spam_thresholds.medium and confidence > self.spam_thresholds.high:
            return SuggestedAction.FLAG
        return SuggestedAction.WARN

    @staticmethod
    def build_reason(
        content: Sequence[ContentFlag] = (),
        behavioral: Sequence[BehavioralFlag] = (),
        user: Sequence[UserBehaviorFlag] = ()
    ) -> str:
        """
        Human-readable reason assembled from flags in priority order.

        Flags without a listed reason fall back to ``DEFAULT_REASON``. A
        result with no flags at all gets ``CLEAN_REASON`` instead, so a clean
        post is never described as suspicious.
        """
        reasons: List[str] = []

        scam_flags = [f for f in content if f.type in SCAM_CONTENT_TYPES]
        if scam_flags:
            reasons.append(f"Detected {len(scam_flags)} scam indicators")

        spam_flags = [f for f in behavioral if f.type in SPAM_BEHAVIOR_TYPES]
        if spam_flags:
            reasons.append(f"Detected {len(spam_flags)} spam behavior indicators")

        user_types = {f.type for f in user}
        if UserBehaviorFlagType.NEW_ACCOUNT in user_types:
            reasons.append("New account behavior detected")
        if UserBehaviorFlagType.LOW_REPUTATION in user_types:
            reasons.append("Low reputation user behavior")

        if reasons:
            return "; ".join(reasons)
        if content or behavioral or user:
            return DEFAULT_REASON
        return CLEAN_REASON

    def evaluate(
        self,
        spam_score: float,
        scam_score: float,
        level: Optional[TrustLevel],
        content: Sequence[ContentFlag] = (),
        behavioral: Sequence[BehavioralFlag] = (),
        user: Sequence[UserBehaviorFlag] = ()
    ) -> Tuple[SuggestedAction, str]:
        """Action and reason in one call."""
        return (
            self.decide(spam_score, scam_score, level),
            self.build_reason(content, behavioral, user)
        )
