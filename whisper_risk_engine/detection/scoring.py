"""Weighted aggregation of analyzer flags into spam and scam risk scores."""

from typing import Dict, Optional, Sequence
from dataclasses import dataclass, field

from .flags import BehavioralFlag, ContentFlag, UserBehaviorFlag
from .stats import clamp01
from ..config import ScoringWeights


@dataclass(frozen=True)
class RiskScores:
    """Spam and scam scores with per-source contributions."""
    spam_score: float  # 0.0 to 1.0
    scam_score: float  # 0.0 to 1.0
    components: Dict[str, Dict[str, float]] = field(default_factory=dict)

    @property
    def max_score(self) -> float:
        return max(self.spam_score, self.scam_score)


class ScoreAggregator:
    """
    Combines content, behavioral and user flags into two bounded scores.

    Each flag contributes ``confidence * weight[flag.type]``; the sums are
    clamped to [0, 1]. Flag types missing from a weight table contribute
    nothing. The scam axis ignores behavioral flags.
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights()

    @staticmethod
    def _weighted(flags: Sequence, table: Dict) -> float:
        return sum(flag.confidence * table.get(flag.type, 0.0) for flag in flags)

    def spam_score(
        self,
        content: Sequence[ContentFlag] = (),
        behavioral: Sequence[BehavioralFlag] = (),
        user: Sequence[UserBehaviorFlag] = ()
    ) -> float:
        return clamp01(
            self._weighted(content, self.weights.content)
            + self._weighted(behavioral, self.weights.behavioral)
            + self._weighted(user, self.weights.user)
        )

    def scam_score(
        self,
        content: Sequence[ContentFlag] = (),
        user: Sequence[UserBehaviorFlag] = ()
    ) -> float:
        return clamp01(
            self._weighted(content, self.weights.scam_content)
            + self._weighted(user, self.weights.scam_user)
        )

    def calculate(
        self,
        content: Sequence[ContentFlag] = (),
        behavioral: Sequence[BehavioralFlag] = (),
        user: Sequence[UserBehaviorFlag] = ()
    ) -> RiskScores:
        """Calculate both risk axes from the three flag sets."""
        components = {
            'spam': {
                'content': self._weighted(content, self.weights.content),
                'behavioral': self._weighted(behavioral, self.weights.behavioral),
                'user': self._weighted(user, self.weights.user),
            },
            'scam': {
                'content': self._weighted(content, self.weights.scam_content),
                'user': self._weighted(user, self.weights.scam_user),
            },
        }

        return RiskScores(
            spam_score=self.spam_score(content, behavioral, user),
            scam_score=self.scam_score(content, user),
            components=components
        )
