"""Tests for risk score aggregation."""

import unittest
from whisper_risk_engine.config import ScoringWeights
from whisper_risk_engine.detection.flags import (
    BehavioralFlag,
    BehavioralFlagType,
    ContentFlag,
    ContentFlagType,
    Severity,
    UserBehaviorFlag,
    UserBehaviorFlagType
)
from whisper_risk_engine.detection.scoring import ScoreAggregator


def content(flag_type, confidence):
    return ContentFlag(type=flag_type, severity=Severity.MEDIUM,
                       confidence=confidence, description="test")


def behavioral(flag_type, confidence):
    return BehavioralFlag(type=flag_type, severity=Severity.MEDIUM,
                          confidence=confidence, description="test")


def user(flag_type, confidence):
    return UserBehaviorFlag(type=flag_type, severity=Severity.MEDIUM,
                            confidence=confidence, description="test")


class TestScoreAggregator(unittest.TestCase):
    """Test weighted aggregation into spam and scam scores."""

    def setUp(self):
        self.aggregator = ScoreAggregator()

    def test_no_flags(self):
        scores = self.aggregator.calculate()
        self.assertEqual(scores.spam_score, 0.0)
        self.assertEqual(scores.scam_score, 0.0)
        self.assertEqual(scores.max_score, 0.0)

    def test_content_weights(self):
        scores = self.aggregator.calculate(
            content=[content(ContentFlagType.SUSPICIOUS_PATTERNS, 0.8)]
        )
        self.assertAlmostEqual(scores.spam_score, 0.2)
        self.assertAlmostEqual(scores.scam_score, 0.32)
        self.assertAlmostEqual(scores.max_score, 0.32)

    def test_behavioral_flags_only_affect_spam(self):
        scores = self.aggregator.calculate(
            behavioral=[behavioral(BehavioralFlagType.REPETITIVE_POSTING, 1.0)]
        )
        self.assertAlmostEqual(scores.spam_score, 0.3)
        self.assertEqual(scores.scam_score, 0.0)

    def test_user_weights(self):
        flags = [
            user(UserBehaviorFlagType.NEW_ACCOUNT, 0.8),
            user(UserBehaviorFlagType.LOW_REPUTATION, 0.9),
        ]
        self.assertAlmostEqual(self.aggregator.spam_score(user=flags), 0.16 + 0.27)
        self.assertAlmostEqual(self.aggregator.scam_score(user=flags), 0.24 + 0.27)

    def test_scores_are_clamped(self):
        scores = self.aggregator.calculate(
            content=[content(t, 1.0) for t in ContentFlagType] * 3,
            behavioral=[behavioral(t, 1.0) for t in BehavioralFlagType],
            user=[user(t, 1.0) for t in UserBehaviorFlagType]
        )
        self.assertEqual(scores.spam_score, 1.0)
        self.assertEqual(scores.scam_score, 1.0)

    def test_components(self):
        scores = self.aggregator.calculate(
            content=[content(ContentFlagType.PHISHING_ATTEMPT, 1.0)],
            user=[user(UserBehaviorFlagType.NEW_ACCOUNT, 1.0)]
        )
        self.assertAlmostEqual(scores.components['spam']['content'], 0.2)
        self.assertAlmostEqual(scores.components['scam']['content'], 0.4)
        self.assertAlmostEqual(scores.components['scam']['user'], 0.3)

    def test_missing_weight_contributes_nothing(self):
        aggregator = ScoreAggregator(ScoringWeights(content={}))
        scores = aggregator.calculate(
            content=[content(ContentFlagType.CLICKBAIT, 1.0)]
        )
        self.assertEqual(scores.spam_score, 0.0)
        self.assertAlmostEqual(scores.scam_score, 0.2)

    def test_weight_validation(self):
        """Test weight validation."""
        with self.assertRaises(ValueError):
            ScoringWeights(content={ContentFlagType.CLICKBAIT: 1.5})

        with self.assertRaises(ValueError):
            ScoringWeights(scam_user={UserBehaviorFlagType.NEW_ACCOUNT: -0.1})


if __name__ == '__main__':
    unittest.main()
