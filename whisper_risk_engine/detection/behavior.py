"""Behavioral pattern detection over an author's recent post history."""

from typing import List, Optional, Sequence
from datetime import datetime, timedelta, tzinfo, UTC
import logging

from ..collaborators import PostHistoryEntry, Whisper, as_utc
from .flags import BehavioralFlag, BehavioralFlagType, Severity
from .patterns import CONTROVERSIAL_TOPICS, FARMING_PHRASES, phrase_pattern
from .stats import calculate_variance, clamp01, jaccard_similarity

logger = logging.getLogger(__name__)

_FARMING_RES = [phrase_pattern(p) for p in FARMING_PHRASES]
_TOPIC_RES = [phrase_pattern(p) for p in CONTROVERSIAL_TOPICS]

_DESCRIPTIONS = {
    BehavioralFlagType.REPETITIVE_POSTING: "Repetitive posting behavior detected",
    BehavioralFlagType.RAPID_POSTING: "Rapid posting behavior detected",
    BehavioralFlagType.SIMILAR_CONTENT: "Similar content patterns detected",
    BehavioralFlagType.BOT_LIKE_BEHAVIOR: "Bot-like behavior patterns detected",
    BehavioralFlagType.ENGAGEMENT_FARMING: "Engagement farming behavior detected",
}


class BehavioralAnalyzer:
    """Scores repetition, velocity, similarity, automation and engagement farming."""

    def __init__(
        self,
        history_limit: int = 20,
        flag_threshold: float = 0.3,
        repetition_window: int = 5,
        similarity_window: int = 10,
        similarity_match: float = 0.7,
        velocity_window: int = 10,
        velocity_minutes: int = 5,
        bot_min_posts: int = 3,
        local_tz: tzinfo = UTC
    ):
        self.history_limit = history_limit
        self.local_tz = local_tz
        self.flag_threshold = flag_threshold
        self._init_detectors(
            repetition_window, similarity_window, similarity_match,
            velocity_window, velocity_minutes, bot_min_posts
        )

    def _init_detectors(
        self,
        repetition_window: int,
        similarity_window: int,
        similarity_match: float,
        velocity_window: int,
        velocity_minutes: int,
        bot_min_posts: int
    ):
        """Initialize pattern detection rules."""
        self.detection_rules = {
            BehavioralFlagType.REPETITIVE_POSTING: {
                'window': repetition_window,
                'similarity_threshold': similarity_match
            },
            BehavioralFlagType.RAPID_POSTING: {
                'window': velocity_window,
                'time_window': timedelta(minutes=velocity_minutes)
            },
            BehavioralFlagType.SIMILAR_CONTENT: {
                'window': similarity_window
            },
            BehavioralFlagType.BOT_LIKE_BEHAVIOR: {
                'min_posts': bot_min_posts,
                'hour_variance': 2.0,
                'length_variance': 10.0,
                'engagement_variance': 0.1
            },
            BehavioralFlagType.ENGAGEMENT_FARMING: {
                'question_ratio': 0.7,
                'controversial_ratio': 0.5
            }
        }

    def analyze(
        self,
        history: Sequence[PostHistoryEntry],
        current: Whisper,
        now: Optional[datetime] = None
    ) -> List[BehavioralFlag]:
        """
        Run every behavioral detector against the author's history.

        Args:
            history: Prior posts by the same author, any order
            current: The post being analyzed
            now: Reference time for velocity checks (default: the current
                post's creation time)

        Returns:
            List of BehavioralFlag for sub-scores above the flag threshold
        """
        recent = self._recent(history)
        now = as_utc(now) or current.created_at

        scores = {
            BehavioralFlagType.REPETITIVE_POSTING: self.detect_repetitive_posting(recent, current),
            BehavioralFlagType.RAPID_POSTING: self.detect_rapid_posting(recent, now),
            BehavioralFlagType.SIMILAR_CONTENT: self.detect_similar_content(recent, current),
            BehavioralFlagType.BOT_LIKE_BEHAVIOR: self.detect_bot_like_behavior(recent),
            BehavioralFlagType.ENGAGEMENT_FARMING: self.detect_engagement_farming(recent),
        }

        flags = []
        for flag_type, score in scores.items():
            score = round(score, 6)
            if score > self.flag_threshold:
                flags.append(BehavioralFlag(
                    type=flag_type,
                    severity=Severity.from_score(score),
                    confidence=score,
                    description=_DESCRIPTIONS[flag_type],
                    evidence={'score': score, 'history_size': len(recent)}
                ))
        return flags

    def _recent(self, history: Sequence[PostHistoryEntry]) -> List[PostHistoryEntry]:
        """Newest-first copy of the history, capped at the history limit."""
        ordered = sorted(history, key=lambda e: e.created_at, reverse=True)
        return ordered[:self.history_limit]

    def detect_repetitive_posting(
        self,
        recent: Sequence[PostHistoryEntry],
        current: Whisper
    ) -> float:
        """Share of the last few posts that nearly duplicate the current one."""
        rules = self.detection_rules[BehavioralFlagType.REPETITIVE_POSTING]
        window = rules['window']
        matches = sum(
            1 for entry in recent[:window]
            if jaccard_similarity(current.text, entry.text) > rules['similarity_threshold']
        )
        return clamp01(matches / window) if window else 0.0

    def detect_rapid_posting(
        self,
        recent: Sequence[PostHistoryEntry],
        now: datetime
    ) -> float:
        """Share of the velocity window posted within a few minutes of ``now``."""
        rules = self.detection_rules[BehavioralFlagType.RAPID_POSTING]
        window = rules['window']
        rapid = sum(
            1 for entry in recent[:window]
            if abs(now - entry.created_at) <= rules['time_window']
        )
        return clamp01(rapid / window) if window else 0.0

    def detect_similar_content(
        self,
        recent: Sequence[PostHistoryEntry],
        current: Whisper
    ) -> float:
        """Highest similarity between the current post and any recent one."""
        window = self.detection_rules[BehavioralFlagType.SIMILAR_CONTENT]['window']
        return max(
            (jaccard_similarity(current.text, entry.text) for entry in recent[:window]),
            default=0.0
        )

    def detect_bot_like_behavior(self, recent: Sequence[PostHistoryEntry]) -> float:
        """
        Detect unnaturally uniform posting.

        Low variance in posting hour adds 0.3; low variance in post length
        or in engagement per second of audio adds 0.2 each.
        """
        rules = self.detection_rules[BehavioralFlagType.BOT_LIKE_BEHAVIOR]
        if len(recent) < rules['min_posts']:
            return 0.0

        score = 0.0
        hour_variance = calculate_variance(
            e.created_at.astimezone(self.local_tz).hour for e in recent
        )
        if hour_variance < rules['hour_variance']:
            score += 0.3

        length_variance = calculate_variance(len(e.text) for e in recent)
        if length_variance < rules['length_variance']:
            score += 0.2

        engagement_variance = calculate_variance(e.engagement_rate for e in recent)
        if engagement_variance < rules['engagement_variance']:
            score += 0.2

        return clamp01(score)

    def detect_engagement_farming(self, recent: Sequence[PostHistoryEntry]) -> float:
        """Detect history dominated by bait questions and hot-button topics."""
        if not recent:
            return 0.0

        rules = self.detection_rules[BehavioralFlagType.ENGAGEMENT_FARMING]
        texts = [e.text.lower() for e in recent]

        baiting = sum(
            1 for text in texts
            if '?' in text or any(p.search(text) for p in _FARMING_RES)
        )
        controversial = sum(
            1 for text in texts
            if any(p.search(text) for p in _TOPIC_RES)
        )

        score = 0.0
        if baiting / len(texts) > rules['question_ratio']:
            score += 0.4
        if controversial / len(texts) > rules['controversial_ratio']:
            score += 0.3
        return clamp01(score)

