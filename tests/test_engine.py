"""End-to-end tests for the spam detection engine."""

import asyncio
import unittest
from datetime import datetime, timedelta, UTC
from unittest import mock
from whisper_risk_engine import (
    CollaboratorUnavailable,
    EngineConfig,
    InMemoryHistoryStore,
    InMemoryReputationStore,
    PostHistoryEntry,
    ReputationSnapshot,
    SpamAnalysisResult,
    SpamDetectionEngine,
    SuggestedAction,
    TrustLevel,
    ViolationType,
    Whisper
)
from whisper_risk_engine.detection.flags import (
    BehavioralFlagType,
    ContentFlagType,
    Severity,
    UserBehaviorFlagType
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
CLEAN_TEXT = "Hello, this is a normal whisper about my day."


def snapshot(user_id="u1", level=TrustLevel.VERIFIED, score=75.0, total=100):
    return ReputationSnapshot(
        user_id=user_id,
        score=score,
        level=level,
        total_whispers=total,
        created_at=NOW - timedelta(days=90)
    )


def history_of(texts, spacing=timedelta(hours=1)):
    return [
        PostHistoryEntry(id=f"p{i}", text=text, created_at=NOW - spacing * i)
        for i, text in enumerate(texts, start=1)
    ]


class FailingHistoryStore:
    async def list_recent_posts(self, author_id, limit):
        raise CollaboratorUnavailable("history service down")


class SlowHistoryStore:
    def __init__(self):
        self.finished = False

    async def list_recent_posts(self, author_id, limit):
        try:
            await asyncio.sleep(10)
            return []
        finally:
            self.finished = True


class CountingHistoryStore(InMemoryHistoryStore):
    def __init__(self, posts=None):
        super().__init__(posts)
        self.calls = []

    async def list_recent_posts(self, author_id, limit):
        self.calls.append((author_id, limit))
        return await super().list_recent_posts(author_id, limit)


class TestContentOnly(unittest.TestCase):
    """Test synchronous pre-publication screening."""

    def setUp(self):
        self.engine = SpamDetectionEngine()

    def test_financial_scam_text(self):
        result = self.engine.analyze_content_only(
            "make money fast earn money online work from home get rich quick"
        )
        self.assertIn(
            ContentFlagType.SUSPICIOUS_PATTERNS,
            [f.type for f in result.content_flags]
        )
        self.assertGreaterEqual(result.scam_score, 0)
        self.assertEqual(result.behavioral_flags, ())
        self.assertEqual(result.user_behavior_flags, ())

    def test_clean_text(self):
        result = self.engine.analyze_content_only(CLEAN_TEXT)
        self.assertFalse(result.is_spam)
        self.assertFalse(result.is_scam)
        self.assertLess(result.confidence, 0.3)
        self.assertEqual(result.suggested_action, SuggestedAction.WARN)

    def test_empty_text(self):
        result = self.engine.analyze_content_only("")
        self.assertFalse(result.is_spam)
        self.assertFalse(result.is_scam)
        self.assertEqual(result.confidence, 0)
        self.assertEqual(result.content_flags, ())

    def test_non_string_text(self):
        result = self.engine.analyze_content_only(None)
        self.assertEqual(result.confidence, 0)

    def test_internal_failure_returns_safe_default(self):
        with mock.patch.object(self.engine.aggregator, 'calculate', side_effect=RuntimeError("boom")):
            with self.assertLogs('whisper_risk_engine.engine', level='ERROR'):
                result = self.engine.analyze_content_only("make money fast")
        self.assertEqual(result, SpamAnalysisResult.failed())
        self.assertEqual(result.reason, "Analysis failed")
        self.assertEqual(result.suggested_action, SuggestedAction.WARN)

    def test_to_dict(self):
        data = self.engine.analyze_content_only(
            "Verify your account and claim your prize"
        ).to_dict()
        self.assertEqual(data['contentFlags'][0]['type'], 'phishing_attempt')
        self.assertEqual(data['suggestedAction'], 'warn')
        self.assertEqual(data['userBehaviorFlags'], [])

    def test_single_phishing_phrase(self):
        result = self.engine.analyze_content_only("Please verify your account today")
        self.assertEqual(
            [f.type for f in result.content_flags],
            [ContentFlagType.PHISHING_ATTEMPT]
        )
        self.assertGreater(result.scam_score, 0)
        self.assertEqual(result.reason, "Detected 1 scam indicators")

    def test_stacked_scam_text_is_rejected_not_banned(self):
        result = self.engine.analyze_content_only(
            "Verify your account and claim your prize at www.example.com or bob@example.com. "
            "Make money fast, earn money online, work from home, get rich quick. "
            "100% guaranteed, no risk, free trial, no obligation. "
            "You won't believe the shocking truth, secret revealed, doctors hate this. "
            "Act now, limited time, last chance."
        )
        self.assertTrue(result.is_scam)
        self.assertEqual(result.suggested_action, SuggestedAction.REJECT)
        # The same scores for a known standard author would be a ban
        self.assertEqual(
            self.engine.policy.decide(result.spam_score, result.scam_score, TrustLevel.STANDARD),
            SuggestedAction.BAN
        )


class TestAnalyze(unittest.IsolatedAsyncioTestCase):
    """Test full analysis with history and reputation collaborators."""

    def setUp(self):
        self.history = InMemoryHistoryStore()
        self.reputation = InMemoryReputationStore()
        self.engine = SpamDetectionEngine(
            history_store=self.history,
            reputation_store=self.reputation
        )

    def whisper(self, text, created_at=NOW, author_id="u1"):
        return Whisper(text=text, author_id=author_id, created_at=created_at)

    async def test_clean_post_with_standing_reputation(self):
        result = await self.engine.analyze(self.whisper(CLEAN_TEXT), snapshot())
        self.assertFalse(result.is_spam)
        self.assertFalse(result.is_scam)
        self.assertLess(result.confidence, 0.3)
        self.assertEqual(result.suggested_action, SuggestedAction.WARN)

    async def test_repeated_post(self):
        for entry in history_of(["Hello world"] * 3):
            self.history.add("u1", entry)

        result = await self.engine.analyze(self.whisper("Hello world"), snapshot())
        flags = {f.type: f for f in result.behavioral_flags}
        self.assertIn(BehavioralFlagType.REPETITIVE_POSTING, flags)
        self.assertGreaterEqual(flags[BehavioralFlagType.REPETITIVE_POSTING].confidence, 0.3)

    async def test_trusted_user_leniency(self):
        result = await self.engine.analyze(
            self.whisper("Make money fast! Limited time offer!"),
            snapshot(level=TrustLevel.TRUSTED, score=95)
        )
        self.assertEqual(result.suggested_action, SuggestedAction.WARN)

    async def test_rapid_repeated_posting(self):
        for entry in history_of(["buy my stuff now"] * 10, spacing=timedelta(seconds=20)):
            self.history.add("u1", entry)

        result = await self.engine.analyze(
            self.whisper("buy my stuff now"),
            snapshot(level=TrustLevel.STANDARD)
        )
        self.assertTrue(result.is_spam)
        self.assertFalse(result.is_scam)
        self.assertAlmostEqual(result.spam_score, 0.855)
        self.assertEqual(result.confidence, result.spam_score)
        self.assertEqual(result.suggested_action, SuggestedAction.REJECT)
        self.assertEqual(result.reason, "Detected 2 spam behavior indicators")

        violations = self.engine.to_violations(result)
        self.assertEqual([v.type for v in violations], [ViolationType.SPAM])
        self.assertEqual(violations[0].severity, Severity.CRITICAL)
        self.assertEqual(violations[0].suggested_action, SuggestedAction.REJECT)

    async def test_reputation_fetched_when_not_given(self):
        self.reputation.put(snapshot(level=TrustLevel.FLAGGED))
        result = await self.engine.analyze(self.whisper(CLEAN_TEXT))
        flags = {f.type: f for f in result.user_behavior_flags}
        self.assertEqual(flags[UserBehaviorFlagType.LOW_REPUTATION].severity, Severity.HIGH)
        self.assertEqual(result.reason, "Low reputation user behavior")

    async def test_reputation_store_failure(self):
        with self.assertLogs('whisper_risk_engine.engine', level='WARNING'):
            result = await self.engine.analyze(self.whisper("Hello world"))
        self.assertEqual(result.user_behavior_flags, ())
        self.assertEqual(result.suggested_action, SuggestedAction.WARN)

    async def test_history_store_failure(self):
        engine = SpamDetectionEngine(history_store=FailingHistoryStore())
        with self.assertLogs('whisper_risk_engine.engine', level='WARNING'):
            result = await engine.analyze(
                self.whisper("Verify your account and claim your prize"),
                snapshot()
            )
        self.assertEqual(result.behavioral_flags, ())
        self.assertEqual(
            [f.type for f in result.content_flags],
            [ContentFlagType.PHISHING_ATTEMPT]
        )

    async def test_no_collaborators(self):
        engine = SpamDetectionEngine()
        result = await engine.analyze(
            self.whisper(CLEAN_TEXT),
            snapshot(total=2)
        )
        self.assertEqual(result.behavioral_flags, ())
        self.assertEqual(
            [f.type for f in result.user_behavior_flags],
            [UserBehaviorFlagType.NEW_ACCOUNT]
        )

    async def test_slow_history_times_out(self):
        store = SlowHistoryStore()
        engine = SpamDetectionEngine(history_store=store)
        with self.assertLogs('whisper_risk_engine.engine', level='WARNING'):
            result = await engine.analyze(
                self.whisper("Verify your account and claim your prize"),
                snapshot(),
                timeout=0.05
            )
        self.assertEqual(result.behavioral_flags, ())
        self.assertEqual(result.user_behavior_flags, ())
        self.assertTrue(result.content_flags)
        # Cancelled fetch has fully unwound by the time analyze returns
        self.assertTrue(store.finished)

    async def test_caller_cancellation_propagates(self):
        engine = SpamDetectionEngine(history_store=SlowHistoryStore())
        task = asyncio.ensure_future(engine.analyze(self.whisper("hi"), snapshot(), timeout=30))
        await asyncio.sleep(0.01)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

    async def test_history_fetched_once(self):
        store = CountingHistoryStore({"u1": history_of(["earlier post"])})
        engine = SpamDetectionEngine(history_store=store)
        await engine.analyze(self.whisper(CLEAN_TEXT), snapshot())
        self.assertEqual(store.calls, [("u1", 20)])

    async def test_current_post_counts_toward_timing(self):
        result = await self.engine.analyze(
            self.whisper(CLEAN_TEXT, created_at=NOW.replace(hour=3)),
            snapshot()
        )
        self.assertEqual(
            [f.type for f in result.user_behavior_flags],
            [UserBehaviorFlagType.SUSPICIOUS_TIMING]
        )

    async def test_night_hours_follow_configured_offset(self):
        engine = SpamDetectionEngine(
            history_store=InMemoryHistoryStore(),
            config=EngineConfig().update({"settings": {"local_utc_offset_hours": -5}})
        )
        # 08:00 UTC is 03:00 five hours west
        whisper = self.whisper(CLEAN_TEXT, created_at=NOW.replace(hour=8))
        result = await engine.analyze(whisper, snapshot())
        self.assertEqual(
            [f.type for f in result.user_behavior_flags],
            [UserBehaviorFlagType.SUSPICIOUS_TIMING]
        )

        result = await self.engine.analyze(whisper, snapshot())
        self.assertEqual(result.user_behavior_flags, ())

    async def test_internal_failure_returns_safe_default(self):
        with mock.patch.object(self.engine.policy, 'evaluate', side_effect=RuntimeError("boom")):
            with self.assertLogs('whisper_risk_engine.engine', level='ERROR'):
                result = await self.engine.analyze(self.whisper(CLEAN_TEXT), snapshot())
        self.assertEqual(result, SpamAnalysisResult.failed())

    async def test_concurrent_calls_are_independent(self):
        for entry in history_of(["buy my stuff now"] * 10, spacing=timedelta(seconds=20)):
            self.history.add("spammer", entry)

        spammer, regular = await asyncio.gather(
            self.engine.analyze(
                self.whisper("buy my stuff now", author_id="spammer"),
                snapshot(user_id="spammer")
            ),
            self.engine.analyze(
                self.whisper(CLEAN_TEXT, author_id="regular"),
                snapshot(user_id="regular")
            )
        )
        self.assertTrue(spammer.is_spam)
        self.assertFalse(regular.is_spam)
        self.assertEqual(regular.behavioral_flags, ())


if __name__ == '__main__':
    unittest.main()
