"""
Spam and scam risk engine for transcribed whispers.

Content analysis runs inline; behavioral and user-trust analysis run
concurrently against the history and reputation stores. Either I/O branch
can fail or time out without aborting the analysis: it simply contributes
no flags. Top-level calls never raise; an internal failure yields the safe
default result (no spam, no scam, action ``warn``).
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .collaborators import (
    CollaboratorUnavailable,
    HistoryStore,
    PostHistoryEntry,
    ReputationSnapshot,
    ReputationStore,
    TrustLevel,
    Whisper,
)
from .config import EngineConfig
from .detection.behavior import BehavioralAnalyzer
from .detection.content import ContentAnalyzer
from .detection.flags import BehavioralFlag, ContentFlag, UserBehaviorFlag
from .detection.scoring import ScoreAggregator
from .detection.user_trust import SignalSource, UserTrustAnalyzer
from .policy import PolicyEngine, SuggestedAction
from .violations import Violation, ViolationConverter

logger = logging.getLogger(__name__)

FAILED_REASON = "Analysis failed"


@dataclass(frozen=True)
class SpamAnalysisResult:
    """Outcome of one analysis call. ``confidence`` is max(spam, scam) when omitted."""
    is_spam: bool
    is_scam: bool
    spam_score: float
    scam_score: float
    confidence: Optional[float] = None
    content_flags: Tuple[ContentFlag, ...] = ()
    behavioral_flags: Tuple[BehavioralFlag, ...] = ()
    user_behavior_flags: Tuple[UserBehaviorFlag, ...] = ()
    suggested_action: SuggestedAction = SuggestedAction.WARN
    reason: str = ""

    def __post_init__(self):
        if self.confidence is None:
            object.__setattr__(self, 'confidence', max(self.spam_score, self.scam_score))
        for name in ('content_flags', 'behavioral_flags', 'user_behavior_flags'):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    @classmethod
    def failed(cls) -> "SpamAnalysisResult":
        """Fail-open result: never blocks content because analysis broke."""
        return cls(
            is_spam=False,
            is_scam=False,
            spam_score=0.0,
            scam_score=0.0,
            confidence=0.0,
            suggested_action=SuggestedAction.WARN,
            reason=FAILED_REASON
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isSpam': self.is_spam,
            'isScam': self.is_scam,
            'confidence': self.confidence,
            'spamScore': self.spam_score,
            'scamScore': self.scam_score,
            'contentFlags': [f.to_dict() for f in self.content_flags],
            'behavioralFlags': [f.to_dict() for f in self.behavioral_flags],
            'userBehaviorFlags': [f.to_dict() for f in self.user_behavior_flags],
            'suggestedAction': self.suggested_action.value,
            'reason': self.reason,
        }


class SpamDetectionEngine:
    """
    Stateless risk engine. Holds only its configuration and collaborator
    handles, so one instance can serve any number of concurrent calls.
    """

    def __init__(
        self,
        history_store: Optional[HistoryStore] = None,
        reputation_store: Optional[ReputationStore] = None,
        config: Optional[EngineConfig] = None,
        signal_sources: Optional[Sequence[SignalSource]] = None
    ):
        self.history_store = history_store
        self.reputation_store = reputation_store
        self.config = config or EngineConfig()

        settings = self.config.settings
        self.content_analyzer = ContentAnalyzer(flag_threshold=settings.flag_threshold)
        self.behavioral_analyzer = BehavioralAnalyzer(
            history_limit=settings.history_limit,
            flag_threshold=settings.flag_threshold,
            repetition_window=settings.repetition_window,
            similarity_window=settings.similarity_window,
            similarity_match=settings.similarity_match,
            velocity_window=settings.velocity_window,
            velocity_minutes=settings.velocity_minutes,
            bot_min_posts=settings.bot_min_posts,
            local_tz=settings.local_tz
        )
        self.user_trust_analyzer = UserTrustAnalyzer(
            new_account_hours=settings.new_account_hours,
            new_account_posts=settings.new_account_posts,
            low_reputation_score=settings.low_reputation_score,
            timing_window_hours=settings.timing_window_hours,
            burst_post_limit=settings.burst_post_limit,
            night_start_hour=settings.night_start_hour,
            night_end_hour=settings.night_end_hour,
            night_ratio=settings.night_ratio,
            local_tz=settings.local_tz,
            signal_sources=signal_sources
        )
        self.aggregator = ScoreAggregator(self.config.weights)
        self.policy = PolicyEngine(self.config.spam_thresholds, self.config.scam_thresholds)

    # -------------------- Public operations --------------------

    def analyze_content_only(self, text: str) -> SpamAnalysisResult:
        """
        Screen text before it is published; no history, no I/O.

        The author is not known yet, so the milder content-only policy
        applies: at most ``reject``, never ``ban``.

        Args:
            text: Transcribed text (non-strings are treated as empty)

        Returns:
            SpamAnalysisResult with empty behavioral and user flags
        """
        try:
            content_flags = self.content_analyzer.analyze(text)
            scores = self.aggregator.calculate(content_flags)
            return SpamAnalysisResult(
                is_spam=scores.spam_score > self.config.spam_thresholds.medium,
                is_scam=scores.scam_score > self.config.scam_thresholds.medium,
                spam_score=scores.spam_score,
                scam_score=scores.scam_score,
                confidence=scores.max_score,
                content_flags=content_flags,
                suggested_action=self.policy.decide_content_only(
                    scores.spam_score, scores.scam_score
                ),
                reason=self.policy.build_reason(content_flags)
            )
        except Exception:
            logger.exception(
                "Content-only analysis failed",
                extra={"moderation_event": "analysis_failed"}
            )
            return SpamAnalysisResult.failed()

    async def analyze(
        self,
        whisper: Whisper,
        reputation: Optional[ReputationSnapshot] = None,
        timeout: Optional[float] = None
    ) -> SpamAnalysisResult:
        """
        Full analysis of a post against its author's history and reputation.

        Args:
            whisper: The post being analyzed
            reputation: Author's reputation snapshot; fetched from the
                reputation store when omitted
            timeout: Seconds to wait for the I/O branches (default from
                config); branches still running are cancelled and
                contribute no flags

        Returns:
            SpamAnalysisResult (never raises, except on caller cancellation)
        """
        start_time = time.perf_counter()
        if timeout is None:
            timeout = self.config.settings.analysis_timeout

        try:
            content_flags = self.content_analyzer.analyze(whisper.text)
            behavioral_flags, user_flags, reputation = await self._run_io_branches(
                whisper, reputation, timeout
            )
            level = reputation.level if reputation else None
            result = self._build_result(content_flags, behavioral_flags, user_flags, level)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "Whisper analysis failed",
                extra={"moderation_event": "analysis_failed"}
            )
            return SpamAnalysisResult.failed()

        logger.info(
            f"Analyzed whisper from {whisper.author_id} in "
            f"{time.perf_counter() - start_time:.3f}s: "
            f"spam={result.spam_score:.2f} scam={result.scam_score:.2f} "
            f"action={result.suggested_action.value}"
        )
        return result

    @staticmethod
    def to_violations(result: SpamAnalysisResult) -> List[Violation]:
        """Persistence-ready violation records for a completed result."""
        return ViolationConverter.convert(result)

    # -------------------- Internals --------------------

    def _build_result(
        self,
        content_flags: Sequence[ContentFlag],
        behavioral_flags: Sequence[BehavioralFlag],
        user_flags: Sequence[UserBehaviorFlag],
        level: Optional[TrustLevel]
    ) -> SpamAnalysisResult:
        scores = self.aggregator.calculate(content_flags, behavioral_flags, user_flags)
        action, reason = self.policy.evaluate(
            scores.spam_score,
            scores.scam_score,
            level,
            content_flags,
            behavioral_flags,
            user_flags
        )
        return SpamAnalysisResult(
            is_spam=scores.spam_score > self.config.spam_thresholds.medium,
            is_scam=scores.scam_score > self.config.scam_thresholds.medium,
            spam_score=scores.spam_score,
            scam_score=scores.scam_score,
            confidence=scores.max_score,
            content_flags=content_flags,
            behavioral_flags=behavioral_flags,
            user_behavior_flags=user_flags,
            suggested_action=action,
            reason=reason
        )

    async def _run_io_branches(
        self,
        whisper: Whisper,
        reputation: Optional[ReputationSnapshot],
        timeout: float
    ) -> Tuple[List[BehavioralFlag], List[UserBehaviorFlag], Optional[ReputationSnapshot]]:
        """Run behavioral and user-trust analysis concurrently over one history fetch."""
        history_task = asyncio.ensure_future(self._fetch_history(whisper.author_id))
        behavioral_task = asyncio.ensure_future(self._behavioral_branch(history_task, whisper))
        user_task = asyncio.ensure_future(self._user_branch(history_task, whisper, reputation))
        tasks = (history_task, behavioral_task, user_task)

        try:
            done, pending = await asyncio.wait((behavioral_task, user_task), timeout=timeout)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            logger.warning(
                f"Analysis branch timed out after {timeout}s for {whisper.author_id}",
                extra={"moderation_event": "branch_timeout"}
            )
            task.cancel()
        if not history_task.done():
            history_task.cancel()
        # Let cancelled work unwind before returning
        await asyncio.gather(*pending, history_task, return_exceptions=True)

        behavioral_flags: List[BehavioralFlag] = []
        if behavioral_task in done and not behavioral_task.cancelled():
            behavioral_flags = behavioral_task.result()

        user_flags: List[UserBehaviorFlag] = []
        if user_task in done and not user_task.cancelled():
            user_flags, reputation = user_task.result()

        return behavioral_flags, user_flags, reputation

    async def _fetch_history(self, author_id: str) -> List[PostHistoryEntry]:
        if self.history_store is None:
            raise CollaboratorUnavailable("No history store configured")
        return list(await self.history_store.list_recent_posts(
            author_id, self.config.settings.history_limit
        ))

    async def _behavioral_branch(
        self,
        history_task: "asyncio.Future[List[PostHistoryEntry]]",
        whisper: Whisper
    ) -> List[BehavioralFlag]:
        try:
            history = await history_task
            return self.behavioral_analyzer.analyze(history, whisper)
        except Exception as e:
            logger.warning(
                f"Behavioral analysis degraded for {whisper.author_id}: {e}",
                extra={"moderation_event": "history_unavailable"}
            )
            return []

    async def _user_branch(
        self,
        history_task: "asyncio.Future[List[PostHistoryEntry]]",
        whisper: Whisper,
        reputation: Optional[ReputationSnapshot]
    ) -> Tuple[List[UserBehaviorFlag], Optional[ReputationSnapshot]]:
        try:
            if reputation is None:
                reputation = await self._fetch_reputation(whisper.author_id)
        except Exception as e:
            logger.warning(
                f"User trust analysis degraded for {whisper.author_id}: {e}",
                extra={"moderation_event": "reputation_unavailable"}
            )
            return [], None

        try:
            history = await history_task
            post_times: List[datetime] = [e.created_at for e in history]
            post_times.append(whisper.created_at)
        except Exception:
            # History failure is already reported by the behavioral branch
            post_times = []

        try:
            flags = self.user_trust_analyzer.analyze(
                reputation, post_times, now=whisper.created_at
            )
            flags.extend(await self.user_trust_analyzer.collect_signals(
                whisper.author_id, reputation
            ))
        except Exception as e:
            logger.warning(
                f"User trust analysis degraded for {whisper.author_id}: {e}",
                extra={"moderation_event": "user_trust_failed"}
            )
            return [], reputation

        return flags, reputation

    async def _fetch_reputation(self, user_id: str) -> ReputationSnapshot:
        if self.reputation_store is None:
            raise CollaboratorUnavailable("No reputation store configured")
        return await self.reputation_store.get_reputation(user_id)
