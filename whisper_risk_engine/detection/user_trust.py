"""User trust analysis from reputation snapshots and posting times."""

from typing import List, Optional, Protocol, Sequence
from datetime import datetime, timedelta, tzinfo, UTC
import logging

from ..collaborators import ReputationSnapshot, TrustLevel, as_utc
from .flags import Severity, UserBehaviorFlag, UserBehaviorFlagType

logger = logging.getLogger(__name__)


class SignalSource(Protocol):
    """
    Pluggable source of extra user-trust signals.

    Implementations may do I/O (IP geolocation, device fingerprint lookups).
    A source that raises is skipped; the other signals are unaffected.
    """
    name: str

    async def collect(
        self,
        user_id: str,
        reputation: Optional[ReputationSnapshot]
    ) -> List[UserBehaviorFlag]:
        ...


class GeographicSignalSource:
    """Geographic anomaly signals. No location data is wired in yet."""
    name = "geographic"

    async def collect(
        self,
        user_id: str,
        reputation: Optional[ReputationSnapshot]
    ) -> List[UserBehaviorFlag]:
        return []


class DeviceSignalSource:
    """Device fingerprint signals. No device data is wired in yet."""
    name = "device"

    async def collect(
        self,
        user_id: str,
        reputation: Optional[ReputationSnapshot]
    ) -> List[UserBehaviorFlag]:
        return []


def default_signal_sources() -> List[SignalSource]:
    return [GeographicSignalSource(), DeviceSignalSource()]


class UserTrustAnalyzer:
    """Flags new accounts, low reputation and suspicious posting times."""

    def __init__(
        self,
        new_account_hours: int = 24,
        new_account_posts: int = 5,
        low_reputation_score: float = 50.0,
        timing_window_hours: int = 24,
        burst_post_limit: int = 20,
        night_start_hour: int = 2,
        night_end_hour: int = 6,
        night_ratio: float = 0.7,
        local_tz: tzinfo = UTC,
        signal_sources: Optional[Sequence[SignalSource]] = None
    ):
        self.new_account_age = timedelta(hours=new_account_hours)
        self.new_account_posts = new_account_posts
        self.low_reputation_score = low_reputation_score
        self.timing_window = timedelta(hours=timing_window_hours)
        self.burst_post_limit = burst_post_limit
        self.night_hours = range(night_start_hour, night_end_hour)
        self.night_ratio = night_ratio
        self.local_tz = local_tz
        self.signal_sources = (
            list(signal_sources) if signal_sources is not None
            else default_signal_sources()
        )

    def analyze(
        self,
        reputation: ReputationSnapshot,
        post_times: Sequence[datetime] = (),
        now: Optional[datetime] = None
    ) -> List[UserBehaviorFlag]:
        """
        Derive trust flags from a reputation snapshot and recent post times.

        Args:
            reputation: Snapshot from the reputation service
            post_times: Creation times of the author's recent posts
            now: Reference time (default: current UTC time)

        Returns:
            List of UserBehaviorFlag
        """
        now = as_utc(now) or datetime.now(UTC)
        flags = []

        new_account = self.check_new_account(reputation, now)
        if new_account:
            flags.append(new_account)

        low_reputation = self.check_low_reputation(reputation)
        if low_reputation:
            flags.append(low_reputation)

        timing = self.check_timing(post_times, now)
        if timing:
            flags.append(timing)

        return flags

    def check_new_account(
        self,
        reputation: ReputationSnapshot,
        now: datetime
    ) -> Optional[UserBehaviorFlag]:
        """Few posts or a young account; both together raise confidence."""
        few_posts = reputation.total_whispers < self.new_account_posts
        account_age = (
            now - reputation.created_at if reputation.created_at else None
        )
        young = account_age is not None and account_age < self.new_account_age

        if not (few_posts or young):
            return None

        evidence = {'total_whispers': reputation.total_whispers}
        if account_age is not None:
            evidence['account_age_hours'] = round(account_age.total_seconds() / 3600, 2)

        return UserBehaviorFlag(
            type=UserBehaviorFlagType.NEW_ACCOUNT,
            severity=Severity.MEDIUM,
            confidence=0.8 if (few_posts and young) else 0.7,
            description="New account detected",
            evidence=evidence
        )

    def check_low_reputation(self, reputation: ReputationSnapshot) -> Optional[UserBehaviorFlag]:
        if reputation.level in (TrustLevel.FLAGGED, TrustLevel.BANNED):
            return UserBehaviorFlag(
                type=UserBehaviorFlagType.LOW_REPUTATION,
                severity=Severity.HIGH,
                confidence=0.9,
                description=f"User has {reputation.level.value} reputation level",
                evidence={'level': reputation.level.value, 'score': reputation.score}
            )

        if reputation.score < self.low_reputation_score:
            return UserBehaviorFlag(
                type=UserBehaviorFlagType.LOW_REPUTATION,
                severity=Severity.MEDIUM,
                confidence=0.6,
                description="User has low reputation score",
                evidence={'score': reputation.score}
            )

        return None

    def check_timing(
        self,
        post_times: Sequence[datetime],
        now: datetime
    ) -> Optional[UserBehaviorFlag]:
        """Posting bursts, or posting concentrated in the small hours."""
        window = [
            ts for ts in (as_utc(t) for t in post_times)
            if ts is not None and timedelta(0) <= now - ts <= self.timing_window
        ]
        if not window:
            return None

        if len(window) > self.burst_post_limit:
            return UserBehaviorFlag(
                type=UserBehaviorFlagType.SUSPICIOUS_TIMING,
                severity=Severity.HIGH,
                confidence=0.8,
                description=f"{len(window)} posts in the last 24 hours",
                evidence={'posts_in_window': len(window)}
            )

        night_posts = sum(
            1 for ts in window
            if ts.astimezone(self.local_tz).hour in self.night_hours
        )
        ratio = night_posts / len(window)
        if ratio > self.night_ratio:
            return UserBehaviorFlag(
                type=UserBehaviorFlagType.SUSPICIOUS_TIMING,
                severity=Severity.MEDIUM,
                confidence=0.6,
                description=(
                    f"Posting concentrated between {self.night_hours.start:02d}:00"
                    f" and {self.night_hours.stop:02d}:00"
                ),
                evidence={'posts_in_window': len(window), 'night_ratio': round(ratio, 3)}
            )

        return None

    async def collect_signals(
        self,
        user_id: str,
        reputation: Optional[ReputationSnapshot]
    ) -> List[UserBehaviorFlag]:
        """Gather flags from the pluggable signal sources, skipping any that fail."""
        flags = []
        for source in self.signal_sources:
            try:
                flags.extend(await source.collect(user_id, reputation))
            except Exception as e:
                logger.warning(
                    f"Signal source '{source.name}' failed for {user_id}: {e}",
                    extra={"moderation_event": "signal_source_failed"}
                )
        return flags
