"""
Read-only views of the surrounding application's data, and the store
interfaces the engine consumes them through.

The engine never writes through these interfaces. Store implementations
should raise ``CollaboratorUnavailable`` when they cannot serve a request;
the engine treats any exception from a store as a degraded signal.
"""

from typing import Dict, List, Optional, Protocol, Sequence
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum


class CollaboratorUnavailable(Exception):
    """Raised by a store that cannot serve a request right now."""
    pass


class TrustLevel(str, Enum):
    """Coarse reputation bucket maintained by the reputation service."""
    TRUSTED = "trusted"
    VERIFIED = "verified"
    STANDARD = "standard"
    FLAGGED = "flagged"
    BANNED = "banned"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _non_negative(value) -> float:
    try:
        return max(float(value or 0), 0.0)
    except (TypeError, ValueError):
        return 0.0


def _text(value) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class PostHistoryEntry:
    """Minimal view of one of the author's earlier posts."""
    id: str
    text: str
    created_at: datetime
    like_count: int = 0
    reply_count: int = 0
    duration_seconds: float = 0.0

    def __post_init__(self):
        # Malformed values from the store are normalised, not rejected
        object.__setattr__(self, 'text', _text(self.text))
        object.__setattr__(self, 'created_at', as_utc(self.created_at) or datetime.now(UTC))
        object.__setattr__(self, 'like_count', int(_non_negative(self.like_count)))
        object.__setattr__(self, 'reply_count', int(_non_negative(self.reply_count)))
        object.__setattr__(self, 'duration_seconds', _non_negative(self.duration_seconds))

    @property
    def engagement_rate(self) -> float:
        """(likes + replies) per second of audio; 0 when duration is unknown."""
        if self.duration_seconds <= 0:
            return 0.0
        return (self.like_count + self.reply_count) / self.duration_seconds


@dataclass(frozen=True)
class Whisper:
    """The post being analyzed."""
    text: str
    author_id: str
    created_at: Optional[datetime] = None
    like_count: int = 0
    reply_count: int = 0
    duration_seconds: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'text', _text(self.text))
        object.__setattr__(self, 'created_at', as_utc(self.created_at) or datetime.now(UTC))
        object.__setattr__(self, 'like_count', int(_non_negative(self.like_count)))
        object.__setattr__(self, 'reply_count', int(_non_negative(self.reply_count)))
        object.__setattr__(self, 'duration_seconds', _non_negative(self.duration_seconds))


@dataclass(frozen=True)
class ReputationSnapshot:
    """Point-in-time copy of a user's reputation record."""
    user_id: str
    score: float
    level: TrustLevel
    total_whispers: int
    created_at: datetime
    violation_history: Sequence[Dict] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'level', TrustLevel(self.level))
        object.__setattr__(self, 'created_at', as_utc(self.created_at))
        object.__setattr__(self, 'total_whispers', int(_non_negative(self.total_whispers)))
        object.__setattr__(self, 'violation_history', tuple(self.violation_history))


class HistoryStore(Protocol):
    """Lists an author's most recent posts, newest first."""

    async def list_recent_posts(self, author_id: str, limit: int) -> List[PostHistoryEntry]:
        ...


class ReputationStore(Protocol):
    """Returns the current reputation snapshot for a user."""

    async def get_reputation(self, user_id: str) -> ReputationSnapshot:
        ...


class InMemoryHistoryStore:
    """Dictionary-backed ``HistoryStore`` for embedding and tests."""

    def __init__(self, posts: Optional[Dict[str, List[PostHistoryEntry]]] = None):
        self._posts: Dict[str, List[PostHistoryEntry]] = {
            author: list(entries) for author, entries in (posts or {}).items()
        }

    def add(self, author_id: str, entry: PostHistoryEntry):
        self._posts.setdefault(author_id, []).append(entry)

    async def list_recent_posts(self, author_id: str, limit: int) -> List[PostHistoryEntry]:
        entries = sorted(
            self._posts.get(author_id, []),
            key=lambda e: e.created_at,
            reverse=True
        )
        return entries[:max(limit, 0)]


class InMemoryReputationStore:
    """Dictionary-backed ``ReputationStore`` for embedding and tests."""

    def __init__(self, snapshots: Optional[Dict[str, ReputationSnapshot]] = None):
        self._snapshots = dict(snapshots or {})

    def put(self, snapshot: ReputationSnapshot):
        self._snapshots[snapshot.user_id] = snapshot

    async def get_reputation(self, user_id: str) -> ReputationSnapshot:
        try:
            return self._snapshots[user_id]
        except KeyError:
            raise CollaboratorUnavailable(f"No reputation record for {user_id}") from None
