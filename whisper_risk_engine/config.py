"""
Weight tables, risk thresholds and analyzer settings for the risk engine.

Every tunable number the analyzers use lives here as a named structure so
weights can be tested and tuned independently of the scanning logic.
"""

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta, timezone, tzinfo
from typing import Any, Dict, Optional

from .detection.flags import (
    BehavioralFlagType,
    ContentFlagType,
    UserBehaviorFlagType,
)

logger = logging.getLogger(__name__)


def _check_unit(name: str, value: float):
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")


@dataclass(frozen=True)
class RiskThresholds:
    """Score bands for one risk axis."""
    low: float
    medium: float
    high: float
    critical: float

    def __post_init__(self):
        values = [self.low, self.medium, self.high, self.critical]
        for name, value in zip(("low", "medium", "high", "critical"), values):
            _check_unit(f"Threshold '{name}'", value)
        if values != sorted(values):
            raise ValueError(
                f"Thresholds must be non-decreasing, got {values}"
            )


SPAM_THRESHOLDS = RiskThresholds(low=0.3, medium=0.5, high=0.7, critical=0.9)
SCAM_THRESHOLDS = RiskThresholds(low=0.4, medium=0.6, high=0.8, critical=0.95)


def _content_weights() -> Dict[ContentFlagType, float]:
    return {
        ContentFlagType.SUSPICIOUS_PATTERNS: 0.25,
        ContentFlagType.CLICKBAIT: 0.2,
        ContentFlagType.MISLEADING_INFO: 0.2,
        ContentFlagType.FAKE_URGENCY: 0.15,
        ContentFlagType.PHISHING_ATTEMPT: 0.2,
    }


def _behavioral_weights() -> Dict[BehavioralFlagType, float]:
    return {
        BehavioralFlagType.REPETITIVE_POSTING: 0.3,
        BehavioralFlagType.RAPID_POSTING: 0.25,
        BehavioralFlagType.SIMILAR_CONTENT: 0.2,
        BehavioralFlagType.BOT_LIKE_BEHAVIOR: 0.15,
        BehavioralFlagType.ENGAGEMENT_FARMING: 0.1,
    }


def _user_weights() -> Dict[UserBehaviorFlagType, float]:
    return {
        UserBehaviorFlagType.NEW_ACCOUNT: 0.2,
        UserBehaviorFlagType.LOW_REPUTATION: 0.3,
        UserBehaviorFlagType.SUSPICIOUS_TIMING: 0.2,
        UserBehaviorFlagType.GEOGRAPHIC_ANOMALY: 0.15,
        UserBehaviorFlagType.DEVICE_PATTERN: 0.15,
    }


def _scam_content_weights() -> Dict[ContentFlagType, float]:
    return {
        flag_type: (
            0.4 if flag_type in (
                ContentFlagType.PHISHING_ATTEMPT,
                ContentFlagType.SUSPICIOUS_PATTERNS,
            ) else 0.2
        )
        for flag_type in ContentFlagType
    }


def _scam_user_weights() -> Dict[UserBehaviorFlagType, float]:
    return {
        flag_type: (
            0.3 if flag_type in (
                UserBehaviorFlagType.NEW_ACCOUNT,
                UserBehaviorFlagType.LOW_REPUTATION,
            ) else 0.1
        )
        for flag_type in UserBehaviorFlagType
    }


@dataclass(frozen=True)
class ScoringWeights:
    """
    Per-flag-type weights for the two risk axes.

    ``content``, ``behavioral`` and ``user`` feed the spam score.
    ``scam_content`` and ``scam_user`` feed the scam score; behavioral
    flags never contribute to it.
    """
    content: Dict[ContentFlagType, float] = field(default_factory=_content_weights)
    behavioral: Dict[BehavioralFlagType, float] = field(default_factory=_behavioral_weights)
    user: Dict[UserBehaviorFlagType, float] = field(default_factory=_user_weights)
    scam_content: Dict[ContentFlagType, float] = field(default_factory=_scam_content_weights)
    scam_user: Dict[UserBehaviorFlagType, float] = field(default_factory=_scam_user_weights)

    def __post_init__(self):
        for table in fields(self):
            for flag_type, weight in getattr(self, table.name).items():
                _check_unit(f"Weight {table.name}[{flag_type.value}]", weight)


@dataclass(frozen=True)
class AnalyzerSettings:
    """Windows and cut-offs used by the content, behavioral and trust analyzers."""
    flag_threshold: float = 0.3
    history_limit: int = 20
    repetition_window: int = 5
    similarity_window: int = 10
    similarity_match: float = 0.7
    velocity_window: int = 10
    velocity_minutes: int = 5
    bot_min_posts: int = 3
    new_account_hours: int = 24
    new_account_posts: int = 5
    low_reputation_score: float = 50.0
    timing_window_hours: int = 24
    burst_post_limit: int = 20
    night_start_hour: int = 2
    night_end_hour: int = 6
    night_ratio: float = 0.7
    analysis_timeout: float = 5.0
    # Local time offset from UTC used by hour-of-day checks
    local_utc_offset_hours: float = 0.0

    def __post_init__(self):
        if not -14.0 <= self.local_utc_offset_hours <= 14.0:
            raise ValueError(
                f"local_utc_offset_hours must be between -14 and 14, got {self.local_utc_offset_hours}"
            )

    @property
    def local_tz(self) -> tzinfo:
        return timezone(timedelta(hours=self.local_utc_offset_hours))


@dataclass(frozen=True)
class EngineConfig:
    """Complete configuration for a ``SpamDetectionEngine``."""
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    spam_thresholds: RiskThresholds = SPAM_THRESHOLDS
    scam_thresholds: RiskThresholds = SCAM_THRESHOLDS
    settings: AnalyzerSettings = field(default_factory=AnalyzerSettings)

    def update(self, overrides: Dict[str, Any]) -> "EngineConfig":
        """
        Return a copy of this config with overrides applied.

        Args:
            overrides: Mapping shaped like the JSON config file, e.g.
                ``{"weights": {"content": {"clickbait": 0.3}},
                "settings": {"history_limit": 10}}``

        Raises:
            ValueError: On unknown sections, unknown keys or invalid values
        """
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")

        changes = {}
        if "weights" in overrides:
            changes["weights"] = _merge_weights(self.weights, overrides["weights"])
        for name in ("spam_thresholds", "scam_thresholds"):
            if name in overrides:
                changes[name] = _merge_dataclass(getattr(self, name), overrides[name], name)
        if "settings" in overrides:
            changes["settings"] = _merge_dataclass(self.settings, overrides["settings"], "settings")
        return replace(self, **changes)


def _merge_dataclass(current, values: Dict[str, Any], section: str):
    known = {f.name for f in fields(current)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {sorted(unknown)}")
    return replace(current, **values)


_WEIGHT_KEY_TYPES = {
    "content": ContentFlagType,
    "behavioral": BehavioralFlagType,
    "user": UserBehaviorFlagType,
    "scam_content": ContentFlagType,
    "scam_user": UserBehaviorFlagType,
}


def _merge_weights(current: ScoringWeights, values: Dict[str, Dict[str, float]]) -> ScoringWeights:
    unknown = set(values) - set(_WEIGHT_KEY_TYPES)
    if unknown:
        raise ValueError(f"Unknown weight tables: {sorted(unknown)}")

    changes = {}
    for table, table_values in values.items():
        key_type = _WEIGHT_KEY_TYPES[table]
        merged = dict(getattr(current, table))
        for key, weight in table_values.items():
            try:
                flag_type = key_type(key)
            except ValueError:
                raise ValueError(f"Unknown flag type '{key}' in weights.{table}") from None
            try:
                merged[flag_type] = float(weight)
            except (TypeError, ValueError):
                raise ValueError(
                    f"Weight weights.{table}[{key}] must be a number, got {weight!r}"
                ) from None
        changes[table] = merged
    return replace(current, **changes)


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration from a JSON file of overrides, or use defaults.

    A missing file or malformed JSON falls back to the defaults; invalid
    values in well-formed JSON raise ``ValueError``.
    """
    config = EngineConfig()
    if not config_path or not os.path.exists(config_path):
        return config

    try:
        with open(config_path, 'r') as f:
            overrides = json.load(f)
    except json.JSONDecodeError:
        logger.warning(
            f"Invalid config file at {config_path}. Using defaults.",
            extra={"moderation_event": "config_invalid"}
        )
        return config

    config = config.update(overrides)
    logger.info(f"Loaded engine config from {config_path}")
    return config
