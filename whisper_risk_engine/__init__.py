"""
Whisper Risk Engine - multi-signal spam and scam risk scoring for transcribed voice posts.
"""

from .collaborators import (
    CollaboratorUnavailable,
    InMemoryHistoryStore,
    InMemoryReputationStore,
    PostHistoryEntry,
    ReputationSnapshot,
    TrustLevel,
    Whisper,
)
from .config import EngineConfig, load_config
from .engine import SpamAnalysisResult, SpamDetectionEngine
from .policy import SuggestedAction
from .violations import Violation, ViolationConverter, ViolationType

__version__ = '1.0.0'
__all__ = [
    'SpamDetectionEngine',
    'SpamAnalysisResult',
    'EngineConfig',
    'load_config',
    'Whisper',
    'PostHistoryEntry',
    'ReputationSnapshot',
    'TrustLevel',
    'SuggestedAction',
    'Violation',
    'ViolationType',
    'ViolationConverter',
    'CollaboratorUnavailable',
    'InMemoryHistoryStore',
    'InMemoryReputationStore',
]
