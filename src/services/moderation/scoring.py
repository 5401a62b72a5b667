"""
Moderation Scoring Strategies
=============================

Two ways of reducing a violation list to one confidence.

DESIGN:
    SumClampStrategy backs the automod preview: category scores add up and
    the total is clamped to 1.0, so several weak signals can together
    cross the 0.6 spam line.

    MaxConfidenceStrategy backs live moderation: the strongest single
    violation decides, compared against the guild's threshold.

    They intentionally disagree on some inputs and are kept separate.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .constants import AUTOMOD_SPAM_THRESHOLD, DEFAULT_TOXICITY_THRESHOLD
from .detectors import AUTOMOD_DETECTORS, run_detector
from .models import AutomodResult, ModerationSettings, Violation


class ScoringStrategy(ABC):
    """Reduce violations to a confidence and classify it."""

    name: str = "base"

    @abstractmethod
    def score(self, violations: Sequence[Violation]) -> float:
        """Combined confidence in [0, 1]."""

    def is_violation(self, score: float, threshold: float) -> bool:
        return score >= threshold


class SumClampStrategy(ScoringStrategy):
    """Sum of confidences clamped to 1.0."""

    name = "sum_clamp"

    def score(self, violations: Sequence[Violation]) -> float:
        return min(round(sum(v.confidence for v in violations), 4), 1.0)


class MaxConfidenceStrategy(ScoringStrategy):
    """Highest single confidence."""

    name = "max_confidence"

    def score(self, violations: Sequence[Violation]) -> float:
        return max((v.confidence for v in violations), default=0.0)


def threshold_for(settings: ModerationSettings) -> float:
    """Live moderation threshold as a fraction. A zero setting means default."""
    return (settings.toxicity_threshold or DEFAULT_TOXICITY_THRESHOLD) / 100


def collect_automod_violations(text: str) -> List[Violation]:
    violations: List[Violation] = []
    for name, detector in AUTOMOD_DETECTORS:
        violations.extend(run_detector(name, detector, text))
    return violations


def detect_spam(text: str, strategy: Optional[ScoringStrategy] = None) -> AutomodResult:
    """
    Score a message the way the automod test command does.

    Args:
        text: Message content.
        strategy: Scoring strategy; sum-and-clamp by default.

    Returns:
        AutomodResult with the clamped confidence and one reason per hit.
    """
    strategy = strategy or SumClampStrategy()
    violations = collect_automod_violations(text)
    confidence = strategy.score(violations)
    return AutomodResult(
        is_spam=strategy.is_violation(confidence, AUTOMOD_SPAM_THRESHOLD),
        confidence=confidence,
        reasons=[v.reason for v in violations],
    )


__all__ = [
    "ScoringStrategy",
    "SumClampStrategy",
    "MaxConfidenceStrategy",
    "threshold_for",
    "collect_automod_violations",
    "detect_spam",
]
