# ═══════════════════════════════════════════════════════════════════════════════
# PART 2: GROWTH CONFIGURATION & COGNITIVE GROWTH
# ═══════════════════════════════════════════════════════════════════════════════


"""
Tunable thresholds, weights and rates, plus the growth calculation they drive.

Growth is derived, not assigned: a character matures from what it knows, how
much it remembers and how strongly it currently feels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import numpy as np

from persona.core.errors import ConfigurationError

if TYPE_CHECKING:
    from persona.core.cognitive import KnowledgeItem
    from persona.core.memory import MemoryEntry

logger = logging.getLogger(__name__)

WEIGHT_EPSILON = 1e-6

# Confidence assumed for knowledge items that don't state one
DEFAULT_KNOWLEDGE_CONFIDENCE = 0.75

# Memory volume at which the memory score saturates
MEMORY_SATURATION_COUNT = 20


@dataclass(frozen=True)
class MaturityThresholds:
    """Lower bounds of the growing / mature / transcendent stages."""
    growing: float = 0.25
    mature: float = 0.75
    transcendent: float = 0.95

    def __post_init__(self) -> None:
        for name in ("growing", "mature", "transcendent"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"threshold {name} must be a float in [0, 1], got {value!r}"
                )
        if not self.growing < self.mature < self.transcendent:
            raise ConfigurationError(
                "maturity thresholds must be strictly increasing: "
                f"growing={self.growing}, mature={self.mature}, "
                f"transcendent={self.transcendent}"
            )

    def to_dict(self) -> Dict[str, float]:
        return {
            "growing": self.growing,
            "mature": self.mature,
            "transcendent": self.transcendent,
        }


@dataclass(frozen=True)
class GrowthConfig:
    """
    Configuration for maturity growth and decay.

    Immutable once constructed; invalid values raise ConfigurationError
    instead of being clamped.

    growth_rate is validated and carried with the character but the growth
    calculation does not scale by it: growth amounts are applied as computed.
    """
    maturity_thresholds: MaturityThresholds = field(default_factory=MaturityThresholds)

    # Factor weights (must sum to 1.0)
    knowledge_weight: float = 0.4
    memory_weight: float = 0.3
    emotional_weight: float = 0.3

    growth_rate: float = 0.1            # (0, 1]
    decay_rate: float = 0.05            # [0, 1), maturity lost per apply_decay

    # False = equal 1/3 split across factors, True = use the weights above
    weighted_growth: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.maturity_thresholds, MaturityThresholds):
            raise ConfigurationError("maturity_thresholds must be MaturityThresholds")

        weights = (self.knowledge_weight, self.memory_weight, self.emotional_weight)
        if any(not isinstance(w, (int, float)) or w < 0 for w in weights):
            raise ConfigurationError(f"weights must be non-negative numbers, got {weights}")
        if abs(sum(weights) - 1.0) >= WEIGHT_EPSILON:
            raise ConfigurationError(f"weights must sum to 1.0, got {sum(weights)}")

        if not 0.0 < self.growth_rate <= 1.0:
            raise ConfigurationError(f"growth_rate must be in (0, 1], got {self.growth_rate}")
        if not 0.0 <= self.decay_rate < 1.0:
            raise ConfigurationError(f"decay_rate must be in [0, 1), got {self.decay_rate}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maturity_thresholds": self.maturity_thresholds.to_dict(),
            "knowledge_weight": self.knowledge_weight,
            "memory_weight": self.memory_weight,
            "emotional_weight": self.emotional_weight,
            "growth_rate": self.growth_rate,
            "decay_rate": self.decay_rate,
            "weighted_growth": self.weighted_growth,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GrowthConfig:
        data = dict(data)
        thresholds = data.pop("maturity_thresholds", None)
        if isinstance(thresholds, dict):
            thresholds = MaturityThresholds(**thresholds)
        elif thresholds is None:
            thresholds = MaturityThresholds()
        return cls(maturity_thresholds=thresholds, **data)


DEFAULT_GROWTH_CONFIG = GrowthConfig()


@dataclass(frozen=True)
class FactorBreakdown:
    """Each factor's literal contribution to the growth amount."""
    knowledge: float
    memory: float
    emotional: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "knowledge": self.knowledge,
            "memory": self.memory,
            "emotional": self.emotional,
        }


@dataclass(frozen=True)
class GrowthResult:
    amount: float
    factors: FactorBreakdown


# ── Factor scores ────────────────────────────────────────────────────────────


def knowledge_score(knowledge: Sequence[KnowledgeItem]) -> float:
    """Mean confidence across knowledge items, 0.0 when there are none."""
    if not knowledge:
        return 0.0
    confidences = np.array([
        DEFAULT_KNOWLEDGE_CONFIDENCE if k.confidence is None else k.confidence
        for k in knowledge
    ], dtype=float)
    return float(np.mean(confidences))


def memory_score(entries: Sequence[MemoryEntry]) -> float:
    """Saturating linear function of memory volume (not importance)."""
    return min(1.0, len(entries) / MEMORY_SATURATION_COUNT)


def calculate_growth(
    knowledge: Sequence[KnowledgeItem],
    memory_entries: Sequence[MemoryEntry],
    emotional_intensity: float,
    config: Optional[GrowthConfig] = None,
) -> GrowthResult:
    """
    Derive a growth amount from knowledge, memory volume and emotion.

    With the default (unweighted) config the amount is the plain mean of the
    three scores and each factor reports score / 3.

    Args:
        knowledge: Knowledge items (confidence defaults to 0.75).
        memory_entries: Current memory entries.
        emotional_intensity: 0-1.
        config: Growth configuration; only weighted_growth and the weights
            are read.

    Returns:
        GrowthResult with amount and per-factor breakdown.
    """
    config = config or DEFAULT_GROWTH_CONFIG

    scores = np.array([
        knowledge_score(knowledge),
        memory_score(memory_entries),
        float(emotional_intensity),
    ])

    if config.weighted_growth:
        weights = np.array([
            config.knowledge_weight,
            config.memory_weight,
            config.emotional_weight,
        ])
    else:
        weights = np.full(3, 1.0 / 3.0)

    contributions = scores * weights
    amount = float(np.sum(contributions))

    logger.debug(
        "Growth scores k=%.4f m=%.4f e=%.4f -> %.4f",
        scores[0], scores[1], scores[2], amount,
    )

    return GrowthResult(
        amount=amount,
        factors=FactorBreakdown(
            knowledge=float(contributions[0]),
            memory=float(contributions[1]),
            emotional=float(contributions[2]),
        ),
    )
