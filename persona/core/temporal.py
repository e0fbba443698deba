# ═══════════════════════════════════════════════════════════════════════════════
# PART 1: TEMPORAL STATE & STAGE RESOLUTION
# ═══════════════════════════════════════════════════════════════════════════════


"""
Where a character is in its development: age, maturity and stage.

Stage is never stored independently of maturity. It is resolved from maturity
and the configured thresholds, so the same inputs always give the same stage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:
    from persona.core.growth import MaturityThresholds
    from persona.core.history import HistoryEvent

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Developmental stages, ordered."""
    INITIAL = "initial"
    GROWING = "growing"
    MATURE = "mature"
    TRANSCENDENT = "transcendent"


# Stage ordering for comparisons
STAGE_ORDER = [
    Stage.INITIAL,
    Stage.GROWING,
    Stage.MATURE,
    Stage.TRANSCENDENT,
]


@dataclass(frozen=True)
class TemporalState:
    """Age / maturity / stage snapshot. Only the evolution engine replaces it."""
    age: int = 0
    maturity: float = 0.0
    stage: Stage = Stage.INITIAL
    last_evolved_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "age": self.age,
            "maturity": self.maturity,
            "stage": self.stage.value,
            "last_evolved_at": (
                self.last_evolved_at.isoformat() if self.last_evolved_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TemporalState:
        last = data.get("last_evolved_at")
        if isinstance(last, str):
            last = datetime.fromisoformat(last)
        return cls(
            age=int(data.get("age", 0)),
            maturity=float(data.get("maturity", 0.0)),
            stage=Stage(data.get("stage", Stage.INITIAL.value)),
            last_evolved_at=last,
        )


def resolve_stage(maturity: float, thresholds: MaturityThresholds) -> Stage:
    """
    Map a maturity value to its stage.

    Lower bounds are inclusive:
        maturity < growing              -> INITIAL
        growing <= maturity < mature    -> GROWING
        mature <= maturity < transcend. -> MATURE
        maturity >= transcendent        -> TRANSCENDENT
    """
    if maturity >= thresholds.transcendent:
        return Stage.TRANSCENDENT
    if maturity >= thresholds.mature:
        return Stage.MATURE
    if maturity >= thresholds.growing:
        return Stage.GROWING
    return Stage.INITIAL


def check_stage_transition(
    previous_stage: Stage,
    new_maturity: float,
    thresholds: MaturityThresholds,
    now: datetime,
) -> Tuple[Optional[HistoryEvent], Stage]:
    """
    Resolve the stage for new_maturity and build a transition event if it moved.

    Direction is not special-cased: decay can cross a boundary backwards.

    Returns:
        (event or None, resolved stage)
    """
    from persona.core.history import stage_transition_event

    new_stage = resolve_stage(new_maturity, thresholds)
    if new_stage == previous_stage:
        return None, previous_stage

    direction = (
        "advanced"
        if STAGE_ORDER.index(new_stage) > STAGE_ORDER.index(previous_stage)
        else "regressed"
    )
    logger.info(
        "Stage %s %s -> %s at maturity %.4f",
        direction, previous_stage.value, new_stage.value, new_maturity,
    )
    return stage_transition_event(previous_stage, new_stage, now), new_stage
