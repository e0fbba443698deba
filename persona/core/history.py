# ═══════════════════════════════════════════════════════════════════════════════
# PART 4: HISTORY LOG
# ═══════════════════════════════════════════════════════════════════════════════


"""
Append-only audit record of every temporal state change.

Each event carries a typed payload, one variant per event type, instead of a
free-form metadata map. Serialized events expose the payload as `metadata`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from persona.core.growth import FactorBreakdown
from persona.core.temporal import Stage


class EventType(Enum):
    AGE_INCREMENT = "age_increment"
    MATURITY_INCREASE = "maturity_increase"
    MATURITY_DECAY = "maturity_decay"
    STAGE_TRANSITION = "stage_transition"
    COGNITIVE_GROWTH = "cognitive_growth"


# ── Payload variants ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AgeIncrement:
    amount: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount}


@dataclass(frozen=True)
class MaturityIncrease:
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount}


@dataclass(frozen=True)
class MaturityDecay:
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount}


@dataclass(frozen=True)
class StageTransition:
    from_stage: Stage
    to_stage: Stage

    def to_dict(self) -> Dict[str, Any]:
        return {"from_stage": self.from_stage.value, "to_stage": self.to_stage.value}


@dataclass(frozen=True)
class CognitiveGrowth:
    amount: float
    factor_weights: FactorBreakdown

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "factor_weights": self.factor_weights.to_dict()}


EventPayload = Union[AgeIncrement, MaturityIncrease, MaturityDecay, StageTransition, CognitiveGrowth]

_PAYLOAD_TYPES = {
    EventType.AGE_INCREMENT: AgeIncrement,
    EventType.MATURITY_INCREASE: MaturityIncrease,
    EventType.MATURITY_DECAY: MaturityDecay,
    EventType.STAGE_TRANSITION: StageTransition,
    EventType.COGNITIVE_GROWTH: CognitiveGrowth,
}


def _payload_from_dict(event_type: EventType, metadata: Dict[str, Any]) -> EventPayload:
    if event_type == EventType.AGE_INCREMENT:
        return AgeIncrement(amount=int(metadata["amount"]))
    if event_type == EventType.MATURITY_INCREASE:
        return MaturityIncrease(amount=float(metadata["amount"]))
    if event_type == EventType.MATURITY_DECAY:
        return MaturityDecay(amount=float(metadata["amount"]))
    if event_type == EventType.STAGE_TRANSITION:
        return StageTransition(
            from_stage=Stage(metadata["from_stage"]),
            to_stage=Stage(metadata["to_stage"]),
        )
    weights = metadata["factor_weights"]
    return CognitiveGrowth(
        amount=float(metadata["amount"]),
        factor_weights=FactorBreakdown(
            knowledge=float(weights["knowledge"]),
            memory=float(weights["memory"]),
            emotional=float(weights["emotional"]),
        ),
    )


# ── Events ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HistoryEvent:
    """A single recorded state change."""
    event_type: EventType
    description: str
    timestamp: datetime
    previous_state: Mapping[str, Any]
    new_state: Mapping[str, Any]
    payload: EventPayload

    def __post_init__(self) -> None:
        # Recorded snapshots are read-only views over private copies
        object.__setattr__(self, "previous_state", MappingProxyType(dict(self.previous_state)))
        object.__setattr__(self, "new_state", MappingProxyType(dict(self.new_state)))

        expected = _PAYLOAD_TYPES[self.event_type]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.event_type.value} event needs {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.payload.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
            "previous_state": dict(self.previous_state),
            "new_state": dict(self.new_state),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> HistoryEvent:
        event_type = EventType(data["event_type"])
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            event_type=event_type,
            description=data["description"],
            timestamp=timestamp,
            previous_state=dict(data.get("previous_state") or {}),
            new_state=dict(data.get("new_state") or {}),
            payload=_payload_from_dict(event_type, data.get("metadata") or {}),
        )


@dataclass(frozen=True)
class HistoryLog:
    """Append-only sequence of events. append() returns a new log."""
    events: Tuple[HistoryEvent, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[HistoryEvent]:
        return iter(self.events)

    def __getitem__(self, index: int) -> HistoryEvent:
        return self.events[index]

    def append(self, *events: HistoryEvent) -> HistoryLog:
        return HistoryLog(events=self.events + tuple(events))

    def of_type(self, event_type: EventType) -> List[HistoryEvent]:
        return [e for e in self.events if e.event_type == event_type]

    @property
    def last(self) -> Optional[HistoryEvent]:
        return self.events[-1] if self.events else None

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.events]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]]) -> HistoryLog:
        return cls(events=tuple(HistoryEvent.from_dict(e) for e in data))


# ── Event builders ───────────────────────────────────────────────────────────


def age_increment_event(old_age: int, new_age: int, now: datetime) -> HistoryEvent:
    return HistoryEvent(
        event_type=EventType.AGE_INCREMENT,
        description=f"Character aged from {old_age} to {new_age}",
        timestamp=now,
        previous_state={"age": old_age},
        new_state={"age": new_age},
        payload=AgeIncrement(amount=new_age - old_age),
    )


def maturity_increase_event(
    old: float, new: float, amount: float, now: datetime
) -> HistoryEvent:
    return HistoryEvent(
        event_type=EventType.MATURITY_INCREASE,
        description=f"Character maturity increased from {old} to {new}",
        timestamp=now,
        previous_state={"maturity": old},
        new_state={"maturity": new},
        payload=MaturityIncrease(amount=float(amount)),
    )


def maturity_decay_event(
    old: float, new: float, amount: float, now: datetime
) -> HistoryEvent:
    return HistoryEvent(
        event_type=EventType.MATURITY_DECAY,
        description=f"Character maturity decayed from {old} to {new}",
        timestamp=now,
        previous_state={"maturity": old},
        new_state={"maturity": new},
        payload=MaturityDecay(amount=float(amount)),
    )


def cognitive_growth_event(
    old: float, new: float, amount: float, factors: FactorBreakdown, now: datetime
) -> HistoryEvent:
    return HistoryEvent(
        event_type=EventType.COGNITIVE_GROWTH,
        description="Character maturity increased through cognitive growth",
        timestamp=now,
        previous_state={"maturity": old},
        new_state={"maturity": new},
        payload=CognitiveGrowth(amount=float(amount), factor_weights=factors),
    )


def stage_transition_event(
    from_stage: Stage, to_stage: Stage, now: datetime
) -> HistoryEvent:
    return HistoryEvent(
        event_type=EventType.STAGE_TRANSITION,
        description=f"Character evolved from {from_stage.value} to {to_stage.value}",
        timestamp=now,
        previous_state={"stage": from_stage.value},
        new_state={"stage": to_stage.value},
        payload=StageTransition(from_stage=from_stage, to_stage=to_stage),
    )
