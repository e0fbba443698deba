# ═══════════════════════════════════════════════════════════════════════════════
# PART 5: CHARACTER
# ═══════════════════════════════════════════════════════════════════════════════


"""
The character value: identity, personality, knowledge, memory and the
evolution sections, wrapped with id / version / timestamps.

Characters are immutable. New versions are produced by persona.core.versioning
(updates) and persona.core.evolution (temporal changes), never by assignment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from persona.core.cognitive import EmotionalState, KnowledgeItem
from persona.core.growth import DEFAULT_GROWTH_CONFIG, GrowthConfig
from persona.core.history import HistoryLog
from persona.core.memory import MemoryStore
from persona.core.temporal import Stage, TemporalState


VOICE_TONES = (
    "formal",
    "casual",
    "playful",
    "serious",
    "warm",
    "cold",
    "professional",
    "friendly",
)

VOICE_VOCABULARIES = ("simple", "technical", "academic", "conversational", "poetic")


def _freeze(value: Any) -> Any:
    """Read-only copy: dicts become mapping proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class Identity:
    """Who the character is. age may be a number or a description ("ancient")."""
    age: Union[int, str, None] = None
    role: Optional[str] = None
    background: Optional[str] = None
    facts: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "age": self.age,
            "role": self.role,
            "background": self.background,
            "facts": list(self.facts),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Identity:
        return cls(
            age=data.get("age"),
            role=data.get("role"),
            background=data.get("background"),
            facts=tuple(data.get("facts", ())),
        )


@dataclass(frozen=True)
class Trait:
    name: str
    intensity: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "intensity": self.intensity}


@dataclass(frozen=True)
class Personality:
    """How the character behaves."""
    traits: Tuple[Trait, ...] = ()
    values: Tuple[str, ...] = ()
    quirks: Tuple[str, ...] = ()

    def trait(self, name: str) -> Optional[Trait]:
        for t in self.traits:
            if t.name == name:
                return t
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "traits": [t.to_dict() for t in self.traits],
            "values": list(self.values),
            "quirks": list(self.quirks),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Personality:
        return cls(
            traits=tuple(
                Trait(name=t["name"], intensity=float(t.get("intensity", 0.5)))
                for t in data.get("traits", ())
            ),
            values=tuple(data.get("values", ())),
            quirks=tuple(data.get("quirks", ())),
        )


@dataclass(frozen=True)
class Voice:
    """How the character communicates."""
    tone: str = "casual"
    style: Optional[str] = None
    vocabulary: Optional[str] = None
    expressions: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tone": self.tone,
            "style": self.style,
            "vocabulary": self.vocabulary,
            "expressions": list(self.expressions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Voice:
        return cls(
            tone=data.get("tone") or "casual",
            style=data.get("style"),
            vocabulary=data.get("vocabulary"),
            expressions=tuple(data.get("expressions") or ()),
        )


@dataclass(frozen=True)
class Character:
    """A versioned character snapshot."""
    # Version wrapper
    id: str
    version: int
    created_at: datetime
    updated_at: datetime

    # Descriptive sections
    name: Optional[str] = None
    description: Optional[str] = None
    identity: Identity = field(default_factory=Identity)
    personality: Personality = field(default_factory=Personality)
    voice: Optional[Voice] = None
    knowledge: Tuple[KnowledgeItem, ...] = ()
    instructions: Tuple[str, ...] = ()
    emotional: Optional[EmotionalState] = None

    # Evolving sections
    memory: MemoryStore = field(default_factory=MemoryStore)
    temporal_state: TemporalState = field(default_factory=TemporalState)
    growth_config: Optional[GrowthConfig] = None
    history: HistoryLog = field(default_factory=HistoryLog)

    extensions: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extensions", _freeze(self.extensions))

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def stage(self) -> Stage:
        return self.temporal_state.stage

    @property
    def maturity(self) -> float:
        return self.temporal_state.maturity

    @property
    def emotional_intensity(self) -> float:
        return self.emotional.intensity if self.emotional is not None else 0.0

    def effective_growth_config(self, fallback: Optional[GrowthConfig] = None) -> GrowthConfig:
        """The character's own config if it carries one, else fallback."""
        if self.growth_config is not None:
            return self.growth_config
        return fallback or DEFAULT_GROWTH_CONFIG

    # ── Serialization ────────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict. Feeds deep-merge updates and persistence."""
        return {
            "id": self.id,
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "name": self.name,
            "description": self.description,
            "identity": self.identity.to_dict(),
            "personality": self.personality.to_dict(),
            "voice": self.voice.to_dict() if self.voice else None,
            "knowledge": [k.to_dict() for k in self.knowledge],
            "instructions": list(self.instructions),
            "emotional": self.emotional.to_dict() if self.emotional else None,
            "memory": self.memory.to_dict(),
            "temporal_state": self.temporal_state.to_dict(),
            "growth_config": self.growth_config.to_dict() if self.growth_config else None,
            "history": self.history.to_list(),
            "extensions": _thaw(self.extensions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Character:
        """
        Build a Character from an already-validated dict.

        Use persona.core.schema.validate for untrusted input.
        """
        created_at = data["created_at"]
        updated_at = data["updated_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        if isinstance(updated_at, str):
            updated_at = datetime.fromisoformat(updated_at)

        voice = data.get("voice")
        emotional = data.get("emotional")
        growth_config = data.get("growth_config")

        return cls(
            id=data["id"],
            version=int(data["version"]),
            created_at=created_at,
            updated_at=updated_at,
            name=data.get("name"),
            description=data.get("description"),
            identity=Identity.from_dict(data.get("identity") or {}),
            personality=Personality.from_dict(data.get("personality") or {}),
            voice=Voice.from_dict(voice) if voice else None,
            knowledge=tuple(KnowledgeItem.from_dict(k) for k in data.get("knowledge", ())),
            instructions=tuple(data.get("instructions", ())),
            emotional=EmotionalState.from_dict(emotional) if emotional else None,
            memory=MemoryStore.from_dict(data.get("memory") or {}),
            temporal_state=TemporalState.from_dict(data.get("temporal_state") or {}),
            growth_config=GrowthConfig.from_dict(growth_config) if growth_config else None,
            history=HistoryLog.from_list(data.get("history") or []),
            extensions=data.get("extensions") or {},
        )
