# ═══════════════════════════════════════════════════════════════════════════════
# PART 6: SCHEMA VALIDATION
# ═══════════════════════════════════════════════════════════════════════════════


"""
Structural validation of raw character data.

Every accepted state, whether created, updated or evolved, passes through
validate(). Field constraints live on the pydantic models below; cross-field
invariants (stage vs maturity, memory capacity, growth config) are model
validators. Failures surface as persona ValidationError with one entry per
problem.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

from persona.core.character import VOICE_TONES, VOICE_VOCABULARIES, Character
from persona.core.cognitive import VALID_MOODS
from persona.core.errors import ValidationError
from persona.core.growth import DEFAULT_GROWTH_CONFIG, GrowthConfig
from persona.core.temporal import resolve_stage

Unit = Annotated[float, Field(ge=0.0, le=1.0)]
StageName = Literal["initial", "growing", "mature", "transcendent"]
Mood = Literal[VALID_MOODS]  # type: ignore[valid-type]
Tone = Literal[VOICE_TONES]  # type: ignore[valid-type]
Vocabulary = Literal[VOICE_VOCABULARIES]  # type: ignore[valid-type]

# Caps on list sections
MAX_PERSONALITY_ITEMS = 10
MAX_EXPRESSIONS = 20


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ── Descriptive sections ─────────────────────────────────────────────────────


class IdentityModel(_Model):
    age: Union[StrictInt, str, None] = None
    role: Optional[str] = Field(default=None, max_length=200)
    background: Optional[str] = Field(default=None, max_length=2000)
    facts: List[str] = Field(default_factory=list)

    @field_validator("age")
    @classmethod
    def _age_not_negative(cls, v: Any) -> Any:
        if isinstance(v, int) and v < 0:
            raise ValueError("age must be >= 0")
        return v


class TraitModel(_Model):
    name: str = Field(min_length=1)
    intensity: Unit = 0.5


class PersonalityModel(_Model):
    traits: List[TraitModel] = Field(default_factory=list, max_length=MAX_PERSONALITY_ITEMS)
    values: List[str] = Field(default_factory=list, max_length=MAX_PERSONALITY_ITEMS)
    quirks: List[str] = Field(default_factory=list, max_length=MAX_PERSONALITY_ITEMS)

    @field_validator("traits", mode="before")
    @classmethod
    def _string_traits(cls, v: Any) -> Any:
        # "curious" is shorthand for {"name": "curious"}
        if isinstance(v, list):
            return [{"name": t} if isinstance(t, str) else t for t in v]
        return v


class VoiceModel(_Model):
    tone: Tone = "casual"
    style: Optional[str] = Field(default=None, max_length=500)
    vocabulary: Optional[Vocabulary] = None
    expressions: List[str] = Field(default_factory=list, max_length=MAX_EXPRESSIONS)


class KnowledgeItemModel(_Model):
    content: str = Field(min_length=1)
    category: Optional[str] = None
    importance: Unit = 0.5
    confidence: Optional[Unit] = None
    learned_at: Optional[datetime] = None


class EmotionalModel(_Model):
    mood: Mood
    intensity: Unit = 0.5
    secondary_moods: List[Mood] = Field(default_factory=list)
    last_changed_at: Optional[datetime] = None


# ── Memory ───────────────────────────────────────────────────────────────────


class MemoryEntryModel(_Model):
    content: str = Field(min_length=1)
    importance: Unit = 0.5
    decay_rate: Unit = 0.1
    category: Optional[str] = None
    timestamp: Optional[datetime] = None


class MemoryModel(_Model):
    entries: List[MemoryEntryModel] = Field(default_factory=list)
    capacity: int = Field(default=100, gt=0)

    @model_validator(mode="after")
    def _within_capacity(self) -> MemoryModel:
        if len(self.entries) > self.capacity:
            raise ValueError(
                f"{len(self.entries)} entries exceed capacity {self.capacity}"
            )
        return self


# ── Evolution ────────────────────────────────────────────────────────────────


class TemporalStateModel(_Model):
    age: int = Field(default=0, ge=0)
    maturity: Unit = 0.0
    stage: StageName = "initial"
    last_evolved_at: Optional[datetime] = None


class ThresholdsModel(_Model):
    growing: Unit = 0.25
    mature: Unit = 0.75
    transcendent: Unit = 0.95


class GrowthConfigModel(_Model):
    maturity_thresholds: ThresholdsModel = Field(default_factory=ThresholdsModel)
    knowledge_weight: float = 0.4
    memory_weight: float = 0.3
    emotional_weight: float = 0.3
    growth_rate: float = 0.1
    decay_rate: float = 0.05
    weighted_growth: bool = False

    @model_validator(mode="after")
    def _valid_config(self) -> GrowthConfigModel:
        # ConfigurationError is a ValueError, reported as a field error
        self.to_config()
        return self

    def to_config(self) -> GrowthConfig:
        return GrowthConfig.from_dict(self.model_dump())


class AgeSnapshot(_Model):
    age: int


class MaturitySnapshot(_Model):
    maturity: Unit


class StageSnapshot(_Model):
    stage: StageName


class AmountInt(_Model):
    amount: StrictInt


class AmountFloat(_Model):
    amount: float


class StageChange(_Model):
    from_stage: StageName
    to_stage: StageName


class FactorWeights(_Model):
    knowledge: float
    memory: float
    emotional: float


class GrowthMetadata(_Model):
    amount: float
    factor_weights: FactorWeights


class _EventBase(_Model):
    description: str = Field(min_length=1)
    timestamp: datetime


class AgeIncrementEvent(_EventBase):
    event_type: Literal["age_increment"]
    previous_state: AgeSnapshot
    new_state: AgeSnapshot
    metadata: AmountInt


class MaturityIncreaseEvent(_EventBase):
    event_type: Literal["maturity_increase"]
    previous_state: MaturitySnapshot
    new_state: MaturitySnapshot
    metadata: AmountFloat


class MaturityDecayEvent(_EventBase):
    event_type: Literal["maturity_decay"]
    previous_state: MaturitySnapshot
    new_state: MaturitySnapshot
    metadata: AmountFloat


class StageTransitionEvent(_EventBase):
    event_type: Literal["stage_transition"]
    previous_state: StageSnapshot
    new_state: StageSnapshot
    metadata: StageChange


class CognitiveGrowthEvent(_EventBase):
    event_type: Literal["cognitive_growth"]
    previous_state: MaturitySnapshot
    new_state: MaturitySnapshot
    metadata: GrowthMetadata


HistoryEventModel = Annotated[
    Union[
        AgeIncrementEvent,
        MaturityIncreaseEvent,
        MaturityDecayEvent,
        StageTransitionEvent,
        CognitiveGrowthEvent,
    ],
    Field(discriminator="event_type"),
]


# ── Character ────────────────────────────────────────────────────────────────


class CharacterModel(_Model):
    id: str = Field(min_length=1)
    version: int = Field(default=1, ge=0)
    created_at: datetime
    updated_at: datetime

    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    identity: IdentityModel = Field(default_factory=IdentityModel)
    personality: PersonalityModel = Field(default_factory=PersonalityModel)
    voice: Optional[VoiceModel] = None
    knowledge: List[KnowledgeItemModel] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    emotional: Optional[EmotionalModel] = None

    memory: MemoryModel = Field(default_factory=MemoryModel)
    temporal_state: TemporalStateModel = Field(default_factory=TemporalStateModel)
    growth_config: Optional[GrowthConfigModel] = None
    history: List[HistoryEventModel] = Field(default_factory=list)

    extensions: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _trim(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _stage_matches_maturity(self) -> CharacterModel:
        config = (
            self.growth_config.to_config()
            if self.growth_config is not None
            else DEFAULT_GROWTH_CONFIG
        )
        ts = self.temporal_state
        expected = resolve_stage(ts.maturity, config.maturity_thresholds)
        if expected.value != ts.stage:
            raise ValueError(
                f"stage {ts.stage!r} inconsistent with maturity {ts.maturity} "
                f"(expected {expected.value!r})"
            )
        return self


# ── Public API ───────────────────────────────────────────────────────────────


def _convert_errors(exc: pydantic.ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "loc": ".".join(str(part) for part in err["loc"]),
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def check(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return the list of validation errors for raw (empty when valid)."""
    try:
        CharacterModel.model_validate(raw)
    except pydantic.ValidationError as e:
        return _convert_errors(e)
    return []


def validate(raw: Dict[str, Any]) -> Character:
    """
    Validate raw character data and build a Character.

    Raises:
        ValidationError: with one structured entry per failed constraint.
    """
    try:
        model = CharacterModel.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(_convert_errors(e)) from e
    return Character.from_dict(model.model_dump())
