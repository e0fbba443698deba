# ═══════════════════════════════════════════════════════════════════════════════
# PART 8: EVOLUTION ENGINE
# ═══════════════════════════════════════════════════════════════════════════════


"""
Advances a character through simulated time.

Two layers:
- Elapsed-time evolution (evolve): whole years age the identity, memories
  decay and fade. Optionally followed by cognitive growth.
- Stage machine operators (increment_age, increase_maturity, apply_decay,
  apply_cognitive_growth): each moves the temporal state, appends its history
  event and, when a stage boundary is crossed, a stage_transition event.

Every change is committed through persona.core.versioning, so each one is a
new validated version. Nothing is mutated.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from persona.core.character import Character
from persona.core.growth import (
    DEFAULT_GROWTH_CONFIG,
    GrowthConfig,
    GrowthResult,
    calculate_growth,
)
from persona.core.history import (
    HistoryEvent,
    age_increment_event,
    cognitive_growth_event,
    maturity_decay_event,
    maturity_increase_event,
)
from persona.core.memory import DEFAULT_PRUNE_THRESHOLD, MemoryEntry, evolve_memory
from persona.core.temporal import TemporalState, check_stage_transition
from persona.core.versioning import commit, next_timestamp

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EvolveOptions:
    """How much time passes and which subsystems evolve."""
    days: float = 0.0
    years: float = 0.0
    age_enabled: bool = True
    memory_enabled: bool = True
    prune_threshold: Optional[float] = DEFAULT_PRUNE_THRESHOLD  # None = keep all
    growth_enabled: bool = False

    def __post_init__(self) -> None:
        for name in ("days", "years"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value!r}")
        if not math.isfinite(self.total_days):
            raise ValueError(
                f"elapsed time overflows: days={self.days}, years={self.years}"
            )

    @property
    def total_days(self) -> float:
        return self.days + self.years * DAYS_PER_YEAR


class EvolutionEngine:
    """
    Evolves characters under an explicit growth configuration.

    The engine holds no character state. Its config applies to characters
    that don't carry their own growth_config.

    API:
        engine.evolve(character, days=..., years=...)
        engine.increment_age(character)
        engine.increase_maturity(character, amount)
        engine.apply_decay(character)
        engine.apply_cognitive_growth(character)
    """

    def __init__(
        self,
        config: Optional[GrowthConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or DEFAULT_GROWTH_CONFIG
        self._clock = clock or _utcnow

    # ── Elapsed-time evolution ───────────────────────────────────────────────

    def evolve(
        self,
        character: Character,
        options: Optional[EvolveOptions] = None,
        **kwargs: Any,
    ) -> Character:
        """
        Advance character by options.days + options.years * 365 days.

        Keyword arguments are EvolveOptions fields and override options.

        Returns:
            A new version if anything changed, otherwise the same character
            object (no version bump, no history).

        Raises:
            ValueError: if days or years is not a finite number.
        """
        options = replace(options or EvolveOptions(), **kwargs)
        total_days = options.total_days

        if total_days <= 0:
            return character

        attrs: Dict[str, Any] = {}

        # 1. Age the identity by whole years
        age = character.identity.age
        if options.age_enabled and isinstance(age, int) and not isinstance(age, bool):
            years = math.floor(total_days / DAYS_PER_YEAR)
            if years > 0:
                attrs["identity"] = {"age": age + years}

        # 2. Memory decay + pruning
        entries = character.memory.entries
        if options.memory_enabled and entries:
            evolved = evolve_memory(entries, total_days, options.prune_threshold)
            if evolved != entries:
                attrs["memory"] = {"entries": [e.to_dict() for e in evolved]}
                entries = evolved

        # 3. Cognitive growth on the post-decay state
        now = self._now(character)
        temporal = character.temporal_state
        events: List[HistoryEvent] = []
        if options.growth_enabled:
            temporal, events = self._grow(character, temporal, entries, now)

        if not attrs and not events:
            logger.debug("evolve(%s, %.2f days): nothing changed", character.id, total_days)
            return character

        temporal = replace(temporal, last_evolved_at=now)
        logger.info(
            "Evolved %s over %.2f days (%s)",
            character.id, total_days, ", ".join(sorted(attrs)) or "growth",
        )
        return self._commit(character, temporal, events, now, attrs)

    # ── Stage machine operators ──────────────────────────────────────────────

    def increment_age(self, character: Character) -> Character:
        """Temporal age + 1. Logs age_increment."""
        now = self._now(character)
        ts = character.temporal_state
        new_age = ts.age + 1
        event = age_increment_event(ts.age, new_age, now)
        temporal = replace(ts, age=new_age, last_evolved_at=now)
        return self._commit(character, temporal, [event], now)

    def increase_maturity(self, character: Character, amount: float) -> Character:
        """
        Raise maturity by amount, capped at 1.0. Logs maturity_increase.

        Raises:
            ValueError: if amount is not a positive, finite number.
        """
        if (
            isinstance(amount, bool)
            or not isinstance(amount, (int, float))
            or not math.isfinite(amount)
            or amount <= 0
        ):
            raise ValueError(f"amount must be a positive finite number, got {amount!r}")

        now = self._now(character)
        old = character.temporal_state.maturity
        new = min(1.0, old + amount)
        event = maturity_increase_event(old, new, amount, now)
        return self._apply_maturity(character, new, event, now)

    def apply_decay(self, character: Character) -> Character:
        """Lower maturity by the config's decay_rate, floored at 0.0."""
        now = self._now(character)
        decay_rate = self.config_for(character).decay_rate
        old = character.temporal_state.maturity
        new = max(0.0, old - decay_rate)
        event = maturity_decay_event(old, new, decay_rate, now)
        return self._apply_maturity(character, new, event, now)

    def calculate_cognitive_growth(self, character: Character) -> GrowthResult:
        return calculate_growth(
            character.knowledge,
            character.memory.entries,
            character.emotional_intensity,
            self.config_for(character),
        )

    def apply_cognitive_growth(self, character: Character) -> Character:
        """Grow maturity from knowledge, memory and emotion. Always logs."""
        now = self._now(character)
        temporal, events = self._grow(
            character, character.temporal_state, character.memory.entries, now
        )
        temporal = replace(temporal, last_evolved_at=now)
        return self._commit(character, temporal, events, now)

    # ── Config ───────────────────────────────────────────────────────────────

    def config_for(self, character: Character) -> GrowthConfig:
        """Character's own config if present, else the engine's."""
        return character.effective_growth_config(self.config)

    # ── Internal ─────────────────────────────────────────────────────────────

    def _now(self, character: Character) -> datetime:
        """Timestamp for the next version: the clock, kept strictly after updated_at."""
        return next_timestamp(character.updated_at, self._clock())

    def _grow(
        self,
        character: Character,
        temporal: TemporalState,
        entries: Sequence[MemoryEntry],
        now: datetime,
    ) -> Tuple[TemporalState, List[HistoryEvent]]:
        config = self.config_for(character)
        result = calculate_growth(
            character.knowledge, entries, character.emotional_intensity, config
        )
        old = temporal.maturity
        new = min(1.0, old + result.amount)
        events: List[HistoryEvent] = [
            cognitive_growth_event(old, new, result.amount, result.factors, now)
        ]
        stage_event, stage = check_stage_transition(
            temporal.stage, new, config.maturity_thresholds, now
        )
        if stage_event is not None:
            events.append(stage_event)
        return replace(temporal, maturity=new, stage=stage), events

    def _apply_maturity(
        self,
        character: Character,
        new_maturity: float,
        event: HistoryEvent,
        now: datetime,
    ) -> Character:
        """Set maturity, re-resolve stage, log event (+ stage_transition)."""
        config = self.config_for(character)
        ts = character.temporal_state
        stage_event, stage = check_stage_transition(
            ts.stage, new_maturity, config.maturity_thresholds, now
        )
        events = [event] if stage_event is None else [event, stage_event]
        temporal = replace(ts, maturity=new_maturity, stage=stage, last_evolved_at=now)
        return self._commit(character, temporal, events, now)

    def _commit(
        self,
        character: Character,
        temporal: TemporalState,
        events: List[HistoryEvent],
        now: datetime,
        attrs: Optional[Dict[str, Any]] = None,
    ) -> Character:
        attrs = dict(attrs or {})
        events = list(events)

        # Characters evolved under a non-default engine keep that config so
        # their stage stays consistent with the thresholds that produced it.
        if character.growth_config is None and self.config != DEFAULT_GROWTH_CONFIG:
            attrs["growth_config"] = self.config.to_dict()

        # Stage must match maturity under the config being committed
        thresholds = self.config_for(character).maturity_thresholds
        stage_event, stage = check_stage_transition(
            temporal.stage, temporal.maturity, thresholds, now
        )
        if stage_event is not None:
            events.append(stage_event)
            temporal = replace(temporal, stage=stage)

        attrs["temporal_state"] = temporal.to_dict()
        if events:
            attrs["history"] = character.history.append(*events).to_list()

        return commit(character, attrs, now=now)


# ── Module-level API ─────────────────────────────────────────────────────────


def evolve(
    character: Character,
    options: Optional[EvolveOptions] = None,
    config: Optional[GrowthConfig] = None,
    **kwargs: Any,
) -> Character:
    return EvolutionEngine(config).evolve(character, options, **kwargs)


def increment_age(character: Character, config: Optional[GrowthConfig] = None) -> Character:
    return EvolutionEngine(config).increment_age(character)


def increase_maturity(
    character: Character, amount: float, config: Optional[GrowthConfig] = None
) -> Character:
    return EvolutionEngine(config).increase_maturity(character, amount)


def apply_decay(character: Character, config: Optional[GrowthConfig] = None) -> Character:
    return EvolutionEngine(config).apply_decay(character)


def apply_cognitive_growth(
    character: Character, config: Optional[GrowthConfig] = None
) -> Character:
    return EvolutionEngine(config).apply_cognitive_growth(character)
