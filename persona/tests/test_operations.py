"""Tests for the convenience mutations."""

from datetime import datetime, timedelta, timezone

import pytest

from persona.core.errors import ValidationError
from persona.core.evolution import EvolutionEngine
from persona.core.operations import (
    add_instruction,
    add_knowledge,
    add_memory,
    add_quirk,
    add_trait,
    add_value,
    set_emotion,
)
from persona.core.versioning import new_character

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def character():
    return new_character(id="ada", now=T0, name="Ada")


# ── Memory ──────────────────────────────────────────────────────────────────


def test_add_memory(character):
    updated = add_memory(character, "Met Grace", importance=0.9, category="people")
    entry = updated.memory.entries[0]

    assert updated.version == 2
    assert entry.content == "Met Grace"
    assert entry.importance == 0.9
    assert entry.category == "people"
    assert len(character.memory) == 0


def test_add_memory_list_and_dicts(character):
    updated = add_memory(
        character,
        ["plain", {"content": "detailed", "importance": 0.2, "decay_rate": 0.3}],
        importance=0.7,
    )

    first, second = updated.memory.entries
    assert first.importance == 0.7
    assert second.importance == 0.2
    assert second.decay_rate == 0.3
    assert updated.version == 2


def test_add_memory_evicts_oldest():
    """Adding to a full store drops the oldest memories."""
    character = new_character(now=T0, memory={"capacity": 2})
    for i in range(3):
        character = add_memory(character, f"m{i}", now=T0 + timedelta(minutes=i + 1))

    assert [e.content for e in character.memory.entries] == ["m1", "m2"]
    assert character.version == 4


def test_add_memory_invalid(character):
    with pytest.raises(ValidationError):
        add_memory(character, "too important", importance=1.5)


# ── Knowledge & emotion ─────────────────────────────────────────────────────


def test_add_knowledge(character):
    updated = add_knowledge(character, ["Python", "Elixir"], category="languages", confidence=0.9)

    assert [k.content for k in updated.knowledge] == ["Python", "Elixir"]
    assert all(k.confidence == 0.9 for k in updated.knowledge)
    assert updated.knowledge[0].learned_at is not None


def test_set_emotion(character):
    updated = set_emotion(character, "excited", intensity=0.8, secondary_moods=["curious"])

    assert updated.emotional.mood == "excited"
    assert updated.emotional.intensity == 0.8
    assert updated.emotional.secondary_moods == ("curious",)
    assert updated.emotional_intensity == 0.8


def test_set_emotion_invalid_mood(character):
    with pytest.raises(ValidationError):
        set_emotion(character, "bored")


def test_mutations_feed_growth(character):
    """Knowledge, memories and emotion drive cognitive growth."""
    c = add_knowledge(character, "Python", confidence=0.9)
    c = add_memory(c, ["a", "b"])
    c = set_emotion(c, "calm", intensity=0.6)

    result = EvolutionEngine().calculate_cognitive_growth(c)

    assert result.amount == pytest.approx((0.9 + 0.1 + 0.6) / 3)


# ── Descriptive sections ────────────────────────────────────────────────────


def test_add_instruction(character):
    updated = add_instruction(add_instruction(character, "Be concise"), ["Cite sources"])
    assert updated.instructions == ("Be concise", "Cite sources")


def test_add_trait_replaces_same_name(character):
    c = add_trait(character, "curious", intensity=0.4)
    c = add_trait(c, [{"name": "curious", "intensity": 0.9}, "bold"])

    assert [t.name for t in c.personality.traits] == ["curious", "bold"]
    assert c.personality.trait("curious").intensity == 0.9
    assert c.personality.trait("bold").intensity == 0.5


def test_add_value_deduplicates(character):
    c = add_value(add_value(character, "honesty"), ["honesty", "craft"])
    assert c.personality.values == ("honesty", "craft")


def test_add_quirk(character):
    c = add_quirk(character, "hums while thinking")
    assert c.personality.quirks == ("hums while thinking",)
    assert c.personality.values == ()
