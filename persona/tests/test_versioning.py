"""Tests for versioned updates and character creation."""

from datetime import datetime, timedelta, timezone

import pytest

from persona.core.character import Voice
from persona.core.errors import ValidationError
from persona.core.temporal import Stage
from persona.core.versioning import commit, deep_merge, new_character, update

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def character():
    return new_character(
        id="ada",
        now=T0,
        name="Ada",
        identity={"age": 30, "role": "engineer", "facts": ["likes tea"]},
        personality={"traits": ["curious"], "values": ["honesty"]},
    )


# ── Creation ────────────────────────────────────────────────────────────────


def test_new_character_is_version_one(character):
    """Created characters start at version 1 with equal timestamps."""
    assert character.version == 1
    assert character.created_at == character.updated_at == T0
    assert character.history.last is None


def test_new_character_generates_id():
    a = new_character(name="A")
    b = new_character(name="B")

    assert a.id and b.id
    assert a.id != b.id


def test_new_character_resolves_stage():
    """A temporal_state without a stage gets the one its maturity implies."""
    character = new_character(temporal_state={"maturity": 0.8})
    assert character.stage == Stage.MATURE


def test_new_character_invalid():
    with pytest.raises(ValidationError):
        new_character(name="x" * 200)


# ── Updates ─────────────────────────────────────────────────────────────────


def test_update_bumps_version(character):
    """Each accepted update is version + 1 with the same id and created_at."""
    updated = update(character, {"name": "Ada L."}, now=T0 + timedelta(hours=1))

    assert updated.version == 2
    assert updated.id == character.id
    assert updated.created_at == character.created_at
    assert updated.updated_at == T0 + timedelta(hours=1)
    assert updated.name == "Ada L."


def test_update_leaves_original(character):
    """The input character is never touched."""
    update(character, {"name": "Someone else"})

    assert character.name == "Ada"
    assert character.version == 1


def test_versions_chain(character):
    c = character
    for i in range(5):
        c = update(c, {"description": f"draft {i}"})
    assert c.version == 6


def test_updated_at_strictly_increases(character):
    """A clock that doesn't move still yields a later updated_at."""
    updated = update(character, {"name": "B"}, now=T0)
    assert updated.updated_at > character.updated_at


def test_caller_cannot_override_identity(character):
    """id, created_at and version in attrs are ignored."""
    updated = update(
        character,
        {"id": "other", "created_at": T0 - timedelta(days=9), "version": -5},
    )

    assert updated.id == "ada"
    assert updated.created_at == T0
    assert updated.version == 2


def test_update_deep_merges(character):
    """Nested sections merge key by key."""
    updated = update(character, {"identity": {"role": "architect"}})

    assert updated.identity.role == "architect"
    assert updated.identity.age == 30
    assert updated.identity.facts == ("likes tea",)


def test_update_replaces_lists(character):
    """Lists are replaced, not appended to."""
    updated = update(character, {"personality": {"values": ["courage"]}})

    assert updated.personality.values == ("courage",)
    assert updated.personality.trait("curious") is not None


def test_update_sets_voice(character):
    """Voice is an ordinary section; missing fields take their defaults."""
    updated = update(character, {"voice": {"vocabulary": "technical"}})
    assert updated.voice == Voice(tone="casual", vocabulary="technical")

    warmer = update(updated, {"voice": {"tone": "warm"}})
    assert warmer.voice == Voice(tone="warm", vocabulary="technical")


@pytest.mark.parametrize("key", ["temporal_state", "history"])
def test_protected_sections(character, key):
    """Evolution-managed sections can't be set through update."""
    with pytest.raises(ValidationError) as exc_info:
        update(character, {key: {}})

    assert exc_info.value.errors[0]["type"] == "protected_field"
    assert exc_info.value.errors[0]["loc"] == key


def test_invalid_update_rejected(character):
    """A failed update raises and the original stays the latest valid state."""
    with pytest.raises(ValidationError) as exc_info:
        update(character, {"emotional": {"mood": "bored"}})

    assert exc_info.value.errors
    assert character.version == 1
    assert character.emotional is None


def test_commit_allows_temporal_state(character):
    """commit() is the engine path and can write temporal_state."""
    updated = commit(
        character, {"temporal_state": {"maturity": 0.3, "stage": "growing"}}
    )

    assert updated.maturity == 0.3
    assert updated.version == 2


# ── deep_merge ──────────────────────────────────────────────────────────────


def test_deep_merge_does_not_mutate():
    base = {"a": {"b": 1, "c": [1, 2]}}
    changes = {"a": {"b": 2}}

    merged = deep_merge(base, changes)

    assert merged == {"a": {"b": 2, "c": [1, 2]}}
    assert base == {"a": {"b": 1, "c": [1, 2]}}
    assert merged["a"]["c"] is not base["a"]["c"]


def test_deep_merge_scalar_replaces_dict():
    assert deep_merge({"a": {"b": 1}}, {"a": None}) == {"a": None}
