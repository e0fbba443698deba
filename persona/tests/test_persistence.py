"""Tests for the character stores."""

import json
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from persona.core.evolution import EvolutionEngine
from persona.core.operations import add_memory
from persona.core.persistence import (
    InMemoryStore,
    JsonFileStore,
    NotFoundError,
    PersistenceError,
    StaleVersionError,
    StateCorruptionError,
    VerificationResult,
)
from persona.core.versioning import new_character, update

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory, cleaned up after test."""
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def character():
    """A character with memories, knowledge and some history."""
    c = new_character(
        id="ada",
        now=T0,
        name="Ada",
        identity={"age": 36, "role": "analyst"},
        knowledge=[{"content": "Analytical engines", "confidence": 0.9}],
        emotional={"mood": "curious", "intensity": 0.6},
    )
    c = add_memory(c, ["notes on Bernoulli numbers", "letter from Charles"])
    return EvolutionEngine().increase_maturity(c, 0.3)


def _tamper(path, mutate):
    with open(path, "r") as f:
        data = json.load(f)
    mutate(data)
    with open(path, "w") as f:
        json.dump(data, f)


# ── In-memory store ─────────────────────────────────────────────────────────


def test_memory_store_roundtrip(character):
    store = InMemoryStore()
    store.save(character)

    assert store.get("ada") is character
    assert "ada" in store
    assert store.list_ids() == ["ada"]


def test_memory_store_not_found():
    """Missing ids raise NotFoundError, which is also a KeyError."""
    store = InMemoryStore()

    with pytest.raises(NotFoundError):
        store.get("nobody")
    with pytest.raises(KeyError):
        store.delete("nobody")


def test_memory_store_delete(character):
    store = InMemoryStore()
    store.save(character)
    store.delete("ada")

    assert "ada" not in store


def test_memory_store_rejects_stale(character):
    """An older version can't overwrite a newer one."""
    store = InMemoryStore()
    newer = update(character, {"name": "Ada L."})
    store.save(newer)

    with pytest.raises(StaleVersionError):
        store.save(character)
    assert store.get("ada") is newer


# ── JSON file store ─────────────────────────────────────────────────────────


def test_file_store_roundtrip(tmp_dir, character):
    """Save and load should produce an identical character."""
    store = JsonFileStore(tmp_dir)
    store.save(character)

    restored = store.get("ada")

    assert restored.to_dict() == character.to_dict()
    assert restored.version == character.version
    assert restored.stage == character.stage
    assert len(restored.history) == len(character.history)


def test_file_store_layout(tmp_dir, character):
    """One <id>.json file with format, state and verification."""
    JsonFileStore(tmp_dir).save(character)
    path = Path(tmp_dir) / "ada.json"

    with open(path) as f:
        envelope = json.load(f)

    assert envelope["format"] == "1.0"
    assert envelope["state"]["id"] == "ada"
    assert len(envelope["verification"]["state_hash"]) == 64
    assert "saved_at" in envelope["verification"]


def test_tampering_detected(tmp_dir, character):
    """Modifying a saved file should fail verification."""
    store = JsonFileStore(tmp_dir)
    store.save(character)

    def mutate(data):
        data["state"]["name"] = "HACKED"

    _tamper(Path(tmp_dir) / "ada.json", mutate)

    with pytest.raises(StateCorruptionError, match="hash mismatch"):
        store.get("ada")

    result = store.verify("ada")
    assert isinstance(result, VerificationResult)
    assert not result.valid
    assert result.error


def test_unsupported_format(tmp_dir, character):
    store = JsonFileStore(tmp_dir)
    store.save(character)

    def mutate(data):
        data["format"] = "9.0"

    _tamper(Path(tmp_dir) / "ada.json", mutate)

    with pytest.raises(StateCorruptionError, match="Unsupported format"):
        store.get("ada")


def test_unreadable_file(tmp_dir):
    store = JsonFileStore(tmp_dir)
    (Path(tmp_dir) / "broken.json").write_text("{not json")

    with pytest.raises(StateCorruptionError):
        store.get("broken")


def test_verify_valid(tmp_dir, character):
    store = JsonFileStore(tmp_dir)
    store.save(character)

    result = store.verify("ada")

    assert result.valid
    assert result.version == character.version
    assert result.error is None


def test_file_store_not_found(tmp_dir):
    store = JsonFileStore(tmp_dir)

    with pytest.raises(NotFoundError):
        store.get("ghost")
    assert not store.verify("ghost").valid


def test_file_store_delete(tmp_dir, character):
    store = JsonFileStore(tmp_dir)
    store.save(character)
    store.delete("ada")

    assert store.list_ids() == []
    with pytest.raises(NotFoundError):
        store.delete("ada")


def test_file_store_rejects_stale(tmp_dir, character):
    store = JsonFileStore(tmp_dir)
    store.save(update(character, {"name": "Ada L."}))

    with pytest.raises(StaleVersionError):
        store.save(character)


def test_file_store_keeps_latest(tmp_dir, character):
    """Saving each new version replaces the file."""
    store = JsonFileStore(tmp_dir)
    store.save(character)
    newer = EvolutionEngine().apply_decay(character)
    store.save(newer)

    assert store.get("ada").version == newer.version
    assert store.list_ids() == ["ada"]


def test_path_like_ids_rejected(tmp_dir, character):
    store = JsonFileStore(tmp_dir)
    with pytest.raises(PersistenceError):
        store.get("../escape")
