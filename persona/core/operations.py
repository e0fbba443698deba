# ═══════════════════════════════════════════════════════════════════════════════
# CHARACTER OPERATIONS
# ═══════════════════════════════════════════════════════════════════════════════

"""
Convenience mutations for the descriptive and memory sections.

Each one builds an attrs dict and goes through versioning.update, so every
call is one new validated version.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

from persona.core.character import Character
from persona.core.cognitive import KnowledgeItem
from persona.core.memory import DEFAULT_DECAY_RATE, DEFAULT_IMPORTANCE, MemoryEntry
from persona.core.versioning import update

ItemSpec = Union[str, Dict[str, Any]]


def _as_list(items: Union[ItemSpec, Sequence[ItemSpec]]) -> List[ItemSpec]:
    if isinstance(items, (str, dict)):
        return [items]
    return list(items)


def add_memory(
    character: Character,
    content: Union[ItemSpec, Sequence[ItemSpec]],
    importance: float = DEFAULT_IMPORTANCE,
    decay_rate: float = DEFAULT_DECAY_RATE,
    category: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Character:
    """
    Append memories, evicting the oldest when the store is full.

    content may be a string, a dict of MemoryEntry fields, or a list of
    either. Keyword values apply to string items and fill gaps in dicts.
    """
    now = now or datetime.now(timezone.utc)
    new_entries = []
    for item in _as_list(content):
        fields: Dict[str, Any] = {
            "content": "",
            "importance": importance,
            "decay_rate": decay_rate,
            "category": category,
            "timestamp": now,
        }
        if isinstance(item, dict):
            fields.update(item)
        else:
            fields["content"] = item
        new_entries.append(MemoryEntry.from_dict(fields))

    store = character.memory.add(*new_entries)
    return update(
        character,
        {"memory": {"entries": [e.to_dict() for e in store.entries]}},
        now=now,
    )


def add_knowledge(
    character: Character,
    content: Union[ItemSpec, Sequence[ItemSpec]],
    category: Optional[str] = None,
    importance: float = 0.5,
    confidence: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Character:
    """Append knowledge items (string, dict or list of either)."""
    now = now or datetime.now(timezone.utc)
    items = list(character.knowledge)
    for item in _as_list(content):
        fields: Dict[str, Any] = {
            "content": "",
            "category": category,
            "importance": importance,
            "confidence": confidence,
            "learned_at": now,
        }
        if isinstance(item, dict):
            fields.update(item)
        else:
            fields["content"] = item
        items.append(KnowledgeItem.from_dict(fields))

    return update(character, {"knowledge": [k.to_dict() for k in items]}, now=now)


def add_instruction(
    character: Character, instruction: Union[str, Sequence[str]]
) -> Character:
    new = [instruction] if isinstance(instruction, str) else list(instruction)
    return update(character, {"instructions": list(character.instructions) + new})


def add_trait(
    character: Character,
    trait: Union[ItemSpec, Sequence[ItemSpec]],
    intensity: float = 0.5,
) -> Character:
    """Add traits; a trait with an existing name replaces it."""
    traits = {t.name: t.to_dict() for t in character.personality.traits}
    for item in _as_list(trait):
        spec = dict(item) if isinstance(item, dict) else {"name": item}
        spec.setdefault("intensity", intensity)
        traits[spec["name"]] = spec
    return update(character, {"personality": {"traits": list(traits.values())}})


def add_value(character: Character, value: Union[str, Sequence[str]]) -> Character:
    new = [value] if isinstance(value, str) else list(value)
    values = list(character.personality.values)
    values.extend(v for v in new if v not in values)
    return update(character, {"personality": {"values": values}})


def add_quirk(character: Character, quirk: Union[str, Sequence[str]]) -> Character:
    new = [quirk] if isinstance(quirk, str) else list(quirk)
    return update(
        character, {"personality": {"quirks": list(character.personality.quirks) + new}}
    )


def set_emotion(
    character: Character,
    mood: str,
    intensity: float = 0.5,
    secondary_moods: Sequence[str] = (),
    now: Optional[datetime] = None,
) -> Character:
    """Replace the emotional state. Intensity feeds cognitive growth."""
    now = now or datetime.now(timezone.utc)
    return update(
        character,
        {
            "emotional": {
                "mood": mood,
                "intensity": intensity,
                "secondary_moods": list(secondary_moods),
                "last_changed_at": now,
            }
        },
        now=now,
    )
