# ═══════════════════════════════════════════════════════════════════════════════
# PART 7: VERSIONED UPDATES
# ═══════════════════════════════════════════════════════════════════════════════


"""
Every change to a character goes through here.

    merge attrs -> re-assert identity -> bump version -> validate -> new value

The input character is never touched. If validation fails the caller gets a
ValidationError and the original remains the latest valid version.
"""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from persona.core.character import Character
from persona.core.errors import ConfigurationError, ValidationError
from persona.core.growth import DEFAULT_GROWTH_CONFIG, MaturityThresholds
from persona.core.schema import validate
from persona.core.temporal import resolve_stage

logger = logging.getLogger(__name__)

# Sections only the evolution engine may write
PROTECTED_KEYS = frozenset({"temporal_state", "history"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def deep_merge(base: Mapping[str, Any], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Merge changes into base, returning a new dict.

    Nested dicts merge key by key. Lists and scalars replace wholesale.
    Neither input is modified.
    """
    merged: Dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in changes.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def next_timestamp(previous: datetime, now: Optional[datetime]) -> datetime:
    """now, pushed forward if needed so updated_at strictly increases."""
    now = _aware(now or utcnow())
    previous = _aware(previous)
    if now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


def commit(
    character: Character,
    attrs: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Character:
    """
    Produce the next version of character with attrs applied.

    No protected-key check: this is the path the evolution engine uses.

    Raises:
        ValidationError: if the merged state is invalid.
    """
    merged = deep_merge(character.to_dict(), attrs)

    # Identity and creation time can't be overridden
    merged["id"] = character.id
    merged["created_at"] = character.created_at
    merged["version"] = character.version + 1
    merged["updated_at"] = next_timestamp(character.updated_at, now)

    try:
        updated = validate(merged)
    except ValidationError as e:
        logger.debug("Rejected update to %s v%d: %s", character.id, character.version, e)
        raise

    logger.debug("Committed %s v%d -> v%d", character.id, character.version, updated.version)
    return updated


def update(
    character: Character,
    attrs: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Character:
    """
    Deep-merge attrs into character and return the next version.

    id and created_at are always carried forward; version becomes previous + 1
    and updated_at is refreshed. temporal_state and history are managed by
    the evolution engine and can't be set here.

    Raises:
        ValidationError: on protected keys or schema failures. The original
            character is unaffected either way.
    """
    protected = sorted(PROTECTED_KEYS.intersection(attrs))
    if protected:
        raise ValidationError([
            {
                "loc": key,
                "msg": "managed by the evolution engine, not settable via update",
                "type": "protected_field",
            }
            for key in protected
        ])
    return commit(character, attrs, now=now)


def new_character(
    id: Optional[str] = None,
    now: Optional[datetime] = None,
    **attrs: Any,
) -> Character:
    """
    Create version 1 of a new character.

    A temporal_state given without a stage gets the stage its maturity
    resolves to under the character's (or the default) growth config.

    Raises:
        ValidationError: if attrs don't satisfy the schema.
    """
    now = _aware(now or utcnow())
    raw: Dict[str, Any] = copy.deepcopy(attrs)

    temporal = raw.get("temporal_state")
    if isinstance(temporal, dict) and "stage" not in temporal:
        thresholds = DEFAULT_GROWTH_CONFIG.maturity_thresholds
        config = raw.get("growth_config")
        if isinstance(config, dict) and "maturity_thresholds" in config:
            try:
                thresholds = MaturityThresholds(**config["maturity_thresholds"])
            except (ConfigurationError, TypeError):
                # Reported properly by schema validation below
                pass
        temporal["stage"] = resolve_stage(
            float(temporal.get("maturity", 0.0)), thresholds
        ).value

    raw.update({
        "id": id or uuid.uuid4().hex,
        "version": 1,
        "created_at": now,
        "updated_at": now,
    })
    character = validate(raw)
    logger.debug("Created character %s", character.id)
    return character
