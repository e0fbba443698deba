# ═══════════════════════════════════════════════════════════════════════════════
# PART 9: PERSISTENCE
# ═══════════════════════════════════════════════════════════════════════════════


"""
Storage adapters for character versions.

The evolution engine never touches storage. Callers evolve or update a
character and hand the new version to a store.

Two adapters:
- InMemoryStore: a dict keyed by id. Tests and scratch work.
- JsonFileStore: one JSON file per character, wrapped in an envelope with a
  SHA-256 hash of the state. On load the hash is recomputed and compared, so a
  file edited outside the store is refused instead of silently loaded.

Both refuse to overwrite a newer version with an older one.
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from persona.core.character import Character
from persona.core.errors import PersonaError, ValidationError
from persona.core.schema import validate

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"


# ── Exceptions ───────────────────────────────────────────────────────────────


class PersistenceError(PersonaError):
    """Base class for persistence errors."""
    pass


class NotFoundError(PersistenceError, KeyError):
    """No character stored under the requested id."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class StaleVersionError(PersistenceError):
    """Raised when saving a version older than the one already stored."""
    pass


class StateCorruptionError(PersistenceError):
    """Raised when saved state is corrupted or invalid."""
    pass


@dataclass
class VerificationResult:
    valid: bool
    character_id: str
    state_hash: str
    version: Optional[int] = None
    error: Optional[str] = None


# ── Store interface ──────────────────────────────────────────────────────────


class CharacterStore(ABC):
    """Latest-version storage keyed by character id."""

    @abstractmethod
    def save(self, character: Character) -> Character:
        """Store character as the latest version and return it."""

    @abstractmethod
    def get(self, character_id: str) -> Character:
        """Return the latest stored version. Raises NotFoundError."""

    @abstractmethod
    def delete(self, character_id: str) -> None:
        """Remove the character. Raises NotFoundError."""

    @abstractmethod
    def list_ids(self) -> List[str]:
        ...

    def __contains__(self, character_id: object) -> bool:
        return isinstance(character_id, str) and character_id in self.list_ids()

    def _check_not_stale(self, current: Optional[Character], incoming: Character) -> None:
        if current is not None and incoming.version < current.version:
            raise StaleVersionError(
                f"{incoming.id}: version {incoming.version} is older than "
                f"stored version {current.version}"
            )


class InMemoryStore(CharacterStore):
    """Characters are immutable, so they're stored as-is."""

    def __init__(self) -> None:
        self._characters: Dict[str, Character] = {}

    def save(self, character: Character) -> Character:
        self._check_not_stale(self._characters.get(character.id), character)
        self._characters[character.id] = character
        logger.debug("Stored %s v%d in memory", character.id, character.version)
        return character

    def get(self, character_id: str) -> Character:
        try:
            return self._characters[character_id]
        except KeyError:
            raise NotFoundError(f"No character with id {character_id!r}") from None

    def delete(self, character_id: str) -> None:
        if self._characters.pop(character_id, None) is None:
            raise NotFoundError(f"No character with id {character_id!r}")

    def list_ids(self) -> List[str]:
        return sorted(self._characters)


# ── JSON file store ──────────────────────────────────────────────────────────


class _NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars left in extensions."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


def state_hash(state: Dict[str, Any]) -> str:
    """SHA-256 over the canonical (sorted-key) JSON of state."""
    state_json = json.dumps(state, sort_keys=True, cls=_NumpyEncoder)
    return hashlib.sha256(state_json.encode()).hexdigest()


class JsonFileStore(CharacterStore):
    """
    One `<id>.json` file per character under directory.

    File layout:
        {
          "format": "1.0",
          "state": {...character.to_dict()...},
          "verification": {"state_hash": "...", "saved_at": "..."}
        }
    """

    SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    # ── Public API ───────────────────────────────────────────────────────

    def save(self, character: Character) -> Character:
        path = self._path(character.id)
        if path.exists():
            self._check_not_stale(self._load(path, character.id), character)

        state = character.to_dict()
        envelope = {
            "format": FORMAT_VERSION,
            "state": state,
            "verification": {
                "state_hash": state_hash(state),
                "saved_at": datetime.now(timezone.utc).isoformat(),
            },
        }

        # Write beside the target, then swap it in
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(envelope, f, indent=2, cls=_NumpyEncoder)
        tmp_path.replace(path)

        logger.info("Saved %s v%d to %s", character.id, character.version, path)
        return character

    def get(self, character_id: str) -> Character:
        """
        Load and verify a character.

        Raises:
            NotFoundError: no file for character_id.
            StateCorruptionError: unreadable JSON, unknown format, hash
                mismatch or a state that no longer validates.
        """
        path = self._path(character_id)
        if not path.exists():
            raise NotFoundError(f"No character with id {character_id!r}")
        return self._load(path, character_id)

    def delete(self, character_id: str) -> None:
        path = self._path(character_id)
        if not path.exists():
            raise NotFoundError(f"No character with id {character_id!r}")
        path.unlink()
        logger.info("Deleted %s", character_id)

    def list_ids(self) -> List[str]:
        return sorted(p.stem for p in self.directory.glob(f"*{self.SUFFIX}"))

    def verify(self, character_id: str) -> VerificationResult:
        """
        Check a stored file without raising.

        Checks:
        1. File exists and is valid JSON
        2. Format is supported
        3. State hash matches content
        4. State passes schema validation
        """
        try:
            character = self.get(character_id)
        except PersistenceError as e:
            return VerificationResult(
                valid=False, character_id=character_id, state_hash="", error=str(e)
            )
        return VerificationResult(
            valid=True,
            character_id=character_id,
            state_hash=state_hash(character.to_dict()),
            version=character.version,
        )

    # ── Internal ─────────────────────────────────────────────────────────

    def _path(self, character_id: str) -> Path:
        if not character_id or "/" in character_id or "\\" in character_id or character_id.startswith("."):
            raise PersistenceError(f"Invalid character id for file storage: {character_id!r}")
        return self.directory / f"{character_id}{self.SUFFIX}"

    def _load(self, path: Path, character_id: str) -> Character:
        try:
            with open(path, "r") as f:
                envelope = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable character file %s: %s", path, e)
            raise StateCorruptionError(f"{path}: {e}") from e

        if not isinstance(envelope, dict):
            raise StateCorruptionError(f"{path}: envelope is not an object")

        fmt = envelope.get("format", "")
        if not isinstance(fmt, str) or not fmt.startswith("1."):
            logger.warning("Unsupported format %r in %s", fmt, path)
            raise StateCorruptionError(f"Unsupported format: {fmt!r}")

        state = envelope.get("state")
        expected = (envelope.get("verification") or {}).get("state_hash", "")
        if not isinstance(state, dict):
            raise StateCorruptionError(f"{path}: missing state")

        computed = state_hash(state)
        if computed != expected:
            logger.warning("State hash mismatch for %s", character_id)
            raise StateCorruptionError(
                f"State hash mismatch: expected {expected}, got {computed}"
            )

        try:
            character = validate(state)
        except ValidationError as e:
            logger.warning("Stored state for %s fails validation: %s", character_id, e)
            raise StateCorruptionError(f"{path}: {e}") from e

        if character.id != character_id:
            raise StateCorruptionError(
                f"{path} holds character {character.id!r}, not {character_id!r}"
            )
        return character
