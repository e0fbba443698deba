# ═══════════════════════════════════════════════════════════════════════════════
# PART 3: MEMORY STORE / DECAY & EVICTION
# ═══════════════════════════════════════════════════════════════════════════════


"""
Capacity-bounded memory with exponential importance decay.

Two independent forces shrink memory:
- Eviction: inserting past capacity drops the oldest entries (FIFO).
- Decay: importance fades with elapsed time; entries that fade below the
  prune threshold are dropped.

Decay composes multiplicatively, so evolving d1 days then d2 days is the
same as evolving d1 + d2 days at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_IMPORTANCE = 0.5
DEFAULT_DECAY_RATE = 0.1
DEFAULT_PRUNE_THRESHOLD = 0.05


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MemoryEntry:
    """A single memory. importance is the effective (already decayed) value."""
    content: str
    importance: float = DEFAULT_IMPORTANCE
    decay_rate: float = DEFAULT_DECAY_RATE
    category: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "importance": self.importance,
            "decay_rate": self.decay_rate,
            "category": self.category,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MemoryEntry:
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            content=data["content"],
            importance=float(data.get("importance", DEFAULT_IMPORTANCE)),
            decay_rate=float(data.get("decay_rate", DEFAULT_DECAY_RATE)),
            category=data.get("category"),
            timestamp=timestamp or _utcnow(),
        )


@dataclass(frozen=True)
class MemoryStore:
    """Ordered entries (oldest first) with a hard capacity."""
    entries: Tuple[MemoryEntry, ...] = ()
    capacity: int = DEFAULT_CAPACITY

    def __len__(self) -> int:
        return len(self.entries)

    # ── Public Methods ───────────────────────────────────────────────────────

    def add(self, *new_entries: MemoryEntry) -> MemoryStore:
        """Append entries, evicting the oldest ones if capacity is exceeded."""
        entries = self.entries + tuple(new_entries)
        return replace(self, entries=evict_oldest(entries, self.capacity))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "capacity": self.capacity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MemoryStore:
        return cls(
            entries=tuple(MemoryEntry.from_dict(e) for e in data.get("entries", [])),
            capacity=int(data.get("capacity", DEFAULT_CAPACITY)),
        )


def evict_oldest(entries: Sequence[MemoryEntry], capacity: int) -> Tuple[MemoryEntry, ...]:
    """Keep the newest `capacity` entries."""
    entries = tuple(entries)
    overflow = len(entries) - capacity
    if overflow <= 0:
        return entries
    logger.debug("Evicting %d oldest memories (capacity=%d)", overflow, capacity)
    return entries[overflow:]


def decay_importance(importance: float, decay_rate: float, elapsed_days: float) -> float:
    """
    Exponential decay: importance * (1 - decay_rate) ^ elapsed_days.

    elapsed_days may be fractional.
    """
    return float(importance * np.power(1.0 - decay_rate, elapsed_days))


def evolve_memory(
    entries: Sequence[MemoryEntry],
    elapsed_days: float,
    prune_threshold: Optional[float] = DEFAULT_PRUNE_THRESHOLD,
) -> Tuple[MemoryEntry, ...]:
    """
    Decay every entry by elapsed_days and prune the faded ones.

    Does not enforce capacity (that happens on insertion).

    Args:
        entries: Entries in recency order; order is preserved.
        elapsed_days: Simulated days elapsed.
        prune_threshold: Entries strictly below this are removed.
            None disables pruning.

    Returns:
        New tuple of entries with decayed importance.
    """
    if not entries:
        return ()

    importances = np.array([e.importance for e in entries], dtype=float)
    rates = np.array([e.decay_rate for e in entries], dtype=float)
    decayed = importances * np.power(1.0 - rates, elapsed_days)

    # Importance decays toward zero but never below it
    decayed = np.maximum(decayed, 0.0)

    if prune_threshold is None:
        keep = np.ones(len(entries), dtype=bool)
    else:
        keep = decayed >= prune_threshold

    result = tuple(
        replace(entry, importance=float(value))
        for entry, value, kept in zip(entries, decayed, keep)
        if kept
    )

    pruned = len(entries) - len(result)
    logger.debug(
        "Decayed %d memories over %.2f days, pruned %d",
        len(entries), elapsed_days, pruned,
    )
    return result
