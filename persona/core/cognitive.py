# ═══════════════════════════════════════════════════════════════════════════════
# KNOWLEDGE & EMOTION
# ═══════════════════════════════════════════════════════════════════════════════

"""Knowledge and emotional state: the inputs to cognitive growth."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

VALID_MOODS = (
    "happy",
    "sad",
    "angry",
    "excited",
    "calm",
    "anxious",
    "neutral",
    "curious",
    "frustrated",
    "content",
)


def _parse_dt(value: Any) -> Optional[datetime]:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


@dataclass(frozen=True)
class KnowledgeItem:
    """A permanent fact the character knows. Knowledge does not decay."""
    content: str
    category: Optional[str] = None
    importance: float = 0.5
    confidence: Optional[float] = None  # None counts as 0.75 for growth
    learned_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "category": self.category,
            "importance": self.importance,
            "confidence": self.confidence,
            "learned_at": self.learned_at.isoformat() if self.learned_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> KnowledgeItem:
        return cls(
            content=data["content"],
            category=data.get("category"),
            importance=float(data.get("importance", 0.5)),
            confidence=data.get("confidence"),
            learned_at=_parse_dt(data.get("learned_at")),
        )


@dataclass(frozen=True)
class EmotionalState:
    """Current mood and how strongly it is felt."""
    mood: str = "neutral"
    intensity: float = 0.5
    secondary_moods: Tuple[str, ...] = ()
    last_changed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mood": self.mood,
            "intensity": self.intensity,
            "secondary_moods": list(self.secondary_moods),
            "last_changed_at": self.last_changed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EmotionalState:
        kwargs: Dict[str, Any] = {
            "mood": data.get("mood", "neutral"),
            "intensity": float(data.get("intensity", 0.5)),
            "secondary_moods": tuple(data.get("secondary_moods", ())),
        }
        last = _parse_dt(data.get("last_changed_at"))
        if last is not None:
            kwargs["last_changed_at"] = last
        return cls(**kwargs)
