"""Error taxonomy shared by the character modules."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class PersonaError(Exception):
    """Base class for all persona errors."""
    pass


class ConfigurationError(PersonaError, ValueError):
    """Raised when a GrowthConfig is constructed with invalid values."""
    pass


class ValidationError(PersonaError, ValueError):
    """
    Raised when a character (or a merged update) fails schema validation.

    Carries a structured error list: one dict per problem with
    ``loc`` (dotted path), ``msg`` and ``type``.
    """

    def __init__(self, errors: List[Dict[str, Any]], message: Optional[str] = None) -> None:
        self.errors = list(errors)
        if message is None:
            parts = [f"{e.get('loc', '')}: {e.get('msg', '')}" for e in self.errors]
            message = "; ".join(parts) or "validation failed"
        super().__init__(message)
