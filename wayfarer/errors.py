"""Error taxonomy.

Every failure the engine can recover from is an EngineError subclass with a
stable `kind` string. Collaborators (resolvers, stores, generators) raise them;
NarrativeEngine.dispatch() catches them at its boundary and reports them in
the returned Outcome instead of letting them escape.

ContentError is the odd one out: it is raised while *loading* a content bundle,
before any engine exists, and is meant to stop startup.
"""

from __future__ import annotations


class WayfarerError(Exception):
    """Base class for all wayfarer errors."""


class ContentError(WayfarerError):
    """Raised when a content bundle cannot be loaded or fails validation."""


# ---------------------------------------------------------------------------
# Engine-facing errors (recoverable, reported through Outcome)
# ---------------------------------------------------------------------------

class EngineError(WayfarerError):
    kind = "EngineError"


class ContentReferenceError(EngineError):
    """Authored content points at an id that does not exist."""

    kind = "ContentReferenceError"


class InvalidChoice(EngineError):
    """Choice id is unknown, hidden, or not currently selectable."""

    kind = "InvalidChoice"


class InvalidHotspot(EngineError):
    """Hotspot id is unknown in the current scene or currently locked."""

    kind = "InvalidHotspot"


class IllegalTransition(EngineError):
    """Intent is not legal in the engine's current state."""

    kind = "IllegalTransition"


class CorruptSave(EngineError):
    """Stored snapshot cannot be parsed or references unknown content."""

    kind = "CorruptSave"


class GenerationFailed(EngineError):
    """Content-generation backend could not produce a dialog node."""

    kind = "GenerationFailed"


class GenerationTimeout(GenerationFailed):
    kind = "GenerationTimeout"


class StorageUnavailable(EngineError):
    """Save store I/O failed."""

    kind = "StorageUnavailable"
