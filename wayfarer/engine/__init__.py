"""
Core engine: typed payloads, the client-side world mirror and the systems
that keep it up to date.

Kept free of transport and rendering concerns so it can be driven by the
CLI, a UI, or tests with plain strings.
"""

from .lines import LogLine
from .world import ClientState, EntityDirectory, EntityInfo, Vector3

__all__ = ["ClientState", "EntityDirectory", "EntityInfo", "LogLine", "Vector3"]
