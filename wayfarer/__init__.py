"""
Wayfarer - client-side state engine for text MUD protocols.

Parses server frames, mirrors world state (entities, proximity roster,
combat, movement, party) and turns every message into narrative lines.
"""

__version__ = "0.1.0"
