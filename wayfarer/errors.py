"""
Exceptions raised by wayfarer outside the message-processing core.

The core (parse_frame, parse_payload, MessageRouter.handle) never raises;
these cover configuration and the CLI boundary.
"""


class WayfarerError(Exception):
    """Base class for wayfarer errors."""


class ConfigError(WayfarerError, ValueError):
    """A configuration file could not be read or parsed."""
