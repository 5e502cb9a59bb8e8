"""
Client-side input handling: slash commands and text movement.
"""

from .router import CommandResult, CommandRouter

__all__ = ["CommandResult", "CommandRouter"]
