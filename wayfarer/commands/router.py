"""
CommandRouter: Decorator-based routing for client-side slash commands.

Provides:
- @register() decorator and register_handler() for handler registration
- Dispatch with alias support ("/clear-target", "/untarget")
- CommandResult: narrative lines plus outbound envelopes to send
- Command metadata and help lines
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..engine.lines import LogLine, error_line, system_line
from ..protocol import build_envelope

logger = logging.getLogger(__name__)

Envelope = Dict[str, Any]


@dataclass
class CommandResult:
    """What a command produced: lines to show and messages to send."""

    lines: List[LogLine] = field(default_factory=list)
    outbound: List[Envelope] = field(default_factory=list)

    def say(self, text: str) -> "CommandResult":
        self.lines.append(system_line(text))
        return self

    def send(self, kind: str, payload: Any) -> "CommandResult":
        self.outbound.append(build_envelope(kind, payload))
        return self


CommandHandler = Callable[[str], CommandResult]  # (args)


@dataclass
class CommandMeta:
    """Metadata for a registered command."""
    name: str  # Primary command name
    names: List[str]  # All primary names
    aliases: List[str]  # Extra aliases
    handler: CommandHandler
    category: str  # target, session, movement, ...
    description: str
    usage: str  # e.g. "<characterId>"


class CommandRouter:
    """
    Routes "/name args" input lines to registered handlers.

    Usage:
        router = CommandRouter()

        @router.register(names=["target"], category="target", usage="[token]")
        def handle_target(args):
            ...

        result = router.dispatch("target warden")
    """

    def __init__(self) -> None:
        self.commands: Dict[str, CommandMeta] = {}  # name or alias -> meta
        self.categories: Dict[str, List[str]] = {}  # category -> [primary names]

    def register(
        self,
        names: List[str],
        aliases: Optional[List[str]] = None,
        category: str = "misc",
        description: str = "",
        usage: str = "",
    ) -> Callable[[CommandHandler], CommandHandler]:
        """
        Decorator to register a command handler.

        Args:
            names: Command names; the first is the primary name
            aliases: Additional names shown in help as aliases
            category: Category for grouping help output
            description: Human-readable description
            usage: Argument usage text

        Returns:
            Decorator function
        """
        def decorator(handler: CommandHandler) -> CommandHandler:
            self.register_handler(
                primary_name=names[0],
                handler=handler,
                names=names,
                aliases=aliases,
                category=category,
                description=description,
                usage=usage,
            )
            return handler

        return decorator

    def register_handler(
        self,
        primary_name: str,
        handler: CommandHandler,
        names: Optional[List[str]] = None,
        aliases: Optional[List[str]] = None,
        category: str = "misc",
        description: str = "",
        usage: str = "",
    ) -> None:
        if names is None:
            names = [primary_name]

        meta = CommandMeta(
            name=primary_name,
            names=list(names),
            aliases=list(aliases or []),
            handler=handler,
            category=category,
            description=description,
            usage=usage,
        )
        for name in [*meta.names, *meta.aliases]:
            self.commands[name.lower()] = meta

        if category not in self.categories:
            self.categories[category] = []
        if primary_name not in self.categories[category]:
            self.categories[category].append(primary_name)

    def dispatch(self, raw_command: str) -> CommandResult:
        """
        Parse and dispatch a command line (leading "/" optional).

        Args:
            raw_command: e.g. "/auth guest Wanderer"

        Returns:
            The handler's result; unknown commands yield a single line
        """
        raw = raw_command.strip()
        if raw.startswith("/"):
            raw = raw[1:]
        if not raw:
            return CommandResult()

        parts = raw.split(maxsplit=1)
        cmd_name = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        meta = self.commands.get(cmd_name)
        if meta is None:
            return CommandResult().say(f"Unknown command: {cmd_name}")

        logger.debug("Dispatching /%s", meta.name)
        try:
            return meta.handler(args)
        except Exception:
            logger.exception("Command /%s failed", cmd_name)
            return CommandResult(lines=[error_line("Something went wrong executing that command.")])

    def help_lines(self, category: Optional[str] = None) -> List[LogLine]:
        """
        Help text for registered commands.

        Args:
            category: Specific category to list, or None for all
        """
        lines = [system_line("Client commands:")]

        cats = [category] if category else sorted(self.categories)
        for cat in cats:
            if cat not in self.categories:
                continue
            lines.append(system_line(f"{cat.title()}:"))
            for cmd_name in sorted(self.categories[cat]):
                meta = self.commands[cmd_name.lower()]
                usage = f"/{cmd_name} {meta.usage}" if meta.usage else f"/{cmd_name}"
                if meta.aliases:
                    usage += f" (aliases: {', '.join('/' + a for a in meta.aliases)})"
                text = f"  {usage}"
                if meta.description:
                    text += f" - {meta.description}"
                lines.append(system_line(text))

        return lines
