"""
Command detection and dispatch for productbot.

Supports:
- Prefixed text commands (!about, !website ...)
- Command registry with handlers and aliases
- Failure isolation: a broken handler never takes the bot down
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from productbot.errors import UnknownCommand

DEFAULT_PREFIX = "!"

# Transport callable: sends one message of text
Sender = Callable[[str], Awaitable[None]]


@dataclass
class Command:
    """A parsed command."""
    name: str
    arguments: list[str] = field(default_factory=list)
    raw: str = ""

    @property
    def arg(self) -> str:
        """Get first argument or empty string."""
        return self.arguments[0] if self.arguments else ""

    @property
    def args_str(self) -> str:
        """Get all arguments as a single string."""
        return " ".join(self.arguments)


@dataclass
class CommandResult:
    """Outcome of a command or AI reply."""
    success: bool
    reason: str = ""

    @classmethod
    def ok(cls) -> "CommandResult":
        return cls(success=True)

    @classmethod
    def fail(cls, reason: str) -> "CommandResult":
        return cls(success=False, reason=reason)


async def _discard(text: str) -> None:
    logger.debug(f"No transport attached, dropping reply ({len(text)} chars)")


@dataclass
class CommandContext:
    """
    Everything a handler needs to answer.

    `reply` answers the triggering message, `send` posts a follow-up message
    to the same channel.
    """
    user_id: str = ""
    channel_id: str = ""
    is_guild: bool = True
    reply: Sender = _discard
    send: Sender = _discard
    metadata: dict[str, Any] = field(default_factory=dict)


# Type alias for command handlers
CommandHandler = Callable[[Command, CommandContext], Awaitable[CommandResult | None]]


def parse_command(text: str, prefix: str = DEFAULT_PREFIX) -> Command | None:
    """
    Parse a prefixed command from text.

    Examples:
        !help -> Command(name="help")
        !About us -> Command(name="about", arguments=["us"])

    Args:
        text: Message text.
        prefix: Single-character command prefix.

    Returns:
        Parsed Command or None if the text is not a command.
    """
    text = (text or "").strip()

    if not prefix or not text.startswith(prefix):
        return None

    parts = text[len(prefix):].split()
    if not parts:
        return None

    return Command(name=parts[0].lower(), arguments=parts[1:], raw=text)


class CommandDispatcher:
    """
    Maps command names to handlers and runs them.

    dispatch() never raises: unknown commands and handler errors are
    reported to the user and returned as failed CommandResults.
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.prefix = prefix
        self._handlers: dict[str, CommandHandler] = {}
        self._aliases: dict[str, str] = {}
        self._help: dict[str, str] = {}

        # Stats
        self._dispatched_count = 0
        self._error_count = 0

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str = "",
        aliases: list[str] | None = None,
    ) -> None:
        """
        Register a command handler. Re-registering a name replaces it.

        Args:
            name: Primary command name.
            handler: Async function to handle the command.
            help_text: Help text for the command.
            aliases: Alternative names for the command.
        """
        name = name.lower()
        self._handlers[name] = handler
        if help_text:
            self._help[name] = help_text

        if aliases:
            for alias in aliases:
                self._aliases[alias.lower()] = name

    def unregister(self, name: str) -> bool:
        """Remove a command and its aliases. Returns True if it existed."""
        name = name.lower()
        if self._handlers.pop(name, None) is None:
            return False

        self._help.pop(name, None)
        self._aliases = {a: c for a, c in self._aliases.items() if c != name}
        return True

    def get_handler(self, command_name: str) -> CommandHandler | None:
        """Get handler for a command."""
        command_name = command_name.lower()
        if command_name in self._handlers:
            return self._handlers[command_name]

        canonical = self._aliases.get(command_name)
        if canonical:
            return self._handlers.get(canonical)

        return None

    def has_command(self, command_name: str) -> bool:
        return self.get_handler(command_name) is not None

    def _resolve(self, command_name: str) -> CommandHandler:
        handler = self.get_handler(command_name)
        if handler is None:
            raise UnknownCommand(command_name)
        return handler

    async def dispatch(
        self,
        name: str,
        context: CommandContext,
        arguments: list[str] | None = None,
    ) -> CommandResult:
        """
        Run the handler registered for `name`.

        Args:
            name: Command name (case-insensitive).
            context: Reply context for the handler.
            arguments: Optional command arguments.

        Returns:
            The handler's result, or a failed result for unknown commands
            and handler errors.
        """
        self._dispatched_count += 1

        try:
            handler = self._resolve(name)
        except UnknownCommand:
            logger.info(f"Unknown command: {name}")
            await self._safe_reply(context, f"❌ Unknown command: `{name}`")
            return CommandResult.fail("Unknown command")

        command = Command(name=name.lower(), arguments=list(arguments or []))

        try:
            result = await handler(command, context)
        except Exception as e:
            self._error_count += 1
            logger.error(f"Error processing command {name}: {e}")
            await self._safe_reply(
                context, "❌ An error occurred while processing your command."
            )
            return CommandResult.fail(str(e))

        result = result or CommandResult.ok()
        logger.info(f"Command {name} executed: {'Success' if result.success else 'Failed'}")
        return result

    async def dispatch_text(self, text: str, context: CommandContext) -> CommandResult | None:
        """
        Parse and dispatch a raw message.

        Returns:
            None when the text is not a command, otherwise the dispatch result.
        """
        command = parse_command(text, self.prefix)
        if command is None:
            return None
        return await self.dispatch(command.name, context, command.arguments)

    async def _safe_reply(self, context: CommandContext, text: str) -> None:
        try:
            await context.reply(text)
        except Exception as e:
            logger.error(f"Failed to send command reply: {e}")

    def get_help(self, command_name: str = "") -> str:
        """Get help text for a command or all commands."""
        if command_name:
            canonical = self._aliases.get(command_name, command_name)
            return self._help.get(canonical, f"No help for: {command_name}")

        lines = ["Available commands:"]
        for name, help_text in sorted(self._help.items()):
            lines.append(f"  {self.prefix}{name} - {help_text}")
        return "\n".join(lines)

    def list_commands(self) -> list[str]:
        """List all registered commands."""
        return sorted(self._handlers)

    def get_stats(self) -> dict[str, Any]:
        """Get dispatcher statistics."""
        return {
            "registered": len(self._handlers),
            "dispatched_count": self._dispatched_count,
            "error_count": self._error_count,
        }
