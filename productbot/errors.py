"""
Error types for productbot.

Only BundleLoadError is ever allowed to escape to the caller, and only
during the initial knowledge load. Everything else is converted into a
CommandResult at the dispatch/responder boundary.
"""


class ProductBotError(Exception):
    """Base class for productbot errors."""


class BundleLoadError(ProductBotError):
    """The knowledge bundle is missing, unreadable or malformed."""


class UnknownCommand(ProductBotError):
    """No handler is registered for the requested command."""

    def __init__(self, name: str):
        super().__init__(f"Unknown command: {name}")
        self.name = name


class RateLimited(ProductBotError):
    """The user has to wait before the next AI request."""

    def __init__(self, remaining_cooldown_ms: int, reason: str = "Rate limited"):
        super().__init__(reason)
        self.remaining_cooldown_ms = remaining_cooldown_ms
        self.reason = reason

    @property
    def remaining_seconds(self) -> int:
        """Remaining wait rounded up to whole seconds."""
        return -(-self.remaining_cooldown_ms // 1000)


class CompletionApiError(ProductBotError):
    """The completion API failed or timed out."""


class NoContentGenerated(CompletionApiError):
    """The completion API answered with an empty message."""
