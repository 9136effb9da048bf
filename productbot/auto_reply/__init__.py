"""
Auto-reply system for productbot.

Provides message handling:
- Prefixed command parsing and dispatch
- Knowledge-backed command handlers
- AI replies with per-user rate limiting
- Chunking for platform message limits
"""

from productbot.auto_reply.commands import (
    Command,
    CommandContext,
    CommandDispatcher,
    CommandResult,
    parse_command,
)
from productbot.auto_reply.chunker import split_response
from productbot.auto_reply.rate_limit import RateLimiter, RateLimitResult
from productbot.auto_reply.responder import AIResponder
from productbot.auto_reply.dispatch import MessageRouter

__all__ = [
    # Commands
    "Command",
    "CommandContext",
    "CommandDispatcher",
    "CommandResult",
    "parse_command",
    # Chunking
    "split_response",
    # Rate limiting
    "RateLimiter",
    "RateLimitResult",
    # AI
    "AIResponder",
    # Routing
    "MessageRouter",
]
