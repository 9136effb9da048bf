"""
Message routing for productbot auto-reply.

Routes each incoming message:
1. Prefixed commands go to the CommandDispatcher
2. Mentions and trigger keywords go to the AIResponder
3. Everything else is ignored
"""

from typing import Any

from loguru import logger

from productbot.auto_reply.commands import (
    CommandContext,
    CommandDispatcher,
    CommandResult,
    parse_command,
)
from productbot.auto_reply.responder import AIResponder


class MessageRouter:
    """
    Entry point for every inbound message.

    route() never raises; outcomes are returned as CommandResults (or None
    when the message is not for the bot).
    """

    def __init__(self, dispatcher: CommandDispatcher, responder: AIResponder):
        self.dispatcher = dispatcher
        self.responder = responder

        # Stats
        self._command_count = 0
        self._ai_count = 0
        self._ignored_count = 0
        self._failure_count = 0

    async def route(
        self,
        text: str,
        context: CommandContext,
        mentioned: bool = False,
    ) -> CommandResult | None:
        """
        Route a message to a command handler or the AI responder.

        Args:
            text: Raw message content.
            context: Reply context.
            mentioned: Whether the bot was mentioned.

        Returns:
            The handler result, or None if the message was ignored.
        """
        try:
            command = parse_command(text, self.dispatcher.prefix)
            if command is not None:
                self._command_count += 1
                result = await self.dispatcher.dispatch(
                    command.name, context, command.arguments
                )
            elif self.responder.should_respond(text, mentioned, context.is_guild):
                self._ai_count += 1
                result = await self.responder.handle(context, text)
            else:
                self._ignored_count += 1
                return None
        except Exception as e:
            logger.error(f"Error handling message: {e}")
            result = CommandResult.fail(str(e))

        if not result.success:
            self._failure_count += 1
        logger.debug(f"Message processed: {'Success' if result.success else 'Failed'}")
        return result

    def get_stats(self) -> dict[str, Any]:
        """Get routing statistics."""
        return {
            "command_count": self._command_count,
            "ai_count": self._ai_count,
            "ignored_count": self._ignored_count,
            "failure_count": self._failure_count,
            "dispatcher": self.dispatcher.get_stats(),
            "rate_limiter": self.responder.rate_limiter.get_stats(),
        }
