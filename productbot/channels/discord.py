"""
Discord channel integration for productbot.

Uses discord.py with support for:
- Prefixed text commands
- AI replies on mentions and trigger keywords
- Guild/channel/user allowlists
- Message length limits
"""

import discord
from loguru import logger

from productbot.auto_reply.chunker import DISCORD_MAX_LENGTH, split_response
from productbot.auto_reply.commands import CommandContext, CommandResult
from productbot.auto_reply.dispatch import MessageRouter
from productbot.config.schema import DiscordConfig


class DiscordChannel:
    """
    Discord channel implementation using discord.py.

    Configuration (via DiscordConfig):
    - token: Bot token from Discord Developer Portal
    - allow_guilds: List of allowed guild IDs (empty = all)
    - allow_channels: List of allowed channel IDs (empty = all)
    - allow_users: List of allowed user IDs (empty = all)
    """

    name = "discord"

    def __init__(
        self,
        config: DiscordConfig,
        router: MessageRouter,
        max_message_length: int = DISCORD_MAX_LENGTH,
    ):
        """
        Initialize Discord channel.

        Args:
            config: Discord configuration.
            router: Routes messages to commands or AI replies.
            max_message_length: Hard per-message ceiling.
        """
        self.config = config
        self.router = router
        self.max_message_length = max_message_length

        self.token = config.token
        self.allow_guilds = set(config.allow_guilds or [])
        self.allow_channels = set(config.allow_channels or [])
        self.allow_users = set(config.allow_users or [])

        intents = discord.Intents.default()
        intents.message_content = True
        intents.guild_messages = True

        self.client = discord.Client(intents=intents)
        self._running = False

        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Set up Discord event handlers."""

        @self.client.event
        async def on_ready():
            logger.info(f"Discord bot logged in as {self.client.user}")

        @self.client.event
        async def on_message(message: discord.Message):
            await self.handle_message(message)

    def _is_allowed_message(self, message: discord.Message) -> bool:
        """Check if message sender is allowed."""
        user_id = str(message.author.id)

        if self.allow_users and user_id not in self.allow_users:
            return False

        # Guild and channel allowlists do not apply to DMs
        if message.guild:
            guild_id = str(message.guild.id)
            if self.allow_guilds and guild_id not in self.allow_guilds:
                return False

            channel_id = str(message.channel.id)
            if self.allow_channels and channel_id not in self.allow_channels:
                return False

        return True

    def _is_mentioned(self, message: discord.Message) -> bool:
        user = self.client.user
        return user is not None and any(m.id == user.id for m in message.mentions)

    def build_context(self, message: discord.Message) -> CommandContext:
        """Wrap a Discord message into a transport-neutral reply context."""

        async def reply(text: str) -> None:
            for chunk in self._fit(text):
                await message.reply(chunk)

        async def send(text: str) -> None:
            for chunk in self._fit(text):
                await message.channel.send(chunk)

        return CommandContext(
            user_id=str(message.author.id),
            channel_id=str(message.channel.id),
            is_guild=message.guild is not None,
            reply=reply,
            send=send,
            metadata={
                "username": message.author.name,
                "display_name": message.author.display_name,
                "guild_id": str(message.guild.id) if message.guild else None,
                "message_id": str(message.id),
            },
        )

    def _fit(self, text: str) -> list[str]:
        """Enforce the message ceiling on anything we send."""
        if len(text) <= self.max_message_length:
            return [text]
        return split_response(text, self.max_message_length)

    async def handle_message(self, message: discord.Message) -> CommandResult | None:
        """Handle an incoming Discord message."""
        # Ignore own and other bots' messages
        if message.author == self.client.user or message.author.bot:
            return None

        if not self._is_allowed_message(message):
            return None

        if not message.content:
            return None

        return await self.router.route(
            message.content,
            self.build_context(message),
            mentioned=self._is_mentioned(message),
        )

    async def start(self) -> None:
        """Start the Discord bot."""
        if not self.token:
            logger.error("Discord token not configured")
            return

        logger.info("Starting Discord channel")
        self._running = True

        try:
            await self.client.start(self.token)
        except discord.DiscordException as e:
            logger.error(f"Discord bot error: {e}")
        finally:
            self._running = False

    async def stop(self) -> None:
        """Stop the Discord bot."""
        logger.info("Stopping Discord channel")
        self._running = False
        await self.client.close()

    @property
    def is_running(self) -> bool:
        """Check if the channel is running."""
        return self._running and self.client.is_ready()
