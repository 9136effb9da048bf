"""
Application factory for productbot.

Wires the knowledge store, command dispatcher, AI responder and message
router from a Config. The store is created once here and passed to every
consumer.
"""

import time
from dataclasses import dataclass

from loguru import logger

from productbot.auto_reply.commands import CommandDispatcher
from productbot.auto_reply.dispatch import MessageRouter
from productbot.auto_reply.handlers import (
    register_builtin_commands,
    register_knowledge_commands,
)
from productbot.auto_reply.rate_limit import RateLimiter
from productbot.auto_reply.responder import AIResponder
from productbot.config.schema import Config
from productbot.knowledge.store import KnowledgeStore
from productbot.providers.base import LLMProvider
from productbot.providers.litellm_provider import LiteLLMProvider


@dataclass
class BotApp:
    """All long-lived bot components."""
    config: Config
    store: KnowledgeStore
    dispatcher: CommandDispatcher
    responder: AIResponder
    router: MessageRouter

    async def start(self) -> None:
        """Start background tasks."""
        self.store.start()

    async def stop(self) -> None:
        """Stop background tasks."""
        await self.store.stop()


def create_provider(config: Config) -> LLMProvider | None:
    """Create the completion provider, or None when no API key is set."""
    if not config.has_api_key:
        logger.warning("No AI provider API key configured, AI replies disabled")
        return None

    return LiteLLMProvider(
        api_key=config.providers.api_key,
        api_base=config.providers.api_base,
        default_model=config.ai.model,
        fallback_models=config.ai.fallback_models,
        cooldown_seconds=config.providers.cooldown_seconds,
    )


def create_bot(
    config: Config,
    provider: LLMProvider | None = None,
    store: KnowledgeStore | None = None,
    rate_limiter: RateLimiter | None = None,
    load: bool = True,
) -> BotApp:
    """
    Build the bot from configuration.

    Args:
        config: productbot configuration.
        provider: Completion provider; created from config when omitted.
        store: Knowledge store; created from config when omitted.
        rate_limiter: Rate limiter; created from config when omitted.
        load: Load the knowledge bundle now.

    Raises:
        BundleLoadError: If load is True and the bundle cannot be loaded.
    """
    store = store or KnowledgeStore(
        config.bundle_path,
        refresh_interval=config.knowledge.refresh_interval_seconds,
        load_timeout=config.knowledge.load_timeout_seconds,
    )

    dispatcher = CommandDispatcher(prefix=config.commands.prefix)
    max_length = config.ai.max_message_length

    # Keep knowledge commands in sync with the bundle's commands_map
    store.on_reload(lambda _bundle: register_knowledge_commands(dispatcher, store, max_length))

    if load:
        store.load()

    register_knowledge_commands(dispatcher, store, max_length)
    register_builtin_commands(dispatcher, store, started_at=time.time())

    responder = AIResponder(
        store=store,
        provider=provider if provider is not None else create_provider(config),
        rate_limiter=rate_limiter or RateLimiter(
            max_messages=config.rate_limit.max_messages,
            window_seconds=config.rate_limit.window_seconds,
            cooldown_seconds=config.rate_limit.cooldown_seconds,
        ),
        model=config.ai.model,
        max_tokens=config.ai.max_tokens,
        temperature=config.ai.temperature,
        timeout_seconds=config.ai.timeout_seconds,
        max_message_length=max_length,
        trigger_keywords=config.ai.trigger_keywords,
        personality=config.ai.personality,
    )

    router = MessageRouter(dispatcher, responder)
    logger.info(f"Bot ready with commands: {', '.join(dispatcher.list_commands())}")

    return BotApp(
        config=config,
        store=store,
        dispatcher=dispatcher,
        responder=responder,
        router=router,
    )
