"""
AI replies for productbot.

Flow:
1. Decide whether a message should get an AI reply (mention or trigger keyword)
2. Check the per-user rate limit
3. Build the prompt: system prompt + matched knowledge context + user text
4. Call the completion API with a timeout
5. Send the answer in platform-sized chunks
"""

import asyncio
import re

from loguru import logger

from productbot.auto_reply.chunker import DISCORD_MAX_LENGTH, split_response
from productbot.auto_reply.commands import CommandContext, CommandResult
from productbot.auto_reply.rate_limit import RateLimiter
from productbot.errors import CompletionApiError
from productbot.knowledge.context import ContextResolver
from productbot.knowledge.store import KnowledgeStore
from productbot.providers.base import LLMProvider

MENTION_PATTERN = re.compile(r"<@!?\d+>")

DEFAULT_SYSTEM_PROMPT = """You are a helpful assistant for our company, specializing in our products and services.

HARD RULES:
- Only discuss the company and its products
- Always use the correct URLs from the links section
- When users ask for a specific website, ONLY provide that specific website
- Never invent facts: only use data from the knowledge base
- Always be professional, helpful, and focused on our products

Your personality: Professional, knowledgeable, and focused on helping users understand and use our products effectively."""

ERROR_REPLY = "❌ Sorry, I encountered an error processing your request."


class AIResponder:
    """
    Generates AI answers grounded in the knowledge store.

    handle() never raises; every outcome is returned as a CommandResult and
    the user always gets a reply.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        provider: LLMProvider | None,
        rate_limiter: RateLimiter,
        model: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
        max_message_length: int = DISCORD_MAX_LENGTH,
        trigger_keywords: list[str] | None = None,
        personality: str = "",
        context_resolver: ContextResolver | None = None,
    ):
        self.store = store
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.max_message_length = max_message_length
        self.trigger_keywords = [k.lower() for k in (trigger_keywords or ["help", "ai"])]
        self.personality = personality
        self.context_resolver = context_resolver or ContextResolver(store)

    @property
    def is_configured(self) -> bool:
        return self.provider is not None

    def should_respond(self, text: str, mentioned: bool, is_guild: bool) -> bool:
        """Check if a message should trigger an AI reply."""
        if not self.is_configured or not is_guild:
            return False

        if mentioned:
            return True

        lowered = (text or "").lower()
        return any(keyword in lowered for keyword in self.trigger_keywords)

    def get_system_prompt(self) -> str:
        """Bundle prompt, then configured personality, then the built-in default."""
        return self.store.get_system_prompt() or self.personality or DEFAULT_SYSTEM_PROMPT

    @staticmethod
    def clean_message(text: str) -> str:
        """Strip user mentions from a message."""
        return MENTION_PATTERN.sub("", text or "").strip()

    def build_system_prompt(self, user_text: str) -> str:
        """System prompt with the matching knowledge context appended."""
        return self.get_system_prompt() + self.context_resolver.build_context(user_text)

    async def generate(self, text: str) -> str:
        """
        Generate an AI answer for a user message.

        Raises:
            CompletionApiError: Provider missing, failed or timed out.
            NoContentGenerated: Provider returned an empty answer.
        """
        if self.provider is None:
            raise CompletionApiError("AI provider not configured")

        user_text = self.clean_message(text)
        system_prompt = self.build_system_prompt(user_text)

        try:
            return await asyncio.wait_for(
                self.provider.complete(
                    system_prompt,
                    user_text,
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise CompletionApiError(
                f"Completion API timed out after {self.timeout_seconds}s"
            ) from e

    async def handle(self, context: CommandContext, text: str) -> CommandResult:
        """
        Answer a message with AI, replying through the context's transport.

        Args:
            context: Reply context (user, channel, transport).
            text: Raw message text.

        Returns:
            CommandResult describing the outcome.
        """
        if not self.is_configured:
            return CommandResult.fail("AI provider not configured")

        if not context.is_guild:
            return CommandResult.fail("AI responses only available in servers")

        try:
            limit = self.rate_limiter.process_message(context.user_id, text)
            if limit.should_rate_limit:
                await context.reply(
                    f"⏳ Please wait {limit.remaining_seconds} seconds before asking again."
                )
                return CommandResult.fail(limit.reason)

            try:
                answer = await self.generate(text)
            except CompletionApiError as e:
                logger.error(f"AI response error for {context.user_id}: {e}")
                await context.reply(ERROR_REPLY)
                return CommandResult.fail(str(e))

            chunks = split_response(answer, self.max_message_length)
            for i, chunk in enumerate(chunks):
                if i == 0:
                    await context.reply(chunk)
                else:
                    await context.send(chunk)

            logger.debug(f"AI reply sent to {context.user_id} in {len(chunks)} chunk(s)")
            return CommandResult.ok()

        except Exception as e:
            logger.error(f"AI response failed: {e}")
            return CommandResult.fail(f"AI response failed: {e}")
