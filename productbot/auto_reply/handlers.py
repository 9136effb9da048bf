"""
Built-in command handlers backed by the knowledge store.
"""

import time

from loguru import logger

from productbot.auto_reply.chunker import DISCORD_MAX_LENGTH, split_response
from productbot.auto_reply.commands import (
    Command,
    CommandContext,
    CommandDispatcher,
    CommandHandler,
    CommandResult,
)
from productbot.knowledge.store import KnowledgeStore

# Never replaced by bundle commands
BUILTIN_COMMANDS = ("help", "status")

# Always registered, even when the bundle does not map them yet
CORE_KNOWLEDGE_COMMANDS = {
    "about": "Company information",
    "website": "Website links",
}


def product_command_name(product: str) -> str:
    """'ZenThink AI' -> 'zenthinkai'."""
    return "".join(product.lower().split())


async def send_chunked(context: CommandContext, text: str, max_length: int) -> None:
    """Reply with the first chunk and send the rest as follow-ups."""
    for i, chunk in enumerate(split_response(text, max_length)):
        if i == 0:
            await context.reply(chunk)
        else:
            await context.send(chunk)


def make_knowledge_handler(
    store: KnowledgeStore,
    max_length: int = DISCORD_MAX_LENGTH,
) -> CommandHandler:
    """Handler that answers with the command's resolved knowledge response."""

    async def handle(cmd: Command, ctx: CommandContext) -> CommandResult:
        response = store.get_command_response(cmd.name)
        if not response:
            await ctx.reply(f"❌ Unable to load {cmd.name} information at this time.")
            return CommandResult.fail("No response available")

        await send_chunked(ctx, response, max_length)
        return CommandResult.ok()

    handle.is_knowledge_command = True
    return handle


def is_knowledge_handler(handler: CommandHandler | None) -> bool:
    return getattr(handler, "is_knowledge_command", False)


def register_knowledge_commands(
    dispatcher: CommandDispatcher,
    store: KnowledgeStore,
    max_length: int = DISCORD_MAX_LENGTH,
) -> list[str]:
    """
    Register one handler per knowledge command.

    Covers the core commands, every command in the bundle's commands_map
    and one command per priority product. Commands added to the bundle
    after startup are picked up on the next call; knowledge commands no
    longer in the bundle are removed.

    Returns:
        Names of the registered commands.
    """
    handler = make_knowledge_handler(store, max_length)
    names = dict(CORE_KNOWLEDGE_COMMANDS)
    for name in store.get_commands_map():
        names.setdefault(name.lower(), f"{name} information")
    for product in store.get_priority_products():
        names.setdefault(product_command_name(product), f"{product} information")

    for name in BUILTIN_COMMANDS:
        names.pop(name, None)

    for stale in dispatcher.list_commands():
        if stale not in names and is_knowledge_handler(dispatcher.get_handler(stale)):
            dispatcher.unregister(stale)
            logger.info(f"Removed knowledge command: {stale}")

    for name, help_text in names.items():
        dispatcher.register(name, handler, help_text)

    return sorted(names)


def build_help_text(dispatcher: CommandDispatcher, store: KnowledgeStore) -> str:
    """Help listing general and per-product commands."""
    prefix = dispatcher.prefix
    lines = [
        "**📋 General Commands**",
        f"`{prefix}about` - Company information",
        f"`{prefix}help` - Show this help",
        f"`{prefix}website` - Website links",
    ]

    products = store.get_priority_products()
    if products:
        lines.append("")
        lines.append("**🚀 Product Commands**")
        for product in products:
            lines.append(f"`{prefix}{product_command_name(product)}` - {product} information")

    lines.append("")
    lines.append("**📊 Update Commands**")
    if dispatcher.has_command("updates"):
        lines.append(f"`{prefix}updates` - Latest updates")
    lines.append(f"`{prefix}status` - System status")
    return "\n".join(lines)


def format_uptime(seconds: float) -> str:
    """Format seconds as 'Xh Ym'."""
    seconds = int(seconds)
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def register_builtin_commands(
    dispatcher: CommandDispatcher,
    store: KnowledgeStore,
    started_at: float | None = None,
) -> None:
    """Register help and status."""
    started = started_at if started_at is not None else time.time()

    async def handle_help(cmd: Command, ctx: CommandContext) -> CommandResult:
        await ctx.reply(build_help_text(dispatcher, store))
        return CommandResult.ok()

    async def handle_status(cmd: Command, ctx: CommandContext) -> CommandResult:
        kb_status = "✅ Loaded" if store.is_loaded() else "❌ Not loaded"
        await ctx.reply(
            "**📊 System Status**\n"
            "🤖 Bot Status: ✅ Online and operational\n"
            f"📚 Knowledge Base: {kb_status}\n"
            f"⏱️ Uptime: {format_uptime(time.time() - started)}"
        )
        return CommandResult.ok()

    dispatcher.register("help", handle_help, "Show this help", ["?", "h"])
    dispatcher.register("status", handle_status, "System status")
