"""CLI commands for productbot."""

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from productbot import __version__, __logo__

app = typer.Typer(
    name="productbot",
    help=f"{__logo__} productbot - knowledge-base product assistant",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} productbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
):
    """productbot - knowledge-base product assistant."""
    pass


def _setup_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _load(config_path: Path | None, bundle: Path | None):
    from productbot.config.loader import load_config

    config = load_config(config_path)
    if bundle:
        config.knowledge.bundle_path = str(bundle)
    return config


def _create_bot_or_exit(config, load: bool = True):
    from productbot.app import create_bot
    from productbot.errors import BundleLoadError

    try:
        return create_bot(config, load=load)
    except BundleLoadError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


class _ConsoleTransport:
    """Prints replies instead of sending them to a chat platform."""

    def __init__(self):
        self.messages: list[str] = []

    async def reply(self, text: str) -> None:
        self.messages.append(text)
        console.print(text)
        console.print("[dim]---[/dim]")

    async def send(self, text: str) -> None:
        await self.reply(text)


# ============================================================================
# Gateway
# ============================================================================


@app.command()
def run(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    bundle: Path = typer.Option(None, "--bundle", "-b", help="Knowledge bundle path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Start the Discord bot."""
    from productbot.channels.discord import DiscordChannel

    _setup_logging(verbose)
    config = _load(config_path, bundle)

    if not config.discord.token:
        console.print("[red]Error: No Discord token configured.[/red]")
        console.print("Set PRODUCTBOT_DISCORD__TOKEN or discord.token in ~/.productbot/config.json")
        raise typer.Exit(1)

    bot = _create_bot_or_exit(config)
    channel = DiscordChannel(
        config.discord,
        bot.router,
        max_message_length=config.ai.max_message_length,
    )

    console.print(f"{__logo__} Starting productbot...")
    console.print(f"[green]✓[/green] Knowledge: {len(bot.store.get_available_responses())} responses")
    console.print(f"[green]✓[/green] Commands: {', '.join(bot.dispatcher.list_commands())}")
    if bot.responder.is_configured:
        console.print(f"[green]✓[/green] AI replies: {config.ai.model}")
    else:
        console.print("[yellow]Warning: AI replies disabled (no API key)[/yellow]")

    async def serve():
        await bot.start()
        try:
            await channel.start()
        finally:
            await bot.stop()
            if not channel.client.is_closed():
                await channel.stop()

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# One-shot commands
# ============================================================================


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    bundle: Path = typer.Option(None, "--bundle", "-b", help="Knowledge bundle path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Ask the AI a question using the knowledge base."""
    from productbot.auto_reply.commands import CommandContext

    _setup_logging(verbose)
    config = _load(config_path, bundle)
    bot = _create_bot_or_exit(config)

    if not bot.responder.is_configured:
        console.print("[red]Error: No AI provider API key configured.[/red]")
        raise typer.Exit(1)

    transport = _ConsoleTransport()
    context = CommandContext(user_id="cli", channel_id="cli", reply=transport.reply, send=transport.send)

    result = asyncio.run(bot.responder.handle(context, question))
    if not result.success:
        console.print(f"[red]Failed: {result.reason}[/red]")
        raise typer.Exit(1)


@app.command()
def command(
    name: str = typer.Argument(..., help="Command name, without prefix"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    bundle: Path = typer.Option(None, "--bundle", "-b", help="Knowledge bundle path"),
):
    """Run a bot command and print its reply."""
    from productbot.auto_reply.commands import CommandContext

    _setup_logging(False)
    config = _load(config_path, bundle)
    bot = _create_bot_or_exit(config)

    transport = _ConsoleTransport()
    context = CommandContext(user_id="cli", channel_id="cli", reply=transport.reply, send=transport.send)

    result = asyncio.run(bot.dispatcher.dispatch(name, context))
    if not result.success:
        raise typer.Exit(1)


# ============================================================================
# Knowledge Commands
# ============================================================================


kb_app = typer.Typer(help="Inspect the knowledge bundle")
app.add_typer(kb_app, name="kb")


@kb_app.command("check")
def kb_check(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    bundle: Path = typer.Option(None, "--bundle", "-b", help="Knowledge bundle path"),
):
    """Validate the knowledge bundle."""
    from productbot.errors import BundleLoadError
    from productbot.knowledge.store import KnowledgeStore

    config = _load(config_path, bundle)
    store = KnowledgeStore(config.bundle_path)

    try:
        store.load()
    except BundleLoadError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Loaded {store.path}")
    console.print(f"  Responses: {len(store.get_available_responses())}")
    console.print(f"  Links: {len(store.get_links())}")
    console.print(f"  Commands: {len(store.get_commands_map())}")
    console.print(f"  Priority products: {', '.join(store.get_priority_products()) or '-'}")
    console.print(f"  System prompt: {'yes' if store.get_system_prompt() else 'no'}")

    missing = store.get_missing_keys()
    if missing:
        console.print("\n[yellow]Commands referencing missing responses:[/yellow]")
        for cmd, keys in sorted(missing.items()):
            console.print(f"  {cmd}: {', '.join(keys)}")

    unresolved = [
        key for key in store.get_available_responses()
        if "{links." in store.get_response(key)
    ]
    if unresolved:
        console.print("\n[yellow]Responses with unresolved link placeholders:[/yellow]")
        for key in unresolved:
            console.print(f"  {key}")


@kb_app.command("list")
def kb_list(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    bundle: Path = typer.Option(None, "--bundle", "-b", help="Knowledge bundle path"),
):
    """List commands and the responses they resolve to."""
    from productbot.errors import BundleLoadError
    from productbot.knowledge.store import KnowledgeStore

    config = _load(config_path, bundle)
    store = KnowledgeStore(config.bundle_path)

    try:
        store.load()
    except BundleLoadError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Knowledge Commands")
    table.add_column("Command", style="cyan")
    table.add_column("Response keys")
    table.add_column("Length", justify="right")

    for cmd, keys in sorted(store.get_commands_map().items()):
        table.add_row(
            f"{config.commands.prefix}{cmd}",
            ", ".join(keys),
            str(len(store.get_command_response(cmd))),
        )

    console.print(table)


if __name__ == "__main__":
    app()
