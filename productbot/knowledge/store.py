"""
Knowledge store for productbot.

Holds the active knowledge bundle and keeps it fresh:
- Initial load fails loudly (BundleLoadError)
- Periodic hot-reload when the file's modification time moves forward
- Failed reloads keep serving the previous bundle
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable

from loguru import logger

from productbot.errors import BundleLoadError
from productbot.knowledge.bundle import Bundle, interpolate_links, parse_bundle

MtimeReader = Callable[[Path], float]
Sleeper = Callable[[float], Awaitable[None]]
ReloadCallback = Callable[[Bundle], None]

DEFAULT_REFRESH_INTERVAL = 15 * 60  # seconds


def _file_mtime(path: Path) -> float:
    return path.stat().st_mtime


class KnowledgeStore:
    """
    Read-mostly store for the knowledge bundle.

    The bundle reference is only ever replaced with a fully parsed and
    interpolated Bundle, so readers see either the old or the new one.
    """

    def __init__(
        self,
        path: Path | str,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        load_timeout: float = 30.0,
        mtime_reader: MtimeReader | None = None,
        sleep: Sleeper | None = None,
    ):
        """
        Initialize the store. Nothing is read until load() is called.

        Args:
            path: Path to the JSON bundle.
            refresh_interval: Seconds between modification-time checks.
            load_timeout: Upper bound for a background reload.
            mtime_reader: Returns the file's modification time (injectable clock).
            sleep: Awaitable sleep used by the refresh loop (injectable clock).
        """
        self.path = Path(path)
        self.refresh_interval = refresh_interval
        self.load_timeout = load_timeout
        self._mtime_reader = mtime_reader or _file_mtime
        self._sleep = sleep or asyncio.sleep

        self._bundle: Bundle | None = None
        self._command_index: dict[str, list[str]] = {}
        self._last_modified: float | None = None
        self._refresh_task: asyncio.Task | None = None
        self._reload_count = 0
        self._on_reload: list[ReloadCallback] = []

    def on_reload(self, callback: ReloadCallback) -> None:
        """Register a callback run after every successful (re)load."""
        self._on_reload.append(callback)

    def _activate(self, bundle: Bundle, mtime: float) -> None:
        """Swap in a new bundle and notify listeners."""
        # Command names are case-insensitive
        self._command_index = {
            name.lower(): keys for name, keys in bundle.commands_map.items()
        }
        self._bundle = bundle
        self._last_modified = mtime
        self._reload_count += 1

        for callback in self._on_reload:
            try:
                callback(bundle)
            except Exception as e:
                logger.error(f"Knowledge reload callback failed: {e}")

    @property
    def bundle(self) -> Bundle | None:
        """The active bundle, or None before the first successful load."""
        return self._bundle

    @property
    def last_modified(self) -> float | None:
        """Modification time of the file behind the active bundle."""
        return self._last_modified

    def _read_bundle(self) -> Bundle:
        """Read, validate and interpolate the bundle file."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BundleLoadError(f"Cannot read knowledge bundle {self.path}: {e}") from e

        return interpolate_links(parse_bundle(raw))

    def load(self) -> Bundle:
        """
        Load the bundle synchronously and make it active.

        Raises:
            BundleLoadError: If the file is missing, unreadable or malformed.
                The previously active bundle (if any) is left in place.
        """
        try:
            mtime = self._mtime_reader(self.path)
        except OSError as e:
            raise BundleLoadError(f"Knowledge bundle not found at {self.path}: {e}") from e

        bundle = self._read_bundle()
        self._activate(bundle, mtime)

        logger.info(
            f"Knowledge bundle loaded: {len(bundle.responses)} responses, "
            f"{len(bundle.commands_map)} commands"
        )
        return bundle

    async def refresh(self) -> bool:
        """
        Reload the bundle if the file changed since the last load.

        Never raises; failures are logged and the current bundle stays active.

        Returns:
            True if a new bundle was loaded.
        """
        try:
            mtime = self._mtime_reader(self.path)
        except OSError as e:
            logger.error(f"Error during hot-reload check: {e}")
            return False

        if self._last_modified is not None and mtime <= self._last_modified:
            return False

        logger.info("Hot-reloading knowledge bundle...")
        try:
            bundle = await asyncio.wait_for(
                asyncio.to_thread(self._read_bundle),
                timeout=self.load_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Knowledge bundle reload timed out after {self.load_timeout}s")
            return False
        except BundleLoadError as e:
            logger.error(f"Failed to reload knowledge bundle, keeping previous one: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error reloading knowledge bundle: {e}")
            return False

        self._activate(bundle, mtime)
        logger.info("Knowledge bundle reloaded")
        return True

    def start(self) -> None:
        """Start the background refresh task."""
        if self._refresh_task and not self._refresh_task.done():
            return

        self._refresh_task = asyncio.create_task(self._refresh_loop())
        logger.info(f"Knowledge refresh every {self.refresh_interval:.0f}s")

    async def stop(self) -> None:
        """Stop the background refresh task."""
        if self._refresh_task:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None

    async def _refresh_loop(self) -> None:
        """Background task checking the bundle file on a fixed interval."""
        while True:
            await self._sleep(self.refresh_interval)
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Knowledge refresh loop error: {e}")

    @property
    def is_refreshing(self) -> bool:
        """Whether the background refresh task is running."""
        return self._refresh_task is not None and not self._refresh_task.done()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def is_loaded(self) -> bool:
        """True once the first load has succeeded."""
        return self._bundle is not None

    def get_response(self, key: str) -> str:
        """Get response text by key, or an empty string."""
        if not key or not isinstance(key, str):
            logger.warning(f"Invalid response key provided: {key!r}")
            return ""

        bundle = self._bundle
        if bundle is None:
            return ""

        response = bundle.responses.get(key, "")
        logger.debug(f"Getting response for key: {key}, length: {len(response)}")
        return response

    def get_command_response(self, command: str) -> str:
        """
        Resolve a command to its concatenated response.

        Every key mapped to the command is looked up in order, empty results
        are dropped and the rest are joined with a blank line. The command
        name is matched case-insensitively.
        """
        keys = self._command_index.get((command or "").lower())
        if not keys:
            logger.debug(f"No response keys found for command: {command}")
            return ""

        responses = [text for text in (self.get_response(k) for k in keys) if text]
        return "\n\n".join(responses)

    def get_system_prompt(self) -> str:
        return self._bundle.system_prompt if self._bundle else ""

    def get_commands_map(self) -> dict[str, list[str]]:
        return dict(self._bundle.commands_map) if self._bundle else {}

    def get_priority_products(self) -> list[str]:
        return list(self._bundle.meta.priority_products) if self._bundle else []

    def get_links(self) -> dict[str, str]:
        return dict(self._bundle.links) if self._bundle else {}

    def get_available_responses(self) -> list[str]:
        return list(self._bundle.responses) if self._bundle else []

    def get_missing_keys(self) -> dict[str, list[str]]:
        """Response keys referenced by commands_map that do not exist."""
        if not self._bundle:
            return {}

        missing = {}
        for command, keys in self._bundle.commands_map.items():
            absent = [k for k in keys if k not in self._bundle.responses]
            if absent:
                missing[command] = absent
        return missing

    def get_stats(self) -> dict:
        """Get store statistics."""
        return {
            "loaded": self.is_loaded(),
            "path": str(self.path),
            "last_modified": self._last_modified,
            "reload_count": self._reload_count,
            "refreshing": self.is_refreshing,
            "responses": len(self._bundle.responses) if self._bundle else 0,
            "commands": len(self._bundle.commands_map) if self._bundle else 0,
        }
