"""
Tests for the knowledge bundle and store.

Tests:
- Bundle parsing and validation
- Link interpolation
- Response accessors
- Hot-reload semantics with an injected clock
"""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock

from conftest import SAMPLE_BUNDLE, FakeClock, write_bundle
from productbot.errors import BundleLoadError
from productbot.knowledge.bundle import Bundle, interpolate_links, linkify, parse_bundle
from productbot.knowledge.store import KnowledgeStore


class TestBundleParsing:
    """Tests for parse_bundle."""

    def test_parses_all_sections(self):
        """Test that every section of the document is read."""
        bundle = parse_bundle(json.dumps(SAMPLE_BUNDLE))

        assert bundle.responses["contact"] == "Ask a moderator."
        assert bundle.links["website"] == "https://example.com"
        assert bundle.commands_map["about"] == ["about", "contact"]
        assert bundle.meta.priority_products == ["ZenThink AI", "Pump Pill Arena"]
        assert bundle.system_prompt == "You are the product assistant."

    def test_missing_sections_default_to_empty(self):
        """Test that an empty object is a valid bundle."""
        bundle = parse_bundle("{}")

        assert bundle.responses == {}
        assert bundle.links == {}
        assert bundle.commands_map == {}
        assert bundle.meta.priority_products == []
        assert bundle.system_prompt == ""

    def test_unknown_keys_are_ignored(self):
        """Test that extra top-level keys do not fail validation."""
        bundle = parse_bundle({"responses": {"a": "X"}, "version": 3})
        assert bundle.responses == {"a": "X"}

    def test_invalid_json_raises(self):
        """Test that malformed JSON is a BundleLoadError."""
        with pytest.raises(BundleLoadError):
            parse_bundle("{not json")

    def test_non_object_raises(self):
        """Test that a JSON array is rejected."""
        with pytest.raises(BundleLoadError):
            parse_bundle("[1, 2, 3]")

    def test_wrong_structure_raises(self):
        """Test that a commands_map value must be a list of keys."""
        with pytest.raises(BundleLoadError):
            parse_bundle({"commands_map": {"about": "about"}})

    def test_bundle_is_immutable(self):
        """Test that a parsed bundle cannot be reassigned."""
        bundle = parse_bundle({"system_prompt": "x"})
        with pytest.raises(Exception):
            bundle.system_prompt = "y"


class TestLinkInterpolation:
    """Tests for link placeholder replacement."""

    def test_known_placeholder_is_replaced(self):
        """Test that {links.foo} becomes the link value."""
        assert linkify("Go to {links.foo}", {"foo": "https://foo"}) == "Go to https://foo"

    def test_unknown_placeholder_is_kept_verbatim(self):
        """Test that an unresolvable placeholder stays visible."""
        assert linkify("Go to {links.bar}", {"foo": "https://foo"}) == "Go to {links.bar}"

    def test_empty_link_value_is_kept_verbatim(self):
        """Test that an empty link value does not blank the placeholder."""
        assert linkify("{links.foo}", {"foo": ""}) == "{links.foo}"

    def test_multiple_placeholders(self):
        """Test several placeholders in one text."""
        text = linkify("{links.a} and {links.b} and {links.c}", {"a": "A", "b": "B"})
        assert text == "A and B and {links.c}"

    def test_interpolate_returns_new_bundle(self):
        """Test that interpolation does not mutate the original bundle."""
        original = Bundle(responses={"x": "{links.site}"}, links={"site": "S"})
        result = interpolate_links(original)

        assert result.responses["x"] == "S"
        assert original.responses["x"] == "{links.site}"
        assert result is not original


class TestKnowledgeStoreLoad:
    """Tests for KnowledgeStore.load."""

    def test_not_loaded_before_load(self, bundle_path):
        """Test that constructing the store reads nothing."""
        store = KnowledgeStore(bundle_path)
        assert store.is_loaded() is False
        assert store.bundle is None

    def test_load_interpolates_links(self, store):
        """Test that loaded responses have their links filled in."""
        assert store.is_loaded() is True
        assert store.get_response("about") == "We build AI products. See https://example.com"
        assert store.get_response("pump_website") == "Pump website: {links.pump}"

    def test_missing_file_raises(self, tmp_path):
        """Test that a missing file fails the initial load."""
        store = KnowledgeStore(tmp_path / "nope.json")

        with pytest.raises(BundleLoadError):
            store.load()
        assert store.is_loaded() is False

    def test_invalid_file_raises(self, tmp_path):
        """Test that an invalid file fails the initial load without partial state."""
        path = tmp_path / "bundle.json"
        path.write_text("{broken", encoding="utf-8")
        store = KnowledgeStore(path)

        with pytest.raises(BundleLoadError):
            store.load()
        assert store.bundle is None

    def test_deeply_nested_file_raises_load_error(self, tmp_path):
        """Test that a document too deep to decode is a BundleLoadError."""
        path = tmp_path / "bundle.json"
        path.write_text("[" * 200000 + "]" * 200000, encoding="utf-8")
        store = KnowledgeStore(path)

        with pytest.raises(BundleLoadError):
            store.load()
        assert store.bundle is None

    def test_records_modification_time(self, store, clock):
        """Test that load records the file's modification time."""
        assert store.last_modified == clock.mtime


class TestKnowledgeStoreAccessors:
    """Tests for the typed accessors."""

    def test_get_response_absent_key(self, store):
        """Test that an unknown key yields an empty string."""
        assert store.get_response("does_not_exist") == ""

    @pytest.mark.parametrize("key", ["", None, 42])
    def test_get_response_invalid_key(self, store, key):
        """Test that invalid keys yield an empty string."""
        assert store.get_response(key) == ""

    def test_get_response_before_load(self, bundle_path):
        """Test that accessors never fail on an unloaded store."""
        store = KnowledgeStore(bundle_path)
        assert store.get_response("about") == ""
        assert store.get_command_response("about") == ""
        assert store.get_priority_products() == []
        assert store.get_system_prompt() == ""

    def test_command_response_joins_with_blank_line(self, store):
        """Test that keys are resolved in order and joined by one blank line."""
        assert store.get_command_response("about") == (
            "We build AI products. See https://example.com\n\nAsk a moderator."
        )

    def test_command_response_unknown_command(self, store):
        """Test that an unknown command yields an empty string."""
        assert store.get_command_response("nonexistent") == ""

    def test_command_response_skips_missing_and_empty(self, store):
        """Test that missing and empty responses are dropped."""
        assert store.get_command_response("broken") == ""

    def test_command_response_with_missing_key(self, tmp_path):
        """Test the {a: X} / [a, missing] scenario."""
        path = write_bundle(tmp_path / "b.json", {
            "responses": {"a": "X"},
            "commands_map": {"cmd": ["a", "missing"]},
        })
        store = KnowledgeStore(path)
        store.load()

        assert store.get_command_response("cmd") == "X"

    def test_command_response_is_case_insensitive(self, tmp_path):
        """Test that mixed-case commands_map keys resolve from any casing."""
        path = write_bundle(tmp_path / "b.json", {
            "responses": {"z": "ZenThink info"},
            "commands_map": {"ZenThink": ["z"]},
        })
        store = KnowledgeStore(path)
        store.load()

        assert store.get_command_response("zenthink") == "ZenThink info"
        assert store.get_command_response("ZENTHINK") == "ZenThink info"

    def test_other_accessors(self, store):
        """Test system prompt, links, products and response keys."""
        assert store.get_system_prompt() == "You are the product assistant."
        assert store.get_links()["zenthink"] == "https://zenthink.example.com"
        assert store.get_priority_products() == ["ZenThink AI", "Pump Pill Arena"]
        assert "weekly_update_global" in store.get_available_responses()

    def test_missing_keys_report(self, store):
        """Test that dangling commands_map keys are reported."""
        assert store.get_missing_keys() == {"broken": ["missing"]}


class TestKnowledgeStoreRefresh:
    """Tests for hot-reload."""

    @pytest.mark.asyncio
    async def test_unchanged_mtime_does_not_reload(self, store, clock):
        """Test that refresh with the same mtime keeps the same bundle object."""
        before = store.bundle

        reloaded = await store.refresh()

        assert reloaded is False
        assert store.bundle is before

    @pytest.mark.asyncio
    async def test_newer_mtime_reloads(self, store, clock, bundle_path):
        """Test that a newer mtime swaps in the new bundle."""
        data = dict(SAMPLE_BUNDLE)
        data["responses"] = {"about": "Updated."}
        write_bundle(bundle_path, data)
        clock.mtime += 60

        reloaded = await store.refresh()

        assert reloaded is True
        assert store.get_response("about") == "Updated."
        assert store.last_modified == clock.mtime

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_previous_bundle(self, store, clock, bundle_path):
        """Test that a broken file on refresh is non-fatal."""
        before = store.bundle
        bundle_path.write_text("{broken", encoding="utf-8")
        clock.mtime += 60

        reloaded = await store.refresh()

        assert reloaded is False
        assert store.bundle is before
        assert store.get_response("contact") == "Ask a moderator."

    @pytest.mark.asyncio
    async def test_failed_reload_retried_next_time(self, store, clock, bundle_path):
        """Test that the mtime is only recorded after a successful reload."""
        bundle_path.write_text("{broken", encoding="utf-8")
        clock.mtime += 60
        await store.refresh()

        write_bundle(bundle_path, {"responses": {"about": "Fixed."}})

        assert await store.refresh() is True
        assert store.get_response("about") == "Fixed."

    @pytest.mark.asyncio
    async def test_stat_error_is_non_fatal(self, store):
        """Test that a vanished file keeps the current bundle."""
        def failing_reader(path):
            raise FileNotFoundError(path)

        store._mtime_reader = failing_reader
        before = store.bundle

        assert await store.refresh() is False
        assert store.bundle is before

    @pytest.mark.asyncio
    async def test_reload_callbacks(self, store, clock, bundle_path):
        """Test that on_reload listeners see the new bundle."""
        seen = []
        store.on_reload(seen.append)
        clock.mtime += 1

        await store.refresh()

        assert seen == [store.bundle]

    @pytest.mark.asyncio
    async def test_background_task_uses_injected_sleep(self, bundle_path):
        """Test that the refresh loop runs on the injected interval."""
        clock = FakeClock()
        sleeps = []
        tick = asyncio.Event()

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) > 1:
                tick.set()
                await asyncio.Event().wait()

        store = KnowledgeStore(bundle_path, refresh_interval=42, mtime_reader=clock, sleep=fake_sleep)
        store.load()
        write_bundle(bundle_path, {"responses": {"about": "From the loop."}})
        clock.mtime += 1

        store.start()
        await asyncio.wait_for(tick.wait(), timeout=1)
        await store.stop()

        assert sleeps == [42, 42]
        assert store.get_response("about") == "From the loop."
        assert store.is_refreshing is False

    @pytest.mark.asyncio
    async def test_deeply_nested_reload_is_non_fatal(self, store, clock, bundle_path):
        """Test that refresh returns False for an undecodable document."""
        before = store.bundle
        bundle_path.write_text("[" * 200000 + "]" * 200000, encoding="utf-8")
        clock.mtime += 60

        assert await store.refresh() is False
        assert store.bundle is before

    @pytest.mark.asyncio
    async def test_unexpected_read_error_is_non_fatal(self, store, clock):
        """Test that refresh never raises, whatever the read fails with."""
        def explode():
            raise RuntimeError("disk on fire")

        store._read_bundle = explode
        clock.mtime += 60

        assert await store.refresh() is False
        assert store.get_response("contact") == "Ask a moderator."

    @pytest.mark.asyncio
    async def test_background_task_survives_refresh_errors(self, bundle_path):
        """Test that one failing tick does not stop later ticks."""
        sleeps = []
        tick = asyncio.Event()

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) > 2:
                tick.set()
                await asyncio.Event().wait()

        store = KnowledgeStore(bundle_path, refresh_interval=5, sleep=fake_sleep)
        store.refresh = AsyncMock(side_effect=[RuntimeError("boom"), False])

        store.start()
        await asyncio.wait_for(tick.wait(), timeout=1)
        assert store.is_refreshing is True
        await store.stop()

        assert store.refresh.await_count == 2
