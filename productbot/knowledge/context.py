"""
Context selection for AI replies.

Picks at most one knowledge snippet to inject into the AI prompt using an
ordered list of keyword rules. The first rule that matches wins, so rules
combining several keywords must come before the broader single-keyword
rules they overlap with.
"""

from dataclasses import dataclass, field

from productbot.knowledge.store import KnowledgeStore

CONTEXT_PREFIX = "\n\nRELEVANT CONTEXT: "


@dataclass(frozen=True)
class ContextRule:
    """
    A keyword rule selecting one response key.

    Matches when any keyword of `any_of` is present and, for each group in
    `all_of`, at least one keyword of that group is present too.
    """
    response_key: str
    any_of: tuple[str, ...]
    all_of: tuple[tuple[str, ...], ...] = field(default_factory=tuple)

    def matches(self, text: str) -> bool:
        """Check the rule against already lower-cased text."""
        if not any(k in text for k in self.any_of):
            return False
        return all(any(k in text for k in group) for group in self.all_of)


# Order matters: first match wins.
DEFAULT_CONTEXT_RULES: tuple[ContextRule, ...] = (
    ContextRule("zenthink_website", ("zenthink",), (("website", "site"),)),
    ContextRule("pump_website", ("pump",), (("website", "site"),)),
    ContextRule("zenthink_overview", ("zenthink", "zen think")),
    ContextRule("parlay_overview", ("parlay", "sports")),
    ContextRule("pump_overview", ("pump", "pill", "arena")),
    ContextRule("trading_overview", ("trading", "bot")),
    ContextRule("weekly_update_global", ("status", "update")),
)


class ContextResolver:
    """Resolves free text to a contextual snippet from the knowledge store."""

    def __init__(
        self,
        store: KnowledgeStore,
        rules: tuple[ContextRule, ...] | list[ContextRule] = DEFAULT_CONTEXT_RULES,
    ):
        self.store = store
        self.rules = tuple(rules)

    def match(self, text: str) -> ContextRule | None:
        """Return the first matching rule, or None."""
        lowered = (text or "").lower()
        for rule in self.rules:
            if rule.matches(lowered):
                return rule
        return None

    def context_key(self, text: str) -> str | None:
        """Return the response key selected for this text, or None."""
        rule = self.match(text)
        return rule.response_key if rule else None

    def build_context(self, text: str) -> str:
        """Context block to append to the system prompt (may be empty)."""
        key = self.context_key(text)
        if not key:
            return ""

        snippet = self.store.get_response(key)
        if not snippet:
            return ""
        return f"{CONTEXT_PREFIX}{snippet}"
