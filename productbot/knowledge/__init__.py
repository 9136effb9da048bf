"""
Knowledge base for productbot.

Provides:
- Bundle schema and link interpolation
- Hot-reloading knowledge store
- Keyword-based context selection for AI replies
"""

from productbot.knowledge.bundle import (
    Bundle,
    BundleMeta,
    parse_bundle,
    interpolate_links,
)
from productbot.knowledge.store import KnowledgeStore
from productbot.knowledge.context import (
    ContextRule,
    ContextResolver,
    DEFAULT_CONTEXT_RULES,
)

__all__ = [
    # Bundle
    "Bundle",
    "BundleMeta",
    "parse_bundle",
    "interpolate_links",
    # Store
    "KnowledgeStore",
    # Context
    "ContextRule",
    "ContextResolver",
    "DEFAULT_CONTEXT_RULES",
]
