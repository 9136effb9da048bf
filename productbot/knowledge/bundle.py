"""
Knowledge bundle schema.

A bundle is the whole JSON document that drives canned responses:

    {
        "responses": {"about": "We build ... see {links.website}"},
        "links": {"website": "https://example.com"},
        "commands_map": {"about": ["about", "contact"]},
        "meta": {"priority_products": ["ZenThink AI"]},
        "system_prompt": "You are ..."
    }
"""

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from productbot.errors import BundleLoadError

LINK_PLACEHOLDER = re.compile(r"\{links\.([a-z_]+)\}")


class BundleMeta(BaseModel):
    """Bundle metadata."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    priority_products: list[str] = Field(default_factory=list)


class Bundle(BaseModel):
    """A parsed, validated knowledge bundle. Never mutated after creation."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    responses: dict[str, str] = Field(default_factory=dict)
    links: dict[str, str] = Field(default_factory=dict)
    commands_map: dict[str, list[str]] = Field(default_factory=dict)
    meta: BundleMeta = Field(default_factory=BundleMeta)
    system_prompt: str = ""


def parse_bundle(raw: str | bytes | dict[str, Any]) -> Bundle:
    """
    Parse and validate a bundle document.

    Args:
        raw: JSON text or an already decoded mapping.

    Returns:
        The validated Bundle (links not yet interpolated).

    Raises:
        BundleLoadError: If the document is not JSON or has the wrong shape.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (ValueError, RecursionError) as e:
            # ValueError covers JSONDecodeError and undecodable bytes;
            # RecursionError is raised for pathologically nested documents
            raise BundleLoadError(f"Knowledge bundle is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise BundleLoadError(
            f"Knowledge bundle must be a JSON object, got {type(raw).__name__}"
        )

    try:
        return Bundle.model_validate(raw)
    except ValidationError as e:
        raise BundleLoadError(f"Knowledge bundle has an invalid structure: {e}") from e


def linkify(text: str, links: dict[str, str]) -> str:
    """
    Replace {links.<key>} placeholders in a single text.

    Unknown keys and empty link values leave the placeholder untouched so
    a broken template stays visible in the reply.
    """
    def _replace(match: re.Match) -> str:
        return links.get(match.group(1)) or match.group(0)

    return LINK_PLACEHOLDER.sub(_replace, text)


def interpolate_links(bundle: Bundle) -> Bundle:
    """Return a copy of the bundle with link placeholders filled in."""
    if not bundle.responses:
        return bundle

    responses = {
        key: linkify(text, bundle.links)
        for key, text in bundle.responses.items()
    }
    return bundle.model_copy(update={"responses": responses})
