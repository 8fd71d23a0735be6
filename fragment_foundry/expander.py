"""Expansion of directive segments into a rendered document."""

from __future__ import annotations

import logging
from typing import List, Tuple

from .models import DirectiveSegment, Include, ListDirective, NewItem, Segment
from .parsers.directive_parser import line_ending, parse, pending_keys
from .registry.item_store import ItemStore

logger = logging.getLogger(__name__)


class UnpromotedBlocksError(Exception):
    """Raised when rendering is refused because ``:::new`` blocks remain.

    Attributes:
        pending: ``(kind, name)`` keys of the unpromoted blocks, in document order.
    """

    def __init__(self, pending: List[Tuple[str, str]]) -> None:
        self.pending = pending
        refs = ", ".join(f"{kind}:{name}" for kind, name in pending)
        super().__init__(
            f"Found {len(pending)} :::new block(s) that must be promoted first: {refs}"
        )


def render_item(name: str, body: str, heading_level: int = 3) -> str:
    return f"{'#' * heading_level} {name}\n\n{body.strip()}\n"


def _render_members(
    kind: str, names: List[str], registry: ItemStore, heading_level: int
) -> str:
    rendered = []
    for name in names:
        item = registry.get(kind, name)
        if item is None:
            # reported by the validation pass, not here
            logger.debug(f"Skipping unresolved reference {kind}:{name}")
            continue
        rendered.append(render_item(item.name, item.body, heading_level))
    return "\n".join(rendered)


def expand_block(
    block: Include | ListDirective | NewItem, registry: ItemStore, heading_level: int = 3
) -> str:
    if isinstance(block, NewItem):
        return block.raw
    if isinstance(block, Include):
        text = _render_members(block.kind, [block.name], registry, heading_level)
    elif isinstance(block, ListDirective):
        text = _render_members(block.kind, block.members, registry, heading_level)
    else:
        raise TypeError(f"Unknown directive block: {type(block).__name__}")

    if text and not line_ending(block.raw):
        text = text[:-1]
    return text


def expand(segments: List[Segment], registry: ItemStore, heading_level: int = 3) -> str:
    """Substitute registry content for every include and list directive.

    Literal segments pass through untouched. Missing references render as
    nothing. ``:::new`` blocks are emitted verbatim.
    """
    out = []
    for segment in segments:
        if isinstance(segment, DirectiveSegment):
            out.append(expand_block(segment.block, registry, heading_level))
        else:
            out.append(segment.text)
    return "".join(out)


def render_document(
    text: str,
    registry: ItemStore,
    allow_pending: bool = False,
    heading_level: int = 3,
) -> str:
    """Parse and expand a directive document.

    Args:
        text: Directive document source.
        registry: Store to resolve references against.
        allow_pending: Render even if ``:::new`` blocks remain (they pass through).
        heading_level: Markdown heading level used for each item name.

    Raises:
        DirectiveParseError: The document is malformed.
        UnpromotedBlocksError: ``:::new`` blocks remain and ``allow_pending`` is False.
    """
    segments = parse(text)
    if not allow_pending:
        pending = pending_keys(segments)
        if pending:
            raise UnpromotedBlocksError(pending)

    rendered = expand(segments, registry, heading_level)
    logger.info(f"Rendered document: {len(segments)} segment(s), {len(rendered)} chars")
    return rendered
