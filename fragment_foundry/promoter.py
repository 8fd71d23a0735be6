"""Promotion of inline ``:::new`` blocks into the registry.

Each promotion persists the block body as a new Item and rewrites the block,
opener through closer, into a single ``:::include <kind>:<name>`` line. Blocks
are always located by re-parsing the current text and picking the Nth block
with the requested key, never by remembered offsets or substring search, so
identical blocks and earlier rewrites in the same batch cannot misdirect an
edit.
"""

from __future__ import annotations

import logging

from .models import DirectiveSegment, Item, PromotionFailure, PromotionReport, PromotionResult
from .parsers.directive_parser import line_ending, new_item_blocks, parse, split_lines
from .registry.item_store import DuplicateItemError, InvalidItemNameError, ItemStore

logger = logging.getLogger(__name__)


class BlockNotFoundError(LookupError):
    def __init__(self, kind: str, name: str, occurrence: int = 0) -> None:
        self.kind = kind
        self.name = name
        self.occurrence = occurrence
        nth = f" (occurrence {occurrence + 1})" if occurrence else ""
        super().__init__(f"could not find :::new {kind}:{name} block{nth}")


def trim_blank_lines(body: str) -> str:
    lines = split_lines(body)
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "".join(lines).rstrip("\r\n")


def include_line(kind: str, name: str) -> str:
    return f":::include {kind}:{name}"


def promote_one(
    text: str, kind: str, name: str, registry: ItemStore, occurrence: int = 0
) -> PromotionResult:
    """Promote the ``occurrence``-th ``:::new <kind>:<name>`` block of ``text``.

    Raises:
        BlockNotFoundError: No such block in the current text.
        DuplicateItemError: The registry already holds ``(kind, name)``.
        DirectiveParseError: ``text`` is malformed.
    """
    segments = parse(text)
    candidates = [b for b in new_item_blocks(segments) if b.key == (kind, name)]
    if occurrence >= len(candidates):
        raise BlockNotFoundError(kind, name, occurrence)
    target = candidates[occurrence]

    if registry.exists(kind, name):
        raise DuplicateItemError(kind, name)

    body = trim_blank_lines(target.raw_body)
    if not body:
        logger.warning(f"Promoting {kind}:{name} with an empty body (line {target.start_line})")

    item = registry.add(Item(kind=kind, name=name, description="", body=body))

    replacement = include_line(kind, name) + line_ending(target.raw)
    out = []
    for segment in segments:
        if isinstance(segment, DirectiveSegment) and segment.block is target:
            out.append(replacement)
        else:
            out.append(segment.source)

    logger.info(
        f"Promoted {kind}:{name} (lines {target.start_line}-{target.end_line}) "
        f"to {include_line(kind, name)}"
    )
    return PromotionResult(text="".join(out), item=item)


def promote_all(text: str, registry: ItemStore) -> PromotionReport:
    """Promote every ``:::new`` block in document order.

    Blocks whose key already exists in the registry, or whose name the
    registry cannot store, are skipped and reported;
    the rest of the batch still runs. Every step works on the text produced by
    the previous one.
    """
    current = text
    created: list[Item] = []
    skipped: list[PromotionFailure] = []

    while True:
        blocks = new_item_blocks(parse(current))
        # skipped blocks stay in the text, ahead of everything not yet tried
        if len(blocks) <= len(skipped):
            break
        block = blocks[len(skipped)]
        occurrence = sum(1 for b in blocks[: len(skipped)] if b.key == block.key)

        try:
            result = promote_one(current, block.kind, block.name, registry, occurrence=occurrence)
        except (DuplicateItemError, InvalidItemNameError) as e:
            logger.warning(f"Skipping :::new {block.kind}:{block.name} at line {block.start_line}: {e}")
            skipped.append(PromotionFailure(kind=block.kind, name=block.name, reason=str(e)))
            continue

        current = result.text
        created.append(result.item)

    logger.info(f"Promotion complete: {len(created)} promoted, {len(skipped)} skipped")
    return PromotionReport(text=current, created=created, skipped=skipped)
