"""Recover items from a rendered document using its directive document as a map.

A rendered document no longer carries directive markup, so item boundaries
have to be inferred. The directive document says which ``##`` headings are
real section breaks and which item kind each section holds. In the rendered
text, only a ``##`` heading whose text matches one of those sections ends the
current item. Any other ``##`` heading (an item's own "## Purpose", say) is
content of the item it appears in. Inside a section that declares a kind,
each ``### <name>`` heading (or whatever level the document was rendered
with) starts the next item.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Tuple

from .models import (
    AlignmentResult,
    AlignmentWarning,
    BackfillReport,
    DirectiveSegment,
    Include,
    Item,
    ListDirective,
    TemplateSection,
)
from .parsers.directive_parser import parse, split_lines
from .promoter import trim_blank_lines
from .registry.item_store import ItemStore

logger = logging.getLogger(__name__)

SECTION_RE = re.compile(r"^## (.+?)\s*$")
ITEM_NAME_PATTERN = r"[a-z0-9_-]+"


def item_heading_re(heading_level: int = 3) -> re.Pattern:
    """Match an item heading as rendered at ``heading_level``."""
    return re.compile(rf"^{'#' * heading_level} ({ITEM_NAME_PATTERN})\s*$")


def parse_template_sections(directive_text: str) -> List[TemplateSection]:
    """Derive the ``##`` sections of a directive document and the items each declares.

    Headings are only recognised in literal text, so a heading inside a
    ``:::new`` body never opens a section.
    """
    sections: list[TemplateSection] = []
    current: TemplateSection | None = None
    lineno = 0

    for segment in parse(directive_text):
        if isinstance(segment, DirectiveSegment):
            block = segment.block
            lineno = block.end_line
            if current is None or not isinstance(block, (Include, ListDirective)):
                continue
            if current.item_kind and current.item_kind != block.kind:
                logger.warning(
                    f"Section '{current.header_text}' mixes kinds "
                    f"'{current.item_kind}' and '{block.kind}'; using '{block.kind}'"
                )
            current.item_kind = block.kind
            if isinstance(block, Include):
                current.item_names.append(block.name)
            else:
                current.item_names.extend(block.members)
            continue

        for line in split_lines(segment.text):
            lineno += 1
            match = SECTION_RE.match(line.rstrip("\r\n"))
            if match:
                current = TemplateSection(header_text=match[1], header_line=lineno)
                sections.append(current)

    return sections


def align(directive_text: str, rendered_text: str, heading_level: int = 3) -> AlignmentResult:
    """Reconstruct ``kind -> [Item]`` from ``rendered_text``.

    ``heading_level`` must match the level the document was rendered with.

    Never raises for content mismatches; those become warnings on the result.
    A malformed directive document still raises DirectiveParseError.
    """
    sections = parse_template_sections(directive_text)
    item_re = item_heading_re(heading_level)
    marker = "#" * heading_level
    warnings: list[AlignmentWarning] = []

    by_header: Dict[str, TemplateSection] = {}
    for section in sections:
        if section.header_text in by_header:
            warnings.append(
                AlignmentWarning(
                    section=section.header_text,
                    message=f"Section '{section.header_text}' appears more than once in the "
                    f"directive document (line {section.header_line}); the last one is used",
                )
            )
        by_header[section.header_text] = section

    captured: Dict[Tuple[str, str], Item] = {}
    found: Dict[str, List[str]] = {}

    active: TemplateSection | None = None
    current_name: str | None = None
    buffer: list[str] = []

    def close_item() -> None:
        if active is None or current_name is None:
            return
        key = (active.item_kind, current_name)
        if key in captured:
            warnings.append(
                AlignmentWarning(
                    section=active.header_text,
                    message=f"{key[0]}:{key[1]} appears more than once; keeping the first",
                )
            )
            return
        captured[key] = Item(
            kind=active.item_kind,
            name=current_name,
            body=trim_blank_lines("".join(buffer)),
        )

    for line in split_lines(rendered_text):
        content = line.rstrip("\r\n")

        match = SECTION_RE.match(content)
        if match and match[1] in by_header:
            close_item()
            section = by_header[match[1]]
            active = section if section.item_kind else None
            current_name = None
            buffer = []
            continue

        if active is not None:
            match = item_re.match(content)
            if match:
                close_item()
                current_name = match[1]
                buffer = []
                found.setdefault(active.header_text, []).append(current_name)
                continue

        if current_name is not None:
            buffer.append(line)

    close_item()

    for section in by_header.values():
        if not section.item_kind:
            continue
        seen = found.get(section.header_text, [])
        for name in section.item_names:
            if name not in seen:
                warnings.append(
                    AlignmentWarning(
                        section=section.header_text,
                        message=f"Section '{section.header_text}' declares "
                        f"{section.item_kind}:{name} but no '{marker} {name}' heading was found",
                    )
                )
        for name in seen:
            if name not in section.item_names:
                warnings.append(
                    AlignmentWarning(
                        section=section.header_text,
                        message=f"'{marker} {name}' in section '{section.header_text}' is not "
                        f"declared in the directive document",
                    )
                )

    items: Dict[str, List[Item]] = {}
    for item in captured.values():
        items.setdefault(item.kind, []).append(item)

    for warning in warnings:
        logger.warning(warning.message)
    logger.info(f"Aligned {len(captured)} item(s) with {len(warnings)} warning(s)")
    return AlignmentResult(items=items, warnings=warnings)


def backfill(result: AlignmentResult, registry: ItemStore, overwrite: bool = False) -> BackfillReport:
    """Write aligned items into ``registry``; existing keys are skipped unless ``overwrite``."""
    report = BackfillReport()
    for item in result.all_items():
        exists = registry.exists(item.kind, item.name)
        if exists and not overwrite:
            logger.info(f"Skipped {item.ref} (already exists)")
            report.skipped.append(item)
            continue
        stored = registry.add(item, overwrite=overwrite)
        if exists:
            report.overwritten.append(stored)
        else:
            report.imported.append(stored)
    return report
