"""Adding and removing item references in a directive document.

Edits only ever touch lines inside an existing directive block, or append a
new section at the end of the document.
"""

from __future__ import annotations

import logging

from .models import DirectiveSegment, Include, ListDirective, Segment
from .parsers.directive_parser import line_ending, parse, split_lines
from .promoter import include_line

logger = logging.getLogger(__name__)


class ReferenceExistsError(ValueError):
    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' is already referenced")


class ReferenceNotFoundError(LookupError):
    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' is not referenced in the document")


def references(segments: list[Segment], kind: str, name: str) -> bool:
    for segment in segments:
        if not isinstance(segment, DirectiveSegment):
            continue
        block = segment.block
        if isinstance(block, Include) and (block.kind, block.name) == (kind, name):
            return True
        if isinstance(block, ListDirective) and block.kind == kind and name in block.members:
            return True
    return False


def section_title(kind: str) -> str:
    return kind.replace("-", " ").replace("_", " ").title() + "s"


def add_reference(text: str, kind: str, name: str) -> str:
    """Reference ``kind:name`` from the document.

    The name joins the first ``:::list <kind>`` block, just above its closer.
    Without such a list, a new ``## <Kind>s`` section holding an include is
    appended to the end of the document.
    """
    segments = parse(text)
    if references(segments, kind, name):
        raise ReferenceExistsError(kind, name)

    out = []
    added = False
    for segment in segments:
        block = segment.block if isinstance(segment, DirectiveSegment) else None
        if not added and isinstance(block, ListDirective) and block.kind == kind:
            lines = split_lines(block.raw)
            eol = line_ending(lines[0]) or "\n"
            out.append("".join(lines[:-1]) + name + eol + lines[-1])
            added = True
            logger.info(f"Added {kind}:{name} to list at line {block.start_line}")
        else:
            out.append(segment.source)

    if added:
        return "".join(out)

    prefix = text
    if prefix and not prefix.endswith("\n"):
        prefix += "\n"
    if prefix:
        prefix += "\n"
    logger.info(f"Added {kind}:{name} in a new '## {section_title(kind)}' section")
    return f"{prefix}## {section_title(kind)}\n\n{include_line(kind, name)}\n"


def remove_reference(text: str, kind: str, name: str) -> str:
    """Drop the first reference to ``kind:name``, be it an include line or a list member."""
    out = []
    removed = False
    for segment in parse(text):
        block = segment.block if isinstance(segment, DirectiveSegment) else None
        if removed or block is None:
            out.append(segment.source)
            continue

        if isinstance(block, Include) and (block.kind, block.name) == (kind, name):
            removed = True
            logger.info(f"Removed include of {kind}:{name} at line {block.start_line}")
            continue

        if isinstance(block, ListDirective) and block.kind == kind and name in block.members:
            lines = split_lines(block.raw)
            body = lines[1:-1]
            idx = next(i for i, line in enumerate(body) if line.strip() == name)
            del body[idx]
            out.append(lines[0] + "".join(body) + lines[-1])
            removed = True
            logger.info(f"Removed {kind}:{name} from list at line {block.start_line}")
            continue

        out.append(segment.source)

    if not removed:
        raise ReferenceNotFoundError(kind, name)
    return "".join(out)
