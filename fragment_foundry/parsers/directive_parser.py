"""Block-level parser for directive documents.

A directive document is ordinary markdown with three line-anchored constructs::

    :::include <kind>:<name>

    :::list <kind>
    <name>
    :::end

    :::new <kind>:<name>
    <arbitrary body>
    :::end

``parse`` turns the text into an ordered list of literal and directive
segments. It is lossless: joining every segment's ``source`` reproduces the
input exactly, line endings included.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Tuple

from ..models import (
    DirectiveSegment,
    Include,
    ListDirective,
    LiteralSegment,
    NewItem,
    Segment,
)

logger = logging.getLogger(__name__)

KIND_PATTERN = r"[a-z0-9_-]+"
NAME_PATTERN = r"[a-z0-9/_-]+"

INCLUDE_RE = re.compile(rf"^:::include\s+(?P<kind>{KIND_PATTERN}):(?P<name>{NAME_PATTERN})\s*$")
LIST_RE = re.compile(rf"^:::list\s+(?P<kind>{KIND_PATTERN})\s*$")
NEW_RE = re.compile(rf"^:::new\s+(?P<kind>{KIND_PATTERN}):(?P<name>{NAME_PATTERN})\s*$")
END_RE = re.compile(r"^:::end\s*$")

CLOSING_TOKEN = ":::end"


class DirectiveParseError(ValueError):
    """Raised when a directive document is structurally malformed.

    Attributes:
        line: 1-based line number the error points at.
        directive: The offending directive line, stripped.
    """

    def __init__(self, message: str, line: int, directive: str = "") -> None:
        self.line = line
        self.directive = directive
        super().__init__(f"line {line}: {message}")


class UnterminatedBlockError(DirectiveParseError):
    """A ``:::list`` or ``:::new`` opener has no ``:::end`` before end of input."""


class MisplacedDirectiveError(DirectiveParseError):
    """A directive line other than ``:::end`` appeared inside a ``:::list`` block."""


@dataclass
class _OpenBlock:
    directive: str
    kind: str
    name: str
    start_line: int
    opener: str
    lines: List[str] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    body: List[str] = field(default_factory=list)

    def close(self, end_line: int) -> ListDirective | NewItem:
        raw = "".join(self.lines)
        if self.directive == "list":
            return ListDirective(
                kind=self.kind,
                members=self.members,
                start_line=self.start_line,
                end_line=end_line,
                raw=raw,
            )
        return NewItem(
            kind=self.kind,
            name=self.name,
            raw_body="".join(self.body),
            start_line=self.start_line,
            end_line=end_line,
            raw=raw,
        )


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, keeping line endings; a trailing partial line is kept."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def line_ending(line: str) -> str:
    if line.endswith("\r\n"):
        return "\r\n"
    if line.endswith("\n"):
        return "\n"
    return ""


def parse(text: str) -> list[Segment]:
    """Parse ``text`` into literal and directive segments.

    Raises:
        UnterminatedBlockError: a block is still open at end of input.
        MisplacedDirectiveError: a ``:::`` line other than the closer in a list.
    """
    segments: list[Segment] = []
    literal: list[str] = []
    block: _OpenBlock | None = None

    def flush_literal() -> None:
        if literal:
            segments.append(LiteralSegment(text="".join(literal)))
            literal.clear()

    for lineno, line in enumerate(split_lines(text), start=1):
        content = line.rstrip("\r\n")

        if block is None:
            match = INCLUDE_RE.match(content)
            if match:
                flush_literal()
                segments.append(
                    DirectiveSegment(
                        block=Include(
                            kind=match["kind"],
                            name=match["name"],
                            start_line=lineno,
                            end_line=lineno,
                            raw=line,
                        )
                    )
                )
                continue

            match = LIST_RE.match(content) or NEW_RE.match(content)
            if match:
                flush_literal()
                directive = "list" if content.startswith(":::list") else "new"
                block = _OpenBlock(
                    directive=directive,
                    kind=match["kind"],
                    name=match.groupdict().get("name") or "",
                    start_line=lineno,
                    opener=content.strip(),
                    lines=[line],
                )
                continue

            literal.append(line)
            continue

        block.lines.append(line)

        if END_RE.match(content):
            closed = block.close(lineno)
            logger.debug(f"Closed {closed.directive} block opened at line {closed.start_line}")
            segments.append(DirectiveSegment(block=closed))
            block = None
            continue

        if block.directive == "list":
            member = content.strip()
            if member.startswith(":::"):
                raise MisplacedDirectiveError(
                    f"'{member}' inside '{block.opener}' (opened at line {block.start_line}); "
                    f"lists only hold names and close with '{CLOSING_TOKEN}'",
                    line=lineno,
                    directive=member,
                )
            if member:
                block.members.append(member)
        else:
            block.body.append(line)

    if block is not None:
        raise UnterminatedBlockError(
            f"'{block.opener}' has no matching '{CLOSING_TOKEN}'",
            line=block.start_line,
            directive=block.opener,
        )

    flush_literal()
    return segments


def iter_blocks(segments: list[Segment]) -> Iterator[Include | ListDirective | NewItem]:
    for segment in segments:
        if isinstance(segment, DirectiveSegment):
            yield segment.block


def new_item_blocks(segments: list[Segment]) -> list[NewItem]:
    return [b for b in iter_blocks(segments) if isinstance(b, NewItem)]


def pending_keys(segments: list[Segment]) -> List[Tuple[str, str]]:
    """Return the distinct ``(kind, name)`` keys of ``:::new`` blocks, in document order."""
    keys: list[tuple[str, str]] = []
    for block in new_item_blocks(segments):
        if block.key not in keys:
            keys.append(block.key)
    return keys


def find_new_items(text: str) -> List[Tuple[str, str]]:
    return pending_keys(parse(text))


def render_source(segments: list[Segment]) -> str:
    return "".join(segment.source for segment in segments)
