"""
Reference validation for directive documents.

- enumerates every include and list member
- reports references the registry cannot resolve
- reports ``:::new`` blocks still waiting for promotion
- finds rendered items that never made it into the registry

Expansion skips missing references silently; this is where they surface.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Tuple

from pydantic import BaseModel, Field

from ..aligner import align
from ..models import Include, Item, ListDirective, Reference, Segment
from ..parsers.directive_parser import iter_blocks, parse, pending_keys, split_lines
from ..registry.item_store import ItemStore

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when validation fails with a fatal error."""

    pass


class ValidationWarning:
    """Non-fatal validation issue."""

    def __init__(self, message: str):
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"ValidationWarning({self.message!r})"


class ValidationReport(BaseModel):
    model_config = {"arbitrary_types_allowed": True}

    references: List[Reference] = Field(default_factory=list)
    missing: List[Reference] = Field(default_factory=list)
    pending: List[Tuple[str, str]] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.pending

    def raise_for_problems(self) -> None:
        if self.ok:
            return
        problems = [f"missing {ref.ref} (line {ref.line})" for ref in self.missing]
        problems += [f"unpromoted {kind}:{name}" for kind, name in self.pending]
        raise ValidationError("; ".join(problems))


def collect_references(segments: List[Segment]) -> List[Reference]:
    """Every include and list member, in document order, with its source line."""
    refs: list[Reference] = []
    for block in iter_blocks(segments):
        if isinstance(block, Include):
            refs.append(Reference(kind=block.kind, name=block.name, line=block.start_line))
        elif isinstance(block, ListDirective):
            line = block.start_line
            for raw in split_lines(block.raw)[1:]:
                line += 1
                name = raw.strip()
                if name and name in block.members:
                    refs.append(Reference(kind=block.kind, name=name, line=line))
    return refs


def validate_references(text: str, registry: ItemStore) -> ValidationReport:
    segments = parse(text)
    references = collect_references(segments)
    report = ValidationReport(references=references, pending=pending_keys(segments))

    for ref in references:
        if not registry.exists(ref.kind, ref.name):
            report.missing.append(ref)
            report.warnings.append(
                ValidationWarning(f"Line {ref.line} references '{ref.ref}' which isn't in the registry")
            )

    counts = Counter(ref.ref for ref in references)
    for ref_name, count in counts.items():
        if count > 1:
            report.warnings.append(
                ValidationWarning(f"'{ref_name}' is referenced {count} times")
            )

    for warning in report.warnings:
        logger.warning(str(warning))
    logger.info(
        f"Validated {len(references)} reference(s): {len(report.missing)} missing, "
        f"{len(report.pending)} unpromoted"
    )
    return report


def find_unregistered(
    directive_text: str, rendered_text: str, registry: ItemStore, heading_level: int = 3
) -> List[Item]:
    """Items present in the rendered document but absent from ``registry``."""
    result = align(directive_text, rendered_text, heading_level=heading_level)
    unregistered = [
        item for item in result.all_items() if not registry.exists(item.kind, item.name)
    ]
    for item in unregistered:
        logger.debug(f"Unregistered rendered item: {item.ref}")
    return unregistered
