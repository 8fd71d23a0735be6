"""Fragment Foundry - reusable text fragments behind a directive document.

Items (rules, workflows, snippets) live in a registry keyed by
``(kind, name)``. A directive document references them with ``:::include``
and ``:::list`` blocks and can define new ones inline with ``:::new``. This
package parses those documents, expands them, promotes inline definitions
into the registry, and aligns rendered output back to its items.
"""

from fragment_foundry.models import (
    AlignmentResult,
    AlignmentWarning,
    Include,
    Item,
    ListDirective,
    NewItem,
    TemplateSection,
)
from fragment_foundry.parsers.directive_parser import (
    DirectiveParseError,
    MisplacedDirectiveError,
    UnterminatedBlockError,
    parse,
)
from fragment_foundry.registry.item_store import (
    DuplicateItemError,
    FileItemStore,
    InvalidItemNameError,
    ItemNotFoundError,
    ItemStore,
)
from fragment_foundry.expander import UnpromotedBlocksError, expand, render_document
from fragment_foundry.promoter import BlockNotFoundError, promote_all, promote_one
from fragment_foundry.aligner import align, backfill, parse_template_sections

__all__ = [
    "Item",
    "Include",
    "ListDirective",
    "NewItem",
    "TemplateSection",
    "AlignmentResult",
    "AlignmentWarning",
    "ItemStore",
    "FileItemStore",
    "parse",
    "expand",
    "render_document",
    "promote_one",
    "promote_all",
    "align",
    "backfill",
    "parse_template_sections",
    "DirectiveParseError",
    "UnterminatedBlockError",
    "MisplacedDirectiveError",
    "DuplicateItemError",
    "InvalidItemNameError",
    "ItemNotFoundError",
    "BlockNotFoundError",
    "UnpromotedBlocksError",
]
