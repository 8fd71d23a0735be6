from __future__ import annotations

from pathlib import Path
import logging
import re
from typing import Any

import yaml

from ..models import Item

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^---\s*$")


class FrontmatterError(ValueError):
    pass


def split_frontmatter(text: str, source: str | Path | None = None) -> tuple[dict[str, Any], str]:
    """Split ``text`` into its YAML header mapping and the remaining body.

    Text without a leading ``---`` line has no header. A header that is opened
    but never closed, or that is not a YAML mapping, raises FrontmatterError.
    """
    lines = text.splitlines(keepends=True)
    if not lines or not _FENCE_RE.match(lines[0]):
        return {}, text

    end = None
    for idx in range(1, len(lines)):
        if _FENCE_RE.match(lines[idx]):
            end = idx
            break
    if end is None:
        raise FrontmatterError(f"Unclosed frontmatter in {source or '<text>'}")

    meta_raw = "".join(lines[1:end])
    try:
        meta = yaml.safe_load(meta_raw) or {}
    except yaml.YAMLError as e:
        raise FrontmatterError(f"Invalid YAML frontmatter in {source or '<text>'}: {e}") from e
    if not isinstance(meta, dict):
        raise FrontmatterError(f"Frontmatter in {source or '<text>'} must be a mapping")

    body = "".join(lines[end + 1:]).lstrip("\r\n")
    return meta, body


def render_frontmatter(meta: dict[str, Any], body: str) -> str:
    header = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True, default_flow_style=False)
    text = f"---\n{header}---\n\n{body}"
    if not text.endswith("\n"):
        text += "\n"
    return text


def parse_item_file(file_path: str | Path, kind: str, name: str) -> Item:
    """Load one registry file as an Item keyed by ``(kind, name)``.

    The key comes from the file's location; a differing ``name`` in the header
    is reported but never wins.
    """
    p = Path(file_path)
    text = p.read_text(encoding="utf-8")
    meta, body = split_frontmatter(text, source=p)

    declared = meta.get("name")
    if declared is not None and str(declared) != name:
        logger.warning(f"{kind}:{name} declares name '{declared}' in {p}; using file path")

    description = meta.get("description") or ""
    return Item(
        kind=kind,
        name=name,
        description=str(description),
        body=body.rstrip("\r\n"),
        source_path=str(p),
    )


def render_item_file(item: Item) -> str:
    meta = {"name": item.name, "description": item.description or ""}
    return render_frontmatter(meta, item.body)
