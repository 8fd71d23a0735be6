from pathlib import Path
from typing import List

from ..models import Item
from ..parsers.frontmatter import parse_item_file

ITEM_SUFFIX = ".md"


def item_name_for(kind_dir: Path, path: Path) -> str:
    """Registry name of ``path`` relative to its kind directory, e.g. ``auth/custom``."""
    return path.relative_to(kind_dir).with_suffix("").as_posix()


class ItemLoader:
    """Reads every item file under ``<base>/<kind>/``."""

    def __init__(self, base_path: str | Path):
        self.base = Path(base_path)

    def kinds(self) -> List[str]:
        if not self.base.exists():
            return []
        return sorted(p.name for p in self.base.iterdir() if p.is_dir() and not p.name.startswith("."))

    def load_kind(self, kind: str) -> List[Item]:
        kind_dir = self.base / kind
        if not kind_dir.is_dir():
            return []
        items: list[Item] = []
        for p in sorted(kind_dir.rglob(f"*{ITEM_SUFFIX}")):
            if not p.is_file():
                continue
            try:
                items.append(parse_item_file(p, kind, item_name_for(kind_dir, p)))
            except Exception as exc:
                raise ValueError(f"Failed loading {p}: {exc}") from exc
        return items

    def load_all(self) -> List[Item]:
        items: list[Item] = []
        for kind in self.kinds():
            items.extend(self.load_kind(kind))
        return items
