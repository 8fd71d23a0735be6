"""Registry stores mapping ``(kind, name)`` to Items.

``ItemStore`` keeps everything in memory and is what tests and callers that
never touch disk use. ``FileItemStore`` persists each item as
``<base>/<kind>/<name>.md``. Neither store overwrites an existing key unless
asked to explicitly.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Tuple

from ..loader.item_loader import ITEM_SUFFIX, ItemLoader
from ..models import Item
from ..parsers.frontmatter import parse_item_file, render_item_file

logger = logging.getLogger(__name__)


class DuplicateItemError(Exception):
    def __init__(self, kind: str, name: str, location: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.location = location
        where = f" at {location}" if location else ""
        super().__init__(f"{kind}:{name} already exists in registry{where}")


class InvalidItemNameError(ValueError):
    def __init__(self, kind: str, name: str, reason: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind}:{name} cannot be stored: {reason}")


class ItemNotFoundError(KeyError):
    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} '{name}' not found")

    def __str__(self) -> str:
        return self.args[0]


class ItemStore:
    def __init__(self) -> None:
        self._by_key: Dict[Tuple[str, str], Item] = {}
        self._by_kind: Dict[str, List[str]] = defaultdict(list)

    def exists(self, kind: str, name: str) -> bool:
        return (kind, name) in self._by_key

    def get(self, kind: str, name: str) -> Item | None:
        return self._by_key.get((kind, name))

    def require(self, kind: str, name: str) -> Item:
        item = self.get(kind, name)
        if item is None:
            raise ItemNotFoundError(kind, name)
        return item

    def add(self, item: Item, overwrite: bool = False) -> Item:
        if self.exists(item.kind, item.name) and not overwrite:
            raise DuplicateItemError(item.kind, item.name)
        if item.key not in self._by_key:
            self._by_kind[item.kind].append(item.name)
        self._by_key[item.key] = item
        logger.debug(f"Registered item: {item.ref}")
        return item

    def list_kinds(self) -> List[str]:
        return sorted(k for k, names in self._by_kind.items() if names)

    def list_items(self, kind: str) -> List[Item]:
        return [self._by_key[(kind, n)] for n in sorted(self._by_kind.get(kind, []))]

    def all_items(self) -> List[Item]:
        return [item for kind in self.list_kinds() for item in self.list_items(kind)]


class FileItemStore(ItemStore):
    """File-backed store rooted at ``base_path``.

    Lookups read straight from disk so that edits made by other tools are seen
    on the next call. There is no locking; concurrent writers race.
    """

    def __init__(self, base_path: str | Path) -> None:
        super().__init__()
        self.base = Path(base_path).expanduser()
        self.loader = ItemLoader(self.base)

    def path_for(self, kind: str, name: str) -> Path:
        """Return the file backing ``kind:name``, which must sit under ``kind_path(kind)``.

        Raises:
            InvalidItemNameError: The name is empty, absolute, or has empty,
                ``.`` or ``..`` segments.
        """
        kind_dir = self.kind_path(kind)
        if not name or any(part in ("", ".", "..") for part in name.split("/")):
            raise InvalidItemNameError(
                kind, name, "names are relative paths without empty, '.' or '..' segments"
            )
        path = kind_dir / f"{name}{ITEM_SUFFIX}"
        if not path.resolve().is_relative_to(kind_dir.resolve()):
            raise InvalidItemNameError(kind, name, f"resolves outside {kind_dir}")
        return path

    def kind_path(self, kind: str) -> Path:
        if not kind or kind in (".", "..") or "/" in kind or "\\" in kind:
            raise InvalidItemNameError(kind, "", "kinds are single directory names")
        return self.base / kind

    def is_initialized(self) -> bool:
        return self.base.is_dir()

    def exists(self, kind: str, name: str) -> bool:
        return self.path_for(kind, name).is_file()

    def get(self, kind: str, name: str) -> Item | None:
        path = self.path_for(kind, name)
        if not path.is_file():
            return None
        return parse_item_file(path, kind, name)

    def add(self, item: Item, overwrite: bool = False) -> Item:
        path = self.path_for(item.kind, item.name)
        existed = path.is_file()
        if existed and not overwrite:
            raise DuplicateItemError(item.kind, item.name, location=str(path))

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_item_file(item), encoding="utf-8")
        stored = item.model_copy(update={"source_path": str(path)})
        action = "Overwrote" if existed else "Created"
        logger.info(f"{action} {item.ref} at {path}")
        return stored

    def list_kinds(self) -> List[str]:
        return self.loader.kinds()

    def list_items(self, kind: str) -> List[Item]:
        return self.loader.load_kind(kind)

    def all_items(self) -> List[Item]:
        return self.loader.load_all()
