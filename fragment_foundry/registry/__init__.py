from .item_store import (
    DuplicateItemError,
    FileItemStore,
    InvalidItemNameError,
    ItemNotFoundError,
    ItemStore,
)

__all__ = [
    "ItemStore",
    "FileItemStore",
    "DuplicateItemError",
    "InvalidItemNameError",
    "ItemNotFoundError",
]
