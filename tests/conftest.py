"""Pytest configuration and fixtures."""

import pytest
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fragment_foundry.models import Item  # noqa: E402
from fragment_foundry.registry.item_store import FileItemStore, ItemStore  # noqa: E402

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def store():
    """In-memory registry with a couple of rules and a workflow."""
    s = ItemStore()
    s.add(Item(kind="rule", name="typescript", body="Use strict mode."))
    s.add(Item(kind="rule", name="eslint", body="No unused vars."))
    s.add(Item(kind="workflow", name="deploy", description="Release steps", body="Ship it."))
    return s


@pytest.fixture
def file_store(tmp_path: Path):
    return FileItemStore(tmp_path / "registry")


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES
