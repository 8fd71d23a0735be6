"""Tests for the registry stores, item loader and item file codec."""

import logging
from pathlib import Path

import pytest

from fragment_foundry.loader.item_loader import ItemLoader
from fragment_foundry.models import Item
from fragment_foundry.parsers.frontmatter import (
    FrontmatterError,
    parse_item_file,
    render_item_file,
    split_frontmatter,
)
from fragment_foundry.registry.item_store import (
    DuplicateItemError,
    FileItemStore,
    InvalidItemNameError,
    ItemNotFoundError,
    ItemStore,
)


class TestItemStore:
    def setup_method(self):
        self.registry = ItemStore()

    def test_add_and_get(self):
        item = Item(kind="rule", name="x", body="b")
        self.registry.add(item)
        assert self.registry.get("rule", "x") == item
        assert self.registry.exists("rule", "x")
        assert not self.registry.exists("workflow", "x")

    def test_get_missing_returns_none(self):
        assert self.registry.get("rule", "nope") is None

    def test_require_missing_raises(self):
        with pytest.raises(ItemNotFoundError) as exc:
            self.registry.require("rule", "nope")
        assert str(exc.value) == "rule 'nope' not found"

    def test_duplicate_rejected(self):
        self.registry.add(Item(kind="rule", name="x", body="1"))
        with pytest.raises(DuplicateItemError):
            self.registry.add(Item(kind="rule", name="x", body="2"))
        assert self.registry.get("rule", "x").body == "1"

    def test_same_name_different_kind_allowed(self):
        self.registry.add(Item(kind="rule", name="x", body="1"))
        self.registry.add(Item(kind="workflow", name="x", body="2"))
        assert self.registry.list_kinds() == ["rule", "workflow"]

    def test_explicit_overwrite(self):
        self.registry.add(Item(kind="rule", name="x", body="1"))
        self.registry.add(Item(kind="rule", name="x", body="2"), overwrite=True)
        assert self.registry.get("rule", "x").body == "2"
        assert len(self.registry.list_items("rule")) == 1

    def test_listing(self, store):
        assert store.list_kinds() == ["rule", "workflow"]
        assert [i.name for i in store.list_items("rule")] == ["eslint", "typescript"]
        assert store.list_items("guideline") == []
        assert len(store.all_items()) == 3


class TestFileItemStore:
    def test_add_writes_frontmatter_file(self, file_store):
        stored = file_store.add(Item(kind="rule", name="x", description="Short", body="Body text"))
        path = file_store.path_for("rule", "x")
        assert stored.source_path == str(path)
        assert path.read_text(encoding="utf-8") == (
            "---\nname: x\ndescription: Short\n---\n\nBody text\n"
        )

    def test_round_trip(self, file_store):
        file_store.add(Item(kind="rule", name="x", description="", body="line 1\n\nline 2"))
        item = file_store.get("rule", "x")
        assert item.body == "line 1\n\nline 2"
        assert item.description == ""
        assert item.kind == "rule"

    def test_duplicate_rejected_without_touching_file(self, file_store):
        file_store.add(Item(kind="rule", name="x", body="first"))
        with pytest.raises(DuplicateItemError) as exc:
            file_store.add(Item(kind="rule", name="x", body="second"))
        assert str(file_store.path_for("rule", "x")) in str(exc.value)
        assert file_store.get("rule", "x").body == "first"

    def test_overwrite(self, file_store):
        file_store.add(Item(kind="rule", name="x", body="first"))
        file_store.add(Item(kind="rule", name="x", body="second"), overwrite=True)
        assert file_store.get("rule", "x").body == "second"

    def test_slash_names_nest_directories(self, file_store):
        file_store.add(Item(kind="rule", name="auth/custom", body="b"))
        assert (file_store.base / "rule" / "auth" / "custom.md").is_file()
        assert [i.name for i in file_store.list_items("rule")] == ["auth/custom"]

    @pytest.mark.parametrize("name", ["../../escaped", "/outside", "a/../../b", "a//b", "./x", ""])
    def test_names_cannot_leave_kind_directory(self, file_store, tmp_path: Path, name):
        with pytest.raises(InvalidItemNameError) as exc:
            file_store.add(Item(kind="rule", name=name, body="owned"))
        assert f"rule:{name}" in str(exc.value)
        assert list(tmp_path.rglob("*.md")) == []

    def test_absolute_name_is_rejected(self, file_store, tmp_path: Path):
        name = str(tmp_path / "outside")
        with pytest.raises(InvalidItemNameError):
            file_store.add(Item(kind="rule", name=name, body="owned"))
        assert not (tmp_path / "outside.md").exists()

    @pytest.mark.parametrize("kind", ["..", "a/b", ""])
    def test_kind_must_be_one_directory(self, file_store, kind):
        with pytest.raises(InvalidItemNameError):
            file_store.path_for(kind, "x")

    def test_missing_item(self, file_store):
        assert file_store.get("rule", "nope") is None
        assert not file_store.exists("rule", "nope")
        assert not file_store.is_initialized()
        assert file_store.list_kinds() == []

    def test_reads_files_written_by_hand(self, file_store):
        kind_dir = file_store.kind_path("workflow")
        kind_dir.mkdir(parents=True)
        (kind_dir / "plain.md").write_text("No header here.\n", encoding="utf-8")
        item = file_store.get("workflow", "plain")
        assert item.body == "No header here."
        assert item.description == ""
        assert file_store.list_kinds() == ["workflow"]

    def test_header_name_mismatch_warns(self, file_store, caplog):
        kind_dir = file_store.kind_path("rule")
        kind_dir.mkdir(parents=True)
        (kind_dir / "real.md").write_text("---\nname: other\n---\n\nb\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            item = file_store.get("rule", "real")
        assert item.name == "real"
        assert "other" in caplog.text


class TestFrontmatter:
    def test_no_header(self):
        assert split_frontmatter("just body\n") == ({}, "just body\n")

    def test_header_and_body(self):
        meta, body = split_frontmatter("---\nname: x\ndescription: d\n---\n\n# Body\n")
        assert meta == {"name": "x", "description": "d"}
        assert body == "# Body\n"

    def test_unclosed_header(self):
        with pytest.raises(FrontmatterError):
            split_frontmatter("---\nname: x\nbody\n")

    def test_invalid_yaml(self):
        with pytest.raises(FrontmatterError):
            split_frontmatter("---\n:id: [unclosed\n---\nbody")

    def test_non_mapping_header(self):
        with pytest.raises(FrontmatterError):
            split_frontmatter("---\n- a\n- b\n---\nbody\n")

    def test_dashes_inside_body_are_kept(self):
        meta, body = split_frontmatter("---\nname: x\n---\n\nabove\n---\nbelow\n")
        assert body == "above\n---\nbelow\n"

    def test_render_item_file(self):
        text = render_item_file(Item(kind="rule", name="x", body="b"))
        assert text == "---\nname: x\ndescription: ''\n---\n\nb\n"

    def test_parse_item_file(self, tmp_path: Path):
        p = tmp_path / "x.md"
        p.write_text("---\nname: x\ndescription: Hello\n---\n\nbody\n", encoding="utf-8")
        item = parse_item_file(p, "rule", "x")
        assert (item.kind, item.name, item.description, item.body) == ("rule", "x", "Hello", "body")
        assert item.source_path == str(p)


class TestItemLoader:
    def test_missing_base(self, tmp_path: Path):
        assert ItemLoader(tmp_path / "absent").load_all() == []

    def test_loads_every_kind(self, file_store):
        file_store.add(Item(kind="rule", name="a", body="1"))
        file_store.add(Item(kind="workflow", name="b", body="2"))
        items = ItemLoader(file_store.base).load_all()
        assert [i.ref for i in items] == ["rule:a", "workflow:b"]

    def test_ignores_non_markdown_files(self, file_store):
        file_store.add(Item(kind="rule", name="a", body="1"))
        (file_store.kind_path("rule") / "notes.txt").write_text("x", encoding="utf-8")
        assert [i.name for i in ItemLoader(file_store.base).load_kind("rule")] == ["a"]

    def test_malformed_file_names_path(self, file_store):
        kind_dir = file_store.kind_path("rule")
        kind_dir.mkdir(parents=True)
        bad = kind_dir / "bad.md"
        bad.write_text("---\nname: bad\n", encoding="utf-8")
        with pytest.raises(ValueError) as exc:
            ItemLoader(file_store.base).load_all()
        assert "bad.md" in str(exc.value)
