"""Tests for fragment_foundry.expander."""

import logging

import pytest

from fragment_foundry.expander import (
    UnpromotedBlocksError,
    expand,
    render_document,
    render_item,
)
from fragment_foundry.parsers.directive_parser import UnterminatedBlockError, parse
from fragment_foundry.registry.item_store import ItemStore


class TestExpand:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "# Title\n\nplain text\n",
            "no trailing newline",
            "## Section\r\n\r\n- bullet\r\n",
            ":::end\n:::\nstray markers\n",
        ],
    )
    def test_identity_without_directives(self, text):
        assert expand(parse(text), ItemStore()) == text

    def test_include_renders_heading_and_body(self, store):
        text = "# Rules\n\n:::include rule:typescript\n\nFooter\n"
        assert expand(parse(text), store) == (
            "# Rules\n\n### typescript\n\nUse strict mode.\n\nFooter\n"
        )

    def test_list_renders_members_in_order_skipping_missing(self, store):
        text = ":::list rule\neslint\nmissing\ntypescript\n:::end\n"
        assert expand(parse(text), store) == (
            "### eslint\n\nNo unused vars.\n\n### typescript\n\nUse strict mode.\n"
        )

    def test_missing_include_emits_nothing(self):
        text = "before\n:::include rule:missing\nafter\n"
        assert expand(parse(text), ItemStore()) == "before\nafter\n"

    def test_missing_include_is_logged_not_raised(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="fragment_foundry.expander"):
            expand(parse(":::include rule:missing\n"), ItemStore())
        assert "rule:missing" in caplog.text

    def test_include_at_eof_keeps_missing_final_newline(self, store):
        text = "x\n:::include rule:typescript"
        assert expand(parse(text), store) == "x\n### typescript\n\nUse strict mode."

    def test_new_blocks_pass_through(self, store):
        text = "a\n:::new rule:draft\nbody\n:::end\nb\n"
        assert expand(parse(text), store) == text

    def test_literals_adjacent_to_directives_untouched(self, store):
        text = "  keep   spacing  \n:::include rule:eslint\n\ttabbed\n"
        out = expand(parse(text), store)
        assert out.startswith("  keep   spacing  \n")
        assert out.endswith("\ttabbed\n")

    def test_heading_level(self, store):
        out = expand(parse(":::include workflow:deploy\n"), store, heading_level=2)
        assert out == "## deploy\n\nShip it.\n"


def test_render_item_strips_body():
    assert render_item("x", "\n\nbody\n\n") == "### x\n\nbody\n"


class TestRenderDocument:
    def test_refuses_unpromoted_blocks(self, store):
        text = ":::new rule:a\n1\n:::end\n:::new workflow:b\n2\n:::end\n:::new rule:a\n3\n:::end\n"
        with pytest.raises(UnpromotedBlocksError) as exc:
            render_document(text, store)
        assert exc.value.pending == [("rule", "a"), ("workflow", "b")]
        assert "rule:a" in str(exc.value)

    def test_allow_pending(self, store):
        text = ":::include rule:eslint\n:::new rule:a\n1\n:::end\n"
        out = render_document(text, store, allow_pending=True)
        assert out == "### eslint\n\nNo unused vars.\n:::new rule:a\n1\n:::end\n"

    def test_parse_errors_propagate(self, store):
        with pytest.raises(UnterminatedBlockError):
            render_document(":::list rule\ntypescript\n", store)

    def test_renders_full_document(self, store):
        text = (
            "# Agents\n"
            "\n"
            "## Code Quality\n"
            "\n"
            ":::list rule\n"
            "typescript\n"
            "eslint\n"
            ":::end\n"
            "\n"
            "## Deployment\n"
            "\n"
            ":::include workflow:deploy\n"
        )
        assert render_document(text, store) == (
            "# Agents\n"
            "\n"
            "## Code Quality\n"
            "\n"
            "### typescript\n"
            "\n"
            "Use strict mode.\n"
            "\n"
            "### eslint\n"
            "\n"
            "No unused vars.\n"
            "\n"
            "## Deployment\n"
            "\n"
            "### deploy\n"
            "\n"
            "Ship it.\n"
        )
