"""Tests for src/apple_docs_mcp/tokenizer.py."""

from apple_docs_mcp.tokenizer import split_compound, split_words, tokenize, tokenize_all


class TestSplitWords:
    def test_delimiters(self):
        assert split_words("documentation/swiftui/grid-item_view.json now") == [
            "documentation",
            "swiftui",
            "grid",
            "item",
            "view",
            "json",
            "now",
        ]

    def test_empty(self):
        assert split_words("") == []
        assert split_words(None) == []


class TestSplitCompound:
    def test_camel_case(self):
        assert split_compound("GridItem") == ["Grid", "Item"]

    def test_lower_camel(self):
        assert split_compound("tabBar") == ["tab", "Bar"]

    def test_single_word(self):
        assert split_compound("View") == ["View"]


class TestTokenize:
    def test_grid_item(self):
        """Compound names yield parts, the joined alias and the original."""
        tokens = tokenize("GridItem")
        assert {"grid", "item", "griditem", "GridItem"} <= tokens

    def test_both_cases_of_parts(self):
        tokens = tokenize("LazyVGrid")
        assert "Lazy" in tokens
        assert "lazy" in tokens
        assert "lazyvgrid" in tokens

    def test_path(self):
        tokens = tokenize("/documentation/swiftui/toolbarplacement/tabbar")
        assert {"documentation", "swiftui", "toolbarplacement", "tabbar"} <= tokens

    def test_deterministic(self):
        assert tokenize("NavigationStack path") == tokenize("NavigationStack path")

    def test_empty(self):
        assert tokenize("") == set()
        assert tokenize(None) == set()


class TestTokenizeAll:
    def test_union(self):
        tokens = tokenize_all("TabView", None, "a view-like control")
        assert {"tab", "view", "tabview", "like", "control"} <= tokens
