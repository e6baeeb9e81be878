"""tests for tree search."""

from framework_canvas.core.search import all_paths, ancestors_of, find_matches, search


class TestSearch:
    """tests for name search and expansion."""

    def test_case_insensitive_substring(self, sample_tree):
        assert find_matches(sample_tree, "node") == ["Root/My Node", "Root/My Node/subnode"]

    def test_expand_includes_ancestors_and_root(self, sample_tree):
        result = search(sample_tree, "node")
        assert result.count == 2
        assert result.expand == {"Root", "Root/My Node", "Root/My Node/subnode"}

    def test_empty_query_matches_nothing(self, sample_tree):
        result = search(sample_tree, "")
        assert result.matches == []
        assert result.expand == set()

    def test_no_match(self, sample_tree):
        assert search(sample_tree, "zzz").count == 0

    def test_root_can_match(self, sample_tree):
        assert find_matches(sample_tree, "ROOT") == ["Root"]

    def test_ancestors_of(self):
        assert ancestors_of(["A/B/C", "A/D"]) == {"A", "A/B", "A/B/C", "A/D"}

    def test_all_paths(self, sample_tree):
        assert len(all_paths(sample_tree)) == 5
