"""Unit tests for glob pattern matching."""

import pytest

from threadline.utils.glob_matcher import matches, matches_any, matching_files


class TestMatches:
    """Test whole-path glob matching."""

    @pytest.mark.parametrize(
        "path,pattern",
        [
            ("src/a.ts", "**/*.ts"),
            ("a.ts", "**/*.ts"),
            ("src/a.ts", "src/*.ts"),
            ("src/a.ts", "src/**/a.ts"),
            ("src/x/y/a.ts", "src/**/a.ts"),
            ("src/a.ts", "src/**"),
            ("src", "src/**"),
            ("docs/guide/intro.md", "docs/**/*.md"),
            ("src/a1.ts", "src/a?.ts"),
            ("./src/a.ts", "src/*.ts"),
            ("src/a.ts", "./src/*.ts"),
            ("any/depth/of/file.txt", "**"),
        ],
    )
    def test_matching_paths(self, path, pattern):
        assert matches(path, pattern) is True

    @pytest.mark.parametrize(
        "path,pattern",
        [
            ("src/a.ts", "*.ts"),
            ("src/a.tsx", "**/*.ts"),
            ("src/x/a.ts", "src/*.ts"),
            ("lib/a.ts", "src/**/*.ts"),
            ("src/abc.ts", "src/a?.ts"),
            ("src/a/b.ts", "src/a?b.ts"),
            ("README.md", "docs/**/*.md"),
        ],
    )
    def test_non_matching_paths(self, path, pattern):
        assert matches(path, pattern) is False

    def test_double_star_inside_segment_stays_in_segment(self):
        assert matches("src/a.ts", "src/**.ts") is True
        assert matches("src/x/a.ts", "src/**.ts") is False

    def test_empty_inputs_never_match(self):
        assert matches("", "**") is False
        assert matches("src/a.ts", "") is False
        assert matches("src/a.ts", "   ") is False

    def test_matching_is_case_sensitive(self):
        assert matches("src/A.ts", "src/a.ts") is False

    def test_brackets_are_literal(self):
        route = "app/api/checks/[id]/route.ts"

        assert matches(route, route) is True
        assert matches(route, "app/api/**/[id]/*.ts") is True
        assert matches("src/[x].ts", "src/[x].ts") is True
        assert matches("src/x.ts", "src/[x].ts") is False
        assert matches("app/[...slug]/page.tsx", "app/[*]/page.tsx") is True


class TestMatchingFiles:
    """Test pattern selection over file lists."""

    def test_any_pattern_selects_file(self):
        assert matches_any("docs/b.md", ["**/*.ts", "docs/*.md"]) is True
        assert matches_any("docs/b.md", []) is False

    def test_preserves_input_order_and_deduplicates(self):
        files = ["src/b.ts", "docs/b.md", "src/a.ts", "src/b.ts"]

        assert matching_files(files, ["**/*.ts"]) == ["src/b.ts", "src/a.ts"]

    def test_no_patterns_selects_nothing(self):
        assert matching_files(["src/a.ts"], []) == []
