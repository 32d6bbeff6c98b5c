"""Unit tests for unified diff parsing and filtering."""

from threadline.utils.diff_filter import (
    DiffStats,
    count_diff_lines,
    files_touched,
    filter_by_files,
    parse,
)

NEW_FILE = (
    "diff --git a/new.py b/new.py\n"
    "new file mode 100644\n"
    "index 0000000..1234567\n"
    "--- /dev/null\n"
    "+++ b/new.py\n"
    "@@ -0,0 +1 @@\n"
    '+print("hi")\n'
)

DELETED_FILE = (
    "diff --git a/old.py b/old.py\n"
    "deleted file mode 100644\n"
    "index 1234567..0000000\n"
    "--- a/old.py\n"
    "+++ /dev/null\n"
    "@@ -1 +0,0 @@\n"
    '-print("bye")\n'
)

RENAMED_FILE = (
    "diff --git a/old/name.py b/new/name.py\n"
    "similarity index 90%\n"
    "rename from old/name.py\n"
    "rename to new/name.py\n"
    "index 1111111..2222222 100644\n"
    "--- a/old/name.py\n"
    "+++ b/new/name.py\n"
    "@@ -1 +1 @@\n"
    "-x = 1\n"
    "+x = 2\n"
)

PLAIN_DIFF = (
    "--- a/x.py\n"
    "+++ b/x.py\n"
    "@@ -1 +1 @@\n"
    "-a\n"
    "+b\n"
    "--- a/y.py\n"
    "+++ b/y.py\n"
    "@@ -1 +1 @@\n"
    "-c\n"
    "+d\n"
)


class TestParse:
    """Test splitting a diff into file sections."""

    def test_git_sections(self, sample_diff, ts_section, md_section):
        sections = list(parse(sample_diff))

        assert [s.path for s in sections] == ["src/a.ts", "docs/b.md"]
        assert sections[0].text == ts_section
        assert sections[1].text == md_section

    def test_new_file_has_no_old_path(self):
        section = next(parse(NEW_FILE))

        assert section.old_path is None
        assert section.new_path == "new.py"
        assert section.path == "new.py"

    def test_deleted_file_uses_old_path(self):
        section = next(parse(DELETED_FILE))

        assert section.new_path is None
        assert section.path == "old.py"

    def test_rename_records_both_paths(self):
        section = next(parse(RENAMED_FILE))

        assert section.old_path == "old/name.py"
        assert section.new_path == "new/name.py"
        assert section.is_rename is True

    def test_diff_without_git_headers(self):
        assert [s.path for s in parse(PLAIN_DIFF)] == ["x.py", "y.py"]

    def test_header_lookalikes_inside_plain_hunk(self):
        # Removed "-- x" and added "++ y" render as "--- x" and "+++ y"
        diff = (
            "--- a/x.sql\n"
            "+++ b/x.sql\n"
            "@@ -1,2 +1,2 @@\n"
            "--- x\n"
            "+++ y\n"
            " select 1;\n"
            "--- a/y.sql\n"
            "+++ b/y.sql\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
        )

        sections = list(parse(diff))

        assert [s.path for s in sections] == ["x.sql", "y.sql"]
        assert "+++ y\n" in sections[0].text
        assert files_touched(diff) == ["x.sql", "y.sql"]

    def test_preamble_is_not_a_section(self, sample_diff):
        diff = "commit abc123\nAuthor: dev\n\n" + sample_diff

        assert "".join(s.text for s in parse(diff)) == sample_diff

    def test_empty_diff(self):
        assert list(parse("")) == []


class TestFilesTouched:
    """Test file listing from diffs."""

    def test_order_of_first_appearance(self, sample_diff):
        assert files_touched(sample_diff) == ["src/a.ts", "docs/b.md"]

    def test_rename_reports_new_path(self):
        assert files_touched(RENAMED_FILE) == ["new/name.py"]

    def test_empty_diff(self):
        assert files_touched("") == []


class TestFilterByFiles:
    """Test restricting a diff to allowed files."""

    def test_keeps_only_allowed_sections(self, sample_diff, md_section):
        filtered = filter_by_files(sample_diff, ["docs/b.md"])

        assert filtered == md_section
        assert "src/a.ts" not in filtered

    def test_all_allowed_is_verbatim(self, sample_diff):
        assert filter_by_files(sample_diff, ["src/a.ts", "docs/b.md"]) == sample_diff

    def test_filtered_files_are_subset_of_allowed(self, sample_diff):
        allowed = ["src/a.ts", "src/other.ts"]

        assert set(files_touched(filter_by_files(sample_diff, allowed))) <= set(allowed)

    def test_empty_allowed_set(self, sample_diff):
        assert filter_by_files(sample_diff, []) == ""

    def test_empty_diff(self):
        assert filter_by_files("", ["src/a.ts"]) == ""
        assert filter_by_files("  \n", ["src/a.ts"]) == ""

    def test_file_not_in_diff(self, sample_diff):
        assert filter_by_files(sample_diff, ["src/c.ts"]) == ""

    def test_rename_matches_old_or_new_path(self):
        assert filter_by_files(RENAMED_FILE, ["old/name.py"]) == RENAMED_FILE
        assert filter_by_files(RENAMED_FILE, ["new/name.py"]) == RENAMED_FILE

    def test_deleted_file_matches_old_path(self, sample_diff):
        diff = sample_diff + DELETED_FILE

        assert filter_by_files(diff, ["old.py"]) == DELETED_FILE


class TestCountDiffLines:
    """Test diff line statistics."""

    def test_counts_exclude_file_headers(self, sample_diff):
        stats = count_diff_lines(sample_diff)

        assert stats == DiffStats(added=3, removed=2)
        assert stats.total == 5

    def test_empty_diff(self):
        assert count_diff_lines("").total == 0
