from __future__ import annotations

from stashnav.diffs.models import ChangeType, DiffLineKind
from stashnav.diffs.parser import (
    document_lines,
    parse_diff,
    parse_file_summary,
    render_diff_text,
)

TWO_FILE_DIFF = """\
diff --git a/app.py b/app.py
index 1111111..2222222 100644
--- a/app.py
+++ b/app.py
@@ -1,3 +1,4 @@ def main():
 import os
-import sys
+import sys  # noqa
+import json

@@ -10,2 +11,2 @@
 value = 1
---- removed rule
+--- added rule
diff --git a/docs/readme.md b/docs/readme.md
new file mode 100644
index 0000000..3333333
--- /dev/null
+++ b/docs/readme.md
@@ -0,0 +1 @@
+# Title
\\ No newline at end of file
"""


def test_parse_diff_splits_hunks_by_declared_counts() -> None:
    document = parse_diff(TWO_FILE_DIFF)

    assert document.partial is False
    assert len(document.hunks) == 3
    first, second, third = document.hunks
    assert first.header == "@@ -1,3 +1,4 @@ def main():"
    assert [line.text for line in first.file_headers][0] == "diff --git a/app.py b/app.py"
    assert [line.kind for line in first.lines] == [
        DiffLineKind.CONTEXT,
        DiffLineKind.REMOVED,
        DiffLineKind.ADDED,
        DiffLineKind.ADDED,
        DiffLineKind.CONTEXT,
    ]
    assert second.file_headers == ()
    assert [line.kind for line in second.lines] == [
        DiffLineKind.CONTEXT,
        DiffLineKind.REMOVED,
        DiffLineKind.ADDED,
    ]
    assert second.lines[1].text == "---- removed rule"
    assert third.lines[0].kind is DiffLineKind.ADDED
    assert third.lines[-1].text.startswith("\\ No newline")


def test_parse_diff_round_trips_source_text() -> None:
    document = parse_diff(TWO_FILE_DIFF)

    assert render_diff_text(document) + "\n" == TWO_FILE_DIFF


def test_parse_diff_drops_truncated_final_hunk() -> None:
    truncated = "\n".join(
        [
            "diff --git a/a.txt b/a.txt",
            "--- a/a.txt",
            "+++ b/a.txt",
            "@@ -1,2 +1,2 @@",
            " keep",
            "-old",
            "diff --git a/b.txt b/b.txt",
            "--- a/b.txt",
            "+++ b/b.txt",
            "@@ -1,3 +1,3 @@",
            " one",
        ]
    )

    document = parse_diff(truncated)

    assert document.partial is True
    assert document.hunks == ()


def test_parse_diff_keeps_complete_hunks_before_truncation() -> None:
    text = "\n".join(
        [
            "diff --git a/a.txt b/a.txt",
            "--- a/a.txt",
            "+++ b/a.txt",
            "@@ -1 +1 @@",
            "-old",
            "+new",
            "@@ -5,3 +5,3 @@",
            " ctx",
        ]
    )

    document = parse_diff(text)

    assert document.partial is True
    assert len(document.hunks) == 1
    assert [line.text for line in document.hunks[0].lines] == ["-old", "+new"]


def test_parse_diff_binary_and_rename_placeholders() -> None:
    text = "\n".join(
        [
            "diff --git a/logo.png b/logo.png",
            "index 1234567..89abcde 100644",
            "Binary files a/logo.png and b/logo.png differ",
            "diff --git a/old.py b/new.py",
            "similarity index 100%",
            "rename from old.py",
            "rename to new.py",
        ]
    )

    document = parse_diff(text + "\n")

    assert document.partial is False
    assert [hunk.placeholder for hunk in document.hunks] == [
        "binary file not shown",
        "renamed without content changes",
    ]
    lines = document_lines(document)
    assert lines[-1].text == "[renamed without content changes]"
    assert render_diff_text(document) == text


def test_parse_diff_empty_input() -> None:
    document = parse_diff("")

    assert document.is_empty
    assert document.partial is False


def test_parse_file_summary_pairs_raw_and_numstat_records() -> None:
    text = "\n".join(
        [
            ":100644 100644 1111111 2222222 M\tsrc/app.py",
            ":000000 100644 0000000 3333333 A\tdocs/readme.md",
            ":100644 000000 4444444 0000000 D\told.txt",
            ":100644 100644 5555555 6666666 R087\tsrc/util.py\tsrc/helpers.py",
            ":100644 100644 7777777 8888888 M\tlogo.png",
            "3\t1\tsrc/app.py",
            "1\t0\tdocs/readme.md",
            "0\t12\told.txt",
            "2\t2\tsrc/{util.py => helpers.py}",
            "-\t-\tlogo.png",
        ]
    )

    summary = parse_file_summary(text + "\n")

    assert summary.partial is False
    assert [change.change_type for change in summary.changes] == [
        ChangeType.MODIFIED,
        ChangeType.ADDED,
        ChangeType.DELETED,
        ChangeType.RENAMED,
        ChangeType.MODIFIED,
    ]
    renamed = summary.changes[3]
    assert renamed.path == "src/helpers.py"
    assert renamed.old_path == "src/util.py"
    assert (summary.changes[4].insertions, summary.changes[4].deletions) == (0, 0)
    assert summary.total_insertions == 6
    assert summary.total_deletions == 15


def test_parse_file_summary_flags_unknown_status_and_mismatch() -> None:
    text = "\n".join(
        [
            ":100644 100644 1111111 2222222 T\tlink",
            ":100644 100644 3333333 4444444 M\tfile.txt",
            "1\t1\tlink",
        ]
    )

    summary = parse_file_summary(text)

    assert summary.partial is True
    assert summary.changes[0].change_type is ChangeType.MODIFIED
    assert summary.changes[0].raw_code == "T"
    assert (summary.changes[1].insertions, summary.changes[1].deletions) == (0, 0)


def test_parse_file_summary_numstat_only_is_partial() -> None:
    summary = parse_file_summary("4\t2\tREADME.md\n")

    assert summary.partial is True
    assert summary.changes[0].path == "README.md"
    assert summary.changes[0].insertions == 4
