import unittest

from commit_gen.changes.collector import (
    CollectionError,
    EmptyChangeSetError,
    collect_changes,
    count_changed_lines,
    matches_exclude,
    strip_diff_headers,
)
from commit_gen.models import ChangeKind
from commit_gen.vcs.git_client import GitError, StatusEntry


FULL_DIFF = (
    "diff --git a/src/app.py b/src/app.py\n"
    "index 123..456 100644\n"
    "--- a/src/app.py\n"
    "+++ b/src/app.py\n"
    "@@ -1,3 +1,4 @@\n"
    " import os\n"
    "-old = 1\n"
    "+new = 2\n"
    "+extra = 3\n"
)


class DummyGitClient:
    def __init__(self, entries, diffs=None, fail_status=False):
        self.entries = entries
        self.diffs = diffs or {}
        self.fail_status = fail_status
        self.diff_calls = []

    def status_entries(self):
        if self.fail_status:
            raise GitError("fatal: bad index")
        return self.entries

    def get_diff(self, path, staged=False, untracked=False, old_path=None):
        self.diff_calls.append((path, staged, untracked, old_path))
        value = self.diffs.get((path, staged), "")
        if isinstance(value, Exception):
            raise value
        return value


class TestDiffHelpers(unittest.TestCase):
    def test_strip_headers_keeps_hunks(self) -> None:
        stripped = strip_diff_headers(FULL_DIFF)
        self.assertTrue(stripped.startswith("@@ -1,3 +1,4 @@"))
        self.assertNotIn("+++", stripped)
        self.assertNotIn("---", stripped)

    def test_strip_headers_binary(self) -> None:
        diff = (
            "diff --git a/logo.png b/logo.png\n"
            "index 1..2 100644\n"
            "Binary files a/logo.png and b/logo.png differ\n"
        )
        self.assertEqual(strip_diff_headers(diff), "Binary files a/logo.png and b/logo.png differ")

    def test_count_changed_lines(self) -> None:
        self.assertEqual(count_changed_lines(strip_diff_headers(FULL_DIFF)), (2, 1))
        self.assertEqual(count_changed_lines(""), (0, 0))


class TestMatchesExclude(unittest.TestCase):
    def test_glob_on_basename(self) -> None:
        self.assertTrue(matches_exclude("Cargo.lock", ["*.lock"]))
        self.assertTrue(matches_exclude("web/yarn.lock", ["*.lock"]))
        self.assertFalse(matches_exclude("src/lock.py", ["*.lock"]))

    def test_directory_pattern(self) -> None:
        self.assertTrue(matches_exclude("dist/bundle.js", ["dist/"]))
        self.assertTrue(matches_exclude("web/node_modules/x/index.js", ["node_modules/"]))
        self.assertFalse(matches_exclude("distribution.py", ["dist/"]))

    def test_nested_directory_pattern(self) -> None:
        self.assertTrue(matches_exclude("build/gen/out.c", ["build/gen/"]))
        self.assertFalse(matches_exclude("src/build/gen/out.c", ["build/gen/"]))

    def test_no_patterns(self) -> None:
        self.assertFalse(matches_exclude("a.py", []))


class TestCollectChanges(unittest.TestCase):
    def test_staged_and_unstaged(self) -> None:
        client = DummyGitClient(
            [
                StatusEntry("src/app.py", "M", " "),
                StatusEntry("notes.txt", "?", "?"),
            ],
            diffs={
                ("src/app.py", True): FULL_DIFF,
                ("notes.txt", False): "@@ -0,0 +1 @@\n+hello\n",
            },
        )
        changeset = collect_changes(client)

        self.assertEqual(changeset.paths, ("src/app.py", "notes.txt"))
        self.assertEqual(changeset.staged_paths, ("src/app.py",))
        self.assertEqual(changeset.unstaged_paths, ("notes.txt",))
        app = changeset.get("src/app.py")
        self.assertEqual(app.kind, ChangeKind.MODIFIED)
        self.assertEqual((app.added, app.removed), (2, 1))
        self.assertTrue(app.staged)
        notes = changeset.get("notes.txt")
        self.assertEqual(notes.kind, ChangeKind.ADDED)
        self.assertIn(("notes.txt", False, True, None), client.diff_calls)

    def test_staged_view_wins_for_mixed_file(self) -> None:
        client = DummyGitClient(
            [StatusEntry("a.py", "M", "M")],
            diffs={("a.py", True): "@@ -1 +1 @@\n-a\n+b\n", ("a.py", False): "@@ -1 +1 @@\n-b\n+c\n"},
        )
        changeset = collect_changes(client)
        self.assertEqual(len(changeset), 1)
        self.assertIn("+b", changeset.get("a.py").diff)
        self.assertEqual(changeset.staged_paths, ("a.py",))
        self.assertEqual(changeset.unstaged_paths, ("a.py",))

    def test_only_unstaged(self) -> None:
        client = DummyGitClient(
            [StatusEntry("a.py", "M", " "), StatusEntry("b.py", " ", "M")],
            diffs={("b.py", False): "@@ -1 +1 @@\n-x\n+y\n"},
        )
        changeset = collect_changes(client, include_staged=False)
        self.assertEqual(changeset.paths, ("b.py",))

    def test_rename_keeps_old_path(self) -> None:
        client = DummyGitClient([StatusEntry("new.py", "R", " ", old_path="old.py")])
        changeset = collect_changes(client)
        change = changeset.get("new.py")
        self.assertEqual(change.kind, ChangeKind.RENAMED)
        self.assertEqual(change.old_path, "old.py")
        self.assertEqual(client.diff_calls, [("new.py", True, False, "old.py")])

    def test_excluded_files_are_dropped(self) -> None:
        client = DummyGitClient(
            [
                StatusEntry("Cargo.lock", "M", " "),
                StatusEntry("dist/app.js", "M", " "),
                StatusEntry("src/main.rs", "M", " "),
            ]
        )
        changeset = collect_changes(client, ["*.lock", "dist/"])
        self.assertEqual(changeset.paths, ("src/main.rs",))
        self.assertEqual([call[0] for call in client.diff_calls], ["src/main.rs"])

    def test_everything_excluded(self) -> None:
        client = DummyGitClient([StatusEntry("Cargo.lock", "M", " ")])
        with self.assertRaises(EmptyChangeSetError):
            collect_changes(client, ["*.lock"])

    def test_clean_tree(self) -> None:
        with self.assertRaises(EmptyChangeSetError) as ctx:
            collect_changes(DummyGitClient([]))
        self.assertIn("No changes to commit", str(ctx.exception))

    def test_both_sources_disabled(self) -> None:
        client = DummyGitClient([StatusEntry("a.py", "M", " ")])
        with self.assertRaises(EmptyChangeSetError):
            collect_changes(client, include_staged=False, include_unstaged=False)
        self.assertEqual(client.diff_calls, [])

    def test_status_failure(self) -> None:
        with self.assertRaises(CollectionError) as ctx:
            collect_changes(DummyGitClient([], fail_status=True))
        self.assertNotIsInstance(ctx.exception, EmptyChangeSetError)

    def test_diff_failure(self) -> None:
        client = DummyGitClient(
            [StatusEntry("a.py", "M", " ")],
            diffs={("a.py", True): GitError("boom")},
        )
        with self.assertRaises(CollectionError):
            collect_changes(client)


if __name__ == "__main__":
    unittest.main()
