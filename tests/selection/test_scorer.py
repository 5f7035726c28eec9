import unittest

from commit_gen.config.settings import SelectionCriteria
from commit_gen.models import ChangeKind, ChangeSet, FileChange, ValidationError
from commit_gen.selection.scorer import (
    is_source_path,
    is_test_path,
    rank_candidates,
    select_fallback,
    validate_selection,
)


def make_change(path: str, lines: int, kind: ChangeKind = ChangeKind.MODIFIED) -> FileChange:
    added = lines - lines // 2
    return FileChange(path=path, kind=kind, added=added, removed=lines - added, diff="+x\n" * lines)


def make_changeset(*changes: FileChange) -> ChangeSet:
    return ChangeSet(files=tuple(changes), unstaged_paths=tuple(c.path for c in changes))


def criteria(**overrides) -> SelectionCriteria:
    values = dict(
        min_files=2,
        max_files=10,
        prioritize_src=True,
        exclude_tests=True,
        min_changes=5,
        exclude_patterns=("*.lock", "dist/"),
    )
    values.update(overrides)
    return SelectionCriteria(**values)


class TestPathHeuristics(unittest.TestCase):
    def test_source_paths(self) -> None:
        self.assertTrue(is_source_path("src/app.py"))
        self.assertTrue(is_source_path("pkg/server/main.go"))
        self.assertFalse(is_source_path("README.md"))
        self.assertFalse(is_source_path("src"))

    def test_test_paths(self) -> None:
        for path in ("tests/test_app.py", "test_app.py", "pkg/app_test.go", "web/app.test.js", "spec/x.rb"):
            with self.subTest(path=path):
                self.assertTrue(is_test_path(path))
        for path in ("src/app.py", "latest.py", "contest/entry.py"):
            with self.subTest(path=path):
                self.assertFalse(is_test_path(path))


class TestRankCandidates(unittest.TestCase):
    def test_twelve_file_change(self) -> None:
        changeset = make_changeset(
            make_change("README.md", 8),
            make_change("Cargo.lock", 200),
            make_change("src/util.py", 3),
            make_change("tests/test_core.py", 50),
            make_change("src/core.py", 40),
            make_change("docs/guide.md", 6),
            make_change("setup.cfg", 2),
            make_change("app/views.py", 20),
            make_change("scripts/run.sh", 7),
            make_change("lib/helpers.py", 12),
            make_change("config.yaml", 9),
            make_change("src/api.py", 30),
        )
        ranked = rank_candidates(changeset, criteria())
        self.assertEqual(
            [item.path for item in ranked],
            [
                "src/core.py",
                "src/api.py",
                "app/views.py",
                "lib/helpers.py",
                "config.yaml",
                "README.md",
                "scripts/run.sh",
                "docs/guide.md",
            ],
        )

    def test_max_files_bound(self) -> None:
        changeset = make_changeset(*(make_change(f"src/m{i}.py", 10 + i) for i in range(6)))
        ranked = rank_candidates(changeset, criteria(max_files=3))
        self.assertEqual([item.path for item in ranked], ["src/m5.py", "src/m4.py", "src/m3.py"])

    def test_relaxes_min_changes_to_reach_min_files(self) -> None:
        changeset = make_changeset(
            make_change("a.py", 10),
            make_change("b.py", 2),
            make_change("c.py", 1),
            make_change("d.py", 3),
        )
        ranked = rank_candidates(changeset, criteria(min_files=3))
        self.assertEqual([item.path for item in ranked], ["a.py", "d.py", "b.py"])

    def test_small_pool_returned_whole(self) -> None:
        changeset = make_changeset(make_change("only.py", 1))
        ranked = rank_candidates(changeset, criteria(min_files=2))
        self.assertEqual([item.path for item in ranked], ["only.py"])

    def test_ties_break_on_path(self) -> None:
        changeset = make_changeset(make_change("b.py", 6), make_change("a.py", 6))
        ranked = rank_candidates(changeset, criteria())
        self.assertEqual([item.path for item in ranked], ["a.py", "b.py"])

    def test_tests_kept_but_ranked_last_when_allowed(self) -> None:
        changeset = make_changeset(make_change("tests/test_a.py", 50), make_change("a.py", 6))
        ranked = rank_candidates(changeset, criteria(exclude_tests=False))
        self.assertEqual([item.path for item in ranked], ["a.py", "tests/test_a.py"])

    def test_without_source_priority(self) -> None:
        changeset = make_changeset(make_change("src/a.py", 6), make_change("b.py", 9))
        ranked = rank_candidates(changeset, criteria(prioritize_src=False))
        self.assertEqual([item.path for item in ranked], ["b.py", "src/a.py"])

    def test_bounds_hold_for_any_pool(self) -> None:
        for min_files, max_files in ((1, 1), (2, 5), (3, 3), (5, 10)):
            for size in range(16):
                changeset = make_changeset(
                    *(make_change(f"pkg{i % 3}/m{i}.py", (i * 7) % 13) for i in range(size))
                )
                with self.subTest(min_files=min_files, max_files=max_files, size=size):
                    ranked = rank_candidates(changeset, criteria(min_files=min_files, max_files=max_files))
                    self.assertLessEqual(len(ranked), max_files)
                    self.assertGreaterEqual(len(ranked), min(min_files, size))
                    self.assertEqual(len({item.path for item in ranked}), len(ranked))
                    below = [item.changed_lines < 5 for item in ranked]
                    self.assertEqual(below, sorted(below))

    def test_fallback_picks_significant_source_files(self) -> None:
        changeset = make_changeset(
            make_change("src/engine.py", 30),
            make_change("src/parser.py", 12),
            make_change("src/cli.py", 7),
            make_change("src/version.py", 1),
            make_change("Cargo.lock", 120),
            make_change("web/yarn.lock", 80),
            make_change("dist/app.js", 400),
            make_change("node_modules/x/index.js", 50),
            make_change("tests/test_engine.py", 60),
            make_change("README.md", 2),
            make_change("setup.cfg", 3),
            make_change("docs/notes.txt", 4),
        )
        selected = select_fallback(
            changeset, criteria(exclude_patterns=("*.lock", "dist/", "node_modules/"))
        )
        self.assertEqual(selected.paths, ("src/engine.py", "src/parser.py", "src/cli.py"))

    def test_fallback_is_ranking(self) -> None:
        changeset = make_changeset(make_change("b.py", 6), make_change("src/a.py", 6))
        selected = select_fallback(changeset, criteria())
        self.assertEqual(selected.paths, ("src/a.py", "b.py"))
        self.assertEqual(selected.source, "fallback")


class TestValidateSelection(unittest.TestCase):
    def setUp(self) -> None:
        self.changeset = make_changeset(
            make_change("src/a.py", 10),
            make_change("src/b.py", 8),
            make_change("README.md", 6),
            make_change("tests/test_a.py", 20),
            make_change("yarn.lock", 90),
        )

    def test_accepts_and_normalizes(self) -> None:
        selected = validate_selection(
            ["./src/b.py", " src/a.py ", "`README.md`", "src/a.py"], self.changeset, criteria()
        )
        self.assertEqual(selected.paths, ("src/b.py", "src/a.py", "README.md"))
        self.assertEqual(selected.source, "model")

    def test_drops_unknown_and_ineligible(self) -> None:
        selected = validate_selection(
            ["src/a.py", "src/invented.py", "tests/test_a.py", "yarn.lock", "README.md"],
            self.changeset,
            criteria(),
        )
        self.assertEqual(selected.paths, ("src/a.py", "README.md"))

    def test_cuts_to_max_files(self) -> None:
        selected = validate_selection(
            ["README.md", "src/b.py", "src/a.py"], self.changeset, criteria(max_files=2)
        )
        self.assertEqual(selected.paths, ("README.md", "src/b.py"))

    def test_too_few_files(self) -> None:
        with self.assertRaises(ValidationError):
            validate_selection(["src/a.py", "nope.py"], self.changeset, criteria())

    def test_empty_selection(self) -> None:
        with self.assertRaises(ValidationError):
            validate_selection([], self.changeset, criteria(min_files=1))


if __name__ == "__main__":
    unittest.main()
