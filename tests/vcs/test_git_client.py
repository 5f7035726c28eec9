import os
import subprocess
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from commit_gen.vcs.git_client import GitClient, GitError, StatusEntry


class DummyProc(SimpleNamespace):
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


class TestStatusEntries(unittest.TestCase):
    def test_parses_porcelain_z_output(self) -> None:
        output = "\0".join(
            [
                " M modified_file.py",
                "A  added_file.py",
                "D  deleted_file.py",
                "R  renamed_new.py",
                "renamed_old.py",
                "MM both.py",
                "?? untracked.txt",
                "",
            ]
        )

        def fake_run(self, args, check=True, env=None):
            if args[0] == "status":
                return DummyProc(returncode=0, stdout=output, stderr="")
            raise AssertionError(f"Unexpected git command: {args}")

        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = fake_run
            entries = GitClient(Path("/repo")).status_entries()

        self.assertEqual(
            entries,
            [
                StatusEntry("modified_file.py", " ", "M"),
                StatusEntry("added_file.py", "A", " "),
                StatusEntry("deleted_file.py", "D", " "),
                StatusEntry("renamed_new.py", "R", " ", old_path="renamed_old.py"),
                StatusEntry("both.py", "M", "M"),
                StatusEntry("untracked.txt", "?", "?"),
            ],
        )

    def test_entry_flags(self) -> None:
        untracked = StatusEntry("new.txt", "?", "?")
        self.assertTrue(untracked.is_untracked)
        self.assertTrue(untracked.has_unstaged)
        self.assertFalse(untracked.has_staged)

        both = StatusEntry("both.py", "M", "M")
        self.assertTrue(both.has_staged)
        self.assertTrue(both.has_unstaged)

        staged_only = StatusEntry("a.py", "A", " ")
        self.assertTrue(staged_only.has_staged)
        self.assertFalse(staged_only.has_unstaged)

    def test_status_failure_raises(self) -> None:
        proc = DummyProc(returncode=128, stdout="", stderr="fatal: not a git repository")
        with patch("commit_gen.vcs.git_client.subprocess.run", return_value=proc):
            with self.assertRaises(GitError):
                GitClient(Path("/repo")).status_entries()


class TestDiffAndCommit(unittest.TestCase):
    def setUp(self) -> None:
        self.calls = []

        def fake_run(client, args, check=True, env=None):
            self.calls.append((args, check, env))
            if args[:2] == ["diff", "--no-index"]:
                return DummyProc(returncode=1, stdout="+new line\n", stderr="")
            return DummyProc(returncode=0, stdout="diff text", stderr="")

        patcher = patch.object(GitClient, "_run", autospec=True, side_effect=fake_run)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = GitClient(Path("/repo"))

    def test_worktree_diff(self) -> None:
        self.assertEqual(self.client.get_diff("a.py"), "diff text")
        self.assertEqual(self.calls[0][0], ["diff", "-M", "--", "a.py"])

    def test_staged_rename_diff(self) -> None:
        self.client.get_diff("new.py", staged=True, old_path="old.py")
        self.assertEqual(self.calls[0][0], ["diff", "--cached", "-M", "--", "old.py", "new.py"])

    def test_untracked_diff_accepts_exit_status_one(self) -> None:
        diff = self.client.get_diff("new.txt", untracked=True)
        self.assertEqual(diff, "+new line\n")
        args, check, _ = self.calls[0]
        self.assertEqual(args, ["diff", "--no-index", "--", os.devnull, "new.txt"])
        self.assertFalse(check)

    def test_stage_all(self) -> None:
        self.client.stage_all()
        self.assertEqual(self.calls[0][0], ["add", "--all"])

    def test_commit_plain(self) -> None:
        self.client.commit("feat: add x\n\n- detail")
        args, check, env = self.calls[0]
        self.assertEqual(args, ["commit", "-m", "feat: add x\n\n- detail"])
        self.assertIsNone(env)

    def test_commit_with_dates_and_amend(self) -> None:
        self.client.commit(
            "msg",
            author_date="2024-03-01T15:30:00",
            committer_date="2024-03-02T10:00:00",
            amend=True,
        )
        args, _, env = self.calls[0]
        self.assertEqual(args, ["commit", "--amend", "-m", "msg"])
        self.assertEqual(
            env,
            {"GIT_AUTHOR_DATE": "2024-03-01T15:30:00", "GIT_COMMITTER_DATE": "2024-03-02T10:00:00"},
        )


class TestRun(unittest.TestCase):
    def test_env_is_merged_with_process_environment(self) -> None:
        with patch("commit_gen.vcs.git_client.subprocess.run", return_value=DummyProc()) as mock_run:
            GitClient(Path("/repo"))._run(["status"], env={"GIT_AUTHOR_DATE": "x"})
        env = mock_run.call_args.kwargs["env"]
        self.assertEqual(env["GIT_AUTHOR_DATE"], "x")
        self.assertIn("PATH", env)

    def test_missing_git_binary(self) -> None:
        with patch("commit_gen.vcs.git_client.subprocess.run", side_effect=FileNotFoundError("git")):
            with self.assertRaises(GitError):
                GitClient(Path("/repo"))._run(["status"])

    def test_unchecked_failure_is_returned(self) -> None:
        proc = DummyProc(returncode=1, stdout="", stderr="boom")
        with patch("commit_gen.vcs.git_client.subprocess.run", return_value=proc):
            result = GitClient(Path("/repo"))._run(["diff"], check=False)
        self.assertEqual(result.returncode, 1)


class TestFindRepoRoot(unittest.TestCase):
    def test_walks_up_to_git_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".git").mkdir()
            nested = root / "a" / "b"
            nested.mkdir(parents=True)
            self.assertEqual(GitClient.find_repo_root(nested), root)
            self.assertTrue(GitClient.is_repo(root))
            self.assertFalse(GitClient.is_repo(nested))

    def test_real_git_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            try:
                subprocess.run(["git", "init", "-q", str(root)], check=True)
            except (OSError, subprocess.CalledProcessError):
                self.skipTest("git is not available")
            (root / "hello.txt").write_text("hello\n")
            client = GitClient(root)
            entries = client.status_entries()
            self.assertEqual(entries, [StatusEntry("hello.txt", "?", "?")])
            self.assertIn("+hello", client.get_diff("hello.txt", untracked=True))


if __name__ == "__main__":
    unittest.main()
