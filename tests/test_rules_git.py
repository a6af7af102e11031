"""Tests for destructive git subcommand detection."""

import pytest

from safety_net import rules_git as g
from safety_net.rules_git import (
    analyze_git,
    extract_git_subcommand_and_rest,
    get_checkout_positional_args,
)


def git(command):
    return analyze_git(command.split())


class TestSubcommandExtraction:
    @pytest.mark.parametrize(
        "tokens, expected",
        [
            (["git", "status"], ("status", [])),
            (["git", "-C", "/repo", "push", "-f"], ("push", ["-f"])),
            (["git", "-c", "a=b", "--no-pager", "LOG"], ("log", [])),
            (["git", "--git-dir", ".git", "reset", "--hard"], ("reset", ["--hard"])),
            (["git"], (None, [])),
            (["git", "--version"], (None, [])),
        ],
        ids=["plain", "dash-C", "config-and-flag", "git-dir", "bare", "version"],
    )
    def test_extract(self, tokens, expected):
        assert extract_git_subcommand_and_rest(tokens) == expected

    def test_checkout_positionals(self):
        assert get_checkout_positional_args(["-b", "feat", "main", "--", "x"]) == ["main"]


# ═══════════════════════════════════════════════════════════════════════════════
# Denied
# ═══════════════════════════════════════════════════════════════════════════════


class TestDenied:
    @pytest.mark.parametrize(
        "command, expected",
        [
            ("git checkout -- file.txt", g.REASON_CHECKOUT_DOUBLE_DASH),
            ("git checkout HEAD -- file.txt", g.REASON_CHECKOUT_REF_PATH),
            ("git checkout .", g.REASON_CHECKOUT_DOT),
            ("git checkout main file.txt", g.REASON_CHECKOUT_AMBIGUOUS),
            ("git checkout -f main", g.REASON_CHECKOUT_FORCE),
            ("git checkout --force main", g.REASON_CHECKOUT_FORCE),
            ("git checkout --pathspec-from-file=list.txt", g.REASON_CHECKOUT_PATHSPEC_FROM_FILE),
            ("git restore file.txt", g.REASON_RESTORE),
            ("git restore --worktree --staged file.txt", g.REASON_RESTORE_WORKTREE),
            ("git reset --hard", g.REASON_RESET_HARD),
            ("git reset --hard HEAD~1", g.REASON_RESET_HARD),
            ("git reset --merge", g.REASON_RESET_MERGE),
            ("git clean -fd", g.REASON_CLEAN),
            ("git clean --force", g.REASON_CLEAN),
            ("git push --force", g.REASON_PUSH_FORCE),
            ("git push -f origin main", g.REASON_PUSH_FORCE),
            ("git push origin +main", g.REASON_PUSH_FORCE),
            ("git branch -D feature", g.REASON_BRANCH_DELETE),
            ("git branch --delete --force feature", g.REASON_BRANCH_DELETE),
            ("git branch -df feature", g.REASON_BRANCH_DELETE),
            ("git stash drop", g.REASON_STASH_DROP),
            ("git stash clear", g.REASON_STASH_CLEAR),
            ("git worktree remove --force ../wt", g.REASON_WORKTREE_REMOVE_FORCE),
            ("git -C /repo reset --hard", g.REASON_RESET_HARD),
            ("git -c core.x=y push -f", g.REASON_PUSH_FORCE),
            ("/usr/bin/git RESET --hard", g.REASON_RESET_HARD),
        ],
        ids=[
            "checkout-double-dash",
            "checkout-ref-path",
            "checkout-dot",
            "checkout-ambiguous",
            "checkout-f",
            "checkout-force",
            "checkout-pathspec-file",
            "restore",
            "restore-worktree",
            "reset-hard",
            "reset-hard-ref",
            "reset-merge",
            "clean-fd",
            "clean-force",
            "push-force",
            "push-f",
            "push-plus-refspec",
            "branch-D",
            "branch-delete-force",
            "branch-df",
            "stash-drop",
            "stash-clear",
            "worktree-remove-force",
            "global-C",
            "global-c",
            "absolute-upper",
        ],
    )
    def test_denied(self, command, expected):
        assert git(command) == expected


# ═══════════════════════════════════════════════════════════════════════════════
# Allowed
# ═══════════════════════════════════════════════════════════════════════════════


class TestAllowed:
    @pytest.mark.parametrize(
        "command",
        [
            "git status",
            "git checkout main",
            "git checkout -b feature",
            "git checkout -B feature origin/main",
            "git checkout --orphan gh-pages",
            "git checkout main --",
            "git restore --staged file.txt",
            "git restore -h",
            "git reset --soft HEAD~1",
            "git reset HEAD file.txt",
            "git clean -n",
            "git clean -fn",
            "git clean -f --dry-run",
            "git push --force-with-lease",
            "git push origin main",
            "git push -u origin feature",
            "git branch -d feature",
            "git stash",
            "git stash list",
            "git stash pop",
            "git worktree remove ../wt",
            "git",
            "git --version",
        ],
    )
    def test_allowed(self, command):
        assert git(command) is None
