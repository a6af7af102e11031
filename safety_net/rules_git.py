"""Destructive git subcommand detection."""

from safety_net.shell import extract_short_opts, normalize_command_token

REASON_CHECKOUT_DOUBLE_DASH = (
    "git checkout -- discards uncommitted changes permanently. Use 'git stash' first."
)
REASON_CHECKOUT_REF_PATH = (
    "git checkout <ref> -- <path> overwrites working tree with the ref's version. "
    "Use 'git stash' first."
)
REASON_CHECKOUT_PATHSPEC_FROM_FILE = (
    "git checkout --pathspec-from-file can overwrite multiple files. Use 'git stash' first."
)
REASON_CHECKOUT_AMBIGUOUS = (
    "git checkout with multiple positional args may overwrite files. "
    "Use 'git switch' for branches or 'git restore' for files."
)
REASON_CHECKOUT_DOT = (
    "git checkout . discards all uncommitted changes permanently. Use 'git stash' first."
)
REASON_CHECKOUT_FORCE = "git checkout --force discards uncommitted changes. Use 'git stash' first."
REASON_RESTORE = (
    "git restore discards uncommitted changes. Use 'git stash' first, "
    "or use --staged to only unstage."
)
REASON_RESTORE_WORKTREE = "git restore --worktree discards uncommitted changes permanently."
REASON_RESET_HARD = (
    "git reset --hard destroys all uncommitted changes permanently. Use 'git stash' first."
)
REASON_RESET_MERGE = "git reset --merge can lose uncommitted changes. Use 'git stash' first."
REASON_CLEAN = (
    "git clean -f removes untracked files permanently. Review with 'git clean -n' first."
)
REASON_PUSH_FORCE = "Force push can destroy remote history. Use --force-with-lease if necessary."
REASON_BRANCH_DELETE = "git branch -D force-deletes without merge check. Use -d for safety."
REASON_STASH_DROP = "git stash drop permanently deletes stashed changes. List stashes first."
REASON_STASH_CLEAR = "git stash clear permanently deletes ALL stashed changes."
REASON_WORKTREE_REMOVE_FORCE = (
    "git worktree remove --force can delete uncommitted changes. Remove --force flag."
)

# Global options (before the subcommand) that consume the next token.
_GIT_GLOBAL_VALUE_OPTIONS = frozenset(
    {"-C", "-c", "--git-dir", "--work-tree", "--namespace", "--config-env", "--super-prefix"}
)

_CHECKOUT_BRANCH_CREATE = frozenset({"-b", "-B", "--orphan"})
_CHECKOUT_VALUE_OPTIONS = frozenset({"-b", "-B", "--orphan", "--conflict"})


def extract_git_subcommand_and_rest(tokens: list[str]) -> tuple[str | None, list[str]]:
    """Split ``git [global options] <subcommand> <rest...>``.

    Returns ``(None, [])`` when no subcommand is present (``git``,
    ``git --version``).
    """
    i = 1
    while i < len(tokens):
        tok = tokens[i]
        if tok == "--":
            return None, []
        if tok in _GIT_GLOBAL_VALUE_OPTIONS:
            i += 2
            continue
        if tok.startswith("-"):
            i += 1
            continue
        return tok.lower(), list(tokens[i + 1 :])
    return None, []


def get_checkout_positional_args(args: list[str]) -> list[str]:
    """Positional (non-option) arguments of ``git checkout``, stopping at ``--``."""
    positional = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--":
            break
        if arg in _CHECKOUT_VALUE_OPTIONS:
            i += 2
            continue
        if arg.startswith("-"):
            i += 1
            continue
        positional.append(arg)
        i += 1
    return positional


def _before_double_dash(args):
    return args[: args.index("--")] if "--" in args else args


def _next_positional(args):
    """Return the first non-flag argument, or None."""
    for arg in args:
        if arg != "--" and not arg.startswith("-"):
            return arg
    return None


def _check_checkout(args, opts):
    options = _before_double_dash(args)
    if any(a in _CHECKOUT_BRANCH_CREATE for a in options):
        return None
    if any(a == "--pathspec-from-file" or a.startswith("--pathspec-from-file=") for a in options):
        return REASON_CHECKOUT_PATHSPEC_FROM_FILE
    if "--" in args:
        after = args[args.index("--") + 1 :]
        if not after:
            return None
        if get_checkout_positional_args(options):
            return REASON_CHECKOUT_REF_PATH
        return REASON_CHECKOUT_DOUBLE_DASH
    if "--force" in options or "f" in opts:
        return REASON_CHECKOUT_FORCE
    positional = get_checkout_positional_args(args)
    if len(positional) >= 2:
        return REASON_CHECKOUT_AMBIGUOUS
    if positional == ["."]:
        return REASON_CHECKOUT_DOT
    return None


def _check_restore(args, opts):
    options = _before_double_dash(args)
    if "--help" in options or "-h" in options:
        return None
    if "--worktree" in options or "W" in opts:
        return REASON_RESTORE_WORKTREE
    if "--staged" in options or "S" in opts:
        return None
    return REASON_RESTORE


def _check_reset(args, _opts):
    options = _before_double_dash(args)
    if "--hard" in options:
        return REASON_RESET_HARD
    if "--merge" in options:
        return REASON_RESET_MERGE
    return None


def _check_clean(args, opts):
    options = _before_double_dash(args)
    force = "--force" in options or "f" in opts
    dry_run = "--dry-run" in options or "n" in opts
    if force and not dry_run:
        return REASON_CLEAN
    return None


def _check_push(args, opts):
    options = _before_double_dash(args)
    if "--force" in options or "f" in opts:
        return REASON_PUSH_FORCE
    if any(a.startswith("+") for a in options):
        return REASON_PUSH_FORCE
    return None


def _check_branch(args, opts):
    options = _before_double_dash(args)
    if "D" in opts:
        return REASON_BRANCH_DELETE
    deleting = "--delete" in options or "d" in opts
    if deleting and ("--force" in options or "f" in opts):
        return REASON_BRANCH_DELETE
    return None


def _check_stash(args, _opts):
    action = _next_positional(args)
    if action == "drop":
        return REASON_STASH_DROP
    if action == "clear":
        return REASON_STASH_CLEAR
    return None


def _check_worktree(args, opts):
    if _next_positional(args) != "remove":
        return None
    if "--force" in args or "f" in opts:
        return REASON_WORKTREE_REMOVE_FORCE
    return None


# Each rule: (subcommand, check_function)
# check_function(args, short_opts) -> reason or None
GIT_DENY_RULES = [
    ("checkout", _check_checkout),
    ("restore", _check_restore),
    ("reset", _check_reset),
    ("clean", _check_clean),
    ("push", _check_push),
    ("branch", _check_branch),
    ("stash", _check_stash),
    ("worktree", _check_worktree),
]


def analyze_git(tokens: list[str]) -> str | None:
    """Return a deny reason for a destructive git invocation, or None."""
    if not tokens or normalize_command_token(tokens[0]) != "git":
        return None
    subcommand, rest = extract_git_subcommand_and_rest(tokens)
    if subcommand is None:
        return None
    opts = extract_short_opts(rest)
    for name, check_fn in GIT_DENY_RULES:
        if name == subcommand:
            return check_fn(rest, opts)
    return None
