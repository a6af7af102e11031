"""rm -rf target classification."""

import os

from safety_net.shell import normalize_command_token

REASON_RM_RF = (
    "rm -rf outside cwd is blocked. Use explicit paths within the current directory, "
    "or delete manually."
)
REASON_RM_RF_ROOT_HOME = (
    "rm -rf targeting root or home directory is extremely dangerous and always blocked."
)
REASON_RM_RF_PARANOID = f"{REASON_RM_RF} (SAFETY_NET_PARANOID_RM enabled)"

# Literal spellings that mean "/" or "$HOME" no matter where rm runs.
_ROOT_HOME_TARGETS = frozenset(
    {"/", "/*", "~", "~/", "~/*", "$HOME", "$HOME/", "$HOME/*", "${HOME}", "${HOME}/", "${HOME}/*"}
)

_SYSTEM_TEMP_DIRS = ("/tmp", "/var/tmp")
_TMPDIR_VAR_PREFIXES = ("$TMPDIR", "${TMPDIR}")


def has_recursive_force(tokens: list[str]) -> bool:
    """True when options combine recursion and force (``-rf``, ``-r -f``, ``--recursive``)."""
    recursive = force = False
    for tok in tokens:
        if tok == "--":
            break
        if tok == "--recursive":
            recursive = True
        elif tok == "--force":
            force = True
        elif tok.startswith("-") and not tok.startswith("--"):
            letters = tok[1:]
            recursive = recursive or "r" in letters or "R" in letters
            force = force or "f" in letters
    return recursive and force


def recursive_force_suffixes(tokens: list[str]) -> list[bool]:
    """``has_recursive_force(tokens[i:])`` for every i, in one backward pass."""
    flags = [False] * len(tokens)
    recursive = force = False
    for i in range(len(tokens) - 1, -1, -1):
        tok = tokens[i]
        if tok == "--":
            recursive = force = False
        elif tok == "--recursive":
            recursive = True
        elif tok == "--force":
            force = True
        elif tok.startswith("-") and not tok.startswith("--"):
            letters = tok[1:]
            recursive = recursive or "r" in letters or "R" in letters
            force = force or "f" in letters
        flags[i] = recursive and force
    return flags


def extract_rm_targets(tokens: list[str]) -> list[str]:
    """Positional targets of an rm invocation; everything after ``--`` counts."""
    targets = []
    after_double_dash = False
    for tok in tokens[1:]:
        if not tok:
            continue
        if after_double_dash:
            targets.append(tok)
        elif tok == "--":
            after_double_dash = True
        elif not tok.startswith("-"):
            targets.append(tok)
    return targets


def is_root_or_home_path(target: str) -> bool:
    return target.strip() in _ROOT_HOME_TARGETS


def _is_under(path, directory):
    return path == directory or path.startswith(directory.rstrip("/") + "/")


def is_temp_path(target: str, *, allow_tmpdir_var: bool = True, tmp_dir: str | None = None) -> bool:
    """True for paths under /tmp, /var/tmp, the trusted system temp dir, or $TMPDIR.

    Anything containing ``..`` is never a temp path, so ``/tmp/../etc`` does
    not sneak through.
    """
    if ".." in target:
        return False
    if any(_is_under(target, d) for d in _SYSTEM_TEMP_DIRS):
        return True
    if tmp_dir:
        trusted = os.path.normpath(tmp_dir)
        if trusted != "/" and _is_under(target, trusted):
            return True
    if allow_tmpdir_var:
        for prefix in _TMPDIR_VAR_PREFIXES:
            if target == prefix or target.startswith(prefix + "/"):
                return True
    return False


def is_home_directory(cwd: str | None, home: str | None) -> bool:
    if not cwd or not home:
        return False
    return os.path.normpath(cwd) == os.path.normpath(home)


def is_cwd_itself(target: str, cwd: str) -> bool:
    if target in (".", "./"):
        return True
    resolved = os.path.normpath(os.path.join(cwd, target))
    if os.path.realpath(resolved) == os.path.realpath(cwd):
        return True
    return resolved == os.path.normpath(cwd)


def is_path_within_cwd(target: str, original_cwd: str, effective_cwd: str | None = None) -> bool:
    """True when *target* resolves strictly inside *original_cwd*.

    Relative targets resolve against *effective_cwd* (defaulting to
    *original_cwd*). Unexpandable forms (``~``, ``$VAR``, backticks) are
    never considered inside.
    """
    if target.startswith("~") or "$" in target or "`" in target:
        return False
    if os.path.isabs(target):
        resolved = os.path.normpath(target)
    else:
        resolved = os.path.normpath(os.path.join(effective_cwd or original_cwd, target))
    base = os.path.normpath(original_cwd)
    return resolved != base and resolved.startswith(base.rstrip("/") + "/")


def analyze_rm(
    tokens: list[str],
    *,
    cwd: str | None = None,
    original_cwd: str | None = None,
    paranoid: bool = False,
    allow_tmpdir_var: bool = True,
    tmpdir_overridden: bool = False,
    home: str | None = None,
    tmp_dir: str | None = None,
) -> str | None:
    """Return a deny reason for an rm invocation, or None when it is allowed.

    Only ``rm`` with both recursive and force options is inspected. Each
    target goes through these checks in order:

      1. root/home literals are always denied
      2. the working directory itself is denied
      3. temp paths are allowed
      4. with $HOME as the working directory, everything else is denied
      5. paths inside the original working directory are allowed, unless
         *paranoid* is set
    """
    if not tokens or normalize_command_token(tokens[0]) != "rm":
        return None
    if not has_recursive_force(tokens):
        return None

    check_cwd = original_cwd or cwd
    allow_var = allow_tmpdir_var and not tmpdir_overridden

    for target in extract_rm_targets(tokens):
        target = target.strip()
        if is_root_or_home_path(target):
            return REASON_RM_RF_ROOT_HOME
        if check_cwd and is_cwd_itself(target, check_cwd):
            return REASON_RM_RF
        if is_temp_path(target, allow_tmpdir_var=allow_var, tmp_dir=tmp_dir):
            continue
        if check_cwd:
            if is_home_directory(check_cwd, home):
                return REASON_RM_RF_ROOT_HOME
            if is_path_within_cwd(target, check_cwd, cwd):
                if paranoid:
                    return REASON_RM_RF_PARANOID
                continue
        return REASON_RM_RF
    return None
