"""Per-segment analysis: strip wrappers, dispatch by command, apply custom rules."""

import dataclasses
import enum
import os
from collections.abc import Callable
from typing import NamedTuple

from safety_net.context import MAX_RECURSION_DEPTH, REASON_RECURSION_LIMIT, AnalysisContext
from safety_net.custom_rules import match_custom_rules
from safety_net.interpreters import (
    SHELL_NAMES,
    analyze_interpreter,
    interpreter_name,
    parse_shell_c,
)
from safety_net.parallel import analyze_parallel
from safety_net.rules_find import REASON_FIND_EXEC_RM, analyze_find, extract_find_exec_commands
from safety_net.rules_git import analyze_git
from safety_net.rules_rm import analyze_rm, has_recursive_force, is_home_directory, is_temp_path
from safety_net.shell import normalize_command_token, strip_to_command
from safety_net.xargs import analyze_xargs

REASON_RM_HOME_CWD = (
    "rm -rf in home directory is extremely dangerous and always blocked. "
    "Change to a project directory first."
)

# analyze_nested(command_text, depth, ctx) -> reason or None
NestedAnalyzer = Callable[[str, int, AnalysisContext], str | None]

_CD_COMMANDS = frozenset({"cd", "pushd", "popd", "chdir"})
_DYNAMIC_PATH_CHARS = ("$", "`", "*", "?", "[")


class CommandKind(enum.Enum):
    RM = "rm"
    GIT = "git"
    FIND = "find"
    XARGS = "xargs"
    PARALLEL = "parallel"
    SHELL = "shell"
    EVAL = "eval"
    INTERPRETER = "interpreter"
    OTHER = "other"


_KIND_BY_HEAD = {
    "rm": CommandKind.RM,
    "git": CommandKind.GIT,
    "find": CommandKind.FIND,
    "xargs": CommandKind.XARGS,
    "parallel": CommandKind.PARALLEL,
    "eval": CommandKind.EVAL,
    **{name: CommandKind.SHELL for name in SHELL_NAMES},
}


def command_kind(head: str) -> CommandKind:
    name = normalize_command_token(head)
    kind = _KIND_BY_HEAD.get(name)
    if kind is not None:
        return kind
    if interpreter_name(name) is not None:
        return CommandKind.INTERPRETER
    return CommandKind.OTHER


class _Segment(NamedTuple):
    tokens: list[str]
    depth: int
    ctx: AnalysisContext
    cwd: str | None
    analyze_nested: NestedAnalyzer


def is_tmpdir_override(env: dict[str, str], tmp_dir: str | None) -> bool:
    """True when *env* assigns TMPDIR to something other than a temp path."""
    if "TMPDIR" not in env:
        return False
    return not is_temp_path(env["TMPDIR"], allow_tmpdir_var=False, tmp_dir=tmp_dir)


def analyze_rm_segment(tokens, ctx, effective_cwd):
    """rm analysis with the home-directory guard applied first."""
    if not has_recursive_force(tokens):
        return None
    if effective_cwd is not None and is_home_directory(effective_cwd, ctx.home):
        return REASON_RM_HOME_CWD
    if effective_cwd is None or ctx.original_cwd is None:
        cwd = original_cwd = None
    else:
        cwd, original_cwd = effective_cwd, ctx.original_cwd
    return analyze_rm(
        tokens,
        cwd=cwd,
        original_cwd=original_cwd,
        paranoid=ctx.paranoid_rm,
        allow_tmpdir_var=ctx.allow_tmpdir_var,
        tmpdir_overridden=ctx.tmpdir_overridden,
        home=ctx.home,
        tmp_dir=ctx.tmp_dir,
    )


def _child_analyzer(seg):
    def analyze_child(tokens):
        return analyze_segment(tokens, seg.depth + 1, seg.ctx, seg.cwd, seg.analyze_nested)

    return analyze_child


def _nested_analyzer(seg):
    nested_ctx = dataclasses.replace(seg.ctx, cwd=seg.cwd)

    def analyze_text(command):
        return seg.analyze_nested(command, seg.depth + 1, nested_ctx)

    return analyze_text


def _analyze_rm(seg):
    return analyze_rm_segment(seg.tokens, seg.ctx, seg.cwd)


def _analyze_git(seg):
    return analyze_git(seg.tokens)


def _analyze_find(seg):
    reason = analyze_find(seg.tokens)
    if reason:
        return reason
    analyze_child = _child_analyzer(seg)
    for child in extract_find_exec_commands(seg.tokens):
        stripped, _ = strip_to_command(child)
        if stripped and normalize_command_token(stripped[0]) == "rm":
            if has_recursive_force(stripped):
                return REASON_FIND_EXEC_RM
        reason = analyze_child(child)
        if reason:
            return reason
    return None


def _analyze_xargs(seg):
    return analyze_xargs(
        seg.tokens, analyze_child=_child_analyzer(seg), analyze_nested=_nested_analyzer(seg)
    )


def _analyze_parallel(seg):
    return analyze_parallel(
        seg.tokens, analyze_child=_child_analyzer(seg), analyze_nested=_nested_analyzer(seg)
    )


def _analyze_shell(seg):
    shell = parse_shell_c(seg.tokens)
    if shell is None or not shell.script:
        return None
    return _nested_analyzer(seg)(shell.script)


def _analyze_eval(seg):
    if len(seg.tokens) < 2:
        return None
    return _nested_analyzer(seg)(" ".join(seg.tokens[1:]))


def _analyze_interpreter(seg):
    return analyze_interpreter(seg.tokens, paranoid=seg.ctx.paranoid_interpreters)


_ANALYZERS = {
    CommandKind.RM: _analyze_rm,
    CommandKind.GIT: _analyze_git,
    CommandKind.FIND: _analyze_find,
    CommandKind.XARGS: _analyze_xargs,
    CommandKind.PARALLEL: _analyze_parallel,
    CommandKind.SHELL: _analyze_shell,
    CommandKind.EVAL: _analyze_eval,
    CommandKind.INTERPRETER: _analyze_interpreter,
}


def analyze_segment(
    tokens: list[str],
    depth: int,
    ctx: AnalysisContext,
    effective_cwd: str | None,
    analyze_nested: NestedAnalyzer,
) -> str | None:
    """Return a deny reason for one segment, or None.

    Keywords, env assignments and wrappers are stripped before dispatch.
    Built-in detectors run first; custom rules only see segments the
    detectors allowed. *analyze_nested* analyzes a full command string
    (shell -c scripts, eval, parallel arguments) one level deeper.
    """
    if depth >= MAX_RECURSION_DEPTH:
        return REASON_RECURSION_LIMIT

    stripped, env = strip_to_command(tokens)
    if not stripped or not stripped[0]:
        return None

    if not ctx.tmpdir_overridden and is_tmpdir_override(env, ctx.tmp_dir):
        ctx = dataclasses.replace(ctx, tmpdir_overridden=True)

    seg = _Segment(stripped, depth, ctx, effective_cwd, analyze_nested)
    analyzer = _ANALYZERS.get(command_kind(stripped[0]))
    if analyzer is not None:
        reason = analyzer(seg)
        if reason:
            return reason

    return match_custom_rules(stripped, ctx.config.rules)


# ── Working directory tracking ──


def segment_changes_cwd(tokens: list[str]) -> bool:
    stripped, _ = strip_to_command(tokens)
    return bool(stripped) and normalize_command_token(stripped[0]) in _CD_COMMANDS


def resolve_cd_target(tokens: list[str], effective_cwd: str | None, home: str | None) -> str | None:
    """Working directory after a cd-like segment, or None when it cannot be known."""
    stripped, _ = strip_to_command(tokens)
    head = normalize_command_token(stripped[0]) if stripped else ""
    if head == "popd":
        return None
    args = [t for t in stripped[1:] if t == "-" or not t.startswith("-")]
    if not args:
        if head == "pushd":
            return None
        target = home
    else:
        target = args[0]
    if not target or target == "-" or target.startswith("+"):
        return None
    if any(ch in target for ch in _DYNAMIC_PATH_CHARS):
        return None
    if target == "~" or target.startswith("~/"):
        if not home:
            return None
        target = home + target[1:]
    elif target.startswith("~"):
        return None
    if os.path.isabs(target):
        return os.path.normpath(target)
    if effective_cwd is None:
        return None
    return os.path.normpath(os.path.join(effective_cwd, target))
