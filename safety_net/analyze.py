"""Top-level command analysis."""

import dataclasses

from safety_net.context import (
    MAX_RECURSION_DEPTH,
    REASON_RECURSION_LIMIT,
    REASON_STRICT_UNPARSEABLE,
    AnalysisContext,
    AnalysisResult,
)
from safety_net.rules_find import analyze_find
from safety_net.rules_git import analyze_git
from safety_net.rules_rm import recursive_force_suffixes
from safety_net.segment import (
    analyze_rm_segment,
    analyze_segment,
    is_tmpdir_override,
    resolve_cd_target,
    segment_changes_cwd,
)
from safety_net.shell import normalize_command_token, parse_shell, strip_to_command

# parallel argument separators end the command a fallback match can see.
_ARG_SEPARATORS = frozenset({":::", "::::", ":::+", "::::+"})

_EXPORT_COMMANDS = frozenset({"export", "declare", "typeset", "readonly", "local"})


def _sets_tmpdir(tokens, tmp_dir):
    """True when a segment changes TMPDIR for the segments after it.

    Covers ``TMPDIR=/x`` on its own, ``export TMPDIR=/x`` and ``unset TMPDIR``.
    """
    stripped, env = strip_to_command(tokens)
    if not stripped:
        return is_tmpdir_override(env, tmp_dir)
    head = normalize_command_token(stripped[0])
    if head == "unset":
        return "TMPDIR" in stripped[1:]
    if head in _EXPORT_COMMANDS:
        assigned = dict(
            tok.split("=", 1) for tok in stripped[1:] if tok.startswith("TMPDIR=")
        )
        return is_tmpdir_override(assigned, tmp_dir)
    return False


# Longest token run a git/find fallback match inspects.
_MAX_FALLBACK_TAIL = 256

_FALLBACK_DETECTORS = {
    "git": analyze_git,
    "find": analyze_find,
}


def _split_at_separators(tokens):
    start = 0
    for i, tok in enumerate(tokens):
        if tok in _ARG_SEPARATORS:
            yield tokens[start:i]
            start = i + 1
    yield tokens[start:]


def _scan_chunk(tokens, ctx, cwd):
    rm_flags = None
    rm_checked = False
    for i, tok in enumerate(tokens):
        name = normalize_command_token(tok)
        if name != "rm" and name not in _FALLBACK_DETECTORS:
            continue
        if i > 0 and normalize_command_token(tokens[i - 1]) == "git":
            continue
        if name == "rm":
            if rm_checked:
                continue
            if rm_flags is None:
                rm_flags = recursive_force_suffixes(tokens)
            if not rm_flags[i]:
                continue
            # A later rm sees a subset of this one's targets, so one check covers them all.
            rm_checked = True
            reason = analyze_rm_segment(tokens[i:], ctx, cwd)
        else:
            reason = _FALLBACK_DETECTORS[name](tokens[i : i + _MAX_FALLBACK_TAIL])
        if reason:
            return reason
    return None


def fallback_scan(segments, contexts, cwds):
    """Look for rm/git/find anywhere in each segment, not only at its head.

    Catches dangerous commands behind launchers the dispatcher does not know
    (``mytool rm -rf /``). A token right after ``git`` is its subcommand
    (``git rm``) and is skipped. A match sees the tokens up to the next
    parallel ``:::`` separator; git and find matches see at most
    ``_MAX_FALLBACK_TAIL`` of them. Returns ``(reason, index)`` or None.
    """
    for index, (tokens, ctx, cwd) in enumerate(zip(segments, contexts, cwds)):
        for chunk in _split_at_separators(tokens):
            reason = _scan_chunk(chunk, ctx, cwd)
            if reason:
                return reason, index
    return None


def _analyze_nested(command, depth, ctx):
    result = _analyze_command_internal(command, depth, ctx)
    return result.reason if result else None


def _analyze_command_internal(command, depth, ctx):
    if depth >= MAX_RECURSION_DEPTH:
        return AnalysisResult(REASON_RECURSION_LIMIT, command)

    parsed = parse_shell(command)
    if ctx.strict and not parsed.ok:
        return AnalysisResult(REASON_STRICT_UNPARSEABLE, command)
    if ctx.strict and not any(seg and seg[0] for seg in parsed.segments):
        if not any(parsed.substitutions):
            return AnalysisResult(REASON_STRICT_UNPARSEABLE, command)

    effective_cwd = ctx.cwd
    seg_ctx = ctx
    seen_contexts = []
    seen_cwds = []

    for tokens, text, substitutions in zip(parsed.segments, parsed.texts, parsed.substitutions):
        _, env = strip_to_command(tokens)
        if not seg_ctx.tmpdir_overridden and is_tmpdir_override(env, ctx.tmp_dir):
            seen_contexts.append(dataclasses.replace(seg_ctx, tmpdir_overridden=True))
        else:
            seen_contexts.append(seg_ctx)
        seen_cwds.append(effective_cwd)

        for inner in substitutions:
            inner_ctx = dataclasses.replace(seg_ctx, cwd=effective_cwd)
            reason = _analyze_nested(inner, depth + 1, inner_ctx)
            if reason:
                return AnalysisResult(reason, text)

        reason = analyze_segment(tokens, depth, seg_ctx, effective_cwd, _analyze_nested)
        if reason:
            return AnalysisResult(reason, text)

        # Once lost, the working directory stays unknown for the rest of the command.
        if effective_cwd is not None and segment_changes_cwd(tokens):
            effective_cwd = resolve_cd_target(tokens, effective_cwd, ctx.home)
        if not seg_ctx.tmpdir_overridden and _sets_tmpdir(tokens, ctx.tmp_dir):
            seg_ctx = dataclasses.replace(seg_ctx, tmpdir_overridden=True)

    found = fallback_scan(parsed.segments, seen_contexts, seen_cwds)
    if found:
        reason, index = found
        return AnalysisResult(reason, parsed.texts[index])
    return None


def analyze_command(command: str, ctx: AnalysisContext) -> AnalysisResult | None:
    """Analyze a shell command line before it runs.

    Returns an AnalysisResult naming the reason and the offending segment
    when the command should be blocked, or None when it is allowed.
    """
    return _analyze_command_internal(command, 0, ctx)
