"""GNU parallel template and argument analysis."""

import re
from collections.abc import Callable
from typing import NamedTuple

from safety_net.interpreters import SHELL_NAMES, parse_shell_c
from safety_net.rules_rm import has_recursive_force
from safety_net.shell import normalize_command_token, strip_env_assignments, strip_wrappers

REASON_PARALLEL_RM = (
    "parallel rm -rf with dynamic input is dangerous. Use explicit file list instead."
)
REASON_PARALLEL_SHELL = (
    "parallel with shell -c can execute arbitrary commands from dynamic input."
)

_ARG_SEPARATORS = frozenset({":::", ":::+"})
_FILE_SEPARATORS = frozenset({"::::", "::::+"})

_PARALLEL_VALUE_OPTIONS = frozenset(
    {
        "-j", "--jobs", "-P", "--max-procs", "-S", "--sshlogin", "--slf",
        "--sshloginfile", "-a", "--arg-file", "--colsep", "-C", "-d",
        "--delimiter", "-I", "--results", "--res", "--joblog", "--tmpdir",
        "--workdir", "--wd", "-n", "--max-args", "-N", "-L", "--max-lines",
        "-s", "--max-chars", "--timeout", "--delay", "--retries", "--load",
        "--memfree", "--tagstring", "--basefile", "--bf", "--return",
        "--env", "--nice", "--halt", "--termseq", "--arg-sep", "--arg-file-sep",
    }
)

# {} and its GNU variants: {.} {/} {//} {/.} {#} {%} {1}
_DEFAULT_PLACEHOLDER = re.compile(r"(?<!\$)\{\d*(\.|/|//|/\.|#|%)?\}")


class ParallelParseResult(NamedTuple):
    template: list[str]
    args: list[str] | None  # None: arguments come from stdin or a file
    replacement: str | None


def _parse_parallel(tokens):
    replacement = None
    i = 1
    while i < len(tokens):
        tok = tokens[i]
        if tok == "--":
            i += 1
            break
        if tok in _ARG_SEPARATORS or tok in _FILE_SEPARATORS:
            break
        if not tok.startswith("-") or tok == "-":
            break
        if tok in _PARALLEL_VALUE_OPTIONS:
            if tok == "-I" and i + 1 < len(tokens):
                replacement = tokens[i + 1]
            i += 2
            continue
        i += 1

    template = []
    while i < len(tokens) and tokens[i] not in _ARG_SEPARATORS | _FILE_SEPARATORS:
        template.append(tokens[i])
        i += 1

    if i >= len(tokens) or any(t in _FILE_SEPARATORS for t in tokens[i:]):
        return ParallelParseResult(template, None, replacement)
    args = [t for t in tokens[i:] if t not in _ARG_SEPARATORS]
    return ParallelParseResult(template, args, replacement)


def extract_parallel_child_command(tokens: list[str]) -> list[str]:
    """The command template parallel runs, with parallel's own options removed."""
    return _parse_parallel(tokens).template


def _has_placeholder(token, replacement):
    if replacement:
        return replacement in token
    return bool(_DEFAULT_PLACEHOLDER.search(token))


def _substitute(template, arg, replacement):
    if not any(_has_placeholder(t, replacement) for t in template):
        return [*template, arg]
    if replacement:
        return [t.replace(replacement, arg) for t in template]
    return [_DEFAULT_PLACEHOLDER.sub(lambda _m: arg, t) for t in template]


def _analyze_shell_template(parsed, template, analyze_nested):
    shell = parse_shell_c(template)
    if shell is None:
        return None
    outside = shell.before + shell.after
    if shell.after or any(_has_placeholder(t, parsed.replacement) for t in outside):
        return REASON_PARALLEL_SHELL
    if shell.script is None:
        return REASON_PARALLEL_SHELL if parsed.args else None
    if parsed.args and _has_placeholder(shell.script, parsed.replacement):
        for arg in parsed.args:
            reason = analyze_nested(_substitute([shell.script], arg, parsed.replacement)[0])
            if reason:
                return reason
        return None
    return analyze_nested(shell.script)


def analyze_parallel(
    tokens: list[str],
    *,
    analyze_child: Callable[[list[str]], str | None],
    analyze_nested: Callable[[str], str | None],
) -> str | None:
    """Analyze what GNU parallel will run.

    Literal ``:::`` arguments are substituted into the template and each
    resulting command is analyzed. Without literal arguments the input is
    dynamic, and rm -rf templates are denied outright.
    """
    parsed = _parse_parallel(tokens)
    template = strip_wrappers(strip_env_assignments(parsed.template))

    if not template:
        # `parallel ::: 'cmd1' 'cmd2'` runs each argument as a command.
        for arg in parsed.args or []:
            reason = analyze_nested(arg)
            if reason:
                return reason
        return None

    head = normalize_command_token(template[0])
    if head in SHELL_NAMES and parse_shell_c(template) is not None:
        return _analyze_shell_template(parsed, template, analyze_nested)

    if head == "rm" and has_recursive_force(template) and not parsed.args:
        return REASON_PARALLEL_RM

    if parsed.args:
        for arg in parsed.args:
            reason = analyze_child(_substitute(template, arg, parsed.replacement))
            if reason:
                return reason
        return None
    return analyze_child(template)
