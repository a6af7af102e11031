"""xargs child-command analysis."""

from collections.abc import Callable
from typing import NamedTuple

from safety_net.interpreters import SHELL_NAMES, parse_shell_c
from safety_net.rules_rm import has_recursive_force
from safety_net.shell import normalize_command_token, strip_env_assignments, strip_wrappers

REASON_XARGS_RM = (
    "xargs rm -rf with dynamic input is dangerous. Use explicit file list instead."
)
REASON_XARGS_SHELL = (
    "xargs with shell -c can execute arbitrary commands from dynamic input."
)

# Options that consume the following token.
_XARGS_VALUE_OPTIONS = frozenset(
    {
        "-a", "--arg-file", "-d", "--delimiter", "-E", "-I", "-L", "-n",
        "--max-args", "-P", "--max-procs", "-s", "--max-chars", "--process-slot-var",
    }
)


class XargsParseResult(NamedTuple):
    child_tokens: list[str]
    replacement_token: str | None


def extract_xargs_child_command_with_info(tokens: list[str]) -> XargsParseResult:
    """Split xargs options from the child command template.

    ``-I R``, ``-IR``, ``-i[R]`` and ``--replace[=R]`` set the replacement
    token (``-i`` alone means ``{}``).
    """
    replacement = None
    i = 1
    while i < len(tokens):
        tok = tokens[i]
        if tok == "--":
            i += 1
            break
        if not tok.startswith("-") or tok == "-":
            break
        if tok == "-I":
            replacement = tokens[i + 1] if i + 1 < len(tokens) else None
            i += 2
            continue
        if tok.startswith("-I"):
            replacement = tok[2:]
        elif tok in ("-i", "--replace"):
            replacement = "{}"
        elif tok.startswith("-i"):
            replacement = tok[2:]
        elif tok.startswith("--replace="):
            replacement = tok.split("=", 1)[1]
        elif tok in _XARGS_VALUE_OPTIONS:
            i += 2
            continue
        i += 1
    return XargsParseResult(list(tokens[i:]), replacement)


def extract_xargs_child_command(tokens: list[str]) -> list[str]:
    return extract_xargs_child_command_with_info(tokens).child_tokens


def analyze_xargs(
    tokens: list[str],
    *,
    analyze_child: Callable[[list[str]], str | None],
    analyze_nested: Callable[[str], str | None],
) -> str | None:
    """Analyze the command xargs will run.

    The child gets input appended (or substituted for the replacement
    token) at run time, so rm -rf and shell scripts built from that input
    are denied outright. Anything else is handed to *analyze_child*.
    """
    parsed = extract_xargs_child_command_with_info(tokens)
    child = strip_wrappers(strip_env_assignments(parsed.child_tokens))
    if not child:
        return None

    head = normalize_command_token(child[0])
    if head == "rm" and has_recursive_force(child):
        return REASON_XARGS_RM

    if head in SHELL_NAMES:
        shell = parse_shell_c(child)
        if shell is not None:
            if shell.script is None:
                return REASON_XARGS_SHELL
            if parsed.replacement_token and parsed.replacement_token in shell.script:
                return REASON_XARGS_SHELL
            return analyze_nested(shell.script)

    return analyze_child(child)
